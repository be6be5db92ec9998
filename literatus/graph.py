"""Relation graph over a paper collection — radial layout plus "related" edges.

Layout
------
Nodes sit on a circle centred on the canvas origin ``(CENTER_X, CENTER_Y)``.
The radius grows by ``RADIUS_STEP`` per paper up to ``MAX_RADIUS``; node *i*
of *N* is placed at angle ``(i / N) * 2π``.  The layout depends on input order
only, so the same sequence of papers always yields the same picture.

Edges
-----
Every unordered pair is compared.  A pair is linked when the two papers share
at least one author string exactly, or when their similarity is strictly
greater than ``EDGE_THRESHOLD``.  The edge's ``strength`` is the similarity
score even when the link exists only through shared authorship.

The pairwise pass is O(N²).  Collections here are human-curated (tens to a
few hundred papers), so every pair is still scored; a larger corpus would
need a candidate index in front of this module.
"""

import logging
import math
from typing import Sequence

from literatus.models import GraphEdge, GraphNode, InsufficientData, Paper, RelationGraph
from literatus.similarity import similarity

logger = logging.getLogger(__name__)

CENTER_X = 400.0
CENTER_Y = 300.0
MAX_RADIUS = 200.0
RADIUS_STEP = 30.0

EDGE_THRESHOLD = 0.1

_LABEL_CHARS = 15


# ---------------------------------------------------------------------------
# Layout
# ---------------------------------------------------------------------------


def layout_radius(count: int) -> float:
    """Circle radius for ``count`` nodes (zero for a single node)."""
    if count <= 1:
        return 0.0
    return min(MAX_RADIUS, count * RADIUS_STEP)


def node_label(paper: Paper) -> str:
    """Short label drawn inside a node."""
    if not paper.title:
        return "Untitled"
    return paper.title[:_LABEL_CHARS] + "..."


def layout_nodes(papers: Sequence[Paper]) -> list[GraphNode]:
    """Place ``papers`` on the circle in input order."""
    count = len(papers)
    radius = layout_radius(count)
    nodes = []
    for i, paper in enumerate(papers):
        angle = (i / max(1, count)) * 2 * math.pi
        nodes.append(
            GraphNode(
                paper_id=paper.id,
                label=node_label(paper),
                year=paper.year,
                angle=angle,
                x=CENTER_X + radius * math.cos(angle),
                y=CENTER_Y + radius * math.sin(angle),
            )
        )
    return nodes


# ---------------------------------------------------------------------------
# Edges
# ---------------------------------------------------------------------------


def shares_author(a: Paper, b: Paper) -> bool:
    """True if at least one author string appears on both papers."""
    return bool(set(a.authors) & set(b.authors))


def build_edges(papers: Sequence[Paper]) -> list[GraphEdge]:
    """Compare every unordered pair and return the qualifying edges."""
    edges = []
    for i in range(len(papers)):
        for j in range(i + 1, len(papers)):
            a, b = papers[i], papers[j]
            shared = shares_author(a, b)
            sim = similarity(a, b)
            if shared or sim > EDGE_THRESHOLD:
                edges.append(
                    GraphEdge(
                        source=a.id,
                        target=b.id,
                        strength=sim,
                        shared_authors=shared,
                    )
                )
    return edges


def edge_style(strength: float) -> tuple[float, float]:
    """Stroke width and opacity for an edge of the given strength.

    The constant terms keep zero-strength (authorship-only) edges visible.
    """
    return 1.0 + strength * 5.0, min(1.0, 0.3 + strength)


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------


def build_graph(papers: Sequence[Paper]) -> RelationGraph | InsufficientData:
    """Build the relation graph for ``papers``.

    Returns:
        A ``RelationGraph`` with one node per paper, or ``InsufficientData``
        when fewer than two papers are given.
    """
    if len(papers) < 2:
        logger.debug("Graph needs two papers; got %d", len(papers))
        return InsufficientData(paper_count=len(papers))

    nodes = layout_nodes(papers)
    edges = build_edges(papers)
    logger.debug("Graph built: %d nodes, %d edges", len(nodes), len(edges))
    return RelationGraph(nodes=nodes, edges=edges)
