"""Lexical similarity between papers (Jaccard index over word sets).

A paper's word set is the union of the long-enough tokens of its title and
abstract plus its keyword list taken verbatim.  Keywords are neither
re-tokenized nor length-filtered, so a multi-word keyword such as
``"deep learning"`` only matches the identical keyword on another paper.

All functions are pure and safe to call concurrently.
"""

import re
from typing import Iterable

from literatus.models import Paper

_NON_WORD = re.compile(r"\W+", re.ASCII)

#: Tokens must be strictly longer than this to count.
MIN_TOKEN_LENGTH = 3


def tokenize(text: str | None) -> list[str]:
    """Lower-case ``text``, split on non-word runs, drop tokens of length <= 3."""
    if not text:
        return []
    return [t for t in _NON_WORD.split(text.lower()) if len(t) > MIN_TOKEN_LENGTH]


def word_set(paper: Paper) -> set[str]:
    """Return the set of words used to compare ``paper`` with others."""
    words = set(tokenize(paper.title))
    words.update(tokenize(paper.abstract))
    words.update(paper.keywords or [])
    return words


def similarity(a: Paper, b: Paper) -> float:
    """Jaccard index of the two papers' word sets, in ``[0, 1]``.

    Symmetric in its arguments.  Returns ``0.0`` when neither paper
    contributes any word.
    """
    words_a = word_set(a)
    words_b = word_set(b)
    union = words_a | words_b
    if not union:
        return 0.0
    return len(words_a & words_b) / len(union)


def rank_related(paper: Paper, candidates: Iterable[Paper], limit: int = 3) -> list[str]:
    """Titles of the ``limit`` candidates most similar to ``paper``.

    ``paper`` itself (matched by id) is excluded.  Ties keep candidate order.
    """
    scored = [
        (similarity(paper, other), other.title)
        for other in candidates
        if other.id != paper.id
    ]
    scored.sort(key=lambda item: item[0], reverse=True)
    return [title for _, title in scored[:limit]]
