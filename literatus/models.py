"""Pydantic models, dataclass Config, and exceptions for Literatus.

This module only defines the *schema* of the data that flows through the
application: paper records, the JSON shapes returned by the AI backend,
relation-graph results, import reporting, and runtime configuration.

Records serialize with camelCase field names (``aiSummary``, ``keyFindings``)
so they round-trip with the browser UI; snake_case names are accepted on input.
"""

import os
import re
from dataclasses import dataclass, field
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

ReadStatus = Literal["read", "unread"]
"""A paper is either read or unread; there is no third state."""

CitationFormat = Literal["bibtex", "ris"]


def _extract_year_candidate(value: object) -> int | None:
    """Extract a plausible 4-digit year from a string value."""
    if not isinstance(value, str):
        return None
    match = re.search(r"(?<!\d)(1\d{3}|20\d{2})(?!\d)", value)
    if not match:
        return None
    return int(match.group(1))


class _Record(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Paper
# ---------------------------------------------------------------------------


class AISummary(_Record):
    """Result of an AI analysis attached to a paper.

    A value object: re-analysis replaces it wholesale, it is never merged
    field by field.
    """

    key_findings: list[str] = Field(default_factory=list)
    relevance_score: int = Field(default=0, ge=0, le=100)
    suggested_connections: list[str] = Field(default_factory=list)


class Paper(_Record):
    """One catalogued research paper.

    ``authors`` keeps byline order and is used both for display and for
    shared-authorship matching.  ``keywords`` may contain duplicates since
    analysis results are appended to it.

    ``None`` supplied for any text or list field is normalized to the empty
    default, so partially filled records from the UI validate cleanly.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    id: int
    title: str = ""
    authors: list[str] = Field(default_factory=list)
    year: int | None = None
    journal: str = ""
    doi: str = ""
    abstract: str = ""
    methodology: list[str] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)
    citations: int = Field(default=0, ge=0)
    notes: str = ""
    status: ReadStatus = "unread"
    ai_summary: AISummary | None = None
    gaps: list[str] = Field(default_factory=list)

    @field_validator("title", "journal", "doi", "abstract", "notes", mode="before")
    @classmethod
    def _none_to_empty_str(cls, value: object) -> object:
        return "" if value is None else value

    @field_validator("authors", "methodology", "keywords", "gaps", mode="before")
    @classmethod
    def _none_to_empty_list(cls, value: object) -> object:
        return [] if value is None else value

    @field_validator("citations", mode="before")
    @classmethod
    def _none_to_zero(cls, value: object) -> object:
        return 0 if value is None else value

    @field_validator("year", mode="before")
    @classmethod
    def _blank_year_to_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value


# ---------------------------------------------------------------------------
# AI backend wire shapes (validated leniently)
# ---------------------------------------------------------------------------


class ExtractedMetadata(_Record):
    """Metadata the AI backend extracted from a PDF's text.

    Every field is optional; absent fields fall back to the import defaults
    in ``library.paper_from_extraction``.
    """

    title: str | None = None
    authors: list[str] | None = None
    year: int | None = None
    journal: str | None = None
    abstract: str | None = None
    methodology: list[str] | None = None
    keywords: list[str] | None = None

    @field_validator("authors", "methodology", "keywords", mode="before")
    @classmethod
    def _single_string_to_list(cls, value: object) -> object:
        if isinstance(value, str):
            return [value] if value.strip() else None
        return value

    @field_validator("year", mode="before")
    @classmethod
    def _normalize_year(cls, value: object) -> object:
        if value is None or isinstance(value, int):
            return value
        return _extract_year_candidate(str(value))


class AnalysisResult(_Record):
    """Analysis of one paper as returned by the AI backend.

    The backend is asked for 3 key findings, 2 gaps and 5 keywords, but the
    counts are not enforced: the result is opaque data to merge.
    """

    key_findings: list[str] = Field(default_factory=list)
    relevance_score: int | None = None
    gaps: list[str] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)

    @field_validator("key_findings", "gaps", "keywords", mode="before")
    @classmethod
    def _coerce_to_list(cls, value: object) -> object:
        if value is None:
            return []
        if isinstance(value, str):
            return [value] if value.strip() else []
        return value

    @field_validator("relevance_score", mode="before")
    @classmethod
    def _lenient_score(cls, value: object) -> object:
        if value is None or isinstance(value, int):
            return value
        match = re.search(r"-?\d+(?:\.\d+)?", str(value))
        if not match:
            return None
        return int(float(match.group(0)))


# ---------------------------------------------------------------------------
# Relation graph
# ---------------------------------------------------------------------------


class GraphNode(_Record):
    """A paper placed on the radial layout."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    paper_id: int
    label: str
    year: int | None
    angle: float
    x: float
    y: float


class GraphEdge(_Record):
    """An undirected "related" link between two papers.

    ``strength`` is the raw similarity score.  It is not clamped, so an edge
    created by shared authorship alone may carry a strength of zero.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    source: int
    target: int
    strength: float
    shared_authors: bool


class RelationGraph(_Record):
    """Renderable graph over a paper collection (two or more papers)."""

    nodes: list[GraphNode]
    edges: list[GraphEdge]


class InsufficientData(_Record):
    """Returned instead of a graph when fewer than two papers are supplied."""

    paper_count: int
    message: str = "Need at least two related papers to build a graph."


# ---------------------------------------------------------------------------
# Library reporting
# ---------------------------------------------------------------------------


class LibraryStats(BaseModel):
    """Counters shown in the sidebar of the UI."""

    total: int
    read: int
    unread: int
    analyzed: int


class FailedImport(BaseModel):
    """Records a single PDF that could not be imported during a batch run."""

    pdf_path: str
    error: str


class ImportReport(BaseModel):
    """Aggregate result of importing a directory of PDFs."""

    imported: int
    failed: int
    failed_imports: list[FailedImport]


# ---------------------------------------------------------------------------
# Config (dataclass — not pydantic; holds runtime settings)
# ---------------------------------------------------------------------------

#: Characters of PDF text handed to the extraction prompt.  Title, authors
#: and abstract are on the first page, so a short snippet is enough.
_DEFAULT_MAX_CHARS = 4_000

_DEFAULT_PORT = 3001


def _default_port() -> int:
    value = os.environ.get("PORT")
    return int(value) if value and value.isdigit() else _DEFAULT_PORT


@dataclass
class Config:
    """Runtime configuration for the Literatus backend and CLI.

    Attributes:
        base_url:          OpenAI-compatible API base URL.  Defaults to
                           Perplexity; any compatible endpoint works.
        extract_model:     Model used to extract metadata from PDF text.
        analyze_model:     Model used to analyze a paper's title and abstract.
        api_key:           API key for the LLM backend.  ``None`` means the
                           key is read from the environment (see
                           ``llm.create_client``).
        timeout_s:         Seconds before an LLM call is abandoned.
        max_output_tokens: Maximum tokens the LLM may generate per call.
                           ``None`` imposes no limit.
        max_chars:         Characters of extracted PDF text sent to the LLM.
        extractor:         PDF text extraction strategy: ``auto`` (docling
                           with pypdf fallback), ``docling`` or ``pypdf``.
        workers:           Concurrent workers for directory imports.
        host:              Interface the HTTP backend binds to.
        port:              Port the HTTP backend listens on (``PORT`` env
                           var when set).
        cors_origins:      Browser origins allowed to call the backend.
    """

    base_url: str = "https://api.perplexity.ai"
    extract_model: str = "sonar"
    analyze_model: str = "sonar-pro"
    api_key: str | None = None
    timeout_s: int = 120
    max_output_tokens: int | None = None
    max_chars: int = _DEFAULT_MAX_CHARS
    extractor: Literal["auto", "docling", "pypdf"] = "auto"
    workers: int = 3
    host: str = "127.0.0.1"
    port: int = field(default_factory=_default_port)
    cors_origins: list[str] = field(
        default_factory=lambda: ["http://localhost:3000"]
    )


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ParseError(Exception):
    """Raised when text cannot be extracted from a PDF."""


class LLMError(Exception):
    """Raised when an LLM call fails or returns output that cannot be parsed as JSON."""


class PaperNotFoundError(KeyError):
    """Raised when a paper id is not in the library."""

    def __init__(self, paper_id: int) -> None:
        self.paper_id = paper_id
        super().__init__(paper_id)

    def __str__(self) -> str:
        return f"No paper with id {self.paper_id}"


class DuplicatePaperError(ValueError):
    """Raised when adding a paper whose id is already in the library."""


class PipelineError(Exception):
    """Wraps any sub-error that occurs while importing or analyzing one paper.

    Attributes:
        source: The PDF path or paper id being processed.
        cause:  The original exception that triggered the failure.
    """

    def __init__(self, source: object, cause: Exception) -> None:
        self.source = source
        self.cause = cause
        super().__init__(f"Pipeline failed for {source}: {cause}")
