"""The paper collection — one owned record per id.

Every mutation replaces the stored ``Paper`` with an updated copy and returns
it.  Views never keep their own copies: the "selected" paper is an id that is
resolved against the collection on every access, so a paper marked as read
or analyzed is seen the same way everywhere.

Display order is newest first: papers added later are shown before the ones
already present.
"""

import json
import logging
import threading
import time
from datetime import date
from pathlib import Path
from typing import Iterable, Iterator

from literatus.models import (
    AISummary,
    AnalysisResult,
    DuplicatePaperError,
    ExtractedMetadata,
    LibraryStats,
    Paper,
    PaperNotFoundError,
)
from literatus.similarity import rank_related

logger = logging.getLogger(__name__)

_IMPORT_NOTES = "Imported via PDF parser."
_IMPORT_ABSTRACT = "Content extracted from uploaded PDF."


# ---------------------------------------------------------------------------
# Record construction
# ---------------------------------------------------------------------------


def paper_from_extraction(
    paper_id: int,
    metadata: ExtractedMetadata,
    filename: str,
    today: date | None = None,
) -> Paper:
    """Build an imported paper, falling back to defaults for absent fields.

    Args:
        paper_id: Identifier for the new record.
        metadata: Fields extracted by the AI backend (any may be ``None``).
        filename: Uploaded file name; its stem becomes the title fallback.
        today:    Date used for the year fallback (defaults to today).
    """
    year_fallback = (today or date.today()).year
    stem = filename[:-4] if filename.lower().endswith(".pdf") else filename
    return Paper(
        id=paper_id,
        title=metadata.title or stem,
        authors=metadata.authors or ["Unknown"],
        year=metadata.year or year_fallback,
        journal=metadata.journal or "Imported PDF",
        doi="",
        abstract=metadata.abstract or _IMPORT_ABSTRACT,
        methodology=metadata.methodology or ["PDF Analysis"],
        keywords=metadata.keywords or ["imported"],
        citations=0,
        notes=_IMPORT_NOTES,
        status="unread",
    )


def parse_author_field(text: str) -> list[str]:
    """Split a free-text author field into names.

    Names are separated by semicolons, since each name already contains a
    comma in "Last, First" form.  A field without any semicolon is split on
    commas instead.
    """
    separator = ";" if ";" in text else ","
    return [name.strip() for name in text.split(separator) if name.strip()]


def _detached(paper: Paper) -> Paper:
    """Deep copy, so list fields are never shared with the stored record."""
    return paper.model_copy(deep=True)


# ---------------------------------------------------------------------------
# Library
# ---------------------------------------------------------------------------


class Library:
    """In-memory paper collection keyed by paper id.

    Thread-safe: every read-modify-write runs under one lock, so concurrent
    HTTP handlers cannot lose each other's updates.  Papers go in and come
    out as deep copies; changing a returned paper's lists never touches the
    library.
    """

    def __init__(self, papers: Iterable[Paper] = ()) -> None:
        self._lock = threading.RLock()
        self._papers: dict[int, Paper] = {}
        self._order: list[int] = []
        self._selected_id: int | None = None
        self._last_id = 0
        for paper in papers:
            self._insert(paper, first=False)

    # -- construction -------------------------------------------------------

    @classmethod
    def from_records(cls, records: Iterable[dict]) -> "Library":
        """Validate plain dicts (camelCase or snake_case keys) into a library."""
        return cls(Paper.model_validate(record) for record in records)

    @classmethod
    def load(cls, path: Path) -> "Library":
        """Read a JSON array of paper records from ``path``."""
        records = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(records, list):
            raise ValueError(f"Expected a JSON array of papers in {path}")
        library = cls.from_records(records)
        logger.info("Loaded %d papers from %s", len(library), path)
        return library

    def to_records(self) -> list[dict]:
        """Papers in display order as JSON-ready camelCase dicts."""
        return [p.model_dump(mode="json", by_alias=True) for p in self.papers]

    def save(self, path: Path) -> None:
        """Write the collection to ``path`` as a JSON array."""
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(self.to_records(), indent=2, ensure_ascii=False) + "\n",
            encoding="utf-8",
        )
        logger.info("Saved %d papers to %s", len(self), path)

    # -- container protocol -------------------------------------------------

    def __len__(self) -> int:
        return len(self._papers)

    def __contains__(self, paper_id: object) -> bool:
        return paper_id in self._papers

    def __iter__(self) -> Iterator[Paper]:
        return iter(self.papers)

    @property
    def papers(self) -> list[Paper]:
        """Snapshot of all papers in display order (newest first)."""
        with self._lock:
            return [_detached(self._papers[pid]) for pid in self._order]

    # -- basic operations ---------------------------------------------------

    def get(self, paper_id: int) -> Paper:
        """Return the paper with ``paper_id``.

        Raises:
            PaperNotFoundError: if no such paper exists.
        """
        try:
            return _detached(self._papers[paper_id])
        except KeyError:
            raise PaperNotFoundError(paper_id) from None

    def add(self, paper: Paper) -> Paper:
        """Add ``paper`` at the top of the display order.

        Raises:
            DuplicatePaperError: if a paper with the same id is present.
        """
        with self._lock:
            self._insert(paper, first=True)
        logger.info("Added paper %d: %s", paper.id, paper.title or "(untitled)")
        return paper

    def remove(self, paper_id: int) -> Paper:
        """Remove and return a paper; clears the selection if it pointed there."""
        with self._lock:
            paper = self.get(paper_id)
            del self._papers[paper_id]
            self._order.remove(paper_id)
            if self._selected_id == paper_id:
                self._selected_id = None
        logger.info("Removed paper %d", paper_id)
        return paper

    def next_id(self) -> int:
        """A fresh id derived from the current time in milliseconds.

        Bumped past the last issued id and any existing id so that two papers
        created within the same millisecond still get distinct ids.
        """
        with self._lock:
            candidate = max(int(time.time() * 1000), self._last_id + 1)
            while candidate in self._papers:
                candidate += 1
            self._last_id = candidate
            return candidate

    def _insert(self, paper: Paper, first: bool) -> None:
        if paper.id in self._papers:
            raise DuplicatePaperError(f"Paper id {paper.id} already exists")
        self._papers[paper.id] = _detached(paper)
        if first:
            self._order.insert(0, paper.id)
        else:
            self._order.append(paper.id)

    def _replace(self, paper_id: int, **changes) -> Paper:
        with self._lock:
            updated = self.get(paper_id).model_copy(update=changes)
            self._papers[paper_id] = updated
            return _detached(updated)

    # -- creation -----------------------------------------------------------

    def create_paper(
        self,
        title: str,
        authors: list[str] | str | None = None,
        year: int | None = None,
        journal: str = "",
        abstract: str = "",
        methodology: list[str] | None = None,
    ) -> Paper:
        """Create a paper from the manual entry form and add it.

        ``authors`` may be a list or the raw text of the form's author field.
        With no authors given, the first word of the title stands in.

        Raises:
            ValueError: if ``title`` is empty.
        """
        if not title or not title.strip():
            raise ValueError("Title is required.")
        if isinstance(authors, str):
            authors = parse_author_field(authors)
        if not authors:
            authors = [title.split(" ")[0]]
        paper = Paper(
            id=self.next_id(),
            title=title,
            authors=authors,
            year=year,
            journal=journal,
            abstract=abstract,
            methodology=methodology or [],
            citations=0,
            status="unread",
        )
        return self.add(paper)

    def import_paper(self, metadata: ExtractedMetadata, filename: str) -> Paper:
        """Add a paper built from AI-extracted PDF metadata."""
        return self.add(paper_from_extraction(self.next_id(), metadata, filename))

    # -- mutations ----------------------------------------------------------

    def toggle_read(self, paper_id: int) -> Paper:
        """Flip a paper between ``read`` and ``unread``."""
        with self._lock:
            current = self.get(paper_id).status
            new_status = "unread" if current == "read" else "read"
            return self._replace(paper_id, status=new_status)

    def set_notes(self, paper_id: int, notes: str) -> Paper:
        return self._replace(paper_id, notes=notes or "")

    def apply_analysis(self, paper_id: int, result: AnalysisResult) -> Paper:
        """Merge an AI analysis result into a paper.

        The summary and gaps are replaced wholesale; the result's keywords are
        appended to the existing keyword list (duplicates kept).  Suggested
        connections are ranked against the paper as it was before the merge.
        """
        with self._lock:
            paper = self.get(paper_id)
            score = min(100, max(0, result.relevance_score or 0))
            summary = AISummary(
                key_findings=list(result.key_findings),
                relevance_score=score,
                suggested_connections=rank_related(paper, self.papers),
            )
            updated = self._replace(
                paper_id,
                ai_summary=summary,
                gaps=list(result.gaps),
                keywords=[*paper.keywords, *result.keywords],
            )
        logger.info("Analysis merged into paper %d (relevance %d)", paper_id, score)
        return updated

    # -- queries ------------------------------------------------------------

    def search(self, query: str) -> list[Paper]:
        """Case-insensitive substring match on title, abstract and keywords."""
        needle = (query or "").lower()
        if not needle:
            return self.papers
        return [
            p
            for p in self.papers
            if needle in p.title.lower()
            or needle in p.abstract.lower()
            or any(needle in k.lower() for k in p.keywords)
        ]

    def stats(self) -> LibraryStats:
        papers = self.papers
        return LibraryStats(
            total=len(papers),
            read=sum(1 for p in papers if p.status == "read"),
            unread=sum(1 for p in papers if p.status == "unread"),
            analyzed=sum(1 for p in papers if p.ai_summary is not None),
        )

    # -- selection ----------------------------------------------------------

    def select(self, paper_id: int) -> Paper:
        """Mark ``paper_id`` as the selected paper and return it."""
        with self._lock:
            paper = self.get(paper_id)
            self._selected_id = paper_id
            return paper

    def clear_selection(self) -> None:
        self._selected_id = None

    @property
    def selected_id(self) -> int | None:
        return self._selected_id

    @property
    def selected(self) -> Paper | None:
        """The selected paper as currently stored, or ``None``."""
        with self._lock:
            if self._selected_id is None:
                return None
            paper = self._papers.get(self._selected_id)
            return _detached(paper) if paper is not None else None
