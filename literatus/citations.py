"""Render a Paper as a bibliography entry (BibTeX or RIS).

Pure string building; no file I/O is performed here.  The caller decides
whether the text becomes a download, a file on disk, or a clipboard entry.

Missing values never disappear from the output: title, journal and year
render as ``N/A``; DOI and abstract render empty.
"""

from literatus.models import CitationFormat, Paper

_MISSING = "N/A"

_EXTENSIONS: dict[str, str] = {"bibtex": "bib", "ris": "ris"}


# ---------------------------------------------------------------------------
# Key and filename helpers
# ---------------------------------------------------------------------------


def _first_author_surname(paper: Paper) -> str:
    """Text before the first comma of the first author ("Last, First")."""
    if not paper.authors or not paper.authors[0]:
        return ""
    return paper.authors[0].split(",")[0]


def _first_title_word(paper: Paper) -> str:
    if not paper.title:
        return ""
    return paper.title.split(" ")[0]


def _year_text(paper: Paper) -> str:
    return str(paper.year) if paper.year else _MISSING


def citation_key(paper: Paper) -> str:
    """Build the ``firstauthorYEARfirstword`` citation key.

    Falls back to ``unknown`` for a missing first author and ``paper`` for a
    missing title word, e.g. ``chen2024deep`` or ``unknown2023paper``.
    Whitespace inside a surname is dropped, since keys cannot contain spaces.
    """
    author = "".join(_first_author_surname(paper).lower().split()) or "unknown"
    title_word = _first_title_word(paper).lower() or "paper"
    year = str(paper.year) if paper.year is not None else ""
    return f"{author}{year}{title_word}"


def export_filename(paper: Paper, fmt: CitationFormat) -> str:
    """Download filename, e.g. ``Chen_2024_Deep.bib``."""
    if fmt not in _EXTENSIONS:
        raise ValueError(f"Unsupported citation format: {fmt!r}")
    author = _first_author_surname(paper) or "Author"
    title_word = _first_title_word(paper) or "Paper"
    year = paper.year if paper.year is not None else "nd"
    return f"{author}_{year}_{title_word}.{_EXTENSIONS[fmt]}"


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------


def to_bibtex(paper: Paper) -> str:
    """Render ``paper`` as a single ``@article{...}`` block."""
    lines = [
        f"@article{{{citation_key(paper)},",
        f"  title={{{paper.title or _MISSING}}},",
        f"  author={{{' and '.join(paper.authors)}}},",
        f"  journal={{{paper.journal or _MISSING}}},",
        f"  year={{{_year_text(paper)}}},",
        f"  doi={{{paper.doi or ''}}},",
        f"  abstract={{{paper.abstract or ''}}}",
        "}",
    ]
    return "\n".join(lines)


def to_ris(paper: Paper) -> str:
    """Render ``paper`` as an RIS record with a fixed tag order."""
    lines = ["TY  - JOUR", f"TI  - {paper.title or _MISSING}"]
    lines.extend(f"AU  - {author}" for author in paper.authors)
    lines.extend(
        [
            f"JO  - {paper.journal or _MISSING}",
            f"PY  - {_year_text(paper)}",
            f"DO  - {paper.doi or ''}",
            f"AB  - {paper.abstract or ''}",
            "ER  -",
        ]
    )
    return "\n".join(lines)


def format_citation(paper: Paper, fmt: CitationFormat) -> str:
    """Dispatch to ``to_bibtex`` or ``to_ris``.

    Raises:
        ValueError: for any format other than ``bibtex`` or ``ris``.
    """
    if fmt == "bibtex":
        return to_bibtex(paper)
    if fmt == "ris":
        return to_ris(paper)
    raise ValueError(f"Unsupported citation format: {fmt!r}")
