"""Command-line interface for Literatus.

Entry point: ``literatus`` (configured in ``pyproject.toml``).

Usage:
    literatus serve [--host H] [--port P]              # run the HTTP backend
    literatus import (--file PDF | --source DIR)       # add PDFs to a library
    literatus analyze --id ID                          # AI analysis of one paper
    literatus graph                                    # relation graph as JSON
    literatus export --id ID --format bibtex|ris       # citation text
    literatus search QUERY                             # substring search
    literatus add --title T [--authors A] [--methodology M ...]  # manual entry
    literatus toggle-read --id ID                      # flip read/unread
    literatus notes --id ID --text TEXT                # replace a paper's notes
    literatus remove --id ID                           # delete a paper
    literatus stats                                    # library counters

Commands that read papers take ``--library FILE`` (a JSON array of paper
records); without it the bundled sample papers are used.  Commands that
change the library write it to ``--output`` (defaulting to ``--library``, or
stdout when neither is given).

Before talking to the AI backend (``serve``, ``import``, ``analyze``) the CLI
performs a lightweight reachability check against the root host of the
configured ``--base-url``.
"""

import argparse
import json
import logging
import os
import sys
import urllib.error
import urllib.parse
import urllib.request
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from literatus.batch import run_import
from literatus.citations import format_citation
from literatus.graph import build_graph
from literatus.library import Library
from literatus.log import setup_logging
from literatus.models import (
    Config,
    InsufficientData,
    LLMError,
    PaperNotFoundError,
    PipelineError,
    _DEFAULT_MAX_CHARS,
)
from literatus.pipeline import analyze_paper, import_pdf
from literatus.provider import LLMAnalysisProvider
from literatus.samples import METHODOLOGY_CATEGORIES, sample_papers
from literatus.server import create_app

logger = logging.getLogger(__name__)


def _positive_int(value: str) -> int:
    parsed = int(value)
    if parsed < 1:
        raise argparse.ArgumentTypeError("must be >= 1")
    return parsed


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the chosen command."""
    load_dotenv()

    parser = _build_parser()
    args = parser.parse_args(argv)

    setup_logging(
        verbose=args.verbose,
        log_file=Path(args.log_file) if args.log_file else None,
    )

    config = _config_from_args(args)
    handlers = {
        "serve": _cmd_serve,
        "import": _cmd_import,
        "analyze": _cmd_analyze,
        "graph": _cmd_graph,
        "export": _cmd_export,
        "search": _cmd_search,
        "add": _cmd_add,
        "toggle-read": _cmd_toggle_read,
        "notes": _cmd_notes,
        "remove": _cmd_remove,
        "stats": _cmd_stats,
    }
    handlers[args.command](args, config)


def _config_from_args(args: argparse.Namespace) -> Config:
    config = Config(
        base_url=args.base_url,
        extract_model=args.extract_model,
        analyze_model=args.analyze_model,
        api_key=args.api_key,
        timeout_s=args.timeout,
        max_output_tokens=args.max_output_tokens,
        max_chars=args.max_chars,
        extractor=args.extractor,
        workers=args.workers,
    )
    if args.command == "serve":
        config.host = args.host
        if args.port is not None:
            config.port = args.port
        if args.cors_origin:
            config.cors_origins = args.cors_origin
    return config


# ---------------------------------------------------------------------------
# Library I/O
# ---------------------------------------------------------------------------


def _load_library(path: str | None) -> Library:
    """Load the library file, or fall back to the sample papers."""
    if path is None:
        logger.debug("No --library given; using sample papers")
        return Library(sample_papers())
    try:
        return Library.load(Path(path))
    except (OSError, ValueError) as exc:
        logger.error("Cannot load library %s: %s", path, exc)
        sys.exit(1)


def _write_library(library: Library, args: argparse.Namespace) -> None:
    target = args.output or args.library
    if target is None:
        json.dump(library.to_records(), sys.stdout, indent=2, ensure_ascii=False)
        sys.stdout.write("\n")
        return
    library.save(Path(target))


def _make_provider(config: Config) -> LLMAnalysisProvider:
    _check_backend(config.base_url)
    try:
        return LLMAnalysisProvider.from_config(config)
    except LLMError as exc:
        logger.error("%s", exc)
        sys.exit(1)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _cmd_serve(args: argparse.Namespace, config: Config) -> None:
    _check_backend(config.base_url)
    logger.info("Serving Literatus API on http://%s:%d", config.host, config.port)
    uvicorn.run(create_app(config), host=config.host, port=config.port, log_config=None)


def _cmd_import(args: argparse.Namespace, config: Config) -> None:
    library = _load_library(args.library)
    provider = _make_provider(config)

    if args.file:
        pdf_path = Path(args.file)
        if not pdf_path.exists():
            logger.error("File not found: %s", pdf_path)
            sys.exit(1)
        try:
            import_pdf(pdf_path, library, provider, config)
        except PipelineError as exc:
            logger.error("%s", exc)
            sys.exit(1)
        _write_library(library, args)
        return

    source_dir = Path(args.source)
    if not source_dir.exists():
        logger.error("Directory not found: %s", source_dir)
        sys.exit(1)

    report = run_import(source_dir, library, provider, config)
    logger.info("Done. Imported: %d, failed: %d", report.imported, report.failed)
    _write_library(library, args)

    if report.failed_imports:
        logger.error("Failed imports:")
        for item in report.failed_imports:
            logger.error("  %s: %s", item.pdf_path, item.error)
        sys.exit(1)


def _cmd_analyze(args: argparse.Namespace, config: Config) -> None:
    library = _load_library(args.library)
    provider = _make_provider(config)
    try:
        paper = analyze_paper(library, args.id, provider)
    except PipelineError as exc:
        logger.error("%s", exc)
        sys.exit(1)
    logger.info(
        "Analyzed paper %d: relevance %d", paper.id, paper.ai_summary.relevance_score
    )
    _write_library(library, args)


def _cmd_graph(args: argparse.Namespace, config: Config) -> None:
    library = _load_library(args.library)
    result = build_graph(library.papers)
    if isinstance(result, InsufficientData):
        logger.error("%s (library has %d)", result.message, result.paper_count)
        sys.exit(1)
    sys.stdout.write(result.model_dump_json(by_alias=True, indent=2) + "\n")


def _cmd_export(args: argparse.Namespace, config: Config) -> None:
    library = _load_library(args.library)
    try:
        paper = library.get(args.id)
    except PaperNotFoundError as exc:
        logger.error("%s", exc)
        sys.exit(1)
    text = format_citation(paper, args.format)
    if args.output:
        Path(args.output).write_text(text + "\n", encoding="utf-8")
        logger.info("Written: %s", args.output)
    else:
        sys.stdout.write(text + "\n")


def _cmd_search(args: argparse.Namespace, config: Config) -> None:
    library = _load_library(args.library)
    for paper in library.search(args.query):
        year = paper.year if paper.year is not None else "----"
        sys.stdout.write(f"{paper.id}\t{paper.status}\t{year}\t{paper.title}\n")


def _cmd_add(args: argparse.Namespace, config: Config) -> None:
    library = _load_library(args.library)
    try:
        paper = library.create_paper(
            title=args.title,
            authors=args.authors,
            year=args.year,
            journal=args.journal,
            abstract=args.abstract,
            methodology=args.methodology,
        )
    except ValueError as exc:
        logger.error("%s", exc)
        sys.exit(1)
    logger.info("New paper id: %d", paper.id)
    _write_library(library, args)


def _edit_paper(args: argparse.Namespace, edit) -> None:
    """Apply ``edit(library, paper_id)`` to the library and write it back."""
    library = _load_library(args.library)
    try:
        edit(library, args.id)
    except PaperNotFoundError as exc:
        logger.error("%s", exc)
        sys.exit(1)
    _write_library(library, args)


def _cmd_toggle_read(args: argparse.Namespace, config: Config) -> None:
    def edit(library, paper_id):
        paper = library.toggle_read(paper_id)
        logger.info("Paper %d is now %s", paper.id, paper.status)

    _edit_paper(args, edit)


def _cmd_notes(args: argparse.Namespace, config: Config) -> None:
    _edit_paper(args, lambda library, paper_id: library.set_notes(paper_id, args.text))


def _cmd_remove(args: argparse.Namespace, config: Config) -> None:
    _edit_paper(args, Library.remove)


def _cmd_stats(args: argparse.Namespace, config: Config) -> None:
    stats = _load_library(args.library).stats()
    sys.stdout.write(stats.model_dump_json(indent=2) + "\n")


# ---------------------------------------------------------------------------
# AI backend health check
# ---------------------------------------------------------------------------


def _check_backend(base_url: str) -> None:
    """Verify that the AI backend host is reachable."""
    parsed = urllib.parse.urlparse(base_url)
    health_url = f"{parsed.scheme}://{parsed.netloc}"
    try:
        with urllib.request.urlopen(health_url, timeout=5):
            pass
    except urllib.error.HTTPError:
        # Any HTTP response (4xx/5xx) means the server is up; cloud APIs
        # reject unauthenticated requests to their root URL.
        return
    except Exception as exc:
        logger.error("Cannot reach AI backend at %s\n  Details: %s", health_url, exc)
        sys.exit(1)


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _add_library_args(parser: argparse.ArgumentParser, writes: bool = False) -> None:
    parser.add_argument(
        "--library",
        metavar="FILE",
        default=None,
        help="JSON array of paper records (default: bundled sample papers).",
    )
    if writes:
        parser.add_argument(
            "--output",
            metavar="FILE",
            default=None,
            help="Where to write the updated library (default: --library, else stdout).",
        )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="literatus",
        description=(
            "Catalogue research papers, relate them by similarity and shared "
            "authorship, export citations, and run AI-assisted PDF import."
        ),
    )

    parser.add_argument(
        "--verbose",
        action=argparse.BooleanOptionalAction,
        default=False,
        help="Enable DEBUG-level logging (default: off).",
    )
    parser.add_argument(
        "--log-file",
        metavar="FILE",
        default=None,
        help="Also write log output to FILE.",
    )
    parser.add_argument(
        "--base-url",
        metavar="URL",
        default=os.environ.get("LLM_BASE_URL", "https://api.perplexity.ai"),
        help="OpenAI-compatible API base URL (default: LLM_BASE_URL env var or Perplexity).",
    )
    parser.add_argument(
        "--api-key",
        metavar="KEY",
        default=None,
        help="API key (default: LLM_API_KEY / PERPLEXITY_API_KEY / ANTHROPIC_API_KEY env vars).",
    )
    parser.add_argument(
        "--extract-model",
        metavar="MODEL",
        default="sonar",
        help="Model used for PDF metadata extraction (default: sonar).",
    )
    _default_model = os.environ.get("LLM_MODEL", "sonar-pro")
    parser.add_argument(
        "--analyze-model",
        metavar="MODEL",
        default=_default_model,
        help=f"Model used for paper analysis (default: LLM_MODEL env var, currently {_default_model!r}).",
    )
    parser.add_argument(
        "--timeout",
        metavar="S",
        type=int,
        default=120,
        help="LLM call timeout in seconds (default: 120).",
    )
    parser.add_argument(
        "--max-output-tokens",
        metavar="N",
        type=int,
        default=None,
        help="Maximum tokens the LLM may generate per call (default: no limit).",
    )
    parser.add_argument(
        "--max-chars",
        metavar="N",
        type=int,
        default=_DEFAULT_MAX_CHARS,
        help=f"Characters of PDF text sent for extraction (default: {_DEFAULT_MAX_CHARS:,}).",
    )
    parser.add_argument(
        "--extractor",
        choices=["auto", "docling", "pypdf"],
        default="auto",
        help="PDF extraction backend strategy (default: auto).",
    )
    parser.add_argument(
        "--workers",
        metavar="N",
        type=_positive_int,
        default=3,
        help="Number of parallel workers for directory imports (default: 3).",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    serve = commands.add_parser("serve", help="Run the HTTP backend.")
    serve.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1).")
    serve.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port (default: PORT env var or 3001).",
    )
    serve.add_argument(
        "--cors-origin",
        metavar="ORIGIN",
        action="append",
        default=None,
        help="Allowed browser origin; repeatable (default: http://localhost:3000).",
    )

    import_cmd = commands.add_parser("import", help="Import PDFs into a library.")
    source_group = import_cmd.add_mutually_exclusive_group(required=True)
    source_group.add_argument("--file", metavar="PDF", help="Path to a single PDF.")
    source_group.add_argument(
        "--source", metavar="DIR", help="Directory to scan recursively for PDFs."
    )
    _add_library_args(import_cmd, writes=True)

    analyze = commands.add_parser("analyze", help="Run AI analysis on one paper.")
    analyze.add_argument("--id", type=int, required=True, help="Paper id.")
    _add_library_args(analyze, writes=True)

    graph = commands.add_parser("graph", help="Print the relation graph as JSON.")
    _add_library_args(graph)

    export = commands.add_parser("export", help="Print or write a citation.")
    export.add_argument("--id", type=int, required=True, help="Paper id.")
    export.add_argument("--format", choices=["bibtex", "ris"], default="bibtex")
    export.add_argument("--output", metavar="FILE", default=None, help="Write to FILE.")
    _add_library_args(export)

    search = commands.add_parser("search", help="Search titles, abstracts and keywords.")
    search.add_argument("query", help="Case-insensitive substring.")
    _add_library_args(search)

    add = commands.add_parser("add", help="Add a paper by hand.")
    add.add_argument("--title", required=True, help="Paper title.")
    add.add_argument(
        "--authors",
        metavar="TEXT",
        default=None,
        help="Author names separated by ';' (or ',' when no ';' is present).",
    )
    add.add_argument("--year", type=int, default=None, help="Publication year.")
    add.add_argument("--journal", default="", help="Journal or venue.")
    add.add_argument("--abstract", default="", help="Abstract text.")
    add.add_argument(
        "--methodology",
        choices=METHODOLOGY_CATEGORIES,
        action="append",
        default=None,
        help="Methodology category; repeatable.",
    )
    _add_library_args(add, writes=True)

    toggle = commands.add_parser("toggle-read", help="Flip a paper between read and unread.")
    toggle.add_argument("--id", type=int, required=True, help="Paper id.")
    _add_library_args(toggle, writes=True)

    notes = commands.add_parser("notes", help="Replace a paper's notes.")
    notes.add_argument("--id", type=int, required=True, help="Paper id.")
    notes.add_argument("--text", required=True, help="New notes ('' clears them).")
    _add_library_args(notes, writes=True)

    remove = commands.add_parser("remove", help="Delete a paper.")
    remove.add_argument("--id", type=int, required=True, help="Paper id.")
    _add_library_args(remove, writes=True)

    stats = commands.add_parser("stats", help="Print library counters as JSON.")
    _add_library_args(stats)

    return parser


if __name__ == "__main__":
    main()
