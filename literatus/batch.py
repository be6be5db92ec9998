"""Batch import — scan a directory of PDFs and add each one to a library.

PDFs are parsed and sent to the AI provider concurrently in a thread pool.
Each finished import is added to the library as soon as it completes, so the
final display order follows completion order.  A failing file is recorded in
the report and never aborts the rest of the batch.
"""

import logging
import sys
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

from tqdm.auto import tqdm

from literatus.library import Library
from literatus.models import Config, FailedImport, ImportReport
from literatus.pipeline import import_pdf
from literatus.provider import AnalysisProvider

logger = logging.getLogger(__name__)


def find_pdfs(source_dir: Path) -> list[Path]:
    """Return all PDF files found recursively under ``source_dir``, sorted."""
    return sorted(p for p in source_dir.rglob("*") if p.suffix.lower() == ".pdf")


def run_import(
    source_dir: Path,
    library: Library,
    provider: AnalysisProvider,
    config: Config,
) -> ImportReport:
    """Import every PDF under ``source_dir`` into ``library``.

    Args:
        source_dir: Directory to scan for PDFs (recursive).
        library:    Collection receiving the imported papers.
        provider:   AI capability used for metadata extraction.
        config:     Runtime configuration (``workers``, ``max_chars``,
                    ``extractor``).

    Returns:
        An ``ImportReport`` with counts and details of failed files.
    """
    pdfs = find_pdfs(source_dir)
    total = len(pdfs)
    logger.info("Discovered PDFs: %d", total)

    n_imported = 0
    failed: list[FailedImport] = []
    show_progress = sys.stderr.isatty()

    with ThreadPoolExecutor(
        max_workers=config.workers,
        thread_name_prefix="import",
    ) as executor:
        futures = {
            executor.submit(import_pdf, pdf_path, library, provider, config): pdf_path
            for pdf_path in pdfs
        }
        with tqdm(
            total=total,
            desc="Import",
            unit="pdf",
            disable=not show_progress,
            leave=True,
        ) as progress:
            for future in as_completed(futures):
                pdf_path = futures[future]
                try:
                    paper = future.result()
                    n_imported += 1
                    logger.info("  Imported %s -> %d", pdf_path.name, paper.id)
                except Exception as exc:
                    logger.error("  Failed %s: %s", pdf_path.name, exc)
                    failed.append(FailedImport(pdf_path=str(pdf_path), error=str(exc)))
                finally:
                    progress.update(1)
                    progress.set_postfix(ok=n_imported, failed=len(failed))

    return ImportReport(imported=n_imported, failed=len(failed), failed_imports=failed)
