"""Per-paper orchestration: import one PDF, or analyze one catalogued paper.

Both operations are all-or-nothing with respect to the library: the AI call
happens first and the library is only touched once a valid result is in hand.
A failure is wrapped in ``PipelineError`` and leaves prior state unchanged.
There is no retry here beyond the LLM layer's transient-error backoff.
"""

import logging
from pathlib import Path

from literatus.library import Library
from literatus.models import (
    Config,
    ExtractedMetadata,
    Paper,
    PaperNotFoundError,
    PipelineError,
)
from literatus.parser import parse_pdf, parse_pdf_bytes
from literatus.provider import AnalysisProvider

logger = logging.getLogger(__name__)


def extract_pdf_metadata(
    data: bytes,
    filename: str,
    provider: AnalysisProvider,
    config: Config,
) -> ExtractedMetadata:
    """Parse an in-memory PDF and have the provider extract its metadata.

    Raises:
        PipelineError: wraps any ``ParseError``, ``LLMError`` or other failure.
    """
    try:
        text = parse_pdf_bytes(
            data, filename, max_chars=config.max_chars, extractor=config.extractor
        )
        return provider.extract_metadata(text)
    except Exception as e:
        raise PipelineError(filename, e) from e


def import_pdf(
    pdf_path: Path,
    library: Library,
    provider: AnalysisProvider,
    config: Config,
) -> Paper:
    """Parse ``pdf_path``, extract its metadata and add it to ``library``.

    Returns:
        The newly added paper.

    Raises:
        PipelineError: wraps any failure; the library is unchanged.
    """
    try:
        text = parse_pdf(pdf_path, max_chars=config.max_chars, extractor=config.extractor)
        metadata = provider.extract_metadata(text)
    except Exception as e:
        raise PipelineError(pdf_path, e) from e

    paper = library.import_paper(metadata, pdf_path.name)
    logger.info("Imported %s as paper %d", pdf_path.name, paper.id)
    return paper


def analyze_paper(
    library: Library,
    paper_id: int,
    provider: AnalysisProvider,
) -> Paper:
    """Run AI analysis on a catalogued paper and merge the result.

    Returns:
        The updated paper as stored in the library.

    Raises:
        PipelineError: if the paper is missing, has no abstract, or the
            provider fails; the library is unchanged.
    """
    try:
        paper = library.get(paper_id)
    except PaperNotFoundError as e:
        raise PipelineError(paper_id, e) from e
    if not paper.abstract.strip():
        raise PipelineError(paper_id, ValueError("Abstract is required for analysis."))

    try:
        result = provider.analyze(paper.title, paper.abstract)
    except Exception as e:
        raise PipelineError(paper_id, e) from e

    return library.apply_analysis(paper_id, result)
