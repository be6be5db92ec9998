"""PDF to text — docling with a pypdf fallback.

Works on bytes so the HTTP backend can parse uploads held in memory;
``parse_pdf`` is the convenience wrapper for files on disk.
"""

import io
import logging
import threading
from pathlib import Path

from docling.datamodel.base_models import DocumentStream
from docling.document_converter import DocumentConverter
from pypdf import PdfReader

from literatus.models import ParseError

logger = logging.getLogger(__name__)

_DOCLING_LOCK = threading.Lock()


def parse_pdf(
    pdf_path: Path,
    max_chars: int = 4_000,
    extractor: str = "auto",
) -> str:
    """Extract text from the PDF at ``pdf_path``.

    Raises:
        ParseError: if the file cannot be read or yields no text.
    """
    try:
        data = pdf_path.read_bytes()
    except OSError as e:
        raise ParseError(f"Failed to read {pdf_path}: {e}") from e
    return parse_pdf_bytes(data, pdf_path.name, max_chars=max_chars, extractor=extractor)


def parse_pdf_bytes(
    data: bytes,
    filename: str,
    max_chars: int = 4_000,
    extractor: str = "auto",
) -> str:
    """Extract text from an in-memory PDF.

    Args:
        data:      Raw PDF bytes.
        filename:  Name used in log and error messages.
        max_chars: Maximum characters to return (truncates after this limit).
        extractor: ``auto`` (docling with pypdf fallback), ``docling`` or
                   ``pypdf``.

    Returns:
        Extracted text, truncated to ``max_chars``.

    Raises:
        ParseError: if extraction fails or produces no text.
    """
    if not data:
        raise ParseError(f"Failed to parse {filename}: empty file")

    logger.info("Running %s extraction on: %s", extractor, filename)
    text = _extract_text(data, filename, extractor=extractor)
    logger.info("Extraction complete: %s chars", f"{len(text):,}")
    return text[:max_chars]


def _extract_text(data: bytes, filename: str, extractor: str) -> str:
    if extractor == "docling":
        with _DOCLING_LOCK:
            return _run_docling(data, filename)
    if extractor == "pypdf":
        return _extract_text_with_pypdf(data, filename)
    return _run_docling_with_fallback(data, filename)


def _run_docling_with_fallback(data: bytes, filename: str) -> str:
    """Run docling, then fall back to pypdf text extraction on failure."""
    try:
        # Serialize docling; it is not reliably thread-safe under batch imports.
        with _DOCLING_LOCK:
            return _run_docling(data, filename)
    except ParseError as docling_exc:
        logger.warning(
            "Docling parse failed for %s; attempting pypdf fallback: %s",
            filename,
            docling_exc,
        )
        try:
            text = _extract_text_with_pypdf(data, filename)
        except ParseError as fallback_exc:
            root_cause = docling_exc.__cause__ or docling_exc
            raise ParseError(
                f"Failed to parse {filename}: docling and pypdf fallback failed ({fallback_exc})"
            ) from root_cause

        logger.warning(
            "Using pypdf fallback text extraction for %s (%s chars)",
            filename,
            f"{len(text):,}",
        )
        return text


def _run_docling(data: bytes, filename: str) -> str:
    """Convert the PDF with docling and return its markdown export.

    Raises:
        ParseError: wrapping any exception raised by docling, or when the
            document has no text.
    """
    try:
        converter = DocumentConverter()
        source = DocumentStream(name=filename, stream=io.BytesIO(data))
        result = converter.convert(source)
        text = result.document.export_to_markdown().strip()
    except Exception as e:
        raise ParseError(f"Failed to parse {filename}: {e}") from e
    if not text:
        raise ParseError(f"Failed to parse {filename}: docling extracted empty text")
    return text


def _extract_text_with_pypdf(data: bytes, filename: str) -> str:
    """Extract plain text page by page with pypdf."""
    try:
        reader = PdfReader(io.BytesIO(data))
        pages: list[str] = []
        for page in reader.pages:
            pages.append(page.extract_text() or "")
        text = "\n\n".join(pages).strip()
    except Exception as e:
        raise ParseError(f"Failed to parse {filename}: pypdf error: {e}") from e
    if not text:
        raise ParseError(f"Failed to parse {filename}: pypdf extracted empty text")
    return text
