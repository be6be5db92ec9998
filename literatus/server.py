"""HTTP backend for the browser UI.

Two routes forward text to the AI provider (``/api/upload-pdf`` and
``/api/analyze``); two more expose the pure graph and citation functions so
the UI can request them with the papers it holds.  The backend keeps no
state between requests.

Errors come back as ``{"error": "..."}`` with a 4xx status for bad input and
500 for provider failures.  Nothing is retried here.
"""

import logging
from typing import Literal
from urllib.parse import quote

from fastapi import FastAPI, File, Query, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel

from literatus import __version__
from literatus.citations import export_filename, format_citation
from literatus.graph import build_graph
from literatus.models import Config, InsufficientData, LLMError, Paper, ParseError, PipelineError
from literatus.pipeline import extract_pdf_metadata
from literatus.provider import AnalysisProvider, LLMAnalysisProvider

logger = logging.getLogger(__name__)


class AnalyzeRequest(BaseModel):
    title: str | None = ""
    abstract: str | None = None


class GraphRequest(BaseModel):
    papers: list[Paper]


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def create_app(config: Config | None = None, provider: AnalysisProvider | None = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        config:   Runtime configuration (defaults to ``Config()``).
        provider: AI capability to use.  When omitted, an
                  ``LLMAnalysisProvider`` is created from ``config`` on the
                  first AI request, so the app can start without an API key.
    """
    config = config or Config()
    app = FastAPI(title="Literatus API", version=__version__)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.config = config
    app.state.provider = provider

    def get_provider() -> AnalysisProvider:
        if app.state.provider is None:
            app.state.provider = LLMAnalysisProvider.from_config(config)
        return app.state.provider

    @app.get("/")
    def health():
        return {"status": "ok", "service": "Literatus API"}

    @app.post("/api/upload-pdf")
    def upload_pdf(file: UploadFile | None = File(None)):
        """Extract metadata from an uploaded PDF."""
        if file is None:
            return _error(400, "No file uploaded.")
        data = file.file.read()
        filename = file.filename or "upload.pdf"
        try:
            metadata = extract_pdf_metadata(data, filename, get_provider(), config)
        except LLMError as exc:
            logger.error("PDF extraction failed for %s: %s", filename, exc)
            return _error(500, "AI extraction failed")
        except PipelineError as exc:
            logger.error("PDF extraction failed for %s: %s", filename, exc)
            if isinstance(exc.cause, ParseError):
                return _error(400, "Could not extract any text from the PDF.")
            return _error(500, "AI extraction failed")
        return metadata.model_dump(mode="json", by_alias=True, exclude_none=True)

    @app.post("/api/analyze")
    def analyze(request: AnalyzeRequest):
        """Analyze a paper's title and abstract."""
        if not request.abstract or not request.abstract.strip():
            return _error(400, "Abstract is required for analysis.")
        try:
            result = get_provider().analyze(request.title or "", request.abstract)
        except LLMError as exc:
            logger.error("AI analysis failed: %s", exc)
            return _error(500, "AI analysis failed")
        return result.model_dump(mode="json", by_alias=True)

    @app.post("/api/graph")
    def graph(request: GraphRequest):
        """Relation graph over the posted papers, in the posted order."""
        result = build_graph(request.papers)
        if isinstance(result, InsufficientData):
            return {"status": "insufficient_data", "message": result.message}
        return {
            "status": "ok",
            "graph": result.model_dump(mode="json", by_alias=True),
        }

    @app.post("/api/citation")
    def citation(
        paper: Paper,
        fmt: Literal["bibtex", "ris"] = Query("bibtex", alias="format"),
    ):
        """Citation text for one paper, served as a file download."""
        filename = export_filename(paper, fmt)
        return PlainTextResponse(
            format_citation(paper, fmt),
            headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}"},
        )

    return app
