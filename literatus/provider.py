"""The AI capability the rest of the application depends on.

``AnalysisProvider`` names the two things Literatus asks of an AI service:
turn PDF text into bibliographic metadata, and analyze a paper's title and
abstract.  Pipeline, batch import and the HTTP backend receive a provider
instead of building one, so the vendor's request and response shapes stay
inside ``LLMAnalysisProvider`` (and tests can pass a stub).
"""

import logging
from typing import Protocol

from pydantic import ValidationError

from literatus.llm import ChatClient, call_llm, create_client
from literatus.models import AnalysisResult, Config, ExtractedMetadata, LLMError
from literatus.prompts import (
    SYSTEM_PROMPT,
    build_analysis_prompt,
    build_extraction_prompt,
)

logger = logging.getLogger(__name__)


class AnalysisProvider(Protocol):
    """Extract-metadata and analyze-text capability."""

    def extract_metadata(self, text: str) -> ExtractedMetadata: ...

    def analyze(self, title: str, abstract: str) -> AnalysisResult: ...


class LLMAnalysisProvider:
    """``AnalysisProvider`` backed by an OpenAI-compatible chat endpoint.

    Args:
        client: Chat client used for both calls.
        config: Supplies the per-call model names and the text limit.
    """

    def __init__(self, client: ChatClient, config: Config) -> None:
        self.client = client
        self.config = config

    @classmethod
    def from_config(cls, config: Config) -> "LLMAnalysisProvider":
        return cls(create_client(config), config)

    def extract_metadata(self, text: str) -> ExtractedMetadata:
        """Ask the extraction model for title, authors, year and friends.

        Raises:
            LLMError: on call failure, unparseable JSON, or a reply whose
                fields have the wrong shape.
        """
        prompt = build_extraction_prompt(text, self.config.max_chars)
        logger.debug("Extraction prompt: %s chars", f"{len(prompt):,}")
        raw = call_llm(
            self.client, prompt, model=self.config.extract_model, system=SYSTEM_PROMPT
        )
        return _validate(ExtractedMetadata, raw, "extraction")

    def analyze(self, title: str, abstract: str) -> AnalysisResult:
        """Ask the analysis model for key findings, a score, gaps and keywords.

        Raises:
            LLMError: on call failure, unparseable JSON, or a reply whose
                fields have the wrong shape.
        """
        prompt = build_analysis_prompt(title, abstract)
        raw = call_llm(
            self.client, prompt, model=self.config.analyze_model, system=SYSTEM_PROMPT
        )
        return _validate(AnalysisResult, raw, "analysis")


def _validate(model_cls, raw: dict, what: str):
    try:
        return model_cls.model_validate(raw)
    except ValidationError as exc:
        raise LLMError(f"Unexpected {what} response shape: {exc}") from exc
