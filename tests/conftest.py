"""Shared pytest fixtures for the literatus test suite."""

import json
import logging

import pytest

from literatus.library import Library
from literatus.models import AnalysisResult, ExtractedMetadata, Paper
from literatus.samples import sample_papers


# ---------------------------------------------------------------------------
# Logger isolation
# ---------------------------------------------------------------------------


def _clear_handlers() -> None:
    for name in ("literatus", "uvicorn"):
        logger = logging.getLogger(name)
        for h in logger.handlers[:]:
            h.close()
            logger.removeHandler(h)
        logger.propagate = True
        logger.setLevel(logging.NOTSET)


@pytest.fixture(autouse=True)
def _reset_literatus_logger():
    """Clear the literatus and uvicorn loggers between tests.

    Tests that call ``main()`` trigger ``setup_logging()``, which attaches
    handlers and sets ``propagate=False``.  Without this fixture the state
    leaks into subsequent tests and breaks ``caplog`` capture.
    """
    _clear_handlers()
    yield
    _clear_handlers()


# ---------------------------------------------------------------------------
# Papers
# ---------------------------------------------------------------------------


def make_paper(paper_id: int = 1, **fields) -> Paper:
    """Build a Paper with only the fields a test cares about."""
    return Paper(id=paper_id, **fields)


@pytest.fixture
def papers() -> list[Paper]:
    """The three bundled sample papers."""
    return sample_papers()


@pytest.fixture
def library(papers) -> Library:
    return Library(papers)


# ---------------------------------------------------------------------------
# Mock LLM responses (JSON the AI backend would return)
# ---------------------------------------------------------------------------

MOCK_EXTRACTION_DICT = {
    "title": "Spiking Neural Networks for Continuous Control",
    "authors": ["Huebotter, J.", "Straube, S."],
    "year": 2025,
    "journal": "Neural Computation",
    "abstract": "An end-to-end model-based learning approach for robot control.",
    "methodology": ["Surrogate Gradients", "Model-Based RL"],
}

MOCK_ANALYSIS_DICT = {
    "keyFindings": [
        "Attention improves classification accuracy",
        "ResNet backbone generalizes across sites",
        "Imaging alone suffices for triage",
    ],
    "relevanceScore": 82,
    "gaps": ["No external validation cohort", "Class imbalance not addressed"],
    "keywords": ["ResNet", "attention", "rheumatology", "imaging", "triage"],
}


@pytest.fixture
def mock_extraction_dict() -> dict:
    return json.loads(json.dumps(MOCK_EXTRACTION_DICT))


@pytest.fixture
def mock_analysis_dict() -> dict:
    return json.loads(json.dumps(MOCK_ANALYSIS_DICT))


# ---------------------------------------------------------------------------
# Stub AnalysisProvider
# ---------------------------------------------------------------------------


class StubProvider:
    """AnalysisProvider returning canned results and recording its calls.

    Pass an exception instance as ``extract_error`` or ``analyze_error`` to
    make the corresponding call fail.
    """

    def __init__(self, extract_error=None, analyze_error=None):
        self.extract_error = extract_error
        self.analyze_error = analyze_error
        self.extract_calls: list[str] = []
        self.analyze_calls: list[tuple[str, str]] = []

    def extract_metadata(self, text: str) -> ExtractedMetadata:
        self.extract_calls.append(text)
        if self.extract_error is not None:
            raise self.extract_error
        return ExtractedMetadata.model_validate(MOCK_EXTRACTION_DICT)

    def analyze(self, title: str, abstract: str) -> AnalysisResult:
        self.analyze_calls.append((title, abstract))
        if self.analyze_error is not None:
            raise self.analyze_error
        return AnalysisResult.model_validate(MOCK_ANALYSIS_DICT)


@pytest.fixture
def provider() -> StubProvider:
    return StubProvider()
