"""
literatus — research literature catalogue with AI-assisted import and analysis.

Keeps an in-memory collection of papers, relates them through lexical
similarity and shared authorship, exports citations, and proxies PDF text to
an OpenAI-compatible LLM for metadata extraction and summaries.
"""

__version__ = "0.1.0"
