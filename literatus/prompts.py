"""Prompt builders for the two AI backend calls.

Each call is stateless: the prompt carries everything the model needs and
asks for a single JSON object back.  ``SYSTEM_PROMPT`` is sent as the system
message of both calls.
"""

SYSTEM_PROMPT = "You are a research assistant and JSON extractor. Return ONLY valid JSON."


def build_extraction_prompt(paper_text: str, max_chars: int = 4_000) -> str:
    """Prompt asking for bibliographic metadata from the start of a paper.

    Args:
        paper_text: Text extracted from the PDF.
        max_chars:  Only this many leading characters are included; the
                    title page carries everything the extraction needs.
    """
    snippet = paper_text[:max_chars]
    return f"""\
Extract the following JSON from the provided paper text. Return ONLY the JSON object, nothing else.
Fields required:
- title (string)
- authors (array of strings, format as "Last, F.")
- year (integer)
- journal (string)
- abstract (string, summary of the first 200 words)
- methodology (array of strings, identifying up to 5 key methods)
- keywords (array of strings, up to 5 specific terms)

Paper text snippet (first {len(snippet)} chars):

{snippet}"""


def build_analysis_prompt(title: str, abstract: str) -> str:
    """Prompt asking for a critical summary of one paper."""
    return f"""\
You are an expert academic research assistant. Analyze the following paper abstract and title.

Title: {title}
Abstract: {abstract}

Based on this information, provide a critical summary in a single JSON object with the following strict structure:
1. "keyFindings": Array of 3 highly specific strings summarizing the main contributions.
2. "relevanceScore": Integer between 0 and 100 representing perceived scientific rigor/impact.
3. "gaps": Array of 2 critical research gaps or limitations not addressed by the abstract.
4. "keywords": Array of 5 specific terms for semantic search linking (e.g., ["XGBoost", "RA", "Genomics"]).

Return JSON only (no markdown fences, no prose, no comments)."""
