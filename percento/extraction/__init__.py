"""
Percento extraction module.

Turns free-text word problems into validated calculations via an LLM.
"""

from percento.extraction.extractor import (
    AIAnalysis,
    WordProblemExtractor,
    build_prompt,
    extract_from_text,
    parse_analysis,
)

__all__ = [
    "AIAnalysis",
    "WordProblemExtractor",
    "build_prompt",
    "extract_from_text",
    "parse_analysis",
]
