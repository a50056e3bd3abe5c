"""
Structured extraction of visibility signals from raw answers.

Public entry point is ExtractionAnalyzer; the submodules hold the
deterministic matchers (mentions, ranking, sentiment) and the judge.
"""

from llm_visibility.extractor.analyzer import (
    EXTRACTION_METHODS,
    ExtractionAnalyzer,
    FollowUpAnswer,
    StructuredExtraction,
)
from llm_visibility.extractor.judge import Judge, JudgeVerdict
from llm_visibility.extractor.rank_extractor import RankedBrand, Ranking

__all__ = [
    "EXTRACTION_METHODS",
    "ExtractionAnalyzer",
    "FollowUpAnswer",
    "Judge",
    "JudgeVerdict",
    "RankedBrand",
    "Ranking",
    "StructuredExtraction",
]
