"""
LLM Visibility Engine.

Measures how a client brand shows up in answers from Gemini, OpenAI,
Perplexity and Microsoft Copilot: mentions, ranking, sentiment and
competitor co-mentions, for a set of buyer-intent prompts.

Example:
    >>> from llm_visibility import run_analysis
    >>> results = await run_analysis(config, credentials, on_progress=print)
"""

from llm_visibility.config.schema import AnalysisConfig, Credentials, RunSettings
from llm_visibility.engine import AnalysisResult, TaskScheduler, TaskSnapshot, run_analysis

__version__ = "0.1.0"

__all__ = [
    "AnalysisConfig",
    "AnalysisResult",
    "Credentials",
    "RunSettings",
    "TaskScheduler",
    "TaskSnapshot",
    "__version__",
    "run_analysis",
]
