"""
Run orchestration: task expansion, concurrent scheduling, retries,
progress delivery and result aggregation.

Public entry points are run_analysis() and TaskScheduler.
"""

from llm_visibility.engine.aggregator import (
    AnalysisResult,
    ProviderVisibility,
    aggregate_results,
    summarize_visibility,
)
from llm_visibility.engine.scheduler import TaskScheduler, run_analysis
from llm_visibility.engine.tasks import JudgeStatus, TaskSnapshot, TaskStatus

__all__ = [
    "AnalysisResult",
    "JudgeStatus",
    "ProviderVisibility",
    "TaskScheduler",
    "TaskSnapshot",
    "TaskStatus",
    "aggregate_results",
    "run_analysis",
    "summarize_visibility",
]
