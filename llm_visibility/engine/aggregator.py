"""
Result aggregation.

aggregate_results() turns the final task snapshots into the run's result
collection: one AnalysisResult per task that reached "done", ordered by
expansion sequence regardless of completion order. Failed tasks are not part
of the collection; their errors stay on the task snapshots.

summarize_visibility() rolls results up per provider for dashboards and the
CLI summary table.
"""

from collections import Counter
from dataclasses import asdict, dataclass, field
from typing import Any

from llm_visibility.engine.tasks import TaskSnapshot, TaskStatus
from llm_visibility.extractor.analyzer import StructuredExtraction


@dataclass(frozen=True)
class AnalysisResult:
    """
    Result of one successfully completed task.

    Attributes:
        sequence: Position in expansion order
        provider: Provider id
        model_name: Model id
        prompt: Prompt text
        prompt_index: Index of the prompt in the config
        raw_answer: The provider's answer text
        citations: Source URLs reported by the provider
        extraction: Structured visibility signals
        attempts: Adapter attempts needed for the primary prompt
        timestamp_utc: When the task finished
    """

    sequence: int
    provider: str
    model_name: str
    prompt: str
    prompt_index: int
    raw_answer: str
    citations: tuple[str, ...]
    extraction: StructuredExtraction
    attempts: int
    timestamp_utc: str

    def to_dict(self) -> dict[str, Any]:
        """JSON-serializable representation."""
        return asdict(self)


@dataclass(frozen=True)
class ProviderVisibility:
    """
    Per-provider roll-up of a run.

    Attributes:
        provider: Provider id
        total_tasks: Tasks expanded for this provider
        done: Tasks that produced a result
        failed: Tasks that failed (including cancelled ones)
        brand_mentions: Results mentioning the client brand
        mention_rate: brand_mentions / done (0.0 when nothing finished)
        average_rank: Mean client rank over results where it was ranked
        competitor_mention_counts: Results mentioning each competitor
    """

    provider: str
    total_tasks: int
    done: int
    failed: int
    brand_mentions: int
    mention_rate: float
    average_rank: float | None
    competitor_mention_counts: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def aggregate_results(tasks: tuple[TaskSnapshot, ...] | list[TaskSnapshot]) -> list[AnalysisResult]:
    """
    Collect results of every "done" task, ordered by sequence.

    Example:
        >>> results = aggregate_results(scheduler.snapshot())
        >>> len(results) == sum(t.status == TaskStatus.DONE for t in scheduler.snapshot())
        True
    """
    results = []
    for task in sorted(tasks, key=lambda t: t.sequence):
        if task.status != TaskStatus.DONE:
            continue
        # a done task always carries its answer and extraction
        results.append(
            AnalysisResult(
                sequence=task.sequence,
                provider=task.provider,
                model_name=task.model_name,
                prompt=task.prompt,
                prompt_index=task.prompt_index,
                raw_answer=task.raw_answer or "",
                citations=task.citations,
                extraction=task.extraction,
                attempts=task.attempts,
                timestamp_utc=task.finished_at or "",
            )
        )
    return results


def summarize_visibility(
    results: list[AnalysisResult],
    tasks: tuple[TaskSnapshot, ...] | list[TaskSnapshot],
) -> list[ProviderVisibility]:
    """
    Roll results and task outcomes up per provider, in first-seen provider order.

    Example:
        >>> summary = summarize_visibility(results, scheduler.snapshot())
        >>> summary[0].provider, summary[0].mention_rate
        ('gemini', 1.0)
    """
    providers = list(dict.fromkeys(task.provider for task in sorted(tasks, key=lambda t: t.sequence)))
    summaries = []

    for provider in providers:
        provider_tasks = [t for t in tasks if t.provider == provider]
        provider_results = [r for r in results if r.provider == provider]

        mentions = sum(1 for r in provider_results if r.extraction.brand_mentioned)
        ranks = [
            r.extraction.brand_rank
            for r in provider_results
            if r.extraction.brand_rank is not None
        ]
        competitor_counts = Counter(
            name for r in provider_results for name in r.extraction.competitors_mentioned
        )

        summaries.append(
            ProviderVisibility(
                provider=provider,
                total_tasks=len(provider_tasks),
                done=len(provider_results),
                failed=sum(1 for t in provider_tasks if t.status == TaskStatus.FAILED),
                brand_mentions=mentions,
                mention_rate=mentions / len(provider_results) if provider_results else 0.0,
                average_rank=sum(ranks) / len(ranks) if ranks else None,
                competitor_mention_counts=dict(competitor_counts),
            )
        )

    return summaries
