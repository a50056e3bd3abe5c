"""Tests for engine.aggregator module."""

from llm_visibility.engine.aggregator import aggregate_results, summarize_visibility
from llm_visibility.engine.tasks import Task, TaskStatus
from llm_visibility.extractor.analyzer import StructuredExtraction


def extraction(mentioned=True, rank=1, competitors=("Foo",)) -> StructuredExtraction:
    return StructuredExtraction(
        brand_mentioned=mentioned,
        brand_mention_count=1 if mentioned else 0,
        brand_rank=rank,
        ranking=(),
        rank_method="mention_order",
        rank_confidence=0.5,
        competitors_mentioned=competitors,
        sentiment="neutral" if mentioned else "not_mentioned",
        sentiment_source="lexicon",
    )


def make_task(sequence, provider="gemini", status=TaskStatus.DONE, **extraction_args):
    task = Task(
        task_id=f"{provider}:m:{sequence}",
        sequence=sequence,
        provider=provider,
        model_name="m",
        prompt=f"p{sequence}",
        prompt_index=sequence,
        label="label",
    )
    if status == TaskStatus.FAILED:
        task.fail("boom", "server")
        return task
    task.transition(TaskStatus.RUNNING)
    task.raw_answer = "answer"
    task.attempts = 1
    task.transition(TaskStatus.EXTRACTING)
    task.extraction = extraction(**extraction_args)
    task.transition(TaskStatus.DONE)
    return task


class TestAggregateResults:
    """Test suite for aggregate_results()."""

    def test_only_done_tasks_in_sequence_order(self):
        tasks = [
            make_task(2).snapshot(),
            make_task(0).snapshot(),
            make_task(1, status=TaskStatus.FAILED).snapshot(),
        ]

        results = aggregate_results(tasks)

        assert [r.sequence for r in results] == [0, 2]
        assert results[0].timestamp_utc == tasks[1].finished_at

    def test_empty(self):
        assert aggregate_results(()) == []

    def test_to_dict(self):
        result = aggregate_results([make_task(0).snapshot()])[0]

        data = result.to_dict()

        assert data["provider"] == "gemini"
        assert data["extraction"]["brand_rank"] == 1


class TestSummarizeVisibility:
    """Test suite for summarize_visibility()."""

    def test_per_provider_rollup(self):
        snapshots = [
            make_task(0, "openai", rank=1, competitors=("Foo", "Bar")).snapshot(),
            make_task(1, "openai", mentioned=False, rank=None, competitors=("Foo",)).snapshot(),
            make_task(2, "openai", status=TaskStatus.FAILED).snapshot(),
            make_task(3, "gemini", rank=3).snapshot(),
        ]
        results = aggregate_results(snapshots)

        summary = summarize_visibility(results, snapshots)

        assert [s.provider for s in summary] == ["openai", "gemini"]
        openai = summary[0]
        assert openai.total_tasks == 3
        assert openai.done == 2
        assert openai.failed == 1
        assert openai.brand_mentions == 1
        assert openai.mention_rate == 0.5
        assert openai.average_rank == 1.0
        assert openai.competitor_mention_counts == {"Foo": 2, "Bar": 1}
        assert summary[1].average_rank == 3.0

    def test_provider_with_only_failures(self):
        snapshots = [make_task(0, status=TaskStatus.FAILED).snapshot()]

        summary = summarize_visibility([], snapshots)

        assert summary[0].mention_rate == 0.0
        assert summary[0].average_rank is None
