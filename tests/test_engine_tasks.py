"""
Tests for engine.tasks module.

Tests cover:
- Deterministic task expansion order and ids
- Lifecycle transitions and timestamps
- Immutable snapshots
- Competitor de-duplication
"""

import pytest
from freezegun import freeze_time

from llm_visibility.config.schema import AnalysisConfig
from llm_visibility.engine.tasks import (
    JudgeStatus,
    Task,
    TaskStatus,
    dedupe_competitors,
    expand_tasks,
    task_label,
)
from llm_visibility.exceptions import InvalidTaskTransitionError


@pytest.fixture
def config():
    return AnalysisConfig(
        client_name="Acme",
        competitors=["Foo", "Bar"],
        prompts=["Best widget?", "Cheapest widget?"],
        providers=["openai", "gemini"],
        models={"gemini": "gemini-2.5-flash", "openai": ["gpt-4o-mini", "gpt-4o"]},
    )


def make_task() -> Task:
    return Task(
        task_id="gemini:gemini-2.5-flash:0",
        sequence=0,
        provider="gemini",
        model_name="gemini-2.5-flash",
        prompt="Best widget?",
        prompt_index=0,
        label="label",
    )


class TestExpandTasks:
    """Test suite for expand_tasks()."""

    def test_order_is_providers_models_prompts(self, config):
        tasks = expand_tasks(config)

        assert [t.task_id for t in tasks] == [
            "openai:gpt-4o-mini:0",
            "openai:gpt-4o-mini:1",
            "openai:gpt-4o:0",
            "openai:gpt-4o:1",
            "gemini:gemini-2.5-flash:0",
            "gemini:gemini-2.5-flash:1",
        ]
        assert [t.sequence for t in tasks] == list(range(6))
        assert all(t.status == TaskStatus.PENDING for t in tasks)

    def test_deterministic(self, config):
        first = [t.task_id for t in expand_tasks(config)]
        second = [t.task_id for t in expand_tasks(config)]

        assert first == second

    def test_count_is_models_times_prompts(self, config):
        assert len(expand_tasks(config)) == 3 * 2

    def test_label(self):
        assert task_label("openai", "gpt-4o", 1, 3) == "OpenAI · gpt-4o · prompt 2/3"


class TestTaskLifecycle:
    """Test suite for Task.transition() and Task.fail()."""

    @freeze_time("2025-11-01 08:30:00")
    def test_happy_path_sets_timestamps(self):
        task = make_task()

        task.transition(TaskStatus.RUNNING)
        task.transition(TaskStatus.EXTRACTING)
        task.transition(TaskStatus.DONE)

        assert task.status == TaskStatus.DONE
        assert task.started_at == "2025-11-01T08:30:00Z"
        assert task.finished_at == "2025-11-01T08:30:00Z"

    def test_fail_from_running(self):
        task = make_task()
        task.transition(TaskStatus.RUNNING)

        task.fail("boom", "server")

        assert task.status == TaskStatus.FAILED
        assert task.error == "boom"
        assert task.error_type == "server"
        assert task.finished_at is not None

    def test_pending_can_fail(self):
        task = make_task()

        task.fail("cancelled", "cancelled")

        assert task.status.is_terminal

    @pytest.mark.parametrize(
        "path",
        [
            [TaskStatus.EXTRACTING],
            [TaskStatus.DONE],
            [TaskStatus.RUNNING, TaskStatus.DONE],
            [TaskStatus.RUNNING, TaskStatus.RUNNING],
        ],
    )
    def test_invalid_transitions(self, path):
        task = make_task()

        with pytest.raises(InvalidTaskTransitionError):
            for status in path:
                task.transition(status)

    def test_terminal_states_are_final(self):
        task = make_task()
        task.fail("x", "cancelled")

        with pytest.raises(InvalidTaskTransitionError):
            task.transition(TaskStatus.RUNNING)


class TestSnapshot:
    """Test suite for Task.snapshot()."""

    def test_snapshot_is_independent_copy(self):
        task = make_task()
        task.citations.append("https://a.example")

        snapshot = task.snapshot()
        task.citations.append("https://b.example")
        task.transition(TaskStatus.RUNNING)

        assert snapshot.citations == ("https://a.example",)
        assert snapshot.status == TaskStatus.PENDING
        assert snapshot.judge_status == JudgeStatus.NOT_REQUIRED

    def test_snapshot_is_frozen(self):
        snapshot = make_task().snapshot()

        with pytest.raises(AttributeError):
            snapshot.status = TaskStatus.DONE


class TestDedupeCompetitors:
    def test_case_insensitive_first_spelling_wins(self):
        assert dedupe_competitors("Acme", ["Foo", "foo", "Bar", "FOO"]) == ["Foo", "Bar"]

    def test_client_removed(self):
        assert dedupe_competitors("Acme", ["acme", "Foo"]) == ["Foo"]

    def test_blank_removed(self):
        assert dedupe_competitors("Acme", [" ", "Foo "]) == ["Foo"]
