"""
Task model and expansion.

A Task is one (provider, model, prompt) unit of work. The scheduler owns the
mutable Task objects; everything outside the scheduler only ever sees frozen
TaskSnapshot copies.

Lifecycle:

    pending ──> running ──> extracting ──> done
       │           │             │
       └───────────┴─────────────┴──────> failed

"done" and "failed" are terminal. pending -> failed only happens when a run
is cancelled before the task was dispatched.

The judge step inside "extracting" has its own judge_status so a slow or
failing judge is visible in progress snapshots.
"""

import enum
from dataclasses import dataclass, field

from llm_visibility.config.constants import PROVIDER_DISPLAY_NAMES
from llm_visibility.config.schema import AnalysisConfig
from llm_visibility.exceptions import InvalidTaskTransitionError
from llm_visibility.extractor.analyzer import StructuredExtraction
from llm_visibility.utils.time import utc_timestamp


class TaskStatus(str, enum.Enum):
    """Lifecycle state of a task."""

    PENDING = "pending"
    RUNNING = "running"
    EXTRACTING = "extracting"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.DONE, TaskStatus.FAILED)


class JudgeStatus(str, enum.Enum):
    """State of a task's nested judge step."""

    NOT_REQUIRED = "not_required"
    PENDING = "pending"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"


ALLOWED_TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.PENDING: frozenset([TaskStatus.RUNNING, TaskStatus.FAILED]),
    TaskStatus.RUNNING: frozenset([TaskStatus.EXTRACTING, TaskStatus.FAILED]),
    TaskStatus.EXTRACTING: frozenset([TaskStatus.DONE, TaskStatus.FAILED]),
    TaskStatus.DONE: frozenset(),
    TaskStatus.FAILED: frozenset(),
}


@dataclass(frozen=True)
class TaskSnapshot:
    """
    Immutable view of a task at one point in time.

    Delivered to progress callbacks; safe to keep after the run ends.
    """

    task_id: str
    sequence: int
    provider: str
    model_name: str
    prompt: str
    prompt_index: int
    label: str
    status: TaskStatus
    judge_status: JudgeStatus
    attempts: int
    raw_answer: str | None
    citations: tuple[str, ...]
    extraction: StructuredExtraction | None
    error: str | None
    error_type: str | None
    started_at: str | None
    finished_at: str | None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


@dataclass
class Task:
    """
    Mutable task record owned by the scheduler.

    Attributes:
        task_id: "{provider}:{model_name}:{prompt_index}"
        sequence: Position in expansion order (0-based)
        provider: Provider id
        model_name: Model id
        prompt: Prompt text
        prompt_index: Index of the prompt in the config (0-based)
        label: Human-readable description for progress displays
        status: Current lifecycle state
        judge_status: State of the nested judge step
        attempts: Adapter attempts made for the primary prompt
        raw_answer: Provider answer once received
        citations: Provider citations once received
        extraction: Structured extraction once done
        error: Failure message (failed tasks only)
        error_type: Failure category (failed tasks only)
        started_at: UTC timestamp of dispatch
        finished_at: UTC timestamp of reaching a terminal state
    """

    task_id: str
    sequence: int
    provider: str
    model_name: str
    prompt: str
    prompt_index: int
    label: str
    status: TaskStatus = TaskStatus.PENDING
    judge_status: JudgeStatus = JudgeStatus.NOT_REQUIRED
    attempts: int = 0
    raw_answer: str | None = None
    citations: list[str] = field(default_factory=list)
    extraction: StructuredExtraction | None = None
    error: str | None = None
    error_type: str | None = None
    started_at: str | None = None
    finished_at: str | None = None

    def transition(self, new_status: TaskStatus) -> None:
        """
        Move the task to `new_status`.

        Raises:
            InvalidTaskTransitionError: If the lifecycle forbids the move
        """
        if new_status not in ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTaskTransitionError(
                f"Task {self.task_id}: cannot move from "
                f"{self.status.value} to {new_status.value}"
            )

        self.status = new_status
        if new_status == TaskStatus.RUNNING:
            self.started_at = utc_timestamp()
        elif new_status.is_terminal:
            self.finished_at = utc_timestamp()

    def fail(self, error: str, error_type: str) -> None:
        """Mark the task failed with an error message and category."""
        self.transition(TaskStatus.FAILED)
        self.error = error
        self.error_type = error_type

    def snapshot(self) -> TaskSnapshot:
        return TaskSnapshot(
            task_id=self.task_id,
            sequence=self.sequence,
            provider=self.provider,
            model_name=self.model_name,
            prompt=self.prompt,
            prompt_index=self.prompt_index,
            label=self.label,
            status=self.status,
            judge_status=self.judge_status,
            attempts=self.attempts,
            raw_answer=self.raw_answer,
            citations=tuple(self.citations),
            extraction=self.extraction,
            error=self.error,
            error_type=self.error_type,
            started_at=self.started_at,
            finished_at=self.finished_at,
        )


def task_label(provider: str, model_name: str, prompt_index: int, prompt_count: int) -> str:
    """
    Example:
        >>> task_label("gemini", "gemini-2.5-flash", 0, 3)
        'Google Gemini · gemini-2.5-flash · prompt 1/3'
    """
    display = PROVIDER_DISPLAY_NAMES.get(provider, provider)
    return f"{display} · {model_name} · prompt {prompt_index + 1}/{prompt_count}"


def expand_tasks(config: AnalysisConfig) -> list[Task]:
    """
    Expand a config into tasks: providers, then each provider's models, then prompts.

    The order is deterministic: identical configs yield identical task ids
    in identical order.

    Example:
        >>> config = AnalysisConfig(
        ...     client_name="Acme", competitors=["Foo"], prompts=["p1", "p2"],
        ...     providers=["openai", "gemini"],
        ...     models={"gemini": "gemini-2.5-flash", "openai": "gpt-4o-mini"},
        ... )
        >>> [t.task_id for t in expand_tasks(config)]
        ['openai:gpt-4o-mini:0', 'openai:gpt-4o-mini:1', 'gemini:gemini-2.5-flash:0', 'gemini:gemini-2.5-flash:1']
    """
    tasks = []
    prompt_count = len(config.prompts)
    for provider in config.providers:
        for model_name in config.models_for(provider):
            for prompt_index, prompt in enumerate(config.prompts):
                tasks.append(
                    Task(
                        task_id=f"{provider}:{model_name}:{prompt_index}",
                        sequence=len(tasks),
                        provider=provider,
                        model_name=model_name,
                        prompt=prompt,
                        prompt_index=prompt_index,
                        label=task_label(provider, model_name, prompt_index, prompt_count),
                    )
                )
    return tasks


def dedupe_competitors(client_name: str, competitors: list[str]) -> list[str]:
    """
    Remove case-insensitive duplicates (first spelling wins) and the client itself.

    Example:
        >>> dedupe_competitors("Acme", ["Foo", "foo", "ACME", "Bar"])
        ['Foo', 'Bar']
    """
    seen = {client_name.strip().lower()}
    result = []
    for name in competitors:
        key = name.strip().lower()
        if key and key not in seen:
            seen.add(key)
            result.append(name.strip())
    return result
