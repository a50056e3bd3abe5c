"""
Concurrent task scheduler.

TaskScheduler turns one AnalysisConfig into (provider, model, prompt) tasks
and runs them concurrently, bounded by a run-wide semaphore and optional
per-provider semaphores. Each task:

1. waits for its provider slot, then a global slot
2. calls its adapter through CallPolicy (deadline + tenacity retries)
3. extracts visibility signals with its ExtractionAnalyzer (judge included)
4. ends "done" or "failed"

A failing task never affects its siblings. Every state change is published
as a full snapshot through a ProgressChannel, so observers see a consistent
view of the run without holding references to mutable tasks.

Only ConfigurationError escapes run(); it is raised before any adapter is
called.

Example:
    >>> scheduler = TaskScheduler(config, credentials, settings, on_progress=print)
    >>> results = await scheduler.run()
    >>> [r.provider for r in results]
    ['gemini', 'gemini', 'openai']
"""

import asyncio
import contextlib
import logging
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ValidationError

from llm_visibility.config.loader import format_validation_error
from llm_visibility.config.schema import AnalysisConfig, Credentials, RunSettings
from llm_visibility.engine.aggregator import AnalysisResult, aggregate_results
from llm_visibility.engine.call_policy import CallPolicy
from llm_visibility.engine.progress import ProgressCallback, ProgressChannel
from llm_visibility.engine.tasks import (
    JudgeStatus,
    Task,
    TaskSnapshot,
    TaskStatus,
    dedupe_competitors,
    expand_tasks,
)
from llm_visibility.engine.validation import validate_run_inputs
from llm_visibility.exceptions import AdapterError, ConfigValidationError, ExtractionError
from llm_visibility.extractor.analyzer import ExtractionAnalyzer
from llm_visibility.extractor.judge import Judge
from llm_visibility.providers.models import ProviderAdapter
from llm_visibility.providers.registry import build_adapter
from llm_visibility.utils.logging import log_with_context
from llm_visibility.utils.time import run_id_from_timestamp

logger = logging.getLogger(__name__)

AdapterFactory = Callable[..., ProviderAdapter]

_JUDGE_STATES = {
    "running": JudgeStatus.RUNNING,
    "done": JudgeStatus.DONE,
    "failed": JudgeStatus.FAILED,
}


class TaskScheduler:
    """
    Runs every task of one analysis and collects the results.

    A scheduler is single-use: run() may be called once.

    Attributes:
        config: What to measure
        credentials: Provider credentials
        settings: Concurrency, retry and extraction settings
        run_id: Identifier attached to every log record of this run
        competitors: Competitors after case-insensitive de-duplication
        policy: Timeout/retry policy applied to every adapter call
    """

    def __init__(
        self,
        config: AnalysisConfig,
        credentials: Credentials,
        settings: RunSettings | None = None,
        on_progress: ProgressCallback | None = None,
        adapter_factory: AdapterFactory = build_adapter,
        run_id: str | None = None,
    ):
        self.config = config
        self.credentials = credentials
        self.settings = settings or RunSettings()
        self.run_id = run_id or run_id_from_timestamp()
        self.competitors = dedupe_competitors(config.client_name, config.competitors)
        if any(
            name.strip().lower() == config.client_name.lower() for name in config.competitors
        ):
            logger.warning(
                f"Client brand '{config.client_name}' is also listed as a competitor; "
                "ignoring the competitor entry"
            )
        self.policy = CallPolicy.from_settings(self.settings)

        self._adapter_factory = adapter_factory
        self._channel = ProgressChannel()
        self._tasks: list[Task] = []
        self._cancelled = False
        self._started = False

        if on_progress is not None:
            self._channel.subscribe(on_progress)

    def subscribe(self, callback: ProgressCallback) -> None:
        """Register an additional progress observer."""
        self._channel.subscribe(callback)

    def snapshot(self) -> tuple[TaskSnapshot, ...]:
        """Current state of every task, in expansion order."""
        return tuple(task.snapshot() for task in self._tasks)

    def cancel(self) -> None:
        """
        Stop dispatching new tasks.

        Tasks still pending fail with error_type "cancelled"; tasks already
        in flight run to completion. Safe to call before or during run().
        """
        self._cancelled = True
        cancelled = 0
        for task in self._tasks:
            if task.status == TaskStatus.PENDING:
                task.fail("Run cancelled before the task was dispatched", "cancelled")
                cancelled += 1

        if cancelled:
            log_with_context(
                logger,
                logging.INFO,
                f"Run cancelled: {cancelled} pending task(s) will not be dispatched",
                context={"cancelled": cancelled},
                run_id=self.run_id,
            )
            self._publish()

    async def run(self, cancel_event: asyncio.Event | None = None) -> list[AnalysisResult]:
        """
        Execute every task and return the results of the successful ones.

        Args:
            cancel_event: Optional event; setting it has the same effect as
                calling cancel()

        Returns:
            list[AnalysisResult]: One result per "done" task, in expansion order

        Raises:
            ConfigurationError: If the inputs are invalid (no adapter is called)
            RuntimeError: If run() was already called on this scheduler
        """
        if self._started:
            raise RuntimeError("TaskScheduler.run() can only be called once")
        self._started = True

        validate_run_inputs(self.config, self.credentials, self.settings)
        self._tasks = expand_tasks(self.config)
        adapters = self._build_adapters()
        analyzers = self._build_analyzers(adapters)

        global_slots = asyncio.Semaphore(self.settings.max_concurrency)
        provider_slots = {
            provider: asyncio.Semaphore(limit)
            for provider, limit in self.settings.provider_concurrency.items()
        }

        log_with_context(
            logger,
            logging.INFO,
            f"Starting run {self.run_id}: {len(self._tasks)} task(s), "
            f"max_concurrency={self.settings.max_concurrency}, "
            f"extraction_method={self.settings.extraction_method}",
            context={
                "tasks": len(self._tasks),
                "providers": list(self.config.providers),
                "prompts": len(self.config.prompts),
            },
            run_id=self.run_id,
        )

        self._channel.start()
        self._publish()

        watcher = None
        if cancel_event is not None:
            watcher = asyncio.create_task(self._watch_cancel(cancel_event))

        try:
            if self._cancelled:
                self.cancel()

            outcomes = await asyncio.gather(
                *(
                    self._run_task(
                        task,
                        adapters[(task.provider, task.model_name)],
                        analyzers[(task.provider, task.model_name)],
                        global_slots,
                        provider_slots.get(task.provider),
                    )
                    for task in self._tasks
                ),
                return_exceptions=True,
            )
            for task, outcome in zip(self._tasks, outcomes):
                if isinstance(outcome, BaseException) and not task.status.is_terminal:
                    logger.error(f"Task {task.task_id} crashed: {outcome!r}")
                    task.fail(f"Unexpected error: {outcome}", "unexpected")
                    self._publish()
        finally:
            if watcher is not None:
                watcher.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await watcher
            await self._channel.close()

        snapshot = self.snapshot()
        results = aggregate_results(snapshot)
        failed = sum(1 for t in snapshot if t.status == TaskStatus.FAILED)

        log_with_context(
            logger,
            logging.INFO,
            f"Run {self.run_id} complete: {len(results)}/{len(snapshot)} task(s) done, "
            f"{failed} failed",
            context={"done": len(results), "failed": failed, "total": len(snapshot)},
            run_id=self.run_id,
        )
        return results

    def _build_adapters(self) -> dict[tuple[str, str], ProviderAdapter]:
        """One adapter per (provider, model) pair."""
        adapters = {}
        for task in self._tasks:
            key = (task.provider, task.model_name)
            if key not in adapters:
                adapters[key] = self._make_adapter(*key)
        return adapters

    def _make_adapter(self, provider: str, model_name: str) -> ProviderAdapter:
        try:
            return self._adapter_factory(
                provider,
                model_name,
                self.credentials.for_provider(provider),
                system_prompt=self.settings.system_prompt,
                timeout=self.settings.request_timeout_seconds,
                web_search=self.settings.web_search,
            )
        except ValueError as e:
            raise ConfigValidationError(
                f"Cannot create adapter for {provider}/{model_name}: {e}"
            ) from e

    def _build_analyzers(
        self, adapters: dict[tuple[str, str], ProviderAdapter]
    ) -> dict[tuple[str, str], ExtractionAnalyzer]:
        """One analyzer per (provider, model); the judge is shared when dedicated."""
        method = self.settings.extraction_method
        threshold = self.settings.fuzzy_threshold

        shared_judge = None
        if method != "pattern" and self.settings.judge is not None:
            judge_adapter = self._make_adapter(
                self.settings.judge.provider, self.settings.judge.model_name
            )
            shared_judge = Judge(judge_adapter, call=self.policy)

        analyzers = {}
        for key, adapter in adapters.items():
            if method == "pattern":
                judge = None
            else:
                judge = shared_judge or Judge(adapter, call=self.policy)
            analyzers[key] = ExtractionAnalyzer(
                method=method, judge=judge, fuzzy_threshold=threshold
            )
        return analyzers

    async def _watch_cancel(self, cancel_event: asyncio.Event) -> None:
        await cancel_event.wait()
        self.cancel()

    async def _run_task(
        self,
        task: Task,
        adapter: ProviderAdapter,
        analyzer: ExtractionAnalyzer,
        global_slots: asyncio.Semaphore,
        provider_slots: asyncio.Semaphore | None,
    ) -> None:
        """Run one task to a terminal state. Never raises for adapter or extraction errors."""
        async with contextlib.AsyncExitStack() as stack:
            if provider_slots is not None:
                await stack.enter_async_context(provider_slots)
            await stack.enter_async_context(global_slots)

            # cancelled while waiting for a slot
            if task.status != TaskStatus.PENDING:
                return

            self._move(task, TaskStatus.RUNNING)

            def record_attempt(attempt: int) -> None:
                task.attempts = attempt
                if attempt > 1:
                    self._publish()

            try:
                response, _ = await self.policy.call_with_attempts(
                    adapter,
                    task.prompt,
                    on_attempt=record_attempt,
                    temperature=self.settings.answer_temperature,
                )
            except AdapterError as e:
                self._fail(task, str(e), e.error_type)
                return
            except Exception as e:
                logger.exception(f"Unexpected error in task {task.task_id}")
                self._fail(task, f"Unexpected error: {e}", "unexpected")
                return

            task.raw_answer = response.text
            task.citations = list(response.citations)
            if analyzer.needs_judge(self.config.follow_up_questions):
                task.judge_status = JudgeStatus.PENDING
            self._move(task, TaskStatus.EXTRACTING)

            def record_judge_state(state: str, error: str | None) -> None:
                task.judge_status = _JUDGE_STATES[state]
                if error:
                    logger.warning(f"Judge for task {task.task_id} failed: {error}")
                self._publish()

            try:
                task.extraction = await analyzer.extract(
                    response.text,
                    self.config.client_name,
                    self.competitors,
                    self.config.follow_up_questions,
                    on_judge_state=record_judge_state,
                )
            except ExtractionError as e:
                self._fail(task, str(e), e.error_type)
                return
            except Exception as e:
                logger.exception(f"Unexpected extraction error in task {task.task_id}")
                self._fail(task, f"Unexpected error: {e}", "unexpected")
                return

            self._move(task, TaskStatus.DONE)

    def _move(self, task: Task, status: TaskStatus) -> None:
        task.transition(status)
        logger.debug(f"Task {task.task_id} -> {status.value}")
        self._publish()

    def _fail(self, task: Task, error: str, error_type: str) -> None:
        task.fail(error, error_type)
        log_with_context(
            logger,
            logging.WARNING,
            f"Task {task.task_id} failed ({error_type}): {error}",
            context={"error_type": error_type},
            run_id=self.run_id,
            task_id=task.task_id,
        )
        self._publish()

    def _publish(self) -> None:
        self._channel.publish(self.snapshot())


def _coerce(model: type[BaseModel], value: Any, name: str) -> Any:
    if value is None or isinstance(value, model):
        return value
    try:
        return model.model_validate(value)
    except ValidationError as e:
        raise ConfigValidationError(format_validation_error(e, name)) from e


async def run_analysis(
    config: AnalysisConfig | dict,
    credentials: Credentials | dict,
    on_progress: ProgressCallback | None = None,
    settings: RunSettings | dict | None = None,
    *,
    adapter_factory: AdapterFactory = build_adapter,
    cancel_event: asyncio.Event | None = None,
) -> list[AnalysisResult]:
    """
    Run one visibility analysis end to end.

    This is the engine's public entry point. Plain dicts are accepted for
    config, credentials and settings and validated with the same models the
    YAML loader uses.

    Args:
        config: Client, competitors, prompts, providers and models
        credentials: Provider API keys (and Copilot endpoint)
        on_progress: Called with a tuple of TaskSnapshot after every change
        settings: Optional RunSettings (defaults apply when omitted)
        adapter_factory: Adapter constructor (override for tests or mocks)
        cancel_event: Set it to stop dispatching new tasks

    Returns:
        list[AnalysisResult]: Results of successful tasks in expansion order

    Raises:
        ConfigurationError: If the inputs are invalid

    Example:
        >>> results = await run_analysis(
        ...     {"client_name": "Acme", "competitors": ["Foo", "Bar"],
        ...      "prompts": ["Best widget tools?"], "providers": ["openai"],
        ...      "models": {"openai": "gpt-4o-mini"}},
        ...     {"openai": os.environ["OPENAI_API_KEY"]},
        ... )
        >>> results[0].extraction.brand_rank
        1
    """
    scheduler = TaskScheduler(
        _coerce(AnalysisConfig, config, "analysis config"),
        _coerce(Credentials, credentials, "credentials"),
        _coerce(RunSettings, settings, "run settings"),
        on_progress=on_progress,
        adapter_factory=adapter_factory,
    )
    return await scheduler.run(cancel_event=cancel_event)
