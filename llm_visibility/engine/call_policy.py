"""
Timeout and retry policy for adapter calls.

Adapters make a single request and never retry; CallPolicy wraps every
adapter call made by the scheduler (primary prompts and judge calls alike)
with:

- a hard deadline (asyncio.wait_for) that raises AdapterTimeoutError
- tenacity exponential backoff, retrying only AdapterErrors flagged
  retryable (429, 5xx, timeouts, connection failures)

Authentication failures, bad requests and malformed payloads fail on the
first attempt.

Example:
    >>> policy = CallPolicy(timeout=30.0, max_attempts=3)
    >>> response, attempts = await policy.call_with_attempts(adapter, "Best widget?")
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from llm_visibility.config.schema import RunSettings
from llm_visibility.exceptions import AdapterError, AdapterTimeoutError
from llm_visibility.providers.models import ProviderAdapter, ProviderResponse

logger = logging.getLogger(__name__)


def is_retryable(exc: BaseException) -> bool:
    """True for AdapterErrors a retry may fix."""
    return isinstance(exc, AdapterError) and exc.retryable


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        f"Retrying adapter call (attempt {retry_state.attempt_number} failed): {exc}"
    )


class CallPolicy:
    """
    Deadline plus retry wrapper for ProviderAdapter.complete().

    Attributes:
        timeout: Seconds allowed per attempt
        max_attempts: Attempts including the first
        min_wait: Lower bound of the backoff in seconds
        max_wait: Upper bound of the backoff in seconds
    """

    def __init__(
        self,
        timeout: float = 60.0,
        max_attempts: int = 3,
        min_wait: float = 1.0,
        max_wait: float = 20.0,
    ):
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.min_wait = min_wait
        self.max_wait = max_wait

    @classmethod
    def from_settings(cls, settings: RunSettings) -> "CallPolicy":
        return cls(
            timeout=settings.request_timeout_seconds,
            max_attempts=settings.retry_max_attempts,
            min_wait=settings.retry_min_wait_seconds,
            max_wait=settings.retry_max_wait_seconds,
        )

    async def _attempt(
        self, adapter: ProviderAdapter, prompt: str, kwargs: dict[str, Any]
    ) -> ProviderResponse:
        try:
            return await asyncio.wait_for(
                adapter.complete(prompt, **kwargs), timeout=self.timeout
            )
        except TimeoutError as e:
            raise AdapterTimeoutError(
                f"{adapter.provider} call exceeded {self.timeout}s "
                f"(model={adapter.model_name})",
                adapter.provider,
            ) from e

    async def call_with_attempts(
        self,
        adapter: ProviderAdapter,
        prompt: str,
        on_attempt: Callable[[int], None] | None = None,
        **kwargs: Any,
    ) -> tuple[ProviderResponse, int]:
        """
        Call the adapter under this policy.

        Args:
            adapter: Adapter to call
            prompt: Prompt passed to adapter.complete()
            on_attempt: Called with the attempt number before each attempt
            **kwargs: Passed through to adapter.complete()

        Returns:
            tuple: (response, number of attempts made)

        Raises:
            AdapterError: The last error once attempts are exhausted, or the
                first non-retryable one
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=1, min=self.min_wait, max=self.max_wait),
            retry=retry_if_exception(is_retryable),
            before_sleep=_log_retry,
            reraise=True,
        )
        attempts = 0
        async for attempt in retrying:
            with attempt:
                attempts = attempt.retry_state.attempt_number
                if on_attempt:
                    on_attempt(attempts)
                response = await self._attempt(adapter, prompt, kwargs)
        return response, attempts

    async def __call__(
        self, adapter: ProviderAdapter, prompt: str, **kwargs: Any
    ) -> ProviderResponse:
        """Call the adapter and return only the response (used by the judge)."""
        response, _ = await self.call_with_attempts(adapter, prompt, **kwargs)
        return response
