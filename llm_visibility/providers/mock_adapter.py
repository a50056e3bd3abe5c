"""
Mock provider adapter for tests and offline runs.

MockAdapter returns canned answers without any network traffic, can simulate
latency and failures, and records every prompt it receives.

Example:
    >>> adapter = MockAdapter(
    ...     responses={"Best widget?": "Acme and Foo are top widgets."},
    ...     delay=0.05,
    ... )
    >>> response = await adapter.complete("Best widget?")
    >>> response.text
    'Acme and Foo are top widgets.'
    >>> adapter.calls
    ['Best widget?']
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from llm_visibility.providers.models import ProviderResponse
from llm_visibility.utils.time import utc_timestamp

logger = logging.getLogger(__name__)


@dataclass
class MockAdapter:
    """
    Deterministic in-memory ProviderAdapter.

    Attributes:
        provider: Provider id reported on responses
        model_name: Model id reported on responses
        responses: Exact prompt -> answer mapping
        default_response: Answer for prompts not in `responses`
        respond: Optional callable computing the answer from the prompt;
            takes precedence over `responses`
        citations: Citations attached to every response
        delay: Seconds to sleep before answering
        error: Exception raised on every call instead of answering
        fail_times: Raise `error` only for the first N calls (None = always)
        calls: Prompts received, in call order
    """

    provider: str = "gemini"
    model_name: str = "mock-model"
    responses: dict[str, str] = field(default_factory=dict)
    default_response: str = "This is a mock response from the test adapter."
    respond: Callable[[str], str] | None = None
    citations: list[str] = field(default_factory=list)
    delay: float = 0.0
    error: Exception | None = None
    fail_times: int | None = None
    calls: list[str] = field(default_factory=list)

    async def complete(
        self,
        prompt: str,
        *,
        temperature: float | None = None,
        system_prompt: str | None = None,
    ) -> ProviderResponse:
        """Return the canned answer for `prompt`, or raise the configured error."""
        self.calls.append(prompt)
        call_number = len(self.calls)

        if self.delay:
            await asyncio.sleep(self.delay)

        if self.error is not None and (
            self.fail_times is None or call_number <= self.fail_times
        ):
            logger.debug(f"MockAdapter raising {type(self.error).__name__} on call {call_number}")
            raise self.error

        if self.respond is not None:
            text = self.respond(prompt)
        else:
            text = self.responses.get(prompt, self.default_response)

        return ProviderResponse(
            text=text,
            provider=self.provider,
            model_name=self.model_name,
            timestamp_utc=utc_timestamp(),
            citations=list(self.citations),
        )
