"""
Tests for engine.call_policy module.

Tests cover:
- Retrying only retryable AdapterErrors
- Attempt counting and the on_attempt hook
- Giving up after max_attempts with the last error
- Per-attempt deadline mapped to AdapterTimeoutError
- Building the policy from RunSettings
"""

import pytest

from llm_visibility.config.schema import RunSettings
from llm_visibility.engine.call_policy import CallPolicy, is_retryable
from llm_visibility.exceptions import (
    AdapterAuthenticationError,
    AdapterResponseError,
    AdapterServerError,
    AdapterTimeoutError,
    ExtractionError,
)
from llm_visibility.providers.mock_adapter import MockAdapter


def fast_policy(**overrides) -> CallPolicy:
    options = {"timeout": 1.0, "max_attempts": 3, "min_wait": 0.0, "max_wait": 0.0}
    options.update(overrides)
    return CallPolicy(**options)


class TestIsRetryable:
    """Test suite for is_retryable()."""

    def test_retryable_adapter_errors(self):
        assert is_retryable(AdapterServerError("x", "gemini", 500))
        assert is_retryable(AdapterTimeoutError("x", "gemini"))

    def test_non_retryable_adapter_errors(self):
        assert not is_retryable(AdapterAuthenticationError("x", "gemini", 401))
        assert not is_retryable(AdapterResponseError("x", "gemini"))

    def test_other_exceptions(self):
        assert not is_retryable(ExtractionError("x"))
        assert not is_retryable(RuntimeError("x"))


class TestCallWithAttempts:
    """Test suite for CallPolicy.call_with_attempts()."""

    @pytest.mark.asyncio
    async def test_first_attempt_success(self):
        adapter = MockAdapter(default_response="ok")

        response, attempts = await fast_policy().call_with_attempts(adapter, "p")

        assert response.text == "ok"
        assert attempts == 1

    @pytest.mark.asyncio
    async def test_retries_transient_error(self):
        adapter = MockAdapter(
            default_response="ok",
            error=AdapterServerError("503", "gemini", 503),
            fail_times=2,
        )
        seen = []

        response, attempts = await fast_policy().call_with_attempts(
            adapter, "p", on_attempt=seen.append
        )

        assert response.text == "ok"
        assert attempts == 3
        assert seen == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self):
        adapter = MockAdapter(error=AdapterServerError("503", "gemini", 503))

        with pytest.raises(AdapterServerError):
            await fast_policy(max_attempts=2).call_with_attempts(adapter, "p")

        assert len(adapter.calls) == 2

    @pytest.mark.asyncio
    async def test_non_retryable_fails_immediately(self):
        adapter = MockAdapter(error=AdapterAuthenticationError("401", "gemini", 401))

        with pytest.raises(AdapterAuthenticationError):
            await fast_policy(max_attempts=5).call_with_attempts(adapter, "p")

        assert len(adapter.calls) == 1

    @pytest.mark.asyncio
    async def test_deadline_raises_timeout_and_retries(self):
        adapter = MockAdapter(delay=0.5)

        with pytest.raises(AdapterTimeoutError, match="exceeded"):
            await fast_policy(timeout=0.01, max_attempts=2).call_with_attempts(adapter, "p")

        assert len(adapter.calls) == 2

    @pytest.mark.asyncio
    async def test_kwargs_passed_to_adapter(self):
        received = {}

        class RecordingAdapter(MockAdapter):
            async def complete(self, prompt, *, temperature=None, system_prompt=None):
                received.update(temperature=temperature, system_prompt=system_prompt)
                return await super().complete(prompt)

        await fast_policy()(RecordingAdapter(), "p", temperature=0.0, system_prompt="judge")

        assert received == {"temperature": 0.0, "system_prompt": "judge"}


class TestFromSettings:
    """Test suite for CallPolicy.from_settings()."""

    def test_from_settings(self):
        settings = RunSettings(
            request_timeout_seconds=12.5,
            retry_max_attempts=4,
            retry_min_wait_seconds=0.5,
            retry_max_wait_seconds=3.0,
        )

        policy = CallPolicy.from_settings(settings)

        assert policy.timeout == 12.5
        assert policy.max_attempts == 4
        assert policy.min_wait == 0.5
        assert policy.max_wait == 3.0
