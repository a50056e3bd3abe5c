"""
Chaos adapter for resilience testing.

ChaosAdapter wraps another ProviderAdapter and randomly raises the
AdapterError a real vendor would, so retry and failure-isolation behavior can
be exercised without a network.

Example:
    >>> chaos = create_chaos_adapter(MockAdapter(), failure_rate=0.3, seed=42)
    >>> try:
    ...     response = await chaos.complete("Best widget?")
    ... except AdapterError as e:
    ...     print(f"Chaos injected: {e}")
"""

import logging
import random
from dataclasses import dataclass, field

from llm_visibility.exceptions import (
    AdapterAuthenticationError,
    AdapterRateLimitError,
    AdapterServerError,
    AdapterTimeoutError,
)
from llm_visibility.providers.models import ProviderAdapter, ProviderResponse

logger = logging.getLogger(__name__)


@dataclass
class ChaosAdapter:
    """
    Adapter wrapper that injects failures with fixed probabilities.

    Attributes:
        base_adapter: The adapter called on success
        success_rate: Probability of passing the call through (0.0 to 1.0)
        rate_limit_prob: Weight of 429s (retryable) among failures
        server_error_prob: Weight of 500/502/503s (retryable)
        timeout_prob: Weight of timeouts (retryable)
        auth_error_prob: Weight of 401s (not retryable)

    A call fails with probability 1 - success_rate; the failure kind is then
    drawn in proportion to the four weights.
        seed: Seed for a reproducible failure sequence
    """

    base_adapter: ProviderAdapter
    success_rate: float = 0.7
    rate_limit_prob: float = 0.1
    server_error_prob: float = 0.1
    timeout_prob: float = 0.05
    auth_error_prob: float = 0.05
    seed: int | None = None
    _random: random.Random = field(init=False, repr=False)
    _total_error_prob: float = field(init=False, repr=False)

    def __post_init__(self):
        if not 0.0 <= self.success_rate <= 1.0:
            raise ValueError(
                f"success_rate must be between 0.0 and 1.0, got {self.success_rate}"
            )

        total_error_prob = (
            self.rate_limit_prob
            + self.server_error_prob
            + self.timeout_prob
            + self.auth_error_prob
        )
        if total_error_prob > 1.0:
            raise ValueError(
                f"Sum of error probabilities ({total_error_prob}) cannot exceed 1.0"
            )
        if total_error_prob <= 0.0 and self.success_rate < 1.0:
            raise ValueError(
                "At least one error probability must be positive when success_rate < 1.0"
            )

        self._total_error_prob = total_error_prob
        self._random = random.Random(self.seed)
        logger.info(
            f"ChaosAdapter configured: success_rate={self.success_rate}, "
            f"rate_limit={self.rate_limit_prob}, server_error={self.server_error_prob}, "
            f"timeout={self.timeout_prob}, auth_error={self.auth_error_prob}, "
            f"seed={self.seed}"
        )

    @property
    def provider(self) -> str:
        return self.base_adapter.provider

    @property
    def model_name(self) -> str:
        return self.base_adapter.model_name

    async def complete(
        self,
        prompt: str,
        *,
        temperature: float | None = None,
        system_prompt: str | None = None,
    ) -> ProviderResponse:
        """Pass through to the base adapter or raise an injected AdapterError."""
        if self._random.random() < self.success_rate:
            return await self.base_adapter.complete(
                prompt, temperature=temperature, system_prompt=system_prompt
            )

        provider = self.provider
        failure_roll = self._random.random() * self._total_error_prob
        cumulative_prob = 0.0

        cumulative_prob += self.rate_limit_prob
        if failure_roll < cumulative_prob:
            logger.warning("ChaosAdapter: injecting 429 rate limit")
            raise AdapterRateLimitError("Chaos injection: 429 Too Many Requests", provider, 429)

        cumulative_prob += self.server_error_prob
        if failure_roll < cumulative_prob:
            status = self._random.choice([500, 502, 503])
            logger.warning(f"ChaosAdapter: injecting {status} server error")
            raise AdapterServerError(f"Chaos injection: {status} server error", provider, status)

        cumulative_prob += self.timeout_prob
        if failure_roll < cumulative_prob:
            logger.warning("ChaosAdapter: injecting timeout")
            raise AdapterTimeoutError("Chaos injection: request timed out", provider)

        cumulative_prob += self.auth_error_prob
        if failure_roll < cumulative_prob:
            logger.warning("ChaosAdapter: injecting 401 unauthorized")
            raise AdapterAuthenticationError("Chaos injection: 401 Unauthorized", provider, 401)

        # floating point remainder
        return await self.base_adapter.complete(
            prompt, temperature=temperature, system_prompt=system_prompt
        )


def create_chaos_adapter(
    base_adapter: ProviderAdapter,
    failure_rate: float = 0.3,
    seed: int | None = None,
) -> ChaosAdapter:
    """
    Build a ChaosAdapter failing `failure_rate` of calls, split evenly over the
    four error kinds.

    Raises:
        ValueError: If failure_rate is outside 0.0 to 1.0
    """
    if not 0.0 <= failure_rate <= 1.0:
        raise ValueError(f"failure_rate must be between 0.0 and 1.0, got {failure_rate}")

    error_prob = failure_rate / 4.0
    return ChaosAdapter(
        base_adapter=base_adapter,
        success_rate=1.0 - failure_rate,
        rate_limit_prob=error_prob,
        server_error_prob=error_prob,
        timeout_prob=error_prob,
        auth_error_prob=error_prob,
        seed=seed,
    )
