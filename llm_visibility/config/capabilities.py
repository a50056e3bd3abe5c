"""
Model parameter support per provider.

Reasoning models (OpenAI o-series and gpt-5, also when deployed on Azure
behind the copilot provider) reject a custom `temperature` with a 400. The
adapters ask supports_temperature() before putting it in a payload, so the
judge's temperature 0 and `answer_temperature` are dropped for those models
instead of failing every call.

Example:
    >>> supports_temperature("openai", "o3-mini")
    False
    >>> supports_temperature("openai", "gpt-4o-mini")
    True
"""

import logging
from functools import lru_cache

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

_REASONING_PREFIXES = ["o1", "o3", "o4", "gpt-5"]


class TemperatureCapabilities(BaseModel):
    """Models that only accept the provider's default temperature."""

    unsupported_prefixes: list[str] = Field(default_factory=list)
    unsupported_exact: list[str] = Field(default_factory=list)


class ProviderCapabilities(BaseModel):
    temperature: TemperatureCapabilities = Field(default_factory=TemperatureCapabilities)


class ModelCapabilities(BaseModel):
    """
    Parameter support for every provider.

    Attributes:
        providers: Provider id -> capabilities; providers not listed support
            every parameter
    """

    providers: dict[str, ProviderCapabilities] = Field(default_factory=dict)

    def supports_temperature(self, provider: str, model_name: str) -> bool:
        """Whether `model_name` accepts a custom temperature (case-insensitive)."""
        caps = self.providers.get(provider)
        if caps is None:
            return True

        name = model_name.strip().lower()
        if name in (m.lower() for m in caps.temperature.unsupported_exact):
            return False
        return not any(
            name.startswith(prefix.lower())
            for prefix in caps.temperature.unsupported_prefixes
        )


@lru_cache(maxsize=1)
def get_model_capabilities() -> ModelCapabilities:
    """Built-in capabilities, shared by every adapter."""
    reasoning = ProviderCapabilities(
        temperature=TemperatureCapabilities(unsupported_prefixes=_REASONING_PREFIXES)
    )
    return ModelCapabilities(providers={"openai": reasoning, "copilot": reasoning})


def supports_temperature(provider: str, model_name: str) -> bool:
    supported = get_model_capabilities().supports_temperature(provider, model_name)
    if not supported:
        logger.debug(
            f"Model {provider}/{model_name} uses its default temperature "
            "(custom temperature not supported)"
        )
    return supported
