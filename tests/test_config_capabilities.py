"""Tests for config.capabilities module."""

import pytest

from llm_visibility.config.capabilities import (
    ModelCapabilities,
    ProviderCapabilities,
    TemperatureCapabilities,
    get_model_capabilities,
    supports_temperature,
)


class TestSupportsTemperature:
    @pytest.mark.parametrize(
        "provider, model_name, expected",
        [
            ("openai", "gpt-4o-mini", True),
            ("openai", "o3-mini", False),
            ("openai", "o1", False),
            ("openai", "O4-mini", False),
            ("openai", "gpt-5-nano", False),
            ("copilot", "gpt-5", False),
            ("copilot", "gpt-4o", True),
            ("gemini", "gemini-2.5-flash", True),
            ("perplexity", "sonar", True),
        ],
    )
    def test_builtin(self, provider, model_name, expected):
        assert supports_temperature(provider, model_name) is expected

    def test_exact_names(self):
        caps = ModelCapabilities(
            providers={
                "openai": ProviderCapabilities(
                    temperature=TemperatureCapabilities(unsupported_exact=["special-model"])
                )
            }
        )

        assert caps.supports_temperature("openai", "special-model") is False
        assert caps.supports_temperature("openai", "special-model-2") is True
        assert caps.supports_temperature("unknown", "special-model") is True

    def test_cached(self):
        assert get_model_capabilities() is get_model_capabilities()
