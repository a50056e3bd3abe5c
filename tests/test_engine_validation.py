"""Tests for engine.validation module."""

import pytest

from llm_visibility.config.schema import (
    AnalysisConfig,
    Credentials,
    JudgeSettings,
    RunSettings,
)
from llm_visibility.engine.validation import validate_run_inputs
from llm_visibility.exceptions import ConfigValidationError, CredentialMissingError


def make_config(**overrides) -> AnalysisConfig:
    values = {
        "client_name": "Acme",
        "competitors": ["Foo", "Bar"],
        "prompts": ["Best widget?"],
        "providers": ["gemini"],
        "models": {"gemini": "gemini-2.5-flash"},
    }
    values.update(overrides)
    return AnalysisConfig(**values)


CREDENTIALS = Credentials(gemini="AIza-test")


class TestValidateRunInputs:
    """Test suite for validate_run_inputs()."""

    def test_valid(self):
        validate_run_inputs(make_config(), CREDENTIALS, RunSettings())

    @pytest.mark.parametrize(
        "overrides, message",
        [
            ({"client_name": "  "}, "client_name"),
            ({"competitors": []}, "competitor"),
            ({"prompts": ["", "  "]}, "prompt"),
            ({"providers": []}, "provider"),
        ],
    )
    def test_missing_inputs(self, overrides, message):
        with pytest.raises(ConfigValidationError, match=message):
            validate_run_inputs(make_config(**overrides), CREDENTIALS, RunSettings())

    def test_provider_without_model(self):
        config = make_config(providers=["gemini", "openai"])

        with pytest.raises(ConfigValidationError, match="'openai' is selected but has no model"):
            validate_run_inputs(
                config, Credentials(gemini="k", openai="k"), RunSettings()
            )

    def test_follow_ups_with_pattern_rejected(self):
        config = make_config(follow_up_questions=["Is Acme cheap?"])

        with pytest.raises(ConfigValidationError, match="Follow-up questions need a judge"):
            validate_run_inputs(
                config, CREDENTIALS, RunSettings(extraction_method="pattern")
            )

    def test_missing_credentials(self):
        with pytest.raises(CredentialMissingError, match="gemini"):
            validate_run_inputs(make_config(), Credentials(), RunSettings())

    def test_copilot_needs_endpoint(self):
        config = make_config(providers=["copilot"], models={"copilot": "gpt-4o"})

        with pytest.raises(CredentialMissingError, match="endpoint"):
            validate_run_inputs(config, Credentials(copilot_key="k"), RunSettings())

    def test_judge_credentials_required(self):
        settings = RunSettings(
            judge=JudgeSettings(provider="openai", model_name="gpt-4o-mini")
        )

        with pytest.raises(CredentialMissingError, match="judge"):
            validate_run_inputs(make_config(), CREDENTIALS, settings)

    def test_judge_credentials_ignored_for_pattern(self):
        settings = RunSettings(
            extraction_method="pattern",
            judge=JudgeSettings(provider="openai", model_name="gpt-4o-mini"),
        )

        validate_run_inputs(make_config(), CREDENTIALS, settings)
