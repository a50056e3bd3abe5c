"""
Pre-run validation of run inputs.

validate_run_inputs() performs every semantic check that must pass before a
single adapter is built, so an invalid run fails fast with a
ConfigurationError and no network traffic.
"""

from llm_visibility.config.constants import PROVIDER_DISPLAY_NAMES
from llm_visibility.config.schema import AnalysisConfig, Credentials, RunSettings
from llm_visibility.exceptions import ConfigValidationError, CredentialMissingError


def validate_run_inputs(
    config: AnalysisConfig, credentials: Credentials, settings: RunSettings
) -> None:
    """
    Check that a run can start.

    Checks:
        - client_name, competitors, prompts and providers are non-empty
        - every selected provider has at least one model
        - follow-up questions are not combined with the "pattern" method
        - every selected provider (and the dedicated judge, if any) has
          credentials

    Raises:
        ConfigValidationError: On missing inputs or incompatible settings
        CredentialMissingError: On missing credentials

    Example:
        >>> validate_run_inputs(
        ...     AnalysisConfig(client_name="Acme", competitors=["Foo"],
        ...                    prompts=["Best widget?"], providers=["openai"]),
        ...     Credentials(openai="sk-..."),
        ...     RunSettings(),
        ... )
        Traceback (most recent call last):
        ...
        ConfigValidationError: Provider 'openai' is selected but has no model
    """
    if not config.client_name:
        raise ConfigValidationError("client_name cannot be empty")

    if not config.competitors:
        raise ConfigValidationError("At least one competitor is required")

    if not config.prompts:
        raise ConfigValidationError("At least one prompt is required")

    if not config.providers:
        raise ConfigValidationError("At least one provider must be selected")

    for provider in config.providers:
        if not config.models_for(provider):
            raise ConfigValidationError(
                f"Provider '{provider}' is selected but has no model"
            )

    if config.follow_up_questions and settings.extraction_method == "pattern":
        raise ConfigValidationError(
            "Follow-up questions need a judge; use extraction_method "
            "'hybrid' or 'judge' instead of 'pattern'"
        )

    for provider in config.providers:
        if not credentials.has_credentials(provider):
            raise CredentialMissingError(_missing_credentials_message(provider))

    if settings.judge is not None and settings.extraction_method != "pattern":
        if not credentials.has_credentials(settings.judge.provider):
            raise CredentialMissingError(
                _missing_credentials_message(settings.judge.provider) + " (judge)"
            )


def _missing_credentials_message(provider: str) -> str:
    display = PROVIDER_DISPLAY_NAMES.get(provider, provider)
    if provider == "copilot":
        return f"{display} requires both an API key and an endpoint"
    return f"No API key configured for provider '{provider}' ({display})"
