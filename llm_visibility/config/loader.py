"""
Configuration loader for the visibility engine.

Loads visibility.config.yaml, validates it with the Pydantic schema and
resolves provider credentials from environment variables, so secrets never
live in the config file itself.

Functions:
    load_config: Main entrypoint, returns a RuntimeConfig
    resolve_credentials: Read the selected providers' credentials from the environment
    format_validation_error: Turn a pydantic ValidationError into readable lines
"""

import logging
import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from llm_visibility.config.constants import default_models_for
from llm_visibility.config.schema import (
    AnalysisConfig,
    CredentialEnv,
    Credentials,
    RuntimeConfig,
    VisibilityConfigFile,
)
from llm_visibility.exceptions import (
    ConfigFileNotFoundError,
    ConfigValidationError,
    CredentialMissingError,
)

logger = logging.getLogger(__name__)

# Credential fields each provider needs
_PROVIDER_CREDENTIAL_FIELDS: dict[str, tuple[str, ...]] = {
    "gemini": ("gemini",),
    "openai": ("openai",),
    "perplexity": ("perplexity",),
    "copilot": ("copilot_key", "copilot_endpoint"),
}


def format_validation_error(error: ValidationError, source: str) -> str:
    """
    Format a pydantic ValidationError as one "loc: msg" line per problem.

    Example:
        >>> format_validation_error(e, "visibility.config.yaml")
        'Configuration validation failed in visibility.config.yaml:\\n  - analysis.providers.0: ...'
    """
    error_messages = []
    for detail in error.errors():
        loc = ".".join(str(x) for x in detail["loc"])
        error_messages.append(f"  - {loc}: {detail['msg']}")

    return f"Configuration validation failed in {source}:\n" + "\n".join(
        error_messages
    )


def load_config(config_path: str | Path, resolve_secrets: bool = True) -> RuntimeConfig:
    """
    Load visibility.config.yaml and resolve credentials from the environment.

    Only the credentials of the selected providers are required; the other
    environment variables may be unset.

    Args:
        config_path: Path to the YAML file
        resolve_secrets: Read credentials from the environment. When False
            the returned credentials are empty (used by `run --mock`).

    Returns:
        RuntimeConfig with analysis, settings and resolved credentials

    Raises:
        ConfigFileNotFoundError: If the file does not exist
        ConfigValidationError: If the YAML is invalid, empty or fails validation
        CredentialMissingError: If a selected provider's variable is unset

    Example:
        >>> runtime = load_config("examples/visibility.config.yaml")
        >>> runtime.analysis.client_name
        'Acme'

    Security:
        - Uses yaml.safe_load()
        - Credential values are never logged
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise ConfigFileNotFoundError(f"Configuration file not found: {config_path}")

    try:
        with config_path.open(encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigValidationError(f"Invalid YAML syntax in {config_path}: {e}") from e
    except OSError as e:
        raise ConfigValidationError(
            f"Failed to read configuration file {config_path}: {e}"
        ) from e

    if raw_config is None:
        raise ConfigValidationError(f"Configuration file is empty: {config_path}")

    try:
        config_file = VisibilityConfigFile.model_validate(raw_config)
    except ValidationError as e:
        raise ConfigValidationError(
            format_validation_error(e, str(config_path))
        ) from e

    analysis = config_file.analysis
    if config_file.use_default_models:
        analysis = apply_default_models(analysis)

    credentials = Credentials()
    if resolve_secrets:
        providers = list(analysis.providers)
        judge = config_file.run_settings.judge
        if judge is not None and judge.provider not in providers:
            providers.append(judge.provider)
        credentials = resolve_credentials(providers, config_file.credentials)

    logger.info(
        f"Loaded config {config_path}: {len(analysis.prompts)} prompts, "
        f"{len(analysis.providers)} providers, "
        f"{len(analysis.competitors)} competitors"
    )

    return RuntimeConfig(
        analysis=analysis,
        settings=config_file.run_settings,
        credentials=credentials,
    )


def apply_default_models(analysis: AnalysisConfig) -> AnalysisConfig:
    """
    Fill in the default model for every selected provider that lists none.

    Providers that already have models are left untouched.
    """
    missing = [p for p in analysis.providers if not analysis.models_for(p)]
    if not missing:
        return analysis

    models = dict(analysis.models)
    models.update(default_models_for(missing))
    logger.info(f"Using default models for: {', '.join(missing)}")
    return analysis.model_copy(update={"models": models})


def resolve_credentials(
    providers: list[str], env_names: CredentialEnv | None = None
) -> Credentials:
    """
    Read credentials for the selected providers from environment variables.

    Args:
        providers: Selected provider ids
        env_names: Variable names per credential field (defaults if None)

    Returns:
        Credentials holding only the selected providers' values

    Raises:
        CredentialMissingError: If any required variable is unset or blank

    Example:
        >>> os.environ["GEMINI_API_KEY"] = "AIza..."
        >>> resolve_credentials(["gemini"]).has_credentials("gemini")
        True
    """
    env_names = env_names or CredentialEnv()
    values: dict[str, str] = {}

    for provider in providers:
        for field in _PROVIDER_CREDENTIAL_FIELDS[provider]:
            env_var = getattr(env_names, field)
            value = os.environ.get(env_var)
            if not value or value.isspace():
                raise CredentialMissingError(
                    f"Environment variable {env_var} is not set "
                    f"(required for provider '{provider}')"
                )
            values[field] = value

    return Credentials(**values)
