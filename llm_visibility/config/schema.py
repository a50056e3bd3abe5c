"""
Configuration schema models for the visibility engine.

Pydantic v2 models for the inputs of a run and for the
visibility.config.yaml file the CLI reads.

Parsing is deliberately lenient about *completeness*: entries are stripped,
blank lines dropped and duplicates collapsed, but an AnalysisConfig with no
prompts or a provider without a model still parses. Those semantic checks
live in engine.validation.validate_run_inputs() so run_analysis() can reject
them with a ConfigurationError before any adapter is built.

Models:
    AnalysisConfig: What to measure (client, competitors, prompts, providers, models)
    Credentials: Per-provider API keys (and the Copilot endpoint)
    ProviderCredentials: The credential pair handed to a single adapter
    JudgeSettings: Which provider/model acts as the extraction judge
    RunSettings: How to run (concurrency, timeouts, retries, extraction method)
    CredentialEnv: Environment variable names for each credential field
    VisibilityConfigFile: Root model of the YAML file
    RuntimeConfig: Loaded config with credentials resolved from the environment
"""

from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from llm_visibility.config.constants import (
    DEFAULT_CREDENTIAL_ENV,
    DEFAULT_SYSTEM_PROMPT,
    MAX_PROMPT_LENGTH,
    Provider,
)

ExtractionMethod = Literal["pattern", "judge", "hybrid"]


def _clean_lines(values: list[str]) -> list[str]:
    """Strip entries and drop blank ones, keeping input order."""
    return [value.strip() for value in values if value and value.strip()]


class AnalysisConfig(BaseModel):
    """
    What a run measures.

    Attributes:
        client_name: The brand whose visibility is measured
        competitors: Competitor brand names (order preserved)
        prompts: Questions sent verbatim to every selected model
        follow_up_questions: Questions the judge answers about each raw answer
        providers: Selected provider ids, in selection order
        models: Model ids per provider. A bare string is accepted for a
            single model.

    Example:
        >>> AnalysisConfig(
        ...     client_name="Acme",
        ...     competitors=["Foo", "Bar"],
        ...     prompts=["Best widget?"],
        ...     providers=["gemini"],
        ...     models={"gemini": "gemini-2.5-flash"},
        ... )
    """

    model_config = ConfigDict(frozen=True)

    client_name: str
    competitors: list[str] = Field(default_factory=list)
    prompts: list[str] = Field(default_factory=list)
    follow_up_questions: list[str] = Field(default_factory=list)
    providers: list[Provider] = Field(default_factory=list)
    models: dict[Provider, list[str]] = Field(default_factory=dict)

    @field_validator("client_name")
    @classmethod
    def strip_client_name(cls, v: str) -> str:
        return v.strip()

    @field_validator("competitors", "prompts", "follow_up_questions")
    @classmethod
    def drop_blank_entries(cls, v: list[str]) -> list[str]:
        return _clean_lines(v)

    @field_validator("prompts")
    @classmethod
    def validate_prompt_length(cls, v: list[str]) -> list[str]:
        """Reject prompts that would exceed MAX_PROMPT_LENGTH characters."""
        for index, prompt in enumerate(v, start=1):
            if len(prompt) > MAX_PROMPT_LENGTH:
                raise ValueError(
                    f"Prompt {index} exceeds maximum length of "
                    f"{MAX_PROMPT_LENGTH:,} characters ({len(prompt):,} given)"
                )
        return v

    @field_validator("providers")
    @classmethod
    def collapse_duplicate_providers(cls, v: list[str]) -> list[str]:
        return list(dict.fromkeys(v))

    @field_validator("models", mode="before")
    @classmethod
    def wrap_single_model(cls, v: object) -> object:
        """Accept {"gemini": "gemini-2.5-flash"} as shorthand for a one-model list."""
        if not isinstance(v, dict):
            return v
        normalized = {}
        for provider, models in v.items():
            if isinstance(models, str):
                models = [models]
            elif models is None:
                models = []
            normalized[provider] = models
        return normalized

    @field_validator("models")
    @classmethod
    def clean_model_ids(cls, v: dict[str, list[str]]) -> dict[str, list[str]]:
        return {
            provider: list(dict.fromkeys(_clean_lines(models)))
            for provider, models in v.items()
        }

    def models_for(self, provider: str) -> list[str]:
        """Return the model ids configured for a provider (possibly empty)."""
        return list(self.models.get(provider, []))


@dataclass(frozen=True)
class ProviderCredentials:
    """
    Credentials for a single adapter.

    Attributes:
        api_key: API key sent to the vendor (never logged)
        endpoint: Deployment endpoint, only used by the Copilot adapter
    """

    api_key: str
    endpoint: str | None = None

    def __repr__(self) -> str:
        return f"ProviderCredentials(api_key='***', endpoint={self.endpoint!r})"


class Credentials(BaseModel):
    """
    API credentials for every provider, shared read-only by all tasks of a run.

    Secrets are excluded from repr() so they never leak into logs or
    tracebacks.

    Attributes:
        gemini: Google AI Studio API key
        openai: OpenAI API key
        perplexity: Perplexity API key
        copilot_key: Azure OpenAI API key backing the Copilot provider
        copilot_endpoint: Azure OpenAI resource endpoint (or full deployment URL)
    """

    model_config = ConfigDict(frozen=True)

    gemini: str | None = Field(default=None, repr=False)
    openai: str | None = Field(default=None, repr=False)
    perplexity: str | None = Field(default=None, repr=False)
    copilot_key: str | None = Field(default=None, repr=False)
    copilot_endpoint: str | None = None

    @field_validator(
        "gemini", "openai", "perplexity", "copilot_key", "copilot_endpoint"
    )
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return v.strip()

    def has_credentials(self, provider: str) -> bool:
        """
        Check whether the fields a provider needs are all present.

        Copilot needs both a key and an endpoint; the other providers need
        only their key.
        """
        if provider == "copilot":
            return bool(self.copilot_key and self.copilot_endpoint)
        return bool(getattr(self, provider, None))

    def any_configured(self) -> bool:
        """True when at least one provider could be called."""
        return any(
            self.has_credentials(provider)
            for provider in ("gemini", "openai", "perplexity", "copilot")
        )

    def for_provider(self, provider: str) -> ProviderCredentials:
        """
        Return the credentials an adapter for `provider` needs.

        Raises:
            KeyError: If the provider has no credentials (callers check
                has_credentials() first)
        """
        if not self.has_credentials(provider):
            raise KeyError(provider)
        if provider == "copilot":
            return ProviderCredentials(
                api_key=self.copilot_key, endpoint=self.copilot_endpoint
            )
        return ProviderCredentials(api_key=getattr(self, provider))


class JudgeSettings(BaseModel):
    """
    Provider and model that act as the extraction judge.

    When RunSettings.judge is None the judge reuses each task's own
    provider/model.
    """

    provider: Provider
    model_name: str

    @field_validator("model_name")
    @classmethod
    def validate_model_name(cls, v: str) -> str:
        if not v or v.isspace():
            raise ValueError("model_name cannot be empty")
        return v.strip()


class RunSettings(BaseModel):
    """
    Execution settings for a run.

    Attributes:
        max_concurrency: Run-wide limit on tasks in flight (1-50)
        provider_concurrency: Optional tighter per-provider limits
        request_timeout_seconds: Deadline for each adapter call
        retry_max_attempts: Attempts per adapter call, including the first
        retry_min_wait_seconds: Lower bound of the exponential backoff
        retry_max_wait_seconds: Upper bound of the exponential backoff
        extraction_method: "pattern", "judge" or "hybrid"
        judge: Dedicated judge provider/model (None = reuse the task's)
        fuzzy_threshold: rapidfuzz ratio for fuzzy brand matching, 0 disables
        answer_temperature: Sampling temperature for primary answers
            (None = provider default)
        web_search: Enable grounding/web search where the provider supports it
        system_prompt: System message sent with every primary prompt
    """

    max_concurrency: int = 5
    provider_concurrency: dict[Provider, int] = Field(default_factory=dict)
    request_timeout_seconds: float = 60.0
    retry_max_attempts: int = 3
    retry_min_wait_seconds: float = 1.0
    retry_max_wait_seconds: float = 20.0
    extraction_method: ExtractionMethod = "hybrid"
    judge: JudgeSettings | None = None
    fuzzy_threshold: float = 0.0
    answer_temperature: float | None = None
    web_search: bool = False
    system_prompt: str = DEFAULT_SYSTEM_PROMPT

    @field_validator("max_concurrency")
    @classmethod
    def validate_max_concurrency(cls, v: int) -> int:
        if v < 1 or v > 50:
            raise ValueError(f"max_concurrency must be between 1 and 50, got: {v}")
        return v

    @field_validator("provider_concurrency")
    @classmethod
    def validate_provider_concurrency(cls, v: dict[str, int]) -> dict[str, int]:
        for provider, limit in v.items():
            if limit < 1:
                raise ValueError(
                    f"provider_concurrency for '{provider}' must be >= 1, got: {limit}"
                )
        return v

    @field_validator("request_timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"request_timeout_seconds must be positive, got: {v}")
        return v

    @field_validator("retry_max_attempts")
    @classmethod
    def validate_max_attempts(cls, v: int) -> int:
        if v < 1 or v > 10:
            raise ValueError(f"retry_max_attempts must be between 1 and 10, got: {v}")
        return v

    @field_validator("retry_min_wait_seconds", "retry_max_wait_seconds")
    @classmethod
    def validate_wait(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"retry wait must be >= 0, got: {v}")
        return v

    @field_validator("fuzzy_threshold")
    @classmethod
    def validate_fuzzy_threshold(cls, v: float) -> float:
        if v < 0 or v > 100:
            raise ValueError(f"fuzzy_threshold must be between 0 and 100, got: {v}")
        return v

    @field_validator("answer_temperature")
    @classmethod
    def validate_temperature(cls, v: float | None) -> float | None:
        if v is not None and (v < 0 or v > 2):
            raise ValueError(f"answer_temperature must be between 0 and 2, got: {v}")
        return v

    @field_validator("system_prompt")
    @classmethod
    def validate_system_prompt(cls, v: str) -> str:
        if not v or v.isspace():
            raise ValueError("system_prompt cannot be empty")
        return v

    @model_validator(mode="after")
    def validate_wait_bounds(self) -> "RunSettings":
        if self.retry_max_wait_seconds < self.retry_min_wait_seconds:
            raise ValueError(
                "retry_max_wait_seconds must be >= retry_min_wait_seconds "
                f"({self.retry_max_wait_seconds} < {self.retry_min_wait_seconds})"
            )
        return self


class CredentialEnv(BaseModel):
    """
    Environment variable names the loader reads credentials from.

    Example YAML:
        credentials:
          openai: OPENAI_API_KEY_MARKETING
          copilot_endpoint: AZURE_OPENAI_ENDPOINT
    """

    gemini: str = DEFAULT_CREDENTIAL_ENV["gemini"]
    openai: str = DEFAULT_CREDENTIAL_ENV["openai"]
    perplexity: str = DEFAULT_CREDENTIAL_ENV["perplexity"]
    copilot_key: str = DEFAULT_CREDENTIAL_ENV["copilot_key"]
    copilot_endpoint: str = DEFAULT_CREDENTIAL_ENV["copilot_endpoint"]

    @field_validator("*")
    @classmethod
    def validate_env_name(cls, v: str) -> str:
        if not v or v.isspace():
            raise ValueError("environment variable name cannot be empty")
        return v.strip()


class VisibilityConfigFile(BaseModel):
    """
    Root model of visibility.config.yaml.

    Attributes:
        analysis: The AnalysisConfig block
        run_settings: Optional RunSettings block
        credentials: Optional environment variable overrides
        use_default_models: Fill in the default model for selected providers
            that list none
    """

    analysis: AnalysisConfig
    run_settings: RunSettings = Field(default_factory=RunSettings)
    credentials: CredentialEnv = Field(default_factory=CredentialEnv)
    use_default_models: bool = False


@dataclass(frozen=True)
class RuntimeConfig:
    """
    A loaded configuration ready to hand to the scheduler.

    Attributes:
        analysis: What to measure
        settings: How to run
        credentials: Credentials resolved from the environment
    """

    analysis: AnalysisConfig
    settings: RunSettings
    credentials: Credentials
