"""
Custom exceptions for the LLM visibility engine.

Every error raised by the engine inherits from VisibilityEngineError so callers
can catch engine failures with a single except clause. Only ConfigurationError
(and its subclasses) ever escapes run_analysis(); adapter and extraction errors
are recovered per task and recorded on the failed task instead.

Exception Hierarchy:
    VisibilityEngineError (base)
    ├── ConfigurationError
    │   ├── ConfigFileNotFoundError
    │   ├── ConfigValidationError
    │   └── CredentialMissingError
    ├── AdapterError
    │   ├── AdapterAuthenticationError
    │   ├── AdapterRateLimitError
    │   ├── AdapterServerError
    │   ├── AdapterRequestError
    │   ├── AdapterConnectionError
    │   ├── AdapterTimeoutError
    │   └── AdapterResponseError
    ├── ExtractionError
    │   └── JudgeResponseError
    └── InvalidTaskTransitionError

Usage:
    from llm_visibility.exceptions import ConfigurationError

    try:
        results = await run_analysis(config, credentials)
    except ConfigurationError as e:
        logger.error(f"Run rejected: {e}")
        sys.exit(1)
"""


class VisibilityEngineError(Exception):
    """
    Base exception for all visibility engine errors.

    Example:
        try:
            results = await run_analysis(config, credentials)
        except VisibilityEngineError as e:
            logger.error(f"Engine error: {e}")
    """

    pass


# ============================================================================
# Configuration Errors
# ============================================================================


class ConfigurationError(VisibilityEngineError):
    """
    Base class for configuration-related errors.

    Raised before any task starts. The CLI maps it to exit code 1.
    """

    pass


class ConfigFileNotFoundError(ConfigurationError):
    """
    Configuration file does not exist at the specified path.

    Example:
        raise ConfigFileNotFoundError("/path/to/visibility.config.yaml")
    """

    pass


class ConfigValidationError(ConfigurationError):
    """
    Configuration is invalid (schema or semantic validation failed).

    Example:
        raise ConfigValidationError("Provider 'openai' is selected but has no model")
    """

    pass


class CredentialMissingError(ConfigurationError):
    """
    A selected provider has no usable credentials.

    Example:
        raise CredentialMissingError("No API key configured for provider 'gemini'")
    """

    pass


# ============================================================================
# Provider Adapter Errors
# ============================================================================


class AdapterError(VisibilityEngineError):
    """
    Base class for provider adapter failures.

    Adapter errors are always scoped to a single task. The scheduler retries
    the ones flagged retryable and records the rest on the failed task.

    Attributes:
        provider: Provider id that raised the error (e.g. "openai")
        status_code: HTTP status code when the failure came from a response
        retryable: Whether a retry may succeed
        error_type: Short category stored on the failed task
    """

    retryable = False
    error_type = "adapter"

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class AdapterAuthenticationError(AdapterError):
    """
    Provider rejected the credentials (401/403). Never retried.

    Example:
        raise AdapterAuthenticationError("OpenAI rejected the API key", "openai", 401)
    """

    error_type = "authentication"


class AdapterRateLimitError(AdapterError):
    """Provider rate limit exceeded (429). Retried with backoff."""

    retryable = True
    error_type = "rate_limit"


class AdapterServerError(AdapterError):
    """Provider returned a 5xx status. Retried with backoff."""

    retryable = True
    error_type = "server"


class AdapterRequestError(AdapterError):
    """
    Provider rejected the request (4xx other than auth and rate limit).

    Usually a wrong model name or deployment. Never retried.
    """

    error_type = "request"


class AdapterConnectionError(AdapterError):
    """Network-level failure before a response arrived. Retried."""

    retryable = True
    error_type = "connection"


class AdapterTimeoutError(AdapterError):
    """
    Provider call exceeded the per-request deadline. Retried.

    Example:
        raise AdapterTimeoutError("gemini call exceeded 60.0s", "gemini")
    """

    retryable = True
    error_type = "timeout"


class AdapterResponseError(AdapterError):
    """
    Provider returned a malformed or unusable payload.

    Includes invalid JSON, missing fields and blocked completions.

    Example:
        raise AdapterResponseError("Perplexity response missing 'choices'", "perplexity")
    """

    error_type = "response"


# ============================================================================
# Extraction Errors
# ============================================================================


class ExtractionError(VisibilityEngineError):
    """
    Structured extraction failed for one answer.

    Fatal to the task only under the "judge" extraction method; the "hybrid"
    method degrades to deterministic extraction instead.
    """

    error_type = "extraction"


class JudgeResponseError(ExtractionError):
    """
    The judge model answered, but its output could not be parsed.

    Example:
        raise JudgeResponseError("Judge output contained no JSON object")
    """

    pass


# ============================================================================
# Internal Errors
# ============================================================================


class InvalidTaskTransitionError(VisibilityEngineError):
    """
    A task was moved between states in a way the lifecycle forbids.

    Indicates a bug in the scheduler, never a user or provider problem.
    """

    pass
