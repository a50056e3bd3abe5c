"""
Structured JSON logging for the visibility engine.

Every log line on stderr is one JSON object. Records can carry three
structured fields, passed through `extra`:

- context: free-form dict (task counts, error types, ...)
- run_id: identifier of the scheduler run
- task_id: "{provider}:{model_name}:{prompt_index}" of the task concerned

Credentials reach the engine as plain strings, so redaction works on two
levels: known vendor key shapes, auth headers and URL key parameters are
masked by pattern, and the exact values of the run's credentials can be
registered with register_secrets().

Examples:
    >>> setup_logging(verbose=True, secrets=[credentials.openai])
    >>> logger = logging.getLogger("llm_visibility.engine.scheduler")
    >>> log_with_context(logger, logging.INFO, "Run started",
    ...                  context={"tasks": 6}, run_id=run_id)
"""

import json
import logging
import re
import sys
from collections.abc import Iterable
from typing import Any

from llm_visibility.utils.time import utc_timestamp

# Record attributes copied into the JSON line when present
STRUCTURED_FIELDS = ("context", "run_id", "task_id")

# Shortest registered secret that is masked verbatim; shorter strings would
# mask ordinary words
_MIN_SECRET_LENGTH = 8


def _mask(value: str, prefix: str = "") -> str:
    return f"{prefix}***{value[-4:]}"


class JSONFormatter(logging.Formatter):
    """One JSON object per record: timestamp, level, component, message, plus structured fields."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": utc_timestamp(),
            "level": record.levelname,
            "component": record.name,
            "message": record.getMessage(),
        }
        for name in STRUCTURED_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = value
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class SecretRedactingFilter(logging.Filter):
    """
    Mask provider credentials in log records.

    Masked, keeping the last 4 characters:
        - OpenAI keys:           "sk-proj-abc...wxyz"        -> "sk-***wxyz"
        - Google AI Studio keys: "AIzaSyD...1234"            -> "AIza***1234"
        - Perplexity keys:       "pplx-abc...9f0e"           -> "pplx-***9f0e"
        - Bearer / api-key headers
        - URL query parameters:  "?key=AIza..."              -> "?key=***1234"
        - Any registered secret value (Azure keys have no fixed shape)

    Attributes:
        secrets: Exact strings to mask wherever they appear
    """

    PATTERNS: list[tuple[re.Pattern, str]] = [
        (re.compile(r"([?&](?:key|api[-_]?key)=)([^&\s\"']+)", re.IGNORECASE), "url"),
        (re.compile(r"\b(Bearer\s+)([A-Za-z0-9._~+/=-]{8,})"), "header"),
        (re.compile(r"\b(api-key:\s*)(\S{8,})", re.IGNORECASE), "header"),
        (re.compile(r"\b(sk-|pplx-|AIza)([A-Za-z0-9_-]{16,})"), "prefixed"),
    ]

    def __init__(self, secrets: Iterable[str | None] = ()):
        super().__init__()
        self.secrets: set[str] = set()
        self.add_secrets(secrets)

    def add_secrets(self, secrets: Iterable[str | None]) -> None:
        self.secrets.update(
            s for s in secrets if s and len(s.strip()) >= _MIN_SECRET_LENGTH
        )

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = self.redact(str(record.msg))
        if isinstance(record.args, dict):
            record.args = {k: self.redact(str(v)) for k, v in record.args.items()}
        elif isinstance(record.args, tuple):
            record.args = tuple(self.redact(str(arg)) for arg in record.args)

        context = getattr(record, "context", None)
        if isinstance(context, dict):
            record.context = self._redact_value(context)
        return True

    def redact(self, text: str) -> str:
        """Return `text` with every known secret shape and registered value masked."""
        # longest first so a secret containing another is masked whole
        for secret in sorted(self.secrets, key=len, reverse=True):
            text = text.replace(secret, _mask(secret))

        for pattern, kind in self.PATTERNS:
            if kind == "prefixed":
                text = pattern.sub(lambda m: _mask(m.group(2), m.group(1)), text)
            else:
                text = pattern.sub(lambda m: m.group(1) + _mask(m.group(2)), text)
        return text

    def _redact_value(self, value: Any) -> Any:
        if isinstance(value, str):
            return self.redact(value)
        if isinstance(value, dict):
            return {k: self._redact_value(v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return type(value)(self._redact_value(v) for v in value)
        return value


_redacting_filter = SecretRedactingFilter()


def register_secrets(secrets: Iterable[str | None]) -> None:
    """Mask these exact values in every record handled after setup_logging()."""
    _redacting_filter.add_secrets(secrets)


def setup_logging(
    verbose: bool = False,
    quiet_logs: bool = False,
    secrets: Iterable[str | None] = (),
) -> None:
    """
    Install the JSON stderr handler on the root logger.

    Args:
        verbose: Log at DEBUG
        quiet_logs: Without verbose, only WARNING and above (the CLI uses
            this in text mode so log lines don't tear the progress bar)
        secrets: Credential values to mask verbatim
    """
    if verbose:
        level = logging.DEBUG
    elif quiet_logs:
        level = logging.WARNING
    else:
        level = logging.INFO

    register_secrets(secrets)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter())
    handler.addFilter(_redacting_filter)
    root_logger.addHandler(handler)

    # httpx logs every request URL at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    context: dict[str, Any] | None = None,
    run_id: str | None = None,
    task_id: str | None = None,
) -> None:
    """
    Log `message` with the structured fields that are set.

    Example:
        >>> log_with_context(logger, logging.WARNING, "Task failed",
        ...                  context={"error_type": "timeout"},
        ...                  run_id="2026-03-02T08-30-00Z",
        ...                  task_id="gemini:gemini-2.5-flash:0")
    """
    fields = {"context": context, "run_id": run_id, "task_id": task_id}
    extra = {name: value for name, value in fields.items() if value is not None}
    logger.log(level, message, extra=extra or None)
