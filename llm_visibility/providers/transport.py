"""
Shared HTTP transport and error mapping for provider adapters.

Every adapter posts JSON through post_json(), which turns httpx failures and
HTTP error statuses into the AdapterError hierarchy:

    timeout                 -> AdapterTimeoutError      (retryable)
    connection failure      -> AdapterConnectionError   (retryable)
    401, 403                -> AdapterAuthenticationError
    429                     -> AdapterRateLimitError    (retryable)
    5xx                     -> AdapterServerError       (retryable)
    other 4xx               -> AdapterRequestError
    non-JSON / non-object   -> AdapterResponseError

Error messages carry the provider, status and the vendor's error text, never
request headers or query parameters.
"""

import logging
from typing import Any

import httpx

from llm_visibility.exceptions import (
    AdapterAuthenticationError,
    AdapterConnectionError,
    AdapterRateLimitError,
    AdapterRequestError,
    AdapterResponseError,
    AdapterServerError,
    AdapterTimeoutError,
)

logger = logging.getLogger(__name__)

AUTH_STATUS_CODES = frozenset([401, 403])
RATE_LIMIT_STATUS_CODE = 429


def extract_error_detail(response: httpx.Response) -> str:
    """
    Pull the vendor's error message out of an error response.

    Handles {"error": {"message": ...}}, {"error": "..."} and {"detail": ...}
    bodies and falls back to the first 200 characters of the raw text.
    """
    try:
        data = response.json()
    except ValueError:
        return response.text[:200]

    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str):
            return error
        if data.get("detail"):
            return str(data["detail"])

    return response.text[:200]


def raise_for_provider_status(provider: str, model_name: str, response: httpx.Response) -> None:
    """
    Raise the AdapterError matching an HTTP error status. No-op below 400.

    Raises:
        AdapterAuthenticationError: 401/403
        AdapterRateLimitError: 429
        AdapterServerError: 5xx
        AdapterRequestError: any other 4xx
    """
    status = response.status_code
    if status < 400:
        return

    detail = extract_error_detail(response)
    message = (
        f"{provider} API error: status={status}, model={model_name}, detail={detail}"
    )
    logger.error(message)

    if status in AUTH_STATUS_CODES:
        raise AdapterAuthenticationError(message, provider, status)
    if status == RATE_LIMIT_STATUS_CODE:
        raise AdapterRateLimitError(message, provider, status)
    if status >= 500:
        raise AdapterServerError(message, provider, status)
    raise AdapterRequestError(message, provider, status)


async def post_json(
    provider: str,
    model_name: str,
    url: str,
    *,
    payload: dict[str, Any],
    timeout: float,
    headers: dict[str, str] | None = None,
    params: dict[str, str] | None = None,
) -> dict[str, Any]:
    """
    POST a JSON payload and return the decoded JSON object.

    Args:
        provider: Provider id, used in errors and logs
        model_name: Model id, used in errors and logs
        url: Endpoint URL (without credentials)
        payload: JSON request body
        timeout: httpx timeout in seconds
        headers: Extra request headers (may carry credentials, never logged)
        params: Query parameters (may carry credentials, never logged)

    Returns:
        dict: Parsed response body

    Raises:
        AdapterError: See module docstring for the mapping
    """
    request_headers = {"Content-Type": "application/json"}
    if headers:
        request_headers.update(headers)

    logger.debug(f"Sending request to {provider}: model={model_name}")

    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.post(
                url,
                json=payload,
                headers=request_headers,
                params=params,
            )
    except httpx.TimeoutException as e:
        logger.error(f"{provider} API timeout: model={model_name}")
        raise AdapterTimeoutError(
            f"{provider} request timed out after {timeout}s (model={model_name})",
            provider,
        ) from e
    except httpx.TransportError as e:
        logger.error(
            f"{provider} API connection error: model={model_name}, "
            f"error={type(e).__name__}"
        )
        raise AdapterConnectionError(
            f"{provider} connection failed (model={model_name}): {type(e).__name__}",
            provider,
        ) from e

    raise_for_provider_status(provider, model_name, response)

    try:
        data = response.json()
    except ValueError as e:
        raise AdapterResponseError(
            f"Failed to parse {provider} response JSON: {e}", provider, response.status_code
        ) from e

    if not isinstance(data, dict):
        raise AdapterResponseError(
            f"{provider} response is not a JSON object", provider, response.status_code
        )

    return data


def parse_chat_completion(provider: str, data: dict[str, Any]) -> tuple[str, int, int]:
    """
    Extract answer text and token usage from a chat-completions payload.

    Used by the Perplexity and Copilot (Azure OpenAI) adapters, which share
    the OpenAI chat-completions response shape.

    Returns:
        tuple: (text, prompt_tokens, completion_tokens)

    Raises:
        AdapterResponseError: If choices/message/content are missing or the
            completion was stopped by a content filter
    """
    choices = data.get("choices")
    if not choices or not isinstance(choices, list):
        raise AdapterResponseError(f"{provider} response missing 'choices' array", provider)

    choice = choices[0]
    if not isinstance(choice, dict):
        raise AdapterResponseError(f"Invalid {provider} choice structure", provider)

    if choice.get("finish_reason") == "content_filter":
        raise AdapterResponseError(
            f"{provider} blocked the completion: finish_reason=content_filter", provider
        )

    message = choice.get("message")
    if not isinstance(message, dict):
        raise AdapterResponseError(f"{provider} choice missing 'message'", provider)

    content = message.get("content")
    if not isinstance(content, str) or not content.strip():
        raise AdapterResponseError(f"{provider} returned an empty answer", provider)

    usage = data.get("usage") or {}
    return (
        content,
        int(usage.get("prompt_tokens", 0) or 0),
        int(usage.get("completion_tokens", 0) or 0),
    )
