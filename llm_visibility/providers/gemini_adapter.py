"""
Google Gemini adapter.

Calls the generateContent endpoint of the Gemini API:
    POST {GEMINI_API_BASE_URL}/models/{model}:generateContent
    x-goog-api-key: ...

Answer text is read from candidates[0].content.parts[*].text and citations
from the Google Search grounding metadata
(candidates[0].groundingMetadata.groundingChunks[*].web.uri).

Example:
    >>> adapter = GeminiAdapter("gemini-2.5-flash", ProviderCredentials("AIza..."))
    >>> response = await adapter.complete("What are the best DAM platforms?")
    >>> response.citations
    ['https://vertexaisearch.cloud.google.com/grounding-api-redirect/...']
"""

import logging
from typing import Any

from llm_visibility.config.constants import DEFAULT_SYSTEM_PROMPT
from llm_visibility.config.schema import ProviderCredentials
from llm_visibility.exceptions import AdapterResponseError
from llm_visibility.providers.models import ProviderResponse, unique_urls
from llm_visibility.providers.transport import post_json
from llm_visibility.utils.time import utc_timestamp

GEMINI_API_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

# Finish reasons that mean the answer was withheld
BLOCKED_FINISH_REASONS = frozenset(
    ["SAFETY", "RECITATION", "PROHIBITED_CONTENT", "BLOCKLIST", "SPII"]
)

logger = logging.getLogger(__name__)


class GeminiAdapter:
    """
    Adapter for Google's Gemini API.

    Attributes:
        provider: Always "gemini"
        model_name: Gemini model id (e.g. "gemini-2.5-flash")
        system_prompt: Default system instruction
        timeout: httpx timeout per request in seconds
        web_search: Attach the google_search grounding tool

    Security:
        The API key travels only in the x-goog-api-key header, never in the
        URL (httpx logs request URLs), and is never included in error messages.
    """

    provider = "gemini"

    def __init__(
        self,
        model_name: str,
        credentials: ProviderCredentials,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        timeout: float = 60.0,
        web_search: bool = False,
    ):
        if not model_name or model_name.isspace():
            raise ValueError("model_name cannot be empty")

        if not credentials.api_key or credentials.api_key.isspace():
            raise ValueError("api_key cannot be empty")

        self.model_name = model_name
        self._api_key = credentials.api_key
        self.system_prompt = system_prompt
        self.timeout = timeout
        self.web_search = web_search

        logger.debug(
            f"Initialized Gemini adapter: model={model_name}, web_search={web_search}"
        )

    async def complete(
        self,
        prompt: str,
        *,
        temperature: float | None = None,
        system_prompt: str | None = None,
    ) -> ProviderResponse:
        """
        Send one prompt to Gemini.

        Raises:
            ValueError: If prompt is empty
            AdapterError: On transport, status or payload failures; a blocked
                completion raises AdapterResponseError
        """
        if not prompt or prompt.isspace():
            raise ValueError("Prompt cannot be empty")

        payload: dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "systemInstruction": {
                "parts": [{"text": system_prompt or self.system_prompt}]
            },
        }
        if temperature is not None:
            payload["generationConfig"] = {"temperature": temperature}
        if self.web_search:
            payload["tools"] = [{"google_search": {}}]

        data = await post_json(
            self.provider,
            self.model_name,
            f"{GEMINI_API_BASE_URL}/models/{self.model_name}:generateContent",
            payload=payload,
            timeout=self.timeout,
            headers={"x-goog-api-key": self._api_key},
        )

        candidate = self._first_candidate(data)
        usage = data.get("usageMetadata") or {}

        return ProviderResponse(
            text=self._extract_text(candidate),
            provider=self.provider,
            model_name=self.model_name,
            timestamp_utc=utc_timestamp(),
            citations=self._extract_citations(candidate),
            prompt_tokens=int(usage.get("promptTokenCount", 0) or 0),
            completion_tokens=int(usage.get("candidatesTokenCount", 0) or 0),
        )

    def _first_candidate(self, data: dict[str, Any]) -> dict[str, Any]:
        candidates = data.get("candidates")
        if not candidates or not isinstance(candidates, list):
            block_reason = (data.get("promptFeedback") or {}).get("blockReason")
            if block_reason:
                raise AdapterResponseError(
                    f"Gemini blocked the prompt: blockReason={block_reason}",
                    self.provider,
                )
            raise AdapterResponseError(
                "Gemini response missing 'candidates' array", self.provider
            )

        candidate = candidates[0]
        if not isinstance(candidate, dict):
            raise AdapterResponseError("Invalid candidate structure", self.provider)

        finish_reason = candidate.get("finishReason")
        if finish_reason in BLOCKED_FINISH_REASONS:
            raise AdapterResponseError(
                f"Gemini API blocked content: finishReason={finish_reason}",
                self.provider,
            )
        if finish_reason == "MAX_TOKENS":
            logger.warning(f"Gemini answer truncated at max tokens: model={self.model_name}")

        return candidate

    def _extract_text(self, candidate: dict[str, Any]) -> str:
        """Join the text of every content part. Non-text parts are skipped."""
        parts = (candidate.get("content") or {}).get("parts") or []
        text = "".join(
            part.get("text", "") for part in parts if isinstance(part, dict)
        )
        if not text.strip():
            raise AdapterResponseError("Gemini returned an empty answer", self.provider)
        return text

    def _extract_citations(self, candidate: dict[str, Any]) -> list[str]:
        grounding = candidate.get("groundingMetadata") or {}
        chunks = grounding.get("groundingChunks") or []
        return unique_urls(
            (chunk.get("web") or {}).get("uri")
            for chunk in chunks
            if isinstance(chunk, dict)
        )
