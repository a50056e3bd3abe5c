"""
OpenAI adapter using the Responses API.

    POST https://api.openai.com/v1/responses
    Authorization: Bearer <key>

The answer is the concatenated output_text of every "message" output item;
citations come from the url_citation annotations the web_search tool adds.
"""

import logging
from typing import Any

from llm_visibility.config.capabilities import supports_temperature
from llm_visibility.config.constants import DEFAULT_SYSTEM_PROMPT
from llm_visibility.config.schema import ProviderCredentials
from llm_visibility.exceptions import AdapterResponseError
from llm_visibility.providers.models import ProviderResponse, unique_urls
from llm_visibility.providers.transport import post_json
from llm_visibility.utils.time import utc_timestamp

OPENAI_API_URL = "https://api.openai.com/v1/responses"

logger = logging.getLogger(__name__)


class OpenAIAdapter:
    """
    Adapter for OpenAI models through the Responses API.

    Attributes:
        provider: Always "openai"
        model_name: OpenAI model id (e.g. "gpt-4o-mini")
        system_prompt: Default instructions
        timeout: httpx timeout per request in seconds
        web_search: Attach the hosted web_search tool
    """

    provider = "openai"

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
            f"Initialized OpenAI adapter: model={model_name}, web_search={web_search}"
        )

    async def complete(
        self,
        prompt: str,
        *,
        temperature: float | None = None,
        system_prompt: str | None = None,
    ) -> ProviderResponse:
        """
        Send one prompt to OpenAI.

        Raises:
            ValueError: If prompt is empty
            AdapterError: On transport, status or payload failures
        """
        if not prompt or prompt.isspace():
            raise ValueError("Prompt cannot be empty")

        payload: dict[str, Any] = {
            "model": self.model_name,
            "instructions": system_prompt or self.system_prompt,
            "input": prompt,
        }
        if temperature is not None and supports_temperature(self.provider, self.model_name):
            payload["temperature"] = temperature
        if self.web_search:
            payload["tools"] = [{"type": "web_search"}]

        data = await post_json(
            self.provider,
            self.model_name,
            OPENAI_API_URL,
            payload=payload,
            timeout=self.timeout,
            headers={"Authorization": f"Bearer {self._api_key}"},
        )

        text, citations = self._extract_output(data)
        usage = data.get("usage") or {}

        return ProviderResponse(
            text=text,
            provider=self.provider,
            model_name=self.model_name,
            timestamp_utc=utc_timestamp(),
            citations=citations,
            prompt_tokens=int(usage.get("input_tokens", 0) or 0),
            completion_tokens=int(usage.get("output_tokens", 0) or 0),
        )

    def _extract_output(self, data: dict[str, Any]) -> tuple[str, list[str]]:
        """
        Collect output_text and url_citation annotations from message items.

        Tool-call items (web_search_call, reasoning) are skipped.
        """
        output = data.get("output")
        if not isinstance(output, list):
            raise AdapterResponseError(
                "OpenAI response missing 'output' array", self.provider
            )

        texts = []
        urls = []
        for item in output:
            if not isinstance(item, dict) or item.get("type") != "message":
                continue
            for content in item.get("content") or []:
                if not isinstance(content, dict):
                    continue
                if content.get("type") == "refusal":
                    raise AdapterResponseError(
                        f"OpenAI refused to answer: {content.get('refusal', '')}",
                        self.provider,
                    )
                if content.get("type") != "output_text":
                    continue
                texts.append(content.get("text", ""))
                urls.extend(
                    annotation.get("url")
                    for annotation in content.get("annotations") or []
                    if isinstance(annotation, dict)
                    and annotation.get("type") == "url_citation"
                )

        text = "".join(texts)
        if not text.strip():
            raise AdapterResponseError("OpenAI returned an empty answer", self.provider)

        return text, unique_urls(urls)
