"""
Perplexity adapter (chat completions with native web search).

    POST https://api.perplexity.ai/chat/completions
    Authorization: Bearer <key>

Citations come from the top-level `citations` list, or from
`search_results[*].url` when only the newer field is present.
"""

import logging
from typing import Any

from llm_visibility.config.constants import DEFAULT_SYSTEM_PROMPT
from llm_visibility.config.schema import ProviderCredentials
from llm_visibility.providers.models import ProviderResponse, unique_urls
from llm_visibility.providers.transport import parse_chat_completion, post_json
from llm_visibility.utils.time import utc_timestamp

PERPLEXITY_API_URL = "https://api.perplexity.ai/chat/completions"

logger = logging.getLogger(__name__)


def normalize_model_name(model_name: str) -> str:
    """
    Convert display-style model names to API ids.

    Example:
        >>> normalize_model_name("Sonar Reasoning Pro")
        'sonar-reasoning-pro'
    """
    return "-".join(model_name.strip().lower().split())


class PerplexityAdapter:
    """
    Adapter for Perplexity's Sonar models.

    Perplexity always searches the web, so `web_search` is accepted for a
    uniform constructor and otherwise ignored.
    """

    provider = "perplexity"

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
        self.api_model = normalize_model_name(model_name)
        self._api_key = credentials.api_key
        self.system_prompt = system_prompt
        self.timeout = timeout

        logger.debug(f"Initialized Perplexity adapter: model={self.api_model}")

    async def complete(
        self,
        prompt: str,
        *,
        temperature: float | None = None,
        system_prompt: str | None = None,
    ) -> ProviderResponse:
        """
        Send one prompt to Perplexity.

        Raises:
            ValueError: If prompt is empty
            AdapterError: On transport, status or payload failures
        """
        if not prompt or prompt.isspace():
            raise ValueError("Prompt cannot be empty")

        payload: dict[str, Any] = {
            "model": self.api_model,
            "messages": [
                {"role": "system", "content": system_prompt or self.system_prompt},
                {"role": "user", "content": prompt},
            ],
        }
        if temperature is not None:
            payload["temperature"] = temperature

        data = await post_json(
            self.provider,
            self.api_model,
            PERPLEXITY_API_URL,
            payload=payload,
            timeout=self.timeout,
            headers={"Authorization": f"Bearer {self._api_key}"},
        )

        text, prompt_tokens, completion_tokens = parse_chat_completion(
            self.provider, data
        )

        return ProviderResponse(
            text=text,
            provider=self.provider,
            model_name=self.model_name,
            timestamp_utc=utc_timestamp(),
            citations=self._extract_citations(data),
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
        )

    def _extract_citations(self, data: dict[str, Any]) -> list[str]:
        citations = data.get("citations")
        if isinstance(citations, list) and citations:
            return unique_urls(c for c in citations if isinstance(c, str))

        results = data.get("search_results") or []
        return unique_urls(
            result.get("url") for result in results if isinstance(result, dict)
        )
