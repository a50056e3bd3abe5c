"""
Microsoft Copilot adapter, backed by an Azure OpenAI deployment.

    POST {endpoint}/openai/deployments/{model}/chat/completions?api-version=...
    api-key: <key>

The model id is the Azure deployment name. If the configured endpoint is
already a full chat-completions URL it is used as-is.
"""

import logging
from typing import Any

from llm_visibility.config.capabilities import supports_temperature
from llm_visibility.config.constants import DEFAULT_SYSTEM_PROMPT
from llm_visibility.config.schema import ProviderCredentials
from llm_visibility.providers.models import ProviderResponse
from llm_visibility.providers.transport import parse_chat_completion, post_json
from llm_visibility.utils.time import utc_timestamp

AZURE_API_VERSION = "2024-06-01"

logger = logging.getLogger(__name__)


def build_deployment_url(endpoint: str, deployment: str) -> str:
    """
    Build the chat-completions URL for an Azure OpenAI deployment.

    Examples:
        >>> build_deployment_url("https://acme.openai.azure.com/", "gpt-4o")
        'https://acme.openai.azure.com/openai/deployments/gpt-4o/chat/completions'
        >>> build_deployment_url("https://acme.openai.azure.com/openai/deployments/x/chat/completions?api-version=2024-06-01", "gpt-4o")
        'https://acme.openai.azure.com/openai/deployments/x/chat/completions?api-version=2024-06-01'
    """
    if "/chat/completions" in endpoint:
        return endpoint
    return f"{endpoint.rstrip('/')}/openai/deployments/{deployment}/chat/completions"


class CopilotAdapter:
    """
    Adapter for Copilot answers served by Azure OpenAI.

    Requires both an API key and an endpoint in ProviderCredentials.
    """

    provider = "copilot"

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

        if not credentials.endpoint or credentials.endpoint.isspace():
            raise ValueError("endpoint cannot be empty")

        self.model_name = model_name
        self._api_key = credentials.api_key
        self.url = build_deployment_url(credentials.endpoint.strip(), model_name)
        self.system_prompt = system_prompt
        self.timeout = timeout

        if web_search:
            logger.warning(
                f"web_search is not supported for Azure OpenAI deployments: model={model_name}"
            )

    async def complete(
        self,
        prompt: str,
        *,
        temperature: float | None = None,
        system_prompt: str | None = None,
    ) -> ProviderResponse:
        """
        Send one prompt to the Azure OpenAI deployment.

        Raises:
            ValueError: If prompt is empty
            AdapterError: On transport, status or payload failures; a content
                filter stop raises AdapterResponseError
        """
        if not prompt or prompt.isspace():
            raise ValueError("Prompt cannot be empty")

        payload: dict[str, Any] = {
            "messages": [
                {"role": "system", "content": system_prompt or self.system_prompt},
                {"role": "user", "content": prompt},
            ],
        }
        if temperature is not None and supports_temperature(self.provider, self.model_name):
            payload["temperature"] = temperature

        params = None if "api-version=" in self.url else {"api-version": AZURE_API_VERSION}

        data = await post_json(
            self.provider,
            self.model_name,
            self.url,
            payload=payload,
            timeout=self.timeout,
            headers={"api-key": self._api_key},
            params=params,
        )

        text, prompt_tokens, completion_tokens = parse_chat_completion(
            self.provider, data
        )

        return ProviderResponse(
            text=text,
            provider=self.provider,
            model_name=self.model_name,
            timestamp_utc=utc_timestamp(),
            citations=[],
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
        )
