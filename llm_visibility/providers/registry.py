"""
Adapter registry and factory.

ADAPTER_CLASSES maps each provider id to its adapter class. build_adapter()
is the single entry point the scheduler uses to create adapters; adding a
provider means adding one adapter module and one registry entry.
"""

from llm_visibility.config.constants import DEFAULT_SYSTEM_PROMPT
from llm_visibility.config.schema import ProviderCredentials
from llm_visibility.providers.copilot_adapter import CopilotAdapter
from llm_visibility.providers.gemini_adapter import GeminiAdapter
from llm_visibility.providers.models import ProviderAdapter
from llm_visibility.providers.openai_adapter import OpenAIAdapter
from llm_visibility.providers.perplexity_adapter import PerplexityAdapter

ADAPTER_CLASSES: dict[str, type] = {
    "gemini": GeminiAdapter,
    "openai": OpenAIAdapter,
    "perplexity": PerplexityAdapter,
    "copilot": CopilotAdapter,
}


def build_adapter(
    provider: str,
    model_name: str,
    credentials: ProviderCredentials,
    *,
    system_prompt: str = DEFAULT_SYSTEM_PROMPT,
    timeout: float = 60.0,
    web_search: bool = False,
) -> ProviderAdapter:
    """
    Create the adapter for a provider id.

    Args:
        provider: One of "gemini", "openai", "perplexity", "copilot"
        model_name: Model id (deployment name for Copilot)
        credentials: API key, plus endpoint for Copilot
        system_prompt: Default system message for primary prompts
        timeout: httpx timeout per request in seconds
        web_search: Enable grounding/web search where supported

    Returns:
        ProviderAdapter: Provider-specific adapter

    Raises:
        ValueError: If the provider is unknown or a required value is empty

    Example:
        >>> adapter = build_adapter(
        ...     "copilot",
        ...     "gpt-4o",
        ...     ProviderCredentials("key", "https://acme.openai.azure.com"),
        ... )
        >>> adapter.url
        'https://acme.openai.azure.com/openai/deployments/gpt-4o/chat/completions'

    Security:
        Credentials are handed to the adapter constructor and never logged.
    """
    adapter_class = ADAPTER_CLASSES.get(provider)
    if adapter_class is None:
        raise ValueError(
            f"Unsupported provider: {provider}. "
            f"Supported providers: {', '.join(ADAPTER_CLASSES)}"
        )

    return adapter_class(
        model_name=model_name,
        credentials=credentials,
        system_prompt=system_prompt,
        timeout=timeout,
        web_search=web_search,
    )
