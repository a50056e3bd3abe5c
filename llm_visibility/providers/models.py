"""
Provider-agnostic adapter contract.

Key components:
- ProviderResponse: Raw answer text plus citations and usage metadata
- ProviderAdapter: Protocol every vendor adapter implements
- unique_urls: Citation de-duplication shared by the adapters

Adapters make exactly one HTTP request per complete() call and never retry.
Retries and deadlines are applied by the scheduler (engine.call_policy) so the
policy is identical across vendors and covers judge calls too.

Example:
    >>> adapter = build_adapter("gemini", "gemini-2.5-flash", credentials)
    >>> response = await adapter.complete("What are the best CRM tools?")
    >>> response.text[:40]
    'Here are some of the most popular CRM...'
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Protocol


@dataclass
class ProviderResponse:
    """
    Answer returned by a provider adapter.

    Attributes:
        text: The model's complete answer text
        provider: Provider id (e.g. "perplexity")
        model_name: Model id that produced the answer
        timestamp_utc: ISO 8601 timestamp with 'Z' suffix when the answer arrived
        citations: Source URLs reported by the provider, first-seen order
        prompt_tokens: Input tokens reported by the provider (0 if unknown)
        completion_tokens: Output tokens reported by the provider (0 if unknown)
    """

    text: str
    provider: str
    model_name: str
    timestamp_utc: str
    citations: list[str] = field(default_factory=list)
    prompt_tokens: int = 0
    completion_tokens: int = 0


class ProviderAdapter(Protocol):
    """
    Interface of a provider adapter.

    Attributes:
        provider: Provider id the adapter talks to
        model_name: Model id sent with every request

    Note:
        Implementations MUST:
        - Use httpx.AsyncClient for the request
        - Raise AdapterError subclasses for every failure
        - Never log API keys
        - Stamp responses with utils.time.utc_timestamp()
    """

    provider: str
    model_name: str

    async def complete(
        self,
        prompt: str,
        *,
        temperature: float | None = None,
        system_prompt: str | None = None,
    ) -> ProviderResponse:
        """
        Send one prompt and return the provider's answer.

        Args:
            prompt: User prompt sent verbatim
            temperature: Sampling temperature (None = provider default)
            system_prompt: Overrides the adapter's system prompt for this call

        Raises:
            AdapterError: On any transport, status or payload failure
        """
        ...


def unique_urls(urls: Iterable[str | None]) -> list[str]:
    """
    Drop empty and repeated URLs, keeping first-seen order.

    Example:
        >>> unique_urls(["https://a.com", None, "https://b.com", "https://a.com"])
        ['https://a.com', 'https://b.com']
    """
    return list(dict.fromkeys(url for url in urls if url))
