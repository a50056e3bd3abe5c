"""
Provider adapters: one HTTP call to one LLM vendor per invocation.

Use build_adapter() to get an adapter for a provider id; every adapter
satisfies the ProviderAdapter protocol.
"""

from llm_visibility.providers.models import ProviderAdapter, ProviderResponse
from llm_visibility.providers.registry import ADAPTER_CLASSES, build_adapter

__all__ = ["ADAPTER_CLASSES", "ProviderAdapter", "ProviderResponse", "build_adapter"]
