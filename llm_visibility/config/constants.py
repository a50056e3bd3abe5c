"""
Constants shared by configuration, adapters and extraction.

Provider ids, display names, default and suggested models, prompt limits and
the system prompts sent to providers and to the judge.
"""

from typing import Literal

# Provider ids accepted in AnalysisConfig.providers
Provider = Literal["gemini", "openai", "perplexity", "copilot"]

SUPPORTED_PROVIDERS: tuple[str, ...] = ("gemini", "openai", "perplexity", "copilot")

PROVIDER_DISPLAY_NAMES: dict[str, str] = {
    "gemini": "Google Gemini",
    "openai": "OpenAI",
    "perplexity": "Perplexity",
    "copilot": "Microsoft Copilot",
}

# Used when a provider is selected without an explicit model and the
# caller opts into defaults
DEFAULT_MODELS: dict[str, str] = {
    "gemini": "gemini-2.5-flash",
    "openai": "gpt-4o-mini",
    "perplexity": "sonar",
    "copilot": "gpt-4o",
}

# Suggested model ids per provider (shown by `llm-visibility providers`).
# Any other model id is accepted and passed through to the vendor.
MODEL_OPTIONS: dict[str, tuple[str, ...]] = {
    "gemini": ("gemini-2.5-flash", "gemini-2.5-pro", "gemini-2.0-flash"),
    "openai": ("gpt-4o-mini", "gpt-4o", "gpt-4-turbo"),
    "perplexity": (
        "sonar",
        "sonar-pro",
        "sonar-reasoning",
        "sonar-reasoning-pro",
        "sonar-deep-research",
        "r1-1776",
    ),
    "copilot": ("gpt-4o", "gpt-4o-mini"),
}

# ~25k tokens at 4 chars/token
MAX_PROMPT_LENGTH = 100_000

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful assistant answering a user's question. Answer naturally "
    "and completely, naming specific products, companies or services where "
    "relevant, as you would for any user."
)

JUDGE_SYSTEM_PROMPT = (
    "You analyze answers written by AI assistants for brand visibility research. "
    "You respond with a single JSON object and nothing else."
)

# Default environment variable for each credential field
DEFAULT_CREDENTIAL_ENV: dict[str, str] = {
    "gemini": "GEMINI_API_KEY",
    "openai": "OPENAI_API_KEY",
    "perplexity": "PERPLEXITY_API_KEY",
    "copilot_key": "AZURE_OPENAI_API_KEY",
    "copilot_endpoint": "AZURE_OPENAI_ENDPOINT",
}


def default_models_for(providers: list[str]) -> dict[str, list[str]]:
    """
    Build a models mapping holding the default model of each provider.

    Example:
        >>> default_models_for(["gemini", "openai"])
        {'gemini': ['gemini-2.5-flash'], 'openai': ['gpt-4o-mini']}
    """
    return {provider: [DEFAULT_MODELS[provider]] for provider in providers}
