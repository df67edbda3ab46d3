"""LLM provider factory.

Reads LLM_PROVIDER env var and returns the appropriate provider instance.
Defaults to "mock" so simulation runs and tests never need API keys.

When called while a turn's MetricsCollector is active, the cached base
provider is wrapped in TrackedProvider so token usage lands in the turn
metrics. Outside a turn the raw base provider is returned.
"""

import logging
import os

from ledgerquest.metrics import get_current_collector
from ledgerquest.services.llm.interface import LLMProvider

logger = logging.getLogger("llm.factory")

# Module-level singleton: one shared client serves the whole roster.
_cached_provider: LLMProvider | None = None
_cached_provider_name: str | None = None

_HOSTED = ("openrouter", "openai", "local", "ollama")


def get_llm_provider(*, timeout: float = 30.0) -> LLMProvider:
    """Return a configured LLM provider based on LLM_PROVIDER env var.

    Supported values:
        "mock"       - Deterministic responses, no network (default)
        "openrouter" - OpenRouter API (requires OPENROUTER_API_KEY or LLM_API_KEY)
        "openai"     - OpenAI API (requires LLM_API_KEY)
        "local"      - Local Ollama/vLLM (no API key needed)
        "ollama"     - Alias for local Ollama (no API key needed)

    ``timeout`` only applies when the base provider is first built. To force
    re-creation (e.g. after env var change in tests), call
    ``reset_llm_provider()``.
    """
    global _cached_provider, _cached_provider_name

    provider_name = os.environ.get("LLM_PROVIDER", "mock").lower()

    if _cached_provider is None or _cached_provider_name != provider_name:
        if provider_name == "mock":
            from ledgerquest.services.llm.mock import MockLLMProvider
            _cached_provider = MockLLMProvider()
        elif provider_name in _HOSTED:
            from ledgerquest.services.llm.openai_compatible import OpenAICompatibleProvider
            _cached_provider = OpenAICompatibleProvider(provider_name, timeout=timeout)
        else:
            raise ValueError(
                f"Unknown LLM_PROVIDER='{provider_name}'. "
                f"Valid options: mock, {', '.join(_HOSTED)}"
            )
        _cached_provider_name = provider_name
        logger.info("LLM provider selected: %s", provider_name)

    if get_current_collector() is not None:
        from ledgerquest.services.llm.tracked_provider import TrackedProvider
        return TrackedProvider(_cached_provider)

    return _cached_provider


def reset_llm_provider() -> None:
    """Clear the cached provider. Used in tests to switch providers mid-run."""
    global _cached_provider, _cached_provider_name
    _cached_provider = None
    _cached_provider_name = None
