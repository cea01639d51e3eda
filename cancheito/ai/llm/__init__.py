"""LLM provider registry with lazy loading.

Provider modules import their SDK only when a completion is requested, so
the registry works with none of the optional extras installed.

Usage:
    from cancheito.ai.llm import get_provider, parse_json_response

    provider = get_provider("gemini")
    raw = provider.complete(prompt, system=system_prompt)
    summary = parse_json_response(raw, DashboardSummary)
"""

from __future__ import annotations

import importlib

from cancheito.ai.llm.base import LLMProvider, parse_json_response

__all__ = ["LLMProvider", "available_providers", "get_provider", "parse_json_response"]

# provider name -> class name in cancheito.ai.llm.<name>
_REGISTRY: dict[str, str] = {
    "anthropic": "AnthropicProvider",
    "gemini": "GeminiProvider",
    "ollama": "OllamaProvider",
    "openai": "OpenAIProvider",
}


def get_provider(name: str) -> LLMProvider:
    """Instantiate a provider by name (case-insensitive).

    Raises:
        ValueError: If the provider name is unknown.
    """
    key = name.strip().lower()
    if key not in _REGISTRY:
        msg = f"Unknown LLM provider '{name}'. Available: {', '.join(available_providers())}"
        raise ValueError(msg)

    module = importlib.import_module(f"{__name__}.{key}")
    return getattr(module, _REGISTRY[key])()  # type: ignore[no-any-return]


def available_providers() -> list[str]:
    return sorted(_REGISTRY)
