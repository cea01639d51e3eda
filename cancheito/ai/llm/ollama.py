"""Ollama local LLM provider (OpenAI-compatible API)."""

import os
from typing import Any

from cancheito.ai.llm.base import missing_sdk
from cancheito.ai.llm.openai import OpenAIProvider

_OLLAMA_BASE_URL = "http://localhost:11434/v1"


class OllamaProvider(OpenAIProvider):
    """Local models served by Ollama; no API key. OLLAMA_BASE_URL overrides the server."""

    @property
    def provider_id(self) -> str:
        return "ollama"

    @property
    def default_model(self) -> str:
        return "llama3"

    @property
    def env_var(self) -> None:
        return None

    def _client(self, api_key: str | None) -> Any:
        try:
            import openai
        except ImportError:
            raise missing_sdk("openai", "openai", "Ollama (OpenAI-compatible API)") from None
        base_url = os.environ.get("OLLAMA_BASE_URL", _OLLAMA_BASE_URL)
        return openai.OpenAI(base_url=base_url, api_key="ollama")
