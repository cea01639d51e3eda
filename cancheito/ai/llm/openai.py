"""OpenAI LLM provider (chat completions in JSON mode)."""

from typing import Any

from cancheito.ai.llm.base import LLMProvider, missing_sdk


class OpenAIProvider(LLMProvider):
    """LLM provider using the OpenAI chat completions API.

    Subclasses pointing at OpenAI-compatible servers override ``_client``.
    """

    @property
    def provider_id(self) -> str:
        return "openai"

    @property
    def default_model(self) -> str:
        return "gpt-4o-mini"

    @property
    def env_var(self) -> str | None:
        return "OPENAI_API_KEY"

    def _client(self, api_key: str | None) -> Any:
        try:
            import openai
        except ImportError:
            raise missing_sdk("openai", "openai") from None
        return openai.OpenAI(api_key=api_key)

    def _send(self, prompt: str, model: str, system: str, api_key: str | None) -> str:
        client = self._client(api_key)
        response = client.chat.completions.create(
            model=model,
            temperature=self.temperature,
            response_format={"type": "json_object"},
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
        )
        return response.choices[0].message.content or ""
