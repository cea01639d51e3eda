"""Anthropic Claude LLM provider."""

from cancheito.ai.llm.base import LLMProvider, missing_sdk


class AnthropicProvider(LLMProvider):
    @property
    def provider_id(self) -> str:
        return "anthropic"

    @property
    def default_model(self) -> str:
        return "claude-sonnet-4-20250514"

    @property
    def env_var(self) -> str:
        return "ANTHROPIC_API_KEY"

    def _send(self, prompt: str, model: str, system: str, api_key: str | None) -> str:
        try:
            import anthropic
        except ImportError:
            raise missing_sdk("anthropic", "anthropic") from None

        client = anthropic.Anthropic(api_key=api_key)
        message = client.messages.create(
            model=model,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            system=system,
            messages=[{"role": "user", "content": prompt}],
        )
        # Text blocks only; a JSON answer never spans tool blocks.
        return "".join(getattr(block, "text", "") for block in message.content)
