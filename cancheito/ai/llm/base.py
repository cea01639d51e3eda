"""Abstract base class for LLM providers and shared response parsing."""

import json
import logging
import os
import re
from abc import ABC, abstractmethod
from typing import TypeVar

from pydantic import BaseModel

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

DEFAULT_SYSTEM_PROMPT = (
    "You are an analytics assistant for the administrators of a job-matching "
    "platform. Return ONLY a JSON object (no markdown, no explanation)."
)


def strip_fences(raw_text: str) -> str:
    """Remove a surrounding ```json ... ``` fence, if any."""
    cleaned = re.sub(r"^```(?:json)?\s*\n?", "", raw_text.strip())
    return re.sub(r"\n?```\s*$", "", cleaned)


def parse_json_response(raw_text: str, model_cls: type[M]) -> M:
    """Parse an LLM response text into ``model_cls``.

    Raises:
        ValueError: If the text is not JSON or does not match the model
            (pydantic's ValidationError is a ValueError).
    """
    try:
        data = json.loads(strip_fences(raw_text))
    except json.JSONDecodeError as e:
        msg = f"Failed to parse LLM response as JSON: {e}"
        raise ValueError(msg) from e

    return model_cls.model_validate(data)


def missing_sdk(package: str, extra: str, purpose: str = "AI insights") -> ImportError:
    msg = (
        f"{package} is required for {purpose}. "
        f"Install with: pip install 'cancheito-admin[{extra}]'"
    )
    return ImportError(msg)


class LLMProvider(ABC):
    """Base class that every LLM provider must implement.

    ``complete`` resolves the key, model and system prompt, then hands the
    request to the provider's ``_send``.
    """

    temperature: float = 0.2
    max_tokens: int = 2048

    @property
    @abstractmethod
    def provider_id(self) -> str:
        """Unique identifier for this provider (e.g. 'anthropic')."""

    @property
    @abstractmethod
    def default_model(self) -> str:
        """The default model ID used when no override is specified."""

    @property
    @abstractmethod
    def env_var(self) -> str | None:
        """Environment variable name for the API key, or None if not needed."""

    def api_key(self) -> str | None:
        if self.env_var is None:
            return None
        key = os.environ.get(self.env_var)
        if not key:
            msg = f"{self.env_var} environment variable is required"
            raise ValueError(msg)
        return key

    def complete(
        self,
        prompt: str,
        model: str | None = None,
        *,
        system: str | None = None,
    ) -> str:
        """Send a prompt to the LLM and return raw response text.

        Args:
            prompt: User message.
            model: Override the provider's default model. None uses default.
            system: Override the system prompt. None falls back to
                DEFAULT_SYSTEM_PROMPT.

        Raises:
            ValueError: If the API key is not set.
            ImportError: If the provider SDK is not installed.
        """
        key = self.api_key()
        use_model = model or self.default_model
        use_system = system if system is not None else DEFAULT_SYSTEM_PROMPT
        logger.info("Requesting completion from %s (%s)...", self.provider_id, use_model)
        return self._send(prompt, use_model, use_system, key)

    @abstractmethod
    def _send(self, prompt: str, model: str, system: str, api_key: str | None) -> str:
        """Perform the SDK call and return the response text."""
