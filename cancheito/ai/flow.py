"""Shared request/response plumbing for the narrative flows.

Providers are synchronous SDK wrappers; calls run in a worker thread so the
event loop stays responsive while a completion is in flight.
"""

import asyncio
import json
import logging
from typing import TypeVar

from pydantic import BaseModel

from cancheito.ai.llm import get_provider
from cancheito.ai.llm.base import LLMProvider, parse_json_response
from cancheito.ai.schemas import AIResult
from cancheito.core.config import AIConfig

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def build_system_prompt(role: str, model_cls: type[BaseModel], language: str) -> str:
    """Role description plus the JSON schema the answer must satisfy."""
    schema = json.dumps(model_cls.model_json_schema(by_alias=True), indent=2)
    return (
        f"{role}\n\n"
        f"Write every natural-language value in {language}.\n"
        "Return ONLY a JSON object (no markdown, no explanation) that validates "
        f"against this JSON schema:\n{schema}"
    )


async def run_structured(
    provider: LLMProvider,
    prompt: str,
    system: str,
    model_cls: type[M],
    *,
    model: str | None = None,
    label: str = "AI request",
) -> AIResult[M]:
    """Call the provider and validate its answer against ``model_cls``."""
    try:
        raw = await asyncio.to_thread(provider.complete, prompt, model, system=system)
        if not raw:
            msg = "empty response"
            raise ValueError(msg)
        data = parse_json_response(raw, model_cls)
    except Exception as e:  # noqa: BLE001
        logger.warning("%s failed (%s): %s", label, provider.provider_id, e)
        return AIResult[model_cls].fail(str(e) or type(e).__name__)  # type: ignore[valid-type]
    logger.debug("%s succeeded (%s)", label, provider.provider_id)
    return AIResult[model_cls].ok(data)  # type: ignore[valid-type]


def provider_from_config(config: AIConfig) -> LLMProvider:
    return get_provider(config.provider)
