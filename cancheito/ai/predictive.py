"""Seven-day signup and offer-creation forecasts.

The model does the forecasting. This module only pre-aggregates the
histories and post-filters the answer: the returned series are clipped to
the seven requested day labels, at most seven entries each.
"""

import json
import logging
from collections.abc import Callable, Iterable
from datetime import date, timedelta

from cancheito.ai.flow import build_system_prompt, run_structured
from cancheito.ai.llm.base import LLMProvider
from cancheito.ai.schemas import (
    AIResult,
    HistoryPoint,
    PredictionPoint,
    PredictiveInput,
    PredictiveOutput,
)
from cancheito.sync.normalizer import short_label

logger = logging.getLogger(__name__)

FORECAST_DAYS = 7

_ROLE = (
    "You are a data analyst for Cancheito, a job-matching platform. Given the "
    "daily history of new user signups and new job offers, forecast the daily "
    "count of each for the requested future days. Predictions are "
    "non-negative integers."
)


def aggregate_history(points: Iterable[HistoryPoint]) -> list[HistoryPoint]:
    """Sum counts per exact date string, ordered by date."""
    totals: dict[str, int] = {}
    for point in points:
        totals[point.date] = totals.get(point.date, 0) + point.count
    return [HistoryPoint(date=day, count=count) for day, count in sorted(totals.items())]


def future_date_labels(today: date, days: int = FORECAST_DAYS) -> list[str]:
    """Labels for the next ``days`` calendar days, starting tomorrow."""
    return [short_label(today + timedelta(days=i)) for i in range(1, days + 1)]


def clip_predictions(
    points: Iterable[PredictionPoint],
    labels: list[str],
    limit: int = FORECAST_DAYS,
) -> list[PredictionPoint]:
    """Keep only entries for requested labels, in returned order, at most ``limit``."""
    wanted = set(labels)
    kept = [p for p in points if p.date in wanted]
    return kept[:limit]


def build_prompt(request: PredictiveInput, labels: list[str]) -> str:
    users = [p.model_dump() for p in request.user_history]
    offers = [p.model_dump() for p in request.offer_history]
    return (
        f"User signup history (date, count):\n{json.dumps(users)}\n\n"
        f"Job offer creation history (date, count):\n{json.dumps(offers)}\n\n"
        f"Forecast one value per day for exactly these dates: {', '.join(labels)}.\n"
        "Use those labels verbatim as the 'date' of each prediction."
    )


async def generate_predictions(
    request: PredictiveInput,
    provider: LLMProvider,
    *,
    model: str | None = None,
    language: str = "Spanish",
    today: Callable[[], date] = date.today,
) -> AIResult[PredictiveOutput]:
    aggregated = PredictiveInput(
        user_history=aggregate_history(request.user_history),
        offer_history=aggregate_history(request.offer_history),
    )
    labels = future_date_labels(today())
    result = await run_structured(
        provider,
        build_prompt(aggregated, labels),
        build_system_prompt(_ROLE, PredictiveOutput, language),
        PredictiveOutput,
        model=model,
        label="Predictive analytics",
    )
    if not result.success or result.data is None:
        return result

    raw = result.data
    clipped = PredictiveOutput(
        user_prediction=clip_predictions(raw.user_prediction, labels),
        offer_prediction=clip_predictions(raw.offer_prediction, labels),
    )
    dropped = (
        len(raw.user_prediction) + len(raw.offer_prediction)
        - len(clipped.user_prediction) - len(clipped.offer_prediction)
    )
    if dropped:
        logger.debug("Dropped %d prediction entries outside the requested days", dropped)
    return AIResult[PredictiveOutput].ok(clipped)
