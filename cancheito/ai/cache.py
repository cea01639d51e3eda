"""Client-side cache for the dashboard's AI insights.

One entry under a fixed key holds the executive summary, the predictions
and the fetch timestamp. The entry expires a fixed TTL after it was
fetched. A corrupt entry is discarded instead of failing the caller.
"""

import asyncio
import json
import logging
import sqlite3
from collections.abc import Callable
from datetime import date, datetime, timedelta

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from cancheito.ai.dashboard_summary import summarize_dashboard
from cancheito.ai.llm.base import LLMProvider
from cancheito.ai.predictive import generate_predictions
from cancheito.ai.schemas import (
    AIResult,
    DashboardSummary,
    DashboardSummaryInput,
    PredictiveInput,
    PredictiveOutput,
)
from cancheito.core.db import delete_cache_entry, get_cache_entry, put_cache_entry

logger = logging.getLogger(__name__)

DEFAULT_KEY = "aiDashboardAnalytics"
DEFAULT_TTL = timedelta(hours=12)


class DashboardInsights(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    summary: DashboardSummary
    predictions: PredictiveOutput
    fetched_at: datetime = Field(alias="timestamp")
    from_cache: bool = Field(default=False, exclude=True)


class AnalyticsCache:
    """Single-entry store with wall-clock expiry.

    ``clock`` is injectable so expiry can be tested without waiting.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        key: str = DEFAULT_KEY,
        ttl: timedelta = DEFAULT_TTL,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._conn = conn
        self.key = key
        self.ttl = ttl
        self._clock = clock

    def read(self) -> DashboardInsights | None:
        """Return the cached insights if present and fresh, else None."""
        entry = get_cache_entry(self._conn, self.key)
        if entry is None:
            return None
        payload, fetched_raw = entry
        try:
            fetched_at = datetime.fromisoformat(fetched_raw)
            if fetched_at.tzinfo is not None:
                # e.g. a "...Z" timestamp; the clock is naive local time.
                fetched_at = fetched_at.astimezone().replace(tzinfo=None)
            data = json.loads(payload)
            insights = DashboardInsights.model_validate({**data, "timestamp": fetched_at})
        except (ValueError, TypeError, ValidationError) as e:
            logger.warning("Discarding corrupt cache entry '%s': %s", self.key, e)
            delete_cache_entry(self._conn, self.key)
            return None

        age = self._clock() - fetched_at
        if age >= self.ttl:
            logger.info("Cached insights expired (age %s)", age)
            return None
        return insights.model_copy(update={"from_cache": True})

    def write(self, summary: DashboardSummary, predictions: PredictiveOutput) -> DashboardInsights:
        insights = DashboardInsights(
            summary=summary, predictions=predictions, fetched_at=self._clock(),
        )
        payload = insights.model_dump_json(by_alias=True)
        put_cache_entry(self._conn, self.key, payload, insights.fetched_at)
        logger.debug("Cached insights under '%s'", self.key)
        return insights

    def clear(self) -> bool:
        return delete_cache_entry(self._conn, self.key)


async def load_dashboard_insights(
    cache: AnalyticsCache,
    provider: LLMProvider,
    counters: DashboardSummaryInput,
    history: PredictiveInput,
    *,
    model: str | None = None,
    language: str = "Spanish",
    today: Callable[[], date] = date.today,
    refresh: bool = False,
) -> AIResult[DashboardInsights]:
    """Serve fresh cached insights, or fetch summary and predictions together.

    The cache is written only when both requests succeed.
    """
    if not refresh:
        cached = cache.read()
        if cached is not None:
            logger.info("Using cached AI insights from %s", cached.fetched_at)
            return AIResult[DashboardInsights].ok(cached)

    summary, predictions = await asyncio.gather(
        summarize_dashboard(counters, provider, model=model, language=language),
        generate_predictions(history, provider, model=model, language=language, today=today),
    )
    if not (summary.success and predictions.success):
        errors = [r.error for r in (summary, predictions) if not r.success and r.error]
        msg = "; ".join(errors) or "AI insights unavailable"
        logger.warning("AI insights not cached: %s", msg)
        return AIResult[DashboardInsights].fail(msg)

    insights = cache.write(summary.data, predictions.data)  # type: ignore[arg-type]
    return AIResult[DashboardInsights].ok(insights)
