"""Tests for the AI insight cache and the dashboard insights loader."""

import json
from datetime import date, datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from cancheito.ai.cache import AnalyticsCache, load_dashboard_insights
from cancheito.ai.llm.base import LLMProvider
from cancheito.ai.schemas import (
    DashboardSummary,
    DashboardSummaryInput,
    PredictionPoint,
    PredictiveInput,
    PredictiveOutput,
)
from cancheito.core.db import get_cache_entry, init_db, put_cache_entry

NOW = datetime(2026, 10, 19, 12, 0)

SUMMARY = {
    "executiveSummary": "Steady growth.",
    "keyObservations": ["a", "b", "c"],
    "recommendations": ["x", "y"],
}
PREDICTIONS = {
    "userPrediction": [{"date": "Oct 20", "prediction": 4}],
    "offerPrediction": [{"date": "Oct 20", "prediction": 1}],
}


@pytest.fixture()
def conn(tmp_path):  # type: ignore[no-untyped-def]
    c = init_db(tmp_path / "cache.db")
    yield c
    c.close()


def _make_cache(conn, now: datetime = NOW) -> AnalyticsCache:  # type: ignore[no-untyped-def]
    return AnalyticsCache(conn, clock=lambda: now)


def _seed(conn, fetched_at: datetime, summary: str = "Cached summary") -> None:  # type: ignore[no-untyped-def]
    payload = {
        "summary": {**SUMMARY, "executiveSummary": summary},
        "predictions": PREDICTIONS,
    }
    put_cache_entry(conn, "aiDashboardAnalytics", json.dumps(payload), fetched_at)


def _counters() -> DashboardSummaryInput:
    return DashboardSummaryInput(
        total_users=10, new_users_last_30_days=2, total_offers=5,
        new_offers_last_30_days=1, active_offers=3, closed_offers=2,
    )


def _make_provider(summary_ok: bool = True, predictions_ok: bool = True) -> MagicMock:
    """Answers by looking at which schema the system prompt asks for."""
    def complete(prompt: str, model: str | None = None, *, system: str | None = None) -> str:
        if "executiveSummary" in (system or ""):
            if not summary_ok:
                raise RuntimeError("summary failed")
            return json.dumps(SUMMARY)
        if not predictions_ok:
            raise RuntimeError("predictions failed")
        return json.dumps(PREDICTIONS)

    provider = MagicMock(spec=LLMProvider)
    provider.provider_id = "fake"
    provider.complete.side_effect = complete
    return provider


async def _load(cache: AnalyticsCache, provider: MagicMock, refresh: bool = False):  # type: ignore[no-untyped-def]
    return await load_dashboard_insights(
        cache, provider, _counters(), PredictiveInput(),
        today=lambda: date(2026, 10, 19), refresh=refresh,
    )


# ---------------------------------------------------------------------------
# AnalyticsCache
# ---------------------------------------------------------------------------
class TestAnalyticsCache:
    def test_empty(self, conn) -> None:  # type: ignore[no-untyped-def]
        assert _make_cache(conn).read() is None

    def test_fresh_entry(self, conn) -> None:  # type: ignore[no-untyped-def]
        _seed(conn, NOW - timedelta(hours=1))
        insights = _make_cache(conn).read()
        assert insights is not None
        assert insights.from_cache is True
        assert insights.summary.executive_summary == "Cached summary"
        assert insights.fetched_at == NOW - timedelta(hours=1)

    def test_expired_entry(self, conn) -> None:  # type: ignore[no-untyped-def]
        _seed(conn, NOW - timedelta(hours=13))
        assert _make_cache(conn).read() is None

    def test_exactly_ttl_is_expired(self, conn) -> None:  # type: ignore[no-untyped-def]
        _seed(conn, NOW - timedelta(hours=12))
        assert _make_cache(conn).read() is None

    def test_utc_timestamp_compared_as_local(self, conn) -> None:  # type: ignore[no-untyped-def]
        _seed(conn, (NOW - timedelta(hours=1)).astimezone(timezone.utc))
        insights = _make_cache(conn).read()
        assert insights is not None
        assert insights.fetched_at == NOW - timedelta(hours=1)

    def test_expired_utc_timestamp(self, conn) -> None:  # type: ignore[no-untyped-def]
        _seed(conn, (NOW - timedelta(hours=13)).astimezone(timezone.utc))
        assert _make_cache(conn).read() is None
        assert get_cache_entry(conn, "aiDashboardAnalytics") is not None

    def test_corrupt_json_discarded(self, conn) -> None:  # type: ignore[no-untyped-def]
        put_cache_entry(conn, "aiDashboardAnalytics", "{not json", NOW)
        assert _make_cache(conn).read() is None
        assert get_cache_entry(conn, "aiDashboardAnalytics") is None

    def test_wrong_shape_discarded(self, conn) -> None:  # type: ignore[no-untyped-def]
        put_cache_entry(conn, "aiDashboardAnalytics", '{"summary": 5}', NOW)
        assert _make_cache(conn).read() is None
        assert get_cache_entry(conn, "aiDashboardAnalytics") is None

    def test_write_then_read(self, conn) -> None:  # type: ignore[no-untyped-def]
        cache = _make_cache(conn)
        written = cache.write(
            DashboardSummary.model_validate(SUMMARY),
            PredictiveOutput(
                user_prediction=[PredictionPoint(date="Oct 20", prediction=4)],
                offer_prediction=[],
            ),
        )
        assert written.from_cache is False
        payload, fetched_at = get_cache_entry(conn, "aiDashboardAnalytics")  # type: ignore[misc]
        assert fetched_at == NOW.isoformat()
        assert json.loads(payload)["summary"]["keyObservations"] == ["a", "b", "c"]
        again = cache.read()
        assert again is not None
        assert again.predictions.user_prediction[0].prediction == 4

    def test_clear(self, conn) -> None:  # type: ignore[no-untyped-def]
        _seed(conn, NOW)
        assert _make_cache(conn).clear() is True


# ---------------------------------------------------------------------------
# load_dashboard_insights
# ---------------------------------------------------------------------------
class TestLoadDashboardInsights:
    async def test_fresh_cache_skips_ai(self, conn) -> None:  # type: ignore[no-untyped-def]
        _seed(conn, NOW - timedelta(hours=1))
        provider = _make_provider()
        result = await _load(_make_cache(conn), provider)
        assert result.success is True
        assert result.data is not None
        assert result.data.summary.executive_summary == "Cached summary"
        provider.complete.assert_not_called()

    async def test_stale_cache_refetched_and_overwritten(self, conn) -> None:  # type: ignore[no-untyped-def]
        _seed(conn, NOW - timedelta(hours=13))
        provider = _make_provider()
        result = await _load(_make_cache(conn), provider)
        assert result.success is True
        assert result.data is not None
        assert result.data.summary.executive_summary == "Steady growth."
        assert provider.complete.call_count == 2
        _, fetched_at = get_cache_entry(conn, "aiDashboardAnalytics")  # type: ignore[misc]
        assert fetched_at == NOW.isoformat()

    async def test_refresh_ignores_cache(self, conn) -> None:  # type: ignore[no-untyped-def]
        _seed(conn, NOW - timedelta(hours=1))
        provider = _make_provider()
        result = await _load(_make_cache(conn), provider, refresh=True)
        assert result.data is not None
        assert result.data.from_cache is False
        assert provider.complete.call_count == 2

    @pytest.mark.parametrize(
        ("summary_ok", "predictions_ok"),
        [(False, True), (True, False), (False, False)],
    )
    async def test_partial_failure_not_cached(
        self, conn, summary_ok: bool, predictions_ok: bool,  # type: ignore[no-untyped-def]
    ) -> None:
        provider = _make_provider(summary_ok, predictions_ok)
        result = await _load(_make_cache(conn), provider)
        assert result.success is False
        assert "failed" in (result.error or "")
        assert get_cache_entry(conn, "aiDashboardAnalytics") is None

    async def test_failure_keeps_previous_entry(self, conn) -> None:  # type: ignore[no-untyped-def]
        _seed(conn, NOW - timedelta(hours=20), summary="Old")
        result = await _load(_make_cache(conn), _make_provider(summary_ok=False))
        assert result.success is False
        payload, _ = get_cache_entry(conn, "aiDashboardAnalytics")  # type: ignore[misc]
        assert json.loads(payload)["summary"]["executiveSummary"] == "Old"
