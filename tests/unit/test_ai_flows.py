"""Tests for the narrative flows: prompts, validation and prediction clipping."""

import json
from datetime import date
from unittest.mock import MagicMock

import pytest

from cancheito.ai.account_reasoning import build_prompt as account_prompt
from cancheito.ai.account_reasoning import reason_account_action
from cancheito.ai.dashboard_summary import summarize_dashboard
from cancheito.ai.flow import build_system_prompt
from cancheito.ai.llm.base import LLMProvider
from cancheito.ai.predictive import (
    aggregate_history,
    clip_predictions,
    future_date_labels,
    generate_predictions,
)
from cancheito.ai.schemas import (
    AccountAction,
    AccountReasoningInput,
    DashboardSummary,
    DashboardSummaryInput,
    HistoryPoint,
    PredictionPoint,
    PredictiveInput,
)

TODAY = date(2026, 10, 19)
LABELS = ["Oct 20", "Oct 21", "Oct 22", "Oct 23", "Oct 24", "Oct 25", "Oct 26"]


def _make_provider(response: str | None = None, error: Exception | None = None) -> MagicMock:
    provider = MagicMock(spec=LLMProvider)
    provider.provider_id = "fake"
    if error is not None:
        provider.complete.side_effect = error
    else:
        provider.complete.return_value = response
    return provider


def _make_request(action: AccountAction = AccountAction.SUSPEND) -> AccountReasoningInput:
    return AccountReasoningInput(
        action_type=action,
        user_email="ana@x.com",
        user_name="Ana Torres",
        user_type="employer",
        account_state=True,
    )


def _counters() -> DashboardSummaryInput:
    return DashboardSummaryInput(
        total_users=120, new_users_last_30_days=14, total_offers=40,
        new_offers_last_30_days=6, active_offers=25, closed_offers=15,
    )


# ---------------------------------------------------------------------------
# Contracts
# ---------------------------------------------------------------------------
class TestContracts:
    def test_camel_case_aliases(self) -> None:
        request = AccountReasoningInput.model_validate({
            "actionType": "activate",
            "userEmail": "a@b.c",
            "userName": "A",
            "userType": "applicant",
            "accountState": False,
        })
        assert request.action_type is AccountAction.ACTIVATE
        assert request.model_dump(by_alias=True)["accountState"] is False

    def test_counters_non_negative(self) -> None:
        with pytest.raises(ValueError):
            DashboardSummaryInput(
                total_users=-1, new_users_last_30_days=0, total_offers=0,
                new_offers_last_30_days=0, active_offers=0, closed_offers=0,
            )

    def test_system_prompt_embeds_schema_and_language(self) -> None:
        system = build_system_prompt("Role.", DashboardSummary, "Spanish")
        assert system.startswith("Role.")
        assert "Spanish" in system
        assert "executiveSummary" in system
        assert "keyObservations" in system


# ---------------------------------------------------------------------------
# Account reasoning
# ---------------------------------------------------------------------------
class TestAccountReasoning:
    def test_prompt_mentions_action_and_state(self) -> None:
        prompt = account_prompt(_make_request())
        assert "Action: suspend" in prompt
        assert "Current account state: active" in prompt
        assert "Ana Torres" in prompt

    async def test_success(self) -> None:
        provider = _make_provider('{"reasoningSummary": "The user will lose access."}')
        result = await reason_account_action(_make_request(), provider, model="m1")
        assert result.success is True
        assert result.data is not None
        assert result.data.reasoning_summary == "The user will lose access."
        args, kwargs = provider.complete.call_args
        assert args[1] == "m1"
        assert "reasoningSummary" in kwargs["system"]

    async def test_provider_error_is_result(self) -> None:
        provider = _make_provider(error=ValueError("GOOGLE_API_KEY environment variable is required"))
        result = await reason_account_action(_make_request(), provider)
        assert result.success is False
        assert result.data is None
        assert "GOOGLE_API_KEY" in (result.error or "")

    async def test_missing_sdk_is_result(self) -> None:
        provider = _make_provider(error=ImportError("google-genai is required"))
        result = await reason_account_action(_make_request(), provider)
        assert result.success is False

    async def test_malformed_response(self) -> None:
        result = await reason_account_action(_make_request(), _make_provider("I think..."))
        assert result.success is False
        assert "JSON" in (result.error or "")

    async def test_empty_response(self) -> None:
        result = await reason_account_action(_make_request(), _make_provider(""))
        assert result.success is False
        assert result.error == "empty response"


# ---------------------------------------------------------------------------
# Dashboard summary
# ---------------------------------------------------------------------------
class TestDashboardSummary:
    async def test_success(self) -> None:
        payload = {
            "executiveSummary": "Growth is steady.\n\nOffers are healthy.",
            "keyObservations": ["a", "b", "c"],
            "recommendations": ["x", "y"],
        }
        provider = _make_provider(f"```json\n{json.dumps(payload)}\n```")
        result = await summarize_dashboard(_counters(), provider, language="English")
        assert result.success is True
        assert result.data is not None
        assert result.data.key_observations == ["a", "b", "c"]
        prompt = provider.complete.call_args.args[0]
        assert "Total users: 120" in prompt
        assert "Closed offers: 15" in prompt
        assert "English" in provider.complete.call_args.kwargs["system"]

    async def test_shape_violation(self) -> None:
        provider = _make_provider('{"executiveSummary": "x", "keyObservations": "not a list"}')
        result = await summarize_dashboard(_counters(), provider)
        assert result.success is False


# ---------------------------------------------------------------------------
# Predictions
# ---------------------------------------------------------------------------
class TestPredictionHelpers:
    def test_aggregate_sums_duplicate_dates(self) -> None:
        points = [
            HistoryPoint(date="2026-10-02", count=1),
            HistoryPoint(date="2026-10-01", count=1),
            HistoryPoint(date="2026-10-02", count=2),
        ]
        assert aggregate_history(points) == [
            HistoryPoint(date="2026-10-01", count=1),
            HistoryPoint(date="2026-10-02", count=3),
        ]

    def test_aggregate_empty(self) -> None:
        assert aggregate_history([]) == []

    def test_future_labels_start_tomorrow(self) -> None:
        assert future_date_labels(TODAY) == LABELS

    def test_future_labels_cross_year(self) -> None:
        labels = future_date_labels(date(2026, 12, 29))
        assert labels[:4] == ["Dec 30", "Dec 31", "Jan 1", "Jan 2"]

    def test_clip_filters_and_truncates(self) -> None:
        raw = [
            PredictionPoint(date="Oct 19", prediction=1),
            PredictionPoint(date="Oct 20", prediction=2),
            PredictionPoint(date="Oct 20", prediction=3),
            PredictionPoint(date="Oct 21", prediction=4),
            PredictionPoint(date="2026-10-22", prediction=5),
            PredictionPoint(date="Oct 22", prediction=6),
            PredictionPoint(date="Oct 23", prediction=7),
            PredictionPoint(date="Nov 1", prediction=8),
            PredictionPoint(date="Oct 24", prediction=9),
            PredictionPoint(date="Oct 27", prediction=10),
        ]
        clipped = clip_predictions(raw, LABELS)
        assert len(clipped) <= 7
        assert all(p.date in LABELS for p in clipped)
        assert [p.prediction for p in clipped] == [2, 3, 4, 6, 7, 9]

    def test_clip_truncates_to_seven(self) -> None:
        raw = [PredictionPoint(date=label, prediction=i) for i, label in enumerate(LABELS * 2)]
        assert len(clip_predictions(raw, LABELS)) == 7


class TestGeneratePredictions:
    async def test_response_clipped_to_requested_days(self) -> None:
        payload = {
            "userPrediction": [{"date": d, "prediction": 3} for d in ["Oct 19", *LABELS, "Oct 27"]],
            "offerPrediction": [{"date": "Oct 20", "prediction": 1}],
        }
        provider = _make_provider(json.dumps(payload))
        request = PredictiveInput(
            user_history=[
                HistoryPoint(date="2026-10-01", count=1),
                HistoryPoint(date="2026-10-01", count=1),
            ],
        )
        result = await generate_predictions(request, provider, today=lambda: TODAY)
        assert result.success is True
        assert result.data is not None
        assert [p.date for p in result.data.user_prediction] == LABELS
        assert len(result.data.offer_prediction) == 1

        prompt = provider.complete.call_args.args[0]
        assert '{"date": "2026-10-01", "count": 2}' in prompt
        assert ", ".join(LABELS) in prompt

    async def test_failure_passed_through(self) -> None:
        provider = _make_provider(error=RuntimeError("quota exceeded"))
        result = await generate_predictions(PredictiveInput(), provider, today=lambda: TODAY)
        assert result.success is False
        assert result.error == "quota exceeded"
