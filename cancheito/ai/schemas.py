"""Request/response contracts for the narrative analytics flows.

Field aliases are the camelCase keys exchanged with the model (and stored
in the insight cache); Python code uses the snake_case names.
"""

from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class AIResult(BaseModel, Generic[T]):
    """Outcome of one AI call. Failures are reported, never raised."""

    success: bool
    data: T | None = None
    error: str | None = None

    @classmethod
    def ok(cls, data: T) -> "AIResult[T]":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str) -> "AIResult[T]":
        return cls(success=False, error=error)


class _Contract(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)


# ---------------------------------------------------------------------------
# Account-action reasoning
# ---------------------------------------------------------------------------


class AccountAction(str, Enum):
    ACTIVATE = "activate"
    SUSPEND = "suspend"


class AccountReasoningInput(_Contract):
    action_type: AccountAction = Field(alias="actionType")
    user_email: str = Field(alias="userEmail")
    user_name: str = Field(alias="userName")
    user_type: str = Field(alias="userType")
    account_state: bool = Field(
        alias="accountState",
        description="True when the account is currently active",
    )


class AccountReasoningOutput(_Contract):
    reasoning_summary: str = Field(
        alias="reasoningSummary",
        description="Short explanation of the consequences of the action",
    )


# ---------------------------------------------------------------------------
# Executive summary
# ---------------------------------------------------------------------------


class DashboardSummaryInput(_Contract):
    total_users: int = Field(alias="totalUsers", ge=0)
    new_users_last_30_days: int = Field(alias="newUsersLast30Days", ge=0)
    total_offers: int = Field(alias="totalOffers", ge=0)
    new_offers_last_30_days: int = Field(alias="newOffersLast30Days", ge=0)
    active_offers: int = Field(alias="activeOffers", ge=0)
    closed_offers: int = Field(alias="closedOffers", ge=0)


class DashboardSummary(_Contract):
    executive_summary: str = Field(
        alias="executiveSummary",
        description="Executive summary of the platform state, one or more paragraphs",
    )
    key_observations: list[str] = Field(
        alias="keyObservations",
        description="3 to 4 key observations",
    )
    recommendations: list[str] = Field(description="2 to 3 actionable recommendations")


# ---------------------------------------------------------------------------
# Predictions
# ---------------------------------------------------------------------------


class HistoryPoint(_Contract):
    date: str = Field(description="Day in yyyy-MM-dd format")
    count: int = Field(ge=0)


class PredictiveInput(_Contract):
    user_history: list[HistoryPoint] = Field(alias="userHistory", default_factory=list)
    offer_history: list[HistoryPoint] = Field(alias="offerHistory", default_factory=list)


class PredictionPoint(_Contract):
    date: str = Field(description="Short month-day label, e.g. 'Oct 20'")
    prediction: int


class PredictiveOutput(_Contract):
    user_prediction: list[PredictionPoint] = Field(alias="userPrediction")
    offer_prediction: list[PredictionPoint] = Field(alias="offerPrediction")
