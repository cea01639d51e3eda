"""Dashboard counters and series computed from raw Users/Offers snapshots."""

import logging
from collections import Counter
from collections.abc import Iterable
from datetime import date, datetime, timedelta

from pydantic import BaseModel, Field

from cancheito.ai.schemas import DashboardSummaryInput, HistoryPoint, PredictiveInput
from cancheito.core.records import (
    ACCOUNT_SUSPENDED,
    OFFER_ACTIVE,
    OFFER_CLOSED,
    StoredOffer,
    StoredUser,
    Timestamp,
)
from cancheito.core.schemas import UserProfile
from cancheito.sync.aggregator import as_records, build_users
from cancheito.sync.normalizer import DATE_FORMAT, RawRecords, short_label, to_datetime

logger = logging.getLogger(__name__)

RECENT_USERS = 5
SERIES_DAYS = 7
NEW_WINDOW = timedelta(days=30)


class DailyCount(BaseModel):
    date: str
    count: int = 0


class UserMetrics(BaseModel):
    total: int = 0
    verified: int = 0
    suspended: int = 0
    new_last_30_days: int = 0
    signups: list[DailyCount] = Field(default_factory=list)


class OfferMetrics(BaseModel):
    total: int = 0
    active: int = 0
    closed: int = 0
    new_last_30_days: int = 0
    created: list[DailyCount] = Field(default_factory=list)


class DashboardMetrics(BaseModel):
    users: UserMetrics
    offers: OfferMetrics
    recent_users: list[UserProfile] = Field(default_factory=list)

    @property
    def summary_input(self) -> DashboardSummaryInput:
        return DashboardSummaryInput(
            total_users=self.users.total,
            new_users_last_30_days=self.users.new_last_30_days,
            total_offers=self.offers.total,
            new_offers_last_30_days=self.offers.new_last_30_days,
            active_offers=self.offers.active,
            closed_offers=self.offers.closed,
        )


def last_days(today: date, days: int = SERIES_DAYS) -> list[date]:
    """The ``days`` calendar days ending today, oldest first."""
    return [today - timedelta(days=i) for i in range(days - 1, -1, -1)]


def daily_series(stamps: Iterable[datetime], today: date, days: int = SERIES_DAYS) -> list[DailyCount]:
    per_day = Counter(dt.date() for dt in stamps)
    return [DailyCount(date=short_label(day), count=per_day.get(day, 0)) for day in last_days(today, days)]


def history_points(stamps: Iterable[Timestamp]) -> list[HistoryPoint]:
    """One ``{date, count: 1}`` point per dated record."""
    points = []
    for value in stamps:
        dt = to_datetime(value)
        if dt is not None:
            points.append(HistoryPoint(date=dt.strftime(DATE_FORMAT), count=1))
    return points


def _stored_users(users: RawRecords) -> list[StoredUser]:
    return [StoredUser.model_validate(raw) for raw in users.values() if raw is not None]


def _stored_offers(offers: RawRecords) -> list[StoredOffer]:
    return [StoredOffer.model_validate(raw) for raw in offers.values() if raw is not None]


def user_metrics(users: RawRecords, now: datetime) -> UserMetrics:
    stored = _stored_users(users)
    cutoff = now - NEW_WINDOW
    stamps = [dt for dt in (to_datetime(u.registered_at) for u in stored) if dt is not None]
    return UserMetrics(
        total=len(stored),
        verified=sum(1 for u in stored if u.verified is True),
        suspended=sum(1 for u in stored if u.account_state == ACCOUNT_SUSPENDED),
        new_last_30_days=sum(1 for dt in stamps if dt > cutoff),
        signups=daily_series(stamps, now.date()),
    )


def offer_metrics(offers: RawRecords, now: datetime) -> OfferMetrics:
    stored = _stored_offers(offers)
    cutoff = now - NEW_WINDOW
    stamps = [dt for dt in (to_datetime(o.created_at) for o in stored) if dt is not None]
    return OfferMetrics(
        total=len(stored),
        active=sum(1 for o in stored if o.status == OFFER_ACTIVE),
        closed=sum(1 for o in stored if o.status == OFFER_CLOSED),
        new_last_30_days=sum(1 for dt in stamps if dt > cutoff),
        created=daily_series(stamps, now.date()),
    )


def predictive_history(users: RawRecords, offers: RawRecords) -> PredictiveInput:
    return PredictiveInput(
        user_history=history_points(u.registered_at for u in _stored_users(users)),
        offer_history=history_points(o.created_at for o in _stored_offers(offers)),
    )


def compute_dashboard_metrics(
    users_value: object,
    offers_value: object,
    now: datetime | None = None,
) -> DashboardMetrics:
    """Everything the overview page shows, from one read of each collection."""
    now = now or datetime.now()
    users = as_records(users_value)
    offers = as_records(offers_value)
    metrics = DashboardMetrics(
        users=user_metrics(users, now),
        offers=offer_metrics(offers, now),
        recent_users=build_users(users)[:RECENT_USERS],
    )
    logger.debug(
        "Metrics: %d users, %d offers", metrics.users.total, metrics.offers.total,
    )
    return metrics
