"""Date-range reports over the joined lists."""

import logging
from collections import Counter
from collections.abc import Callable, Iterable
from datetime import date, timedelta
from typing import TypeVar

from pydantic import BaseModel, Field, model_validator

from cancheito.analytics.metrics import DailyCount
from cancheito.core.schemas import JobOffer, Postulation, UserProfile
from cancheito.sync.aggregator import JoinedViews
from cancheito.sync.normalizer import DATE_FORMAT, parse_display_date, short_label

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DateRange(BaseModel):
    """Inclusive range of calendar days."""

    start: date
    end: date

    @model_validator(mode="after")
    def _ordered(self) -> "DateRange":
        if self.start > self.end:
            msg = f"start {self.start} is after end {self.end}"
            raise ValueError(msg)
        return self

    def days(self) -> list[date]:
        span = (self.end - self.start).days
        return [self.start + timedelta(days=i) for i in range(span + 1)]

    def __contains__(self, day: object) -> bool:
        return isinstance(day, date) and self.start <= day <= self.end

    @property
    def file_stem(self) -> str:
        return f"report_{self.start.strftime(DATE_FORMAT)}_to_{self.end.strftime(DATE_FORMAT)}"


class Report(BaseModel):
    window: DateRange
    users: list[UserProfile] = Field(default_factory=list)
    offers: list[JobOffer] = Field(default_factory=list)
    postulations: list[Postulation] = Field(default_factory=list)
    user_series: list[DailyCount] = Field(default_factory=list)
    offer_series: list[DailyCount] = Field(default_factory=list)
    postulation_series: list[DailyCount] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.users or self.offers or self.postulations)


def day_of(display: str) -> date | None:
    dt = parse_display_date(display)
    return dt.date() if dt else None


def within(items: Iterable[T], date_of: Callable[[T], str], window: DateRange) -> list[T]:
    """Items whose date falls inside the window. Unknown dates are excluded."""
    return [item for item in items if day_of(date_of(item)) in window]


def per_day(items: Iterable[T], date_of: Callable[[T], str], window: DateRange) -> list[DailyCount]:
    counts = Counter(day_of(date_of(item)) for item in items)
    return [DailyCount(date=short_label(day), count=counts.get(day, 0)) for day in window.days()]


def build_report(views: JoinedViews, window: DateRange) -> Report:
    users = within(views.users, lambda u: u.registration_date, window)
    offers = within(views.offers, lambda o: o.posted_date, window)
    postulations = within(views.postulations, lambda p: p.postulation_date, window)
    report = Report(
        window=window,
        users=users,
        offers=offers,
        postulations=postulations,
        user_series=per_day(users, lambda u: u.registration_date, window),
        offer_series=per_day(offers, lambda o: o.posted_date, window),
        postulation_series=per_day(postulations, lambda p: p.postulation_date, window),
    )
    logger.info(
        "Report %s..%s: %d users, %d offers, %d postulations",
        window.start, window.end, len(users), len(offers), len(postulations),
    )
    return report
