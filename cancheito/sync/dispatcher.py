"""Side effects driven by the live view.

OfferExpiryDispatcher: Active -> Closed once an offer's deadline day has
passed. Writes are fire-and-forget: failures are logged, never retried
here, and an offer is requested at most once while it stays Active.

GrowthNotifier: per-collection cardinality tracking. The first snapshot
of a collection only sets its baseline; a later snapshot with more records
emits one notification naming the newest record.
"""

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable, Iterable, Mapping
from datetime import date, datetime
from typing import Any

from cancheito.core.records import StoredOffer, StoredPostulation, StoredUser
from cancheito.core.schemas import (
    ActionResult,
    Collection,
    JobOffer,
    Notification,
    OfferStatus,
)
from cancheito.sync.normalizer import RawRecords, parse_display_date, to_datetime

logger = logging.getLogger(__name__)

CloseOffer = Callable[[str], Awaitable[ActionResult]]


def is_expired(offer: JobOffer, today: date) -> bool:
    """True when today is strictly after the offer's deadline day."""
    deadline = parse_display_date(offer.deadline)
    return deadline is not None and today > deadline.date()


class OfferExpiryDispatcher:
    """Closes Active offers whose deadline has passed.

    Usage::

        dispatcher = OfferExpiryDispatcher(actions.close_offer)
        dispatcher.evaluate(view.offers)   # on every offers recompute
        await dispatcher.drain()           # on teardown
    """

    def __init__(
        self,
        close_offer: CloseOffer,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._close_offer = close_offer
        self._today = today
        self._requested: set[str] = set()
        self._tasks: set[asyncio.Task[None]] = set()

    def evaluate(self, offers: Iterable[JobOffer]) -> list[str]:
        """Issue a close for every newly expired Active offer. Returns their ids."""
        today = self._today()
        issued: list[str] = []
        for offer in offers:
            if offer.status is not OfferStatus.ACTIVE:
                # Closed offers may be reopened by an admin; evaluate them afresh then.
                self._requested.discard(offer.id)
                continue
            if offer.id in self._requested or not is_expired(offer, today):
                continue
            self._requested.add(offer.id)
            logger.info(
                "Closing expired offer '%s' (%s, deadline %s)",
                offer.title, offer.id, offer.deadline,
            )
            task = asyncio.ensure_future(self._close(offer))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            issued.append(offer.id)
        return issued

    async def drain(self) -> None:
        """Wait for in-flight close requests."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def _close(self, offer: JobOffer) -> None:
        result = await self._close_offer(offer.id)
        if not result.success:
            logger.error("Auto-close failed for offer %s: %s", offer.id, result.error)


def _newest(records: Mapping[str, Any], timestamp_of: Callable[[Any], Any]) -> Any:
    def key(raw: Any) -> tuple[bool, datetime]:
        dt = to_datetime(timestamp_of(raw))
        return (dt is not None, dt or datetime.min)

    values = [raw for raw in records.values() if raw is not None]
    return max(values, key=key) if values else None


class GrowthNotifier:
    """Emits a Notification when a collection grows between snapshots."""

    def __init__(self, on_notify: Callable[[Notification], None] | None = None) -> None:
        self._on_notify = on_notify
        self._counts: dict[Collection, int] = {}

    def has_baseline(self, collection: Collection) -> bool:
        return collection in self._counts

    def observe(
        self,
        collection: Collection,
        records: RawRecords,
        users: RawRecords | None = None,
        offers: RawRecords | None = None,
    ) -> Notification | None:
        """Record a snapshot's size; notify if it grew past an established baseline.

        users/offers are the sibling collections used to name the new record;
        pass None when they have not loaded yet.
        """
        count = len(records)
        previous = self._counts.get(collection)
        self._counts[collection] = count
        if previous is None or count <= previous:
            return None

        if collection is Collection.USERS:
            title, description = self._describe_user(records)
        elif collection is Collection.OFFERS:
            title, description = self._describe_offer(records, users)
        else:
            title, description = self._describe_postulation(records, users, offers)

        notification = Notification(
            id=uuid.uuid4().hex,
            collection=collection,
            title=title,
            description=description,
        )
        logger.info("%s: %s", title, description)
        if self._on_notify is not None:
            self._on_notify(notification)
        return notification

    @staticmethod
    def _describe_user(records: RawRecords) -> tuple[str, str]:
        newest = _newest(records, lambda raw: StoredUser.model_validate(raw).registered_at)
        name = StoredUser.model_validate(newest).full_name if newest is not None else None
        if not name:
            return "New user", "A new user has joined the platform."
        return "New user", f"{name} has joined the platform."

    @staticmethod
    def _describe_offer(records: RawRecords, users: RawRecords | None) -> tuple[str, str]:
        newest = _newest(records, lambda raw: StoredOffer.model_validate(raw).created_at)
        if newest is None or users is None:
            return "New offer", "A new job offer has been published."
        offer = StoredOffer.model_validate(newest)
        employer = users.get(offer.employer_id or "")
        publisher = StoredUser.model_validate(employer).full_name if employer else None
        return (
            "New offer",
            f'{publisher or "An unknown publisher"} published the offer: '
            f'"{offer.title or "Untitled"}"',
        )

    @staticmethod
    def _describe_postulation(
        records: RawRecords,
        users: RawRecords | None,
        offers: RawRecords | None,
    ) -> tuple[str, str]:
        newest = _newest(records, lambda raw: StoredPostulation.model_validate(raw).applied_at)
        if newest is None or users is None or offers is None:
            return "New application", "A new application has been submitted."
        postulation = StoredPostulation.model_validate(newest)
        applicant = users.get(postulation.applicant_id or "")
        offer = offers.get(postulation.offer_id or "")
        applicant_name = StoredUser.model_validate(applicant).full_name if applicant else None
        offer_title = StoredOffer.model_validate(offer).title if offer else None
        return (
            "New application",
            f'{applicant_name or "Someone"} applied to the offer: '
            f'"{offer_title or "an offer"}".',
        )
