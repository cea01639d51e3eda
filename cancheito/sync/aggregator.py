"""Join/aggregation layer.

Three keyed maps (users, offers, postulations) are replaced wholesale each
time their subscription pushes a snapshot. Every snapshot marks its
collection dirty; one recompute per event-loop tick re-runs the normalizer
over the current maps and refreshes every derived list depending on the
dirty collections:

  users        -> users, offers, postulations
  offers       -> offers, postulations
  postulations -> postulations

Snapshots arrive independently and in any order, so a recompute may see
partially loaded siblings; the normalizer renders placeholders for those
and the next snapshot heals them.
"""

import asyncio
import logging
from collections.abc import Callable, Iterable
from datetime import datetime
from types import TracebackType
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from cancheito.core.config import CollectionPaths
from cancheito.core.records import StoredUser
from cancheito.core.schemas import (
    Collection,
    JobOffer,
    Notification,
    Postulation,
    UserProfile,
)
from cancheito.store.base import CollectionStore, Subscription
from cancheito.sync.dispatcher import GrowthNotifier, OfferExpiryDispatcher
from cancheito.sync.normalizer import (
    RawRecords,
    normalize_offer,
    normalize_postulation,
    normalize_user,
    parse_display_date,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_DEPENDENTS: dict[Collection, set[Collection]] = {
    Collection.USERS: {Collection.USERS, Collection.OFFERS, Collection.POSTULATIONS},
    Collection.OFFERS: {Collection.OFFERS, Collection.POSTULATIONS},
    Collection.POSTULATIONS: {Collection.POSTULATIONS},
}


def as_records(value: Any) -> dict[str, Any]:
    """Coerce a pushed snapshot value into an id -> record map."""
    if value is None:
        return {}
    if isinstance(value, dict):
        return {str(k): v for k, v in value.items() if v is not None}
    if isinstance(value, list):
        # Sequential numeric keys come back from the database as an array.
        return {str(i): v for i, v in enumerate(value) if v is not None}
    logger.warning("Ignoring non-collection snapshot value of type %s", type(value).__name__)
    return {}


def sort_by_date(items: Iterable[T], date_of: Callable[[T], str]) -> list[T]:
    """Most recent first; unknown or unparseable dates last."""
    def key(item: T) -> tuple[bool, datetime]:
        dt = parse_display_date(date_of(item))
        return (dt is not None, dt or datetime.min)

    return sorted(items, key=key, reverse=True)


def build_users(users: RawRecords) -> list[UserProfile]:
    return sort_by_date(
        (normalize_user(raw, key) for key, raw in users.items()),
        lambda u: u.registration_date,
    )


def build_offers(offers: RawRecords, users: RawRecords) -> list[JobOffer]:
    return sort_by_date(
        (normalize_offer(raw, users, key) for key, raw in offers.items()),
        lambda o: o.posted_date,
    )


def build_postulations(
    postulations: RawRecords,
    users: RawRecords,
    offers: RawRecords,
) -> list[Postulation]:
    return sort_by_date(
        (normalize_postulation(raw, users, offers, key) for key, raw in postulations.items()),
        lambda p: p.postulation_date,
    )


def build_unverified(users: RawRecords) -> list[UserProfile]:
    """Users whose verification flag is explicitly false (pending review)."""
    pending = {
        key: raw for key, raw in users.items()
        if StoredUser.model_validate(raw).verified is False
    }
    return build_users(pending)


class JoinedViews(BaseModel):
    """All three derived lists at one point in time."""

    model_config = ConfigDict(frozen=True)

    users: list[UserProfile] = Field(default_factory=list)
    offers: list[JobOffer] = Field(default_factory=list)
    postulations: list[Postulation] = Field(default_factory=list)


def join_collections(
    users: RawRecords,
    offers: RawRecords,
    postulations: RawRecords,
) -> JoinedViews:
    """One-shot join over fully read collections."""
    return JoinedViews(
        users=build_users(users),
        offers=build_offers(offers, users),
        postulations=build_postulations(postulations, users, offers),
    )


async def read_collections(
    store: CollectionStore,
    paths: CollectionPaths,
) -> tuple[dict[str, Any], dict[str, Any], dict[str, Any]]:
    """One-shot read of users, offers and postulations, issued together."""
    users, offers, postulations = await asyncio.gather(
        store.get(paths.users),
        store.get(paths.offers),
        store.get(paths.postulations),
    )
    return as_records(users), as_records(offers), as_records(postulations)


def offers_by_employer(offers: Iterable[JobOffer], user_id: str) -> list[JobOffer]:
    return [o for o in offers if o.employer.id == user_id]


def postulations_by_applicant(postulations: Iterable[Postulation], user_id: str) -> list[Postulation]:
    return [p for p in postulations if p.applicant.id == user_id]


class LiveDashboard:
    """Subscriptions, join maps and derived lists owned by one active view.

    Usage::

        async with LiveDashboard(store, settings.store.paths, expiry=dispatcher) as view:
            ...  # view.offers / view.postulations stay current

    Leaving the block closes every subscription the view opened; no
    callback reaches the view after that.
    """

    def __init__(
        self,
        store: CollectionStore,
        paths: CollectionPaths,
        *,
        expiry: OfferExpiryDispatcher | None = None,
        notifications: bool = True,
        on_notification: Callable[[Notification], None] | None = None,
        on_update: Callable[["LiveDashboard"], None] | None = None,
    ) -> None:
        self._store = store
        self._paths = {
            Collection.USERS: paths.users,
            Collection.OFFERS: paths.offers,
            Collection.POSTULATIONS: paths.postulations,
        }
        self._expiry = expiry
        self._notifier = GrowthNotifier(self._push_notification) if notifications else None
        self._on_notification = on_notification
        self._on_update = on_update

        self._records: dict[Collection, dict[str, Any]] = {c: {} for c in Collection}
        self._loaded: set[Collection] = set()
        self._dirty: set[Collection] = set()
        self._flush_handle: asyncio.Handle | None = None
        self._subscriptions: list[Subscription] = []
        self._started = False
        self._closed = False

        self.errors: dict[Collection, str] = {}
        self.notifications: list[Notification] = []
        self.has_unread = False

        self._users: list[UserProfile] = []
        self._offers: list[JobOffer] = []
        self._postulations: list[Postulation] = []

    # -- lifecycle -----------------------------------------------------------

    async def __aenter__(self) -> "LiveDashboard":
        self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    def start(self) -> None:
        """Open one subscription per collection. Must run inside the event loop."""
        if self._started:
            msg = "LiveDashboard already started"
            raise RuntimeError(msg)
        self._started = True
        try:
            for collection, path in self._paths.items():
                sub = self._store.subscribe(
                    path,
                    lambda value, c=collection: self._on_snapshot(c, value),
                    lambda error, c=collection: self._on_error(c, error),
                )
                self._subscriptions.append(sub)
        except BaseException:
            # __aexit__ never runs when __aenter__ raises; release what was opened.
            self._closed = True
            for sub in self._subscriptions:
                sub.close()
            self._subscriptions.clear()
            raise
        logger.debug("Subscribed to %s", ", ".join(self._paths.values()))

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._flush_handle is not None:
            self._flush_handle.cancel()
            self._flush_handle = None
        subs, self._subscriptions = self._subscriptions, []
        await asyncio.gather(*(sub.aclose() for sub in subs))
        if self._expiry is not None:
            await self._expiry.drain()
        logger.debug("Live view closed")

    # -- derived state ---------------------------------------------------------

    @property
    def users(self) -> list[UserProfile]:
        return list(self._users)

    @property
    def offers(self) -> list[JobOffer]:
        return list(self._offers)

    @property
    def postulations(self) -> list[Postulation]:
        return list(self._postulations)

    @property
    def unverified_users(self) -> list[UserProfile]:
        return build_unverified(self._records[Collection.USERS])

    @property
    def is_loading(self) -> bool:
        return len(self._loaded) < len(Collection)

    def is_loaded(self, collection: Collection) -> bool:
        return collection in self._loaded

    def snapshot(self) -> JoinedViews:
        return JoinedViews(
            users=self.users, offers=self.offers, postulations=self.postulations,
        )

    def offers_by_employer(self, user_id: str) -> list[JobOffer]:
        return offers_by_employer(self._offers, user_id)

    def postulations_by_applicant(self, user_id: str) -> list[Postulation]:
        return postulations_by_applicant(self._postulations, user_id)

    def mark_read(self) -> None:
        self.has_unread = False

    def recompute(self, dirty: Iterable[Collection] | None = None) -> None:
        """Rebuild the lists that depend on the given collections (default: all)."""
        stale: set[Collection] = set()
        for collection in dirty if dirty is not None else Collection:
            stale |= _DEPENDENTS[collection]

        users = self._records[Collection.USERS]
        offers = self._records[Collection.OFFERS]
        if Collection.USERS in stale:
            self._users = build_users(users)
        if Collection.OFFERS in stale:
            self._offers = build_offers(offers, users)
        if Collection.POSTULATIONS in stale:
            self._postulations = build_postulations(
                self._records[Collection.POSTULATIONS], users, offers,
            )
        logger.debug("Recomputed %s", sorted(c.value for c in stale))

    # -- subscription callbacks --------------------------------------------------

    def _sibling(self, collection: Collection) -> RawRecords | None:
        return self._records[collection] if collection in self._loaded else None

    def _on_snapshot(self, collection: Collection, value: Any) -> None:
        if self._closed:
            return
        records = as_records(value)
        self._records[collection] = records
        self._loaded.add(collection)
        self.errors.pop(collection, None)
        if self._notifier is not None:
            self._notifier.observe(
                collection,
                records,
                users=self._sibling(Collection.USERS),
                offers=self._sibling(Collection.OFFERS),
            )
        self._dirty.add(collection)
        if self._flush_handle is None:
            self._flush_handle = asyncio.get_running_loop().call_soon(self._flush)

    def _on_error(self, collection: Collection, error: Exception) -> None:
        if self._closed:
            return
        logger.error("Realtime error (%s): %s", collection.value, error)
        self.errors[collection] = str(error) or type(error).__name__
        if self._on_update is not None:
            self._on_update(self)

    def _flush(self) -> None:
        self._flush_handle = None
        if self._closed or not self._dirty:
            return
        dirty, self._dirty = self._dirty, set()
        self.recompute(dirty)
        if (
            self._expiry is not None
            and Collection.OFFERS in self._loaded
            and dirty & {Collection.USERS, Collection.OFFERS}
        ):
            self._expiry.evaluate(self._offers)
        if self._on_update is not None:
            self._on_update(self)

    def _push_notification(self, notification: Notification) -> None:
        self.notifications.insert(0, notification)
        self.has_unread = True
        if self._on_notification is not None:
            self._on_notification(notification)
