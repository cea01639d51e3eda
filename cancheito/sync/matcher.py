"""Text filters for the admin tables.

A filter matches case-insensitively on a primary field OR an optional
secondary field. An empty query passes everything through.
"""

import logging
from collections.abc import Callable, Sequence
from typing import Generic, TypeVar

from cancheito.core.schemas import JobOffer, Postulation, UserProfile

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TextFilter(Generic[T]):
    """Keep items whose primary (or secondary) text contains the query."""

    def __init__(
        self,
        query: str,
        primary: Callable[[T], str],
        secondary: Callable[[T], str] | None = None,
    ) -> None:
        self._query = query.strip().lower()
        self._primary = primary
        self._secondary = secondary

    def __call__(self, items: Sequence[T]) -> list[T]:
        if not self._query:
            return list(items)
        result = [item for item in items if self._matches(item)]
        removed = len(items) - len(result)
        if removed:
            logger.debug("TextFilter '%s': removed %d items", self._query, removed)
        return result

    def _matches(self, item: T) -> bool:
        if self._query in self._primary(item).lower():
            return True
        return self._secondary is not None and self._query in self._secondary(item).lower()


def filter_users(users: Sequence[UserProfile], query: str) -> list[UserProfile]:
    """Match on full name or email."""
    return TextFilter(query, lambda u: u.full_name, lambda u: u.email)(users)


def filter_offers(offers: Sequence[JobOffer], query: str) -> list[JobOffer]:
    """Match on offer title or publisher name."""
    return TextFilter(query, lambda o: o.title, lambda o: o.employer.name)(offers)


def filter_postulations(postulations: Sequence[Postulation], query: str) -> list[Postulation]:
    """Match on applicant name or offer title."""
    return TextFilter(query, lambda p: p.applicant.name, lambda p: p.offer.title)(postulations)
