"""Entity normalizer: stored records -> fully populated view models.

Pure functions. Missing or malformed source values become documented
placeholders; nothing here raises on bad data. Foreign keys resolve
against whatever sibling records are currently loaded, so a reference to a
record that has not arrived yet renders as a placeholder until the next
recompute.
"""

import logging
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any

from cancheito.core.records import (
    ACCOUNT_SUSPENDED,
    OFFER_ACTIVE,
    USER_TYPE_APPLICANT,
    USER_TYPE_EMPLOYER,
    StoredOffer,
    StoredPostulation,
    StoredUser,
    Timestamp,
)
from cancheito.core.schemas import (
    EMAIL_UNAVAILABLE,
    NO_DEADLINE,
    UNKNOWN_DATE,
    UNKNOWN_OFFER,
    UNKNOWN_PUBLISHER,
    UNKNOWN_USER,
    UNSPECIFIED,
    AccountState,
    JobOffer,
    OfferStatus,
    PartyRef,
    Postulation,
    PostulationStatus,
    UserProfile,
    UserType,
)

logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d"
DATETIME_FORMAT = "%Y-%m-%d %H:%M"

_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

_POSTULATION_STATUS: dict[str, PostulationStatus] = {
    "enviada": PostulationStatus.SENT,
    "revisada": PostulationStatus.REVIEWED,
    "rechazada": PostulationStatus.REJECTED,
    "aceptada": PostulationStatus.ACCEPTED,
    "pendiente": PostulationStatus.PENDING,
}

_USER_TYPES: dict[str, UserType] = {
    USER_TYPE_EMPLOYER: UserType.EMPLOYER,
    "employer": UserType.EMPLOYER,
    USER_TYPE_APPLICANT: UserType.APPLICANT,
    "applicant": UserType.APPLICANT,
}

RawRecords = Mapping[str, Any]


def to_datetime(value: Timestamp) -> datetime | None:
    """Convert an epoch-milliseconds value (or ISO string) to local time."""
    if value is None:
        return None
    if isinstance(value, str):
        text = value.strip()
        try:
            value = float(text)
        except ValueError:
            try:
                parsed = datetime.fromisoformat(text)
            except ValueError:
                return None
            if parsed.tzinfo is not None:
                parsed = parsed.astimezone().replace(tzinfo=None)
            return parsed
    try:
        return datetime.fromtimestamp(float(value) / 1000)
    except (OverflowError, OSError, ValueError):
        return None


def format_date(value: Timestamp) -> str:
    dt = to_datetime(value)
    return dt.strftime(DATE_FORMAT) if dt else UNKNOWN_DATE


def format_datetime(value: Timestamp) -> str:
    dt = to_datetime(value)
    return dt.strftime(DATETIME_FORMAT) if dt else UNKNOWN_DATE


def parse_display_date(text: str) -> datetime | None:
    """Inverse of format_date / format_datetime. Sentinels parse to None."""
    for fmt in (DATETIME_FORMAT, DATE_FORMAT):
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def short_label(day: date) -> str:
    """Short month-day label, e.g. 'Oct 20'. Locale independent."""
    return f"{_MONTHS[day.month - 1]} {day.day}"


def _text(value: str | None, default: str = UNSPECIFIED) -> str:
    if value is None or not value.strip():
        return default
    return value


def user_type_of(raw: str | None) -> UserType:
    if raw is None:
        return UserType.UNKNOWN
    return _USER_TYPES.get(raw.strip().lower(), UserType.UNKNOWN)


def normalize_user(raw: Any, key: str = "") -> UserProfile:
    """Map a stored user record to a UserProfile."""
    stored = StoredUser.model_validate(raw)
    return UserProfile(
        id=key or stored.uid or "",
        full_name=_text(stored.full_name, UNKNOWN_USER),
        email=_text(stored.email, EMAIL_UNAVAILABLE),
        registration_date=format_date(stored.registered_at),
        profile_url=stored.photo_url or "",
        is_verified=stored.verified is True,
        cv_url=stored.cv_url or "",
        experience=_text(stored.experience),
        education=_text(stored.education),
        user_type=user_type_of(stored.user_type),
        location=_text(stored.location),
        account_state=(
            AccountState.SUSPENDED
            if stored.account_state == ACCOUNT_SUSPENDED
            else AccountState.ACTIVE
        ),
        commercial_name=_text(stored.commercial_name),
        industry=_text(stored.industry),
        description=_text(stored.description),
    )


def resolve_party(
    user_id: str | None,
    users: RawRecords,
    unknown_name: str = UNKNOWN_USER,
) -> PartyRef:
    """Resolve a user foreign key to a PartyRef, degrading to placeholders."""
    user_id = user_id or ""
    raw = users.get(user_id) if user_id else None
    if raw is None:
        return PartyRef(id=user_id, name=unknown_name, email=EMAIL_UNAVAILABLE)
    stored = StoredUser.model_validate(raw)
    return PartyRef(
        id=user_id,
        name=_text(stored.full_name, unknown_name),
        email=_text(stored.email, EMAIL_UNAVAILABLE),
        avatar_url=stored.photo_url or "",
    )


def normalize_offer(
    raw: Any,
    users: RawRecords,
    key: str = "",
    unknown_employer: str = UNKNOWN_USER,
) -> JobOffer:
    """Map a stored offer to a JobOffer with its employer resolved."""
    stored = StoredOffer.model_validate(raw)
    deadline = to_datetime(stored.deadline)
    return JobOffer(
        id=key or stored.id or "",
        title=_text(stored.title),
        employer=resolve_party(stored.employer_id, users, unknown_employer),
        location=_text(stored.location),
        modality=_text(stored.modality),
        approx_payment=_text(stored.approx_payment),
        posted_date=format_date(stored.created_at),
        deadline=deadline.strftime(DATE_FORMAT) if deadline else NO_DEADLINE,
        status=OfferStatus.ACTIVE if stored.status == OFFER_ACTIVE else OfferStatus.CLOSED,
    )


def _missing_offer(offer_id: str) -> JobOffer:
    return JobOffer(
        id=offer_id,
        title=UNKNOWN_OFFER,
        employer=PartyRef(name=UNKNOWN_PUBLISHER),
    )


def postulation_status_of(raw: str | None) -> PostulationStatus:
    if raw is None:
        return PostulationStatus.SENT
    status = _POSTULATION_STATUS.get(raw.strip().lower())
    if status is None:
        try:
            status = PostulationStatus(raw.strip().capitalize())
        except ValueError:
            logger.debug("Unknown postulation status '%s' - defaulting to Sent", raw)
            status = PostulationStatus.SENT
    return status


def normalize_postulation(
    raw: Any,
    users: RawRecords,
    offers: RawRecords,
    key: str = "",
) -> Postulation:
    """Map a stored postulation, resolving applicant and offer (and its employer)."""
    stored = StoredPostulation.model_validate(raw)
    offer_id = stored.offer_id or ""
    raw_offer = offers.get(offer_id) if offer_id else None
    if raw_offer is None:
        offer = _missing_offer(offer_id)
    else:
        offer = normalize_offer(raw_offer, users, key=offer_id, unknown_employer=UNKNOWN_PUBLISHER)
    return Postulation(
        id=key or stored.id or "",
        applicant=resolve_party(stored.applicant_id, users),
        offer=offer,
        postulation_date=format_datetime(stored.applied_at),
        status=postulation_status_of(stored.status),
    )
