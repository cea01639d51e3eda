"""View models and result types shared across the dashboard.

View models are frozen and fully populated: every missing source value has
already been replaced by a placeholder by the time one of these exists.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

UNKNOWN_DATE = "Unknown date"
UNKNOWN_USER = "Unknown user"
UNKNOWN_PUBLISHER = "Unknown publisher"
UNKNOWN_OFFER = "Unknown offer"
EMAIL_UNAVAILABLE = "Email unavailable"
UNSPECIFIED = "Unspecified"
NO_DEADLINE = "No deadline"


class UserType(str, Enum):
    EMPLOYER = "employer"
    APPLICANT = "applicant"
    UNKNOWN = "unknown"


class AccountState(str, Enum):
    ACTIVE = "Active"
    SUSPENDED = "Suspended"


class OfferStatus(str, Enum):
    ACTIVE = "Active"
    CLOSED = "Closed"


class PostulationStatus(str, Enum):
    SENT = "Sent"
    REVIEWED = "Reviewed"
    REJECTED = "Rejected"
    ACCEPTED = "Accepted"
    PENDING = "Pending"


class Collection(str, Enum):
    USERS = "users"
    OFFERS = "offers"
    POSTULATIONS = "postulations"


class UserProfile(BaseModel):
    """A user as shown in the admin tables."""

    model_config = ConfigDict(frozen=True)

    id: str
    full_name: str = UNKNOWN_USER
    email: str = EMAIL_UNAVAILABLE
    registration_date: str = UNKNOWN_DATE
    profile_url: str = ""
    is_verified: bool = False
    cv_url: str = ""
    experience: str = UNSPECIFIED
    education: str = UNSPECIFIED
    user_type: UserType = UserType.UNKNOWN
    location: str = UNSPECIFIED
    account_state: AccountState = AccountState.ACTIVE
    commercial_name: str = UNSPECIFIED
    industry: str = UNSPECIFIED
    description: str = UNSPECIFIED


class PartyRef(BaseModel):
    """Resolved snapshot of the employer or applicant behind a foreign key."""

    model_config = ConfigDict(frozen=True)

    id: str = ""
    name: str = UNKNOWN_USER
    email: str = EMAIL_UNAVAILABLE
    avatar_url: str = ""


class JobOffer(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str = UNSPECIFIED
    employer: PartyRef = Field(default_factory=PartyRef)
    location: str = UNSPECIFIED
    modality: str = UNSPECIFIED
    approx_payment: str = UNSPECIFIED
    posted_date: str = UNKNOWN_DATE
    deadline: str = NO_DEADLINE
    status: OfferStatus = OfferStatus.CLOSED


class Postulation(BaseModel):
    """An application, embedding its resolved offer and applicant."""

    model_config = ConfigDict(frozen=True)

    id: str
    applicant: PartyRef
    offer: JobOffer
    postulation_date: str = UNKNOWN_DATE
    status: PostulationStatus = PostulationStatus.SENT


class ActionResult(BaseModel):
    """Outcome of a write-back. Failures are reported, never raised."""

    success: bool
    error: str | None = None


class Notification(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    collection: Collection
    title: str
    description: str
    timestamp: datetime = Field(default_factory=datetime.now)
