"""Admin write-backs: single-record field patches.

Every action returns an ActionResult. Store failures are logged and
reported in the result; nothing here raises for a rejected write.
"""

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict

from cancheito.core.config import CollectionPaths
from cancheito.core.records import (
    ACCOUNT_ACTIVE,
    ACCOUNT_SUSPENDED,
    OFFER_ACTIVE,
    OFFER_CLOSED,
    USER_TYPE_APPLICANT,
    USER_TYPE_EMPLOYER,
)
from cancheito.core.schemas import AccountState, ActionResult, OfferStatus, UserType
from cancheito.store.base import CollectionStore

logger = logging.getLogger(__name__)

OFFER_STATUS_VALUES: dict[OfferStatus, str] = {
    OfferStatus.ACTIVE: OFFER_ACTIVE,
    OfferStatus.CLOSED: OFFER_CLOSED,
}

ACCOUNT_STATE_VALUES: dict[AccountState, str] = {
    AccountState.ACTIVE: ACCOUNT_ACTIVE,
    AccountState.SUSPENDED: ACCOUNT_SUSPENDED,
}

USER_TYPE_VALUES: dict[UserType, str] = {
    UserType.EMPLOYER: USER_TYPE_EMPLOYER,
    UserType.APPLICANT: USER_TYPE_APPLICANT,
}


class ProfileUpdate(BaseModel):
    """Editable profile fields. Fields left as None are not written."""

    model_config = ConfigDict(frozen=True)

    full_name: str | None = None
    email: str | None = None
    experience: str | None = None
    education: str | None = None
    user_type: UserType | None = None
    location: str | None = None

    def to_fields(self) -> dict[str, Any]:
        """Stored-key patch for the provided fields."""
        fields: dict[str, Any] = {}
        if self.full_name is not None:
            fields["nombre_completo"] = self.full_name
        if self.email is not None:
            fields["email"] = self.email
        if self.experience is not None:
            fields["experiencia"] = self.experience
        if self.education is not None:
            fields["formacion"] = self.education
        if self.user_type is not None and self.user_type in USER_TYPE_VALUES:
            fields["tipoUsuario"] = USER_TYPE_VALUES[self.user_type]
        if self.location is not None:
            fields["ubicacion"] = self.location
        return fields


class AdminActions:
    """Field-level patches against the Users and Offers collections.

    Usage::

        actions = AdminActions(store, settings.store.paths)
        result = await actions.set_offer_status("o1", OfferStatus.CLOSED)
        if not result.success:
            print(result.error)
    """

    def __init__(self, store: CollectionStore, paths: CollectionPaths) -> None:
        self._store = store
        self._paths = paths

    async def set_offer_status(self, offer_id: str, status: OfferStatus) -> ActionResult:
        if not offer_id:
            return ActionResult(success=False, error="Offer ID is missing.")
        return await self._patch(
            f"{self._paths.offers}/{offer_id}",
            {"estado": OFFER_STATUS_VALUES[status]},
        )

    async def close_offer(self, offer_id: str) -> ActionResult:
        return await self.set_offer_status(offer_id, OfferStatus.CLOSED)

    async def set_user_verification(self, user_id: str, verified: bool) -> ActionResult:
        if not user_id:
            return ActionResult(success=False, error="User ID is missing.")
        return await self._patch(
            f"{self._paths.users}/{user_id}",
            {"usuario_verificado": verified},
        )

    async def set_account_state(self, user_id: str, state: AccountState) -> ActionResult:
        if not user_id:
            return ActionResult(success=False, error="User ID is missing.")
        return await self._patch(
            f"{self._paths.users}/{user_id}",
            {"estadoCuenta": ACCOUNT_STATE_VALUES[state]},
        )

    async def update_user_profile(self, user_id: str, update: ProfileUpdate) -> ActionResult:
        if not user_id:
            return ActionResult(success=False, error="User ID is missing.")
        fields = update.to_fields()
        if not fields:
            return ActionResult(success=False, error="No profile fields to update.")
        return await self._patch(f"{self._paths.users}/{user_id}", fields)

    async def _patch(self, path: str, fields: dict[str, Any]) -> ActionResult:
        try:
            await self._store.update(path, fields)
        except Exception as e:  # noqa: BLE001
            logger.error("Write to %s failed: %s", path, e)
            return ActionResult(success=False, error=str(e) or type(e).__name__)
        logger.info("Patched %s: %s", path, ", ".join(sorted(fields)))
        return ActionResult(success=True)
