"""Stored record models: the raw shape of each collection in the database.

Field aliases are the literal keys written by the mobile app. Every field
is optional and loosely typed; turning these into display-ready values is
the normalizer's job.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Literal values stored in the database for enumerated fields.
OFFER_ACTIVE = "ACTIVA"
OFFER_CLOSED = "CERRADA"
ACCOUNT_ACTIVE = "Activa"
ACCOUNT_SUSPENDED = "Desactivada"
USER_TYPE_EMPLOYER = "empleador"
USER_TYPE_APPLICANT = "postulante"

Timestamp = int | float | str | None


class StoredRecord(BaseModel):
    """Base for raw records. Tolerates junk instead of failing validation."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _mapping_only(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return {}
        return data


def _text_or_none(v: Any) -> str | None:
    if isinstance(v, bool):
        return None
    if isinstance(v, (int, float)):
        return str(v)
    if isinstance(v, str):
        return v
    return None


def _timestamp_or_none(v: Any) -> Timestamp:
    if isinstance(v, bool):
        return None
    if isinstance(v, (int, float, str)):
        return v
    return None


class StoredUser(StoredRecord):
    uid: str | None = None
    full_name: str | None = Field(default=None, alias="nombre_completo")
    email: str | None = None
    registered_at: Timestamp = Field(default=None, alias="tiempo_registro")
    photo_url: str | None = Field(default=None, alias="fotoPerfilUrl")
    verified: bool | None = Field(default=None, alias="usuario_verificado")
    experience: str | None = Field(default=None, alias="experiencia")
    education: str | None = Field(default=None, alias="formacion")
    user_type: str | None = Field(default=None, alias="tipoUsuario")
    location: str | None = Field(default=None, alias="ubicacion")
    cv_url: str | None = Field(default=None, alias="cvUrl")
    account_state: str | None = Field(default=None, alias="estadoCuenta")
    commercial_name: str | None = Field(default=None, alias="nombreComercial")
    industry: str | None = Field(default=None, alias="rubro")
    description: str | None = Field(default=None, alias="descripcion")

    @field_validator(
        "uid", "full_name", "email", "photo_url", "experience", "education",
        "user_type", "location", "cv_url", "account_state", "commercial_name",
        "industry", "description",
        mode="before",
    )
    @classmethod
    def _text(cls, v: Any) -> str | None:
        return _text_or_none(v)

    @field_validator("registered_at", mode="before")
    @classmethod
    def _timestamp(cls, v: Any) -> Timestamp:
        return _timestamp_or_none(v)

    @field_validator("verified", mode="before")
    @classmethod
    def _strict_bool(cls, v: Any) -> bool | None:
        return v if isinstance(v, bool) else None


class StoredOffer(StoredRecord):
    id: str | None = None
    title: str | None = Field(default=None, alias="cargo")
    description: str | None = Field(default=None, alias="descripcion")
    employer_id: str | None = Field(default=None, alias="employerId")
    status: str | None = Field(default=None, alias="estado")
    modality: str | None = Field(default=None, alias="modalidad")
    approx_payment: str | None = Field(default=None, alias="pago_aprox")
    location: str | None = Field(default=None, alias="ubicacion")
    created_at: Timestamp = Field(default=None, alias="createdAt")
    deadline: Timestamp = Field(default=None, alias="fecha_limite")

    @field_validator(
        "id", "title", "description", "employer_id", "status", "modality",
        "approx_payment", "location",
        mode="before",
    )
    @classmethod
    def _text(cls, v: Any) -> str | None:
        return _text_or_none(v)

    @field_validator("created_at", "deadline", mode="before")
    @classmethod
    def _timestamp(cls, v: Any) -> Timestamp:
        return _timestamp_or_none(v)


class StoredPostulation(StoredRecord):
    id: str | None = None
    applicant_id: str | None = Field(default=None, alias="postulanteId")
    offer_id: str | None = Field(default=None, alias="offerId")
    applied_at: Timestamp = Field(default=None, alias="fechaPostulacion")
    status: str | None = Field(default=None, alias="estado_postulacion")

    @field_validator("id", "applicant_id", "offer_id", "status", mode="before")
    @classmethod
    def _text(cls, v: Any) -> str | None:
        return _text_or_none(v)

    @field_validator("applied_at", mode="before")
    @classmethod
    def _timestamp(cls, v: Any) -> Timestamp:
        return _timestamp_or_none(v)
