"""Configuration models and YAML loader for the admin dashboard."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

AI_PROVIDERS = {"anthropic", "openai", "gemini", "ollama"}

# Realtime Database keys may not contain these.
_FORBIDDEN_PATH_CHARS = ".#$[]"


class CollectionPaths(BaseModel):
    """Database paths of the three collections the dashboard reads."""

    users: str = "Usuarios"
    offers: str = "ofertas"
    postulations: str = "postulaciones"

    @field_validator("users", "offers", "postulations")
    @classmethod
    def path_not_empty(cls, v: str) -> str:
        v = v.strip().strip("/")
        if not v:
            msg = "collection path must not be empty"
            raise ValueError(msg)
        bad = sorted(set(v) & set(_FORBIDDEN_PATH_CHARS))
        if bad:
            msg = f"collection path '{v}' contains forbidden characters: {' '.join(bad)}"
            raise ValueError(msg)
        return v


class StoreConfig(BaseModel):
    """Realtime database connection settings."""

    database_url: str | None = None
    credentials_path: str | None = None
    paths: CollectionPaths = Field(default_factory=CollectionPaths)


class AIConfig(BaseModel):
    """Narrative analytics provider settings."""

    enabled: bool = True
    provider: str = "gemini"
    model: str | None = None
    language: str = "Spanish"

    @field_validator("provider")
    @classmethod
    def provider_known(cls, v: str) -> str:
        v = v.lower().strip()
        if v not in AI_PROVIDERS:
            msg = f"provider must be one of {sorted(AI_PROVIDERS)}, got '{v}'"
            raise ValueError(msg)
        return v


class CacheConfig(BaseModel):
    """Local cache for AI dashboard insights."""

    path: str = "data/cache.db"
    key: str = "aiDashboardAnalytics"
    ttl_hours: int = Field(default=12, ge=1)


class SyncConfig(BaseModel):
    """Side effects of the live view."""

    notifications: bool = True
    auto_close_expired: bool = True


class Settings(BaseModel):
    """Top-level settings loaded from YAML."""

    store: StoreConfig = Field(default_factory=StoreConfig)
    ai: AIConfig = Field(default_factory=AIConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file."""
        path = Path(path)
        if not path.exists():
            msg = f"Config file not found: {path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        return cls.model_validate(raw)
