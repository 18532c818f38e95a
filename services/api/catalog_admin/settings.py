"""Application settings via Pydantic Settings."""

from functools import lru_cache
import json

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App
    app_name: str = "Catalog Admin API"
    app_version: str = "0.1.0"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8080

    # Tree store
    store_backend: str = Field(
        default="firebase",
        validation_alias=AliasChoices("STORE_BACKEND"),
        description="'firebase' for the Realtime Database REST API, 'memory' for a local in-process tree.",
    )
    firebase_database_url: str = Field(
        default="",
        validation_alias=AliasChoices("FIREBASE_DATABASE_URL", "DATABASE_URL"),
    )
    firebase_auth_token: str = Field(
        default="",
        validation_alias=AliasChoices("FIREBASE_AUTH_TOKEN", "FIREBASE_DATABASE_SECRET"),
    )
    store_timeout_seconds: float = Field(
        default=15.0,
        validation_alias=AliasChoices("STORE_TIMEOUT_SECONDS"),
        gt=0,
        le=120,
    )

    @field_validator("store_backend", mode="before")
    @classmethod
    def _normalize_backend(cls, v: object) -> str:
        s = str(v or "firebase").strip().lower()
        if s not in ("firebase", "memory"):
            raise ValueError(f"Unsupported store backend: {s}")
        return s

    @field_validator("firebase_database_url", mode="before")
    @classmethod
    def _strip_database_url(cls, v: object) -> str:
        return str(v or "").strip().rstrip("/")

    # Redis (optional; empty disables cross-worker in-flight locks)
    redis_url: str = ""
    inflight_lock_ttl: int = Field(
        default=30,
        validation_alias=AliasChoices("INFLIGHT_LOCK_TTL"),
        ge=1,
        le=600,
        description="Seconds a duplicate-submission lock may be held before it expires.",
    )

    # CORS
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173"],
        validation_alias=AliasChoices("CORS_ORIGINS", "ALLOWED_ORIGINS"),
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v: object) -> list[str]:
        """Accept a JSON array string, a comma-separated string or a list."""
        if v is None:
            return []
        items: object = v
        if isinstance(v, str):
            s = v.strip()
            items = s.split(",")
            if s.startswith("["):
                try:
                    items = json.loads(s)
                except json.JSONDecodeError:
                    pass
        if not isinstance(items, list):
            items = [items]
        return [str(x).strip() for x in items if str(x).strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
