# settings.py
from __future__ import annotations

import os
from typing import List, Literal, Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from core.auth_utils import MIN_SECRET_LENGTH, ttl_delta
from core.errors import InvalidTtlFormat
from telemetry.logger import get_logger

logger = get_logger(__name__)


class Settings(BaseModel):
    port: int = Field(default=3000, ge=1, le=65_535)
    app_env: Literal["development", "production", "test"] = "development"
    log_level: str = "INFO"

    # Storage
    database_url: Optional[str] = None

    # CORS (comma separated in the environment)
    cors_origins: List[str] = Field(default_factory=list)

    # Auth (JWT + Refresh)
    jwt_secret: Optional[str] = Field(default=None, min_length=MIN_SECRET_LENGTH)
    jwt_access_ttl: str = "15m"
    jwt_refresh_ttl: str = "7d"

    # Google OAuth (not wired up yet)
    google_client_id: Optional[str] = None
    google_client_secret: Optional[str] = None
    google_callback_uri: Optional[str] = None

    # Telemetry
    telemetry_db: str = "telemetry.sqlite3"

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _split_origins(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [o.strip() for o in v.split(",") if o.strip()]
        return v

    @field_validator("jwt_access_ttl", "jwt_refresh_ttl")
    @classmethod
    def _valid_ttl(cls, v: str) -> str:
        try:
            ttl_delta(v)
        except InvalidTtlFormat as e:
            raise ValueError(e.message)
        return v

    @field_validator("database_url", "jwt_secret", mode="before")
    @classmethod
    def _blank_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def auth_enabled(self) -> bool:
        return bool(self.jwt_secret and self.database_url)


_ENV_FIELDS = {
    "PORT": "port",
    "APP_ENV": "app_env",
    "LOG_LEVEL": "log_level",
    "DATABASE_URL": "database_url",
    "CORS_ORIGINS": "cors_origins",
    "JWT_SECRET": "jwt_secret",
    "JWT_ACCESS_TTL": "jwt_access_ttl",
    "JWT_REFRESH_TTL": "jwt_refresh_ttl",
    "GOOGLE_CLIENT_ID": "google_client_id",
    "GOOGLE_CLIENT_SECRET": "google_client_secret",
    "GOOGLE_CALLBACK_URI": "google_callback_uri",
    "TELEMETRY_DB": "telemetry_db",
}


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from environment variables (defaults to os.environ after loading .env).

    Invalid values are a hard startup error, never a silent default.
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    raw = {field: environ[key] for key, field in _ENV_FIELDS.items() if key in environ}
    try:
        return Settings(**raw)
    except ValidationError as e:
        logger.error("Invalid env: %s", e.errors(include_input=False))
        raise RuntimeError("Invalid environment variables") from e
