"""Application configuration loader."""

from __future__ import annotations

import importlib
import logging
from dotenv import load_dotenv
from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)
load_dotenv()


class Settings(BaseSettings):
    """Configuration loaded from environment variables."""

    DB_CONN_STRING: str = "sqlite+aiosqlite:///./servicedesk.db"
    ERROR_TRACKING_DSN: str | None = None
    ENABLE_RATE_LIMITING: bool = True
    RATE_LIMIT: str = "120/minute"
    API_BASE_URL: str = "http://localhost:8000"
    LOG_LEVEL: str = "INFO"

    DEFAULT_TIMEZONE: str = "UTC"

    @field_validator("DB_CONN_STRING")
    @classmethod
    def validate_db_conn_string(cls, value: str) -> str:
        if not value:
            raise ValueError("DB_CONN_STRING must not be empty")
        if value.startswith("mssql+pyodbc"):
            raise ValueError("Synchronous driver 'mssql+pyodbc' is not supported")
        if value.startswith("sqlite") and not value.startswith("sqlite+aiosqlite"):
            raise ValueError("Use the async SQLite driver 'sqlite+aiosqlite'")
        return value

    @field_validator("DEFAULT_TIMEZONE")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Validate timezone string."""
        try:
            from zoneinfo import ZoneInfo
            ZoneInfo(v)
            return v
        except Exception:
            logger.warning("Timezone %s may not be valid, using UTC", v)
            return "UTC"

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return level

    @field_validator("API_BASE_URL")
    @classmethod
    def validate_api_base_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError("API_BASE_URL must start with http:// or https://")
        return value.rstrip("/")

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )


try:
    settings = Settings()
except ValidationError as exc:  # pragma: no cover - fail fast on invalid config
    logging.error("Invalid configuration: %s", exc)
    raise

try:
    env_module = importlib.import_module("config_env")
except ModuleNotFoundError:
    logging.debug("config_env.py not found; using environment variables only")
else:
    overrides = {k: v for k, v in vars(env_module).items() if k.isupper()}
    if overrides:
        settings = Settings(**{**settings.model_dump(), **overrides})

DB_CONN_STRING = settings.DB_CONN_STRING
ERROR_TRACKING_DSN = settings.ERROR_TRACKING_DSN
ENABLE_RATE_LIMITING = settings.ENABLE_RATE_LIMITING
RATE_LIMIT = settings.RATE_LIMIT
API_BASE_URL = settings.API_BASE_URL
LOG_LEVEL = settings.LOG_LEVEL
DEFAULT_TIMEZONE = settings.DEFAULT_TIMEZONE

__all__ = [
    "Settings",
    "settings",
    "DB_CONN_STRING",
    "ERROR_TRACKING_DSN",
    "ENABLE_RATE_LIMITING",
    "RATE_LIMIT",
    "API_BASE_URL",
    "LOG_LEVEL",
    "DEFAULT_TIMEZONE",
]
