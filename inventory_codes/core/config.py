"""Environment-driven configuration for the product code service.

Every knob the service reads lives on ``AppSettings``. Values come from the
process environment or a ``.env`` file and are read once, the first time
``get_settings`` is called.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Iterable

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Environment-driven application configuration."""

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    APP_NAME: str = "Inventory Codes"
    BASE_DIR: Path = Field(default_factory=lambda: Path(__file__).resolve().parent.parent)
    DATA_DIR: Path = Field(default_factory=lambda: Path(__file__).resolve().parent.parent / "data")
    LOG_LEVEL: str = "INFO"

    API_KEY: str = Field(default="", validation_alias=AliasChoices("API_KEY", "API_TOKEN"))
    JWT_SECRET: str = "change-me"
    JWT_ACCESS_TTL_MIN: int = 15
    JWT_REFRESH_TTL_DAYS: int = 7
    AUTH_CACHE_TTL_SECONDS: int = 300
    ALLOWED_ORIGINS: list[str] = Field(default_factory=list)

    # Unset means "SQLite file under DATA_DIR", resolved by ``database_url``.
    DB_URL: str | None = Field(default=None, validation_alias=AliasChoices("DB_URL", "DATABASE_URL"))

    HOST: str = "0.0.0.0"
    PORT: int = 8089

    # ---- product identifiers
    DEFAULT_STORE_ID: str = "001"
    CODE_MAX_ATTEMPTS: int = Field(default=100, ge=1)
    AUTO_GENERATE_CODES: bool = True

    @property
    def database_url(self) -> str:
        return self.DB_URL or f"sqlite:///{self.DATA_DIR / 'inventory.db'}"

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def parse_allowed_origins(cls, value: Any) -> list[str]:
        if value in (None, "", []):
            return []
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        if isinstance(value, Iterable):
            return [str(item).strip() for item in value if str(item).strip()]
        raise TypeError("ALLOWED_ORIGINS must be a comma separated string or list")

    @field_validator("DEFAULT_STORE_ID")
    @classmethod
    def validate_store_id(cls, value: str) -> str:
        value = value.strip()
        if not value.isdigit() or len(value) > 3:
            raise ValueError("DEFAULT_STORE_ID must be up to three digits")
        return value.zfill(3)


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    settings = AppSettings()
    settings.DATA_DIR.mkdir(parents=True, exist_ok=True)
    return settings


settings = get_settings()
