from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

log = logger.bind(module="config")


class Settings(BaseSettings):
    """Centralised application configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    app_name: str = Field(default="db2rest", alias="APP_NAME")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_file: Path | None = Field(default=None, alias="DB2REST_LOG_FILE")

    host: str = Field(default="", alias="DB2REST_HOST")
    port: int = Field(default=446, ge=1, le=65535, alias="DB2REST_PORT")
    use_ssl: bool = Field(default=False, alias="DB2REST_USE_SSL")
    user: str = Field(default="", alias="DB2REST_USER")
    password: str | None = Field(default=None, alias="DB2REST_PASSWORD")
    store_password: bool = Field(default=False, alias="DB2REST_STORE_PASSWORD")

    http_timeout_seconds: float = Field(default=30.0, gt=0, alias="DB2REST_HTTP_TIMEOUT_SECONDS")
    verify_tls: bool = Field(default=True, alias="DB2REST_VERIFY_TLS")
    max_workers: int = Field(default=4, ge=1, le=64, alias="DB2REST_MAX_WORKERS")

    profile_path: Path | None = Field(default=None, alias="DB2REST_PROFILE_PATH")

    @computed_field(return_type=str)
    @property
    def base_url(self) -> str:
        """Return the gateway base URL (`http[s]://host:port`)."""
        scheme = "https" if self.use_ssl else "http"
        return f"{scheme}://{self.host.strip()}:{self.port}"

    def export_safe(self) -> dict[str, Any]:
        """Return non-sensitive settings for debugging/logging."""
        return {
            "app_name": self.app_name,
            "base_url": self.base_url,
            "user": self.user,
            "password_set": bool(self.password),
            "http_timeout_seconds": self.http_timeout_seconds,
            "verify_tls": self.verify_tls,
            "max_workers": self.max_workers,
        }


@lru_cache
def get_settings() -> Settings:
    """Load and cache application settings."""
    settings = Settings()
    log.info("Settings initialised: {}", settings.export_safe())
    return settings
