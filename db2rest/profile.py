"""Persisted connection profile.

Remembers the last used host, port, TLS flag and user (plus the password when
the operator opted in) between runs. The profile lives as JSON in a per-user
configuration directory.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from db2rest.config import Settings

__all__ = [
    "ConnectionProfile",
    "apply_profile",
    "default_profile_path",
    "load_profile",
    "save_profile",
]

log = logger.bind(module="profile")

DEFAULT_PORT = 446
_APP_DIR = "db2rest"


def default_profile_path() -> Path:
    """Per-user profile location (cross-platform, no extra dependencies)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / _APP_DIR / "profile.json"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / _APP_DIR / "profile.json"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / _APP_DIR / "profile.json"
    return Path.home() / ".config" / _APP_DIR / "profile.json"


class ConnectionProfile(BaseModel):
    model_config = ConfigDict(extra="ignore")

    host: str = ""
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)
    use_ssl: bool = False
    user: str = ""
    password: str = ""
    store_password: bool = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "ConnectionProfile":
        return cls(
            host=settings.host,
            port=settings.port,
            use_ssl=settings.use_ssl,
            user=settings.user,
            password=settings.password or "",
            store_password=settings.store_password,
        )


def load_profile(path: Path | None = None) -> ConnectionProfile:
    """Restore the saved profile, falling back to defaults when absent or unreadable."""

    target = Path(path) if path is not None else default_profile_path()
    if not target.exists():
        return ConnectionProfile()
    try:
        return ConnectionProfile.model_validate_json(target.read_text(encoding="utf-8"))
    except (OSError, ValidationError) as exc:
        log.warning("Ignoring unreadable profile {}: {}", target, exc)
        return ConnectionProfile()


def save_profile(profile: ConnectionProfile, path: Path | None = None) -> Path:
    """Persist `profile`; the password is only written when `store_password` is set."""

    target = Path(path) if path is not None else default_profile_path()
    target.parent.mkdir(parents=True, exist_ok=True)
    stored = profile if profile.store_password else profile.model_copy(update={"password": ""})
    target.write_text(stored.model_dump_json(indent=2) + "\n", encoding="utf-8")
    log.debug("Profile saved to {}", target)
    return target


def apply_profile(settings: Settings, profile: ConnectionProfile) -> Settings:
    """Return settings where unset connection fields are filled from `profile`."""

    updates: dict[str, object] = {}
    if not settings.host and profile.host:
        updates["host"] = profile.host
        updates["port"] = profile.port
        updates["use_ssl"] = profile.use_ssl
    if not settings.user and profile.user:
        updates["user"] = profile.user
    if settings.password is None and profile.password:
        updates["password"] = profile.password
    if not updates:
        return settings
    return settings.model_copy(update=updates)
