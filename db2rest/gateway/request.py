"""Authenticated request assembly for the DB2 REST gateway.

Nothing here performs I/O: a request is resolved against the connection's base
URL and tagged with the Basic-auth credential, ready to be handed to
`db2rest.net.http.HttpClient`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import httpx

from db2rest.gateway.models import Connection

__all__ = [
    "GatewayRequest",
    "SERVICES_PATH",
    "SERVICE_MANAGER_PATH",
    "UrlResolutionError",
    "build_request",
    "resolve_url",
]

SERVICES_PATH = "services"
SERVICE_MANAGER_PATH = "services/DB2ServiceManager"

_ALLOWED_SCHEMES = ("http", "https")


class UrlResolutionError(ValueError):
    """Raised when a relative path cannot be resolved against the base URL."""


@dataclass(frozen=True, slots=True)
class GatewayRequest:
    method: str
    url: str
    headers: dict[str, str] = field(repr=False)
    json_body: dict[str, Any] | None = None


def resolve_url(base_url: str, relative_path: str) -> str:
    """Return `<base_url>/<relative_path>` as an absolute URL string.

    The base URL is treated as a directory, so `http://h:446` and
    `http://h:446/` resolve `services` to the same target.
    """

    raw = (base_url or "").strip()
    if not raw:
        raise UrlResolutionError("Base URL is empty.")
    try:
        base = httpx.URL(raw.rstrip("/") + "/")
    except httpx.InvalidURL as exc:
        raise UrlResolutionError(f"Base URL {raw!r} is malformed: {exc}") from exc
    if base.scheme not in _ALLOWED_SCHEMES or not base.host:
        raise UrlResolutionError(f"Base URL {raw!r} needs an http(s) scheme and a host.")
    try:
        return str(base.join((relative_path or "").lstrip("/")))
    except httpx.InvalidURL as exc:
        raise UrlResolutionError(f"Cannot resolve {relative_path!r} against {raw!r}: {exc}") from exc


def build_request(
    connection: Connection,
    relative_path: str,
    method: str,
    *,
    json_body: dict[str, Any] | None = None,
) -> GatewayRequest:
    """Assemble an authenticated request for `relative_path`.

    Raises:
        UrlResolutionError: When the connection's base URL is unusable.
    """

    url = resolve_url(connection.base_url, relative_path)
    headers = {
        "Authorization": connection.credential,
        "Accept": "application/json",
    }
    if json_body is not None:
        headers["Content-Type"] = "application/json"
    return GatewayRequest(
        method=(method or "GET").strip().upper(),
        url=url,
        headers=headers,
        json_body=dict(json_body) if json_body is not None else None,
    )
