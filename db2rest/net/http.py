"""Thin sync HTTP layer over httpx.

The DB2 REST gateway reports its outcomes inside the response body, so the
HTTP status line is never treated as a failure here. Only the absence of any
response (DNS, refused connection, TLS handshake, timeout) raises, as
`TransportError`.
"""

from __future__ import annotations

from typing import Any, Mapping

import httpx
from loguru import logger

__all__ = ["HttpClient", "TransportError"]

log = logger.bind(module="net.http")

_MIN_TIMEOUT_SECONDS = 0.1


class TransportError(RuntimeError):
    """Raised when no response was received from the server."""


class HttpClient:
    """One-shot httpx client per call, with shared timeout/TLS/header defaults.

    A `transport` can be injected (tests use `httpx.MockTransport`).
    """

    def __init__(
        self,
        *,
        timeout_seconds: float = 10.0,
        verify: bool = True,
        user_agent: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.timeout_seconds = float(max(_MIN_TIMEOUT_SECONDS, timeout_seconds))
        self.verify = bool(verify)
        self.transport = transport
        self.headers: dict[str, str] = {"User-Agent": user_agent} if user_agent else {}

    def _build_client(self, *, timeout_seconds: float | None = None) -> httpx.Client:
        timeout = self.timeout_seconds
        if timeout_seconds is not None:
            timeout = float(max(_MIN_TIMEOUT_SECONDS, timeout_seconds))
        kwargs: dict[str, object] = {
            "timeout": timeout,
            "follow_redirects": True,
            "headers": self.headers,
            "verify": self.verify,
        }
        if self.transport is not None:
            kwargs["transport"] = self.transport
        return httpx.Client(**kwargs)  # type: ignore[arg-type]

    def request(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        json_body: Any | None = None,
    ) -> httpx.Response:
        """Send a request and return the response whatever its HTTP status.

        Raises:
            TransportError: When no response could be obtained.
        """
        method = (method or "GET").strip().upper()
        target = (url or "").strip()
        if not target:
            raise ValueError("url must be non-empty.")

        try:
            with self._build_client() as client:
                return client.request(
                    method,
                    target,
                    headers=dict(headers) if headers else None,
                    json=json_body,
                )
        except httpx.RequestError as exc:
            log.debug("Transport failure for {} {}: {}", method, target, exc)
            raise TransportError(f"HTTP request failed: {exc}") from exc

    def is_reachable(self, url: str, *, timeout_seconds: float | None = None) -> bool:
        """Return True when the target answers at all (any HTTP status).

        The gateway answers unauthenticated probes with 401, which still proves
        the listener is up.
        """
        target = (url or "").strip()
        if not target:
            return False
        try:
            with self._build_client(timeout_seconds=timeout_seconds) as client:
                client.get(target)
            return True
        except httpx.HTTPError:
            return False
