"""Fast environment checks shared by `script/doctor.py` and tests."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from db2rest.config import Settings
from db2rest.gateway.request import SERVICES_PATH, UrlResolutionError, resolve_url
from db2rest.net.http import HttpClient
from db2rest.validation import connection_inputs_complete, is_valid_credential

if TYPE_CHECKING:
    import httpx

__all__ = [
    "CheckResult",
    "Status",
    "check_connection_settings",
    "check_credentials",
    "check_gateway_reachable",
    "check_transport_security",
]

Status = Literal["ok", "warn", "fail"]


@dataclass(slots=True)
class CheckResult:
    name: str
    status: Status
    details: str


def check_connection_settings(settings: Settings) -> CheckResult:
    if connection_inputs_complete(settings.host, settings.port):
        return CheckResult("connection", "ok", f"configured: {settings.base_url}")
    return CheckResult(
        "connection",
        "fail",
        "DB2REST_HOST/DB2REST_PORT are missing or invalid.",
    )


def check_credentials(settings: Settings) -> CheckResult:
    if not settings.user:
        return CheckResult("credentials", "fail", "DB2REST_USER is not set.")
    if not is_valid_credential(settings.user):
        return CheckResult("credentials", "fail", "DB2REST_USER must be at most 8 characters without spaces.")
    if settings.password is None:
        return CheckResult("credentials", "warn", "DB2REST_PASSWORD is not set (the CLI will prompt).")
    return CheckResult("credentials", "ok", f"user={settings.user}")


def check_transport_security(settings: Settings) -> CheckResult:
    if not settings.use_ssl:
        return CheckResult("tls", "warn", "https disabled; Basic-auth credentials travel in clear text.")
    if not settings.verify_tls:
        return CheckResult("tls", "warn", "https enabled but certificate verification is off.")
    return CheckResult("tls", "ok", "https with certificate verification")


def check_gateway_reachable(
    settings: Settings,
    *,
    timeout_seconds: float,
    transport: "httpx.BaseTransport | None" = None,
) -> CheckResult:
    """Probe the services endpoint without credentials; any HTTP answer counts."""

    try:
        target = resolve_url(settings.base_url, SERVICES_PATH)
    except UrlResolutionError as exc:
        return CheckResult("gateway", "fail", str(exc))
    client = HttpClient(
        timeout_seconds=timeout_seconds,
        verify=settings.verify_tls,
        user_agent="db2rest-doctor",
        transport=transport,
    )
    if client.is_reachable(target):
        return CheckResult("gateway", "ok", f"reachable: {target}")
    return CheckResult("gateway", "fail", f"unreachable: {target}")
