"""Domain types exchanged with the DB2 REST gateway client."""

from __future__ import annotations

import base64
import enum
from dataclasses import dataclass, field
from typing import Union

__all__ = [
    "BindOption",
    "BindOptionsReceived",
    "ClientError",
    "Connection",
    "Outcome",
    "RequestFailed",
    "RequestType",
    "Service",
    "ServiceDropped",
    "ServiceRegistered",
    "ServicesReceived",
    "basic_credential",
]


class ClientError(str, enum.Enum):
    """Failure kinds reported by the gateway client.

    The values group into three tiers that callers present differently:
    transport (`CONNECT_FAILURE`, `URL_ERROR`), protocol (the embedded status
    codes) and payload (malformed or incomplete JSON).
    """

    CONNECT_FAILURE = "connect-failure"
    SERVER_CLOSED_CONNECTION = "server-closed-connection"
    PROCESSING_FAILED = "processing-failed"
    CONTENT_TYPE_MISSING = "content-type-missing"
    SQL_ERROR = "sql-error"
    USER_DB_MISSING = "user-db-missing"
    UNKNOWN_STATUS_CODE = "unknown-status-code"
    RESPONSE_NOT_JSON = "response-not-json"
    URL_ERROR = "url-error"
    SERVICES_NOT_FOUND = "services-not-found"
    OPTIONS_NOT_FOUND = "options-not-found"
    UNKNOWN = "unknown"


class RequestType(str, enum.Enum):
    """Which client operation produced an outcome."""

    RECEIVE_SERVICES = "receive-services"
    REGISTER_NEW_SERVICE = "register-new-service"
    DROP_SERVICE = "drop-service"
    RECEIVE_OPTIONS = "receive-options"


def basic_credential(user: str, password: str) -> str:
    """Return the `Authorization` header value for HTTP Basic auth."""
    raw = f"{user}:{password}".encode("utf-8")
    return "Basic " + base64.b64encode(raw).decode("ascii")


@dataclass(frozen=True, slots=True)
class Connection:
    """Connection parameters for one gateway.

    The base URL is stored verbatim and only resolved when a request is built,
    so constructing a connection never fails. The credential is derived once.
    """

    base_url: str
    user: str
    credential: str = field(repr=False)

    @classmethod
    def create(cls, base_url: str, user: str, password: str) -> "Connection":
        return cls(
            base_url=str(base_url or ""),
            user=str(user),
            credential=basic_credential(user, password),
        )


@dataclass(frozen=True, slots=True)
class Service:
    """One user-registered REST service as reported by the gateway."""

    name: str
    description: str
    collection_id: str
    url: str


@dataclass(frozen=True, slots=True)
class BindOption:
    """An enumerated option accepted when registering a service."""

    name: str
    description: str
    values: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class ServicesReceived:
    services: tuple[Service, ...]


@dataclass(frozen=True, slots=True)
class ServiceRegistered:
    service_name: str


@dataclass(frozen=True, slots=True)
class ServiceDropped:
    service: Service


@dataclass(frozen=True, slots=True)
class BindOptionsReceived:
    options: tuple[BindOption, ...]


@dataclass(frozen=True, slots=True)
class RequestFailed:
    """The single failure outcome of an operation."""

    request_type: RequestType
    error: ClientError
    message: str | None = None


Outcome = Union[ServicesReceived, ServiceRegistered, ServiceDropped, BindOptionsReceived, RequestFailed]
