"""DB2 REST gateway client: request building, response classification and mapping."""

from __future__ import annotations

from db2rest.gateway.cache import BindOptionCache
from db2rest.gateway.client import GatewayClient
from db2rest.gateway.models import (
    BindOption,
    BindOptionsReceived,
    ClientError,
    Connection,
    Outcome,
    RequestFailed,
    RequestType,
    Service,
    ServiceDropped,
    ServiceRegistered,
    ServicesReceived,
)
from db2rest.gateway.observer import CallbackObserver, ClientObserver

__all__ = [
    "BindOption",
    "BindOptionCache",
    "BindOptionsReceived",
    "CallbackObserver",
    "ClientError",
    "ClientObserver",
    "Connection",
    "GatewayClient",
    "Outcome",
    "RequestFailed",
    "RequestType",
    "Service",
    "ServiceDropped",
    "ServiceRegistered",
    "ServicesReceived",
]
