"""Outcome observers for `GatewayClient`.

Every operation ends in exactly one `Outcome`, handed to the client's observer
on a worker thread. Observers that touch thread-affine state (terminal
widgets, GUI toolkits) must marshal the call onto their own thread.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Protocol

from loguru import logger

from db2rest.gateway.models import (
    BindOption,
    BindOptionsReceived,
    Outcome,
    RequestFailed,
    Service,
    ServiceDropped,
    ServiceRegistered,
    ServicesReceived,
)

__all__ = ["CallbackObserver", "ClientObserver"]

log = logger.bind(module="gateway.observer")


class ClientObserver(Protocol):
    """Receives the single outcome of each gateway operation."""

    def handle(self, outcome: Outcome) -> None:
        ...


@dataclass(slots=True)
class CallbackObserver:
    """Dispatch outcomes to per-kind callbacks.

    Only `on_error` is mandatory; a success outcome without a matching
    callback is logged and otherwise ignored.
    """

    on_error: Callable[[RequestFailed], None]
    on_services: Callable[[tuple[Service, ...]], None] | None = None
    on_registered: Callable[[str], None] | None = None
    on_dropped: Callable[[Service], None] | None = None
    on_options: Callable[[tuple[BindOption, ...]], None] | None = None

    def handle(self, outcome: Outcome) -> None:
        if isinstance(outcome, RequestFailed):
            self.on_error(outcome)
        elif isinstance(outcome, ServicesReceived):
            self._call(self.on_services, outcome.services, outcome)
        elif isinstance(outcome, ServiceRegistered):
            self._call(self.on_registered, outcome.service_name, outcome)
        elif isinstance(outcome, ServiceDropped):
            self._call(self.on_dropped, outcome.service, outcome)
        elif isinstance(outcome, BindOptionsReceived):
            self._call(self.on_options, outcome.options, outcome)
        else:
            raise TypeError(f"Unsupported outcome type: {type(outcome).__name__}")

    @staticmethod
    def _call(callback: Callable[[object], None] | None, value: object, outcome: Outcome) -> None:
        if callback is None:
            log.warning("No callback registered for {}; outcome ignored", type(outcome).__name__)
            return
        callback(value)
