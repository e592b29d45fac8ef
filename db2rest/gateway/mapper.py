"""Mapping of successful gateway payloads onto domain types."""

from __future__ import annotations

import unicodedata
from typing import Any, Mapping

import httpx
from loguru import logger

from db2rest.gateway.classifier import GatewayError, embedded_status
from db2rest.gateway.models import BindOption, ClientError, Service

__all__ = [
    "BUILTIN_SERVICES",
    "CREATED_STATUS",
    "DROPPED_STATUS",
    "SERVICES_KEY",
    "find_entry",
    "map_acknowledgement",
    "map_bind_options",
    "map_services",
]

log = logger.bind(module="gateway.mapper")

SERVICES_KEY = "DB2Services"

# Discovery and management endpoints the gateway ships with; never user services.
BUILTIN_SERVICES = frozenset({"DB2ServiceDiscover", "DB2ServiceManager"})

CREATED_STATUS = 201
DROPPED_STATUS = 200

_DEFAULT_NAME = "Unknown"
_DEFAULT_DESCRIPTION = "Not provided"
_DEFAULT_COLLECTION_ID = "N/A"
_DEFAULT_OPTION_DESCRIPTION = "Unknown"

_SERVICE_URL_SCHEMES = frozenset({"http", "https"})

_MISSING = object()


def _text(entry: Mapping[str, Any], key: str, default: str) -> str:
    value = entry.get(key)
    return value if isinstance(value, str) else default


def _parse_url(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text or any(ch.isspace() for ch in text):
        return None
    try:
        url = httpx.URL(text)
    except httpx.InvalidURL:
        return None
    if url.scheme not in _SERVICE_URL_SCHEMES or not url.host:
        return None
    return text


def map_services(payload: Mapping[str, Any]) -> tuple[Service, ...]:
    """Return the user services listed under `DB2Services`.

    Individual fields fall back to defaults; entries without a usable URL and
    the built-in services are dropped. An empty list is a valid result.

    Raises:
        GatewayError: `SERVICES_NOT_FOUND` when the list key is missing.
    """

    entries = payload.get(SERVICES_KEY)
    if not isinstance(entries, list):
        raise GatewayError(ClientError.SERVICES_NOT_FOUND)

    services: list[Service] = []
    for entry in entries:
        if not isinstance(entry, Mapping):
            log.debug("Skipping non-object service entry: {!r}", entry)
            continue
        name = _text(entry, "ServiceName", _DEFAULT_NAME)
        if name in BUILTIN_SERVICES:
            continue
        url = _parse_url(entry.get("ServiceURL"))
        if url is None:
            log.debug("Skipping service {} without a usable URL", name)
            continue
        services.append(
            Service(
                name=name,
                description=_text(entry, "ServiceDescription", _DEFAULT_DESCRIPTION),
                collection_id=_text(entry, "ServiceCollectionID", _DEFAULT_COLLECTION_ID),
                url=url,
            )
        )
    return tuple(services)


def map_acknowledgement(payload: Mapping[str, Any], *, expected_status: int) -> None:
    """Validate a register/drop acknowledgement.

    Raises:
        GatewayError: `UNKNOWN` when the embedded status is missing or differs
            from `expected_status`.
    """

    status = embedded_status(payload)
    if status is None:
        raise GatewayError(ClientError.UNKNOWN, "StatusCode not found")
    if status != expected_status:
        raise GatewayError(ClientError.UNKNOWN, "StatusCode not correct")


def find_entry(mapping: Mapping[str, Any], name: str, default: Any = None) -> Any:
    """Depth-first search for `name` (case-insensitive) in nested mappings.

    Keys of the current mapping are checked in order; each non-matching value
    that is itself a mapping is searched before moving to the next key.
    Lists are not descended into.
    """

    found = _find_entry(mapping, name.casefold())
    return default if found is _MISSING else found


def _find_entry(mapping: Mapping[str, Any], folded: str) -> Any:
    for key, value in mapping.items():
        if isinstance(key, str) and key.casefold() == folded:
            return value
        if isinstance(value, Mapping):
            found = _find_entry(value, folded)
            if found is not _MISSING:
                return found
    return _MISSING


def _starts_uppercase(key: str) -> bool:
    return bool(key) and unicodedata.category(key[0]) in ("Lu", "Lt")


def _enum_values(value: Any) -> tuple[str, ...] | None:
    if not isinstance(value, list) or not value:
        return None
    if not all(isinstance(item, str) for item in value):
        return None
    return tuple(value)


def map_bind_options(payload: Mapping[str, Any]) -> tuple[BindOption, ...]:
    """Extract enumerated bind options from the service manager's schema.

    Only properties whose name starts with an uppercase letter are bind
    options; lowercase ones are request fields such as `serviceName`.

    Raises:
        GatewayError: `OPTIONS_NOT_FOUND` when the schema, its properties, or
            any qualifying option is missing.
    """

    schema = find_entry(payload, "requestschema")
    if not isinstance(schema, Mapping):
        raise GatewayError(ClientError.OPTIONS_NOT_FOUND, "No RequestSchema in server response")
    properties = find_entry(schema, "properties")
    if not isinstance(properties, Mapping):
        raise GatewayError(ClientError.OPTIONS_NOT_FOUND, "RequestSchema doesn't have properties")

    options: list[BindOption] = []
    for key, definition in properties.items():
        if not isinstance(key, str) or not key:
            continue
        if not _starts_uppercase(key):
            log.debug("Skipping option {}", key)
            continue
        if not isinstance(definition, Mapping):
            continue
        values = _enum_values(definition.get("enum"))
        if values is None:
            continue
        options.append(
            BindOption(
                name=key,
                description=_text(definition, "description", _DEFAULT_OPTION_DESCRIPTION),
                values=values,
            )
        )

    if not options:
        raise GatewayError(ClientError.OPTIONS_NOT_FOUND, "No bind options found in response")
    options.sort(key=lambda option: option.name)
    return tuple(options)
