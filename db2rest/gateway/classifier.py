"""Classification of raw gateway responses.

The gateway signals most outcomes through a `StatusCode`/`StatusDescription`
pair embedded in the JSON body rather than through the HTTP status line. This
module turns a response body (or a transport failure) into either the parsed
payload or a `GatewayError` carrying the matching `ClientError`.
"""

from __future__ import annotations

import json
from typing import Any, Mapping

from loguru import logger

from db2rest.gateway.models import ClientError, RequestFailed, RequestType

__all__ = [
    "GatewayError",
    "STATUS_CODE_KEY",
    "STATUS_DESCRIPTION_KEY",
    "classify_response",
    "embedded_status",
    "parse_payload",
]

log = logger.bind(module="gateway.classifier")

STATUS_CODE_KEY = "StatusCode"
STATUS_DESCRIPTION_KEY = "StatusDescription"

_SUCCESS_CODES = frozenset({200, 201})

# Embedded status -> error kind. Anything else outside _SUCCESS_CODES is unknown.
_STATUS_ERRORS: Mapping[int, ClientError] = {
    400: ClientError.SERVER_CLOSED_CONNECTION,
    401: ClientError.PROCESSING_FAILED,
    415: ClientError.CONTENT_TYPE_MISSING,
    500: ClientError.SQL_ERROR,
    503: ClientError.USER_DB_MISSING,
}


class GatewayError(Exception):
    """Raised when a response cannot be turned into a successful result."""

    def __init__(self, error: ClientError, message: str | None = None) -> None:
        super().__init__(message or error.value)
        self.error = error
        self.message = message

    def to_failure(self, request_type: RequestType) -> RequestFailed:
        return RequestFailed(request_type=request_type, error=self.error, message=self.message)


def embedded_status(payload: Mapping[str, Any]) -> int | None:
    """Return the embedded status code, or None when absent or not a whole number."""
    value = payload.get(STATUS_CODE_KEY)
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if not isinstance(value, int):
        return None
    return value


def _status_description(payload: Mapping[str, Any]) -> str | None:
    value = payload.get(STATUS_DESCRIPTION_KEY)
    return value if isinstance(value, str) else None


def parse_payload(body: bytes | str | None) -> dict[str, Any]:
    """Parse a response body as a JSON object.

    Raises:
        GatewayError: `RESPONSE_NOT_JSON` when the body is empty, invalid, or
            not a JSON object.
    """
    if body is None:
        raise GatewayError(ClientError.RESPONSE_NOT_JSON, "JSON response wasn't parsed")
    try:
        # Bytes go through json encoding detection; undecodable input raises.
        payload = json.loads(body)
    except ValueError as exc:
        log.debug("Response body is not JSON: {}", exc)
        raise GatewayError(ClientError.RESPONSE_NOT_JSON, "JSON response wasn't parsed") from exc
    if not isinstance(payload, dict):
        raise GatewayError(ClientError.RESPONSE_NOT_JSON, "JSON response wasn't parsed")
    return payload


def classify_response(
    body: bytes | str | None,
    *,
    transport_error: BaseException | None = None,
) -> dict[str, Any]:
    """Return the successful payload or raise the matching `GatewayError`.

    A transport failure wins over any body. Payloads without an embedded
    status code are successful as a whole.
    """

    if transport_error is not None:
        raise GatewayError(ClientError.CONNECT_FAILURE, str(transport_error) or None)

    payload = parse_payload(body)
    status = embedded_status(payload)
    if status is None or status in _SUCCESS_CODES:
        return payload

    error = _STATUS_ERRORS.get(status, ClientError.UNKNOWN_STATUS_CODE)
    message = _status_description(payload)
    log.warning("Gateway reported status {} ({}): {}", status, error.value, message)
    raise GatewayError(error, message)
