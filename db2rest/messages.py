"""Operator-facing wording for gateway outcomes."""

from __future__ import annotations

from dataclasses import dataclass

from db2rest.gateway.models import ClientError, RequestFailed, RequestType

__all__ = ["ErrorReport", "NO_SERVICES_NOTICE", "describe_failure"]

_SERVER_RESPONSE_DIVIDER = "-------------------------------------"

NO_SERVICES_NOTICE = (
    "This program displays the user defined REST services only. "
    "The system provided services are filtered out.\n"
    "Currently, there is no user defined REST service existing. Use the "
    "register command to register the first service."
)

_TITLES: dict[RequestType, str] = {
    RequestType.RECEIVE_SERVICES: "Error receiving list of services",
    RequestType.REGISTER_NEW_SERVICE: "Error registering service",
    RequestType.DROP_SERVICE: "Error dropping service",
    RequestType.RECEIVE_OPTIONS: "Bind options unavailable",
}

_REFUSED = (
    "The DB2 REST service refused to handle the connection. "
    "This is most likely due to missing RACF permissions (the specified user is "
    "not authorized to call REST services)."
)

_EXPLANATIONS: dict[ClientError, str] = {
    ClientError.CONNECT_FAILURE: "Couldn't connect to DB2.",
    ClientError.URL_ERROR: "The connection URL is malformed. Check host and port.",
    ClientError.SERVER_CLOSED_CONNECTION: _REFUSED,
    ClientError.PROCESSING_FAILED: _REFUSED,
    ClientError.CONTENT_TYPE_MISSING: "The request was rejected because its content type wasn't JSON.",
    ClientError.SQL_ERROR: "The SQL contains an error. The service was not created.",
    ClientError.USER_DB_MISSING: (
        "The user database/table (DSNSERVICE) was not created yet. "
        "DDF therefore started w/o REST support.\nRecreate the table and restart DDF."
    ),
    ClientError.RESPONSE_NOT_JSON: "The server response couldn't be parsed as JSON.",
    ClientError.SERVICES_NOT_FOUND: "The server response didn't contain a list of services.",
    ClientError.OPTIONS_NOT_FOUND: (
        "Trying to receive the available bind options from DB2 failed.\n"
        "The default bind options will be used."
    ),
}

_FALLBACK_TITLE = "Unexpected service response"
_FALLBACK_EXPLANATION = "An unknown error occurred."


@dataclass(frozen=True, slots=True)
class ErrorReport:
    title: str
    text: str


def describe_failure(failure: RequestFailed) -> ErrorReport:
    """Return a title and explanation for `failure`, including the server's own message."""

    title = _TITLES.get(failure.request_type, _FALLBACK_TITLE)
    text = _EXPLANATIONS.get(failure.error, _FALLBACK_EXPLANATION)
    if failure.message:
        text += f"\n\nOriginal server response:\n{_SERVER_RESPONSE_DIVIDER}\n{failure.message}"
    return ErrorReport(title=title, text=text)
