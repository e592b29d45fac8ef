"""Input validators for operator-supplied connection and service fields.

These gate what reaches the gateway client; the client itself never
re-validates. Each predicate accepts partial input (as typed so far) unless
stated otherwise.
"""

from __future__ import annotations

import re
import unicodedata

__all__ = [
    "DESCRIPTION_MAX_LEN",
    "HOST_MAX_LEN",
    "NAME_MAX_LEN",
    "CREDENTIAL_MAX_LEN",
    "connection_inputs_complete",
    "is_valid_credential",
    "is_valid_description",
    "is_valid_hostname",
    "is_valid_name",
    "is_valid_port",
]

HOST_MAX_LEN = 253
HOST_LABEL_MAX_LEN = 63
CREDENTIAL_MAX_LEN = 8
NAME_MAX_LEN = 128
DESCRIPTION_MAX_LEN = 250

_NAME_EXTRA_CHARS = frozenset("-_$@#")
_HOST_EXTRA_CHARS = frozenset("-_")
_INTEGER_RE = re.compile(r"[+-]?[0-9]+")


def _is_letter(ch: str) -> bool:
    return unicodedata.category(ch)[0] in ("L", "M")


def _is_alphanumeric(ch: str) -> bool:
    return unicodedata.category(ch)[0] in ("L", "M", "N")


def _is_decimal_digit(ch: str) -> bool:
    return unicodedata.category(ch) == "Nd"


def _valid_host_label(label: str, index: int) -> bool:
    if len(label) > HOST_LABEL_MAX_LEN:
        return False
    for ch in label:
        if not (_is_letter(ch) or _is_decimal_digit(ch) or ch in _HOST_EXTRA_CHARS):
            return False
    if label.startswith("0") and len(label) > 1:
        return False
    if _INTEGER_RE.fullmatch(label):
        number = int(label)
        # Inner octets of a dotted quad may be 0; the outer ones may not.
        if index in (1, 2):
            return number <= 255
        return 1 <= number <= 255
    return True


def is_valid_hostname(value: str) -> bool:
    """Hostname or dotted IPv4 address, tolerating a trailing dot while typing."""

    if len(value) > HOST_MAX_LEN:
        return False
    if ".." in value:
        return False
    for index, label in enumerate(value.split(".")):
        if label and not _valid_host_label(label, index):
            return False
    return True


def is_valid_port(value: str) -> bool:
    """Empty (not yet typed) or an integer in 1..65535."""

    if not value:
        return True
    if not _INTEGER_RE.fullmatch(value):
        return False
    return 0 < int(value) <= 65535


def is_valid_credential(value: str) -> bool:
    """User IDs and passwords: at most eight characters, no whitespace."""

    if len(value) > CREDENTIAL_MAX_LEN:
        return False
    return not any(ch.isspace() for ch in value)


def is_valid_name(value: str) -> bool:
    """Service names and collection IDs."""

    if len(value) > NAME_MAX_LEN:
        return False
    return all(_is_alphanumeric(ch) or ch in _NAME_EXTRA_CHARS for ch in value)


def is_valid_description(value: str) -> bool:
    return len(value) <= DESCRIPTION_MAX_LEN


def connection_inputs_complete(host: str, port: str | int) -> bool:
    """Whether enough has been entered to attempt a connection."""

    if not host or host.startswith(".") or host.endswith("."):
        return False
    if not is_valid_hostname(host):
        return False
    text = str(port).strip()
    if not _INTEGER_RE.fullmatch(text):
        return False
    return is_valid_port(text)
