"""Input validation and log sanitising helpers."""

from __future__ import annotations

import codecs
import ipaddress
import re
from typing import Any

MAX_TEXT_LENGTH = 10000
MAX_FEED_LINES = 10
MIN_TIMEOUT = 0.05
MAX_TIMEOUT = 60.0

_SENSITIVE_PATTERNS: dict[str, re.Pattern[str]] = {
    "text": re.compile(r"(text=)[^,\s]+", re.IGNORECASE),
    "data": re.compile(r"(data=)[^,\s]+", re.IGNORECASE),
    "token": re.compile(r"(token=)[^,\s]+", re.IGNORECASE),
}
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b-\x1f\x7f]")


def sanitize_log_message(message: str, keys: list[str] | None = None) -> str:
    """Strip control characters and mask sensitive key=value pairs."""
    cleaned = _CONTROL_CHARS.sub("?", str(message))
    for key in keys or list(_SENSITIVE_PATTERNS):
        pattern = _SENSITIVE_PATTERNS.get(key)
        if pattern is not None:
            cleaned = pattern.sub(r"\1***", cleaned)
    if len(cleaned) > 500:
        cleaned = cleaned[:500] + "..."
    return cleaned


def validate_timeout(timeout: Any) -> float:
    """Clamp a timeout in seconds to a sane range."""
    try:
        value = float(timeout)
    except (TypeError, ValueError) as err:
        raise ValueError(f"Invalid timeout: {timeout!r}") from err
    return max(MIN_TIMEOUT, min(MAX_TIMEOUT, value))


def validate_encoding(encoding: Any) -> str | None:
    """Return the canonical codec name, or None to use the printer codepage."""
    if encoding is None or encoding == "":
        return None
    if not isinstance(encoding, str):
        raise ValueError("Encoding must be a string")
    try:
        return codecs.lookup(encoding).name
    except LookupError as err:
        raise ValueError(f"Unknown encoding: {encoding!r}") from err


def validate_text_input(text: Any) -> str:
    """Validate note content before it is sent to a printer."""
    if not isinstance(text, str):
        raise ValueError("Text must be a string")
    if len(text) > MAX_TEXT_LENGTH:
        raise ValueError(f"Text exceeds maximum length of {MAX_TEXT_LENGTH} characters")
    return text


def validate_ipv4(address: Any) -> str:
    """Return the canonical dotted-quad form of an IPv4 address.

    Raises:
        ValueError: if the value is not a literal IPv4 address
    """
    if not isinstance(address, str) or not address.strip():
        raise ValueError("Address must be a non-empty string")
    try:
        parsed = ipaddress.IPv4Address(address.strip())
    except ipaddress.AddressValueError as err:
        raise ValueError(f"Not an IPv4 address: {address!r}") from err
    return str(parsed)


def validate_serial_path(path: Any) -> str:
    """Validate a serial device path such as ``/dev/rfcomm0`` or ``COM3``."""
    if not isinstance(path, str) or not path.strip():
        raise ValueError("Serial path must be a non-empty string")
    path = path.strip()
    if _CONTROL_CHARS.search(path):
        raise ValueError("Serial path contains control characters")
    return path
