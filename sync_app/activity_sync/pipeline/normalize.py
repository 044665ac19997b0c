"""
Canonical forms for phone numbers, emails, agent keys and timestamps.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone

_NON_DIGIT = re.compile(r"\D", re.ASCII)
_PARSE_FORMAT = "%Y-%m-%dT%H:%M:%S.%f%z"


def normalize_phone(value: object | None) -> str:
    """
    Reduce a phone number to its digits, dropping a leading US country code.

    - Strip every non-digit character
    - 11 digits starting with ``1`` lose the leading ``1``
    - Absent or empty input returns an empty string, which never matches a lookup key
    """

    if not value:
        return ""
    digits = _NON_DIGIT.sub("", str(value))
    if len(digits) == 11 and digits.startswith("1"):
        return digits[1:]
    return digits


def normalize_email(value: object | None) -> str | None:
    if not value:
        return None
    token = str(value).lower()
    return token or None


def normalize_agent_key(value: object | None) -> str | None:
    if not value:
        return None
    token = str(value).lower()
    return token or None


def _format_canonical(value: datetime) -> str:
    # Explicit zero padding; strftime("%Y") drops it for years before 1000.
    value = value.astimezone(timezone.utc)
    return f"{value.replace(tzinfo=None).isoformat(timespec='milliseconds')}+0000"


def _parse(value: str) -> datetime | None:
    token = value.strip()
    if not token:
        return None
    token = token.replace(" ", "T", 1)
    if token.endswith("Z"):
        token = token[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(token)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        # Staging rows carry no zone; they are recorded in UTC.
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def normalize_timestamp(value: object | None) -> str | None:
    """
    Convert a staging timestamp (``2023-05-01 14:30:00``) into Salesforce's
    canonical form (``2023-05-01T14:30:00.000+0000``).

    Returns ``None`` when the value is absent or unparsable.
    """

    if not value:
        return None
    parsed = _parse(str(value))
    if parsed is None:
        return None
    try:
        return _format_canonical(parsed)
    except OverflowError:
        return None


def add_minutes(canonical: str, minutes: int) -> str:
    """
    Offset an already-normalized timestamp by ``minutes``.

    Raises ``OverflowError`` when the result falls outside the supported years.
    """

    parsed = datetime.strptime(canonical, _PARSE_FORMAT)
    return _format_canonical(parsed + timedelta(minutes=minutes))
