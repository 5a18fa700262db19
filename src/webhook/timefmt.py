"""Timestamp normalization for alert payloads.

Alert sources send times as Unix seconds, Unix milliseconds or free-form
date strings. Everything is rendered in Beijing time as
``YYYY-MM-DD HH:mm:ss``.
"""

from __future__ import annotations

import math
from datetime import UTC, datetime, timedelta
from enum import Enum
from zoneinfo import ZoneInfo

from dateutil import parser as date_parser

UNSPECIFIED = "未指定"
INVALID_TIME = "时间格式异常"

DISPLAY_TZ = ZoneInfo("Asia/Shanghai")

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_SECONDS_DIGITS = 10
# Integral floats print without an exponent below this.
_MAX_PLAIN_INTEGER = 1e21


class TimeInputKind(str, Enum):
    EMPTY = "empty"
    UNIX_SECONDS = "unix_seconds"
    UNIX_MILLIS = "unix_millis"
    DATE_STRING = "date_string"


def is_unset(value: object) -> bool:
    """True for the JSON values an alert sender uses to mean "no value"."""
    if value is None or value is False or value == "":
        return True
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value == 0


def as_number(value: object) -> int | float | None:
    """Numeric reading of ``value``, or None when it is not a finite number."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text or "_" in text:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def number_text(number: int | float) -> str:
    """Shortest decimal form of ``number``; integral floats drop the ``.0``."""
    if isinstance(number, int):
        return str(number)
    if number.is_integer() and abs(number) < _MAX_PLAIN_INTEGER:
        return str(int(number))
    return repr(number)


def classify_time_input(value: object) -> TimeInputKind:
    """Decide how ``value`` should be interpreted.

    A number whose decimal form is 10 characters long is read as seconds,
    anything else numeric as milliseconds. A 10-digit millisecond timestamp
    therefore lands far in the future. Senders rely on this, keep it.
    """
    if is_unset(value):
        return TimeInputKind.EMPTY
    number = as_number(value)
    if number is None:
        return TimeInputKind.DATE_STRING
    if len(number_text(number)) == _SECONDS_DIGITS:
        return TimeInputKind.UNIX_SECONDS
    return TimeInputKind.UNIX_MILLIS


def to_instant(kind: TimeInputKind, value: object) -> datetime:
    """Convert a classified value to an aware datetime.

    Raises ValueError, TypeError or OverflowError when the value cannot be
    represented.
    """
    if kind is TimeInputKind.DATE_STRING:
        if not isinstance(value, str):
            raise TypeError(f"unsupported time value: {value!r}")
        return _parse_date_string(value)
    number = as_number(value)
    if kind is TimeInputKind.EMPTY or number is None:
        raise ValueError(f"not a timestamp: {value!r}")
    if kind is TimeInputKind.UNIX_SECONDS:
        return _from_millis(number * 1000)
    return _from_millis(number)


def format_display_time(instant: datetime) -> str:
    local = instant.astimezone(DISPLAY_TZ)
    return (
        f"{local.year:04d}-{local.month:02d}-{local.day:02d} "
        f"{local.hour:02d}:{local.minute:02d}:{local.second:02d}"
    )


def to_display_time(value: object) -> str:
    """Render ``value`` in Beijing time. Never raises."""
    kind = classify_time_input(value)
    if kind is TimeInputKind.EMPTY:
        return UNSPECIFIED
    try:
        return format_display_time(to_instant(kind, value))
    except (ValueError, TypeError, OverflowError):
        return INVALID_TIME


def _from_millis(millis: float) -> datetime:
    return _EPOCH + timedelta(milliseconds=millis)


def _parse_date_string(text: str) -> datetime:
    text = text.strip()
    try:
        parsed = date_parser.isoparse(text)
    except ValueError:
        parsed = date_parser.parse(text)
    if parsed.tzinfo is None:
        # Naive strings are taken as UTC, the zone the relay is deployed in.
        parsed = parsed.replace(tzinfo=UTC)
    return parsed
