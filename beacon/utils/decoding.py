"""
Tolerant decoding of loosely-typed broker JSON fields.

The broker sends most numeric fields as strings ("12.34") and some as
native numbers. These helpers accept either form and degrade to zero
instead of raising, so one malformed field never hides a whole record.

Usage:
    decode_number("12.34")      # 12.34
    decode_number(12.34)        # 12.34
    decode_number(None)         # 0.0
    decode_integer("3")         # 3
    decode_timestamp("2024-01-02T15:04:05.123456Z")
"""

import math
import re
from datetime import datetime, timezone
from typing import Any, Optional

# fromisoformat wants exactly microsecond precision on older interpreters
_FRACTION_RE = re.compile(r"\.(\d+)")


def _is_number(value: Any) -> bool:
    # bool is an int subclass but never a valid JSON number here
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def decode_optional_number(value: Any) -> Optional[float]:
    """Decode a number or numeric string, returning None when it cannot be parsed."""
    if _is_number(value):
        result = float(value)
    elif isinstance(value, str):
        try:
            result = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(result):
        return None
    return result


def decode_number(value: Any) -> float:
    """Decode a number or numeric string, defaulting to 0.0.

    Args:
        value: Raw JSON value (number, string, None or anything else)

    Returns:
        The parsed float, or 0.0 when the value is absent or malformed
    """
    result = decode_optional_number(value)
    return 0.0 if result is None else result


def decode_integer(value: Any) -> int:
    """Decode an integer or integer string, defaulting to 0.

    Floats are accepted only when they hold an integral value; strings
    must be plain integer literals ("3", not "3.0").
    """
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return int(value)
        return 0
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return 0
    return 0


def parse_iso_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 instant with optional fractional seconds.

    Naive values are taken to be UTC. Returns None when unparseable.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    text = _FRACTION_RE.sub(lambda m: "." + (m.group(1) + "000000")[:6], text, count=1)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def decode_timestamp(value: Any, now: Optional[datetime] = None) -> datetime:
    """Decode a fill timestamp, falling back to the current time.

    A bad date must never block a trade from being shown, so an
    unparseable value becomes "now" rather than an error.

    Args:
        value: Raw ISO-8601 string from the broker
        now: Override for the fallback time (defaults to the current UTC time)
    """
    parsed = parse_iso_timestamp(value)
    if parsed is not None:
        return parsed
    return now if now is not None else datetime.now(timezone.utc)
