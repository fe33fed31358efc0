"""
Joda-style date/time pattern formatting.

Patterns follow the Joda/``java.time`` symbol table (``yyyy/MM/dd``, ``HH``,
``'T'`` quoting, ...). Output is always rendered in UTC with English names so
the same pattern and instant produce the same text on every host.
"""

from __future__ import annotations

from datetime import datetime, timezone
from functools import lru_cache
from typing import Callable, Dict, Tuple

from .errors import InvalidPatternError

_MONTHS = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)
_DAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

# (kind, payload): kind is a pattern letter with payload = run length,
# or "" for literal text with payload = the text.
Token = Tuple[str, object]


def _pad(value: int, width: int) -> str:
    return str(value).zfill(width)


def _year(value: int, count: int) -> str:
    if count == 2:
        return _pad(value % 100, 2)
    return _pad(value, count)


def _month(dt: datetime, count: int) -> str:
    if count >= 4:
        return _MONTHS[dt.month - 1]
    if count == 3:
        return _MONTHS[dt.month - 1][:3]
    return _pad(dt.month, count)


def _day_name(dt: datetime, count: int) -> str:
    name = _DAYS[dt.weekday()]
    return name if count >= 4 else name[:3]


def _fraction(dt: datetime, count: int) -> str:
    millis = f"{dt.microsecond // 1000:03d}"
    if count <= 3:
        return millis[:count]
    return millis + "0" * (count - 3)


def _zone_name(dt: datetime, count: int) -> str:
    return "Coordinated Universal Time" if count >= 4 else "UTC"


def _zone_offset(dt: datetime, count: int) -> str:
    if count == 1:
        return "+0000"
    if count == 2:
        return "+00:00"
    return "UTC"


_FIELDS: Dict[str, Callable[[datetime, int], str]] = {
    "G": lambda dt, n: "AD",
    "C": lambda dt, n: _pad(dt.year // 100, n),
    "Y": lambda dt, n: _year(dt.year, n),
    "y": lambda dt, n: _year(dt.year, n),
    "x": lambda dt, n: _year(dt.isocalendar()[0], n),
    "w": lambda dt, n: _pad(dt.isocalendar()[1], n),
    "e": lambda dt, n: _pad(dt.isoweekday(), n),
    "E": _day_name,
    "M": _month,
    "d": lambda dt, n: _pad(dt.day, n),
    "D": lambda dt, n: _pad(dt.timetuple().tm_yday, n),
    "a": lambda dt, n: "AM" if dt.hour < 12 else "PM",
    "H": lambda dt, n: _pad(dt.hour, n),
    "k": lambda dt, n: _pad(dt.hour or 24, n),
    "K": lambda dt, n: _pad(dt.hour % 12, n),
    "h": lambda dt, n: _pad(dt.hour % 12 or 12, n),
    "m": lambda dt, n: _pad(dt.minute, n),
    "s": lambda dt, n: _pad(dt.second, n),
    "S": _fraction,
    "z": _zone_name,
    "Z": _zone_offset,
}


def _is_letter(c: str) -> bool:
    return ("A" <= c <= "Z") or ("a" <= c <= "z")


@lru_cache(maxsize=256)
def compile_pattern(pattern: str) -> Tuple[Token, ...]:
    """Split a pattern into field and literal tokens.

    Raises:
        InvalidPatternError: if the pattern uses a letter with no field meaning
    """
    tokens: list[Token] = []
    i, n = 0, len(pattern)
    while i < n:
        c = pattern[i]
        if _is_letter(c):
            j = i
            while j < n and pattern[j] == c:
                j += 1
            if c not in _FIELDS:
                raise InvalidPatternError(f"Illegal pattern component: {pattern[i:j]}")
            tokens.append((c, j - i))
            i = j
        elif c == "'":
            if i + 1 < n and pattern[i + 1] == "'":
                tokens.append(("", "'"))
                i += 2
                continue
            # quoted literal; '' inside quotes is an escaped quote
            buf = []
            i += 1
            while i < n:
                if pattern[i] == "'":
                    if i + 1 < n and pattern[i + 1] == "'":
                        buf.append("'")
                        i += 2
                        continue
                    i += 1
                    break
                buf.append(pattern[i])
                i += 1
            tokens.append(("", "".join(buf)))
        else:
            tokens.append(("", c))
            i += 1
    return tuple(tokens)


def to_utc(timestamp: datetime) -> datetime:
    """Naive datetimes are taken to be UTC already."""
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(timezone.utc)


def format_datetime(timestamp: datetime, pattern: str) -> str:
    """Render ``timestamp`` in UTC according to a Joda-style ``pattern``.

    Args:
        timestamp: Instant to render (naive values are treated as UTC)
        pattern: Pattern such as ``yyyy/MM/dd`` or ``yyyy-MM-dd'T'HH:mm:ss.SSS'Z'``

    Returns:
        Rendered text

    Raises:
        InvalidPatternError: if the pattern contains an illegal component
    """
    dt = to_utc(timestamp)
    out = []
    for kind, payload in compile_pattern(pattern):
        if kind:
            out.append(_FIELDS[kind](dt, payload))  # type: ignore[arg-type]
        else:
            out.append(payload)  # type: ignore[arg-type]
    return "".join(out)
