"""Date parsing and pattern formatting shared by requests, coercion and scripts.

Descriptor authors write date patterns with moment-style tokens
(``YYYY-MM-DD``, ``MM/DD/YYYY``, ``dddd, MMMM Do YYYY h:mm A``); text inside
square brackets is emitted literally.
"""

from __future__ import annotations

import re
from datetime import UTC, date, datetime

DEFAULT_PATTERN = "YYYY-MM-DDTHH:mm:ssZ"

_FALLBACK_FORMATS = (
    "%m/%d/%Y",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M",
    "%Y/%m/%d",
    "%Y/%m/%d %H:%M:%S",
    "%Y%m%d",
    "%d %b %Y",
    "%d %B %Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%a, %d %b %Y %H:%M:%S %Z",
    "%a, %d %b %Y %H:%M:%S %z",
)

_TOKEN_RE = re.compile(
    r"\[[^\]]*\]|YYYY|YY|MMMM|MMM|MM|M|Do|DD|D|dddd|ddd|HH|H|hh|h|mm|m|ss|s|SSS|A|a|ZZ|Z|X|x"
)


def parse_date(value: object) -> datetime | None:
    """Best-effort conversion of a value to a datetime; ``None`` when not a date."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, (int, float)):
        # numeric values are epoch milliseconds
        try:
            return datetime.fromtimestamp(value / 1000, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    for pattern in _FALLBACK_FORMATS:
        try:
            return datetime.strptime(text, pattern)
        except ValueError:
            continue
    return None


_ORDINAL_SUFFIXES = {1: "st", 2: "nd", 3: "rd"}


def _ordinal(day: int) -> str:
    if 11 <= day % 100 <= 13:
        return f"{day}th"
    return f"{day}{_ORDINAL_SUFFIXES.get(day % 10, 'th')}"


def _offset(moment: datetime, *, colon: bool) -> str:
    delta = moment.utcoffset()
    minutes = int(delta.total_seconds() // 60) if delta is not None else 0
    sign = "-" if minutes < 0 else "+"
    hours, minutes = divmod(abs(minutes), 60)
    return f"{sign}{hours:02d}:{minutes:02d}" if colon else f"{sign}{hours:02d}{minutes:02d}"


def _render(token: str, moment: datetime) -> str:
    if token.startswith("["):
        return token[1:-1]
    hour12 = moment.hour % 12 or 12
    renderers = {
        "YYYY": lambda: f"{moment.year:04d}",
        "YY": lambda: f"{moment.year % 100:02d}",
        "MMMM": lambda: moment.strftime("%B"),
        "MMM": lambda: moment.strftime("%b"),
        "MM": lambda: f"{moment.month:02d}",
        "M": lambda: str(moment.month),
        "Do": lambda: _ordinal(moment.day),
        "DD": lambda: f"{moment.day:02d}",
        "D": lambda: str(moment.day),
        "dddd": lambda: moment.strftime("%A"),
        "ddd": lambda: moment.strftime("%a"),
        "HH": lambda: f"{moment.hour:02d}",
        "H": lambda: str(moment.hour),
        "hh": lambda: f"{hour12:02d}",
        "h": lambda: str(hour12),
        "mm": lambda: f"{moment.minute:02d}",
        "m": lambda: str(moment.minute),
        "ss": lambda: f"{moment.second:02d}",
        "s": lambda: str(moment.second),
        "SSS": lambda: f"{moment.microsecond // 1000:03d}",
        "A": lambda: "AM" if moment.hour < 12 else "PM",
        "a": lambda: "am" if moment.hour < 12 else "pm",
        "ZZ": lambda: _offset(moment, colon=False),
        "Z": lambda: _offset(moment, colon=True),
        "X": lambda: str(int(_epoch(moment))),
        "x": lambda: str(int(_epoch(moment) * 1000)),
    }
    return renderers[token]()


def _epoch(moment: datetime) -> float:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.timestamp()


def format_date(value: object, pattern: str | None = None) -> str | None:
    """Format a date-like value with a moment-style pattern; ``None`` when unparseable."""
    moment = parse_date(value)
    if moment is None:
        return None
    return _TOKEN_RE.sub(lambda match: _render(match.group(0), moment), pattern or DEFAULT_PATTERN)
