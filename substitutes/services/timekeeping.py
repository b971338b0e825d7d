# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Day and clock-time normalization used by every availability comparison.

Both helpers are lenient: malformed input degrades to a sentinel
(``-1`` for times, ``""`` for days) that simply matches nothing.
"""

import re
import unicodedata
from typing import Optional

INVALID_MINUTES = -1
TIME_RANGE_SEPARATOR = " - "

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")

CANONICAL_DAYS: tuple[str, ...] = ("Lunes", "Martes", "Miercoles", "Jueves", "Viernes")

_DAY_ALIASES: dict[str, str] = {
    "lunes": "Lunes",
    "lun": "Lunes",
    "martes": "Martes",
    "mar": "Martes",
    "miercoles": "Miercoles",
    "mie": "Miercoles",
    "jueves": "Jueves",
    "jue": "Jueves",
    "viernes": "Viernes",
    "vie": "Viernes",
}


def strip_accents(value: str) -> str:
    decomposed = unicodedata.normalize("NFD", value)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def canonical_day(value: Optional[str]) -> str:
    """Map a free-form weekday name or abbreviation to its canonical label.

    Case and diacritics are ignored and surrounding whitespace is trimmed.
    Anything outside Monday..Friday, including empty input, yields ``""``.
    """
    if not value:
        return ""
    return _DAY_ALIASES.get(strip_accents(value).strip().lower(), "")


def time_to_minutes(value: Optional[str]) -> int:
    """Convert ``HH:MM[:SS]`` to minutes since midnight.

    Each of the first two colon-separated parts is read up to its leading
    integer, so ``"08:00 AM"`` gives ``480`` and ``"9:30h"`` gives ``570``.
    Hours and minutes are not range-checked: ``"25:99"`` gives ``1599``.
    Returns ``INVALID_MINUTES`` when the string is empty, has fewer than
    two colon-separated parts, or either part has no leading integer.
    """
    if not value:
        return INVALID_MINUTES
    parts = value.split(":")
    if len(parts) < 2:
        return INVALID_MINUTES
    hours = _LEADING_INT.match(parts[0])
    minutes = _LEADING_INT.match(parts[1])
    if hours is None or minutes is None:
        return INVALID_MINUTES
    return int(hours.group(1)) * 60 + int(minutes.group(1))


def time_key(value: Optional[str]) -> str:
    """Comparable form of a clock time: ``"08:00:00"`` and ``"8:00"`` both give ``"08:00"``.

    Unparseable values are kept as their trimmed text.
    """
    minutes = time_to_minutes(value)
    if minutes == INVALID_MINUTES:
        return (value or "").strip()
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def split_time_range(value: Optional[str]) -> tuple[str, str]:
    """Split ``"HH:MM - HH:MM"`` into its halves; missing halves are ``""``."""
    if not value:
        return "", ""
    parts = value.split(TIME_RANGE_SEPARATOR)
    start = parts[0].strip()
    end = parts[1].strip() if len(parts) > 1 else ""
    return start, end


def join_time_range(start: str, end: str) -> str:
    return f"{start}{TIME_RANGE_SEPARATOR}{end}"


def time_range_key(value: Optional[str]) -> tuple[str, str]:
    start, end = split_time_range(value)
    return time_key(start), time_key(end)
