"""Time-of-day arithmetic shared by the race and series calculations.

Finish times, elapsed times and corrected times are all carried as
``datetime.time`` values.  A cell can instead hold one of the :class:`Marker`
codes, which every function here hands back untouched, or ``None`` when the
cell is blank or could not be read as a time.
"""

from __future__ import annotations

import datetime as dt
import re
from enum import Enum
from typing import Any, Optional, Union

SECONDS_PER_DAY = 24 * 3600
INVALID_SECONDS = -1.0

# "HH.MM" is not accepted: with dots the seconds are required.
TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2})(?:\.(\d{1,6}))?)?$")
DOTTED_TIME_RE = re.compile(r"^(\d{1,2})\.(\d{2})\.(\d{2})(?:\.(\d{1,6}))?$")


class Marker(str, Enum):
    """Result codes that can stand in place of a finish time."""

    DNF = "DNF"
    DSQ = "DSQ"
    BFD = "BFD"
    AVG = "AVG"

    @property
    def is_non_finish(self) -> bool:
        return self is not Marker.AVG

    @classmethod
    def parse(cls, value: Any) -> Optional["Marker"]:
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().upper())
        except ValueError:
            return None


TimeValue = Union[dt.time, Marker, None]


def parse_time(value: Any) -> TimeValue:
    """Read a time cell, returning ``None`` for blanks and unreadable text."""

    if value is None or isinstance(value, Marker):
        return value
    if isinstance(value, dt.datetime):
        return value.time()
    if isinstance(value, dt.time):
        return value
    if isinstance(value, dt.timedelta):
        seconds = value.total_seconds()
        return from_seconds(seconds) if 0 <= seconds < SECONDS_PER_DAY else None
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None
    marker = Marker.parse(text)
    if marker is not None:
        return marker

    match = TIME_RE.match(text) or DOTTED_TIME_RE.match(text)
    if not match:
        return None
    hours, minutes = int(match.group(1)), int(match.group(2))
    seconds = int(match.group(3) or 0)
    micros = int((match.group(4) or "").ljust(6, "0"))
    if hours > 23 or minutes > 59 or seconds > 59:
        return None
    return dt.time(hours, minutes, seconds, micros)


def to_seconds(value: Any) -> float:
    """Seconds since midnight, or :data:`INVALID_SECONDS` for a non-time."""

    if isinstance(value, str) and not isinstance(value, Marker):
        value = parse_time(value)
    if isinstance(value, dt.datetime):
        value = value.time()
    if isinstance(value, dt.timedelta):
        return value.total_seconds()
    if not isinstance(value, dt.time):
        return INVALID_SECONDS
    whole = value.hour * 3600 + value.minute * 60 + value.second
    return whole + value.microsecond / 1_000_000


def from_seconds(seconds: float) -> dt.time:
    """Build the time of day ``seconds`` after midnight, to the microsecond."""

    micros = round(seconds * 1_000_000)
    if micros < 0 or micros >= SECONDS_PER_DAY * 1_000_000:
        raise ValueError(f"{seconds} seconds is outside a single day")
    whole, micros = divmod(micros, 1_000_000)
    hours, whole = divmod(whole, 3600)
    minutes, secs = divmod(whole, 60)
    return dt.time(hours, minutes, secs, micros)


def _time_or_blank(seconds: float) -> Optional[dt.time]:
    # Sub-microsecond residue from float division counts as zero.
    seconds = round(seconds, 6)
    if seconds <= 0 or seconds >= SECONDS_PER_DAY:
        return None
    return from_seconds(seconds)


def elapsed_time(start: TimeValue, finish: TimeValue) -> TimeValue:
    if isinstance(finish, Marker):
        return finish
    start_seconds = to_seconds(start)
    finish_seconds = to_seconds(finish)
    if start_seconds < 0 or finish_seconds < 0:
        return None
    return _time_or_blank(finish_seconds - start_seconds)


def corrected_time(elapsed: TimeValue, handicap: Optional[float]) -> TimeValue:
    """Apply a handicap multiplier to an elapsed time."""

    if isinstance(elapsed, Marker):
        return elapsed
    seconds = to_seconds(elapsed)
    if seconds <= 0 or not handicap or handicap <= 0:
        return None
    return _time_or_blank(seconds * handicap)


def seconds_or_none(value: TimeValue) -> Optional[float]:
    seconds = to_seconds(value)
    return seconds if seconds > 0 else None


def format_time(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, Marker):
        return value.value
    if not isinstance(value, dt.time):
        return str(value)
    text = f"{value.hour:02d}:{value.minute:02d}:{value.second:02d}"
    if value.microsecond:
        text += f".{value.microsecond:06d}".rstrip("0")
    return text
