"""
Run identifier utilities for the ETA benchmark engine.

Run identifiers have the form ``YYYYMMDD_HHMMSS`` (e.g. ``20251129_130103``).
Zero padding makes them sort correctly as strings, which the range filters and
"last benchmark" rollups rely on.
"""

import re
from datetime import date, datetime
from enum import Enum
from typing import Iterable, List, Optional, TypeVar, Union

_NON_DIGIT = re.compile(r"\D")

DEFAULT_HOUR = 12

T = TypeVar("T")


class TimeBucket(Enum):
    """Coarse day-part derived from a run's embedded hour."""

    MORNING = "Morning"
    AFTERNOON = "Afternoon"
    EVENING = "Evening"
    MIDNIGHT = "Midnight"

    @classmethod
    def ordered(cls) -> List["TimeBucket"]:
        """Buckets in dashboard display order."""
        return [cls.MORNING, cls.AFTERNOON, cls.EVENING, cls.MIDNIGHT]


def derive_hour(run_id: Optional[str]) -> Optional[int]:
    """
    Extract the hour of day encoded in a run identifier.

    All non-digit characters are dropped first. A digit string of 10 or more
    characters carries the hour six places from the end (``...HHMMSS``); an
    8 or 9 character string carries it four places from the end (``...HHMM``).
    A slot that does not hold a valid 0-23 hour falls back to noon.

    Args:
        run_id: Run identifier

    Returns:
        Hour of day, or None when the identifier holds fewer than 8 digits
    """
    if not run_id:
        return None

    digits = _NON_DIGIT.sub("", str(run_id))

    if len(digits) >= 10:
        candidate = digits[-6:-4]
    elif len(digits) >= 8:
        candidate = digits[-4:-2]
    else:
        return None

    hour = int(candidate)
    if 0 <= hour <= 23:
        return hour
    return DEFAULT_HOUR


def bucket_for_hour(hour: Optional[int]) -> TimeBucket:
    """Map an hour of day onto its time bucket."""
    if hour is None:
        return TimeBucket.MIDNIGHT
    if 5 <= hour < 12:
        return TimeBucket.MORNING
    if 12 <= hour < 17:
        return TimeBucket.AFTERNOON
    if 17 <= hour < 22:
        return TimeBucket.EVENING
    return TimeBucket.MIDNIGHT


def derive_time_bucket(run_id: Optional[str]) -> TimeBucket:
    """Derive the time bucket for a run identifier. Never raises."""
    return bucket_for_hour(derive_hour(run_id))


def run_id_to_datetime(run_id: Optional[str]) -> Optional[datetime]:
    """
    Convert a run identifier to a naive datetime.

    Args:
        run_id: Run identifier such as ``20251129_130103``

    Returns:
        Parsed datetime or None if the identifier is too short or not a real date
    """
    if not run_id or len(run_id) < 15:
        return None

    try:
        return datetime(
            int(run_id[0:4]),
            int(run_id[4:6]),
            int(run_id[6:8]),
            int(run_id[9:11]),
            int(run_id[11:13]),
            int(run_id[13:15]),
        )
    except ValueError:
        return None


def run_id_to_iso(run_id: Optional[str]) -> Optional[str]:
    """ISO-8601 timestamp string for a run identifier, or None."""
    parsed = run_id_to_datetime(run_id)
    return parsed.isoformat() if parsed else None


def datetime_to_run_id(value: Union[date, datetime], end_of_day: bool = False) -> str:
    """
    Build a run identifier bound for a calendar date.

    Args:
        value: Date (the time part of a datetime is ignored)
        end_of_day: Use 23:59:59 instead of 00:00:00

    Returns:
        Run identifier string
    """
    suffix = "235959" if end_of_day else "000000"
    return f"{value.year:04d}{value.month:02d}{value.day:02d}_{suffix}"


def filter_by_run_id_range(
    records: Iterable[T],
    from_run_id: Optional[str] = None,
    to_run_id: Optional[str] = None,
) -> List[T]:
    """
    Keep records whose ``run_id`` lies in the inclusive range.

    Comparison is lexicographic on the identifier string. Either bound may be
    omitted.
    """
    selected = []
    for record in records:
        run_id = record.run_id
        if from_run_id is not None and run_id < from_run_id:
            continue
        if to_run_id is not None and run_id > to_run_id:
            continue
        selected.append(record)
    return selected
