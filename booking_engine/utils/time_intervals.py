# booking_engine/utils/time_intervals.py
"""
Pure interval and timezone helpers.

All comparisons between bookings and slots happen on timezone-aware UTC
instants. Local wall-clock values only appear when interpreting
availability rule boundaries for a specific calendar date.
"""
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, List, NamedTuple, Optional, Type
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from booking_engine.core.exceptions import BookingEngineError, ConfigurationError, ValidationError


class Interval(NamedTuple):
    """Half-open interval [start, end)"""
    start: datetime
    end: datetime


class LocalRange(NamedTuple):
    """Wall-clock range within one calendar day, in a schedule's timezone"""
    start: time
    end: time


def load_timezone(
        name: Optional[str],
        error_cls: Type[BookingEngineError] = ConfigurationError
) -> ZoneInfo:
    """
    Resolve an IANA timezone identifier.

    Never falls back to a default: an unknown identifier on a schedule is a
    configuration error, an unknown identifier supplied by a caller is a
    validation error (pass ``error_cls=ValidationError``).
    """
    if not name or not isinstance(name, str):
        raise error_cls("Timezone is required", code="invalid_timezone")
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        raise error_cls(f"Unknown timezone: {name!r}", code="invalid_timezone")


def is_valid_timezone(name: Optional[str]) -> bool:
    try:
        load_timezone(name)
    except ConfigurationError:
        return False
    return True


def to_utc(value: datetime) -> datetime:
    """Normalize an aware datetime to UTC. Naive datetimes are rejected."""
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        raise ValidationError("Datetime must include a UTC offset", code="naive_datetime")
    return value.astimezone(timezone.utc)


def local_to_instant(day: date, wall_clock: time, tz: ZoneInfo) -> datetime:
    """
    Interpret a wall-clock time on a given date in ``tz`` as a UTC instant.

    Uses the IANA rules in force on that date. Ambiguous times (DST fall-back)
    resolve to the first occurrence; times inside a spring-forward gap land
    after the gap.
    """
    local = datetime.combine(day, wall_clock.replace(tzinfo=None), tzinfo=tz)
    return local.astimezone(timezone.utc)


def day_bounds(day: date, tz: ZoneInfo) -> Interval:
    """UTC instants of local midnight at the start and end of ``day``."""
    start = local_to_instant(day, time.min, tz)
    end = local_to_instant(day + timedelta(days=1), time.min, tz)
    return Interval(start, end)


# Stands in for 24:00 inside LocalRange; stored rules spell it as 00:00
END_OF_DAY = time.max


def rule_end(wall_clock: time) -> time:
    """A rule ending at 00:00 runs to the end of its day."""
    return END_OF_DAY if wall_clock == time.min else wall_clock


def local_end_to_instant(day: date, wall_clock: time, tz: ZoneInfo) -> datetime:
    """Like local_to_instant, with END_OF_DAY mapped to the next local midnight."""
    if wall_clock == END_OF_DAY:
        return day_bounds(day, tz).end
    return local_to_instant(day, wall_clock, tz)


def local_date(instant: datetime, tz: ZoneInfo) -> date:
    return to_utc(instant).astimezone(tz).date()


def minutes(value: Optional[int]) -> timedelta:
    return timedelta(minutes=value or 0)


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open overlap test: touching intervals do not overlap."""
    return a_start < b_end and b_start < a_end


def expand(start: datetime, end: datetime, before: Optional[int], after: Optional[int]) -> Interval:
    """Widen an interval by buffer minutes on each side."""
    return Interval(start - minutes(before), end + minutes(after))


def clip(interval: Interval, lower: datetime, upper: datetime) -> Optional[Interval]:
    """Clip to [lower, upper]. Returns None when nothing is left."""
    start = max(interval.start, lower)
    end = min(interval.end, upper)
    if start >= end:
        return None
    return Interval(start, end)


def day_of_week(day: date) -> int:
    """0 = Sunday ... 6 = Saturday"""
    return (day.weekday() + 1) % 7


def subtract_ranges(ranges: Iterable[LocalRange], holes: Iterable[LocalRange]) -> List[LocalRange]:
    """Remove every hole from every range; input and output are merged."""
    result = merge_ranges(ranges)
    for hole in merge_ranges(holes):
        remaining: List[LocalRange] = []
        for r in result:
            if hole.end <= r.start or hole.start >= r.end:
                remaining.append(r)
                continue
            if r.start < hole.start:
                remaining.append(LocalRange(r.start, hole.start))
            if hole.end < r.end:
                remaining.append(LocalRange(hole.end, r.end))
        result = remaining
    return result


def merge_ranges(ranges: Iterable[LocalRange]) -> List[LocalRange]:
    """Sort and coalesce overlapping or adjacent wall-clock ranges."""
    ordered = sorted(r for r in ranges if r.start < r.end)
    merged: List[LocalRange] = []

    for current in ordered:
        if merged and current.start <= merged[-1].end:
            last = merged[-1]
            merged[-1] = LocalRange(last.start, max(last.end, current.end))
        else:
            merged.append(current)

    return merged
