# ============================================================================
# booking_engine/services/availability/slot_generator.py
# Pure slot generation - no database access, fully testable
# ============================================================================
"""
Turns resolved wall-clock availability for one date into bookable slots.

Everything here is a pure function of its inputs: the resolved ranges, the
event type's timing settings, the host's busy intervals and "now". Slots
step from the start of each resolved range (not a fixed clock grid), and a
candidate survives only if its buffer-widened interval stays clear of every
busy interval.
"""
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, List, NamedTuple, Optional, Sequence
from zoneinfo import ZoneInfo

from booking_engine.core.exceptions import ConfigurationError
from booking_engine.models.booking import ACTIVE_STATUSES, Booking
from booking_engine.models.event_type import EventType
from booking_engine.utils.time_intervals import (
    Interval,
    LocalRange,
    clip,
    day_bounds,
    expand,
    local_date,
    local_end_to_instant,
    local_to_instant,
    minutes,
    overlaps,
    to_utc,
)


class TimeSlot(NamedTuple):
    """One bookable candidate. Aware datetimes, compared as instants."""
    start: datetime
    end: datetime

    def to_dict(self) -> dict:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
        }


@dataclass(frozen=True)
class SlotSettings:
    duration: int
    slot_interval: int
    min_notice: int = 0
    max_future_days: int = 60
    buffer_before: int = 0
    buffer_after: int = 0

    def __post_init__(self):
        if self.duration <= 0 or self.slot_interval <= 0:
            raise ConfigurationError("Duration and slot interval must be positive")
        if min(self.min_notice, self.max_future_days, self.buffer_before, self.buffer_after) < 0:
            raise ConfigurationError("Notice, horizon and buffers must not be negative")

    @classmethod
    def from_event_type(cls, event_type: EventType) -> "SlotSettings":
        return cls(
            duration=event_type.duration,
            slot_interval=event_type.effective_slot_interval,
            min_notice=event_type.min_notice or 0,
            max_future_days=event_type.max_future_days or 0,
            buffer_before=event_type.buffer_before or 0,
            buffer_after=event_type.buffer_after or 0,
        )


def busy_from_bookings(bookings: Iterable[Booking]) -> List[Interval]:
    """Blocked intervals of the active bookings, sorted by start."""
    busy = [
        Interval(b.blocked_start, b.blocked_end)
        for b in bookings
        if b.status in ACTIVE_STATUSES
    ]
    return sorted(busy)


def candidate_bounds(day: date, tz: ZoneInfo, settings: SlotSettings, now: datetime) -> Optional[Interval]:
    """
    [floor, ceiling] for candidates on ``day``.

    The floor is the later of now + min_notice and local midnight. The
    ceiling is the earlier of the end of ``day`` and the end of the local day
    ``max_future_days`` after today. None when the window is empty.
    """
    now = to_utc(now)
    bounds = day_bounds(day, tz)
    horizon_day = local_date(now, tz) + timedelta(days=settings.max_future_days)
    horizon_end = day_bounds(horizon_day, tz).end

    floor = max(now + minutes(settings.min_notice), bounds.start)
    ceiling = min(bounds.end, horizon_end)
    if floor >= ceiling:
        return None
    return Interval(floor, ceiling)


def generate(
        resolved: Sequence[LocalRange],
        day: date,
        schedule_tz: ZoneInfo,
        settings: SlotSettings,
        busy: Sequence[Interval],
        now: datetime,
        viewer_tz: ZoneInfo
) -> List[TimeSlot]:
    """Ordered slots for ``day``, presented in ``viewer_tz``."""
    window = candidate_bounds(day, schedule_tz, settings, now)
    if window is None:
        return []

    length = minutes(settings.duration)
    step = minutes(settings.slot_interval)
    slots: List[TimeSlot] = []

    for local_range in resolved:
        start = local_to_instant(day, local_range.start, schedule_tz)
        end = local_end_to_instant(day, local_range.end, schedule_tz)
        if start >= end:
            # Range swallowed by a DST gap
            continue

        clipped = clip(Interval(start, end), window.start, window.end)
        if clipped is None:
            continue

        # Stay on the grid anchored at the range start
        candidate = start
        if candidate < clipped.start:
            skipped = -(-(clipped.start - candidate) // step)
            candidate += step * skipped

        while candidate + length <= clipped.end:
            slot_end = candidate + length
            blocked = expand(candidate, slot_end, settings.buffer_before, settings.buffer_after)
            if not any(overlaps(blocked.start, blocked.end, b.start, b.end) for b in busy):
                slots.append(TimeSlot(candidate.astimezone(viewer_tz), slot_end.astimezone(viewer_tz)))
            candidate += step

    slots.sort(key=lambda s: s.start)
    return slots


def contains_slot(slots: Iterable[TimeSlot], start: datetime, end: datetime) -> bool:
    start, end = to_utc(start), to_utc(end)
    return any(s.start == start and s.end == end for s in slots)
