# ============================================================================
# booking_engine/services/availability/availability_resolver.py
# Weekly rules + date overrides -> open wall-clock ranges for one date
# ============================================================================
from dataclasses import dataclass
from datetime import date, time
from typing import Iterable, List, Optional, Tuple, Union
from zoneinfo import ZoneInfo

from booking_engine.core.exceptions import ConfigurationError
from booking_engine.models.availability import AvailabilityRule, AvailabilitySchedule, RuleType
from booking_engine.utils.time_intervals import (
    LocalRange,
    day_of_week,
    load_timezone,
    merge_ranges,
    rule_end,
    subtract_ranges,
)


@dataclass(frozen=True)
class WeeklyRule:
    day_of_week: int  # 0=Sunday
    start: time
    end: time
    is_available: bool = True


@dataclass(frozen=True)
class DateOverrideRule:
    specific_date: date
    start: Optional[time]
    end: Optional[time]
    is_available: bool

    @property
    def has_range(self) -> bool:
        return self.start is not None and self.end is not None


Rule = Union[WeeklyRule, DateOverrideRule]


@dataclass(frozen=True)
class ScheduleSnapshot:
    """Immutable view of a schedule, read fresh for every request"""
    timezone: str
    rules: Tuple[Rule, ...]

    @property
    def tz(self) -> ZoneInfo:
        return load_timezone(self.timezone)


def rule_from_model(rule: AvailabilityRule) -> Rule:
    """Convert a stored row into its tagged variant, rejecting malformed rows."""
    if rule.rule_type == RuleType.WEEKLY.value:
        if rule.day_of_week is None or not 0 <= rule.day_of_week <= 6:
            raise ConfigurationError(f"Weekly rule {rule.id} has no valid day_of_week")
        if rule.start_time is None or rule.end_time is None or rule.start_time >= rule_end(rule.end_time):
            raise ConfigurationError(f"Weekly rule {rule.id} has an invalid time range")
        return WeeklyRule(
            day_of_week=rule.day_of_week,
            start=rule.start_time,
            end=rule_end(rule.end_time),
            is_available=rule.is_available,
        )

    if rule.rule_type == RuleType.DATE_OVERRIDE.value:
        if rule.specific_date is None:
            raise ConfigurationError(f"Override rule {rule.id} has no specific_date")
        if (rule.start_time is None) != (rule.end_time is None):
            raise ConfigurationError(f"Override rule {rule.id} has a half-open time range")
        if rule.start_time is not None and rule.start_time >= rule_end(rule.end_time):
            raise ConfigurationError(f"Override rule {rule.id} has an invalid time range")
        if rule.is_available and rule.start_time is None:
            raise ConfigurationError(f"Available override {rule.id} needs a time range")
        return DateOverrideRule(
            specific_date=rule.specific_date,
            start=rule.start_time,
            end=rule_end(rule.end_time) if rule.end_time is not None else None,
            is_available=rule.is_available,
        )

    raise ConfigurationError(f"Unknown availability rule type: {rule.rule_type!r}")


def snapshot_schedule(schedule: AvailabilitySchedule) -> ScheduleSnapshot:
    # Validate the timezone up front so a bad schedule fails the whole query
    load_timezone(schedule.timezone)
    return ScheduleSnapshot(
        timezone=schedule.timezone,
        rules=tuple(rule_from_model(r) for r in schedule.rules),
    )


def resolve(schedule: ScheduleSnapshot, day: date) -> List[LocalRange]:
    """
    Open wall-clock ranges for ``day`` in the schedule's timezone.

    Overrides for the exact date replace the weekly rules entirely. Within the
    overrides, available ranges are kept and unavailable ranges carved out; an
    unavailable override without a range closes the date. The result is
    sorted and merged. No matching rules means no availability.
    """
    weekly: List[LocalRange] = []
    override_open: List[LocalRange] = []
    override_closed: List[LocalRange] = []
    has_override = False
    weekday = day_of_week(day)

    for rule in schedule.rules:
        if isinstance(rule, WeeklyRule):
            if rule.day_of_week == weekday and rule.is_available:
                weekly.append(LocalRange(rule.start, rule.end))
        elif isinstance(rule, DateOverrideRule):
            if rule.specific_date != day:
                continue
            has_override = True
            if not rule.has_range:
                continue
            target = override_open if rule.is_available else override_closed
            target.append(LocalRange(rule.start, rule.end))
        else:
            raise ConfigurationError(f"Unhandled rule variant: {type(rule).__name__}")

    if has_override:
        return subtract_ranges(override_open, override_closed)

    return merge_ranges(weekly)


def resolve_many(schedule: ScheduleSnapshot, days: Iterable[date]) -> List[Tuple[date, List[LocalRange]]]:
    return [(day, resolve(schedule, day)) for day in days]
