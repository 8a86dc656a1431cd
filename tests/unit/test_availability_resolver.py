from datetime import date, time

import pytest

from booking_engine.core.exceptions import ConfigurationError
from booking_engine.models.availability import AvailabilityRule, AvailabilitySchedule, RuleType
from booking_engine.services.availability.availability_resolver import (
    DateOverrideRule,
    ScheduleSnapshot,
    WeeklyRule,
    resolve,
    rule_from_model,
    snapshot_schedule,
)
from booking_engine.utils.time_intervals import END_OF_DAY, LocalRange

MONDAY = date(2030, 1, 7)
TUESDAY = date(2030, 1, 8)


def snapshot(*rules, tz="UTC"):
    return ScheduleSnapshot(timezone=tz, rules=tuple(rules))


def test_weekly_rules_for_the_weekday_are_merged():
    schedule = snapshot(
        WeeklyRule(1, time(13), time(17)),
        WeeklyRule(1, time(9), time(12)),
        WeeklyRule(1, time(12), time(13)),
        WeeklyRule(2, time(8), time(10)),
    )

    assert resolve(schedule, MONDAY) == [LocalRange(time(9), time(17))]
    assert resolve(schedule, TUESDAY) == [LocalRange(time(8), time(10))]


def test_unavailable_weekly_rules_contribute_nothing():
    schedule = snapshot(
        WeeklyRule(1, time(9), time(17)),
        WeeklyRule(1, time(12), time(13), is_available=False),
    )

    assert resolve(schedule, MONDAY) == [LocalRange(time(9), time(17))]


def test_no_matching_rules_is_an_empty_day():
    schedule = snapshot(WeeklyRule(1, time(9), time(17)))

    assert resolve(schedule, date(2030, 1, 12)) == []


def test_available_override_replaces_weekly_rules():
    schedule = snapshot(
        WeeklyRule(1, time(9), time(17)),
        DateOverrideRule(MONDAY, time(13), time(15), True),
    )

    assert resolve(schedule, MONDAY) == [LocalRange(time(13), time(15))]
    # The next Monday is untouched
    assert resolve(schedule, date(2030, 1, 14)) == [LocalRange(time(9), time(17))]


def test_unavailable_override_without_range_closes_the_day():
    schedule = snapshot(
        WeeklyRule(1, time(9), time(17)),
        DateOverrideRule(MONDAY, None, None, False),
    )

    assert resolve(schedule, MONDAY) == []


def test_unavailable_override_range_is_carved_out_of_available_overrides():
    schedule = snapshot(
        WeeklyRule(1, time(8), time(18)),
        DateOverrideRule(MONDAY, time(9), time(17), True),
        DateOverrideRule(MONDAY, time(12), time(13), False),
    )

    assert resolve(schedule, MONDAY) == [
        LocalRange(time(9), time(12)),
        LocalRange(time(13), time(17)),
    ]


def test_override_on_a_day_without_weekly_rules():
    schedule = snapshot(DateOverrideRule(date(2030, 1, 12), time(10), time(12), True))

    assert resolve(schedule, date(2030, 1, 12)) == [LocalRange(time(10), time(12))]


def test_rule_from_model_builds_the_tagged_variant():
    weekly = rule_from_model(AvailabilityRule(
        rule_type=RuleType.WEEKLY.value, day_of_week=3, start_time=time(9), end_time=time(12), is_available=True
    ))
    closed = rule_from_model(AvailabilityRule(
        rule_type=RuleType.DATE_OVERRIDE.value, specific_date=MONDAY, is_available=False
    ))

    assert weekly == WeeklyRule(3, time(9), time(12), True)
    assert closed == DateOverrideRule(MONDAY, None, None, False)
    assert not closed.has_range


@pytest.mark.parametrize("row", [
    {"rule_type": "monthly", "day_of_week": 1, "start_time": time(9), "end_time": time(10)},
    {"rule_type": "weekly", "start_time": time(9), "end_time": time(10)},
    {"rule_type": "weekly", "day_of_week": 1, "start_time": time(10), "end_time": time(9)},
    {"rule_type": "date_override", "specific_date": MONDAY, "is_available": True},
    {"rule_type": "date_override", "specific_date": MONDAY, "start_time": time(9), "is_available": False},
])
def test_rule_from_model_rejects_malformed_rows(row):
    row.setdefault("is_available", True)

    with pytest.raises(ConfigurationError):
        rule_from_model(AvailabilityRule(**row))


def test_snapshot_rejects_unknown_timezone():
    schedule = AvailabilitySchedule(name="Broken", timezone="Not/AZone", rules=[])

    with pytest.raises(ConfigurationError):
        snapshot_schedule(schedule)


def test_rules_ending_at_midnight_run_to_the_end_of_the_day():
    evening = rule_from_model(AvailabilityRule(
        rule_type=RuleType.WEEKLY.value, day_of_week=1, start_time=time(18), end_time=time(0), is_available=True
    ))
    all_day = rule_from_model(AvailabilityRule(
        rule_type=RuleType.DATE_OVERRIDE.value, specific_date=TUESDAY,
        start_time=time(0), end_time=time(0), is_available=True
    ))
    schedule = snapshot(evening, all_day)

    assert evening == WeeklyRule(1, time(18), END_OF_DAY, True)
    assert resolve(schedule, MONDAY) == [LocalRange(time(18), END_OF_DAY)]
    assert resolve(schedule, TUESDAY) == [LocalRange(time(0), END_OF_DAY)]
