"""Tests for rrule-backed finders."""

import time
from datetime import datetime, timedelta, timezone

import pytest
from dateutil.rrule import DAILY, FR, MO, MONTHLY, TH, TU, WE, WEEKLY, YEARLY, rrule

from timewarp import (
    DAY,
    HOUR,
    Interval,
    RecurringFinder,
    RecurringPattern,
    ordinal,
    recurring,
)

UTC = timezone.utc
JAN_1 = datetime(2024, 1, 1, tzinfo=UTC)  # a Monday


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=UTC)


def days_of(*pairs: tuple[int, int]) -> list[Interval]:
    """Full-day intervals for (month, day) pairs in 2024."""
    return [
        Interval(start=utc(2024, m, d), end=utc(2024, m, d) + DAY) for m, d in pairs
    ]


@pytest.fixture
def months() -> RecurringFinder:
    return recurring("monthly", dtstart=JAN_1, bymonthday=1)


@pytest.fixture
def mondays() -> RecurringFinder:
    return recurring("weekly", dtstart=JAN_1, byweekday=MO, duration=DAY)


@pytest.fixture
def fridays() -> RecurringFinder:
    return recurring("weekly", dtstart=JAN_1, byweekday=FR, duration=DAY)


def test_every_third_day_and_its_gaps():
    """Every 3rd day from day 1, over [day 0, day 10)."""
    day = lambda n: JAN_1 + n * DAY  # noqa: E731
    every_third = RecurringFinder(
        rrule(DAILY, interval=3, dtstart=day(1)), duration=DAY
    )

    assert every_third.apply(day(0), day(10)) == [
        Interval(start=day(1), end=day(2)),
        Interval(start=day(4), end=day(5)),
        Interval(start=day(7), end=day(8)),
    ]
    assert (~every_third).apply(day(0), day(10)) == [
        Interval(start=day(0), end=day(1)),
        Interval(start=day(2), end=day(4)),
        Interval(start=day(5), end=day(7)),
        Interval(start=day(8), end=day(10)),
    ]


def test_occurrence_in_progress_is_clipped():
    """An occurrence that started before the bound is cut at the bound."""
    office = recurring("daily", dtstart=utc(2024, 1, 1, 9), duration=8 * HOUR)

    assert office.apply(utc(2024, 1, 1, 12), utc(2024, 1, 2, 12)) == [
        Interval(start=utc(2024, 1, 1, 12), end=utc(2024, 1, 1, 17)),
        Interval(start=utc(2024, 1, 2, 9), end=utc(2024, 1, 2, 12)),
    ]


def test_bound_before_dtstart_finds_first_occurrence():
    weekly = recurring("weekly", dtstart=utc(2024, 3, 4), duration=HOUR)

    assert weekly.find_first(Interval(start=JAN_1, end=utc(2024, 12, 31))) == (
        Interval(start=utc(2024, 3, 4), end=utc(2024, 3, 4, 1))
    )


def test_no_occurrence_in_bound():
    yearly = recurring("yearly", dtstart=utc(2024, 6, 1), duration=DAY)

    assert yearly.apply(JAN_1, utc(2024, 5, 1)) == []


def test_without_duration_spans_to_next_occurrence(months):
    """Month spans run from one 1st to the next, clipped to the bound."""
    result = months.apply(utc(2024, 1, 15), utc(2024, 3, 10))

    assert result == [
        Interval(start=utc(2024, 1, 15), end=utc(2024, 2, 1)),
        Interval(start=utc(2024, 2, 1), end=utc(2024, 3, 1)),
        Interval(start=utc(2024, 3, 1), end=utc(2024, 3, 10)),
    ]


def test_without_duration_last_occurrence_runs_to_bound_end():
    two_months = recurring("monthly", dtstart=JAN_1, bymonthday=1, count=2)

    assert two_months.apply(JAN_1, utc(2024, 4, 1)) == [
        Interval(start=JAN_1, end=utc(2024, 2, 1)),
        Interval(start=utc(2024, 2, 1), end=utc(2024, 4, 1)),
    ]


def test_ordinal_first_monday_and_last_friday(months, mondays, fridays):
    """Candidates are Mondays then Fridays, since union concatenates."""
    mondays_and_fridays = mondays | fridays

    first = ordinal(1, mondays_and_fridays, months)
    last = ordinal(-1, mondays_and_fridays, months)
    tenth = ordinal(10, mondays_and_fridays, months)

    assert first.apply(JAN_1, utc(2024, 2, 1)) == days_of((1, 1))
    assert last.apply(JAN_1, utc(2024, 2, 1)) == days_of((1, 26))
    assert tenth.apply(JAN_1, utc(2024, 2, 1)) == []


def test_fifth_monday_only_when_month_has_one(months, mondays):
    fifth_monday = mondays.of(5, months)

    assert fifth_monday.apply(JAN_1, utc(2024, 2, 1)) == days_of((1, 29))
    assert fifth_monday.apply(utc(2024, 2, 1), utc(2024, 3, 1)) == []


def test_second_tuesday_of_each_month(months):
    tuesdays = recurring("weekly", dtstart=JAN_1, byweekday=TU, duration=DAY)

    result = tuesdays.of(2, months).apply(JAN_1, utc(2024, 4, 1))

    assert result == days_of((1, 9), (2, 13), (3, 12))


def test_ordinal_with_partial_first_month(months, fridays):
    """Containing spans are clipped to the bound before picking."""
    bound = (utc(2024, 1, 15), utc(2024, 3, 1))

    assert fridays.of(-1, months).apply(*bound) == days_of((1, 26), (2, 23))
    assert fridays.of(1, months).apply(*bound) == days_of((1, 19), (2, 2))


def test_business_hours_excluding_holidays():
    """Weekday office hours in the first week of 2024, minus New Year's Day."""
    workdays = recurring(
        "weekly", dtstart=JAN_1, byweekday=(MO, TU, WE, TH, FR), duration=DAY
    )
    office = recurring("daily", dtstart=utc(2024, 1, 1, 9), duration=8 * HOUR)
    new_year = recurring("yearly", dtstart=JAN_1, duration=DAY)

    open_hours = workdays & office & ~new_year

    assert open_hours.apply(JAN_1, utc(2024, 1, 7)) == [
        Interval(start=utc(2024, 1, d, 9), end=utc(2024, 1, d, 17))
        for d in (2, 3, 4, 5)
    ]


def test_apply_seconds_with_recurrence(mondays):
    start = int(JAN_1.timestamp())
    end = int(utc(2024, 1, 15).timestamp())

    assert mondays.apply_seconds(start, end) == days_of((1, 1), (1, 8))


def test_negative_duration_rejected():
    with pytest.raises(ValueError, match="must not be negative"):
        recurring("daily", dtstart=JAN_1, duration=-HOUR)


def test_invalid_frequency_rejected():
    with pytest.raises(ValueError, match="Invalid frequency"):
        recurring("hourly", dtstart=JAN_1)  # type: ignore[arg-type]


def test_zero_duration_occurrences_advance():
    points = recurring("daily", dtstart=JAN_1, duration=timedelta(0))

    result = points.apply(JAN_1, utc(2024, 1, 4))

    assert result == [
        Interval(start=utc(2024, 1, d), end=utc(2024, 1, d)) for d in (2, 3)
    ]


def test_zero_duration_occurrence_at_bound_start_is_skipped():
    """It has already ended at the bound's start, so it can't advance a cursor."""
    points = recurring("daily", dtstart=JAN_1, duration=timedelta(0))

    assert points.find_first(Interval(start=JAN_1, end=utc(2024, 1, 4))) == (
        Interval(start=utc(2024, 1, 2), end=utc(2024, 1, 2))
    )


def test_distant_dtstart_stays_fast():
    """A year of daily matches from a rule that started decades earlier."""
    daily = recurring("daily", dtstart=utc(2000, 1, 1, 9), duration=HOUR)

    began = time.perf_counter()
    result = daily.apply(JAN_1, utc(2025, 1, 1))
    elapsed = time.perf_counter() - began

    assert len(result) == 366
    assert result[0] == Interval(start=utc(2024, 1, 1, 9), end=utc(2024, 1, 1, 10))
    assert result[-1] == Interval(
        start=utc(2024, 12, 31, 9), end=utc(2024, 12, 31, 10)
    )
    assert elapsed < 2.0


@pytest.mark.parametrize(
    ("pattern", "rule", "bound"),
    [
        (
            RecurringPattern("daily", dtstart=utc(2000, 1, 1, 9), duration=HOUR),
            rrule(DAILY, dtstart=utc(2000, 1, 1, 9)),
            (utc(2024, 3, 1), utc(2024, 3, 15)),
        ),
        (
            RecurringPattern(
                "weekly",
                dtstart=utc(2001, 1, 1),
                interval=2,
                byweekday=(MO, TH),
                duration=DAY,
            ),
            rrule(WEEKLY, dtstart=utc(2001, 1, 1), interval=2, byweekday=(MO, TH)),
            (utc(2024, 6, 1), utc(2024, 8, 1)),
        ),
        (
            RecurringPattern("monthly", dtstart=utc(2000, 1, 31), duration=DAY),
            rrule(MONTHLY, dtstart=utc(2000, 1, 31)),
            (JAN_1, utc(2025, 1, 1)),
        ),
        (
            RecurringPattern("yearly", dtstart=utc(2000, 2, 29)),
            rrule(YEARLY, dtstart=utc(2000, 2, 29)),
            (utc(2025, 3, 1), utc(2026, 1, 1)),
        ),
        (
            RecurringPattern("yearly", dtstart=utc(2000, 2, 29)),
            rrule(YEARLY, dtstart=utc(2000, 2, 29)),
            (utc(2027, 3, 1), utc(2027, 6, 1)),
        ),
    ],
)
def test_reanchored_pattern_matches_plain_rule(pattern, rule, bound):
    plain = RecurringFinder(rule, duration=pattern.duration)

    assert pattern.apply(*bound) == plain.apply(*bound)
    assert pattern.apply(*bound)


def test_reanchored_month_defaults_follow_dtstart():
    """Day 31 each month means only the months that have one."""
    monthly = recurring("monthly", dtstart=utc(2000, 1, 31), duration=DAY)

    assert monthly.apply(JAN_1, utc(2025, 1, 1)) == days_of(
        (1, 31), (3, 31), (5, 31), (7, 31), (8, 31), (10, 31), (12, 31)
    )


def test_reanchored_quarters_keep_phase():
    quarters = recurring("monthly", dtstart=utc(2000, 1, 1), interval=3, bymonthday=1)

    assert quarters.apply(JAN_1, utc(2025, 1, 1)) == [
        Interval(start=utc(2024, 1, 1), end=utc(2024, 4, 1)),
        Interval(start=utc(2024, 4, 1), end=utc(2024, 7, 1)),
        Interval(start=utc(2024, 7, 1), end=utc(2024, 10, 1)),
        Interval(start=utc(2024, 10, 1), end=utc(2025, 1, 1)),
    ]


def test_pattern_with_count_is_not_reanchored():
    first_three = RecurringPattern(
        "daily", dtstart=utc(2000, 1, 1), count=3, duration=DAY
    )

    assert first_three.apply(utc(2000, 1, 1), utc(2030, 1, 1)) == [
        Interval(start=utc(2000, 1, d), end=utc(2000, 1, d + 1)) for d in (1, 2, 3)
    ]
    assert first_three.apply(JAN_1, utc(2025, 1, 1)) == []
