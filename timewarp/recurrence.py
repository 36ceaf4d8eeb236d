"""Finders backed by RFC 5545 recurrence rules.

The calendar arithmetic (weekdays, month lengths, time zones) stays in
python-dateutil's rrule implementation. This module only maps the
occurrences of a caller-built rule to intervals so they can take part in
the algebra.
"""

from datetime import datetime, timedelta
from typing import Any, Literal

from dateutil.relativedelta import relativedelta
from dateutil.rrule import DAILY, MONTHLY, WEEKLY, YEARLY, rrule, rruleset
from typing_extensions import override

from timewarp.core import Finder
from timewarp.interval import Interval

_FREQ_MAP = {
    "daily": DAILY,
    "weekly": WEEKLY,
    "monthly": MONTHLY,
    "yearly": YEARLY,
}


class RecurringFinder(Finder):
    """Find the first occurrence of a recurrence rule inside a bound.

    Each occurrence spans `[occurrence, occurrence + duration)`. Without a
    duration, an occurrence spans until the next one, and the last occurrence
    runs to the end of whatever bound it is found in; that is the shape wanted
    for containing spans such as "each month".

    With a duration, the first match is the first occurrence still running
    after `bound.start`. A zero-duration occurrence exactly at `bound.start`
    has already ended there, so it is skipped; returning it would give a
    match that never advances the promotion cursor.

    The rule's `dtstart` and the bounds it is evaluated against must agree on
    timezone awareness (dateutil compares them directly).

    dateutil walks a rule from its `dtstart` on every lookup, so a caller-built
    rule with a distant `dtstart` gets slower the further the bound is from it.
    Build such rules with `cache=True`, or use `recurring()`, which re-anchors
    its rule near each query.
    """

    def __init__(self, rule: rrule | rruleset, duration: timedelta | None = None):
        if duration is not None and duration < timedelta(0):
            raise ValueError(
                f"duration must not be negative, got {duration}.\n"
                f"Example: recurring('weekly', dtstart=..., duration=HOUR)"
            )
        self.rule: rrule | rruleset = rule
        self.duration: timedelta | None = duration

    def _rule_near(self, instant: datetime) -> rrule | rruleset:
        """Return a rule yielding the same occurrences from `instant` onward."""
        return self.rule

    @override
    def find_first(self, bound: Interval) -> Interval | None:
        if self.duration is None:
            rule = self._rule_near(bound.start)
            # The occurrence in progress at bound.start, if any
            start: datetime | None = rule.before(bound.start, inc=True)
            if start is None and rule is not self.rule:
                # Nothing between the anchor and bound.start; search the full history
                rule = self.rule
                start = rule.before(bound.start, inc=True)
            if start is None:
                start = rule.after(bound.start)
            end = None if start is None else rule.after(start)
        else:
            # First occurrence still running at bound.start
            lookback = bound.start - self.duration
            start = self._rule_near(lookback).after(lookback)
            end = None if start is None else start + self.duration

        if start is None or start >= bound.end:
            return None

        return Interval(
            start=max(start, bound.start),
            end=bound.end if end is None else min(end, bound.end),
        )

    def __repr__(self) -> str:
        return f"RecurringFinder({self.rule!r}, duration={self.duration!r})"


class RecurringPattern(RecurringFinder):
    """Recurrence built from a frequency name, re-anchored near each query.

    Every lookup rebuilds the rrule from a phase-aligned anchor a whole number
    of periods after `dtstart`, so the cost of a lookup doesn't grow with the
    distance from `dtstart`. Day fields that rrule would otherwise derive from
    `dtstart` are pinned up front, since the anchor falls on a different day.
    Rules with a `count` are never re-anchored (the count runs from `dtstart`).
    """

    def __init__(
        self,
        freq: Literal["daily", "weekly", "monthly", "yearly"],
        *,
        dtstart: datetime,
        interval: int = 1,
        duration: timedelta | None = None,
        **rrule_kwargs: Any,
    ):
        if freq not in _FREQ_MAP:
            valid = ", ".join(_FREQ_MAP)
            raise ValueError(
                f"Invalid frequency: '{freq}'\nValid frequencies: {valid}\n"
            )

        kwargs = dict(rrule_kwargs)
        # Same defaulting rule dateutil applies when no day selector is given
        if not (
            kwargs.get("byweekno")
            or kwargs.get("byyearday")
            or kwargs.get("bymonthday")
            or kwargs.get("byweekday") is not None
            or kwargs.get("byeaster") is not None
        ):
            if freq == "yearly":
                if kwargs.get("bymonth") is None:
                    kwargs["bymonth"] = dtstart.month
                kwargs["bymonthday"] = dtstart.day
            elif freq == "monthly":
                kwargs["bymonthday"] = dtstart.day

        self.freq: str = freq
        self.dtstart: datetime = dtstart
        self.interval: int = interval
        self.rrule_kwargs: dict[str, Any] = kwargs

        super().__init__(self._build(dtstart), duration=duration)

    def _build(self, dtstart: datetime) -> rrule:
        return rrule(
            _FREQ_MAP[self.freq],
            dtstart=dtstart,
            interval=self.interval,
            **self.rrule_kwargs,
        )

    def _get_safe_anchor(self, instant: datetime) -> datetime | None:
        """Calculate a phase-aligned dtstart at least one period before `instant`.

        Returns None when `instant` is too close to `dtstart` for an anchor to
        help.
        """
        start = self.dtstart
        step = self.interval

        if self.freq == "daily":
            periods = (instant - start).days // step - 1
            return start + timedelta(days=periods * step) if periods > 0 else None

        elif self.freq == "weekly":
            # Whole weeks keep the weekday, and with it the week phase
            periods = (instant - start).days // 7 // step - 1
            return start + timedelta(weeks=periods * step) if periods > 0 else None

        elif self.freq == "monthly":
            months = (instant.year - start.year) * 12 + instant.month - start.month
            periods = months // step - 1
            if periods <= 0:
                return None
            return start.replace(day=1) + relativedelta(months=periods * step)

        # yearly
        periods = (instant.year - start.year) // step - 1
        if periods <= 0:
            return None
        return start.replace(month=1, day=1) + relativedelta(years=periods * step)

    @override
    def _rule_near(self, instant: datetime) -> rrule:
        if self.rrule_kwargs.get("count") is not None:
            return self.rule
        anchor = self._get_safe_anchor(instant)
        return self.rule if anchor is None else self._build(anchor)

    @override
    def __repr__(self) -> str:
        return (
            f"RecurringPattern({self.freq!r}, dtstart={self.dtstart!r}, "
            f"interval={self.interval}, duration={self.duration!r})"
        )


def recurring(
    freq: Literal["daily", "weekly", "monthly", "yearly"],
    *,
    dtstart: datetime,
    interval: int = 1,
    duration: timedelta | None = None,
    **rrule_kwargs: Any,
) -> RecurringPattern:
    """
    Create a Finder over an rrule built from a frequency name.

    The rule is re-anchored near each query, so a distant `dtstart` costs
    nothing extra.

    Args:
        freq: Frequency - "daily", "weekly", "monthly", or "yearly"
        dtstart: First occurrence (anchors phase and time of day)
        interval: Repeat every N units (e.g., interval=2 for bi-weekly). Default: 1
        duration: Length of each occurrence; None spans to the next occurrence
        **rrule_kwargs: Passed to dateutil's rrule (byweekday, bymonthday, ...)

    Returns:
        Finder yielding one occurrence per call

    Examples:
        >>> from dateutil.rrule import MO, TU
        >>> from timewarp import DAY, HOUR, recurring
        >>>
        >>> # Every Tuesday, all day
        >>> tuesdays = recurring("weekly", dtstart=start, byweekday=TU, duration=DAY)
        >>>
        >>> # Calendar months, each spanning to the next 1st
        >>> months = recurring("monthly", dtstart=start, bymonthday=1)
        >>>
        >>> # 2nd Tuesday of every month
        >>> second_tuesday = tuesdays.of(2, months)
        >>>
        >>> # Every third day, one hour from the start time
        >>> every_third = recurring("daily", interval=3, dtstart=start, duration=HOUR)
    """
    return RecurringPattern(
        freq, dtstart=dtstart, interval=interval, duration=duration, **rrule_kwargs
    )
