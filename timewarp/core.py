import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import date, datetime, time, timedelta, timezone
from functools import reduce
from typing import Any, Literal

from typing_extensions import override

from timewarp.interval import Instant, Interval
from timewarp.util import from_seconds

logger = logging.getLogger(__name__)


class Rule(ABC):
    """Anything that can be composed and evaluated against a bound."""

    @abstractmethod
    def as_enumerator(self) -> "Enumerator":
        """Return an Enumerator view of this rule (Finders are promoted)."""
        pass

    def apply(self, start: Instant, end: Instant) -> list[Interval]:
        """Evaluate the rule over the bound [start, end).

        A reversed bound (start after end) is empty and matches nothing.
        """
        if start > end:
            logger.debug(f"Reversed bound {start} > {end}, nothing to match")
            return []
        return self.as_enumerator().find_all(Interval(start=start, end=end))

    def apply_seconds(self, start: int, end: int) -> list[Interval]:
        """Evaluate the rule over a bound given as integer Unix seconds."""
        return self.apply(from_seconds(start), from_seconds(end))

    def __getitem__(self, item: slice) -> list[Interval]:
        start = self._coerce_bound(item.start, "start")
        end = self._coerce_bound(item.stop, "end")
        return self.apply(start, end)

    def _coerce_bound(self, bound: Any, edge: Literal["start", "end"]) -> Instant:
        """Convert slice bounds to timezone-aware datetimes.

        Accepts:
        - int: Unix timestamp in seconds
        - datetime: Must be timezone-aware, passed through
        - date: Midnight UTC; an end date covers the whole day
          (the bound ends at the following midnight)

        Raises:
            ValueError: If the bound is missing (rules need finite bounds)
            TypeError: If bound is an unsupported type or naive datetime
        """
        if bound is None:
            raise ValueError(
                f"Rule slices require finite bounds, got {edge}=None.\n"
                f"Fix: Use explicit bounds when slicing: rule[start:end]\n"
                f"Example: mondays[1704067200:1706745600]"
            )
        if isinstance(bound, bool):
            raise TypeError(f"Rule slice {edge} bound must not be a bool")
        if isinstance(bound, int):
            return from_seconds(bound)
        if isinstance(bound, datetime):
            if bound.tzinfo is None:
                raise TypeError(
                    f"Rule slice {edge} bound must be a timezone-aware datetime.\n"
                    f"Got naive datetime: {bound!r}\n"
                    f"Hint: Add timezone info:\n"
                    f"  from zoneinfo import ZoneInfo\n"
                    f"  dt = datetime(..., tzinfo=ZoneInfo('UTC'))  "
                    f"# or 'US/Pacific', etc.\n"
                    f"  # Or use timezone.utc for UTC:\n"
                    f"  dt = datetime(..., tzinfo=timezone.utc)"
                )
            return bound
        if isinstance(bound, date):
            dt = datetime.combine(bound, time.min, tzinfo=timezone.utc)
            if edge == "end":
                dt += timedelta(days=1)
            return dt
        raise TypeError(
            f"Rule slice {edge} bound must be int, datetime, or date.\n"
            f"Got {type(bound).__name__!r}: {bound!r}\n"
            f"Examples:\n"
            f"  rule[start_ts:end_ts]  # int (Unix seconds)\n"
            f"  rule[datetime(2025,1,1,tzinfo=timezone.utc):...]  "
            f"# timezone-aware datetime\n"
            f"  rule[date(2025,1,1):date(2025,12,31)]  # date objects"
        )

    def __or__(self, other: "Rule") -> "Enumerator":
        return Union(self, other)

    def __and__(self, other: "Rule") -> "Enumerator":
        return Intersection(self, other)

    def __invert__(self) -> "Enumerator":
        return Negation(self)

    def of(self, order: int, outer: "Rule") -> "Enumerator":
        """Pick this rule's `order`-th match within each span of `outer`.

        Example:
            >>> second_tuesday = tuesdays.of(2, months)
            >>> last_friday = fridays.of(-1, months)
        """
        return Ordinal(order, self, outer)


class Finder(Rule):
    """A rule yielding at most one match per bound.

    Implementations return the first occurrence at or after `bound.start`,
    clipped to the bound, or None. When promoted, a Finder must either
    return a match with `match.end > bound.start` or return None; a match
    that doesn't advance makes promotion loop forever (see `promote`).
    """

    @abstractmethod
    def find_first(self, bound: Interval) -> Interval | None:
        pass

    @override
    def as_enumerator(self) -> "Enumerator":
        return Promoted(self)

    def promote(self, limit: int | None = None) -> "Promoted":
        """Return an Enumerator re-applying this finder across the bound.

        Args:
            limit: Optional cap on the number of matches collected. Use it to
                guard against finders that may not advance.
        """
        return Promoted(self, limit=limit)


class Enumerator(Rule):
    """A rule yielding every match within a bound."""

    @abstractmethod
    def find_all(self, bound: Interval) -> list[Interval]:
        """Return matches within `bound`.

        Order, overlap and duplicates are whatever the implementation
        produces; only specific combinators make guarantees.
        """
        pass

    @override
    def as_enumerator(self) -> "Enumerator":
        return self


def _as_enumerator(rule: Any) -> Enumerator:
    if not isinstance(rule, Rule):
        raise TypeError(
            f"Expected a Finder or Enumerator, got {type(rule).__name__!r}.\n"
            f"Hint: wrap plain functions first:\n"
            f"  finder(fn)      # fn(bound) -> Interval | None\n"
            f"  enumerator(fn)  # fn(bound) -> list[Interval]"
        )
    return rule.as_enumerator()


class FunctionFinder(Finder):
    def __init__(self, fn: Callable[[Interval], Interval | None]):
        self.fn: Callable[[Interval], Interval | None] = fn

    @override
    def find_first(self, bound: Interval) -> Interval | None:
        return self.fn(bound)

    def __repr__(self) -> str:
        return f"finder({getattr(self.fn, '__name__', self.fn)!r})"


class FunctionEnumerator(Enumerator):
    def __init__(self, fn: Callable[[Interval], list[Interval]]):
        self.fn: Callable[[Interval], list[Interval]] = fn

    @override
    def find_all(self, bound: Interval) -> list[Interval]:
        return list(self.fn(bound))

    def __repr__(self) -> str:
        return f"enumerator({getattr(self.fn, '__name__', self.fn)!r})"


class Promoted(Enumerator):
    def __init__(self, finder: Finder, limit: int | None = None):
        if limit is not None and limit < 1:
            raise ValueError(
                f"Promotion limit must be a positive integer or None, got {limit}.\n"
                f"Example: finder.promote(limit=1000)"
            )
        self.finder: Finder = finder
        self.limit: int | None = limit

    @override
    def find_all(self, bound: Interval) -> list[Interval]:
        """Collect matches by re-applying the finder from a moving cursor.

        Each match's end becomes the start of the next search. Stops when the
        finder returns None or the cursor reaches the bound's end. Matches are
        not clipped here; that is the finder's job.
        """
        result: list[Interval] = []
        cursor = bound.start

        while cursor < bound.end:
            match = self.finder.find_first(Interval(start=cursor, end=bound.end))
            if match is None:
                break

            if self.limit is not None and len(result) >= self.limit:
                logger.warning(
                    f"Promotion of {self.finder!r} stopped after {self.limit} "
                    f"matches at {cursor}, before reaching {bound.end}"
                )
                break

            result.append(match)
            cursor = match.end

        logger.debug(f"Promoted {self.finder!r}: {len(result)} matches in {bound}")
        return result


class Negation(Enumerator):
    def __init__(self, source: Rule):
        self.source: Enumerator = _as_enumerator(source)

    @override
    def find_all(self, bound: Interval) -> list[Interval]:
        """Return the gaps of `bound` not covered by the source's matches.

        Assumes the source yields chronological, non-overlapping matches (as
        promotion does). Other input is not rejected; it produces gaps that
        follow the same cursor walk.
        """
        result: list[Interval] = []
        cursor = bound.start

        for match in self.source.find_all(bound):
            if cursor < match.start:
                result.append(Interval(start=cursor, end=match.start))
            elif match.start < cursor:
                logger.debug(
                    f"Negation input out of order: {match} starts before {cursor}"
                )
            cursor = match.end

        if cursor < bound.end:
            result.append(Interval(start=cursor, end=bound.end))

        return result


class Union(Enumerator):
    def __init__(self, *sources: Rule):
        flattened: list[Enumerator] = []
        for source in sources:
            if isinstance(source, Union):
                flattened.extend(source.sources)
            else:
                flattened.append(_as_enumerator(source))

        self.sources: tuple[Enumerator, ...] = tuple(flattened)

    @override
    def find_all(self, bound: Interval) -> list[Interval]:
        """Concatenate each source's matches in source order.

        No sorting, deduplication or merging happens here.
        """
        result: list[Interval] = []
        for source in self.sources:
            result.extend(source.find_all(bound))
        return result


class Intersection(Enumerator):
    def __init__(self, base: Rule, *filters: Rule):
        flattened: list[Enumerator] = []
        for source in (base, *filters):
            if isinstance(source, Intersection):
                flattened.extend(source.sources)
            else:
                flattened.append(_as_enumerator(source))

        self.sources: tuple[Enumerator, ...] = tuple(flattened)

    @override
    def find_all(self, bound: Interval) -> list[Interval]:
        """Narrow the base matches through each filter in turn.

        Every later source is evaluated inside each span that survived so far,
        and its matches replace that span. Filter order changes how finely the
        result is cut, not which instants it covers.
        """
        result = self.sources[0].find_all(bound)

        for source in self.sources[1:]:
            result = [piece for span in result for piece in source.find_all(span)]

        return result


class Ordinal(Enumerator):
    def __init__(self, order: int, inner: Rule, outer: Rule):
        if order == 0:
            raise ValueError(
                f"Ordinal order cannot be zero.\n"
                f"Use 1 for the first match, 2 for the second, "
                f"-1 for the last, -2 for the second to last.\n"
                f"Example: tuesdays.of(2, months)  # 2nd Tuesday of each month"
            )
        self.order: int = order
        self.inner: Enumerator = _as_enumerator(inner)
        self.outer: Enumerator = _as_enumerator(outer)

    @override
    def find_all(self, bound: Interval) -> list[Interval]:
        """Pick the inner rule's `order`-th match inside each outer span.

        Containing spans are handled independently: a span with too few
        candidates, or whose pick falls outside `bound`, contributes nothing.
        Picks that stick out of `bound` are clipped to it.
        """
        result: list[Interval] = []

        for span in self.outer.find_all(bound):
            candidates = self.inner.find_all(span)

            if self.order > len(candidates) or -self.order > len(candidates):
                continue

            # Negative orders index from the end, same as Python sequences
            index = self.order - 1 if self.order > 0 else self.order
            picked = candidates[index].clip(bound)
            if picked is None:
                continue

            result.append(picked)

        logger.debug(f"Ordinal {self.order}: {len(result)} picks in {bound}")
        return result


def finder(fn: Callable[[Interval], Interval | None]) -> Finder:
    """Wrap a plain function as a Finder.

    Example:
        >>> @finder
        ... def lunch(bound: Interval) -> Interval | None:
        ...     ...
        >>> lunch.apply(start, end)
    """
    return FunctionFinder(fn)


def enumerator(fn: Callable[[Interval], list[Interval]]) -> Enumerator:
    """Wrap a plain function as an Enumerator."""
    return FunctionEnumerator(fn)


def negate(rule: Rule) -> Enumerator:
    """Return the gaps left by `rule` (equivalent to `~rule`)."""
    return Negation(rule)


def union(*rules: Rule) -> Enumerator:
    """Compose rules with union semantics (equivalent to chaining `|`)."""

    if not rules:
        raise ValueError(
            f"union() requires at least one rule argument.\n"
            f"Example: union(mondays, fridays)"
        )

    def reducer(acc: Rule, nxt: Rule) -> Rule:
        return acc | nxt

    return _as_enumerator(reduce(reducer, rules))


def intersection(*rules: Rule) -> Enumerator:
    """Compose rules with intersection semantics (equivalent to chaining `&`).

    The first rule is the base; each following rule narrows the spans left
    by the ones before it.
    """

    if not rules:
        raise ValueError(
            f"intersection() requires at least one rule argument.\n"
            f"Example: intersection(weekdays, office_hours)"
        )

    def reducer(acc: Rule, nxt: Rule) -> Rule:
        return acc & nxt

    return _as_enumerator(reduce(reducer, rules))


def ordinal(order: int, inner: Rule, outer: Rule) -> Enumerator:
    """Functional form of `inner.of(order, outer)`."""
    return Ordinal(order, inner, outer)


def apply(rule: Rule, start: Instant, end: Instant) -> list[Interval]:
    return rule.apply(start, end)


def apply_seconds(rule: Rule, start: int, end: int) -> list[Interval]:
    return rule.apply_seconds(start, end)
