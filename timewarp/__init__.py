from .core import (
    Enumerator,
    Finder,
    Intersection,
    Negation,
    Ordinal,
    Promoted,
    Rule,
    Union,
    apply,
    apply_seconds,
    enumerator,
    finder,
    intersection,
    negate,
    ordinal,
    union,
)
from .interval import Instant, Interval
from .recurrence import RecurringFinder, RecurringPattern, recurring
from .util import DAY, EPOCH, HOUR, MINUTE, SECOND, WEEK, from_seconds

__all__ = [
    "Interval",
    "Instant",
    "Rule",
    "Finder",
    "Enumerator",
    "Promoted",
    "Negation",
    "Union",
    "Intersection",
    "Ordinal",
    "finder",
    "enumerator",
    "negate",
    "union",
    "intersection",
    "ordinal",
    "apply",
    "apply_seconds",
    "RecurringFinder",
    "RecurringPattern",
    "recurring",
    "from_seconds",
    "SECOND",
    "MINUTE",
    "HOUR",
    "DAY",
    "WEEK",
    "EPOCH",
]
