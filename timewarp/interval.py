from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import TypeAlias

Instant: TypeAlias = datetime


@dataclass(frozen=True, kw_only=True)
class Interval:
    start: Instant
    end: Instant

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(
                f"Interval start ({self.start}) must be <= end ({self.end})"
            )

    def __str__(self) -> str:
        """Human-friendly string showing range and duration."""
        return f"Interval({self.start}→{self.end}, {self.duration})"

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def overlaps(self, other: "Interval") -> bool:
        """True if the two half-open spans share at least one instant."""
        return self.start < other.end and other.start < self.end

    def contains(self, other: "Interval") -> bool:
        return self.start <= other.start and other.end <= self.end

    def clip(self, bound: "Interval") -> "Interval | None":
        """Return a copy truncated to `bound`, or None if the two don't overlap.

        Uses `dataclasses.replace` so subclasses keep their extra fields.
        """
        if not self.overlaps(bound):
            return None
        if bound.contains(self):
            return self
        return replace(
            self, start=max(self.start, bound.start), end=min(self.end, bound.end)
        )
