"""
Common Value Objects

Value objects used across multiple domains:
- TimeInterval: A half-open [start, end) time range on a resource calendar
- Actor: Who performed an action (a human user or the system itself)
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from shared.domain.base import ValueObject
from shared.domain.exceptions import InvalidInterval


@dataclass(frozen=True)
class TimeInterval(ValueObject):
    """
    Time interval value object

    Represents a range from start (inclusive) to end (exclusive).
    Used for booking slots, freed slots and conflict checks.
    """
    start: datetime
    end: datetime

    def __post_init__(self):
        if self.start.tzinfo is None or self.end.tzinfo is None:
            raise InvalidInterval(
                f"Interval bounds must be timezone-aware: {self.start!r} - {self.end!r}"
            )
        if self.start >= self.end:
            raise InvalidInterval(
                f"Start ({self.start.isoformat()}) must be before end ({self.end.isoformat()})"
            )

    def overlaps_with(self, other: 'TimeInterval') -> bool:
        """
        Check if this interval overlaps with another

        The end is exclusive, so back-to-back intervals don't overlap.

        Examples:
            - 10:00-11:00 overlaps with 10:30-11:30 -> True
            - 10:00-11:00 overlaps with 11:00-12:00 -> False (adjacent)
        """
        if not isinstance(other, TimeInterval):
            raise TypeError("Can only check overlap with another TimeInterval")

        return self.start < other.end and other.start < self.end

    def covers(self, inner: 'TimeInterval') -> bool:
        """Check if `inner` lies entirely within this interval"""
        if not isinstance(inner, TimeInterval):
            raise TypeError("Can only check coverage of another TimeInterval")

        return inner.start >= self.start and inner.end <= self.end

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def __str__(self):
        return f"{self.start.isoformat()} - {self.end.isoformat()}"

    def __repr__(self):
        return f"TimeInterval({self.start.isoformat()}, {self.end.isoformat()})"


def overlaps(a: TimeInterval, b: TimeInterval) -> bool:
    return a.overlaps_with(b)


def covers(outer: TimeInterval, inner: TimeInterval) -> bool:
    return outer.covers(inner)


class ActorKind(Enum):
    """Whether an action was taken by a person or by the platform itself"""
    HUMAN = 'human'
    SYSTEM = 'system'


@dataclass(frozen=True)
class Actor(ValueObject):
    """
    Actor value object

    Identifies who performed a state change. System actions (such as
    automatic waitlist promotion) carry no user id.
    """
    kind: ActorKind
    user_id: int | None = None
    name: str = ''

    def __post_init__(self):
        if self.kind is ActorKind.HUMAN and self.user_id is None:
            raise ValueError("Human actors must carry a user id")
        if self.kind is ActorKind.SYSTEM and self.user_id is not None:
            raise ValueError("System actor cannot carry a user id")

    @classmethod
    def human(cls, user_id: int, name: str = '') -> 'Actor':
        return cls(ActorKind.HUMAN, user_id, name or f"user {user_id}")

    @classmethod
    def system(cls) -> 'Actor':
        return cls(ActorKind.SYSTEM, None, 'System')

    @property
    def is_system(self) -> bool:
        return self.kind is ActorKind.SYSTEM

    def __str__(self):
        return self.name
