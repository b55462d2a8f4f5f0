"""
Booking Domain Entities

Core business entities for the booking domain:
- Booking: Aggregate representing a reservation request on a resource
- BookingStatus: FSM states for the reservation lifecycle
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from shared.domain.base import Aggregate, utcnow
from shared.domain.value_objects import Actor, TimeInterval
from apps.bookings.domain.exceptions import InvalidTransition


class BookingStatus(Enum):
    """
    Booking Status Finite State Machine

    State transitions:
    - (request) -> PENDING (slot free)
    - (request) -> WAITLISTED (slot taken, resource allows queueing)
    - PENDING -> CONFIRMED (administrator approved)
    - PENDING -> CANCELLED (rejected or cancelled)
    - CONFIRMED -> CANCELLED (cancelled)
    - WAITLISTED -> PENDING (automatic promotion)
    - WAITLISTED -> CANCELLED (cancelled)
    """
    PENDING = 'pending'          # Occupies the slot, awaiting approval
    CONFIRMED = 'confirmed'      # Occupies the slot, approved
    WAITLISTED = 'waitlisted'    # Queued, never blocks anyone
    CANCELLED = 'cancelled'      # Terminal

    @property
    def occupies_slot(self) -> bool:
        return self in OCCUPYING_STATUSES

    @property
    def is_terminal(self) -> bool:
        return not ALLOWED_TRANSITIONS[self]


OCCUPYING_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})

ALLOWED_TRANSITIONS = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.CANCELLED}),
    BookingStatus.WAITLISTED: frozenset({BookingStatus.PENDING, BookingStatus.CANCELLED}),
    BookingStatus.CANCELLED: frozenset(),
}

_IMMUTABLE_FIELDS = frozenset({'id', 'resource_id', 'user_id', 'interval', 'created_at'})


@dataclass(eq=False, kw_only=True)
class Booking(Aggregate):
    """
    Booking Aggregate Root

    Represents a user's request for a resource over a time interval.

    Key invariants:
    - Interval is a valid half-open range (enforced by TimeInterval)
    - resource_id, user_id, interval and created_at never change
    - Only status and resolution metadata mutate, and only along
      ALLOWED_TRANSITIONS
    - Overlap with other active bookings is checked by the application
      layer under the resource lock, not here
    """

    resource_id: int
    user_id: int
    interval: TimeInterval
    status: BookingStatus = BookingStatus.PENDING
    notes: str = ''

    # Resolution metadata
    resolved_at: datetime | None = None
    resolved_by_id: int | None = None
    resolution_reason: str = ''

    def __setattr__(self, name, value):
        if name in _IMMUTABLE_FIELDS and name in self.__dict__:
            raise AttributeError(f"Booking.{name} cannot be changed after creation")
        super().__setattr__(name, value)

    @classmethod
    def create(
        cls,
        *,
        resource_id: int,
        user_id: int,
        interval: TimeInterval,
        waitlisted: bool,
        actor: Actor,
        notes: str = '',
    ) -> 'Booking':
        """
        Open a new reservation request

        The caller decides `waitlisted` from the conflict check.
        Events: BookingRequested or BookingWaitlisted
        """
        from apps.bookings.domain.events import BookingRequested, BookingWaitlisted

        status = BookingStatus.WAITLISTED if waitlisted else BookingStatus.PENDING
        booking = cls(
            resource_id=resource_id,
            user_id=user_id,
            interval=interval,
            status=status,
            notes=notes,
        )
        event_type = BookingWaitlisted if waitlisted else BookingRequested
        booking.add_event(event_type(**booking._event_fields(actor)))
        return booking

    def can_transition_to(self, target: BookingStatus) -> bool:
        return target in ALLOWED_TRANSITIONS[self.status]

    def ensure_can_transition_to(self, target: BookingStatus):
        if not self.can_transition_to(target):
            raise InvalidTransition(self.status, target)

    def approve(self, actor: Actor):
        """
        Approve request (PENDING -> CONFIRMED)

        The caller must have re-run the conflict check first.
        Events: BookingApproved
        """
        if self.status is not BookingStatus.PENDING:
            raise InvalidTransition(
                self.status,
                BookingStatus.CONFIRMED,
                f"Only pending bookings can be approved, booking is '{self.status.value}'",
            )

        from apps.bookings.domain.events import BookingApproved

        self._move_to(BookingStatus.CONFIRMED, actor)
        self.add_event(BookingApproved(**self._event_fields(actor)))

    def reject(self, actor: Actor, reason: str = '') -> bool:
        """
        Reject request (PENDING -> CANCELLED)

        Returns False when the booking is already cancelled (replay).
        Events: BookingRejected
        """
        if self.status is BookingStatus.CANCELLED:
            return False
        if self.status is not BookingStatus.PENDING:
            raise InvalidTransition(
                self.status,
                BookingStatus.CANCELLED,
                f"Only pending bookings can be rejected, booking is '{self.status.value}'",
            )

        from apps.bookings.domain.events import BookingRejected

        self._move_to(BookingStatus.CANCELLED, actor, reason)
        self.add_event(BookingRejected(reason=reason, **self._event_fields(actor)))
        return True

    def cancel(self, actor: Actor, reason: str = '') -> bool:
        """
        Cancel booking (PENDING/CONFIRMED/WAITLISTED -> CANCELLED)

        Returns False when the booking is already cancelled (replay).
        Events: BookingCancelled
        """
        if self.status is BookingStatus.CANCELLED:
            return False
        self.ensure_can_transition_to(BookingStatus.CANCELLED)

        from apps.bookings.domain.events import BookingCancelled

        previous = self.status
        self._move_to(BookingStatus.CANCELLED, actor, reason)
        self.add_event(BookingCancelled(
            previous_status=previous.value,
            freed_slot=previous.occupies_slot,
            reason=reason,
            **self._event_fields(actor)
        ))
        return True

    def promote(self, freed_interval: TimeInterval):
        """
        Promote from the waitlist (WAITLISTED -> PENDING)

        Always performed by the system actor.
        Events: BookingPromoted
        """
        if self.status is not BookingStatus.WAITLISTED:
            raise InvalidTransition(self.status, BookingStatus.PENDING)

        from apps.bookings.domain.events import BookingPromoted

        actor = Actor.system()
        self._move_to(BookingStatus.PENDING, actor)
        self.add_event(BookingPromoted(freed_interval=freed_interval, **self._event_fields(actor)))

    @property
    def occupies_slot(self) -> bool:
        return self.status.occupies_slot

    def _move_to(self, target: BookingStatus, actor: Actor, reason: str = ''):
        self.ensure_can_transition_to(target)
        now = utcnow()
        self.status = target
        self.resolved_at = now
        self.resolved_by_id = actor.user_id
        self.resolution_reason = reason
        self.updated_at = now

    def _event_fields(self, actor: Actor) -> dict:
        return {
            'aggregate_id': self.id,
            'booking_id': self.id,
            'resource_id': self.resource_id,
            'user_id': self.user_id,
            'interval': self.interval,
            'actor': actor,
        }

    def __str__(self):
        return f"Booking {self.id} ({self.status.value})"

    def __repr__(self):
        return (
            f"Booking(id={self.id}, resource_id={self.resource_id}, "
            f"status={self.status.value}, interval={self.interval!r})"
        )
