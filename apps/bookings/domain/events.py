"""
Booking Domain Events

Events that represent things that have happened in the booking domain.
These are published after successful transaction commits.
"""

from dataclasses import dataclass
from uuid import UUID

from shared.domain.base import DomainEvent
from shared.domain.value_objects import Actor, TimeInterval


@dataclass(kw_only=True)
class BookingEvent(DomainEvent):
    """Fields every booking event carries"""
    booking_id: UUID
    resource_id: int
    user_id: int
    interval: TimeInterval
    actor: Actor

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update({
            'booking_id': str(self.booking_id),
            'resource_id': self.resource_id,
            'user_id': self.user_id,
            'start': self.interval.start.isoformat(),
            'end': self.interval.end.isoformat(),
            'actor_kind': self.actor.kind.value,
            'actor_id': self.actor.user_id,
        })
        return data


@dataclass(kw_only=True)
class BookingRequested(BookingEvent):
    """
    Event: A request was accepted into the approval pipeline (status Pending)

    Triggers:
    - Audit record BOOKING_CREATED
    """


@dataclass(kw_only=True)
class BookingWaitlisted(BookingEvent):
    """
    Event: A request conflicted and was queued (status Waitlisted)

    Triggers:
    - Notify the requester
    - Audit record BOOKING_WAITLISTED
    """


@dataclass(kw_only=True)
class BookingApproved(BookingEvent):
    """
    Event: An administrator approved a request (Pending -> Confirmed)

    Triggers:
    - Notify the booking owner
    - Audit record BOOKING_APPROVED
    """


@dataclass(kw_only=True)
class BookingRejected(BookingEvent):
    """
    Event: An administrator rejected a request (Pending -> Cancelled)

    Triggers:
    - Notify the booking owner
    - Audit record BOOKING_REJECTED
    """
    reason: str = ''


@dataclass(kw_only=True)
class BookingCancelled(BookingEvent):
    """
    Event: A booking was cancelled

    `freed_slot` is True when the booking occupied its slot
    (Pending/Confirmed) before cancellation.
    """
    previous_status: str
    freed_slot: bool
    reason: str = ''


@dataclass(kw_only=True)
class BookingPromoted(BookingEvent):
    """
    Event: A waitlisted booking was promoted automatically (Waitlisted -> Pending)

    Triggers:
    - Notify the promoted user that approval is pending
    - Notify privileged lab members
    - Audit record BOOKING_PROMOTED with the system actor
    """
    freed_interval: TimeInterval
