"""
Booking Command Handlers

These are the use cases for the booking domain.
They orchestrate domain operations within units of work.

Commands:
- RequestBookingCommand: Ask for a resource slot (Pending or Waitlisted)
- ApproveBookingCommand: Approve a pending request
- RejectBookingCommand: Reject a pending request
- CancelBookingCommand: Cancel a pending, confirmed or waitlisted booking

Every handler takes the resource lock before reading active bookings, so
the conflict check and the status write happen in one serialized scope.
"""

from dataclasses import dataclass, field
from typing import Callable
from uuid import UUID
import logging

from shared.domain.value_objects import Actor, TimeInterval
from apps.bookings.application.promoter import WaitlistPromoter
from apps.bookings.domain.entities import Booking, BookingStatus
from apps.bookings.domain.exceptions import (
    ResourceNotBookable,
    SlotUnavailable,
    StaleConflict,
)
from apps.bookings.domain.ports import BookingUnitOfWork
from apps.bookings.services import find_conflicts, has_conflict

logger = logging.getLogger(__name__)

UnitOfWorkFactory = Callable[[], BookingUnitOfWork]


# ===== Commands =====

@dataclass
class RequestBookingCommand:
    """
    Command to request a booking

    This is the primary entry point for creating bookings.
    """
    resource_id: int
    user_id: int
    interval: TimeInterval
    actor: Actor
    notes: str = ''


@dataclass
class ApproveBookingCommand:
    """Command to approve a pending booking"""
    booking_id: UUID
    actor: Actor


@dataclass
class RejectBookingCommand:
    """Command to reject a pending booking"""
    booking_id: UUID
    actor: Actor
    reason: str = ''


@dataclass
class CancelBookingCommand:
    """Command to cancel a booking"""
    booking_id: UUID
    actor: Actor
    reason: str = ''


@dataclass
class PromoteWaitlistCommand:
    """Command to promote the first eligible waitlisted booking into a freed slot"""
    resource_id: int
    freed_interval: TimeInterval
    reason: str = field(default='slot freed')


def _load_for_update(uow: BookingUnitOfWork, booking_id: UUID) -> Booking:
    """
    Load a booking with its resource locked

    The first read only discovers the resource. The booking is read again
    once the lock is held so its status cannot be stale.
    """
    booking = uow.bookings.get(booking_id)
    uow.resources.get(booking.resource_id, lock=True)
    return uow.bookings.get(booking_id)


# ===== Command Handlers =====

class RequestBookingHandler:
    """
    Handler for RequestBooking command

    Strategy:
    1. Open unit of work
    2. Lock the resource (SELECT FOR UPDATE / per-resource lock)
    3. Check the slot against active bookings
    4. Create a Pending booking, a Waitlisted one, or refuse
    5. Commit; events are published after commit
    """

    def __init__(self, uow_factory: UnitOfWorkFactory):
        self.uow_factory = uow_factory

    def handle(self, command: RequestBookingCommand) -> Booking:
        """
        Returns: Created Booking aggregate

        Raises:
            ResourceNotFound, ResourceNotBookable, SlotUnavailable, StoreUnavailable
        """
        logger.info(
            f"Requesting booking on resource {command.resource_id} "
            f"for user {command.user_id}, {command.interval}"
        )

        with self.uow_factory() as uow:
            resource = uow.resources.get(command.resource_id, lock=True)
            if not resource.is_bookable:
                raise ResourceNotBookable(
                    f"Resource '{resource.name}' is not available for booking",
                    resource_id=resource.id,
                    status=resource.status.value,
                )

            conflicts = find_conflicts(uow.bookings, resource.id, command.interval)
            if conflicts and not resource.allow_queueing:
                logger.info(
                    f"Slot {command.interval} on resource {resource.id} is taken by "
                    f"{len(conflicts)} booking(s) and queueing is disabled"
                )
                raise SlotUnavailable(
                    f"Resource '{resource.name}' is already booked for {command.interval}",
                    resource_id=resource.id,
                    conflicting_ids=[str(b.id) for b in conflicts],
                )

            booking = Booking.create(
                resource_id=resource.id,
                user_id=command.user_id,
                interval=command.interval,
                waitlisted=bool(conflicts),
                actor=command.actor,
                notes=command.notes,
            )

            uow.collect_events(booking)
            uow.bookings.create(booking)

        logger.info(f"Booking {booking.id} created with status {booking.status.value}")
        return booking


class ApproveBookingHandler:
    """Handler for approving a pending booking"""

    def __init__(self, uow_factory: UnitOfWorkFactory):
        self.uow_factory = uow_factory

    def handle(self, command: ApproveBookingCommand) -> Booking:
        logger.info(f"Approving booking {command.booking_id}")

        with self.uow_factory() as uow:
            booking = _load_for_update(uow, command.booking_id)

            # Fail fast on a non-pending booking before looking at conflicts
            booking.ensure_can_transition_to(BookingStatus.CONFIRMED)

            if has_conflict(
                uow.bookings,
                booking.resource_id,
                booking.interval,
                exclude_booking_id=booking.id,
            ):
                raise StaleConflict(
                    f"Booking {booking.id} overlaps another active booking",
                    booking_id=str(booking.id),
                )

            booking.approve(command.actor)

            uow.collect_events(booking)
            uow.bookings.update_status(booking)

        logger.info(f"Booking {booking.id} approved")
        return booking


class RejectBookingHandler:
    """Handler for rejecting a pending booking; frees the slot for the waitlist"""

    def __init__(self, uow_factory: UnitOfWorkFactory, promoter: WaitlistPromoter):
        self.uow_factory = uow_factory
        self.promoter = promoter

    def handle(self, command: RejectBookingCommand) -> Booking:
        logger.info(f"Rejecting booking {command.booking_id}, reason: {command.reason!r}")

        with self.uow_factory() as uow:
            booking = _load_for_update(uow, command.booking_id)

            changed = booking.reject(command.actor, command.reason)
            if changed:
                uow.collect_events(booking)
                uow.bookings.update_status(booking)

        if not changed:
            logger.info(f"Booking {booking.id} already cancelled, nothing to reject")
            return booking

        logger.info(f"Booking {booking.id} rejected")
        self.promoter.promote_safely(booking.resource_id, booking.interval)
        return booking


class CancelBookingHandler:
    """Handler for cancelling a booking; promotes from the waitlist if a slot was freed"""

    def __init__(self, uow_factory: UnitOfWorkFactory, promoter: WaitlistPromoter):
        self.uow_factory = uow_factory
        self.promoter = promoter

    def handle(self, command: CancelBookingCommand) -> Booking:
        logger.info(f"Cancelling booking {command.booking_id}, reason: {command.reason!r}")

        with self.uow_factory() as uow:
            booking = _load_for_update(uow, command.booking_id)
            previous = booking.status

            changed = booking.cancel(command.actor, command.reason)
            if changed:
                uow.collect_events(booking)
                uow.bookings.update_status(booking)

        if not changed:
            logger.info(f"Booking {booking.id} already cancelled")
            return booking

        logger.info(f"Booking {booking.id} cancelled (was {previous.value})")
        if previous.occupies_slot:
            self.promoter.promote_safely(booking.resource_id, booking.interval)
        return booking


class PromoteWaitlistHandler:
    """Handler for an explicit waitlist promotion request"""

    def __init__(self, promoter: WaitlistPromoter):
        self.promoter = promoter

    def handle(self, command: PromoteWaitlistCommand) -> UUID | None:
        logger.info(
            f"Promotion requested on resource {command.resource_id} "
            f"for {command.freed_interval} ({command.reason})"
        )
        return self.promoter.promote(command.resource_id, command.freed_interval)
