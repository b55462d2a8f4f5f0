"""Domain services for booking workflows."""

from __future__ import annotations

from typing import List, Optional, TYPE_CHECKING
from uuid import UUID

from shared.domain.value_objects import TimeInterval

if TYPE_CHECKING:  # pragma: no cover - type checking only
    from apps.bookings.domain.entities import Booking
    from apps.bookings.domain.ports import BookingRepository


def find_conflicts(
    bookings: "BookingRepository",
    resource_id: int,
    interval: TimeInterval,
    *,
    exclude_booking_id: Optional[UUID] = None,
) -> List["Booking"]:
    """Active bookings on the resource whose interval overlaps the given one."""

    return [
        booking
        for booking in bookings.find_active(resource_id)
        if booking.id != exclude_booking_id and booking.interval.overlaps_with(interval)
    ]


def has_conflict(
    bookings: "BookingRepository",
    resource_id: int,
    interval: TimeInterval,
    *,
    exclude_booking_id: Optional[UUID] = None,
) -> bool:
    """
    True when an active (pending or confirmed) booking overlaps the interval.

    Must be called inside the unit of work that holds the resource lock,
    otherwise the answer may be stale by the time the status is written.
    """

    return any(
        booking.id != exclude_booking_id and booking.interval.overlaps_with(interval)
        for booking in bookings.find_active(resource_id)
    )
