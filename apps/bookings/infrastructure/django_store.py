"""
Django ORM Booking Store

Maps the Booking aggregate to `apps.bookings.models.Booking` rows and the
resource lock to `SELECT ... FOR UPDATE` on the resource row.
"""

from typing import List, Optional
from uuid import UUID
import logging

from django.conf import settings
from django.db import DatabaseError

from shared.application.uow import DjangoUnitOfWork, EventPublisher
from shared.domain.value_objects import TimeInterval
from apps.bookings.domain.entities import Booking, BookingStatus
from apps.bookings.domain.exceptions import (
    BookingNotFound,
    ResourceNotFound,
    StoreUnavailable,
)
from apps.bookings.domain.ports import (
    BookingRepository,
    BookingUnitOfWork,
    ResourceRepository,
    ResourceSnapshot,
    ResourceStatus,
)
from apps.bookings.models import Booking as BookingModel
from apps.resources.models import Resource as ResourceModel

logger = logging.getLogger(__name__)


def booking_from_row(row: BookingModel) -> Booking:
    return Booking(
        id=row.id,
        resource_id=row.resource_id,
        user_id=row.user_id,
        interval=TimeInterval(row.start_time, row.end_time),
        status=BookingStatus(row.status),
        notes=row.notes,
        resolved_at=row.resolved_at,
        resolved_by_id=row.resolved_by_id,
        resolution_reason=row.resolution_reason,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class DjangoBookingRepository(BookingRepository):

    def __init__(self, using: Optional[str] = None):
        self._using = using

    def _rows(self):
        return BookingModel.objects.using(self._using)

    def find_active(self, resource_id: int) -> List[Booking]:
        rows = self._rows().filter(
            resource_id=resource_id,
            status__in=BookingModel.ACTIVE_STATUSES,
        ).order_by('start_time')
        return [booking_from_row(row) for row in rows]

    def find_waitlisted(self, resource_id: int) -> List[Booking]:
        """
        Waitlisted bookings in arrival order.

        created_at is stamped while the resource row lock is held, so it
        follows the order requests were admitted. The id only breaks exact
        timestamp ties and carries no ordering of its own.
        """
        rows = self._rows().filter(
            resource_id=resource_id,
            status=BookingModel.Status.WAITLISTED,
        ).order_by('created_at', 'id')
        return [booking_from_row(row) for row in rows]

    def get(self, booking_id: UUID) -> Booking:
        try:
            return booking_from_row(self._rows().get(pk=booking_id))
        except BookingModel.DoesNotExist:
            raise BookingNotFound(f"Booking {booking_id} not found", booking_id=str(booking_id))

    def create(self, booking: Booking) -> UUID:
        self._rows().create(
            id=booking.id,
            resource_id=booking.resource_id,
            user_id=booking.user_id,
            start_time=booking.interval.start,
            end_time=booking.interval.end,
            status=booking.status.value,
            notes=booking.notes,
            created_at=booking.created_at,
            updated_at=booking.updated_at,
        )
        logger.debug(f"Inserted booking row {booking.id}")
        return booking.id

    def update_status(self, booking: Booking) -> None:
        # Only status and resolution metadata are ever written after insert
        updated = self._rows().filter(pk=booking.id).update(
            status=booking.status.value,
            resolved_at=booking.resolved_at,
            resolved_by_id=booking.resolved_by_id,
            resolution_reason=booking.resolution_reason,
            updated_at=booking.updated_at,
        )
        if not updated:
            raise BookingNotFound(f"Booking {booking.id} not found", booking_id=str(booking.id))


class DjangoResourceRepository(ResourceRepository):

    def __init__(self, using: Optional[str] = None):
        self._using = using

    def get(self, resource_id: int, *, lock: bool = False) -> ResourceSnapshot:
        queryset = ResourceModel.objects.using(self._using)
        if lock:
            queryset = queryset.select_for_update()

        try:
            row = queryset.get(pk=resource_id)
        except ResourceModel.DoesNotExist:
            raise ResourceNotFound(f"Resource {resource_id} not found", resource_id=resource_id)
        except DatabaseError as exc:
            raise StoreUnavailable(
                f"Could not lock resource {resource_id}: {exc}",
                resource_id=resource_id,
            ) from exc

        return ResourceSnapshot(
            id=row.id,
            name=row.name,
            lab_id=row.lab_id,
            allow_queueing=row.allow_queueing,
            status=ResourceStatus(row.status),
        )


class DjangoBookingUnitOfWork(DjangoUnitOfWork, BookingUnitOfWork):
    """
    Booking unit of work over the Django ORM

    Usage:
        with DjangoBookingUnitOfWork(bus.publish_events) as uow:
            uow.resources.get(resource_id, lock=True)
            ...
    """

    def __init__(
        self,
        event_publisher: Optional[EventPublisher] = None,
        *,
        using: Optional[str] = None,
        lock_timeout_ms: Optional[int] = None,
    ):
        if lock_timeout_ms is None:
            lock_timeout_ms = getattr(settings, 'BOOKING_LOCK_TIMEOUT_MS', None)
        super().__init__(event_publisher, using=using, lock_timeout_ms=lock_timeout_ms)
        self.bookings = DjangoBookingRepository(using)
        self.resources = DjangoResourceRepository(using)
