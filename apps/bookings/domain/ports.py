"""
Booking Ports

Abstract interfaces the booking application layer depends on.
Implementations live in apps/bookings/infrastructure (Django ORM and
in-memory) and apps/notifications / apps/users (dispatcher, scope resolver).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional
from uuid import UUID

from shared.application.uow import AbstractUnitOfWork
from shared.domain.value_objects import Actor
from apps.bookings.domain.entities import Booking


class ResourceStatus(Enum):
    WORKING = 'working'
    MAINTENANCE = 'maintenance'
    BROKEN = 'broken'


@dataclass(frozen=True)
class ResourceSnapshot:
    """Read-only view of a resource as seen by the booking engine"""
    id: int
    name: str
    lab_id: Optional[int]
    allow_queueing: bool
    status: ResourceStatus = ResourceStatus.WORKING

    @property
    def is_bookable(self) -> bool:
        return self.status is ResourceStatus.WORKING


class AuditAction(Enum):
    BOOKING_CREATED = 'BOOKING_CREATED'
    BOOKING_WAITLISTED = 'BOOKING_WAITLISTED'
    BOOKING_APPROVED = 'BOOKING_APPROVED'
    BOOKING_REJECTED = 'BOOKING_REJECTED'
    BOOKING_CANCELLED = 'BOOKING_CANCELLED'
    BOOKING_PROMOTED = 'BOOKING_PROMOTED'


class NotificationType(Enum):
    BOOKING_PROMOTED_USER = 'booking_promoted_user'
    BOOKING_PROMOTED_ADMIN = 'booking_promoted_admin'
    BOOKING_CONFIRMED = 'booking_confirmed'
    BOOKING_REJECTED = 'booking_rejected'
    BOOKING_WAITLISTED = 'booking_waitlisted'
    BOOKING_CANCELLED = 'booking_cancelled'


@dataclass(frozen=True)
class EntityRef:
    """Pointer to the entity an audit record is about"""
    entity_type: str
    entity_id: str

    @classmethod
    def booking(cls, booking_id: UUID) -> 'EntityRef':
        return cls('booking', str(booking_id))


class BookingRepository(ABC):
    """
    Booking Store

    All methods run inside a unit of work. Bookings are never deleted;
    only status and resolution metadata are written after creation.
    """

    @abstractmethod
    def find_active(self, resource_id: int) -> List[Booking]:
        """Bookings on the resource with status pending or confirmed"""

    @abstractmethod
    def find_waitlisted(self, resource_id: int) -> List[Booking]:
        """Waitlisted bookings on the resource, oldest first"""

    @abstractmethod
    def get(self, booking_id: UUID) -> Booking:
        """Raises BookingNotFound"""

    @abstractmethod
    def create(self, booking: Booking) -> UUID:
        pass

    @abstractmethod
    def update_status(self, booking: Booking) -> None:
        pass


class ResourceRepository(ABC):

    @abstractmethod
    def get(self, resource_id: int, *, lock: bool = False) -> ResourceSnapshot:
        """
        Load a resource, optionally taking its exclusive lock for the
        rest of the unit of work.

        Raises ResourceNotFound, or StoreUnavailable if the lock
        cannot be acquired in time.
        """


class BookingUnitOfWork(AbstractUnitOfWork):
    """Unit of work exposing the booking and resource repositories"""

    bookings: BookingRepository
    resources: ResourceRepository


class ScopeResolver(ABC):

    @abstractmethod
    def privileged_recipients_for(self, lab_id: Optional[int]) -> List[int]:
        """User ids that should hear about approval work on a lab's resources"""


class NotificationDispatcher(ABC):
    """
    Outbound side effects

    Implementations raise NotificationFailed when a message cannot be
    handed off. Callers log and move on.
    """

    @abstractmethod
    def notify(
        self,
        user_id: int,
        title: str,
        message: str,
        link_hint: str,
        notification_type: NotificationType,
    ) -> None:
        pass

    @abstractmethod
    def audit(self, actor: Actor, action: AuditAction, entity_ref: EntityRef, details: dict) -> None:
        pass
