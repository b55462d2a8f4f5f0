"""
In-memory Booking Store

A process-local implementation of the booking ports. Used by the engine's
unit and concurrency tests, and usable by any caller that wants the booking
lifecycle without a database.

Each resource has its own lock, acquired with a timeout. Writes made in a
unit of work are staged and become visible to other units of work only when
it commits; locks are released before domain events are published.
"""

from dataclasses import replace
from itertools import count
from typing import Dict, List, Optional
from uuid import UUID
import logging
import threading

from shared.application.uow import EventPublisher
from apps.bookings.domain.entities import Booking, BookingStatus, OCCUPYING_STATUSES
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

logger = logging.getLogger(__name__)


def _copy(booking: Booking) -> Booking:
    # replace() rebuilds the aggregate with an empty event list
    return replace(booking)


class InMemoryBookingStore:
    """Committed state shared by all units of work opened on it"""

    def __init__(self, lock_timeout: float = 5.0):
        self.lock_timeout = lock_timeout
        self._resources: Dict[int, ResourceSnapshot] = {}
        self._locks: Dict[int, threading.Lock] = {}
        self._bookings: Dict[UUID, Booking] = {}
        self._sequence: Dict[UUID, int] = {}
        self._counter = count()
        self._mutex = threading.Lock()

    def add_resource(
        self,
        resource_id: int,
        *,
        name: str = '',
        lab_id: Optional[int] = None,
        allow_queueing: bool = False,
        status: ResourceStatus = ResourceStatus.WORKING,
    ) -> ResourceSnapshot:
        resource = ResourceSnapshot(
            id=resource_id,
            name=name or f"Resource {resource_id}",
            lab_id=lab_id,
            allow_queueing=allow_queueing,
            status=status,
        )
        with self._mutex:
            self._resources[resource_id] = resource
            self._locks.setdefault(resource_id, threading.Lock())
        return resource

    def unit_of_work(self, event_publisher: Optional[EventPublisher] = None) -> 'InMemoryUnitOfWork':
        return InMemoryUnitOfWork(self, event_publisher)

    @property
    def resources(self) -> 'InMemoryResourceRepository':
        """Unlocked resource reads for code running outside a unit of work"""
        return InMemoryResourceRepository(self)

    def get_booking(self, booking_id: UUID) -> Booking:
        with self._mutex:
            try:
                return _copy(self._bookings[booking_id])
            except KeyError:
                raise BookingNotFound(f"Booking {booking_id} not found", booking_id=str(booking_id))

    def all_bookings(self, resource_id: Optional[int] = None) -> List[Booking]:
        """Committed bookings in insertion order"""
        with self._mutex:
            return [
                _copy(b) for b in self._bookings.values()
                if resource_id is None or b.resource_id == resource_id
            ]

    # Used by the unit of work

    def _resource(self, resource_id: int) -> ResourceSnapshot:
        with self._mutex:
            try:
                return self._resources[resource_id]
            except KeyError:
                raise ResourceNotFound(f"Resource {resource_id} not found", resource_id=resource_id)

    def _lock_for(self, resource_id: int) -> threading.Lock:
        with self._mutex:
            return self._locks[resource_id]

    def _committed(self) -> Dict[UUID, Booking]:
        with self._mutex:
            return dict(self._bookings)

    def _next_sequence(self) -> int:
        with self._mutex:
            return next(self._counter)

    def _apply(self, staged: Dict[UUID, Booking], sequence: Dict[UUID, int]):
        with self._mutex:
            for booking_id, booking in staged.items():
                self._bookings[booking_id] = booking
            self._sequence.update(sequence)

    def _sequence_of(self, booking_id: UUID, staged_sequence: Dict[UUID, int]) -> int:
        if booking_id in staged_sequence:
            return staged_sequence[booking_id]
        with self._mutex:
            return self._sequence[booking_id]


class InMemoryBookingRepository(BookingRepository):

    def __init__(self, uow: 'InMemoryUnitOfWork'):
        self._uow = uow

    def _visible(self) -> Dict[UUID, Booking]:
        visible = self._uow.store._committed()
        visible.update(self._uow.staged)
        return visible

    def find_active(self, resource_id: int) -> List[Booking]:
        return [
            _copy(b) for b in self._visible().values()
            if b.resource_id == resource_id and b.status in OCCUPYING_STATUSES
        ]

    def find_waitlisted(self, resource_id: int) -> List[Booking]:
        waitlisted = [
            b for b in self._visible().values()
            if b.resource_id == resource_id and b.status is BookingStatus.WAITLISTED
        ]
        store, staged_sequence = self._uow.store, self._uow.staged_sequence
        waitlisted.sort(key=lambda b: (b.created_at, store._sequence_of(b.id, staged_sequence)))
        return [_copy(b) for b in waitlisted]

    def get(self, booking_id: UUID) -> Booking:
        booking = self._visible().get(booking_id)
        if booking is None:
            raise BookingNotFound(f"Booking {booking_id} not found", booking_id=str(booking_id))
        return _copy(booking)

    def create(self, booking: Booking) -> UUID:
        self._uow.staged[booking.id] = _copy(booking)
        self._uow.staged_sequence[booking.id] = self._uow.store._next_sequence()
        return booking.id

    def update_status(self, booking: Booking) -> None:
        if booking.id not in self._visible():
            raise BookingNotFound(f"Booking {booking.id} not found", booking_id=str(booking.id))
        self._uow.staged[booking.id] = _copy(booking)


class InMemoryResourceRepository(ResourceRepository):

    def __init__(self, store: InMemoryBookingStore, uow: Optional['InMemoryUnitOfWork'] = None):
        self._store = store
        self._uow = uow

    def get(self, resource_id: int, *, lock: bool = False) -> ResourceSnapshot:
        resource = self._store._resource(resource_id)
        if lock:
            if self._uow is None:
                raise RuntimeError("Resource locks can only be taken inside a unit of work")
            self._uow.acquire(resource_id)
        return resource


class InMemoryUnitOfWork(BookingUnitOfWork):

    def __init__(self, store: InMemoryBookingStore, event_publisher: Optional[EventPublisher] = None):
        super().__init__(event_publisher)
        self.store = store
        self.staged: Dict[UUID, Booking] = {}
        self.staged_sequence: Dict[UUID, int] = {}
        self._held: Dict[int, threading.Lock] = {}
        self.bookings = InMemoryBookingRepository(self)
        self.resources = InMemoryResourceRepository(store, self)

    def acquire(self, resource_id: int):
        if resource_id in self._held:
            return
        lock = self.store._lock_for(resource_id)
        if not lock.acquire(timeout=self.store.lock_timeout):
            raise StoreUnavailable(
                f"Timed out waiting for the lock on resource {resource_id}",
                resource_id=resource_id,
            )
        self._held[resource_id] = lock

    def _commit(self):
        try:
            self.store._apply(self.staged, self.staged_sequence)
            logger.debug(f"Committed {len(self.staged)} booking write(s)")
        finally:
            self._reset()

    def _rollback(self):
        if self.staged:
            logger.debug(f"Discarding {len(self.staged)} staged booking write(s)")
        self._reset()

    def _reset(self):
        self.staged = {}
        self.staged_sequence = {}
        held, self._held = self._held, {}
        for lock in held.values():
            lock.release()
