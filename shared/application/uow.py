"""
Unit of Work Pattern

Manages database transactions and ensures that domain events
are published only after successful transaction commit.
"""

from abc import ABC, abstractmethod
from typing import Callable, List, Optional
import logging

from django.db import DatabaseError, transaction

from shared.domain.base import DomainEvent
from shared.domain.exceptions import StoreUnavailable

logger = logging.getLogger(__name__)

EventPublisher = Callable[[List[DomainEvent]], None]


class AbstractUnitOfWork(ABC):
    """
    Abstract Unit of Work pattern

    Subclasses provide the transaction mechanics; event collection and
    post-commit publishing are shared.
    """

    def __init__(self, event_publisher: Optional[EventPublisher] = None):
        self._events: List[DomainEvent] = []
        self._event_publisher = event_publisher

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.commit()
        else:
            self.rollback()

    def commit(self):
        """Commit the transaction, then hand collected events to the publisher"""
        self._commit()

        events = self._events.copy()
        self._events.clear()

        if events:
            self._after_commit(events)

    def rollback(self):
        """Rollback changes and discard events"""
        if self._events:
            logger.warning(f"Rolling back transaction, discarding {len(self._events)} events")
        self._events.clear()
        self._rollback()

    @abstractmethod
    def _commit(self):
        """Make staged changes durable"""

    @abstractmethod
    def _rollback(self):
        """Discard staged changes"""

    def _after_commit(self, events: List[DomainEvent]):
        self._publish_events(events)

    def collect_events(self, aggregate):
        """
        Collect events from aggregate root

        Extracts all domain events from the aggregate and
        clears them from the aggregate.
        """
        if hasattr(aggregate, 'events'):
            new_events = aggregate.events
            if new_events:
                self._events.extend(new_events)
                aggregate.clear_events()
                logger.debug(
                    f"Collected {len(new_events)} events from "
                    f"{aggregate.__class__.__name__} (ID: {aggregate.id})"
                )

    def _publish_events(self, events: List[DomainEvent]):
        """
        Publish collected events to the message bus

        Called after successful transaction commit.
        """
        if self._event_publisher is None:
            logger.debug(f"No event publisher configured, dropping {len(events)} events")
            return

        logger.info(f"Publishing {len(events)} domain events after commit")

        try:
            self._event_publisher(events)
        except Exception as e:
            logger.error(f"Error publishing events: {e}", exc_info=True)
            # Events are already committed to database
            # Failure to publish events should be handled by monitoring


class DjangoUnitOfWork(AbstractUnitOfWork):
    """
    Django implementation of Unit of Work

    Wraps `transaction.atomic()` and publishes domain events through
    `transaction.on_commit()` so they are only sent once the database
    commit succeeds. Database errors surface as `StoreUnavailable`.

    Usage:
        with DjangoUnitOfWork(event_publisher=bus.publish_events) as uow:
            booking = repo.get(booking_id)
            booking.approve(actor)
            uow.collect_events(booking)
            repo.update_status(booking)
        # Events are published after commit
    """

    def __init__(
        self,
        event_publisher: Optional[EventPublisher] = None,
        *,
        using: str | None = None,
        lock_timeout_ms: int | None = None,
    ):
        super().__init__(event_publisher)
        self._using = using
        self._lock_timeout_ms = lock_timeout_ms
        self._transaction = None

    def __enter__(self):
        """Start database transaction"""
        atomic = transaction.atomic(using=self._using)
        try:
            atomic.__enter__()
        except DatabaseError as exc:
            raise StoreUnavailable("Could not open a database transaction") from exc

        try:
            self._apply_lock_timeout()
        except DatabaseError as exc:
            atomic.__exit__(type(exc), exc, exc.__traceback__)
            raise StoreUnavailable("Could not configure the lock timeout") from exc

        self._transaction = atomic
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Complete or rollback transaction"""
        if exc_type is None:
            self.commit()
        else:
            self.rollback()

        atomic, self._transaction = self._transaction, None
        try:
            if atomic is not None:
                atomic.__exit__(exc_type, exc_val, exc_tb)
        except DatabaseError as exc:
            raise StoreUnavailable("Database transaction failed to commit") from exc

        if exc_type is not None and issubclass(exc_type, DatabaseError):
            raise StoreUnavailable(f"Database error inside unit of work: {exc_val}") from exc_val
        return False

    def _commit(self):
        # The surrounding atomic block performs the actual commit in __exit__.
        logger.debug(f"Committing transaction with {len(self._events)} events")

    def _rollback(self):
        logger.debug("Rolling back Django transaction")

    def _after_commit(self, events: List[DomainEvent]):
        transaction.on_commit(lambda: self._publish_events(events), using=self._using)

    def _apply_lock_timeout(self):
        if not self._lock_timeout_ms:
            return
        connection = transaction.get_connection(self._using)
        if connection.vendor != 'postgresql':
            return
        with connection.cursor() as cursor:
            cursor.execute(
                "SELECT set_config('lock_timeout', %s, true)",
                [f"{int(self._lock_timeout_ms)}ms"],
            )
