"""
Booking event handlers

Turn committed booking events into user notifications and audit records.
Every side effect is attempted on its own: a failure is logged and the
remaining notifications still go out.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from shared.application.message_bus import MessageBus
from apps.bookings.domain.events import (
    BookingApproved,
    BookingCancelled,
    BookingEvent,
    BookingPromoted,
    BookingRejected,
    BookingRequested,
    BookingWaitlisted,
)
from apps.bookings.domain.ports import (
    AuditAction,
    EntityRef,
    NotificationDispatcher,
    NotificationType,
    ResourceRepository,
    ResourceSnapshot,
    ScopeResolver,
)

logger = logging.getLogger(__name__)

AUDIT_ACTIONS = {
    BookingRequested: AuditAction.BOOKING_CREATED,
    BookingWaitlisted: AuditAction.BOOKING_WAITLISTED,
    BookingApproved: AuditAction.BOOKING_APPROVED,
    BookingRejected: AuditAction.BOOKING_REJECTED,
    BookingCancelled: AuditAction.BOOKING_CANCELLED,
    BookingPromoted: AuditAction.BOOKING_PROMOTED,
}


def booking_link(booking_id) -> str:
    return f"/bookings?bookingId={booking_id}"


def review_link(booking_id) -> str:
    return f"/admin/booking-requests?bookingId={booking_id}"


def _when(event: BookingEvent) -> str:
    start = event.interval.start
    return f"{start:%H:%M} on {start:%Y-%m-%d}"


class BookingNotificationHandlers:

    def __init__(
        self,
        dispatcher: NotificationDispatcher,
        scope_resolver: ScopeResolver,
        resources: ResourceRepository,
        describe_user: Optional[Callable[[int], str]] = None,
    ):
        self.dispatcher = dispatcher
        self.scope_resolver = scope_resolver
        self.resources = resources
        self.describe_user = describe_user or (lambda user_id: f"user {user_id}")

    def register(self, bus: MessageBus):
        for event_type in AUDIT_ACTIONS:
            bus.register_event_handler(event_type, self.record_audit)
        bus.register_event_handler(BookingWaitlisted, self.on_waitlisted)
        bus.register_event_handler(BookingApproved, self.on_approved)
        bus.register_event_handler(BookingRejected, self.on_rejected)
        bus.register_event_handler(BookingPromoted, self.on_promoted)

    # ===== Audit =====

    def record_audit(self, event: BookingEvent):
        details = event.to_dict()
        for extra in ('reason', 'previous_status', 'freed_slot'):
            if hasattr(event, extra):
                details[extra] = getattr(event, extra)
        if isinstance(event, BookingPromoted):
            details['freed_start'] = event.freed_interval.start.isoformat()
            details['freed_end'] = event.freed_interval.end.isoformat()

        self._attempt(
            f"audit {type(event).__name__} for booking {event.booking_id}",
            self.dispatcher.audit,
            event.actor,
            AUDIT_ACTIONS[type(event)],
            EntityRef.booking(event.booking_id),
            details,
        )

    # ===== Owner notifications =====

    def on_waitlisted(self, event: BookingWaitlisted):
        resource = self._resource(event.resource_id)
        self._notify(
            event.user_id,
            "Booking Waitlisted",
            f"Your request for {self._name(resource, event)} starting at {_when(event)} "
            f"overlaps an existing booking and has been added to the waitlist.",
            booking_link(event.booking_id),
            NotificationType.BOOKING_WAITLISTED,
        )

    def on_approved(self, event: BookingApproved):
        resource = self._resource(event.resource_id)
        self._notify(
            event.user_id,
            "Booking Approved!",
            f"Your booking for {self._name(resource, event)} has been approved.",
            booking_link(event.booking_id),
            NotificationType.BOOKING_CONFIRMED,
        )

    def on_rejected(self, event: BookingRejected):
        resource = self._resource(event.resource_id)
        message = f"Your booking for {self._name(resource, event)} has been rejected."
        if event.reason:
            message = f"{message} Reason: {event.reason}"
        self._notify(
            event.user_id,
            "Booking Rejected",
            message,
            booking_link(event.booking_id),
            NotificationType.BOOKING_REJECTED,
        )

    def on_promoted(self, event: BookingPromoted):
        resource = self._resource(event.resource_id)
        resource_name = self._name(resource, event)

        self._notify(
            event.user_id,
            "Booking Promoted from Waitlist!",
            f"Your waitlisted booking for {resource_name} starting at {_when(event)} "
            f"has been promoted to 'Pending'. It now awaits admin approval.",
            booking_link(event.booking_id),
            NotificationType.BOOKING_PROMOTED_USER,
        )

        lab_id = resource.lab_id if resource else None
        try:
            recipients = self.scope_resolver.privileged_recipients_for(lab_id)
        except Exception as e:
            logger.error(f"Could not resolve reviewers for lab {lab_id}: {e}", exc_info=True)
            return

        user_name = self._user_name(event.user_id)
        for recipient_id in recipients:
            self._notify(
                recipient_id,
                "Booking Promoted - Needs Approval",
                f"A waitlisted booking for {resource_name} by user {user_name} "
                f"has been promoted to 'Pending' and requires approval.",
                review_link(event.booking_id),
                NotificationType.BOOKING_PROMOTED_ADMIN,
            )

    # ===== Helpers =====

    def _notify(self, user_id, title, message, link, notification_type):
        self._attempt(
            f"notify user {user_id} ({notification_type.value})",
            self.dispatcher.notify,
            user_id,
            title,
            message,
            link,
            notification_type,
        )

    def _attempt(self, description: str, func, *args) -> bool:
        try:
            func(*args)
            return True
        except Exception as e:
            logger.error(f"Failed to {description}: {e}", exc_info=True)
            return False

    def _resource(self, resource_id: int) -> Optional[ResourceSnapshot]:
        try:
            return self.resources.get(resource_id)
        except Exception as e:
            logger.warning(f"Could not load resource {resource_id} for notification text: {e}")
            return None

    def _name(self, resource: Optional[ResourceSnapshot], event: BookingEvent) -> str:
        return resource.name if resource else f"resource {event.resource_id}"

    def _user_name(self, user_id: int) -> str:
        try:
            return self.describe_user(user_id)
        except Exception as e:
            logger.warning(f"Could not describe user {user_id}: {e}")
            return str(user_id)
