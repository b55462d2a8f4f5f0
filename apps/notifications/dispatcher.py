"""Notification/audit dispatcher backed by Celery tasks."""

from __future__ import annotations

import logging

from shared.domain.value_objects import Actor
from apps.bookings.domain.exceptions import NotificationFailed
from apps.bookings.domain.ports import (
    AuditAction,
    EntityRef,
    NotificationDispatcher,
    NotificationType,
)

from .tasks import deliver_notification, record_audit_entry

logger = logging.getLogger(__name__)


class CeleryNotificationDispatcher(NotificationDispatcher):
    """
    Hands notifications and audit records to Celery.

    Any failure to enqueue (broker down, or a task error when tasks run
    eagerly) is raised as NotificationFailed.
    """

    def notify(
        self,
        user_id: int,
        title: str,
        message: str,
        link_hint: str,
        notification_type: NotificationType,
    ) -> None:
        try:
            deliver_notification.delay(
                user_id=user_id,
                title=title,
                message=message,
                notification_type=notification_type.value,
                link_to=link_hint,
            )
        except Exception as e:
            raise NotificationFailed(
                f"Could not deliver '{title}' to user {user_id}: {e}",
                user_id=user_id,
            ) from e

    def audit(self, actor: Actor, action: AuditAction, entity_ref: EntityRef, details: dict) -> None:
        try:
            record_audit_entry.delay(
                actor_kind=actor.kind.value,
                actor_id=actor.user_id,
                actor_name=actor.name,
                action=action.value,
                entity_type=entity_ref.entity_type,
                entity_id=entity_ref.entity_id,
                details=details,
            )
        except Exception as e:
            raise NotificationFailed(
                f"Could not record audit entry {action.value} for {entity_ref.entity_id}: {e}",
                action=action.value,
            ) from e
