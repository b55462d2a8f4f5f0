"""Celery tasks that write notifications and audit entries."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore

from .models import AuditLogEntry, Notification

logger = logging.getLogger(__name__)


@shared_task(name="notifications.deliver_notification")
def deliver_notification(
    user_id: int,
    title: str,
    message: str,
    notification_type: str,
    link_to: str = "",
) -> int:
    """Store an in-app notification for the user and return its id."""

    notification = Notification.objects.create(
        user_id=user_id,
        title=title,
        message=message,
        notification_type=notification_type,
        link_to=link_to,
    )
    logger.info(f"In-app notification {notification.pk} created for user {user_id}: {title}")
    return notification.pk


@shared_task(name="notifications.record_audit_entry")
def record_audit_entry(
    actor_kind: str,
    actor_id: int | None,
    actor_name: str,
    action: str,
    entity_type: str,
    entity_id: str,
    details: dict | None = None,
) -> int:
    """Append an audit record and return its id."""

    entry = AuditLogEntry.objects.create(
        actor_kind=actor_kind,
        actor_id=actor_id,
        actor_name=actor_name,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details or {},
    )
    logger.debug(f"Audit entry {entry.pk}: {action} on {entity_type}:{entity_id}")
    return entry.pk
