"""Notification and audit models.

Notifications are shown to users in the web interface and can be
marked as read. Audit entries record who changed what; a system actor
has no user id.
"""

from __future__ import annotations

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Notification(models.Model):
    """A message sent to a user about some event."""

    class Type(models.TextChoices):
        BOOKING_PROMOTED_USER = "booking_promoted_user", _("Booking promoted (owner)")
        BOOKING_PROMOTED_ADMIN = "booking_promoted_admin", _("Booking promoted (reviewer)")
        BOOKING_CONFIRMED = "booking_confirmed", _("Booking confirmed")
        BOOKING_REJECTED = "booking_rejected", _("Booking rejected")
        BOOKING_WAITLISTED = "booking_waitlisted", _("Booking waitlisted")
        BOOKING_CANCELLED = "booking_cancelled", _("Booking cancelled")

    user = models.ForeignKey(
        'users.CustomUser', on_delete=models.CASCADE, related_name='notifications'
    )
    title = models.CharField(max_length=255)
    message = models.TextField()
    notification_type = models.CharField(max_length=32, choices=Type.choices)
    link_to = models.CharField(max_length=255, blank=True)
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'is_read'], name='notificatio_user_id_4b1d3e_idx'),
        ]

    def __str__(self) -> str:
        return f"Notification to {self.user_id}: {self.title}"


class AuditLogEntry(models.Model):
    """An append-only record of a state change."""

    class ActorKind(models.TextChoices):
        HUMAN = "human", _("User")
        SYSTEM = "system", _("System")

    actor_kind = models.CharField(max_length=10, choices=ActorKind.choices)
    actor_id = models.BigIntegerField(null=True, blank=True)
    actor_name = models.CharField(max_length=255, blank=True)
    action = models.CharField(max_length=64)
    entity_type = models.CharField(max_length=64)
    entity_id = models.CharField(max_length=64)
    details = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Audit log entry")
        verbose_name_plural = _("Audit log entries")
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['entity_type', 'entity_id'], name='notificatio_entity__8c2f6a_idx'),
            models.Index(fields=['action'], name='notificatio_action_1e7d9b_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.action} on {self.entity_type}:{self.entity_id} by {self.actor_kind}"
