"""Resource domain models for the lab booking portal."""

from __future__ import annotations

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Resource(models.Model):
    """A shared physical resource that can be reserved for a time slot."""

    class Status(models.TextChoices):
        WORKING = "working", _("Working")
        MAINTENANCE = "maintenance", _("Under maintenance")
        BROKEN = "broken", _("Broken")

    lab = models.ForeignKey(
        "users.Lab",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="resources",
    )
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.WORKING,
    )
    allow_queueing = models.BooleanField(
        default=False,
        help_text=_("Conflicting requests join a waitlist instead of being refused."),
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Resource")
        verbose_name_plural = _("Resources")
        ordering = ["name"]
        indexes = [
            models.Index(fields=["lab", "status"], name="resources_r_lab_id_7c1e2a_idx"),
        ]

    def __str__(self) -> str:
        return self.name
