"""User domain models for the lab booking portal.

Users carry one of four roles. Labs group resources, and lab membership
decides which privileged users hear about approval work on a lab's
resources.
"""

from __future__ import annotations

from typing import Any

from django.conf import settings  # type: ignore
from django.contrib.auth.models import AbstractUser, BaseUserManager  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class CustomUserManager(BaseUserManager):
    """User manager that uses email as the login."""

    use_in_migrations = True

    def _create_user(self, email: str, password: str | None, **extra_fields: Any):
        if not email:
            raise ValueError("Email is required to create a user.")
        email = self.normalize_email(email)

        user = self.model(email=email, **extra_fields)
        if password:
            user.set_password(password)
        else:
            user.set_unusable_password()
        user.save(using=self._db)
        return user

    def create_user(self, email: str, password: str | None = None, **extra_fields: Any):
        extra_fields.setdefault("is_staff", False)
        extra_fields.setdefault("is_superuser", False)
        extra_fields.setdefault("role", CustomUser.RoleChoices.RESEARCHER)
        return self._create_user(email, password, **extra_fields)

    def create_superuser(self, email: str, password: str | None = None, **extra_fields: Any):
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)
        extra_fields.setdefault("role", CustomUser.RoleChoices.ADMIN)

        if extra_fields.get("is_staff") is not True:
            raise ValueError("Superuser must have is_staff=True.")
        if extra_fields.get("is_superuser") is not True:
            raise ValueError("Superuser must have is_superuser=True.")

        return self._create_user(email, password, **extra_fields)


class CustomUser(AbstractUser):
    """Portal user with a role."""

    class RoleChoices(models.TextChoices):
        ADMIN = "admin", _("Administrator")
        LAB_MANAGER = "lab_manager", _("Lab manager")
        TECHNICIAN = "technician", _("Technician")
        RESEARCHER = "researcher", _("Researcher")

    username = models.CharField(
        _("Display name"),
        max_length=150,
        blank=True,
        help_text=_("Optional, shown in notifications and audit entries."),
    )
    email = models.EmailField(_("Email"), unique=True)
    role = models.CharField(
        _("Role"),
        max_length=20,
        choices=RoleChoices.choices,
        default=RoleChoices.RESEARCHER,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = CustomUserManager()

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = ["username"]

    class Meta:
        verbose_name = _("User")
        verbose_name_plural = _("Users")
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.email} ({self.get_role_display()})"

    @property
    def display_name(self) -> str:
        return self.get_full_name() or self.username or self.email

    def can_resolve_bookings(self) -> bool:
        """Approvers may approve, reject and cancel any booking."""
        return self.is_superuser or self.role in settings.BOOKING_APPROVER_ROLES


User = CustomUser


class Lab(models.Model):
    """A lab owning a set of bookable resources."""

    name = models.CharField(max_length=255, unique=True)
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Lab")
        verbose_name_plural = _("Labs")
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class LabMembership(models.Model):
    """A user's membership in a lab."""

    class Status(models.TextChoices):
        ACTIVE = "active", _("Active")
        PENDING_APPROVAL = "pending_approval", _("Pending approval")
        REJECTED = "rejected", _("Rejected")
        REVOKED = "revoked", _("Revoked")

    user = models.ForeignKey(
        CustomUser,
        on_delete=models.CASCADE,
        related_name="lab_memberships",
    )
    lab = models.ForeignKey(
        Lab,
        on_delete=models.CASCADE,
        related_name="memberships",
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING_APPROVAL,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Lab membership")
        verbose_name_plural = _("Lab memberships")
        constraints = [
            models.UniqueConstraint(fields=["user", "lab"], name="unique_lab_membership"),
        ]
        indexes = [
            models.Index(fields=["lab", "status"], name="users_labme_lab_id_3f0a5c_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.user_id} in {self.lab_id} ({self.status})"
