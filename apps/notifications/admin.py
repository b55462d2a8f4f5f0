"""Admin registrations for notifications and audit entries."""

from __future__ import annotations

from django.contrib import admin

from .models import AuditLogEntry, Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("user", "title", "notification_type", "is_read", "created_at")
    list_filter = ("notification_type", "is_read")
    search_fields = ("title", "user__email")


@admin.register(AuditLogEntry)
class AuditLogEntryAdmin(admin.ModelAdmin):
    list_display = ("action", "entity_type", "entity_id", "actor_kind", "actor_name", "created_at")
    list_filter = ("action", "actor_kind", "entity_type")
    search_fields = ("entity_id", "actor_name")
    readonly_fields = [field.name for field in AuditLogEntry._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
