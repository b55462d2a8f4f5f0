"""Admin registration for bookings."""

from __future__ import annotations

from django.contrib import admin

from .models import Booking


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    """Read-only view; status changes go through the booking API."""

    list_display = (
        "id",
        "resource",
        "user",
        "status",
        "start_time",
        "end_time",
        "created_at",
    )
    list_filter = ("status", "resource__lab", "start_time")
    search_fields = ("id", "resource__name", "user__email", "user__username")
    readonly_fields = [field.name for field in Booking._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
