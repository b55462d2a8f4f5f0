"""Admin registrations for resources."""

from __future__ import annotations

from django.contrib import admin

from .models import Resource


@admin.register(Resource)
class ResourceAdmin(admin.ModelAdmin):
    list_display = ("name", "lab", "status", "allow_queueing", "created_at")
    list_filter = ("status", "allow_queueing", "lab")
    search_fields = ("name", "lab__name")
    readonly_fields = ("created_at", "updated_at")
