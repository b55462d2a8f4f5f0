"""Serializers for notifications."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import Notification


class NotificationSerializer(serializers.ModelSerializer):
    """Serializer for notifications."""

    class Meta:
        model = Notification
        fields = ['id', 'user', 'title', 'message', 'notification_type', 'link_to', 'is_read', 'created_at']
        read_only_fields = ['user', 'title', 'message', 'notification_type', 'link_to', 'created_at']
