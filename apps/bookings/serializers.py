"""Serializers for the booking domain."""

from __future__ import annotations

from django.conf import settings  # type: ignore
from django.contrib.auth import get_user_model  # type: ignore

from rest_framework import serializers  # type: ignore

from shared.domain.exceptions import InvalidInterval
from shared.domain.value_objects import TimeInterval

from .models import Booking


class BookingRequestSerializer(serializers.Serializer):
    """Booking request from the current user, or on behalf of `user`."""

    resource = serializers.IntegerField(min_value=1)
    user = serializers.PrimaryKeyRelatedField(
        queryset=get_user_model().objects.filter(is_active=True),
        required=False,
    )
    start_time = serializers.DateTimeField()
    end_time = serializers.DateTimeField()
    notes = serializers.CharField(
        max_length=settings.BOOKING_NOTES_MAX_LENGTH,
        required=False,
        allow_blank=True,
        default="",
    )

    def validate(self, attrs):  # type: ignore
        try:
            attrs["interval"] = TimeInterval(attrs["start_time"], attrs["end_time"])
        except InvalidInterval as exc:
            raise serializers.ValidationError({"end_time": [exc.message]})
        return attrs


class BookingResolutionSerializer(serializers.Serializer):
    """Optional reason given when rejecting or cancelling."""

    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


class BookingSerializer(serializers.ModelSerializer):
    """Detailed booking representation."""

    resource_id = serializers.ReadOnlyField(source="resource.id")
    resource_name = serializers.ReadOnlyField(source="resource.name")
    user_id = serializers.ReadOnlyField(source="user.id")
    resolved_by_id = serializers.ReadOnlyField()

    class Meta:
        model = Booking
        fields = [
            "id",
            "resource_id",
            "resource_name",
            "user_id",
            "start_time",
            "end_time",
            "status",
            "notes",
            "resolved_at",
            "resolved_by_id",
            "resolution_reason",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields
