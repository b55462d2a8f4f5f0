"""Permission classes for the booking API."""

from __future__ import annotations

from rest_framework import permissions  # type: ignore


def _is_approver(user) -> bool:  # type: ignore
    return hasattr(user, "can_resolve_bookings") and user.can_resolve_bookings()


class IsBookingApprover(permissions.BasePermission):
    """
    Allows access only to users who may approve and reject bookings.

    Approver roles come from BOOKING_APPROVER_ROLES; superusers always
    pass.
    """

    def has_permission(self, request, view) -> bool:  # type: ignore
        user = request.user
        if not user.is_authenticated:
            return False
        return _is_approver(user)


class IsOwnerOrApprover(permissions.BasePermission):
    """Object-level permission: the booking owner or an approver."""

    def has_object_permission(self, request, view, obj) -> bool:  # type: ignore
        user = request.user
        if not user.is_authenticated:
            return False
        if _is_approver(user):
            return True
        return obj.user_id == user.id
