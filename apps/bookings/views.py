"""API views for the booking domain.

Status changes never touch the ORM directly: every write is a command
dispatched through the booking message bus.
"""

from __future__ import annotations

from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.exceptions import PermissionDenied  # type: ignore
from rest_framework.response import Response  # type: ignore

from shared.domain.value_objects import Actor
from apps.users.permissions import IsBookingApprover, IsOwnerOrApprover

from .application.command_handlers import (
    ApproveBookingCommand,
    CancelBookingCommand,
    RejectBookingCommand,
    RequestBookingCommand,
)
from .bootstrap import get_message_bus
from .models import Booking
from .serializers import (
    BookingRequestSerializer,
    BookingResolutionSerializer,
    BookingSerializer,
)


def actor_for(request) -> Actor:  # type: ignore
    user = request.user
    return Actor.human(user.id, user.display_name)


class BookingViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    viewsets.GenericViewSet,
):
    """Request, list and resolve bookings."""

    queryset = Booking.objects.select_related("resource", "user").all()
    permission_classes = [permissions.IsAuthenticated, IsOwnerOrApprover]
    filterset_fields = ["status", "resource"]

    def get_serializer_class(self):  # type: ignore
        if self.action == "create":
            return BookingRequestSerializer
        if self.action in {"reject", "cancel"}:
            return BookingResolutionSerializer
        return BookingSerializer

    def get_queryset(self):  # type: ignore
        user = self.request.user
        qs = super().get_queryset()
        if not user.is_authenticated:
            return qs.none()
        if user.can_resolve_bookings():
            return qs
        return qs.filter(user=user)

    def _respond(self, booking_id, status_code=status.HTTP_200_OK) -> Response:
        booking = Booking.objects.select_related("resource", "user").get(pk=booking_id)
        serializer = BookingSerializer(booking, context=self.get_serializer_context())
        return Response(serializer.data, status=status_code)

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        owner = data.get("user") or request.user
        if owner.pk != request.user.pk and not request.user.can_resolve_bookings():
            raise PermissionDenied("Only approvers may book on behalf of another user.")

        booking = get_message_bus().handle(RequestBookingCommand(
            resource_id=data["resource"],
            user_id=owner.pk,
            interval=data["interval"],
            actor=actor_for(request),
            notes=data["notes"],
        ))
        return self._respond(booking.id, status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"], permission_classes=[permissions.IsAuthenticated, IsBookingApprover])
    def approve(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        get_message_bus().handle(ApproveBookingCommand(booking_id=booking.pk, actor=actor_for(request)))
        return self._respond(booking.pk)

    @action(detail=True, methods=["post"], permission_classes=[permissions.IsAuthenticated, IsBookingApprover])
    def reject(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        get_message_bus().handle(RejectBookingCommand(
            booking_id=booking.pk,
            actor=actor_for(request),
            reason=serializer.validated_data["reason"],
        ))
        return self._respond(booking.pk)

    @action(detail=True, methods=["post"], permission_classes=[permissions.IsAuthenticated, IsOwnerOrApprover])
    def cancel(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        get_message_bus().handle(CancelBookingCommand(
            booking_id=booking.pk,
            actor=actor_for(request),
            reason=serializer.validated_data["reason"],
        ))
        return self._respond(booking.pk)
