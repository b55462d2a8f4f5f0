"""
Booking engine wiring

Builds a MessageBus with the booking command handlers and the
notification/audit event handlers bound to one store.
"""

from functools import lru_cache
from typing import Callable, Optional
import logging

from shared.application.message_bus import MessageBus
from shared.application.uow import EventPublisher
from apps.bookings.application.command_handlers import (
    ApproveBookingCommand,
    ApproveBookingHandler,
    CancelBookingCommand,
    CancelBookingHandler,
    PromoteWaitlistCommand,
    PromoteWaitlistHandler,
    RejectBookingCommand,
    RejectBookingHandler,
    RequestBookingCommand,
    RequestBookingHandler,
)
from apps.bookings.application.promoter import WaitlistPromoter
from apps.bookings.domain.ports import (
    BookingUnitOfWork,
    NotificationDispatcher,
    ResourceRepository,
    ScopeResolver,
)
from apps.notifications.handlers import BookingNotificationHandlers

logger = logging.getLogger(__name__)


def bootstrap(
    make_uow: Callable[[EventPublisher], BookingUnitOfWork],
    dispatcher: NotificationDispatcher,
    scope_resolver: ScopeResolver,
    resources: ResourceRepository,
    describe_user: Optional[Callable[[int], str]] = None,
) -> MessageBus:
    """
    Wire the booking engine

    `make_uow` receives the bus' event publisher and returns a fresh unit
    of work; it is called once per command (and once per promotion).
    """
    bus = MessageBus()

    def uow_factory() -> BookingUnitOfWork:
        return make_uow(bus.publish_events)

    promoter = WaitlistPromoter(uow_factory)

    bus.register_command_handler(RequestBookingCommand, RequestBookingHandler(uow_factory).handle)
    bus.register_command_handler(ApproveBookingCommand, ApproveBookingHandler(uow_factory).handle)
    bus.register_command_handler(RejectBookingCommand, RejectBookingHandler(uow_factory, promoter).handle)
    bus.register_command_handler(CancelBookingCommand, CancelBookingHandler(uow_factory, promoter).handle)
    bus.register_command_handler(PromoteWaitlistCommand, PromoteWaitlistHandler(promoter).handle)

    BookingNotificationHandlers(dispatcher, scope_resolver, resources, describe_user).register(bus)

    logger.debug("Booking message bus ready")
    return bus


def _describe_user(user_id: int) -> str:
    from apps.users.models import CustomUser

    return CustomUser.objects.get(pk=user_id).display_name


@lru_cache(maxsize=1)
def get_message_bus() -> MessageBus:
    """The process-wide bus backed by the Django ORM, Celery and lab membership"""
    from apps.bookings.infrastructure.django_store import (
        DjangoBookingUnitOfWork,
        DjangoResourceRepository,
    )
    from apps.notifications.dispatcher import CeleryNotificationDispatcher
    from apps.users.services import MembershipScopeResolver

    return bootstrap(
        make_uow=DjangoBookingUnitOfWork,
        dispatcher=CeleryNotificationDispatcher(),
        scope_resolver=MembershipScopeResolver(),
        resources=DjangoResourceRepository(),
        describe_user=_describe_user,
    )
