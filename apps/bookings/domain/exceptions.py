"""
Booking Domain Errors

Booking-state errors are raised synchronously to the caller of a command
so the request handler can react ("slot no longer available", ...).
`NotificationFailed` is the exception: it is only ever logged.
"""

from shared.domain.exceptions import DomainError, InvalidInterval, StoreUnavailable


class BookingError(DomainError):
    """Base class for errors that reject a booking command"""


class SlotUnavailable(BookingError):
    """The slot conflicts with an active booking and the resource does not queue"""


class InvalidTransition(BookingError):
    """The requested status change is not allowed from the current status"""

    def __init__(self, current, target, message: str = ""):
        super().__init__(
            message or f"Cannot move booking from '{current.value}' to '{target.value}'",
            current=current.value,
            target=target.value,
        )
        self.current = current
        self.target = target


class StaleConflict(BookingError):
    """An overlapping booking became active between request and approval"""


class BookingNotFound(BookingError):
    """No booking exists with the given id"""


class ResourceNotFound(BookingError):
    """No resource exists with the given id"""


class ResourceNotBookable(BookingError):
    """The resource is out of service (maintenance, broken) and takes no requests"""


class NotificationFailed(DomainError):
    """A notification or audit side effect could not be handed off"""


__all__ = [
    'BookingError',
    'BookingNotFound',
    'InvalidInterval',
    'InvalidTransition',
    'NotificationFailed',
    'ResourceNotBookable',
    'ResourceNotFound',
    'SlotUnavailable',
    'StaleConflict',
    'StoreUnavailable',
]
