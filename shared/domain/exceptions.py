"""Root of the domain exception hierarchy."""


class DomainError(Exception):
    """Base class for errors raised by domain code."""

    retryable: bool = False

    def __init__(self, message: str = "", **context):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__
        self.context = context


class InvalidInterval(DomainError, ValueError):
    """Raised when a time range is empty, inverted or not timezone-aware."""


class StoreUnavailable(DomainError):
    """The transactional unit of work could not complete; safe to retry."""

    retryable = True
