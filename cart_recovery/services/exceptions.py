# cart_recovery/services/exceptions.py

class ServiceError(Exception):
    """Base class for service-layer errors."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)


class DomainValidationError(ServiceError):
    """Invalid domain input."""
    pass


class ResourceNotFoundError(ServiceError):
    """Resource not found."""
    pass


class MissingContactAddressError(ServiceError):
    """The reminder recipient has no email address on file."""

    def __init__(self, detail: str = "no contact address"):
        super().__init__(detail)


class NotificationRejectedError(ServiceError):
    """The notification sender did not accept the message."""

    def __init__(self, detail: str = "notification sender rejected the message"):
        super().__init__(detail)
