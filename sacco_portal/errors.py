class PortalError(Exception):
    """Base class for errors surfaced to the user as a message."""

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class ApiError(PortalError):
    """A backend call failed: transport error, non-2xx status or bad payload."""

    def __init__(self, message, status_code=None, payload=None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class ValidationError(PortalError):
    """Input rejected before any request was sent."""
