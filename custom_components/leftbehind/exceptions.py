"""Exceptions raised by the Left Behind location and store layers."""


class LocationError(Exception):
    """Base class for failures acquiring a position."""


class PositionUnavailable(LocationError):
    """The position source has no usable fix."""


class PermissionDenied(LocationError):
    """The position source refused access to the user's position."""


class PositionTimeout(LocationError):
    """No fresh fix arrived within the allowed wait."""


class MalformedTrackerError(ValueError):
    """A tracker record is missing its identity or coordinates."""


class ApiResponseError(Exception):
    """Exception raised when the store returns an error response."""

    def __init__(self, status: int, error_json: dict | None = None):
        self.status = status
        self.error_json = error_json or {}
        super().__init__(f"Store error (HTTP {status}): {self.error_json}")
