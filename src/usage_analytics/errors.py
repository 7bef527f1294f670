"""Exception types for the analytics client."""

from __future__ import annotations


class UsageAnalyticsError(Exception):
    """Base exception for analytics client errors."""
    pass


class ConfigurationError(UsageAnalyticsError):
    """Required session arguments are missing or invalid."""
    pass


class ValidationError(UsageAnalyticsError):
    """A record() call carried malformed arguments."""
    def __init__(self, field: str, message: str):
        super().__init__(f"invalid {field}: {message}")
        self.field = field


class NotInitializedError(UsageAnalyticsError):
    """The session was used before init()."""
    def __init__(self, message: str = "call init() before recording or reading analytics events"):
        super().__init__(message)


class DeliveryFailure(UsageAnalyticsError):
    """
    A delivery attempt did not succeed.

    Soft failure: created and logged by the delivery engine, never raised
    to the host application.
    """
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class RemoteConfigFailure(UsageAnalyticsError):
    """Remote configuration could not be fetched; defaults apply."""
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
