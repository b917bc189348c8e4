"""ICS-specific exceptions for error handling."""

from typing import Optional


class ICSError(Exception):
    """Base exception for ICS-related errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ICSFetchError(ICSError):
    """Exception raised when a feed cannot be fetched."""


class ICSParseError(ICSError):
    """Exception raised when feed content cannot be decoded as iCalendar."""


class TimezoneResolutionError(ICSError):
    """Raised internally when a TZID cannot be resolved to a timezone."""


class LocationDecodeError(ICSError):
    """Raised internally when a VVENUE block cannot be decoded as a vCard."""
