"""
Timezone package for feed import.

Resolves TZID parameters and localizes floating times with a zoneinfo + pytz
fallback strategy.

Example usage:
    >>> from calimport.timezone import localize, resolve_timezone
    >>> from datetime import datetime
    >>>
    >>> tz = resolve_timezone("America/New_York")
    >>> aware = localize(datetime(2024, 3, 1, 19, 0), tz)
"""

from .service import (
    TimezoneError,
    TimezoneService,
    get_timezone_service,
    localize,
    reset_timezone_service,
    resolve_timezone,
)

__all__ = [
    "TimezoneError",
    "TimezoneService",
    "get_timezone_service",
    "localize",
    "reset_timezone_service",
    "resolve_timezone",
]
