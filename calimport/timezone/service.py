"""Core timezone service for feed import.

Resolves iCalendar TZID values to tzinfo objects with a zoneinfo + pytz
fallback strategy and applies the configured default timezone to floating
(naive) times.
"""

import logging
from datetime import datetime, tzinfo
from typing import ClassVar, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import pytz

from ..config.settings import get_settings

logger = logging.getLogger(__name__)

UTC_NAMES = frozenset({"UTC", "GMT", "Z", "ETC/UTC", "ETC/GMT"})


class TimezoneError(Exception):
    """Raised when timezone operations fail."""


class TimezoneService:
    """Timezone lookups and localization used by the time resolver.

    Lookups go through zoneinfo first and fall back to pytz, whose bundled
    database covers hosts without system tzdata.
    """

    # Windows timezone names to IANA identifier mapping
    # Outlook/Exchange feeds put these in TZID parameters
    WINDOWS_TZ_MAP: ClassVar[dict[str, str]] = {
        "Pacific Standard Time": "America/Los_Angeles",
        "Mountain Standard Time": "America/Denver",
        "Central Standard Time": "America/Chicago",
        "Eastern Standard Time": "America/New_York",
        "Alaskan Standard Time": "America/Anchorage",
        "Hawaiian Standard Time": "Pacific/Honolulu",
        "Arizona Standard Time": "America/Phoenix",
        "GMT Standard Time": "Europe/London",
        "Central European Standard Time": "Europe/Paris",
        "W. Europe Standard Time": "Europe/Berlin",
        "China Standard Time": "Asia/Shanghai",
        "Tokyo Standard Time": "Asia/Tokyo",
        "India Standard Time": "Asia/Kolkata",
        "AUS Eastern Standard Time": "Australia/Sydney",
    }

    def __init__(self, default_tz_name: Optional[str] = None) -> None:
        """Initialize timezone service.

        Args:
            default_tz_name: Zone for floating times; settings value when omitted
        """
        self.default_tz_name = default_tz_name or get_settings().default_timezone
        self._default_tz: Optional[tzinfo] = None
        self._cache: dict[str, tzinfo] = {}

    def get_default_timezone(self) -> tzinfo:
        """Get the timezone applied to floating times.

        Raises:
            TimezoneError: If the configured default timezone is unknown.
        """
        if self._default_tz is None:
            self._default_tz = self.resolve(self.default_tz_name)
            logger.debug(f"Using default timezone: {self._default_tz}")
        return self._default_tz

    def resolve(self, tzid: str) -> tzinfo:
        """Resolve a TZID parameter value to a tzinfo.

        Handles quoted values, the ``/mozilla.org/...`` style prefixes some
        producers emit, and Windows zone names.

        Args:
            tzid: TZID value from a DTSTART/DTEND property

        Returns:
            Matching tzinfo object.

        Raises:
            TimezoneError: If no timezone library knows the identifier.
        """
        if not tzid or not tzid.strip():
            raise TimezoneError("Empty timezone identifier")

        if tzid in self._cache:
            return self._cache[tzid]

        name = self._clean_tzid(tzid)
        if name.upper() in UTC_NAMES:
            tz: Optional[tzinfo] = pytz.utc
        else:
            name = self.WINDOWS_TZ_MAP.get(name, name)
            tz = self._lookup(name)

        if tz is None:
            raise TimezoneError(f"Unknown timezone identifier: {tzid}")

        self._cache[tzid] = tz
        return tz

    def _clean_tzid(self, tzid: str) -> str:
        name = tzid.strip().strip('"')
        if name.startswith("/"):
            # e.g. /mozilla.org/20070129_1/America/Los_Angeles
            parts = [part for part in name.split("/") if part]
            if len(parts) >= 2:
                name = "/".join(parts[-2:])
        return name

    def _lookup(self, name: str) -> Optional[tzinfo]:
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.debug(f"zoneinfo does not know {name!r}, trying pytz")

        try:
            return pytz.timezone(name)
        except pytz.UnknownTimeZoneError:
            return None

    def localize(self, dt: datetime, tz: Optional[tzinfo] = None) -> datetime:
        """Attach a timezone to a naive datetime.

        Aware datetimes are returned unchanged.

        Args:
            dt: Datetime to make timezone-aware
            tz: Zone to apply; the default timezone when omitted

        Raises:
            TypeError: If dt is not a datetime object.
        """
        if not isinstance(dt, datetime):
            raise TypeError(f"Expected datetime object, got {type(dt)}")

        if dt.tzinfo is not None:
            return dt

        tz = tz or self.get_default_timezone()
        if hasattr(tz, "localize"):
            # pytz zones need localize() to pick the right DST offset
            return tz.localize(dt)
        return dt.replace(tzinfo=tz)

    def now(self) -> datetime:
        """Get current time in the default timezone."""
        return datetime.now(self.get_default_timezone())


# Global service instance
_timezone_service: Optional[TimezoneService] = None


def get_timezone_service() -> TimezoneService:
    """Get global timezone service instance.

    Returns:
        Singleton TimezoneService instance.
    """
    if globals()["_timezone_service"] is None:
        globals()["_timezone_service"] = TimezoneService()
    return globals()["_timezone_service"]


def reset_timezone_service() -> None:
    """Drop the global service so the next call re-reads settings."""
    globals()["_timezone_service"] = None


def resolve_timezone(tzid: str) -> tzinfo:
    """Resolve a TZID using the global service."""
    return get_timezone_service().resolve(tzid)


def localize(dt: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """Attach a timezone to a naive datetime using the global service."""
    return get_timezone_service().localize(dt, tz)
