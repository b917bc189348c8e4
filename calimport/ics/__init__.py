"""iCalendar feed fetching and parsing module."""

from .exceptions import (
    ICSError,
    ICSFetchError,
    ICSParseError,
    LocationDecodeError,
    TimezoneResolutionError,
)
from .fetcher import FeedFetcher, normalize_feed_url
from .models import (
    AbstractEvent,
    AbstractLocation,
    FeedParseResult,
    LocationDecodeResult,
    LocationOutcome,
    SubRecordMatch,
    SubRecordStrategy,
    TimeOutcome,
    TimeRange,
)
from .parser import FeedParser, parse_feed
from .quirks import UpcomingQuirk, VendorQuirk, detect_vendor
from .time_resolver import RawTime, TimeResolver
from .venues import ContactCardDecoder, SubRecordExtractor

__all__ = [
    "AbstractEvent",
    "AbstractLocation",
    "ContactCardDecoder",
    "FeedFetcher",
    "FeedParseResult",
    "FeedParser",
    "ICSError",
    "ICSFetchError",
    "ICSParseError",
    "LocationDecodeError",
    "LocationDecodeResult",
    "LocationOutcome",
    "RawTime",
    "SubRecordExtractor",
    "SubRecordMatch",
    "SubRecordStrategy",
    "TimeOutcome",
    "TimeRange",
    "TimeResolver",
    "TimezoneResolutionError",
    "UpcomingQuirk",
    "VendorQuirk",
    "detect_vendor",
    "normalize_feed_url",
    "parse_feed",
]
