"""calimport - iCalendar feed import and duplicate squashing."""

from .duplicates import SquashRequest, SquashResult, match_duplicates, squash
from .ics import AbstractEvent, AbstractLocation, FeedParser, parse_feed

__version__ = "1.0.0"

__all__ = [
    "AbstractEvent",
    "AbstractLocation",
    "FeedParser",
    "SquashRequest",
    "SquashResult",
    "match_duplicates",
    "parse_feed",
    "squash",
]
