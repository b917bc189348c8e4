"""iCalendar feed parser producing abstract events with venues."""

import logging
import re
from datetime import datetime, timedelta
from typing import Any, Optional

from icalendar import Calendar

from ..config.settings import get_settings
from ..timezone import TimezoneService, get_timezone_service
from ..utils.logging import VERBOSE
from .exceptions import ICSParseError
from .models import AbstractEvent, FeedParseResult
from .quirks import detect_vendor
from .time_resolver import RawTime, TimeResolver
from .venues import ContactCardDecoder, SubRecordExtractor, strip_venue_blocks

logger = logging.getLogger(__name__)

CALENDAR_CONTENT_RE = re.compile(r"^BEGIN:VCALENDAR$.*?^END:VCALENDAR$", re.MULTILINE | re.DOTALL)


def normalize_line_endings(content: str) -> str:
    """Convert CRLF and bare CR line terminators to LF."""
    return content.replace("\r\n", "\n").replace("\r", "\n")


class FeedParser:
    """Turns iCalendar feed text into AbstractEvents.

    The document is patched for known producer bugs, decoded with icalendar,
    and each VEVENT is converted on its own: a bad timezone or venue on one
    event degrades that event, never the feed.
    """

    def __init__(
        self,
        settings: Optional[Any] = None,
        timezone_service: Optional[TimezoneService] = None,
        time_resolver: Optional[TimeResolver] = None,
        extractor: Optional[SubRecordExtractor] = None,
        decoder: Optional[ContactCardDecoder] = None,
    ) -> None:
        """Initialize feed parser.

        Args:
            settings: Application settings; global settings when omitted
            timezone_service: Timezone lookups; global service when omitted
            time_resolver: DTSTART/DTEND resolver
            extractor: VVENUE lookup
            decoder: VVENUE decoder
        """
        self.settings = settings or get_settings()
        self.timezones = timezone_service or get_timezone_service()
        self.time_resolver = time_resolver or TimeResolver(self.timezones)
        self.extractor = extractor or SubRecordExtractor()
        self.decoder = decoder or ContactCardDecoder()
        logger.debug("Feed parser initialized")

    def parse(
        self,
        content: str,
        skip_old: Optional[bool] = None,
        now: Optional[datetime] = None,
    ) -> FeedParseResult:
        """Parse feed content into abstract events.

        Args:
            content: Raw iCalendar text
            skip_old: Drop events that ended before yesterday; settings value when None
            now: Reference time for the cutoff, current time when None

        Returns:
            FeedParseResult with events in document order

        Raises:
            ICSParseError: If the content cannot be read as iCalendar at all
        """
        if content is None or not content.strip():
            raise ICSParseError("Empty ICS content")

        if skip_old is None:
            skip_old = self.settings.skip_old_events
        cutoff = self._cutoff(now)

        content = normalize_line_endings(content)
        result = FeedParseResult()

        quirk = detect_vendor(content)
        if quirk is not None:
            logger.info(f"Applying {quirk.name} feed workarounds")
            content = quirk.patch(content)
            result.vendor = quirk.name

        calendar_texts = CALENDAR_CONTENT_RE.findall(content)
        calendars = self._decode_calendars(content)
        result.calendar_count = len(calendars)

        if len(calendar_texts) != len(calendars):
            # Venue lookup falls back to scanning the whole document
            logger.warning(
                f"Found {len(calendar_texts)} VCALENDAR blocks but decoded {len(calendars)}"
            )
            calendar_texts = [content] * len(calendars)

        for calendar, calendar_text in zip(calendars, calendar_texts):
            for index, component in enumerate(calendar.walk("VEVENT")):
                result.event_count += 1
                try:
                    event = self._parse_event(component, index, calendar_text, skip_old, cutoff)
                except Exception as e:
                    warning = f"Failed to parse event {index}: {e}"
                    result.warnings.append(warning)
                    result.skipped_invalid += 1
                    logger.warning(warning)
                    continue

                if event is None:
                    result.skipped_old += 1
                    continue
                logger.log(VERBOSE, f"Parsed event {index}: {event.title!r} at {event.start_time}")
                result.events.append(event)

        logger.info(
            f"Parsed {len(result.events)} events from {result.calendar_count} calendars "
            f"({result.skipped_old} old, {result.skipped_invalid} invalid)"
        )
        return result

    def parse_url(
        self,
        address: str,
        fetcher: Any,
        skip_old: Optional[bool] = None,
        now: Optional[datetime] = None,
    ) -> FeedParseResult:
        """Fetch a feed through ``fetcher`` and parse it.

        Args:
            address: Feed address handed to ``fetcher.fetch``
            fetcher: Object with a ``fetch(address) -> str`` method

        Raises:
            ICSFetchError: If the fetch fails
            ICSParseError: If the fetched content is not iCalendar
        """
        content = fetcher.fetch(address)
        return self.parse(content, skip_old=skip_old, now=now)

    def _cutoff(self, now: Optional[datetime]) -> datetime:
        now = self.timezones.localize(now) if now is not None else self.timezones.now()
        return now - timedelta(days=self.settings.skip_old_cutoff_days)

    def _decode_calendars(self, content: str) -> list[Calendar]:
        """Decode the document structure, without VVENUE blocks."""
        try:
            components = Calendar.from_ical(strip_venue_blocks(content), multiple=True)
        except Exception as e:
            logger.exception("Failed to decode ICS content")
            raise ICSParseError(f"Failed to decode ICS content: {e}") from e

        calendars = [c for c in components if c.name == "VCALENDAR"]
        if not calendars:
            raise ICSParseError("No VCALENDAR found in ICS content")
        return calendars

    def _parse_event(
        self,
        component: Any,
        index: int,
        calendar_text: str,
        skip_old: bool,
        cutoff: datetime,
    ) -> Optional[AbstractEvent]:
        """Convert one VEVENT, or return None if it is older than ``cutoff``.

        Raises:
            ICSParseError: If the event has no usable DTSTART
        """
        dtstart = component.get("DTSTART")
        if dtstart is None:
            raise ICSParseError("missing DTSTART")
        dtend = component.get("DTEND")
        duration = self._duration(component.get("DURATION"))

        time_range = self.time_resolver.resolve(
            RawTime.from_property(dtstart),
            RawTime.from_property(dtend) if dtend is not None else None,
            duration,
        )

        reference = time_range.end if dtend is not None else time_range.start
        if skip_old and reference < cutoff:
            logger.log(VERBOSE, f"Skipping old event {index} ending {reference}")
            return None

        match = self.extractor.find(calendar_text, index, component)
        decoded = self.decoder.decode(match.block, fallback=self._text(component.get("LOCATION")))

        return AbstractEvent(
            title=self._text(component.get("SUMMARY")) or "",
            description=self._text(component.get("DESCRIPTION")),
            url=self._text(component.get("URL")),
            start_time=time_range.start,
            end_time=time_range.end,
            location=decoded.location,
        )

    @staticmethod
    def _duration(prop: Any) -> Optional[timedelta]:
        value = getattr(prop, "dt", None)
        return value if isinstance(value, timedelta) else None

    @staticmethod
    def _text(value: Any) -> Optional[str]:
        if isinstance(value, list):
            value = value[0] if value else None
        if value is None:
            return None
        return str(value)


def parse_feed(
    content: str,
    skip_old: bool = True,
    now: Optional[datetime] = None,
    parser: Optional[FeedParser] = None,
) -> list[AbstractEvent]:
    """Parse feed text into abstract events in document order.

    Raises:
        ICSParseError: If the content cannot be read as iCalendar at all
    """
    parser = parser or FeedParser()
    return parser.parse(content, skip_old=skip_old, now=now).events
