"""VVENUE sub-record lookup and decoding.

VVENUE blocks are vCards wearing iCalendar component markers. Events point at
them with ``LOCATION;VVENUE=<uid>:...``; some producers omit that link and
rely on the blocks following event order instead.
"""

import logging
import re
from typing import Any, Optional

from icalendar.cal import Component

from .exceptions import LocationDecodeError
from .models import (
    AbstractLocation,
    LocationDecodeResult,
    LocationOutcome,
    SubRecordMatch,
    SubRecordStrategy,
)
from .quirks import detect_vendor

logger = logging.getLogger(__name__)

VENUE_CONTENT_RE = re.compile(r"^BEGIN:VVENUE$.*?^END:VVENUE$", re.MULTILINE | re.DOTALL)
VENUE_CONTENT_BEGIN_RE = re.compile(r"^BEGIN:VVENUE$", re.MULTILINE)
VENUE_CONTENT_END_RE = re.compile(r"^END:VVENUE$", re.MULTILINE)


def find_venue_blocks(content: str) -> list[str]:
    """Return every VVENUE block in ``content`` in document order."""
    return VENUE_CONTENT_RE.findall(content)


def strip_venue_blocks(content: str) -> str:
    """Remove VVENUE blocks so the structural parser never sees them."""
    return VENUE_CONTENT_RE.sub("", content)


class SubRecordExtractor:
    """Locates the VVENUE block belonging to an event."""

    def find(self, content: str, index: int, event: Optional[Any] = None) -> SubRecordMatch:
        """Find the VVENUE block for the ``index``-th event of a calendar.

        Args:
            content: Text of the calendar holding the event (line endings normalized)
            index: Position of the event within the calendar
            event: icalendar VEVENT component, read for its VVENUE back-reference

        Returns:
            SubRecordMatch describing which block was chosen, if any
        """
        blocks = find_venue_blocks(content)
        quirk = detect_vendor(content)

        if quirk is not None and quirk.positional_venues:
            if 0 <= index < len(blocks):
                return SubRecordMatch(block=blocks[index], strategy=SubRecordStrategy.POSITIONAL)
            logger.debug(f"No positional venue for event {index} ({len(blocks)} venues)")
            return SubRecordMatch()

        try:
            venue_uid = self.back_reference(event)
        except Exception as e:
            logger.info(f"Failed to read venue back-reference for event {index} -- {e}")
            return SubRecordMatch(error=str(e))

        if not venue_uid:
            return SubRecordMatch()

        uid_re = re.compile(rf"^UID:{re.escape(venue_uid)}$", re.MULTILINE)
        for block in blocks:
            if uid_re.search(block):
                return SubRecordMatch(block=block, strategy=SubRecordStrategy.BACK_REFERENCE)

        logger.debug(f"Venue {venue_uid} referenced by event {index} not found")
        return SubRecordMatch()

    @staticmethod
    def back_reference(event: Optional[Any]) -> Optional[str]:
        """Read the VVENUE parameter of the event's LOCATION property.

        Raises whatever the component raises for malformed LOCATION values
        (for example a repeated LOCATION, which icalendar returns as a list).
        """
        if event is None:
            return None
        location = event.get("LOCATION")
        if location is None:
            return None
        venue_values = location.params.get("VVENUE")
        if not venue_values:
            return None
        if isinstance(venue_values, (list, tuple)):
            return str(venue_values[0])
        return str(venue_values)


class ContactCardDecoder:
    """Decodes a VVENUE block into an AbstractLocation by reading it as a vCard."""

    def decode(self, value: Optional[str], fallback: Optional[str] = None) -> LocationDecodeResult:
        """Decode a VVENUE block, falling back to a title-only location.

        Args:
            value: Text containing a VVENUE block, or None
            fallback: Title to use if the block is missing or unreadable

        Returns:
            LocationDecodeResult; never raises
        """
        error = None
        blocks = find_venue_blocks(value or "")
        if blocks:
            try:
                location = self._decode_card(self._as_vcard(blocks[0]))
                return LocationDecodeResult(location=location, outcome=LocationOutcome.DECODED)
            except Exception as e:
                error = str(e)
                logger.debug(f"Discarding undecodable venue, using fallback title: {e}")

        fallback = str(fallback) if fallback is not None else ""
        if not fallback.strip():
            return LocationDecodeResult(outcome=LocationOutcome.NONE, error=error)
        return LocationDecodeResult(
            location=AbstractLocation(title=fallback),
            outcome=LocationOutcome.FELL_BACK,
            error=error,
        )

    def to_abstract_location(
        self, value: Optional[str], fallback: Optional[str] = None
    ) -> Optional[AbstractLocation]:
        """Shortcut returning just the location (or None)."""
        return self.decode(value, fallback).location

    @staticmethod
    def _as_vcard(block: str) -> str:
        block = VENUE_CONTENT_BEGIN_RE.sub("BEGIN:VCARD", block)
        return VENUE_CONTENT_END_RE.sub("END:VCARD", block)

    def _decode_card(self, vcard_content: str) -> AbstractLocation:
        cards = Component.from_ical(vcard_content, multiple=True)
        if len(cards) != 1 or cards[0].name != "VCARD":
            raise LocationDecodeError(f"Wrong number of vcards: {len(cards)}")
        card = cards[0]

        latitude, longitude = self._geo(card.get("GEO"))
        return AbstractLocation(
            title=self._text(card, "NAME"),
            street_address=self._text(card, "ADDRESS"),
            locality=self._text(card, "CITY"),
            region=self._text(card, "REGION"),
            postal_code=self._text(card, "POSTALCODE"),
            country=self._text(card, "COUNTRY"),
            latitude=latitude,
            longitude=longitude,
        )

    @staticmethod
    def _text(card: Component, name: str) -> Optional[str]:
        value = card.get(name)
        if isinstance(value, list):
            value = value[0] if value else None
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @staticmethod
    def _geo(geo: Any) -> tuple[Optional[float], Optional[float]]:
        if geo is None:
            return None, None
        if hasattr(geo, "latitude") and hasattr(geo, "longitude"):
            return float(geo.latitude), float(geo.longitude)
        if isinstance(geo, tuple) and len(geo) == 2:
            return float(geo[0]), float(geo[1])
        parts = str(geo).split(";")
        if len(parts) != 2:
            raise LocationDecodeError(f"Unparseable GEO value: {geo}")
        return float(parts[0]), float(parts[1])
