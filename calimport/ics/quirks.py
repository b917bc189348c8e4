"""Workarounds for feed producers with known-broken iCalendar output.

Each quirk is a detection predicate plus a text patch applied before the
document reaches the generic parser. Nothing here runs for feeds that do not
carry the producer's signature.
"""

import logging
import re
from typing import Optional

logger = logging.getLogger(__name__)


class VendorQuirk:
    """Base class for producer-specific fixes."""

    name = "generic"

    # When true, VVENUE blocks follow event order 1:1 and events carry no
    # VVENUE back-references
    positional_venues = False

    def matches(self, content: str) -> bool:
        """Return True if ``content`` was produced by this vendor."""
        raise NotImplementedError

    def patch(self, content: str) -> str:
        """Return a corrected copy of ``content``."""
        return content


class UpcomingQuirk(VendorQuirk):
    """Upcoming (upcoming.yahoo.com) feeds.

    Upcoming appends a self-referential link to every description, writes raw
    newlines inside DESCRIPTION values, and emits one VVENUE per event without
    linking them from the event's LOCATION.
    """

    name = "upcoming"
    positional_venues = True

    PRODID_RE = re.compile(r"^PRODID:\W+Upcoming", re.MULTILINE)
    VENUE_URI_RE = re.compile(r"VALUE=URI:http://upcoming\.yahoo\.com/")
    FULL_DETAILS_RE = re.compile(
        r"\s*\[\s*Full details at http://upcoming\.yahoo\.com/event/\d+/?\s*\][^\S\n]*"
    )
    # DESCRIPTION value up to the start of the next property line
    DESCRIPTION_RE = re.compile(r"^(DESCRIPTION:.+?)(?=^\w+[:;])", re.MULTILINE | re.DOTALL)

    def matches(self, content: str) -> bool:
        return bool(self.PRODID_RE.search(content) or self.VENUE_URI_RE.search(content))

    def patch(self, content: str) -> str:
        content = self.FULL_DETAILS_RE.sub("", content, count=1)
        return self.DESCRIPTION_RE.sub(self._escape_description, content)

    @staticmethod
    def _escape_description(match: re.Match) -> str:
        return match.group(1).strip().replace("\n", "\\n") + "\n"


VENDOR_QUIRKS: tuple[VendorQuirk, ...] = (UpcomingQuirk(),)


def detect_vendor(content: str) -> Optional[VendorQuirk]:
    """Find the quirk whose signature ``content`` carries, if any."""
    for quirk in VENDOR_QUIRKS:
        if quirk.matches(content):
            logger.debug(f"Detected feed vendor: {quirk.name}")
            return quirk
    return None
