"""Resolution of DTSTART/DTEND/DURATION fields to absolute datetimes."""

import logging
from datetime import date, datetime, timedelta, tzinfo
from typing import Any, NamedTuple, Optional

from dateutil import parser as date_parser
from icalendar.prop import vDDDTypes

from ..timezone import TimezoneError, TimezoneService, get_timezone_service
from .exceptions import ICSParseError, TimezoneResolutionError
from .models import TimeOutcome, TimeRange

logger = logging.getLogger(__name__)


class RawTime(NamedTuple):
    """Textual value of a date/time property plus its TZID parameter.

    ``dt`` holds the value icalendar already decoded, if any. It is aware
    when icalendar could resolve the TZID itself, including zones defined by
    the feed's own VTIMEZONE components.
    """

    value: str
    tzid: Optional[str] = None
    dt: Optional[Any] = None

    @classmethod
    def from_property(cls, prop: Any) -> "RawTime":
        """Build from an icalendar property (vDDDTypes) taken off a VEVENT."""
        params = getattr(prop, "params", None) or {}
        tzid = params.get("TZID")
        raw = prop.to_ical()
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        return cls(value=str(raw), tzid=str(tzid) if tzid else None, dt=getattr(prop, "dt", None))

    @property
    def aware(self) -> Optional[datetime]:
        """The decoded datetime when it carries a zone, else None."""
        if isinstance(self.dt, datetime) and self.dt.utcoffset() is not None:
            return self.dt
        return None


class TimeResolver:
    """Turns a feed event's time fields into a timezone-aware (start, end) pair.

    Floating times are read in the default timezone. Zoned times are read in
    their TZID. If a TZID cannot be resolved the raw text is parsed instead,
    so a bad timezone never costs an event.
    """

    def __init__(self, timezone_service: Optional[TimezoneService] = None) -> None:
        self.timezones = timezone_service or get_timezone_service()

    def resolve(
        self,
        start: RawTime,
        end: Optional[RawTime] = None,
        duration: Optional[timedelta] = None,
    ) -> TimeRange:
        """Resolve a start/end pair.

        Args:
            start: DTSTART value
            end: DTEND value, if the event has one
            duration: DURATION value, used only when there is no DTEND

        Returns:
            TimeRange with ``start <= end``

        Raises:
            ICSParseError: If a value is not a date or date-time at all
        """
        if start.aware is not None:
            start_dt = start.aware
            outcome = TimeOutcome.RESOLVED
        elif not start.tzid:
            start_dt = self._parse_floating(start.value)
            # UTC values ("...Z") carry their own zone
            is_utc = start.value.strip().upper().endswith("Z")
            outcome = TimeOutcome.RESOLVED if is_utc else TimeOutcome.FLOATING
        else:
            try:
                start_dt = self._parse_value(start.value, self._zone(start.tzid))
                outcome = TimeOutcome.RESOLVED
            except TimezoneResolutionError as e:
                logger.info(f"Falling back to textual time parse: {e.message}")
                start_dt = self._parse_text(start.value)
                outcome = TimeOutcome.FELL_BACK

        end_dt = self._resolve_end(end, start, start_dt, outcome) if end else None
        if end_dt is None:
            end_dt = start_dt + duration if duration else start_dt

        if end_dt < start_dt:
            logger.warning(f"End {end_dt} precedes start {start_dt}, using start as end")
            end_dt = start_dt

        return TimeRange(start=start_dt, end=end_dt, outcome=outcome, tzid=start.tzid)

    def _resolve_end(
        self, end: RawTime, start: RawTime, start_dt: datetime, outcome: TimeOutcome
    ) -> datetime:
        if end.aware is not None:
            return end.aware

        if not end.tzid:
            # A bare DTEND shares the start's zone
            if start.tzid and outcome == TimeOutcome.RESOLVED:
                return self._parse_value(end.value, start_dt.tzinfo)
            if outcome == TimeOutcome.FELL_BACK:
                return self._parse_text(end.value)
            return self._parse_floating(end.value)

        try:
            return self._parse_value(end.value, self._zone(end.tzid))
        except TimezoneResolutionError as e:
            logger.info(f"Falling back to textual parse of end time: {e.message}")
            return self._parse_text(end.value)

    def _zone(self, tzid: Optional[str]) -> tzinfo:
        try:
            return self.timezones.resolve(tzid or "")
        except TimezoneError as e:
            raise TimezoneResolutionError(str(e)) from e

    def _parse_floating(self, value: str) -> datetime:
        return self._parse_value(value, None)

    def _parse_value(self, value: str, tz: Optional[tzinfo]) -> datetime:
        """Parse an iCalendar DATE or DATE-TIME value in ``tz`` (default zone if None)."""
        try:
            parsed = vDDDTypes.from_ical(value.strip())
        except ValueError:
            logger.debug(f"Not an iCalendar date-time: {value!r}, trying textual parse")
            return self._parse_text(value)

        if isinstance(parsed, datetime):
            return self.timezones.localize(parsed, tz)
        if isinstance(parsed, date):
            return self.timezones.localize(datetime.combine(parsed, datetime.min.time()), tz)
        raise ICSParseError(f"Expected a date or date-time, got {value!r}")

    def _parse_text(self, value: str) -> datetime:
        """Best-effort parse of free-form text, as used by the fallback path."""
        try:
            parsed = date_parser.parse(value.strip())
        except (ValueError, OverflowError) as e:
            raise ICSParseError(f"Unparseable date-time {value!r}: {e}") from e
        return self.timezones.localize(parsed)
