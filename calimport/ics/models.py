"""Data models for iCalendar feed import."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_serializer, model_validator


class AbstractLocation(BaseModel):
    """Venue information extracted from a feed, owned by a single event."""

    title: Optional[str] = Field(default=None, description="Venue name")
    street_address: Optional[str] = Field(default=None, description="Street address")
    locality: Optional[str] = Field(default=None, description="City")
    region: Optional[str] = Field(default=None, description="State or region")
    postal_code: Optional[str] = Field(default=None, description="Postal code")
    country: Optional[str] = Field(default=None, description="Country")
    latitude: Optional[float] = Field(default=None, description="Latitude")
    longitude: Optional[float] = Field(default=None, description="Longitude")

    @model_validator(mode="after")
    def check_coordinates(self) -> "AbstractLocation":
        """Latitude and longitude are set together or not at all."""
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must both be present or both be absent")
        return self

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None


class AbstractEvent(BaseModel):
    """Canonical event produced by the feed parser and handed to storage."""

    title: str = Field(..., description="Event title")
    description: Optional[str] = Field(default=None, description="Event description")
    url: Optional[str] = Field(default=None, description="Event URL")
    start_time: datetime = Field(..., description="Event start (timezone-aware)")
    end_time: datetime = Field(..., description="Event end (timezone-aware)")
    location: Optional[AbstractLocation] = Field(default=None, description="Event venue")

    @model_validator(mode="after")
    def check_time_order(self) -> "AbstractEvent":
        """End time may equal but never precede start time."""
        if self.end_time < self.start_time:
            raise ValueError("end_time must not precede start_time")
        return self

    @field_serializer("start_time", "end_time")
    def serialize_datetime(self, dt: datetime) -> str:
        """Serialize datetime to ISO format."""
        return dt.isoformat()


class TimeOutcome(str, Enum):
    """How a DTSTART/DTEND pair was resolved."""

    RESOLVED = "resolved"
    FLOATING = "floating"
    FELL_BACK = "fell_back"


class TimeRange(BaseModel):
    """Start/end pair returned by the time resolver."""

    start: datetime
    end: datetime
    outcome: TimeOutcome = TimeOutcome.RESOLVED
    tzid: Optional[str] = None

    @property
    def fell_back(self) -> bool:
        return self.outcome == TimeOutcome.FELL_BACK


class LocationOutcome(str, Enum):
    """How the location for an event was produced."""

    DECODED = "decoded"
    FELL_BACK = "fell_back"
    NONE = "none"


class LocationDecodeResult(BaseModel):
    """Result of decoding a VVENUE block."""

    location: Optional[AbstractLocation] = None
    outcome: LocationOutcome = LocationOutcome.NONE
    error: Optional[str] = None


class SubRecordStrategy(str, Enum):
    """Which lookup located a VVENUE block."""

    POSITIONAL = "positional"
    BACK_REFERENCE = "back_reference"
    NONE = "none"


class SubRecordMatch(BaseModel):
    """VVENUE block located for an event, if any."""

    block: Optional[str] = None
    strategy: SubRecordStrategy = SubRecordStrategy.NONE
    error: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.block is not None


class FeedParseResult(BaseModel):
    """Result of a feed parsing operation."""

    events: List[AbstractEvent] = Field(default_factory=list, description="Parsed events")
    vendor: Optional[str] = Field(default=None, description="Name of the vendor quirk applied")

    # Parse statistics
    calendar_count: int = 0
    event_count: int = 0
    skipped_old: int = 0
    skipped_invalid: int = 0

    warnings: List[str] = Field(default_factory=list)
    parse_time: datetime = Field(default_factory=datetime.now)
