"""Data models for stored records, duplicate groups and squash requests."""

import json
import re
from datetime import datetime
from enum import Enum
from typing import Any, List, Mapping, Optional, Union

from pydantic import BaseModel, Field, field_validator

RecordId = Union[int, str]

DUPLICATE_ID_PARAM_RE = re.compile(r"^duplicate_id_\d+$")
DUPLICATE_EVENT_ID_PARAM_RE = re.compile(r"^duplicate_event_id_\d+$")


class RecordKind(str, Enum):
    """Record types that can be checked for duplicates and squashed."""

    EVENT = "event"
    VENUE = "venue"

    @property
    def singular(self) -> str:
        return self.value

    @property
    def plural(self) -> str:
        return f"{self.value}s"


class StoredVenue(BaseModel):
    """Venue as held by the storage collaborator."""

    id: RecordId = Field(..., description="Venue ID")
    title: Optional[str] = Field(default=None, description="Venue name")
    description: Optional[str] = Field(default=None, description="Venue description")
    street_address: Optional[str] = Field(default=None, description="Street address")
    locality: Optional[str] = Field(default=None, description="City")
    region: Optional[str] = Field(default=None, description="State or region")
    postal_code: Optional[str] = Field(default=None, description="Postal code")
    country: Optional[str] = Field(default=None, description="Country")
    latitude: Optional[float] = Field(default=None, description="Latitude")
    longitude: Optional[float] = Field(default=None, description="Longitude")
    url: Optional[str] = Field(default=None, description="Venue URL")

    created_at: Optional[datetime] = Field(default=None, description="Creation time")
    updated_at: Optional[datetime] = Field(default=None, description="Last modification time")


class StoredEvent(BaseModel):
    """Event as held by the storage collaborator."""

    id: RecordId = Field(..., description="Event ID")
    title: str = Field(..., description="Event title")
    description: Optional[str] = Field(default=None, description="Event description")
    url: Optional[str] = Field(default=None, description="Event URL")
    start_time: datetime = Field(..., description="Event start")
    end_time: Optional[datetime] = Field(default=None, description="Event end")
    venue_id: Optional[RecordId] = Field(default=None, description="Venue the event is held at")

    created_at: Optional[datetime] = Field(default=None, description="Creation time")
    updated_at: Optional[datetime] = Field(default=None, description="Last modification time")


class DuplicateGroup(BaseModel):
    """Records sharing one matching key. Exists only for a detection pass."""

    key: tuple = Field(..., description="Field values the records share")
    record_ids: List[Any] = Field(default_factory=list, description="IDs in input order")
    records: List[Any] = Field(default_factory=list, description="Records in input order")

    def __len__(self) -> int:
        return len(self.record_ids)


class SquashRequest(BaseModel):
    """Merge ``duplicate_ids`` into ``master_id``."""

    kind: RecordKind
    master_id: Optional[RecordId] = None
    duplicate_ids: List[RecordId] = Field(default_factory=list)

    @field_validator("duplicate_ids")
    @classmethod
    def unique_in_order(cls, v: List[RecordId]) -> List[RecordId]:
        """Drop repeated IDs, keeping the first occurrence."""
        unique: List[RecordId] = []
        for record_id in v:
            if record_id not in unique:
                unique.append(record_id)
        return unique

    @classmethod
    def from_form_params(cls, kind: Union[RecordKind, str], params: Mapping[str, Any]) -> "SquashRequest":
        """Build a request from submitted form parameters.

        Reads ``master_id`` and every ``duplicate_id_<n>`` key; blank values
        are ignored and numeric strings become integers. Event requests also
        accept the events form names, ``master_event_id`` and
        ``duplicate_event_id_<n>``.
        """
        kind = RecordKind(kind)
        patterns = [DUPLICATE_ID_PARAM_RE]
        master_id = _coerce_id(params.get("master_id"))
        if kind == RecordKind.EVENT:
            patterns.append(DUPLICATE_EVENT_ID_PARAM_RE)
            if master_id is None:
                master_id = _coerce_id(params.get("master_event_id"))

        duplicate_keys = sorted(
            (key for key in params if any(p.match(key) for p in patterns)),
            key=lambda key: int(key.rsplit("_", 1)[1]),
        )
        duplicate_ids = [
            _coerce_id(params[key]) for key in duplicate_keys if _coerce_id(params[key]) is not None
        ]
        return cls(kind=kind, master_id=master_id, duplicate_ids=duplicate_ids)


class SquashResult(BaseModel):
    """Duplicates actually removed by a squash, in processing order."""

    kind: RecordKind
    master_id: RecordId
    squashed: List[Any] = Field(default_factory=list, description="Removed duplicate records")
    redirects: dict[str, RecordId] = Field(
        default_factory=dict, description="Removed ID (as text) to master ID"
    )
    rewritten: int = Field(default=0, description="References repointed to the master")

    @property
    def squashed_ids(self) -> list[RecordId]:
        return [record.id for record in self.squashed]

    @property
    def titles(self) -> list[Optional[str]]:
        return [getattr(record, "title", None) for record in self.squashed]

    def message(self) -> str:
        """Operator-facing summary of the squash."""
        if not self.squashed:
            return f"No duplicate {self.kind.plural} were squashed."
        return (
            f"Squashed duplicate {self.kind.plural} {json.dumps(self.titles)} "
            f"into master {self.master_id}."
        )


def _coerce_id(value: Any) -> Optional[RecordId]:
    if value is None:
        return None
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if not text:
        return None
    return int(text) if text.lstrip("-").isdigit() else text
