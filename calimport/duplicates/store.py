"""Storage collaborator contract and an in-memory implementation."""

import logging
from datetime import datetime, timezone
from itertools import count
from typing import Any, Optional, Protocol

from ..ics.models import AbstractEvent, AbstractLocation
from .exceptions import StoreError
from .models import RecordId, RecordKind, StoredEvent, StoredVenue

logger = logging.getLogger(__name__)


class RecordStore(Protocol):
    """Persistence operations the import pipeline and squash engine rely on."""

    def find_by_id(self, kind: RecordKind, record_id: RecordId) -> Optional[Any]:
        """Return the record, or None if it does not exist."""
        ...

    def rewrite_references(self, kind: RecordKind, old_id: RecordId, new_id: RecordId) -> int:
        """Repoint every record referencing ``old_id`` to ``new_id``.

        Returns:
            Number of references rewritten

        Raises:
            StoreError: If the references cannot be rewritten. Implementations
                raise nothing else; other errors abort a squash batch.
        """
        ...

    def delete(self, kind: RecordKind, record_id: RecordId) -> None:
        """Remove a record.

        Raises:
            StoreError: If the record cannot be removed. Implementations
                raise nothing else; other errors abort a squash batch.
        """
        ...

    def persist(self, event: AbstractEvent) -> RecordId:
        """Store an imported event (and its venue) and return the new event ID."""
        ...


# Which (kind, field) pairs hold a reference to a record of a given kind
REFERENCES: dict[RecordKind, tuple[tuple[RecordKind, str], ...]] = {
    RecordKind.VENUE: ((RecordKind.EVENT, "venue_id"),),
    RecordKind.EVENT: (),
}


class InMemoryRecordStore:
    """Dictionary-backed RecordStore.

    Imported locations always become new venues, which is how repeated
    imports of overlapping feeds accumulate duplicate venues.
    """

    def __init__(self) -> None:
        self._records: dict[RecordKind, dict[RecordId, Any]] = {kind: {} for kind in RecordKind}
        self._ids = count(1)

    def add(self, kind: RecordKind, record: Any) -> Any:
        """Insert or replace a record under its own ID."""
        self._records[kind][record.id] = record
        return record

    def all(self, kind: RecordKind) -> list[Any]:
        """All records of ``kind`` in insertion order."""
        return list(self._records[kind].values())

    def find_by_id(self, kind: RecordKind, record_id: RecordId) -> Optional[Any]:
        return self._records[kind].get(record_id)

    def rewrite_references(self, kind: RecordKind, old_id: RecordId, new_id: RecordId) -> int:
        rewritten = 0
        for referencing_kind, field in REFERENCES[kind]:
            for record_id, record in list(self._records[referencing_kind].items()):
                if getattr(record, field) == old_id:
                    self._records[referencing_kind][record_id] = record.model_copy(
                        update={field: new_id, "updated_at": _now()}
                    )
                    rewritten += 1
        logger.debug(f"Rewrote {rewritten} references from {kind.value} {old_id} to {new_id}")
        return rewritten

    def delete(self, kind: RecordKind, record_id: RecordId) -> None:
        try:
            del self._records[kind][record_id]
        except KeyError as e:
            raise StoreError(f"No {kind.value} with id {record_id}") from e

    def persist(self, event: AbstractEvent) -> RecordId:
        venue_id = self._persist_venue(event.location) if event.location else None
        stored = StoredEvent(
            id=next(self._ids),
            title=event.title,
            description=event.description,
            url=event.url,
            start_time=event.start_time,
            end_time=event.end_time,
            venue_id=venue_id,
            created_at=_now(),
        )
        self.add(RecordKind.EVENT, stored)
        return stored.id

    def _persist_venue(self, location: AbstractLocation) -> RecordId:
        venue = StoredVenue(id=next(self._ids), created_at=_now(), **location.model_dump())
        self.add(RecordKind.VENUE, venue)
        return venue.id


def _now() -> datetime:
    return datetime.now(timezone.utc)
