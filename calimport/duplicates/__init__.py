"""Duplicate detection and squashing for stored events and venues."""

from .exceptions import (
    DuplicateError,
    RecordNotFoundError,
    SquashPrecondition,
    SquashValidationError,
    StoreError,
    UnknownMatchFieldError,
)
from .matcher import ExactAll, ExactAny, FieldList, MatchSpec, match_duplicates, parse_match_spec
from .models import (
    DuplicateGroup,
    RecordKind,
    SquashRequest,
    SquashResult,
    StoredEvent,
    StoredVenue,
)
from .squash import SquashEngine, squash
from .store import InMemoryRecordStore, RecordStore

__all__ = [
    "DuplicateError",
    "DuplicateGroup",
    "ExactAll",
    "ExactAny",
    "FieldList",
    "InMemoryRecordStore",
    "MatchSpec",
    "RecordKind",
    "RecordNotFoundError",
    "RecordStore",
    "SquashEngine",
    "SquashPrecondition",
    "SquashRequest",
    "SquashResult",
    "SquashValidationError",
    "StoreError",
    "StoredEvent",
    "StoredVenue",
    "UnknownMatchFieldError",
    "match_duplicates",
    "parse_match_spec",
    "squash",
]
