"""Exception hierarchy for duplicate detection and squashing.

Only ``SquashValidationError`` and ``UnknownMatchFieldError`` reach callers;
``RecordNotFoundError`` marks a single duplicate that is skipped inside a
squash batch.
"""

from enum import Enum
from typing import Any, Optional


class DuplicateError(Exception):
    """Base exception for duplicate handling errors."""


class SquashPrecondition(str, Enum):
    """Squash request checks, in the order they are applied."""

    MASTER_EXISTS = "master_exists"
    DUPLICATES_GIVEN = "duplicates_given"
    MASTER_NOT_DUPLICATE = "master_not_duplicate"


class SquashValidationError(DuplicateError):
    """A squash request failed validation; nothing was changed.

    Raised when:
    - The master identifier does not resolve to a record
    - No duplicate identifiers were given
    - The master is listed among its own duplicates
    """

    def __init__(self, message: str, precondition: SquashPrecondition):
        super().__init__(message)
        self.message = message
        self.precondition = precondition


class UnknownMatchFieldError(DuplicateError):
    """A match specification names a field the records do not have."""

    def __init__(self, field: str, record_type: Optional[str] = None):
        where = f" on {record_type}" if record_type else ""
        super().__init__(f"Unknown duplicate matching field{where}: {field}")
        self.field = field


class RecordNotFoundError(DuplicateError):
    """An identifier in a squash batch does not resolve to a record."""

    def __init__(self, kind: Any, record_id: Any):
        super().__init__(f"No {kind} with id {record_id}")
        self.kind = kind
        self.record_id = record_id


class StoreError(DuplicateError):
    """The storage collaborator failed to rewrite or delete a record."""
