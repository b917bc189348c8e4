"""Grouping of stored records into duplicate sets.

The match specification is a closed set of variants:

* ``ExactAll``: the whole collection is one group
* ``ExactAny``: records equal on every comparable field
* ``FieldList``: records equal on the named fields

Matching is exact codepoint equality; titles differing only in case or
whitespace are not duplicates.
"""

import dataclasses
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Union

from pydantic import BaseModel

from ..config.settings import get_settings
from .exceptions import UnknownMatchFieldError
from .models import DuplicateGroup

logger = logging.getLogger(__name__)

# Bookkeeping fields that never make two records duplicates
IGNORED_FIELDS = frozenset({"id", "created_at", "updated_at"})


def record_fields(record: Any) -> tuple[str, ...]:
    """Field names of ``record`` in declaration order."""
    if isinstance(record, BaseModel):
        return tuple(type(record).model_fields)
    if dataclasses.is_dataclass(record):
        return tuple(f.name for f in dataclasses.fields(record))
    if isinstance(record, Mapping):
        return tuple(record)
    return tuple(vars(record))


def record_value(record: Any, field: str) -> Any:
    if isinstance(record, Mapping):
        if field not in record:
            raise UnknownMatchFieldError(field, type(record).__name__)
        return record[field]
    if field not in record_fields(record):
        raise UnknownMatchFieldError(field, type(record).__name__)
    return getattr(record, field)


def record_id(record: Any) -> Any:
    if isinstance(record, Mapping):
        return record.get("id")
    return getattr(record, "id", None)


def _freeze(value: Any) -> Any:
    """Make ``value`` usable inside a dict key."""
    if isinstance(value, BaseModel):
        return _freeze(value.model_dump())
    if isinstance(value, Mapping):
        return tuple(sorted((k, _freeze(v)) for k, v in value.items()))
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    if isinstance(value, (set, frozenset)):
        return tuple(sorted(_freeze(v) for v in value))
    return value


@dataclass(frozen=True)
class ExactAll:
    """Treat every record as a duplicate of every other."""

    token = "all"

    def key(self, record: Any) -> tuple:
        return ()


@dataclass(frozen=True)
class ExactAny:
    """Group records equal across all comparable fields."""

    token = "any"

    def key(self, record: Any) -> tuple:
        fields = [f for f in record_fields(record) if f not in IGNORED_FIELDS]
        return tuple(_freeze(record_value(record, f)) for f in fields)


@dataclass(frozen=True)
class FieldList:
    """Group records equal across exactly ``fields``, compared in the given order."""

    fields: tuple[str, ...]

    def __post_init__(self) -> None:
        if not self.fields:
            raise ValueError("FieldList needs at least one field")

    @property
    def token(self) -> str:
        return ",".join(self.fields)

    def key(self, record: Any) -> tuple:
        return tuple(_freeze(record_value(record, f)) for f in self.fields)


MatchSpec = Union[ExactAll, ExactAny, FieldList]


def parse_match_spec(
    value: Union[str, Sequence[str], MatchSpec, None], default: str = "title"
) -> MatchSpec:
    """Build a match spec from ``all``, ``any``, ``"title,url"`` or a list of field names.

    Args:
        value: Spec token, field names, or an existing spec
        default: Token used when ``value`` is empty

    Returns:
        The matching MatchSpec variant
    """
    if isinstance(value, (ExactAll, ExactAny, FieldList)):
        return value

    if value is None or (isinstance(value, str) and not value.strip()):
        value = default

    if isinstance(value, str):
        token = value.strip()
        if token.lower() == "all":
            return ExactAll()
        if token.lower() == "any":
            return ExactAny()
        names = token.split(",")
    else:
        names = list(value)

    fields: list[str] = []
    for name in names:
        name = name.strip()
        if name and name not in fields:
            fields.append(name)
    return FieldList(tuple(fields))


def match_duplicates(
    records: Sequence[Any], spec: Union[MatchSpec, str, Sequence[str], None] = None
) -> list[DuplicateGroup]:
    """Group ``records`` into duplicate sets.

    Groups are returned in order of their first record in ``records``, each
    listing its records in input order. Groups of one are dropped.

    Args:
        records: Records of one kind (pydantic models, dataclasses or mappings)
        spec: Match specification or its textual form; the configured
            default_match_fields when omitted

    Returns:
        Duplicate groups of two or more records

    Raises:
        UnknownMatchFieldError: If a named field does not exist on a record
    """
    spec = parse_match_spec(spec, default=get_settings().default_match_fields)
    grouped: dict[tuple, list[Any]] = {}

    for record in records:
        grouped.setdefault(spec.key(record), []).append(record)

    groups = [
        DuplicateGroup(key=key, record_ids=[record_id(r) for r in members], records=members)
        for key, members in grouped.items()
        if len(members) > 1
    ]

    logger.debug(
        f"Found {len(groups)} duplicate groups among {len(records)} records (match: {spec.token})"
    )
    return groups
