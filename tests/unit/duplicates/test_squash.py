"""Unit tests for squashing duplicates into a master record."""

import logging
from unittest.mock import MagicMock

import pytest

from calimport.duplicates.exceptions import SquashPrecondition, SquashValidationError, StoreError
from calimport.duplicates.matcher import match_duplicates
from calimport.duplicates.models import RecordKind, SquashRequest
from calimport.duplicates.squash import SquashEngine, squash
from calimport.duplicates.store import InMemoryRecordStore

from tests.fixtures.mock_ics_data import stored_event, stored_venue


@pytest.fixture
def store() -> InMemoryRecordStore:
    """Venue 1 is the master; 2 and 3 are its duplicates with events attached."""
    store = InMemoryRecordStore()
    for venue_id, title in ((1, "Main Hall"), (2, "Main Hall"), (3, "Main Hall"), (4, "Annex")):
        store.add(RecordKind.VENUE, stored_venue(venue_id, title))
    store.add(RecordKind.EVENT, stored_event(10, "Gig", venue_id=2))
    store.add(RecordKind.EVENT, stored_event(11, "Talk", venue_id=3))
    store.add(RecordKind.EVENT, stored_event(12, "Play", venue_id=4))
    return store


def venue_request(master_id, duplicate_ids) -> SquashRequest:
    return SquashRequest(kind=RecordKind.VENUE, master_id=master_id, duplicate_ids=duplicate_ids)


@pytest.mark.unit
class TestSquashValidation:
    def test_missing_master(self, store: InMemoryRecordStore) -> None:
        with pytest.raises(SquashValidationError) as exc_info:
            squash(venue_request(None, [2]), store)

        assert exc_info.value.precondition == SquashPrecondition.MASTER_EXISTS
        assert str(exc_info.value) == "A master venue must be selected."

    def test_unknown_master(self, store: InMemoryRecordStore) -> None:
        with pytest.raises(SquashValidationError) as exc_info:
            squash(venue_request(99, [2]), store)

        assert exc_info.value.precondition == SquashPrecondition.MASTER_EXISTS

    def test_no_duplicates(self, store: InMemoryRecordStore) -> None:
        with pytest.raises(SquashValidationError) as exc_info:
            squash(venue_request(1, []), store)

        assert exc_info.value.precondition == SquashPrecondition.DUPLICATES_GIVEN
        assert str(exc_info.value) == "At least one duplicate venue must be selected."

    def test_master_among_duplicates(self, store: InMemoryRecordStore) -> None:
        with pytest.raises(SquashValidationError) as exc_info:
            squash(venue_request(1, [2, 1]), store)

        assert exc_info.value.precondition == SquashPrecondition.MASTER_NOT_DUPLICATE
        assert str(exc_info.value) == "The master venue could not be squashed into itself."

    def test_master_checked_before_duplicates(self, store: InMemoryRecordStore) -> None:
        with pytest.raises(SquashValidationError) as exc_info:
            squash(venue_request(None, []), store)

        assert exc_info.value.precondition == SquashPrecondition.MASTER_EXISTS

    def test_failed_validation_changes_nothing(self) -> None:
        mock_store = MagicMock()
        mock_store.find_by_id.return_value = stored_venue(1)

        with pytest.raises(SquashValidationError):
            SquashEngine(mock_store).squash(venue_request(1, [1, 2]))

        mock_store.rewrite_references.assert_not_called()
        mock_store.delete.assert_not_called()


@pytest.mark.unit
class TestSquash:
    def test_squash_repoints_and_deletes(self, store: InMemoryRecordStore) -> None:
        result = squash(venue_request(1, [2, 3]), store)

        assert result.squashed_ids == [2, 3]
        assert result.rewritten == 2
        assert result.redirects == {"2": 1, "3": 1}
        assert store.find_by_id(RecordKind.VENUE, 2) is None
        assert store.find_by_id(RecordKind.VENUE, 3) is None
        assert store.find_by_id(RecordKind.VENUE, 1) is not None
        assert [e.venue_id for e in store.all(RecordKind.EVENT)] == [1, 1, 4]

    def test_squash_keeps_request_order(self, store: InMemoryRecordStore) -> None:
        result = squash(venue_request(1, [3, 2]), store)

        assert result.squashed_ids == [3, 2]

    def test_unresolvable_duplicate_is_skipped(self, store: InMemoryRecordStore) -> None:
        result = squash(venue_request(1, [2, 99, 3]), store)

        assert result.squashed_ids == [2, 3]
        assert "99" not in result.redirects

    def test_squash_again_is_a_no_op(self, store: InMemoryRecordStore) -> None:
        squash(venue_request(1, [2, 3]), store)
        events_before = store.all(RecordKind.EVENT)

        result = squash(venue_request(1, [2, 3]), store)

        assert result.squashed == []
        assert store.all(RecordKind.EVENT) == events_before
        assert result.message() == "No duplicate venues were squashed."

    def test_store_failure_skips_that_duplicate(self) -> None:
        mock_store = MagicMock()
        mock_store.find_by_id.side_effect = lambda kind, record_id: stored_venue(record_id)
        mock_store.rewrite_references.return_value = 0
        mock_store.delete.side_effect = [StoreError("locked"), None]

        result = SquashEngine(mock_store).squash(venue_request(1, [2, 3]))

        assert result.squashed_ids == [3]

    def test_delete_failure_after_rewrite_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        mock_store = MagicMock()
        mock_store.find_by_id.side_effect = lambda kind, record_id: stored_venue(record_id)
        mock_store.rewrite_references.return_value = 4
        mock_store.delete.side_effect = StoreError("locked")

        with caplog.at_level(logging.ERROR, logger="calimport.duplicates.squash"):
            result = SquashEngine(mock_store).squash(venue_request(1, [2]))

        assert result.squashed == []
        assert result.redirects == {}
        assert any(
            "4 references were repointed to 1" in r.getMessage() for r in caplog.records
        )

    def test_unexpected_store_error_propagates(self, caplog: pytest.LogCaptureFixture) -> None:
        mock_store = MagicMock()
        mock_store.find_by_id.side_effect = lambda kind, record_id: stored_venue(record_id)
        mock_store.rewrite_references.return_value = 0
        mock_store.delete.side_effect = [None, RuntimeError("connection lost")]

        with caplog.at_level(logging.ERROR, logger="calimport.duplicates.squash"):
            with pytest.raises(RuntimeError):
                SquashEngine(mock_store).squash(venue_request(1, [2, 3]))

        assert any("already squashed: [2]" in r.getMessage() for r in caplog.records)

    def test_squash_events(self, store: InMemoryRecordStore) -> None:
        store.add(RecordKind.EVENT, stored_event(13, "Gig", venue_id=2))
        request = SquashRequest(kind=RecordKind.EVENT, master_id=10, duplicate_ids=[13])

        result = squash(request, store)

        assert result.squashed_ids == [13]
        assert result.rewritten == 0
        assert result.message() == 'Squashed duplicate events ["Gig"] into master 10.'

    def test_detect_then_squash(self, store: InMemoryRecordStore) -> None:
        group = match_duplicates(store.all(RecordKind.VENUE), "title")[0]
        master_id, *duplicate_ids = group.record_ids

        squash(venue_request(master_id, duplicate_ids), store)

        assert match_duplicates(store.all(RecordKind.VENUE), "title") == []
        assert {e.venue_id for e in store.all(RecordKind.EVENT)} == {1, 4}
