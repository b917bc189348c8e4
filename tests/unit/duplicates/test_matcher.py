"""Unit tests for duplicate grouping."""

from dataclasses import dataclass

import pytest

from calimport.duplicates.exceptions import UnknownMatchFieldError
from calimport.duplicates.matcher import (
    ExactAll,
    ExactAny,
    FieldList,
    match_duplicates,
    parse_match_spec,
)

from tests.fixtures.mock_ics_data import stored_event, stored_venue


@pytest.mark.unit
class TestParseMatchSpec:
    def test_all(self) -> None:
        assert parse_match_spec("all") == ExactAll()

    def test_any(self) -> None:
        assert parse_match_spec(" ANY ") == ExactAny()

    def test_field_list_from_text(self) -> None:
        assert parse_match_spec("title, url") == FieldList(("title", "url"))

    def test_field_list_from_sequence(self) -> None:
        assert parse_match_spec(["locality", "title", "locality"]) == FieldList(("locality", "title"))

    @pytest.mark.parametrize("value", [None, "", "  "])
    def test_blank_uses_default(self, value) -> None:
        assert parse_match_spec(value) == FieldList(("title",))

    def test_existing_spec_passes_through(self) -> None:
        spec = FieldList(("title",))

        assert parse_match_spec(spec) is spec

    def test_empty_field_list_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            FieldList(())

    def test_token_round_trips(self) -> None:
        assert FieldList(("title", "url")).token == "title,url"
        assert ExactAll.token == "all"


@pytest.mark.unit
class TestMatchDuplicates:
    def test_groups_by_title(self) -> None:
        venues = [
            stored_venue(1, "Main Hall"),
            stored_venue(2, "Side Room"),
            stored_venue(3, "Main Hall"),
        ]

        groups = match_duplicates(venues, "title")

        assert len(groups) == 1
        assert groups[0].record_ids == [1, 3]
        assert groups[0].key == ("Main Hall",)
        assert len(groups[0]) == 2

    def test_singletons_are_dropped(self) -> None:
        venues = [stored_venue(1, "A"), stored_venue(2, "B")]

        assert match_duplicates(venues, "title") == []

    def test_group_order_follows_first_member(self) -> None:
        venues = [
            stored_venue(1, "B"),
            stored_venue(2, "A"),
            stored_venue(3, "A"),
            stored_venue(4, "B"),
        ]

        groups = match_duplicates(venues, "title")

        assert [g.record_ids for g in groups] == [[1, 4], [2, 3]]

    def test_every_record_appears_at_most_once(self) -> None:
        venues = [stored_venue(i, "AB"[i % 2], locality="X") for i in range(1, 9)]

        groups = match_duplicates(venues, "title,locality")
        ids = [record_id for g in groups for record_id in g.record_ids]

        assert sorted(ids) == list(range(1, 9))
        assert len(ids) == len(set(ids))

    def test_matching_is_exact(self) -> None:
        venues = [
            stored_venue(1, "Main Hall"),
            stored_venue(2, "main hall"),
            stored_venue(3, "Main Hall "),
        ]

        assert match_duplicates(venues, "title") == []

    def test_multiple_fields_must_all_match(self) -> None:
        venues = [
            stored_venue(1, "Main Hall", locality="Portland"),
            stored_venue(2, "Main Hall", locality="Salem"),
            stored_venue(3, "Main Hall", locality="Portland"),
        ]

        groups = match_duplicates(venues, FieldList(("title", "locality")))

        assert [g.record_ids for g in groups] == [[1, 3]]

    def test_none_values_match_each_other(self) -> None:
        venues = [stored_venue(1, None), stored_venue(2, None)]

        assert match_duplicates(venues, "title")[0].record_ids == [1, 2]

    def test_all_puts_everything_in_one_group(self) -> None:
        events = [stored_event(1, "A"), stored_event(2, "B"), stored_event(3, "C")]

        groups = match_duplicates(events, ExactAll())

        assert [g.record_ids for g in groups] == [[1, 2, 3]]

    def test_all_with_single_record(self) -> None:
        assert match_duplicates([stored_event(1)], "all") == []

    def test_any_ignores_bookkeeping_fields(self) -> None:
        events = [stored_event(1, "Gig", venue_id=5), stored_event(2, "Gig", venue_id=5)]

        groups = match_duplicates(events, "any")

        assert [g.record_ids for g in groups] == [[1, 2]]

    def test_any_requires_every_other_field(self) -> None:
        events = [stored_event(1, "Gig", venue_id=5), stored_event(2, "Gig", venue_id=6)]

        assert match_duplicates(events, "any") == []

    def test_unknown_field_raises(self) -> None:
        with pytest.raises(UnknownMatchFieldError) as exc_info:
            match_duplicates([stored_venue(1), stored_venue(2)], "colour")

        assert exc_info.value.field == "colour"

    @pytest.mark.parametrize("spec", ["title", "any", "all"])
    def test_rerun_gives_identical_groups(self, spec: str) -> None:
        venues = [
            stored_venue(1, "B"),
            stored_venue(2, "A"),
            stored_venue(3, "A"),
            stored_venue(4, "B"),
            stored_venue(5, "C"),
        ]

        first = match_duplicates(venues, spec)
        second = match_duplicates(venues, spec)

        assert first
        assert [(g.key, g.record_ids) for g in second] == [(g.key, g.record_ids) for g in first]

    def test_empty_collection(self) -> None:
        assert match_duplicates([], "title") == []

    def test_mappings_are_supported(self) -> None:
        records = [{"id": 1, "title": "X"}, {"id": 2, "title": "X"}]

        assert match_duplicates(records, "title")[0].record_ids == [1, 2]

    def test_dataclasses_are_supported(self) -> None:
        @dataclass
        class Place:
            id: int
            title: str
            tags: list

        records = [Place(1, "X", ["a"]), Place(2, "X", ["a"]), Place(3, "X", ["b"])]

        groups = match_duplicates(records, "any")

        assert [g.record_ids for g in groups] == [[1, 2]]

    def test_default_spec_comes_from_settings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        from calimport.config.settings import reset_settings

        monkeypatch.setenv("CALIMPORT_DEFAULT_MATCH_FIELDS", "locality")
        reset_settings()
        venues = [
            stored_venue(1, "A", locality="Portland"),
            stored_venue(2, "B", locality="Portland"),
        ]

        assert match_duplicates(venues)[0].record_ids == [1, 2]
