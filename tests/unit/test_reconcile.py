"""Unit tests for cross-account case reconciliation."""

import itertools

import pytest

from conftest import make_catalog
from trailer.errors import DuplicateMismatchError, DuplicateSectionError, UnknownSectionError
from trailer.models import Catalog, Section
from trailer.reconcile.engine import keyed_cases, natural_key, reconcile, section_names


class TestNaturalKey:
    def test_section_and_title_joined_with_underscore(self):
        assert natural_key("Login", "Valid password") == "Login_Valid password"

    def test_keyed_cases_resolves_section_names(self):
        catalog = make_catalog("source", {1: "A"}, [(1, 1, "X"), (2, 1, "Y")])
        assert [(c.id, key) for c, key in keyed_cases(catalog)] == [(1, "A_X"), (2, "A_Y")]

    def test_unknown_section_raises(self):
        catalog = make_catalog("source", {1: "A"}, [(1, 7, "X")])
        with pytest.raises(UnknownSectionError) as exc:
            list(keyed_cases(catalog))
        assert exc.value.section_id == 7
        assert exc.value.case_id == 1

    def test_duplicate_section_id_raises(self):
        catalog = Catalog(name="target", sections=(Section(1, "A"), Section(1, "B")))
        with pytest.raises(DuplicateSectionError):
            section_names(catalog)


class TestDirectMatches:
    """Keys present once on each side."""

    def test_end_to_end_simple_mapping(self):
        source = make_catalog("source", {1: "A"}, [(1, 1, "X"), (2, 1, "Y")])
        target = make_catalog("target", {9: "A"}, [(10, 9, "X"), (11, 9, "Y")])

        assert reconcile(source, target) == {1: 10, 2: 11}

    def test_every_pair_shares_natural_key(self):
        source = make_catalog(
            "source", {1: "Login", 2: "Logout"},
            [(1, 1, "ok"), (2, 1, "bad"), (3, 2, "ok"), (4, 2, "timeout")],
        )
        target = make_catalog(
            "target", {7: "Logout", 8: "Login"},
            [(30, 7, "timeout"), (31, 8, "bad"), (32, 7, "ok"), (33, 8, "ok")],
        )
        source_keys = {c.id: key for c, key in keyed_cases(source)}
        target_keys = {c.id: key for c, key in keyed_cases(target)}

        mapping = reconcile(source, target)

        assert len(mapping) == 4
        assert len(set(mapping.values())) == len(mapping)
        for source_id, target_id in mapping.items():
            assert source_keys[source_id] == target_keys[target_id]

    def test_same_title_in_different_sections_is_distinct(self):
        source = make_catalog("source", {1: "A", 2: "B"}, [(1, 1, "X"), (2, 2, "X")])
        target = make_catalog("target", {3: "A", 4: "B"}, [(20, 4, "X"), (10, 3, "X")])

        assert reconcile(source, target) == {1: 10, 2: 20}

    def test_unmatched_cases_are_absent(self):
        source = make_catalog("source", {1: "A"}, [(1, 1, "X"), (2, 1, "Deleted")])
        target = make_catalog("target", {9: "A"}, [(10, 9, "X"), (11, 9, "New")])

        mapping = reconcile(source, target)

        assert mapping == {1: 10}
        assert 2 not in mapping
        assert 0 not in mapping

    def test_empty_catalogs(self):
        assert reconcile(Catalog(name="source"), Catalog(name="target")) == {}

    def test_repeated_target_key_keeps_later_case(self):
        source = make_catalog("source", {1: "A"}, [(1, 1, "X")])
        target = make_catalog("target", {9: "A"}, [(10, 9, "X"), (11, 9, "X")])

        assert reconcile(source, target) == {1: 11}

    def test_unknown_section_in_target_raises(self):
        source = make_catalog("source", {1: "A"}, [(1, 1, "X")])
        target = make_catalog("target", {9: "A"}, [(10, 8, "X")])

        with pytest.raises(UnknownSectionError) as exc:
            reconcile(source, target)
        assert exc.value.catalog == "target"


class TestDuplicateResolution:
    """Keys duplicated in the source catalog are paired by ID order."""

    @pytest.mark.parametrize("source_order", list(itertools.permutations([(3, 1, "X"), (7, 1, "X")])))
    @pytest.mark.parametrize("target_order", list(itertools.permutations([(20, 9, "X"), (21, 9, "X")])))
    def test_lower_maps_to_lower_regardless_of_order(self, source_order, target_order):
        source = make_catalog("source", {1: "A"}, list(source_order))
        target = make_catalog("target", {9: "A"}, list(target_order))

        assert reconcile(source, target) == {3: 20, 7: 21}

    def test_duplicates_alongside_direct_matches(self, source_catalog, target_catalog):
        mapping = reconcile(source_catalog, target_catalog)

        assert mapping == {101: 2002, 105: 2003, 102: 2001, 103: 2004}

    @pytest.mark.parametrize(
        "source_ids, target_ids",
        [
            ([1, 2], [10, 11, 12]),
            ([1, 2, 3], [10, 11]),
            ([1, 2], [10]),
            ([1, 2], []),
        ],
    )
    def test_size_mismatch_raises(self, source_ids, target_ids):
        source = make_catalog("source", {1: "A"}, [(i, 1, "X") for i in source_ids])
        target = make_catalog("target", {9: "A"}, [(i, 9, "X") for i in target_ids])

        with pytest.raises(DuplicateMismatchError) as exc:
            reconcile(source, target)
        assert exc.value.key == "A_X"
        assert exc.value.source_ids == source_ids
        assert exc.value.target_ids == target_ids

    def test_source_group_starts_with_first_occurrence(self):
        source = make_catalog("source", {1: "A"}, [(9, 1, "X"), (4, 1, "X"), (6, 1, "X")])
        target = make_catalog("target", {9: "A"}, [(10, 9, "X"), (11, 9, "X")])

        with pytest.raises(DuplicateMismatchError) as exc:
            reconcile(source, target)
        assert exc.value.source_ids == [9, 4, 6]


class TestOverrides:
    def test_overrides_replace_automatic_entries(self):
        source = make_catalog("source", {1: "A"}, [(1, 1, "X"), (2, 1, "Y")])
        target = make_catalog("target", {9: "A"}, [(10, 9, "X"), (11, 9, "Y")])

        mapping = reconcile(source, target, overrides={1: 99, 61947: 4875610})

        assert mapping == {1: 99, 2: 11, 61947: 4875610}

    def test_overrides_win_over_duplicate_pairing(self):
        source = make_catalog("source", {1: "A"}, [(3, 1, "X"), (7, 1, "X")])
        target = make_catalog("target", {9: "A"}, [(20, 9, "X"), (21, 9, "X")])

        mapping = reconcile(source, target, overrides={3: 21, 7: 20})

        assert mapping == {3: 21, 7: 20}
