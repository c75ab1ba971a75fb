"""
DocGate — Query Builder Unit Tests
===================================

What:  Tests for build_query(): query string mapping → (filter, options).

What we test:
    ✅ Defaults (limit 100, skip 0, newest first)
    ✅ _limit clamping and fallback
    ✅ _skip / _offset
    ✅ _sort direction
    ✅ _search → $text
    ✅ _gte/_lte merging, _ne replacing
    ✅ Equality filters keep raw strings
    ✅ Unknown underscore keys are ignored
"""

import pytest
from pymongo import ASCENDING, DESCENDING

from docgate.services.query_builder import QueryOptions, build_query, parse_int


class TestDefaults:
    def test_empty_params(self):
        query, options = build_query({})
        assert query == {}
        assert options == QueryOptions(limit=100, skip=0, sort={"createdAt": DESCENDING})

    def test_options_are_not_shared_between_calls(self):
        _, first = build_query({"_sort": "name"})
        _, second = build_query({})
        assert first.sort == {"name": ASCENDING}
        assert second.sort == {"createdAt": DESCENDING}


class TestParseInt:
    @pytest.mark.parametrize(
        "raw, expected",
        [("10", 10), ("  7", 7), ("12abc", 12), ("-5", -5), ("+3", 3), ("1.9", 1)],
    )
    def test_integer_prefix(self, raw, expected):
        assert parse_int(raw) == expected

    @pytest.mark.parametrize("raw", ["", "abc", "-", "x12"])
    def test_not_a_number(self, raw):
        assert parse_int(raw) is None


class TestLimit:
    def test_limit_within_range(self):
        _, options = build_query({"_limit": "25"})
        assert options.limit == 25

    def test_limit_clamped_to_max(self):
        _, options = build_query({"_limit": "5000"})
        assert options.limit == 1000

    @pytest.mark.parametrize("raw", ["0", "abc", ""])
    def test_zero_or_non_numeric_uses_default(self, raw):
        _, options = build_query({"_limit": raw})
        assert options.limit == 100

    def test_negative_limit_clamped_to_one(self):
        _, options = build_query({"_limit": "-5"})
        assert options.limit == 1


class TestSkip:
    @pytest.mark.parametrize("key", ["_skip", "_offset"])
    def test_skip_aliases(self, key):
        _, options = build_query({key: "40"})
        assert options.skip == 40

    def test_negative_skip_becomes_zero(self):
        _, options = build_query({"_skip": "-10"})
        assert options.skip == 0

    def test_non_numeric_skip_becomes_zero(self):
        _, options = build_query({"_offset": "lots"})
        assert options.skip == 0


class TestSort:
    def test_descending(self):
        _, options = build_query({"_sort": "-price"})
        assert options.sort == {"price": DESCENDING}

    def test_ascending(self):
        _, options = build_query({"_sort": "price"})
        assert options.sort == {"price": ASCENDING}

    def test_empty_field_keeps_default(self):
        _, options = build_query({"_sort": "-"})
        assert options.sort == {"createdAt": DESCENDING}


class TestFilters:
    def test_search(self):
        query, _ = build_query({"_search": "red shoes"})
        assert query == {"$text": {"$search": "red shoes"}}

    def test_exact_match_keeps_string(self):
        query, _ = build_query({"status": "open", "age": "30"})
        assert query == {"status": "open", "age": "30"}

    def test_range_bounds_merge(self):
        query, _ = build_query({"price_gte": "10", "price_lte": "20"})
        assert query == {"price": {"$gte": "10", "$lte": "20"}}

    def test_not_equal(self):
        query, _ = build_query({"status_ne": "closed"})
        assert query == {"status": {"$ne": "closed"}}

    def test_not_equal_replaces_range(self):
        query, _ = build_query({"price_gte": "10", "price_ne": "15"})
        assert query == {"price": {"$ne": "15"}}

    def test_range_after_not_equal_merges_into_it(self):
        query, _ = build_query({"price_ne": "15", "price_lte": "20"})
        assert query == {"price": {"$ne": "15", "$lte": "20"}}

    def test_range_replaces_equality_on_same_field(self):
        query, _ = build_query({"price": "5", "price_gte": "3"})
        assert query == {"price": {"$gte": "3"}}

    def test_unknown_underscore_keys_ignored(self):
        query, options = build_query({"_page": "2", "_fields": "a,b"})
        assert query == {}
        assert options == QueryOptions()

    def test_suffix_without_field_ignored(self):
        query, _ = build_query({"_gte": "1", "_ne": "x"})
        assert query == {}

    def test_combined(self):
        query, options = build_query(
            {
                "category": "books",
                "price_gte": "5",
                "_search": "python",
                "_sort": "-price",
                "_limit": "10",
                "_skip": "20",
            }
        )
        assert query == {
            "category": "books",
            "price": {"$gte": "5"},
            "$text": {"$search": "python"},
        }
        assert options == QueryOptions(limit=10, skip=20, sort={"price": DESCENDING})
