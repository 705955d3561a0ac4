"""
Tests for version expression resolution.
"""

import pytest

from mvnfetch.core.properties import (
    VersionRange,
    lookup_property,
    parse_version_range,
    resolve_version,
)


class TestResolveVersion:
    def test_literal_passes_through(self):
        assert resolve_version("4.13.2") == "4.13.2"

    def test_surrounding_whitespace_is_ignored(self):
        assert resolve_version("  1.0.0\n") == "1.0.0"

    @pytest.mark.parametrize("expr", [None, "", "   "])
    def test_empty_is_unresolved(self, expr):
        assert resolve_version(expr) is None

    def test_property_reference(self):
        assert resolve_version("${junit.version}", {"junit.version": "4.13.2"}) == "4.13.2"

    def test_nested_property_reference(self):
        properties = {"spring": {"boot": {"version": "3.1.0"}}}
        assert resolve_version("${spring.boot.version}", properties) == "3.1.0"

    def test_unknown_property_is_unresolved(self):
        assert resolve_version("${missing.version}", {"other": "1.0"}) is None
        assert resolve_version("${missing.version}") is None

    def test_property_value_is_not_range_interpreted(self):
        assert resolve_version("${v}", {"v": "[1.0,)"}) == "[1.0,)"

    def test_lower_bounded_range_selects_minimum(self):
        assert resolve_version("[1.5,)") == "1.5"

    def test_range_without_minimum_is_unresolved(self):
        assert resolve_version("[,)") is None

    @pytest.mark.parametrize("expr", ["[1.0,2.0)", "(,1.0]", "[1.5]", "(1.0,2.0)"])
    def test_other_ranges_pass_through_unchanged(self, expr):
        assert resolve_version(expr) == expr


class TestParseVersionRange:
    def test_open_upper_bound(self):
        assert parse_version_range("[2.0,)") == VersionRange(
            min="2.0", include_min=True
        )

    def test_bounded_range_is_exact(self):
        assert parse_version_range("[1.0,2.0]") == VersionRange(exact="[1.0,2.0]")


class TestLookupProperty:
    def test_dotted_key_wins_over_nesting(self):
        properties = {"a.b": "flat", "a": {"b": "nested"}}
        assert lookup_property("a.b", properties) == "flat"

    def test_intermediate_table_is_not_a_value(self):
        assert lookup_property("a", {"a": {"b": "1"}}) is None

    def test_walk_stops_at_leaf(self):
        assert lookup_property("a.b.c", {"a": {"b": "1"}}) is None
