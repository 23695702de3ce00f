"""Tests for CacheScope."""

import pytest

from marketo.cache.scope import CacheScope


class TestCacheScope:
    def test_prefix_joins_components(self):
        assert CacheScope.of("scenario-1", "requestor-1").prefix == "scenario-1:requestor-1"

    def test_from_id_map(self):
        scope = CacheScope.from_id_map({"scenarioId": "s1", "requestorId": "r1", "other": "x"})
        assert scope.components == ("s1", "r1")

    def test_from_id_map_missing_component_raises(self):
        with pytest.raises(ValueError, match="requestorId"):
            CacheScope.from_id_map({"scenarioId": "s1"})

    def test_needs_two_components(self):
        with pytest.raises(ValueError, match="at least two"):
            CacheScope.of("only-one")

    def test_rejects_empty_component(self):
        with pytest.raises(ValueError):
            CacheScope.of("s1", "")

    @pytest.mark.parametrize(
        "left, right",
        [
            (("ab", "c"), ("a", "bc")),
            (("a:b", "c"), ("a", "b:c")),
            (("a\\", ":b"), ("a\\:", "b")),
            (("a", "b", "c"), ("a:b", "c")),
        ],
    )
    def test_distinct_tuples_never_share_a_prefix(self, left, right):
        assert CacheScope.of(*left).prefix != CacheScope.of(*right).prefix

    def test_equal_tuples_are_equal_scopes(self):
        assert CacheScope.of("s1", "r1") == CacheScope(("s1", "r1"))
