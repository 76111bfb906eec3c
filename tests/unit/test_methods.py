"""
Unit tests for MethodRegistry.
"""

from routekit.routing import MethodRegistry


class TestNormalize:
    """Tests for method list normalization."""

    def test_string(self):
        assert MethodRegistry.normalize("get") == ("GET", "HEAD")

    def test_list_order_and_dedup(self):
        assert MethodRegistry.normalize(["post", "GET", "Post"]) == ("POST", "GET", "HEAD")

    def test_head_not_duplicated(self):
        assert MethodRegistry.normalize(["HEAD", "GET"]) == ("HEAD", "GET")

    def test_blank_entries_dropped(self):
        assert MethodRegistry.normalize(["", " put "]) == ("PUT", "HEAD")


class TestRegistry:
    """Tests for recording declared methods."""

    def test_empty(self):
        registry = MethodRegistry()
        assert len(registry) == 0
        assert "GET" not in registry

    def test_record_returns_normalized(self):
        registry = MethodRegistry()
        assert registry.record(["put", "patch"]) == ("PUT", "PATCH", "HEAD")

    def test_union_of_records(self):
        registry = MethodRegistry()
        registry.record("GET")
        registry.record(["POST", "GET"])

        assert list(registry) == ["GET", "HEAD", "POST"]
        assert len(registry) == 3

    def test_contains_case_insensitive(self):
        registry = MethodRegistry()
        registry.record("delete")

        assert "DELETE" in registry
        assert registry.contains("delete")
        assert "HEAD" in registry
        assert "GET" not in registry

    def test_repr(self):
        registry = MethodRegistry()
        registry.record("GET")
        assert repr(registry) == "MethodRegistry(['GET', 'HEAD'])"
