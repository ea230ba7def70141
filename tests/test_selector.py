"""Tests for route selection: first match wins, 404 versus 405."""

from waymark.routing.route import Outcome
from waymark.routing.selector import normalize_path, select
from waymark.routing.table import RouteTable


def _handler() -> None:
    return None


def _table(*keys: str) -> RouteTable:
    return RouteTable.build([(key, _handler) for key in keys])


class TestNormalizePath:
    def test_trailing_slash(self) -> None:
        assert normalize_path("/users/") == "/users"

    def test_root_and_empty(self) -> None:
        assert normalize_path("/") == "/"
        assert normalize_path("") == "/"

    def test_colon_escape(self) -> None:
        assert normalize_path("/:users") == "/users"


class TestSelect:
    def test_match(self) -> None:
        result = select("GET", "/users/1", _table("/users/* +GET"))
        assert result.matched
        assert result.pattern == "/users/* +GET"

    def test_first_match_wins(self) -> None:
        result = select("GET", "/a/b", _table("/a/*", "/a/b"))
        assert result.pattern == "/a/*"

    def test_catch_all_shadows_later_routes(self) -> None:
        result = select("GET", "/a", _table("/**", "/a"))
        assert result.pattern == "/**"

    def test_method_is_case_insensitive(self) -> None:
        assert select("get", "/x", _table("/x +GET")).matched

    def test_trailing_slash_still_matches(self) -> None:
        assert select("GET", "/users/1/", _table("/users/*")).matched

    def test_colon_escaped_path(self) -> None:
        assert select("GET", "/:users", _table("/users")).pattern == "/users"

    def test_root(self) -> None:
        assert select("GET", "/", _table("/")).matched


class TestNoMatch:
    def test_no_path_match(self) -> None:
        result = select("GET", "/nothing", _table("/users/*"))
        assert result.outcome is Outcome.NO_PATH_MATCH
        assert result.entry is None

    def test_empty_table(self) -> None:
        assert select("GET", "/", RouteTable()).outcome is Outcome.NO_PATH_MATCH

    def test_pseudo_routes_are_never_matched(self) -> None:
        table = RouteTable.build({404: _handler, "500": _handler})
        assert select("GET", "/404", table).outcome is Outcome.NO_PATH_MATCH
        assert select("GET", "/500", table).outcome is Outcome.NO_PATH_MATCH


class TestMethodRejection:
    def test_method_rejected(self) -> None:
        result = select("POST", "/users/1", _table("/users/* +GET"))
        assert result.outcome is Outcome.METHOD_REJECTED
        assert result.allowed == frozenset({"GET"})

    def test_later_entry_can_accept(self) -> None:
        result = select("POST", "/users/1", _table("/users/* +GET", "/users/**"))
        assert result.matched
        assert result.pattern == "/users/**"

    def test_allowed_methods_are_collected(self) -> None:
        result = select("DELETE", "/a", _table("/a +GET", "/a +POST"))
        assert result.outcome is Outcome.METHOD_REJECTED
        assert result.allowed == frozenset({"GET", "POST"})

    def test_exclusion_leaves_allowed_unknown(self) -> None:
        result = select("DELETE", "/x", _table("/x -DELETE"))
        assert result.outcome is Outcome.METHOD_REJECTED
        assert result.allowed == frozenset()

    def test_exclusion_lets_other_methods_through(self) -> None:
        assert select("PUT", "/x", _table("/x -DELETE")).matched
