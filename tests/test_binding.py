"""Tests for the binder: option chains, segments, splices and request lookups."""

import pytest

from waymark.diagnostics import DiagnosticKind, DiagnosticLog
from waymark.http.request import Request
from waymark.routing.binding import Binder, segment, segments_from, split_options
from waymark.routing.route import RouteSpec


def _handler() -> None:
    return None


class TestSplitOptions:
    def test_pipes(self) -> None:
        assert split_options("$1|default") == ["$1", "default"]

    def test_quoted_pipe_is_kept(self) -> None:
        assert split_options("'a|b'|c") == ["'a|b'", "c"]

    def test_single_option(self) -> None:
        assert split_options("index") == ["index"]


class TestSegments:
    @pytest.mark.parametrize(
        ("index", "expected"),
        [(1, "a"), (3, "c"), (4, None), (0, "c"), (-1, "b"), (-2, "a"), (-3, None)],
    )
    def test_segment(self, index: int, expected: str | None) -> None:
        assert segment(["a", "b", "c"], index) == expected

    def test_segments_from(self) -> None:
        assert segments_from(["a", "b", "c", "d"], 3) == ["c", "d"]
        assert segments_from(["a", "b"], 5) == []
        assert segments_from(["a", "b", "c"], 0) == ["c"]


class TestOptionChains:
    def test_defaults_when_segments_are_missing(self) -> None:
        bound = Binder().bind({"controller": "$1|default", "action": "$2|index"}, [])
        assert bound == {"controller": "default", "action": "index"}

    def test_segments_win_over_defaults(self) -> None:
        bound = Binder().bind({"controller": "$1|default", "action": "$2|index"}, ["user", "list"])
        assert bound == {"controller": "user", "action": "list"}

    def test_all_options_fail(self) -> None:
        assert Binder().bind("$4", ["a"]) is None

    def test_literal(self) -> None:
        assert Binder().bind("index", ["a"]) == "index"

    def test_quoted_literal(self) -> None:
        assert Binder().bind("'a|b'|c", []) == "a|b"

    def test_lowercase_dollar_word_is_literal(self) -> None:
        assert Binder().bind("$lower", []) == "$lower"

    def test_non_string_values_pass_through(self) -> None:
        bound = Binder().bind({"n": 5, "fn": _handler}, [])
        assert bound == {"n": 5, "fn": _handler}

    def test_none_fields_are_dropped(self) -> None:
        assert Binder().bind({"a": None, "b": "x"}, []) == {"b": "x"}

    def test_nested_mapping(self) -> None:
        assert Binder().bind({"sub": {"id": "$1"}}, ["7"]) == {"sub": {"id": "7"}}

    def test_tuple_stays_tuple(self) -> None:
        assert Binder().bind(("$1", "x"), ["a"]) == ("a", "x")


class TestGroups:
    def test_concatenation(self) -> None:
        assert Binder().bind("~$1~-~$2~", ["a", "b"]) == "a-b"

    def test_missing_piece_is_skipped(self) -> None:
        assert Binder().bind("~$1~-~$3~", ["a", "b"]) == "a-"

    def test_empty_group_falls_through(self) -> None:
        assert Binder().bind("~$5~|fallback", ["a"]) == "fallback"


class TestSplice:
    def test_splice_in_list(self) -> None:
        bound = Binder().bind({"args": ["$3+"]}, ["a", "b", "c", "d"])
        assert bound == {"args": ["c", "d"]}

    def test_splice_shifts_following_values(self) -> None:
        bound = Binder().bind(["$1", "$3...", "x"], ["a", "b", "c", "d"])
        assert bound == ["a", "c", "d", "x"]

    def test_splice_past_the_end_is_empty(self) -> None:
        assert Binder().bind(["$5+", "x"], ["a"]) == ["x"]

    def test_splice_in_named_field_is_reported(self) -> None:
        log = DiagnosticLog()
        bound = Binder(sink=log).bind({"id": "$2..."}, ["a", "b", "c"], "/x/**")
        assert bound == {"id": None}
        [diagnostic] = log.of_kind(DiagnosticKind.BINDING)
        assert diagnostic.route == "/x/**"


class TestLookups:
    def test_query(self) -> None:
        binder = Binder(lookups={"GET": {"page": "2"}})
        assert binder.bind("$_GET[page]|1", []) == "2"
        assert binder.bind("$_GET[size]|10", []) == "10"

    def test_lookup_name_is_case_insensitive(self) -> None:
        assert Binder(lookups={"get": {"page": "2"}}).bind("$_get[page]", []) == "2"

    def test_empty_value_falls_through(self) -> None:
        assert Binder(lookups={"POST": {"name": ""}}).bind("$_POST[name]|anon", []) == "anon"

    def test_env(self) -> None:
        binder = Binder(lookups={"ENV": {"APP_MODE": "test"}})
        assert binder.bind("$_ENV[APP_MODE]", []) == "test"

    def test_server_variable(self) -> None:
        binder = Binder(server={"HTTP_HOST": "example.com"})
        assert binder.bind("$HTTP_HOST", []) == "example.com"
        assert binder.bind("$HTTP_X_MISSING|none", []) == "none"


class TestForRequest:
    def test_reads_request_data(self) -> None:
        request = Request.build(
            "GET",
            "/x?page=3",
            headers={"host": "example.com", "cookie": "sid=abc"},
        )
        binder = Binder.for_request(request)
        assert binder.bind("$_GET[page]", []) == "3"
        assert binder.bind("$_COOKIE[sid]", []) == "abc"
        assert binder.bind("$HTTP_HOST", []) == "example.com"
        assert binder.bind("$REQUEST_METHOD", []) == "GET"

    def test_reads_form(self) -> None:
        request = Request.build("POST", "/x", form={"name": "ada"})
        assert Binder.for_request(request).bind("$_POST[name]", []) == "ada"

    def test_without_request(self) -> None:
        assert Binder.for_request(None).bind("$_GET[page]|1", []) == "1"

    def test_bind_spec(self) -> None:
        spec = RouteSpec({"controller": "user", "id": "$2"})
        route = Binder().bind_spec(spec, ["users", "42"], "/users/*")
        assert route.pattern == "/users/*"
        assert route.get("id") == "42"
        assert route.controller == "user"
