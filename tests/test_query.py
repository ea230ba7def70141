"""Tests for url-encoded parameters."""

from waymark.http.query import QueryParams


class TestQueryParams:
    def test_first_value(self) -> None:
        params = QueryParams("a=1&a=2&b=3")
        assert params["a"] == "1"
        assert params.get_list("a") == ["1", "2"]
        assert len(params) == 2

    def test_bytes(self) -> None:
        assert QueryParams(b"q=caf%C3%A9")["q"] == "café"

    def test_raw_utf8_bytes(self) -> None:
        assert QueryParams("name=café".encode())["name"] == "café"

    def test_invalid_utf8_is_replaced(self) -> None:
        assert QueryParams(b"name=caf\xe9")["name"] == "caf\ufffd"

    def test_blank_values_are_kept(self) -> None:
        params = QueryParams("empty=&x=1")
        assert "empty" in params
        assert params["empty"] == ""

    def test_get(self) -> None:
        params = QueryParams("a=1")
        assert params.get("a") == "1"
        assert params.get("b") is None
        assert params.get("b", "d") == "d"
        assert params.get_list("b") == []

    def test_encoded(self) -> None:
        assert QueryParams("a=1&b=2").encoded == "a=1&b=2"

    def test_from_mapping(self) -> None:
        params = QueryParams.from_mapping({"name": "Ada Lovelace"})
        assert params.encoded == "name=Ada+Lovelace"
        assert params["name"] == "Ada Lovelace"
