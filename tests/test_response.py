"""Tests for the chainable Response and Redirect."""

import pytest

from waymark.http.response import Redirect, Response, SetCookie


class TestChaining:
    def test_with_methods_return_new_responses(self) -> None:
        original = Response("hi")
        changed = original.with_status(201).with_header("X-Id", "1")
        assert original.status == 200
        assert original.headers == ()
        assert changed.status == 201
        assert changed.headers == (("X-Id", "1"),)

    def test_with_headers(self) -> None:
        response = Response().with_headers({"A": "1", "B": "2"})
        assert response.headers == (("A", "1"), ("B", "2"))

    def test_replacing_header(self) -> None:
        response = Response().with_header("allow", "GET").replacing_header("Allow", "POST")
        assert response.headers == (("Allow", "POST"),)

    def test_header_lookup_is_case_insensitive(self) -> None:
        response = Response().with_header("Location", "/x")
        assert response.header("location") == "/x"
        assert response.location == "/x"
        assert response.header("missing") is None

    def test_body_accessors(self) -> None:
        assert Response("héllo").body_bytes == "héllo".encode()
        assert Response(b"raw").text == "raw"
        assert Response(b"raw").body_bytes == b"raw"

    def test_content_type(self) -> None:
        assert Response().content_type == "text/html; charset=utf-8"
        assert Response().with_content_type("text/plain").content_type == "text/plain"


class TestCookies:
    def test_with_cookie(self) -> None:
        response = Response().with_cookie("sid", "abc", max_age=60)
        assert response.cookies == (SetCookie("sid", "abc", max_age=60),)

    def test_header_value(self) -> None:
        cookie = SetCookie("sid", "abc", max_age=60, domain="example.com", secure=True)
        assert cookie.to_header_value() == (
            "sid=abc; Max-Age=60; Path=/; Domain=example.com; Secure; HttpOnly; SameSite=lax"
        )

    def test_minimal_header_value(self) -> None:
        cookie = SetCookie("a", "1", path="", httponly=False, samesite="")
        assert cookie.to_header_value() == "a=1"


class TestRedirect:
    def test_default_status(self) -> None:
        assert Redirect("/login").status == 303

    def test_frozen(self) -> None:
        with pytest.raises(AttributeError):
            Redirect("/login").url = "/other"  # type: ignore[misc]
