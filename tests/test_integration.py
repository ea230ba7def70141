"""End-to-end routing through Router.execute(), no ASGI server involved."""

import json

import pytest

from support.controllers import ErrorController, TestController
from waymark import DiagnosticKind, DiagnosticLog, HandlerRegistry, Request, Router, RouterConfig

ROUTES = {
    "/": {"controller": "test"},
    "/users/* +GET": {"controller": "test", "action": "get", "id": "$2"},
}


def _route(url: str, routes=ROUTES, method: str = "GET", **kwargs):
    registry = HandlerRegistry.of(TestController, ErrorController)
    request = Request.build(method, url)
    return Router(routes, request=request, registry=registry, **kwargs).execute()


class TestUsersScenario:
    def test_default_action(self) -> None:
        response = _route("/")
        assert response.status == 200
        assert response.text == "<h1>hello planet</h1>"

    def test_get_action(self) -> None:
        response = _route("/users/1")
        assert response.status == 200
        assert json.loads(response.text) == {"id": 1, "name": "Arnold"}

    def test_missing_user_without_404_route(self) -> None:
        response = _route("/users/99")
        assert response.status == 404
        assert response.text == "User not found"

    def test_missing_user_with_404_route(self) -> None:
        routes = {**ROUTES, 404: {"controller": "error", "action": "not-found"}}
        response = _route("/users/99", routes)
        assert response.status == 404
        assert response.text == "[404] User not found"

    def test_unknown_path(self) -> None:
        response = _route("/nowhere")
        assert response.status == 404
        assert response.text == "Sorry, this page does not exist"

    def test_post_is_rejected_not_missing(self) -> None:
        response = _route("/users/1", method="POST")
        assert response.status == 405
        assert response.header("Allow") == "GET"

    def test_trailing_slash(self) -> None:
        assert json.loads(_route("/users/2/").text)["name"] == "Ada"

    def test_extra_segment_is_not_matched(self) -> None:
        assert _route("/users/1/extra").status == 404


class TestCatchAll:
    @pytest.mark.parametrize("url", ["/", "/a", "/a/b/c"])
    def test_catch_all(self, url: str) -> None:
        response = _route(url, {"/**": lambda: "caught"})
        assert response.text == "caught"

    def test_specific_routes_first(self) -> None:
        routes = {"/about": lambda: "about", "/**": lambda: "caught"}
        assert _route("/about", routes).text == "about"
        assert _route("/contact", routes).text == "caught"


class TestBindingScenarios:
    def test_defaults_at_root(self) -> None:
        routes = {
            "/**": {
                "fn": lambda section, page: f"{section}.{page}",
                "section": "$1|default",
                "page": "$2|index",
            }
        }
        assert _route("/", routes).text == "default.index"
        assert _route("/user/list", routes).text == "user.list"

    def test_splice(self) -> None:
        routes = {"/files/**": {"fn": lambda *parts: "/".join(parts), "args": ["$2+"]}}
        assert _route("/files/docs/api/index", routes).text == "docs/api/index"

    def test_splice_then_literal(self) -> None:
        routes = {"/tag/**": {"fn": lambda *parts: ",".join(parts), "args": ["$2...", "end"]}}
        assert _route("/tag/a/b", routes).text == "a,b,end"

    def test_duplicate_route(self) -> None:
        log = DiagnosticLog()
        routes = [("/", lambda: "first"), ("/", lambda: "second")]
        response = _route("/", routes, diagnostics=log)
        assert response.text == "first"
        assert len(log.of_kind(DiagnosticKind.DUPLICATE_ROUTE)) == 1


class TestBasePath:
    def test_redirect_under_base(self) -> None:
        routes = {"/logout": lambda router: router.redirect("/login")}
        response = _route("/app/logout", routes, config=RouterConfig(base="/app"))
        assert response.status == 303
        assert response.location == "/app/login"

    def test_routes_are_relative_to_base(self) -> None:
        response = _route("/app/users/2", config=RouterConfig(base="/app"))
        assert json.loads(response.text)["name"] == "Ada"


class TestFiles:
    def test_file_routes(self, pages) -> None:
        routes = {
            "/about": {"file": "about.html"},
            "/hello/*": {"file": "hello.py", "name": "$2"},
            "/escape": {"file": "../conftest.py"},
        }
        config = RouterConfig(document_root=pages)
        assert _route("/about", routes, config=config).text.strip() == "<h1>About</h1>"
        assert _route("/hello/Ada", routes, config=config).text == "Hello, Ada!"
        assert _route("/escape", routes, config=config).status == 404
