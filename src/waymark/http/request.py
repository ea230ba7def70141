"""Immutable HTTP request context.

Everything the router and the binder read from a request: method, path,
headers, query, form fields, cookies, CGI-style server variables and the
process environment. The body is read before the request is built, so
the whole request is plain frozen data.
"""

from __future__ import annotations

import json as json_module
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlsplit

from waymark.http.headers import Headers
from waymark.http.query import QueryParams

_FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


def parse_cookies(header: str) -> dict[str, str]:
    """Parse a ``Cookie`` header value into a name-value dict.

    Returns an empty dict for empty or missing headers.
    """
    if not header:
        return {}
    cookies: dict[str, str] = {}
    for pair in header.split(";"):
        key, sep, value = pair.strip().partition("=")
        if sep:
            cookies[key.strip()] = value.strip()
    return cookies


def _parse_form(body: bytes, content_type: str | None) -> QueryParams:
    if not body:
        return QueryParams()
    mime = (content_type or "").split(";", 1)[0].strip().lower()
    if mime != _FORM_CONTENT_TYPE:
        return QueryParams()
    return QueryParams(body)


def _server_variables(
    *,
    method: str,
    path: str,
    query_string: str,
    headers: Headers,
    http_version: str,
    server: tuple[str, int] | None,
    client: tuple[str, int] | None,
    scheme: str,
) -> dict[str, str]:
    """Build the CGI variables a ``$NAME`` binding option can read."""
    variables = headers.cgi_variables()
    variables.update(
        {
            "REQUEST_METHOD": method,
            "REQUEST_URI": f"{path}?{query_string}" if query_string else path,
            "PATH_INFO": path,
            "QUERY_STRING": query_string,
            "SERVER_PROTOCOL": f"HTTP/{http_version}",
            "REQUEST_SCHEME": scheme,
        }
    )
    if server is not None:
        variables["SERVER_NAME"], variables["SERVER_PORT"] = server[0], str(server[1])
    if client is not None:
        variables["REMOTE_ADDR"], variables["REMOTE_PORT"] = client[0], str(client[1])
    return variables


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    ``server`` holds CGI-style variables (``REQUEST_METHOD``,
    ``HTTP_ACCEPT``, ...), ``env`` the process environment.
    """

    method: str
    path: str
    headers: Headers = field(default_factory=Headers)
    query: QueryParams = field(default_factory=QueryParams)
    form: QueryParams = field(default_factory=QueryParams)
    cookies: Mapping[str, str] = field(default_factory=dict)
    server: Mapping[str, str] = field(default_factory=dict)
    env: Mapping[str, str] = field(default_factory=lambda: os.environ, repr=False)
    body: bytes = field(default=b"", repr=False)
    http_version: str = "1.1"
    client: tuple[str, int] | None = None

    # -- Computed properties --

    def effective_method(self, allow_override: bool = True) -> str:
        """The request method, overridable by a ``_method`` form field."""
        if allow_override:
            override = self.form.get("_method")
            if override:
                return override.upper()
        return self.method.upper()

    @property
    def content_type(self) -> str | None:
        """The Content-Type header value."""
        return self.headers.get("content-type")

    @property
    def accept(self) -> str:
        """The Accept header value, ``""`` when absent."""
        return self.headers.get("accept", "") or ""

    @property
    def host(self) -> str | None:
        return self.headers.get("host") or self.server.get("SERVER_NAME")

    @property
    def url(self) -> str:
        """Request path plus query string."""
        if self.query.encoded:
            return f"{self.path}?{self.query.encoded}"
        return self.path

    @property
    def is_ajax(self) -> bool:
        return self.headers.get("x-requested-with", "").lower() == "xmlhttprequest"

    @property
    def local_referer(self) -> str | None:
        """The Referer header, if it points at this host.

        Returns the path (with query) of the referring page.
        """
        referer = self.headers.get("referer")
        if not referer:
            return None
        parts = urlsplit(referer)
        if parts.netloc and parts.netloc != self.host:
            return None
        path = parts.path or "/"
        return f"{path}?{parts.query}" if parts.query else path

    def json(self) -> Any:
        """Parse the body as JSON."""
        return json_module.loads(self.body)

    def text(self) -> str:
        """The body as text (UTF-8)."""
        return self.body.decode("utf-8")

    # -- Factories --

    @classmethod
    def from_asgi(
        cls,
        scope: Mapping[str, Any],
        body: bytes = b"",
        env: Mapping[str, str] | None = None,
    ) -> Request:
        """Create a Request from an ASGI HTTP scope and the full body."""
        headers = Headers.from_asgi(scope.get("headers", ()))
        raw_query = scope.get("query_string", b"")
        query = QueryParams(raw_query)
        server = scope.get("server")
        client = scope.get("client")
        http_version = scope.get("http_version", "1.1")
        method = scope["method"]
        path = scope["path"]
        return cls(
            method=method,
            path=path,
            headers=headers,
            query=query,
            form=_parse_form(body, headers.get("content-type")),
            cookies=parse_cookies(headers.get("cookie", "")),
            server=_server_variables(
                method=method,
                path=path,
                query_string=query.encoded,
                headers=headers,
                http_version=http_version,
                server=tuple(server) if server else None,
                client=tuple(client) if client else None,
                scheme=scope.get("scheme", "http"),
            ),
            env=env if env is not None else os.environ,
            body=body,
            http_version=http_version,
            client=tuple(client) if client else None,
        )

    @classmethod
    def build(
        cls,
        method: str = "GET",
        url: str = "/",
        *,
        headers: Mapping[str, str] | None = None,
        form: Mapping[str, str] | None = None,
        body: bytes = b"",
        env: Mapping[str, str] | None = None,
    ) -> Request:
        """Create a Request without a server, e.g. for tests and internal calls.

        *url* may include a query string. *form* is encoded as an
        ``application/x-www-form-urlencoded`` body.
        """
        path, _, query_string = url.partition("?")
        raw_headers = dict(headers or {})
        if form is not None:
            body = QueryParams.from_mapping(form).encoded.encode("latin-1")
            raw_headers.setdefault("content-type", _FORM_CONTENT_TYPE)
        scope = {
            "method": method.upper(),
            "path": path or "/",
            "query_string": query_string.encode("utf-8"),
            "headers": [
                (name.lower().encode("latin-1"), value.encode("latin-1"))
                for name, value in raw_headers.items()
            ],
            "server": ("localhost", 80),
            "client": ("127.0.0.1", 0),
        }
        return cls.from_asgi(scope, body, env=env)
