"""Output negotiation: turns data and error messages into response bodies.

The router never serializes anything itself. It asks an
``OutputNegotiator`` to pick a format and write the body. ``Negotiator``
is the default and knows five formats::

    html  text/html
    text  text/plain
    json  application/json
    xml   application/xml
    js    application/javascript

The format comes from an explicit hint, then from a content type the
handler already chose with ``respond_with``, then from the request's
``Accept`` header, then from the configured default.
"""

from __future__ import annotations

import json as json_module
import re
from collections.abc import Mapping, Sequence
from html import escape
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable
from xml.etree import ElementTree

from waymark.http.response import Response

if TYPE_CHECKING:
    from waymark.http.request import Request

FORMATS: Mapping[str, str] = {
    "html": "text/html",
    "text": "text/plain",
    "json": "application/json",
    "xml": "application/xml",
    "js": "application/javascript",
}

_MIME_FORMATS: Mapping[str, str] = {
    "text/html": "html",
    "application/xhtml+xml": "html",
    "text/plain": "text",
    "application/json": "json",
    "application/xml": "xml",
    "text/xml": "xml",
    "application/javascript": "js",
    "text/javascript": "js",
}

_JSONP_CALLBACK = re.compile(r"^[A-Za-z_$][\w$.]*$")
_XML_NAME = re.compile(r"[A-Za-z_][\w.-]*")


def short_format(value: str) -> str:
    """``"application/json; charset=utf-8"`` -> ``"json"``; unknown types pass through."""
    mime = value.split(";", 1)[0].strip().lower()
    if mime in FORMATS:
        return mime
    return _MIME_FORMATS.get(mime, mime)


def content_type_for(fmt: str) -> str:
    """The Content-Type header value for a format or MIME type."""
    mime = FORMATS.get(fmt, fmt)
    if mime.startswith("text/") or mime in ("application/json", "application/javascript"):
        return f"{mime}; charset=utf-8"
    return mime


def parse_accept(header: str) -> list[str]:
    """Media ranges of an Accept header, most preferred first.

    Ranges with ``q=0`` are dropped. Equal q-values keep header order.
    """
    ranked: list[tuple[float, int, str]] = []
    for position, item in enumerate(header.split(",")):
        mime, *params = (piece.strip() for piece in item.split(";"))
        if not mime:
            continue
        quality = 1.0
        for param in params:
            key, _, value = param.partition("=")
            if key.strip().lower() == "q":
                try:
                    quality = float(value)
                except ValueError:
                    quality = 0.0
        if quality > 0:
            ranked.append((-quality, position, mime.lower()))
    return [mime for _, _, mime in sorted(ranked)]


@runtime_checkable
class OutputNegotiator(Protocol):
    """What the router needs from an output negotiator."""

    def output_format(self, request: Request | None, content_type: str | None) -> str: ...

    def respond_with(
        self, response: Response, status: int | None = None, fmt: str | None = None
    ) -> Response: ...

    def output(
        self, request: Request | None, response: Response, data: Any, fmt: str | None = None
    ) -> Response: ...

    def output_error(
        self,
        request: Request | None,
        response: Response,
        status: int,
        message: Any,
        fmt: str | None = None,
    ) -> Response: ...


class Negotiator:
    """Default output negotiator."""

    __slots__ = ("default_format",)

    def __init__(self, default_format: str = "html") -> None:
        self.default_format = default_format

    def output_format(self, request: Request | None, content_type: str | None = None) -> str:
        if content_type:
            return short_format(content_type)
        if request is not None and request.accept:
            for mime in parse_accept(request.accept):
                if mime == "*/*":
                    return self.default_format
                if mime in _MIME_FORMATS:
                    return _MIME_FORMATS[mime]
                if mime.endswith("/*"):
                    prefix = mime[:-1]
                    for known, fmt in _MIME_FORMATS.items():
                        if known.startswith(prefix):
                            return fmt
        return self.default_format

    def respond_with(
        self, response: Response, status: int | None = None, fmt: str | None = None
    ) -> Response:
        if status is not None:
            response = response.with_status(status)
        if fmt is not None:
            response = response.with_content_type(content_type_for(short_format(fmt)))
        return response

    def output(
        self, request: Request | None, response: Response, data: Any, fmt: str | None = None
    ) -> Response:
        fmt = short_format(fmt) if fmt else self.output_format(request, None)

        match fmt:
            case "xml":
                body = data if isinstance(data, str) else _to_xml("response", data)
                return response.with_content_type(content_type_for("xml")).with_body(body)
            case "js":
                return self._jsonp(request, response, data)
            case "html" | "text" if isinstance(data, str):
                return response.with_content_type(content_type_for(fmt)).with_body(data)
            case "html" | "text" | "json":
                body = json_module.dumps(data, default=str)
                return response.with_content_type(content_type_for("json")).with_body(body)
            case _:
                body = data if isinstance(data, str | bytes) else str(data)
                return response.with_content_type(content_type_for(fmt)).with_body(body)

    def output_error(
        self,
        request: Request | None,
        response: Response,
        status: int,
        message: Any,
        fmt: str | None = None,
    ) -> Response:
        fmt = short_format(fmt) if fmt else self.output_format(request, None)
        response = response.with_status(status)

        match fmt:
            case "json" | "js":
                payload = dict(message) if isinstance(message, Mapping) else {"error": message}
                if fmt == "js":
                    payload["httpCode"] = status
                    return self._jsonp(request, response, payload)
                body = json_module.dumps(payload, default=str)
                return response.with_content_type(content_type_for("json")).with_body(body)
            case "xml":
                return response.with_content_type(content_type_for("xml")).with_body(
                    _error_xml(message)
                )
            case "html":
                return response.with_content_type(content_type_for("html")).with_body(
                    _error_html(message)
                )
            case _:
                return response.with_content_type(content_type_for("text")).with_body(
                    _error_text(message)
                )

    def _jsonp(self, request: Request | None, response: Response, data: Any) -> Response:
        body = json_module.dumps(data, default=str)
        callback = request.query.get("callback") if request is not None else None
        if callback and _JSONP_CALLBACK.match(callback):
            return response.with_content_type(content_type_for("js")).with_body(
                f"{callback}({body})"
            )
        return response.with_content_type(content_type_for("json")).with_body(body)


# -- Serialization helpers --


def _to_xml(tag: str, data: Any) -> str:
    return ElementTree.tostring(_xml_element(tag, data), encoding="unicode")


def _xml_element(tag: str, data: Any) -> ElementTree.Element:
    element = ElementTree.Element(tag)
    if isinstance(data, Mapping):
        for key, value in data.items():
            name = str(key)
            if _XML_NAME.fullmatch(name) and not name.lower().startswith("xml"):
                element.append(_xml_element(name, value))
            else:
                child = _xml_element("item", value)
                child.set("key", name)
                element.append(child)
    elif isinstance(data, Sequence) and not isinstance(data, str | bytes):
        for value in data:
            element.append(_xml_element("item", value))
    elif data is not None:
        element.text = str(data)
    return element


def _is_list(message: Any) -> bool:
    return isinstance(message, Mapping) or (
        isinstance(message, Sequence) and not isinstance(message, str | bytes)
    )


def _single(message: Any) -> Any:
    """A one-item list of messages is shown as that one message."""
    if isinstance(message, Sequence) and not isinstance(message, str | bytes) and len(message) == 1:
        return message[0]
    return message


def _error_xml(message: Any) -> str:
    if isinstance(message, Mapping):
        return _to_xml("error", message)
    if _is_list(message):
        return _to_xml("error", list(message))
    return _to_xml("error", message)


def _error_html(message: Any) -> str:
    message = _single(message)
    if isinstance(message, Mapping):
        items = "".join(
            f"<dt>{escape(str(key), quote=False)}</dt><dd>{_error_html(value)}</dd>"
            for key, value in message.items()
        )
        return f"<dl>{items}</dl>"
    if _is_list(message):
        items = "".join(f"<li>{_error_html(value)}</li>" for value in message)
        return f"<ul>{items}</ul>"
    return escape(str(message), quote=False)


def _error_text(message: Any, indent: int = 0) -> str:
    message = _single(message)
    if not _is_list(message):
        return str(message)

    pad = " " * indent
    entries = message.items() if isinstance(message, Mapping) else ((None, v) for v in message)
    lines = []
    for key, value in entries:
        label = "- " if key is None else f"{key}: "
        nested = _error_text(value, indent + 2)
        if _is_list(_single(value)):
            lines.append(f"{pad}{label.rstrip()}\n{nested}")
        else:
            lines.append(f"{pad}{label}{nested}")
    return "\n".join(lines)
