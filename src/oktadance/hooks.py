"""Diagnostic hooks around every outbound request.

:class:`DiagnosticHooks` renders each request before it is sent and each
response after it is received as an HTTP/1.1-style text dump, then hands
it to an optional sink with the name of the operation that issued it::

    def sink(operation: str, text: str) -> None:
        print(f"--- {operation}\\n{text}")

    dance = Dance(config, log=sink)

Secrets never reach a sink. Passwords, passCodes and session tokens are
masked in JSON bodies and in the query string, and the ``sid`` value is
masked in ``Cookie`` and ``Set-Cookie`` headers.

The hooks only observe. They never modify the request or response, and a
sink that raises is logged as a warning and otherwise ignored, so a broken
diagnostic never changes the outcome of a login.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, Optional

import httpx

logger = logging.getLogger(__name__)

LogSink = Callable[[str, str], None]
"""Signature of a diagnostic sink: ``(operation_name, raw_text)``."""

_MASKED_FIELDS = frozenset({"password", "passCode", "sessionToken"})
_MASK = "********"

_COOKIE_HEADERS = frozenset({"cookie", "set-cookie"})
_SID_COOKIE = re.compile(r"(?<![\w-])sid=[^;,\s]*")


class DiagnosticHooks:
    """Pre-request and post-response hooks feeding a diagnostic sink.

    Args:
        sink: Callable receiving ``(operation_name, text)``. When ``None``
            the hooks do nothing.
        pretty_json: Indent JSON bodies in the dumps.
    """

    def __init__(self, sink: Optional[LogSink] = None, pretty_json: bool = False) -> None:
        self._sink = sink
        self._pretty_json = pretty_json

    @property
    def enabled(self) -> bool:
        return self._sink is not None

    def pre_request(self, name: str, request: httpx.Request) -> None:
        """Dump *request* to the sink under *name*."""
        if self._sink is None:
            return
        self._emit(self._sink, name, lambda: dump_request(request, self._pretty_json))

    def post_response(self, name: str, response: httpx.Response) -> None:
        """Dump *response* to the sink under *name*."""
        if self._sink is None:
            return
        self._emit(self._sink, name, lambda: dump_response(response, self._pretty_json))

    @staticmethod
    def _emit(sink: LogSink, name: str, render: Callable[[], str]) -> None:
        try:
            sink(name, render())
        except Exception as exc:
            logger.warning("Diagnostic sink failed for %s: %s", name, exc)


def logging_sink(target: Optional[logging.Logger] = None, level: int = logging.DEBUG) -> LogSink:
    """Return a sink that writes dumps to a :mod:`logging` logger.

    Args:
        target: Logger to write to. Defaults to this module's logger.
        level: Log level used for every dump.
    """
    log = target or logger

    def _sink(name: str, text: str) -> None:
        log.log(level, "%s\n%s", name, text)

    return _sink


def dump_request(request: httpx.Request, pretty_json: bool = False) -> str:
    """Render *request* as an HTTP/1.1 request dump with secrets masked."""
    url = request.url
    for param in _MASKED_FIELDS:
        if param in url.params:
            url = url.copy_set_param(param, _MASK)
    target = url.raw_path.decode("ascii", errors="replace")
    lines = [f"{request.method} {target} HTTP/1.1"]
    lines.extend(
        f"{key}: {_mask_header(key, value)}" for key, value in request.headers.items()
    )
    return _join(lines, _render_body(request.content, pretty_json))


def dump_response(response: httpx.Response, pretty_json: bool = False) -> str:
    """Render *response* as an HTTP/1.1 response dump with secrets masked."""
    lines = [f"HTTP/1.1 {response.status_code} {response.reason_phrase}".rstrip()]
    lines.extend(
        f"{key}: {_mask_header(key, value)}"
        for key, value in response.headers.multi_items()
    )
    return _join(lines, _render_body(response.content, pretty_json))


def _mask_header(key: str, value: str) -> str:
    if key.lower() not in _COOKIE_HEADERS:
        return value
    return _SID_COOKIE.sub(f"sid={_MASK}", value)


def _join(head: list[str], body: str) -> str:
    text = "\r\n".join(head) + "\r\n\r\n"
    return text + body if body else text


def _render_body(content: bytes, pretty_json: bool) -> str:
    if not content:
        return ""
    text = content.decode("utf-8", errors="replace")
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return text
    data = _mask(data)
    if pretty_json:
        return json.dumps(data, indent=2)
    return json.dumps(data, separators=(",", ":"))


def _mask(data: Any) -> Any:
    if isinstance(data, dict):
        return {
            key: _MASK if key in _MASKED_FIELDS else _mask(value)
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [_mask(item) for item in data]
    return data
