"""HTTP transport shared by every oktadance component.

:class:`Transport` wraps a single :class:`httpx.Client` that is created (or
supplied) once and reused read-only by all concurrent login attempts. It
layers on:

- **No redirect following** -- the authorize step reads its ``sid`` from the
  ``Set-Cookie`` header of a redirect response, so a client configured with
  ``follow_redirects=True`` is rejected.
- **No cookie storage** -- the client's jar must be a :class:`CookielessJar`,
  so a ``sid`` issued for one login is never kept in the shared client.
  Cookies are read from the raw headers with :func:`response_cookie`.
- **Context propagation** -- the caller's
  :class:`~oktadance.context.Context` is checked before sending, and the
  request timeout is bounded by the context's remaining time.
- **Diagnostic hooks** -- :class:`~oktadance.hooks.DiagnosticHooks` see the
  request before it is sent and the response after it arrives.
- **Error mapping** -- httpx network and timeout failures surface as
  :class:`~oktadance.exceptions.TransportError`; bodies that are not JSON or
  do not fit the expected model surface as
  :class:`~oktadance.exceptions.ProtocolError`.

Nothing here retries; the factor challenge loop is the only place a request
is repeated.
"""

from __future__ import annotations

import json
from http.cookiejar import CookieJar, DefaultCookiePolicy
from http.cookies import CookieError, SimpleCookie
from typing import Any, Optional, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from oktadance.context import Context
from oktadance.exceptions import CancelledError, ConfigError, ProtocolError, TransportError
from oktadance.hooks import DiagnosticHooks
from oktadance.models import DanceConfig

ModelT = TypeVar("ModelT", bound=BaseModel)


class CookielessJar(CookieJar):
    """Cookie jar that refuses to store or send any cookie.

    Pass it as ``cookies=`` when building an :class:`httpx.Client` to share
    with :class:`~oktadance.dance.Dance`::

        client = httpx.Client(follow_redirects=False, cookies=CookielessJar())
    """

    def __init__(self) -> None:
        super().__init__(policy=DefaultCookiePolicy(allowed_domains=[]))


def create_http_client(config: DanceConfig) -> httpx.Client:
    """Build the default :class:`httpx.Client` for *config*.

    The client never follows redirects, never stores cookies, and verifies
    TLS unless ``config.verify_ssl`` is false.
    """
    return httpx.Client(
        timeout=config.timeout,
        verify=config.verify_ssl,
        follow_redirects=False,
        cookies=CookielessJar(),
    )


class Transport:
    """Request executor bound to one identity provider domain.

    Args:
        config: Provider domain, timeout, and diagnostic settings.
        http_client: Optional pre-built client. It must not follow redirects,
            must use a :class:`CookielessJar`, and is never closed by the
            transport.
        hooks: Optional diagnostic hooks.

    Raises:
        ConfigError: If *http_client* follows redirects or keeps cookies.
    """

    def __init__(
        self,
        config: DanceConfig,
        http_client: Optional[httpx.Client] = None,
        hooks: Optional[DiagnosticHooks] = None,
    ) -> None:
        if http_client is not None:
            if http_client.follow_redirects:
                raise ConfigError(
                    "HTTP client must not follow redirects; "
                    "construct it with follow_redirects=False"
                )
            if not isinstance(http_client.cookies.jar, CookielessJar):
                raise ConfigError(
                    "HTTP client must not store cookies; "
                    "construct it with cookies=CookielessJar()"
                )
        self._config = config
        self._owns_client = http_client is None
        self._client = http_client if http_client is not None else create_http_client(config)
        self._hooks = hooks or DiagnosticHooks()

    @property
    def config(self) -> DanceConfig:
        return self._config

    def url(self, path: str) -> str:
        return f"{self._config.base_url}{path}"

    def close(self) -> None:
        """Close the underlying client if this transport created it."""
        if self._owns_client:
            self._client.close()

    def send(
        self,
        ctx: Context,
        name: str,
        method: str,
        path: str,
        params: Optional[dict[str, str]] = None,
        json_body: Optional[Any] = None,
        cookies: Optional[dict[str, str]] = None,
    ) -> httpx.Response:
        """Send one request and return the fully read response.

        Args:
            ctx: Caller context; checked before sending and used to bound
                the timeout.
            name: Operation name reported to the diagnostic hooks.
            method: HTTP method.
            path: Path appended to ``https://<domain>``.
            params: Query parameters.
            json_body: JSON-serialisable body.
            cookies: Cookies sent as a ``Cookie`` header on this request only.

        Returns:
            The :class:`httpx.Response`, whatever its status code.

        Raises:
            CancelledError: If the context is cancelled or expired.
            TransportError: On network or timeout failures.
        """
        ctx.check()

        headers = httpx.Headers(self._client.headers)
        headers["Accept"] = "application/json"
        if cookies:
            headers["Cookie"] = "; ".join(f"{k}={v}" for k, v in cookies.items())

        # Cookies go in this request's own header, never through the jar.
        request = httpx.Request(
            method,
            self.url(path),
            params=params,
            json=json_body,
            headers=headers,
            extensions={"timeout": httpx.Timeout(ctx.timeout_for(self._config.timeout)).as_dict()},
        )

        self._hooks.pre_request(name, request)
        try:
            response = self._client.send(request, follow_redirects=False)
        except httpx.TimeoutException as exc:
            # A timeout cut short by the context deadline is reported as such.
            ctx.check()
            raise TransportError(f"{name} timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"{name} failed: {exc}") from exc
        self._hooks.post_response(name, response)

        if ctx.cancelled:
            raise CancelledError("operation cancelled")
        return response


def decode_json(response: httpx.Response, name: str) -> Any:
    """Decode a JSON response body.

    Raises:
        ProtocolError: If the body is not valid JSON.
    """
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ProtocolError(
            f"{name}: response is not valid JSON (HTTP {response.status_code}): {exc}",
            status_code=response.status_code,
            body=response.text,
        ) from exc


def parse_model(model: type[ModelT], response: httpx.Response, name: str) -> ModelT:
    """Decode a JSON response body into *model*.

    Raises:
        ProtocolError: If the body is not JSON or does not fit *model*. The
            raw body is attached.
    """
    data = decode_json(response, name)
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise ProtocolError(
            f"{name}: unexpected response body (HTTP {response.status_code}): "
            f"{exc.error_count()} validation error(s) for {model.__name__}",
            status_code=response.status_code,
            body=response.text,
        ) from exc


def response_cookie(response: httpx.Response, name: str) -> str:
    """Return the value of cookie *name* from the raw ``Set-Cookie`` headers.

    Headers are read directly rather than through a cookie jar so that
    domain matching against the redirect target cannot drop the cookie.
    When several headers set the same cookie the last one wins. Returns an
    empty string when the cookie is absent.
    """
    value = ""
    for header in response.headers.get_list("set-cookie"):
        jar = SimpleCookie()
        try:
            jar.load(header)
        except CookieError:
            continue
        if name in jar:
            value = jar[name].value
    return value
