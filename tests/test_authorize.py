"""Tests for the session-token to session-id exchange."""

from __future__ import annotations

import httpx
import pytest

from oktadance.dance import Dance
from oktadance.exceptions import ConfigError, MissingSessionError, ProtocolError
from oktadance.models import DEFAULT_REDIRECT_URI, DanceConfig, SessionToken
from scripted import AUTHORIZE_PATH, CLIENT_ID, DOMAIN, ScriptedProvider


def _redirect(*set_cookies: str, status: int = 302) -> httpx.Response:
    headers = [("Location", "https://epithet.io/okta-callback#id_token=x")]
    headers.extend(("Set-Cookie", value) for value in set_cookies)
    return httpx.Response(status, headers=headers)


class TestAuthorize:
    def test_returns_sid_cookie(self, dance: Dance, provider: ScriptedProvider) -> None:
        provider.add(
            "GET",
            AUTHORIZE_PATH,
            httpx.Response(200, headers=[("Set-Cookie", "sid=abc123; Path=/; Secure; HttpOnly")]),
        )

        assert dance.authorize(SessionToken("tok")) == "abc123"

    def test_sid_from_redirect_is_not_followed(
        self, dance: Dance, provider: ScriptedProvider
    ) -> None:
        provider.add(
            "GET",
            AUTHORIZE_PATH,
            _redirect("JSESSIONID=zzz; Path=/", "sid=102xyz; Path=/; Domain=.okta.com"),
        )

        assert dance.authorize(SessionToken("tok")) == "102xyz"
        assert len(provider.requests) == 1

    def test_last_sid_wins(self, dance: Dance, provider: ScriptedProvider) -> None:
        provider.add("GET", AUTHORIZE_PATH, _redirect("sid=first; Path=/", "sid=second; Path=/"))

        assert dance.authorize(SessionToken("tok")) == "second"

    def test_sends_expected_query(self, dance: Dance, provider: ScriptedProvider) -> None:
        provider.add("GET", AUTHORIZE_PATH, _redirect("sid=abc"))

        dance.authorize(SessionToken("20111tok"))

        request = provider.requests[0]
        assert request.url.host == DOMAIN
        assert dict(request.url.params) == {
            "client_id": CLIENT_ID,
            "redirect_uri": DEFAULT_REDIRECT_URI,
            "sessionToken": "20111tok",
            "prompt": "none",
            "response_type": "id_token",
            "scope": "openid",
        }

    def test_custom_redirect_uri(self, provider: ScriptedProvider) -> None:
        provider.add("GET", AUTHORIZE_PATH, _redirect("sid=abc"))
        config = DanceConfig(
            domain=DOMAIN, client_id=CLIENT_ID, redirect_uri="http://localhost:8080/cb"
        )

        with Dance(config, http_client=provider.client()) as dance:
            dance.authorize(SessionToken("tok"))

        assert provider.requests[0].url.params["redirect_uri"] == "http://localhost:8080/cb"

    def test_error_status_includes_body(self, dance: Dance, provider: ScriptedProvider) -> None:
        provider.add(
            "GET",
            AUTHORIZE_PATH,
            httpx.Response(401, text='{"errorCode":"E0000011","errorSummary":"Invalid token"}'),
        )

        with pytest.raises(ProtocolError, match="Invalid token") as exc_info:
            dance.authorize(SessionToken("used"))

        assert exc_info.value.status_code == 401
        assert "E0000011" in exc_info.value.body

    def test_missing_cookie(self, dance: Dance, provider: ScriptedProvider) -> None:
        provider.add("GET", AUTHORIZE_PATH, _redirect("JSESSIONID=zzz; Path=/"))

        with pytest.raises(MissingSessionError):
            dance.authorize(SessionToken("tok"))

    def test_empty_cookie_counts_as_missing(
        self, dance: Dance, provider: ScriptedProvider
    ) -> None:
        provider.add("GET", AUTHORIZE_PATH, _redirect('sid=""; Path=/'))

        with pytest.raises(MissingSessionError):
            dance.authorize(SessionToken("tok"))

    def test_missing_session_is_config_error(self) -> None:
        assert issubclass(MissingSessionError, ConfigError)

    def test_requires_client_id(self, provider: ScriptedProvider) -> None:
        with Dance(DanceConfig(domain=DOMAIN), http_client=provider.client()) as dance:
            with pytest.raises(ConfigError, match="client id"):
                dance.authorize(SessionToken("tok"))

        assert provider.requests == []

    def test_sid_is_not_kept_by_shared_client(self, provider: ScriptedProvider) -> None:
        provider.add("GET", AUTHORIZE_PATH, _redirect("sid=secret-sid; Path=/"))
        provider.add("GET", "/other", httpx.Response(200))
        client = provider.client()

        with Dance(DanceConfig(domain=DOMAIN, client_id=CLIENT_ID), http_client=client) as dance:
            assert dance.authorize(SessionToken("tok")) == "secret-sid"

        assert dict(client.cookies) == {}
        client.get(f"https://{DOMAIN}/other")
        assert "cookie" not in provider.requests[-1].headers
        client.close()
