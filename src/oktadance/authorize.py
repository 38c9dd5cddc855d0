"""Authorization exchange: session token in, session id out.

The provider answers a valid ``sessionToken`` on ``/oauth2/v1/authorize``
with a redirect whose ``Set-Cookie`` header carries the session id
(``sid``). The redirect is deliberately not followed: the cookie is read
straight from that response, because it never appears on the redirect
target's response.
"""

from __future__ import annotations

import logging
from typing import Optional

from oktadance.context import Context, background
from oktadance.exceptions import ConfigError, MissingSessionError, ProtocolError
from oktadance.models import SessionID, SessionToken
from oktadance.transport import Transport, response_cookie

logger = logging.getLogger(__name__)

AUTHORIZE_PATH = "/oauth2/v1/authorize"
SID_COOKIE = "sid"


class AuthorizationExchanger:
    """Exchange a single-use session token for a session id.

    Args:
        transport: Transport bound to the provider domain. Its
            ``config.client_id`` identifies the application.
    """

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    def authorize(self, session_token: SessionToken, ctx: Optional[Context] = None) -> SessionID:
        """Establish a session for *session_token* and return its ``sid``.

        The token is consumed by the provider; do not call this twice with
        the same token.

        Raises:
            ConfigError: If no client id is configured.
            ProtocolError: If the provider answers with status 400 or above.
            MissingSessionError: If the response sets no ``sid`` cookie.
        """
        ctx = ctx or background()
        config = self._transport.config
        if not config.client_id:
            raise ConfigError("authorize requires a client id")

        params = {
            "client_id": config.client_id,
            "redirect_uri": config.redirect_uri,
            "sessionToken": str(session_token),
            "prompt": "none",
            "response_type": "id_token",
            "scope": "openid",
        }
        response = self._transport.send(ctx, "Authorize", "GET", AUTHORIZE_PATH, params=params)
        if response.status_code >= 400:
            raise ProtocolError(
                response.text or f"authorize failed with HTTP {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )

        sid = response_cookie(response, SID_COOKIE)
        if not sid:
            raise MissingSessionError(
                f"authorize returned HTTP {response.status_code} without a '{SID_COOKIE}' cookie"
            )
        logger.debug("Session established (HTTP %s)", response.status_code)
        return SessionID(sid)
