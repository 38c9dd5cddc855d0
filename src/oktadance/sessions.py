"""Introspect and terminate the provider session behind a ``sid``."""

from __future__ import annotations

from typing import Optional

from oktadance.context import Context, background
from oktadance.exceptions import ProtocolError
from oktadance.models import Session, SessionID
from oktadance.transport import Transport, parse_model

SESSION_PATH = "/api/v1/sessions/me"
SID_COOKIE = "sid"


class SessionDirectory:
    """Read and close the current session identified by a ``sid`` cookie.

    The session id is only ever sent as a cookie named ``sid``, never in
    the query string or another header. Neither call retries.
    """

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    def session(self, session_id: SessionID, ctx: Optional[Context] = None) -> Session:
        """Fetch a snapshot of the session.

        Raises:
            ProtocolError: On status 400 or above, or a body that is not a session.
        """
        ctx = ctx or background()
        response = self._transport.send(
            ctx, "Session", "GET", SESSION_PATH, cookies={SID_COOKIE: str(session_id)}
        )
        if response.status_code >= 400:
            raise ProtocolError(
                f"Error reading session, status {response.status_code}: {response.text}",
                status_code=response.status_code,
                body=response.text,
            )
        return parse_model(Session, response, "Session")

    def close_session(self, session_id: SessionID, ctx: Optional[Context] = None) -> None:
        """Terminate the session.

        Closing an already closed session yields whatever the provider
        answers; any status of 300 or above is an error.

        Raises:
            ProtocolError: On status 300 or above, carrying status and body.
        """
        ctx = ctx or background()
        response = self._transport.send(
            ctx, "CloseSession", "DELETE", SESSION_PATH, cookies={SID_COOKIE: str(session_id)}
        )
        if response.status_code >= 300:
            raise ProtocolError(
                f"Error closing session, status {response.status_code}: {response.text}",
                status_code=response.status_code,
                body=response.text,
            )
