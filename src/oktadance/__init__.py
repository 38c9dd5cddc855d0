"""oktadance -- client side of an Okta-style primary authentication flow.

Exchanges a username and password (plus a second factor when the provider
asks for one) for a single-use session token, trades that token for a
session id, and inspects or closes the session.

Typical usage::

    from oktadance import ConsoleMultiFactor, Dance

    with Dance.create("example.okta.com", client_id="0oa1b2c3") as dance:
        token = dance.authenticate(username, password, ConsoleMultiFactor())
        sid = dance.authorize(token)

Modules:
    dance: The :class:`Dance` orchestrator.
    factors: Push and one-time-code challenge protocols.
    mfa: MFA handler protocol and console implementation.
    authorize: Session token to session id exchange.
    sessions: Session introspection and termination.
    transport: Shared non-redirecting HTTP transport.
    context: Cancellation and deadlines.
    hooks: Diagnostic request/response dumps.
    config: Config file, environment, and credential resolution.
    app: Typer CLI entry point.
"""

__version__ = "0.3.0"

from oktadance.context import Context
from oktadance.dance import Dance
from oktadance.exceptions import (
    AuthenticationError,
    CancelledError,
    ConfigError,
    DeadlineExceeded,
    MfaInputError,
    MissingSessionError,
    OktadanceError,
    ProtocolError,
    TransportError,
)
from oktadance.factors import CodeFactor, Factor, PushFactor
from oktadance.hooks import logging_sink
from oktadance.mfa import ConsoleMultiFactor, MultiFactor, PreferredFactorMultiFactor
from oktadance.models import DanceConfig, Session, SessionID, SessionToken
from oktadance.transport import CookielessJar

__all__ = [
    "AuthenticationError",
    "CancelledError",
    "CodeFactor",
    "ConfigError",
    "ConsoleMultiFactor",
    "CookielessJar",
    "Context",
    "Dance",
    "DanceConfig",
    "DeadlineExceeded",
    "Factor",
    "MfaInputError",
    "MissingSessionError",
    "MultiFactor",
    "OktadanceError",
    "PreferredFactorMultiFactor",
    "ProtocolError",
    "PushFactor",
    "Session",
    "SessionID",
    "SessionToken",
    "TransportError",
    "logging_sink",
]
