"""The authentication dance with an Okta-style identity provider.

:class:`Dance` drives the whole client-side flow::

    authenticate(username, password, mfa)   -> SessionToken   (single use)
    authorize(session_token)                -> SessionID      (the sid cookie)
    session(sid)                            -> Session
    close_session(sid)                      -> None

``authenticate`` posts the credentials to ``/api/v1/authn`` and interprets
the transaction status. ``SUCCESS`` returns the session token at once.
``MFA_REQUIRED`` picks a factor (automatically when only one is offered,
through the MFA handler otherwise) and hands the state token to that
factor's challenge loop in :mod:`oktadance.factors`. Every other status is
a terminal failure.

A :class:`Dance` holds no per-login state, so one instance can serve many
concurrent logins; the HTTP client is the only shared resource and is never
mutated after construction.

Example::

    with Dance.create("example.okta.com", client_id="0oa1b2c3") as dance:
        token = dance.authenticate("alice@example.com", password, ConsoleMultiFactor())
        sid = dance.authorize(token)
        print(dance.session(sid).login)
        dance.close_session(sid)
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from oktadance.authorize import AuthorizationExchanger
from oktadance.context import Context, background
from oktadance.exceptions import (
    AuthenticationError,
    ConfigError,
    MfaInputError,
    OktadanceError,
)
from oktadance.factors import Factor, factor_from_data
from oktadance.hooks import DiagnosticHooks, LogSink
from oktadance.mfa import MultiFactor
from oktadance.models import (
    AuthnResponse,
    AuthnStatus,
    DanceConfig,
    Session,
    SessionID,
    SessionToken,
)
from oktadance.sessions import SessionDirectory
from oktadance.transport import Transport, parse_model

logger = logging.getLogger(__name__)

AUTHN_PATH = "/api/v1/authn"


class Dance:
    """Authenticate against the provider and manage the resulting session.

    Args:
        config: Provider domain, client id, timeouts, and diagnostics options.
        http_client: Optional shared :class:`httpx.Client`. It must be built
            with ``follow_redirects=False`` and
            ``cookies=``:class:`~oktadance.transport.CookielessJar`, and is
            never closed by the dance.
        log: Optional diagnostic sink receiving ``(operation, raw_text)``
            dumps of every request and response.

    Raises:
        ConfigError: If *http_client* follows redirects or stores cookies.
    """

    def __init__(
        self,
        config: DanceConfig,
        http_client: Optional[httpx.Client] = None,
        log: Optional[LogSink] = None,
    ) -> None:
        self._config = config
        hooks = DiagnosticHooks(log, pretty_json=config.pretty_json)
        self._transport = Transport(config, http_client=http_client, hooks=hooks)
        self._exchanger = AuthorizationExchanger(self._transport)
        self._sessions = SessionDirectory(self._transport)

    @classmethod
    def create(
        cls,
        domain: str,
        http_client: Optional[httpx.Client] = None,
        log: Optional[LogSink] = None,
        **options: Any,
    ) -> Dance:
        """Build a :class:`Dance` from a domain and :class:`DanceConfig` keyword options."""
        return cls(DanceConfig(domain=domain, **options), http_client=http_client, log=log)

    @property
    def config(self) -> DanceConfig:
        return self._config

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> Dance:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        """Release the HTTP client if the dance created it."""
        self._transport.close()

    # ------------------------------------------------------------------ #
    # Authentication
    # ------------------------------------------------------------------ #

    def authenticate(
        self,
        username: str,
        password: str,
        mfa: Optional[MultiFactor] = None,
        ctx: Optional[Context] = None,
    ) -> SessionToken:
        """Exchange credentials (and a second factor if required) for a session token.

        The session token is valid for a short time and can be exchanged
        exactly once with :meth:`authorize`.

        Args:
            username: Login name.
            password: Password. Never logged or stored.
            mfa: Handler used to choose between several factors and to read
                one-time codes. May be ``None`` for accounts without MFA or
                with a single push factor.
            ctx: Cancellation context. Defaults to one that never expires.

        Returns:
            The provider's session token, unchanged.

        Raises:
            AuthenticationError: On a terminal provider status or an HTTP
                error from the authn endpoint.
            ConfigError: If MFA is required but no factor is offered, or
                several factors are offered and *mfa* is ``None``.
            MfaInputError: If the handler fails or selects nothing.
            ProtocolError: If a factor challenge fails or a response body
                does not have the expected shape.
            TransportError: On network failures.
            CancelledError: If *ctx* is cancelled or expires.
        """
        ctx = ctx or background()
        response = self._transport.send(
            ctx,
            "Authenticate",
            "POST",
            AUTHN_PATH,
            json_body={"username": username, "password": password},
        )
        if response.status_code >= 400:
            raise _authn_failure(response)

        authn = parse_model(AuthnResponse, response, "Authenticate")
        logger.debug("Primary authentication returned status %s", authn.status or "<none>")

        if authn.status == AuthnStatus.SUCCESS:
            return SessionToken(authn.session_token)

        if authn.status == AuthnStatus.MFA_REQUIRED:
            factor = self._choose_factor(authn, mfa)
            logger.debug("Challenging %s factor %s", factor.factor_type, factor.id)
            return factor.verify(
                self._transport,
                mfa,
                authn.state_token,
                ctx,
                max_wait=self._config.max_poll_wait,
            )

        raise AuthenticationError(f"Status: {authn.status}", status=authn.status)

    def _choose_factor(self, authn: AuthnResponse, mfa: Optional[MultiFactor]) -> Factor:
        factors = [factor_from_data(data) for data in authn.embedded.factors]
        if not factors:
            raise ConfigError("MFA required but no factor available")
        if len(factors) == 1:
            return factors[0]

        if mfa is None:
            raise ConfigError(
                f"MFA required with {len(factors)} factors offered but no MFA handler supplied"
            )
        try:
            factor = mfa.select(factors)
        except OktadanceError:
            raise
        except Exception as exc:
            raise MfaInputError(f"Error selecting MFA factor: {exc}") from exc
        if factor is None:
            raise MfaInputError("No MFA factor was selected")
        if factor not in factors:
            raise MfaInputError(f"Selected factor {factor!r} was not offered")
        return factor

    # ------------------------------------------------------------------ #
    # Session establishment and management
    # ------------------------------------------------------------------ #

    def authorize(self, session_token: SessionToken, ctx: Optional[Context] = None) -> SessionID:
        """Exchange a session token for a session id. Requires ``client_id``.

        See :meth:`~oktadance.authorize.AuthorizationExchanger.authorize`.
        """
        return self._exchanger.authorize(session_token, ctx)

    def session(self, session_id: SessionID, ctx: Optional[Context] = None) -> Session:
        """Fetch the session behind *session_id*.

        See :meth:`~oktadance.sessions.SessionDirectory.session`.
        """
        return self._sessions.session(session_id, ctx)

    def close_session(self, session_id: SessionID, ctx: Optional[Context] = None) -> None:
        """Terminate the session behind *session_id*.

        See :meth:`~oktadance.sessions.SessionDirectory.close_session`.
        """
        self._sessions.close_session(session_id, ctx)


def _authn_failure(response: httpx.Response) -> AuthenticationError:
    """Build the error for an HTTP failure of the primary authn request."""
    try:
        data = response.json()
    except ValueError:
        data = None
    summary = data.get("errorSummary") if isinstance(data, dict) else None
    status = data.get("status") if isinstance(data, dict) else None
    return AuthenticationError(
        f"Authentication failed (HTTP {response.status_code}): {summary or response.text}",
        status=status,
    )
