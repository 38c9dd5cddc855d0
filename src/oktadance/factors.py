"""Second-factor challenge protocols.

A :class:`Factor` is built from the provider's factor data by
:func:`factor_from_data`, which dispatches on the ``factorType`` tag:

- ``push`` -- :class:`PushFactor`. Each iteration posts only the state
  token; the person approves or denies the notification out of band.
- anything else -- :class:`CodeFactor`. Each iteration first asks the MFA
  handler for a one-time code, then posts the state token with the code.

Both run the same challenge loop in :meth:`Factor.verify`::

    CHALLENGE_PENDING --verify--> SUCCESS         (session token returned)
                      --verify--> MFA_CHALLENGE   (wait, loop again)
                      --verify--> anything else   (ProtocolError)

The provider rotates the state token on every response, so the loop always
carries the most recent one forward. A wrong one-time code is not an error:
the provider answers ``MFA_CHALLENGE`` and the handler is simply asked again.
There is no iteration limit unless the caller's context has a deadline or
``max_wait`` is given.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Optional

from oktadance.context import Context
from oktadance.exceptions import (
    ConfigError,
    DeadlineExceeded,
    MfaInputError,
    OktadanceError,
    ProtocolError,
)
from oktadance.models import AuthnResponse, AuthnStatus, FactorData, SessionToken
from oktadance.transport import Transport, parse_model

if TYPE_CHECKING:
    from oktadance.mfa import MultiFactor

logger = logging.getLogger(__name__)

POLL_INTERVAL = 2.0
"""Seconds to wait between two verify calls of the same challenge."""

PUSH = "push"


class Factor(ABC):
    """A second factor offered by the provider for one login attempt.

    Factors are never created by callers directly; they come from the
    ``_embedded.factors`` list of an ``MFA_REQUIRED`` response.
    """

    def __init__(self, id: str, factor_type: str, provider: str) -> None:
        self._id = id
        self._factor_type = factor_type
        self._provider = provider

    @property
    def id(self) -> str:
        return self._id

    @property
    def factor_type(self) -> str:
        return self._factor_type

    @property
    def provider(self) -> str:
        return self._provider

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Factor):
            return NotImplemented
        return (type(self), self._id, self._factor_type, self._provider) == (
            type(other), other._id, other._factor_type, other._provider,
        )

    def __hash__(self) -> int:
        return hash((type(self), self._id, self._factor_type, self._provider))

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(id={self._id!r}, "
            f"factor_type={self._factor_type!r}, provider={self._provider!r})"
        )

    def verify(
        self,
        transport: Transport,
        mfa: Optional[MultiFactor],
        state_token: str,
        ctx: Context,
        max_wait: Optional[float] = None,
    ) -> SessionToken:
        """Run the challenge loop until the provider settles it.

        Args:
            transport: Transport bound to the provider domain.
            mfa: MFA handler; required by factors that read a code.
            state_token: State token from the ``MFA_REQUIRED`` response.
            ctx: Caller context. Cancelling it aborts the wait between
                iterations.
            max_wait: Optional cap in seconds on the whole loop.

        Returns:
            The session token from the ``SUCCESS`` response.

        Raises:
            ProtocolError: On any status other than ``SUCCESS`` or
                ``MFA_CHALLENGE``, with the raw body attached.
            MfaInputError: If the handler fails to supply a code.
            CancelledError: If *ctx* is cancelled.
            DeadlineExceeded: If *ctx* or *max_wait* runs out.
        """
        give_up_at = time.monotonic() + max_wait if max_wait is not None else None
        path = f"/api/v1/authn/factors/{self._id}/verify"

        while True:
            payload = self._payload(mfa, state_token)
            response = transport.send(ctx, "VerifyFactor", "POST", path, json_body=payload)
            authn = parse_model(AuthnResponse, response, "VerifyFactor")

            if authn.status == AuthnStatus.SUCCESS:
                logger.debug("Factor %s verified", self._id)
                return SessionToken(authn.session_token)
            if authn.status != AuthnStatus.MFA_CHALLENGE:
                raise ProtocolError(
                    f"Factor verification failed (HTTP {response.status_code}): {response.text}",
                    status_code=response.status_code,
                    body=response.text,
                )

            state_token = authn.state_token
            if give_up_at is not None and time.monotonic() + POLL_INTERVAL > give_up_at:
                raise DeadlineExceeded(
                    f"Factor challenge not completed within {max_wait:g}s"
                )
            logger.debug(
                "Factor %s challenge pending (factorResult=%s)",
                self._id,
                authn.factor_result,
            )
            ctx.sleep(POLL_INTERVAL)

    @abstractmethod
    def _payload(self, mfa: Optional[MultiFactor], state_token: str) -> dict[str, Any]:
        """Build the JSON body for one verify call."""
        ...


class PushFactor(Factor):
    """Push-notification factor; polls until the person approves or denies."""

    def _payload(self, mfa: Optional[MultiFactor], state_token: str) -> dict[str, Any]:
        return {"stateToken": state_token}


class CodeFactor(Factor):
    """One-time-code factor (TOTP, SMS, email, hardware token, ...)."""

    def _payload(self, mfa: Optional[MultiFactor], state_token: str) -> dict[str, Any]:
        if mfa is None:
            raise ConfigError(
                f"Factor {self.factor_type!r} needs an MFA handler to read a code"
            )
        try:
            code = mfa.read_code(self)
        except OktadanceError:
            raise
        except Exception as exc:
            raise MfaInputError(f"Error reading MFA input: {exc}") from exc
        return {"stateToken": state_token, "passCode": code}


def factor_from_data(data: FactorData) -> Factor:
    """Build the :class:`Factor` strategy matching *data*'s ``factorType``."""
    if data.factor_type == PUSH:
        return PushFactor(data.id, data.factor_type, data.provider)
    return CodeFactor(data.id, data.factor_type, data.provider)
