"""Exception hierarchy for oktadance.

All exceptions inherit from :class:`OktadanceError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`oktadance.exit_codes`.
The CLI entry point in :func:`oktadance.app.main` catches ``OktadanceError``
and exits with the appropriate code.

Subclass hierarchy::

    OktadanceError (exit 1)
    +-- ConfigError           (exit 2)
    |   +-- MissingSessionError
    +-- AuthenticationError   (exit 3)
    +-- MfaInputError         (exit 4)
    +-- ProtocolError         (exit 5)
    +-- TransportError        (exit 6)
    +-- CancelledError        (exit 130)
        +-- DeadlineExceeded
"""

from __future__ import annotations

from typing import Optional

from oktadance.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CANCELLED,
    EXIT_CONFIG_ERROR,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_MFA_INPUT_ERROR,
    EXIT_PROTOCOL_ERROR,
)


class OktadanceError(Exception):
    """Base exception for all oktadance errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigError(OktadanceError):
    """Raised for caller or account misconfiguration.

    Covers a missing domain or client id, an HTTP client that follows
    redirects, an MFA challenge with no usable factor, and an MFA challenge
    that needs a handler when none was supplied.
    """

    exit_code = EXIT_CONFIG_ERROR


class MissingSessionError(ConfigError):
    """Raised when the authorize response carries no ``sid`` cookie."""


class AuthenticationError(OktadanceError):
    """Raised when the provider ends a login with a terminal failure status.

    Attributes:
        status: The raw ``status`` value reported by the provider (for example
            ``LOCKED_OUT``), or ``None`` when the response carried none.
    """

    exit_code = EXIT_AUTH_FAILURE

    def __init__(self, message: str, status: Optional[str] = None):
        super().__init__(message)
        self.status = status


class MfaInputError(OktadanceError):
    """Raised when the MFA handler fails to select a factor or read a code."""

    exit_code = EXIT_MFA_INPUT_ERROR


class ProtocolError(OktadanceError):
    """Raised when the provider answers with an unexpected status or body.

    Attributes:
        status_code: HTTP status code of the offending response.
        body: Raw response body text, kept for diagnostics.
    """

    exit_code = EXIT_PROTOCOL_ERROR

    def __init__(self, message: str, status_code: int = 0, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class TransportError(OktadanceError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused)."""

    exit_code = EXIT_CONNECTION_ERROR


class CancelledError(OktadanceError):
    """Raised when the caller's :class:`~oktadance.context.Context` is cancelled."""

    exit_code = EXIT_CANCELLED


class DeadlineExceeded(CancelledError):
    """Raised when a context deadline or a challenge wait cap runs out."""
