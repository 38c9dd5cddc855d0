"""Numeric process exit codes for the ``oktadance`` command line.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~oktadance.exceptions.OktadanceError` subclass.
Shell wrappers can inspect the exit code to tell a rejected password from
a network outage without parsing stderr.

Example::

    $ oktadance login --username alice@example.com
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- the provider rejected the login
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_CONFIG_ERROR = 2
"""Configuration is missing or inconsistent (no domain, no MFA handler, no sid)."""

EXIT_AUTH_FAILURE = 3
"""The identity provider ended the login with a failure status."""

EXIT_MFA_INPUT_ERROR = 4
"""Factor selection or one-time-code entry failed."""

EXIT_PROTOCOL_ERROR = 5
"""The identity provider returned an unexpected status or body."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_CANCELLED = 130
"""The operation was cancelled or ran past its deadline."""
