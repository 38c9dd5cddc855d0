"""Cancellation and deadline propagation for oktadance operations.

A :class:`Context` is created by the caller and passed through every
network call and every wait of a login attempt. It can be cancelled from
any thread (for example a signal handler or a UI "Cancel" button), and it
may carry a deadline. Each request's timeout is bounded by the time left,
and the inter-poll wait of a factor challenge returns as soon as the
context is cancelled.

Example::

    ctx = Context(timeout=120)
    token = dance.authenticate("alice", password, mfa, ctx=ctx)
"""

from __future__ import annotations

import threading
import time
from typing import Optional

from oktadance.exceptions import CancelledError, DeadlineExceeded


class Context:
    """Cancellation token with an optional monotonic deadline.

    Args:
        timeout: Seconds from now after which the context expires. ``None``
            means no deadline.
    """

    def __init__(self, timeout: Optional[float] = None) -> None:
        self._cancelled = threading.Event()
        self._deadline: Optional[float] = None
        if timeout is not None:
            self._deadline = time.monotonic() + timeout

    def cancel(self) -> None:
        """Cancel the context. Safe to call from any thread, more than once."""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def deadline(self) -> Optional[float]:
        """The :func:`time.monotonic` deadline, or ``None``."""
        return self._deadline

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline (never negative), or ``None``."""
        if self._deadline is None:
            return None
        return max(self._deadline - time.monotonic(), 0.0)

    def check(self) -> None:
        """Raise if the context is cancelled or past its deadline.

        Raises:
            CancelledError: If :meth:`cancel` was called.
            DeadlineExceeded: If the deadline has passed.
        """
        if self._cancelled.is_set():
            raise CancelledError("operation cancelled")
        if self._deadline is not None and time.monotonic() >= self._deadline:
            raise DeadlineExceeded("operation deadline exceeded")

    def timeout_for(self, default: float) -> float:
        """Return *default* bounded by the time remaining on the context."""
        remaining = self.remaining()
        if remaining is None:
            return default
        return min(default, remaining)

    def sleep(self, seconds: float) -> None:
        """Wait *seconds*, returning early with an error if cancelled.

        The wait is cut short at the deadline, in which case
        :class:`~oktadance.exceptions.DeadlineExceeded` is raised instead of
        letting the caller start another round trip.

        Raises:
            CancelledError: If the context is cancelled before or during the wait.
            DeadlineExceeded: If the deadline passes before or during the wait.
        """
        self.check()
        if self._cancelled.wait(self.timeout_for(seconds)):
            raise CancelledError("operation cancelled")
        self.check()


def background() -> Context:
    """Return a fresh context that is never cancelled and has no deadline."""
    return Context()
