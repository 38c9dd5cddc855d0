"""MFA handlers: the human side of a factor challenge.

The orchestrator depends only on the :class:`MultiFactor` protocol:

- :meth:`MultiFactor.select` is called when the provider offers two or more
  factors. It is never called for a single factor.
- :meth:`MultiFactor.read_code` is called once per verify iteration of a
  one-time-code factor and may block on human input.

Two implementations ship with the package:

- :class:`ConsoleMultiFactor` -- interactive terminal prompts. The exact
  prompts are not a stable interface; implement :class:`MultiFactor`
  directly if you need one.
- :class:`PreferredFactorMultiFactor` -- picks a factor by type without
  asking (for example "always use push"), delegating anything else to a
  fallback handler.
"""

from __future__ import annotations

from typing import Optional, Protocol, Sequence, runtime_checkable

import typer

from oktadance.factors import Factor
from oktadance.output import get_terminal


@runtime_checkable
class MultiFactor(Protocol):
    """Capability contract for factor selection and code entry."""

    def select(self, factors: Sequence[Factor]) -> Optional[Factor]:
        """Return the factor to challenge, chosen from *factors*."""
        ...

    def read_code(self, factor: Factor) -> str:
        """Return a one-time code for *factor*."""
        ...


class ConsoleMultiFactor:
    """Prompt for credentials, factor choice, and codes on the terminal."""

    def request_username_password(self) -> tuple[str, str]:
        """Prompt for a username and a hidden password."""
        username = typer.prompt("username").strip()
        password = typer.prompt("password", hide_input=True).strip()
        return username, password

    def select(self, factors: Sequence[Factor]) -> Optional[Factor]:
        """List *factors* with an index and re-prompt until a valid one is chosen."""
        terminal = get_terminal()
        indexes = [str(i) for i in range(len(factors))]
        while True:
            # The menu is part of the prompt, so --quiet does not hide it.
            terminal.status("select factor:", always=True)
            for i, factor in enumerate(factors):
                terminal.status(f"  {i}\t{factor.factor_type} ({factor.provider})", always=True)

            choice = typer.prompt(f"factor [{', '.join(indexes)}]").strip()
            try:
                idx = int(choice)
            except ValueError:
                terminal.warning(f"'{choice}' is not a valid choice")
                continue
            if 0 <= idx < len(factors):
                return factors[idx]
            terminal.warning(f"{choice} is not an available factor")

    def read_code(self, factor: Factor) -> str:
        return typer.prompt("code").strip()


class PreferredFactorMultiFactor:
    """Select the first offered factor whose type is in a preference order.

    Args:
        factor_types: Factor types in order of preference, e.g. ``["push"]``.
        fallback: Handler used when no preferred type is offered, and for
            every code read. Without one, :meth:`select` returns ``None``
            when nothing matches and :meth:`read_code` raises.

    Example::

        mfa = PreferredFactorMultiFactor(["push"], fallback=ConsoleMultiFactor())
    """

    def __init__(
        self,
        factor_types: Sequence[str],
        fallback: Optional[MultiFactor] = None,
    ) -> None:
        self._factor_types = list(factor_types)
        self._fallback = fallback

    def select(self, factors: Sequence[Factor]) -> Optional[Factor]:
        for factor_type in self._factor_types:
            for factor in factors:
                if factor.factor_type == factor_type:
                    return factor
        if self._fallback is not None:
            return self._fallback.select(factors)
        return None

    def read_code(self, factor: Factor) -> str:
        if self._fallback is None:
            raise RuntimeError(f"no handler available to read a code for {factor.factor_type!r}")
        return self._fallback.read_code(factor)
