"""Shared test fixtures for oktadance.

Provides a scripted identity provider built on :class:`httpx.MockTransport`,
a ready-made :class:`~oktadance.dance.Dance` wired to it, a recorder that
replaces the inter-poll wait, and config isolation for CLI tests.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterator

import pytest

from oktadance.context import Context
from oktadance.dance import Dance
from oktadance.models import DanceConfig
from oktadance.output import reset_terminal
from scripted import CLIENT_ID, DOMAIN, ScriptedProvider


@pytest.fixture(autouse=True)
def _reset_terminal_between_tests() -> Iterator[None]:
    """Forget the installed Terminal after every test."""
    yield
    reset_terminal()


@pytest.fixture
def provider() -> ScriptedProvider:
    return ScriptedProvider()


@pytest.fixture
def config() -> DanceConfig:
    return DanceConfig(domain=DOMAIN, client_id=CLIENT_ID)


@pytest.fixture
def dance(provider: ScriptedProvider, config: DanceConfig) -> Iterator[Dance]:
    client = provider.client()
    with Dance(config, http_client=client) as d:
        yield d
    client.close()


@pytest.fixture
def sleeps(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    """Replace :meth:`Context.sleep` with a recorder that does not wait.

    The recorder still honours cancellation so loop-abort tests keep working.
    """
    recorded: list[float] = []

    def _sleep(self: Context, seconds: float) -> None:
        self.check()
        recorded.append(seconds)

    monkeypatch.setattr(Context, "sleep", _sleep)
    return recorded


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the config directory at *tmp_path* and clear provider env vars."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setattr("oktadance.config._is_xdg_platform", lambda: True)
    for var in ("OKTA_DOMAIN", "OKTA_CLIENT_ID", "OKTA_PASS"):
        monkeypatch.delenv(var, raising=False)
    return tmp_path


@pytest.fixture
def cli_runner():
    from typer.testing import CliRunner

    return CliRunner()
