"""Typer application and CLI entry point for oktadance.

Commands::

    oktadance login    # authenticate, authorize, print sid=<sid>
    oktadance token    # authenticate only, print the session token
    oktadance session  # show the session behind a sid
    oktadance logout   # close the session behind a sid
    oktadance config   # show or update the config file

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. Every command reports an
:class:`~oktadance.exceptions.OktadanceError` on stderr and exits with the
error's ``exit_code``.
"""

from __future__ import annotations

import logging
import signal
import sys
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Iterator, Optional

import typer
from pydantic import ValidationError
from rich.logging import RichHandler

from oktadance import __version__
from oktadance.exceptions import OktadanceError
from oktadance.exit_codes import EXIT_CANCELLED, EXIT_GENERIC_FAILURE
from oktadance.output import OutputMode, Terminal, get_terminal, set_terminal

if TYPE_CHECKING:
    from oktadance.dance import Dance
    from oktadance.models import SessionToken

app = typer.Typer(
    name="oktadance",
    help="Log in to an Okta-style identity provider and manage the session.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

config_app = typer.Typer(no_args_is_help=True)
app.add_typer(config_app, name="config", help="Show or update the config file.")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"oktadance {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True,
        help="Show version and exit.",
    ),
    domain: Optional[str] = typer.Option(
        None, "--domain", "-d", help="Identity provider domain (or $OKTA_DOMAIN)."
    ),
    client_id: Optional[str] = typer.Option(
        None, "--client-id", help="Application client id (or $OKTA_CLIENT_ID)."
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Per-request timeout in seconds."
    ),
    max_poll_wait: Optional[float] = typer.Option(
        None, "--max-poll-wait", help="Give up on an MFA challenge after this many seconds."
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-essential output."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
    trace: bool = typer.Option(
        False, "--trace", help="Dump every HTTP request and response to stderr."
    ),
    pretty_json: bool = typer.Option(
        False, "--pretty-json", help="Indent JSON bodies in --trace dumps."
    ),
) -> None:
    """Install the terminal and stash shared options in ``ctx.obj``."""
    mode = OutputMode.AUTO
    if json_output:
        mode = OutputMode.JSON
    elif plain_output:
        mode = OutputMode.PLAIN

    terminal = Terminal(mode=mode, no_color=no_color, quiet=quiet, verbose=verbose)
    set_terminal(terminal)
    if verbose:
        _configure_logging(terminal)

    ctx.ensure_object(dict)
    ctx.obj["overrides"] = {
        "domain": domain,
        "client_id": client_id,
        "timeout": timeout,
        "max_poll_wait": max_poll_wait,
        "pretty_json": pretty_json or None,
    }
    ctx.obj["trace"] = trace


def _configure_logging(terminal: Terminal) -> None:
    """Send ``oktadance.*`` debug logs to stderr through Rich."""
    handler = RichHandler(console=terminal.err, show_path=False, markup=False)
    package_logger = logging.getLogger("oktadance")
    package_logger.handlers = [handler]
    package_logger.setLevel(logging.DEBUG)


@contextmanager
def _reported_errors() -> Iterator[None]:
    """Turn an :class:`OktadanceError` into an error message and exit code."""
    try:
        yield
    except OktadanceError as exc:
        get_terminal().error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


def _make_dance(ctx: typer.Context) -> Dance:
    from oktadance.config import load_config
    from oktadance.dance import Dance

    obj = ctx.obj or {}
    config = load_config(**obj.get("overrides", {}))
    log = get_terminal().trace if obj.get("trace") else None
    return Dance(config, log=log)


def _authenticate(
    dance: Dance,
    username: Optional[str],
    password_source: str,
    factors: Optional[list[str]],
    deadline: Optional[float],
) -> SessionToken:
    from oktadance.config import resolve_credential
    from oktadance.context import Context
    from oktadance.mfa import ConsoleMultiFactor, MultiFactor, PreferredFactorMultiFactor

    console = ConsoleMultiFactor()
    if username is None and password_source == "prompt":
        username, password = console.request_username_password()
    else:
        if username is None:
            username = typer.prompt("username").strip()
        password = resolve_credential(password_source)

    mfa: MultiFactor = console
    if factors:
        mfa = PreferredFactorMultiFactor(factors, fallback=console)

    return dance.authenticate(username, password, mfa, ctx=Context(timeout=deadline))


_USERNAME = typer.Option(None, "--username", "-u", help="Login name; prompted when omitted.")
_PASSWORD_SOURCE = typer.Option(
    "prompt", "--password-source", help="Password source: env:VAR, file:/path, or prompt."
)
_FACTOR = typer.Option(
    None, "--factor", help="Preferred factor type, e.g. push. Repeat to rank several."
)
_DEADLINE = typer.Option(
    None, "--deadline", help="Abort the whole login after this many seconds."
)


@app.command("login")
def login_command(
    ctx: typer.Context,
    username: Optional[str] = _USERNAME,
    password_source: str = _PASSWORD_SOURCE,
    factor: Optional[list[str]] = _FACTOR,
    deadline: Optional[float] = _DEADLINE,
    close: bool = typer.Option(
        False, "--close", help="Close the session again once it is established."
    ),
) -> None:
    """Authenticate, establish a session, and print its sid."""
    with _reported_errors():
        with _make_dance(ctx) as dance:
            token = _authenticate(dance, username, password_source, factor, deadline)
            sid = dance.authorize(token)
            get_terminal().result(f"sid={sid}")
            if close:
                dance.close_session(sid)
                get_terminal().success("Session closed.")


@app.command("token")
def token_command(
    ctx: typer.Context,
    username: Optional[str] = _USERNAME,
    password_source: str = _PASSWORD_SOURCE,
    factor: Optional[list[str]] = _FACTOR,
    deadline: Optional[float] = _DEADLINE,
) -> None:
    """Authenticate and print the single-use session token."""
    with _reported_errors():
        with _make_dance(ctx) as dance:
            token = _authenticate(dance, username, password_source, factor, deadline)
            get_terminal().result(str(token))


@app.command("session")
def session_command(
    ctx: typer.Context,
    sid: str = typer.Argument(help="Session id (the sid cookie value)."),
) -> None:
    """Show the session behind a sid."""
    from oktadance.models import SessionID

    with _reported_errors():
        with _make_dance(ctx) as dance:
            snapshot = dance.session(SessionID(sid))
            get_terminal().document(snapshot.model_dump(mode="json", by_alias=True))


@app.command("logout")
def logout_command(
    ctx: typer.Context,
    sid: str = typer.Argument(help="Session id (the sid cookie value)."),
) -> None:
    """Close the session behind a sid."""
    from oktadance.models import SessionID

    with _reported_errors():
        with _make_dance(ctx) as dance:
            dance.close_session(SessionID(sid))
            get_terminal().success("Session closed.")


@config_app.command("show")
def config_show() -> None:
    """Print the config file and its location."""
    from oktadance.config import config_path, load_config_file

    with _reported_errors():
        data = load_config_file()
        get_terminal().info(f"Config file: {config_path()}")
        get_terminal().document(data)


@config_app.command("set")
def config_set(
    domain: Optional[str] = typer.Option(None, "--domain", help="Identity provider domain."),
    client_id: Optional[str] = typer.Option(None, "--client-id", help="Application client id."),
    redirect_uri: Optional[str] = typer.Option(
        None, "--redirect-uri", help="Redirect URI sent to authorize."
    ),
) -> None:
    """Store defaults in the config file."""
    from oktadance.config import save_config
    from oktadance.models import DanceConfig

    updates = {"domain": domain, "client_id": client_id, "redirect_uri": redirect_uri}
    updates = {key: value for key, value in updates.items() if value is not None}
    if not updates:
        get_terminal().error("Nothing to set; pass --domain, --client-id, or --redirect-uri.")
        raise typer.Exit(code=2)
    if domain is not None:
        # Store the normalised form, e.g. without a scheme prefix.
        try:
            updates["domain"] = DanceConfig(domain=domain).domain
        except ValidationError as exc:
            get_terminal().error(f"Invalid domain {domain!r}: {exc.errors()[0]['msg']}")
            raise typer.Exit(code=2) from None

    with _reported_errors():
        path = save_config(updates)
        get_terminal().success(f"Saved {', '.join(sorted(updates))} to {path}")


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_CANCELLED)

    signal.signal(signal.SIGINT, _handler)


def main() -> None:
    """CLI entry point invoked by the ``oktadance`` console script."""
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_CANCELLED)
    except Exception as exc:
        get_terminal().error(f"Unexpected error: {exc}")
        sys.exit(EXIT_GENERIC_FAILURE)
