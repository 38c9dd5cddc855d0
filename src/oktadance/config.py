"""Where the CLI finds its provider settings and the user's password.

Settings come from, highest priority first:

1. command-line flags, passed to :func:`load_config` as overrides;
2. ``$OKTA_DOMAIN`` and ``$OKTA_CLIENT_ID``;
3. the JSON object in :func:`config_path`, written by ``oktadance config set``;
4. :class:`~oktadance.models.DanceConfig` defaults.

The config file lives in ``$XDG_CONFIG_HOME/oktadance/`` (``~/.config``
when unset) on Linux and the BSDs, and in ``~/.oktadance/`` elsewhere.
Only provider settings are stored there; passwords, session tokens, and
session ids never touch the disk.
"""

from __future__ import annotations

import getpass
import json
import os
import platform
import sys
import tempfile
from pathlib import Path
from typing import Any, Callable

from pydantic import ValidationError

from oktadance.exceptions import ConfigError
from oktadance.models import DanceConfig

ENV_DOMAIN = "OKTA_DOMAIN"
ENV_CLIENT_ID = "OKTA_CLIENT_ID"

_ENV_FIELDS = {ENV_DOMAIN: "domain", ENV_CLIENT_ID: "client_id"}


def _is_xdg_platform() -> bool:
    system = platform.system()
    return system == "Linux" or system.endswith("BSD")


def get_config_dir() -> Path:
    """Directory holding ``config.json``. Not created until something is saved."""
    if not _is_xdg_platform():
        return Path.home() / ".oktadance"
    xdg_home = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(xdg_home) / "oktadance"


def config_path() -> Path:
    return get_config_dir() / "config.json"


def load_config_file() -> dict[str, Any]:
    """Return the stored settings, or ``{}`` when nothing was saved yet.

    Raises:
        ConfigError: If the file is unreadable or not a JSON object.
    """
    path = config_path()
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except OSError as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config at {path}: expected a JSON object")
    return data


def save_config(changes: dict[str, Any]) -> Path:
    """Apply *changes* to the stored settings and return the file path.

    A ``None`` value deletes that key. The file is replaced atomically, so
    a crash mid-write leaves the previous settings intact.
    """
    settings = load_config_file()
    for key, value in changes.items():
        if value is None:
            settings.pop(key, None)
        else:
            settings[key] = value

    path = config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".config.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(settings, handle, indent=2, sort_keys=True)
            handle.write("\n")
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return path


def load_config(**overrides: Any) -> DanceConfig:
    """Merge every settings source into a validated :class:`DanceConfig`.

    Overrides whose value is ``None`` are treated as not given, so CLI
    options can be forwarded unconditionally.

    Raises:
        ConfigError: If no domain is configured from any source, the config
            file is invalid, or a merged value fails validation.
    """
    values = load_config_file()
    for env_var, field in _ENV_FIELDS.items():
        if os.environ.get(env_var):
            values[field] = os.environ[env_var]
    values.update((key, value) for key, value in overrides.items() if value is not None)

    if not values.get("domain"):
        raise ConfigError(
            f"No identity provider domain configured; pass --domain or set ${ENV_DOMAIN}"
        )
    try:
        return DanceConfig.model_validate(values)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


def _from_env(name: str) -> str:
    if name not in os.environ:
        raise ConfigError(f"Environment variable '{name}' is not set")
    return os.environ[name]


def _from_file(name: str) -> str:
    path = Path(name).expanduser()
    try:
        return path.read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        raise ConfigError(f"Password file not found: {path}") from None
    except OSError as exc:
        raise ConfigError(f"Cannot read password file {path}: {exc}") from exc


_SOURCES: dict[str, Callable[[str], str]] = {"env": _from_env, "file": _from_file}


def resolve_credential(source: str, prompt: str = "password: ") -> str:
    """Read a secret from ``env:NAME``, ``file:PATH``, or an interactive ``prompt``.

    Raises:
        ConfigError: If the variable or file is missing, the prompt has no
            TTY to read from, or *source* names none of the above.
    """
    if source == "prompt":
        if not sys.stdin.isatty():
            raise ConfigError("Cannot prompt for a password: stdin is not a TTY")
        return getpass.getpass(prompt).strip()

    kind, sep, name = source.partition(":")
    reader = _SOURCES.get(kind)
    if not sep or reader is None:
        raise ConfigError(f"Unknown credential source format: {source}")
    return reader(name)
