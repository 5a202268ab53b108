"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for weblogin:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.weblogin/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Config file** -- a single ``config.json`` holding both the
  :class:`~weblogin.models.LoginSettings` keys and the stored access token.
  :func:`read_config_file` and :func:`atomic_write` are shared with
  :class:`~weblogin.credentials.CredentialStore`, which owns the token key.
* **Precedence resolution** -- :func:`resolve_settings` merges CLI flags,
  environment variables, the config file, and defaults.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from weblogin.exceptions import ConfigError
from weblogin.models import LoginSettings

_APP_NAME = "weblogin"
_CONFIG_FILENAME = "config.json"
_AGENT_SOCKET_FILENAME = "agent.sock"

ENV_CONFIG = "WEBLOGIN_CONFIG"
ENV_BASE_URL = "WEBLOGIN_BASE_URL"
ENV_API_URL = "WEBLOGIN_API_URL"
ENV_POLL_INTERVAL = "WEBLOGIN_POLL_INTERVAL"
ENV_DEADLINE = "WEBLOGIN_DEADLINE"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform follows the XDG Base Directory layout (Linux/BSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/weblogin/`` (default ``~/.config/weblogin/``).
    On macOS/Windows: ``~/.weblogin/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs, agent socket), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/weblogin/`` (default ``~/.local/share/weblogin/``).
    On macOS/Windows: ``~/.weblogin/data/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_file() -> Path:
    """Return the path of ``config.json``, honouring ``$WEBLOGIN_CONFIG``."""
    override = os.environ.get(ENV_CONFIG)
    if override:
        return Path(override).expanduser()
    return get_config_dir() / _CONFIG_FILENAME


def default_agent_socket() -> Path:
    return get_data_dir() / _AGENT_SOCKET_FILENAME


# --- Atomic file writes ---


def atomic_write(path: Path, data: str, mode: int = 0o600) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. Permissions are
    set on the temp file before any content is written, so the final file
    is never readable by others, even momentarily.

    Raises:
        OSError: If the directory cannot be created or the file written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        os.chmod(tmp_path, mode)
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


def read_config_file(path: Path) -> dict[str, Any]:
    """Read ``config.json`` into a plain dict.

    Returns:
        The parsed object, or an empty dict when the file does not exist.

    Raises:
        ConfigError: If the file exists but is not a JSON object.
    """
    if not path.is_file():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config at {path}: expected a JSON object")
    return data


def write_config_file(path: Path, data: dict[str, Any]) -> None:
    atomic_write(path, json.dumps(data, indent=2) + "\n")


# --- Settings ---


def load_settings(path: Optional[Path] = None) -> LoginSettings:
    """Load :class:`~weblogin.models.LoginSettings` from the config file.

    Keys that are not settings (the stored access token among them) are
    ignored.

    Raises:
        ConfigError: If the file contains invalid JSON or invalid values.
    """
    path = path or get_config_file()
    data = read_config_file(path)
    try:
        return LoginSettings.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid settings in {path}: {exc}") from exc


def save_settings(settings: LoginSettings, path: Optional[Path] = None) -> None:
    """Persist settings, keeping every other key (including the token) in place."""
    path = path or get_config_file()
    data = read_config_file(path)
    data.update(settings.model_dump(mode="json", exclude_none=True))
    write_config_file(path, data)


def _env_float(name: str) -> Optional[float]:
    raw = os.environ.get(name)
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number of seconds, got {raw!r}") from exc


def resolve_settings(
    cli_base_url: Optional[str] = None,
    config_path: Optional[Path] = None,
) -> LoginSettings:
    """Resolve settings with the full precedence chain.

    Precedence (high to low):
        1. CLI flags (``cli_base_url``)
        2. Environment variables (``WEBLOGIN_BASE_URL``, ``WEBLOGIN_API_URL``,
           ``WEBLOGIN_POLL_INTERVAL``, ``WEBLOGIN_DEADLINE``)
        3. User config (``~/.config/weblogin/config.json``)
        4. Defaults

    Raises:
        ConfigError: If the config file or an environment value is invalid.
    """
    settings = load_settings(config_path)
    overrides: dict[str, Any] = {}

    env_base_url = os.environ.get(ENV_BASE_URL)
    if env_base_url:
        overrides["base_url"] = env_base_url
    env_api_url = os.environ.get(ENV_API_URL)
    if env_api_url:
        overrides["api_url"] = env_api_url
    poll_interval = _env_float(ENV_POLL_INTERVAL)
    if poll_interval is not None:
        overrides["poll_interval"] = poll_interval
    deadline = _env_float(ENV_DEADLINE)
    if deadline is not None:
        overrides["deadline"] = deadline

    if cli_base_url is not None:
        overrides["base_url"] = cli_base_url

    if not overrides:
        return settings
    try:
        return LoginSettings.model_validate({**settings.model_dump(), **overrides})
    except ValidationError as exc:
        raise ConfigError(f"Invalid settings override: {exc}") from exc
