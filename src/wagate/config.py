"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for wagate:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.wagate/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Gateway config** -- A single :class:`~wagate.models.GatewayConfig`
  JSON file storing the admin identity, the tenant store location, and
  webhook / OAuth2 settings.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables, the config file, and defaults into the effective
  configuration.

All file writes go through :func:`atomic_write`, which is also used by
:class:`~wagate.auth.store.FileTenantStore`.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from wagate.exceptions import ConfigError
from wagate.models import GatewayConfig

_APP_NAME = "wagate"
_CONFIG_FILENAME = "config.json"
_STORE_FILENAME = "tenants.json"

ENV_STORE_PATH = "WAGATE_STORE_PATH"
ENV_WEBHOOK_BASE_URL = "WAGATE_WEBHOOK_BASE_URL"
ENV_ADMIN_USER = "WAGATE_ADMIN_USER"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform uses XDG base directories (Linux/FreeBSD)."""
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

    On Linux/BSD: ``$XDG_CONFIG_HOME/wagate/`` (default ``~/.config/wagate/``).
    On macOS/Windows: ``~/.wagate/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (tenant store, crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/wagate/`` (default ``~/.local/share/wagate/``).
    On macOS/Windows: ``~/.wagate/data/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. When *mode* is
    given, permissions are applied to the temp file before any content is
    written, so secrets are never readable by others even momentarily.
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
        if mode is not None:
            os.chmod(tmp_path, mode)
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close below
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


# --- Gateway config ---


def _config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def load_gateway_config() -> GatewayConfig:
    """Load the gateway configuration from the XDG config directory.

    Returns:
        The deserialised :class:`~wagate.models.GatewayConfig`. If the
        file does not exist, a default instance is returned.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = _config_path()
    if not path.is_file():
        return GatewayConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return GatewayConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid gateway config at {path}: {exc}") from exc


def save_gateway_config(config: GatewayConfig) -> None:
    """Persist the gateway configuration atomically to disk."""
    data = config.model_dump(mode="json")
    atomic_write(_config_path(), json.dumps(data, indent=2) + "\n")


def default_store_path() -> Path:
    return get_data_dir() / _STORE_FILENAME


# --- Precedence resolution ---


def resolve_config(
    cli_store_path: Optional[str] = None,
    cli_webhook_base_url: Optional[str] = None,
) -> GatewayConfig:
    """Resolve the effective gateway config.

    Precedence (high to low):
        1. CLI flags (``cli_store_path``, ``cli_webhook_base_url``)
        2. Environment variables (``WAGATE_STORE_PATH``,
           ``WAGATE_WEBHOOK_BASE_URL``, ``WAGATE_ADMIN_USER``)
        3. Config file (``~/.config/wagate/config.json``)
        4. Defaults

    The returned config always has ``store_path`` filled in.
    """
    config = load_gateway_config()

    env_store = os.environ.get(ENV_STORE_PATH)
    if env_store:
        config.store_path = env_store
    env_base_url = os.environ.get(ENV_WEBHOOK_BASE_URL)
    if env_base_url:
        config.webhook.base_url = env_base_url
    env_admin = os.environ.get(ENV_ADMIN_USER)
    if env_admin:
        config.admin_username = env_admin

    if cli_store_path is not None:
        config.store_path = cli_store_path
    if cli_webhook_base_url is not None:
        config.webhook.base_url = cli_webhook_base_url

    if not config.store_path:
        config.store_path = str(default_store_path())
    return config
