"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for spconnect:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.spconnect/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Global config** -- A single :class:`~spconnect.models.GlobalConfig`
  JSON file storing resiliency defaults and the interactive switch.
* **Precedence resolution** -- :func:`resolve_resiliency` merges CLI flags,
  environment variables, and the global config into the effective
  :class:`~spconnect.models.ResiliencyOptions`.
* **Token cache location** -- :func:`get_token_cache_path` is the single
  per-application file used by the Azure AD native flow.

All file writes use an atomic temp-file-then-rename strategy
(:func:`atomic_write`) to prevent data loss on crash or power failure.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from spconnect.exceptions import ConfigurationError
from spconnect.models import GlobalConfig, ResiliencyOptions

_APP_NAME = "spconnect"
_CONFIG_FILENAME = "config.json"
_TOKEN_CACHE_FILENAME = "tokencache.json"

RESILIENCY_ENV_VARS: dict[str, str] = {
    "minimal_health_score": "SPCONNECT_MIN_HEALTH_SCORE",
    "retry_count": "SPCONNECT_RETRY_COUNT",
    "retry_wait": "SPCONNECT_RETRY_WAIT",
    "request_timeout": "SPCONNECT_REQUEST_TIMEOUT",
}
"""Environment variables that override the configured resiliency defaults."""


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
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

    On Linux/BSD: ``$XDG_CONFIG_HOME/spconnect/`` (default ``~/.config/spconnect/``).
    On macOS/Windows: ``~/.spconnect/``.

    Returns:
        Absolute path to the configuration directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        base = _xdg_base("XDG_CONFIG_HOME", (".config",))
        path = base / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (token cache, crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/spconnect/`` (default ``~/.local/share/spconnect/``).
    On macOS/Windows: ``~/.spconnect/data/``.

    Returns:
        Absolute path to the data directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        base = _xdg_base("XDG_DATA_HOME", (".local", "share"))
        path = base / _APP_NAME
    else:
        path = _fallback_base_dir() / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_token_cache_path() -> Path:
    """Return the path of the per-application token cache file.

    The file itself may not exist yet.
    """
    return get_data_dir() / _TOKEN_CACHE_FILENAME


# --- Atomic file writes ---


def atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is guaranteed to be an atomic rename on POSIX systems.
    On success the temp file is renamed over *path*; on any failure the temp
    file is cleaned up.

    Args:
        path: Destination file.
        data: Text content to write (UTF-8).
        mode: Optional permission bits applied to the temp file before any
            content is written (e.g. ``0o600`` for secrets).
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
        # Clean up the temp file on any error (including KeyboardInterrupt).
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Global config ---


def _global_config_path() -> Path:
    """Path to the global config file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration from the XDG config directory.

    Returns:
        The deserialised :class:`~spconnect.models.GlobalConfig`. If the
        file does not exist, a default instance is returned.

    Raises:
        ConfigurationError: If the file exists but contains invalid JSON or
            fails Pydantic validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        text = path.read_text(encoding="utf-8")
        data = json.loads(text)
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically to disk.

    Args:
        config: The configuration to save.
    """
    data = config.model_dump(mode="json")
    atomic_write(_global_config_path(), json.dumps(data, indent=2) + "\n")


# --- Precedence resolution ---


def resolve_resiliency(
    overrides: Optional[dict[str, Optional[int]]] = None,
    config: Optional[GlobalConfig] = None,
) -> ResiliencyOptions:
    """Resolve the effective resiliency options.

    Precedence (high to low):
        1. ``overrides`` (CLI flags / explicit parameters; ``None`` values skipped)
        2. Environment variables (see :data:`RESILIENCY_ENV_VARS`)
        3. User config (``~/.config/spconnect/config.json``)
        4. Defaults

    Args:
        overrides: Field name to value mapping from the caller.
        config: Global config to use; loaded from disk when omitted.

    Returns:
        A validated :class:`~spconnect.models.ResiliencyOptions`.

    Raises:
        ConfigurationError: If an environment variable is not an integer or
            the merged values fail validation.
    """
    # 4 + 3. Defaults layered with the user config
    if config is None:
        config = load_global_config()
    values = config.resiliency.model_dump()

    # 2. Environment variables
    for field, env_var in RESILIENCY_ENV_VARS.items():
        raw = os.environ.get(env_var)
        if raw is None or raw == "":
            continue
        try:
            values[field] = int(raw)
        except ValueError:
            raise ConfigurationError(
                f"Environment variable {env_var} must be an integer, got '{raw}'"
            ) from None

    # 1. Explicit overrides (highest precedence)
    for field, value in (overrides or {}).items():
        if value is not None:
            values[field] = value

    try:
        return ResiliencyOptions.model_validate(values)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid resiliency settings: {exc}") from exc
