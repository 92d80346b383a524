"""Where specnav keeps its files and how the effective configuration is built.

Three layers of settings exist. Defaults come from the pydantic models in
:mod:`specnav.models`; a user file (``config.json`` in :func:`get_config_dir`)
overrides them; a ``specnav.json`` at the project root overrides the user
file key by key. ``SPECNAV_NO_STORE`` and the CLI flags are applied last by
:func:`resolve_config`. The project root itself comes from ``--root``,
``SPECNAV_ROOT`` or the working directory (:func:`resolve_root`).

The user file is only ever replaced atomically (:func:`_atomic_write`).
"""

from __future__ import annotations

import contextlib
import hashlib
import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from specnav.exceptions import ConfigError
from specnav.models import GlobalConfig

_APP_NAME = "specnav"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "specnav.json"

ENV_ROOT = "SPECNAV_ROOT"
ENV_NO_STORE = "SPECNAV_NO_STORE"


# --- Directories ---

# kind -> (XDG variable, default under $HOME, subdirectory of ~/.specnav elsewhere)
_DIRECTORIES: dict[str, tuple[str, tuple[str, ...], str]] = {
    "config": ("XDG_CONFIG_HOME", (".config",), ""),
    "cache": ("XDG_CACHE_HOME", (".cache",), "cache"),
    "data": ("XDG_DATA_HOME", (".local", "share"), "logs"),
}


def _is_xdg_platform() -> bool:
    """Linux and the BSDs follow the XDG Base Directory layout."""
    system = platform.system()
    return system == "Linux" or system.endswith("BSD")


def _app_dir(kind: str) -> Path:
    env_var, home_default, fallback = _DIRECTORIES[kind]
    if _is_xdg_platform():
        base = os.environ.get(env_var) or Path.home().joinpath(*home_default)
        path = Path(base) / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
        if fallback:
            path = path / fallback
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_dir() -> Path:
    """User configuration directory (created on demand).

    ``$XDG_CONFIG_HOME/specnav`` on Linux/BSD, ``~/.specnav`` elsewhere.
    """
    return _app_dir("config")


def get_cache_dir() -> Path:
    """Cache directory holding one index store per project.

    ``$XDG_CACHE_HOME/specnav`` on Linux/BSD, ``~/.specnav/cache``
    elsewhere. Everything below it can be deleted; the next run rebuilds.
    """
    return _app_dir("cache")


def get_data_dir() -> Path:
    """Directory for crash logs: ``$XDG_DATA_HOME/specnav`` or ``~/.specnav/logs``."""
    return _app_dir("data")


def get_project_store_dir(root: Path) -> Path:
    """Index store directory for the project at *root*.

    Named ``<root name>-<hash>`` after the absolute root path, so two
    checkouts of one repository get separate stores.
    """
    resolved = root.resolve()
    digest = hashlib.sha256(str(resolved).encode("utf-8")).hexdigest()[:16]
    return get_cache_dir() / "projects" / f"{resolved.name}-{digest}"


def _atomic_write(path: Path, data: str) -> None:
    """Replace *path* with *data* via a temp file in the same directory."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_name)
        raise


# --- Global config ---


def _global_config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration from the XDG config directory.

    Returns:
        The deserialised :class:`~specnav.models.GlobalConfig`, or a
        default instance when the file does not exist.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically to disk."""
    data = config.model_dump(mode="json")
    _atomic_write(_global_config_path(), json.dumps(data, indent=2) + "\n")


# --- Project-local config ---


def load_project_config(root: Path) -> Optional[dict[str, Any]]:
    """Load project configuration from ``<root>/specnav.json``.

    Returns:
        The parsed JSON object, or ``None`` if the file does not exist.

    Raises:
        ConfigError: If the file exists but is not a JSON object.
    """
    path = root / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid project config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Project config at {path} must be a JSON object")
    return data


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes", "on")


# --- Precedence resolution ---


def resolve_root(cli_root: Optional[str | Path] = None) -> Path:
    """Return the project root: CLI flag, then ``SPECNAV_ROOT``, then the cwd."""
    if cli_root is not None:
        return Path(cli_root).resolve()
    env_root = os.environ.get(ENV_ROOT)
    if env_root:
        return Path(env_root).resolve()
    return Path.cwd().resolve()


def resolve_config(
    root: Path,
    cli_format: Optional[str] = None,
    cli_no_store: bool = False,
) -> GlobalConfig:
    """Resolve config with full precedence chain.

    Precedence (high to low):
        1. CLI flags (``cli_format``, ``cli_no_store``)
        2. Environment variables (``SPECNAV_NO_STORE``)
        3. Project config (``<root>/specnav.json``)
        4. User config (``~/.config/specnav/config.json``)
        5. Defaults

    Raises:
        ConfigError: If a config file is invalid or the merge fails
            validation.
    """
    # 5 + 4. Load base global config (fills in defaults automatically)
    global_cfg = load_global_config()

    # 3. Layer in project config
    project = load_project_config(root)
    if project is not None:
        try:
            global_cfg = GlobalConfig.model_validate(
                _deep_merge(global_cfg.model_dump(mode="json"), project)
            )
        except ValueError as exc:
            raise ConfigError(f"Invalid project config in {root}: {exc}") from exc

    # 2 + 1. Environment and CLI
    if _env_flag(ENV_NO_STORE) or cli_no_store:
        global_cfg.store.enabled = False
    if cli_format is not None:
        global_cfg.output.format = cli_format

    return global_cfg
