"""Config commands -- view and modify configuration.

Provides the ``specnav config`` sub-command group. ``show`` prints the
effective configuration for the current project (user file, project
``specnav.json`` and environment merged); ``set`` and ``reset`` edit the
user-level file only.
"""

from __future__ import annotations

from typing import Optional

import typer
from pydantic import ValidationError

from specnav.exit_codes import EXIT_INVALID_USAGE
from specnav.output import error, format_data, info, success

config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Show the effective configuration.

    Example::

        specnav config show
        specnav --json config show
    """
    from specnav.config import get_config_dir, resolve_config, resolve_root
    from specnav.exceptions import ConfigError

    obj = ctx.find_root().obj or {}
    root = resolve_root(obj.get("root"))
    try:
        config = resolve_config(root, cli_no_store=bool(obj.get("no_store")))
    except ConfigError as exc:
        error(f"Config error: {exc}")
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None

    info(f"Config directory: {get_config_dir()}")
    info(f"Project root: {root}")
    format_data(config.model_dump(mode="json"))


_TRUE_WORDS = ("true", "1", "yes", "on")


def _coerce(current: object, value: str) -> object:
    """Convert the command-line text *value* to the type of *current*."""
    if isinstance(current, bool):
        return value.lower() in _TRUE_WORDS
    if isinstance(current, list):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


def _leaf_parent(data: dict, key: str) -> Optional[dict]:
    """Return the mapping holding the scalar setting named by dotted *key*.

    ``None`` when any segment is missing or the key names a whole section.
    """
    *sections, leaf = key.split(".")
    parent = data
    for section in sections:
        parent = parent.get(section)
        if not isinstance(parent, dict):
            return None
    if leaf not in parent or isinstance(parent[leaf], dict):
        return None
    return parent


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="Dotted setting name, e.g. 'store.enabled'."),
    value: str = typer.Argument(help="New value; lists are comma-separated."),
) -> None:
    """Change one setting in the user config file.

    Example::

        specnav config set store.enabled false
        specnav config set index.exclude "generated/,build/"
        specnav config set output.format json
    """
    from specnav.config import load_global_config, save_global_config
    from specnav.models import GlobalConfig

    data = load_global_config().model_dump(mode="json")
    parent = _leaf_parent(data, key)
    if parent is None:
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=EXIT_INVALID_USAGE)

    leaf = key.rsplit(".", 1)[-1]
    parent[leaf] = _coerce(parent[leaf], value)
    try:
        updated = GlobalConfig.model_validate(data)
    except ValidationError as exc:
        error(f"Rejected value for {key}: {exc}")
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None

    save_global_config(updated)
    success(f"{key} = {parent[leaf]}")


@config_app.command("reset")
def config_reset(
    force: bool = typer.Option(False, "--force", "-f", help="Do not ask for confirmation."),
) -> None:
    """Reset the user configuration to defaults."""
    from specnav.config import save_global_config
    from specnav.models import GlobalConfig

    if not force and not typer.confirm("Reset all config to defaults?"):
        info("Cancelled.")
        raise typer.Exit()

    save_global_config(GlobalConfig())
    success("Configuration reset to defaults.")
