"""Shared helpers for commands that need an indexed project.

:func:`open_project` resolves the root and effective config from the
global options stored in ``ctx.obj`` by the root callback, builds the
project indexer (with its persistent store unless disabled), and runs a
full rebuild so the returned navigator is ready to answer queries.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import typer

from specnav.exit_codes import EXIT_INVALID_USAGE
from specnav.indexing import IndexStore, IndexSummary, ProjectIndexer
from specnav.models import GlobalConfig
from specnav.navigation import Navigator
from specnav.output import debug, error


@dataclass
class Project:
    indexer: ProjectIndexer
    navigator: Navigator
    config: GlobalConfig
    summary: IndexSummary
    store: Optional[IndexStore] = None

    def close(self) -> None:
        if self.store is not None:
            self.store.close()


def _options(ctx: typer.Context) -> dict[str, Any]:
    obj = ctx.find_root().obj
    return obj if isinstance(obj, dict) else {}


def open_project(ctx: typer.Context, clear_store: bool = False) -> Project:
    """Index the project selected by the global options.

    Raises:
        typer.Exit: With code 2 when the root does not exist or the
            configuration is invalid.
    """
    from specnav.config import get_project_store_dir, resolve_config, resolve_root
    from specnav.exceptions import ConfigError

    options = _options(ctx)
    root = resolve_root(options.get("root"))
    if not root.is_dir():
        error(f"Project root is not a directory: {root}")
        raise typer.Exit(code=EXIT_INVALID_USAGE)

    try:
        config = resolve_config(
            root, cli_format=options.get("format"), cli_no_store=bool(options.get("no_store"))
        )
    except ConfigError as exc:
        error(f"Config error: {exc}")
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None

    store: Optional[IndexStore] = None
    if config.store.enabled:
        store = IndexStore(get_project_store_dir(root))
        if store.invalidated:
            debug("Index store was written by another version; rebuilding from scratch")
        if clear_store:
            store.clear()

    indexer = ProjectIndexer(root, config=config.index, store=store)
    summary = indexer.rebuild()
    debug(
        f"Indexed {summary.records} records from {summary.spec_files} spec files "
        f"({summary.reused} reused), {summary.symbols} symbols from {summary.source_files} source files"
    )
    return Project(
        indexer=indexer,
        navigator=Navigator.for_project(indexer),
        config=config,
        summary=summary,
        store=store,
    )
