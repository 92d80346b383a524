"""Index command -- build the project index and report what it found."""

from __future__ import annotations

import typer

from specnav.output import OutputFormat, format_data, get_output, success


def index_command(
    ctx: typer.Context,
    clear: bool = typer.Option(
        False, "--clear", help="Discard the persistent index store before rebuilding."
    ),
) -> None:
    """Index every spec and source file under the project root.

    Prints the number of spec files, index records, source files and
    symbols found. Spec files whose content is unchanged since the last
    run are loaded from the persistent store instead of being re-parsed.

    Example::

        specnav index
        specnav --root ./service index --clear
    """
    from specnav.commands.common import open_project

    project = open_project(ctx, clear_store=clear)
    summary = project.summary
    data = {
        "root": str(project.indexer.root),
        "spec_files": summary.spec_files,
        "records": summary.records,
        "reused": summary.reused,
        "source_files": summary.source_files,
        "symbols": summary.symbols,
        "store": project.store.stats() if project.store is not None else {"enabled": False},
    }

    if get_output().format == OutputFormat.RICH:
        success(
            f"Indexed {summary.records} records from {summary.spec_files} spec files "
            f"and {summary.symbols} symbols from {summary.source_files} source files"
        )
    format_data(data)

    project.close()
