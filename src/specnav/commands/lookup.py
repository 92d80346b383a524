"""Lookup command -- query the inverted index by kind and identifier."""

from __future__ import annotations

import typer

from specnav.exit_codes import EXIT_INVALID_USAGE, EXIT_NOT_FOUND
from specnav.models import IndexKind, IndexedComponent, IndexedOperation, IndexRecord
from specnav.output import error, print_table, suggest

_KIND_ALIASES = {
    "operation": IndexKind.OPERATION,
    "op": IndexKind.OPERATION,
    "component": IndexKind.COMPONENT,
    "schema": IndexKind.COMPONENT,
    "tag": IndexKind.TAG,
    "tags": IndexKind.TAG,
}


def _row(record: IndexRecord) -> list[str]:
    if isinstance(record, IndexedOperation):
        detail = f"{record.method} {record.path}"
    elif isinstance(record, IndexedComponent):
        detail = record.schema_type or ""
    else:
        detail = ""
    return [record.kind, record.identifier, detail, record.file_path]


def lookup_command(
    ctx: typer.Context,
    kind: str = typer.Argument(help="Element kind: operation, component or tag."),
    identifier: str = typer.Argument(help="operationId, schema name or tag name."),
) -> None:
    """Find spec elements by identifier.

    Every declaration is listed; an identifier declared in more than one
    file yields one row per file.

    Example::

        specnav lookup operation getPetById
        specnav --json lookup component Pet
    """
    from specnav.commands.common import open_project

    index_kind = _KIND_ALIASES.get(kind.lower())
    if index_kind is None:
        error(f"Unknown kind: {kind}. Expected one of: operation, component, tag")
        raise typer.Exit(code=EXIT_INVALID_USAGE)

    project = open_project(ctx)
    project.close()
    records = project.indexer.spec_index.lookup(index_kind, identifier)
    if not records:
        error(f"No {index_kind.value} named {identifier!r} in {project.indexer.root}")
        suggest("Run 'specnav index' to see what was indexed")
        raise typer.Exit(code=EXIT_NOT_FOUND)

    print_table(
        ["Kind", "Identifier", "Detail", "File"],
        [_row(record) for record in records],
        title=f"{index_kind.key(identifier)}",
    )
