"""Navigation commands -- jump between spec operations and code.

``specnav impl`` goes from a position in a spec file to the symbols that
implement or call the operation there. ``specnav spec`` goes the other
way, from a named symbol in a source file to the spec nodes it
corresponds to. Both list every candidate; more than one row means the
match is ambiguous.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from specnav.exceptions import InvalidUsageError
from specnav.exit_codes import EXIT_INDEX_NOT_READY, EXIT_INVALID_USAGE, EXIT_NOT_FOUND
from specnav.output import Location, error, info, print_locations, warning


def _display_path(root: Path, path: str | Path) -> str:
    try:
        return Path(path).resolve().relative_to(root).as_posix()
    except ValueError:
        return str(path)


def impl_command(
    ctx: typer.Context,
    spec_file: str = typer.Argument(help="Spec file, relative to the project root or absolute."),
    line: int = typer.Argument(help="1-based line of the operationId or HTTP method key."),
    column: Optional[int] = typer.Option(None, "--column", "-c", help="1-based column."),
) -> None:
    """Show the code implementing the operation at SPEC_FILE:LINE.

    Example::

        specnav impl api/petstore.yaml 14
        specnav --json impl api/petstore.yaml 14 --column 9
    """
    from specnav.commands.common import open_project

    project = open_project(ctx)
    project.close()
    navigator = project.navigator

    try:
        identity = navigator.extract_operation_identity(spec_file, line, column).first()
    except InvalidUsageError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    if identity is None:
        error(f"No operation at {spec_file}:{line}")
        raise typer.Exit(code=EXIT_NOT_FOUND)
    info(f"{identity.method.value} {identity.path} ({identity.operation_id})")

    resolution = navigator.resolve_implementation(identity)
    if not resolution.index_ready:
        error("Index is still being built, try again")
        raise typer.Exit(code=EXIT_INDEX_NOT_READY)
    if not resolution.items:
        error(f"No implementation found for {identity.operation_id}")
        raise typer.Exit(code=EXIT_NOT_FOUND)

    if resolution.ambiguous:
        warning(f"{len(resolution.items)} candidates implement {identity.operation_id}")

    print_locations(
        [
            Location(symbol.file_path or "", symbol.line or 0, symbol.display_name, symbol.kind.value)
            for symbol in resolution.items
        ],
        title=identity.operation_id,
    )


def spec_command(
    ctx: typer.Context,
    source_file: str = typer.Argument(help="Source file, relative to the project root or absolute."),
    symbol: str = typer.Argument(help="Symbol name: Class, Class.method or function."),
) -> None:
    """Show the spec elements SYMBOL in SOURCE_FILE corresponds to.

    Example::

        specnav spec app/pets.py PetApiController.get_pet_by_id
        specnav spec app/models.py Pet
    """
    from specnav.commands.common import open_project

    project = open_project(ctx)
    project.close()
    indexer = project.indexer
    navigator = project.navigator

    relative_path = indexer.relative(source_file)
    if relative_path is None:
        error(f"{source_file} is outside the project root {indexer.root}")
        raise typer.Exit(code=EXIT_INVALID_USAGE)

    symbols = navigator.find_symbols(relative_path, symbol)
    if not symbols:
        error(f"No symbol {symbol!r} in {relative_path}")
        raise typer.Exit(code=EXIT_NOT_FOUND)

    locations: list[Location] = []
    for candidate in symbols:
        resolution = navigator.resolve_spec_element(candidate)
        if not resolution.index_ready:
            error("Index is still being built, try again")
            raise typer.Exit(code=EXIT_INDEX_NOT_READY)
        for node in resolution.items:
            locations.append(
                Location(
                    _display_path(indexer.root, node.file_path),
                    node.line,
                    "/".join(node.path),
                    candidate.display_name,
                )
            )

    if not locations:
        error(f"No spec element found for {symbol}")
        raise typer.Exit(code=EXIT_NOT_FOUND)

    print_locations(locations, title=symbol)
