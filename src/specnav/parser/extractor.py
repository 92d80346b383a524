"""Extract indexable elements (operations, components, tags) from spec files.

This module walks a fully ``$ref``-resolved OpenAPI document and yields the
elements the inverted index is keyed on:

* :class:`~specnav.models.SpecOperation` -- one per path + HTTP method that
  carries an ``operationId``.
* :class:`~specnav.models.SpecTag` -- one per entry of the top-level
  ``tags`` array.
* :class:`~specnav.models.SpecComponent` -- one per schema under
  ``components.schemas`` (``definitions`` for Swagger 2.0).

The entry point :func:`parse_spec_file` is a generator: nothing is read
until the caller starts iterating, and it can be re-invoked whenever the
file changes. It never raises for bad input -- a document that cannot be
loaded, or that is not an API description, simply yields nothing.

Path items that are ``$ref`` pointers into other files are resolved first,
so operations of a split spec are attributed to the root document that
assembles them. Fragment files (which carry no ``openapi`` marker)
contribute nothing on their own; the project indexer re-indexes the root
when a fragment changes.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterator, Optional

from specnav.exceptions import SpecParseError
from specnav.models import HTTPMethod, SpecComponent, SpecElement, SpecOperation, SpecTag
from specnav.parser.loader import detect_spec_version, load_document_data
from specnav.parser.resolver import resolve_refs

logger = logging.getLogger(__name__)

# Order in which methods of one path item are emitted
_METHOD_ORDER = (
    HTTPMethod.GET,
    HTTPMethod.POST,
    HTTPMethod.PUT,
    HTTPMethod.DELETE,
    HTTPMethod.PATCH,
    HTTPMethod.HEAD,
    HTTPMethod.TRACE,
    HTTPMethod.OPTIONS,
)


def parse_spec_file(file_path: str | Path, dependencies: Optional[set[Path]] = None) -> Iterator[SpecElement]:
    """Yield every indexable element of the spec at *file_path*.

    Args:
        file_path: Path to a YAML or JSON document.
        dependencies: Filled with the absolute paths of the other files the
            document references, once iteration has started. Callers use
            it to re-index the document when one of them changes.

    Yields:
        Operations (in path, then method order), then tags, then
        components.

    Example::

        for element in parse_spec_file("api.yaml"):
            if isinstance(element, SpecOperation):
                print(element.method.value, element.path, element.operation_id)
    """
    try:
        raw = load_document_data(file_path)
    except SpecParseError as exc:
        logger.debug("Skipping %s: %s", file_path, exc)
        return

    version = detect_spec_version(raw)
    if version is None:
        logger.debug("Skipping %s: not an OpenAPI document", file_path)
        return

    try:
        spec = resolve_refs(raw, file_path, dependencies=dependencies)
    except (SpecParseError, RecursionError) as exc:
        logger.debug("Skipping %s: %s", file_path, exc)
        return

    yield from extract_elements(spec, version)


def extract_elements(spec: dict[str, Any], version: str = "3.0.0") -> Iterator[SpecElement]:
    """Yield elements from an already-resolved spec dictionary.

    Args:
        spec: The resolved spec.
        version: The declared spec version; ``2.x`` reads schemas from
            ``definitions`` instead of ``components.schemas``.
    """
    yield from _extract_operations(spec)
    yield from _extract_tags(spec)
    yield from _extract_components(spec, version)


def _extract_operations(spec: dict[str, Any]) -> Iterator[SpecOperation]:
    """Yield one :class:`SpecOperation` per path + method with an ``operationId``.

    Path-level ``summary`` is not inherited: the index mirrors what the
    operation object itself declares. Operations without an
    ``operationId`` have no index key and are skipped.
    """
    paths = spec.get("paths")
    if not isinstance(paths, dict):
        return

    for path, path_item in paths.items():
        if not isinstance(path_item, dict):
            continue

        for method in _METHOD_ORDER:
            operation = path_item.get(method.key)
            if not isinstance(operation, dict):
                continue

            operation_id = operation.get("operationId")
            if not isinstance(operation_id, str) or not operation_id:
                logger.debug("No operationId for %s %s, skipping", method.value, path)
                continue

            tags = operation.get("tags") or []
            summary = operation.get("summary")
            yield SpecOperation(
                path=str(path),
                method=method,
                operation_id=operation_id,
                tags=[str(tag) for tag in tags] if isinstance(tags, list) else [],
                summary=summary if isinstance(summary, str) else None,
            )


def _extract_tags(spec: dict[str, Any]) -> Iterator[SpecTag]:
    tags = spec.get("tags")
    if not isinstance(tags, list):
        return
    for tag in tags:
        if isinstance(tag, dict) and isinstance(tag.get("name"), str):
            yield SpecTag(name=tag["name"])


def _extract_components(spec: dict[str, Any], version: str) -> Iterator[SpecComponent]:
    if version.startswith("2"):
        schemas = spec.get("definitions")
    else:
        components = spec.get("components")
        schemas = components.get("schemas") if isinstance(components, dict) else None
    if not isinstance(schemas, dict):
        return

    for name, schema in schemas.items():
        yield SpecComponent(name=str(name), schema_type=_schema_type(schema))


def _schema_type(schema: Any) -> str | None:
    """Return the schema's ``type``, first non-null entry for 3.1 type arrays."""
    if not isinstance(schema, dict):
        return None
    type_value = schema.get("type")
    if isinstance(type_value, list):
        non_null = [t for t in type_value if t != "null"]
        return str(non_null[0]) if non_null else None
    return str(type_value) if type_value is not None else None
