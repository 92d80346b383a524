"""Locate nodes inside parsed spec documents, following ``$ref`` across files.

Everything here operates on :class:`~specnav.parser.document.SpecDocument`
trees. Cross-file lookups go through a *document provider* -- any callable
mapping an absolute path to a parsed document (or ``None`` when the file is
missing or unparseable). :meth:`DocumentCache.get
<specnav.parser.document.DocumentCache.get>` is the usual provider.

Nodes returned for operations, components, and tags are the nodes a reader
would jump to: the ``operationId`` entry, the schema entry under
``components/schemas``, and the ``name`` entry of a tag object.

All searches are built on :func:`walk`; every reference-following loop
carries a visited set so cyclic ``$ref`` chains terminate.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Iterable, Iterator, Optional

from specnav.models import DocumentPath, HTTPMethod, ReferencePointer, SpecOperation
from specnav.parser.document import SpecDocument, SpecNode
from specnav.parser.resolver import parse_ref

logger = logging.getLogger(__name__)

DocumentProvider = Callable[[Path], Optional[SpecDocument]]

NodePredicate = Callable[[SpecNode], bool]

__all__ = [
    "DocumentProvider",
    "extract_operation_identity",
    "find_by_path",
    "find_component_node",
    "find_operation_nodes",
    "find_tag_node",
    "follow_ref",
    "node_at_line",
    "parse_ref",
    "referenced_files",
    "walk",
]


# --- Primitives ---


def walk(node: SpecNode, predicate: Optional[NodePredicate] = None) -> Iterator[SpecNode]:
    """Yield *node* and its descendants depth-first, in document order.

    Args:
        node: Subtree root.
        predicate: Only nodes for which it returns true are yielded; the
            walk still descends into nodes that are filtered out.
    """
    stack = [node]
    while stack:
        current = stack.pop()
        if predicate is None or predicate(current):
            yield current
        stack.extend(reversed(current.children))


def find_by_path(root: SpecNode, path: DocumentPath | Iterable[str]) -> Optional[SpecNode]:
    """Descend from *root* one segment at a time.

    Each segment selects a direct child: a mapping key, or a sequence index
    given as a string. When a mapping holds the same key twice the first
    occurrence wins.

    Returns:
        The node at *path*, or ``None`` if any segment is missing.
    """
    current: Optional[SpecNode] = root
    for segment in path:
        if current is None:
            return None
        current = current.child(segment)
    return current


def follow_ref(
    document: SpecDocument,
    pointer: ReferencePointer,
    provider: DocumentProvider,
    visited: Optional[set[tuple[Path, DocumentPath]]] = None,
) -> Optional[tuple[SpecDocument, SpecNode]]:
    """Resolve *pointer* from *document* to the physical node it targets.

    The pointer's file is resolved relative to *document*'s directory. When
    the target node is itself a ``$ref`` mapping, resolution continues from
    the target's document.

    Args:
        document: The referencing document.
        pointer: Parsed ``$ref`` value.
        provider: Loads referenced documents.
        visited: ``(file, fragment)`` pairs already followed; shared across
            calls to bound a whole search.

    Returns:
        ``(document, node)`` of the final target, or ``None`` when the file
        or fragment does not exist or the chain is cyclic.
    """
    seen = visited if visited is not None else set()
    current_doc = document
    current_ptr = pointer

    while True:
        if current_ptr.is_local:
            target_doc: Optional[SpecDocument] = current_doc
        else:
            target_path = (current_doc.directory / current_ptr.file_path).resolve()
            target_doc = provider(target_path)
            if target_doc is None:
                logger.debug("Broken $ref: %s not found (from %s)", target_path, current_doc.file_path)
                return None

        key = (target_doc.file_path, current_ptr.fragment)
        if key in seen:
            logger.debug("Cyclic $ref at %s#/%s", target_doc.file_path, "/".join(current_ptr.fragment))
            return None
        seen.add(key)

        node = find_by_path(target_doc.root, current_ptr.fragment)
        if node is None:
            logger.debug(
                "Broken $ref: fragment /%s missing in %s",
                "/".join(current_ptr.fragment),
                target_doc.file_path,
            )
            return None

        next_ptr = parse_ref(node.ref) if node.ref else None
        if next_ptr is None:
            return target_doc, node
        current_doc, current_ptr = target_doc, next_ptr


def referenced_files(document: SpecDocument, provider: DocumentProvider) -> list[SpecDocument]:
    """Return every document transitively referenced from *document*.

    Documents are listed in discovery order (breadth-first) without
    duplicates; *document* itself is not included.
    """
    found: list[SpecDocument] = []
    seen: set[Path] = {document.file_path}
    queue = [document]
    while queue:
        current = queue.pop(0)
        for node in walk(current.root, lambda n: n.key == "$ref" and n.is_scalar):
            pointer = parse_ref(str(node.value))
            if pointer is None or pointer.is_local:
                continue
            target_path = (current.directory / pointer.file_path).resolve()
            if target_path in seen:
                continue
            seen.add(target_path)
            target = provider(target_path)
            if target is None:
                logger.debug("Referenced file %s not found (from %s)", target_path, current.file_path)
                continue
            found.append(target)
            queue.append(target)
    return found


# --- Element lookups ---


def _operation_id_node(node: SpecNode, operation_id: str) -> Optional[SpecNode]:
    """The ``operationId`` child of operation mapping *node* if it equals *operation_id*."""
    if not node.is_mapping:
        return None
    id_node = node.child("operationId")
    if id_node is not None and id_node.is_scalar and str(id_node.value) == operation_id:
        return id_node
    return None


def _operation_ids_anywhere(root: SpecNode, operation_id: str) -> list[SpecNode]:
    return list(
        walk(
            root,
            lambda n: n.key == "operationId" and n.is_scalar and str(n.value) == operation_id,
        )
    )


def _dereference(
    document: SpecDocument, node: SpecNode, provider: DocumentProvider
) -> Optional[tuple[SpecDocument, SpecNode]]:
    """*node* itself, or the target of its ``$ref``; ``None`` when that is broken."""
    if not node.ref:
        return document, node
    pointer = parse_ref(node.ref)
    return follow_ref(document, pointer, provider) if pointer is not None else None


def find_operation_nodes(
    document: SpecDocument,
    path: str,
    method: HTTPMethod | str,
    operation_id: str,
    provider: DocumentProvider,
) -> list[SpecNode]:
    """Find the ``operationId`` node(s) of an operation.

    Search order:

    1. ``paths/<path>/<method>/operationId``, following a ``$ref`` on the
       path item, on the method entry, or on both.
    2. Any ``operationId`` with that value in the files those references
       lead to.
    3. Any ``operationId`` with that value anywhere in *document*.

    Returns:
        The de-duplicated union, exact matches first. Empty if nothing
        matched.
    """
    method_key = method.key if isinstance(method, HTTPMethod) else str(method).lower()
    exact: list[SpecNode] = []
    loose: list[SpecNode] = []
    referenced: list[SpecDocument] = []

    path_item = find_by_path(document.root, ("paths", path))
    item = _dereference(document, path_item, provider) if path_item is not None and path_item.is_mapping else None
    if item is not None:
        item_doc, item_node = item
        referenced.append(item_doc)
        operation = item_node.child(method_key) if item_node.is_mapping else None
        if operation is not None and operation.is_mapping:
            target = _dereference(item_doc, operation, provider)
            if target is not None:
                operation_doc, operation_node = target
                referenced.append(operation_doc)
                hit = _operation_id_node(operation_node, operation_id)
                if hit is not None:
                    exact.append(hit)

    for other in referenced:
        if other.file_path != document.file_path:
            loose.extend(_operation_ids_anywhere(other.root, operation_id))
    loose.extend(_operation_ids_anywhere(document.root, operation_id))

    results = list(dict.fromkeys(exact + loose))
    if not results:
        logger.debug("Operation %s (%s %s) not found in %s", operation_id, method_key, path, document.file_path)
    return results


def find_component_node(
    document: SpecDocument, name: str, provider: DocumentProvider
) -> Optional[SpecNode]:
    """Find ``components/schemas/<name>`` here or in a referenced file.

    Swagger 2.0 ``definitions/<name>`` is accepted as well.
    """
    for candidate in [document, *referenced_files(document, provider)]:
        node = find_by_path(candidate.root, ("components", "schemas", name))
        if node is None:
            node = find_by_path(candidate.root, ("definitions", name))
        if node is not None:
            if candidate is not document:
                logger.debug("Component %s found in referenced file %s", name, candidate.file_path)
            return node
    return None


def find_tag_node(document: SpecDocument, name: str) -> Optional[SpecNode]:
    """Return the ``name`` entry of the top-level tag called *name*.

    Tag names compare case-insensitively.
    """
    tags = document.root.child("tags")
    if tags is None or not tags.is_sequence:
        return None
    wanted = name.casefold()
    for item in tags.children:
        name_node = item.child("name") if item.is_mapping else None
        if name_node is not None and name_node.is_scalar and str(name_node.value).casefold() == wanted:
            return name_node
    return None


# --- Location -> operation identity ---


def node_at_line(document: SpecDocument, line: int, column: Optional[int] = None) -> Optional[SpecNode]:
    """Return the mapping entry whose key sits on *line*.

    Without *column* the first key on the line wins. When *column* is given
    and several keys share the line (flow style), the last key starting at
    or before that column wins. Sequence items are only returned when no
    mapping key is on the line.
    """
    on_line = list(walk(document.root, lambda n: n.key is not None and n.line == line))
    matches = [node for node in on_line if node.parent is None or node.parent.is_mapping] or on_line
    if not matches:
        return None
    if column is not None:
        before = [node for node in matches if node.column <= column]
        if before:
            return before[-1]
    return matches[0]


def _string_list(node: Optional[SpecNode]) -> list[str]:
    if node is None or not node.is_sequence:
        return []
    return [str(item.value) for item in node.children if item.is_scalar and item.value is not None]


def _operation_from_method_node(method_node: SpecNode, operation_id: Optional[str] = None) -> Optional[SpecOperation]:
    method = HTTPMethod.parse(method_node.key or "")
    path_node = method_node.parent
    if method is None or path_node is None or path_node.key is None:
        return None
    paths_node = path_node.parent
    if paths_node is None or paths_node.key != "paths":
        return None

    if operation_id is None:
        operation_id = method_node.scalar("operationId") if method_node.is_mapping else None
    if not operation_id:
        return None

    tags_node = method_node.child("tags") if method_node.is_mapping else None
    if tags_node is None:
        tags_node = path_node.child("tags")

    return SpecOperation(
        path=path_node.key,
        method=method,
        operation_id=operation_id,
        tags=_string_list(tags_node),
        summary=method_node.scalar("summary") if method_node.is_mapping else None,
    )


def extract_operation_identity(
    document: SpecDocument, line: int, column: Optional[int] = None
) -> Optional[SpecOperation]:
    """Derive the operation under a cursor position.

    The position must be on an HTTP-method key inside ``paths/<path>`` or on
    the ``operationId`` key of such an operation. Tags come from the
    operation; when it declares none, a ``tags`` key beside the methods is
    used.

    Returns:
        The operation identity, or ``None`` when the position is not on an
        operation or the operation has no ``operationId``.
    """
    node = node_at_line(document, line, column)
    if node is None:
        return None

    if node.key == "operationId" and node.is_scalar and node.parent is not None:
        return _operation_from_method_node(node.parent, str(node.value))

    if HTTPMethod.parse(node.key or "") is not None:
        return _operation_from_method_node(node)

    return None
