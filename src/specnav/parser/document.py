"""Addressable, position-aware tree representation of a spec document.

The extractor works on plain dictionaries, but navigation needs more: the
line a key sits on, the order keys were written in, and the ability to ask
"which node is under the cursor?". This module composes a document with
:func:`yaml.compose` (JSON is a YAML subset, so one code path serves both)
and converts the node graph into :class:`SpecNode` objects.

Two nodes compare equal when they come from the same file and sit at the
same :data:`~specnav.models.DocumentPath`; resolver results are
de-duplicated on that structural identity.

:class:`SpecDocument` bundles the root node with the SHA-256 of the file
content it was built from, which :class:`DocumentCache` uses as the
invalidation key.
"""

from __future__ import annotations

import enum
import hashlib
import json
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator, Optional

import yaml
from yaml.constructor import SafeConstructor

from specnav.exceptions import SpecParseError
from specnav.models import DocumentPath
from specnav.parser.loader import format_hint, read_spec_text

logger = logging.getLogger(__name__)


class NodeKind(str, enum.Enum):
    MAPPING = "mapping"
    SEQUENCE = "sequence"
    SCALAR = "scalar"


@dataclass(eq=False)
class SpecNode:
    """One addressable location in a spec document.

    Mapping entries are represented by the *value* node, carrying the key
    it was found under in :attr:`key` and the key's position in
    :attr:`line`/:attr:`column` (1-based). Sequence items use their index
    as key.

    Attributes:
        file_path: Absolute path of the document.
        path: Segments from the root to this node.
        key: Key (or index) this node is stored under; ``None`` at the root.
        kind: Mapping, sequence, or scalar.
        value: Python value for scalars, ``None`` for containers.
        line: 1-based line of the key (or of the value when there is no key).
        column: 1-based column matching :attr:`line`.
        children: Child nodes in document order.
    """

    file_path: Path
    path: DocumentPath
    key: Optional[str]
    kind: NodeKind
    value: Any = None
    line: int = 0
    column: int = 0
    end_line: int = 0
    children: list[SpecNode] = field(default_factory=list)
    parent: Optional[SpecNode] = field(default=None, repr=False)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SpecNode):
            return NotImplemented
        return self.file_path == other.file_path and self.path == other.path

    def __hash__(self) -> int:
        return hash((self.file_path, self.path))

    @property
    def is_mapping(self) -> bool:
        return self.kind == NodeKind.MAPPING

    @property
    def is_sequence(self) -> bool:
        return self.kind == NodeKind.SEQUENCE

    @property
    def is_scalar(self) -> bool:
        return self.kind == NodeKind.SCALAR

    def child(self, key: str) -> Optional[SpecNode]:
        """Return the first child stored under *key*, or ``None``."""
        for node in self.children:
            if node.key == key:
                return node
        return None

    def scalar(self, key: str) -> Optional[str]:
        """Return the text of scalar child *key*, or ``None``."""
        node = self.child(key)
        if node is None or not node.is_scalar or node.value is None:
            return None
        return str(node.value)

    @property
    def ref(self) -> Optional[str]:
        """The ``$ref`` string of this mapping, if it is a reference object."""
        if not self.is_mapping:
            return None
        return self.scalar("$ref")

    def to_python(self) -> Any:
        """Convert the subtree back into plain dicts, lists, and scalars."""
        if self.is_scalar:
            return self.value
        if self.is_sequence:
            return [child.to_python() for child in self.children]
        result: dict[str, Any] = {}
        for child in self.children:
            result.setdefault(child.key, child.to_python())
        return result

    def iter_ancestors(self) -> Iterator[SpecNode]:
        node = self.parent
        while node is not None:
            yield node
            node = node.parent

    def __repr__(self) -> str:
        return f"SpecNode({self.file_path.name}:{self.line} {'/'.join(self.path) or '<root>'})"


@dataclass
class SpecDocument:
    """A parsed document tree plus the content hash it was built from."""

    file_path: Path
    root: SpecNode
    content_hash: str

    @property
    def directory(self) -> Path:
        return self.file_path.parent

    def data(self) -> Any:
        return self.root.to_python()


def content_hash(text: str) -> str:
    """SHA-256 hex digest of *text* (UTF-8)."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def parse_document(text: str, file_path: str | Path) -> SpecDocument:
    """Build a :class:`SpecDocument` from *text*.

    Args:
        text: Raw YAML or JSON content.
        file_path: Path the content belongs to (made absolute).

    Raises:
        SpecParseError: If the content is neither valid YAML nor JSON.
    """
    path = Path(file_path).resolve()
    try:
        composed = yaml.compose(text, Loader=yaml.SafeLoader)
    except yaml.YAMLError as exc:
        if format_hint(path) != "json":
            raise SpecParseError(f"Invalid YAML in {path}: {exc}") from exc
        # Some JSON (tab indentation, unusual escapes) is not valid YAML 1.1
        try:
            data = json.loads(text)
        except json.JSONDecodeError as json_exc:
            raise SpecParseError(f"Invalid JSON in {path}: {json_exc}") from json_exc
        root = _from_python(data, path, (), None, None)
    else:
        if composed is None:
            raise SpecParseError(f"Spec file is empty: {path}")
        root = _NodeBuilder(path).build(composed)

    return SpecDocument(file_path=path, root=root, content_hash=content_hash(text))


def load_spec_document(file_path: str | Path) -> SpecDocument:
    """Read and parse a document from disk.

    Raises:
        SpecParseError: If the file cannot be read or parsed.
    """
    return parse_document(read_spec_text(file_path), file_path)


class _NodeBuilder:
    """Converts a composed :mod:`yaml` node graph into :class:`SpecNode` trees."""

    def __init__(self, file_path: Path) -> None:
        self._file_path = file_path
        self._constructor = SafeConstructor()
        self._stack: set[int] = set()

    def build(self, node: yaml.Node) -> SpecNode:
        return self._convert(node, (), None, None, None)

    def _convert(
        self,
        node: yaml.Node,
        path: DocumentPath,
        key: Optional[str],
        key_node: Optional[yaml.Node],
        parent: Optional[SpecNode],
    ) -> SpecNode:
        anchor = key_node if key_node is not None else node
        result = SpecNode(
            file_path=self._file_path,
            path=path,
            key=key,
            kind=NodeKind.SCALAR,
            line=anchor.start_mark.line + 1,
            column=anchor.start_mark.column + 1,
            end_line=node.end_mark.line + 1,
            parent=parent,
        )

        if id(node) in self._stack:
            # Recursive alias; leave the node empty
            return result
        self._stack.add(id(node))
        try:
            self._fill(result, node, path)
        finally:
            self._stack.discard(id(node))
        return result

    def _fill(self, result: SpecNode, node: yaml.Node, path: DocumentPath) -> None:
        if isinstance(node, yaml.MappingNode):
            result.kind = NodeKind.MAPPING
            for child_key_node, child_value_node in node.value:
                child_key = self._key_text(child_key_node)
                result.children.append(
                    self._convert(
                        child_value_node, path + (child_key,), child_key, child_key_node, result
                    )
                )
        elif isinstance(node, yaml.SequenceNode):
            result.kind = NodeKind.SEQUENCE
            for index, item in enumerate(node.value):
                result.children.append(
                    self._convert(item, path + (str(index),), str(index), None, result)
                )
        else:
            result.value = self._scalar_value(node)

    @staticmethod
    def _key_text(node: yaml.Node) -> str:
        if isinstance(node, yaml.ScalarNode):
            return str(node.value)
        # Complex keys are not a supported spec shape
        return f"<{node.id}>"

    def _scalar_value(self, node: yaml.Node) -> Any:
        try:
            return self._constructor.construct_object(node, deep=True)
        except yaml.YAMLError:
            return node.value


def _from_python(
    data: Any,
    file_path: Path,
    path: DocumentPath,
    key: Optional[str],
    parent: Optional[SpecNode],
) -> SpecNode:
    """Build a position-less tree from already-parsed JSON data."""
    node = SpecNode(file_path=file_path, path=path, key=key, kind=NodeKind.SCALAR, parent=parent)
    if isinstance(data, dict):
        node.kind = NodeKind.MAPPING
        node.children = [
            _from_python(value, file_path, path + (str(k),), str(k), node)
            for k, value in data.items()
        ]
    elif isinstance(data, list):
        node.kind = NodeKind.SEQUENCE
        node.children = [
            _from_python(value, file_path, path + (str(i),), str(i), node)
            for i, value in enumerate(data)
        ]
    else:
        node.value = data
    return node


class DocumentCache:
    """Parsed documents keyed by absolute path and content hash.

    :meth:`get` re-reads the file and re-parses only when its content hash
    changed since the cached parse. :meth:`invalidate` drops an entry
    explicitly; the project indexer calls it on every change notification
    so a stale tree never survives an edit.
    """

    def __init__(self) -> None:
        self._entries: dict[Path, SpecDocument] = {}
        self._lock = threading.Lock()

    def get(self, file_path: str | Path) -> Optional[SpecDocument]:
        """Return the parsed document at *file_path*, or ``None`` if unparseable."""
        path = Path(file_path).resolve()
        try:
            text = read_spec_text(path)
        except SpecParseError as exc:
            logger.debug("Cannot read %s: %s", path, exc)
            self.invalidate(path)
            return None

        digest = content_hash(text)
        with self._lock:
            cached = self._entries.get(path)
        if cached is not None and cached.content_hash == digest:
            return cached

        try:
            document = parse_document(text, path)
        except SpecParseError as exc:
            logger.debug("Cannot parse %s: %s", path, exc)
            self.invalidate(path)
            return None

        with self._lock:
            self._entries[path] = document
        return document

    def invalidate(self, file_path: str | Path) -> None:
        with self._lock:
            self._entries.pop(Path(file_path).resolve(), None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, file_path: object) -> bool:
        if not isinstance(file_path, (str, Path)):
            return False
        return Path(file_path).resolve() in self._entries

    def __len__(self) -> int:
        return len(self._entries)
