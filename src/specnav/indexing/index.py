"""Inverted index from ``<kind>:<identifier>`` keys to serialised spec records.

The index holds, for every indexed spec file, the JSON form of each element
extracted from it. Readers always work on an immutable snapshot; a writer
builds the next snapshot off to the side and swaps it in under a short lock,
so a lookup never observes a half-replaced file. Writes to the same file are
serialised by a per-file lock; writes to different files only contend for
the swap.

Records are kept as JSON strings and deserialised on lookup. A record that
no longer validates (e.g. written by a newer version) is logged and skipped
rather than failing the whole query.

:data:`INDEX_VERSION` identifies the serialised record shape. Bump it
whenever :class:`~specnav.models.IndexedOperation`,
:class:`~specnav.models.IndexedComponent`, or
:class:`~specnav.models.IndexedTag` change their wire form; persisted
stores with a different version are discarded and rebuilt.
"""

from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Iterable, Optional

import pathspec
from pydantic import ValidationError

from specnav.exceptions import IndexNotReadyError
from specnav.models import (
    RECORD_TYPES,
    IndexedComponent,
    IndexedOperation,
    IndexedTag,
    IndexKind,
    IndexRecord,
    SpecComponent,
    SpecElement,
    SpecOperation,
    SpecTag,
)

logger = logging.getLogger(__name__)

INDEX_VERSION = 2
"""Version of the serialised record shape and of the stored payload."""

SPEC_EXTENSIONS = ("yaml", "yml", "json")

# Dependency roots and vendored module directories never hold project specs
DEFAULT_EXCLUDES = (
    "site-packages/",
    "dist-packages/",
    "node_modules/",
    "vendor/",
    ".venv/",
    "venv/",
    ".tox/",
    ".git/",
    "__pycache__/",
)

_DEFAULT_EXCLUDE_SPEC = pathspec.PathSpec.from_lines("gitignore", DEFAULT_EXCLUDES)

Entry = tuple[str, str]
"""One ``(index key, record JSON)`` pair."""


class IndexState(str, enum.Enum):
    EMPTY = "empty"
    BUILDING = "building"
    READY = "ready"


@dataclass(frozen=True)
class _Snapshot:
    files: dict[str, tuple[Entry, ...]] = field(default_factory=dict)
    key_files: dict[str, tuple[str, ...]] = field(default_factory=dict)


def to_record(element: SpecElement, file_path: str) -> tuple[str, IndexRecord]:
    """Convert a parsed element into its index key and persisted record."""
    if isinstance(element, SpecOperation):
        record: IndexRecord = IndexedOperation(
            file_path=file_path,
            operation_id=element.operation_id,
            path=element.path,
            method=element.method.value,
            tags=list(element.tags),
            summary=element.summary,
        )
        return IndexKind.OPERATION.key(element.operation_id), record
    if isinstance(element, SpecComponent):
        record = IndexedComponent(file_path=file_path, name=element.name, schema_type=element.schema_type)
        return IndexKind.COMPONENT.key(element.name), record
    if isinstance(element, SpecTag):
        record = IndexedTag(file_path=file_path, name=element.name)
        return IndexKind.TAG.key(element.name), record
    raise TypeError(f"Not a spec element: {element!r}")


def is_spec_candidate(
    relative_path: str,
    extensions: Iterable[str] = SPEC_EXTENSIONS,
    exclude: Optional[pathspec.PathSpec] = None,
) -> bool:
    """Return whether a project-relative path should be parsed as a spec.

    Args:
        relative_path: POSIX path relative to the project root.
        extensions: Accepted extensions without the leading dot.
        exclude: Extra gitignore-style patterns (user excludes,
            ``.gitignore``) to apply on top of :data:`DEFAULT_EXCLUDES`.
    """
    path = PurePosixPath(relative_path)
    if path.suffix.lower().lstrip(".") not in {ext.lower() for ext in extensions}:
        return False
    if _DEFAULT_EXCLUDE_SPEC.match_file(relative_path):
        return False
    if exclude is not None and exclude.match_file(relative_path):
        return False
    return True


class SpecIndex:
    """Thread-safe inverted index of spec elements.

    File paths are opaque strings; the project indexer passes
    project-relative POSIX paths.

    Example::

        index = SpecIndex()
        index.index("api/petstore.yaml", parse_spec_file(root / "api/petstore.yaml"))
        for record in index.lookup(IndexKind.OPERATION, "getPetById"):
            print(record.file_path, record.method, record.path)
    """

    def __init__(self) -> None:
        self._snapshot = _Snapshot()
        self._write_lock = threading.Lock()
        self._file_locks: dict[str, threading.Lock] = {}
        self._file_locks_guard = threading.Lock()
        self._state = IndexState.EMPTY
        self._ready = threading.Condition()

    # --- State ---

    @property
    def state(self) -> IndexState:
        return self._state

    def begin_rebuild(self) -> None:
        """Mark a full rebuild as in progress."""
        with self._ready:
            self._state = IndexState.BUILDING

    def finish_rebuild(self) -> None:
        """Mark the index ready and wake any waiters."""
        with self._ready:
            self._state = IndexState.READY
            self._ready.notify_all()

    def wait_until_ready(self, timeout: Optional[float] = None, raise_on_timeout: bool = False) -> bool:
        """Block until a full rebuild has completed and none is in progress.

        An index that was never built is not ready.

        Args:
            timeout: Seconds to wait; ``None`` waits indefinitely.
            raise_on_timeout: Raise instead of returning ``False``.

        Returns:
            ``True`` once the index is ready, ``False`` on timeout.

        Raises:
            IndexNotReadyError: On timeout when *raise_on_timeout* is set.
        """
        with self._ready:
            ready = self._ready.wait_for(lambda: self._state == IndexState.READY, timeout)
        if not ready and raise_on_timeout:
            raise IndexNotReadyError(f"Index not ready after {timeout}s (state: {self._state.value})")
        return ready

    # --- Writes ---

    def _file_lock(self, file_path: str) -> threading.Lock:
        with self._file_locks_guard:
            return self._file_locks.setdefault(file_path, threading.Lock())

    def index(self, file_path: str, elements: Iterable[SpecElement]) -> int:
        """Replace every record held for *file_path* with *elements*.

        *elements* may be a lazy parser stream; it is consumed before the
        snapshot swap.

        Returns:
            The number of records now held for the file.
        """
        with self._file_lock(file_path):
            entries = []
            for element in elements:
                key, record = to_record(element, file_path)
                entries.append((key, record.to_json()))
            self._replace(file_path, tuple(entries))
        logger.debug("Indexed %d records for %s", len(entries), file_path)
        return len(entries)

    def load_entries(self, file_path: str, entries: Iterable[Entry]) -> int:
        """Replace the records of *file_path* with already-serialised entries."""
        with self._file_lock(file_path):
            materialised = tuple((str(key), str(value)) for key, value in entries)
            self._replace(file_path, materialised)
        return len(materialised)

    def remove(self, file_path: str) -> bool:
        """Drop every record held for *file_path*.

        Returns:
            ``True`` if the file was indexed.
        """
        with self._file_lock(file_path):
            if file_path not in self._snapshot.files:
                return False
            self._replace(file_path, None)
        logger.debug("Removed %s from the index", file_path)
        return True

    def clear(self) -> None:
        with self._write_lock:
            self._snapshot = _Snapshot()

    def _replace(self, file_path: str, entries: Optional[tuple[Entry, ...]]) -> None:
        with self._write_lock:
            current = self._snapshot
            files = dict(current.files)
            old_keys = {key for key, _ in files.get(file_path, ())}
            if not entries:
                files.pop(file_path, None)
                new_keys: set[str] = set()
            else:
                files[file_path] = entries
                new_keys = {key for key, _ in entries}

            key_files = dict(current.key_files)
            for key in old_keys | new_keys:
                holders = tuple(
                    path for path, held in files.items() if any(k == key for k, _ in held)
                )
                if holders:
                    key_files[key] = holders
                else:
                    key_files.pop(key, None)

            self._snapshot = _Snapshot(files=files, key_files=key_files)

    # --- Reads ---

    def lookup_raw(self, kind: IndexKind, identifier: str) -> list[str]:
        """Return the serialised records for *kind*/*identifier*, file order first."""
        snapshot = self._snapshot
        key = kind.key(identifier)
        return [
            value
            for file_path in snapshot.key_files.get(key, ())
            for entry_key, value in snapshot.files[file_path]
            if entry_key == key
        ]

    def lookup(self, kind: IndexKind, identifier: str) -> list[IndexRecord]:
        """Return every record stored under *kind*/*identifier*.

        Duplicates across files (or within one file) are all returned.
        """
        record_type = RECORD_TYPES[kind]
        records: list[IndexRecord] = []
        for raw in self.lookup_raw(kind, identifier):
            try:
                records.append(record_type.model_validate_json(raw))  # type: ignore[arg-type]
            except ValidationError as exc:
                logger.warning("Failed to deserialize %s record %s: %s", kind.value, raw, exc)
        return records

    def entries(self, file_path: str) -> tuple[Entry, ...]:
        return self._snapshot.files.get(file_path, ())

    def files(self) -> list[str]:
        return list(self._snapshot.files)

    def keys(self) -> list[str]:
        return list(self._snapshot.key_files)

    def __contains__(self, file_path: object) -> bool:
        return file_path in self._snapshot.files

    def __len__(self) -> int:
        return sum(len(entries) for entries in self._snapshot.files.values())
