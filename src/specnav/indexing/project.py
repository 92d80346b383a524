"""Crawl a project and keep the spec index and symbol index current.

:class:`ProjectIndexer` owns the per-project state the navigator queries:

* a :class:`~specnav.indexing.index.SpecIndex` of spec elements,
* a :class:`~specnav.adapters.symbols.SymbolIndex` of source symbols,
* a :class:`~specnav.parser.document.DocumentCache` of parsed spec trees.

:meth:`~ProjectIndexer.rebuild` walks the whole root; the change
notifications :meth:`~ProjectIndexer.refresh_file` and
:meth:`~ProjectIndexer.remove_file` update a single file. All paths handed
to the indexes are project-relative and use POSIX separators. Records of a
split spec depend on every file its root references; the indexer tracks
those files so an edit to any of them re-indexes the root.

File discovery follows the same rules as the route scanner it grew out of:
``.gitignore`` at the root is honoured, user exclude patterns use gitignore
syntax (:mod:`pathspec`), and well-known dependency and tool directories
are pruned during the walk.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

import pathspec

from specnav.adapters import AdapterRegistry, SymbolIndex, default_adapters
from specnav.exceptions import SpecParseError
from specnav.indexing.index import DEFAULT_EXCLUDES, SpecIndex, is_spec_candidate
from specnav.indexing.store import IndexStore
from specnav.models import IndexConfig
from specnav.parser.document import DocumentCache, content_hash
from specnav.parser.extractor import parse_spec_file
from specnav.parser.loader import read_spec_text

logger = logging.getLogger(__name__)

# Directories that should always be pruned during traversal.
_ALWAYS_SKIP = frozenset(entry.rstrip("/") for entry in DEFAULT_EXCLUDES) | {".mypy_cache", ".ruff_cache"}


@dataclass
class IndexSummary:
    """Counts reported by :meth:`ProjectIndexer.rebuild`."""

    spec_files: int = 0
    records: int = 0
    source_files: int = 0
    symbols: int = 0
    reused: int = 0


def _load_gitignore(root: Path) -> list[str]:
    gitignore = root / ".gitignore"
    if not gitignore.is_file():
        return []
    return gitignore.read_text(encoding="utf-8", errors="replace").splitlines()


class ProjectIndexer:
    """Index every spec and source file under a project root.

    Args:
        root: Project root directory.
        config: File selection settings; defaults to :class:`IndexConfig`.
        store: Optional persistent store. Files whose content hash matches
            the stored entry are loaded without re-parsing.
        adapters: Source adapters; defaults to :func:`default_adapters`.
        documents: Parsed-document cache shared with the navigator.

    Example::

        indexer = ProjectIndexer(Path("."))
        summary = indexer.rebuild()
        navigator = Navigator.for_project(indexer)
    """

    def __init__(
        self,
        root: str | Path,
        config: Optional[IndexConfig] = None,
        store: Optional[IndexStore] = None,
        adapters: Optional[AdapterRegistry] = None,
        documents: Optional[DocumentCache] = None,
    ) -> None:
        self.root = Path(root).resolve()
        self.config = config or IndexConfig()
        self.store = store
        self.adapters = adapters if adapters is not None else default_adapters()
        self.documents = documents if documents is not None else DocumentCache()
        self.spec_index = SpecIndex()
        self.symbol_index = SymbolIndex()
        # spec document -> files its records were assembled from
        self._dependencies: dict[str, frozenset[str]] = {}
        self._exclude = self._build_exclude()

    def _build_exclude(self) -> Optional[pathspec.PathSpec]:
        lines = list(self.config.exclude)
        if self.config.respect_gitignore:
            lines += _load_gitignore(self.root)
        return pathspec.PathSpec.from_lines("gitignore", lines) if lines else None

    # --- Paths ---

    def relative(self, path: str | Path) -> Optional[str]:
        """Project-relative POSIX form of *path*, or ``None`` if outside the root."""
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self.root / candidate
        try:
            return candidate.resolve().relative_to(self.root).as_posix()
        except ValueError:
            return None

    def absolute(self, relative_path: str) -> Path:
        return self.root / relative_path

    def is_spec_file(self, relative_path: str) -> bool:
        return is_spec_candidate(relative_path, self.config.spec_extensions, self._exclude)

    def is_source_file(self, relative_path: str) -> bool:
        suffix = Path(relative_path).suffix.lower().lstrip(".")
        if suffix not in self.config.source_extensions or suffix not in self.adapters.extensions:
            return False
        # Same exclusions as specs, minus the extension check
        return is_spec_candidate(relative_path, [suffix], self._exclude)

    def iter_files(self) -> Iterator[str]:
        """Yield the relative paths of every file under the root, pruning skipped directories."""
        for dirpath, dirnames, filenames in os.walk(str(self.root)):
            rel_dir = os.path.relpath(dirpath, str(self.root))
            prefix = "" if rel_dir == "." else Path(rel_dir).as_posix() + "/"

            # Prune always-skip and excluded directories in place.
            dirnames[:] = sorted(
                d for d in dirnames
                if d not in _ALWAYS_SKIP
                and not (self._exclude and self._exclude.match_file(f"{prefix}{d}/"))
            )
            for fname in sorted(filenames):
                yield f"{prefix}{fname}"

    # --- Full rebuild ---

    def rebuild(self) -> IndexSummary:
        """Re-index the whole project.

        The spec index reports ``BUILDING`` for the duration; queries issued
        meanwhile are told the index is not ready.
        """
        summary = IndexSummary()
        self.spec_index.begin_rebuild()
        try:
            self.spec_index.clear()
            self.symbol_index.clear()
            self.documents.clear()
            self._dependencies.clear()
            seen_specs: set[str] = set()

            for relative_path in self.iter_files():
                if self.is_spec_file(relative_path):
                    seen_specs.add(relative_path)
                    count, reused = self._index_spec(relative_path)
                    if count:
                        summary.spec_files += 1
                        summary.records += count
                    summary.reused += int(reused)
                elif self.is_source_file(relative_path):
                    count = self._index_source(relative_path)
                    if count:
                        summary.source_files += 1
                        summary.symbols += count

            if self.store is not None:
                for stale in set(self.store.files()) - seen_specs:
                    self.store.delete(stale)
        finally:
            self.spec_index.finish_rebuild()

        logger.info(
            "Indexed %d records from %d spec files and %d symbols from %d source files",
            summary.records,
            summary.spec_files,
            summary.symbols,
            summary.source_files,
        )
        return summary

    # --- Change notifications ---

    def refresh_file(self, path: str | Path) -> None:
        """Re-index one file after it was created or modified.

        A file that no longer passes the input filter (or lies outside the
        root) is removed from both indexes. Spec documents that reference
        the file (a split spec's root) are re-indexed as well.
        """
        relative_path = self.relative(path)
        if relative_path is None:
            return
        self.documents.invalidate(self.absolute(relative_path))

        if not self.absolute(relative_path).is_file():
            self.remove_file(relative_path)
        elif self.is_spec_file(relative_path):
            self._index_spec(relative_path)
            self._refresh_dependents(relative_path)
        elif self.is_source_file(relative_path):
            self._index_source(relative_path)
        else:
            self.remove_file(relative_path)

    def remove_file(self, path: str | Path) -> None:
        """Forget a deleted (or no longer eligible) file."""
        relative_path = self.relative(path)
        if relative_path is None:
            return
        self.documents.invalidate(self.absolute(relative_path))
        self._forget_spec(relative_path)
        self.symbol_index.remove(relative_path)
        self._refresh_dependents(relative_path)

    def dependents(self, relative_path: str) -> list[str]:
        """Indexed spec documents whose records depend on *relative_path*."""
        return sorted(root for root, deps in self._dependencies.items() if relative_path in deps)

    def _refresh_dependents(self, relative_path: str) -> None:
        for root in self.dependents(relative_path):
            logger.debug("Re-indexing %s after a change to %s", root, relative_path)
            self._index_spec(root)

    # --- Per file ---

    def _index_spec(self, relative_path: str) -> tuple[int, bool]:
        """Index one spec file; returns ``(records, reused_from_store)``.

        Never raises: a file that cannot be read or indexed ends up with no
        records.
        """
        path = self.absolute(relative_path)
        try:
            digest = content_hash(read_spec_text(path))
        except SpecParseError as exc:
            logger.debug("Skipping %s: %s", relative_path, exc)
            self._forget_spec(relative_path)
            return 0, False

        if self.store is not None:
            cached = self.store.get(relative_path, digest, self._digest_of)
            if cached is not None:
                self._track_dependencies(relative_path, self.store.dependencies(relative_path))
                return self.spec_index.load_entries(relative_path, cached), True

        referenced: set[Path] = set()
        try:
            count = self.spec_index.index(relative_path, parse_spec_file(path, referenced))
        except Exception as exc:
            logger.warning("Failed to index %s: %s", relative_path, exc)
            self._forget_spec(relative_path)
            return 0, False

        dependencies = sorted({self.relative(dep) or dep.as_posix() for dep in referenced})
        self._track_dependencies(relative_path, dependencies)
        if self.store is not None:
            self.store.put(
                relative_path,
                digest,
                self.spec_index.entries(relative_path),
                {dep: self._digest_of(dep) for dep in dependencies},
            )
        return count, False

    def _digest_of(self, dependency: str) -> str:
        """Content hash of a referenced file, ``""`` when it cannot be read."""
        try:
            return content_hash(read_spec_text(self.absolute(dependency)))
        except SpecParseError:
            return ""

    def _track_dependencies(self, relative_path: str, dependencies: list[str]) -> None:
        if dependencies:
            self._dependencies[relative_path] = frozenset(dependencies)
        else:
            self._dependencies.pop(relative_path, None)

    def _forget_spec(self, relative_path: str) -> None:
        self.spec_index.remove(relative_path)
        self._dependencies.pop(relative_path, None)
        if self.store is not None:
            self.store.delete(relative_path)

    def _index_source(self, relative_path: str) -> int:
        symbols = self.adapters.load_symbols(self.absolute(relative_path), relative_path)
        return self.symbol_index.update(relative_path, symbols)
