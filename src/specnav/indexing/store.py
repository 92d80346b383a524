"""Persistent per-file index records backed by :mod:`diskcache`.

Each indexed file is stored under ``file:<relative path>`` together with the
SHA-256 of the content it was built from and the :data:`INDEX_VERSION`
that produced it. A document assembled from other files (a split spec)
also records the hash of each file it references. On a later run the
project indexer asks :meth:`IndexStore.get` with the current hashes and only
re-parses documents whose own content, or that of a referenced file,
changed.

The store itself carries a ``__version__`` entry. Opening a store written by
a different :data:`INDEX_VERSION` clears it, forcing a full rebuild.

See Also:
    :class:`~specnav.models.StoreConfig` -- the ``enabled`` toggle.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Iterable, Mapping, Optional

import diskcache

from specnav.indexing.index import INDEX_VERSION, Entry

_VERSION_KEY = "__version__"
_FILE_PREFIX = "file:"


class IndexStore:
    """Disk-backed store of serialised index entries per spec file.

    Args:
        cache_dir: Root directory for the store. An ``index/``
            subdirectory is created inside it.
        enabled: When false every operation is a no-op and :meth:`get`
            always misses.
        version: Record-shape version; defaults to :data:`INDEX_VERSION`.

    Example::

        store = IndexStore(get_cache_dir() / "projects" / project_key)
        cached = store.get("api/petstore.yaml", digest)
        if cached is None:
            ...  # parse and index, then
            store.put("api/petstore.yaml", digest, index.entries("api/petstore.yaml"))
    """

    def __init__(self, cache_dir: str | Path, enabled: bool = True, version: int = INDEX_VERSION) -> None:
        self._cache_dir = Path(cache_dir)
        self._version = version
        self._cache: Optional[diskcache.Cache] = None
        self.invalidated = False
        if enabled:
            self._cache = diskcache.Cache(str(self._cache_dir / "index"))
            stored = self._cache.get(_VERSION_KEY)
            if stored != version:
                self._cache.clear()
                self._cache.set(_VERSION_KEY, version)
                self.invalidated = stored is not None

    @property
    def enabled(self) -> bool:
        return self._cache is not None

    def get(
        self,
        file_path: str,
        content_hash: str,
        digest_of: Optional[Callable[[str], str]] = None,
    ) -> Optional[list[Entry]]:
        """Return stored entries for *file_path* if built from *content_hash*.

        Args:
            file_path: Relative path the entries were stored under.
            content_hash: Current hash of the file itself.
            digest_of: Current hash of a referenced file. Entries that
                depend on other files are only returned when every such
                hash still matches; without *digest_of* they always miss.

        Returns:
            The entries, or ``None`` on a miss or any hash or version
            mismatch.
        """
        if self._cache is None:
            return None
        payload = self._cache.get(_FILE_PREFIX + file_path)
        if not isinstance(payload, dict):
            return None
        if payload.get("hash") != content_hash or payload.get("version") != self._version:
            return None
        recorded = payload.get("dependencies") or {}
        if recorded and (digest_of is None or any(digest_of(dep) != digest for dep, digest in recorded.items())):
            return None
        return [(str(key), str(value)) for key, value in payload.get("entries", [])]

    def put(
        self,
        file_path: str,
        content_hash: str,
        entries: Iterable[Entry],
        dependencies: Optional[Mapping[str, str]] = None,
    ) -> None:
        """Store the entries built from *content_hash* for *file_path*.

        *dependencies* maps each referenced file to the hash of the content
        the entries were built from.
        """
        if self._cache is None:
            return
        self._cache.set(
            _FILE_PREFIX + file_path,
            {
                "hash": content_hash,
                "version": self._version,
                "entries": [list(entry) for entry in entries],
                "dependencies": dict(dependencies or {}),
            },
        )

    def dependencies(self, file_path: str) -> list[str]:
        """Referenced files recorded for *file_path*, empty when unknown."""
        if self._cache is None:
            return []
        payload = self._cache.get(_FILE_PREFIX + file_path)
        if not isinstance(payload, dict):
            return []
        return sorted(payload.get("dependencies") or {})

    def delete(self, file_path: str) -> None:
        if self._cache is not None:
            self._cache.delete(_FILE_PREFIX + file_path)

    def files(self) -> list[str]:
        """Return the relative paths of every stored file."""
        if self._cache is None:
            return []
        return sorted(
            key[len(_FILE_PREFIX):]
            for key in self._cache.iterkeys()
            if isinstance(key, str) and key.startswith(_FILE_PREFIX)
        )

    def clear(self) -> None:
        """Remove all stored files, keeping the version marker."""
        if self._cache is not None:
            self._cache.clear()
            self._cache.set(_VERSION_KEY, self._version)

    def stats(self) -> dict[str, Any]:
        """Return store statistics.

        Returns:
            A ``dict`` with ``enabled`` and, when enabled, ``files``,
            ``directory`` and ``version``.
        """
        if self._cache is None:
            return {"enabled": False}
        return {
            "enabled": True,
            "files": len(self.files()),
            "directory": str(self._cache_dir / "index"),
            "version": self._version,
        }

    def close(self) -> None:
        """Close the underlying :class:`diskcache.Cache`."""
        if self._cache is not None:
            self._cache.close()
