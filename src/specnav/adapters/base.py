"""Source adapter contract and the registry that dispatches on file extension.

A :class:`SourceAdapter` turns one source file into
:class:`~specnav.models.CandidateSymbol` projections. The matcher and the
resolvers never look at a syntax tree; everything they need (names,
annotation attributes, raw text, members, bases) is captured here, once per
file.

Third-party packages can contribute adapters for other languages by
declaring an entry point in the ``specnav.adapters`` group::

    [project.entry-points."specnav.adapters"]
    kotlin = "specnav_kotlin.adapter:KotlinAdapter"
"""

from __future__ import annotations

import importlib.metadata
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, Optional

from specnav.models import CandidateSymbol

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "specnav.adapters"
"""The entry-point group name used for adapter discovery."""


class SourceAdapter(ABC):
    """Base class for language adapters.

    Subclasses declare the extensions they handle and implement
    :meth:`load_symbols`. Adapters must not raise for malformed sources:
    a file that cannot be parsed contributes no symbols.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Short identifier used in logs (e.g. ``"python"``)."""
        ...

    @property
    @abstractmethod
    def extensions(self) -> tuple[str, ...]:
        """Lower-case file extensions without the leading dot."""
        ...

    @abstractmethod
    def load_symbols(self, path: Path, display_path: Optional[str] = None) -> list[CandidateSymbol]:
        """Return the top-level functions and classes declared in *path*.

        Args:
            path: Absolute path of the source file.
            display_path: Value stored in each symbol's ``file_path``;
                defaults to ``str(path)``.
        """
        ...

    def handles(self, path: Path) -> bool:
        return path.suffix.lower().lstrip(".") in self.extensions


class AdapterRegistry:
    """Ordered collection of adapters; the first one handling a file wins.

    Example::

        registry = AdapterRegistry([PythonAdapter()])
        symbols = registry.load_symbols(Path("app/routes.py"))
    """

    def __init__(self, adapters: Iterable[SourceAdapter] = ()) -> None:
        self._adapters: list[SourceAdapter] = list(adapters)

    def register(self, adapter: SourceAdapter) -> None:
        self._adapters.append(adapter)

    def discover(self) -> list[str]:
        """Load adapters registered under :data:`ENTRY_POINT_GROUP`.

        Returns:
            Names of the adapters that were loaded. Entry points that fail
            to load are logged and skipped.
        """
        loaded: list[str] = []
        for ep in importlib.metadata.entry_points(group=ENTRY_POINT_GROUP):
            try:
                adapter = ep.load()()
            except Exception as exc:
                logger.warning("Failed to load adapter '%s': %s", ep.name, exc)
                continue
            if not isinstance(adapter, SourceAdapter):
                logger.warning("Entry point '%s' is not a SourceAdapter", ep.name)
                continue
            self.register(adapter)
            loaded.append(adapter.name)
        return loaded

    @property
    def adapters(self) -> list[SourceAdapter]:
        return list(self._adapters)

    @property
    def extensions(self) -> set[str]:
        return {ext for adapter in self._adapters for ext in adapter.extensions}

    def for_path(self, path: Path) -> Optional[SourceAdapter]:
        for adapter in self._adapters:
            if adapter.handles(path):
                return adapter
        return None

    def load_symbols(self, path: Path, display_path: Optional[str] = None) -> list[CandidateSymbol]:
        """Load symbols from *path* with the matching adapter (empty if none)."""
        adapter = self.for_path(path)
        if adapter is None:
            return []
        return adapter.load_symbols(path, display_path)
