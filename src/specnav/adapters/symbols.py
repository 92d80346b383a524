"""Code-side symbol index and the resolution scope built on it.

:class:`SymbolIndex` remembers, per source file, the symbols an adapter
projected from it, and inverts them into ``name -> files`` so resolvers can
shortlist files by an operation's name variants without re-parsing the
project. Updates replace a file's symbols atomically, the same way the spec
index replaces a file's records.

:class:`SymbolScope` answers the structural questions the matcher asks:
"is there a class called ``PetApiDelegate``?" and "which methods override
``PetApi.get_pet``?".
"""

from __future__ import annotations

import threading
from typing import Iterable, Iterator, Optional

from specnav.models import CandidateSymbol, SymbolKind


def _names(symbol: CandidateSymbol) -> set[str]:
    names = {symbol.simple_name}
    names.update(member.simple_name for member in symbol.members)
    return names


class SymbolIndex:
    """Per-file candidate symbols with a name lookup."""

    def __init__(self) -> None:
        self._files: dict[str, tuple[CandidateSymbol, ...]] = {}
        self._names: dict[str, frozenset[str]] = {}
        self._lock = threading.Lock()

    def update(self, file_path: str, symbols: Iterable[CandidateSymbol]) -> int:
        """Replace the symbols held for *file_path*; returns how many are held."""
        held = tuple(symbols)
        with self._lock:
            files = dict(self._files)
            if held:
                files[file_path] = held
            else:
                files.pop(file_path, None)
            self._files = files
            self._names = self._invert(files)
        return len(held)

    def remove(self, file_path: str) -> bool:
        with self._lock:
            if file_path not in self._files:
                return False
            files = dict(self._files)
            del files[file_path]
            self._files = files
            self._names = self._invert(files)
        return True

    def clear(self) -> None:
        with self._lock:
            self._files = {}
            self._names = {}

    @staticmethod
    def _invert(files: dict[str, tuple[CandidateSymbol, ...]]) -> dict[str, frozenset[str]]:
        inverted: dict[str, set[str]] = {}
        for file_path, symbols in files.items():
            for symbol in symbols:
                for name in _names(symbol):
                    inverted.setdefault(name, set()).add(file_path)
        return {name: frozenset(paths) for name, paths in inverted.items()}

    def files_declaring(self, names: Iterable[str]) -> list[str]:
        """Files declaring any of *names*, in indexing order."""
        wanted: set[str] = set()
        index = self._names
        for name in names:
            wanted |= index.get(name, frozenset())
        return [path for path in self._files if path in wanted]

    def symbols(self, file_path: str) -> tuple[CandidateSymbol, ...]:
        return self._files.get(file_path, ())

    def files(self) -> list[str]:
        return list(self._files)

    def iter_symbols(self) -> Iterator[CandidateSymbol]:
        for symbols in list(self._files.values()):
            yield from symbols

    def __len__(self) -> int:
        return len(self._files)


class SymbolScope:
    """Class lookup and override search over a :class:`SymbolIndex`."""

    def __init__(self, index: SymbolIndex) -> None:
        self._index = index

    def classes(self) -> Iterator[CandidateSymbol]:
        return (symbol for symbol in self._index.iter_symbols() if symbol.kind == SymbolKind.CLASS)

    def find_class(self, name: str) -> Optional[CandidateSymbol]:
        """Return the class with qualified name *name*, else the first with that simple name."""
        fallback: Optional[CandidateSymbol] = None
        for cls in self.classes():
            if cls.qualified_name == name:
                return cls
            if fallback is None and cls.simple_name == name.rsplit(".", 1)[-1]:
                fallback = cls
        return fallback

    def subclasses(self, cls: CandidateSymbol) -> list[CandidateSymbol]:
        """Every class deriving from *cls*, directly or transitively (breadth-first)."""
        found: list[CandidateSymbol] = []
        seen = {cls.identity}
        queue = [cls.simple_name]
        while queue:
            base = queue.pop(0)
            for candidate in self.classes():
                if base in candidate.bases and candidate.identity not in seen:
                    seen.add(candidate.identity)
                    found.append(candidate)
                    queue.append(candidate.simple_name)
        return found

    def find_overrides(self, method: CandidateSymbol) -> list[CandidateSymbol]:
        """Methods in subclasses of *method*'s owner with the same name and parameters."""
        owner_name = method.containing_type_qualified_name
        if owner_name is None:
            return []
        owner = self.find_class(owner_name)
        if owner is None:
            return []
        overrides: list[CandidateSymbol] = []
        for subclass in self.subclasses(owner):
            for member in subclass.find_members(method.simple_name):
                if member.parameters == method.parameters:
                    overrides.append(member)
        return overrides
