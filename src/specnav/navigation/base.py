"""Resolver contracts and the shared query context.

Two resolver families exist, each a fixed contract with a short ordered list
of variants (see :mod:`specnav.navigation.registry`):

* :class:`SpecResolver` -- code -> spec. Derives identifiers from a
  candidate symbol and returns the spec nodes they name.
* :class:`ImplementationResolver` -- spec -> code. Returns the symbols
  implementing (or calling) an operation under one code-generation
  convention.

New conventions are supported by adding a variant to the list, not by
subclassing an existing variant.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from functools import cached_property
from pathlib import Path
from typing import Generic, Optional, TypeVar

from specnav.adapters.symbols import SymbolIndex, SymbolScope
from specnav.indexing.index import SpecIndex
from specnav.matching.matcher import OperationMatcher
from specnav.models import CandidateSymbol, SpecOperation
from specnav.parser.document import DocumentCache, SpecDocument, SpecNode

T = TypeVar("T")


@dataclass
class Resolution(Generic[T]):
    """Result of a navigation query.

    ``index_ready`` is ``False`` when the query was answered (with no items)
    because a full rebuild was in progress. An empty ``items`` with
    ``index_ready`` set means nothing matched.
    """

    items: list[T] = field(default_factory=list)
    index_ready: bool = True

    @property
    def ambiguous(self) -> bool:
        return len(self.items) > 1

    def first(self) -> Optional[T]:
        return self.items[0] if self.items else None


@dataclass
class ResolutionContext:
    """Everything a resolver may read while answering one query."""

    root: Path
    spec_index: SpecIndex
    symbol_index: SymbolIndex
    documents: DocumentCache

    @cached_property
    def scope(self) -> SymbolScope:
        return SymbolScope(self.symbol_index)

    @cached_property
    def matcher(self) -> OperationMatcher:
        return OperationMatcher(self.scope)

    def provider(self, path: Path) -> Optional[SpecDocument]:
        """Document provider for the locator."""
        return self.documents.get(path)

    def document(self, relative_path: str) -> Optional[SpecDocument]:
        return self.documents.get(self.root / relative_path)


class SpecResolver(ABC):
    """Code -> spec resolver for one element kind."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    def identifiers(self, symbol: CandidateSymbol) -> list[str]:
        """Identifiers *symbol* may correspond to, annotation-derived first."""
        ...

    @abstractmethod
    def resolve_spec_element(self, symbol: CandidateSymbol, context: ResolutionContext) -> list[SpecNode]:
        ...


class ImplementationResolver(ABC):
    """Spec -> code resolver for one code-generation convention."""

    @property
    @abstractmethod
    def generator_name(self) -> str:
        ...

    @abstractmethod
    def candidate_names(self, operation: SpecOperation) -> list[str]:
        """Symbol names used to shortlist source files."""
        ...

    @abstractmethod
    def resolve_implementation(
        self, operation: SpecOperation, context: ResolutionContext
    ) -> list[CandidateSymbol]:
        ...

    def candidate_files(self, operation: SpecOperation, context: ResolutionContext) -> list[str]:
        return context.symbol_index.files_declaring(self.candidate_names(operation))
