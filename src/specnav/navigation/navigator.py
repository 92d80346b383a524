"""Query facade over the spec index, symbol index, and resolver registries.

:class:`Navigator` answers the three navigation questions:

* :meth:`~Navigator.resolve_implementation` -- which code implements or
  calls this operation?
* :meth:`~Navigator.resolve_spec_element` -- which spec nodes does this
  symbol correspond to?
* :meth:`~Navigator.extract_operation_identity` -- which operation is at
  this position in a spec file?

Until the first full rebuild has finished, and while a later one runs,
index-backed queries return ``Resolution(items=[], index_ready=False)`` immediately instead of
reading a half-built index. Callers that prefer to block can call
:meth:`SpecIndex.wait_until_ready <specnav.indexing.index.SpecIndex.wait_until_ready>`
first.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Sequence

from specnav.exceptions import InvalidUsageError
from specnav.indexing.index import IndexState
from specnav.indexing.project import ProjectIndexer
from specnav.locator import extract_operation_identity
from specnav.models import CandidateSymbol, SpecOperation
from specnav.navigation.base import ImplementationResolver, Resolution, ResolutionContext, SpecResolver
from specnav.navigation.registry import default_implementation_resolvers, default_spec_resolvers
from specnav.parser.document import SpecNode

logger = logging.getLogger(__name__)


class Navigator:
    """Bidirectional spec <-> code navigation for one project.

    Example::

        indexer = ProjectIndexer(root)
        indexer.rebuild()
        navigator = Navigator.for_project(indexer)
        identity = navigator.extract_operation_identity("api.yaml", 12).first()
        for symbol in navigator.resolve_implementation(identity).items:
            print(symbol.file_path, symbol.line, symbol.display_name)
    """

    def __init__(
        self,
        context: ResolutionContext,
        spec_resolvers: Optional[Sequence[SpecResolver]] = None,
        implementation_resolvers: Optional[Sequence[ImplementationResolver]] = None,
    ) -> None:
        self.context = context
        self.spec_resolvers = list(spec_resolvers) if spec_resolvers is not None else default_spec_resolvers()
        self.implementation_resolvers = (
            list(implementation_resolvers)
            if implementation_resolvers is not None
            else default_implementation_resolvers()
        )

    @classmethod
    def for_project(cls, indexer: ProjectIndexer, **kwargs) -> Navigator:
        context = ResolutionContext(
            root=indexer.root,
            spec_index=indexer.spec_index,
            symbol_index=indexer.symbol_index,
            documents=indexer.documents,
        )
        return cls(context, **kwargs)

    @property
    def index_ready(self) -> bool:
        return self.context.spec_index.state == IndexState.READY

    def resolve_implementation(self, operation: SpecOperation) -> Resolution[CandidateSymbol]:
        """Symbols implementing *operation*, across every convention.

        More than one item means the caller must disambiguate.
        """
        if not self.index_ready:
            return Resolution(index_ready=False)

        found: dict[tuple, CandidateSymbol] = {}
        for resolver in self.implementation_resolvers:
            for symbol in resolver.resolve_implementation(operation, self.context):
                found.setdefault(symbol.identity, symbol)
            logger.debug("%s resolver done for %s", resolver.generator_name, operation.operation_id)

        items = list(found.values())
        if len(items) > 1:
            logger.debug("Ambiguous match for operationId %s: %d candidates", operation.operation_id, len(items))
        return Resolution(items=items)

    def resolve_spec_element(self, symbol: CandidateSymbol) -> Resolution[SpecNode]:
        """Spec nodes *symbol* may correspond to, across every element kind."""
        if not self.index_ready:
            return Resolution(index_ready=False)

        items: list[SpecNode] = []
        for resolver in self.spec_resolvers:
            items.extend(resolver.resolve_spec_element(symbol, self.context))
        return Resolution(items=list(dict.fromkeys(items)))

    def extract_operation_identity(
        self, file_path: str | Path, line: int, column: Optional[int] = None
    ) -> Resolution[SpecOperation]:
        """The operation at *line* (1-based) of the spec at *file_path*.

        Relative paths are taken from the project root. Reads the document
        directly, so it works during a rebuild; ``index_ready`` still
        reports the index state.

        Raises:
            InvalidUsageError: If *line* or *column* is less than 1.
        """
        if line < 1 or (column is not None and column < 1):
            raise InvalidUsageError(f"Line and column are 1-based, got {line}:{column}")
        path = Path(file_path)
        if not path.is_absolute():
            path = self.context.root / path
        document = self.context.documents.get(path)
        identity = extract_operation_identity(document, line, column) if document is not None else None
        return Resolution(items=[identity] if identity else [], index_ready=self.index_ready)

    def find_symbols(self, file_path: str, name: str) -> list[CandidateSymbol]:
        """Symbols called *name* (``Class``, ``Class.method`` or ``function``) in an indexed source file."""
        owner, _, member = name.rpartition(".")
        matches: list[CandidateSymbol] = []
        for symbol in self.context.symbol_index.symbols(file_path):
            if not owner and symbol.simple_name == name:
                matches.append(symbol)
            elif owner and (symbol.qualified_name == owner or symbol.simple_name == owner):
                matches.extend(symbol.find_members(member))
        return matches
