"""Spec -> code resolvers: one per code-generation convention.

* :class:`DelegatePatternResolver` (``server-delegate``) -- server stubs
  whose handlers carry HTTP-mapping annotations (Spring controllers,
  FastAPI routes), optionally forwarding to a ``<Controller>Delegate``.
* :class:`TypedClientResolver` (``typed-client``) -- declarative clients:
  an API interface ``X`` paired with an ``XClient`` carrying a client marker
  annotation such as ``FeignClient``.
* :class:`RawFunctionResolver` (``raw-function``) -- generated clients whose
  low-level variant (``getPetRaw``, ``_get_pet_serialize``) spells the HTTP
  method and path in its body.

Each resolver shortlists files from the symbol index by the names the
operation may be generated under, so only a handful of files are inspected
per query.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, Optional

from specnav.matching.naming import name_variants, raw_name_variants, snake_case
from specnav.models import CandidateSymbol, SpecOperation, SymbolKind
from specnav.navigation.base import ImplementationResolver, ResolutionContext

logger = logging.getLogger(__name__)

CLIENT_MARKERS = ("FeignClient",)

_METHOD_PATTERN = re.compile(r"""\bmethod\s*[:=]\s*["'`](.*?)["'`]""")
_PATH_PATTERN = re.compile(r"""\b(?:path|resource_path)\s*[:=]\s*["'`](.*?)["'`]""")


class DelegatePatternResolver(ImplementationResolver):
    """Annotated handlers, following delegates and overriding methods."""

    @property
    def generator_name(self) -> str:
        return "server-delegate"

    def candidate_names(self, operation: SpecOperation) -> list[str]:
        return name_variants(operation.operation_id)

    def resolve_implementation(
        self, operation: SpecOperation, context: ResolutionContext
    ) -> list[CandidateSymbol]:
        matcher = context.matcher
        results: list[CandidateSymbol] = []
        for file_path in self.candidate_files(operation, context):
            symbols = context.symbol_index.symbols(file_path)
            for symbol in symbols:
                if symbol.kind != SymbolKind.CLASS:
                    continue
                method = matcher.resolve(symbol, operation)
                if method is not None:
                    results.append(method)

            functions = [s for s in symbols if s.kind == SymbolKind.FUNCTION]
            function = matcher.best_match(functions, operation)
            if function is not None:
                results.append(function)
        return results


class TypedClientResolver(ImplementationResolver):
    """API interfaces backed by a marker-annotated ``<Interface>Client``."""

    @property
    def generator_name(self) -> str:
        return "typed-client"

    def candidate_names(self, operation: SpecOperation) -> list[str]:
        return name_variants(operation.operation_id)

    def resolve_implementation(
        self, operation: SpecOperation, context: ResolutionContext
    ) -> list[CandidateSymbol]:
        results: list[CandidateSymbol] = []
        for file_path in self.candidate_files(operation, context):
            for symbol in context.symbol_index.symbols(file_path):
                if symbol.kind != SymbolKind.CLASS or not self._has_client(symbol, context):
                    continue
                method = context.matcher.resolve_best_method(symbol, operation)
                if method is not None:
                    results.append(method)
        return results

    @staticmethod
    def _has_client(symbol: CandidateSymbol, context: ResolutionContext) -> bool:
        owner = symbol.qualified_name or symbol.simple_name
        client = context.scope.find_class(f"{owner}Client")
        return client is not None and any(client.has_annotation(marker) for marker in CLIENT_MARKERS)


class RawFunctionResolver(ImplementationResolver):
    """Generated clients identified by the method/path literals in their raw variant."""

    @property
    def generator_name(self) -> str:
        return "raw-function"

    def candidate_names(self, operation: SpecOperation) -> list[str]:
        return raw_name_variants(operation.operation_id)

    def resolve_implementation(
        self, operation: SpecOperation, context: ResolutionContext
    ) -> list[CandidateSymbol]:
        results: list[CandidateSymbol] = []
        for file_path in self.candidate_files(operation, context):
            symbols = context.symbol_index.symbols(file_path)
            containers = [s.members for s in symbols if s.kind == SymbolKind.CLASS]
            containers.append([s for s in symbols if s.kind == SymbolKind.FUNCTION])
            for functions in containers:
                match = self._resolve_function(functions, operation)
                if match is not None:
                    results.append(match)
        return results

    def _resolve_function(
        self, functions: Iterable[CandidateSymbol], operation: SpecOperation
    ) -> Optional[CandidateSymbol]:
        siblings = list(functions)
        for raw_name in self.candidate_names(operation):
            raw = next((f for f in siblings if f.simple_name == raw_name), None)
            if raw is None or not raw.raw_text:
                continue
            if not self._literals_match(raw.raw_text, operation):
                logger.debug("%s does not match %s %s", raw.display_name, operation.method.value, operation.path)
                continue
            for public_name in (operation.operation_id, snake_case(operation.operation_id)):
                public = next((f for f in siblings if f.simple_name == public_name), None)
                if public is not None:
                    logger.debug("%s replaced by %s", raw.display_name, public.display_name)
                    return public
            return raw
        return None

    @staticmethod
    def _literals_match(text: str, operation: SpecOperation) -> bool:
        method = _METHOD_PATTERN.search(text)
        path = _PATH_PATTERN.search(text)
        if method is None or method.group(1).upper() != operation.method.value:
            return False
        if operation.path.startswith("/"):
            return path is not None and path.group(1) == operation.path
        return True
