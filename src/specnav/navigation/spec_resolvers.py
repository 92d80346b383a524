"""Code -> spec resolvers: one per spec element kind.

Each resolver derives every identifier a symbol may stand for, looks each
one up in the spec index, and pinpoints the node with the locator. When the
annotation on a symbol and the naming convention disagree, both identifiers
are queried and every hit is returned; nothing is dropped in favour of the
other signal.
"""

from __future__ import annotations

import logging

from specnav.locator import find_component_node, find_operation_nodes, find_tag_node
from specnav.matching.matcher import OPERATION_ANNOTATION
from specnav.matching.naming import camel_case, strip_raw_affixes
from specnav.models import CandidateSymbol, IndexKind, SymbolKind
from specnav.navigation.base import ResolutionContext, SpecResolver
from specnav.parser.document import SpecNode

logger = logging.getLogger(__name__)

TAG_ANNOTATION = "Tag"

# Stripped repeatedly from class names to guess a tag
CLASS_SUFFIXES = ("Controller", "Delegate", "Api", "Client")


def _unique(values: list[str]) -> list[str]:
    return list(dict.fromkeys(value for value in values if value))


class OperationSpecResolver(SpecResolver):
    """Methods and functions -> operations.

    Identifiers: the ``Operation`` annotation's ``operationId``, then the
    symbol name with generator affixes removed, then its camelCase form.
    """

    @property
    def name(self) -> str:
        return "operation-resolver"

    def identifiers(self, symbol: CandidateSymbol) -> list[str]:
        if symbol.kind not in (SymbolKind.METHOD, SymbolKind.FUNCTION):
            return []
        names: list[str] = []
        annotation = symbol.annotation(OPERATION_ANNOTATION) or {}
        if isinstance(annotation.get("operationId"), str):
            names.append(annotation["operationId"])
        conventional = strip_raw_affixes(symbol.simple_name)
        names += [conventional, camel_case(conventional)]
        return _unique(names)

    def resolve_spec_element(self, symbol: CandidateSymbol, context: ResolutionContext) -> list[SpecNode]:
        results: list[SpecNode] = []
        for identifier in self.identifiers(symbol):
            for record in context.spec_index.lookup(IndexKind.OPERATION, identifier):
                document = context.document(record.file_path)
                if document is None:
                    continue
                nodes = find_operation_nodes(
                    document, record.path, record.method, record.operation_id, context.provider
                )
                if nodes:
                    results.append(nodes[0])
        logger.debug("Found %d operation nodes for %s", len(results), symbol.display_name)
        return results


class ComponentSpecResolver(SpecResolver):
    """Classes -> component schemas named like the class."""

    @property
    def name(self) -> str:
        return "component-resolver"

    def identifiers(self, symbol: CandidateSymbol) -> list[str]:
        return [symbol.simple_name] if symbol.kind == SymbolKind.CLASS else []

    def resolve_spec_element(self, symbol: CandidateSymbol, context: ResolutionContext) -> list[SpecNode]:
        results: list[SpecNode] = []
        for identifier in self.identifiers(symbol):
            for record in context.spec_index.lookup(IndexKind.COMPONENT, identifier):
                document = context.document(record.file_path)
                if document is None:
                    continue
                node = find_component_node(document, record.name, context.provider)
                if node is not None:
                    results.append(node)
        return results


class TagSpecResolver(SpecResolver):
    """Classes -> tags.

    Identifiers: the ``Tag`` annotation's ``name``, then the class name with
    generator suffixes stripped, then that name without a ``Ws`` suffix.
    Generators derive class names by capitalising the tag, so the
    lower-camel form of each guess is tried as well.
    """

    @property
    def name(self) -> str:
        return "tag-resolver"

    def identifiers(self, symbol: CandidateSymbol) -> list[str]:
        if symbol.kind != SymbolKind.CLASS:
            return []
        names: list[str] = []
        annotation = symbol.annotation(TAG_ANNOTATION) or {}
        tag_name = annotation.get("name", annotation.get("value"))
        if isinstance(tag_name, str):
            names.append(tag_name)

        base = self.strip_suffixes(symbol.simple_name)
        guesses = [base, base.removesuffix("Ws") or base]
        names += guesses
        names += [guess[:1].lower() + guess[1:] for guess in guesses]
        return _unique(names)

    @staticmethod
    def strip_suffixes(class_name: str) -> str:
        name = class_name
        stripped = True
        while stripped:
            stripped = False
            for suffix in CLASS_SUFFIXES:
                if name.endswith(suffix) and len(name) > len(suffix):
                    name = name[: -len(suffix)]
                    stripped = True
        return name

    def resolve_spec_element(self, symbol: CandidateSymbol, context: ResolutionContext) -> list[SpecNode]:
        results: list[SpecNode] = []
        for identifier in self.identifiers(symbol):
            for record in context.spec_index.lookup(IndexKind.TAG, identifier):
                document = context.document(record.file_path)
                if document is None:
                    continue
                node = find_tag_node(document, record.name)
                if node is not None:
                    results.append(node)
        return results
