"""Decide whether a candidate symbol implements an API operation.

:class:`OperationMatcher` applies the layered strategy below. Each layer
can only *disqualify*; missing metadata never vetoes a match, contradicting
metadata does.

1. An ``Operation`` annotation's ``operationId`` must equal the operation's
   (case-sensitive).
2. Its ``summary`` must equal the operation's, when both are present.
3. Its ``tags`` must include every tag of the operation.
4. An HTTP-mapping annotation is required. Its method must equal the
   operation's (case-insensitive) and its path must equal the operation's,
   unless the operation's path does not start with ``/``.

On top of :meth:`~OperationMatcher.matches`, member selection
(:meth:`~OperationMatcher.resolve_best_method`) handles the escape prefix
generators add to keyword-colliding names, and
:meth:`~OperationMatcher.resolve` follows delegate indirection and
overriding methods through a :class:`~specnav.adapters.symbols.SymbolScope`.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from specnav.adapters.symbols import SymbolScope
from specnav.matching.naming import ESCAPE_PREFIX, name_variants
from specnav.models import CandidateSymbol, HTTPMethod, SpecOperation

logger = logging.getLogger(__name__)

OPERATION_ANNOTATION = "Operation"

REQUEST_MAPPING = "RequestMapping"

# Checked in this order; the first present wins
MAPPING_ANNOTATIONS: dict[str, Optional[HTTPMethod]] = {
    REQUEST_MAPPING: None,
    "GetMapping": HTTPMethod.GET,
    "PostMapping": HTTPMethod.POST,
    "PutMapping": HTTPMethod.PUT,
    "DeleteMapping": HTTPMethod.DELETE,
    "PatchMapping": HTTPMethod.PATCH,
    "HeadMapping": HTTPMethod.HEAD,
    "OptionsMapping": HTTPMethod.OPTIONS,
    "TraceMapping": HTTPMethod.TRACE,
}

DELEGATE_ACCESSORS = ("getDelegate", "get_delegate")


def _first(value: Any) -> Any:
    """Return the first element of a list value, or the value itself."""
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


def _string_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value]
    return [str(value)]


def mapping_of(symbol: CandidateSymbol) -> Optional[tuple[Optional[HTTPMethod], Optional[str]]]:
    """Return ``(method, path)`` from the symbol's HTTP-mapping annotation.

    Returns ``None`` when the symbol carries no mapping annotation. Either
    element may be ``None`` when the annotation does not state it.
    """
    for name, implied in MAPPING_ANNOTATIONS.items():
        attrs = symbol.annotation(name)
        if attrs is None:
            continue
        method = implied
        if method is None and attrs.get("method") is not None:
            method = HTTPMethod.parse(str(_first(attrs["method"])))
        raw_path = attrs.get("path")
        if raw_path is None:
            raw_path = attrs.get("value")
        path = _first(raw_path)
        return method, str(path) if path is not None else None
    return None


class OperationMatcher:
    """Layered annotation and naming-convention matcher.

    Args:
        scope: Class lookup used for delegate indirection and override
            resolution. Without one, :meth:`resolve` stops after
            :meth:`resolve_best_method`.

    Example::

        matcher = OperationMatcher(SymbolScope(symbol_index))
        if matcher.matches(method_symbol, operation):
            ...
        implementation = matcher.resolve(controller_class, operation)
    """

    def __init__(self, scope: Optional[SymbolScope] = None) -> None:
        self._scope = scope

    def matches(self, symbol: CandidateSymbol, operation: SpecOperation) -> bool:
        """Return whether *symbol* implements *operation*."""
        annotation = symbol.annotation(OPERATION_ANNOTATION)
        if annotation is not None:
            operation_id = annotation.get("operationId")
            if operation_id is not None and operation_id != operation.operation_id:
                logger.debug("%s declares operationId %r", symbol.display_name, operation_id)
                return False

            summary = annotation.get("summary")
            if summary is not None and operation.summary is not None and summary != operation.summary:
                logger.debug("%s declares a different summary", symbol.display_name)
                return False

            if "tags" in annotation and not set(operation.tags) <= set(_string_list(annotation["tags"])):
                logger.debug("%s does not declare every tag of %s", symbol.display_name, operation.operation_id)
                return False

        mapping = mapping_of(symbol)
        if mapping is None:
            logger.debug("%s has no HTTP mapping", symbol.display_name)
            return False

        method, path = mapping
        if method is None or method != operation.method:
            logger.debug("%s maps %s, not %s", symbol.display_name, method, operation.method.value)
            return False

        if operation.path.startswith("/") and path != operation.path:
            logger.debug("%s maps path %r, not %r", symbol.display_name, path, operation.path)
            return False

        return True

    def resolve_best_method(
        self, candidate_class: CandidateSymbol, operation: SpecOperation
    ) -> Optional[CandidateSymbol]:
        """Pick the member of *candidate_class* implementing *operation*."""
        return self.best_match(candidate_class.members, operation)

    def best_match(
        self, candidates: Iterable[CandidateSymbol], operation: SpecOperation
    ) -> Optional[CandidateSymbol]:
        """First of *candidates* named after the operation that :meth:`matches`.

        A match spelled with the escape prefix is replaced by the sibling
        without it, when one exists.
        """
        siblings = list(candidates)
        wanted = set(name_variants(operation.operation_id))
        match = next(
            (c for c in siblings if c.simple_name in wanted and self.matches(c, operation)),
            None,
        )
        if match is None or not match.simple_name.startswith(ESCAPE_PREFIX):
            return match

        stripped = match.simple_name[len(ESCAPE_PREFIX):]
        canonical = next((c for c in siblings if c.simple_name == stripped), None)
        return canonical or match

    def follow_delegate(self, candidate_class: CandidateSymbol, method: CandidateSymbol) -> CandidateSymbol:
        """Redirect *method* to ``<Class>Delegate`` when the class exposes a delegate accessor."""
        if self._scope is None or not self.has_delegate_accessor(candidate_class):
            return method
        owner = candidate_class.qualified_name or candidate_class.simple_name
        delegate = self._scope.find_class(f"{owner}Delegate")
        if delegate is None:
            return method
        for member in delegate.find_members(method.simple_name):
            if member.parameters == method.parameters:
                logger.debug("Following delegate %s for %s", delegate.display_name, method.display_name)
                return member
        return method

    @staticmethod
    def has_delegate_accessor(candidate_class: CandidateSymbol) -> bool:
        return any(
            member.simple_name in DELEGATE_ACCESSORS and not member.parameters
            for member in candidate_class.members
        )

    def find_override(self, method: CandidateSymbol) -> CandidateSymbol:
        """Return the first method overriding *method*, or *method* itself."""
        if self._scope is None:
            return method
        overrides = self._scope.find_overrides(method)
        if overrides:
            logger.debug(
                "%s overridden by %s", method.display_name, ", ".join(o.display_name for o in overrides)
            )
            return overrides[0]
        return method

    def resolve(self, candidate_class: CandidateSymbol, operation: SpecOperation) -> Optional[CandidateSymbol]:
        """Best member, then delegate indirection, then override resolution."""
        method = self.resolve_best_method(candidate_class, operation)
        if method is None:
            return None
        method = self.follow_delegate(candidate_class, method)
        return self.find_override(method)
