"""Python source adapter built on :mod:`ast`.

Parses a module and projects its top-level functions and classes (with their
methods) into :class:`~specnav.models.CandidateSymbol` values.

Decorators become entries in ``CandidateSymbol.annotations``:

* Route decorators -- ``@router.get("/pets/{id}")`` and friends, on a name bound
  to ``APIRouter()``, ``FastAPI()``, ``Blueprint()`` and the like -- become an
  HTTP-mapping annotation (``GetMapping``, ``PostMapping``, ...) whose
  ``path`` includes any ``APIRouter(prefix=...)`` or
  ``include_router(..., prefix=...)`` prefix. ``@router.api_route(path,
  methods=[...])`` becomes ``RequestMapping``. Route keywords
  ``operation_id``, ``summary`` and ``tags`` are mirrored into an
  ``Operation`` annotation.
* Any other decorator is recorded under its simple name. Keyword arguments
  become attributes with snake_case keys converted to camelCase
  (``operation_id`` -> ``operationId``); a first positional argument is
  stored as ``value``.

Attribute values are literal: strings, numbers, booleans, lists of those, or
dotted names as text (``RequestMethod.GET``).
"""

from __future__ import annotations

import ast
import logging
from pathlib import Path
from typing import Any, Optional

from specnav.adapters.base import SourceAdapter
from specnav.matching.naming import camel_case
from specnav.models import CandidateSymbol, SymbolKind

logger = logging.getLogger(__name__)

# HTTP methods recognised on decorator attributes.
_HTTP_METHODS = frozenset({"get", "post", "put", "patch", "delete", "head", "options", "trace"})

# Calls whose result is an application or router that route decorators hang off.
_ROUTER_FACTORIES = ("APIRouter", "Router", "Blueprint", "FastAPI", "Flask")


class PythonAdapter(SourceAdapter):
    """Project Python modules into candidate symbols."""

    @property
    def name(self) -> str:
        return "python"

    @property
    def extensions(self) -> tuple[str, ...]:
        return ("py",)

    def load_symbols(self, path: Path, display_path: Optional[str] = None) -> list[CandidateSymbol]:
        """Parse *path* and return its top-level functions and classes.

        Files that cannot be parsed (``SyntaxError``, ``UnicodeDecodeError``,
        unreadable) yield an empty list.
        """
        try:
            source = path.read_text(encoding="utf-8")
            tree = ast.parse(source, filename=str(path))
        except (OSError, SyntaxError, UnicodeDecodeError, ValueError) as exc:
            logger.debug("Skipping %s: %s", path, exc)
            return []

        return _ModuleProjector(
            source,
            display_path if display_path is not None else str(path),
            _resolve_routers(tree),
        ).project(tree)


class _ModuleProjector:
    def __init__(self, source: str, file_path: str, routers: dict[str, str]) -> None:
        self._source = source
        self._file_path = file_path
        self._routers = routers

    def project(self, tree: ast.Module) -> list[CandidateSymbol]:
        symbols: list[CandidateSymbol] = []
        for node in tree.body:
            if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
                symbols.append(self._function(node, None))
            elif isinstance(node, ast.ClassDef):
                symbols.extend(self._classes(node, None))
        return symbols

    def _classes(self, node: ast.ClassDef, outer: Optional[str]) -> list[CandidateSymbol]:
        """Project *node* and any nested classes (qualified ``Outer.Inner``)."""
        qualified = f"{outer}.{node.name}" if outer else node.name
        members = [
            self._function(child, qualified)
            for child in node.body
            if isinstance(child, (ast.FunctionDef, ast.AsyncFunctionDef))
        ]
        symbol = CandidateSymbol(
            simple_name=node.name,
            kind=SymbolKind.CLASS,
            qualified_name=qualified,
            containing_type_qualified_name=outer,
            annotations=self._annotations(node.decorator_list),
            raw_text=ast.get_source_segment(self._source, node),
            members=members,
            bases=tuple(name.rsplit(".", 1)[-1] for name in map(_dotted_name, node.bases) if name),
            file_path=self._file_path,
            line=node.lineno,
        )
        nested = [
            inner
            for child in node.body
            if isinstance(child, ast.ClassDef)
            for inner in self._classes(child, qualified)
        ]
        return [symbol, *nested]

    def _function(
        self, node: ast.FunctionDef | ast.AsyncFunctionDef, owner: Optional[str]
    ) -> CandidateSymbol:
        params = [arg.arg for arg in (*node.args.posonlyargs, *node.args.args, *node.args.kwonlyargs)]
        if owner is not None and params and params[0] in ("self", "cls"):
            params = params[1:]
        return CandidateSymbol(
            simple_name=node.name,
            kind=SymbolKind.METHOD if owner else SymbolKind.FUNCTION,
            containing_type_qualified_name=owner,
            annotations=self._annotations(node.decorator_list),
            raw_text=ast.get_source_segment(self._source, node),
            parameters=tuple(params),
            file_path=self._file_path,
            line=node.lineno,
        )

    def _annotations(self, decorators: list[ast.expr]) -> dict[str, dict[str, Any]]:
        annotations: dict[str, dict[str, Any]] = {}
        for decorator in decorators:
            for name, attrs in self._decorator(decorator).items():
                annotations.setdefault(name, attrs)
        return annotations

    def _decorator(self, decorator: ast.expr) -> dict[str, dict[str, Any]]:
        if not isinstance(decorator, ast.Call):
            name = _simple_name(decorator)
            return {name: {}} if name else {}

        route = self._route(decorator)
        if route is not None:
            return route

        name = _simple_name(decorator.func)
        if not name:
            return {}
        return {name: _call_attributes(decorator)}

    def _route(self, call: ast.Call) -> Optional[dict[str, dict[str, Any]]]:
        """Map ``@<router>.<method>(path, ...)`` to mapping + operation annotations.

        Only names bound to a router or application count; ``@cache.get(...)``
        and similar calls fall through to the generic decorator handling.
        """
        func = call.func
        if not isinstance(func, ast.Attribute) or not isinstance(func.value, ast.Name):
            return None
        if func.value.id not in self._routers:
            return None
        attr = func.attr
        if attr not in _HTTP_METHODS and attr != "api_route":
            return None

        keywords = {kw.arg: _literal(kw.value) for kw in call.keywords if kw.arg}
        route_path = _literal(call.args[0]) if call.args else keywords.get("path")
        if not isinstance(route_path, str):
            return None

        full_path = _join_route(self._routers[func.value.id], route_path)
        if attr == "api_route":
            methods = keywords.get("methods") or ["GET"]
            mapping = {"RequestMapping": {"path": full_path, "method": methods}}
        else:
            mapping = {f"{attr.capitalize()}Mapping": {"path": full_path, "method": attr.upper()}}

        operation = {
            camel_case(key): keywords[key]
            for key in ("operation_id", "summary", "tags")
            if keywords.get(key) is not None
        }
        if operation:
            mapping["Operation"] = operation
        return mapping


def _join_route(prefix: str, route_path: str) -> str:
    if prefix:
        tail = route_path.lstrip("/")
        route_path = prefix.rstrip("/") + ("/" + tail if tail else "") or "/"
    while "//" in route_path:
        route_path = route_path.replace("//", "/")
    return route_path


def _router_prefix(call: ast.Call) -> str:
    for kw in call.keywords:
        if kw.arg in ("prefix", "url_prefix") and isinstance(kw.value, ast.Constant):
            return str(kw.value.value)
    return ""


def _resolve_routers(tree: ast.Module) -> dict[str, str]:
    """Map router and application variables to their path prefix.

    ``router = APIRouter(prefix="/api")`` records ``/api``; ``app = FastAPI()``
    records an empty prefix. An ``app.include_router(router, prefix="/v1")``
    call overrides the prefix and also marks an imported ``router`` as one.
    """
    routers: dict[str, str] = {}
    overrides: dict[str, str] = {}
    included: set[str] = set()

    for node in ast.walk(tree):
        if isinstance(node, (ast.Assign, ast.AnnAssign)):
            targets = node.targets if isinstance(node, ast.Assign) else [node.target]
            call = node.value
            if len(targets) != 1 or not isinstance(targets[0], ast.Name):
                continue
            if isinstance(call, ast.Call) and _simple_name(call.func) in _ROUTER_FACTORIES:
                routers[targets[0].id] = _router_prefix(call)
        elif isinstance(node, ast.Expr) and isinstance(node.value, ast.Call):
            call = node.value
            if not isinstance(call.func, ast.Attribute) or call.func.attr != "include_router":
                continue
            if not call.args or not isinstance(call.args[0], ast.Name):
                continue
            included.add(call.args[0].id)
            prefix = _router_prefix(call)
            if prefix:
                overrides[call.args[0].id] = prefix

    for name in included:
        routers.setdefault(name, "")
    routers.update(overrides)
    return routers


def _call_attributes(call: ast.Call) -> dict[str, Any]:
    attrs: dict[str, Any] = {}
    if call.args:
        attrs["value"] = _literal(call.args[0])
    for kw in call.keywords:
        if kw.arg:
            attrs[camel_case(kw.arg)] = _literal(kw.value)
    return attrs


def _literal(node: ast.expr) -> Any:
    """Convert a decorator argument to a plain value."""
    if isinstance(node, ast.Constant):
        return node.value
    if isinstance(node, (ast.List, ast.Tuple, ast.Set)):
        return [_literal(item) for item in node.elts]
    dotted = _dotted_name(node)
    if dotted is not None:
        return dotted
    return ast.unparse(node)


def _dotted_name(node: ast.expr) -> Optional[str]:
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        base = _dotted_name(node.value)
        return f"{base}.{node.attr}" if base else None
    if isinstance(node, ast.Subscript):
        # Generic bases such as Base[T]
        return _dotted_name(node.value)
    return None


def _simple_name(node: ast.expr) -> Optional[str]:
    """Return the last component of a decorator or call target."""
    if isinstance(node, ast.Call):
        return _simple_name(node.func)
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        return node.attr
    return None
