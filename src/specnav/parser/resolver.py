"""Resolve ``$ref`` JSON Reference pointers in OpenAPI specifications.

OpenAPI documents commonly use ``$ref`` pointers (e.g.,
``{"$ref": "#/components/schemas/Pet"}``) to avoid repetition, and larger
specs are split across files (``{"$ref": "./pets.yaml#/PetById"}``). This
module performs a recursive deep-copy traversal of the spec, replacing every
``$ref`` with the object it points to -- in the same document or in another
file resolved relative to the *referencing* document's directory.

Circular references are detected via a ``seen`` set of ``(file, fragment)``
pairs and left unresolved to prevent infinite recursion. A schema that
references itself retains its ``$ref`` dict at the cycle point.

Broken references (missing file, missing fragment) are left unresolved as
well unless ``strict=True`` is passed, in which case
:class:`~specnav.exceptions.ReferenceError_` is raised. Indexing runs in
lenient mode: one bad pointer must not hide the rest of the document.

Public functions:

* :func:`parse_ref` -- split a raw ``$ref`` string into a
  :class:`~specnav.models.ReferencePointer`.
* :func:`resolve_pointer` -- navigate a JSON Pointer fragment.
* :func:`resolve_refs` -- dereference a whole document.
"""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any, Callable, Optional

from specnav.exceptions import ReferenceError_, SpecParseError
from specnav.models import DocumentPath, ReferencePointer
from specnav.parser.loader import load_document_data

logger = logging.getLogger(__name__)

DocumentLoader = Callable[[Path], dict[str, Any]]


def parse_ref(ref: str) -> Optional[ReferencePointer]:
    """Parse a ``$ref`` string into file and fragment parts.

    Accepts ``file#/frag/ment``, ``#/frag/ment`` and bare ``file`` forms.
    Fragment segments are unescaped per RFC 6901 (``~1`` -> ``/``,
    ``~0`` -> ``~``).

    Args:
        ref: The raw ``$ref`` value.

    Returns:
        The parsed pointer, or ``None`` for an empty or non-string value
        or a fragment that is not a JSON Pointer.
    """
    if not isinstance(ref, str) or not ref.strip():
        return None

    file_part, sep, fragment = ref.strip().partition("#")
    if sep and fragment and not fragment.startswith("/"):
        return None

    segments = tuple(
        segment.replace("~1", "/").replace("~0", "~")
        for segment in fragment.split("/")[1:]
    ) if fragment else ()
    return ReferencePointer(file_path=file_part or None, fragment=segments)


def resolve_pointer(root: Any, fragment: DocumentPath, ref: str = "") -> Any:
    """Return the value at *fragment* inside *root*.

    Args:
        root: The document to navigate.
        fragment: Unescaped pointer segments.
        ref: The original ``$ref`` string, used in error messages.

    Raises:
        ReferenceError_: If any segment does not exist.
    """
    current: Any = root
    for segment in fragment:
        if isinstance(current, dict):
            if segment not in current:
                raise ReferenceError_(
                    f"Cannot resolve $ref '{ref}': "
                    f"key '{segment}' not found at path"
                )
            current = current[segment]
        elif isinstance(current, list):
            try:
                current = current[int(segment)]
            except (ValueError, IndexError) as exc:
                raise ReferenceError_(
                    f"Cannot resolve $ref '{ref}': "
                    f"invalid array index '{segment}'"
                ) from exc
        else:
            raise ReferenceError_(
                f"Cannot resolve $ref '{ref}': "
                f"cannot navigate into {type(current).__name__}"
            )
    return current


def resolve_refs(
    spec: dict[str, Any],
    source: str | Path | None = None,
    *,
    strict: bool = False,
    loader: DocumentLoader | None = None,
    dependencies: set[Path] | None = None,
) -> dict[str, Any]:
    """Resolve all ``$ref`` pointers in the spec, following external files.

    Creates a deep copy of the input and recursively replaces every
    ``{"$ref": ...}`` dict with the object it points to.

    Args:
        spec: The raw spec dictionary.
        source: Path of the file *spec* was loaded from. External
            references are resolved relative to its directory; when
            omitted, the current working directory is used.
        strict: Raise on broken references instead of leaving them
            unresolved.
        loader: Callable loading a referenced file. Defaults to
            :func:`~specnav.parser.loader.load_document_data`.
        dependencies: When given, receives the absolute path of every
            other file the document references, including files that
            could not be loaded.

    Returns:
        A **new** dictionary with all resolvable pointers replaced.

    Raises:
        ReferenceError_: Only in strict mode, for a broken reference.

    Example::

        raw = load_document_data("api.yaml")
        resolved = resolve_refs(raw, "api.yaml")
        # resolved["paths"]["/pets/{id}"] now holds the path item that
        # lived in ./paths/pets.yaml.
    """
    origin = Path(source).resolve() if source is not None else Path.cwd() / "<memory>"
    resolver = _Resolver(origin, copy.deepcopy(spec), strict, loader or load_document_data, dependencies)
    return resolver.resolve()


class _Resolver:
    """Holds the per-call document cache for :func:`resolve_refs`."""

    def __init__(
        self,
        origin: Path,
        root: dict[str, Any],
        strict: bool,
        loader: DocumentLoader,
        dependencies: set[Path] | None = None,
    ) -> None:
        self._origin = origin
        self._dependencies = dependencies
        self._strict = strict
        self._loader = loader
        self._documents: dict[Path, Any] = {origin: root}

    def resolve(self) -> dict[str, Any]:
        return self._deep_resolve(self._documents[self._origin], self._origin, frozenset())

    def _deep_resolve(self, obj: Any, current: Path, seen: frozenset[tuple[Path, DocumentPath]]) -> Any:
        """Recursively resolve all ``$ref`` pointers within *obj*.

        *current* is the file *obj* belongs to. ``seen`` holds the
        ``(file, fragment)`` pairs on the current resolution stack; a new
        set is built at each step so sibling branches do not interfere.
        """
        if isinstance(obj, dict):
            ref = obj.get("$ref")
            if isinstance(ref, str):
                target = self._locate(ref, current)
                if target is None:
                    return obj
                target_file, fragment = target
                if (target_file, fragment) in seen:
                    # Circular reference -- keep the $ref dict
                    return obj
                try:
                    resolved = resolve_pointer(self._documents[target_file], fragment, ref)
                except ReferenceError_:
                    if self._strict:
                        raise
                    logger.debug("Broken $ref %r in %s", ref, current)
                    return obj
                return self._deep_resolve(
                    resolved, target_file, seen | {(target_file, fragment)}
                )

            return {key: self._deep_resolve(value, current, seen) for key, value in obj.items()}

        if isinstance(obj, list):
            return [self._deep_resolve(item, current, seen) for item in obj]

        return obj

    def _locate(self, ref: str, current: Path) -> Optional[tuple[Path, DocumentPath]]:
        """Return ``(file, fragment)`` for *ref*, loading the file if needed."""
        pointer = parse_ref(ref)
        if pointer is None:
            if self._strict:
                raise ReferenceError_(f"Malformed $ref: {ref!r}")
            return None

        if pointer.is_local:
            return current, pointer.fragment

        target_file = (current.parent / pointer.file_path).resolve()
        if target_file not in self._documents:
            if self._dependencies is not None:
                self._dependencies.add(target_file)
            try:
                self._documents[target_file] = self._loader(target_file)
            except SpecParseError as exc:
                if self._strict:
                    raise ReferenceError_(
                        f"Cannot load {target_file} referenced by {ref!r} in {current}"
                    ) from exc
                logger.debug("Referenced file %s not loadable (from %s)", target_file, current)
                return None
        return target_file, pointer.fragment
