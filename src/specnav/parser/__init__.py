"""OpenAPI spec parser -- load documents, resolve ``$ref`` pointers, extract elements.

This sub-package turns YAML/JSON files into the two shapes the rest of
specnav consumes:

* a lazy stream of :data:`~specnav.models.SpecElement` values for the
  inverted index (:func:`parse_spec_file`);
* a position-aware :class:`~specnav.parser.document.SpecDocument` tree for
  the locator (:func:`load_spec_document`).

Typical usage::

    from specnav.parser import parse_spec_file

    for element in parse_spec_file("api.yaml"):
        print(element)

Sub-modules:

* :mod:`~specnav.parser.loader` -- file I/O, format detection, version check.
* :mod:`~specnav.parser.resolver` -- Recursive ``$ref`` resolution across
  files with circular-reference detection.
* :mod:`~specnav.parser.extractor` -- Walks the resolved tree and yields
  operations, tags, and components.
* :mod:`~specnav.parser.document` -- Position-aware node tree and the
  content-hash keyed document cache.
"""

from specnav.parser.document import DocumentCache, SpecDocument, SpecNode, load_spec_document
from specnav.parser.extractor import parse_spec_file
from specnav.parser.loader import load_document_data, validate_openapi_version
from specnav.parser.resolver import parse_ref, resolve_refs

__all__ = [
    "DocumentCache",
    "SpecDocument",
    "SpecNode",
    "load_document_data",
    "load_spec_document",
    "parse_ref",
    "parse_spec_file",
    "resolve_refs",
    "validate_openapi_version",
]
