"""Read OpenAPI documents from disk into plain Python data.

JSON and YAML are both accepted; the file extension decides which parser
is tried first (:func:`format_hint`). Every failure surfaces as
:class:`~specnav.exceptions.SpecParseError`.

Most YAML and JSON files in a project are not API descriptions (CI
configs, ``package.json``, fixtures). :func:`detect_spec_version` tells them
apart cheaply: only documents declaring ``openapi: 3.x`` or
``swagger: "2.0"`` are treated as roots of an API description.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

import yaml

from specnav.exceptions import SpecParseError


# Version fields and the prefix each must carry to be supported.
_VERSION_MARKERS = (("openapi", "3."), ("swagger", "2"))


def read_spec_text(path: str | Path) -> str:
    """Return the UTF-8 content of *path*.

    Raises:
        SpecParseError: If the file is missing, unreadable, or blank.
    """
    try:
        content = Path(path).read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise SpecParseError(f"Spec file not found: {path}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise SpecParseError(f"Cannot read {path}: {exc}") from exc

    if not content.strip():
        raise SpecParseError(f"Spec file is empty: {path}")
    return content


def format_hint(path: str | Path) -> str:
    """``"json"`` or ``"yaml"`` by extension, ``""`` when unknown."""
    return {".json": "json", ".yaml": "yaml", ".yml": "yaml"}.get(Path(path).suffix.lower(), "")


def load_document_data(path: str | Path) -> dict[str, Any]:
    """Read and parse *path*, using its extension as the format hint.

    Raises:
        SpecParseError: If the file cannot be read or parsed.
    """
    return parse_content(read_spec_text(path), hint=format_hint(path))


def parse_content(content: str, hint: str = "") -> dict[str, Any]:
    """Parse JSON or YAML text holding a mapping.

    JSON is tried first unless *hint* is ``"yaml"``. With a ``"json"`` hint
    a JSON syntax error is final; otherwise YAML gets a second chance.

    Raises:
        SpecParseError: If neither parser accepts the text, or the top
            level is not a mapping.
    """
    failures: list[str] = []
    if hint != "yaml":
        try:
            return _require_mapping(json.loads(content))
        except json.JSONDecodeError as exc:
            if hint == "json":
                raise SpecParseError(f"Invalid JSON: {exc}") from exc
            failures.append(f"JSON: {exc}")

    try:
        return _require_mapping(yaml.safe_load(content))
    except yaml.YAMLError as exc:
        failures.append(f"YAML: {exc}")

    raise SpecParseError("Content is neither valid JSON nor valid YAML\n  " + "\n  ".join(failures))


def _require_mapping(value: Any) -> dict[str, Any]:
    if isinstance(value, dict):
        return value
    found = "empty document" if value is None else type(value).__name__
    raise SpecParseError(f"Expected a JSON/YAML object at the top level, got {found}")


def detect_spec_version(spec: dict[str, Any]) -> Optional[str]:
    """The supported ``openapi`` (3.x) or ``swagger`` (2.x) version, else ``None``.

    Fragments of a split document declare neither and return ``None``.
    """
    for field, prefix in _VERSION_MARKERS:
        value = spec.get(field)
        if value is not None and str(value).startswith(prefix):
            return str(value)
    return None


def validate_openapi_version(spec: dict[str, Any]) -> str:
    """Like :func:`detect_spec_version`, but raise instead of returning ``None``.

    Raises:
        SpecParseError: For an unsupported version or a missing marker.
    """
    version = detect_spec_version(spec)
    if version is not None:
        return version
    for field, _ in _VERSION_MARKERS:
        if field in spec:
            raise SpecParseError(
                f"Unsupported {field} version {spec[field]!r}; expected openapi 3.x or swagger 2.0"
            )
    raise SpecParseError("Missing 'openapi' or 'swagger' version marker")
