"""Identifier conversions shared by the matcher, resolvers, and adapters.

Code generators spell an ``operationId`` differently per language:
``getPetById`` in Java/Kotlin/TypeScript, ``get_pet_by_id`` in Python.
Lookups try every spelling produced here.
"""

from __future__ import annotations

import re

_ACRONYM_BOUNDARY = re.compile(r"([A-Z]+)([A-Z][a-z])")
_WORD_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")

# Suffixes generators append to the name of the low-level variant of an operation
RAW_SUFFIXES = ("Raw", "_with_http_info", "_without_preload_content", "_serialize")

ESCAPE_PREFIX = "_"


def snake_case(name: str) -> str:
    """Convert ``getHTTPStatusById`` to ``get_http_status_by_id``.

    Names that are already snake_case are returned unchanged.
    """
    converted = _ACRONYM_BOUNDARY.sub(r"\1_\2", name)
    converted = _WORD_BOUNDARY.sub(r"\1_\2", converted)
    return converted.replace("-", "_").lower()


def camel_case(name: str) -> str:
    """Convert ``get_pet_by_id`` to ``getPetById``.

    Leading underscores are preserved; names without underscores are
    returned unchanged.
    """
    stripped = name.lstrip("_")
    if "_" not in stripped:
        return name
    head, *rest = stripped.split("_")
    leading = name[: len(name) - len(stripped)]
    return leading + head + "".join(part[:1].upper() + part[1:] for part in rest if part)


def strip_raw_affixes(name: str) -> str:
    """Remove generator affixes: ``Raw``/``_with_http_info`` suffixes and the escape prefix."""
    for suffix in RAW_SUFFIXES:
        if name.endswith(suffix) and len(name) > len(suffix):
            name = name[: -len(suffix)]
            break
    if name.startswith(ESCAPE_PREFIX) and len(name) > 1:
        name = name.lstrip(ESCAPE_PREFIX)
    return name


def name_variants(operation_id: str) -> list[str]:
    """Member names that may implement *operation_id*, in preference order."""
    variants = [operation_id, snake_case(operation_id)]
    variants += [ESCAPE_PREFIX + name for name in variants]
    return list(dict.fromkeys(variants))


def raw_name_variants(operation_id: str) -> list[str]:
    """Names of the low-level variants generated clients emit for *operation_id*."""
    snake = snake_case(operation_id)
    return list(
        dict.fromkeys(
            [
                f"{operation_id}Raw",
                f"_{snake}_serialize",
                f"{snake}_with_http_info",
            ]
        )
    )
