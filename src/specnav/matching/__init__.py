"""Operation matching: naming conventions and the layered matcher."""

from specnav.matching.matcher import OperationMatcher, mapping_of
from specnav.matching.naming import camel_case, name_variants, snake_case, strip_raw_affixes

__all__ = [
    "OperationMatcher",
    "camel_case",
    "mapping_of",
    "name_variants",
    "snake_case",
    "strip_raw_affixes",
]
