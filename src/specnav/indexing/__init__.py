"""Inverted spec index, its persistent store, and the project crawler."""

from specnav.indexing.index import INDEX_VERSION, IndexState, SpecIndex, is_spec_candidate
from specnav.indexing.project import IndexSummary, ProjectIndexer
from specnav.indexing.store import IndexStore

__all__ = [
    "INDEX_VERSION",
    "IndexState",
    "IndexStore",
    "IndexSummary",
    "ProjectIndexer",
    "SpecIndex",
    "is_spec_candidate",
]
