"""Language adapters projecting source files into candidate symbols.

* :mod:`~specnav.adapters.base` -- :class:`SourceAdapter` contract and
  :class:`AdapterRegistry`.
* :mod:`~specnav.adapters.python` -- the :mod:`ast`-based Python adapter.
* :mod:`~specnav.adapters.symbols` -- :class:`SymbolIndex` and
  :class:`SymbolScope`.
"""

from specnav.adapters.base import AdapterRegistry, SourceAdapter
from specnav.adapters.python import PythonAdapter
from specnav.adapters.symbols import SymbolIndex, SymbolScope


def default_adapters() -> AdapterRegistry:
    """Registry with the built-in Python adapter plus any installed entry points."""
    registry = AdapterRegistry([PythonAdapter()])
    registry.discover()
    return registry


__all__ = [
    "AdapterRegistry",
    "PythonAdapter",
    "SourceAdapter",
    "SymbolIndex",
    "SymbolScope",
    "default_adapters",
]
