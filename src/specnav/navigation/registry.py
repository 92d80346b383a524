"""Default resolver lists.

Order matters only for presentation: results from every resolver are
concatenated. Support for another generator convention is added by
appending a variant here.
"""

from __future__ import annotations

from specnav.navigation.base import ImplementationResolver, SpecResolver
from specnav.navigation.implementation_resolvers import (
    DelegatePatternResolver,
    RawFunctionResolver,
    TypedClientResolver,
)
from specnav.navigation.spec_resolvers import ComponentSpecResolver, OperationSpecResolver, TagSpecResolver


def default_spec_resolvers() -> list[SpecResolver]:
    return [OperationSpecResolver(), ComponentSpecResolver(), TagSpecResolver()]


def default_implementation_resolvers() -> list[ImplementationResolver]:
    return [DelegatePatternResolver(), TypedClientResolver(), RawFunctionResolver()]
