"""Resolver registries and the :class:`Navigator` query facade."""

from specnav.navigation.base import ImplementationResolver, Resolution, ResolutionContext, SpecResolver
from specnav.navigation.implementation_resolvers import (
    DelegatePatternResolver,
    RawFunctionResolver,
    TypedClientResolver,
)
from specnav.navigation.navigator import Navigator
from specnav.navigation.registry import default_implementation_resolvers, default_spec_resolvers
from specnav.navigation.spec_resolvers import ComponentSpecResolver, OperationSpecResolver, TagSpecResolver

__all__ = [
    "ComponentSpecResolver",
    "DelegatePatternResolver",
    "ImplementationResolver",
    "Navigator",
    "OperationSpecResolver",
    "RawFunctionResolver",
    "Resolution",
    "ResolutionContext",
    "SpecResolver",
    "TagSpecResolver",
    "TypedClientResolver",
    "default_implementation_resolvers",
    "default_spec_resolvers",
]
