"""Minimal inversion-of-control container with feature installers.

Application code registers service types together with implementation types,
factories or pre-built instances, then resolves fully wired object graphs
with constructor injection and singleton or transient lifetimes.

Exports:
- `ServiceCollection`: ordered registrations, built into a provider.
- `ServiceProvider`: resolves services, caches singletons, disposes them.
- `ServiceDescriptor`, `Lifetime`: a single registration and its lifetime.
- `FeatureInstaller`, `ServicesRegistrar`: startup modules registering a
  feature's services, and the registration surface they receive.
- `initialize`: discover and run installers, then build the provider.
"""

from ._bootstrap import INSTALLERS_ENTRY_POINT_GROUP, discover_installers, initialize
from ._collection import ServiceCollection
from ._descriptor import Lifetime, ServiceDescriptor
from ._errors import (
    CircularDependencyError,
    MissingImplementationError,
    NoSuitableConstructorError,
    NotRegisteredError,
    ResolutionError,
)
from ._installer import FeatureInstaller, ServicesRegistrar
from ._provider import ServiceProvider


__all__ = [
    "INSTALLERS_ENTRY_POINT_GROUP",
    "CircularDependencyError",
    "FeatureInstaller",
    "Lifetime",
    "MissingImplementationError",
    "NoSuitableConstructorError",
    "NotRegisteredError",
    "ResolutionError",
    "ServiceCollection",
    "ServiceDescriptor",
    "ServiceProvider",
    "ServicesRegistrar",
    "discover_installers",
    "initialize",
]
