from __future__ import annotations

from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:
    from collections.abc import Sequence

    from ._descriptor import ServiceDescriptor


def _type_name(tp: Any) -> str:
    return tp.__qualname__ if isinstance(tp, type) else repr(tp)


class ResolutionError(RuntimeError):
    """Base class for every failure raised while resolving a service."""


class NotRegisteredError(ResolutionError, LookupError):
    """No descriptor is registered for the requested service type."""

    def __init__(self, service_type: Any) -> None:
        self.service_type = service_type
        super().__init__(f"Service {_type_name(service_type)} is not registered.")


class MissingImplementationError(ResolutionError):
    """A descriptor carries neither a factory nor an implementation type."""

    def __init__(self, descriptor: ServiceDescriptor) -> None:
        self.descriptor = descriptor
        super().__init__(f"No implementation type or factory for {_type_name(descriptor.service_type)}.")


class NoSuitableConstructorError(ResolutionError):
    """The implementation type cannot be built by constructor injection."""

    def __init__(self, implementation_type: Any, reason: str) -> None:
        self.implementation_type = implementation_type
        super().__init__(f"No suitable constructor found for {_type_name(implementation_type)}: {reason}")


class CircularDependencyError(ResolutionError):
    """Constructing a service requires, transitively, the service itself."""

    def __init__(self, chain: Sequence[Any]) -> None:
        self.chain = tuple(chain)
        super().__init__("Circular dependency detected: " + " -> ".join(_type_name(tp) for tp in self.chain))
