from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from ._validation import validate_implementation


if TYPE_CHECKING:
    from collections.abc import Callable

    from ._provider import ServiceProvider

    Factory = Callable[[ServiceProvider], Any]


class Lifetime(Enum):
    SINGLETON = "singleton"
    TRANSIENT = "transient"


@dataclass(frozen=True, eq=False)
class ServiceDescriptor:
    """One registration: a service type bound to an implementation type or a factory.

    Descriptors compare and hash by identity. The same service type may be
    registered several times and every registration keeps its own singleton.

    The plain constructor does not validate anything; use the `singleton`,
    `transient` and `singleton_instance` constructors to get registration-time
    checks.
    """

    service_type: Any
    implementation_type: type | None
    lifetime: Lifetime
    factory: Factory | None = None

    @classmethod
    def singleton(
        cls,
        service_type: Any,
        implementation_type: type | None = None,
        *,
        factory: Factory | None = None,
    ) -> ServiceDescriptor:
        """Create a singleton registration.

        Example:
          ServiceDescriptor.singleton(Logger)
          ServiceDescriptor.singleton(IRepo, SqlRepo)
          ServiceDescriptor.singleton(IRepo, factory=lambda provider: SqlRepo(url))

        """
        return cls._create(service_type, implementation_type, factory, Lifetime.SINGLETON)

    @classmethod
    def transient(
        cls,
        service_type: Any,
        implementation_type: type | None = None,
        *,
        factory: Factory | None = None,
    ) -> ServiceDescriptor:
        """Create a transient registration. Same arguments as `singleton`."""
        return cls._create(service_type, implementation_type, factory, Lifetime.TRANSIENT)

    @classmethod
    def singleton_instance(cls, service_type: Any, instance: object) -> ServiceDescriptor:
        """Register a pre-built instance; resolving always returns that very object."""
        validate_implementation(service_type, type(instance))
        return cls(service_type, type(instance), Lifetime.SINGLETON, lambda _: instance)

    @classmethod
    def _create(
        cls,
        service_type: Any,
        implementation_type: type | None,
        factory: Factory | None,
        lifetime: Lifetime,
    ) -> ServiceDescriptor:
        if implementation_type is not None and factory is not None:
            msg = "Provide either `implementation_type` or `factory`, not both."
            raise ValueError(msg)

        if factory is not None:
            return cls(service_type, None, lifetime, factory)

        if implementation_type is None:
            # Self-registration
            implementation_type = service_type
        else:
            validate_implementation(service_type, implementation_type)

        return cls(service_type, implementation_type, lifetime)
