from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from ._descriptor import ServiceDescriptor


if TYPE_CHECKING:
    from ._collection import ServiceCollection
    from ._descriptor import Factory


class ServicesRegistrar:
    """Registration surface handed to feature installers.

    Forwards every call onto the underlying `ServiceCollection`.
    """

    def __init__(self, services: ServiceCollection) -> None:
        if services is None:
            msg = "services must not be None"
            raise TypeError(msg)
        self._services = services

    def register_singleton(
        self,
        service_type: Any,
        implementation_type: type | None = None,
        *,
        factory: Factory | None = None,
    ) -> None:
        self._services.add(ServiceDescriptor.singleton(service_type, implementation_type, factory=factory))

    def register_transient(
        self,
        service_type: Any,
        implementation_type: type | None = None,
        *,
        factory: Factory | None = None,
    ) -> None:
        self._services.add(ServiceDescriptor.transient(service_type, implementation_type, factory=factory))

    def register_instance(self, service_type: Any, instance: object) -> None:
        self._services.add(ServiceDescriptor.singleton_instance(service_type, instance))


class FeatureInstaller(ABC):
    """A unit of startup configuration that registers one feature's services.

    Subclasses must be constructible without arguments. Defining a subclass in
    an imported module is enough for `initialize` to find it; distributions can
    also advertise installers under the `featurebind.installers` entry point
    group.
    """

    @abstractmethod
    def install(self, registrar: ServicesRegistrar) -> None: ...
