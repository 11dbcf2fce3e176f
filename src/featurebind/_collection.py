from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, overload

from ._descriptor import ServiceDescriptor
from ._provider import ServiceProvider


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Iterator

    from ._descriptor import Factory


class ServiceCollection:
    """Ordered list of service descriptors, later built into a `ServiceProvider`.

    - registrations are appended, never replaced or deduplicated
    - registration order decides which binding `resolve` picks (the first)
      and the order of `resolve_all` results.
    """

    def __init__(self) -> None:
        self._descriptors: list[ServiceDescriptor] = []

    def add(self, descriptor: ServiceDescriptor) -> ServiceCollection:
        self._descriptors.append(descriptor)
        logger.debug(
            "Registered service: %r with lifetime: %s",
            descriptor.service_type,
            descriptor.lifetime.value,
        )
        return self

    def add_singleton(
        self,
        service_type: Any,
        implementation_type: type | None = None,
        *,
        factory: Factory | None = None,
    ) -> ServiceCollection:
        """Register a singleton binding.

        Example:
          services.add_singleton(Logger)
          services.add_singleton(IRepo, SqlRepo)
          services.add_singleton(IClock, factory=lambda _: FixedClock(0))

        """
        return self.add(ServiceDescriptor.singleton(service_type, implementation_type, factory=factory))

    def add_transient(
        self,
        service_type: Any,
        implementation_type: type | None = None,
        *,
        factory: Factory | None = None,
    ) -> ServiceCollection:
        """Register a transient binding. Same arguments as `add_singleton`."""
        return self.add(ServiceDescriptor.transient(service_type, implementation_type, factory=factory))

    def add_instance(self, service_type: Any, instance: object) -> ServiceCollection:
        """Register a pre-built instance (always singleton)."""
        return self.add(ServiceDescriptor.singleton_instance(service_type, instance))

    def build_provider(self) -> ServiceProvider:
        """Snapshot the registrations into a provider. Later `add` calls do not affect it."""
        return ServiceProvider(tuple(self._descriptors))

    def __len__(self) -> int:
        return len(self._descriptors)

    def __iter__(self) -> Iterator[ServiceDescriptor]:
        return iter(self._descriptors)

    @overload
    def __getitem__(self, index: int) -> ServiceDescriptor: ...

    @overload
    def __getitem__(self, index: slice) -> list[ServiceDescriptor]: ...

    def __getitem__(self, index: int | slice) -> ServiceDescriptor | list[ServiceDescriptor]:
        return self._descriptors[index]

    def __repr__(self) -> str:
        return f"{type(self).__name__}({len(self._descriptors)} descriptors)"
