from __future__ import annotations

import collections.abc
import inspect
import logging
import threading
from contextlib import ExitStack, contextmanager
from typing import TYPE_CHECKING, Any, TypeVar, get_args, get_origin, get_type_hints, overload

from ._descriptor import Lifetime
from ._errors import (
    CircularDependencyError,
    MissingImplementationError,
    NoSuitableConstructorError,
    NotRegisteredError,
)
from ._validation import is_protocol


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator
    from types import TracebackType

    from ._descriptor import ServiceDescriptor

T = TypeVar("T")

# Parametrised aliases of these origins are collection requests: Sequence[T] -> resolve_all(T)
_COLLECTION_ORIGINS = (
    collections.abc.Sequence,
    collections.abc.Collection,
    collections.abc.Iterable,
    list,
    tuple,
)

_RELEASE_METHODS = ("close", "dispose")

_MISSING = object()


class ServiceProvider:
    """Resolves services from a frozen snapshot of descriptors.

    - first registration of a service type wins for `resolve`
    - `resolve_all` returns every registration, in registration order
    - singletons are cached per descriptor, transients are never tracked
    - constructor parameters are injected by their type annotations.

    Usually built through `ServiceCollection.build_provider()`.
    """

    def __init__(self, descriptors: Iterable[ServiceDescriptor]) -> None:
        self._descriptors = tuple(descriptors)
        self._index: dict[Any, list[ServiceDescriptor]] = {}
        for descriptor in self._descriptors:
            self._index.setdefault(descriptor.service_type, []).append(descriptor)

        self._singletons: dict[ServiceDescriptor, object] = {}
        self._singleton_locks: dict[ServiceDescriptor, threading.RLock] = {}
        # thread ident owning each in-progress singleton, descriptor each thread blocks on
        self._owners: dict[ServiceDescriptor, int] = {}
        self._waiting: dict[int, ServiceDescriptor] = {}
        self._lock = threading.RLock()
        self._local = threading.local()
        logger.debug("ServiceProvider built with %d descriptors", len(self._descriptors))

    @overload
    def resolve(self, service_type: type[T]) -> T: ...

    @overload
    def resolve(self, service_type: Any) -> Any: ...

    def resolve(self, service_type: Any) -> Any:
        """Resolve one instance of `service_type`.

        The first registration wins. A parametrised collection type such as
        `Sequence[Plugin]` that is not registered itself resolves to every
        registration of `Plugin`, see `resolve_all`.

        Raises:
            NotRegisteredError: nothing is registered for `service_type`.

        """
        descriptors = self._index.get(service_type)
        if descriptors:
            return self._resolve_descriptor(descriptors[0])

        item_type = _collection_item_type(service_type)
        if item_type is not None:
            items = self.resolve_all(item_type)
            return tuple(items) if get_origin(service_type) is tuple else items

        raise NotRegisteredError(service_type)

    def resolve_all(self, service_type: type[T]) -> list[T]:
        """Resolve every registration of `service_type`, in registration order.

        Each registration honors its own lifetime. Returns an empty list when
        nothing is registered.
        """
        return [self._resolve_descriptor(d) for d in self._index.get(service_type, ())]

    def dispose(self) -> None:
        """Release every cached singleton and empty the cache.

        Instances are released in reverse construction order through their
        `close()` (or `dispose()`) method. All of them are released even when
        one fails; the last failure is raised.
        """
        with self._lock:
            instances = list(self._singletons.values())
            self._singletons.clear()

        logger.debug("Disposing %d cached singletons", len(instances))

        seen: set[int] = set()
        with ExitStack() as stack:
            for instance in instances:
                if id(instance) in seen:
                    continue
                seen.add(id(instance))
                release = _release_method(instance)
                if release is not None:
                    stack.callback(release)

    def __enter__(self) -> ServiceProvider:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.dispose()

    def _resolve_descriptor(self, descriptor: ServiceDescriptor) -> Any:
        if descriptor.lifetime is Lifetime.TRANSIENT:
            logger.debug("Creating transient service: %r", descriptor.service_type)
            return self._construct(descriptor)

        instance = self._singletons.get(descriptor, _MISSING)
        if instance is not _MISSING:
            return instance

        # Double-checked under the descriptor's own lock: at most one construction is stored and observed
        with self._singleton_construction(descriptor):
            instance = self._singletons.get(descriptor, _MISSING)
            if instance is _MISSING:
                logger.debug("Creating singleton service: %r", descriptor.service_type)
                instance = self._construct(descriptor)
                with self._lock:
                    self._singletons[descriptor] = instance
            return instance

    @contextmanager
    def _singleton_construction(self, descriptor: ServiceDescriptor) -> Iterator[None]:
        """Hold the descriptor's lock, recording which thread owns it and which thread waits for it.

        Raises:
            CircularDependencyError: waiting would close a cycle of threads each
                holding a singleton the next one needs.

        """
        me = threading.get_ident()
        with self._lock:
            lock = self._singleton_locks.setdefault(descriptor, threading.RLock())
            chain = self._wait_for_cycle(descriptor, me)
            if chain is not None:
                raise CircularDependencyError(chain)
            self._waiting[me] = descriptor

        try:
            lock.acquire()
        finally:
            with self._lock:
                del self._waiting[me]

        with self._lock:
            owned = descriptor not in self._owners
            if owned:
                self._owners[descriptor] = me

        try:
            yield
        finally:
            if owned:
                with self._lock:
                    del self._owners[descriptor]
            lock.release()

    def _wait_for_cycle(self, descriptor: ServiceDescriptor, me: int) -> list[Any] | None:
        # Follow owner -> descriptor it waits for -> its owner... back to the calling thread
        chain = [descriptor.service_type]
        seen: set[int] = set()
        owner = self._owners.get(descriptor)
        while owner is not None and owner != me and owner not in seen:
            seen.add(owner)
            waited = self._waiting.get(owner)
            if waited is None:
                return None
            chain.append(waited.service_type)
            owner = self._owners.get(waited)

        if owner == me and len(chain) > 1:
            return [*chain, descriptor.service_type]
        return None

    def _construction_stack(self) -> list[ServiceDescriptor]:
        stack = getattr(self._local, "stack", None)
        if stack is None:
            stack = self._local.stack = []
        return stack

    def _construct(self, descriptor: ServiceDescriptor) -> Any:
        stack = self._construction_stack()
        if descriptor in stack:
            chain = [d.service_type for d in stack[stack.index(descriptor) :]]
            raise CircularDependencyError([*chain, descriptor.service_type])

        stack.append(descriptor)
        try:
            return self._create_instance(descriptor)
        finally:
            stack.pop()

    def _create_instance(self, descriptor: ServiceDescriptor) -> Any:
        if descriptor.factory is not None:
            return descriptor.factory(self)

        impl = descriptor.implementation_type
        if impl is None:
            raise MissingImplementationError(descriptor)

        args, kwargs = self._constructor_arguments(impl)
        return impl(*args, **kwargs)

    def _constructor_arguments(self, impl: Any) -> tuple[list[Any], dict[str, Any]]:  # noqa: C901
        """Resolve the arguments of `impl.__init__` from its type annotations.

        Resolution precedence per parameter:
        1. *args / **kwargs: skipped
        2. annotation registered (or a collection request): resolved
        3. default
        4. annotation present: resolved, which fails if it is not registered
        5. error.
        """
        if not inspect.isclass(impl):
            raise NoSuitableConstructorError(impl, "implementation is not a class")
        if is_protocol(impl):
            raise NoSuitableConstructorError(impl, "protocols cannot be instantiated")
        if inspect.isabstract(impl):
            raise NoSuitableConstructorError(impl, "abstract classes cannot be instantiated")

        try:
            signature = inspect.signature(impl)
        except (TypeError, ValueError) as e:
            if not inspect.isfunction(inspect.getattr_static(impl, "__init__", None)):
                # __init__ inherited from a builtin base (dict, Exception...): build with no arguments
                return [], {}
            raise NoSuitableConstructorError(impl, f"constructor signature cannot be inspected ({e})") from e

        hints = _get_init_type_hints(impl)
        args: list[Any] = []
        kwargs: dict[str, Any] = {}

        for name, p in signature.parameters.items():
            if p.kind in (p.VAR_POSITIONAL, p.VAR_KEYWORD):
                continue

            ann = hints.get(name, p.annotation)
            has_default = p.default is not p.empty

            if ann is p.empty:
                if not has_default:
                    raise NoSuitableConstructorError(impl, f"parameter '{name}' has no type annotation")
                value = p.default
            elif has_default and not self._is_resolvable(ann):
                value = p.default
            else:
                value = self.resolve(ann)

            if p.kind is p.POSITIONAL_ONLY:
                args.append(value)
            else:
                kwargs[name] = value

        return args, kwargs

    def _is_resolvable(self, service_type: Any) -> bool:
        try:
            if service_type in self._index:
                return True
        except TypeError:
            # unhashable annotation
            return False
        return _collection_item_type(service_type) is not None


def _collection_item_type(service_type: Any) -> Any | None:
    origin = get_origin(service_type)
    if origin not in _COLLECTION_ORIGINS:
        return None

    args = get_args(service_type)
    if origin is tuple:
        return args[0] if len(args) == 2 and args[1] is Ellipsis else None  # noqa: PLR2004
    return args[0] if len(args) == 1 else None


def _release_method(instance: object) -> Callable[[], object] | None:
    if inspect.isclass(instance):
        return None
    for name in _RELEASE_METHODS:
        release = getattr(instance, name, None)
        if callable(release):
            return release
    return None


def _get_init_type_hints(cls: type) -> dict[str, Any]:
    try:
        init = inspect.getattr_static(cls, "__init__")
        hints = get_type_hints(init)
    except TypeError:
        hints = {}
    except NameError as exc:
        logger.warning("'%s' name error retrieving %s (%s) type hints", exc.name, cls.__name__, cls.__qualname__)
        hints = {}

    return hints
