import unittest
from abc import ABC, abstractmethod
from typing import Protocol, runtime_checkable

import pytest

from featurebind import Lifetime, ServiceCollection, ServiceDescriptor


class TestRuntimeProtocolNonConformance(unittest.TestCase):
    services: ServiceCollection

    @runtime_checkable
    class RepoProtocol(Protocol):
        def get(self) -> int: ...

    class BadRepo:
        # Missing `get`, does not conform to RepoProtocol
        def other(self) -> str:
            return "nope"

    def setUp(self):
        self.services = ServiceCollection()

    def test_add_instance_raises_type_error_for_non_conforming_instance(self):
        with pytest.raises(TypeError):
            self.services.add_instance(self.RepoProtocol, self.BadRepo())

    def test_add_singleton_raises_type_error_for_non_conforming_class(self):
        with pytest.raises(TypeError):
            self.services.add_singleton(self.RepoProtocol, self.BadRepo)

    def test_rejected_registration_is_not_added(self):
        with pytest.raises(TypeError):
            self.services.add_transient(self.RepoProtocol, self.BadRepo)
        assert len(self.services) == 0

    def test_factory_registration_is_not_validated(self):
        self.services.add_singleton(self.RepoProtocol, factory=lambda _: self.BadRepo())

        provider = self.services.build_provider()
        assert isinstance(provider.resolve(self.RepoProtocol), self.BadRepo)


class TestRuntimeProtocolConformance(unittest.TestCase):
    services: ServiceCollection

    @runtime_checkable
    class RepoProtocol(Protocol):
        def get(self) -> int: ...

    class GoodRepo:
        def get(self) -> int:
            return 42

    def setUp(self):
        self.services = ServiceCollection()

    def test_add_instance_succeeds_for_conforming_instance(self):
        repo = self.GoodRepo()

        self.services.add_instance(self.RepoProtocol, repo)
        resolved = self.services.build_provider().resolve(self.RepoProtocol)

        assert resolved is repo
        assert resolved.get() == 42

    def test_add_singleton_succeeds_for_conforming_class(self):
        self.services.add_singleton(self.RepoProtocol, self.GoodRepo)

        repo = self.services.build_provider().resolve(self.RepoProtocol)

        assert isinstance(repo, self.GoodRepo)
        assert repo.get() == 42


class TestProtocolSignatureNonConformance(unittest.TestCase):
    class RepoProtocol(Protocol):
        def get(self, key: str) -> int: ...

    def test_raises_type_error_for_method_with_wrong_arity(self):
        class GetNoArgs:
            def get(self) -> int:
                return 1

        with pytest.raises(TypeError, match="fewer required positional params"):
            ServiceDescriptor.singleton(self.RepoProtocol, GetNoArgs)

    def test_accepts_method_with_more_optional_args(self):
        class GetWithOptions:
            def get(self, key: str, default: int = 0) -> int:
                return default

        ServiceDescriptor.singleton(self.RepoProtocol, GetWithOptions)

    def test_raises_type_error_for_non_callable_attribute(self):
        class GetIsNotCallable:
            get = 123

        with pytest.raises(TypeError, match="not callable"):
            ServiceDescriptor.singleton_instance(self.RepoProtocol, GetIsNotCallable())

    def test_raises_type_error_for_wrong_return_type(self):
        class GetReturnsWrongType:
            def get(self, key: str) -> str:
                return "not an int"

        with pytest.raises(TypeError, match="return type"):
            ServiceDescriptor.transient(self.RepoProtocol, GetReturnsWrongType)

    def test_accepts_covariant_return_type(self):
        class Flag(int): ...

        class GetReturnsSubclass:
            def get(self, key: str) -> Flag:
                return Flag(1)

        ServiceDescriptor.transient(self.RepoProtocol, GetReturnsSubclass)

    def test_missing_annotated_attribute_raises_type_error(self):
        class Named(Protocol):
            name: str

        class Anonymous: ...

        with pytest.raises(TypeError, match="missing members: name"):
            ServiceDescriptor.singleton(Named, Anonymous)


class TestRegisterImplementationConstraints(unittest.TestCase):
    services: ServiceCollection

    def setUp(self):
        self.services = ServiceCollection()

    def test_implementation_must_be_subclass_of_concrete_service_type(self):
        class Base: ...

        class NotDerived: ...

        with pytest.raises(TypeError):
            self.services.add_singleton(Base, NotDerived)

    def test_implementation_must_be_subclass_of_abc(self):
        class Port(ABC):
            @abstractmethod
            def send(self) -> None: ...

        class Adapter(Port):
            def send(self) -> None:
                pass

        class Unrelated:
            def send(self) -> None:
                pass

        self.services.add_singleton(Port, Adapter)
        with pytest.raises(TypeError):
            self.services.add_singleton(Port, Unrelated)

    def test_any_implementation_conforms_to_empty_protocol(self):
        class EmptyProto(Protocol): ...

        class AnyClass: ...

        self.services.add_transient(EmptyProto, AnyClass)

        resolved = self.services.build_provider().resolve(EmptyProto)
        assert isinstance(resolved, AnyClass)

    def test_nominal_protocol_subclass_is_accepted(self):
        class Fooer(Protocol):
            def foo(self) -> None: ...

        class FooerImpl(Fooer):
            pass

        self.services.add_transient(Fooer, FooerImpl)

    def test_concrete_subclass_of_protocol_is_constructed(self):
        class Fooer(Protocol):
            def foo(self) -> int: ...

        class FooerImpl(Fooer):
            def foo(self) -> int:
                return 1

        provider = self.services.add_singleton(FooerImpl).add_transient(Fooer, FooerImpl).build_provider()

        assert provider.resolve(FooerImpl).foo() == 1
        assert isinstance(provider.resolve(Fooer), FooerImpl)

    def test_non_type_service_types_are_not_validated(self):
        class Anything: ...

        self.services.add_singleton("anything", Anything)

        assert isinstance(self.services.build_provider().resolve("anything"), Anything)

    def test_implementation_and_factory_together_raise_value_error(self):
        class A: ...

        with pytest.raises(ValueError, match="not both"):
            self.services.add_singleton(A, A, factory=lambda _: A())

    def test_raw_descriptor_is_added_without_validation(self):
        class Base: ...

        class NotDerived: ...

        self.services.add(ServiceDescriptor(Base, NotDerived, Lifetime.SINGLETON))
        self.services.add(ServiceDescriptor(Base, None, Lifetime.TRANSIENT))
        assert len(self.services) == 2
