import abc
import unittest
from typing import Protocol, runtime_checkable

import pytest

from scopebind import ConfigurationError, ContainerBuilder, DuplicatePolicy, Factory, Instance, ServiceKey


class TestRegisterTypeConstraints(unittest.TestCase):
    def setUp(self):
        self.builder = ContainerBuilder()

    def test_register_type_rejects_protocols(self):
        class Fooer(Protocol):
            def foo(self) -> None: ...

        with pytest.raises(ConfigurationError):
            self.builder.register_type(Fooer)

    def test_register_type_rejects_abstract_classes(self):
        class Base(abc.ABC):
            @abc.abstractmethod
            def run(self) -> None: ...

        with pytest.raises(ConfigurationError):
            self.builder.register_type(Base)

    def test_register_type_rejects_non_classes(self):
        with pytest.raises(ConfigurationError):
            self.builder.register_type(lambda: None)  # type: ignore[arg-type]

    def test_registration_without_services_fails_on_build(self):
        class A: ...

        handle = self.builder.register_type(A)
        with pytest.raises(ConfigurationError) as ctx:
            self.builder.build()
        assert ctx.value.registration_id == handle.id

    def test_register_after_build_raises(self):
        self.builder.build()

        with pytest.raises(ConfigurationError):
            self.builder.register_instance(1)

    def test_build_twice_raises(self):
        self.builder.build()

        with pytest.raises(ConfigurationError):
            self.builder.build()

    def test_using_constructors_only_for_reflected_types(self):
        handle = self.builder.register_factory(lambda _: 1)
        with pytest.raises(ConfigurationError):
            handle.using_constructors(int)

    def test_instance_registrations_take_no_parameters(self):
        handle = self.builder.register_instance(1)
        with pytest.raises(ConfigurationError):
            handle.with_parameter(port=1)


class TestExposedServiceConformance(unittest.TestCase):
    @runtime_checkable
    class RepoProtocol(Protocol):
        def get(self, key: str) -> int: ...

    class GoodRepo:
        def get(self, key: str) -> int:
            return 42

    def setUp(self):
        self.builder = ContainerBuilder()

    def test_conforming_class_builds_and_resolves(self):
        self.builder.register_type(self.GoodRepo).as_(self.RepoProtocol)
        repo = self.builder.build().resolve(self.RepoProtocol)

        assert isinstance(repo, self.GoodRepo)
        assert repo.get("k") == 42

    def test_conforming_instance_builds_and_resolves(self):
        repo = self.GoodRepo()
        self.builder.register_instance(repo).as_(self.RepoProtocol)

        assert self.builder.build().resolve(self.RepoProtocol) is repo

    def test_class_missing_member_raises(self):
        class BadRepo:
            def other(self) -> str:
                return "nope"

        self.builder.register_type(BadRepo).as_(self.RepoProtocol)
        with pytest.raises(ConfigurationError) as ctx:
            self.builder.build()
        assert ctx.value.key == ServiceKey(self.RepoProtocol)

    def test_method_with_wrong_arity_raises(self):
        class GetNoArgs:
            def get(self) -> int:
                return 1

        self.builder.register_type(GetNoArgs).as_(self.RepoProtocol)
        with pytest.raises(ConfigurationError):
            self.builder.build()

    def test_method_with_more_args_is_accepted(self):
        class GetMoreArgs:
            def get(self, key: str, default: int = 0) -> int:
                return default

        self.builder.register_type(GetMoreArgs).as_(self.RepoProtocol)
        self.builder.build()

    def test_wrong_return_type_raises(self):
        class GetReturnsWrongType:
            def get(self, key: str) -> str:
                return "not an int"

        self.builder.register_type(GetReturnsWrongType).as_(self.RepoProtocol)
        with pytest.raises(ConfigurationError):
            self.builder.build()

    def test_non_callable_attribute_raises(self):
        class GetIsNotCallable:
            get = 123

        self.builder.register_instance(GetIsNotCallable()).as_(self.RepoProtocol)
        with pytest.raises(ConfigurationError):
            self.builder.build()

    def test_nominal_class_requires_subclass(self):
        class Base: ...

        class NotDerived: ...

        self.builder.register_type(NotDerived).as_(Base)
        with pytest.raises(ConfigurationError):
            self.builder.build()

    def test_instance_of_wrong_class_raises(self):
        class Base: ...

        self.builder.register_instance(object()).as_(Base)
        with pytest.raises(ConfigurationError):
            self.builder.build()

    def test_any_class_conforms_to_empty_protocol(self):
        class EmptyProto(Protocol): ...

        class AnyClass: ...

        self.builder.register_type(AnyClass).as_(EmptyProto)
        assert isinstance(self.builder.build().resolve(EmptyProto), AnyClass)

    def test_factory_registrations_are_checked_at_resolution(self):
        self.builder.register_factory(lambda _: object()).as_(self.RepoProtocol)
        c = self.builder.build()

        with pytest.raises(ConfigurationError):
            c.resolve(self.RepoProtocol)


class TestDuplicateRegistrations(unittest.TestCase):
    class Output: ...

    def test_last_registration_wins_by_default(self):
        first, last = self.Output(), self.Output()
        builder = ContainerBuilder()
        builder.register_instance(first).as_self()
        builder.register_instance(last).as_self()
        c = builder.build()

        assert c.resolve(self.Output) is last
        assert c.resolve_all(self.Output) == [first, last]

    def test_error_policy_rejects_duplicate_keys(self):
        builder = ContainerBuilder(duplicates=DuplicatePolicy.ERROR)
        builder.register_instance(self.Output()).as_self()
        builder.register_instance(self.Output()).as_self()

        with pytest.raises(ConfigurationError) as ctx:
            builder.build()
        assert ctx.value.key == ServiceKey(self.Output)

    def test_error_policy_allows_distinct_names(self):
        builder = ContainerBuilder(duplicates=DuplicatePolicy.ERROR)
        builder.register_instance(self.Output()).named("a", self.Output)
        builder.register_instance(self.Output()).named("b", self.Output)
        builder.build()


class TestLowLevelRegister(unittest.TestCase):
    def test_register_returns_id_and_exposes_keys(self):
        builder = ContainerBuilder()
        reg_id = builder.register(Instance("v"), ["a", ServiceKey("b", "named")])
        c = builder.build()

        assert c.registry.registrations[0].id == reg_id
        assert c.resolve("a") == "v"
        assert c.resolve_named("named", "b") == "v"

    def test_register_without_keys_fails_on_build(self):
        builder = ContainerBuilder()
        builder.register(Factory(lambda _: 1), [])

        with pytest.raises(ConfigurationError):
            builder.build()
