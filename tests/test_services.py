import pytest

from scopebind import CircularDependencyError, ContainerBuilder, ServiceKey, UnregisteredServiceError


class IOutput: ...


class FileOutput(IOutput): ...


class ConsoleOutput(IOutput): ...


class A:
    def __init__(self, b: "B"):
        self.b = b


class B:
    def __init__(self, a: A):
        self.a = a


def test_cycle_fails_on_resolution_not_registration():
    builder = ContainerBuilder()
    builder.register_type(A).as_self()
    b_id = builder.register_type(B).as_self().id
    c = builder.build()

    with pytest.raises(CircularDependencyError) as ctx:
        c.resolve(B)
    assert ctx.value.registration_id == b_id
    assert ctx.value.path == (ServiceKey(B), ServiceKey(A))
    assert "B -> A -> B" in str(ctx.value)


def test_cycle_between_single_instances_is_detected():
    builder = ContainerBuilder()
    builder.register_type(A).as_self().single_instance()
    builder.register_type(B).as_self().single_instance()
    c = builder.build()

    with pytest.raises(CircularDependencyError):
        c.resolve(A)


def test_cycle_through_factory_is_detected():
    builder = ContainerBuilder()
    builder.register_factory(lambda ctx: A(ctx.resolve(B))).as_(A)
    builder.register_type(B).as_self()
    c = builder.build()

    with pytest.raises(CircularDependencyError):
        c.resolve(A)


def test_same_dependency_twice_is_not_a_cycle():
    class Pair:
        def __init__(self, first: FileOutput, second: FileOutput):
            self.first = first
            self.second = second

    builder = ContainerBuilder()
    builder.register_type(FileOutput).as_self()
    builder.register_type(Pair).as_self()
    pair = builder.build().resolve(Pair)

    assert pair.first is not pair.second


def test_as_self_and_as_service_share_one_registration():
    builder = ContainerBuilder()
    builder.register_type(ConsoleOutput).as_self().as_(IOutput).instance_per_lifetime_scope()
    c = builder.build()

    with c.begin_lifetime_scope() as scope:
        assert scope.resolve(IOutput) is scope.resolve(ConsoleOutput)


def test_as_self_and_as_service_per_dependency_are_distinct_objects():
    builder = ContainerBuilder()
    builder.register_type(ConsoleOutput).as_self().as_(IOutput)
    c = builder.build()

    assert type(c.resolve(IOutput)) is type(c.resolve(ConsoleOutput)) is ConsoleOutput
    assert c.resolve(IOutput) is not c.resolve(ConsoleOutput)


def test_named_services():
    builder = ContainerBuilder()
    builder.register_type(FileOutput).named("file", IOutput)
    builder.register_type(ConsoleOutput).named("console", IOutput).as_(IOutput)
    c = builder.build()

    assert isinstance(c.resolve_named("file", IOutput), FileOutput)
    assert isinstance(c.resolve(ServiceKey(IOutput, "console")), ConsoleOutput)
    assert isinstance(c.resolve(IOutput), ConsoleOutput)
    with pytest.raises(UnregisteredServiceError):
        c.resolve_named("missing", IOutput)


def test_named_service_is_not_the_default_service():
    builder = ContainerBuilder()
    builder.register_type(FileOutput).named("file", IOutput)
    c = builder.build()

    assert not c.is_registered(IOutput)
    assert c.try_resolve(IOutput) == (None, False)


def test_resolve_all_returns_every_registration_oldest_first():
    builder = ContainerBuilder()
    builder.register_type(FileOutput).as_(IOutput)
    builder.register_type(ConsoleOutput).as_(IOutput)
    c = builder.build()

    outputs = c.resolve_all(IOutput)
    assert [type(o) for o in outputs] == [FileOutput, ConsoleOutput]
    assert isinstance(c.resolve(IOutput), ConsoleOutput)
    assert c.resolve_all(FileOutput) == []


def test_resolve_all_includes_parent_registrations_in_child_scope():
    builder = ContainerBuilder()
    builder.register_type(FileOutput).as_(IOutput)
    c = builder.build()

    with c.begin_lifetime_scope(lambda b: b.register_type(ConsoleOutput).as_(IOutput)) as scope:
        assert [type(o) for o in scope.resolve_all(IOutput)] == [FileOutput, ConsoleOutput]
