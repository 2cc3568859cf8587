from __future__ import annotations

import inspect
import logging
from typing import TYPE_CHECKING, Any, get_type_hints

from ._conformance import conformance_problem, instance_problem, is_concrete
from ._errors import ConfigurationError
from ._keys import ServiceKey
from ._registration import (
    DuplicatePolicy,
    Factory,
    Instance,
    Lifetime,
    Named,
    ReflectedType,
    Registration,
    next_registration_id,
)
from ._registry import Registry
from ._scope import Container


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from ._registration import ParameterSpec, Strategy
    from ._scope import ResolutionContext


class RegistrationHandle:
    """Fluent configuration of one registration.

    Example:
      builder.register_type(TodayWriter).as_self().as_(IDateWriter).single_instance()

    """

    def __init__(self, strategy: Strategy, *, lifetime: Lifetime = Lifetime.INSTANCE_PER_DEPENDENCY) -> None:
        self.id = next_registration_id()
        self._strategy = strategy
        self._keys: list[ServiceKey] = []
        self._lifetime = lifetime
        self._parameters: list[ParameterSpec] = []
        self._externally_owned = isinstance(strategy, Instance)
        self._on_activated: list[Callable[[ResolutionContext, Any], None]] = []
        self._on_release: Callable[[Any], None] | None = None

    def __repr__(self) -> str:
        return f"<RegistrationHandle {self.to_registration().describe()}>"

    # Services

    def as_(self, *contracts: object) -> RegistrationHandle:
        """Expose the component as each of `contracts` (or ServiceKeys)."""
        for contract in contracts:
            self._expose(contract if isinstance(contract, ServiceKey) else ServiceKey(contract))
        return self

    def as_self(self) -> RegistrationHandle:
        return self._expose(ServiceKey(self._self_type()))

    def named(self, name: str, contract: object) -> RegistrationHandle:
        return self._expose(ServiceKey(contract, name))

    def _expose(self, key: ServiceKey) -> RegistrationHandle:
        if key not in self._keys:
            self._keys.append(key)
        return self

    def _self_type(self) -> type:
        strategy = self._strategy
        if isinstance(strategy, ReflectedType):
            return strategy.concrete_type
        if isinstance(strategy, Instance):
            return type(strategy.value)

        try:
            returns = get_type_hints(strategy.function).get("return")
        except (TypeError, NameError):
            returns = None
        if not inspect.isclass(returns):
            msg = (
                f"Cannot expose factory registration #{self.id} as itself: "
                "annotate the factory's return type or use as_()."
            )
            raise ConfigurationError(msg, registration_id=self.id)
        return returns

    # Parameters

    def with_parameter(self, *specs: ParameterSpec, **named: Any) -> RegistrationHandle:
        """Add parameter overrides, tried in the order they are added.

        Keyword arguments are shorthand for `Named(name, value)`.
        """
        if isinstance(self._strategy, Instance):
            msg = f"Instance registration #{self.id} takes no parameters."
            raise ConfigurationError(msg, registration_id=self.id)
        self._parameters.extend(specs)
        self._parameters.extend(Named(name, value) for name, value in named.items())
        return self

    with_parameters = with_parameter

    def using_constructors(self, *constructors: Callable[..., Any]) -> RegistrationHandle:
        """Offer alternative constructors; the satisfiable one with most parameters wins."""
        strategy = self._strategy
        if not isinstance(strategy, ReflectedType):
            msg = f"Only reflected type registrations have constructors (registration #{self.id})."
            raise ConfigurationError(msg, registration_id=self.id)
        if not constructors:
            msg = f"using_constructors() needs at least one constructor (registration #{self.id})."
            raise ConfigurationError(msg, registration_id=self.id)
        self._strategy = ReflectedType(strategy.concrete_type, tuple(constructors))
        return self

    # Lifetimes

    def instance_per_dependency(self) -> RegistrationHandle:
        return self._set_lifetime(Lifetime.INSTANCE_PER_DEPENDENCY)

    def instance_per_lifetime_scope(self) -> RegistrationHandle:
        return self._set_lifetime(Lifetime.INSTANCE_PER_LIFETIME_SCOPE)

    def single_instance(self) -> RegistrationHandle:
        return self._set_lifetime(Lifetime.SINGLE_INSTANCE)

    def _set_lifetime(self, lifetime: Lifetime) -> RegistrationHandle:
        if isinstance(self._strategy, Instance) and lifetime is not Lifetime.SINGLE_INSTANCE:
            msg = f"Instance registration #{self.id} is always a single instance."
            raise ConfigurationError(msg, registration_id=self.id)
        self._lifetime = lifetime
        return self

    # Activation / release

    def externally_owned(self) -> RegistrationHandle:
        self._externally_owned = True
        return self

    def on_activated(self, callback: Callable[[ResolutionContext, Any], None]) -> RegistrationHandle:
        self._on_activated.append(callback)
        return self

    def on_release(self, callback: Callable[[Any], None]) -> RegistrationHandle:
        self._on_release = callback
        return self

    def to_registration(self) -> Registration:
        return Registration(
            id=self.id,
            strategy=self._strategy,
            keys=tuple(self._keys),
            lifetime=self._lifetime,
            parameters=tuple(self._parameters),
            externally_owned=self._externally_owned,
            on_activated=tuple(self._on_activated),
            on_release=self._on_release,
        )


class ContainerBuilder:
    """Accumulates registrations, then freezes them into a `Container`.

    - `register_type`: constructor injection of a concrete class
    - `register_instance`: a pre-built object (always a single instance)
    - `register_factory`: a function receiving a `ResolutionContext`

    When two registrations expose the same key the last one wins, unless the
    builder is created with `duplicates=DuplicatePolicy.ERROR`.
    """

    def __init__(self, *, duplicates: DuplicatePolicy = DuplicatePolicy.LAST_WINS) -> None:
        self._handles: list[RegistrationHandle] = []
        self._duplicates = duplicates
        self._built = False

    def register_type(self, concrete_type: type) -> RegistrationHandle:
        if not inspect.isclass(concrete_type):
            msg = f"register_type() needs a class, got {concrete_type!r}"
            raise ConfigurationError(msg)
        if not is_concrete(concrete_type):
            msg = (
                f"{concrete_type.__qualname__} is abstract or a Protocol; only concrete types "
                "can be constructed. Register a concrete implementation and expose it with as_()."
            )
            raise ConfigurationError(msg)
        return self._add(RegistrationHandle(ReflectedType(concrete_type)))

    def register_instance(self, value: object) -> RegistrationHandle:
        return self._add(RegistrationHandle(Instance(value), lifetime=Lifetime.SINGLE_INSTANCE))

    def register_factory(self, function: Callable[[ResolutionContext], Any]) -> RegistrationHandle:
        if not callable(function):
            msg = f"register_factory() needs a callable, got {function!r}"
            raise ConfigurationError(msg)
        return self._add(RegistrationHandle(Factory(function)))

    def register(
        self,
        strategy: Strategy,
        keys: Iterable[object],
        lifetime: Lifetime | None = None,
        parameters: Iterable[ParameterSpec] = (),
    ) -> int:
        """Low-level registration; returns the registration id.

        `lifetime` defaults to instance-per-dependency (single instance for
        `Instance` strategies).
        """
        if isinstance(strategy, Instance):
            handle = self.register_instance(strategy.value)
        elif isinstance(strategy, ReflectedType):
            handle = self.register_type(strategy.concrete_type)
            if strategy.constructors:
                handle.using_constructors(*strategy.constructors)
        else:
            handle = self.register_factory(strategy.function)
        handle.as_(*keys)
        if lifetime is not None:
            handle._set_lifetime(lifetime)  # noqa: SLF001
        overrides = tuple(parameters)
        if overrides:
            handle.with_parameter(*overrides)
        return handle.id

    def _add(self, handle: RegistrationHandle) -> RegistrationHandle:
        if self._built:
            msg = "Cannot register after build(); the container is immutable."
            raise ConfigurationError(msg)
        self._handles.append(handle)
        return handle

    def build(self) -> Container:
        container = Container(self.build_registry())
        logger.debug("Built container with %d registrations", len(container.registry))
        return container

    def build_registry(self, parent: Registry | None = None) -> Registry:
        if self._built:
            msg = "build() can only be called once per builder."
            raise ConfigurationError(msg)

        registrations = [handle.to_registration() for handle in self._handles]
        seen: dict[ServiceKey, Registration] = {}
        for registration in registrations:
            _validate(registration)
            for key in registration.keys:
                previous = seen.get(key)
                if previous is not None:
                    if self._duplicates is DuplicatePolicy.ERROR:
                        msg = (
                            f"Service {key} is exposed by both {previous.describe()} and "
                            f"{registration.describe()}."
                        )
                        raise ConfigurationError(msg, key=key, registration_id=registration.id)
                    logger.debug("%s masks %s for service %s", registration.describe(), previous.describe(), key)
                seen[key] = registration

        self._built = True
        return Registry(registrations, parent=parent)


def _validate(registration: Registration) -> None:
    if not registration.keys:
        msg = (
            f"Registration {registration.describe()} exposes no service; "
            "call as_(), as_self() or named() on it."
        )
        raise ConfigurationError(msg, registration_id=registration.id)

    strategy = registration.strategy
    for key in registration.keys:
        if isinstance(strategy, ReflectedType):
            problem = conformance_problem(key.contract, strategy.concrete_type)
        elif isinstance(strategy, Instance):
            problem = instance_problem(key.contract, strategy.value)
        else:
            # factories are checked when they produce a value
            continue

        if problem is not None:
            msg = f"Registration {registration.describe()} cannot be exposed as {key}: {problem}"
            raise ConfigurationError(msg, key=key, registration_id=registration.id)
