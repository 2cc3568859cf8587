from __future__ import annotations

import itertools
import logging
import threading
from typing import TYPE_CHECKING, Any, TypeVar, overload

from ._conformance import instance_problem
from ._constructor import Constructor
from ._errors import CircularDependencyError, ConfigurationError, ScopeDisposedError, UnregisteredServiceError
from ._keys import ServiceKey, as_key
from ._registration import Factory, Instance, Lifetime, Named


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from types import TracebackType

    from ._builder import ContainerBuilder
    from ._registration import ParameterSpec, Registration
    from ._registry import Registry

    T = TypeVar("T")


_scope_numbers = itertools.count(1)


class LifetimeScope:
    """A nested lifetime boundary resolving services from a frozen registry.

    Instances registered `instance_per_lifetime_scope` are shared with child
    scopes, never with siblings. Disposing the scope releases every instance it
    owns; instances owned by ancestors are left alone.

    Per-dependency instances with a teardown hook are owned by the scope that
    built them until it is disposed, so a long-lived scope (the container
    itself) keeps them alive. Resolve such services from a child scope.
    """

    def __init__(
        self,
        registry: Registry,
        *,
        parent: LifetimeScope | None = None,
        tag: object = None,
        _from_parent: bool = False,
    ) -> None:
        if not _from_parent:
            msg = "Lifetime scopes must be created via Container.begin_lifetime_scope()"
            raise RuntimeError(msg)
        self._registry = registry
        self._parent = parent
        self.tag = tag if tag is not None else f"scope-{next(_scope_numbers)}"
        self._instances: dict[int, Any] = {}
        self._owned: list[tuple[Registration, Any]] = []
        self._lock = threading.RLock()
        self._disposed = False

    def __repr__(self) -> str:
        state = "disposed" if self._disposed else "active"
        return f"<{type(self).__name__} {self.tag!r} {state}>"

    @property
    def parent(self) -> LifetimeScope | None:
        return self._parent

    @property
    def disposed(self) -> bool:
        return self._disposed

    # Resolution

    @overload
    def resolve(self, key: type[T], *parameters: ParameterSpec, **named: Any) -> T: ...

    @overload
    def resolve(self, key: object, *parameters: ParameterSpec, **named: Any) -> Any: ...

    def resolve(self, key: object, *parameters: ParameterSpec, **named: Any) -> Any:
        """Resolve `key` (a ServiceKey or a bare contract) to a live instance.

        `parameters` and `named` keyword arguments override constructor
        parameters of the requested component only, never of its dependencies.
        """
        return _Operation().resolve(self, as_key(key), _explicit(parameters, named))

    def resolve_named(self, name: str, contract: object, *parameters: ParameterSpec, **named: Any) -> Any:
        return self.resolve(ServiceKey(contract, name), *parameters, **named)

    def try_resolve(self, key: object, *parameters: ParameterSpec, **named: Any) -> tuple[Any, bool]:
        """Like `resolve`, but report an unregistered key as `(None, False)`.

        Every other failure still propagates.
        """
        service_key = as_key(key)
        self.check_alive()
        if service_key not in self._registry:
            return None, False
        return self.resolve(service_key, *parameters, **named), True

    def resolve_all(self, key: object, *parameters: ParameterSpec, **named: Any) -> list[Any]:
        """Resolve every registration exposing `key`, oldest first."""
        service_key = as_key(key)
        self.check_alive()
        explicit = _explicit(parameters, named)
        operation = _Operation()
        return [
            operation.activate(self, service_key, registration, explicit)
            for registration in self._registry.lookup_all(service_key)
        ]

    def is_registered(self, key: object) -> bool:
        return as_key(key) in self._registry

    # Scopes

    def begin_lifetime_scope(
        self,
        configure: Callable[[ContainerBuilder], None] | None = None,
        *,
        tag: object = None,
    ) -> LifetimeScope:
        """Open a child scope.

        `configure` receives a fresh builder whose registrations are visible in
        the child scope (and its descendants) only, masking the parent's.
        """
        self.check_alive()
        registry = self._registry
        if configure is not None:
            from ._builder import ContainerBuilder

            builder = ContainerBuilder()
            configure(builder)
            registry = builder.build_registry(parent=self._registry)

        child = LifetimeScope(registry, parent=self, tag=tag, _from_parent=True)
        logger.debug("Began lifetime scope %r (parent %r)", child.tag, self.tag)
        return child

    def check_alive(self) -> None:
        scope: LifetimeScope | None = self
        while scope is not None:
            if scope._disposed:
                raise ScopeDisposedError(scope.tag)
            scope = scope._parent

    def dispose(self) -> None:
        """Release every instance owned by this scope, newest first.

        Idempotent. A failing release hook does not stop the others; the first
        failure is re-raised once all hooks ran.
        """
        with self._lock:
            if self._disposed:
                return
            self._disposed = True
            owned = self._owned[::-1]
            self._owned.clear()
            self._instances.clear()

        logger.debug("Disposing lifetime scope %r (%d owned instances)", self.tag, len(owned))
        first_error: Exception | None = None
        for registration, instance in owned:
            try:
                _release(registration, instance)
            except Exception as e:  # noqa: BLE001
                logger.warning("Error releasing %s from scope %r: %s", registration.describe(), self.tag, e)
                if first_error is None:
                    first_error = e

        if first_error is not None:
            raise first_error

    def __enter__(self) -> LifetimeScope:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.dispose()

    # Internals used by _Operation

    def _lookup(self, key: ServiceKey) -> Registration:
        registration = self._registry.lookup(key)
        if registration is None:
            raise UnregisteredServiceError(key)
        return registration

    def _owner_for(self, registration: Registration) -> LifetimeScope:
        if registration.lifetime is Lifetime.SINGLE_INSTANCE:
            # the scope that introduced the registration's registry layer
            owner = self
            while owner._parent is not None and owner._parent._registry.knows(registration.id):
                owner = owner._parent
            return owner

        scope: LifetimeScope | None = self
        while scope is not None:
            # builds run under the owner lock, so this waits for one in progress
            with scope._lock:
                if registration.id in scope._instances:
                    return scope
            scope = scope._parent
        return self

    def _track(self, registration: Registration, instance: Any) -> None:
        with self._lock:
            if not self._disposed:
                self._owned.append((registration, instance))
                return
        _release(registration, instance)
        raise ScopeDisposedError(self.tag)


class Container(LifetimeScope):
    """The root lifetime scope over a frozen registry.

    Built by `ContainerBuilder.build()`; no registration can be added
    afterwards (child scopes may layer their own, see `begin_lifetime_scope`).
    """

    def __init__(self, registry: Registry) -> None:
        super().__init__(registry, tag="root", _from_parent=True)

    @property
    def registry(self) -> Registry:
        return self._registry

    def __enter__(self) -> Container:
        return self


class ResolutionContext:
    """What factory functions, hooks and `Resolved` parameters receive.

    Bound to the scope the component is built in; nested `resolve` calls share
    the cycle detection of the outer call.
    """

    def __init__(self, scope: LifetimeScope, operation: _Operation, parameters: Sequence[ParameterSpec] = ()) -> None:
        self._scope = scope
        self._operation = operation
        self.parameters = tuple(parameters)

    @property
    def scope(self) -> LifetimeScope:
        return self._scope

    def resolve(self, key: object, *parameters: ParameterSpec, **named: Any) -> Any:
        return self._operation.resolve(self._scope, as_key(key), _explicit(parameters, named))

    def resolve_named(self, name: str, contract: object, *parameters: ParameterSpec, **named: Any) -> Any:
        return self.resolve(ServiceKey(contract, name), *parameters, **named)

    def try_resolve(self, key: object, *parameters: ParameterSpec, **named: Any) -> tuple[Any, bool]:
        service_key = as_key(key)
        if not self._scope.is_registered(service_key):
            return None, False
        return self.resolve(service_key, *parameters, **named), True

    def is_registered(self, key: object) -> bool:
        return self._scope.is_registered(key)


class _Operation:
    """One top-level resolve call, walking the dependency graph."""

    def __init__(self) -> None:
        self._path: list[tuple[int, ServiceKey]] = []

    def resolve(self, scope: LifetimeScope, key: ServiceKey, parameters: Sequence[ParameterSpec] = ()) -> Any:
        scope.check_alive()
        return self.activate(scope, key, scope._lookup(key), parameters)  # noqa: SLF001

    def activate(
        self,
        scope: LifetimeScope,
        key: ServiceKey,
        registration: Registration,
        parameters: Sequence[ParameterSpec],
    ) -> Any:
        if not registration.is_cached:
            return self._build(scope, key, registration, parameters)

        owner = scope._owner_for(registration)  # noqa: SLF001
        # claim-and-construct: concurrent resolutions in `owner` build once
        with owner._lock:  # noqa: SLF001
            owner.check_alive()
            if registration.id in owner._instances:  # noqa: SLF001
                return owner._instances[registration.id]  # noqa: SLF001

            instance = self._build(owner, key, registration, parameters)
            owner._instances[registration.id] = instance  # noqa: SLF001
            return instance

    def _build(
        self,
        scope: LifetimeScope,
        key: ServiceKey,
        registration: Registration,
        parameters: Sequence[ParameterSpec],
    ) -> Any:
        if any(registration_id == registration.id for registration_id, _ in self._path):
            raise CircularDependencyError(key, [k for _, k in self._path], registration_id=registration.id)

        self._path.append((registration.id, key))
        try:
            context = ResolutionContext(scope, self, parameters)
            strategy = registration.strategy
            if isinstance(strategy, Instance):
                instance = strategy.value
            elif isinstance(strategy, Factory):
                instance = strategy.function(context)
                problem = instance_problem(key.contract, instance)
                if problem is not None:
                    msg = f"Factory of registration {registration.describe()} returned an unusable {key}: {problem}"
                    raise ConfigurationError(msg, key=key, registration_id=registration.id)
            else:
                instance = Constructor(context, registration).construct(parameters)

            # tracked before activation hooks so a failing hook still gets it released
            if not registration.externally_owned and _has_teardown(registration, instance):
                scope._track(registration, instance)  # noqa: SLF001

            for hook in registration.on_activated:
                hook(context, instance)
        finally:
            self._path.pop()

        logger.debug("Activated %s for %s in scope %r", registration.describe(), key, scope.tag)
        return instance


def _explicit(parameters: Sequence[ParameterSpec], named: dict[str, Any]) -> tuple[ParameterSpec, ...]:
    return (*parameters, *(Named(name, value) for name, value in named.items()))


def _teardown_hook(instance: Any) -> Callable[[], Any] | None:
    for name in ("close", "dispose"):
        hook = getattr(instance, name, None)
        if callable(hook):
            return hook
    return None


def _has_teardown(registration: Registration, instance: Any) -> bool:
    return registration.on_release is not None or _teardown_hook(instance) is not None


def _release(registration: Registration, instance: Any) -> None:
    if registration.on_release is not None:
        registration.on_release(instance)
        return
    hook = _teardown_hook(instance)
    if hook is not None:
        hook()
