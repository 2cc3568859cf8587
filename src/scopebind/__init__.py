"""Minimal inversion-of-control container.

Services are registered on a `ContainerBuilder` (by concrete type, pre-built
instance or factory function), frozen with `build()` into a `Container`, and
resolved from nested lifetime scopes with constructor injection.

Exports:
- `ContainerBuilder`, `RegistrationHandle`: registration and fluent configuration.
- `Container`, `LifetimeScope`, `ResolutionContext`: resolution and scoping.
- `Lifetime`: instance per dependency, per lifetime scope, or single instance.
- `ServiceKey`: a contract plus an optional name.
- `Named`, `Typed`, `Resolved`: constructor parameter overrides.
- the `ContainerError` hierarchy.
"""

from ._builder import ContainerBuilder, RegistrationHandle
from ._errors import (
    AmbiguousConstructorError,
    CircularDependencyError,
    ConfigurationError,
    ContainerError,
    MissingDependencyError,
    ResolutionError,
    ScopeDisposedError,
    UnregisteredServiceError,
)
from ._keys import ServiceKey
from ._registration import (
    DuplicatePolicy,
    Factory,
    Instance,
    Lifetime,
    Named,
    ParameterInfo,
    ReflectedType,
    Registration,
    Resolved,
    Typed,
)
from ._scope import Container, LifetimeScope, ResolutionContext


__all__ = [
    "AmbiguousConstructorError",
    "CircularDependencyError",
    "ConfigurationError",
    "Container",
    "ContainerBuilder",
    "ContainerError",
    "DuplicatePolicy",
    "Factory",
    "Instance",
    "Lifetime",
    "LifetimeScope",
    "MissingDependencyError",
    "Named",
    "ParameterInfo",
    "ReflectedType",
    "Registration",
    "RegistrationHandle",
    "ResolutionContext",
    "ResolutionError",
    "Resolved",
    "ScopeDisposedError",
    "ServiceKey",
    "Typed",
    "UnregisteredServiceError",
]
