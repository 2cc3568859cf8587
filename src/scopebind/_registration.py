from __future__ import annotations

import inspect
import itertools
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:
    from collections.abc import Callable

    from ._keys import ServiceKey
    from ._scope import ResolutionContext


class Lifetime(Enum):
    INSTANCE_PER_DEPENDENCY = "instance-per-dependency"
    INSTANCE_PER_LIFETIME_SCOPE = "instance-per-lifetime-scope"
    SINGLE_INSTANCE = "single-instance"


class DuplicatePolicy(Enum):
    LAST_WINS = "last-wins"
    ERROR = "error"


# Construction strategies


@dataclass(frozen=True)
class ReflectedType:
    """Build `concrete_type` by injecting its constructor parameters.

    `constructors` lists alternative constructor callables (the class itself
    and/or class methods returning an instance). Empty means the class.
    """

    concrete_type: type
    constructors: tuple[Callable[..., Any], ...] = ()

    def candidates(self) -> tuple[Callable[..., Any], ...]:
        return self.constructors or (self.concrete_type,)


@dataclass(frozen=True)
class Instance:
    value: Any


@dataclass(frozen=True)
class Factory:
    function: Callable[[ResolutionContext], Any]


Strategy = ReflectedType | Instance | Factory


# Parameter overrides


@dataclass(frozen=True)
class ParameterInfo:
    """A constructor parameter as seen by parameter overrides."""

    name: str
    annotation: Any
    default: Any
    owner: Callable[..., Any]

    @property
    def has_default(self) -> bool:
        return self.default is not inspect.Parameter.empty


@dataclass(frozen=True)
class Named:
    name: str
    value: Any

    def matches(self, param: ParameterInfo) -> bool:
        return param.name == self.name

    def provide(self, context: ResolutionContext) -> Any:  # noqa: ARG002
        return self.value


@dataclass(frozen=True)
class Typed:
    type: Any
    value: Any

    def matches(self, param: ParameterInfo) -> bool:
        return param.annotation is self.type

    def provide(self, context: ResolutionContext) -> Any:  # noqa: ARG002
        return self.value


@dataclass(frozen=True)
class Resolved:
    predicate: Callable[[ParameterInfo], bool]
    value_factory: Callable[[ResolutionContext], Any]

    def matches(self, param: ParameterInfo) -> bool:
        return bool(self.predicate(param))

    def provide(self, context: ResolutionContext) -> Any:
        return self.value_factory(context)


ParameterSpec = Named | Typed | Resolved


_ids = itertools.count(1)


def next_registration_id() -> int:
    return next(_ids)


@dataclass(frozen=True)
class Registration:
    """Immutable recipe producing instances for one or more service keys."""

    id: int
    strategy: Strategy
    keys: tuple[ServiceKey, ...]
    lifetime: Lifetime = Lifetime.INSTANCE_PER_DEPENDENCY
    parameters: tuple[ParameterSpec, ...] = ()
    externally_owned: bool = False
    on_activated: tuple[Callable[[ResolutionContext, Any], None], ...] = field(default=(), compare=False)
    on_release: Callable[[Any], None] | None = field(default=None, compare=False)

    @property
    def is_cached(self) -> bool:
        return self.lifetime is not Lifetime.INSTANCE_PER_DEPENDENCY

    def describe(self) -> str:
        strategy = self.strategy
        if isinstance(strategy, ReflectedType):
            what = strategy.concrete_type.__qualname__
        elif isinstance(strategy, Instance):
            what = f"instance of {type(strategy.value).__qualname__}"
        else:
            what = f"factory {getattr(strategy.function, '__qualname__', repr(strategy.function))}"
        return f"#{self.id} ({what}, {self.lifetime.value})"
