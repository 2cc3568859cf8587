from __future__ import annotations

from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from collections.abc import Sequence

    from ._keys import ServiceKey


class ContainerError(RuntimeError):
    """Base class of every error raised by the container."""

    def __init__(
        self,
        msg: str,
        *,
        key: ServiceKey | None = None,
        registration_id: int | None = None,
    ) -> None:
        super().__init__(msg)
        self.key = key
        self.registration_id = registration_id


class ConfigurationError(ContainerError):
    pass


class ScopeDisposedError(ContainerError):
    def __init__(self, scope_tag: object) -> None:
        msg = f"Lifetime scope {scope_tag!r} has been disposed; it cannot resolve services anymore."
        super().__init__(msg)
        self.scope_tag = scope_tag


class ResolutionError(ContainerError):
    pass


class UnregisteredServiceError(ResolutionError, KeyError):
    def __init__(self, key: ServiceKey) -> None:
        msg = f"No registration found for service {key}."
        super().__init__(msg, key=key)

    # KeyError.__str__ would repr() the message
    def __str__(self) -> str:
        return str(self.args[0])


class MissingDependencyError(ResolutionError):
    def __init__(
        self,
        owner: object,
        parameter: str,
        *,
        key: ServiceKey | None = None,
        registration_id: int | None = None,
    ) -> None:
        owner_repr = getattr(owner, "__qualname__", repr(owner))
        wanted = f" (service {key})" if key is not None else " (no annotation)"
        msg = (
            f"Cannot satisfy constructor parameter '{parameter}' of {owner_repr}{wanted}. "
            "No override/registration/default found."
        )
        super().__init__(msg, key=key, registration_id=registration_id)
        self.owner = owner
        self.parameter = parameter


class AmbiguousConstructorError(ResolutionError):
    def __init__(self, concrete_type: type, candidates: Sequence[object], *, registration_id: int) -> None:
        names = ", ".join(getattr(c, "__qualname__", repr(c)) for c in candidates)
        msg = (
            f"Cannot choose a constructor for {concrete_type.__qualname__}: "
            f"{names} are equally satisfiable."
        )
        super().__init__(msg, registration_id=registration_id)
        self.candidates = tuple(candidates)


class CircularDependencyError(ResolutionError):
    def __init__(self, key: ServiceKey, path: Sequence[ServiceKey], *, registration_id: int) -> None:
        chain = " -> ".join(str(k) for k in (*path, key))
        msg = f"Circular dependency detected while resolving {key}: {chain}"
        super().__init__(msg, key=key, registration_id=registration_id)
        self.path = tuple(path)
