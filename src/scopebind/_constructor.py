from __future__ import annotations

import inspect
import logging
import types
import typing
from typing import TYPE_CHECKING, Any, get_type_hints

from ._errors import AmbiguousConstructorError, MissingDependencyError
from ._keys import ServiceKey
from ._registration import Named, ParameterInfo, ReflectedType


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from ._registration import ParameterSpec, Registration
    from ._scope import ResolutionContext


_VARIADIC = (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)


class Constructor:
    """Builds a reflected type, injecting each constructor parameter.

    Parameter precedence:
    1. explicit parameters passed to `resolve()`
    2. the registration's own parameters, in registration order
    3. a registration for the annotated type
    4. the parameter default
    5. error.
    """

    def __init__(self, context: ResolutionContext, registration: Registration) -> None:
        strategy = registration.strategy
        if not isinstance(strategy, ReflectedType):
            msg = f"Registration {registration.describe()} is not a reflected type."
            raise TypeError(msg)
        self._context = context
        self._registration = registration
        self._strategy = strategy

    def construct(self, parameters: Sequence[ParameterSpec] = ()) -> Any:
        specs = (*parameters, *self._registration.parameters)
        candidates = self._strategy.candidates()
        chosen = candidates[0] if len(candidates) == 1 else self._select(candidates, specs)

        sig = inspect.signature(chosen)
        hints = _get_type_hints(chosen)
        args: list[Any] = []
        kwargs: dict[str, Any] = {}

        for name, p in sig.parameters.items():
            if p.kind in _VARIADIC:
                continue

            value = self._resolve_param(_parameter_info(chosen, p, hints), specs)
            if p.kind is p.POSITIONAL_ONLY:
                args.append(value)
            else:
                kwargs[name] = value

        if any(p.kind is p.VAR_KEYWORD for p in sig.parameters.values()):
            # unmatched explicit named parameters flow through **kwargs
            for spec in parameters:
                if isinstance(spec, Named) and spec.name not in sig.parameters:
                    kwargs[spec.name] = spec.value

        logger.debug("Constructing %s via %s", self._strategy.concrete_type.__qualname__, _describe(chosen))
        return chosen(*args, **kwargs)

    def _resolve_param(self, param: ParameterInfo, specs: Sequence[ParameterSpec]) -> Any:
        for spec in specs:
            if spec.matches(param):
                return spec.provide(self._context)

        key = _key_for(param.annotation)
        if key is not None and self._context.is_registered(key):
            return self._context.resolve(key)

        if param.has_default:
            return param.default

        raise MissingDependencyError(
            param.owner,
            param.name,
            key=key,
            registration_id=self._registration.id,
        )

    def _select(self, candidates: Sequence[Callable[..., Any]], specs: Sequence[ParameterSpec]) -> Callable[..., Any]:
        """Pick the satisfiable candidate with the most parameters."""
        satisfiable: list[tuple[int, Callable[..., Any]]] = []
        failures: list[ParameterInfo] = []

        for candidate in candidates:
            params = _injectable_parameters(candidate)
            unsatisfied = next((p for p in params if not self._can_satisfy(p, specs)), None)
            if unsatisfied is None:
                satisfiable.append((len(params), candidate))
            else:
                failures.append(unsatisfied)

        if not satisfiable:
            raise MissingDependencyError(
                failures[0].owner,
                failures[0].name,
                key=_key_for(failures[0].annotation),
                registration_id=self._registration.id,
            )

        most = max(arity for arity, _ in satisfiable)
        best = [candidate for arity, candidate in satisfiable if arity == most]
        if len(best) > 1:
            raise AmbiguousConstructorError(
                self._strategy.concrete_type,
                best,
                registration_id=self._registration.id,
            )
        return best[0]

    def _can_satisfy(self, param: ParameterInfo, specs: Sequence[ParameterSpec]) -> bool:
        if any(spec.matches(param) for spec in specs):
            return True
        key = _key_for(param.annotation)
        if key is not None and self._context.is_registered(key):
            return True
        return param.has_default


def _injectable_parameters(candidate: Callable[..., Any]) -> list[ParameterInfo]:
    sig = inspect.signature(candidate)
    hints = _get_type_hints(candidate)
    return [_parameter_info(candidate, p, hints) for p in sig.parameters.values() if p.kind not in _VARIADIC]


def _parameter_info(owner: Callable[..., Any], p: inspect.Parameter, hints: dict[str, Any]) -> ParameterInfo:
    annotation = hints.get(p.name, p.annotation)
    return ParameterInfo(
        name=p.name,
        annotation=_unwrap_optional(annotation),
        default=p.default,
        owner=owner,
    )


def _unwrap_optional(annotation: Any) -> Any:
    """`X | None` and `Optional[X]` are injected as `X`."""
    if typing.get_origin(annotation) not in (typing.Union, types.UnionType):
        return annotation
    args = [a for a in typing.get_args(annotation) if a is not type(None)]
    if len(args) == 1:
        return args[0]
    return annotation


def _key_for(annotation: Any) -> ServiceKey | None:
    # unannotated, or a forward reference that could not be evaluated
    if annotation is inspect.Parameter.empty or isinstance(annotation, str):
        return None
    try:
        hash(annotation)
    except TypeError:
        return None
    return ServiceKey(annotation)


def _get_type_hints(candidate: Callable[..., Any]) -> dict[str, Any]:
    target = candidate
    if inspect.isclass(candidate):
        target = inspect.getattr_static(candidate, "__init__")
    try:
        hints = get_type_hints(target)
    except TypeError:
        hints = {}
    except NameError as exc:
        logger.warning("'%s' name error retrieving %s type hints", exc.name, _describe(candidate))
        hints = {}

    return hints


def _describe(candidate: Callable[..., Any]) -> str:
    return getattr(candidate, "__qualname__", repr(candidate))
