"""Checks that an implementation can stand in for the contract it is exposed as."""

from __future__ import annotations

import inspect
import typing
from typing import Any, Protocol, cast, get_type_hints


if hasattr(typing, "is_protocol"):
    # https://docs.python.org/3/library/typing.html#typing.is_protocol
    def is_protocol(tp: object) -> bool:
        return inspect.isclass(tp) and typing.is_protocol(tp)

else:

    def is_protocol(tp: object) -> bool:
        return inspect.isclass(tp) and issubclass(tp, cast("type", Protocol)) and getattr(tp, "_is_protocol", False)


def is_runtime_checkable_protocol(tp: object) -> bool:
    if not is_protocol(tp):
        return False

    try:
        isinstance(None, tp)  # type: ignore[arg-type]
    except TypeError:
        return False
    else:
        return True


def is_concrete(tp: type) -> bool:
    return not is_protocol(tp) and not inspect.isabstract(tp)


def conformance_problem(contract: object, impl: type) -> str | None:
    """Return why `impl` cannot be exposed as `contract`, or None when it can.

    - non-class contracts (e.g. strings) are never validated;
    - nominal classes and ABCs require subclassing;
    - Protocols accept nominal subclasses, otherwise a structural check runs.
    """
    if not inspect.isclass(contract):
        return None

    if not is_protocol(contract):
        if issubclass(impl, contract):
            return None
        return f"{impl.__qualname__} is not a subclass of {contract.__qualname__}"

    if contract in getattr(impl, "__mro__", ()):
        return None

    return _structural_problem(contract, impl)


def instance_problem(contract: object, instance: object) -> str | None:
    if not inspect.isclass(contract):
        return None

    if not is_protocol(contract):
        if isinstance(instance, contract):
            return None
        return f"{type(instance).__qualname__} instance is not an instance of {contract.__qualname__}"

    problem = conformance_problem(contract, type(instance))
    if problem is None and is_runtime_checkable_protocol(contract) and not isinstance(instance, contract):
        problem = f"{type(instance).__qualname__} does not implement runtime protocol {contract.__qualname__}"
    return problem


def _structural_problem(proto_cls: type, impl: type) -> str | None:  # noqa: C901
    """Best-effort structural conformance: presence + basic callable arity + return type checks."""
    missing: list[str] = []
    signature_mismatches: list[str] = []

    try:
        proto_hints = get_type_hints(proto_cls, include_extras=True)
    except (TypeError, NameError):
        proto_hints = {}

    # Attributes required by annotations
    for name in proto_hints:
        if name.startswith("_"):
            continue
        if not hasattr(impl, name):
            missing.append(name)

    for name, proto_attr in proto_cls.__dict__.items():
        if name.startswith("_") or not inspect.isfunction(proto_attr):
            continue

        if not hasattr(impl, name):
            missing.append(name)
            continue

        impl_attr = getattr(impl, name)
        if not callable(impl_attr):
            signature_mismatches.append(f"{name}: not callable on {impl.__qualname__}")
            continue

        try:
            proto_sig = inspect.signature(proto_attr)
            impl_sig = inspect.signature(impl_attr)
        except (TypeError, ValueError) as e:
            signature_mismatches.append(f"{name}: unable to compare signatures ({e})")
            continue

        proto_params = [p for p in proto_sig.parameters.values() if p.name != "self"]
        impl_params = [p for p in impl_sig.parameters.values() if p.name != "self"]

        if _positional_arity(impl_params) < _positional_arity(proto_params):
            signature_mismatches.append(
                f"{name}: impl has fewer required positional params "
                f"({_positional_arity(impl_params)}) than protocol "
                f"({_positional_arity(proto_params)})"
            )

        proto_ret = proto_sig.return_annotation
        impl_ret = impl_sig.return_annotation
        if (
            proto_ret is not inspect.Signature.empty
            and impl_ret is not inspect.Signature.empty
            and proto_ret is not Any
            and impl_ret is not Any
            and not _is_return_type_compatible(impl_ret, proto_ret)
        ):
            signature_mismatches.append(
                f"{name}: return type {impl_ret!r} is not compatible with protocol return type {proto_ret!r}"
            )

    if not missing and not signature_mismatches:
        return None

    msgs = []
    if missing:
        msgs.append(f"missing members: {', '.join(missing)}")
    if signature_mismatches:
        msgs.append(f"signature mismatches: {', '.join(signature_mismatches)}")
    return f"{impl.__qualname__} does not structurally conform to protocol {proto_cls.__qualname__}: {'; '.join(msgs)}"


def _positional_arity(params: list[inspect.Parameter]) -> int:
    return sum(
        1
        for p in params
        if p.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
        and p.default is inspect.Parameter.empty
    )


def _is_return_type_compatible(impl_ret: object, proto_ret: object) -> bool:
    # Exact match
    if impl_ret == proto_ret:
        return True

    # Handle class-based covariance
    if isinstance(impl_ret, type) and isinstance(proto_ret, type):
        return issubclass(impl_ret, proto_ret)

    # Everything else (Union, Protocol, TypeVar, etc.) -> conservative failure
    return False
