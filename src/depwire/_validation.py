from __future__ import annotations

import abc
import inspect
import typing
from typing import Any, Generic, Protocol, cast, get_type_hints

from ._errors import RegistrationError


_NON_CAPABILITIES: frozenset[Any] = frozenset({object, Generic, Protocol, abc.ABC})


if hasattr(typing, "is_protocol"):
    # https://docs.python.org/3/library/typing.html#typing.is_protocol
    def is_protocol(tp: Any) -> bool:
        return inspect.isclass(tp) and typing.is_protocol(tp)

else:

    def is_protocol(tp: Any) -> bool:
        """Detect whether 'tp' is a typing.Protocol subclass (safe)."""
        return inspect.isclass(tp) and getattr(tp, "_is_protocol", False) and tp is not Protocol


def capabilities_of(impl: type) -> list[type]:
    """Every base `impl` can be requested as, most specific first."""
    return [base for base in impl.__mro__[1:] if base not in _NON_CAPABILITIES]


def is_concrete(cls: Any) -> bool:
    return inspect.isclass(cls) and not inspect.isabstract(cls) and not is_protocol(cls)


def validate_impl(capability: type, impl: type) -> None:
    """Validate that `impl` satisfies `capability`.

    - For normal classes/ABCs: require issubclass(impl, capability).
    - For Protocols: nominal via MRO, otherwise structural conformance.
    """
    if not inspect.isclass(impl):
        msg = f"Implementation must be a class, got {impl!r}"
        raise RegistrationError(msg)

    if not is_protocol(capability):
        if not issubclass(impl, capability):
            msg = f"Implementation {impl.__name__} must be a subclass of {capability.__name__}"
            raise RegistrationError(msg)
        return

    if capability in impl.__mro__:
        return

    _validate_structural_conformance(capability, impl)


def satisfies(capability: type, impl: type) -> bool:
    try:
        validate_impl(capability, impl)
    except RegistrationError:
        return False
    return True


def _validate_structural_conformance(proto_cls: type, impl: type) -> None:  # noqa: C901
    """Best-effort structural conformance: presence, positional arity and return types."""
    missing: list[str] = []
    signature_mismatches: list[str] = []

    try:
        proto_hints = get_type_hints(proto_cls, include_extras=True)
    except (NameError, TypeError):
        proto_hints = {}

    for name in proto_hints:
        if not name.startswith("_") and not hasattr(impl, name):
            missing.append(name)

    for name, proto_attr in proto_cls.__dict__.items():
        if name.startswith("_") or not inspect.isfunction(proto_attr):
            continue

        if not hasattr(impl, name):
            missing.append(name)
            continue

        impl_attr = getattr(impl, name)
        if not callable(impl_attr):
            signature_mismatches.append(f"{name}: not callable on {impl.__name__}")
            continue

        try:
            mismatch = _compare_signatures(name, proto_attr, impl_attr)
        except (TypeError, ValueError) as e:
            mismatch = f"{name}: unable to compare signatures ({e})"
        if mismatch:
            signature_mismatches.append(mismatch)

    if missing or signature_mismatches:
        msgs = []
        if missing:
            msgs.append(f"missing members: {', '.join(missing)}")
        if signature_mismatches:
            msgs.append(f"signature mismatches: {', '.join(signature_mismatches)}")

        msg = (
            f"Implementation {impl.__name__} does not structurally conform to protocol "
            f"{proto_cls.__name__}: {'; '.join(msgs)}"
        )
        raise RegistrationError(msg)


def _compare_signatures(name: str, proto_attr: Any, impl_attr: Any) -> str | None:
    proto_sig = inspect.signature(proto_attr)
    impl_sig = inspect.signature(impl_attr)

    proto_arity = _positional_arity(proto_sig)
    impl_arity = _positional_arity(impl_sig)
    if impl_arity < proto_arity:
        return f"{name}: impl has fewer required positional params ({impl_arity}) than protocol ({proto_arity})"

    proto_ret = proto_sig.return_annotation
    impl_ret = impl_sig.return_annotation
    if (
        proto_ret is not inspect.Signature.empty
        and impl_ret is not inspect.Signature.empty
        and proto_ret is not Any
        and impl_ret is not Any
        and not _is_return_type_compatible(impl_ret, proto_ret)
    ):
        return f"{name}: return type {impl_ret!r} is not compatible with protocol return type {proto_ret!r}"

    return None


def _positional_arity(sig: inspect.Signature) -> int:
    return sum(
        1
        for p in sig.parameters.values()
        if p.name != "self"
        and p.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
        and p.default is inspect.Parameter.empty
    )


def _is_return_type_compatible(impl_ret: object, proto_ret: object) -> bool:
    if impl_ret == proto_ret:
        return True

    if isinstance(impl_ret, type) and isinstance(proto_ret, type):
        return issubclass(cast("type", impl_ret), proto_ret)

    # Union, Protocol, TypeVar, etc.: conservative failure
    return False
