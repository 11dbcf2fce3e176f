from __future__ import annotations

import inspect
import typing
from typing import Any, Protocol, get_type_hints


def is_protocol(tp: Any) -> bool:
    """Detect whether 'tp' is a typing.Protocol class (safe)."""
    if hasattr(typing, "is_protocol"):
        # https://docs.python.org/3/library/typing.html#typing.is_protocol
        return inspect.isclass(tp) and typing.is_protocol(tp)
    # Before 3.13: same check typing.is_protocol performs. `_is_protocol` is set on Protocol
    # classes and reset to False on their concrete subclasses, unlike issubclass(tp, Protocol).
    return inspect.isclass(tp) and bool(getattr(tp, "_is_protocol", False)) and tp is not Protocol


def validate_implementation(service_type: Any, implementation_type: Any) -> None:
    """Validate that 'implementation_type' satisfies 'service_type' when it is a class/protocol.

    - For normal classes/ABCs: require issubclass(implementation_type, service_type).
    - For Protocols: accept nominal conformance via MRO, otherwise check structural
      conformance.

    Non-class service types cannot be validated and are accepted as-is.
    """
    if not inspect.isclass(service_type):
        return

    if not inspect.isclass(implementation_type):
        msg = f"Implementation {implementation_type!r} for {service_type.__name__} must be a class"
        raise TypeError(msg)

    if not is_protocol(service_type):
        if not issubclass(implementation_type, service_type):
            msg = f"Implementation {implementation_type.__name__} must be a subclass of {service_type.__name__}"
            raise TypeError(msg)
        return

    if service_type in implementation_type.__mro__:
        return

    _validate_structural_conformance(service_type, implementation_type)


def _validate_structural_conformance(proto_cls: type, impl: type) -> None:  # noqa: C901
    """Best-effort structural conformance: presence + basic callable arity + return type checks."""
    missing: list[str] = []
    signature_mismatches: list[str] = []

    try:
        proto_hints = get_type_hints(proto_cls, include_extras=True)
    except (NameError, TypeError):
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
            signature_mismatches.append(f"{name}: not callable on {impl.__name__}")
            continue

        try:
            proto_sig = inspect.signature(proto_attr)
            impl_sig = inspect.signature(impl_attr)
        except (TypeError, ValueError) as e:
            signature_mismatches.append(f"{name}: unable to compare signatures ({e})")
            continue

        proto_arity = _positional_arity(proto_sig)
        impl_arity = _positional_arity(impl_sig)
        if impl_arity < proto_arity:
            signature_mismatches.append(
                f"{name}: implementation has fewer required positional params ({impl_arity}) "
                f"than protocol ({proto_arity})"
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
        raise TypeError(msg)


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
        return issubclass(impl_ret, proto_ret)

    # Union, Protocol, TypeVar, string annotations... conservative failure
    return False
