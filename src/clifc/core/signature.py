"""
Signature and ownership matching.

Derives the native call shape of a def and checks it against the native
declaration:

- native parameter order is the declared input order
- the first declared output is the native return value
- further outputs are trailing out-pointer parameters, in declared order
- zero outputs means a void native function
- ``= default`` inputs form a trailing suffix, each backed by a native default

Ownership is read off the native type of each slot: ``std::unique_ptr``
moves ownership (to the scripting side on the way out, to the native side
on the way in); raw pointers are always borrowed for the call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

from . import ir
from .errors import ErrorKind, error_at
from .symbols import NativeFunction
from .type_resolver import (
    ResolvedType,
    ResolverContext,
    is_raw_pointer,
    is_unique_ptr,
    normalize_native,
    strip_pointer,
    template_of,
    text_conversion,
)

logger = logging.getLogger(__name__)

CONSTRUCTOR_NAME = "__init__"

Container = Literal["module", "class", "scope"]


@dataclass(frozen=True)
class DefTypes:
    """Resolved input and output types of one def, in declared order."""

    inputs: list[ResolvedType]
    outputs: list[ResolvedType]


def resolve_def_types(decl: ir.DefDecl, ctx: ResolverContext) -> DefTypes:
    """Resolve every declared input and output type of ``decl``."""
    inputs = [ctx.resolve(p.type) for p in decl.inputs if p.type is not None]
    outputs = [ctx.resolve(o.type) for o in decl.outputs]
    return DefTypes(inputs=inputs, outputs=outputs)


def derive_ownership(native_type: str, role: ir.SlotRole) -> ir.Ownership:
    """Ownership transfer mode of a slot with the given native type."""
    if is_unique_ptr(native_type):
        if role == ir.SlotRole.INPUT:
            return ir.Ownership.TO_NATIVE
        return ir.Ownership.TO_SCRIPTING
    if is_raw_pointer(native_type):
        return ir.Ownership.BORROWED
    return ir.Ownership.VALUE


def default_suffix_start(decl: ir.DefDecl) -> int | None:
    """
    Index of the first default-eligible input, or None.

    Raises:
        SignatureError: If default-eligible inputs are not a trailing suffix
    """
    inputs = decl.inputs
    start = next((i for i, p in enumerate(inputs) if p.default), None)
    if start is None:
        return None

    for param in inputs[start:]:
        if not param.default:
            raise error_at(
                ErrorKind.SIGNATURE,
                f"Parameter '{param.name.exposed}' has no default but follows default "
                f"parameter '{inputs[start].name.exposed}'; defaults must be a trailing suffix",
                param.location or decl.location,
            )
    return start


def bind_receiver(
    decl: ir.DefDecl, native: NativeFunction, container: Container
) -> ir.ReceiverKind:
    """
    Decide how ``decl`` binds to its class.

    Raises:
        SignatureError: If the receiver does not fit the native function
    """
    receiver = decl.receiver
    exposed = decl.name.exposed

    if container == "scope":
        if receiver is not None:
            raise _signature(
                f"'{exposed}' is in a staticmethods block and cannot take '{receiver.name.native}'",
                decl,
            )
        if not native.is_static:
            raise _signature(f"`{native.name}` is not a static member function", decl)
        return ir.ReceiverKind.SCOPE

    if container == "module":
        if receiver is not None:
            raise _signature(
                f"'{receiver.name.native}' is only valid for functions inside a class", decl
            )
        return ir.ReceiverKind.NONE

    if receiver is None:
        if native.is_static:
            raise _signature(
                f"`{native.name}` is a static member function; bind it with @classmethod "
                "and 'cls', or move it into a staticmethods block",
                decl,
            )
        raise _signature(f"Member function '{exposed}' must take 'self' first", decl)

    if receiver.name.native == "cls":
        return ir.ReceiverKind.CLASS

    if native.is_static:
        raise _signature(
            f"`{native.name}` is a static member function and cannot take 'self'; "
            "use @classmethod with 'cls', or a staticmethods block",
            decl,
        )
    return ir.ReceiverKind.INSTANCE


def match_signature(
    decl: ir.DefDecl,
    types: DefTypes,
    native: NativeFunction,
    ctx: ResolverContext,
    receiver: ir.ReceiverKind,
) -> ir.CallShape:
    """
    Derive the call shape of ``decl`` against ``native``.

    Raises:
        SignatureError: Arity, return, default or ownership mismatch
        AmbiguousTypeError: A slot could back onto the native type only
            through an explicit qualifier
    """
    exposed = decl.name.exposed
    inputs = decl.inputs
    outputs = decl.outputs
    is_constructor = decl.name.native == CONSTRUCTOR_NAME

    if is_constructor:
        if not native.is_constructor:
            raise _signature(f"`{native.name}` is not a constructor", decl)
        if outputs:
            raise _signature("Constructors cannot declare outputs", decl)

    suffix_start = default_suffix_start(decl)

    expected = len(inputs) + max(0, len(outputs) - 1)
    if len(native.params) != expected:
        raise _signature(
            f"`{native.name}` takes {len(native.params)} parameter(s) but '{exposed}' declares "
            f"{len(inputs)} input(s) and {len(outputs)} output(s), which need {expected}",
            decl,
        )

    if not is_constructor:
        if not outputs and not native.is_void:
            raise _signature(
                f"'{exposed}' declares no outputs but `{native.name}` returns "
                f"`{native.return_type}`",
                decl,
            )
        if outputs and native.is_void:
            raise _signature(
                f"'{exposed}' declares outputs but `{native.name}` returns void", decl
            )

    input_slots = []
    for index, (param, resolved) in enumerate(zip(inputs, types.inputs)):
        native_param = native.params[index]
        if param.type is None:
            raise _signature(f"Parameter '{param.name.exposed}' needs a type", decl)
        what = f"Parameter '{param.name.exposed}'"
        location = param.location or decl.location
        check_slot(param.type, resolved, native_param.type, ctx, what, location)

        if param.default and not native_param.has_default:
            raise error_at(
                ErrorKind.SIGNATURE,
                f"Parameter '{param.name.exposed}' is marked default but native parameter "
                f"{index} of `{native.name}` has no default value",
                location,
            )

        input_slots.append(
            ir.SlotPlan(
                name=param.name.exposed,
                scripting_type=param.type.spelling,
                native_type=native_param.type.strip(),
                role=ir.SlotRole.INPUT,
                native_index=index,
                ownership=derive_ownership(native_param.type, ir.SlotRole.INPUT),
                has_default=param.default,
                default_value=native_param.default_value if param.default else None,
                text=text_conversion(param.type, ir.SlotRole.INPUT),
            )
        )

    returns = None
    if outputs:
        first, first_type = outputs[0], types.outputs[0]
        what = f"Output '{first.name}'" if first.name else "Return value"
        location = first.location or decl.location
        check_slot(first.type, first_type, native.return_type, ctx, what, location)
        returns = ir.SlotPlan(
            name=first.name,
            scripting_type=first.type.spelling,
            native_type=native.return_type.strip(),
            role=ir.SlotRole.RETURN,
            ownership=derive_ownership(native.return_type, ir.SlotRole.RETURN),
            text=text_conversion(first.type, ir.SlotRole.RETURN),
        )

    out_slots = []
    for offset, (output, resolved) in enumerate(zip(outputs[1:], types.outputs[1:])):
        index = len(inputs) + offset
        native_param = native.params[index]
        what = f"Output '{output.name}'"
        location = output.location or decl.location

        pointee = strip_pointer(native_param.type)
        if pointee is None:
            raise error_at(
                ErrorKind.SIGNATURE,
                f"{what} maps to native parameter {index} of `{native.name}`, which must be "
                f"a pointer, not `{native_param.type}`",
                location,
            )
        check_slot(output.type, resolved, pointee, ctx, what, location)

        out_slots.append(
            ir.SlotPlan(
                name=output.name,
                scripting_type=output.type.spelling,
                native_type=pointee,
                role=ir.SlotRole.OUT_POINTER,
                native_index=index,
                ownership=derive_ownership(pointee, ir.SlotRole.OUT_POINTER),
                text=text_conversion(output.type, ir.SlotRole.OUT_POINTER),
            )
        )

    shape = ir.CallShape(
        receiver=receiver,
        inputs=input_slots,
        returns=returns,
        out_params=out_slots,
        default_suffix_start=suffix_start,
    )
    logger.debug(
        "Matched %s: %d input(s), %s return, %d out-pointer(s)",
        native.name,
        len(input_slots),
        "void" if returns is None else returns.native_type,
        len(out_slots),
    )
    return shape


def check_slot(
    ref: ir.TypeRef,
    resolved: ResolvedType,
    native_type: str,
    ctx: ResolverContext,
    what: str,
    location: ir.SourceLocation | None,
) -> None:
    """
    Check a resolved declared type against the native slot type.

    Wrapped types may also sit behind a raw pointer (borrowed) or a smart
    pointer. Declaring ``std::unique_ptr`` over a native raw pointer is an
    ownership-transfer error.

    Raises:
        SignatureError: On mismatch
        AmbiguousTypeError: When the native type is one of the scripting
            type's compatible natives but was not selected explicitly
    """
    declared = normalize_native(resolved.native)
    actual = normalize_native(native_type)
    if declared == actual:
        return

    if is_unique_ptr(declared) and is_raw_pointer(actual):
        raise error_at(
            ErrorKind.SIGNATURE,
            f"{what} declares ownership transfer (`{resolved.native}`) over the raw pointer "
            f"`{native_type}`; raw pointers are always borrowed, so add a std::unique_ptr "
            "overload to the native API instead",
            location,
        )

    if resolved.wrapped and not resolved.explicit:
        if actual in (
            f"{declared}*",
            f"std::shared_ptr<{declared}>",
            f"std::unique_ptr<{declared}>",
        ):
            return

    if not resolved.explicit:
        compatible = {normalize_native(c) for c in ctx.compatible_natives(ref)}
        if actual in compatible or template_of(actual) in compatible:
            raise error_at(
                ErrorKind.AMBIGUOUS_TYPE,
                f"{what} is declared '{ref.spelling}' but the native type is `{native_type}`; "
                f"'{ref.name}' has several compatible native types, so write "
                f"`{native_type.strip()}` as {ref.spelling}",
                location,
            )

    raise error_at(
        ErrorKind.SIGNATURE,
        f"{what} is declared '{ref.spelling}' (`{resolved.native}`) but the native type "
        f"is `{native_type}`",
        location,
    )


def _signature(message: str, decl: ir.DefDecl):
    return error_at(ErrorKind.SIGNATURE, message, decl.location)
