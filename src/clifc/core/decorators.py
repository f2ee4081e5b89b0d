"""
Decorator and postprocessor resolution.

Turns the decorators of a def into calling-convention bindings:

- ``@async``: release the scripting runtime lock around the native call
- ``@virtual``: trampoline dispatching to a scripting override or the
  native default
- ``@__enter__`` / ``@__exit__``: context-manager protocol
- ``@getter(m)`` / ``@setter(m)``: property access to native member ``m``
- ``@classmethod``: static member function bound with ``cls``
- ``__del__`` / ``__delitem__`` / ``__delattr__``: deleter protocols,
  recognized by exposed name

A ``return f(...)`` suffix binds an imported scripting callable that
receives the full output tuple.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from . import ir
from .environment import NativeScope
from .errors import ErrorKind, error_at
from .symbols import NativeFunction, NativeVariable
from .type_resolver import ResolverContext

logger = logging.getLogger(__name__)

DELETER_INPUTS = {
    ir.DeleterKind.FINALIZER: 0,
    ir.DeleterKind.ITEM: 1,
    ir.DeleterKind.ATTRIBUTE: 1,
}


@dataclass
class ClassScope:
    """
    Class whose members are being resolved.

    Attributes:
        exposed: Scripting name of the class
        native: Native name of the class
        getters: Property name -> native member named by any @getter in the
            class body, wherever it appears
    """

    exposed: str
    native: str
    getters: dict[str, str] = field(default_factory=dict)

    @classmethod
    def for_members(cls, exposed: str, native: str, members: list) -> ClassScope:
        """Create a scope, collecting the @getter members declared in ``members``."""
        getters: dict[str, str] = {}
        for member in members:
            if not isinstance(member, ir.DefDecl):
                continue
            getter = member.decorator(ir.DecoratorKind.GETTER)
            if getter is not None and getter.member is not None:
                getters.setdefault(member.name.exposed, getter.member)
        return cls(exposed=exposed, native=native, getters=getters)


def resolve_bindings(
    decl: ir.DefDecl,
    native: NativeFunction,
    shape: ir.CallShape,
    ctx: ResolverContext,
    owner: ClassScope | None = None,
) -> ir.DecoratorBindings:
    """
    Resolve the decorators and postprocessor of ``decl``.

    Raises:
        SignatureError: A decorator does not fit the def or native function
        UnresolvedSymbolError: The postprocessor was not imported earlier
    """
    exposed = decl.name.exposed
    bindings: dict = {}

    is_classmethod = decl.has_decorator(ir.DecoratorKind.CLASSMETHOD)
    if is_classmethod:
        if owner is None or shape.receiver != ir.ReceiverKind.CLASS:
            raise _error(
                decl,
                ir.DecoratorKind.CLASSMETHOD,
                "@classmethod requires 'cls' as the first parameter",
            )
        if not native.is_static:
            raise _error(
                decl,
                ir.DecoratorKind.CLASSMETHOD,
                f"@classmethod requires a static member function, `{native.name}` is not",
            )
        bindings["is_classmethod"] = True
    elif shape.receiver == ir.ReceiverKind.CLASS:
        raise _error(decl, None, f"'{exposed}' takes 'cls' but is not marked @classmethod")

    if decl.has_decorator(ir.DecoratorKind.ASYNC):
        bindings["releases_runtime_lock"] = True

    if decl.has_decorator(ir.DecoratorKind.VIRTUAL):
        bindings["trampoline"] = _trampoline(decl, native, shape, owner)

    role = _context_role(decl, shape, owner)
    if role is not None:
        bindings["context_role"] = role
        bindings["returns_self"] = role == ir.ContextRole.ENTER
        bindings["discards_result"] = role == ir.ContextRole.EXIT

    accessor = _accessor(decl, shape, owner, ctx)
    if accessor is not None:
        bindings["accessor"] = accessor

    deleter = _deleter(decl, shape, owner)
    if deleter is not None:
        bindings["deleter"] = deleter

    if decl.postprocessor is not None:
        bindings["postprocessor"] = _postprocessor(decl, ctx)

    result = ir.DecoratorBindings(**bindings)
    if not result.is_plain:
        logger.debug("Bound decorators for %s: %s", exposed, sorted(bindings))
    return result


def _trampoline(
    decl: ir.DefDecl,
    native: NativeFunction,
    shape: ir.CallShape,
    owner: ClassScope | None,
) -> ir.TrampolineSpec:
    kind = ir.DecoratorKind.VIRTUAL
    if owner is None or shape.receiver != ir.ReceiverKind.INSTANCE:
        raise _error(decl, kind, "@virtual is only valid on member functions taking 'self'")
    if not native.is_virtual:
        raise _error(decl, kind, f"`{native.name}` is not virtual and cannot be overridden")

    exposed = decl.name.exposed
    return ir.TrampolineSpec(
        native_default=ir.NativeDefaultTarget(native_name=native.name),
        scripting_override=ir.ScriptingOverrideTarget(method_name=exposed),
        override_flag=f"{owner.exposed}.{exposed}.overridden",
    )


def _context_role(
    decl: ir.DefDecl, shape: ir.CallShape, owner: ClassScope | None
) -> ir.ContextRole | None:
    enter = decl.has_decorator(ir.DecoratorKind.ENTER)
    exit_ = decl.has_decorator(ir.DecoratorKind.EXIT)
    if not enter and not exit_:
        return None

    kind = ir.DecoratorKind.ENTER if enter else ir.DecoratorKind.EXIT
    if enter and exit_:
        raise _error(decl, kind, "A def cannot be both @__enter__ and @__exit__")
    if owner is None or shape.receiver != ir.ReceiverKind.INSTANCE:
        raise _error(decl, kind, f"@{kind.value} is only valid on member functions taking 'self'")
    if shape.inputs:
        raise _error(decl, kind, f"@{kind.value} functions take no arguments besides 'self'")

    return ir.ContextRole.ENTER if enter else ir.ContextRole.EXIT


def _accessor(
    decl: ir.DefDecl, shape: ir.CallShape, owner: ClassScope | None, ctx: ResolverContext
) -> ir.AccessorBinding | None:
    getter = decl.decorator(ir.DecoratorKind.GETTER)
    setter = decl.decorator(ir.DecoratorKind.SETTER)
    if getter is None and setter is None:
        return None

    kind = ir.DecoratorKind.GETTER if getter else ir.DecoratorKind.SETTER
    if getter and setter:
        raise _error(decl, kind, "A def cannot be both @getter and @setter")
    if owner is None or shape.receiver != ir.ReceiverKind.INSTANCE:
        raise _error(decl, kind, f"@{kind.value} is only valid on member functions taking 'self'")

    name = decl.name.exposed
    decorator = getter or setter
    if decorator is None or decorator.member is None:
        raise _error(decl, kind, f"@{kind.value} requires a native member name")
    member = decorator.member
    _check_member(decl, kind, member, owner, ctx)

    if getter is not None:
        if shape.inputs or len(decl.outputs) != 1:
            raise _error(decl, kind, "@getter functions take only 'self' and return one value")
        return ir.AccessorBinding(role="getter", member=member, property_name=name)

    if len(shape.inputs) != 1 or decl.outputs:
        raise _error(decl, kind, "@setter functions take 'self' and one value, and return nothing")

    bound = owner.getters.get(name)
    if bound is not None and bound != member:
        raise _error(
            decl,
            kind,
            f"Getter and setter of '{name}' reference different native members "
            f"`{bound}` and `{member}`",
        )
    return ir.AccessorBinding(role="setter", member=member, property_name=name)


def _check_member(
    decl: ir.DefDecl,
    kind: ir.DecoratorKind,
    member: str,
    owner: ClassScope,
    ctx: ResolverContext,
) -> None:
    location = _location(decl, kind)
    symbol = NativeScope(owner=owner.native).lookup(ctx.natives, member, location)
    if not isinstance(symbol, NativeVariable):
        raise _error(decl, kind, f"`{symbol.name}` is not a data member of `{owner.native}`")


def _deleter(
    decl: ir.DefDecl, shape: ir.CallShape, owner: ClassScope | None
) -> ir.DeleterKind | None:
    name = decl.name.exposed
    try:
        kind = ir.DeleterKind(name)
    except ValueError:
        return None

    if owner is None or shape.receiver != ir.ReceiverKind.INSTANCE:
        raise _error(decl, None, f"'{name}' is only valid on member functions taking 'self'")
    if len(decl.inputs) != DELETER_INPUTS[kind] or decl.outputs:
        expected = DELETER_INPUTS[kind]
        raise _error(
            decl,
            None,
            f"'{name}' takes 'self' and {expected} argument(s), and returns nothing",
        )
    if kind == ir.DeleterKind.ATTRIBUTE:
        attr_type = decl.inputs[0].type
        if attr_type is None or attr_type.name != "str":
            raise _error(decl, None, "'__delattr__' takes the attribute name as 'str'")
    return kind


def _postprocessor(decl: ir.DefDecl, ctx: ResolverContext) -> ir.PostprocessorBinding:
    call = decl.postprocessor
    if call is None:
        raise _error(decl, None, f"'{decl.name.exposed}' has no postprocessor to bind")
    location = call.location or decl.location

    symbol = ctx.environment.scripting_symbol(call.target)
    if symbol is None:
        raise error_at(
            ErrorKind.UNRESOLVED_SYMBOL,
            f"Postprocessor '{call.target}' must be imported before '{decl.name.exposed}'",
            location,
        )

    arity = len(decl.outputs)
    if not symbol.accepts(arity):
        bound = "any" if symbol.max_arity is None else symbol.max_arity
        raise error_at(
            ErrorKind.SIGNATURE,
            f"Postprocessor '{symbol.path}' accepts {symbol.min_arity}..{bound} argument(s) "
            f"but '{decl.name.exposed}' produces {arity} output(s)",
            location,
        )
    return ir.PostprocessorBinding(symbol=symbol.path, arity=arity, verbatim=call.verbatim)


def _location(decl: ir.DefDecl, kind: ir.DecoratorKind | None) -> ir.SourceLocation | None:
    if kind is not None:
        decorator = decl.decorator(kind)
        if decorator is not None and decorator.location is not None:
            return decorator.location
    return decl.location


def _error(decl: ir.DefDecl, kind: ir.DecoratorKind | None, message: str):
    return error_at(ErrorKind.SIGNATURE, message, _location(decl, kind))
