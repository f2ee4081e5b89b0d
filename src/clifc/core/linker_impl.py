"""
Per-unit resolution for clifc.

Walks a declaration tree in source order and produces a binding plan.
Every declaration is resolved independently: a failure becomes a
diagnostic and resolution continues with the next declaration.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass

from . import ir
from .decorators import ClassScope, resolve_bindings
from .environment import NativeScope
from .errors import ClifError, ErrorKind, error_at
from .signature import (
    CONSTRUCTOR_NAME,
    Container,
    bind_receiver,
    check_slot,
    match_signature,
    resolve_def_types,
)
from .symbols import NativeClass, NativeEnum, NativeFunction, NativeVariable
from .type_resolver import ResolverContext, normalize_native

logger = logging.getLogger(__name__)

Stage = ir.ResolutionStage


class CompilationCancelled(Exception):
    """Raised between declarations when a unit's cancel event is set."""


@dataclass
class _Progress:
    """Stage reached by the declaration currently being resolved."""

    decl_path: str
    stage: Stage = Stage.IMPORTING


def diagnostic_from_error(
    error: ClifError, file: str, decl_path: str | None = None
) -> ir.Diagnostic:
    """Convert a raised ClifError into a Diagnostic record."""
    context = error.context
    return ir.Diagnostic(
        kind=error.kind,
        message=error.message,
        file=str(context.file) if context else file,
        line=context.line if context else None,
        column=context.column if context else None,
        decl_path=decl_path or (context.decl_path if context else None),
    )


class UnitResolver:
    """
    Resolves one declaration tree against a fresh ResolverContext.

    Not reusable: create one per resolution.
    """

    def __init__(
        self,
        tree: ir.DeclarationTree,
        ctx: ResolverContext,
        cancel: threading.Event | None = None,
    ):
        self.tree = tree
        self.ctx = ctx
        self.cancel = cancel
        self.imports: list[ir.ImportPlan] = []
        self.records: list[ir.DeclPlan] = []
        self.outcomes: list[ir.DeclOutcome] = []
        self.diagnostics: list[ir.Diagnostic] = []

    def resolve(self) -> ir.UnitPlan:
        """
        Resolve every top-level statement in order.

        Raises:
            CompilationCancelled: If the cancel event is set
        """
        for statement in self.tree.statements:
            self._check_cancelled()

            if isinstance(statement, ir.HeaderImport):
                self._run(
                    f'import "{statement.path}"',
                    lambda p, s=statement: self.imports.append(
                        self.ctx.environment.import_header(s, self.ctx.natives)
                    ),
                )
            elif isinstance(statement, ir.ScriptingImport):
                self._run(
                    f"import {statement.module}",
                    lambda p, s=statement: self.imports.append(
                        self.ctx.environment.import_scripting(s, self.ctx.scripting)
                    ),
                )
            elif isinstance(statement, ir.UseDecl):
                self._resolve_use(statement)
            elif isinstance(statement, ir.FromBlock):
                self._resolve_from_block(statement)

        return ir.UnitPlan(
            unit=self.tree.file,
            imports=self.imports,
            records=self.records,
            outcomes=self.outcomes,
            diagnostics=self.diagnostics,
        )

    # ------------------------------------------------------------------
    # Driving
    # ------------------------------------------------------------------

    def _check_cancelled(self) -> None:
        if self.cancel is not None and self.cancel.is_set():
            raise CompilationCancelled(self.tree.file)

    def _run(self, decl_path: str, action: Callable[[_Progress], object]) -> object | None:
        """Run one declaration's resolution, recording its outcome."""
        progress = _Progress(decl_path)
        try:
            result = action(progress)
        except ClifError as e:
            logger.debug("%s failed while %s: %s", decl_path, progress.stage.value, e.message)
            self.outcomes.append(
                ir.DeclOutcome(
                    decl_path=decl_path,
                    stage=Stage.FAILED,
                    failed_at=progress.stage,
                    error_kind=e.kind,
                )
            )
            self.diagnostics.append(diagnostic_from_error(e, self.tree.file, decl_path))
            return None

        self.outcomes.append(ir.DeclOutcome(decl_path=decl_path, stage=Stage.BOUND))
        return result

    def _resolve_use(self, decl: ir.UseDecl) -> None:
        def action(progress: _Progress) -> None:
            progress.stage = Stage.TYPE_RESOLVING
            self.ctx.register_use(decl)

        self._run(f"use {decl.scripting}", action)

    def _resolve_from_block(self, block: ir.FromBlock) -> None:
        scope = NativeScope(namespace=block.namespace)
        self._predeclare(block.statements, scope, prefix="")
        logger.debug(
            'Resolving from "%s" (%d statements, namespace=%s)',
            block.header,
            len(block.statements),
            block.namespace,
        )

        for statement in block.statements:
            self._check_cancelled()
            if isinstance(statement, ir.UseDecl):
                self._resolve_use(statement)
                continue
            plan = self._resolve_member(statement, scope, owner=None, prefix="")
            if plan is not None:
                self.records.append(plan)

    def _predeclare(self, statements: list, scope: NativeScope, prefix: str) -> None:
        """Register wrapped types so they can be referenced before their block."""
        for statement in statements:
            if isinstance(statement, ir.ClassDecl):
                exposed = prefix + statement.name.exposed
                native = scope.qualify(statement.name.native)
                self.ctx.declare(exposed, native)
                self.ctx.pending_classes.add(exposed)
                self._predeclare(statement.members, scope.nested(native), f"{exposed}.")
            elif isinstance(statement, ir.EnumDecl):
                native = scope.qualify(statement.name.native)
                self.ctx.declare(prefix + statement.name.exposed, native)
            elif isinstance(statement, ir.CapsuleDecl):
                native = scope.qualify(statement.name.native)
                self.ctx.declare(prefix + statement.name.exposed, f"{native}*")

    # ------------------------------------------------------------------
    # Members
    # ------------------------------------------------------------------

    def _resolve_member(
        self,
        member: ir.Member,
        scope: NativeScope,
        owner: ClassScope | None,
        prefix: str,
    ) -> ir.DeclPlan | None:
        if isinstance(member, ir.StaticMethodsBlock):
            path = f"{prefix}staticmethods({member.target})"
            return self._run(path, lambda p: self._resolve_staticmethods(member, scope, path, p))

        path = prefix + member.name.exposed
        container: Container = "module" if owner is None else "class"

        if isinstance(member, ir.DefDecl):
            return self._run(
                path, lambda p: self._resolve_def(member, scope, owner, container, path, p)
            )
        if isinstance(member, ir.ConstDecl):
            return self._run(path, lambda p: self._resolve_const(member, scope, path, p))
        if isinstance(member, ir.EnumDecl):
            return self._run(path, lambda p: self._resolve_enum(member, scope, path, p))
        if isinstance(member, ir.VarDecl):
            return self._run(path, lambda p: self._resolve_var(member, scope, path, p))
        if isinstance(member, ir.CapsuleDecl):
            return self._run(path, lambda p: self._resolve_capsule(member, scope, path))
        if isinstance(member, ir.ClassDecl):
            return self._run(path, lambda p: self._resolve_class(member, scope, path, p))
        return None

    def _resolve_def(
        self,
        decl: ir.DefDecl,
        scope: NativeScope,
        owner: ClassScope | None,
        container: Container,
        path: str,
        progress: _Progress,
    ) -> ir.FunctionPlan:
        is_constructor = decl.name.native == CONSTRUCTOR_NAME
        if is_constructor:
            if owner is None:
                raise error_at(
                    ErrorKind.SIGNATURE, "'__init__' is only valid inside a class", decl.location
                )
            lookup_name = owner.native.rsplit("::", 1)[-1]
        else:
            lookup_name = decl.name.native

        symbol = scope.lookup(self.ctx.natives, lookup_name, decl.location)
        if not isinstance(symbol, NativeFunction):
            raise _not_a(symbol.name, "function", decl.location)

        progress.stage = Stage.TYPE_RESOLVING
        types = resolve_def_types(decl, self.ctx)

        progress.stage = Stage.SIGNATURE_MATCHING
        receiver = bind_receiver(decl, symbol, container)
        shape = match_signature(decl, types, symbol, self.ctx, receiver)

        progress.stage = Stage.DECORATOR_RESOLVING
        bindings = resolve_bindings(decl, symbol, shape, self.ctx, owner)

        return ir.FunctionPlan(
            exposed_name=decl.name.exposed,
            native_name=symbol.name,
            decl_path=path,
            shape=shape,
            bindings=bindings,
            is_constructor=is_constructor,
            line=_line(decl.location),
        )

    def _resolve_staticmethods(
        self,
        block: ir.StaticMethodsBlock,
        scope: NativeScope,
        path: str,
        progress: _Progress,
    ) -> ir.StaticMethodsPlan:
        target = scope.lookup(self.ctx.natives, block.target, block.location)
        if not isinstance(target, NativeClass):
            raise _not_a(target.name, "class", block.location)

        functions = []
        member_scope = scope.nested(target.name)
        for decl in block.defs:
            fn_path = f"{path}.{decl.name.exposed}"
            plan = self._run(
                fn_path,
                lambda p, d=decl, fp=fn_path: self._resolve_def(
                    d, member_scope, None, "scope", fp, p
                ),
            )
            if plan is not None:
                functions.append(plan)

        return ir.StaticMethodsPlan(
            scope=target.name,
            decl_path=path,
            functions=functions,
            line=_line(block.location),
        )

    def _resolve_const(
        self, decl: ir.ConstDecl, scope: NativeScope, path: str, progress: _Progress
    ) -> ir.ConstPlan:
        symbol = scope.lookup(self.ctx.natives, decl.name.native, decl.location)
        if not isinstance(symbol, NativeVariable):
            raise _not_a(symbol.name, "constant", decl.location)

        progress.stage = Stage.TYPE_RESOLVING
        resolved = self.ctx.resolve(decl.type)

        progress.stage = Stage.SIGNATURE_MATCHING
        what = f"Constant '{decl.name.exposed}'"
        check_slot(decl.type, resolved, symbol.type, self.ctx, what, decl.location)

        return ir.ConstPlan(
            exposed_name=decl.name.exposed,
            native_name=symbol.name,
            decl_path=path,
            scripting_type=decl.type.spelling,
            native_type=symbol.type.strip(),
            line=_line(decl.location),
        )

    def _resolve_enum(
        self, decl: ir.EnumDecl, scope: NativeScope, path: str, progress: _Progress
    ) -> ir.EnumPlan:
        symbol = scope.lookup(self.ctx.natives, decl.name.native, decl.location)
        if not isinstance(symbol, NativeEnum):
            raise _not_a(symbol.name, "enum", decl.location)

        renames: dict[str, str] = {}
        for value in decl.values:
            if value.name.native not in symbol.values:
                raise error_at(
                    ErrorKind.UNRESOLVED_SYMBOL,
                    f"`{symbol.name}` has no enumerator '{value.name.native}'",
                    value.location or decl.location,
                )
            renames[value.name.native] = value.name.exposed

        wrapper = ir.EnumWrapper.ENUM if symbol.scoped else ir.EnumWrapper.INT_ENUM
        return ir.EnumPlan(
            exposed_name=decl.name.exposed,
            native_name=symbol.name,
            decl_path=path,
            wrapper=wrapper,
            values=[
                ir.EnumValuePlan(native_name=v, exposed_name=renames.get(v, v))
                for v in symbol.values
            ],
            line=_line(decl.location),
        )

    def _resolve_var(
        self, decl: ir.VarDecl, scope: NativeScope, path: str, progress: _Progress
    ) -> ir.VarPlan:
        what = f"Member '{decl.name.exposed}'"

        if decl.getter is None:
            symbol = scope.lookup(self.ctx.natives, decl.name.native, decl.location)
            if not isinstance(symbol, NativeVariable):
                raise _not_a(symbol.name, "data member", decl.location)

            progress.stage = Stage.TYPE_RESOLVING
            resolved = self.ctx.resolve(decl.type)

            progress.stage = Stage.SIGNATURE_MATCHING
            check_slot(decl.type, resolved, symbol.type, self.ctx, what, decl.location)
            return ir.VarPlan(
                exposed_name=decl.name.exposed,
                native_name=symbol.name,
                decl_path=path,
                scripting_type=decl.type.spelling,
                native_type=symbol.type.strip(),
                readonly=symbol.is_const,
                line=_line(decl.location),
            )

        getter = scope.lookup(self.ctx.natives, decl.getter, decl.location)
        if not isinstance(getter, NativeFunction):
            raise _not_a(getter.name, "function", decl.location)
        setter = None
        if decl.setter is not None:
            setter = scope.lookup(self.ctx.natives, decl.setter, decl.location)
            if not isinstance(setter, NativeFunction):
                raise _not_a(setter.name, "function", decl.location)

        progress.stage = Stage.TYPE_RESOLVING
        resolved = self.ctx.resolve(decl.type)

        progress.stage = Stage.SIGNATURE_MATCHING
        if getter.params or getter.is_void or getter.is_static:
            raise error_at(
                ErrorKind.SIGNATURE,
                f"Property getter `{getter.name}` must be a member function taking no "
                "arguments and returning a value",
                decl.location,
            )
        check_slot(decl.type, resolved, getter.return_type, self.ctx, what, decl.location)
        if setter is not None:
            if len(setter.params) != 1 or not setter.is_void or setter.is_static:
                raise error_at(
                    ErrorKind.SIGNATURE,
                    f"Property setter `{setter.name}` must be a void member function taking "
                    "one argument",
                    decl.location,
                )
            check_slot(decl.type, resolved, setter.params[0].type, self.ctx, what, decl.location)

        return ir.VarPlan(
            exposed_name=decl.name.exposed,
            native_name=decl.name.native,
            decl_path=path,
            scripting_type=decl.type.spelling,
            native_type=getter.return_type.strip(),
            access="property",
            getter=getter.name,
            setter=setter.name if setter else None,
            readonly=setter is None,
            line=_line(decl.location),
        )

    def _resolve_capsule(
        self, decl: ir.CapsuleDecl, scope: NativeScope, path: str
    ) -> ir.CapsulePlan:
        native = scope.qualify(decl.name.native)
        return ir.CapsulePlan(
            exposed_name=decl.name.exposed,
            native_name=native,
            decl_path=path,
            pointer_type=f"{native}*",
            line=_line(decl.location),
        )

    def _resolve_class(
        self, decl: ir.ClassDecl, scope: NativeScope, path: str, progress: _Progress
    ) -> ir.ClassPlan:
        self.ctx.pending_classes.discard(path)
        symbol = scope.lookup(self.ctx.natives, decl.name.native, decl.location)
        if not isinstance(symbol, NativeClass):
            raise _not_a(symbol.name, "class", decl.location)

        base_plan, base_native = self._resolve_base(decl, symbol, path)

        if decl.passthrough:
            members = list(base_plan.members) if base_plan else []
        else:
            owner = ClassScope.for_members(path, symbol.name, decl.members)
            member_scope = scope.nested(symbol.name)
            members = []
            self.ctx.enclosing.append(path)
            try:
                for member in decl.members:
                    self._check_cancelled()
                    plan = self._resolve_member(member, member_scope, owner, prefix=f"{path}.")
                    if plan is not None:
                        members.append(plan)
            finally:
                self.ctx.enclosing.pop()

        plan = ir.ClassPlan(
            exposed_name=decl.name.exposed,
            native_name=symbol.name,
            decl_path=path,
            base=decl.base,
            base_native=base_native,
            members=members,
            inherited=decl.passthrough,
            line=_line(decl.location),
        )
        self.ctx.classes[path] = plan
        return plan

    def _resolve_base(
        self, decl: ir.ClassDecl, symbol: NativeClass, path: str
    ) -> tuple[ir.ClassPlan | None, str | None]:
        if decl.base is None:
            return None, None

        base_plan: ir.ClassPlan | None = None
        base_native: str | None = None
        for name in self.ctx.scoped_names(decl.base):
            if name in self.ctx.classes:
                base_plan = self.ctx.classes[name]
                base_native = base_plan.native_name
                break
            if name in self.ctx.pending_classes:
                raise error_at(
                    ErrorKind.UNRESOLVED_SYMBOL,
                    f"Base class '{decl.base}' must be declared before '{path}'",
                    decl.location,
                )

        if base_native is None:
            candidates = self.ctx.environment.header_types.get(decl.base, set())
            if not candidates:
                raise error_at(
                    ErrorKind.UNRESOLVED_SYMBOL,
                    f"Unknown base class '{decl.base}'",
                    decl.location,
                )
            if len(candidates) > 1:
                raise error_at(
                    ErrorKind.AMBIGUOUS_TYPE,
                    f"Base class '{decl.base}' is imported from several headers; "
                    "use an import alias prefix",
                    decl.location,
                )
            (base_native,) = candidates

        if symbol.bases:
            native_bases = {normalize_native(b) for b in symbol.bases}
            if normalize_native(base_native) not in native_bases:
                raise error_at(
                    ErrorKind.UNRESOLVED_SYMBOL,
                    f"`{base_native}` is not a native base of `{symbol.name}`",
                    decl.location,
                )
        return base_plan, base_native


def resolve_tree(
    tree: ir.DeclarationTree,
    ctx: ResolverContext,
    cancel: threading.Event | None = None,
) -> ir.UnitPlan:
    """
    Resolve a declaration tree into a binding plan.

    Args:
        tree: Parsed unit
        ctx: Fresh resolver context for this unit
        cancel: Optional event checked between declarations

    Returns:
        UnitPlan with records for every declaration that resolved, and a
        diagnostic for every one that did not

    Raises:
        CompilationCancelled: If ``cancel`` is set during resolution
    """
    return UnitResolver(tree, ctx, cancel).resolve()


def _not_a(name: str, what: str, location: ir.SourceLocation | None) -> ClifError:
    return error_at(ErrorKind.UNRESOLVED_SYMBOL, f"`{name}` is not a {what}", location)


def _line(location: ir.SourceLocation | None) -> int | None:
    return location.line if location else None
