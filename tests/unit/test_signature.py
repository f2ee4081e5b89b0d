"""Tests for call-shape derivation and ownership matching."""

import pytest

from clifc.core import ir
from clifc.core.errors import AmbiguousTypeError, SignatureError
from clifc.core.signature import (
    bind_receiver,
    default_suffix_start,
    derive_ownership,
    match_signature,
    resolve_def_types,
)
from clifc.core.symbols import NativeFunction, NativeParam
from clifc.core.type_resolver import ResolverContext


@pytest.fixture
def ctx(natives, registry) -> ResolverContext:
    context = ResolverContext(natives=natives, scripting=registry)
    context.declare("Widget", "widgets::Widget")
    return context


@pytest.fixture
def parse_def(parse):
    def _parse_def(line: str) -> ir.DefDecl:
        (block,) = parse(f'from "a.h":\n  {line}\n').statements
        return block.statements[0]

    return _parse_def


def shape_of(decl, native, ctx, receiver=ir.ReceiverKind.NONE) -> ir.CallShape:
    return match_signature(decl, resolve_def_types(decl, ctx), native, ctx, receiver)


def params(*types: str) -> list[NativeParam]:
    return [NativeParam(name=f"p{i}", type=t) for i, t in enumerate(types)]


class TestOwnership:
    """Ownership read off native slot types."""

    def test_unique_ptr_return_moves_to_scripting(self):
        assert derive_ownership("std::unique_ptr<W>", ir.SlotRole.RETURN) == (
            ir.Ownership.TO_SCRIPTING
        )

    def test_unique_ptr_out_param_moves_to_scripting(self):
        assert derive_ownership("std::unique_ptr<W>", ir.SlotRole.OUT_POINTER) == (
            ir.Ownership.TO_SCRIPTING
        )

    def test_unique_ptr_input_moves_to_native(self):
        assert derive_ownership("std::unique_ptr<W>", ir.SlotRole.INPUT) == ir.Ownership.TO_NATIVE

    def test_raw_pointer_is_borrowed(self):
        for role in ir.SlotRole:
            assert derive_ownership("W*", role) == ir.Ownership.BORROWED

    def test_value(self):
        assert derive_ownership("int", ir.SlotRole.INPUT) == ir.Ownership.VALUE


class TestDefaultSuffix:
    """Default-eligible inputs must be a trailing suffix."""

    def test_no_defaults(self, parse_def):
        assert default_suffix_start(parse_def("def F(a: int, b: int)")) is None

    def test_trailing_suffix(self, parse_def):
        decl = parse_def("def F(a: int, b: int = default, c: int = default)")
        assert default_suffix_start(decl) == 1

    def test_two_defaults_then_required(self, parse_def):
        decl = parse_def("def F(a: int = default, b: int = default, c: int)")
        with pytest.raises(SignatureError) as exc_info:
            default_suffix_start(decl)
        assert "'c'" in exc_info.value.message


class TestReceiver:
    """Receiver binding by container."""

    def _member(self, parse, line: str) -> ir.DefDecl:
        (block,) = parse(f'from "a.h":\n  class A:\n    {line}\n').statements
        return block.statements[0].members[0]

    def test_module_function(self, parse_def):
        decl = parse_def("def F()")
        assert bind_receiver(decl, NativeFunction(name="F"), "module") == ir.ReceiverKind.NONE

    def test_instance_method(self, parse):
        decl = self._member(parse, "def Size(self) -> int")
        native = NativeFunction(name="A::Size", return_type="int")
        assert bind_receiver(decl, native, "class") == ir.ReceiverKind.INSTANCE

    def test_cls_receiver(self, parse):
        decl = self._member(parse, "def Make(cls) -> int")
        native = NativeFunction(name="A::Make", return_type="int", is_static=True)
        assert bind_receiver(decl, native, "class") == ir.ReceiverKind.CLASS

    def test_static_without_receiver_in_class(self, parse):
        decl = self._member(parse, "def Make() -> int")
        native = NativeFunction(name="A::Make", return_type="int", is_static=True)
        with pytest.raises(SignatureError) as exc_info:
            bind_receiver(decl, native, "class")
        assert "staticmethods" in exc_info.value.message

    def test_static_with_self(self, parse):
        decl = self._member(parse, "def Make(self) -> int")
        native = NativeFunction(name="A::Make", return_type="int", is_static=True)
        with pytest.raises(SignatureError):
            bind_receiver(decl, native, "class")

    def test_member_without_self(self, parse):
        decl = self._member(parse, "def Size() -> int")
        with pytest.raises(SignatureError):
            bind_receiver(decl, NativeFunction(name="A::Size", return_type="int"), "class")

    def test_scope_requires_static(self, parse_def):
        decl = parse_def("def Build() -> int")
        native = NativeFunction(name="Factory::Build", return_type="int", is_static=True)
        assert bind_receiver(decl, native, "scope") == ir.ReceiverKind.SCOPE
        with pytest.raises(SignatureError):
            bind_receiver(decl, native.model_copy(update={"is_static": False}), "scope")


class TestMatchSignature:
    """Call-shape derivation."""

    def test_single_return(self, parse_def, ctx):
        decl = parse_def("def F(x: int) -> bool")
        native = NativeFunction(name="F", params=params("int"), return_type="bool")
        shape = shape_of(decl, native, ctx)
        assert [s.native_type for s in shape.inputs] == ["int"]
        assert shape.returns.native_type == "bool"
        assert shape.out_params == []
        assert shape.inputs[0].ownership == ir.Ownership.VALUE

    def test_out_pointer(self, parse_def, ctx):
        decl = parse_def("def Status() -> (code: int, message: str)")
        native = NativeFunction(name="Status", params=params("std::string*"), return_type="int")
        shape = shape_of(decl, native, ctx)
        assert shape.inputs == []
        assert shape.returns.name == "code"
        (out,) = shape.out_params
        assert out.name == "message"
        assert out.native_type == "std::string"
        assert out.native_index == 0
        assert out.role == ir.SlotRole.OUT_POINTER
        assert out.text.exposed_as == "str"

    def test_out_param_must_be_pointer(self, parse_def, ctx):
        decl = parse_def("def Status() -> (code: int, message: str)")
        native = NativeFunction(name="Status", params=params("std::string"), return_type="int")
        with pytest.raises(SignatureError):
            shape_of(decl, native, ctx)

    def test_void(self, parse_def, ctx):
        shape = shape_of(parse_def("def Touch()"), NativeFunction(name="Touch"), ctx)
        assert shape.returns is None

    def test_void_mismatch(self, parse_def, ctx):
        with pytest.raises(SignatureError):
            shape_of(parse_def("def Touch() -> int"), NativeFunction(name="Touch"), ctx)
        with pytest.raises(SignatureError):
            shape_of(
                parse_def("def Touch()"), NativeFunction(name="Touch", return_type="int"), ctx
            )

    def test_arity_mismatch(self, parse_def, ctx):
        decl = parse_def("def F(x: int, y: int) -> bool")
        native = NativeFunction(name="F", params=params("int"), return_type="bool")
        with pytest.raises(SignatureError) as exc_info:
            shape_of(decl, native, ctx)
        assert "takes 1 parameter" in exc_info.value.message

    def test_default_backed_by_native(self, parse_def, ctx):
        decl = parse_def("def Scale(v: float, f: float = default) -> float")
        native = NativeFunction(
            name="Scale",
            params=[
                NativeParam(type="double"),
                NativeParam(type="double", has_default=True, default_value="1.0"),
            ],
            return_type="double",
        )
        shape = shape_of(decl, native, ctx)
        assert shape.default_suffix_start == 1
        assert shape.inputs[1].has_default
        assert shape.inputs[1].default_value == "1.0"

    def test_default_without_native_default(self, parse_def, ctx):
        decl = parse_def("def Scale(v: float, f: float = default) -> float")
        native = NativeFunction(
            name="Scale", params=params("double", "double"), return_type="double"
        )
        with pytest.raises(SignatureError) as exc_info:
            shape_of(decl, native, ctx)
        assert "no default" in exc_info.value.message

    def test_type_mismatch(self, parse_def, ctx):
        decl = parse_def("def F(x: str) -> bool")
        native = NativeFunction(name="F", params=params("int"), return_type="bool")
        with pytest.raises(SignatureError):
            shape_of(decl, native, ctx)

    def test_compatible_native_needs_qualifier(self, parse_def, ctx):
        decl = parse_def("def Drain(items: list<int>)")
        native = NativeFunction(name="Drain", params=params("std::deque<int>"))
        with pytest.raises(AmbiguousTypeError):
            shape_of(decl, native, ctx)

    def test_qualified_compatible_native(self, parse_def, ctx):
        decl = parse_def("def Drain(items: `std::deque` as list<int>)")
        native = NativeFunction(name="Drain", params=params("std::deque<int>"))
        shape = shape_of(decl, native, ctx)
        assert shape.inputs[0].native_type == "std::deque<int>"

    def test_const_reference_matches_value(self, parse_def, ctx):
        decl = parse_def("def Lookup(key: str) -> bool")
        native = NativeFunction(
            name="Lookup", params=params("const std::string&"), return_type="bool"
        )
        shape = shape_of(decl, native, ctx)
        assert shape.inputs[0].text.accepts == ["bytes", "str"]

    def test_wrapped_type_behind_pointers(self, parse_def, ctx):
        decl = parse_def("def Make() -> Widget")
        for spelling in ("widgets::Widget*", "std::unique_ptr<widgets::Widget>"):
            native = NativeFunction(name="Make", return_type=spelling)
            shape_of(decl, native, ctx)

    def test_unique_ptr_over_raw_pointer(self, parse_def, ctx):
        decl = parse_def("def Peek() -> `std::unique_ptr<widgets::Widget>` as Widget")
        native = NativeFunction(name="Peek", return_type="widgets::Widget*")
        with pytest.raises(SignatureError) as exc_info:
            shape_of(decl, native, ctx)
        assert "raw pointer" in exc_info.value.message

    def _init(self, parse, signature: str) -> ir.DefDecl:
        (block,) = parse(f'from "a.h":\n  class A:\n    def __init__{signature}\n').statements
        return block.statements[0].members[0]

    def test_constructor(self, parse, ctx):
        decl = self._init(parse, "(self, size: int)")
        native = NativeFunction(name="A::A", params=params("int"), is_constructor=True)
        shape = shape_of(decl, native, ctx, ir.ReceiverKind.INSTANCE)
        assert shape.returns is None
        assert len(shape.inputs) == 1

    def test_constructor_against_plain_function(self, parse, ctx):
        decl = self._init(parse, "(self)")
        with pytest.raises(SignatureError):
            shape_of(decl, NativeFunction(name="A::A"), ctx, ir.ReceiverKind.INSTANCE)
