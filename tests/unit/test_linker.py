"""Tests for unit compilation: resolution of whole declaration trees."""

import textwrap
import threading
from pathlib import Path

from clifc.core import ir
from clifc.core.errors import ErrorKind
from clifc.core.linker import compile_file, compile_source, compile_units
from clifc.core.symbols import (
    InMemoryNativeSymbolTable,
    NativeClass,
    NativeFunction,
    NativeParam,
)

UNIT = Path("test.clif")

Stage = ir.ResolutionStage


class TestFreeFunctions:
    """Module-level defs."""

    def test_single_return(self, compile_idl):
        result = compile_idl(
            """
            from "a.h":
              def F(x: int) -> bool
            """
        )
        assert result.ok
        assert result.history == [Stage.INITIAL, Stage.PARSING, Stage.IMPORTING, Stage.BOUND]
        (plan,) = result.plan.records
        assert plan.native_name == "F"
        assert [s.native_type for s in plan.shape.inputs] == ["int"]
        assert plan.shape.returns.native_type == "bool"
        assert plan.bindings.is_plain

    def test_second_output_becomes_out_pointer(self, compile_idl):
        result = compile_idl(
            """
            from "a.h":
              def Status() -> (code: int, message: str)
            """
        )
        assert result.ok
        (plan,) = result.plan.records
        assert plan.shape.returns.native_type == "int"
        (out,) = plan.shape.out_params
        assert (out.name, out.native_type, out.native_index) == ("message", "std::string", 0)

    def test_defaults_not_a_suffix(self, compile_idl):
        result = compile_idl(
            """
            from "a.h":
              def Sum(a: int = default, b: int = default, c: int) -> int
            """
        )
        assert result.state == Stage.FAILED
        assert result.failed_kind == ErrorKind.SIGNATURE
        assert result.history == [Stage.INITIAL, Stage.PARSING, Stage.IMPORTING, Stage.FAILED]
        (outcome,) = result.plan.outcomes
        assert outcome.decl_path == "Sum"
        assert outcome.stage == Stage.FAILED
        assert outcome.failed_at == Stage.SIGNATURE_MATCHING
        assert outcome.error_kind == ErrorKind.SIGNATURE
        assert result.plan.records == []

    def test_default_suffix(self, compile_idl):
        result = compile_idl(
            """
            from "a.h":
              def Scale(value: float, factor: float = default) -> float
            """
        )
        assert result.ok
        (plan,) = result.plan.records
        assert plan.shape.default_suffix_start == 1
        assert plan.shape.inputs[1].default_value == "1.0"

    def test_unknown_type(self, compile_idl):
        result = compile_idl(
            """
            from "a.h":
              def F(x: Gadget) -> bool
            """
        )
        assert result.failed_kind == ErrorKind.UNKNOWN_TYPE
        assert result.plan.outcomes[0].failed_at == Stage.TYPE_RESOLVING

    def test_unknown_native(self, compile_idl):
        result = compile_idl(
            """
            from "a.h":
              def Missing()
            """
        )
        assert result.failed_kind == ErrorKind.UNRESOLVED_SYMBOL
        assert result.plan.outcomes[0].failed_at == Stage.IMPORTING

    def test_const(self, compile_idl):
        result = compile_idl(
            """
            from "a.h":
              const `kVersion` as VERSION: int
            """
        )
        assert result.ok
        (plan,) = result.plan.records
        assert isinstance(plan, ir.ConstPlan)
        assert (plan.exposed_name, plan.native_name) == ("VERSION", "kVersion")

    def test_compile_is_deterministic(self, compile_idl):
        text = """
            from "a.h":
              def F(x: int) -> bool
              def Status() -> (code: int, message: str)
            """
        assert compile_idl(text).plan == compile_idl(text).plan


class TestNamespaces:
    """Namespace-restricted lookups."""

    def test_outside_namespace(self, compile_idl):
        result = compile_idl(
            """
            from "widgets/widget.h":
              namespace `widgets`:
                def F(x: int) -> bool
            """
        )
        assert result.failed_kind == ErrorKind.UNRESOLVED_SYMBOL
        assert "outside namespace" in result.diagnostics[0].message

    def test_nested_namespace_is_a_syntax_error(self, compile_idl):
        result = compile_idl(
            """
            from "a.h":
              namespace `a`:
                namespace `b`:
                  def F()
            """
        )
        assert result.failed_kind == ErrorKind.SYNTAX
        assert result.history == [Stage.INITIAL, Stage.PARSING, Stage.FAILED]
        assert result.tree is None
        assert result.plan is None
        (diag,) = result.diagnostics
        assert diag.line == 4


class TestOwnership:
    """Ownership read off native types."""

    def test_unique_ptr_and_raw_pointers(self, compile_idl):
        result = compile_idl(
            """
            from "widgets/base_clif.h" import *
            from "widgets/widget.h":
              namespace `widgets`:
                def Make(size: int) -> Base
                def Adopt(widget: Base)
                def Inspect(widget: Base)
            """
        )
        assert result.ok, result.diagnostics
        make, adopt, inspect = result.plan.records
        assert make.shape.returns.ownership == ir.Ownership.TO_SCRIPTING
        assert adopt.shape.inputs[0].ownership == ir.Ownership.TO_NATIVE
        assert inspect.shape.inputs[0].ownership == ir.Ownership.BORROWED

    def test_unique_ptr_over_raw_pointer(self, compile_idl):
        result = compile_idl(
            """
            from "widgets/base_clif.h" import *
            from "widgets/widget.h":
              namespace `widgets`:
                def Peek() -> `std::unique_ptr<widgets::Base>` as Base
            """
        )
        assert result.failed_kind == ErrorKind.SIGNATURE
        assert "raw pointer" in result.diagnostics[0].message


class TestImports:
    """Header and scripting imports."""

    def test_ambiguous_header_types(self, compile_idl):
        result = compile_idl(
            """
            from "geo/point.h" import *
            from "other/point.h" import *
            from "geo/distance.h":
              def Distance(a: Point, b: Point) -> float
            """
        )
        assert result.failed_kind == ErrorKind.AMBIGUOUS_TYPE
        assert result.diagnostics[0].decl_path == "Distance"

    def test_alias_prefix_disambiguates(self, compile_idl):
        result = compile_idl(
            """
            from "geo/point.h" import *
            from "other/point.h" import * as other
            from "geo/distance.h":
              def Distance(a: Point, b: Point) -> float
            """
        )
        assert result.ok, result.diagnostics
        assert [i.symbols for i in result.plan.imports] == [["Point"], ["other.Point"]]
        (plan,) = result.plan.records
        assert plan.shape.inputs[0].native_type == "const geo::Point&"

    def test_whole_module_import(self, compile_idl):
        result = compile_idl("import clifc.postproc\n")
        assert result.failed_kind == ErrorKind.UNRESOLVED_SYMBOL
        assert result.diagnostics[0].decl_path == "import clifc.postproc"

    def test_unknown_header(self, compile_idl):
        result = compile_idl('from "missing.h" import *\n')
        assert result.failed_kind == ErrorKind.UNRESOLVED_SYMBOL
        assert result.diagnostics[0].decl_path == 'import "missing.h"'

    def test_resolution_continues_after_failure(self, compile_idl):
        result = compile_idl(
            """
            from "missing.h" import *
            from "a.h":
              def F(x: int) -> bool
            """
        )
        assert result.state == Stage.FAILED
        assert [r.exposed_name for r in result.plan.records] == ["F"]
        assert [o.stage for o in result.plan.outcomes] == [Stage.FAILED, Stage.BOUND]


class TestClasses:
    """Classes, inheritance and members."""

    def test_pass_inherits_members(self, compile_idl):
        result = compile_idl(
            """
            from "widgets/widget.h":
              namespace `widgets`:
                class Base:
                  def __init__(self, size: int)
                  def Size(self) -> int
                class Derived(Base):
                  pass
            """
        )
        assert result.ok, result.diagnostics
        base, derived = result.plan.records
        assert derived.inherited
        assert derived.base == "Base"
        assert derived.base_native == "widgets::Base"
        assert derived.members == base.members
        init = base.member("__init__")
        assert init.is_constructor
        assert init.native_name == "widgets::Base::Base"

    def test_base_declared_after(self, compile_idl):
        result = compile_idl(
            """
            from "widgets/widget.h":
              namespace `widgets`:
                class Derived(Base):
                  pass
                class Base:
                  def Size(self) -> int
            """
        )
        assert result.failed_kind == ErrorKind.UNRESOLVED_SYMBOL
        (diag,) = result.diagnostics
        assert diag.decl_path == "Derived"
        assert "must be declared before" in diag.message
        assert [r.exposed_name for r in result.plan.records] == ["Base"]

    def test_nested_class_base_and_type(self, registry):
        natives = InMemoryNativeSymbolTable(
            symbols=[
                NativeClass(name="widgets::Base"),
                NativeClass(name="widgets::Base::A"),
                NativeClass(name="widgets::Base::B", bases=["widgets::Base::A"]),
                NativeFunction(name="widgets::Base::A::Size", return_type="int"),
                NativeFunction(
                    name="widgets::Base::Use",
                    params=[NativeParam(name="a", type="const widgets::Base::A&")],
                ),
            ]
        )
        text = textwrap.dedent(
            """
            from "widgets/widget.h":
              namespace `widgets`:
                class Base:
                  class A:
                    def Size(self) -> int
                  class B(A):
                    pass
                  def Use(self, a: A)
            """
        )
        result = compile_source(text, UNIT, natives, registry)
        assert result.ok, result.diagnostics
        (base,) = result.plan.records
        a, b = base.member("A"), base.member("B")
        assert b.base_native == "widgets::Base::A"
        assert b.members == a.members
        use = base.member("Use")
        assert use.shape.inputs[0].native_type == "const widgets::Base::A&"

    def test_base_from_header(self, compile_idl):
        result = compile_idl(
            """
            from "widgets/base_clif.h" import *
            from "widgets/widget.h":
              namespace `widgets`:
                class Derived(Base):
                  pass
            """
        )
        assert result.ok, result.diagnostics
        (derived,) = result.plan.records
        assert derived.base_native == "widgets::Base"
        assert derived.members == []

    def test_failing_member_keeps_class(self, compile_idl):
        result = compile_idl(
            """
            from "widgets/widget.h":
              namespace `widgets`:
                class Base:
                  def Size(self) -> str
                  def Area(self) -> float
            """
        )
        assert result.failed_kind == ErrorKind.SIGNATURE
        (diag,) = result.diagnostics
        assert diag.decl_path == "Base.Size"
        (base,) = result.plan.records
        assert [m.exposed_name for m in base.members] == ["Area"]
        stages = {o.decl_path: o.stage for o in result.plan.outcomes}
        assert stages == {"Base.Size": Stage.FAILED, "Base.Area": Stage.BOUND, "Base": Stage.BOUND}

    def test_member_variables(self, compile_idl):
        result = compile_idl(
            """
            from "widgets/widget.h":
              namespace `widgets`:
                class Base:
                  `size_` as size: int
                  `id_` as id: int
                  width: int = property(`GetWidth`, `SetWidth`)
            """
        )
        assert result.ok, result.diagnostics
        (base,) = result.plan.records
        size, ident, width = base.members
        assert (size.access, size.readonly) == ("field", False)
        assert size.native_name == "widgets::Base::size_"
        assert ident.readonly
        assert width.access == "property"
        assert width.getter == "widgets::Base::GetWidth"
        assert width.setter == "widgets::Base::SetWidth"
        assert not width.readonly

    def test_read_only_property(self, compile_idl):
        result = compile_idl(
            """
            from "widgets/widget.h":
              namespace `widgets`:
                class Base:
                  width: int = property(`GetWidth`)
            """
        )
        assert result.ok, result.diagnostics
        (width,) = result.plan.records[0].members
        assert width.readonly

    def test_staticmethods(self, compile_idl):
        result = compile_idl(
            """
            from "widgets/base_clif.h" import *
            from "widgets/widget.h":
              namespace `widgets`:
                staticmethods from `Factory`:
                  def Build(size: int) -> Base
            """
        )
        assert result.ok, result.diagnostics
        (block,) = result.plan.records
        assert block.scope == "widgets::Factory"
        assert block.decl_path == "staticmethods(Factory)"
        (build,) = block.functions
        assert build.decl_path == "staticmethods(Factory).Build"
        assert build.shape.receiver == ir.ReceiverKind.SCOPE

    def test_capsule(self, compile_idl):
        result = compile_idl(
            """
            from "widgets/widget.h":
              namespace `widgets`:
                capsule `Handle` as Handle
            """
        )
        assert result.ok
        (capsule,) = result.plan.records
        assert capsule.pointer_type == "widgets::Handle*"
        assert capsule.ownership == ir.Ownership.BORROWED


class TestEnums:
    """Enum wrapping and renames."""

    def test_wrappers_and_renames(self, compile_idl):
        result = compile_idl(
            """
            from "widgets/widget.h":
              namespace `widgets`:
                enum Color
                enum Mode with:
                  `kFast` as FAST
            """
        )
        assert result.ok, result.diagnostics
        color, mode = result.plan.records
        assert color.wrapper == ir.EnumWrapper.ENUM
        assert [v.exposed_name for v in color.values] == ["kRed", "kGreen"]
        assert mode.wrapper == ir.EnumWrapper.INT_ENUM
        assert [v.exposed_name for v in mode.values] == ["FAST", "kSafe"]

    def test_unknown_enumerator(self, compile_idl):
        result = compile_idl(
            """
            from "widgets/widget.h":
              namespace `widgets`:
                enum Color with:
                  `kBlue` as BLUE
            """
        )
        assert result.failed_kind == ErrorKind.UNRESOLVED_SYMBOL
        assert "kBlue" in result.diagnostics[0].message


class TestDriving:
    """Cancellation, files and parallel units."""

    def test_cancelled_before_start(self, natives, registry):
        cancel = threading.Event()
        cancel.set()
        text = 'from "a.h":\n  def F(x: int) -> bool\n'
        result = compile_source(text, UNIT, natives, registry, cancel)
        assert result.cancelled
        assert result.plan is None
        assert not result.ok

    def test_cancelled_during_resolution(self, natives, registry):
        cancel = threading.Event()

        class CancellingTable:
            def lookup(self, qualified_name):
                cancel.set()
                return natives.lookup(qualified_name)

            def header_types(self, path):
                return natives.header_types(path)

        text = 'from "a.h":\n  def F(x: int) -> bool\n  def Touch()\n'
        result = compile_source(text, UNIT, CancellingTable(), registry, cancel)
        assert cancel.is_set()
        assert result.cancelled
        assert result.plan is None
        assert result.tree is None
        assert not result.ok

    def test_compile_file(self, tmp_path: Path, natives, registry):
        path = tmp_path / "f.clif"
        path.write_text('from "a.h":\n  def F(x: int) -> bool\n')
        result = compile_file(path, natives, registry)
        assert result.ok
        assert result.unit == str(path)
        assert result.plan.unit == str(path)

    def test_compile_units_keeps_input_order(self, tmp_path: Path, natives, registry):
        files = []
        for index in range(6):
            path = tmp_path / f"unit{index}.clif"
            if index == 3:
                path.write_text('from "a.h":\n  def F(x: int) -> bool bool\n')
            else:
                path.write_text('from "a.h":\n  def F(x: int) -> bool\n')
            files.append(path)

        results = compile_units(files, natives, registry, workers=4)
        assert [r.unit for r in results] == [str(f) for f in files]
        assert [r.ok for r in results] == [True, True, True, False, True, True]
        assert results[3].failed_kind == ErrorKind.SYNTAX

    def test_compile_units_empty(self, natives, registry):
        assert compile_units([], natives, registry) == []

    def test_diagnostic_location(self, compile_idl):
        result = compile_idl(
            """
            from "a.h":
              def F(x: int) -> bool
              def Touch() -> int
            """
        )
        (diag,) = result.diagnostics
        assert diag.file == str(UNIT)
        assert diag.line == 4
        assert diag.decl_path == "Touch"
