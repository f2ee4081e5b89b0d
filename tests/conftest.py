"""Shared pytest fixtures for clifc tests."""

import textwrap
from collections.abc import Callable
from pathlib import Path

import pytest

from clifc.core import ir
from clifc.core.dsl_parser_impl import parse_idl
from clifc.core.linker import CompileResult, compile_source
from clifc.core.symbols import (
    InMemoryNativeSymbolTable,
    InMemoryScriptingRegistry,
    NativeClass,
    NativeEnum,
    NativeFunction,
    NativeHeaderType,
    NativeParam,
    NativeVariable,
    ScriptingSymbol,
)

UNIT = Path("test.clif")


def build_native_table() -> InMemoryNativeSymbolTable:
    """A small native API: free functions, a widgets namespace and two geometry headers."""
    symbols = [
        # Free functions
        NativeFunction(name="F", params=[NativeParam(name="x", type="int")], return_type="bool"),
        NativeFunction(
            name="Status",
            params=[NativeParam(name="message", type="std::string*")],
            return_type="int",
        ),
        NativeFunction(
            name="Sum",
            params=[
                NativeParam(name="a", type="int", has_default=True, default_value="0"),
                NativeParam(name="b", type="int", has_default=True, default_value="1"),
                NativeParam(name="c", type="int"),
            ],
            return_type="int",
        ),
        NativeFunction(
            name="Scale",
            params=[
                NativeParam(name="value", type="double"),
                NativeParam(name="factor", type="double", has_default=True, default_value="1.0"),
            ],
            return_type="double",
        ),
        NativeFunction(
            name="Lookup",
            params=[
                NativeParam(name="key", type="const std::string&"),
                NativeParam(name="value", type="int*"),
            ],
            return_type="bool",
        ),
        NativeFunction(name="Touch"),
        NativeFunction(
            name="Count",
            params=[NativeParam(name="items", type="std::vector<int>")],
            return_type="int",
        ),
        NativeFunction(
            name="Drain",
            params=[NativeParam(name="items", type="std::deque<int>")],
        ),
        NativeFunction(
            name="Index",
            params=[NativeParam(name="names", type="std::unordered_map<std::string, int>")],
        ),
        NativeFunction(
            name="Distance",
            params=[
                NativeParam(name="a", type="const geo::Point&"),
                NativeParam(name="b", type="const geo::Point&"),
            ],
            return_type="double",
        ),
        NativeFunction(name="Letter", return_type="int"),
        NativeVariable(name="kVersion", type="const int", is_const=True),
        # widgets namespace
        NativeClass(name="widgets::Base"),
        NativeClass(name="widgets::Derived", bases=["widgets::Base"]),
        NativeClass(name="widgets::Factory"),
        NativeFunction(
            name="widgets::Base::Base",
            params=[NativeParam(name="size", type="int")],
            is_constructor=True,
        ),
        NativeFunction(name="widgets::Base::Size", return_type="int"),
        NativeFunction(name="widgets::Base::Area", return_type="double", is_virtual=True),
        NativeFunction(name="widgets::Base::Enter"),
        NativeFunction(name="widgets::Base::Exit"),
        NativeFunction(
            name="widgets::Base::Create",
            params=[NativeParam(name="size", type="int")],
            return_type="std::unique_ptr<widgets::Base>",
            is_static=True,
        ),
        NativeFunction(name="widgets::Base::GetWidth", return_type="int"),
        NativeFunction(
            name="widgets::Base::SetWidth",
            params=[NativeParam(name="width", type="int")],
        ),
        NativeVariable(name="widgets::Base::size_", type="int"),
        NativeVariable(name="widgets::Base::id_", type="const int", is_const=True),
        NativeVariable(name="widgets::Base::width_", type="int"),
        NativeVariable(name="widgets::Base::height_", type="int"),
        NativeFunction(
            name="widgets::Factory::Build",
            params=[NativeParam(name="size", type="int")],
            return_type="std::unique_ptr<widgets::Base>",
            is_static=True,
        ),
        NativeFunction(
            name="widgets::Make",
            params=[NativeParam(name="size", type="int")],
            return_type="std::unique_ptr<widgets::Base>",
        ),
        NativeFunction(
            name="widgets::Adopt",
            params=[NativeParam(name="widget", type="std::unique_ptr<widgets::Base>")],
        ),
        NativeFunction(
            name="widgets::Inspect",
            params=[NativeParam(name="widget", type="const widgets::Base*")],
        ),
        NativeFunction(name="widgets::Peek", return_type="widgets::Base*"),
        NativeEnum(name="widgets::Color", values=["kRed", "kGreen"], scoped=True),
        NativeEnum(name="widgets::Mode", values=["kFast", "kSafe"]),
        NativeVariable(name="widgets::kMaxSize", type="const int", is_const=True),
    ]
    headers = {
        "geo/point.h": [NativeHeaderType(scripting="Point", native="geo::Point")],
        "other/point.h": [NativeHeaderType(scripting="Point", native="other::Point")],
        "widgets/base_clif.h": [NativeHeaderType(scripting="Base", native="widgets::Base")],
    }
    return InMemoryNativeSymbolTable(symbols=symbols, headers=headers)


def build_scripting_registry() -> InMemoryScriptingRegistry:
    return InMemoryScriptingRegistry(
        [
            ScriptingSymbol(path="clifc.postproc.ValueErrorOnFalse", min_arity=1),
            ScriptingSymbol(path="clifc.postproc.chr", min_arity=1, max_arity=1),
        ]
    )


@pytest.fixture
def natives() -> InMemoryNativeSymbolTable:
    """Return the sample native symbol table."""
    return build_native_table()


@pytest.fixture
def registry() -> InMemoryScriptingRegistry:
    """Return the sample scripting registry."""
    return build_scripting_registry()


@pytest.fixture
def parse() -> Callable[[str], ir.DeclarationTree]:
    """Return a helper that parses dedented IDL text."""

    def _parse(text: str) -> ir.DeclarationTree:
        return parse_idl(textwrap.dedent(text), UNIT)

    return _parse


@pytest.fixture
def compile_idl(
    natives: InMemoryNativeSymbolTable, registry: InMemoryScriptingRegistry
) -> Callable[[str], CompileResult]:
    """Return a helper that compiles dedented IDL text against the sample tables."""

    def _compile(text: str) -> CompileResult:
        return compile_source(textwrap.dedent(text), UNIT, natives, registry)

    return _compile
