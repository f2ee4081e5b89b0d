"""Tests for native symbol tables and scripting registries."""

import json
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest
from pydantic import ValidationError

from clifc.core.symbols import (
    ImportlibScriptingRegistry,
    InMemoryNativeSymbolTable,
    NativeClass,
    NativeEnum,
    NativeFunction,
    NativeSymbolTable,
    ScriptingSymbol,
    load_native_symbols,
    load_scripting_symbols,
)


class TestInMemoryNativeSymbolTable:
    """Dictionary-backed table."""

    def test_lookup_ignores_leading_global_qualifier(self, natives):
        assert natives.lookup("::F") is natives.lookup("F")

    def test_duplicate_symbol(self):
        table = InMemoryNativeSymbolTable([NativeClass(name="A")])
        with pytest.raises(ValueError):
            table.add(NativeClass(name="::A"))

    def test_unknown_header(self, natives):
        assert natives.header_types("missing.h") is None
        assert natives.header_types("geo/point.h")[0].native == "geo::Point"

    def test_satisfies_protocol(self, natives):
        assert isinstance(natives, NativeSymbolTable)

    def test_void_function(self):
        assert NativeFunction(name="F").is_void
        assert not NativeFunction(name="F", return_type="int").is_void


class TestLoadNativeSymbols:
    """JSON documents."""

    def test_load(self, tmp_path: Path):
        path = tmp_path / "natives.json"
        path.write_text(
            json.dumps(
                {
                    "headers": {"w.h": [{"scripting": "Widget", "native": "w::Widget"}]},
                    "symbols": [
                        {"kind": "class", "name": "w::Widget"},
                        {"kind": "enum", "name": "w::Color", "values": ["kRed"], "scoped": True},
                        {
                            "kind": "function",
                            "name": "w::Make",
                            "params": [{"name": "size", "type": "int"}],
                            "return_type": "std::unique_ptr<w::Widget>",
                        },
                        {"kind": "variable", "name": "w::kMax", "type": "int", "is_const": True},
                    ],
                }
            )
        )
        table = load_native_symbols(path)
        assert len(table) == 4
        assert isinstance(table.lookup("w::Color"), NativeEnum)
        make = table.lookup("w::Make")
        assert isinstance(make, NativeFunction)
        assert make.params[0].type == "int"
        assert table.header_types("w.h")[0].scripting == "Widget"

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            load_native_symbols(tmp_path / "natives.json")

    def test_malformed_document(self, tmp_path: Path):
        path = tmp_path / "natives.json"
        path.write_text(json.dumps({"symbols": [{"kind": "function"}]}))
        with pytest.raises(ValidationError):
            load_native_symbols(path)


class TestScriptingRegistries:
    """In-memory, JSON and importlib registries."""

    def test_arity(self):
        symbol = ScriptingSymbol(path="m.f", min_arity=1, max_arity=2)
        assert not symbol.accepts(0)
        assert symbol.accepts(2)
        assert not symbol.accepts(3)
        assert ScriptingSymbol(path="m.g").accepts(10)

    def test_load_json(self, tmp_path: Path):
        path = tmp_path / "scripting.json"
        path.write_text(json.dumps([{"path": "m.f", "min_arity": 1, "max_arity": 1}]))
        registry = load_scripting_symbols(path)
        assert registry.lookup("m.f").max_arity == 1
        assert registry.lookup("m.g") is None

    def test_importlib_inspects_signature(self):
        registry = ImportlibScriptingRegistry()
        symbol = registry.lookup("clifc.postproc.ValueErrorOnFalse")
        assert symbol is not None
        assert symbol.min_arity == 1
        assert symbol.max_arity is None

        chr_symbol = registry.lookup("clifc.postproc.chr")
        assert (chr_symbol.min_arity, chr_symbol.max_arity) == (1, 1)

    def test_importlib_rejects_modules_and_missing(self):
        registry = ImportlibScriptingRegistry()
        assert registry.lookup("clifc.postproc") is None
        assert registry.lookup("clifc.postproc.Missing") is None
        assert registry.lookup("no_such_module_xyz.f") is None

    def test_importlib_concurrent_lookups_inspect_once(self, monkeypatch):
        registry = ImportlibScriptingRegistry()
        inspect_symbol = registry._inspect
        calls = []
        calls_lock = threading.Lock()

        def slow_inspect(path):
            with calls_lock:
                calls.append(path)
            time.sleep(0.01)
            return inspect_symbol(path)

        monkeypatch.setattr(registry, "_inspect", slow_inspect)
        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(registry.lookup, ["clifc.postproc.chr"] * 8))

        assert calls == ["clifc.postproc.chr"]
        assert all(result is results[0] for result in results)
        assert results[0].max_arity == 1
