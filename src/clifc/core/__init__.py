"""Core clifc functionality: IR, parser, resolvers, compile driver, project configuration."""

from . import ir
from .dsl_parser_impl import parse_idl
from .errors import (
    AmbiguousTypeError,
    ClifError,
    ClifSyntaxError,
    ErrorContext,
    ErrorKind,
    SignatureError,
    UnknownTypeError,
    UnresolvedSymbolError,
)
from .fileset import discover_clif_files
from .linker import CompileResult, UnitState, compile_file, compile_source, compile_units
from .linker_impl import CompilationCancelled, resolve_tree
from .manifest import ProjectManifest, load_manifest
from .parser import parse_units
from .symbols import (
    ImportlibScriptingRegistry,
    InMemoryNativeSymbolTable,
    InMemoryScriptingRegistry,
    NativeSymbolTable,
    ScriptingRegistry,
    ScriptingSymbol,
    load_native_symbols,
    load_scripting_symbols,
)
from .type_resolver import ResolverContext

__all__ = [
    "ir",
    "ClifError",
    "ClifSyntaxError",
    "UnresolvedSymbolError",
    "UnknownTypeError",
    "AmbiguousTypeError",
    "SignatureError",
    "ErrorKind",
    "ErrorContext",
    "parse_idl",
    "parse_units",
    "ResolverContext",
    "resolve_tree",
    "CompilationCancelled",
    "CompileResult",
    "UnitState",
    "compile_source",
    "compile_file",
    "compile_units",
    "ProjectManifest",
    "load_manifest",
    "discover_clif_files",
    "NativeSymbolTable",
    "InMemoryNativeSymbolTable",
    "load_native_symbols",
    "ScriptingRegistry",
    "ScriptingSymbol",
    "InMemoryScriptingRegistry",
    "ImportlibScriptingRegistry",
    "load_scripting_symbols",
]
