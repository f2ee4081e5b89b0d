"""
External symbol sources consulted during resolution.

Two collaborators answer structural questions the IDL cannot:

- ``NativeSymbolTable``: facts about native functions, variables, classes
  and enums, plus the scripting-visible types each header declares. The
  in-memory implementation is loaded from a JSON document produced by a
  native front end.
- ``ScriptingRegistry``: whether a fully qualified scripting path names a
  single callable symbol, and its arity. Backed either by a JSON document
  or by importing the module and inspecting the callable.

Example natives document::

    {
      "headers": {
        "widgets/widget.h": [
          {"scripting": "Widget", "native": "widgets::Widget"}
        ]
      },
      "symbols": [
        {"kind": "function", "name": "widgets::Make",
         "params": [{"name": "size", "type": "int"}], "return_type": "bool"}
      ]
    }
"""

from __future__ import annotations

import importlib
import inspect
import json
import logging
import threading
from pathlib import Path
from typing import Literal, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


# =============================================================================
# Native symbol records
# =============================================================================


class NativeParam(BaseModel):
    """One native function parameter."""

    name: str | None = None
    type: str
    has_default: bool = False
    default_value: str | None = None

    model_config = ConfigDict(frozen=True)


class NativeFunction(BaseModel):
    """
    A native free function, member function or constructor.

    Attributes:
        name: Fully qualified name (``ns::Class::Method``)
        params: Declared parameters in order (out-pointers included)
        return_type: Native return type, ``void`` for none
        is_static: Static member function
        is_virtual: Overridable virtual member function
        is_constructor: Class constructor
    """

    kind: Literal["function"] = "function"
    name: str
    params: list[NativeParam] = Field(default_factory=list)
    return_type: str = "void"
    is_static: bool = False
    is_virtual: bool = False
    is_constructor: bool = False

    model_config = ConfigDict(frozen=True)

    @property
    def is_void(self) -> bool:
        return self.return_type.strip() == "void"


class NativeVariable(BaseModel):
    """A native global, constant or data member."""

    kind: Literal["variable"] = "variable"
    name: str
    type: str
    is_const: bool = False

    model_config = ConfigDict(frozen=True)


class NativeClass(BaseModel):
    """
    A native class or struct.

    Additional native bases beyond the one declared in the IDL stay here and
    are never reflected in the declaration tree.
    """

    kind: Literal["class"] = "class"
    name: str
    bases: list[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class NativeEnum(BaseModel):
    """
    A native enum.

    Attributes:
        values: Enumerator names (unqualified)
        scoped: ``enum class`` when True, legacy integer enum otherwise
    """

    kind: Literal["enum"] = "enum"
    name: str
    values: list[str] = Field(default_factory=list)
    scoped: bool = False

    model_config = ConfigDict(frozen=True)


NativeSymbol = NativeFunction | NativeVariable | NativeClass | NativeEnum


class NativeHeaderType(BaseModel):
    """A scripting-visible type declared by a header (via an earlier wrapper)."""

    scripting: str
    native: str

    model_config = ConfigDict(frozen=True)


class NativeSymbolDocument(BaseModel):
    """On-disk form of an in-memory native symbol table."""

    headers: dict[str, list[NativeHeaderType]] = Field(default_factory=dict)
    symbols: list[NativeSymbol] = Field(default_factory=list)


# =============================================================================
# Native symbol table
# =============================================================================


@runtime_checkable
class NativeSymbolTable(Protocol):
    """Structural facts about native declarations."""

    def lookup(self, qualified_name: str) -> NativeSymbol | None:
        """Return the native declaration named ``qualified_name``, if any."""
        ...

    def header_types(self, path: str) -> list[NativeHeaderType] | None:
        """Types a header makes visible; None when the header is unknown."""
        ...


class InMemoryNativeSymbolTable:
    """
    Native symbol table held in dictionaries.

    Names are normalized by dropping a leading ``::`` so ``::ns::F`` and
    ``ns::F`` refer to the same symbol.
    """

    def __init__(
        self,
        symbols: list[NativeSymbol] | None = None,
        headers: dict[str, list[NativeHeaderType]] | None = None,
    ):
        self._symbols: dict[str, NativeSymbol] = {}
        self._headers: dict[str, list[NativeHeaderType]] = dict(headers or {})
        for symbol in symbols or []:
            self.add(symbol)

    def add(self, symbol: NativeSymbol) -> None:
        """Add a symbol, rejecting duplicates."""
        key = _normalize(symbol.name)
        if key in self._symbols:
            raise ValueError(f"Duplicate native symbol '{symbol.name}'")
        self._symbols[key] = symbol

    def add_header(self, path: str, types: list[NativeHeaderType]) -> None:
        self._headers[path] = list(types)

    def lookup(self, qualified_name: str) -> NativeSymbol | None:
        return self._symbols.get(_normalize(qualified_name))

    def header_types(self, path: str) -> list[NativeHeaderType] | None:
        types = self._headers.get(path)
        if types is None:
            return None
        return list(types)

    def __len__(self) -> int:
        return len(self._symbols)

    @classmethod
    def from_document(cls, document: NativeSymbolDocument) -> InMemoryNativeSymbolTable:
        return cls(symbols=document.symbols, headers=document.headers)


def load_native_symbols(path: Path) -> InMemoryNativeSymbolTable:
    """
    Load a native symbol table from a JSON document.

    Raises:
        FileNotFoundError: If the document doesn't exist
        pydantic.ValidationError: If the document is malformed
    """
    if not path.exists():
        raise FileNotFoundError(f"Native symbol table not found: {path}")

    document = NativeSymbolDocument.model_validate_json(path.read_text(encoding="utf-8"))
    table = InMemoryNativeSymbolTable.from_document(document)
    logger.debug(
        "Loaded %d native symbols and %d headers from %s",
        len(table),
        len(document.headers),
        path,
    )
    return table


def _normalize(name: str) -> str:
    return name.strip().removeprefix("::")


# =============================================================================
# Scripting registry
# =============================================================================


class ScriptingSymbol(BaseModel):
    """
    A single scripting symbol reachable by import.

    Attributes:
        path: Fully qualified path (``package.module.Symbol``)
        min_arity: Required positional arguments
        max_arity: Accepted positional arguments, None when unbounded
    """

    path: str
    min_arity: int = 0
    max_arity: int | None = None

    model_config = ConfigDict(frozen=True)

    def accepts(self, count: int) -> bool:
        if count < self.min_arity:
            return False
        return self.max_arity is None or count <= self.max_arity


@runtime_checkable
class ScriptingRegistry(Protocol):
    """Answers scripting import queries."""

    def lookup(self, path: str) -> ScriptingSymbol | None:
        """Return the symbol at ``path``; None for modules and missing names."""
        ...


class InMemoryScriptingRegistry:
    """Scripting registry backed by a fixed set of symbols."""

    def __init__(self, symbols: list[ScriptingSymbol] | None = None):
        self._symbols = {symbol.path: symbol for symbol in symbols or []}

    def add(self, symbol: ScriptingSymbol) -> None:
        self._symbols[symbol.path] = symbol

    def lookup(self, path: str) -> ScriptingSymbol | None:
        return self._symbols.get(path)


def load_scripting_symbols(path: Path) -> InMemoryScriptingRegistry:
    """
    Load a scripting registry from a JSON list of ScriptingSymbol objects.

    Raises:
        FileNotFoundError: If the document doesn't exist
    """
    if not path.exists():
        raise FileNotFoundError(f"Scripting symbol registry not found: {path}")

    data = json.loads(path.read_text(encoding="utf-8"))
    symbols = [ScriptingSymbol.model_validate(item) for item in data]
    logger.debug("Loaded %d scripting symbols from %s", len(symbols), path)
    return InMemoryScriptingRegistry(symbols)


class ImportlibScriptingRegistry:
    """
    Scripting registry that imports the owning module and inspects the symbol.

    Results are cached per path and shared by the units compiled in
    parallel. Import failures are treated as "not found".
    """

    def __init__(self) -> None:
        self._cache: dict[str, ScriptingSymbol | None] = {}
        self._lock = threading.Lock()

    def lookup(self, path: str) -> ScriptingSymbol | None:
        with self._lock:
            if path not in self._cache:
                self._cache[path] = self._inspect(path)
            return self._cache[path]

    def _inspect(self, path: str) -> ScriptingSymbol | None:
        module_name, _, attr = path.rpartition(".")
        if not module_name:
            return None

        try:
            module = importlib.import_module(module_name)
        except ImportError as e:
            logger.debug("Cannot import %s: %s", module_name, e)
            return None

        target = getattr(module, attr, None)
        if target is None or inspect.ismodule(target) or not callable(target):
            return None

        return _symbol_from_callable(path, target)


def _symbol_from_callable(path: str, target: object) -> ScriptingSymbol | None:
    try:
        signature = inspect.signature(target)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        # Some builtins expose no signature
        return ScriptingSymbol(path=path)

    min_arity = 0
    max_arity: int | None = 0
    for param in signature.parameters.values():
        if param.kind == inspect.Parameter.VAR_POSITIONAL:
            max_arity = None
        elif param.kind in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
        ):
            if max_arity is not None:
                max_arity += 1
            if param.default is inspect.Parameter.empty:
                min_arity += 1
        elif (
            param.kind == inspect.Parameter.KEYWORD_ONLY
            and param.default is inspect.Parameter.empty
        ):
            # Cannot be called with outputs alone
            return None

    return ScriptingSymbol(path=path, min_arity=min_arity, max_arity=max_arity)
