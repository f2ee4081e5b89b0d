"""
Import and namespace resolution.

Builds the symbol environment of a compiled unit from its imports, and
performs scoped native lookups for the declarations of a from-block.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from . import ir
from .errors import ErrorKind, error_at
from .symbols import NativeSymbol, NativeSymbolTable, ScriptingRegistry, ScriptingSymbol

logger = logging.getLogger(__name__)


def _unresolved(message: str, location: ir.SourceLocation | None):
    return error_at(ErrorKind.UNRESOLVED_SYMBOL, message, location)


@dataclass
class ImportEnvironment:
    """
    Names made visible by a unit's imports, in declaration order.

    Attributes:
        header_types: Scripting type name -> native types registered for it
        type_sources: Scripting type name -> headers that contributed it
        scripting: Local name -> scripting symbol
        scripting_paths: Fully qualified path -> scripting symbol
    """

    header_types: dict[str, set[str]] = field(default_factory=dict)
    type_sources: dict[str, list[str]] = field(default_factory=dict)
    scripting: dict[str, ScriptingSymbol] = field(default_factory=dict)
    scripting_paths: dict[str, ScriptingSymbol] = field(default_factory=dict)

    def import_header(self, decl: ir.HeaderImport, natives: NativeSymbolTable) -> ir.ImportPlan:
        """
        Register the types a header declares.

        Raises:
            UnresolvedSymbolError: If the header or a selected name is unknown
        """
        available = natives.header_types(decl.path)
        if available is None:
            raise _unresolved(f'Unknown header "{decl.path}"', decl.location)

        by_name = {t.scripting: t for t in available}
        if decl.names is None:
            selected = list(available)
        else:
            selected = []
            for name in decl.names:
                if name not in by_name:
                    raise _unresolved(f"'{name}' is not declared in \"{decl.path}\"", decl.location)
                selected.append(by_name[name])

        symbols = []
        for header_type in selected:
            visible = header_type.scripting
            if decl.alias:
                visible = f"{decl.alias}.{visible}"
            self.header_types.setdefault(visible, set()).add(header_type.native)
            self.type_sources.setdefault(visible, []).append(decl.path)
            symbols.append(visible)

        logger.debug("Imported %d types from %s", len(symbols), decl.path)
        return ir.ImportPlan(kind="header", path=decl.path, alias=decl.alias, symbols=symbols)

    def import_scripting(
        self, decl: ir.ScriptingImport, registry: ScriptingRegistry
    ) -> ir.ImportPlan:
        """
        Register exactly one scripting symbol.

        Raises:
            UnresolvedSymbolError: For whole-module imports, several names,
                or a path the registry does not know
        """
        if decl.whole_module:
            raise _unresolved(
                f"Importing the whole module '{decl.module}' is not supported; "
                "import exactly one symbol",
                decl.location,
            )
        if len(decl.names) != 1:
            raise _unresolved(
                f"Scripting imports must name exactly one symbol, got {len(decl.names)} "
                f"from '{decl.module}'",
                decl.location,
            )

        name = decl.names[0]
        path = f"{decl.module}.{name}"
        symbol = registry.lookup(path)
        if symbol is None:
            raise _unresolved(f"Unknown scripting symbol '{path}'", decl.location)

        self.scripting[name] = symbol
        self.scripting_paths[path] = symbol
        return ir.ImportPlan(kind="scripting", path=path, symbols=[name])

    def scripting_symbol(self, reference: str) -> ScriptingSymbol | None:
        """Look up an imported symbol by local name or full path."""
        return self.scripting.get(reference) or self.scripting_paths.get(reference)


@dataclass(frozen=True)
class NativeScope:
    """
    Native lookup scope of a from-block.

    Attributes:
        namespace: Qualified namespace restricting lookups, if any
        owner: Native class owning the members being looked up
    """

    namespace: str | None = None
    owner: str | None = None

    def qualify(self, name: str) -> str:
        """Qualified native spelling of ``name`` in this scope."""
        if self.owner:
            return f"{self.owner}::{name}"
        if self.namespace and not name.startswith(f"{self.namespace}::"):
            return f"{self.namespace}::{name.removeprefix('::')}"
        return name.removeprefix("::")

    def nested(self, owner: str) -> NativeScope:
        return NativeScope(namespace=self.namespace, owner=owner)

    def lookup(
        self,
        natives: NativeSymbolTable,
        name: str,
        location: ir.SourceLocation | None = None,
    ) -> NativeSymbol:
        """
        Find ``name`` in this scope.

        Raises:
            UnresolvedSymbolError: If the name is missing, or exists only
                outside the active namespace
        """
        if self.namespace and not self.owner and name.startswith("::"):
            raise _unresolved(
                f"'{name}' is outside namespace '{self.namespace}'", location
            )

        qualified = self.qualify(name)
        symbol = natives.lookup(qualified)
        if symbol is not None:
            return symbol

        if self.namespace and not self.owner and natives.lookup(name) is not None:
            raise _unresolved(
                f"'{name}' is outside namespace '{self.namespace}'", location
            )
        raise _unresolved(f"Unknown native symbol '{qualified}'", location)
