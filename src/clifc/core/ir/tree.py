"""
Top-level IR types: imports, use statements, from-blocks and the tree itself.

IDL Syntax:

    from "base/base_clif.h" import * as base
    from clifc.postproc import ValueErrorOnFalse
    use `absl::Cord` as Cord

    from "widgets/widget.h":
      namespace `widgets`:
        ...
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from .decls import Member
from .location import SourceLocation


class HeaderImport(BaseModel):
    """
    Native-header import.

    Attributes:
        path: Header path, matched verbatim by the native symbol table
        alias: Prefix for the imported names (``import * as alias``)
        names: Selected names; None means every name (``import *``)
    """

    kind: Literal["header_import"] = "header_import"
    path: str
    alias: str | None = None
    names: list[str] | None = None
    location: SourceLocation | None = None

    model_config = ConfigDict(frozen=True)


class ScriptingImport(BaseModel):
    """
    Scripting-side import.

    Only ``from a.b import Symbol`` with exactly one symbol is valid; the
    parser records every form so the resolver can reject the others.
    """

    kind: Literal["scripting_import"] = "scripting_import"
    module: str
    names: list[str] = Field(default_factory=list)
    whole_module: bool = False
    location: SourceLocation | None = None

    model_config = ConfigDict(frozen=True)


class UseDecl(BaseModel):
    """``use `native` as scripting_type``: unit-scoped default native type."""

    kind: Literal["use"] = "use"
    native: str
    scripting: str
    location: SourceLocation | None = None

    model_config = ConfigDict(frozen=True)


BlockStatement = Member | UseDecl


class FromBlock(BaseModel):
    """
    ``from "header":`` block.

    Attributes:
        header: Header being wrapped
        namespace: Qualified namespace restricting native lookups
        statements: Ordered member and use statements
    """

    kind: Literal["from_block"] = "from_block"
    header: str
    namespace: str | None = None
    statements: list[BlockStatement] = Field(default_factory=list)
    location: SourceLocation | None = None

    model_config = ConfigDict(frozen=True)


TopLevel = HeaderImport | ScriptingImport | UseDecl | FromBlock


class DeclarationTree(BaseModel):
    """
    Parsed form of one compiled unit.

    Built once from IDL source and read-only during resolution.
    """

    file: str
    statements: list[TopLevel] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @property
    def from_blocks(self) -> list[FromBlock]:
        return [s for s in self.statements if isinstance(s, FromBlock)]

    @property
    def imports(self) -> list[HeaderImport | ScriptingImport]:
        return [s for s in self.statements if isinstance(s, HeaderImport | ScriptingImport)]
