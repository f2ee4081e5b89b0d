"""
Rename construct for IR nodes.

Every named entity in the declaration tree carries a ``Name``: the native
identifier used for symbol lookup, plus the optional alias presented to the
scripting side.

IDL Syntax:

    def `NativeName` as exposed_name(...)
    `kRed` as RED
    Widget                       # native == exposed
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class Name(BaseModel):
    """
    A (native identifier, optional exposed alias) pair.

    Attributes:
        native: Identifier used for native symbol lookup (may contain ``::``)
        alias: Name presented to the scripting side, if renamed
    """

    native: str
    alias: str | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def exposed(self) -> str:
        """Name seen from the scripting side."""
        if self.alias:
            return self.alias
        return self.native.rsplit("::", 1)[-1]

    @property
    def is_renamed(self) -> bool:
        return self.alias is not None and self.alias != self.native

    def __str__(self) -> str:
        if self.alias:
            return f"`{self.native}` as {self.alias}"
        return self.native
