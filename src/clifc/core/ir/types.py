"""
Type references for the declaration tree.

A ``TypeRef`` names a scripting type, optionally pinned to an explicit native
type, with nested element types for containers.

Examples:
    int                              -> TypeRef(name="int")
    list<int>                        -> TypeRef(name="list", args=[int])
    `std::deque` as list<int>        -> TypeRef(name="list", native="std::deque", args=[int])
    `std::unique_ptr<Widget>` as Widget
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from .location import SourceLocation


class TypeRef(BaseModel):
    """
    Reference to a scripting type as written in the IDL.

    Attributes:
        name: Scripting type name (dotted for alias-prefixed imports)
        native: Explicit native type qualifier from `` `...` as ``
        args: Element types for containers, in declared order
        location: Where the type was written
    """

    name: str
    native: str | None = None
    args: list[TypeRef] = Field(default_factory=list)
    location: SourceLocation | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def is_qualified(self) -> bool:
        return self.native is not None

    @property
    def spelling(self) -> str:
        """Scripting-side spelling, without native qualifiers."""
        if not self.args:
            return self.name
        return f"{self.name}<{', '.join(arg.spelling for arg in self.args)}>"

    def __str__(self) -> str:
        text = self.name
        if self.args:
            text += "<" + ", ".join(str(arg) for arg in self.args) + ">"
        if self.native:
            text = f"`{self.native}` as {text}"
        return text


TypeRef.model_rebuild()
