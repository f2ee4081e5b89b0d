"""
Declaration types for the IDL declaration tree.

These are the statements that live inside a ``from "header":`` block:
def, const, enum, class, var, staticmethods and capsule.

IDL Syntax:

    from "widgets/widget.h":
      const `kMaxSize` as MAX_SIZE: int
      enum Color with:
        `kRed` as RED
      capsule `Handle` as Handle
      class Widget(Base):
        def __init__(self, size: int)
        @virtual
        def Draw(self) -> bool
        `size_` as size: int
      staticmethods from `Factory`:
        def Make() -> Widget
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from .location import SourceLocation
from .names import Name
from .types import TypeRef

RECEIVER_NAMES = ("self", "cls")


class DecoratorKind(str, Enum):
    """Decorators accepted on a def."""

    ASYNC = "async"
    VIRTUAL = "virtual"
    CLASSMETHOD = "classmethod"
    ENTER = "__enter__"
    EXIT = "__exit__"
    GETTER = "getter"
    SETTER = "setter"


class Decorator(BaseModel):
    """
    A decorator line preceding a def.

    Attributes:
        kind: Decorator kind
        member: Native member name, for getter/setter only
        location: Where the decorator was written
    """

    kind: DecoratorKind
    member: str | None = None
    location: SourceLocation | None = None

    model_config = ConfigDict(frozen=True)


class ParamSpec(BaseModel):
    """
    One input parameter of a def.

    ``self``/``cls`` receivers carry no type; every other parameter has one.

    Attributes:
        name: Parameter name (rename allowed)
        type: Declared type, None only for the receiver
        default: True when written ``= default``
    """

    name: Name
    type: TypeRef | None = None
    default: bool = False
    location: SourceLocation | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def is_receiver(self) -> bool:
        return self.type is None and self.name.native in RECEIVER_NAMES


class OutputSpec(BaseModel):
    """One declared output; unnamed only when it is the sole output."""

    name: str | None = None
    type: TypeRef
    location: SourceLocation | None = None

    model_config = ConfigDict(frozen=True)


class PostprocessorCall(BaseModel):
    """
    ``return target(...)`` suffix of a def.

    Attributes:
        target: Scripting symbol as written (local or dotted name)
        verbatim: True when the argument list is the ``...`` marker
    """

    target: str
    verbatim: bool = True
    location: SourceLocation | None = None

    model_config = ConfigDict(frozen=True)


class DefDecl(BaseModel):
    """A function, method or constructor declaration."""

    kind: Literal["def"] = "def"
    name: Name
    params: list[ParamSpec] = Field(default_factory=list)
    outputs: list[OutputSpec] = Field(default_factory=list)
    postprocessor: PostprocessorCall | None = None
    decorators: list[Decorator] = Field(default_factory=list)
    location: SourceLocation | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def receiver(self) -> ParamSpec | None:
        if self.params and self.params[0].is_receiver:
            return self.params[0]
        return None

    @property
    def inputs(self) -> list[ParamSpec]:
        """Declared inputs without the receiver."""
        return [p for p in self.params if not p.is_receiver]

    def has_decorator(self, kind: DecoratorKind) -> bool:
        return any(d.kind == kind for d in self.decorators)

    def decorator(self, kind: DecoratorKind) -> Decorator | None:
        return next((d for d in self.decorators if d.kind == kind), None)


class ConstDecl(BaseModel):
    """A native constant exposed as a module or class attribute."""

    kind: Literal["const"] = "const"
    name: Name
    type: TypeRef
    location: SourceLocation | None = None

    model_config = ConfigDict(frozen=True)


class EnumValueDecl(BaseModel):
    """A single enumerator, optionally renamed."""

    name: Name
    location: SourceLocation | None = None

    model_config = ConfigDict(frozen=True)


class EnumDecl(BaseModel):
    """
    A native enum.

    Without a ``with:`` block every native enumerator is exposed as-is.
    Whether the wrapper is a pure enumeration or an integer-valued one is
    decided during resolution from the native declaration.
    """

    kind: Literal["enum"] = "enum"
    name: Name
    values: list[EnumValueDecl] = Field(default_factory=list)
    location: SourceLocation | None = None

    model_config = ConfigDict(frozen=True)


class VarDecl(BaseModel):
    """
    A member variable, exposed either as a field or as a property.

    Attributes:
        getter: Native getter function for ``= property(...)``
        setter: Native setter function; None means read-only property
    """

    kind: Literal["var"] = "var"
    name: Name
    type: TypeRef
    getter: str | None = None
    setter: str | None = None
    location: SourceLocation | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def is_property(self) -> bool:
        return self.getter is not None


class CapsuleDecl(BaseModel):
    """An opaque native pointer with no lifetime contract."""

    kind: Literal["capsule"] = "capsule"
    name: Name
    location: SourceLocation | None = None

    model_config = ConfigDict(frozen=True)


class StaticMethodsBlock(BaseModel):
    """Static member functions of ``target`` exposed as plain functions."""

    kind: Literal["staticmethods"] = "staticmethods"
    target: str
    defs: list[DefDecl] = Field(default_factory=list)
    location: SourceLocation | None = None

    model_config = ConfigDict(frozen=True)


class ClassDecl(BaseModel):
    """
    A wrapped native class.

    Attributes:
        name: Class name (rename allowed)
        base: Single declared parent, as a scripting name
        members: Ordered member statements
        passthrough: True for a ``pass`` body: inherit verbatim, add nothing
    """

    kind: Literal["class"] = "class"
    name: Name
    base: str | None = None
    members: list[Member] = Field(default_factory=list)
    passthrough: bool = False
    location: SourceLocation | None = None

    model_config = ConfigDict(frozen=True)


Member = DefDecl | ConstDecl | EnumDecl | VarDecl | ClassDecl | StaticMethodsBlock | CapsuleDecl

ClassDecl.model_rebuild()
