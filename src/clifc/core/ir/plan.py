"""
Binding plan types.

The binding plan is the resolver's output: one frozen record per resolved
declaration, carrying the native calling convention, ownership annotations,
decorator bindings and postprocessor chain. It is handed to an emitter.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from ..errors import ErrorKind

TEXT_ENCODING = "utf-8"


class Ownership(str, Enum):
    """Who releases a heap object after the call."""

    VALUE = "value"  # copied, nothing to release
    BORROWED = "borrowed"  # raw pointer, valid for the call only
    TO_SCRIPTING = "to_scripting"  # unique_ptr handed out
    TO_NATIVE = "to_native"  # unique_ptr handed in


class SlotRole(str, Enum):
    INPUT = "input"
    RETURN = "return"
    OUT_POINTER = "out_pointer"


class ReceiverKind(str, Enum):
    """How a function is bound to its class."""

    NONE = "none"
    INSTANCE = "self"
    CLASS = "cls"
    SCOPE = "scope"  # staticmethods block: class is a lookup scope only


class TextConversion(BaseModel):
    """
    Text handling for a str/bytes slot.

    Inputs declared ``str`` accept encoded bytes or decoded text and are
    transcoded with ``encoding``. Outputs are exposed exactly as declared.
    """

    accepts: list[str] = Field(default_factory=list)
    exposed_as: str | None = None
    encoding: str = TEXT_ENCODING

    model_config = ConfigDict(frozen=True)


class SlotPlan(BaseModel):
    """
    One value crossing the boundary.

    Attributes:
        name: Declared name, None for an unnamed single output
        scripting_type: Scripting spelling (e.g. ``list<int>``)
        native_type: Resolved native type
        role: Input, return value, or trailing out-pointer
        native_index: Position in the native parameter list (None for return)
        ownership: Ownership transfer mode
        has_default: Input may be omitted (native default applies)
        default_value: Native default value as reported by the symbol table
        text: str/bytes handling, if any
    """

    name: str | None = None
    scripting_type: str
    native_type: str
    role: SlotRole
    native_index: int | None = None
    ownership: Ownership = Ownership.VALUE
    has_default: bool = False
    default_value: str | None = None
    text: TextConversion | None = None

    model_config = ConfigDict(frozen=True)


class CallShape(BaseModel):
    """
    Native call shape derived from a def.

    The first declared output is the native return value; further outputs
    become trailing out-pointer parameters in declared order.
    """

    receiver: ReceiverKind = ReceiverKind.NONE
    inputs: list[SlotPlan] = Field(default_factory=list)
    returns: SlotPlan | None = None
    out_params: list[SlotPlan] = Field(default_factory=list)
    default_suffix_start: int | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def native_arity(self) -> int:
        return len(self.inputs) + len(self.out_params)

    @property
    def is_void(self) -> bool:
        return self.returns is None


class NativeDefaultTarget(BaseModel):
    """Dispatch to the native implementation."""

    kind: Literal["native_default"] = "native_default"
    native_name: str

    model_config = ConfigDict(frozen=True)


class ScriptingOverrideTarget(BaseModel):
    """Dispatch back into a scripting-side override."""

    kind: Literal["scripting_override"] = "scripting_override"
    method_name: str

    model_config = ConfigDict(frozen=True)


DispatchTarget = NativeDefaultTarget | ScriptingOverrideTarget


class TrampolineSpec(BaseModel):
    """
    Indirect call target for a virtual member.

    Native call sites hold the trampoline; at runtime it picks the scripting
    override when ``override_flag`` is set on the instance's class, and the
    native default otherwise.
    """

    native_default: NativeDefaultTarget
    scripting_override: ScriptingOverrideTarget
    override_flag: str

    model_config = ConfigDict(frozen=True)

    def select(self, override_present: bool) -> DispatchTarget:
        if override_present:
            return self.scripting_override
        return self.native_default


class ContextRole(str, Enum):
    ENTER = "enter"
    EXIT = "exit"


class DeleterKind(str, Enum):
    FINALIZER = "__del__"
    ITEM = "__delitem__"
    ATTRIBUTE = "__delattr__"


class AccessorBinding(BaseModel):
    """Binds a def to property read or write access of a native member."""

    role: Literal["getter", "setter"]
    member: str
    property_name: str

    model_config = ConfigDict(frozen=True)


class PostprocessorBinding(BaseModel):
    """
    Scripting callable applied to the full output tuple.

    Attributes:
        symbol: Fully qualified scripting path
        arity: Number of positional outputs passed
    """

    symbol: str
    arity: int
    verbatim: bool = True

    model_config = ConfigDict(frozen=True)


class DecoratorBindings(BaseModel):
    """Calling-convention modifiers attached to a function."""

    releases_runtime_lock: bool = False
    trampoline: TrampolineSpec | None = None
    context_role: ContextRole | None = None
    returns_self: bool = False
    discards_result: bool = False
    accessor: AccessorBinding | None = None
    is_classmethod: bool = False
    deleter: DeleterKind | None = None
    postprocessor: PostprocessorBinding | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def is_plain(self) -> bool:
        return self == DecoratorBindings()


class FunctionPlan(BaseModel):
    """Resolved def."""

    kind: Literal["function"] = "function"
    exposed_name: str
    native_name: str
    decl_path: str
    shape: CallShape
    bindings: DecoratorBindings = Field(default_factory=DecoratorBindings)
    is_constructor: bool = False
    line: int | None = None

    model_config = ConfigDict(frozen=True)


class ConstPlan(BaseModel):
    kind: Literal["const"] = "const"
    exposed_name: str
    native_name: str
    decl_path: str
    scripting_type: str
    native_type: str
    line: int | None = None

    model_config = ConfigDict(frozen=True)


class EnumWrapper(str, Enum):
    """Scoped enums become pure enumerations, legacy ones integer-valued."""

    ENUM = "enum"
    INT_ENUM = "int_enum"


class EnumValuePlan(BaseModel):
    native_name: str
    exposed_name: str

    model_config = ConfigDict(frozen=True)


class EnumPlan(BaseModel):
    kind: Literal["enum"] = "enum"
    exposed_name: str
    native_name: str
    decl_path: str
    wrapper: EnumWrapper
    values: list[EnumValuePlan] = Field(default_factory=list)
    line: int | None = None

    model_config = ConfigDict(frozen=True)


class VarPlan(BaseModel):
    """Member variable bound to a field or to getter/setter functions."""

    kind: Literal["var"] = "var"
    exposed_name: str
    native_name: str
    decl_path: str
    scripting_type: str
    native_type: str
    access: Literal["field", "property"] = "field"
    getter: str | None = None
    setter: str | None = None
    readonly: bool = False
    line: int | None = None

    model_config = ConfigDict(frozen=True)


class CapsulePlan(BaseModel):
    kind: Literal["capsule"] = "capsule"
    exposed_name: str
    native_name: str
    decl_path: str
    pointer_type: str
    ownership: Ownership = Ownership.BORROWED
    line: int | None = None

    model_config = ConfigDict(frozen=True)


class StaticMethodsPlan(BaseModel):
    kind: Literal["staticmethods"] = "staticmethods"
    scope: str
    decl_path: str
    functions: list[FunctionPlan] = Field(default_factory=list)
    line: int | None = None

    model_config = ConfigDict(frozen=True)


class ClassPlan(BaseModel):
    """
    Resolved class.

    Attributes:
        base: Exposed name of the single declared parent
        base_native: Native name of that parent
        members: Resolved members (base members verbatim for ``pass``)
        inherited: True when the body was ``pass``
    """

    kind: Literal["class"] = "class"
    exposed_name: str
    native_name: str
    decl_path: str
    base: str | None = None
    base_native: str | None = None
    members: list[DeclPlan] = Field(default_factory=list)
    inherited: bool = False
    line: int | None = None

    model_config = ConfigDict(frozen=True)

    def member(self, exposed_name: str) -> DeclPlan | None:
        return next(
            (m for m in self.members if getattr(m, "exposed_name", None) == exposed_name),
            None,
        )


DeclPlan = (
    FunctionPlan | ConstPlan | EnumPlan | VarPlan | CapsulePlan | StaticMethodsPlan | ClassPlan
)

ClassPlan.model_rebuild()


class ResolutionStage(str, Enum):
    """Per-unit and per-declaration resolution states."""

    INITIAL = "initial"
    PARSING = "parsing"
    IMPORTING = "importing"
    TYPE_RESOLVING = "type_resolving"
    SIGNATURE_MATCHING = "signature_matching"
    DECORATOR_RESOLVING = "decorator_resolving"
    BOUND = "bound"
    FAILED = "failed"


class Diagnostic(BaseModel):
    """Structured error keyed to source location and declaration path."""

    kind: ErrorKind
    message: str
    file: str | None = None
    line: int | None = None
    column: int | None = None
    decl_path: str | None = None

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        location = f"{self.file}:{self.line or 1}:{self.column or 1}"
        where = f" in {self.decl_path}" if self.decl_path else ""
        return f"{location}{where}: {self.kind.value}: {self.message}"


class DeclOutcome(BaseModel):
    """Furthest stage reached by one declaration, and why it stopped."""

    decl_path: str
    stage: ResolutionStage
    failed_at: ResolutionStage | None = None
    error_kind: ErrorKind | None = None

    model_config = ConfigDict(frozen=True)


class ImportPlan(BaseModel):
    """Resolved import with the symbols it made visible."""

    kind: Literal["header", "scripting"]
    path: str
    alias: str | None = None
    symbols: list[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class UnitPlan(BaseModel):
    """Binding plan for one compiled unit."""

    unit: str
    imports: list[ImportPlan] = Field(default_factory=list)
    records: list[DeclPlan] = Field(default_factory=list)
    outcomes: list[DeclOutcome] = Field(default_factory=list)
    diagnostics: list[Diagnostic] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @property
    def ok(self) -> bool:
        return not self.diagnostics

    def record(self, exposed_name: str) -> DeclPlan | None:
        return next(
            (r for r in self.records if getattr(r, "exposed_name", None) == exposed_name),
            None,
        )
