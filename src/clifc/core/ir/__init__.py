"""
clifc Intermediate Representation (IR) types.

Two layers live here: the declaration tree produced by the parser, and the
binding plan produced by resolution. All types are re-exported from this
package.
"""

from .decls import (
    RECEIVER_NAMES,
    CapsuleDecl,
    ClassDecl,
    ConstDecl,
    Decorator,
    DecoratorKind,
    DefDecl,
    EnumDecl,
    EnumValueDecl,
    Member,
    OutputSpec,
    ParamSpec,
    PostprocessorCall,
    StaticMethodsBlock,
    VarDecl,
)
from .location import SourceLocation
from .names import Name
from .plan import (
    TEXT_ENCODING,
    AccessorBinding,
    CallShape,
    CapsulePlan,
    ClassPlan,
    ConstPlan,
    ContextRole,
    DeclOutcome,
    DeclPlan,
    DecoratorBindings,
    DeleterKind,
    Diagnostic,
    DispatchTarget,
    EnumPlan,
    EnumValuePlan,
    EnumWrapper,
    FunctionPlan,
    ImportPlan,
    NativeDefaultTarget,
    Ownership,
    PostprocessorBinding,
    ReceiverKind,
    ResolutionStage,
    ScriptingOverrideTarget,
    SlotPlan,
    SlotRole,
    StaticMethodsPlan,
    TextConversion,
    TrampolineSpec,
    UnitPlan,
    VarPlan,
)
from .tree import (
    BlockStatement,
    DeclarationTree,
    FromBlock,
    HeaderImport,
    ScriptingImport,
    TopLevel,
    UseDecl,
)
from .types import TypeRef

__all__ = [
    # Tree
    "SourceLocation",
    "Name",
    "TypeRef",
    "RECEIVER_NAMES",
    "DecoratorKind",
    "Decorator",
    "ParamSpec",
    "OutputSpec",
    "PostprocessorCall",
    "DefDecl",
    "ConstDecl",
    "EnumValueDecl",
    "EnumDecl",
    "VarDecl",
    "CapsuleDecl",
    "StaticMethodsBlock",
    "ClassDecl",
    "Member",
    "HeaderImport",
    "ScriptingImport",
    "UseDecl",
    "BlockStatement",
    "FromBlock",
    "TopLevel",
    "DeclarationTree",
    # Plan
    "TEXT_ENCODING",
    "Ownership",
    "SlotRole",
    "ReceiverKind",
    "TextConversion",
    "SlotPlan",
    "CallShape",
    "NativeDefaultTarget",
    "ScriptingOverrideTarget",
    "DispatchTarget",
    "TrampolineSpec",
    "ContextRole",
    "DeleterKind",
    "AccessorBinding",
    "PostprocessorBinding",
    "DecoratorBindings",
    "FunctionPlan",
    "ConstPlan",
    "EnumWrapper",
    "EnumValuePlan",
    "EnumPlan",
    "VarPlan",
    "CapsulePlan",
    "StaticMethodsPlan",
    "ClassPlan",
    "DeclPlan",
    "ResolutionStage",
    "Diagnostic",
    "DeclOutcome",
    "ImportPlan",
    "UnitPlan",
]
