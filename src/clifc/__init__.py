"""
clifc - compiler for the CLIF interface description language.

Reads `.clif` declarations of a native API surface and resolves them into a
binding plan: native calling conventions, ownership transfer, and
decorator and postprocessor bindings, ready for a glue-code emitter.
"""

from __future__ import annotations

from ._version import get_version

# Re-export commonly used types for convenience
from .core import ir
from .core.errors import (
    AmbiguousTypeError,
    ClifError,
    ClifSyntaxError,
    ErrorKind,
    SignatureError,
    UnknownTypeError,
    UnresolvedSymbolError,
)
from .core.linker import CompileResult, compile_file, compile_source, compile_units

__version__ = get_version()

__all__ = [
    "__version__",
    "ir",
    "ClifError",
    "ClifSyntaxError",
    "UnresolvedSymbolError",
    "UnknownTypeError",
    "AmbiguousTypeError",
    "SignatureError",
    "ErrorKind",
    "CompileResult",
    "compile_source",
    "compile_file",
    "compile_units",
]
