"""
Stock postprocessors for wrapped native functions.

A postprocessor receives the full output tuple of a native call,
positionally and in declared order, and returns the value the scripting
caller sees. Use them from IDL with::

    from clifc.postproc import ValueErrorOnFalse

    from "store.h":
      def Lookup(key: str) -> (found: bool, value: int): return ValueErrorOnFalse(...)
"""

from __future__ import annotations

import builtins
from typing import Any


def _collapse(values: tuple[Any, ...]) -> Any:
    if not values:
        return None
    if len(values) == 1:
        return values[0]
    return values


def ValueErrorOnFalse(ok: Any, *values: Any) -> Any:  # noqa: N802
    """Raise ValueError when ``ok`` is falsy; otherwise return the remaining outputs."""
    if not ok:
        raise ValueError("native call failed")
    return _collapse(values)


def ValueErrorOnNonZero(code: int, *values: Any) -> Any:  # noqa: N802
    """Raise ValueError carrying ``code`` when it is non-zero (a status-code convention)."""
    if code:
        raise ValueError(f"native call failed with status {code}")
    return _collapse(values)


def chr(code: int) -> str:  # noqa: A001
    """Expose a native ``char`` (returned as an integer) as a one-character string."""
    return builtins.chr(code)


def identity(*values: Any) -> Any:
    """Return the outputs unchanged (a single output unwrapped)."""
    return _collapse(values)
