"""
Compile entry points.

A compiled unit moves through
``initial -> parsing -> importing -> ... -> bound``, or ends ``failed``
with the kind of its first error. Units share no mutable state, so
``compile_units`` can run them on a thread pool.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

from . import ir
from .dsl_parser_impl import parse_idl
from .errors import ClifSyntaxError, ErrorKind
from .linker_impl import CompilationCancelled, diagnostic_from_error, resolve_tree
from .symbols import ImportlibScriptingRegistry, NativeSymbolTable, ScriptingRegistry
from .type_resolver import ResolverContext

logger = logging.getLogger(__name__)

UnitState = ir.ResolutionStage

DEFAULT_WORKERS = 4


@dataclass
class CompileResult:
    """
    Outcome of compiling one unit.

    Attributes:
        unit: Source file of the unit
        state: Final unit state (``bound`` or ``failed``, or the state
            reached when cancelled)
        failed_kind: Kind of the first error, when failed
        tree: Declaration tree, None on syntax error or cancellation
        plan: Binding plan, None on syntax error or cancellation
        diagnostics: Every error found in the unit
        history: States the unit passed through, in order
        cancelled: True when the unit was aborted
    """

    unit: str
    state: UnitState = UnitState.INITIAL
    failed_kind: ErrorKind | None = None
    tree: ir.DeclarationTree | None = None
    plan: ir.UnitPlan | None = None
    diagnostics: list[ir.Diagnostic] = field(default_factory=list)
    history: list[UnitState] = field(default_factory=lambda: [UnitState.INITIAL])
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return self.state == UnitState.BOUND

    def _enter(self, state: UnitState) -> None:
        self.state = state
        self.history.append(state)


def compile_source(
    text: str,
    file: Path,
    natives: NativeSymbolTable,
    scripting: ScriptingRegistry | None = None,
    cancel: threading.Event | None = None,
) -> CompileResult:
    """
    Compile IDL source text into a binding plan.

    Syntax errors fail the whole unit. Resolution errors are collected as
    diagnostics, one per failing declaration.

    Args:
        text: IDL source
        file: Path reported in diagnostics
        natives: Native symbol table
        scripting: Scripting registry (default: importlib-backed)
        cancel: Optional event; when set, the unit is abandoned

    Returns:
        CompileResult for the unit
    """
    if scripting is None:
        scripting = ImportlibScriptingRegistry()

    result = CompileResult(unit=str(file))
    logger.info("Compiling %s", file)

    try:
        if cancel is not None and cancel.is_set():
            raise CompilationCancelled(str(file))

        result._enter(UnitState.PARSING)
        try:
            tree = parse_idl(text, file)
        except ClifSyntaxError as e:
            result.diagnostics.append(diagnostic_from_error(e, str(file)))
            result.failed_kind = ErrorKind.SYNTAX
            result._enter(UnitState.FAILED)
            logger.info("Compiled %s: syntax error", file)
            return result

        result._enter(UnitState.IMPORTING)
        ctx = ResolverContext(natives=natives, scripting=scripting)
        plan = resolve_tree(tree, ctx, cancel)
    except CompilationCancelled:
        logger.info("Cancelled %s", file)
        result.cancelled = True
        return result

    result.tree = tree
    result.plan = plan
    result.diagnostics = list(plan.diagnostics)
    if plan.diagnostics:
        result.failed_kind = plan.diagnostics[0].kind
        result._enter(UnitState.FAILED)
    else:
        result._enter(UnitState.BOUND)

    logger.info(
        "Compiled %s: %d record(s), %d diagnostic(s)",
        file,
        len(plan.records),
        len(plan.diagnostics),
    )
    return result


def compile_file(
    path: Path,
    natives: NativeSymbolTable,
    scripting: ScriptingRegistry | None = None,
    cancel: threading.Event | None = None,
) -> CompileResult:
    """Read and compile one ``.clif`` file."""
    text = path.read_text(encoding="utf-8")
    return compile_source(text, path, natives, scripting, cancel)


def compile_units(
    files: list[Path],
    natives: NativeSymbolTable,
    scripting: ScriptingRegistry | None = None,
    workers: int = DEFAULT_WORKERS,
    cancel: threading.Event | None = None,
) -> list[CompileResult]:
    """
    Compile independent units in parallel.

    Each unit gets its own ResolverContext. The native table and scripting
    registry are only read.

    Returns:
        One CompileResult per file, in input order
    """
    if scripting is None:
        scripting = ImportlibScriptingRegistry()
    if not files:
        return []

    max_workers = max(1, min(workers, len(files)))
    if max_workers == 1:
        return [compile_file(f, natives, scripting, cancel) for f in files]

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [executor.submit(compile_file, f, natives, scripting, cancel) for f in files]
        return [future.result() for future in futures]
