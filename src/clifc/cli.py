"""
clifc command line interface.

Commands:
  validate  Compile every unit of a project and report diagnostics
  plan      Compile one file and print its binding plan
  tokens    Print the token stream of one file
"""

import logging
import platform
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.tree import Tree

from clifc import ir
from clifc._version import get_version
from clifc.core.errors import ClifSyntaxError
from clifc.core.fileset import discover_clif_files
from clifc.core.lexer import tokenize
from clifc.core.linker import CompileResult, compile_file, compile_units
from clifc.core.manifest import MANIFEST_NAME, load_manifest
from clifc.core.symbols import load_native_symbols, load_scripting_symbols

LOG_LEVEL_ENV = "CLIFC_LOG_LEVEL"

_state: dict[str, str | None] = {"log_level": None}


def version_callback(value: bool) -> None:
    """Display version and environment information."""
    if value:
        typer.echo(f"clifc version {get_version()}")
        typer.echo(f"  Python:   {platform.python_implementation()} {platform.python_version()}")
        typer.echo(f"  Platform: {platform.system()} {platform.release()}")
        raise typer.Exit()


def configure_logging(level: str) -> None:
    """Configure root logging once for the process."""
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise typer.BadParameter(f"Unknown log level: {level}")
    logging.basicConfig(
        level=numeric,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("clifc").setLevel(numeric)


app = typer.Typer(
    help="""clifc - compile CLIF interface descriptions into binding plans

Commands:
  • validate: compile every .clif unit listed by clifc.toml
  • plan: show the binding plan of one unit
  • tokens: show the token stream of one unit
""",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and environment information",
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        envvar=LOG_LEVEL_ENV,
        help="Logging level (DEBUG, INFO, WARNING, ERROR)",
    ),
) -> None:
    """clifc CLI main callback for global options."""
    _state["log_level"] = log_level
    if log_level:
        configure_logging(log_level)


# =============================================================================
# Diagnostics output
# =============================================================================


def _relative(file: str | None, root: Path) -> str:
    if not file:
        return MANIFEST_NAME
    try:
        return str(Path(file).resolve().relative_to(root))
    except ValueError:
        return file


def _print_human_diagnostics(results: list[CompileResult], root: Path) -> None:
    """Print diagnostics in human-readable format."""
    failed = [r for r in results if r.diagnostics]
    if failed:
        typer.echo("Validation failed:\n", err=True)
        for result in failed:
            for diag in result.diagnostics:
                where = _relative(diag.file or result.unit, root)
                if diag.line is not None:
                    where = f"{where}:{diag.line}"
                scope = f" ({diag.decl_path})" if diag.decl_path else ""
                typer.echo(f"ERROR [{diag.kind.value}] {where}{scope}: {diag.message}", err=True)
        return

    bound = sum(len(r.plan.records) for r in results if r.plan is not None)
    typer.echo(f"OK: {len(results)} unit(s) bound, {bound} declaration(s).")


def _print_vscode_diagnostics(results: list[CompileResult], root: Path) -> None:
    """
    Print diagnostics in VS Code format: file:line:col: severity: message
    """
    count = 0
    for result in results:
        for diag in result.diagnostics:
            path = _relative(diag.file or result.unit, root)
            line = diag.line or 1
            col = diag.column or 1
            message = diag.message.replace("\n", " ")
            typer.echo(f"{path}:{line}:{col}: error: [{diag.kind.value}] {message}", err=True)
            count += 1

    if not count:
        typer.echo("::notice: Validation successful")


# =============================================================================
# Commands
# =============================================================================


def validate_command(
    manifest: str = typer.Option(MANIFEST_NAME, "--manifest", "-m", help="Path to clifc.toml"),
    format: str = typer.Option(
        "human", "--format", "-f", help="Output format: 'human' or 'vscode'"
    ),
) -> None:
    """
    Compile every .clif unit of the project and report diagnostics.

    Exits with status 1 if any unit fails.
    """
    manifest_path = Path(manifest).resolve()
    root = manifest_path.parent

    try:
        mf = load_manifest(manifest_path)
        if _state["log_level"] is None:
            configure_logging(mf.logging.level)

        natives = load_native_symbols(root / mf.natives.symbols)
        scripting = None
        if mf.scripting.symbols:
            scripting = load_scripting_symbols(root / mf.scripting.symbols)

        files = discover_clif_files(root, mf)
        if not files:
            typer.echo(f"No .clif files found under {', '.join(mf.source_paths)}", err=True)
            return

        results = compile_units(files, natives, scripting, workers=mf.compile.workers)
    except (FileNotFoundError, ValueError, ValidationError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    if format == "vscode":
        _print_vscode_diagnostics(results, root)
    else:
        _print_human_diagnostics(results, root)

    if any(not r.ok for r in results):
        raise typer.Exit(code=1)


def plan_command(
    file: Path = typer.Argument(..., help="The .clif file to compile"),  # noqa: B008
    symbols: Path = typer.Option(  # noqa: B008
        ..., "--symbols", "-s", help="Native symbol table (JSON)"
    ),
    scripting_symbols: Path | None = typer.Option(  # noqa: B008
        None, "--scripting", help="Scripting registry (JSON); default: import and inspect"
    ),
    format: str = typer.Option("tree", "--format", "-f", help="Output format: 'tree' or 'json'"),
) -> None:
    """
    Compile one unit and print its binding plan.
    """
    try:
        natives = load_native_symbols(symbols)
        scripting = load_scripting_symbols(scripting_symbols) if scripting_symbols else None
        result = compile_file(file, natives, scripting)
    except (FileNotFoundError, ValueError, ValidationError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    if result.plan is not None:
        if format == "json":
            typer.echo(result.plan.model_dump_json(indent=2))
        else:
            Console().print(_plan_tree(result.plan))

    for diag in result.diagnostics:
        location = f"{diag.line}:{diag.column}" if diag.line is not None else "-"
        typer.echo(f"{location}: {diag.kind.value}: {diag.message}", err=True)

    if not result.ok:
        raise typer.Exit(code=1)


def tokens_command(
    file: Path = typer.Argument(..., help="The .clif file to tokenize"),  # noqa: B008
) -> None:
    """
    Print the token stream of one unit.
    """
    try:
        tokens = tokenize(file.read_text(encoding="utf-8"), file)
    except FileNotFoundError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)
    except ClifSyntaxError as e:
        typer.echo(f"Syntax error: {e}", err=True)
        raise typer.Exit(code=1)

    for token in tokens:
        value = f" {token.value!r}" if token.value else ""
        typer.echo(f"{token.line}:{token.column} {token.type.name}{value}")


app.command(name="validate")(validate_command)
app.command(name="plan")(plan_command)
app.command(name="tokens")(tokens_command)


# =============================================================================
# Plan rendering
# =============================================================================


def _plan_tree(plan: ir.UnitPlan) -> Tree:
    tree = Tree(f"[bold]{plan.unit}[/bold]")

    if plan.imports:
        imports = tree.add("[cyan]imports[/cyan]")
        for imp in plan.imports:
            alias = f" as {imp.alias}" if imp.alias else ""
            names = ", ".join(imp.symbols)
            imports.add(f"{imp.kind} {imp.path}{alias}: {names}")

    records = tree.add("[cyan]records[/cyan]")
    for record in plan.records:
        _add_record(records, record)
    return tree


def _add_record(parent: Tree, record: ir.DeclPlan) -> None:
    if isinstance(record, ir.FunctionPlan):
        parent.add(_function_label(record))
    elif isinstance(record, ir.ClassPlan):
        base = f"({record.base})" if record.base else ""
        inherited = " [dim]inherited[/dim]" if record.inherited else ""
        node = parent.add(f"class {record.exposed_name}{base} -> {record.native_name}{inherited}")
        for member in record.members:
            _add_record(node, member)
    elif isinstance(record, ir.StaticMethodsPlan):
        node = parent.add(f"staticmethods {record.scope}")
        for function in record.functions:
            node.add(_function_label(function))
    elif isinstance(record, ir.EnumPlan):
        node = parent.add(
            f"enum {record.exposed_name} -> {record.native_name} ({record.wrapper.value})"
        )
        for value in record.values:
            node.add(f"{value.exposed_name} = {value.native_name}")
    elif isinstance(record, ir.VarPlan):
        access = "readonly " if record.readonly else ""
        parent.add(
            f"{access}{record.access} {record.exposed_name}: {record.scripting_type} "
            f"-> {record.native_type}"
        )
    elif isinstance(record, ir.ConstPlan):
        parent.add(f"const {record.exposed_name}: {record.scripting_type} -> {record.native_type}")
    elif isinstance(record, ir.CapsulePlan):
        parent.add(f"capsule {record.exposed_name} -> {record.pointer_type}")


def _function_label(plan: ir.FunctionPlan) -> str:
    shape = plan.shape
    params = ", ".join(
        f"{slot.name}: {slot.native_type} ({slot.ownership.value})" for slot in shape.inputs
    )
    outputs = [shape.returns] if shape.returns else []
    outputs += shape.out_params
    returns = ", ".join(f"{slot.native_type} ({slot.ownership.value})" for slot in outputs)
    label = f"def {plan.exposed_name}({params}) -> ({returns}) => {plan.native_name}"

    flags = []
    if shape.receiver != ir.ReceiverKind.NONE:
        flags.append(shape.receiver.value)
    bindings = plan.bindings
    if bindings.releases_runtime_lock:
        flags.append("async")
    if bindings.trampoline:
        flags.append("virtual")
    if bindings.context_role:
        flags.append(bindings.context_role.value)
    if bindings.accessor:
        flags.append(f"{bindings.accessor.role}:{bindings.accessor.member}")
    if bindings.deleter:
        flags.append(bindings.deleter.value)
    if bindings.postprocessor:
        flags.append(f"postprocessor:{bindings.postprocessor.symbol}")
    if flags:
        label += f" [dim]{' '.join(flags)}[/dim]"
    return label


def main() -> None:
    app()


if __name__ == "__main__":
    main()
