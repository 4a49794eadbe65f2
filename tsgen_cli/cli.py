"""Typer-based CLI for tsgen: parse, analyze, transform, format and scaffold TypeScript."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from . import __version__, config_manager
from .analyzer import CodeAnalyzer
from .cli_groups import backup_grp, config_grp
from .diff_engine import DiffEngine, create_diff
from .file_system import list_typescript_files, read_text, write_text
from .models import AnalysisReport, DeclarationTree
from .operations import MalformedOperationError
from .parser import GrammarUnavailableError, parse_file
from .printer import add_license_header, format_source
from .scaffold import GeneratorConfig, list_generators, run_generator, write_files
from .transformer import transform

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    help="🛠  tsgen — structured TypeScript parsing, editing, analysis and scaffolding.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.add_typer(config_grp, name="config")
app.add_typer(backup_grp, name="backup")

SEVERITY_STYLES = {"error": "red", "warning": "yellow", "info": "cyan"}


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"tsgen v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Log debug output to stderr."),
):
    """tsgen: parse, analyze, transform and format TypeScript sources."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _read_source(path: Path) -> str:
    try:
        return read_text(path)
    except (OSError, UnicodeDecodeError) as e:
        err_console.print(f"[red]✗[/red] Cannot read {path}: {e}")
        raise typer.Exit(1)


def _grammar_guard(exc: GrammarUnavailableError) -> None:
    err_console.print(f"[red]✗[/red] {exc}")
    raise typer.Exit(2)


# ===================================================================
# parse
# ===================================================================

def _declaration_rows(tree: DeclarationTree, table: Table) -> None:
    for decl in tree.walk():
        depth = 0 if decl.parent_id is None else 1
        table.add_row(
            decl.kind,
            "  " * depth + decl.name,
            f"{decl.start_line}-{decl.end_line}",
            "✓" if decl.is_exported else "",
            "✓" if decl.doc else "",
        )


@app.command("parse")
def parse_command(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="TypeScript file to parse."),
    as_json: bool = typer.Option(False, "--json", help="Emit the parse result as JSON."),
):
    """List declarations, imports, exports and metrics of a file."""
    try:
        result = parse_file(file)
    except GrammarUnavailableError as e:
        _grammar_guard(e)

    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2))
        return

    table = Table(title=str(file), show_header=True)
    table.add_column("Kind", style="cyan")
    table.add_column("Name", style="bold")
    table.add_column("Lines")
    table.add_column("Exported", justify="center")
    table.add_column("Doc", justify="center")
    _declaration_rows(result.tree, table)
    console.print(table)

    for record in result.imports:
        bindings = list(record.named_imports)
        if record.namespace_import:
            bindings.insert(0, f"* as {record.namespace_import}")
        if record.default_import:
            bindings.insert(0, record.default_import)
        typer.echo(f"import {', '.join(bindings) or '(side effect)'} <- {record.module_specifier}")

    m = result.metrics
    typer.echo(
        f"Metrics: {m.lines_of_code} LOC | {m.function_count} functions | {m.class_count} classes | "
        f"{m.import_count} imports | {m.export_count} exports | complexity {m.cyclomatic_complexity}"
    )


# ===================================================================
# analyze
# ===================================================================

def _print_report(report: AnalysisReport) -> None:
    if report.issues:
        table = Table(title=report.file_path, show_header=True)
        table.add_column("Severity")
        table.add_column("Type", style="cyan")
        table.add_column("Line", justify="right")
        table.add_column("Message")
        for issue in report.issues:
            style = SEVERITY_STYLES.get(issue.severity, "white")
            table.add_row(
                f"[{style}]{issue.severity}[/{style}]",
                issue.type,
                str(issue.line) if issue.line else "",
                issue.message,
            )
        console.print(table)
    typer.echo(f"{report.file_path}: {report.summary}")


@app.command("analyze")
def analyze_command(
    path: Path = typer.Argument(..., exists=True, help="File or directory to analyze."),
    as_json: bool = typer.Option(False, "--json", help="Emit reports as JSON."),
):
    """Report quality issues and metrics for TypeScript files."""
    analyzer = CodeAnalyzer.from_config(config_manager.load_config())
    files = list_typescript_files(path)
    if not files:
        console.print(f"[yellow]No TypeScript files found under {path}[/yellow]")
        raise typer.Exit(1)

    try:
        reports = [analyzer.analyze_source(_read_source(f), str(f)) for f in files]
    except GrammarUnavailableError as e:
        _grammar_guard(e)

    if as_json:
        typer.echo(json.dumps([r.to_dict() for r in reports], indent=2))
        return

    for report in reports:
        _print_report(report)

    if len(reports) > 1:
        total = sum(len(r.issues) for r in reports)
        console.print(Panel.fit(f"{len(reports)} files, {total} issues", title="[bold]Analysis[/bold]"))


# ===================================================================
# transform
# ===================================================================

def _load_operations(ops_file: Path) -> List[Any]:
    try:
        data = json.loads(_read_source(ops_file))
    except json.JSONDecodeError as e:
        err_console.print(f"[red]✗[/red] {ops_file} is not valid JSON: {e}")
        raise typer.Exit(2)
    if isinstance(data, dict) and "operations" in data:
        data = data["operations"]
    if not isinstance(data, list):
        err_console.print("[red]✗[/red] Operations file must contain a JSON list of operations.")
        raise typer.Exit(2)
    return data


@app.command("transform")
def transform_command(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="TypeScript file to edit."),
    ops_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON list of operations."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the result to this path."),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite --output if it exists."),
    in_place: bool = typer.Option(False, "--in-place", "-i", help="Rewrite FILE (a backup is kept)."),
    show_diff: bool = typer.Option(False, "--diff", help="Print a unified diff instead of the result."),
):
    """Apply structural edit operations to a file.

    Exits with status 1 if any operation failed; successful operations are
    still applied.
    """
    original = _read_source(file)
    operations = _load_operations(ops_file)

    try:
        result = transform(original, operations)
    except MalformedOperationError as e:
        err_console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(2)
    except GrammarUnavailableError as e:
        _grammar_guard(e)

    for failure in result.failed_operations:
        err_console.print(f"[red]✗[/red] {failure.operation.type}: {failure.message}")

    if output is not None:
        if not write_text(output, result.source, overwrite=force):
            err_console.print(f"[red]✗[/red] {output} exists; use --force to overwrite.")
            raise typer.Exit(1)
        err_console.print(f"[green]✓[/green] Wrote {output}")
    elif in_place:
        backup_id = DiffEngine().rewrite(file, result.source, description=f"transform {file.name}")
        err_console.print(f"[green]✓[/green] Updated {file} (backup {backup_id})")

    if show_diff:
        typer.echo(create_diff(original, result.source, file.name))
    elif output is None and not in_place:
        typer.echo(result.source, nl=False)

    err_console.print(
        f"{result.applied_operations} applied, {len(result.failed_operations)} failed"
    )
    if not result.success:
        raise typer.Exit(1)


# ===================================================================
# format / license / compare
# ===================================================================

@app.command("format")
def format_command(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="TypeScript file to format."),
    write: bool = typer.Option(False, "--write", "-w", help="Rewrite the file (a backup is kept)."),
    check: bool = typer.Option(False, "--check", help="Exit 1 if the file is not formatted."),
):
    """Print the file in canonical layout."""
    original = _read_source(file)
    try:
        formatted = format_source(original)
    except GrammarUnavailableError as e:
        _grammar_guard(e)

    if check:
        if formatted != original:
            typer.echo(f"{file} would be reformatted")
            raise typer.Exit(1)
        typer.echo(f"{file} is formatted")
        return

    if write:
        if formatted == original:
            typer.echo(f"{file} unchanged")
            return
        backup_id = DiffEngine().rewrite(file, formatted, description=f"format {file.name}")
        typer.echo(f"Formatted {file} (backup {backup_id})")
        return

    typer.echo(formatted, nl=False)


@app.command("license")
def license_command(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="TypeScript file."),
    header: Optional[str] = typer.Option(None, "--header", help="Header text; defaults to [format] license_header."),
    write: bool = typer.Option(False, "--write", "-w", help="Rewrite the file (a backup is kept)."),
):
    """Prepend a license header unless the file already starts with a comment."""
    text = header if header is not None else config_manager.load_config()["format"].get("license_header", "")
    if not text:
        err_console.print("[red]✗[/red] No header given and none configured (tsgen config set-license).")
        raise typer.Exit(1)

    original = _read_source(file)
    updated = add_license_header(original, text.replace("\\n", "\n"))
    if not write:
        typer.echo(updated, nl=False)
        return
    if updated == original:
        typer.echo(f"{file} already starts with a comment")
        return
    backup_id = DiffEngine().rewrite(file, updated, description=f"license {file.name}")
    typer.echo(f"Added header to {file} (backup {backup_id})")


@app.command("compare")
def compare_command(
    old: Path = typer.Argument(..., exists=True, dir_okay=False, help="Old version."),
    new: Path = typer.Argument(..., exists=True, dir_okay=False, help="New version."),
    as_json: bool = typer.Option(False, "--json", help="Emit the diff as JSON."),
):
    """Compare the top-level declarations of two versions of a file."""
    analyzer = CodeAnalyzer.from_config(config_manager.load_config())
    try:
        diff = analyzer.compare_structure(_read_source(old), _read_source(new))
    except GrammarUnavailableError as e:
        _grammar_guard(e)

    if as_json:
        typer.echo(json.dumps(diff.to_dict(), indent=2))
        return
    if diff.is_empty:
        typer.echo("No structural changes.")
        return
    for key in diff.added:
        typer.echo(f"+ {key}")
    for key in diff.removed:
        typer.echo(f"- {key}")
    for key in diff.modified:
        typer.echo(f"~ {key}")


# ===================================================================
# generate
# ===================================================================

@app.command("generators")
def generators_command():
    """List the available scaffolding generators."""
    table = Table(show_header=True)
    table.add_column("Generator", style="cyan", no_wrap=True)
    table.add_column("Description")
    for name, description in list_generators():
        table.add_row(name, description)
    console.print(table)


@app.command("generate")
def generate_command(
    generator: str = typer.Argument(..., help="Generator name (see 'tsgen generators')."),
    name: str = typer.Argument(..., help="Name of the thing to generate, e.g. UserProfile."),
    output_dir: Path = typer.Option(Path("generated"), "--output", "-o", help="Output directory."),
    fields: Optional[str] = typer.Option(None, "--fields", help="Model fields as name:zodType, comma separated; 'name?' marks optional."),
    props: Optional[str] = typer.Option(None, "--props", help="Component props as name:type, comma separated."),
    methods: Optional[str] = typer.Option(None, "--methods", help="HTTP methods for api-route, e.g. GET,POST."),
    functions: Optional[str] = typer.Option(None, "--functions", help="Functions covered by a test file."),
    description: Optional[str] = typer.Option(None, "--description", help="Text added to the file's doc header."),
    with_test: bool = typer.Option(False, "--with-test", help="Also generate a test file."),
    children: bool = typer.Option(False, "--children", help="Component accepts children."),
    use_client: bool = typer.Option(False, "--use-client", help="Add the 'use client' directive."),
    auth: bool = typer.Option(False, "--auth", help="Add an auth placeholder to api routes."),
    timestamps: bool = typer.Option(True, "--timestamps/--no-timestamps", help="Add createdAt/updatedAt to models."),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite existing files."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print the files instead of writing them."),
):
    """Scaffold TypeScript files from the built-in templates."""
    options: Dict[str, Any] = {
        "with_test": with_test,
        "has_children": children,
        "use_client": use_client,
        "has_auth": auth,
        "has_timestamps": timestamps,
    }
    for key, value in (("fields", fields), ("props", props), ("methods", methods),
                       ("functions", functions), ("description", description)):
        if value is not None:
            options[key] = value

    result = run_generator(generator, GeneratorConfig(name=name, output_dir=str(output_dir), options=options))
    if not result.success:
        for error in result.errors:
            err_console.print(f"[red]✗[/red] {error}")
        raise typer.Exit(1)

    if dry_run:
        for generated in result.files:
            typer.echo(f"// {generated.path}")
            typer.echo(generated.content)
        return

    written, skipped = write_files(result.files, overwrite=force)
    for path in written:
        typer.echo(f"Created {path}")
    for path in skipped:
        err_console.print(f"[yellow]•[/yellow] Skipped {path} (exists; use --force)")
    if skipped and not written:
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
