"""
TestWeaver command line interface.

Commands:
    scan      Scan sources and write the IR (JSON or YAML)
    generate  Scan (or load an IR), validate and generate test files
    validate  Lint directive usage in sources and validate the IR
    watch     Regenerate whenever sources change
"""

import logging
import platform
import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from testweaver.core.config import load_project_config, merge_cli_overrides
from testweaver.core.dsl_validator import (
    ValidationOptions,
    format_validation_result,
    validate_files,
)
from testweaver.core.errors import TestweaverError
from testweaver.core.ir import TestIR
from testweaver.core.ir_validator import validate_ir
from testweaver.core.issues import IRValidationResult, IssueSeverity
from testweaver.core.persistence import dump_ir, ir_to_json, ir_to_yaml, load_ir
from testweaver.generators import GENERATORS
from testweaver.generators.writer import write_if_changed
from testweaver.pipeline import (
    GenerationReport,
    RunContext,
    discover_sources,
    generate_project,
    scan_project,
)
from testweaver.watch import DEFAULT_DEBOUNCE, WatchSession

# summaries go to stderr; stdout is kept for IR and report output
console = Console(stderr=True)

_SEVERITY_STYLE = {
    IssueSeverity.ERROR: "red",
    IssueSeverity.WARNING: "yellow",
    IssueSeverity.INFO: "cyan",
}


def get_version() -> str:
    """Get TestWeaver version from package metadata."""
    from testweaver import __version__

    return __version__


def version_callback(value: bool) -> None:
    """Display version and environment information."""
    if value:
        typer.echo(f"TestWeaver version {get_version()}")
        typer.echo("")
        typer.echo("Environment:")
        typer.echo(
            f"  Python:        {platform.python_implementation()} {platform.python_version()}"
        )
        typer.echo(f"  Platform:      {platform.system()} {platform.release()}")
        typer.echo("")
        typer.echo("Generators:")
        for name, generator_class in GENERATORS.items():
            typer.echo(f"  - {name}: {generator_class.description}")
        raise typer.Exit()


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


app = typer.Typer(
    help="""TestWeaver - generate tests from data-test-* attributes in UI markup

Annotate components with data-test-context / data-test-step /
data-test-expect (or @test-context comment macros), then run
'testweaver generate' to emit Vitest and Playwright tests.
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
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging"),
) -> None:
    """TestWeaver CLI main callback for global options."""
    configure_logging(verbose)


def _load_context(
    root: Path,
    config_path: Path | None,
    *,
    sources: list[str] | None = None,
    output_dir: str | None = None,
    strict: bool | None = None,
    jobs: int | None = None,
    generators: list[str] | None = None,
) -> RunContext:
    root = root.resolve()
    try:
        config = load_project_config(root, config_path)
    except TestweaverError as e:
        typer.echo(f"Error loading config: {e}", err=True)
        raise typer.Exit(code=1)
    config = merge_cli_overrides(
        config,
        source_globs=sources,
        output_dir=output_dir,
        strict=strict,
        jobs=jobs,
        generators=generators,
    )
    if config.config_path is not None:
        typer.echo(f"Using config from: {config.config_path}", err=True)
    return RunContext(root=root, config=config)


def _ir_summary(ir: TestIR) -> Table:
    table = Table(title="Test IR")
    table.add_column("Context", style="cyan")
    table.add_column("Cases", justify="right")
    table.add_column("Steps", justify="right")
    table.add_column("Expectations", justify="right")
    table.add_column("Files")
    for suite in ir.suites:
        table.add_row(
            suite.context,
            str(len(suite.cases)),
            str(sum(len(c.steps) for c in suite.cases)),
            str(sum(len(c.expectations) for c in suite.cases)),
            ", ".join(ref.file_path for ref in suite.source_files),
        )
    return table


def _issues_table(result: IRValidationResult) -> Table:
    table = Table(title="IR validation")
    table.add_column("Severity")
    table.add_column("Location", style="dim")
    table.add_column("Rule")
    table.add_column("Message")
    for issue in result.issues:
        style = _SEVERITY_STYLE[issue.severity]
        table.add_row(
            f"[{style}]{issue.severity.value}[/{style}]",
            issue.location or issue.context or "",
            issue.rule_id,
            issue.message,
        )
    return table


def _generation_summary(report: GenerationReport) -> Table:
    table = Table(title="Generation")
    table.add_column("Result", style="cyan")
    table.add_column("Count", justify="right")
    table.add_row("Written", str(len(report.written)))
    table.add_row("Unchanged", str(len(report.unchanged)))
    table.add_row("Skipped cases", str(len(report.skipped_cases)))
    table.add_row("Failures", str(len(report.failures)))
    return table


@app.command()
def scan(
    root: Path = typer.Option(Path("."), "--root", "-r", help="Project root"),
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to config file"),
    output: Path | None = typer.Option(
        None, "--output", "-o", help="Output file for the IR (default: stdout)"
    ),
    format: str | None = typer.Option(
        None,
        "--format",
        "-f",
        help="Output format: json or yaml (default: from the output suffix, else json)",
    ),
    source: list[str] | None = typer.Option(
        None, "--source", "-s", help="Source glob (repeatable; replaces configured globs)"
    ),
    jobs: int | None = typer.Option(None, "--jobs", "-j", help="Scan files in parallel"),
) -> None:
    """
    Scan source files and build the test IR.

    Examples:
        testweaver scan                        # Print IR JSON to stdout
        testweaver scan -o tests.ir.yaml       # Save as YAML
        testweaver scan -s "src/**/*.vue"      # Scan Vue files only
    """
    if format not in (None, "json", "yaml"):
        typer.echo(f"Unknown format: {format}", err=True)
        raise typer.Exit(code=1)

    ctx = _load_context(root, config, sources=source, jobs=jobs)
    ir = scan_project(ctx)

    if format == "yaml":
        content = ir_to_yaml(ir)
    elif format == "json":
        content = ir_to_json(ir)
    else:
        content = dump_ir(ir, output)

    if output:
        write_if_changed(output, content)
        console.print(_ir_summary(ir))
        typer.echo(f"  → Saved to {output}", err=True)
    else:
        typer.echo(content, nl=False)


@app.command()
def generate(
    root: Path = typer.Option(Path("."), "--root", "-r", help="Project root"),
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to config file"),
    output_dir: str | None = typer.Option(
        None, "--output", "-o", help="Output directory for generated files"
    ),
    ir_file: Path | None = typer.Option(
        None, "--ir", "-i", help="Generate from a saved IR instead of scanning"
    ),
    generator: list[str] | None = typer.Option(
        None, "--generator", "-g", help="Generator to run (repeatable)"
    ),
    strict: bool | None = typer.Option(
        None, "--strict/--no-strict", help="Treat IR validation warnings as fatal"
    ),
    jobs: int | None = typer.Option(None, "--jobs", "-j", help="Scan files in parallel"),
    watch: bool = typer.Option(False, "--watch", "-w", help="Watch for changes and regenerate"),
) -> None:
    """
    Generate test files from source files with test directives.

    Examples:
        testweaver generate                       # Scan, validate, generate
        testweaver generate -g playwright-python  # Only pytest-playwright tests
        testweaver generate --ir tests.ir.json    # From a saved IR
        testweaver generate --strict              # Fail on IR warnings
    """
    ctx = _load_context(
        root,
        config,
        output_dir=output_dir,
        strict=strict,
        jobs=jobs,
        generators=generator,
    )

    if watch:
        _run_watch(ctx, DEFAULT_DEBOUNCE)
        return

    try:
        ir = load_ir(ir_file) if ir_file else scan_project(ctx)
        report = generate_project(ctx, ir)
    except (TestweaverError, OSError) as e:
        typer.echo(f"Generation failed: {e}", err=True)
        raise typer.Exit(code=1)

    if report.validation and report.validation.issues:
        console.print(_issues_table(report.validation))
    console.print(_generation_summary(report))

    for failure in report.failures:
        typer.echo(f"  ERROR [{failure.generator}] {failure.case_id}: {failure.message}", err=True)
    if not report.success:
        raise typer.Exit(code=1)


@app.command()
def validate(
    root: Path = typer.Option(Path("."), "--root", "-r", help="Project root"),
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to config file"),
    ir_file: Path | None = typer.Option(
        None, "--ir", "-i", help="Validate a saved IR instead of a fresh scan"
    ),
    strict: bool | None = typer.Option(
        None, "--strict/--no-strict", help="Treat warnings as errors"
    ),
) -> None:
    """
    Validate directive usage in sources and the resulting IR.

    Exits with code 1 on errors, or on warnings with --strict.
    """
    ctx = _load_context(root, config, strict=strict)
    strict_mode = ctx.config.strict

    files = discover_sources(ctx)
    report = validate_files(files, ValidationOptions(strict=strict_mode))
    typer.echo(format_validation_result(report, cwd=ctx.root))

    try:
        ir = load_ir(ir_file) if ir_file else scan_project(ctx)
    except (TestweaverError, OSError) as e:
        typer.echo(f"Cannot load IR: {e}", err=True)
        raise typer.Exit(code=1)

    ir_result = validate_ir(ir)
    if ir_result.issues:
        console.print(_issues_table(ir_result))

    ir_ok = ir_result.valid and not (strict_mode and ir_result.warning_count)
    if not report.valid or not ir_ok:
        if strict_mode:
            typer.echo("Validation failed with --strict mode (errors or warnings found)", err=True)
        else:
            typer.echo("Validation failed (errors found)", err=True)
        raise typer.Exit(code=1)

    typer.echo("Validation passed", err=True)


def _run_watch(ctx: RunContext, debounce: float) -> None:
    def on_report(report: GenerationReport) -> None:
        console.print(_generation_summary(report))

    session = WatchSession(ctx, debounce=debounce, on_report=on_report)
    typer.echo(f"Watching {', '.join(ctx.config.source_globs)} (Ctrl+C to stop)", err=True)
    session.run()


@app.command()
def watch(
    root: Path = typer.Option(Path("."), "--root", "-r", help="Project root"),
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to config file"),
    output_dir: str | None = typer.Option(
        None, "--output", "-o", help="Output directory for generated files"
    ),
    generator: list[str] | None = typer.Option(
        None, "--generator", "-g", help="Generator to run (repeatable)"
    ),
    debounce: float = typer.Option(
        DEFAULT_DEBOUNCE, "--debounce", help="Seconds to wait for changes to settle"
    ),
) -> None:
    """Regenerate tests whenever source files change."""
    ctx = _load_context(root, config, output_dir=output_dir, generators=generator)
    _run_watch(ctx, debounce)


@app.command("generators")
def list_generators() -> None:
    """List the available test generators."""
    table = Table(title="Generators")
    table.add_column("Name", style="cyan")
    table.add_column("Runner")
    table.add_column("Extension")
    for name, generator_class in GENERATORS.items():
        table.add_row(name, generator_class.description, generator_class.extension)
    Console().print(table)


def main(argv: list[str] | None = None) -> None:
    app(args=argv, standalone_mode=True)


if __name__ == "__main__":
    main(sys.argv[1:])
