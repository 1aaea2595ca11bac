"""
Scan-validate-generate orchestration.

Configuration is resolved once per invocation and carried in a
``RunContext``; nothing here keeps module-level state. The CLI and watch
mode both drive the core through these functions.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from .core.config import TestweaverConfig
from .core.errors import GenerationError, ValidationError
from .core.fileset import discover_source_files
from .core.ir import Suite, TestIR
from .core.ir_validator import log_validation_issues, validate_ir
from .core.issues import IRValidationResult
from .core.merger import scan_files
from .core.persistence import save_ir
from .generators import Generator, get_generator
from .generators.writer import write_if_changed

logger = logging.getLogger(__name__)


@dataclass
class RunContext:
    """Project root plus the configuration resolved for this run."""

    root: Path
    config: TestweaverConfig
    generated_at: datetime | None = None  # fixed timestamp for reproducible IR files

    @property
    def output_root(self) -> Path:
        return self.root / self.config.output_dir

    @property
    def ir_path(self) -> Path | None:
        if self.config.ir_file is None:
            return None
        return self.root / self.config.ir_file


@dataclass
class CaseFailure:
    generator: str
    case_id: str
    message: str


@dataclass
class GenerationReport:
    """
    Result of one generation pass.

    Attributes:
        written: Files created or rewritten
        unchanged: Files that already held the generated text
        skipped_cases: Case ids withheld because the validator reported errors
        failures: Cases a generator could not render
        validation: The IR validation result that gated this pass
    """

    written: list[Path] = field(default_factory=list)
    unchanged: list[Path] = field(default_factory=list)
    skipped_cases: list[str] = field(default_factory=list)
    failures: list[CaseFailure] = field(default_factory=list)
    validation: IRValidationResult | None = None
    ir_written: bool = False

    @property
    def success(self) -> bool:
        """Whether every case was generated."""
        return not self.failures and not self.skipped_cases

    @property
    def files(self) -> list[Path]:
        return self.written + self.unchanged


def discover_sources(ctx: RunContext) -> list[Path]:
    files = discover_source_files(ctx.root, ctx.config)
    if not files:
        logger.warning(f"No source files found matching: {', '.join(ctx.config.source_globs)}")
    else:
        logger.info(f"Found {len(files)} source file(s)")
    return files


def scan_project(ctx: RunContext) -> TestIR:
    """Scan every configured source file under the project root into one IR."""
    files = discover_sources(ctx)
    ir = scan_files(files, ctx.root, jobs=ctx.config.jobs, generated_at=ctx.generated_at)
    logger.info(f"Found {len(ir.suites)} test suite(s)")
    return ir


def _import_root(output_dir: Path, root: Path) -> str:
    return Path(os.path.relpath(root.resolve(), output_dir.resolve())).as_posix()


def _resolve_generators(ctx: RunContext) -> list[tuple[Generator, Path]]:
    """Instantiate every enabled generator before anything is written."""
    resolved = []
    for gen_config in ctx.config.enabled_generators:
        out_dir = ctx.output_root / gen_config.output_dir
        generator = get_generator(gen_config.name, import_root=_import_root(out_dir, ctx.root))
        resolved.append((generator, out_dir))
    return resolved


def _single_case_suites(ir: TestIR) -> list[Suite]:
    return [
        suite.model_copy(update={"cases": [case]}) for suite in ir.suites for case in suite.cases
    ]


def generate_project(
    ctx: RunContext,
    ir: TestIR,
    validation: IRValidationResult | None = None,
) -> GenerationReport:
    """
    Validate an IR and generate test files for every enabled generator.

    Cases with validator errors are skipped; every other case is generated.

    Raises:
        ValidationError: In strict mode, if the validator reported warnings
        GenerationError: If a configured generator does not exist
    """
    if validation is None:
        validation = validate_ir(ir)
        log_validation_issues(validation)

    if ctx.config.strict and validation.warning_count:
        raise ValidationError(
            f"Strict mode: IR validation reported {validation.warning_count} warning(s)"
        )

    report = GenerationReport(validation=validation)
    generators = _resolve_generators(ctx)
    blocked = validation.blocked_case_ids()

    for single in _single_case_suites(ir):
        case = single.cases[0]
        if (single.id, case.id) in blocked:
            logger.warning(f"Skipping case '{case.id}': it has validation errors")
            report.skipped_cases.append(case.id)
            continue

        for generator, out_dir in generators:
            try:
                content = generator.generate(single)
            except GenerationError as e:
                logger.error(f"Failed to generate {generator.name} test for '{case.id}': {e}")
                report.failures.append(CaseFailure(generator.name, case.id, e.message))
                continue

            path = out_dir / generator.file_name(case)
            if write_if_changed(path, content):
                logger.info(f"Generated: {path}")
                report.written.append(path)
            else:
                report.unchanged.append(path)

    if ctx.ir_path is not None:
        report.ir_written = save_ir(ir, ctx.ir_path)

    return report


def run_pipeline(ctx: RunContext) -> GenerationReport:
    """Scan the project and generate tests from the fresh IR."""
    ir = scan_project(ctx)
    return generate_project(ctx, ir)
