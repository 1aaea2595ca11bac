"""
Source-level DSL validation.

Lints how ``data-test-*`` attributes and comment macros are written,
before any IR is built: unreadable files, markup the parser had to
recover from, unknown actions or expectation types, steps that cannot
target an element and duplicated test ids within a context.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .directive_lexer import invalid_expectation_types, invalid_step_actions
from .errors import ParseError
from .ir import ExpectType, LocationVia, StepAction
from .issues import IssueSeverity, ValidationIssue, ValidationReport, sort_issues
from .scanner import (
    EXPECT_ATTR,
    IDENTIFIER_ATTRS,
    STEP_ATTR,
    ScanResult,
    read_source,
    read_source_file,
)

SUPPORTED_ACTIONS = ", ".join(a.value for a in StepAction)
SUPPORTED_EXPECTATIONS = ", ".join(t.value for t in ExpectType)


@dataclass
class ValidationOptions:
    """Options for source validation."""

    strict: bool = False  # warnings fail the run
    enforce_unique_test_ids_per_context: bool = True


def _issue(
    severity: IssueSeverity,
    rule_id: str,
    message: str,
    file_path: str,
    line: int = 0,
    column: int = 0,
) -> ValidationIssue:
    return ValidationIssue(
        severity=severity,
        message=message,
        rule_id=rule_id,
        file_path=file_path,
        line=line,
        column=column,
    )


def _check_step_directive(
    raw: str, file_path: str, line: int, column: int
) -> list[ValidationIssue]:
    return [
        _issue(
            IssueSeverity.WARNING,
            "invalid-action",
            f'Invalid action "{name}". Supported: {SUPPORTED_ACTIONS}',
            file_path,
            line,
            column,
        )
        for name in invalid_step_actions(raw)
    ]


def _check_expect_directive(
    raw: str, file_path: str, line: int, column: int
) -> list[ValidationIssue]:
    return [
        _issue(
            IssueSeverity.WARNING,
            "invalid-expectation",
            f'Invalid expectation type "{name}". Supported: {SUPPORTED_EXPECTATIONS}',
            file_path,
            line,
            column,
        )
        for name in invalid_expectation_types(raw)
    ]


def _check_elements(result: ScanResult, file_path: str) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    for element in result.document.iter_elements():
        step = element.attribute(STEP_ATTR)
        if step is not None and step.value is not None:
            issues.extend(_check_step_directive(step.value, file_path, step.line, step.column))
            if not any(element.get(name) for name in IDENTIFIER_ATTRS):
                issues.append(
                    _issue(
                        IssueSeverity.WARNING,
                        "step-missing-id",
                        "Step is missing data-test-id. "
                        "Steps require a selector to target elements.",
                        file_path,
                        step.line,
                        step.column,
                    )
                )
        expect = element.attribute(EXPECT_ATTR)
        if expect is not None and expect.value is not None:
            issues.extend(
                _check_expect_directive(expect.value, file_path, expect.line, expect.column)
            )
    return issues


def _check_macros(result: ScanResult, file_path: str) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    for fragment in result.fragments:
        if fragment.location.via != LocationVia.COMMENT:
            continue
        for target in fragment.targets:
            line, column = target.location.line, target.location.column
            if target.step_directive is not None:
                issues.extend(_check_step_directive(target.step_directive, file_path, line, column))
                if target.selector is None:
                    issues.append(
                        _issue(
                            IssueSeverity.WARNING,
                            "step-missing-id",
                            "@steps target is empty. Steps require a selector to target elements.",
                            file_path,
                            line,
                            column,
                        )
                    )
            if target.expect_directive is not None:
                issues.extend(
                    _check_expect_directive(target.expect_directive, file_path, line, column)
                )
    return issues


def _check_duplicate_ids(result: ScanResult, file_path: str) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    seen: dict[tuple[str, str], dict[str, int]] = {}
    for fragment in result.fragments:
        ids = seen.setdefault((fragment.context, fragment.scenario), {})
        for target in fragment.targets:
            if not target.test_id:
                continue
            first_line = ids.get(target.test_id)
            if first_line is None:
                ids[target.test_id] = target.location.line
                continue
            issues.append(
                _issue(
                    IssueSeverity.WARNING,
                    "duplicate-test-id",
                    f'Duplicate data-test-id "{target.test_id}" in context '
                    f'"{fragment.context}" scenario "{fragment.scenario}". '
                    f"First defined at line {first_line}.",
                    file_path,
                    target.location.line,
                    target.location.column,
                )
            )
    return issues


def validate_file(path: Path, options: ValidationOptions | None = None) -> list[ValidationIssue]:
    """
    Validate directive usage in one file.

    Args:
        path: Source file
        options: Validation options (defaults apply when None)

    Returns:
        Issues found in the file, in discovery order
    """
    options = options or ValidationOptions()
    file_path = str(path)

    try:
        text = read_source_file(Path(path))
    except ParseError as e:
        line = e.context.line if e.context else 0
        column = e.context.column if e.context else 0
        return [
            _issue(
                IssueSeverity.ERROR,
                "parse-error",
                f"Failed to parse file: {e.message}",
                file_path,
                line,
                column,
            )
        ]
    except OSError as e:
        return [
            _issue(
                IssueSeverity.ERROR,
                "file-read-error",
                f"Failed to read file: {e}",
                file_path,
            )
        ]

    result = read_source(text, file_path)
    issues = [
        _issue(
            IssueSeverity.WARNING,
            "parse-recovered",
            f"Recovered from malformed markup: {defect.message}",
            file_path,
            defect.line,
            defect.column,
        )
        for defect in result.document.defects
    ]
    issues.extend(_check_elements(result, file_path))
    issues.extend(_check_macros(result, file_path))
    if options.enforce_unique_test_ids_per_context:
        issues.extend(_check_duplicate_ids(result, file_path))
    return issues


def validate_files(
    paths: list[Path], options: ValidationOptions | None = None
) -> ValidationReport:
    """Validate several files and aggregate the issues into one report."""
    options = options or ValidationOptions()
    issues: list[ValidationIssue] = []
    for path in paths:
        issues.extend(validate_file(path, options))
    return ValidationReport(
        issues=sort_issues(issues),
        files_checked=len(paths),
        strict=options.strict,
    )


def format_validation_result(report: ValidationReport, cwd: Path | None = None) -> str:
    """
    Format a report for console output.

    One ``[SEVERITY] path:line: message`` line per issue, sorted by file
    then line, followed by a summary line.
    """
    base = str(cwd or Path.cwd())
    lines = []
    for issue in sort_issues(report.issues):
        severity = issue.severity.value.upper().ljust(5)
        try:
            shown = os.path.relpath(issue.file_path, base)
        except ValueError:
            shown = issue.file_path
        lines.append(f"[{severity}] {shown}:{issue.line}: {issue.message}")

    lines.append("")
    lines.append(
        f"Validation complete: {report.error_count} error(s), "
        f"{report.warning_count} warning(s), {report.info_count} info message(s)"
    )
    return "\n".join(lines)
