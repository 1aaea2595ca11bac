"""
IR validation.

Checks a TestIR before generation. Errors block generation of the
affected cases; warnings flag directives that will generate but probably
not as intended (unknown actions, missing values or selectors).
"""

from __future__ import annotations

import logging

from .ir import (
    IR_VERSION,
    SELECTORLESS_EXPECTATIONS,
    VALUE_REQUIRED_ACTIONS,
    VALUE_REQUIRED_EXPECTATIONS,
    Case,
    Expectation,
    LocationRef,
    Step,
    Suite,
    TestIR,
)
from .issues import IRValidationResult, IssueSeverity, ValidationIssue, sort_issues

logger = logging.getLogger(__name__)


class _IssueSink:
    """Collects issues for one validation run, filling in location and owner."""

    def __init__(self) -> None:
        self.issues: list[ValidationIssue] = []

    def add(
        self,
        severity: IssueSeverity,
        rule_id: str,
        message: str,
        where: LocationRef | str | None = None,
        suite_id: str | None = None,
        case_id: str | None = None,
        context: str | None = None,
    ) -> None:
        file_path, line, column = "", 0, 0
        if isinstance(where, LocationRef):
            file_path, line, column = where.file_path, where.line, where.column
        elif isinstance(where, str):
            file_path = where
        self.issues.append(
            ValidationIssue(
                severity=severity,
                message=message,
                rule_id=rule_id,
                file_path=file_path,
                line=line,
                column=column,
                suite_id=suite_id,
                case_id=case_id,
                context=context,
            )
        )


def _suite_location(suite: Suite) -> str | None:
    return suite.source_files[0].file_path if suite.source_files else None


def _validate_step(
    sink: _IssueSink, step: Step, where: LocationRef | str | None, owner: dict[str, str | None]
) -> None:
    where = step.source or where

    if not step.id:
        sink.add(IssueSeverity.ERROR, "step-missing-id", "Step is missing an ID", where, **owner)

    if step.selector is None or not step.selector.value:
        sink.add(
            IssueSeverity.ERROR,
            "step-missing-selector",
            f'Step "{step.id}" is missing a selector',
            where,
            **owner,
        )

    if step.is_unrecognized:
        sink.add(
            IssueSeverity.WARNING,
            "step-unsupported-action",
            f'Step "{step.id}" has unsupported action "{step.raw_action}". '
            "Will be treated as custom.",
            where,
            **owner,
        )

    if step.action in VALUE_REQUIRED_ACTIONS and step.value is None:
        sink.add(
            IssueSeverity.WARNING,
            "step-missing-value",
            f'Step "{step.id}" with action "{step.action.value}" is missing a value',
            where,
            **owner,
        )


def _validate_expectation(
    sink: _IssueSink,
    expectation: Expectation,
    where: LocationRef | str | None,
    owner: dict[str, str | None],
) -> None:
    where = expectation.source or where
    type_name = expectation.type.value

    if not expectation.id:
        sink.add(
            IssueSeverity.ERROR,
            "expectation-missing-id",
            "Expectation is missing an ID",
            where,
            **owner,
        )

    if expectation.is_unrecognized:
        sink.add(
            IssueSeverity.WARNING,
            "expectation-unsupported-type",
            f'Expectation "{expectation.id}" has unsupported type "{expectation.raw_type}". '
            "Will be treated as custom.",
            where,
            **owner,
        )

    if expectation.type not in SELECTORLESS_EXPECTATIONS and (
        expectation.selector is None or not expectation.selector.value
    ):
        sink.add(
            IssueSeverity.WARNING,
            "expectation-missing-selector",
            f'Expectation "{expectation.id}" of type "{type_name}" is missing a selector',
            where,
            **owner,
        )

    if expectation.type in VALUE_REQUIRED_EXPECTATIONS and expectation.value is None:
        sink.add(
            IssueSeverity.WARNING,
            "expectation-missing-value",
            f'Expectation "{expectation.id}" of type "{type_name}" is missing a value',
            where,
            **owner,
        )


def _validate_case(sink: _IssueSink, case: Case, suite: Suite, suite_context: str) -> None:
    where: LocationRef | str | None = case.origin or _suite_location(suite)
    case_context = f'{suite_context} > case "{case.id}"'
    owner: dict[str, str | None] = {
        "suite_id": suite.id,
        "case_id": case.id,
        "context": case_context,
    }

    if not case.id:
        sink.add(
            IssueSeverity.ERROR,
            "case-missing-id",
            "TestCase is missing an ID",
            where,
            suite_id=suite.id,
            case_id=case.id,
            context=suite_context,
        )

    if not case.context:
        sink.add(
            IssueSeverity.ERROR,
            "case-missing-context",
            f'TestCase "{case.id}" is missing a context',
            where,
            **owner,
        )

    if not case.scenario:
        sink.add(
            IssueSeverity.WARNING,
            "case-missing-scenario",
            f'TestCase "{case.id}" is missing a scenario name, using default',
            where,
            **owner,
        )

    if not case.steps and not case.expectations:
        sink.add(
            IssueSeverity.INFO,
            "case-empty",
            f'TestCase "{case.id}" has no steps or expectations',
            where,
            **owner,
        )

    seen_steps: set[str] = set()
    for step in case.steps:
        _validate_step(sink, step, where, owner)
        if step.id and step.id in seen_steps:
            sink.add(
                IssueSeverity.WARNING,
                "step-duplicate-id",
                f'Step id "{step.id}" is repeated in case "{case.id}"',
                step.source or where,
                **owner,
            )
        seen_steps.add(step.id)

    seen_expectations: set[str] = set()
    for expectation in case.expectations:
        _validate_expectation(sink, expectation, where, owner)
        if expectation.id and expectation.id in seen_expectations:
            sink.add(
                IssueSeverity.WARNING,
                "expectation-duplicate-id",
                f'Expectation id "{expectation.id}" is repeated in case "{case.id}"',
                expectation.source or where,
                **owner,
            )
        seen_expectations.add(expectation.id)


def _validate_suite(sink: _IssueSink, suite: Suite) -> None:
    suite_context = f'suite "{suite.id}"'
    where = _suite_location(suite)

    if not suite.id:
        sink.add(
            IssueSeverity.ERROR,
            "suite-missing-id",
            "TestSuite is missing an ID",
            where,
            suite_id=suite.id,
            context="root",
        )

    if not suite.context:
        sink.add(
            IssueSeverity.ERROR,
            "suite-missing-context",
            f'TestSuite "{suite.id}" is missing a context',
            where,
            suite_id=suite.id,
            context=suite_context,
        )

    if not suite.cases:
        sink.add(
            IssueSeverity.WARNING,
            "suite-empty",
            f'TestSuite "{suite.id}" has no test cases',
            where,
            suite_id=suite.id,
            context=suite_context,
        )

    for case in suite.cases:
        _validate_case(sink, case, suite, suite_context)


def validate_ir(ir: TestIR) -> IRValidationResult:
    """
    Validate a complete TestIR.

    Args:
        ir: IR document to check (not modified)

    Returns:
        IRValidationResult with issues sorted by file then line
    """
    sink = _IssueSink()

    if ir.version != IR_VERSION:
        sink.add(
            IssueSeverity.WARNING,
            "ir-version",
            f"IR version {ir.version} may not be fully supported",
            context="root",
        )

    if not ir.suites:
        sink.add(IssueSeverity.INFO, "ir-empty", "IR contains no test suites", context="root")

    for suite in ir.suites:
        _validate_suite(sink, suite)

    return IRValidationResult(
        issues=sort_issues(sink.issues),
        suite_cases={suite.id: [case.id for case in suite.cases] for suite in ir.suites},
    )


def log_validation_issues(result: IRValidationResult) -> None:
    """Log every issue at a level matching its severity, then a summary."""
    levels = {
        IssueSeverity.ERROR: logging.ERROR,
        IssueSeverity.WARNING: logging.WARNING,
        IssueSeverity.INFO: logging.INFO,
    }
    for issue in result.issues:
        context = f" ({issue.context})" if issue.context else ""
        logger.log(levels[issue.severity], f"{issue}{context}")

    if result.error_count:
        logger.error(
            f"Validation failed with {result.error_count} error(s) "
            f"and {result.warning_count} warning(s)"
        )
    elif result.warning_count:
        logger.warning(f"Validation passed with {result.warning_count} warning(s)")
