"""
Validation issue and report types shared by the IR validator and the
source DSL validator.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class IssueSeverity(str, Enum):
    """Severity levels for validation issues."""

    ERROR = "error"  # blocks generation of the affected case
    WARNING = "warning"  # generated, but probably not what was meant
    INFO = "info"


@dataclass
class ValidationIssue:
    """A single validation issue."""

    severity: IssueSeverity
    message: str
    rule_id: str
    file_path: str = ""
    line: int = 0
    column: int = 0
    suite_id: str | None = None
    case_id: str | None = None
    context: str | None = None  # e.g. 'suite "login" > case "login__default"'

    @property
    def location(self) -> str:
        if not self.file_path:
            return ""
        if self.line:
            return f"{self.file_path}:{self.line}"
        return self.file_path

    def __str__(self) -> str:
        loc = f"{self.location}: " if self.location else ""
        return f"[{self.severity.value.upper()}] {loc}{self.message}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "severity": self.severity.value,
            "filePath": self.file_path,
            "line": self.line,
            "column": self.column,
            "message": self.message,
            "ruleId": self.rule_id,
            "suiteId": self.suite_id,
            "caseId": self.case_id,
            "context": self.context,
        }


def sort_issues(issues: list[ValidationIssue]) -> list[ValidationIssue]:
    """Sort by file then line; issues at the same place keep their order."""
    return sorted(issues, key=lambda i: (i.file_path, i.line))


@dataclass
class _IssueCounts:
    issues: list[ValidationIssue] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return sum(1 for i in self.issues if i.severity == IssueSeverity.ERROR)

    @property
    def warning_count(self) -> int:
        return sum(1 for i in self.issues if i.severity == IssueSeverity.WARNING)

    @property
    def info_count(self) -> int:
        return sum(1 for i in self.issues if i.severity == IssueSeverity.INFO)

    @property
    def errors(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == IssueSeverity.ERROR]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == IssueSeverity.WARNING]


@dataclass
class IRValidationResult(_IssueCounts):
    """Outcome of validating an IR document."""

    # case ids per suite id, as seen by the validator
    suite_cases: dict[str, list[str]] = field(default_factory=dict)

    @property
    def valid(self) -> bool:
        """True if no errors (warnings and infos are OK)."""
        return self.error_count == 0

    def blocked_case_ids(self) -> set[tuple[str | None, str]]:
        """
        ``(suite_id, case_id)`` pairs of cases that must not be generated.

        A case is blocked by an error on itself or on one of its steps or
        expectations, or by a suite-level error on its suite. Case ids are
        only unique within a suite, so they are paired with the suite id.
        """
        blocked: set[tuple[str | None, str]] = set()
        for issue in self.errors:
            if issue.case_id is not None:
                blocked.add((issue.suite_id, issue.case_id))
        for suite_id in self.blocked_suite_ids():
            blocked.update((suite_id, case_id) for case_id in self.suite_cases.get(suite_id, []))
        return blocked

    def blocked_suite_ids(self) -> set[str]:
        """Ids of suites with a suite-level error."""
        return {
            issue.suite_id
            for issue in self.errors
            if issue.case_id is None and issue.suite_id is not None
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "errorCount": self.error_count,
            "warningCount": self.warning_count,
            "infoCount": self.info_count,
            "issues": [i.to_dict() for i in self.issues],
        }


@dataclass
class ValidationReport(_IssueCounts):
    """Outcome of linting directive usage in source files."""

    files_checked: int = 0
    strict: bool = False

    @property
    def valid(self) -> bool:
        """True if no errors; in strict mode warnings fail too."""
        if self.error_count:
            return False
        return not (self.strict and self.warning_count)
