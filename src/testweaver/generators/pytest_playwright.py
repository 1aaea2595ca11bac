"""
pytest-playwright generator (Python).

Emits a pytest module with one test function per case using the sync
Playwright API. Relative routes resolve against ``--base-url``.
"""

from __future__ import annotations

import re

from ..core.ir import (
    VALUE_REQUIRED_ACTIONS,
    VALUE_REQUIRED_EXPECTATIONS,
    Case,
    Expectation,
    ExpectType,
    Step,
    StepAction,
    Suite,
)
from .base import NEGATIVE_EXPECTATIONS, Generator, js_string, split_aria, value_text
from .selectors import QueryKind, resolve_selector

_LOCATOR_METHOD = {
    QueryKind.TEST_ID: "get_by_test_id",
    QueryKind.ROLE: "get_by_role",
    QueryKind.LABEL_TEXT: "get_by_label",
    QueryKind.PLACEHOLDER: "get_by_placeholder",
    QueryKind.CSS: "locator",
}

_SIMPLE_STEPS = {
    StepAction.CLICK: "click",
    StepAction.FOCUS: "focus",
    StepAction.BLUR: "blur",
    StepAction.HOVER: "hover",
    StepAction.CLEAR: "clear",
    StepAction.WAIT_FOR: "wait_for",
}

_VALUE_STEPS = {
    StepAction.TYPE: "fill",
    StepAction.CHANGE: "fill",
    StepAction.KEY: "press",
    StepAction.SELECT: "select_option",
}

_SIMPLE_EXPECTATIONS = {
    ExpectType.VISIBLE: "to_be_visible()",
    ExpectType.NOT_VISIBLE: "to_be_hidden()",
    ExpectType.EXISTS: "to_be_attached()",
    ExpectType.NOT_EXISTS: "not_to_be_attached()",
}

_VALUE_EXPECTATIONS = {
    ExpectType.TEXT: "to_contain_text",
    ExpectType.EXACT_TEXT: "to_have_text",
    ExpectType.VALUE: "to_have_value",
}


def _sanitize_test_name(name: str) -> str:
    """Convert a case id to a valid Python test function name."""
    name = re.sub(r"[^a-zA-Z0-9_]", "_", name)
    if not name.startswith("test_"):
        name = f"test_{name}"
    return name


def _compiled(pattern: str) -> str:
    return f"re.compile({pattern!r})"


class PytestPlaywrightGenerator(Generator):
    """pytest-playwright (Python)."""

    name = "playwright-python"
    extension = ".test.py"
    description = "pytest-playwright (Python)"
    comment_prefix = "#"

    def render(self, suite: Suite, case: Case) -> str:
        self._uses_re = False

        body: list[str] = [f"page.goto({js_string(case.route or '/')})"]
        for step in case.steps:
            body.append("")
            body.append(self.provenance_comment(step))
            body.extend(self._step_lines(step))
        for expectation in case.expectations:
            body.append("")
            body.append(self.provenance_comment(expectation))
            body.extend(self._expectation_lines(expectation, case))

        lines = [self.provenance_header(case)]
        lines.append(js_string(f"Generated by testweaver for {case.context} / {case.scenario}."))
        lines.append("")
        lines.append("from __future__ import annotations")
        lines.append("")
        if self._uses_re:
            lines.append("import re")
            lines.append("")
        lines.append("import pytest")
        lines.append("from playwright.sync_api import Page, Playwright, expect")
        lines.append("")
        lines.append("")
        lines.append('@pytest.fixture(scope="session", autouse=True)')
        lines.append("def _test_id_attribute(playwright: Playwright) -> None:")
        lines.append(
            f"    playwright.selectors.set_test_id_attribute({js_string(self.test_id_attribute)})"
        )
        lines.append("")
        lines.append("")
        lines.append(f"def {_sanitize_test_name(case.id)}(page: Page) -> None:")
        lines.append(f"    {js_string(f'{case.context}: {case.scenario}')}")
        lines.extend(f"    {line}" if line else "" for line in body)
        return "\n".join(lines) + "\n"

    def _locator(self, item: Step | Expectation) -> str:
        if item.selector is None:
            return 'page.locator("body")'
        resolved = resolve_selector(item.selector)
        args = js_string(resolved.value)
        if resolved.kind == QueryKind.ROLE and resolved.name:
            args += f", name={js_string(resolved.name)}"
        return f"page.{_LOCATOR_METHOD[resolved.kind]}({args})"

    def _step_lines(self, step: Step) -> list[str]:
        if step.action == StepAction.CUSTOM:
            return [self.comment(f"custom step: {step.raw_action or value_text(step.value)}")]
        if step.selector is None:
            return [self.comment(f"skipped: {step.action.value} step has no selector")]
        if step.action in VALUE_REQUIRED_ACTIONS and step.value is None:
            return [self.comment(f"skipped: {step.action.value} step has no value")]

        lines: list[str] = []
        if step.delay_ms:
            lines.append(f"page.wait_for_timeout({step.delay_ms})")

        locator = self._locator(step)
        if step.action in _SIMPLE_STEPS:
            lines.append(f"{locator}.{_SIMPLE_STEPS[step.action]}()")
        elif step.action in _VALUE_STEPS:
            lines.append(f"{locator}.{_VALUE_STEPS[step.action]}({js_string(step.value)})")
        elif step.action == StepAction.SUBMIT_CONTEXT:
            lines.append(f"{locator}.evaluate(\"el => el.closest('form')?.requestSubmit()\")")
        return lines

    def _expectation_lines(self, expectation: Expectation, case: Case) -> list[str]:
        exp_type = expectation.type
        value = value_text(expectation.value)

        if exp_type == ExpectType.CUSTOM:
            return [self.comment(f"custom expectation: {expectation.raw_type or value}")]
        if exp_type in VALUE_REQUIRED_EXPECTATIONS and not value:
            return [self.comment(f"skipped: {exp_type.value} expectation has no value")]
        if exp_type == ExpectType.URL_CONTAINS:
            self._uses_re = True
            return [f"expect(page).to_have_url({_compiled(re.escape(value))})"]
        if exp_type == ExpectType.URL_EXACT:
            if value.startswith("/"):
                self._uses_re = True
                pattern = rf"^[a-z][a-z0-9+.-]*://[^/]+{re.escape(value)}(?:[?#].*)?$"
                return [f"expect(page).to_have_url({_compiled(pattern)})"]
            return [f"expect(page).to_have_url({js_string(value)})"]

        if expectation.selector is None and exp_type in NEGATIVE_EXPECTATIONS:
            return [self.comment(f"skipped: {exp_type.value} expectation has no selector")]
        if exp_type == ExpectType.SNAPSHOT:
            path = f"__snapshots__/{case.id}.{expectation.id}.png"
            if expectation.selector is None:
                return [f"page.screenshot(path={js_string(path)})"]
            return [f"{self._locator(expectation)}.screenshot(path={js_string(path)})"]

        locator = self._locator(expectation)
        if exp_type in _SIMPLE_EXPECTATIONS:
            return [f"expect({locator}).{_SIMPLE_EXPECTATIONS[exp_type]}"]
        if exp_type in _VALUE_EXPECTATIONS:
            return [f"expect({locator}).{_VALUE_EXPECTATIONS[exp_type]}({js_string(value)})"]
        if exp_type in (ExpectType.HAS_CLASS, ExpectType.NOT_HAS_CLASS):
            self._uses_re = True
            pattern = _compiled(rf"(^|\s){re.escape(value)}(\s|$)")
            method = "to_have_class" if exp_type == ExpectType.HAS_CLASS else "not_to_have_class"
            return [f"expect({locator}).{method}({pattern})"]
        if exp_type == ExpectType.ARIA:
            attribute, expected = split_aria(expectation.value)
            if expected is None:
                self._uses_re = True
                return [f"expect({locator}).to_have_attribute({js_string(attribute)}, {_compiled('.*')})"]
            return [
                f"expect({locator}).to_have_attribute({js_string(attribute)}, {js_string(expected)})"
            ]
        return [self.comment(f"unsupported expectation: {exp_type.value}")]
