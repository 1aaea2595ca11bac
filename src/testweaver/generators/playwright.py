"""
Playwright Test generator (TypeScript).

Emits one ``test.describe`` block per case that navigates to the case's
route (or "/") and drives the page through Playwright locators. Web-first
assertions (``await expect(locator)...``) retry until they pass or time out.
"""

from __future__ import annotations

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
from .base import (
    NEGATIVE_EXPECTATIONS,
    Generator,
    js_string,
    regex_escape,
    split_aria,
    value_text,
)
from .selectors import QueryKind, resolve_selector

_LOCATOR_METHOD = {
    QueryKind.TEST_ID: "getByTestId",
    QueryKind.ROLE: "getByRole",
    QueryKind.LABEL_TEXT: "getByLabel",
    QueryKind.PLACEHOLDER: "getByPlaceholder",
    QueryKind.CSS: "locator",
}

_SIMPLE_STEPS = {
    StepAction.CLICK: "click",
    StepAction.FOCUS: "focus",
    StepAction.BLUR: "blur",
    StepAction.HOVER: "hover",
    StepAction.CLEAR: "clear",
    StepAction.WAIT_FOR: "waitFor",
}

_VALUE_STEPS = {
    StepAction.TYPE: "fill",
    StepAction.CHANGE: "fill",
    StepAction.KEY: "press",
    StepAction.SELECT: "selectOption",
}

_SIMPLE_EXPECTATIONS = {
    ExpectType.VISIBLE: "toBeVisible()",
    ExpectType.NOT_VISIBLE: "toBeHidden()",
    ExpectType.EXISTS: "toBeAttached()",
    ExpectType.NOT_EXISTS: "not.toBeAttached()",
    ExpectType.SNAPSHOT: "toHaveScreenshot()",
}

_VALUE_EXPECTATIONS = {
    ExpectType.TEXT: "toContainText",
    ExpectType.EXACT_TEXT: "toHaveText",
    ExpectType.VALUE: "toHaveValue",
}


def class_regex(name: str) -> str:
    """JS regex literal matching ``name`` as one whole class token."""
    return f"/(^|\\s){regex_escape(name)}(\\s|$)/"


def path_regex(path: str) -> str:
    """JS regex literal matching any absolute URL whose pathname is ``path``."""
    return f"/^[a-z][a-z0-9+.-]*:\\/\\/[^\\/]+{regex_escape(path)}(?:[?#].*)?$/"


class PlaywrightGenerator(Generator):
    """Playwright Test (TypeScript)."""

    name = "playwright"
    extension = ".spec.ts"
    description = "Playwright Test (TypeScript)"
    comment_prefix = "//"

    def render(self, suite: Suite, case: Case) -> str:
        lines = [self.provenance_header(case)]
        lines.append('import { expect, test } from "@playwright/test";')
        lines.append("")
        lines.append(f"test.use({{ testIdAttribute: {js_string(self.test_id_attribute)} }});")
        lines.append("")
        lines.append(f"test.describe({js_string(case.context)}, () => {{")
        lines.append(f"  test({js_string(case.scenario)}, async ({{ page }}) => {{")
        lines.append(f"    await page.goto({js_string(case.route or '/')});")

        for step in case.steps:
            lines.append("")
            lines.append(f"    {self.provenance_comment(step)}")
            lines.extend(f"    {line}" for line in self._step_lines(step))
        for expectation in case.expectations:
            lines.append("")
            lines.append(f"    {self.provenance_comment(expectation)}")
            lines.extend(f"    {line}" for line in self._expectation_lines(expectation))

        lines.append("  });")
        lines.append("});")
        return "\n".join(lines) + "\n"

    def _locator(self, item: Step | Expectation) -> str:
        if item.selector is None:
            return 'page.locator("body")'
        resolved = resolve_selector(item.selector)
        args = js_string(resolved.value)
        if resolved.kind == QueryKind.ROLE and resolved.name:
            args += f", {{ name: {js_string(resolved.name)} }}"
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
            lines.append(f"await page.waitForTimeout({step.delay_ms});")

        locator = self._locator(step)
        if step.action in _SIMPLE_STEPS:
            lines.append(f"await {locator}.{_SIMPLE_STEPS[step.action]}();")
        elif step.action in _VALUE_STEPS:
            method = _VALUE_STEPS[step.action]
            lines.append(f"await {locator}.{method}({js_string(step.value)});")
        elif step.action == StepAction.SUBMIT_CONTEXT:
            lines.append(
                f"await {locator}.evaluate((el) => "
                '(el.closest("form") as HTMLFormElement | null)?.requestSubmit());'
            )
        return lines

    def _expectation_lines(self, expectation: Expectation) -> list[str]:
        exp_type = expectation.type
        value = value_text(expectation.value)

        if exp_type == ExpectType.CUSTOM:
            return [self.comment(f"custom expectation: {expectation.raw_type or value}")]
        if exp_type in VALUE_REQUIRED_EXPECTATIONS and not value:
            return [self.comment(f"skipped: {exp_type.value} expectation has no value")]
        if exp_type == ExpectType.URL_CONTAINS:
            return [f"await expect(page).toHaveURL(/{regex_escape(value)}/);"]
        if exp_type == ExpectType.URL_EXACT:
            if value.startswith("/"):
                return [f"await expect(page).toHaveURL({path_regex(value)});"]
            return [f"await expect(page).toHaveURL({js_string(value)});"]

        if expectation.selector is None and exp_type in NEGATIVE_EXPECTATIONS:
            return [self.comment(f"skipped: {exp_type.value} expectation has no selector")]
        if exp_type == ExpectType.SNAPSHOT and expectation.selector is None:
            return ["await expect(page).toHaveScreenshot();"]

        locator = self._locator(expectation)
        if exp_type in _SIMPLE_EXPECTATIONS:
            return [f"await expect({locator}).{_SIMPLE_EXPECTATIONS[exp_type]};"]
        if exp_type in _VALUE_EXPECTATIONS:
            return [f"await expect({locator}).{_VALUE_EXPECTATIONS[exp_type]}({js_string(value)});"]
        if exp_type == ExpectType.HAS_CLASS:
            return [f"await expect({locator}).toHaveClass({class_regex(value)});"]
        if exp_type == ExpectType.NOT_HAS_CLASS:
            return [f"await expect({locator}).not.toHaveClass({class_regex(value)});"]
        if exp_type == ExpectType.ARIA:
            attribute, expected = split_aria(expectation.value)
            if expected is None:
                return [f"await expect({locator}).toHaveAttribute({js_string(attribute)});"]
            return [
                f"await expect({locator}).toHaveAttribute("
                f"{js_string(attribute)}, {js_string(expected)});"
            ]
        return [self.comment(f"unsupported expectation: {exp_type.value}")]
