"""
Vitest generator.

Emits a component test using Testing Library, user-event and the
jest-dom matchers. The component is mounted from the source file the
case was declared in; the framework picks the Testing Library flavour.
"""

from __future__ import annotations

import re
from pathlib import PurePosixPath

from ..core.ir import (
    VALUE_REQUIRED_ACTIONS,
    VALUE_REQUIRED_EXPECTATIONS,
    Case,
    Expectation,
    ExpectType,
    Framework,
    SourceRef,
    Step,
    StepAction,
    Suite,
)
from .base import NEGATIVE_EXPECTATIONS, Generator, js_string, split_aria, value_text
from .selectors import QueryKind, resolve_selector

_TESTING_LIBRARY = {
    Framework.REACT: "@testing-library/react",
    Framework.VUE: "@testing-library/vue",
    Framework.SVELTE: "@testing-library/svelte",
    Framework.HTML: "@testing-library/dom",
}

_QUERY_SUFFIX = {
    QueryKind.TEST_ID: "TestId",
    QueryKind.ROLE: "Role",
    QueryKind.LABEL_TEXT: "LabelText",
    QueryKind.PLACEHOLDER: "PlaceholderText",
}


def component_name(file_path: str) -> str:
    """PascalCase identifier from a file stem: "login-form.tsx" -> "LoginForm"."""
    words = [w for w in re.split(r"[^0-9A-Za-z]+", PurePosixPath(file_path).stem) if w]
    name = "".join(w[:1].upper() + w[1:] for w in words)
    if not name or name[0].isdigit():
        name = f"Component{name}"
    return name


def _js_identifier(text: str) -> str:
    name = re.sub(r"\W", "_", text)
    return name if name and not name[0].isdigit() else f"_{name}"


def _user_event_text(text: str) -> str:
    # user-event treats { and [ as key descriptors
    return text.replace("{", "{{").replace("[", "[[")


def _key_descriptor(key: str) -> str:
    if key.startswith("{") and key.endswith("}"):
        return key
    return f"{{{key}}}"


class VitestGenerator(Generator):
    """Vitest + Testing Library + user-event."""

    name = "vitest"
    extension = ".test.tsx"
    description = "Vitest + Testing Library + user-event"
    comment_prefix = "//"

    def render(self, suite: Suite, case: Case) -> str:
        self._library_imports: set[str] = {"render", "screen", "configure"}
        self._uses_user = False

        body: list[str] = []
        for step in case.steps:
            body.append("")
            body.append(self.provenance_comment(step))
            body.extend(self._step_lines(step))
        for expectation in case.expectations:
            body.append("")
            body.append(self.provenance_comment(expectation))
            body.extend(self._expectation_lines(expectation))

        source = SourceRef.for_path(case.origin.file_path) if case.origin else None
        header_imports, mount = self._mount(source)
        framework = source.framework if source else Framework.REACT
        if framework == Framework.HTML or source is None:
            self._library_imports.discard("render")

        lines = [self.provenance_header(case)]
        lines.append('import { describe, expect, it } from "vitest";')
        library = ", ".join(sorted(self._library_imports))
        lines.append(f"import {{ {library} }} from {js_string(_TESTING_LIBRARY[framework])};")
        if self._uses_user:
            lines.append('import userEvent from "@testing-library/user-event";')
        lines.append('import "@testing-library/jest-dom/vitest";')
        lines.extend(header_imports)
        lines.append("")
        lines.append(f"configure({{ testIdAttribute: {js_string(self.test_id_attribute)} }});")
        lines.append("")
        lines.append(f"describe({js_string(case.context)}, () => {{")
        lines.append(f"  it({js_string(case.scenario)}, async () => {{")
        if self._uses_user:
            lines.append("    const user = userEvent.setup();")
        lines.extend(f"    {line}" for line in mount)
        if case.route:
            lines.append(f"    // route: {case.route}")
        lines.extend(f"    {line}" if line else "" for line in body)
        lines.append("  });")
        lines.append("});")
        return "\n".join(lines) + "\n"

    # -- mounting ------------------------------------------------------------

    def _mount(self, source: SourceRef | None) -> tuple[list[str], list[str]]:
        """Return (import lines, mount statements) for the component under test."""
        if source is None:
            return [], ["// no source file recorded for this case"]

        path = PurePosixPath(source.file_path)
        if path.is_absolute():
            target = path.as_posix()
        else:
            target = f"{self.import_root}/{path.as_posix()}"

        if source.framework == Framework.HTML:
            return (
                ['import { readFileSync } from "node:fs";'],
                [
                    "document.body.innerHTML = readFileSync("
                    f'new URL({js_string(target)}, import.meta.url), "utf-8");'
                ],
            )

        name = component_name(source.file_path)
        if source.framework == Framework.REACT:
            module = target[: -len(path.suffix)] if path.suffix else target
            return [f"import {name} from {js_string(module)};"], [f"render(<{name} />);"]
        return [f"import {name} from {js_string(target)};"], [f"render({name});"]

    # -- queries -------------------------------------------------------------

    def _query(self, step_or_exp: Step | Expectation, negative: bool = False) -> str:
        if step_or_exp.selector is None:
            return "document.body"
        resolved = resolve_selector(step_or_exp.selector)
        if resolved.kind == QueryKind.CSS:
            query = f"document.querySelector<HTMLElement>({js_string(resolved.value)})"
            return query if negative else f"{query}!"
        args = js_string(resolved.value)
        if resolved.kind == QueryKind.ROLE and resolved.name:
            args += f", {{ name: {js_string(resolved.name)} }}"
        prefix = "query" if negative else "get"
        return f"screen.{prefix}By{_QUERY_SUFFIX[resolved.kind]}({args})"

    # -- steps ---------------------------------------------------------------

    def _step_lines(self, step: Step) -> list[str]:
        lines: list[str] = []
        if step.action == StepAction.CUSTOM:
            return [self.comment(f"custom step: {step.raw_action or value_text(step.value)}")]
        if step.selector is None:
            return [self.comment(f"skipped: {step.action.value} step has no selector")]
        if step.action in VALUE_REQUIRED_ACTIONS and step.value is None:
            return [self.comment(f"skipped: {step.action.value} step has no value")]

        if step.delay_ms:
            lines.append(f"await new Promise((resolve) => setTimeout(resolve, {step.delay_ms}));")

        el = self._query(step)
        value = value_text(step.value)
        action = step.action

        if action == StepAction.CLICK:
            self._uses_user = True
            lines.append(f"await user.click({el});")
        elif action == StepAction.TYPE:
            self._uses_user = True
            lines.append(f"await user.type({el}, {js_string(_user_event_text(value))});")
        elif action == StepAction.CHANGE:
            self._library_imports.add("fireEvent")
            lines.append(f"await fireEvent.change({el}, {{ target: {{ value: {js_string(value)} }} }});")
        elif action == StepAction.FOCUS:
            self._library_imports.add("fireEvent")
            lines.append(f"await fireEvent.focus({el});")
        elif action == StepAction.BLUR:
            self._library_imports.add("fireEvent")
            lines.append(f"await fireEvent.blur({el});")
        elif action == StepAction.KEY:
            self._uses_user = True
            lines.append(f"await user.type({el}, {js_string(_key_descriptor(value))});")
        elif action == StepAction.SELECT:
            self._uses_user = True
            lines.append(f"await user.selectOptions({el}, {js_string(value)});")
        elif action == StepAction.HOVER:
            self._uses_user = True
            lines.append(f"await user.hover({el});")
        elif action == StepAction.CLEAR:
            self._uses_user = True
            lines.append(f"await user.clear({el});")
        elif action == StepAction.WAIT_FOR:
            self._library_imports.add("waitFor")
            query = self._query(step, negative=True)
            lines.append(f"await waitFor(() => expect({query}).toBeInTheDocument());")
        elif action == StepAction.SUBMIT_CONTEXT:
            self._library_imports.add("fireEvent")
            form = f"{_js_identifier(step.id)}_form"
            lines.append(f"const {form} = {el}.closest(\"form\");")
            lines.append(f"await fireEvent.submit({form} ?? {el});")
        return lines

    # -- expectations --------------------------------------------------------

    def _expectation_lines(self, expectation: Expectation) -> list[str]:
        exp_type = expectation.type
        value = value_text(expectation.value)

        if exp_type == ExpectType.CUSTOM:
            return [self.comment(f"custom expectation: {expectation.raw_type or value}")]
        if exp_type in VALUE_REQUIRED_EXPECTATIONS and not value:
            return [self.comment(f"skipped: {exp_type.value} expectation has no value")]
        if exp_type == ExpectType.URL_CONTAINS:
            return [f"expect(window.location.href).toContain({js_string(value)});"]
        if exp_type == ExpectType.URL_EXACT:
            if value.startswith("/"):
                return [f"expect(window.location.pathname).toBe({js_string(value)});"]
            return [f"expect(window.location.href).toBe({js_string(value)});"]

        if expectation.selector is None and exp_type in NEGATIVE_EXPECTATIONS:
            return [self.comment(f"skipped: {exp_type.value} expectation has no selector")]

        if exp_type == ExpectType.NOT_VISIBLE:
            name = _js_identifier(expectation.id)
            return [
                f"const {name} = {self._query(expectation, negative=True)};",
                f"if ({name} !== null) expect({name}).not.toBeVisible();",
            ]
        if exp_type == ExpectType.NOT_EXISTS:
            return [f"expect({self._query(expectation, negative=True)}).not.toBeInTheDocument();"]

        el = self._query(expectation)
        if exp_type == ExpectType.VISIBLE:
            return [f"expect({el}).toBeVisible();"]
        if exp_type == ExpectType.EXISTS:
            return [f"expect({el}).toBeInTheDocument();"]
        if exp_type == ExpectType.TEXT:
            return [f"expect({el}).toHaveTextContent({js_string(value)});"]
        if exp_type == ExpectType.EXACT_TEXT:
            return [f"expect({el}.textContent?.trim()).toBe({js_string(value)});"]
        if exp_type == ExpectType.VALUE:
            return [f"expect({el}).toHaveValue({js_string(value)});"]
        if exp_type == ExpectType.HAS_CLASS:
            return [f"expect({el}).toHaveClass({js_string(value)});"]
        if exp_type == ExpectType.NOT_HAS_CLASS:
            return [f"expect({el}).not.toHaveClass({js_string(value)});"]
        if exp_type == ExpectType.ARIA:
            attribute, expected = split_aria(expectation.value)
            if expected is None:
                return [f"expect({el}).toHaveAttribute({js_string(attribute)});"]
            return [f"expect({el}).toHaveAttribute({js_string(attribute)}, {js_string(expected)});"]
        if exp_type == ExpectType.SNAPSHOT:
            return [f"expect({el}).toMatchSnapshot();"]
        return [self.comment(f"unsupported expectation: {exp_type.value}")]
