"""Tests for the source scanner."""

from pathlib import Path

import pytest

from testweaver.core.errors import ParseError
from testweaver.core.ir import (
    CaseType,
    ExpectType,
    Framework,
    Language,
    LocationVia,
    Selector,
    SelectorType,
    StepAction,
)
from testweaver.core.markup import parse_markup
from testweaver.core.scanner import (
    relative_source_path,
    resolve_element_selector,
    scan_file,
    scan_source,
)


def _element(markup: str):
    return next(parse_markup(markup, "x.html").iter_elements())


class TestSelectorResolution:
    def test_role_wins_with_aria_label_name(self) -> None:
        element = _element(
            '<button data-test-role="button" aria-label="Send" data-test-label="L" '
            'data-test-id="id"></button>'
        )
        assert resolve_element_selector(element) == Selector(
            type=SelectorType.ROLE, value="button", options={"name": "Send"}
        )

    def test_label_over_placeholder_and_id(self) -> None:
        element = _element('<input data-test-label="Email" data-test-placeholder="p" data-test-id="id">')
        assert resolve_element_selector(element) == Selector(
            type=SelectorType.LABEL_TEXT, value="Email"
        )

    def test_placeholder_over_id(self) -> None:
        element = _element('<input data-test-placeholder="Search" data-test-id="id">')
        assert resolve_element_selector(element).type == SelectorType.PLACEHOLDER

    def test_test_id(self) -> None:
        element = _element('<input data-test-id="email">')
        assert resolve_element_selector(element) == Selector.test_id("email")

    def test_no_identifier(self) -> None:
        assert resolve_element_selector(_element('<input data-test-step="click">')) is None


class TestLoginScenario:
    def test_exact_ir(self, login_markup: str) -> None:
        suites = scan_source(login_markup, "login.html")
        assert len(suites) == 1
        suite = suites[0]
        assert suite.id == "login"
        assert len(suite.cases) == 1

        case = suite.cases[0]
        assert case.id == "login__happy-path"
        assert case.type == CaseType.E2E
        assert case.route == "/login"
        assert [s.action for s in case.steps] == [StepAction.TYPE, StepAction.CLICK]
        assert [s.id for s in case.steps] == ["step-1", "step-2"]
        assert case.steps[0].value == "user@example.com"
        assert case.steps[0].selector == Selector.test_id("email")
        assert [e.type for e in case.expectations] == [ExpectType.VISIBLE, ExpectType.TEXT]
        assert case.expectations[1].value == "Welcome"
        for expectation in case.expectations:
            assert expectation.selector == Selector(type=SelectorType.TEST_ID, value="success-message")

    def test_same_ir_from_jsx(self, login_markup: str) -> None:
        html_case = scan_source(login_markup, "login.html")[0].cases[0]
        jsx_case = scan_source(f"export default () => ({login_markup});", "Login.tsx")[0].cases[0]
        assert [s.action for s in jsx_case.steps] == [s.action for s in html_case.steps]
        assert [e.type for e in jsx_case.expectations] == [e.type for e in html_case.expectations]


class TestScanning:
    def test_scenario_defaults_and_ui_type(self) -> None:
        (suite,) = scan_source('<div data-test-context="cart"><b data-test-id="x" data-test-expect="visible"></b></div>', "c.html")
        case = suite.cases[0]
        assert case.id == "cart__default"
        assert case.type == CaseType.UI
        assert case.route is None

    def test_steps_without_identifier_are_dropped(self) -> None:
        markup = (
            '<div data-test-context="c">'
            '<button data-test-step="click"></button>'
            '<p data-test-expect="visible"></p>'
            '<b data-test-id="ok" data-test-step="hover"></b>'
            "</div>"
        )
        case = scan_source(markup, "c.html")[0].cases[0]
        assert [(s.id, s.action) for s in case.steps] == [("step-1", StepAction.HOVER)]
        assert case.expectations[0].selector is None

    def test_elements_without_directives_ignored(self) -> None:
        markup = '<div data-test-context="c"><span>text</span><i data-test-id="x"></i></div>'
        case = scan_source(markup, "c.html")[0].cases[0]
        assert case.steps == [] and case.expectations == []

    def test_context_element_itself_is_excluded(self) -> None:
        markup = '<form data-test-context="c" data-test-id="form" data-test-step="submitContext"></form>'
        case = scan_source(markup, "c.html")[0].cases[0]
        assert case.steps == []

    def test_repeated_scenario_appends_in_document_order(self) -> None:
        markup = (
            '<section data-test-context="c" data-test-scenario="s">'
            '<b data-test-id="a" data-test-step="click" data-test-expect="visible"></b>'
            "</section>"
            '<section data-test-context="c" data-test-scenario="s" data-test-route="/later">'
            '<b data-test-id="b" data-test-step="click; hover" data-test-expect="exists"></b>'
            "</section>"
        )
        (suite,) = scan_source(markup, "c.html")
        (case,) = suite.cases
        assert [s.id for s in case.steps] == ["step-1", "step-2", "step-3"]
        assert [s.selector.value for s in case.steps] == ["a", "b", "b"]
        assert [e.id for e in case.expectations] == ["exp-1", "exp-2"]
        assert len(case.defined_at) == 2
        assert case.route == "/later"

    def test_dynamic_context_is_skipped(self) -> None:
        assert scan_source("x = <div data-test-context={name}><b data-test-id='a' /></div>;", "D.tsx") == []

    def test_locations(self) -> None:
        markup = '<div data-test-context="c">\n  <b data-test-id="a" data-test-step="click"></b>\n</div>'
        case = scan_source(markup, "c.html")[0].cases[0]
        assert str(case.origin) == "c.html:1:1"
        step = case.steps[0]
        assert (step.source.line, step.source.column) == (2, 3)
        assert step.source.via == LocationVia.ATTRIBUTE
        assert step.source.raw == "click"


class TestTypeScriptSources:
    MACRO = (
        "/**\n"
        " * @test-context search\n"
        " * @steps [query] type:zzzz\n"
        " * @expect [results] not-visible\n"
        " */\n"
    )

    def test_macros_after_generic_function_type(self) -> None:
        source = "type Mapper = <T>(value: T) => T;\n" + self.MACRO
        (suite,) = scan_source(source, "Search.tsx")
        (case,) = suite.cases
        assert [s.value for s in case.steps] == ["zzzz"]
        assert [e.type for e in case.expectations] == [ExpectType.NOT_VISIBLE]

    def test_macros_in_plain_ts_file(self, caplog) -> None:
        source = "const input = <HTMLInputElement>el;\nconst id = <T>(x: T) => x;\n" + self.MACRO
        (suite,) = scan_source(source, "search.steps.ts")
        assert suite.source_files[0].language == Language.TS
        assert [s.value for s in suite.cases[0].steps] == ["zzzz"]
        assert "Unclosed" not in caplog.text


class TestFixtures:
    def test_login_component(self, fixtures_dir: Path) -> None:
        (suite,) = scan_file(fixtures_dir / "Login.tsx", fixtures_dir)
        assert suite.source_files[0].file_path == "Login.tsx"
        assert suite.source_files[0].framework == Framework.REACT
        assert suite.source_files[0].language == Language.TSX

        (case,) = suite.cases
        assert case.id == "login__happy-path"
        assert case.type == CaseType.E2E
        assert [(s.selector.value, s.value) for s in case.steps] == [
            ("email", "user@example.com"),
            ("password", "correct-horse"),
            ("submit", None),
        ]
        assert [(e.type, e.value) for e in case.expectations] == [
            (ExpectType.VISIBLE, None),
            (ExpectType.TEXT, "Welcome back"),
        ]
        assert (case.origin.line, case.origin.column) == (21, 5)

    def test_contact_form_mixes_attributes_and_macros(self, fixtures_dir: Path) -> None:
        (suite,) = scan_file(fixtures_dir / "ContactForm.tsx", fixtures_dir)
        submit, validation = suite.cases

        assert submit.id == "contact__submit-form"
        assert submit.route == "/contact"
        assert [loc.via for loc in submit.defined_at] == [LocationVia.COMMENT, LocationVia.ATTRIBUTE]
        assert [s.selector.type for s in submit.steps] == [
            SelectorType.LABEL_TEXT,
            SelectorType.PLACEHOLDER,
            SelectorType.TEST_ID,
            SelectorType.ROLE,
        ]
        assert submit.steps[1].action == StepAction.TYPE
        assert submit.steps[3].selector.options == {"name": "Send message"}
        assert [e.type for e in submit.expectations] == [
            ExpectType.URL_CONTAINS,
            ExpectType.VISIBLE,
            ExpectType.ARIA,
            ExpectType.HAS_CLASS,
        ]
        assert submit.expectations[2].value == "live:polite"

        assert validation.id == "contact__validation-error"
        assert validation.type == CaseType.UI
        assert validation.steps[0].source.via == LocationVia.COMMENT
        assert [e.value for e in validation.expectations] == [
            None,
            "Please fill in all required fields",
        ]

    def test_html_page(self, fixtures_dir: Path) -> None:
        newsletter, login = scan_file(fixtures_dir / "login.html", fixtures_dir)
        assert newsletter.context == "newsletter"
        assert [s.selector.value for s in newsletter.cases[0].steps] == [
            "newsletter-email",
            "newsletter-submit",
        ]
        assert login.cases[0].id == "login__happy-path"
        assert login.source_files[0].framework == Framework.HTML

    def test_vue_component(self, fixtures_dir: Path) -> None:
        (suite,) = scan_file(fixtures_dir / "SearchBox.vue", fixtures_dir)
        no_results, clear = suite.cases
        assert suite.source_files[0].framework == Framework.VUE
        assert [s.action for s in no_results.steps] == [StepAction.TYPE, StepAction.KEY]
        assert no_results.steps[0].selector == Selector(type=SelectorType.PLACEHOLDER, value="Search...")
        assert no_results.expectations[1].type == ExpectType.EXACT_TEXT
        assert clear.id == "search__clear"
        assert [s.action for s in clear.steps] == [StepAction.TYPE, StepAction.CLEAR]
        assert clear.origin.line == 14

    def test_svelte_component(self, fixtures_dir: Path) -> None:
        (suite,) = scan_file(fixtures_dir / "Counter.svelte", fixtures_dir)
        case = suite.cases[0]
        assert case.id == "counter__default"
        assert case.type == CaseType.E2E
        assert [s.id for s in case.steps] == ["step-1", "step-2"]
        assert case.expectations[0].value == "2"


class TestFileErrors:
    def test_undecodable_file(self, tmp_path: Path) -> None:
        path = tmp_path / "Bad.tsx"
        path.write_bytes(b"const a = 1;\nconst b = '\xff';\n")
        with pytest.raises(ParseError) as exc_info:
            scan_file(path)
        assert exc_info.value.context.line == 2
        assert exc_info.value.context.column == 12
        assert exc_info.value.context.snippet == "const a = 1;\nconst b = '\ufffd';"
        message = str(exc_info.value)
        assert "   2 | const b = '\ufffd';\n" + " " * 18 + "^^^" in message

    def test_undecodable_file_column_counts_characters(self, tmp_path: Path) -> None:
        path = tmp_path / "Bad.tsx"
        path.write_bytes("const é = '".encode() + b"\xff';\n")
        with pytest.raises(ParseError) as exc_info:
            scan_file(path)
        assert exc_info.value.context.column == 12

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(OSError):
            scan_file(tmp_path / "missing.tsx")

    def test_scanning_does_not_modify_source(self, fixtures_dir: Path) -> None:
        path = fixtures_dir / "Login.tsx"
        before = path.read_bytes()
        scan_file(path)
        assert path.read_bytes() == before


class TestRelativePaths:
    def test_relative_to_root(self, tmp_path: Path) -> None:
        assert relative_source_path(tmp_path / "src" / "A.tsx", tmp_path) == "src/A.tsx"

    def test_outside_root(self, tmp_path: Path) -> None:
        other = tmp_path.parent / "elsewhere" / "A.tsx"
        assert relative_source_path(other, tmp_path / "project") == other.as_posix()
