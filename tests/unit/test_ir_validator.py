"""Tests for IR validation."""

import logging

from testweaver.core.ir import (
    Case,
    Expectation,
    ExpectType,
    LocationRef,
    Selector,
    Step,
    StepAction,
    Suite,
    TestIR,
)
from testweaver.core.ir_validator import log_validation_issues, validate_ir
from testweaver.core.issues import IssueSeverity


def _ir(login_ir: TestIR, **case_updates) -> TestIR:
    case = login_ir.suites[0].cases[0].model_copy(update=case_updates)
    suite = login_ir.suites[0].model_copy(update={"cases": [case]})
    return login_ir.model_copy(update={"suites": [suite]})


class TestValidIR:
    def test_login_ir_is_clean(self, login_ir: TestIR) -> None:
        result = validate_ir(login_ir)
        assert result.valid
        assert result.issues == []
        assert result.blocked_case_ids() == set()

    def test_empty_ir_is_info_only(self, login_ir: TestIR) -> None:
        result = validate_ir(login_ir.model_copy(update={"suites": []}))
        assert result.valid
        assert [(i.severity, i.rule_id) for i in result.issues] == [
            (IssueSeverity.INFO, "ir-empty")
        ]

    def test_does_not_modify_ir(self, login_ir: TestIR) -> None:
        before = login_ir.model_dump()
        validate_ir(login_ir)
        assert login_ir.model_dump() == before


class TestStepRules:
    def test_missing_value_is_a_warning(self, login_ir: TestIR) -> None:
        step = Step(id="step-1", action=StepAction.TYPE, selector=Selector.test_id("email"))
        result = validate_ir(_ir(login_ir, steps=[step]))

        assert result.valid
        assert result.error_count == 0
        assert [i.rule_id for i in result.warnings] == ["step-missing-value"]
        assert "missing a value" in result.warnings[0].message

    def test_missing_selector_blocks_case(self, login_ir: TestIR) -> None:
        step = Step(id="step-1", action=StepAction.CLICK)
        result = validate_ir(_ir(login_ir, steps=[step]))

        assert not result.valid
        assert result.error_count == 1
        assert result.errors[0].rule_id == "step-missing-selector"
        assert result.errors[0].case_id == "login__happy-path"
        assert result.blocked_case_ids() == {("login", "login__happy-path")}

    def test_same_case_id_in_another_suite_is_not_blocked(self, login_ir: TestIR) -> None:
        broken = _ir(login_ir, steps=[Step(id="step-1", action=StepAction.CLICK)]).suites[0]
        other = login_ir.suites[0].model_copy(update={"id": "admin", "context": "admin"})
        result = validate_ir(login_ir.model_copy(update={"suites": [broken, other]}))
        assert result.blocked_case_ids() == {("login", "login__happy-path")}

    def test_unknown_action_warns(self, login_ir: TestIR) -> None:
        step = Step.model_validate(
            {"id": "step-1", "action": "teleport", "selector": {"type": "testId", "value": "x"}}
        )
        result = validate_ir(_ir(login_ir, steps=[step]))
        assert [i.rule_id for i in result.issues] == ["step-unsupported-action"]
        assert '"teleport"' in result.issues[0].message

    def test_duplicate_step_ids(self, login_ir: TestIR) -> None:
        step = Step(id="step-1", action=StepAction.CLICK, selector=Selector.test_id("a"))
        result = validate_ir(_ir(login_ir, steps=[step, step]))
        assert [i.rule_id for i in result.warnings] == ["step-duplicate-id"]


class TestExpectationRules:
    def test_url_expectations_need_no_selector(self, login_ir: TestIR) -> None:
        expectation = Expectation(id="exp-1", type=ExpectType.URL_CONTAINS, value="/home")
        assert validate_ir(_ir(login_ir, expectations=[expectation])).issues == []

    def test_missing_selector_and_value(self, login_ir: TestIR) -> None:
        expectation = Expectation(id="exp-1", type=ExpectType.TEXT)
        result = validate_ir(_ir(login_ir, expectations=[expectation]))
        assert result.valid
        assert [i.rule_id for i in result.warnings] == [
            "expectation-missing-selector",
            "expectation-missing-value",
        ]

    def test_unknown_type_warns(self, login_ir: TestIR) -> None:
        expectation = Expectation.model_validate(
            {"id": "exp-1", "type": "glowing", "selector": {"type": "testId", "value": "x"}}
        )
        result = validate_ir(_ir(login_ir, expectations=[expectation]))
        assert [i.rule_id for i in result.issues] == ["expectation-unsupported-type"]


class TestStructureRules:
    def test_empty_case_is_info(self, login_ir: TestIR) -> None:
        result = validate_ir(_ir(login_ir, steps=[], expectations=[]))
        assert result.valid
        assert [i.rule_id for i in result.issues] == ["case-empty"]

    def test_empty_suite_warns(self, login_ir: TestIR) -> None:
        suite = login_ir.suites[0].model_copy(update={"cases": []})
        result = validate_ir(login_ir.model_copy(update={"suites": [suite]}))
        assert [i.rule_id for i in result.issues] == ["suite-empty"]

    def test_suite_error_blocks_all_its_cases(self, login_ir: TestIR) -> None:
        suite = login_ir.suites[0].model_copy(update={"context": ""})
        result = validate_ir(login_ir.model_copy(update={"suites": [suite]}))
        assert result.blocked_suite_ids() == {"login"}
        assert result.blocked_case_ids() == {("login", "login__happy-path")}

    def test_future_version_warns(self, login_ir: TestIR) -> None:
        result = validate_ir(login_ir.model_copy(update={"version": 99}))
        assert [i.rule_id for i in result.issues] == ["ir-version"]
        assert result.issues[0].context == "root"


class TestReporting:
    def test_issues_sorted_by_file_and_line(self, login_ir: TestIR) -> None:
        late = Step(
            id="step-1",
            action=StepAction.CLICK,
            source=LocationRef(file_path="src/B.tsx", line=9, column=1),
        )
        early = Step(
            id="step-2",
            action=StepAction.CLICK,
            source=LocationRef(file_path="src/A.tsx", line=30, column=1),
        )
        result = validate_ir(_ir(login_ir, steps=[late, early]))
        assert [(i.file_path, i.line) for i in result.issues] == [("src/A.tsx", 30), ("src/B.tsx", 9)]

    def test_issue_context_and_dict(self, login_ir: TestIR) -> None:
        step = Step(id="step-1", action=StepAction.CLICK)
        issue = validate_ir(_ir(login_ir, steps=[step])).issues[0]
        assert issue.context == 'suite "login" > case "login__happy-path"'
        assert str(issue).startswith("[ERROR] src/Login.tsx:3: ")
        data = issue.to_dict()
        assert data["ruleId"] == "step-missing-selector"
        assert data["caseId"] == "login__happy-path"

    def test_result_to_dict(self, login_ir: TestIR) -> None:
        data = validate_ir(login_ir).to_dict()
        assert data == {
            "valid": True,
            "errorCount": 0,
            "warningCount": 0,
            "infoCount": 0,
            "issues": [],
        }

    def test_log_validation_issues(self, login_ir: TestIR, caplog) -> None:
        step = Step(id="step-1", action=StepAction.CLICK)
        result = validate_ir(_ir(login_ir, steps=[step]))
        with caplog.at_level(logging.INFO):
            log_validation_issues(result)
        assert "Validation failed with 1 error(s) and 0 warning(s)" in caplog.text


class TestCaseRules:
    def test_missing_scenario_warns(self) -> None:
        case = Case(
            id="c__",
            context="c",
            scenario="",
            steps=[Step(id="step-1", action=StepAction.CLICK, selector=Selector.test_id("x"))],
        )
        ir = TestIR(
            generated_at="2024-01-01T00:00:00Z",
            source_root="/p",
            suites=[Suite(id="c", context="c", cases=[case])],
        )
        result = validate_ir(ir)
        assert [i.rule_id for i in result.issues] == ["case-missing-scenario"]
        assert result.valid
