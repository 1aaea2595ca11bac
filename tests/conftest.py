"""Shared pytest fixtures for TestWeaver tests."""

from datetime import UTC, datetime
from pathlib import Path

import pytest

from testweaver.core.ir import (
    Case,
    CaseType,
    Expectation,
    ExpectType,
    LocationRef,
    Selector,
    SourceRef,
    Step,
    StepAction,
    Suite,
    TestIR,
)

FIXED_TIME = datetime(2024, 1, 1, tzinfo=UTC)

LOGIN_MARKUP = (
    '<div data-test-context="login" data-test-scenario="happy-path" data-test-route="/login">'
    '<input data-test-id="email" data-test-step="type:user@example.com"/>'
    '<button data-test-id="submit" data-test-step="click"/>'
    '<div data-test-id="success-message" data-test-expect="visible; text:Welcome"/>'
    "</div>"
)


@pytest.fixture
def fixtures_dir() -> Path:
    """Return path to fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def fixed_time() -> datetime:
    return FIXED_TIME


@pytest.fixture
def login_markup() -> str:
    return LOGIN_MARKUP


def make_location(line: int = 1, column: int = 1, file_path: str = "src/Login.tsx") -> LocationRef:
    return LocationRef(file_path=file_path, line=line, column=column)


@pytest.fixture
def login_case() -> Case:
    """A hand-built login case covering steps and expectations."""
    return Case(
        id="login__happy-path",
        context="login",
        scenario="happy-path",
        type=CaseType.E2E,
        route="/login",
        defined_at=[make_location(3, 5)],
        steps=[
            Step(
                id="step-1",
                action=StepAction.TYPE,
                selector=Selector.test_id("email"),
                value="user@example.com",
                source=make_location(4, 7),
            ),
            Step(
                id="step-2",
                action=StepAction.CLICK,
                selector=Selector.test_id("submit"),
                source=make_location(5, 7),
            ),
        ],
        expectations=[
            Expectation(
                id="exp-1",
                type=ExpectType.VISIBLE,
                selector=Selector.test_id("success-message"),
                source=make_location(6, 7),
            ),
            Expectation(
                id="exp-2",
                type=ExpectType.TEXT,
                selector=Selector.test_id("success-message"),
                value="Welcome",
                source=make_location(6, 7),
            ),
        ],
    )


@pytest.fixture
def login_suite(login_case: Case) -> Suite:
    return Suite(
        id="login",
        context="login",
        source_files=[SourceRef.for_path("src/Login.tsx")],
        cases=[login_case],
    )


@pytest.fixture
def login_ir(login_suite: Suite) -> TestIR:
    return TestIR(generated_at=FIXED_TIME, source_root="/project", suites=[login_suite])


@pytest.fixture
def project(tmp_path: Path, fixtures_dir: Path) -> Path:
    """A small project tree with the fixture components under src/."""
    src = tmp_path / "src" / "components"
    src.mkdir(parents=True)
    for name in ("Login.tsx", "ContactForm.tsx"):
        (src / name).write_text((fixtures_dir / name).read_text(encoding="utf-8"), encoding="utf-8")
    return tmp_path
