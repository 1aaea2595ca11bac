"""
Test case types for TestWeaver IR.

This module contains the suite / case / step / expectation tree that the
scanner builds and the generators consume. The tree is strictly owned
top-down: no entity keeps a reference to its owner.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from .location import LocationRef, SourceRef
from .selectors import Selector

IR_VERSION = 1
DEFAULT_SCENARIO = "default"


class StepAction(str, Enum):
    """User actions a step can perform."""

    CLICK = "click"
    TYPE = "type"
    CHANGE = "change"
    FOCUS = "focus"
    BLUR = "blur"
    KEY = "key"
    SELECT = "select"
    HOVER = "hover"
    CLEAR = "clear"
    WAIT_FOR = "waitFor"
    SUBMIT_CONTEXT = "submitContext"
    CUSTOM = "custom"


class ExpectType(str, Enum):
    """Assertion types an expectation can check."""

    VISIBLE = "visible"
    NOT_VISIBLE = "not-visible"
    EXISTS = "exists"
    NOT_EXISTS = "not-exists"
    TEXT = "text"
    EXACT_TEXT = "exact-text"
    VALUE = "value"
    HAS_CLASS = "has-class"
    NOT_HAS_CLASS = "not-has-class"
    ARIA = "aria"
    URL_CONTAINS = "url-contains"
    URL_EXACT = "url-exact"
    SNAPSHOT = "snapshot"
    CUSTOM = "custom"


class CaseType(str, Enum):
    """Kind of test a case turns into."""

    UI = "ui"
    UNIT = "unit"
    E2E = "e2e"


VALUE_REQUIRED_ACTIONS = frozenset(
    {StepAction.TYPE, StepAction.CHANGE, StepAction.KEY, StepAction.SELECT}
)

VALUE_REQUIRED_EXPECTATIONS = frozenset(
    {
        ExpectType.TEXT,
        ExpectType.EXACT_TEXT,
        ExpectType.VALUE,
        ExpectType.HAS_CLASS,
        ExpectType.NOT_HAS_CLASS,
        ExpectType.ARIA,
        ExpectType.URL_CONTAINS,
        ExpectType.URL_EXACT,
    }
)

SELECTORLESS_EXPECTATIONS = frozenset({ExpectType.URL_CONTAINS, ExpectType.URL_EXACT})

_STEP_ACTION_VALUES = frozenset(a.value for a in StepAction)
_EXPECT_TYPE_VALUES = frozenset(t.value for t in ExpectType)


def _coerce_unknown(data: Any, key: str, known: frozenset[str], raw_key: str) -> Any:
    """Map an out-of-enumeration name onto ``custom``, keeping the raw text."""
    if not isinstance(data, dict):
        return data
    value = data.get(key)
    if isinstance(value, Enum):
        return data
    if isinstance(value, str) and value not in known:
        data = {**data, key: "custom"}
        if data.get(raw_key) is None and data.get(to_camel(raw_key)) is None:
            data[to_camel(raw_key)] = value
    return data


class Step(BaseModel):
    """
    One user action.

    Attributes:
        id: Stable identifier within the owning case ("step-1", "step-2", ...)
        action: Action to perform
        selector: Target element (required; absence is a validator error)
        value: Action value (text to type, key to press, option to select)
        delay_ms: Optional delay before the action, in milliseconds
        description: Optional human-readable description
        raw_action: Original action name when an unknown action degraded to custom
        source: Where the directive was written
    """

    id: str
    action: StepAction
    selector: Selector | None = None
    value: Any | None = None
    delay_ms: int | None = None
    description: str | None = None
    raw_action: str | None = None
    source: LocationRef | None = None

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _coerce_action(cls, data: Any) -> Any:
        return _coerce_unknown(data, "action", _STEP_ACTION_VALUES, "raw_action")

    @property
    def is_unrecognized(self) -> bool:
        """True when this step stands in for an action outside the enumeration."""
        return self.action == StepAction.CUSTOM and self.raw_action is not None


class Expectation(BaseModel):
    """
    One assertion.

    Attributes:
        id: Stable identifier within the owning case ("exp-1", "exp-2", ...)
        type: Assertion type
        selector: Target element (optional for URL assertions)
        value: Expected value (text, class, aria "name:value", URL)
        description: Optional human-readable description
        raw_type: Original type name when an unknown type degraded to custom
        source: Where the directive was written
    """

    id: str
    type: ExpectType
    selector: Selector | None = None
    value: Any | None = None
    description: str | None = None
    raw_type: str | None = None
    source: LocationRef | None = None

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _coerce_type(cls, data: Any) -> Any:
        return _coerce_unknown(data, "type", _EXPECT_TYPE_VALUES, "raw_type")

    @property
    def is_unrecognized(self) -> bool:
        return self.type == ExpectType.CUSTOM and self.raw_type is not None


def make_case_id(context: str, scenario: str) -> str:
    """Derive the stable case id used for deduplication."""
    return f"{context}__{scenario}"


class Case(BaseModel):
    """
    One scenario within a context.

    The id is derived from context and scenario so it stays stable across
    re-scans; it is the sole deduplication key when merging files.
    """

    __test__ = False

    id: str
    context: str
    scenario: str = DEFAULT_SCENARIO
    type: CaseType = CaseType.UI
    route: str | None = None
    defined_at: list[LocationRef] = Field(default_factory=list)
    steps: list[Step] = Field(default_factory=list)
    expectations: list[Expectation] = Field(default_factory=list)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @property
    def origin(self) -> LocationRef | None:
        """First place this case was declared."""
        return self.defined_at[0] if self.defined_at else None


class Suite(BaseModel):
    """
    One context: every case declared under the same context name.
    """

    __test__ = False

    id: str
    context: str
    description: str | None = None
    source_files: list[SourceRef] = Field(default_factory=list)
    cases: list[Case] = Field(default_factory=list)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def get_case(self, case_id: str) -> Case | None:
        """Get case by ID."""
        for case in self.cases:
            if case.id == case_id:
                return case
        return None


class TestIR(BaseModel):
    """
    Complete IR document.

    Built fresh on every scan; a persisted copy is only a cache.
    """

    __test__ = False

    version: int = IR_VERSION
    generated_at: datetime
    source_root: str
    suites: list[Suite] = Field(default_factory=list)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def get_suite(self, context: str) -> Suite | None:
        for suite in self.suites:
            if suite.context == context:
                return suite
        return None

    def iter_cases(self):
        """Yield (suite, case) pairs in document order."""
        for suite in self.suites:
            for case in suite.cases:
                yield suite, case
