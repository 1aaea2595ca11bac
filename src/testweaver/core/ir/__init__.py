"""
TestWeaver Intermediate Representation (IR) types.

The IR bridges directive scanning and test generation. It is
framework-agnostic and versioned. All types are re-exported here.
"""

from .cases import (
    DEFAULT_SCENARIO,
    IR_VERSION,
    SELECTORLESS_EXPECTATIONS,
    VALUE_REQUIRED_ACTIONS,
    VALUE_REQUIRED_EXPECTATIONS,
    Case,
    CaseType,
    Expectation,
    ExpectType,
    Step,
    StepAction,
    Suite,
    TestIR,
    make_case_id,
)
from .location import (
    Framework,
    Language,
    LocationRef,
    LocationVia,
    SourceRef,
    framework_for_language,
    language_for_path,
)
from .selectors import Selector, SelectorType

__all__ = [
    # Cases
    "DEFAULT_SCENARIO",
    "IR_VERSION",
    "SELECTORLESS_EXPECTATIONS",
    "VALUE_REQUIRED_ACTIONS",
    "VALUE_REQUIRED_EXPECTATIONS",
    "Case",
    "CaseType",
    "Expectation",
    "ExpectType",
    "Step",
    "StepAction",
    "Suite",
    "TestIR",
    "make_case_id",
    # Locations
    "Framework",
    "Language",
    "LocationRef",
    "LocationVia",
    "SourceRef",
    "framework_for_language",
    "language_for_path",
    # Selectors
    "Selector",
    "SelectorType",
]
