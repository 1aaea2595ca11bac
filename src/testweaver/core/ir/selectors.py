"""
Selector types for TestWeaver IR.

A selector identifies a target element independently of any test runner.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict


class SelectorType(str, Enum):
    """Kinds of element selectors."""

    TEST_ID = "testId"
    CSS = "css"
    ROLE = "role"
    LABEL_TEXT = "labelText"
    PLACEHOLDER = "placeholder"
    CUSTOM = "custom"


class Selector(BaseModel):
    """
    Runner-independent element selector.

    Attributes:
        type: Selector kind (testId, css, role, labelText, placeholder, custom)
        value: Selector value, e.g. "email" for testId or "button" for role
        options: Extra query options, e.g. {"name": "Close"} for role queries
    """

    type: SelectorType
    value: str
    options: dict[str, Any] | None = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def test_id(cls, value: str) -> Selector:
        return cls(type=SelectorType.TEST_ID, value=value)
