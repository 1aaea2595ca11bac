"""
Runner-neutral selector mapping.

Every generator goes through ``resolve_selector`` and then renders the
resulting query kind with its own API table.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ..core.ir import Selector, SelectorType


class QueryKind(str, Enum):
    TEST_ID = "testId"
    CSS = "css"
    ROLE = "role"
    LABEL_TEXT = "labelText"
    PLACEHOLDER = "placeholder"


_QUERY_KINDS: dict[SelectorType, QueryKind] = {
    SelectorType.TEST_ID: QueryKind.TEST_ID,
    SelectorType.CSS: QueryKind.CSS,
    SelectorType.ROLE: QueryKind.ROLE,
    SelectorType.LABEL_TEXT: QueryKind.LABEL_TEXT,
    SelectorType.PLACEHOLDER: QueryKind.PLACEHOLDER,
    # custom selectors are raw CSS
    SelectorType.CUSTOM: QueryKind.CSS,
}


@dataclass(frozen=True)
class ResolvedSelector:
    kind: QueryKind
    value: str
    name: str | None = None  # accessible name for role queries


def resolve_selector(selector: Selector) -> ResolvedSelector:
    """Map an IR selector onto the query kind generators know how to render."""
    name = None
    if selector.type == SelectorType.ROLE and selector.options:
        option = selector.options.get("name")
        name = str(option) if option is not None else None
    return ResolvedSelector(kind=_QUERY_KINDS[selector.type], value=selector.value, name=name)
