"""
Directive lexer for TestWeaver step and expectation attributes.

A directive attribute holds either a JSON array of objects or a token
string such as ``"type:user@example.com; click"``. One disambiguating
JSON parse decides which grammar applies. Both entry points are total:
malformed input degrades to ``custom`` steps or dropped expectations,
never to an exception.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .ir import ExpectType, StepAction


class DirectiveSyntax(str, Enum):
    """Grammar a directive string was read with."""

    TOKENS = "tokens"
    JSON = "json"


@dataclass(frozen=True)
class ParsedStep:
    """A step directive before it is bound to a selector and an id."""

    action: StepAction
    value: Any | None = None
    raw_action: str | None = None
    delay_ms: int | None = None
    description: str | None = None


@dataclass(frozen=True)
class ParsedExpectation:
    """An expectation directive before it is bound to a selector and an id."""

    type: ExpectType
    value: Any | None = None
    description: str | None = None


@dataclass(frozen=True)
class DirectiveParse:
    """Tagged result of lexing one directive attribute."""

    syntax: DirectiveSyntax
    segments: tuple[Any, ...] = field(default_factory=tuple)


# =============================================================================
# Alias tables
# =============================================================================


def _separator_variants(name: str) -> set[str]:
    """Return hyphen, underscore and no-separator spellings of a name."""
    lowered = name.lower()
    bare = lowered.replace("-", "").replace("_", "")
    return {lowered, bare, lowered.replace("-", "_"), lowered.replace("_", "-")}


def _build_step_aliases() -> dict[str, StepAction]:
    aliases: dict[str, StepAction] = {}
    for action in StepAction:
        for variant in _separator_variants(action.value):
            aliases[variant] = action
    aliases.update(
        {
            "wait-for": StepAction.WAIT_FOR,
            "wait_for": StepAction.WAIT_FOR,
            "submit-context": StepAction.SUBMIT_CONTEXT,
            "submit_context": StepAction.SUBMIT_CONTEXT,
            "fill": StepAction.TYPE,
            "press": StepAction.KEY,
        }
    )
    return aliases


def _build_expect_aliases() -> dict[str, ExpectType]:
    aliases: dict[str, ExpectType] = {}
    for expect_type in ExpectType:
        for variant in _separator_variants(expect_type.value):
            aliases[variant] = expect_type
    return aliases


STEP_ACTION_ALIASES: dict[str, StepAction] = _build_step_aliases()
EXPECT_TYPE_ALIASES: dict[str, ExpectType] = _build_expect_aliases()


def normalize_step_action(name: str) -> StepAction | None:
    """Resolve a step action name (case-insensitive), or None if unknown."""
    return STEP_ACTION_ALIASES.get(name.strip().lower())


def normalize_expect_type(name: str) -> ExpectType | None:
    """Resolve an expectation type name (case-insensitive), or None if unknown."""
    return EXPECT_TYPE_ALIASES.get(name.strip().lower())


# =============================================================================
# Token grammar
# =============================================================================


def split_segments(raw: str) -> list[str]:
    """Split a token directive on ';', trimming and dropping empty segments."""
    return [segment.strip() for segment in raw.split(";") if segment.strip()]


def split_name_value(segment: str) -> tuple[str, str | None]:
    """Split a segment at its first colon into (name, value)."""
    if ":" not in segment:
        return segment.strip(), None
    name, value = segment.split(":", 1)
    return name.strip(), value.strip()


def lex_directive(raw: str) -> DirectiveParse:
    """
    Decide which grammar a directive uses and split it into segments.

    A raw value that parses as a JSON array yields its items; anything
    else yields the non-empty token segments.
    """
    try:
        decoded = json.loads(raw)
    except (ValueError, TypeError, RecursionError):
        decoded = None
    if isinstance(decoded, list):
        return DirectiveParse(DirectiveSyntax.JSON, tuple(decoded))
    return DirectiveParse(DirectiveSyntax.TOKENS, tuple(split_segments(raw)))


def _step_from_segment(segment: str) -> ParsedStep:
    name, value = split_name_value(segment)
    action = normalize_step_action(name)
    if action is None:
        return ParsedStep(action=StepAction.CUSTOM, value=segment, raw_action=name)
    return ParsedStep(action=action, value=value)


def _expectation_from_segment(segment: str) -> ParsedExpectation | None:
    name, value = split_name_value(segment)
    expect_type = normalize_expect_type(name)
    if expect_type is None:
        return None
    return ParsedExpectation(type=expect_type, value=value)


# =============================================================================
# JSON grammar
# =============================================================================


def _as_delay(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _as_text(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _step_from_item(item: Any) -> ParsedStep:
    item_text = json.dumps(item, ensure_ascii=False, sort_keys=True)
    if not isinstance(item, dict):
        return ParsedStep(action=StepAction.CUSTOM, value=item_text, raw_action=item_text)

    name = item.get("action")
    action = normalize_step_action(name) if isinstance(name, str) else None
    delay_ms = _as_delay(item.get("delayMs", item.get("delay_ms")))
    description = _as_text(item.get("description"))
    if action is None:
        return ParsedStep(
            action=StepAction.CUSTOM,
            value=item_text,
            raw_action=name if isinstance(name, str) else item_text,
            delay_ms=delay_ms,
            description=description,
        )
    return ParsedStep(
        action=action,
        value=item.get("value"),
        delay_ms=delay_ms,
        description=description,
    )


def _expectation_from_item(item: Any) -> ParsedExpectation | None:
    if not isinstance(item, dict):
        return None
    name = item.get("assert", item.get("type"))
    if not isinstance(name, str):
        return None
    expect_type = normalize_expect_type(name)
    if expect_type is None:
        return None
    return ParsedExpectation(
        type=expect_type,
        value=item.get("value"),
        description=_as_text(item.get("description")),
    )


# =============================================================================
# Public API
# =============================================================================


def parse_step_directive(raw: str) -> list[ParsedStep]:
    """
    Parse a step directive into ordered steps.

    Examples:
        "type:user@example.com" -> [ParsedStep(TYPE, "user@example.com")]
        "type:test; click"      -> [ParsedStep(TYPE, "test"), ParsedStep(CLICK)]
        "drag"                  -> [ParsedStep(CUSTOM, "drag", raw_action="drag")]

    The result always has one step per segment / JSON item.
    """
    parsed = lex_directive(raw)
    if parsed.syntax == DirectiveSyntax.JSON:
        return [_step_from_item(item) for item in parsed.segments]
    return [_step_from_segment(segment) for segment in parsed.segments]


def parse_expectation_directive(raw: str) -> list[ParsedExpectation]:
    """
    Parse an expectation directive into ordered expectations.

    Examples:
        "visible"                -> [ParsedExpectation(VISIBLE)]
        "visible; text:Welcome"  -> [ParsedExpectation(VISIBLE), ParsedExpectation(TEXT, "Welcome")]
        "aria:live:polite"       -> [ParsedExpectation(ARIA, "live:polite")]

    Unknown types are dropped.
    """
    parsed = lex_directive(raw)
    if parsed.syntax == DirectiveSyntax.JSON:
        candidates = [_expectation_from_item(item) for item in parsed.segments]
    else:
        candidates = [_expectation_from_segment(segment) for segment in parsed.segments]
    return [candidate for candidate in candidates if candidate is not None]


def invalid_step_actions(raw: str) -> list[str]:
    """Return the unrecognized action names in a step directive."""
    return [step.raw_action for step in parse_step_directive(raw) if step.raw_action is not None]


def invalid_expectation_types(raw: str) -> list[str]:
    """Return the unrecognized type names in an expectation directive."""
    parsed = lex_directive(raw)
    names: list[str] = []
    if parsed.syntax == DirectiveSyntax.JSON:
        for item in parsed.segments:
            if _expectation_from_item(item) is None:
                name = item.get("assert", item.get("type")) if isinstance(item, dict) else None
                names.append(
                    name if isinstance(name, str) else json.dumps(item, ensure_ascii=False)
                )
        return names
    for segment in parsed.segments:
        name, _ = split_name_value(segment)
        if normalize_expect_type(name) is None:
            names.append(name.lower())
    return names
