"""
Comment macro reader.

Test intent can also be written in comments next to the markup:

    /*
     * @test-context login
     * @test-scenario happy-path
     * @test-route /login
     * @steps [email] type:user@example.com
     * @steps [role=button] click
     * @expect url-contains:/dashboard
     */

Every ``@test-context`` line starts a new macro case; the tags after it
apply to that case until the next ``@test-context`` or the end of the
comment block. Consecutive ``//`` line comments form one block.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field

from .ir import DEFAULT_SCENARIO, CaseType, Selector, SelectorType
from .markup import CommentKind, MarkupComment

_MARKER_WIDTH = {
    CommentKind.LINE: 2,
    CommentKind.BLOCK: 2,
    CommentKind.HTML: 4,
}

_TAG_LINE = re.compile(r"^@([\w-]+)\s*(.*)$")
_BRACKET_TARGET = re.compile(r"^\[([^\]]*)\]\s*(.*)$")

_CASE_TYPES = frozenset(t.value for t in CaseType)

_TARGET_PREFIXES = {
    "role": SelectorType.ROLE,
    "label": SelectorType.LABEL_TEXT,
    "placeholder": SelectorType.PLACEHOLDER,
    "css": SelectorType.CSS,
    "testid": SelectorType.TEST_ID,
    "id": SelectorType.TEST_ID,
}


@dataclass
class MacroDirective:
    """One ``@steps`` or ``@expect`` line."""

    kind: str  # "steps" | "expect"
    directive: str
    line: int
    column: int
    selector: Selector | None = None
    raw: str = ""


@dataclass
class MacroCase:
    """A case declared by ``@test-context`` and the tags that follow it."""

    context: str
    line: int
    column: int
    scenario: str = DEFAULT_SCENARIO
    route: str | None = None
    case_type: CaseType | None = None
    directives: list[MacroDirective] = field(default_factory=list)
    raw: str = ""


@dataclass
class _CommentLine:
    text: str
    line: int
    column: int


def parse_target(raw: str) -> Selector | None:
    """
    Turn a bracketed macro target into a selector.

    ``email`` -> testId, ``role=button`` -> role, ``label=Email`` ->
    labelText, ``placeholder=...`` -> placeholder, ``css=.btn`` -> css.
    """
    raw = raw.strip()
    if not raw:
        return None
    prefix, sep, value = raw.partition("=")
    selector_type = _TARGET_PREFIXES.get(prefix.strip().lower()) if sep else None
    if selector_type is None:
        return Selector.test_id(raw)
    value = value.strip()
    if not value:
        return None
    return Selector(type=selector_type, value=value)


def _physical_lines(comment: MarkupComment) -> list[_CommentLine]:
    """Split a comment into lines positioned in the source file."""
    lines: list[_CommentLine] = []
    for index, text in enumerate(comment.text.split("\n")):
        if index == 0:
            column = comment.column + _MARKER_WIDTH.get(comment.kind, 0)
        else:
            column = 1
        lines.append(_CommentLine(text=text, line=comment.line + index, column=column))
    return lines


def _strip_prefix(line: _CommentLine) -> _CommentLine:
    """Drop leading whitespace, '*' and '//' decorations from a comment line."""
    text = line.text
    offset = 0
    while offset < len(text) and (text[offset].isspace() or text[offset] in "*/"):
        offset += 1
    return _CommentLine(
        text=text[offset:].rstrip(), line=line.line, column=line.column + offset
    )


def group_comment_blocks(comments: Iterable[MarkupComment]) -> list[list[_CommentLine]]:
    """
    Group comments into macro blocks.

    Block and HTML comments are one block each; ``//`` comments on
    consecutive lines join into a single block.
    """
    blocks: list[list[_CommentLine]] = []
    previous: MarkupComment | None = None
    for comment in sorted(comments, key=lambda c: (c.line, c.column)):
        lines = [_strip_prefix(line) for line in _physical_lines(comment)]
        joins_previous = (
            previous is not None
            and comment.kind == CommentKind.LINE
            and previous.kind == CommentKind.LINE
            and comment.line == previous.end_line + 1
        )
        if joins_previous:
            blocks[-1].extend(lines)
        else:
            blocks.append(lines)
        previous = comment
    return blocks


def _parse_directive(kind: str, rest: str, line: _CommentLine, raw: str) -> MacroDirective | None:
    selector = None
    match = _BRACKET_TARGET.match(rest)
    if match:
        selector = parse_target(match.group(1))
        rest = match.group(2)
    elif kind == "steps":
        return None
    directive = rest.strip()
    if not directive:
        return None
    return MacroDirective(
        kind=kind,
        directive=directive,
        line=line.line,
        column=line.column,
        selector=selector,
        raw=raw,
    )


def parse_macro_block(block: list[_CommentLine]) -> list[MacroCase]:
    """Read the macro cases declared in one comment block."""
    cases: list[MacroCase] = []
    current: MacroCase | None = None

    for line in block:
        match = _TAG_LINE.match(line.text)
        if not match:
            continue
        tag, rest = match.group(1).lower(), match.group(2).strip()

        if tag == "test-context":
            current = None
            if rest:
                current = MacroCase(context=rest, line=line.line, column=line.column, raw=line.text)
                cases.append(current)
            continue
        if current is None:
            continue

        if tag == "test-scenario" and rest:
            current.scenario = rest
        elif tag == "test-route" and rest:
            current.route = rest
        elif tag == "test-type" and rest.lower() in _CASE_TYPES:
            current.case_type = CaseType(rest.lower())
        elif tag in ("steps", "expect"):
            directive = _parse_directive(tag, rest, line, line.text)
            if directive is not None:
                current.directives.append(directive)

    return cases


def read_macros(comments: Iterable[MarkupComment]) -> list[MacroCase]:
    """Read every macro case from a document's comments, in source order."""
    cases: list[MacroCase] = []
    for block in group_comment_blocks(comments):
        cases.extend(parse_macro_block(block))
    return cases
