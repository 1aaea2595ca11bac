"""
Source scanner.

Finds ``data-test-*`` attributes and comment macros in one UI source file
and turns them into suites via the IR builder. Scanning never touches the
source file beyond reading it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from .builder import ContextFragment, DirectiveTarget, build_suites
from .comment_macros import MacroCase, read_macros
from .errors import make_parse_error
from .ir import (
    DEFAULT_SCENARIO,
    Language,
    LocationRef,
    LocationVia,
    Selector,
    SelectorType,
    SourceRef,
    Suite,
)
from .markup import MarkupDocument, MarkupElement, parse_markup

logger = logging.getLogger(__name__)

CONTEXT_ATTR = "data-test-context"
SCENARIO_ATTR = "data-test-scenario"
ROUTE_ATTR = "data-test-route"
ID_ATTR = "data-test-id"
STEP_ATTR = "data-test-step"
EXPECT_ATTR = "data-test-expect"
ROLE_ATTR = "data-test-role"
LABEL_ATTR = "data-test-label"
PLACEHOLDER_ATTR = "data-test-placeholder"

IDENTIFIER_ATTRS = (ROLE_ATTR, LABEL_ATTR, PLACEHOLDER_ATTR, ID_ATTR)
DIRECTIVE_ATTRS = (*IDENTIFIER_ATTRS, STEP_ATTR, EXPECT_ATTR)


@dataclass
class ScanResult:
    """Everything read from one file before suites are built."""

    document: MarkupDocument
    source: SourceRef
    fragments: list[ContextFragment] = field(default_factory=list)


def resolve_element_selector(element: MarkupElement) -> Selector | None:
    """
    Pick the selector for an element.

    Priority: role (with the aria-label as accessible name) > label >
    placeholder > test id. Empty values do not count.
    """
    role = element.get(ROLE_ATTR)
    if role:
        name = element.get("aria-label")
        return Selector(
            type=SelectorType.ROLE,
            value=role,
            options={"name": name} if name else None,
        )
    label = element.get(LABEL_ATTR)
    if label:
        return Selector(type=SelectorType.LABEL_TEXT, value=label)
    placeholder = element.get(PLACEHOLDER_ATTR)
    if placeholder:
        return Selector(type=SelectorType.PLACEHOLDER, value=placeholder)
    test_id = element.get(ID_ATTR)
    if test_id:
        return Selector.test_id(test_id)
    return None


def _has_directive(element: MarkupElement) -> bool:
    return any(name in element.attributes for name in DIRECTIVE_ATTRS)


def _location(file_path: str, line: int, column: int, via: LocationVia, raw: str | None) -> LocationRef:
    return LocationRef(file_path=file_path, line=line, column=column, via=via, raw=raw)


def _context_fragment(element: MarkupElement, file_path: str) -> ContextFragment | None:
    context = element.get(CONTEXT_ATTR)
    if not context:
        logger.debug(
            f"{file_path}:{element.line}:{element.column}: "
            f"<{element.tag}> has no static {CONTEXT_ATTR} value"
        )
        return None

    fragment = ContextFragment(
        context=context,
        scenario=element.get(SCENARIO_ATTR) or DEFAULT_SCENARIO,
        route=element.get(ROUTE_ATTR) or None,
        location=_location(file_path, element.line, element.column, LocationVia.ATTRIBUTE, context),
    )

    for child in element.iter_descendants():
        if not _has_directive(child):
            continue
        step_directive = child.get(STEP_ATTR)
        expect_directive = child.get(EXPECT_ATTR)
        raw = "; ".join(d for d in (step_directive, expect_directive) if d) or None
        fragment.targets.append(
            DirectiveTarget(
                location=_location(file_path, child.line, child.column, LocationVia.ATTRIBUTE, raw),
                selector=resolve_element_selector(child),
                step_directive=step_directive,
                expect_directive=expect_directive,
                test_id=child.get(ID_ATTR),
            )
        )
    return fragment


def _macro_fragment(macro: MacroCase, file_path: str) -> ContextFragment:
    fragment = ContextFragment(
        context=macro.context,
        scenario=macro.scenario,
        route=macro.route,
        case_type=macro.case_type,
        location=_location(file_path, macro.line, macro.column, LocationVia.COMMENT, macro.raw),
    )
    for directive in macro.directives:
        location = _location(
            file_path, directive.line, directive.column, LocationVia.COMMENT, directive.raw
        )
        if directive.kind == "steps":
            target = DirectiveTarget(
                location=location, selector=directive.selector, step_directive=directive.directive
            )
        else:
            target = DirectiveTarget(
                location=location, selector=directive.selector, expect_directive=directive.directive
            )
        fragment.targets.append(target)
    return fragment


def collect_fragments(document: MarkupDocument) -> list[ContextFragment]:
    """Collect attribute and comment-macro fragments from a parsed document."""
    fragments: list[ContextFragment] = []
    for element in document.iter_elements():
        if CONTEXT_ATTR not in element.attributes:
            continue
        fragment = _context_fragment(element, document.file_path)
        if fragment is not None:
            fragments.append(fragment)
    for macro in read_macros(document.comments):
        fragments.append(_macro_fragment(macro, document.file_path))
    return fragments


def read_source(text: str, file_path: str, language: Language | None = None) -> ScanResult:
    """Parse source text and collect its fragments, logging recovered defects."""
    document = parse_markup(text, file_path, language)
    for defect in document.defects:
        logger.warning(f"{file_path}:{defect.line}:{defect.column}: {defect.message}")
    source = SourceRef.for_path(file_path)
    if language is not None and language != source.language:
        source = source.model_copy(update={"language": language})
    return ScanResult(document=document, source=source, fragments=collect_fragments(document))


def scan_source(text: str, file_path: str, language: Language | None = None) -> list[Suite]:
    """
    Scan source text for test directives.

    Args:
        text: Source text
        file_path: Path recorded in locations (also selects the language)
        language: Override the language derived from the extension

    Returns:
        Suites declared in the text, one per context
    """
    result = read_source(text, file_path, language)
    return build_suites(result.fragments, result.source)


def relative_source_path(path: Path, source_root: Path | None) -> str:
    """Path as recorded in the IR: relative to the root when possible, POSIX style."""
    if source_root is not None:
        try:
            return path.resolve().relative_to(source_root.resolve()).as_posix()
        except ValueError:
            pass
    return path.as_posix()


def read_source_file(path: Path) -> str:
    """
    Read a source file as UTF-8.

    Raises:
        OSError: If the file cannot be read
        ParseError: If the file is not valid UTF-8
    """
    data = path.read_bytes()
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        line = data.count(b"\n", 0, e.start) + 1
        line_start = data.rfind(b"\n", 0, e.start) + 1
        # the prefix before the first bad byte is valid UTF-8
        column = len(data[line_start : e.start].decode("utf-8")) + 1
        raise make_parse_error(
            f"Cannot decode source as UTF-8: {e.reason}",
            path,
            line,
            column,
            snippet=_decode_snippet(data, line),
        ) from e


def _decode_snippet(data: bytes, line: int) -> str:
    """The error line and up to two lines before it, undecodable bytes replaced."""
    lines = data.decode("utf-8", errors="replace").split("\n")
    start = max(1, line - 2)
    return "\n".join(lines[start - 1 : line])


def scan_file(path: Path, source_root: Path | None = None) -> list[Suite]:
    """
    Scan one source file.

    Raises:
        OSError: If the file cannot be read
        ParseError: If the file cannot be decoded
    """
    path = Path(path)
    text = read_source_file(path)
    return scan_source(text, relative_source_path(path, source_root))
