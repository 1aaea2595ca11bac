"""
Tolerant markup trees for UI source files.

Two front ends produce the same lightweight element tree:

- HTML, Vue and Svelte files go through ``html.parser.HTMLParser``;
- JS/TS/JSX/TSX files go through a small JSX-aware lexer that skips code,
  strings, template and regex literals, records comments, and builds
  elements for JSX tags. Plain .ts files only contribute comments.

Neither front end gives up on malformed input. Mismatched or missing
closing tags and unterminated constructs are recorded as defects and the
tree built so far is kept.
"""

from __future__ import annotations

import html
import json
import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from html.parser import HTMLParser

from .ir import Language, language_for_path

VOID_ELEMENTS = frozenset(
    {
        "area",
        "base",
        "br",
        "col",
        "embed",
        "hr",
        "img",
        "input",
        "link",
        "meta",
        "param",
        "source",
        "track",
        "wbr",
    }
)

# HTML elements whose end tag may legally be omitted
OPTIONAL_END_TAGS = frozenset(
    {
        "html",
        "head",
        "body",
        "p",
        "li",
        "dt",
        "dd",
        "tr",
        "td",
        "th",
        "thead",
        "tbody",
        "tfoot",
        "colgroup",
        "option",
        "optgroup",
        "rt",
        "rp",
    }
)

_HTML_LANGUAGES = frozenset({Language.HTML, Language.VUE, Language.SVELTE})


# =============================================================================
# Tree types
# =============================================================================


class CommentKind(str, Enum):
    BLOCK = "block"  # /* ... */
    LINE = "line"  # // ...
    HTML = "html"  # <!-- ... -->


@dataclass
class MarkupAttribute:
    """One attribute on an element.

    ``value`` is None for valueless attributes and for dynamic expressions.
    """

    name: str
    value: str | None
    line: int
    column: int
    dynamic: bool = False


@dataclass
class MarkupElement:
    """Minimal element node."""

    tag: str
    line: int = 1
    column: int = 1
    attributes: dict[str, MarkupAttribute] = field(default_factory=dict)
    children: list[MarkupElement] = field(default_factory=list)

    def get(self, name: str) -> str | None:
        """Static value of an attribute, or None if absent or dynamic."""
        attribute = self.attributes.get(name)
        return attribute.value if attribute is not None else None

    def attribute(self, name: str) -> MarkupAttribute | None:
        return self.attributes.get(name)

    def iter_descendants(self) -> Iterator[MarkupElement]:
        """Yield all descendants in document order (pre-order), excluding self."""
        stack = list(reversed(self.children))
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))


@dataclass
class MarkupComment:
    text: str
    line: int
    column: int
    kind: CommentKind = CommentKind.BLOCK
    end_line: int = 0


@dataclass
class MarkupDefect:
    """A recoverable syntax problem found while building the tree."""

    message: str
    line: int
    column: int


@dataclass
class MarkupDocument:
    file_path: str
    language: Language
    root: MarkupElement
    comments: list[MarkupComment] = field(default_factory=list)
    defects: list[MarkupDefect] = field(default_factory=list)

    def iter_elements(self) -> Iterator[MarkupElement]:
        return self.root.iter_descendants()


# =============================================================================
# Shared helpers
# =============================================================================

_QUOTED_STRING = re.compile(r"""^\s*(["'])(.*)\1\s*$""", re.DOTALL)
_TEMPLATE_STRING = re.compile(r"^\s*`([^`$]*)`\s*$", re.DOTALL)


def static_expression_value(expression: str) -> str | None:
    """
    Return the string held by an expression container such as ``{"click"}``.

    Only plain string literals (and template literals without
    substitutions) count as static; anything else yields None.
    """
    match = _QUOTED_STRING.match(expression)
    if match:
        quote, body = match.group(1), match.group(2)
        if re.search(rf"(?<!\\){quote}", body):
            return None
        if quote == "'":
            body = body.replace('\\"', '"').replace('"', '\\"').replace("\\'", "'")
        try:
            return json.loads(f'"{body}"')
        except ValueError:
            return body
    match = _TEMPLATE_STRING.match(expression)
    if match:
        return match.group(1)
    return None


def _brace_value(raw: str) -> tuple[str | None, bool]:
    """Interpret an attribute value written as ``{...}`` (Svelte style)."""
    stripped = raw.strip()
    if stripped.startswith("{") and stripped.endswith("}"):
        value = static_expression_value(stripped[1:-1])
        return value, value is None
    return raw, False


# =============================================================================
# HTML front end
# =============================================================================


class _HtmlTreeBuilder(HTMLParser):
    """Build a MarkupElement tree from HTML-like markup."""

    def __init__(self, document: MarkupDocument) -> None:
        super().__init__(convert_charrefs=True)
        self.document = document
        self._stack: list[MarkupElement] = [document.root]

    def _position(self) -> tuple[int, int]:
        line, offset = self.getpos()
        return line, offset + 1

    def _make_element(self, tag: str, attrs: list[tuple[str, str | None]]) -> MarkupElement:
        line, column = self._position()
        element = MarkupElement(tag=tag, line=line, column=column)
        for name, raw in attrs:
            if name in element.attributes:
                continue
            value, dynamic = _brace_value(raw) if raw is not None else (None, False)
            element.attributes[name] = MarkupAttribute(
                name=name, value=value, line=line, column=column, dynamic=dynamic
            )
        self._stack[-1].children.append(element)
        return element

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        element = self._make_element(tag, attrs)
        if tag not in VOID_ELEMENTS:
            self._stack.append(element)

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        self._make_element(tag, attrs)

    def handle_endtag(self, tag: str) -> None:
        for depth in range(len(self._stack) - 1, 0, -1):
            if self._stack[depth].tag == tag:
                for unclosed in self._stack[depth + 1 :]:
                    if unclosed.tag not in OPTIONAL_END_TAGS:
                        self._defect(
                            f"<{unclosed.tag}> opened at line {unclosed.line} "
                            f"closed implicitly by </{tag}>"
                        )
                del self._stack[depth:]
                return
        if tag not in VOID_ELEMENTS:
            self._defect(f"Unexpected closing tag </{tag}>")

    def handle_comment(self, data: str) -> None:
        line, column = self._position()
        self.document.comments.append(
            MarkupComment(
                text=data,
                line=line,
                column=column,
                kind=CommentKind.HTML,
                end_line=line + data.count("\n"),
            )
        )

    def handle_data(self, data: str) -> None:
        if len(self._stack) > 1 and self._stack[-1].tag == "script":
            line, column = self._position()
            lexer = JsxLexer(data, self.document, line=line, column=column)
            lexer.scan_comments_only()

    def _defect(self, message: str) -> None:
        line, column = self._position()
        self.document.defects.append(MarkupDefect(message=message, line=line, column=column))

    def finish(self) -> None:
        self.close()
        for unclosed in self._stack[1:]:
            if unclosed.tag not in OPTIONAL_END_TAGS:
                self.document.defects.append(
                    MarkupDefect(
                        message=f"Unclosed <{unclosed.tag}> at end of file",
                        line=unclosed.line,
                        column=unclosed.column,
                    )
                )


# =============================================================================
# JSX front end
# =============================================================================


class _ClosingTag(Exception):
    """Unwinds the element stack to the ancestor a closing tag belongs to."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(name)


# Tokens after which '<' starts a JSX element rather than a comparison
_JSX_PRECEDERS = frozenset(
    {
        None,
        "(",
        ",",
        "=",
        ":",
        "?",
        "[",
        "{",
        "}",
        ";",
        "!",
        "&",
        "|",
        "=>",
        "return",
        "default",
        "yield",
        "await",
        "case",
        "else",
        "do",
        "in",
        "of",
        "typeof",
        "void",
    }
)

# Tokens after which '/' starts a regex literal rather than a division
_REGEX_PRECEDERS = _JSX_PRECEDERS | frozenset({"+", "-", "*", "%", "<", ">", "~", "^"})

_KEYWORDS = frozenset(t for t in _JSX_PRECEDERS if t is not None and t.isalpha())


def _is_word_char(ch: str | None) -> bool:
    return ch is not None and (ch.isalnum() or ch in "_$")


def _is_tag_start(ch: str | None) -> bool:
    return ch is not None and (ch.isalpha() or ch in "_$>")


class JsxLexer:
    """
    JSX-aware scanner over JS/TS source.

    Tracks line/column the same way for code, strings, comments and
    markup, so every element and comment carries its 1-indexed position.
    """

    def __init__(
        self,
        text: str,
        document: MarkupDocument,
        line: int = 1,
        column: int = 1,
    ):
        self.text = text
        self.document = document
        self.pos = 0
        self.line = line
        self.column = column
        self._open_tags: list[str] = []
        self._comments_only = False

    # -- character access ----------------------------------------------------

    def current_char(self) -> str | None:
        """Get current character or None if at end."""
        if self.pos >= len(self.text):
            return None
        return self.text[self.pos]

    def peek_char(self, offset: int = 1) -> str | None:
        """Peek ahead at character."""
        pos = self.pos + offset
        if pos >= len(self.text):
            return None
        return self.text[pos]

    def advance(self, count: int = 1) -> None:
        """Move forward, updating line/column."""
        for _ in range(count):
            if self.pos < len(self.text):
                if self.text[self.pos] == "\n":
                    self.line += 1
                    self.column = 1
                else:
                    self.column += 1
                self.pos += 1

    def skip_whitespace(self) -> None:
        while (ch := self.current_char()) is not None and ch.isspace():
            self.advance()

    def _defect(self, message: str, line: int | None = None, column: int | None = None) -> None:
        self.document.defects.append(
            MarkupDefect(
                message=message,
                line=line if line is not None else self.line,
                column=column if column is not None else self.column,
            )
        )

    # -- entry points --------------------------------------------------------

    def scan(self) -> None:
        """Scan the whole text, attaching elements to the document root."""
        try:
            self._scan_code(self.document.root, closing=False)
        except _ClosingTag as stray:
            self._defect(f"Unexpected closing tag </{stray.name}>")
        except RecursionError:
            self._defect("Markup nested too deeply; remaining input skipped")

    def scan_comments_only(self) -> None:
        """Collect comments from a script body without building elements."""
        self._comments_only = True
        try:
            self._scan_code(self.document.root, closing=False)
        except RecursionError:
            self._defect("Script nested too deeply; remaining input skipped")

    # -- code mode -----------------------------------------------------------

    def _scan_code(self, parent: MarkupElement, closing: bool) -> str | None:
        """
        Scan JS/TS code.

        With ``closing`` set, stop after the ``}`` that balances an
        already-consumed ``{`` and return the code in between; at end of
        input return None.
        """
        start = self.pos
        start_line, start_column = self.line, self.column
        depth = 1
        last: str | None = None

        while True:
            ch = self.current_char()
            if ch is None:
                if closing:
                    self._defect(
                        "Unterminated expression at end of file",
                        start_line,
                        start_column,
                    )
                return None

            if ch.isspace():
                self.advance()
            elif ch in "\"'":
                self._skip_string(ch)
                last = "value"
            elif ch == "`":
                self._skip_template(parent)
                last = "value"
            elif ch == "/" and self.peek_char() == "/":
                self._read_line_comment()
            elif ch == "/" and self.peek_char() == "*":
                self._read_block_comment()
            elif ch == "/":
                if last in _REGEX_PRECEDERS:
                    self._skip_regex()
                    last = "value"
                else:
                    self.advance()
                    last = "/"
            elif ch == "{":
                depth += 1
                self.advance()
                last = "{"
            elif ch == "}":
                depth -= 1
                if closing and depth == 0:
                    text = self.text[start : self.pos]
                    self.advance()
                    return text
                self.advance()
                last = "}"
            elif ch == "<" and last in _JSX_PRECEDERS and self._looks_like_element():
                if self._comments_only:
                    self.advance()
                else:
                    self._parse_element(parent)
                last = "value"
            elif ch == "=" and self.peek_char() == ">":
                self.advance(2)
                last = "=>"
            elif ch in "&|" and self.peek_char() == ch:
                self.advance(2)
                last = ch
            elif ch == "?" and self.peek_char() == "?":
                self.advance(2)
                last = "&"
            elif ch == "?" and self.peek_char() == "." and not _is_digit(self.peek_char(2)):
                self.advance(2)
                last = "."
            elif _is_word_char(ch):
                word = self._read_word()
                last = word if word in _KEYWORDS else "value"
            elif ch in ")]":
                self.advance()
                last = "value"
            else:
                self.advance()
                last = ch

    def _read_word(self) -> str:
        start = self.pos
        while _is_word_char(self.current_char()):
            self.advance()
        return self.text[start : self.pos]

    def _skip_string(self, quote: str) -> None:
        start_line, start_column = self.line, self.column
        self.advance()
        while True:
            ch = self.current_char()
            if ch is None or ch == "\n":
                self._defect("Unterminated string literal", start_line, start_column)
                return
            if ch == "\\":
                self.advance(2)
                continue
            self.advance()
            if ch == quote:
                return

    def _skip_template(self, parent: MarkupElement) -> None:
        start_line, start_column = self.line, self.column
        self.advance()
        while True:
            ch = self.current_char()
            if ch is None:
                self._defect("Unterminated template literal", start_line, start_column)
                return
            if ch == "\\":
                self.advance(2)
            elif ch == "`":
                self.advance()
                return
            elif ch == "$" and self.peek_char() == "{":
                self.advance(2)
                if self._scan_code(parent, closing=True) is None:
                    return
            else:
                self.advance()

    def _skip_regex(self) -> None:
        self.advance()
        in_class = False
        while True:
            ch = self.current_char()
            if ch is None or ch == "\n":
                return
            if ch == "\\":
                self.advance(2)
                continue
            self.advance()
            if ch == "[":
                in_class = True
            elif ch == "]":
                in_class = False
            elif ch == "/" and not in_class:
                break
        while _is_word_char(self.current_char()):
            self.advance()

    def _read_line_comment(self) -> None:
        line, column = self.line, self.column
        self.advance(2)
        start = self.pos
        while (ch := self.current_char()) is not None and ch != "\n":
            self.advance()
        self.document.comments.append(
            MarkupComment(
                text=self.text[start : self.pos],
                line=line,
                column=column,
                kind=CommentKind.LINE,
                end_line=line,
            )
        )

    def _read_block_comment(self) -> None:
        line, column = self.line, self.column
        self.advance(2)
        start = self.pos
        end = self.text.find("*/", self.pos)
        if end == -1:
            self._defect("Unterminated comment", line, column)
            end = len(self.text)
        self.advance(end - self.pos)
        body = self.text[start:end]
        self.advance(2)
        self.document.comments.append(
            MarkupComment(
                text=body,
                line=line,
                column=column,
                kind=CommentKind.BLOCK,
                end_line=line + body.count("\n"),
            )
        )

    def _looks_like_element(self) -> bool:
        """Distinguish ``<div`` from comparisons and ``<T,>`` generics."""
        if not _is_tag_start(self.peek_char()):
            return False
        if self.peek_char() == ">":
            return True
        offset = 1
        while _is_word_char(self.peek_char(offset)) or self.peek_char(offset) in (".", "-", ":"):
            offset += 1
        while (ch := self.peek_char(offset)) is not None and ch in " \t":
            offset += 1
        if self.peek_char(offset) == ",":
            return False
        if self.text.startswith("extends", self.pos + offset):
            return False
        if self.peek_char(offset) == ">":
            return not self._is_generic_signature(self.pos + offset + 1)
        return True

    def _is_generic_signature(self, pos: int) -> bool:
        """Whether ``(params) =>`` follows position ``pos``, as in ``<T>(x: T) => T``."""
        text = self.text
        while pos < len(text) and text[pos] in " \t":
            pos += 1
        if pos >= len(text) or text[pos] != "(":
            return False
        depth = 0
        while pos < len(text):
            ch = text[pos]
            if ch == "(":
                depth += 1
            elif ch == ")":
                depth -= 1
                if depth == 0:
                    break
            elif text.startswith("</", pos):
                # closing tag: this is JSX text like <b>(note)</b>
                return False
            pos += 1
        else:
            return False
        pos += 1
        while pos < len(text) and text[pos].isspace():
            pos += 1
        return text.startswith("=>", pos)

    # -- markup mode ---------------------------------------------------------

    def _read_tag_name(self) -> str:
        start = self.pos
        while _is_word_char(self.current_char()) or self.current_char() in (".", "-", ":"):
            self.advance()
        return self.text[start : self.pos]

    def _read_attribute_name(self) -> str:
        start = self.pos
        while (ch := self.current_char()) is not None and not (ch.isspace() or ch in "=/>{"):
            self.advance()
        return self.text[start : self.pos]

    def _read_attribute_value(self, element: MarkupElement) -> tuple[str | None, bool]:
        ch = self.current_char()
        if ch in ('"', "'"):
            start_line, start_column = self.line, self.column
            self.advance()
            start = self.pos
            end = self.text.find(ch, self.pos)
            if end == -1:
                self._defect("Unterminated attribute value", start_line, start_column)
                end = len(self.text)
            self.advance(end - self.pos)
            value = self.text[start:end]
            self.advance()
            return html.unescape(value), False
        if ch == "{":
            self.advance()
            expression = self._scan_code(element, closing=True)
            if expression is None:
                return None, True
            value = static_expression_value(expression)
            return value, value is None
        if ch == "<":
            self._parse_element(element)
            return None, True
        return None, False

    def _parse_element(self, parent: MarkupElement) -> None:
        """Parse one JSX element starting at '<' and attach it to ``parent``."""
        line, column = self.line, self.column
        self.advance()
        tag = self._read_tag_name()
        element = MarkupElement(tag=tag, line=line, column=column)
        parent.children.append(element)

        while True:
            self.skip_whitespace()
            ch = self.current_char()
            if ch is None:
                self._defect(f"Unterminated tag <{tag}>", line, column)
                return
            if ch == "/" and self.peek_char() == ">":
                self.advance(2)
                return
            if ch == ">":
                self.advance()
                break
            if ch == "{":
                # spread attributes: {...props}
                self.advance()
                self._scan_code(element, closing=True)
                continue
            attr_line, attr_column = self.line, self.column
            name = self._read_attribute_name()
            if not name:
                self.advance()
                continue
            self.skip_whitespace()
            value: str | None = None
            dynamic = False
            if self.current_char() == "=":
                self.advance()
                self.skip_whitespace()
                value, dynamic = self._read_attribute_value(element)
            if name not in element.attributes:
                element.attributes[name] = MarkupAttribute(
                    name=name,
                    value=value,
                    line=attr_line,
                    column=attr_column,
                    dynamic=dynamic,
                )

        if tag.lower() in VOID_ELEMENTS and tag.islower():
            return
        self._parse_children(element)

    def _read_closing_tag(self) -> str:
        self.advance(2)
        self.skip_whitespace()
        name = self._read_tag_name()
        while (ch := self.current_char()) is not None and ch != ">":
            self.advance()
        self.advance()
        return name

    def _parse_children(self, element: MarkupElement) -> None:
        self._open_tags.append(element.tag)
        try:
            while True:
                ch = self.current_char()
                if ch is None:
                    self._defect(
                        f"Unclosed <{element.tag}> at end of file",
                        element.line,
                        element.column,
                    )
                    return
                try:
                    if ch == "<" and self.peek_char() == "/":
                        close_line, close_column = self.line, self.column
                        name = self._read_closing_tag()
                        if name == element.tag:
                            return
                        if name in self._open_tags[:-1]:
                            self._defect(
                                f"<{element.tag}> opened at line {element.line} "
                                f"closed implicitly by </{name}>",
                                close_line,
                                close_column,
                            )
                            raise _ClosingTag(name)
                        self._defect(
                            f"Unexpected closing tag </{name}>", close_line, close_column
                        )
                    elif ch == "<" and _is_tag_start(self.peek_char()):
                        self._parse_element(element)
                    elif ch == "{":
                        self.advance()
                        self._scan_code(element, closing=True)
                    else:
                        self.advance()
                except _ClosingTag as closing:
                    if closing.name == element.tag:
                        return
                    raise
        finally:
            self._open_tags.pop()


def _is_digit(ch: str | None) -> bool:
    return ch is not None and ch.isdigit()


# =============================================================================
# Public API
# =============================================================================


def parse_markup(
    text: str,
    file_path: str = "<string>",
    language: Language | None = None,
) -> MarkupDocument:
    """
    Parse source text into a MarkupDocument.

    Args:
        text: Source text
        file_path: Path used for diagnostics and language detection
        language: Override the language derived from the file extension

    Returns:
        Document with the element tree, comments and recoverable defects
    """
    language = language or language_for_path(file_path)
    document = MarkupDocument(
        file_path=file_path,
        language=language,
        root=MarkupElement(tag="#root"),
    )
    if language in _HTML_LANGUAGES:
        builder = _HtmlTreeBuilder(document)
        builder.feed(text)
        builder.finish()
    elif language == Language.TS:
        # .ts files cannot contain JSX; '<T>' there is always a type
        JsxLexer(text, document).scan_comments_only()
    else:
        JsxLexer(text, document).scan()
    return document
