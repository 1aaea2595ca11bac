"""
Error types for TestWeaver scanning, validation, and generation.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional


class TestweaverError(Exception):
    """Base exception for all TestWeaver errors."""

    __test__ = False

    def __init__(self, message: str, context: Optional["ErrorContext"] = None):
        self.message = message
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with context if available."""
        if self.context:
            return f"{self.context.format()}\n{self.message}"
        return self.message


class ParseError(TestweaverError):
    """
    Raised when a source file or persisted IR cannot be parsed at all.

    Examples:
    - Source text that cannot be decoded
    - Malformed IR JSON/YAML cache
    """

    pass


class ValidationError(TestweaverError):
    """
    Raised by orchestration when a validation policy refuses to continue.

    The validators themselves never raise; they return reports.
    """

    pass


class GenerationError(TestweaverError):
    """
    Raised when a generator is invoked with input it cannot render.

    Examples:
    - Suite passed to a generator that holds zero or several cases
    - Unknown generator name
    """

    pass


class ConfigError(TestweaverError):
    """
    Raised when an explicitly requested configuration cannot be loaded.

    Examples:
    - --config path does not exist
    - TOML syntax error
    - Wrong value types
    """

    pass


@dataclass
class ErrorContext:
    """
    Context information for an error, including source location.

    Attributes:
        file: Path to the source file where error occurred
        line: Line number (1-indexed)
        column: Column number (1-indexed)
        snippet: Optional code snippet showing the error location
    """

    file: Path
    line: int
    column: int
    snippet: str | None = None

    def format(self) -> str:
        """
        Format error context as a human-readable string.

        Returns:
            Formatted string like: "src/Login.tsx:10:5"
        """
        location = f"{self.file}:{self.line}:{self.column}"
        if self.snippet:
            return f"{location}\n{self._format_snippet()}"
        return location

    def _format_snippet(self) -> str:
        """Format code snippet with line numbers and error marker."""
        if not self.snippet:
            return ""

        lines = self.snippet.split("\n")
        formatted = []

        # Snippet shows up to 2 lines before the error line
        start_line = max(1, self.line - 2)

        for i, line in enumerate(lines):
            line_num = start_line + i
            prefix = f"{line_num:4d} | "
            formatted.append(prefix + line)

            if line_num == self.line:
                marker_pos = len(prefix) + self.column - 1
                formatted.append(" " * marker_pos + "^^^")

        return "\n".join(formatted)


def make_parse_error(
    message: str,
    file: Path,
    line: int,
    column: int,
    snippet: str | None = None,
) -> ParseError:
    """
    Helper to create a ParseError with context.

    Args:
        message: Error description
        file: Source file path
        line: Line number (1-indexed)
        column: Column number (1-indexed)
        snippet: Optional code snippet

    Returns:
        ParseError with context attached
    """
    context = ErrorContext(file=file, line=line, column=column, snippet=snippet)
    return ParseError(message, context)


def make_generation_error(
    message: str,
    file: Path | None = None,
    line: int | None = None,
    column: int | None = None,
) -> GenerationError:
    """
    Helper to create a GenerationError with optional context.

    Returns:
        GenerationError with context if a full location is provided
    """
    if file and line and column:
        context = ErrorContext(file=file, line=line, column=column)
        return GenerationError(message, context)
    return GenerationError(message)
