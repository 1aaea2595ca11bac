"""Source location tracking for IR nodes.

Records the file, line, and column where a directive or context was
defined, enabling diagnostics and provenance comments in generated code.
"""

from __future__ import annotations

from enum import Enum
from pathlib import PurePath

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class LocationVia(str, Enum):
    """How a location was discovered."""

    ATTRIBUTE = "attribute"
    COMMENT = "comment"
    PATTERN = "pattern"


class Framework(str, Enum):
    """UI frameworks a source file can belong to."""

    REACT = "react"
    VUE = "vue"
    SVELTE = "svelte"
    HTML = "html"


class Language(str, Enum):
    """Source languages / file types."""

    JS = "js"
    TS = "ts"
    TSX = "tsx"
    JSX = "jsx"
    HTML = "html"
    SVELTE = "svelte"
    VUE = "vue"


_EXTENSION_LANGUAGES: dict[str, Language] = {
    ".tsx": Language.TSX,
    ".jsx": Language.JSX,
    ".ts": Language.TS,
    ".js": Language.JS,
    ".mjs": Language.JS,
    ".cjs": Language.JS,
    ".vue": Language.VUE,
    ".svelte": Language.SVELTE,
    ".html": Language.HTML,
    ".htm": Language.HTML,
}

_LANGUAGE_FRAMEWORKS: dict[Language, Framework] = {
    Language.TSX: Framework.REACT,
    Language.JSX: Framework.REACT,
    Language.TS: Framework.REACT,
    Language.JS: Framework.REACT,
    Language.VUE: Framework.VUE,
    Language.SVELTE: Framework.SVELTE,
    Language.HTML: Framework.HTML,
}


def language_for_path(path: str | PurePath) -> Language:
    """Determine the language from a file extension (defaults to tsx)."""
    suffix = PurePath(path).suffix.lower()
    return _EXTENSION_LANGUAGES.get(suffix, Language.TSX)


def framework_for_language(language: Language) -> Framework:
    return _LANGUAGE_FRAMEWORKS[language]


class LocationRef(BaseModel):
    """Position in source where a context, step, or expectation was defined.

    Attributes:
        file_path: Path to the source file (relative to the source root when known)
        line: 1-indexed line number
        column: 1-indexed column number
        via: Discovery mechanism (attribute, comment, pattern)
        raw: Original directive text, for diagnostics
    """

    file_path: str
    line: int
    column: int
    via: LocationVia = LocationVia.ATTRIBUTE
    raw: str | None = None

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    def __str__(self) -> str:
        return f"{self.file_path}:{self.line}:{self.column}"


class SourceRef(BaseModel):
    """Reference to a source file that contributes to a suite."""

    file_path: str
    framework: Framework = Framework.REACT
    language: Language = Language.TSX

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    @classmethod
    def for_path(cls, file_path: str) -> SourceRef:
        language = language_for_path(file_path)
        return cls(
            file_path=file_path,
            framework=framework_for_language(language),
            language=language,
        )
