"""
TestWeaver - test generation from data-test-* attributes in UI markup.

Scans component and page sources for declarative test directives,
builds a framework-agnostic IR and generates test files for several
runners from it.
"""

from __future__ import annotations

import re
from importlib.metadata import version as _metadata_version
from pathlib import Path as _Path

# Re-export commonly used types for convenience
from .core import ir
from .core.errors import ConfigError, GenerationError, ParseError, TestweaverError, ValidationError


def _get_version() -> str:
    """Get version from pyproject.toml (editable) or importlib.metadata (installed)."""
    # In editable mode, read directly from pyproject.toml for live updates
    pyproject = _Path(__file__).parent.parent.parent / "pyproject.toml"
    if pyproject.exists():
        content = pyproject.read_text()
        if match := re.search(r'^version\s*=\s*["\']([^"\']+)["\']', content, re.MULTILINE):
            return match.group(1)

    # Fall back to installed metadata
    try:
        return _metadata_version("testweaver")
    except Exception:
        return "0.0.0"


__version__ = _get_version()

__all__ = [
    "__version__",
    "ir",
    "TestweaverError",
    "ParseError",
    "ValidationError",
    "GenerationError",
    "ConfigError",
]
