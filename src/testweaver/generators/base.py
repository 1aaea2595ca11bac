"""
Base class for test generators.

A generator turns one case into the text of one test file. Generation is
a pure function of the suite it is given: no clock, no file system, no
randomness, so regenerating unchanged input yields identical bytes.
Writing the text out is left to ``writer.write_if_changed``.

Each file starts with a machine-readable provenance line:

    // testweaver: {"case": "login__happy-path", "context": "login", ...}

and every step / expectation is preceded by a comment naming its id and
source location.
"""

from __future__ import annotations

import json
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from ..core.errors import make_generation_error
from ..core.ir import Case, Expectation, ExpectType, Step, Suite

TEST_ID_ATTRIBUTE = "data-test-id"
PROVENANCE_TAG = "testweaver:"

_UNSAFE_NAME_CHARS = re.compile(r"[\\/]")

# skipped by every generator when the expectation has no selector
NEGATIVE_EXPECTATIONS = frozenset({ExpectType.NOT_VISIBLE, ExpectType.NOT_EXISTS})


def js_string(value: Any) -> str:
    """Render a value as a double-quoted JS (and Python) string literal."""
    return json.dumps(value_text(value), ensure_ascii=False)


def value_text(value: Any) -> str:
    """Directive values as text; structured JSON values keep their JSON form."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False, sort_keys=True)


def regex_escape(text: str) -> str:
    """Escape text for use inside a JS regex literal."""
    return re.sub(r"([\\^$.*+?()\[\]{}|/-])", r"\\\1", text)


def split_aria(value: Any) -> tuple[str, str | None]:
    """Split an aria expectation value "live:polite" into ("aria-live", "polite")."""
    name, sep, expected = value_text(value).partition(":")
    name = name.strip()
    if not name.startswith("aria-"):
        name = f"aria-{name}"
    return name, expected.strip() if sep else None


class Generator(ABC):
    """
    Base class for all test generators.

    Subclasses set ``name``, ``extension`` and ``comment_prefix`` and
    implement ``render``.
    """

    name: str = ""
    extension: str = ""
    description: str = ""
    comment_prefix: str = "//"

    def __init__(self, test_id_attribute: str = TEST_ID_ATTRIBUTE, import_root: str = "../.."):
        """
        Initialize generator.

        Args:
            test_id_attribute: Attribute the runner resolves test ids against
            import_root: Path from the generated file's directory to the
                source root, used where a test imports the component under test
        """
        self.test_id_attribute = test_id_attribute
        self.import_root = import_root.rstrip("/") or "."

    def generate(self, suite: Suite) -> str:
        """
        Generate test file text for a suite holding exactly one case.

        Raises:
            GenerationError: If the suite holds zero or several cases
        """
        if len(suite.cases) != 1:
            # point at the first surplus case
            extra = suite.cases[1].origin if len(suite.cases) > 1 else None
            raise make_generation_error(
                f"Generator '{self.name}' expects a suite with exactly one case; "
                f"suite '{suite.id}' has {len(suite.cases)}",
                file=Path(extra.file_path) if extra else None,
                line=extra.line if extra else None,
                column=extra.column if extra else None,
            )
        return self.render(suite, suite.cases[0])

    @abstractmethod
    def render(self, suite: Suite, case: Case) -> str:
        """Render the file for one case."""
        pass

    def file_name(self, case: Case) -> str:
        """Output file name: ``{context}.{scenario}{extension}``."""
        context = _UNSAFE_NAME_CHARS.sub("-", case.context)
        scenario = _UNSAFE_NAME_CHARS.sub("-", case.scenario)
        return f"{context}.{scenario}{self.extension}"

    def provenance_header(self, case: Case) -> str:
        origin = case.origin
        payload = {
            "case": case.id,
            "context": case.context,
            "scenario": case.scenario,
            "source": str(origin) if origin else None,
        }
        return f"{self.comment_prefix} {PROVENANCE_TAG} {json.dumps(payload, ensure_ascii=False)}"

    def provenance_comment(self, item: Step | Expectation) -> str:
        if item.source is None:
            return f"{self.comment_prefix} {item.id}"
        return f"{self.comment_prefix} {item.id} @ {item.source}"

    def comment(self, text: str) -> str:
        # keep generated comments on one line
        return f"{self.comment_prefix} {' '.join(text.split())}"


def read_provenance(text: str) -> dict[str, Any] | None:
    """Parse the provenance payload from the first line of a generated file."""
    first_line = text.split("\n", 1)[0]
    _, tag, payload = first_line.partition(PROVENANCE_TAG)
    if not tag:
        return None
    try:
        data = json.loads(payload)
    except ValueError:
        return None
    return data if isinstance(data, dict) else None
