"""
IR persistence.

The IR is rebuilt on every scan; a saved copy is a cache for inspection
or for generating without re-scanning. JSON is the default format, YAML
is chosen by a ``.yaml`` / ``.yml`` suffix.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from ..generators.writer import write_if_changed
from .errors import ParseError
from .ir import TestIR

YAML_SUFFIXES = (".yaml", ".yml")


def ir_to_dict(ir: TestIR) -> dict[str, Any]:
    """Serialize an IR into JSON-compatible data with camelCase keys."""
    return ir.model_dump(mode="json", by_alias=True, exclude_none=True)


def ir_to_json(ir: TestIR) -> str:
    return json.dumps(ir_to_dict(ir), indent=2, ensure_ascii=False) + "\n"


def ir_to_yaml(ir: TestIR) -> str:
    return yaml.safe_dump(
        ir_to_dict(ir),
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True,
    )


def ir_from_dict(data: Any, origin: str = "<data>") -> TestIR:
    """
    Build an IR from loaded data.

    Raises:
        ParseError: If the data does not describe an IR document
    """
    try:
        return TestIR.model_validate(data)
    except PydanticValidationError as e:
        raise ParseError(f"Invalid IR document in {origin}: {e}") from e


def is_yaml_path(path: Path) -> bool:
    return Path(path).suffix.lower() in YAML_SUFFIXES


def dump_ir(ir: TestIR, path: Path | None = None) -> str:
    """Render an IR in the format implied by ``path`` (JSON when None)."""
    if path is not None and is_yaml_path(path):
        return ir_to_yaml(ir)
    return ir_to_json(ir)


def save_ir(ir: TestIR, path: Path) -> bool:
    """
    Save an IR to disk.

    Returns:
        True if the file changed
    """
    return write_if_changed(Path(path), dump_ir(ir, path))


def load_ir(path: Path) -> TestIR:
    """
    Load an IR saved by ``save_ir``.

    Raises:
        OSError: If the file cannot be read
        ParseError: If the file is not a valid IR document
    """
    path = Path(path)
    content = path.read_text(encoding="utf-8")
    try:
        if is_yaml_path(path):
            data = yaml.safe_load(content)
        else:
            data = json.loads(content)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ParseError(f"Failed to parse IR file {path}: {e}") from e
    return ir_from_dict(data, str(path))
