"""
Project configuration.

Looked up in the project root, first match wins:

    testweaver.toml
    .testweaver.toml
    pyproject.toml  ([tool.testweaver] table)

Example testweaver.toml:

    source_globs = ["src/**/*.tsx", "src/**/*.vue"]
    exclude = ["src/legacy/**"]
    output_dir = "__generated__"
    ir_file = "__generated__/testweaver.ir.json"
    strict = false
    jobs = 4

    [[generators]]
    name = "vitest"
    output_dir = "vitest"

    [[generators]]
    name = "playwright-python"
    output_dir = "e2e-py"
    enabled = true
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from .errors import ConfigError

CONFIG_FILENAMES = ("testweaver.toml", ".testweaver.toml")
PYPROJECT_FILENAME = "pyproject.toml"

DEFAULT_SOURCE_GLOBS = ["src/**/*.tsx", "src/**/*.jsx"]
DEFAULT_OUTPUT_DIR = "__generated__"


@dataclass
class GeneratorConfig:
    """One generator to run and where its files go (relative to output_dir)."""

    name: str
    output_dir: str
    enabled: bool = True


def _default_generators() -> list[GeneratorConfig]:
    return [
        GeneratorConfig(name="vitest", output_dir="vitest"),
        GeneratorConfig(name="playwright", output_dir="e2e"),
    ]


@dataclass
class TestweaverConfig:
    """Resolved configuration for one run."""

    __test__ = False

    source_globs: list[str] = field(default_factory=lambda: list(DEFAULT_SOURCE_GLOBS))
    exclude: list[str] = field(default_factory=list)
    output_dir: str = DEFAULT_OUTPUT_DIR
    ir_file: str | None = None
    strict: bool = False
    jobs: int = 1
    generators: list[GeneratorConfig] = field(default_factory=_default_generators)
    config_path: Path | None = None  # where this was loaded from, None for defaults

    @property
    def enabled_generators(self) -> list[GeneratorConfig]:
        return [g for g in self.generators if g.enabled]


def _expect(value: Any, kind: type | tuple[type, ...], key: str, origin: Path) -> Any:
    if isinstance(value, bool) and kind is int:
        raise ConfigError(f"{origin}: '{key}' must be an integer")
    if not isinstance(value, kind):
        names = kind.__name__ if isinstance(kind, type) else " or ".join(k.__name__ for k in kind)
        raise ConfigError(f"{origin}: '{key}' must be {names}, got {type(value).__name__}")
    return value


def _string_list(value: Any, key: str, origin: Path) -> list[str]:
    _expect(value, list, key, origin)
    for item in value:
        _expect(item, str, f"{key}[]", origin)
    return list(value)


def config_from_dict(data: dict[str, Any], origin: Path) -> TestweaverConfig:
    """
    Build a config from a parsed TOML table.

    Raises:
        ConfigError: If a value has the wrong type
    """
    config = TestweaverConfig(config_path=origin)

    if "source_globs" in data:
        config.source_globs = _string_list(data["source_globs"], "source_globs", origin)
    if "exclude" in data:
        config.exclude = _string_list(data["exclude"], "exclude", origin)
    if "output_dir" in data:
        config.output_dir = _expect(data["output_dir"], str, "output_dir", origin)
    if "ir_file" in data:
        config.ir_file = _expect(data["ir_file"], str, "ir_file", origin)
    if "strict" in data:
        config.strict = _expect(data["strict"], bool, "strict", origin)
    if "jobs" in data:
        config.jobs = max(1, _expect(data["jobs"], int, "jobs", origin))

    if "generators" in data:
        generators_data = _expect(data["generators"], list, "generators", origin)
        generators = []
        for entry in generators_data:
            _expect(entry, dict, "generators[]", origin)
            name = _expect(entry.get("name"), str, "generators[].name", origin)
            generators.append(
                GeneratorConfig(
                    name=name,
                    output_dir=_expect(
                        entry.get("output_dir", name), str, "generators[].output_dir", origin
                    ),
                    enabled=_expect(entry.get("enabled", True), bool, "generators[].enabled", origin),
                )
            )
        config.generators = generators

    return config


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e


def load_config(path: Path) -> TestweaverConfig:
    """
    Load configuration from an explicit file.

    A ``pyproject.toml`` is read from its ``[tool.testweaver]`` table.

    Raises:
        ConfigError: If the file is missing, unreadable or invalid
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")
    data = _read_toml(path)
    if path.name == PYPROJECT_FILENAME:
        data = data.get("tool", {}).get("testweaver", {})
    return config_from_dict(data, path)


def find_config(root: Path) -> Path | None:
    """Find the config file for a project root, or None."""
    for name in CONFIG_FILENAMES:
        candidate = root / name
        if candidate.is_file():
            return candidate
    pyproject = root / PYPROJECT_FILENAME
    if pyproject.is_file() and "testweaver" in _read_toml(pyproject).get("tool", {}):
        return pyproject
    return None


def load_project_config(root: Path, explicit: Path | None = None) -> TestweaverConfig:
    """
    Resolve the configuration for a project.

    Args:
        root: Project root to search
        explicit: Path given with --config; must exist when set

    Returns:
        Loaded config, or defaults when no config file exists
    """
    if explicit is not None:
        return load_config(explicit)
    found = find_config(root)
    if found is None:
        return TestweaverConfig()
    return load_config(found)


def merge_cli_overrides(
    config: TestweaverConfig,
    *,
    source_globs: list[str] | None = None,
    output_dir: str | None = None,
    ir_file: str | None = None,
    strict: bool | None = None,
    jobs: int | None = None,
    generators: list[str] | None = None,
) -> TestweaverConfig:
    """
    Apply command-line options on top of a loaded config.

    Options left as None keep the file value. ``generators`` restricts the
    run to the named generators, adding any that the config does not list.
    """
    updates: dict[str, Any] = {}
    if source_globs:
        updates["source_globs"] = list(source_globs)
    if output_dir is not None:
        updates["output_dir"] = output_dir
    if ir_file is not None:
        updates["ir_file"] = ir_file
    if strict is not None:
        updates["strict"] = strict
    if jobs is not None:
        updates["jobs"] = max(1, jobs)
    if generators:
        known = {g.name: g for g in config.generators}
        updates["generators"] = [
            replace(known[name], enabled=True)
            if name in known
            else GeneratorConfig(name=name, output_dir=name)
            for name in generators
        ]
    return replace(config, **updates)
