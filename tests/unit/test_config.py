"""Tests for project configuration loading."""

import re
from pathlib import Path

import pytest

from testweaver.core.config import (
    DEFAULT_SOURCE_GLOBS,
    GeneratorConfig,
    TestweaverConfig,
    find_config,
    load_config,
    load_project_config,
    merge_cli_overrides,
)
from testweaver.core.errors import ConfigError

FULL_CONFIG = """\
source_globs = ["app/**/*.vue"]
exclude = ["app/legacy/**"]
output_dir = "generated"
ir_file = "generated/ir.yaml"
strict = true
jobs = 4

[[generators]]
name = "vitest"
output_dir = "unit"

[[generators]]
name = "playwright-python"
enabled = false
"""


class TestDefaults:
    def test_no_config_file(self, tmp_path: Path) -> None:
        config = load_project_config(tmp_path)
        assert config.source_globs == DEFAULT_SOURCE_GLOBS
        assert config.output_dir == "__generated__"
        assert config.ir_file is None
        assert not config.strict
        assert config.jobs == 1
        assert [(g.name, g.output_dir) for g in config.enabled_generators] == [
            ("vitest", "vitest"),
            ("playwright", "e2e"),
        ]
        assert config.config_path is None

    def test_defaults_are_not_shared(self) -> None:
        first = TestweaverConfig()
        first.source_globs.append("x")
        assert TestweaverConfig().source_globs == DEFAULT_SOURCE_GLOBS


class TestLoading:
    def test_full_file(self, tmp_path: Path) -> None:
        path = tmp_path / "testweaver.toml"
        path.write_text(FULL_CONFIG, encoding="utf-8")

        config = load_project_config(tmp_path)

        assert config.config_path == path
        assert config.source_globs == ["app/**/*.vue"]
        assert config.exclude == ["app/legacy/**"]
        assert config.output_dir == "generated"
        assert config.ir_file == "generated/ir.yaml"
        assert config.strict
        assert config.jobs == 4
        assert config.generators == [
            GeneratorConfig(name="vitest", output_dir="unit"),
            GeneratorConfig(name="playwright-python", output_dir="playwright-python", enabled=False),
        ]
        assert [g.name for g in config.enabled_generators] == ["vitest"]

    def test_lookup_order(self, tmp_path: Path) -> None:
        (tmp_path / "pyproject.toml").write_text('[tool.testweaver]\noutput_dir = "py"\n', encoding="utf-8")
        assert find_config(tmp_path) == tmp_path / "pyproject.toml"
        (tmp_path / ".testweaver.toml").write_text('output_dir = "dot"\n', encoding="utf-8")
        assert find_config(tmp_path) == tmp_path / ".testweaver.toml"
        (tmp_path / "testweaver.toml").write_text('output_dir = "plain"\n', encoding="utf-8")
        assert load_project_config(tmp_path).output_dir == "plain"

    def test_pyproject_table(self, tmp_path: Path) -> None:
        path = tmp_path / "pyproject.toml"
        path.write_text('[project]\nname = "x"\n\n[tool.testweaver]\njobs = 2\n', encoding="utf-8")
        assert load_config(path).jobs == 2

    def test_pyproject_without_table_is_ignored(self, tmp_path: Path) -> None:
        (tmp_path / "pyproject.toml").write_text('[project]\nname = "x"\n', encoding="utf-8")
        assert find_config(tmp_path) is None

    def test_explicit_path_must_exist(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Config file not found"):
            load_project_config(tmp_path, tmp_path / "nope.toml")


class TestInvalidConfig:
    @pytest.mark.parametrize(
        ("content", "message"),
        [
            ('source_globs = "src/*.tsx"', "'source_globs' must be list"),
            ("source_globs = [1]", "'source_globs[]' must be str"),
            ("strict = 1", "'strict' must be bool"),
            ("jobs = true", "'jobs' must be an integer"),
            ("[[generators]]\noutput_dir = \"x\"", "'generators[].name' must be str"),
        ],
    )
    def test_type_errors(self, tmp_path: Path, content: str, message: str) -> None:
        path = tmp_path / "testweaver.toml"
        path.write_text(content + "\n", encoding="utf-8")
        with pytest.raises(ConfigError, match=re.escape(message)):
            load_config(path)

    def test_bad_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "testweaver.toml"
        path.write_text("jobs = = 2\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="Invalid TOML"):
            load_config(path)

    def test_jobs_floor(self, tmp_path: Path) -> None:
        path = tmp_path / "testweaver.toml"
        path.write_text("jobs = 0\n", encoding="utf-8")
        assert load_config(path).jobs == 1


class TestCliOverrides:
    def test_none_keeps_file_values(self) -> None:
        config = TestweaverConfig(output_dir="out", strict=True)
        merged = merge_cli_overrides(config)
        assert merged == config

    def test_values_replace(self) -> None:
        merged = merge_cli_overrides(
            TestweaverConfig(),
            source_globs=["lib/**/*.svelte"],
            output_dir="gen",
            ir_file="gen/ir.json",
            strict=True,
            jobs=0,
        )
        assert merged.source_globs == ["lib/**/*.svelte"]
        assert merged.output_dir == "gen"
        assert merged.ir_file == "gen/ir.json"
        assert merged.strict
        assert merged.jobs == 1

    def test_generator_selection(self) -> None:
        config = TestweaverConfig(
            generators=[
                GeneratorConfig(name="vitest", output_dir="unit"),
                GeneratorConfig(name="playwright", output_dir="e2e", enabled=False),
            ]
        )
        merged = merge_cli_overrides(config, generators=["playwright", "playwright-python"])
        assert merged.generators == [
            GeneratorConfig(name="playwright", output_dir="e2e"),
            GeneratorConfig(name="playwright-python", output_dir="playwright-python"),
        ]
        assert len(config.generators) == 2
