from fnmatch import fnmatch
from pathlib import Path

from .config import TestweaverConfig

ALWAYS_EXCLUDED_DIRS = frozenset({"node_modules", ".git"})


def _is_excluded(rel: Path, patterns: list[str], output_dir: Path) -> bool:
    if any(part in ALWAYS_EXCLUDED_DIRS for part in rel.parts):
        return True
    if rel.parts[: len(output_dir.parts)] == output_dir.parts:
        return True
    posix = rel.as_posix()
    return any(rel.match(pattern) or fnmatch(posix, pattern) for pattern in patterns)


def discover_source_files(root: Path, config: TestweaverConfig) -> list[Path]:
    """Expand the configured source globs under root, minus exclusions."""
    root = root.resolve()
    output_dir = Path(config.output_dir)
    files: list[Path] = []
    for pattern in config.source_globs:
        for p in root.glob(pattern):
            if not p.is_file():
                continue
            if _is_excluded(p.relative_to(root), config.exclude, output_dir):
                continue
            files.append(p)
    return sorted(set(files))
