"""
Cross-file merger.

Combines per-file suites into one IR document. Suites merge by context;
cases merge by id with the first-seen definition kept whole.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime
from pathlib import Path

from .errors import ParseError
from .ir import Suite, TestIR
from .scanner import relative_source_path, scan_file

logger = logging.getLogger(__name__)


def merge_suites(
    suites_per_file: Iterable[list[Suite]],
    source_root: str | Path,
    generated_at: datetime | None = None,
) -> TestIR:
    """
    Merge the suites of several files into one TestIR.

    Files are consumed in the given order, which decides which duplicate
    case wins.
    """
    merged: dict[str, Suite] = {}

    for suites in suites_per_file:
        for suite in suites:
            target = merged.get(suite.context)
            if target is None:
                merged[suite.context] = suite.model_copy(deep=True)
                continue

            known_files = {ref.file_path for ref in target.source_files}
            for ref in suite.source_files:
                if ref.file_path not in known_files:
                    target.source_files.append(ref)
                    known_files.add(ref.file_path)

            known_cases = {case.id: case for case in target.cases}
            for case in suite.cases:
                first = known_cases.get(case.id)
                if first is not None:
                    logger.info(
                        f"Duplicate case '{case.id}' at {case.origin}; "
                        f"keeping the definition from {first.origin}"
                    )
                    continue
                target.cases.append(case.model_copy(deep=True))
                known_cases[case.id] = case

    return TestIR(
        generated_at=generated_at or datetime.now(UTC),
        source_root=Path(source_root).as_posix(),
        suites=list(merged.values()),
    )


def _scan_one(path: Path, source_root: Path) -> list[Suite]:
    try:
        return scan_file(path, source_root)
    except (ParseError, OSError, RecursionError) as e:
        logger.error(f"Failed to scan {relative_source_path(path, source_root)}: {e}")
        return []


def scan_files(
    paths: Sequence[Path],
    source_root: Path,
    jobs: int = 1,
    generated_at: datetime | None = None,
) -> TestIR:
    """
    Scan files and merge their suites.

    Args:
        paths: Files to scan; their order decides first-seen precedence
        source_root: Root that IR file paths are made relative to
        jobs: Worker threads; results are still consumed in input order
        generated_at: Timestamp to stamp on the IR (defaults to now)

    Returns:
        Merged TestIR. A file that fails to read or parse contributes nothing.
    """
    if jobs > 1 and len(paths) > 1:
        with ThreadPoolExecutor(max_workers=jobs) as executor:
            results = list(executor.map(lambda p: _scan_one(p, source_root), paths))
    else:
        results = [_scan_one(path, source_root) for path in paths]
    return merge_suites(results, source_root, generated_at=generated_at)
