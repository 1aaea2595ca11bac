"""
Watch mode.

Polls source files for changes and regenerates the whole project once a
burst of changes has settled. Every pass is a full re-scan: a context can
span several files, so there is no incremental update.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from pathlib import Path

from .core.errors import TestweaverError
from .core.fileset import discover_source_files
from .pipeline import GenerationReport, RunContext, run_pipeline

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE = 0.3  # seconds
DEFAULT_POLL_INTERVAL = 0.5  # seconds


class FileWatcher:
    """
    Watches files for changes using polling (cross-platform compatible).

    The set of files is re-listed on every poll, so new files are seen as
    changes too. Deleted files are forgotten silently.
    """

    def __init__(
        self,
        list_files: Callable[[], list[Path]],
        on_change: Callable[[list[Path]], None],
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        """
        Initialize the file watcher.

        Args:
            list_files: Returns the files to watch; called on every poll
            on_change: Called with the files that are new or modified
            poll_interval: How often to check for changes (seconds)
        """
        self.list_files = list_files
        self.on_change = on_change
        self.poll_interval = poll_interval

        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._file_mtimes: dict[Path, float] = {}

    def start(self) -> None:
        """Start watching for file changes."""
        self._file_mtimes = self._scan_files()
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._watch_loop, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Stop watching for file changes."""
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=2)
            self._thread = None

    def _scan_files(self) -> dict[Path, float]:
        mtimes: dict[Path, float] = {}
        for path in self.list_files():
            try:
                mtimes[path] = path.stat().st_mtime
            except OSError:
                continue  # removed between listing and stat
        return mtimes

    def poll(self) -> list[Path]:
        """Check once for new or modified files and update the baseline."""
        current = self._scan_files()
        changed = [
            path
            for path, mtime in current.items()
            if path not in self._file_mtimes or mtime > self._file_mtimes[path]
        ]
        self._file_mtimes = current
        return changed

    def _watch_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                changed = self.poll()
                if changed:
                    self.on_change(changed)
            except Exception as e:
                logger.error(f"File watcher error: {e}")
            self._stop_event.wait(self.poll_interval)


class WatchSession:
    """
    Regenerates a project whenever its sources change.

    Changes are collected until none arrive for ``debounce`` seconds, then
    one full pipeline run handles the whole batch.
    """

    def __init__(
        self,
        ctx: RunContext,
        debounce: float = DEFAULT_DEBOUNCE,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        on_report: Callable[[GenerationReport], None] | None = None,
    ):
        self.ctx = ctx
        self.debounce = debounce
        self.on_report = on_report

        self._lock = threading.Lock()
        self._pending: set[Path] = set()
        self._last_change_time: float = 0
        self._stop_event = threading.Event()
        self._watcher = FileWatcher(
            list_files=lambda: discover_source_files(ctx.root, ctx.config),
            on_change=self._on_change,
            poll_interval=poll_interval,
        )

    def _on_change(self, paths: list[Path]) -> None:
        with self._lock:
            for path in paths:
                logger.info(f"File changed: {path}")
            self._pending.update(paths)
            self._last_change_time = time.monotonic()

    def take_batch(self, now: float | None = None) -> list[Path]:
        """
        Return and clear pending changes once the debounce window has passed.

        Returns an empty list while changes are still arriving.
        """
        now = time.monotonic() if now is None else now
        with self._lock:
            if not self._pending or now - self._last_change_time < self.debounce:
                return []
            batch = sorted(self._pending)
            self._pending.clear()
            return batch

    def regenerate(self) -> GenerationReport | None:
        """Run one full scan-and-generate pass; errors are logged, not raised."""
        try:
            report = run_pipeline(self.ctx)
        except TestweaverError as e:
            logger.error(f"Regeneration failed: {e}")
            return None
        logger.info(
            f"Regenerated: {len(report.written)} file(s) written, "
            f"{len(report.unchanged)} unchanged"
        )
        if self.on_report:
            self.on_report(report)
        return report

    def run(self) -> None:
        """Generate once, then watch until ``stop()`` or Ctrl-C."""
        self.regenerate()
        self._stop_event.clear()
        self._watcher.start()
        logger.info(f"Watching for changes in: {', '.join(self.ctx.config.source_globs)}")
        try:
            while not self._stop_event.is_set():
                batch = self.take_batch()
                if batch:
                    logger.info(
                        f"Regenerating due to changes in: {', '.join(p.name for p in batch)}"
                    )
                    self.regenerate()
                self._stop_event.wait(self.debounce / 3)
        except KeyboardInterrupt:
            logger.info("Stopping watch mode...")
        finally:
            self._watcher.stop()

    def stop(self) -> None:
        self._stop_event.set()

