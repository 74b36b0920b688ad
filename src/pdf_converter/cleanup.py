from __future__ import annotations

import logging
import shutil
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SweepReport:
    removed: list[Path] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


class TempSweeper:
    """Background thread deleting stale entries from the conversion temp dir.

    Every ``interval_s`` seconds each direct child of ``temp_dir`` whose
    modification time is older than ``retention_s`` is removed. ``stop()``
    wakes the thread and waits for it to exit.
    """

    def __init__(self, temp_dir: Path, *, retention_s: float = 300, interval_s: float = 300) -> None:
        self._temp_dir = temp_dir
        self._retention_s = retention_s
        self._interval_s = interval_s
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def sweep_once(self, now: float | None = None) -> SweepReport:
        report = SweepReport()
        if not self._temp_dir.exists():
            return report
        cutoff = (now if now is not None else time.time()) - self._retention_s
        for entry in self._temp_dir.iterdir():
            try:
                if entry.stat().st_mtime >= cutoff:
                    continue
                if entry.is_dir() and not entry.is_symlink():
                    shutil.rmtree(entry)
                else:
                    entry.unlink(missing_ok=True)
            except FileNotFoundError:
                # removed concurrently by the request that owned it
                continue
            except OSError as exc:
                logger.warning("Could not remove temp entry %s: %s", entry, exc)
                report.errors.append(f"{entry.name}: {exc}")
                continue
            report.removed.append(entry)
        if report.removed:
            logger.info("Removed %d stale temp entries from %s", len(report.removed), self._temp_dir)
        return report

    def _run(self) -> None:  # pragma: no cover - background thread timing
        while not self._stop.wait(self._interval_s):
            try:
                self.sweep_once()
            except OSError:
                logger.exception("Temp sweep of %s failed", self._temp_dir)

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="temp-sweeper", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def __enter__(self) -> "TempSweeper":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()


__all__ = ["SweepReport", "TempSweeper"]
