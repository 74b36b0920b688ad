from __future__ import annotations

import json
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path
from threading import Lock
from typing import Any


@dataclass(slots=True)
class RunLogEntry:
    request_id: str
    document_class: str
    status: str
    attempts: list[str]
    strategy: str | None
    error_kind: str | None
    page_count: int
    input_bytes: int
    output_bytes: int
    duration_ms: float
    warnings: list[str] = field(default_factory=list)
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class RunLogger:
    """Append-only JSONL log with one line per completed request."""

    def __init__(self, log_file: Path) -> None:
        self._log_file = log_file
        self._lock = Lock()

    @property
    def path(self) -> Path:
        return self._log_file

    def append(self, entry: RunLogEntry) -> None:
        line = json.dumps(entry.to_dict(), ensure_ascii=False)
        with self._lock:
            self._log_file.parent.mkdir(parents=True, exist_ok=True)
            with self._log_file.open("a", encoding="utf-8") as handle:
                handle.write(line + "\n")


def read_entries(log_file: Path) -> list[dict[str, Any]]:
    if not log_file.exists():
        return []
    with log_file.open("r", encoding="utf-8") as handle:
        return [json.loads(line) for line in handle if line.strip()]


__all__ = ["RunLogEntry", "RunLogger", "read_entries"]
