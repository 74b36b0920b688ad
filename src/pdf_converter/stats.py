from __future__ import annotations

from dataclasses import dataclass, field
from threading import Lock
from typing import Any

from .models import ConversionResult


@dataclass(frozen=True, slots=True)
class StatsSnapshot:
    total: int = 0
    successful: int = 0
    failed: int = 0
    by_strategy: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "successful": self.successful,
            "failed": self.failed,
            "by_strategy": dict(self.by_strategy),
        }


class ConversionStats:
    """Process-wide conversion counters, safe to share between worker threads.

    One instance is created at startup and injected wherever conversions are
    recorded. Counters start at zero and are never reset.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._total = 0
        self._successful = 0
        self._failed = 0
        self._by_strategy: dict[str, int] = {}

    def record(self, result: ConversionResult) -> None:
        with self._lock:
            self._total += 1
            if result.succeeded:
                self._successful += 1
                if result.strategy_used is not None:
                    key = result.strategy_used.value
                    self._by_strategy[key] = self._by_strategy.get(key, 0) + 1
            else:
                self._failed += 1

    def snapshot(self) -> StatsSnapshot:
        with self._lock:
            return StatsSnapshot(
                total=self._total,
                successful=self._successful,
                failed=self._failed,
                by_strategy=dict(self._by_strategy),
            )


__all__ = ["StatsSnapshot", "ConversionStats"]
