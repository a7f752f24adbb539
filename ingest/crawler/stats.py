"""Thread-safe crawl job statistics aggregation."""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timezone
import threading
from typing import Any, Iterable, Mapping

from .frontier import EnqueueResult, EnqueueStatus
from .types import FetchOutcome, utc_now_iso


class StatsCollector:
    """Collect diagnostic counters for one crawl job.

    Counters complement `CrawlJobResult`; they are logged at job end and
    stored with the job-log end row, never used for control flow.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._started_at = utc_now_iso()
        self._finished_at: str | None = None

        self._enqueue_counts: dict[str, int] = defaultdict(int)
        self._frontier_snapshot: dict[str, int | bool] = {}

        self._fetch_status_counts: dict[str, int] = defaultdict(int)
        self._fetch_status_code_counts: dict[str, int] = defaultdict(int)
        self._fetch_error_type_counts: dict[str, int] = defaultdict(int)
        self._fetch_elapsed_ms_total = 0
        self._fetch_elapsed_samples = 0

        self._counters: dict[str, int] = defaultdict(int)

    def record_enqueue(self, result_or_status: EnqueueResult | EnqueueStatus) -> None:
        """Record one frontier enqueue outcome."""

        if isinstance(result_or_status, EnqueueResult):
            status = result_or_status.status
        else:
            status = result_or_status

        with self._lock:
            self._enqueue_counts[status.value] += 1

    def record_enqueue_many(self, results: Iterable[EnqueueResult]) -> None:
        for result in results:
            self.record_enqueue(result)

    def record_frontier_snapshot(self, snapshot: Mapping[str, int | bool]) -> None:
        """Attach latest frontier snapshot for diagnostics."""

        with self._lock:
            self._frontier_snapshot = dict(snapshot)

    def record_fetch(self, outcome: FetchOutcome) -> None:
        """Record one fetch outcome."""

        with self._lock:
            self._fetch_status_counts[outcome.status.value] += 1

            if outcome.status_code is not None:
                self._fetch_status_code_counts[str(outcome.status_code)] += 1

            if outcome.reason:
                err_type = outcome.reason.split(":", maxsplit=1)[0].strip() or "Unknown"
                self._fetch_error_type_counts[err_type] += 1

            if outcome.elapsed_ms is not None:
                self._fetch_elapsed_ms_total += int(outcome.elapsed_ms)
                self._fetch_elapsed_samples += 1

    def increment(self, name: str, value: int = 1) -> None:
        """Increment a named counter (pages_parsed, duplicates, ...)."""

        if not name or value == 0:
            return
        with self._lock:
            self._counters[name] += value

    def get(self, name: str) -> int:
        with self._lock:
            return self._counters.get(name, 0)

    def finish(self) -> None:
        with self._lock:
            if self._finished_at is None:
                self._finished_at = utc_now_iso()

    def to_json(self) -> dict[str, Any]:
        """Return a JSON-serializable summary payload."""

        with self._lock:
            start = _parse_iso_utc(self._started_at)
            end = _parse_iso_utc(self._finished_at) if self._finished_at else datetime.now(
                timezone.utc
            )
            duration_seconds = max(0.0, (end - start).total_seconds())

            fetch_elapsed_avg = (
                self._fetch_elapsed_ms_total / self._fetch_elapsed_samples
                if self._fetch_elapsed_samples > 0
                else 0.0
            )

            return {
                "started_at": self._started_at,
                "finished_at": self._finished_at,
                "duration_seconds": duration_seconds,
                "frontier": {
                    "enqueue_status_counts": dict(self._enqueue_counts),
                    "snapshot": dict(self._frontier_snapshot),
                },
                "fetch": {
                    "status_counts": dict(self._fetch_status_counts),
                    "status_code_counts": dict(self._fetch_status_code_counts),
                    "error_type_counts": dict(self._fetch_error_type_counts),
                    "elapsed_ms_total": self._fetch_elapsed_ms_total,
                    "elapsed_ms_samples": self._fetch_elapsed_samples,
                    "elapsed_ms_avg": fetch_elapsed_avg,
                },
                "counters": dict(self._counters),
            }


def _parse_iso_utc(value: str | None) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return datetime.now(timezone.utc)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


__all__ = ["StatsCollector"]
