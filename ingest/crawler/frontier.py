"""Two-tier crawl frontier with visited-set and bound enforcement."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from .types import FrontierEntry
from .url import FilteredUrl


class EnqueueStatus(str, Enum):
    """Result status for frontier enqueue attempts."""

    ENQUEUED = "enqueued"
    ENQUEUED_PRIORITY = "enqueued_priority"
    SKIPPED_VISITED = "skipped_visited"
    SKIPPED_DEPTH = "skipped_depth"


@dataclass(frozen=True, slots=True)
class EnqueueResult:
    """Outcome of one enqueue attempt."""

    status: EnqueueStatus
    url: str
    entry: FrontierEntry | None = None

    @property
    def accepted(self) -> bool:
        return self.status in {EnqueueStatus.ENQUEUED, EnqueueStatus.ENQUEUED_PRIORITY}


class Frontier:
    """Breadth-first frontier with a priority tier, scoped to one job.

    - `pop` serves the priority queue before the normal queue.
    - A URL is marked visited when popped; visited URLs are never returned
      again, which is the only cycle-prevention mechanism.
    - Entries deeper than `max_depth` are skipped without counting.
    - The walk ends once `max_pages` documents were accepted or both queues
      are empty.

    Not thread-safe: each job drives its own frontier from a single loop.
    """

    def __init__(self, *, max_pages: int, max_depth: int) -> None:
        if max_pages <= 0:
            raise ValueError("max_pages must be > 0")
        if max_depth < 0:
            raise ValueError("max_depth must be >= 0")

        self.max_pages = max_pages
        self.max_depth = max_depth

        self._priority: deque[FrontierEntry] = deque()
        self._normal: deque[FrontierEntry] = deque()
        self._visited: set[str] = set()
        self._fetched_count = 0

        self._enqueued_count = 0
        self._enqueued_priority_count = 0
        self._dequeued_count = 0
        self._skipped_visited_count = 0
        self._skipped_depth_count = 0

    def seed(self, url: str) -> EnqueueResult:
        """Enqueue the job seed as a depth-0 normal entry."""

        return self.push(url, depth=0, priority=False)

    def push(
        self,
        url: str,
        *,
        depth: int,
        priority: bool = False,
        referrer: str | None = None,
    ) -> EnqueueResult:
        if url in self._visited:
            self._skipped_visited_count += 1
            return EnqueueResult(EnqueueStatus.SKIPPED_VISITED, url)

        if depth > self.max_depth:
            self._skipped_depth_count += 1
            return EnqueueResult(EnqueueStatus.SKIPPED_DEPTH, url)

        entry = FrontierEntry(url=url, depth=depth, priority=priority, referrer=referrer)
        if priority:
            self._priority.append(entry)
            self._enqueued_priority_count += 1
            status = EnqueueStatus.ENQUEUED_PRIORITY
        else:
            self._normal.append(entry)
            status = EnqueueStatus.ENQUEUED
        self._enqueued_count += 1
        return EnqueueResult(status, url, entry)

    def push_many(
        self,
        links: Iterable[FilteredUrl],
        *,
        depth: int,
        referrer: str | None = None,
    ) -> list[EnqueueResult]:
        """Enqueue filtered links, preserving discovery order within each tier."""

        return [
            self.push(link.url, depth=depth, priority=link.priority, referrer=referrer)
            for link in links
        ]

    def pop(self) -> FrontierEntry | None:
        """Return the next entry to fetch, or `None` when the walk is over."""

        while not self.exhausted:
            if self._priority:
                entry = self._priority.popleft()
            elif self._normal:
                entry = self._normal.popleft()
            else:
                return None

            if entry.url in self._visited:
                self._skipped_visited_count += 1
                continue
            if entry.depth > self.max_depth:
                self._skipped_depth_count += 1
                continue

            self._visited.add(entry.url)
            self._dequeued_count += 1
            return entry

        return None

    def mark_visited(self, url: str) -> None:
        """Record a URL reached without popping it, e.g. a redirect target."""

        self._visited.add(url)

    def record_accepted(self) -> None:
        """Count one accepted document against `max_pages`."""

        self._fetched_count += 1

    @property
    def fetched_count(self) -> int:
        return self._fetched_count

    @property
    def exhausted(self) -> bool:
        return self._fetched_count >= self.max_pages

    @property
    def done(self) -> bool:
        return self.exhausted or self.empty()

    def empty(self) -> bool:
        return not self._priority and not self._normal

    def qsize(self) -> int:
        return len(self._priority) + len(self._normal)

    def is_visited(self, url: str) -> bool:
        return url in self._visited

    def visited_urls(self) -> set[str]:
        """Return snapshot of URLs popped so far."""

        return set(self._visited)

    def snapshot(self) -> dict[str, int | bool]:
        """Return frontier counters for logs/stats reporting."""

        return {
            "exhausted": self.exhausted,
            "priority_queue_size": len(self._priority),
            "normal_queue_size": len(self._normal),
            "visited_urls": len(self._visited),
            "fetched_count": self._fetched_count,
            "enqueued": self._enqueued_count,
            "enqueued_priority": self._enqueued_priority_count,
            "dequeued": self._dequeued_count,
            "skipped_visited": self._skipped_visited_count,
            "skipped_depth": self._skipped_depth_count,
        }


__all__ = [
    "EnqueueResult",
    "EnqueueStatus",
    "Frontier",
]
