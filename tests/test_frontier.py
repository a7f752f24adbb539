"""Tests for ingest.crawler.frontier ordering and bounds."""

from __future__ import annotations

import pytest

from ingest.crawler.frontier import EnqueueStatus, Frontier
from ingest.crawler.url import FilteredUrl


def _drain(frontier: Frontier) -> list[str]:
    urls = []
    while (entry := frontier.pop()) is not None:
        urls.append(entry.url)
    return urls


def test_initial_state_is_single_seed():
    frontier = Frontier(max_pages=5, max_depth=2)
    result = frontier.seed("https://g.pl/")

    assert result.accepted
    assert frontier.qsize() == 1
    entry = frontier.pop()
    assert entry.url == "https://g.pl/"
    assert entry.depth == 0
    assert frontier.pop() is None


def test_priority_tier_is_served_first_in_fifo_order():
    frontier = Frontier(max_pages=10, max_depth=2)
    frontier.push_many(
        [
            FilteredUrl("https://g.pl/kontakt"),
            FilteredUrl("https://g.pl/aktualnosci/1", priority=True),
            FilteredUrl("https://g.pl/o-gminie"),
            FilteredUrl("https://g.pl/aktualnosci/2", priority=True),
        ],
        depth=1,
    )

    assert _drain(frontier) == [
        "https://g.pl/aktualnosci/1",
        "https://g.pl/aktualnosci/2",
        "https://g.pl/kontakt",
        "https://g.pl/o-gminie",
    ]


def test_visited_urls_are_never_returned_again():
    frontier = Frontier(max_pages=10, max_depth=3)
    frontier.seed("https://g.pl/")
    frontier.pop()

    result = frontier.push("https://g.pl/", depth=1)

    assert result.status == EnqueueStatus.SKIPPED_VISITED
    assert frontier.pop() is None


def test_duplicate_pending_entries_are_skipped_at_pop():
    frontier = Frontier(max_pages=10, max_depth=3)
    frontier.push("https://g.pl/a", depth=1)
    frontier.push("https://g.pl/a", depth=1, priority=True)

    assert _drain(frontier) == ["https://g.pl/a"]
    assert frontier.snapshot()["skipped_visited"] == 1


def test_entries_beyond_max_depth_are_rejected():
    frontier = Frontier(max_pages=10, max_depth=1)

    assert frontier.push("https://g.pl/a", depth=1).accepted
    assert frontier.push("https://g.pl/b", depth=2).status == EnqueueStatus.SKIPPED_DEPTH
    assert _drain(frontier) == ["https://g.pl/a"]


def test_walk_ends_once_max_pages_accepted():
    frontier = Frontier(max_pages=2, max_depth=3)
    for index in range(5):
        frontier.push(f"https://g.pl/{index}", depth=1)

    frontier.pop()
    frontier.record_accepted()
    frontier.pop()
    frontier.record_accepted()

    assert frontier.exhausted
    assert frontier.done
    assert frontier.pop() is None
    assert frontier.qsize() == 3


def test_unaccepted_pops_do_not_count_against_max_pages():
    frontier = Frontier(max_pages=1, max_depth=3)
    for index in range(3):
        frontier.push(f"https://g.pl/{index}", depth=1)

    assert len(_drain(frontier)) == 3
    assert frontier.fetched_count == 0


def test_snapshot_counters():
    frontier = Frontier(max_pages=3, max_depth=1)
    frontier.seed("https://g.pl/")
    frontier.push("https://g.pl/aktualnosci", depth=1, priority=True)
    frontier.push("https://g.pl/gleboko", depth=2)
    frontier.pop()

    snapshot = frontier.snapshot()

    assert snapshot["enqueued"] == 2
    assert snapshot["enqueued_priority"] == 1
    assert snapshot["skipped_depth"] == 1
    assert snapshot["dequeued"] == 1
    assert snapshot["visited_urls"] == 1
    assert frontier.is_visited("https://g.pl/aktualnosci")


@pytest.mark.parametrize("kwargs", [{"max_pages": 0, "max_depth": 1}, {"max_pages": 1, "max_depth": -1}])
def test_invalid_bounds(kwargs):
    with pytest.raises(ValueError):
        Frontier(**kwargs)
