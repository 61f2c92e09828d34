"""Tests for round-robin source selection."""
from datetime import datetime, timedelta, timezone

from conftest import make_source

from pulsereader.pipeline.scheduler import select_sources

BASE = datetime(2024, 5, 1, tzinfo=timezone.utc)


def test_never_fetched_sources_come_first():
    sources = [
        make_source(1, "Old", last_fetched_at=BASE),
        make_source(2, "New"),
        make_source(3, "Older", last_fetched_at=BASE - timedelta(hours=1)),
    ]

    selected = select_sources(sources, 3)

    assert [s.id for s in selected] == [2, 3, 1]


def test_ties_broken_by_name():
    sources = [make_source(1, "Zeta"), make_source(2, "Alpha")]

    assert [s.name for s in select_sources(sources, 2)] == ["Alpha", "Zeta"]


def test_caps_to_max_sources_and_skips_inactive():
    sources = [
        make_source(1, "A", is_active=False),
        make_source(2, "B", last_fetched_at=BASE),
        make_source(3, "C", last_fetched_at=BASE + timedelta(minutes=5)),
    ]

    selected = select_sources(sources, 1)

    assert [s.id for s in selected] == [2]


def test_naive_and_aware_timestamps_compare():
    sources = [
        make_source(1, "Aware", last_fetched_at=BASE),
        make_source(2, "Naive", last_fetched_at=datetime(2024, 4, 30)),
    ]

    assert [s.id for s in select_sources(sources, 2)] == [2, 1]


def test_rotation_covers_every_source():
    """Marking the chosen source fetched moves the next one to the front."""
    sources = {i: make_source(i, f"S{i}") for i in range(1, 4)}
    seen = []
    now = BASE

    for _ in range(3):
        chosen = select_sources(sources.values(), 1)[0]
        seen.append(chosen.id)
        now += timedelta(minutes=15)
        sources[chosen.id] = chosen.model_copy(update={"last_fetched_at": now})

    assert sorted(seen) == [1, 2, 3]
