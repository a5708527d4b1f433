"""
Tests for `domain/lifecycle.py`.

Covers contract rules:
- Appending is a set-union keyed by event id.
- Timestamps produced by next_event are strictly increasing within a log.
- Chronology is derived from timestamps, not from stored order.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from domain.lifecycle import LifecycleAction, LifecycleEvent, LifecycleLog

T0 = datetime(2025, 3, 1, 10, 0, 0, tzinfo=timezone.utc)


def test_append_adds_exactly_one_event() -> None:
    """Verify append returns a new log with one more event and leaves the original untouched."""

    log = LifecycleLog()
    grown = log.append(LifecycleAction.CREATED, "Number added.", "Asha", T0)

    assert len(log) == 0
    assert len(grown) == 1
    assert grown.events[0].action == "Created"
    assert grown.events[0].performed_by == "Asha"


def test_reappending_known_event_is_noop() -> None:
    """Verify an event with a known id is not added twice."""

    log = LifecycleLog().append(LifecycleAction.CREATED, "Number added.", "Asha", T0)
    event = log.events[0]

    assert log.with_event(event) is log
    assert len(LifecycleLog.of([event, event])) == 1


def test_next_event_is_strictly_after_newest() -> None:
    """Verify an event stamped at (or before) the newest event is bumped past it."""

    log = LifecycleLog().append(LifecycleAction.CREATED, "Number added.", "Asha", T0)

    same_instant = log.next_event(LifecycleAction.SOLD, "Sold.", "Asha", T0)
    earlier = log.next_event(LifecycleAction.SOLD, "Sold.", "Asha", T0 - timedelta(hours=1))

    assert same_instant.timestamp > T0
    assert earlier.timestamp > T0


def test_chronology_ignores_stored_order() -> None:
    """Verify chronological() and newest_first() sort by timestamp."""

    late = LifecycleEvent("b", "Sold", "Sold.", T0 + timedelta(days=1), "Asha")
    early = LifecycleEvent("a", "Created", "Added.", T0, "Asha")
    log = LifecycleLog.of([late, early])

    assert [e.event_id for e in log.chronological()] == ["a", "b"]
    assert [e.event_id for e in log.newest_first()] == ["b", "a"]


def test_event_timestamp_must_be_utc() -> None:
    """Verify events reject naive and non-UTC timestamps."""

    with pytest.raises(ValueError):
        LifecycleEvent("a", "Created", "Added.", datetime(2025, 1, 1), "Asha")

    with pytest.raises(ValueError):
        LifecycleEvent("a", "Created", "Added.", datetime(2025, 1, 1, tzinfo=timezone(timedelta(hours=5, minutes=30))), "Asha")
