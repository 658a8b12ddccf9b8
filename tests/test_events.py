"""Tests for the event bus."""

import json

import pytest

from calorie_optimizer.services.events import EventBus, JsonlEventWriter


def test_events_are_ordered_and_filterable() -> None:
    bus = EventBus()
    bus.emit("attempt", action="search:apple", attempt=1)
    bus.emit("success", action="search:apple", attempt=1)
    bus.emit("attempt", action="get_food:1", attempt=1)

    events = bus.events()

    assert [event.sequence for event in events] == [0, 1, 2]
    assert [event.id for event in events] == ["event_0", "event_1", "event_2"]
    assert len(bus.events("attempt")) == 2
    assert len(bus.events(action="search:apple")) == 2


def test_listeners_receive_events_and_failures_are_isolated() -> None:
    bus = EventBus()
    received: list[str] = []

    def broken(_event) -> None:  # type: ignore[no-untyped-def]
        raise RuntimeError("listener crashed")

    bus.subscribe(broken)
    bus.subscribe(lambda event: received.append(event.type))
    bus.emit("retry", attempt=1)
    bus.unsubscribe(broken)
    bus.emit("success", attempt=2)

    assert received == ["retry", "success"]
    assert len(bus.events()) == 2


def test_snapshot_is_not_live() -> None:
    bus = EventBus()
    snapshot = bus.events()
    bus.emit("attempt")

    assert snapshot == []


def test_jsonl_writer_appends_lines(tmp_path) -> None:
    path = tmp_path / "events.jsonl"
    bus = EventBus()
    bus.subscribe(JsonlEventWriter(path))

    bus.emit("tool_invocation", tool="searchFoods", query="apple")
    bus.emit("success", action="search:apple", attempt=1)

    lines = [json.loads(line) for line in path.read_text().splitlines()]
    assert [line["type"] for line in lines] == ["tool_invocation", "success"]
    assert lines[0]["data"]["query"] == "apple"


def test_history_is_bounded_but_sequence_keeps_counting() -> None:
    bus = EventBus(history_size=3)
    received: list[int] = []
    bus.subscribe(lambda event: received.append(event.sequence))

    for attempt in range(5):
        bus.emit("attempt", attempt=attempt)

    assert [event.sequence for event in bus.events()] == [2, 3, 4]
    assert received == [0, 1, 2, 3, 4]


def test_clear_drops_history_without_resetting_sequence() -> None:
    bus = EventBus()
    bus.emit("attempt")
    bus.emit("success")

    bus.clear()
    event = bus.emit("attempt")

    assert bus.events() == [event]
    assert event.sequence == 2


def test_history_size_must_be_positive() -> None:
    with pytest.raises(ValueError, match="positive"):
        EventBus(history_size=0)
