"""Append-only event stream for observing lookups and completions."""

import json
import logging
from collections import deque
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from pathlib import Path

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Event:
    """Single emitted event."""

    id: str
    sequence: int
    timestamp: datetime
    type: str
    data: dict[str, object]

    def to_payload(self) -> dict[str, object]:
        """Return a JSON-friendly representation."""
        payload = asdict(self)
        payload["timestamp"] = self.timestamp.isoformat()
        return payload


EventListener = Callable[[Event], None]

DEFAULT_HISTORY_SIZE = 1000


@dataclass
class EventBus:
    """Ordered, append-only event log with listener fan-out.

    One bus is created per container and handed to the components that emit.
    Only the latest `history_size` events are kept in memory; sequence numbers
    keep counting past evicted events. Listeners see every event.
    """

    history_size: int = DEFAULT_HISTORY_SIZE
    _events: deque[Event] = field(init=False)
    _listeners: list[EventListener] = field(default_factory=list)
    _next_sequence: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        if self.history_size <= 0:
            raise ValueError("Event history size must be positive")
        self._events = deque(maxlen=self.history_size)

    def subscribe(self, listener: EventListener) -> None:
        """Register a listener called for every later event."""
        self._listeners.append(listener)

    def unsubscribe(self, listener: EventListener) -> None:
        """Remove a previously registered listener."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    def emit(self, event_type: str, **data: object) -> Event:
        """Record an event and notify listeners."""
        sequence = self._next_sequence
        self._next_sequence += 1
        event = Event(
            id=f"event_{sequence}",
            sequence=sequence,
            timestamp=datetime.now(tz=UTC),
            type=event_type,
            data=data,
        )
        self._events.append(event)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                _logger.exception("Event listener failed for %s", event.id)
        return event

    def clear(self) -> None:
        """Drop the retained history; sequence numbers keep counting."""
        self._events.clear()

    def events(self, event_type: str | None = None, **filters: object) -> list[Event]:
        """Return a snapshot of events, optionally filtered by type and data."""
        return [
            event
            for event in self._events
            if (event_type is None or event.type == event_type)
            and all(event.data.get(key) == value for key, value in filters.items())
        ]


@dataclass
class JsonlEventWriter:
    """Listener that appends each event to a JSON lines file."""

    path: Path

    def __call__(self, event: Event) -> None:
        """Append the event as one line."""
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(event.to_payload(), default=str) + "\n")
