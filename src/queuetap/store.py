from __future__ import annotations

import os
import threading
from collections import Counter, deque
from typing import Any

import diskcache

from queuetap.models import ConsumedEvent, EventStats


class EventStore:
    """Bounded history of consumed events. Oldest events are evicted first.

    Without a directory the history lives in memory; with one it is kept in a
    diskcache deque so separate processes see the same captured traffic.
    """

    def __init__(self, maxlen: int = 1000, directory: str | None = None) -> None:
        if maxlen <= 0:
            raise ValueError("maxlen must be positive")
        self.maxlen = maxlen
        self._lock = threading.Lock()
        self._items: Any
        if directory:
            self._items = diskcache.Deque(directory=os.path.expanduser(directory))
        else:
            self._items = deque()

    def add(self, event: ConsumedEvent) -> None:
        """Store an event, dropping the oldest ones beyond capacity."""
        with self._lock:
            self._items.append(event.model_dump(mode="json"))
            while len(self._items) > self.maxlen:
                self._items.popleft()

    def snapshot(self) -> list[ConsumedEvent]:
        """Copy of the history, oldest first."""
        with self._lock:
            raw = list(self._items)
        return [ConsumedEvent.model_validate(item) for item in raw]

    def recent(self, limit: int = 10) -> list[ConsumedEvent]:
        if limit <= 0:
            return []
        return self.snapshot()[-limit:]

    def clear(self) -> int:
        """Drop every stored event and return how many there were."""
        with self._lock:
            count = len(self._items)
            self._items.clear()
        return count

    def stats(self) -> EventStats:
        events = self.snapshot()
        successful = sum(1 for e in events if e.processed_successfully)
        json_events = sum(1 for e in events if e.is_json)
        content_types = Counter(e.content_type for e in events if e.content_type)

        first_event = events[0].timestamp if events else None
        last_event = events[-1].timestamp if events else None
        events_per_second: float | None = None
        if first_event is not None and last_event is not None:
            duration = (last_event - first_event).total_seconds()
            if duration > 0:
                events_per_second = len(events) / duration

        return EventStats(
            total=len(events),
            successful=successful,
            failed=len(events) - successful,
            json_events=json_events,
            text_events=len(events) - json_events,
            with_replacements=sum(1 for e in events if e.has_replacements),
            first_event=first_event,
            last_event=last_event,
            events_per_second=events_per_second,
            content_types=dict(content_types.most_common()),
        )

    def close(self) -> None:
        """Close the on-disk history, if any."""
        if isinstance(self._items, diskcache.Deque):
            self._items.cache.close()

    def __enter__(self) -> EventStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
