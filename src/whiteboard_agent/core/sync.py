"""realtime broadcast and durable persistence collaborators.

both are fire-and-forget from the executor's point of view: it calls them
after the local mutation and never waits on or inspects the outcome.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable, Protocol, runtime_checkable

from .models import Shape


logger = logging.getLogger(__name__)

UPSERT_EVENT = "shape:upsert"
REMOVE_EVENT = "shape:remove"


@runtime_checkable
class BroadcastChannel(Protocol):
    """pub/sub topic shared by every peer in a room."""

    def send(self, event: str, payload: Any) -> None:
        ...


@runtime_checkable
class PersistenceBackend(Protocol):
    """durable shape table keyed by id."""

    def upsert(self, rows: list[dict]) -> None:
        ...

    def delete(self, shape_id: str) -> None:
        ...

    def load(self) -> list[dict]:
        ...


Subscriber = Callable[[str, Any], None]


class InMemoryChannel:
    """in-process channel: fans events out to subscribed peers.

    a store that hears its own echo ignores it (same updated_at).
    """

    def __init__(self, topic: str = "room:local"):
        self.topic = topic
        self.sent: list[tuple[str, Any]] = []  # everything sent, for inspection
        self._subscribers: list[Subscriber] = []

    def subscribe(self, handler: Subscriber) -> None:
        self._subscribers.append(handler)

    def send(self, event: str, payload: Any) -> None:
        self.sent.append((event, payload))
        for handler in self._subscribers:
            handler(event, payload)


def store_subscriber(store) -> Subscriber:
    """handler that applies peer events to a ShapeStore."""

    def handle(event: str, payload: Any) -> None:
        if event == UPSERT_EVENT:
            store.receive_upsert(payload)
        elif event == REMOVE_EVENT:
            store.receive_remove(payload)

    return handle


class MemoryBackend:
    """persistence that only keeps rows in a dict."""

    def __init__(self) -> None:
        self.rows: dict[str, dict] = {}

    def upsert(self, rows: list[dict]) -> None:
        for row in rows:
            self.rows[row["id"]] = dict(row)

    def delete(self, shape_id: str) -> None:
        self.rows.pop(shape_id, None)

    def load(self) -> list[dict]:
        return list(self.rows.values())


class JsonFileBackend(MemoryBackend):
    """shape table stored as one json file per room.

    upsert is on conflict id; the whole table is rewritten on every change.
    """

    def __init__(self, path: Path):
        super().__init__()
        self.path = path
        if path.exists():
            self.rows = {row["id"]: row for row in self._read()}

    def _read(self) -> list[dict]:
        try:
            with open(self.path) as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.warning(f"ignoring unreadable shape file {self.path}: {e}")
            return []
        return data.get("shapes", []) if isinstance(data, dict) else []

    def _write(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump({"shapes": list(self.rows.values())}, f, indent=2)

    def upsert(self, rows: list[dict]) -> None:
        super().upsert(rows)
        self._write()

    def delete(self, shape_id: str) -> None:
        super().delete(shape_id)
        self._write()


def fire_and_forget(label: str, action: Callable[[], Any]) -> None:
    """run a side effect, logging (not raising) its failure."""
    try:
        action()
    except Exception as e:
        logger.warning(f"{label} failed: {e}")


def restore_shapes(store, backend: PersistenceBackend) -> int:
    """load saved rows into a store, skipping unreadable ones; returns how many."""
    shapes = []
    for row in backend.load():
        try:
            shapes.append(Shape.from_dict(row))
        except (KeyError, ValueError, TypeError) as e:
            logger.warning(f"skipping unreadable shape row: {e}")
    store.upsert_many(shapes)
    return len(shapes)
