"""in-memory shape store: canonical canvas state for one room.

holds shapes, the current selection and bounded undo history. the
interpreter only reads from here; mutation goes through the executor.
"""

from __future__ import annotations

import copy
import logging
import time
from typing import Callable, Iterable, Optional

from .models import Shape


logger = logging.getLogger(__name__)

# --- configuration ---

MAX_UNDO_HISTORY = 50


class ShapeStore:
    """shapes keyed by id, iterated in insertion order."""

    def __init__(self, actor: str = "local", shapes: Optional[Iterable[Shape]] = None):
        self.actor = actor
        self.shapes: dict[str, Shape] = {}
        self.selected_ids: list[str] = []
        self.center_on_shape: Optional[Callable[[Shape], None]] = None
        self._undo_stack: list[dict[str, Shape]] = []
        self._redo_stack: list[dict[str, Shape]] = []
        self._last_timestamp = 0
        self._listeners: list[Callable[[], None]] = []
        for shape in shapes or ():
            self.shapes[shape.id] = shape
            self._last_timestamp = max(self._last_timestamp, shape.updated_at)

    # --- reads ---

    def __len__(self) -> int:
        return len(self.shapes)

    def __contains__(self, shape_id: object) -> bool:
        return shape_id in self.shapes

    @property
    def is_empty(self) -> bool:
        return not self.shapes

    def all(self) -> list[Shape]:
        return list(self.shapes.values())

    def get(self, shape_id: str) -> Optional[Shape]:
        return self.shapes.get(shape_id)

    def selection(self) -> list[Shape]:
        """selected shapes, in selection order."""
        return [self.shapes[sid] for sid in self.selected_ids if sid in self.shapes]

    def next_timestamp(self) -> int:
        """wall-clock ms, bumped so two mutations never share a value."""
        now = int(time.time() * 1000)
        self._last_timestamp = max(now, self._last_timestamp + 1)
        return self._last_timestamp

    # --- writes ---

    def upsert(self, shape: Shape) -> None:
        self.shapes[shape.id] = shape
        self._last_timestamp = max(self._last_timestamp, shape.updated_at)
        self._notify()

    def upsert_many(self, shapes: Iterable[Shape]) -> None:
        for shape in shapes:
            self.shapes[shape.id] = shape
            self._last_timestamp = max(self._last_timestamp, shape.updated_at)
        self._notify()

    def remove(self, shape_id: str) -> Optional[Shape]:
        """drop a shape and deselect it."""
        shape = self.shapes.pop(shape_id, None)
        self.selected_ids = [sid for sid in self.selected_ids if sid != shape_id]
        self._notify()
        return shape

    def select(self, ids: Iterable[str]) -> None:
        """replace the selection (unknown ids are ignored)."""
        seen: list[str] = []
        for sid in ids:
            if sid in self.shapes and sid not in seen:
                seen.append(sid)
        self.selected_ids = seen
        self._notify()

    def clear_selection(self) -> None:
        self.select([])

    # --- inbound peer edits ---

    def receive_upsert(self, payload: dict | list[dict]) -> int:
        """apply shapes broadcast by a peer, last write wins by updated_at.

        returns the number of shapes accepted.
        """
        items = payload if isinstance(payload, list) else [payload]
        accepted = 0
        for item in items:
            incoming = Shape.from_dict(item)
            current = self.shapes.get(incoming.id)
            if current is not None and current.updated_at >= incoming.updated_at:
                logger.debug(f"ignoring stale upsert for {incoming.id}")
                continue
            self.shapes[incoming.id] = incoming
            self._last_timestamp = max(self._last_timestamp, incoming.updated_at)
            accepted += 1
        if accepted:
            self._notify()
        return accepted

    def receive_remove(self, payload: dict | list[str] | str) -> None:
        if isinstance(payload, dict):
            ids = payload.get("ids") or [payload["id"]]
        elif isinstance(payload, str):
            ids = [payload]
        else:
            ids = payload
        for sid in ids:
            self.shapes.pop(sid, None)
        self.selected_ids = [sid for sid in self.selected_ids if sid in self.shapes]
        self._notify()

    # --- undo/redo ---

    def _snapshot(self) -> dict[str, Shape]:
        return {sid: copy.deepcopy(s) for sid, s in self.shapes.items()}

    def push_history(self) -> None:
        """push current state to the undo stack."""
        self._undo_stack.append(self._snapshot())
        if len(self._undo_stack) > MAX_UNDO_HISTORY:
            self._undo_stack.pop(0)
        # clear redo stack on new action
        self._redo_stack.clear()

    @property
    def history_size(self) -> int:
        return len(self._undo_stack)

    def undo(self) -> bool:
        """undo last action. returns True if successful."""
        if not self._undo_stack:
            return False
        self._redo_stack.append(self._snapshot())
        self._restore(self._undo_stack.pop())
        return True

    def redo(self) -> bool:
        """redo last undone action. returns True if successful."""
        if not self._redo_stack:
            return False
        self._undo_stack.append(self._snapshot())
        self._restore(self._redo_stack.pop())
        return True

    def _restore(self, state: dict[str, Shape]) -> None:
        self.shapes = state
        self.selected_ids = []
        self._notify()

    # --- change listeners ---

    def subscribe(self, listener: Callable[[], None]) -> None:
        self._listeners.append(listener)

    def _notify(self) -> None:
        for listener in self._listeners:
            listener()
