"""target resolution: which shape does a command refer to?"""

from __future__ import annotations

from typing import Optional

from .extractors import color_matches
from .models import Hint, Target
from .store import ShapeStore


class TargetResolver:
    """picks a single shape for a command.

    priority, first match wins:
      1. first member of the current selection
      2. first shape (store order) whose type matches the hint
      3. first shape whose color matches the hint color
      4. most recently updated shape
    returns None only when the canvas is empty.
    """

    def __init__(self, store: ShapeStore):
        self.store = store

    def resolve_target(self, hint: Optional[Hint] = None) -> Optional[Target]:
        hint = hint or Hint()
        selection = self.store.selection()
        if selection:
            return Target(selection[0].id, selection[0])

        shapes = self.store.all()
        if not shapes:
            return None

        if hint.type is not None:
            for shape in shapes:
                if shape.type == hint.type:
                    return Target(shape.id, shape)

        if hint.color:
            for shape in shapes:
                if color_matches(shape.color, hint.color):
                    return Target(shape.id, shape)

        latest = max(shapes, key=lambda s: s.updated_at)
        return Target(latest.id, latest)

    def resolve_many(self, hint: Optional[Hint] = None) -> list[Target]:
        """current multi-selection, or the single resolved target."""
        selection = self.store.selection()
        if len(selection) > 1:
            return [Target(s.id, s) for s in selection]
        target = self.resolve_target(hint)
        return [target] if target else []
