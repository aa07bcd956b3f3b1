"""shape list widget: one line per shape, selection highlighted.

click a line to select that shape.
"""

from __future__ import annotations

from typing import Optional

from rich.text import Text
from textual import events
from textual.message import Message
from textual.widgets import Static

from ...core.models import Shape
from ...core.store import ShapeStore


class ShapeClicked(Message):
    """message emitted when a shape line is clicked."""

    def __init__(self, shape_id: str) -> None:
        self.shape_id = shape_id
        super().__init__()


def format_shape(shape: Shape) -> str:
    """one-line summary, e.g. 'circle   (340, 240) 120x120 #ef4444'."""
    parts = [
        f"{shape.type.value:<13}",
        f"({round(shape.x)}, {round(shape.y)})",
        f"{round(shape.w)}x{round(shape.h)}",
    ]
    if shape.rotation:
        parts.append(f"{round(shape.rotation)}°")
    if shape.color:
        parts.append(shape.color)
    if shape.text:
        label = shape.text if len(shape.text) <= 24 else shape.text[:23] + "…"
        parts.append(f'"{label}"')
    if shape.group_id:
        parts.append(f"[{shape.group_id}]")
    return " ".join(parts)


def render_shapes(store: ShapeStore, focus_id: Optional[str] = None) -> Text:
    """styled listing of the store; selected shapes in bold cyan."""
    if store.is_empty:
        return Text("(empty canvas)", style="dim")

    selected = set(store.selected_ids)
    text = Text()
    for shape in store.all():
        marker = "▶ " if shape.id == focus_id else "  "
        style = "bold cyan" if shape.id in selected else "dim"
        text.append(marker + format_shape(shape) + "\n", style=style)
    return text


class ShapeList(Static):
    """listing of every shape on the canvas."""

    DEFAULT_CSS = """
    ShapeList {
        height: 1fr;
        min-height: 5;
        padding: 0 1;
        border: solid $surface-lighten-2;
        overflow-y: auto;
    }
    """

    def __init__(self, store: ShapeStore, **kwargs) -> None:
        super().__init__(**kwargs)
        self.store = store
        self.focus_id: Optional[str] = None

    def render(self) -> Text:
        return render_shapes(self.store, self.focus_id)

    def on_click(self, event: events.Click) -> None:
        """map the clicked row back to a shape."""
        shapes = self.store.all()
        row = event.y - 1  # border
        if 0 <= row < len(shapes):
            self.post_message(ShapeClicked(shapes[row].id))
