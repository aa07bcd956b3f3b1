"""named multi-shape layouts (login form, nav bar, ...) and where to put them."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Literal, Optional

from .models import Shape, ToolCall
from .tools import measure_text


# --- configuration ---

PLACEMENT_MARGIN = 20.0
PLACEMENT_START = (100.0, 100.0)
PLACEMENT_STEP = 120.0
PLACEMENT_COLUMNS = 8
PLACEMENT_ROWS = 5          # 40 candidate slots


@dataclass(frozen=True)
class TemplateElement:
    """one shape in a template, offset from the template origin."""

    kind: Literal["shape", "text"]
    dx: float
    dy: float
    w: float = 0.0
    h: float = 0.0
    type: str = "rect"
    color: Optional[str] = None
    text: Optional[str] = None
    font_size: int = 16
    label: bool = False  # text replaced by a user-supplied label


@dataclass
class LayoutTemplate:
    """a named group of shapes created together."""

    name: str
    description: str
    pattern: str
    elements: list[TemplateElement] = field(default_factory=list)

    def matches(self, text: str) -> bool:
        return re.search(self.pattern, text) is not None

    def footprint(self) -> tuple[float, float]:
        """(width, height) of the template's bounding box."""
        right = bottom = 0.0
        for el in self.elements:
            w, h = (el.w, el.h) if el.kind == "shape" else measure_text(el.text or "", el.font_size)
            right = max(right, el.dx + w)
            bottom = max(bottom, el.dy + h)
        return right, bottom

    def compile(self, x: float, y: float, label: Optional[str] = None) -> list[ToolCall]:
        """tool calls that build the template with its origin at (x, y)."""
        calls = []
        for el in self.elements:
            if el.kind == "text":
                text = label if (el.label and label) else el.text
                args = {"text": text, "x": x + el.dx, "y": y + el.dy, "fontSize": el.font_size}
                if el.color:
                    args["color"] = el.color
                calls.append(ToolCall("createText", args))
            else:
                args = {"type": el.type, "x": x + el.dx, "y": y + el.dy, "w": el.w, "h": el.h}
                if el.color:
                    args["color"] = el.color
                calls.append(ToolCall("createShape", args))
        return calls


# built-in templates, matched in this order
BUILTIN_TEMPLATES: dict[str, LayoutTemplate] = {
    "login_form": LayoutTemplate(
        name="Login Form",
        description="username and password fields with a sign-in button",
        pattern=r"\b(?:log ?in|sign ?in) (?:form|screen|page|box)\b",
        elements=[
            TemplateElement("shape", 0, 0, 280, 40, color="#ffffff"),
            TemplateElement("shape", 0, 60, 280, 40, color="#ffffff"),
            TemplateElement("shape", 0, 120, 280, 40, color="#0ea5e9"),
            TemplateElement("text", 10, 10, text="Username", color="#6b7280"),
            TemplateElement("text", 10, 70, text="Password", color="#6b7280"),
            TemplateElement("text", 110, 130, text="Sign in", color="#ffffff"),
        ],
    ),
    "nav_bar": LayoutTemplate(
        name="Navigation Bar",
        description="horizontal bar with four menu items",
        pattern=r"\b(?:nav(?:igation)? ?bar|menu bar|navbar)\b",
        elements=[TemplateElement("shape", 0, 0, 580, 40, color="#f8f9fa")] + [
            TemplateElement("text", 20 + i * 140, 10, text=item, color="#111827")
            for i, item in enumerate(["Home", "About", "Services", "Contact"])
        ],
    ),
    "card": LayoutTemplate(
        name="Card",
        description="container with image placeholder, title and description",
        pattern=r"\bcard\b",
        elements=[
            TemplateElement("shape", 0, 0, 280, 320, color="#ffffff"),
            TemplateElement("shape", 20, 20, 240, 140, color="#e5e7eb"),
            TemplateElement("text", 20, 180, text="Card Title", font_size=20, color="#111827", label=True),
            TemplateElement("text", 20, 220, text="A short description goes here", font_size=14,
                            color="#6b7280"),
        ],
    ),
    "button": LayoutTemplate(
        name="Button",
        description="filled button with a label",
        pattern=r"\bbutton\b",
        elements=[
            TemplateElement("shape", 0, 0, 160, 48, color="#3b82f6"),
            TemplateElement("text", 20, 12, text="Button", font_size=18, color="#ffffff", label=True),
        ],
    ),
}


def list_templates() -> list[tuple[str, LayoutTemplate]]:
    """(key, template) for every available template."""
    return list(BUILTIN_TEMPLATES.items())


def get_template(name: str) -> Optional[LayoutTemplate]:
    """get a template by key."""
    return BUILTIN_TEMPLATES.get(name)


def match_template(text: str) -> Optional[LayoutTemplate]:
    for template in BUILTIN_TEMPLATES.values():
        if template.matches(text):
            return template
    return None


# --- placement ---


def _overlaps(box: tuple[float, float, float, float], shape: Shape, margin: float) -> bool:
    left, top, right, bottom = shape.bounds()
    return not (
        box[2] + margin <= left
        or box[0] - margin >= right
        or box[3] + margin <= top
        or box[1] - margin >= bottom
    )


def find_free_position(
    shapes: list[Shape],
    width: float,
    height: float,
    margin: float = PLACEMENT_MARGIN,
) -> tuple[float, float]:
    """top-left corner where a width x height box overlaps nothing.

    scans a fixed grid of candidate slots; if all are taken, places the box
    to the right of everything on the canvas.
    """
    start_x, start_y = PLACEMENT_START
    for row in range(PLACEMENT_ROWS):
        for col in range(PLACEMENT_COLUMNS):
            x = start_x + col * PLACEMENT_STEP
            y = start_y + row * PLACEMENT_STEP
            box = (x, y, x + width, y + height)
            if not any(_overlaps(box, s, margin) for s in shapes):
                return x, y
    rightmost = max((s.x + s.w for s in shapes), default=start_x - margin)
    return rightmost + margin, start_y
