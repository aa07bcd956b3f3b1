"""legacy substring parser, the last tier before giving up.

kept narrow on purpose: it only recognizes the phrasings older clients sent
and returns Success or Miss, never Failure.
"""

from __future__ import annotations

import re
from typing import Optional

from .extractors import COLOR_VARIANTS, PALETTE
from .models import InterpretResult, Miss, Shape, ShapeType, Success, ToolCall
from .store import ShapeStore


_COLOR_WORD = re.compile(r"(blue|red|green|yellow|purple|gray|grey|black|white)")
_TEXT_PATTERNS = [
    re.compile(r"says?\s+['\"]([^'\"]+)['\"]", re.IGNORECASE),
    re.compile(r"that says\s+(.+?)(?:\.|$)", re.IGNORECASE),
    re.compile(r"with (?:the words?\s+)?['\"]([^'\"]+)['\"]", re.IGNORECASE),
    re.compile(r"(?:containing|reading|labeled)\s+['\"]([^'\"]+)['\"]", re.IGNORECASE),
    re.compile(r"['\"]([^'\"]+)['\"]"),
]


class LegacyParser:
    """substring matcher over the store."""

    def __init__(self, store: ShapeStore):
        self.store = store

    def interpret(self, text: str) -> InterpretResult:
        t = text.lower()
        for attempt in (self._move, self._resize, self._rotate, self._create):
            result = attempt(text, t)
            if result is not None:
                return result
        return Miss()

    # --- lookup ---

    def _find(self, t: str, types: list[tuple[str, ShapeType]]) -> Optional[Shape]:
        """color word first, then the first type keyword present."""
        m = _COLOR_WORD.search(t)
        if m:
            name = "gray" if m.group(1) == "grey" else m.group(1)
            for shape in self.store.all():
                stored = (shape.color or "").lower()
                if stored and any(v in stored for v in COLOR_VARIANTS[name]):
                    return shape
        for keyword, shape_type in types:
            if keyword in t:
                return next((s for s in self.store.all() if s.type == shape_type), None)
        return None

    # --- manipulation ---

    def _move(self, text: str, t: str) -> Optional[InterpretResult]:
        if "move" not in t or not ("to" in t or "center" in t):
            return None
        shape = self._find(t, [("rect", ShapeType.RECT), ("circle", ShapeType.CIRCLE), ("text", ShapeType.TEXT)])
        if shape is None:
            return None
        x, y = shape.x, shape.y
        if "center" in t:
            x, y = 400, 300
        else:
            m = re.search(r"(?:position\s+)?(\d+),?\s*(\d+)", t)
            if m:
                x, y = int(m.group(1)), int(m.group(2))
        return Success([ToolCall("moveShape", {"id": shape.id, "x": x, "y": y})], "Moved shape")

    def _resize(self, text: str, t: str) -> Optional[InterpretResult]:
        if not ("resize" in t or ("make" in t and any(w in t for w in ("bigger", "smaller", "twice")))):
            return None
        shape = self._find(t, [("circle", ShapeType.CIRCLE), ("rect", ShapeType.RECT), ("text", ShapeType.TEXT)])
        if shape is None:
            return None
        factor = 1.0
        if "twice" in t or "2x" in t or "double" in t:
            factor = 2.0
        elif "half" in t or "0.5" in t:
            factor = 0.5
        elif "three times" in t or "3x" in t:
            factor = 3.0
        else:
            m = re.search(r"(\d+(?:\.\d+)?)\s*times", t)
            if m:
                factor = float(m.group(1))
        call = ToolCall("resizeShape", {"id": shape.id, "w": shape.w * factor, "h": shape.h * factor})
        return Success([call], "Resized shape")

    def _rotate(self, text: str, t: str) -> Optional[InterpretResult]:
        if "rotate" not in t:
            return None
        shape = self._find(t, [("text", ShapeType.TEXT), ("rect", ShapeType.RECT), ("circle", ShapeType.CIRCLE)])
        if shape is None:
            return None
        m = re.search(r"(\d+)\s*degrees?", t)
        degrees = int(m.group(1)) if m else 0
        return Success([ToolCall("rotateShape", {"id": shape.id, "degrees": degrees})], "Rotated shape")

    # --- creation ---

    def _create(self, text: str, t: str) -> Optional[InterpretResult]:
        if "create" in t and "circle" in t:
            x, y = 200, 200
            m = re.search(r"(?:at\s+)?position\s+(\d+),?\s*(\d+)", t)
            if m:
                x, y = int(m.group(1)), int(m.group(2))
            color = PALETTE["blue"]
            c = _COLOR_WORD.search(t)
            if c:
                color = PALETTE["gray" if c.group(1) == "grey" else c.group(1)]
            call = ToolCall("createShape", {"type": "circle", "x": x, "y": y, "w": 120, "h": 120, "color": color})
            return Success([call], "Created circle")

        if ("create" in t or "make" in t) and "rectangle" in t:
            m = re.search(r"(\d+)x(\d+)", t)
            w, h = (int(m.group(1)), int(m.group(2))) if m else (200, 120)
            call = ToolCall("createShape", {"type": "rect", "x": 300, "y": 220, "w": w, "h": h, "color": "#ef4444"})
            return Success([call], "Created rectangle")

        if "text" in t or "layer" in t:
            content = "Hello World"
            for pattern in _TEXT_PATTERNS:
                m = pattern.search(text)
                if m and m.group(1).strip():
                    content = m.group(1).strip()
                    break
            call = ToolCall("createText", {"text": content, "x": 180, "y": 180, "fontSize": 24, "color": "#111"})
            return Success([call], "Created text")

        m = re.search(r"(\d+)x(\d+)", t)
        if "grid" in t and m:
            gx, gy = int(m.group(1)), int(m.group(2))
            call = ToolCall("createGrid", {"gx": gx, "gy": gy, "kind": "shape", "type": "rect", "color": "#ddd"})
            return Success([call], f"Created {gx}x{gy} grid")

        if "arrange" in t and ("horizontal" in t or "row" in t):
            shapes = sorted(self.store.all(), key=lambda s: s.x)
            if shapes:
                calls = [
                    ToolCall("moveShape", {"id": s.id, "x": 100 + i * 150, "y": 200})
                    for i, s in enumerate(shapes)
                ]
                return Success(calls, "Arranged shapes in a row")

        if "navigation bar" in t or ("nav" in t and "menu" in t):
            calls = [ToolCall("createShape", {"type": "rect", "x": 100, "y": 50, "w": 580, "h": 40, "color": "#f8f9fa"})]
            for i, item in enumerate(["Home", "About", "Services", "Contact"]):
                calls.append(ToolCall("createText", {"text": item, "x": 120 + i * 140, "y": 58, "fontSize": 16, "color": "#333"}))
            return Success(calls, "Created navigation bar")

        if "card layout" in t or ("card" in t and any(w in t for w in ("title", "image", "description"))):
            calls = [
                ToolCall("createShape", {"type": "rect", "x": 300, "y": 150, "w": 280, "h": 320, "color": "#ffffff"}),
                ToolCall("createShape", {"type": "rect", "x": 320, "y": 170, "w": 240, "h": 160, "color": "#e5e7eb"}),
                ToolCall("createText", {"text": "Card Title", "x": 320, "y": 350, "fontSize": 20, "color": "#111"}),
                ToolCall("createText", {
                    "text": "This is a card description with some sample text content.",
                    "x": 320, "y": 390, "fontSize": 14, "color": "#666",
                }),
            ]
            return Success(calls, "Created card")

        if "login form" in t:
            x, y, gap, w, h = 400, 200, 60, 280, 40
            calls = [
                ToolCall("createShape", {"type": "rect", "x": x, "y": y, "w": w, "h": h, "color": "#ffffff"}),
                ToolCall("createShape", {"type": "rect", "x": x, "y": y + gap, "w": w, "h": h, "color": "#ffffff"}),
                ToolCall("createShape", {"type": "rect", "x": x, "y": y + gap * 2, "w": w, "h": h, "color": "#0ea5e9"}),
                ToolCall("createText", {"text": "Username", "x": x - 120, "y": y - 26, "fontSize": 16, "color": "#444"}),
                ToolCall("createText", {"text": "Password", "x": x - 120, "y": y + gap - 26, "fontSize": 16, "color": "#444"}),
                ToolCall("createText", {"text": "Sign in", "x": x + w / 2 - 34, "y": y + gap * 2 + 10, "fontSize": 18, "color": "#fff"}),
            ]
            return Success(calls, "Created login form")

        return None
