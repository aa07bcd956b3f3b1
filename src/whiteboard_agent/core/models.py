"""core data model for the whiteboard agent.

shapes on a shared canvas, plus the values that flow through interpretation:
tool calls, interpret results and the response envelope shown to the user.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, asdict, fields
from enum import Enum
from typing import Any, Callable, Literal, Optional, Union


# --- configuration ---

CANVAS_CENTER = (400.0, 300.0)
DUPLICATE_OFFSET = 20.0
DEFAULT_FONT_SIZE = 24
DEFAULT_COLOR = "#3b82f6"
DEFAULT_TEXT_COLOR = "#111827"


class ShapeType(Enum):
    RECT = "rect"
    CIRCLE = "circle"
    TEXT = "text"
    IMAGE = "image"          # emoji and icons
    TRIANGLE = "triangle"
    STAR = "star"
    HEART = "heart"
    PENTAGON = "pentagon"
    HEXAGON = "hexagon"
    OCTAGON = "octagon"
    TRAPEZOID = "trapezoid"
    RHOMBUS = "rhombus"
    PARALLELOGRAM = "parallelogram"
    OVAL = "oval"
    LINE = "line"
    ARROW = "arrow"
    FRAME = "frame"
    CYLINDER = "cylinder"
    DOCUMENT = "document"
    ROUNDED_RECT = "roundedRect"
    STADIUM = "stadium"
    NOTE = "note"


@dataclass
class Shape:
    """single shape on the shared canvas."""

    id: str
    type: ShapeType
    x: float = 0.0
    y: float = 0.0
    w: float = 100.0
    h: float = 100.0
    rotation: float = 0.0
    color: Optional[str] = None
    stroke: Optional[str] = None
    stroke_width: Optional[float] = None
    text: Optional[str] = None
    font_size: Optional[int] = None
    group_id: Optional[str] = None
    updated_at: int = 0       # ms, strictly increasing per mutation
    updated_by: str = ""

    @classmethod
    def create(cls, type: ShapeType | str, **attrs: Any) -> Shape:
        """create a shape with a fresh id."""
        return cls(id=_generate_id(), type=ShapeType(type), **attrs)

    @property
    def area(self) -> float:
        return abs(self.w * self.h)

    def bounds(self) -> tuple[float, float, float, float]:
        """(left, top, right, bottom)."""
        return (self.x, self.y, self.x + self.w, self.y + self.h)

    def to_dict(self) -> dict:
        d = asdict(self)
        d["type"] = self.type.value
        return d

    @classmethod
    def from_dict(cls, d: dict) -> Shape:
        known = {f.name for f in fields(cls)}
        data = {k: v for k, v in d.items() if k in known}
        data["type"] = ShapeType(data["type"])
        return cls(**data)


@dataclass(frozen=True)
class ToolCall:
    """one named effect, e.g. rotateShape(id, degrees).

    the common output of every interpretation tier.
    """

    name: str
    args: dict = field(default_factory=dict)

    def with_args(self, **extra: Any) -> ToolCall:
        return ToolCall(self.name, {**self.args, **extra})

    def to_dict(self) -> dict:
        return {"name": self.name, "args": dict(self.args)}


@dataclass(frozen=True)
class Hint:
    """type/color words pulled from a command to narrow the target search."""

    type: Optional[ShapeType] = None
    color: Optional[str] = None  # palette name, e.g. "blue"


@dataclass(frozen=True)
class Target:
    """shape an interpretation acts on."""

    id: str
    shape: Shape


@dataclass(frozen=True)
class Command:
    """raw text plus its normalized form."""

    raw: str
    normalized: str


# --- interpret results ---


@dataclass
class Success:
    """intent understood and compiled to tool calls."""

    tool_calls: list[ToolCall]
    message: str = ""
    confirm: bool = False  # destructive bulk work, ask before running


@dataclass
class Miss:
    """no rule matched; the next tier should try."""


@dataclass
class Failure:
    """intent matched but could not be carried out (e.g. no target)."""

    reason: str
    intent: Optional[str] = None
    suggestions: list[str] = field(default_factory=list)


InterpretResult = Union[Success, Miss, Failure]


# --- response envelope ---

ResponseType = Literal["success", "clarification_needed", "confirmation_required", "error"]


@dataclass
class AIResponse:
    """what the ui shows after a command."""

    type: ResponseType
    message: str
    result: Optional[list[ToolCall]] = None
    suggestions: list[str] = field(default_factory=list)
    confirm_action: Optional[Callable[[], AIResponse]] = None

    @classmethod
    def success(cls, message: str, result: list[ToolCall]) -> AIResponse:
        return cls(type="success", message=message, result=result)

    @classmethod
    def clarification(cls, message: str, suggestions: Optional[list[str]] = None) -> AIResponse:
        return cls(type="clarification_needed", message=message, suggestions=suggestions or [])

    @classmethod
    def error(cls, message: str) -> AIResponse:
        return cls(type="error", message=message)

    @property
    def requires_confirmation(self) -> bool:
        return self.type == "confirmation_required" and self.confirm_action is not None

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "message": self.message,
            "result": [c.to_dict() for c in self.result] if self.result is not None else None,
            "suggestions": list(self.suggestions),
            "requires_confirmation": self.requires_confirmation,
        }


def _generate_id() -> str:
    """generate a globally unique shape id."""
    return str(uuid.uuid4())
