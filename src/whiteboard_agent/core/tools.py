"""canonical tool manifest and the effect executor.

every shape-mutating tool call runs the same four steps, in order:
  1. push an undo snapshot
  2. mutate the local store
  3. broadcast to peers (fire-and-forget)
  4. persist (fire-and-forget)
multi-shape tools run the four steps once for the whole batch.
"""

from __future__ import annotations

import logging
import math
import uuid
from dataclasses import dataclass, replace
from typing import Any, Callable, Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationError

from .errors import ToolError
from .extractors import clamp_angle, color_hex
from .models import (
    DEFAULT_COLOR,
    DEFAULT_FONT_SIZE,
    DEFAULT_TEXT_COLOR,
    DUPLICATE_OFFSET,
    Shape,
    ShapeType,
    ToolCall,
)
from .store import ShapeStore
from .sync import (
    REMOVE_EVENT,
    UPSERT_EVENT,
    BroadcastChannel,
    MemoryBackend,
    InMemoryChannel,
    PersistenceBackend,
    fire_and_forget,
)


logger = logging.getLogger(__name__)

# --- configuration ---

GRID_ORIGIN = 80.0
GRID_STEP = 110.0
GRID_CELL = 90.0
MAX_GRID_CELLS = 400
LAST_CREATED = "$LAST_CREATED"
ALIGNMENTS = ("left", "right", "center", "top", "middle", "bottom")
GRID_KINDS = ("shape", "emoji", "icon", "line", "arrow")


@dataclass(frozen=True)
class ToolSpec:
    """one entry in the tool manifest."""

    name: str
    description: str
    required: tuple[str, ...]
    optional: tuple[str, ...] = ()

    def signature(self) -> str:
        args = list(self.required) + [f"{a}?" for a in self.optional]
        return f"{self.name}({', '.join(args)})"


TOOL_MANIFEST: dict[str, ToolSpec] = {spec.name: spec for spec in [
    ToolSpec("createShape", "create a shape of the given type",
             ("type", "x", "y", "w", "h"), ("color", "text", "stroke", "strokeWidth", "rotation")),
    ToolSpec("moveShape", "move a shape's top-left corner to x,y", ("id", "x", "y")),
    ToolSpec("resizeShape", "set a shape's width and height", ("id", "w", "h")),
    ToolSpec("rotateShape", "set a shape's rotation in degrees", ("id", "degrees")),
    ToolSpec("changeColor", "set a shape's fill color", ("id", "color")),
    ToolSpec("changeStroke", "set a shape's outline color and width", ("id", "stroke"), ("strokeWidth",)),
    ToolSpec("deleteShape", "delete a shape", ("id",)),
    ToolSpec("duplicateShape", "copy a shape, offset by 20px", ("id",)),
    ToolSpec("groupShapes", "group shapes so they move together", ("ids",)),
    ToolSpec("ungroupShapes", "dissolve a group", ("groupId",)),
    ToolSpec("alignShapes", "align shapes: left|right|center|top|middle|bottom", ("ids", "alignment")),
    ToolSpec("createText", "create a text block", ("text", "x", "y"), ("fontSize", "color")),
    ToolSpec("createGrid", "create a gx by gy grid; kind is shape|emoji|icon|line|arrow",
             ("gx", "gy", "kind"), ("type", "color", "text", "x", "y", "ids")),
    ToolSpec("selectShapes", "replace the current selection", ("ids",)),
]}


class ToolArgs(BaseModel):
    """argument types shared by every tool; names not listed pass through."""

    model_config = ConfigDict(extra="allow", allow_inf_nan=False)

    id: Optional[str] = None
    ids: Optional[Union[list[str], str]] = None
    groupId: Optional[str] = None
    type: Optional[str] = None
    kind: Optional[str] = None
    alignment: Optional[str] = None
    color: Optional[str] = None
    stroke: Optional[str] = None
    text: Optional[str] = None
    x: Optional[float] = None
    y: Optional[float] = None
    w: Optional[float] = None
    h: Optional[float] = None
    rotation: Optional[float] = None
    degrees: Optional[float] = None
    strokeWidth: Optional[float] = None
    fontSize: Optional[float] = None
    gx: Optional[int] = None
    gy: Optional[int] = None


def measure_text(text: str, font_size: float) -> tuple[float, float]:
    """approximate wrapped (width, height) of a text block."""
    char_width = font_size * 0.6
    words = text.split()
    if len(words) > 1:
        max_line_width = 400.0
    else:
        max_line_width = len(text) * char_width
    max_line_width = max(300.0, min(800.0, max_line_width))

    # greedy fill; each word carries one trailing space
    lines = 1
    line_width = 0.0
    for word in words:
        word_width = (len(word) + 1) * char_width
        if line_width > 0 and line_width + word_width > max_line_width:
            lines += 1
            line_width = word_width
        else:
            line_width += word_width

    width = max(min(max_line_width, len(text) * char_width), 80.0)
    height = max(lines * font_size * 1.4, font_size * 1.2)
    return width, height


class EffectExecutor:
    """applies tool calls to the store and fans them out to peers and storage."""

    def __init__(
        self,
        store: ShapeStore,
        channel: Optional[BroadcastChannel] = None,
        persistence: Optional[PersistenceBackend] = None,
        actor: Optional[str] = None,
    ):
        self.store = store
        self.channel = channel if channel is not None else InMemoryChannel()
        self.persistence = persistence if persistence is not None else MemoryBackend()
        self.actor = actor or store.actor
        self._last_created: Optional[str] = None
        self._handlers: dict[str, Callable[[ToolCall], ToolCall]] = {
            "createShape": self._create_shape,
            "moveShape": self._move_shape,
            "resizeShape": self._resize_shape,
            "rotateShape": self._rotate_shape,
            "changeColor": self._change_color,
            "changeStroke": self._change_stroke,
            "deleteShape": self._delete_shape,
            "duplicateShape": self._duplicate_shape,
            "groupShapes": self._group_shapes,
            "ungroupShapes": self._ungroup_shapes,
            "alignShapes": self._align_shapes,
            "createText": self._create_text,
            "createGrid": self._create_grid,
            "selectShapes": self._select_shapes,
        }

    # --- entry points ---

    def apply(self, tool_calls: list[ToolCall]) -> list[ToolCall]:
        """run calls in order; returns them with created ids filled in.

        stops at the first invalid call. calls already applied stay applied;
        the raised ToolError carries them in `applied`.
        """
        applied: list[ToolCall] = []
        self._last_created = None
        for call in tool_calls:
            try:
                applied.append(self.execute(call))
            except ToolError as e:
                e.applied = applied
                raise
        return applied

    def execute(self, call: ToolCall) -> ToolCall:
        """validate and run a single tool call."""
        call = self._substitute_last_created(call)
        validate_tool_call(call)
        logger.info(f"executing {call.name} {call.args}")
        return self._handlers[call.name](call)

    def _substitute_last_created(self, call: ToolCall) -> ToolCall:
        if self._last_created is None:
            return call
        args: dict[str, Any] = {}
        for key, value in call.args.items():
            if value == LAST_CREATED:
                value = self._last_created
            elif isinstance(value, list):
                value = [self._last_created if v == LAST_CREATED else v for v in value]
            args[key] = value
        return ToolCall(call.name, args)

    # --- the four steps ---

    def _commit_upsert(self, shapes: list[Shape]) -> None:
        self.store.push_history()
        if len(shapes) == 1:
            self.store.upsert(shapes[0])
        else:
            self.store.upsert_many(shapes)
        rows = [s.to_dict() for s in shapes]
        payload: Any = rows[0] if len(rows) == 1 else rows
        fire_and_forget("broadcast", lambda: self.channel.send(UPSERT_EVENT, payload))
        fire_and_forget("persist", lambda: self.persistence.upsert(rows))

    def _commit_remove(self, shape_id: str) -> None:
        self.store.push_history()
        self.store.remove(shape_id)
        fire_and_forget("broadcast", lambda: self.channel.send(REMOVE_EVENT, {"id": shape_id}))
        fire_and_forget("persist", lambda: self.persistence.delete(shape_id))

    def _stamp(self, shape: Shape, **patch: Any) -> Shape:
        """shallow-merge a patch and record provenance."""
        return replace(shape, **patch, updated_at=self.store.next_timestamp(), updated_by=self.actor)

    def _update(self, shape_id: Any, **patch: Any) -> Shape:
        shape = self._require(shape_id)
        updated = self._stamp(shape, **patch)
        self._commit_upsert([updated])
        return updated

    def _created(self, shapes: list[Shape]) -> None:
        """select fresh shapes and center the view on the first one."""
        self._commit_upsert(shapes)
        self.store.select([s.id for s in shapes])
        self._last_created = shapes[-1].id
        if self.store.center_on_shape is not None:
            self.store.center_on_shape(shapes[0])

    def _require(self, shape_id: Any) -> Shape:
        shape = self.store.get(str(shape_id))
        if shape is None:
            raise ToolError(f"no shape with id {shape_id!r}")
        return shape

    def _new_shape(self, shape_type: ShapeType, **attrs: Any) -> Shape:
        return Shape.create(
            shape_type,
            updated_at=self.store.next_timestamp(),
            updated_by=self.actor,
            **attrs,
        )

    # --- tools ---

    def _create_shape(self, call: ToolCall) -> ToolCall:
        a = call.args
        shape = self._new_shape(
            _shape_type(a["type"]),
            x=_num(a, "x"), y=_num(a, "y"),
            w=_num(a, "w"), h=_num(a, "h"),
            rotation=clamp_angle(_num(a, "rotation", 0.0)),
            color=color_hex(a["color"]) if a.get("color") else DEFAULT_COLOR,
            stroke=color_hex(a["stroke"]) if a.get("stroke") else None,
            stroke_width=_num(a, "strokeWidth", None),
            text=a.get("text"),
        )
        self._created([shape])
        return call.with_args(id=shape.id)

    def _create_text(self, call: ToolCall) -> ToolCall:
        a = call.args
        text = str(a["text"])
        if not text.strip():
            raise ToolError("createText needs non-empty text")
        font_size = int(_num(a, "fontSize", DEFAULT_FONT_SIZE))
        w, h = measure_text(text, font_size)
        shape = self._new_shape(
            ShapeType.TEXT,
            x=_num(a, "x"), y=_num(a, "y"), w=w, h=h,
            text=text, font_size=font_size,
            color=color_hex(a["color"]) if a.get("color") else DEFAULT_TEXT_COLOR,
        )
        self._created([shape])
        return call.with_args(id=shape.id)

    def _create_grid(self, call: ToolCall) -> ToolCall:
        a = call.args
        gx, gy = int(_num(a, "gx")), int(_num(a, "gy"))
        if gx < 1 or gy < 1:
            raise ToolError(f"grid must be at least 1x1, got {gx}x{gy}")
        if gx * gy > MAX_GRID_CELLS:
            raise ToolError(f"grid too large: {gx}x{gy} (max {MAX_GRID_CELLS} cells)")
        kind = a["kind"]
        if kind not in GRID_KINDS:
            raise ToolError(f"unknown grid kind {kind!r}")

        if kind in ("emoji", "icon"):
            shape_type = ShapeType.IMAGE
        elif kind in ("line", "arrow"):
            shape_type = ShapeType(kind)
        else:
            shape_type = _shape_type(a.get("type") or "rect")
        flat = shape_type in (ShapeType.LINE, ShapeType.ARROW)
        color = color_hex(a["color"]) if a.get("color") else ("#111827" if flat else "#dddddd")
        origin_x, origin_y = _num(a, "x", GRID_ORIGIN), _num(a, "y", GRID_ORIGIN)

        shapes = [
            self._new_shape(
                shape_type,
                x=origin_x + i * GRID_STEP, y=origin_y + j * GRID_STEP,
                w=GRID_CELL, h=0.0 if flat else GRID_CELL,
                color=color, text=a.get("text"),
            )
            for j in range(gy)
            for i in range(gx)
        ]
        self._created(shapes)
        return call.with_args(ids=[s.id for s in shapes])

    def _move_shape(self, call: ToolCall) -> ToolCall:
        self._update(call.args["id"], x=_num(call.args, "x"), y=_num(call.args, "y"))
        return call

    def _resize_shape(self, call: ToolCall) -> ToolCall:
        w, h = _num(call.args, "w"), _num(call.args, "h")
        if w <= 0 or h < 0:
            raise ToolError(f"invalid size {w}x{h}")
        self._update(call.args["id"], w=w, h=h)
        return call

    def _rotate_shape(self, call: ToolCall) -> ToolCall:
        self._update(call.args["id"], rotation=clamp_angle(_num(call.args, "degrees")))
        return call

    def _change_color(self, call: ToolCall) -> ToolCall:
        self._update(call.args["id"], color=color_hex(str(call.args["color"])))
        return call

    def _change_stroke(self, call: ToolCall) -> ToolCall:
        patch: dict[str, Any] = {"stroke": color_hex(str(call.args["stroke"]))}
        if call.args.get("strokeWidth") is not None:
            width = _num(call.args, "strokeWidth")
            if width < 0:
                raise ToolError(f"invalid stroke width {width}")
            patch["stroke_width"] = width
        self._update(call.args["id"], **patch)
        return call

    def _delete_shape(self, call: ToolCall) -> ToolCall:
        shape = self._require(call.args["id"])
        self._commit_remove(shape.id)
        return call

    def _duplicate_shape(self, call: ToolCall) -> ToolCall:
        source = self._require(call.args["id"])
        copy = replace(
            source,
            id=str(uuid.uuid4()),
            x=source.x + DUPLICATE_OFFSET,
            y=source.y + DUPLICATE_OFFSET,
            updated_at=self.store.next_timestamp(),
            updated_by=self.actor,
        )
        self._commit_upsert([copy])
        self.store.select([copy.id])
        self._last_created = copy.id
        return call.with_args(newId=copy.id)

    def _group_shapes(self, call: ToolCall) -> ToolCall:
        shapes = [self._require(sid) for sid in _ids(call.args)]
        if len(shapes) < 2:
            raise ToolError("groupShapes needs at least two shapes")
        group_id = uuid.uuid4().hex[:8]
        self._commit_upsert([self._stamp(s, group_id=group_id) for s in shapes])
        return call.with_args(groupId=group_id)

    def _ungroup_shapes(self, call: ToolCall) -> ToolCall:
        group_id = call.args["groupId"]
        members = [s for s in self.store.all() if s.group_id == group_id]
        if not members:
            raise ToolError(f"no group with id {group_id!r}")
        self._commit_upsert([self._stamp(s, group_id=None) for s in members])
        return call.with_args(ids=[s.id for s in members])

    def _align_shapes(self, call: ToolCall) -> ToolCall:
        alignment = call.args["alignment"]
        if alignment not in ALIGNMENTS:
            raise ToolError(f"unknown alignment {alignment!r}")
        shapes = [self._require(sid) for sid in _ids(call.args)]
        if not shapes:
            raise ToolError("alignShapes needs at least one shape")

        left = min(s.x for s in shapes)
        right = max(s.x + s.w for s in shapes)
        top = min(s.y for s in shapes)
        bottom = max(s.y + s.h for s in shapes)

        aligned = []
        for s in shapes:
            if alignment == "left":
                patch = {"x": left}
            elif alignment == "right":
                patch = {"x": right - s.w}
            elif alignment == "center":
                patch = {"x": (left + right) / 2 - s.w / 2}
            elif alignment == "top":
                patch = {"y": top}
            elif alignment == "bottom":
                patch = {"y": bottom - s.h}
            else:
                patch = {"y": (top + bottom) / 2 - s.h / 2}
            aligned.append(self._stamp(s, **patch))
        self._commit_upsert(aligned)
        return call

    def _select_shapes(self, call: ToolCall) -> ToolCall:
        # view state only: no history, broadcast or persistence
        self.store.select(_ids(call.args))
        return call


# --- validation helpers ---


def validate_tool_call(call: ToolCall) -> None:
    """raise ToolError unless the call names a known tool with its required,
    correctly typed args."""
    spec = TOOL_MANIFEST.get(call.name)
    if spec is None:
        raise ToolError(f"unknown tool {call.name!r}")
    missing = [arg for arg in spec.required if call.args.get(arg) is None]
    if missing:
        raise ToolError(f"{call.name} missing {', '.join(missing)}")
    try:
        ToolArgs.model_validate(call.args)
    except ValidationError as e:
        bad = ", ".join(sorted({str(err["loc"][0]) for err in e.errors()}))
        raise ToolError(f"{call.name} has badly typed {bad}") from e


_UNSET = object()


def _num(args: dict, key: str, default: Any = _UNSET) -> Any:
    value = args.get(key)
    if value is None:
        if default is _UNSET:
            raise ToolError(f"missing numeric argument {key!r}")
        return default
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise ToolError(f"{key} must be a number, got {value!r}") from e
    if math.isnan(number) or math.isinf(number):
        raise ToolError(f"{key} must be finite, got {value!r}")
    return number


def _ids(args: dict) -> list[str]:
    ids = args.get("ids") or []
    if isinstance(ids, str):
        ids = [ids]
    return [str(i) for i in ids]


def _shape_type(value: Any) -> ShapeType:
    try:
        return ShapeType(value)
    except ValueError as e:
        raise ToolError(f"unknown shape type {value!r}") from e
