"""deterministic command parser.

an ordered table of (predicate, handler) rules. the first rule whose
predicate matches the normalized text owns the command; there is no
backtracking. handlers only read the store and return tool calls, they
never execute them.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Optional

from .extractors import (
    CREATE_VERB_RE,
    clamp_angle,
    color_hex,
    color_matches,
    detect_emoji,
    detect_icon,
    detect_type,
    extract_hint,
    extract_text,
    normalize,
    parse_angle,
    parse_color,
    parse_colors,
    parse_direction,
    parse_grid,
    parse_multiplier,
    parse_position,
    parse_size,
    strip_text_payload,
    TYPE_KEYWORDS,
)
from .models import (
    CANVAS_CENTER,
    DEFAULT_COLOR,
    DEFAULT_FONT_SIZE,
    Command,
    Failure,
    Hint,
    InterpretResult,
    Miss,
    Shape,
    ShapeType,
    Success,
    Target,
    ToolCall,
)
from .resolver import TargetResolver
from .store import ShapeStore
from .templates import find_free_position, match_template
from .tools import measure_text


logger = logging.getLogger(__name__)

# --- configuration ---

DEFAULT_RESIZE = (200.0, 120.0)
ARRANGE_START = 100.0
ARRANGE_SPACING = 150.0
ARRANGE_BASELINE = 200.0
DEFAULT_STROKE = "#111827"
DEFAULT_STROKE_WIDTH = 2.0

# default (w, h) per shape type
DEFAULT_GEOMETRY: dict[ShapeType, tuple[float, float]] = {
    ShapeType.RECT: (200, 120),
    ShapeType.CIRCLE: (120, 120),
    ShapeType.OVAL: (160, 100),
    ShapeType.TRIANGLE: (120, 104),
    ShapeType.STAR: (120, 120),
    ShapeType.HEART: (120, 110),
    ShapeType.PENTAGON: (120, 120),
    ShapeType.HEXAGON: (120, 120),
    ShapeType.OCTAGON: (120, 120),
    ShapeType.TRAPEZOID: (160, 100),
    ShapeType.RHOMBUS: (120, 120),
    ShapeType.PARALLELOGRAM: (160, 100),
    ShapeType.LINE: (150, 0),
    ShapeType.ARROW: (150, 0),
    ShapeType.FRAME: (400, 300),
    ShapeType.CYLINDER: (100, 140),
    ShapeType.DOCUMENT: (140, 180),
    ShapeType.ROUNDED_RECT: (200, 120),
    ShapeType.STADIUM: (200, 80),
    ShapeType.NOTE: (160, 160),
    ShapeType.IMAGE: (200, 150),
}
EMOJI_SIZE = 64.0

SHAPE_LABELS = {
    ShapeType.RECT: "rectangle",
    ShapeType.ROUNDED_RECT: "rounded rectangle",
    ShapeType.IMAGE: "image",
    ShapeType.NOTE: "sticky note",
}

SUGGESTIONS: dict[str, list[str]] = {
    "create": ["create a red circle", "add text that says Hello", "create a 3x3 grid of squares"],
    "grid": ["create a 3x3 grid of circles", "make a 2x4 grid of stars"],
    "template": ["create a login form", "add a navigation bar", "create a card"],
    "move": ["move right 100", "move the circle to 200, 150", "move to center"],
    "resize": ["make it twice as big", "resize to 200x100", "make the circle smaller"],
    "rotate": ["select a shape, then say 'rotate 45'", "rotate the rectangle 90 degrees"],
    "color": ["change color to red", "make the circle blue"],
    "stroke": ["make the outline thicker", "set the border to black"],
    "delete": ["delete the circle", "delete all shapes"],
    "duplicate": ["duplicate the rectangle", "select a shape, then say 'duplicate'"],
    "group": ["select two or more shapes, then say 'group them'"],
    "align": ["select two or more shapes, then say 'align left'"],
    "arrange": ["arrange everything in a row", "arrange the shapes vertically"],
    "select": ["select all circles", "select the largest shape", "select everything"],
}

_BULK = re.compile(r"\b(?:all|every|everything|each)\b")


def shape_label(shape_type: ShapeType) -> str:
    return SHAPE_LABELS.get(shape_type, shape_type.value)


def _has(pattern: str) -> Callable[[str], bool]:
    compiled = re.compile(pattern)
    return lambda text: compiled.search(text) is not None


def _fmt(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:.1f}"


@dataclass(frozen=True)
class Rule:
    """one intent: when predicate matches, handler owns the command."""

    name: str
    predicate: Callable[[str], bool]
    handler: Callable[[Command], InterpretResult]


class CommandParser:
    """rule-table interpreter over a read-only view of the store."""

    def __init__(self, store: ShapeStore):
        self.store = store
        self.resolver = TargetResolver(store)
        self.rules: list[Rule] = [
            Rule("grid", _has(r"\bgrid\b"), self._grid),
            Rule("template", self._is_template, self._template),
            Rule("delete", self._is_delete, self._delete),
            Rule("duplicate", _has(r"\b(?:duplicate|copy|clone)\b"), self._duplicate),
            Rule("ungroup", _has(r"\bungroup\b"), self._ungroup),
            Rule("group", _has(r"\bgroup\b"), self._group),
            Rule("align", _has(r"\balign\b"), self._align),
            Rule("arrange", _has(r"\b(?:arrange|distribute|line up)\b"), self._arrange),
            Rule("select", _has(r"\b(?:select|deselect|unselect)\b|\bclear (?:the )?selection\b"), self._select),
            Rule("rotate", _has(r"\b(?:rotate|spin|tilt)\b"), self._rotate),
            Rule("move", _has(r"\b(?:move|shift|nudge|drag)\b|^cent(?:er|re)\b"), self._move),
            Rule("resize", self._is_resize, self._resize),
            Rule("stroke", _has(r"\b(?:outline|stroke|border)s?\b"), self._stroke),
            Rule("color", self._is_color, self._color),
            Rule("create", lambda t: CREATE_VERB_RE.search(t) is not None, self._create),
        ]

    def interpret(self, text: str) -> InterpretResult:
        # rules only see the instruction; text to be written is read from raw
        normalized = strip_text_payload(normalize(text))
        if not normalized:
            return Miss()
        command = Command(raw=text.strip(), normalized=normalized)
        for rule in self.rules:
            if rule.predicate(normalized):
                logger.debug(f"rule {rule.name} matched {normalized!r}")
                return rule.handler(command)
        return Miss()

    def rule_names(self) -> list[str]:
        return [rule.name for rule in self.rules]

    # --- helpers ---

    def _fail(self, intent: str, reason: str) -> Failure:
        return Failure(reason=reason, intent=intent, suggestions=list(SUGGESTIONS.get(intent, [])))

    def _targets(self, hint: Hint) -> list[Target]:
        return self.resolver.resolve_many(hint)

    def _describe(self, targets: list[Target]) -> str:
        if len(targets) == 1:
            return f"the {shape_label(targets[0].shape.type)}"
        return f"{len(targets)} shapes"

    # --- predicates ---

    def _is_template(self, text: str) -> bool:
        if CREATE_VERB_RE.search(text) is None or match_template(text) is None:
            return False
        return not (self._is_resize(text) or self._is_color(text))

    @staticmethod
    def _is_delete(text: str) -> bool:
        if re.search(r"\b(?:outline|stroke|border)s?\b", text):
            return False
        return bool(
            re.search(r"\b(?:delete|remove|erase)\b", text)
            or re.search(r"\bclear (?:the )?(?:canvas|board|all|everything)\b", text)
        )

    @staticmethod
    def _is_resize(text: str) -> bool:
        if re.search(r"\b(?:resize|scale|shrink|grow|enlarge)\b", text):
            return True
        if not re.search(r"\bmake\b", text):
            return False
        if re.search(
            r"\b(?:bigger|larger|smaller|twice|double|half|triple|wider|taller|narrower|shorter)\b"
            r"|\b\d+(?:\.\d+)?\s*(?:x|times)\b|%\s*(?:bigger|larger|smaller)",
            text,
        ):
            return True
        return bool(re.search(r"\bmake (?:it|them|this|that|the)\b", text) and parse_size(text))

    @staticmethod
    def _is_color(text: str) -> bool:
        if parse_color(text) is None:
            return False
        return bool(
            re.search(r"\b(?:change|set|recolou?r|paint|fill|colou?r|turn)\b", text)
            or re.search(r"\bmake (?:it|them|this|that|these|those|the|all|everything)\b", text)
        )

    # --- creation ---

    def _grid(self, cmd: Command) -> InterpretResult:
        t = cmd.normalized
        dims = parse_grid(t)
        if dims is None:
            return self._fail("grid", "How big should the grid be? Try '3x3'.")
        gx, gy = dims
        args: dict = {"gx": gx, "gy": gy}

        if re.search(r"\bemojis?\b", t):
            args.update(kind="emoji", type=ShapeType.IMAGE.value, text=detect_emoji(t))
            noun = "emoji"
        elif re.search(r"\bicons?\b", t):
            args.update(kind="icon", type=ShapeType.IMAGE.value, text=detect_icon(t))
            noun = "icons"
        elif re.search(r"\barrows?\b", t):
            args.update(kind="arrow", type=ShapeType.ARROW.value)
            noun = "arrows"
        elif re.search(r"\blines?\b", t):
            args.update(kind="line", type=ShapeType.LINE.value)
            noun = "lines"
        else:
            shape_type = detect_type(t)
            if shape_type in (None, ShapeType.TEXT, ShapeType.IMAGE):
                shape_type = ShapeType.RECT
            args.update(kind="shape", type=shape_type.value)
            noun = f"{shape_label(shape_type)}s"

        color = parse_color(t)
        if color:
            args["color"] = color_hex(color)
        return Success([ToolCall("createGrid", args)], f"Created a {gx}x{gy} grid of {noun}")

    def _template(self, cmd: Command) -> InterpretResult:
        template = match_template(cmd.normalized)
        if template is None:
            return Miss()
        width, height = template.footprint()
        position = parse_position(cmd.normalized)
        if position is None:
            position = find_free_position(self.store.all(), width, height)
        label = extract_text(cmd.raw) if any(el.label for el in template.elements) else None
        calls = template.compile(position[0], position[1], label=label)
        return Success(calls, f"Created a {template.name.lower()}")

    def _create(self, cmd: Command) -> InterpretResult:
        t = cmd.normalized
        position = parse_position(t)
        color = parse_color(t)

        if re.search(r"\bemojis?\b", t) or re.search(r"\bicons?\b", t):
            is_emoji = re.search(r"\bemojis?\b", t) is not None
            glyph = detect_emoji(t) if is_emoji else detect_icon(t)
            x, y = position or (CANVAS_CENTER[0] - EMOJI_SIZE / 2, CANVAS_CENTER[1] - EMOJI_SIZE / 2)
            args = {"type": ShapeType.IMAGE.value, "x": x, "y": y, "w": EMOJI_SIZE, "h": EMOJI_SIZE, "text": glyph}
            kind = "emoji" if is_emoji else "icon"
            return Success([ToolCall("createShape", args)], f"Added {glyph} {kind}")

        shape_type = detect_type(t)
        if shape_type is None and re.search(r"\b(?:write|says|saying)\b", t):
            shape_type = ShapeType.TEXT
        if shape_type is None:
            return Miss()
        if shape_type == ShapeType.TEXT:
            return self._create_text(cmd, position, color)

        w, h = parse_size(t) or DEFAULT_GEOMETRY[shape_type]
        x, y = position or (CANVAS_CENTER[0] - w / 2, CANVAS_CENTER[1] - h / 2)
        args = {
            "type": shape_type.value,
            "x": x, "y": y, "w": w, "h": h,
            "color": color_hex(color) if color else DEFAULT_COLOR,
        }
        label = extract_text(cmd.raw) if re.search(r"\b(?:labell?ed|says|saying|with text)\b", t) else None
        if label:
            args["text"] = label
        name = shape_label(shape_type)
        return Success([ToolCall("createShape", args)], f"Created a {color + ' ' if color else ''}{name}")

    def _create_text(self, cmd: Command, position, color) -> InterpretResult:
        content = extract_text(cmd.raw)
        if not content:
            return self._fail("create", "What should the text say? Try: add text that says Hello")
        m = re.search(r"\b(?:font size|font|size)\s*(\d+)\b", cmd.normalized)
        font_size = int(m.group(1)) if m else DEFAULT_FONT_SIZE
        if position is None:
            w, h = measure_text(content, font_size)
            position = (CANVAS_CENTER[0] - w / 2, CANVAS_CENTER[1] - h / 2)
        args = {"text": content, "x": position[0], "y": position[1], "fontSize": font_size}
        if color:
            args["color"] = color_hex(color)
        return Success([ToolCall("createText", args)], f"Added text \"{content}\"")

    # --- manipulation ---

    def _rotate(self, cmd: Command) -> InterpretResult:
        targets = self._targets(extract_hint(cmd.normalized))
        if not targets:
            return self._fail("rotate", "Please select a shape to rotate first, or create one.")
        degrees = clamp_angle(parse_angle(cmd.normalized))
        calls = [ToolCall("rotateShape", {"id": tg.id, "degrees": degrees}) for tg in targets]
        return Success(calls, f"Rotated {self._describe(targets)} to {_fmt(degrees)}°")

    def _move(self, cmd: Command) -> InterpretResult:
        t = cmd.normalized
        targets = self._targets(extract_hint(t))
        if not targets:
            return self._fail("move", "Please select a shape to move first, or name it (e.g. 'move the circle').")

        if re.search(r"\b(?:center|centre|middle)\b", t):
            target = targets[0]
            x = CANVAS_CENTER[0] - target.shape.w / 2
            y = CANVAS_CENTER[1] - target.shape.h / 2
            return Success(
                [ToolCall("moveShape", {"id": target.id, "x": x, "y": y})],
                f"Moved {self._describe([target])} to the center",
            )

        position = parse_position(t)
        if position is not None:
            target = targets[0]
            return Success(
                [ToolCall("moveShape", {"id": target.id, "x": position[0], "y": position[1]})],
                f"Moved {self._describe([target])} to ({_fmt(position[0])}, {_fmt(position[1])})",
            )

        offset = parse_direction(t)
        if offset is not None:
            dx, dy = offset
            calls = [
                ToolCall("moveShape", {"id": tg.id, "x": tg.shape.x + dx, "y": tg.shape.y + dy})
                for tg in targets
            ]
            return Success(calls, f"Moved {self._describe(targets)} by ({_fmt(dx)}, {_fmt(dy)})")

        return self._fail("move", "Where should it go? Try 'move right 100' or 'move to 200, 150'.")

    def _resize(self, cmd: Command) -> InterpretResult:
        t = cmd.normalized
        targets = self._targets(extract_hint(t))
        if not targets:
            return self._fail("resize", "Please select a shape to resize first, or create one.")

        size = parse_size(t)
        multiplier = None if size else parse_multiplier(t)
        calls = []
        for tg in targets:
            s = tg.shape
            if size:
                w, h = size
            elif re.search(r"\b(?:wider|narrower|taller|shorter)\b", t):
                w = s.w * (1.25 if "wider" in t else 0.8 if "narrower" in t else 1)
                h = s.h * (1.25 if "taller" in t else 0.8 if "shorter" in t else 1)
            elif multiplier is not None:
                w, h = s.w * multiplier, s.h * multiplier
            else:
                w, h = DEFAULT_RESIZE
            calls.append(ToolCall("resizeShape", {"id": tg.id, "w": w, "h": h}))

        if len(calls) == 1:
            a = calls[0].args
            message = f"Resized {self._describe(targets)} to {_fmt(a['w'])}x{_fmt(a['h'])}"
        else:
            message = f"Resized {self._describe(targets)}"
        return Success(calls, message)

    def _recolor_targets(self, t: str) -> tuple[Optional[str], list[Target]]:
        """(new color, targets); an earlier color word narrows the target."""
        colors = parse_colors(t)
        literal = parse_color(t)
        if literal and literal.startswith("#"):
            new_color = literal
        else:
            new_color = colors[-1] if colors else None
        hint_color = colors[0] if len(colors) > 1 else None
        return new_color, self._targets(Hint(type=detect_type(t), color=hint_color))

    def _color(self, cmd: Command) -> InterpretResult:
        new_color, targets = self._recolor_targets(cmd.normalized)
        if new_color is None:
            return self._fail("color", "Which color? Try 'change color to red'.")
        if not targets:
            return self._fail("color", "Please select a shape to recolor first, or create one.")
        hex_value = color_hex(new_color)
        calls = [ToolCall("changeColor", {"id": tg.id, "color": hex_value}) for tg in targets]
        return Success(calls, f"Changed {self._describe(targets)} to {new_color}")

    def _stroke(self, cmd: Command) -> InterpretResult:
        t = cmd.normalized
        new_color, targets = self._recolor_targets(t)
        if not targets:
            return self._fail("stroke", "Please select a shape first, or create one.")

        explicit = re.search(r"\b(?:width|thickness|weight)\s*(?:of\s*|to\s*)?(\d+(?:\.\d+)?)|(\d+(?:\.\d+)?)\s*px\b", t)
        calls = []
        for tg in targets:
            s = tg.shape
            width = s.stroke_width if s.stroke_width is not None else DEFAULT_STROKE_WIDTH
            if re.search(r"\b(?:remove|no|hide)\b", t):
                width = 0.0
            elif explicit:
                width = float(explicit.group(1) or explicit.group(2))
            elif re.search(r"\b(?:thicker|bolder|heavier)\b", t):
                width += 2
            elif re.search(r"\b(?:thinner|lighter)\b", t):
                width = max(1.0, width - 2)
            stroke = color_hex(new_color) if new_color else (s.stroke or DEFAULT_STROKE)
            calls.append(ToolCall("changeStroke", {"id": tg.id, "stroke": stroke, "strokeWidth": width}))
        return Success(calls, f"Updated the outline of {self._describe(targets)}")

    # --- structure ---

    def _delete(self, cmd: Command) -> InterpretResult:
        t = cmd.normalized
        if self.store.is_empty:
            return self._fail("delete", "The canvas is already empty, there is nothing to delete.")

        if _BULK.search(t) or re.search(r"\bclear (?:the )?(?:canvas|board)\b", t):
            hint = extract_hint(t)
            matches = [
                s for s in self.store.all()
                if (hint.type is None or s.type == hint.type)
                and (hint.color is None or _color_is(s, hint.color))
            ]
            if not matches:
                return self._fail("delete", "No matching shapes to delete.")
            calls = [ToolCall("deleteShape", {"id": s.id}) for s in matches]
            noun = "shape" if len(matches) == 1 else "shapes"
            return Success(calls, f"Delete {len(matches)} {noun}? This removes them for everyone.", confirm=True)

        targets = self._targets(extract_hint(t))
        if not targets:
            return self._fail("delete", "Please select a shape to delete first.")
        calls = [ToolCall("deleteShape", {"id": tg.id}) for tg in targets]
        return Success(calls, f"Deleted {self._describe(targets)}")

    def _duplicate(self, cmd: Command) -> InterpretResult:
        targets = self._targets(extract_hint(cmd.normalized))
        if not targets:
            return self._fail("duplicate", "Please select a shape to duplicate first, or create one.")
        calls = [ToolCall("duplicateShape", {"id": tg.id}) for tg in targets]
        return Success(calls, f"Duplicated {self._describe(targets)}")

    def _group(self, cmd: Command) -> InterpretResult:
        selection = self.store.selection()
        if len(selection) < 2:
            return self._fail("group", "Select at least two shapes to group.")
        return Success(
            [ToolCall("groupShapes", {"ids": [s.id for s in selection]})],
            f"Grouped {len(selection)} shapes",
        )

    def _ungroup(self, cmd: Command) -> InterpretResult:
        candidates = self.store.selection() or [
            tg.shape for tg in self._targets(extract_hint(cmd.normalized))
        ]
        group_ids = []
        for s in candidates:
            if s.group_id and s.group_id not in group_ids:
                group_ids.append(s.group_id)
        if not group_ids:
            return self._fail("group", "The selected shape is not part of a group.")
        calls = [ToolCall("ungroupShapes", {"groupId": gid}) for gid in group_ids]
        return Success(calls, "Ungrouped shapes")

    def _align(self, cmd: Command) -> InterpretResult:
        t = cmd.normalized
        alignment = None
        for word, value in (
            ("left", "left"), ("right", "right"), ("top", "top"), ("bottom", "bottom"),
            ("middle", "middle"), ("vertically", "middle"),
            ("center", "center"), ("centre", "center"), ("horizontally", "center"),
        ):
            if re.search(rf"\b{word}\b", t):
                alignment = value
                break
        if alignment is None:
            return self._fail("align", "Align how? Try 'align left' or 'align top'.")

        shapes = self.store.selection()
        if len(shapes) < 2 and _BULK.search(t):
            shapes = self.store.all()
        if len(shapes) < 2:
            return self._fail("align", "Select at least two shapes to align.")
        return Success(
            [ToolCall("alignShapes", {"ids": [s.id for s in shapes], "alignment": alignment})],
            f"Aligned {len(shapes)} shapes {alignment}",
        )

    def _arrange(self, cmd: Command) -> InterpretResult:
        t = cmd.normalized
        shapes = self.store.selection()
        if len(shapes) < 2:
            shapes = self.store.all()
        if len(shapes) < 2:
            return self._fail("arrange", "There need to be at least two shapes to arrange.")

        vertical = re.search(r"\b(?:column|vertical|vertically|stack)\b", t) is not None
        ordered = sorted(shapes, key=lambda s: s.y if vertical else s.x)
        calls = []
        for i, s in enumerate(ordered):
            offset = ARRANGE_START + i * ARRANGE_SPACING
            x, y = (ARRANGE_START, offset) if vertical else (offset, ARRANGE_BASELINE)
            calls.append(ToolCall("moveShape", {"id": s.id, "x": x, "y": y}))
        layout = "a column" if vertical else "a row"
        return Success(calls, f"Arranged {len(ordered)} shapes in {layout}")

    def _select(self, cmd: Command) -> InterpretResult:
        t = cmd.normalized
        if re.search(r"\b(?:deselect|unselect|none|nothing)\b|\bclear (?:the )?selection\b", t):
            return Success([ToolCall("selectShapes", {"ids": []})], "Cleared the selection")
        if self.store.is_empty:
            return self._fail("select", "There is nothing to select yet.")

        hint = extract_hint(t)
        candidates = [
            s for s in self.store.all()
            if (hint.type is None or s.type == hint.type)
            and (hint.color is None or _color_is(s, hint.color))
        ]
        if not candidates:
            return self._fail("select", "No shapes match that description.")

        if re.search(r"\b(?:largest|biggest)\b", t):
            chosen = [max(candidates, key=lambda s: s.area)]
        elif re.search(r"\bsmallest\b", t):
            chosen = [min(candidates, key=lambda s: s.area)]
        elif _BULK.search(t) or _plural_type(t) or (hint.type is None and hint.color is not None):
            chosen = candidates
        elif hint.type is None:
            target = self.resolver.resolve_target(hint)
            chosen = [target.shape] if target else []
        else:
            chosen = candidates[:1]

        noun = "shape" if len(chosen) == 1 else "shapes"
        return Success(
            [ToolCall("selectShapes", {"ids": [s.id for s in chosen]})],
            f"Selected {len(chosen)} {noun}",
        )


# --- module helpers ---


def _color_is(shape: Shape, color: str) -> bool:
    return color_matches(shape.color, color)


def _plural_type(text: str) -> bool:
    """whether the shape word is plural ("circles", "boxes")."""
    for pattern, _ in TYPE_KEYWORDS:
        m = pattern.search(text)
        if m:
            return m.group(0).endswith("s") and m.group(0) != "rhombus"
    return False
