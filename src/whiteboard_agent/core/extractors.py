"""parameter extractors: angles, sizes, colors, text, grid dims, positions.

all functions are pure and take normalized (lower-cased) text unless noted.
"""

from __future__ import annotations

import re
from typing import Optional

from .models import Hint, ShapeType


# --- palette ---

PALETTE: dict[str, str] = {
    "red": "#ef4444",
    "blue": "#3b82f6",
    "green": "#10b981",
    "yellow": "#f59e0b",
    "orange": "#f97316",
    "purple": "#8b5cf6",
    "pink": "#ec4899",
    "teal": "#14b8a6",
    "cyan": "#06b6d4",
    "brown": "#92400e",
    "gray": "#6b7280",
    "black": "#111827",
    "white": "#ffffff",
}

COLOR_ALIASES = {"grey": "gray", "violet": "purple", "turquoise": "teal"}

# stored colors that count as a palette name when resolving targets
COLOR_VARIANTS: dict[str, tuple[str, ...]] = {
    "red": ("#ef4444", "#ff0000", "#f00", "#dc2626", "red"),
    "blue": ("#3b82f6", "#0000ff", "#00f", "#2563eb", "#0ea5e9", "blue"),
    "green": ("#10b981", "#00ff00", "#0f0", "#22c55e", "green"),
    "yellow": ("#f59e0b", "#ffff00", "#ff0", "#eab308", "yellow"),
    "orange": ("#f97316", "#ffa500", "orange"),
    "purple": ("#8b5cf6", "#800080", "#a855f7", "purple"),
    "pink": ("#ec4899", "#ffc0cb", "pink"),
    "teal": ("#14b8a6", "#008080", "teal"),
    "cyan": ("#06b6d4", "#00ffff", "cyan"),
    "brown": ("#92400e", "#a52a2a", "brown"),
    "gray": ("#6b7280", "#808080", "#9ca3af", "#ddd", "gray", "grey"),
    "black": ("#111827", "#000000", "#000", "#111", "black"),
    "white": ("#ffffff", "#fff", "white"),
}

_COLOR_WORDS = sorted(list(PALETTE) + list(COLOR_ALIASES), key=len, reverse=True)
_COLOR_RE = re.compile(r"\b(" + "|".join(_COLOR_WORDS) + r")\b")
_HEX_RE = re.compile(r"#(?:[0-9a-f]{6}|[0-9a-f]{3})\b")


# --- shape keywords ---

# longest phrases first; the first hit wins
TYPE_KEYWORDS: list[tuple[re.Pattern, ShapeType]] = [
    (re.compile(p), t) for p, t in [
        (r"\brounded (?:rectangle|rect|box)(?:es|s)?\b", ShapeType.ROUNDED_RECT),
        (r"\bsticky(?: notes?)?\b|\bnotes?\b", ShapeType.NOTE),
        (r"\b(?:emoji|emojis|icon|icons|image|images|picture|pictures)\b", ShapeType.IMAGE),
        (r"\b(?:rectangle|rect|square|box)(?:es|s)?\b", ShapeType.RECT),
        (r"\b(?:circle|dot)s?\b", ShapeType.CIRCLE),
        (r"\b(?:oval|ellipse)s?\b", ShapeType.OVAL),
        (r"\btriangles?\b", ShapeType.TRIANGLE),
        (r"\bstars?\b", ShapeType.STAR),
        (r"\bhearts?\b", ShapeType.HEART),
        (r"\bpentagons?\b", ShapeType.PENTAGON),
        (r"\bhexagons?\b", ShapeType.HEXAGON),
        (r"\boctagons?\b", ShapeType.OCTAGON),
        (r"\btrapezoids?\b", ShapeType.TRAPEZOID),
        (r"\b(?:rhombus|rhombuses|diamonds?)\b", ShapeType.RHOMBUS),
        (r"\bparallelograms?\b", ShapeType.PARALLELOGRAM),
        (r"\blines?\b", ShapeType.LINE),
        (r"\barrows?\b", ShapeType.ARROW),
        (r"\bframes?\b", ShapeType.FRAME),
        (r"\b(?:cylinder|database)s?\b", ShapeType.CYLINDER),
        (r"\bdocuments?\b", ShapeType.DOCUMENT),
        (r"\b(?:stadium|pill)s?\b", ShapeType.STADIUM),
        (r"\b(?:text|texts|label|labels|heading|caption)\b", ShapeType.TEXT),
    ]
]

EMOJI: dict[str, str] = {
    "smile": "😀", "smiley": "😀", "happy": "😀",
    "heart": "❤️", "star": "⭐", "fire": "🔥", "rocket": "🚀",
    "thumbs up": "👍", "party": "🎉", "tada": "🎉", "check": "✅",
    "sun": "☀️", "moon": "🌙", "cat": "🐱", "dog": "🐶",
    "pizza": "🍕", "coffee": "☕", "idea": "💡", "lightbulb": "💡",
    "warning": "⚠️",
}
DEFAULT_EMOJI = "😀"

ICONS: dict[str, str] = {
    "home": "🏠", "search": "🔍", "settings": "⚙️", "gear": "⚙️",
    "user": "👤", "profile": "👤", "mail": "✉️", "email": "✉️",
    "phone": "📞", "calendar": "📅", "lock": "🔒", "bell": "🔔",
    "notification": "🔔", "trash": "🗑️", "cart": "🛒", "folder": "📁",
    "download": "⬇️", "upload": "⬆️",
}
DEFAULT_ICON = "⭐"


def normalize(text: str) -> str:
    """trim, lower-case and collapse internal whitespace."""
    return re.sub(r"\s+", " ", text.strip().lower())


# --- angles ---

_ANGLE_RE = re.compile(r"(?<![\w.#])(-?\d+)(?:\.\d+)?\s*(?:°|deg\b|degrees?\b)?")


def parse_angle(text: str) -> int:
    """rotation amount in degrees.

    explicit signed integer wins; otherwise a direction keyword
    (counterclockwise/left -90, clockwise/right +90); otherwise 90.
    """
    m = _ANGLE_RE.search(text)
    if m:
        return int(m.group(1))
    if re.search(r"\b(?:counter-?clockwise|anti-?clockwise|ccw)\b", text):
        return -90
    if re.search(r"\b(?:clockwise|cw)\b", text):
        return 90
    if re.search(r"\bleft\b", text):
        return -90
    if re.search(r"\bright\b", text):
        return 90
    return 90


def clamp_angle(degrees: float) -> float:
    """normalize into (-180, 180]."""
    a = degrees % 360
    if a > 180:
        a -= 360
    return a


# --- sizes ---

_SIZE_RE = re.compile(r"(?<![\w.])(\d+(?:\.\d+)?)\s*(?:x|×|by)\s*(\d+(?:\.\d+)?)\b")


def parse_size(text: str) -> Optional[tuple[float, float]]:
    """absolute "WxH" / "W by H" dimensions."""
    m = _SIZE_RE.search(text)
    if not m:
        return None
    return float(m.group(1)), float(m.group(2))


def parse_multiplier(text: str) -> Optional[float]:
    """relative scale factor, or None when the text names none."""
    m = re.search(r"(\d+(?:\.\d+)?)\s*%\s*(bigger|larger|smaller)", text)
    if m:
        pct = float(m.group(1)) / 100
        return 1 + pct if m.group(2) != "smaller" else max(0.05, 1 - pct)
    # "3 times smaller" and "shrink it 2x" divide
    shrinking = re.search(r"\b(?:smaller|shrink|reduce)\b", text) is not None
    factor = None
    m = re.search(r"(?<![\w.])(\d+(?:\.\d+)?)\s*(?:x|times)(?!\s*\d)", text)
    if m:
        factor = float(m.group(1))
    elif re.search(r"\b(?:triple|three times)\b", text):
        factor = 3.0
    elif re.search(r"\btwo times\b", text):
        factor = 2.0
    if factor:
        return 1 / factor if shrinking else factor
    if re.search(r"\b(?:twice|double)\b", text):
        return 2.0
    if re.search(r"\bhalf\b|\bhalve\b", text):
        return 0.5
    if re.search(r"\b(?:bigger|larger|grow|enlarge)\b", text):
        return 1.25
    if re.search(r"\b(?:smaller|shrink|reduce)\b", text):
        return 0.8
    return None


# --- colors ---


def parse_color(text: str) -> Optional[str]:
    """first palette name (or hex literal) mentioned."""
    m = _HEX_RE.search(text)
    if m:
        return m.group(0)
    m = _COLOR_RE.search(text)
    if m:
        word = m.group(1)
        return COLOR_ALIASES.get(word, word)
    return None


def parse_colors(text: str) -> list[str]:
    """every palette name mentioned, in order ("make the blue one red")."""
    return [COLOR_ALIASES.get(w, w) for w in _COLOR_RE.findall(text)]


def color_hex(color: str) -> str:
    """palette name -> hex; hex passes through."""
    return PALETTE.get(COLOR_ALIASES.get(color, color), color)


def color_matches(stored: Optional[str], color: str) -> bool:
    """whether a stored color counts as the named color."""
    if not stored:
        return False
    stored = stored.lower()
    if color in stored:
        return True
    return any(v in stored for v in COLOR_VARIANTS.get(color, ()))


# --- text ---

CREATE_VERB_RE = re.compile(r"\b(?:create|add|draw|make|insert|place|put|new|generate|write)\b")

_QUOTED_RES = [
    re.compile(r'"([^"]+)"'),
    re.compile(r"“([^”]+)”"),
    re.compile(r"(?:^|\s)'([^']+)'(?=\s|$|[.,!?])"),
]
_TEXT_LEAD_RE = re.compile(
    r"\b(?:that says|which says|saying|says|reading|labeled|labelled|containing|"
    r"with (?:the )?(?:text|words?))\s+(.+)$",
    re.IGNORECASE,
)
_TEXT_VERB_RE = re.compile(
    r"\b(?:text|write|label|heading|title|caption)\s+(?!that\b|which\b|saying\b)(.+)$",
    re.IGNORECASE,
)
_TRAILING_POSITION_RE = re.compile(r"\s+at\s+(?:position\s+)?\(?-?\d.*$", re.IGNORECASE)


def extract_text(raw: str) -> Optional[str]:
    """text content to place, read from the raw (case-preserving) command."""
    for pattern in _QUOTED_RES:
        m = pattern.search(raw)
        if m and m.group(1).strip():
            return m.group(1).strip()
    for pattern in (_TEXT_LEAD_RE, _TEXT_VERB_RE):
        m = pattern.search(raw)
        if m:
            content = _TRAILING_POSITION_RE.sub("", m.group(1)).strip().rstrip(".!?")
            if content:
                return content
    return None


def strip_text_payload(text: str) -> str:
    """the instruction part of a normalized command, minus the words to write.

    quoted spans always go. the tail after 'says', 'labeled' and the like
    goes when a creation verb comes first; a trailing 'at x, y' stays.
    """
    for pattern in _QUOTED_RES:
        text = pattern.sub(" ", text)
    m = _TEXT_LEAD_RE.search(text)
    if m and CREATE_VERB_RE.search(text[:m.start()]):
        tail = _TRAILING_POSITION_RE.search(m.group(1))
        text = text[:m.start(1)] + (tail.group(0) if tail else "")
    return normalize(text)


# --- grid / position / direction ---

_GRID_RE = re.compile(r"(?<![\w.])(\d+)\s*(?:x|×|by)\s*(\d+)\b")


def parse_grid(text: str) -> Optional[tuple[int, int]]:
    """(columns, rows) from an "NxM" token."""
    m = _GRID_RE.search(text)
    if not m:
        return None
    gx, gy = int(m.group(1)), int(m.group(2))
    if gx < 1 or gy < 1:
        return None
    return gx, gy


_POSITION_RE = re.compile(
    r"\b(?:at|to)\s+(?:position\s+|coordinates\s+|point\s+)?\(?\s*"
    r"(-?\d+(?:\.\d+)?)\s*(?:,\s*|\s+)(-?\d+(?:\.\d+)?)\s*\)?"
)


def parse_position(text: str) -> Optional[tuple[float, float]]:
    """absolute "at X, Y" / "to X Y" coordinates."""
    m = _POSITION_RE.search(text)
    if not m:
        return None
    return float(m.group(1)), float(m.group(2))


DEFAULT_NUDGE = 50.0
_DIRECTIONS = {"left": (-1, 0), "right": (1, 0), "up": (0, -1), "down": (0, 1)}


def parse_direction(text: str) -> Optional[tuple[float, float]]:
    """signed (dx, dy) for "right 100" / "50px left"; distance defaults to 50."""
    m = re.search(r"\b(left|right|up|down)\b(?:\s+by)?\s+(\d+(?:\.\d+)?)", text)
    if m:
        direction, distance = m.group(1), float(m.group(2))
    else:
        m = re.search(
            r"(\d+(?:\.\d+)?)\s*(?:px|pixels?|units?)?\s+(?:to the\s+)?(left|right|up|down)\b", text
        )
        if m:
            distance, direction = float(m.group(1)), m.group(2)
        else:
            m = re.search(r"\b(left|right|up|down)\b", text)
            if not m:
                return None
            direction, distance = m.group(1), DEFAULT_NUDGE
    ux, uy = _DIRECTIONS[direction]
    return ux * distance, uy * distance


# --- shape type / emoji / hint ---


def detect_type(text: str) -> Optional[ShapeType]:
    for pattern, shape_type in TYPE_KEYWORDS:
        if pattern.search(text):
            return shape_type
    return None


def _lookup(table: dict[str, str], text: str) -> Optional[str]:
    for name in sorted(table, key=len, reverse=True):
        if re.search(r"\b" + re.escape(name) + r"s?\b", text):
            return table[name]
    return None


def detect_emoji(text: str) -> str:
    return _lookup(EMOJI, text) or DEFAULT_EMOJI


def detect_icon(text: str) -> str:
    return _lookup(ICONS, text) or DEFAULT_ICON


def extract_hint(text: str) -> Hint:
    """type/color words that narrow the target search."""
    return Hint(type=detect_type(text), color=parse_color(text))
