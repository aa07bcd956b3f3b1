"""runtime settings, read from the environment and overridden by cli flags."""

from __future__ import annotations

import os
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


# --- configuration ---

DEFAULT_ROOM = "room-1"
DEFAULT_DATA_DIR = Path.home() / ".whiteboard-agent"
DEFAULT_CLAUDE_MODEL = "sonnet"
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_LOCALE = "en"


def _flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes", "on")


@dataclass
class AgentSettings:
    """where to persist, who is editing, and which backends to use."""

    room: str = DEFAULT_ROOM
    actor: str = field(default_factory=lambda: str(uuid.uuid4()))
    data_dir: Path = DEFAULT_DATA_DIR
    locale: str = DEFAULT_LOCALE
    claude_model: str = DEFAULT_CLAUDE_MODEL
    openai_model: str = DEFAULT_OPENAI_MODEL
    openai_api_key: Optional[str] = None
    claude_enabled: bool = True
    mock: bool = False

    @classmethod
    def from_env(cls) -> AgentSettings:
        data_dir = os.environ.get("WHITEBOARD_DATA_DIR")
        return cls(
            room=os.environ.get("WHITEBOARD_ROOM", DEFAULT_ROOM),
            actor=os.environ.get("WHITEBOARD_ACTOR") or str(uuid.uuid4()),
            data_dir=Path(data_dir).expanduser() if data_dir else DEFAULT_DATA_DIR,
            locale=os.environ.get("WHITEBOARD_LOCALE", DEFAULT_LOCALE),
            claude_model=os.environ.get("WHITEBOARD_CLAUDE_MODEL", DEFAULT_CLAUDE_MODEL),
            openai_model=os.environ.get("WHITEBOARD_OPENAI_MODEL", DEFAULT_OPENAI_MODEL),
            openai_api_key=os.environ.get("OPENAI_API_KEY") or None,
            claude_enabled=not _flag("WHITEBOARD_DISABLE_CLAUDE"),
        )

    @property
    def channel_topic(self) -> str:
        return f"room:{self.room}"

    @property
    def persistence_path(self) -> Path:
        return self.data_dir / f"{self.room}.json"
