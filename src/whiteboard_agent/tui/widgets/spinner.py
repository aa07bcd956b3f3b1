"""animated spinner shown while a command is being interpreted."""

from __future__ import annotations

from textual.reactive import reactive
from textual.widgets import Static


# spinner frames for animation
SPINNER_FRAMES = ["⠋", "⠙", "⠹", "⠸", "⠼", "⠴", "⠦", "⠧", "⠇", "⠏"]


def format_elapsed(seconds: float) -> str:
    mins = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{mins}m {secs}s" if mins > 0 else f"{secs}s"


class Spinner(Static):
    """one-line spinner with a label and elapsed time."""

    DEFAULT_CSS = """
    Spinner {
        display: none;
        height: 1;
        padding: 0 1;
        background: $surface;
    }

    Spinner.visible {
        display: block;
    }
    """

    frame_index = reactive(0)
    elapsed = reactive(0.0)
    label = reactive("")

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._timer = None

    def render(self) -> str:
        if not self.label:
            return ""
        frame = SPINNER_FRAMES[self.frame_index % len(SPINNER_FRAMES)]
        return f"{frame} {self.label} ({format_elapsed(self.elapsed)})"

    def start(self, label: str) -> None:
        self.label = label
        self.elapsed = 0.0
        self.frame_index = 0
        self.add_class("visible")
        self._timer = self.set_interval(0.1, self._tick)

    def stop(self) -> None:
        if self._timer:
            self._timer.stop()
            self._timer = None
        self.label = ""
        self.remove_class("visible")

    def _tick(self) -> None:
        self.frame_index += 1
        self.elapsed += 0.1
