"""whiteboard agent: terminal frontend.

type commands, watch the shape list change, confirm destructive actions.
"""

from __future__ import annotations

import logging
from typing import Optional

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.widgets import Footer, Header, Input

from ..core.config import AgentSettings
from ..core.models import AIResponse, Shape
from ..core.router import TierRouter, build_router
from ..core.store import ShapeStore
from ..core.sync import InMemoryChannel, JsonFileBackend, restore_shapes, store_subscriber
from .widgets.response import ResponsePanel
from .widgets.shapes import ShapeClicked, ShapeList
from .widgets.spinner import Spinner


logger = logging.getLogger(__name__)

CONFIRM_WORDS = {"y", "yes", "confirm", "ok"}
CANCEL_WORDS = {"n", "no", "cancel"}


class WhiteboardApp(App):
    """main application."""

    TITLE = "whiteboard agent"

    CSS = """
    Screen {
        layout: vertical;
    }

    #main-container {
        height: 1fr;
    }

    #command-input {
        margin: 0 1;
    }
    """

    BINDINGS = [
        Binding("ctrl+q", "quit", "quit"),
        Binding("ctrl+y", "confirm", "confirm", priority=True),
        Binding("ctrl+n", "cancel", "cancel", priority=True),
        Binding("ctrl+z", "undo", "undo", priority=True),
        Binding("ctrl+r", "redo", "redo", priority=True),
        Binding("escape", "focus_input", "command"),
    ]

    def __init__(
        self,
        settings: Optional[AgentSettings] = None,
        router: Optional[TierRouter] = None,
        store: Optional[ShapeStore] = None,
    ):
        super().__init__()
        self.settings = settings or AgentSettings.from_env()
        self.store = store or ShapeStore(actor=self.settings.actor)
        self.store.center_on_shape = self._center_on
        self.channel = InMemoryChannel(topic=self.settings.channel_topic)
        self.channel.subscribe(store_subscriber(self.store))
        self.persistence = None if router else JsonFileBackend(self.settings.persistence_path)
        self.router = router or build_router(
            self.store,
            settings=self.settings,
            channel=self.channel,
            persistence=self.persistence,
        )
        self.pending: Optional[AIResponse] = None
        self._busy = False

    def compose(self) -> ComposeResult:
        """compose the app layout."""
        yield Header()

        with Vertical(id="main-container"):
            yield ShapeList(self.store, id="shapes")
            yield ResponsePanel(id="response")
            yield Spinner(id="spinner")
            yield Input(placeholder="e.g. create a 3x3 grid of red circles", id="command-input")

        yield Footer()

    async def on_mount(self) -> None:
        """restore saved shapes and focus the command line."""
        self.sub_title = f"{self.settings.room} · {' → '.join(self.router.tier_names)}"
        if self.persistence is not None:
            count = restore_shapes(self.store, self.persistence)
            if count:
                self.notify(f"restored {count} shapes")
        self.store.subscribe(self._refresh_shapes)
        self._refresh_shapes()
        self.query_one("#command-input", Input).focus()

    async def on_input_submitted(self, event: Input.Submitted) -> None:
        """run the submitted command through the router."""
        if event.input.id != "command-input":
            return
        text = event.value.strip()
        event.input.value = ""
        if not text or self._busy:
            return

        # a pending confirmation can be answered from the command line
        if self.pending is not None:
            word = text.lower()
            if word in CONFIRM_WORDS:
                self.action_confirm()
                return
            if word in CANCEL_WORDS:
                self.action_cancel()
                return
            self.pending = None

        await self._interpret(text)

    async def _interpret(self, text: str) -> None:
        spinner = self.query_one("#spinner", Spinner)
        self._busy = True
        spinner.start("interpreting")
        try:
            response = await self.router.interpret_with_fallback(text, self.settings.locale)
        except Exception as e:
            logger.exception(f"interpretation crashed for {text!r}")
            self.notify(f"command failed: {e}", severity="error")
            return
        finally:
            spinner.stop()
            self._busy = False

        if response.requires_confirmation:
            self.pending = response
        self._show(response)

    def _show(self, response: AIResponse) -> None:
        self.query_one("#response", ResponsePanel).show(response)
        if response.type == "error":
            self.notify(response.message, severity="error")

    def _refresh_shapes(self) -> None:
        self.query_one("#shapes", ShapeList).refresh()

    def _center_on(self, shape: Shape) -> None:
        """viewport hook: mark the shape the canvas would pan to."""
        shapes = self.query_one("#shapes", ShapeList)
        shapes.focus_id = shape.id
        shapes.refresh()

    def on_shape_clicked(self, event: ShapeClicked) -> None:
        """click toggles a shape in the selection."""
        ids = list(self.store.selected_ids)
        if event.shape_id in ids:
            ids.remove(event.shape_id)
        else:
            ids.append(event.shape_id)
        self.store.select(ids)

    # --- actions ---

    def action_confirm(self) -> None:
        if self.pending is None or self.pending.confirm_action is None:
            self.notify("nothing to confirm", severity="warning")
            return
        pending, self.pending = self.pending, None
        self._show(pending.confirm_action())

    def action_cancel(self) -> None:
        if self.pending is None:
            return
        self.pending = None
        self._show(AIResponse.success("Cancelled", []))

    def action_undo(self) -> None:
        if not self.store.undo():
            self.notify("nothing to undo", severity="warning")

    def action_redo(self) -> None:
        if not self.store.redo():
            self.notify("nothing to redo", severity="warning")

    def action_focus_input(self) -> None:
        self.query_one("#command-input", Input).focus()


def run(settings: Optional[AgentSettings] = None) -> None:
    """run the whiteboard agent app."""
    app = WhiteboardApp(settings=settings)
    app.run()


if __name__ == "__main__":
    run()
