"""response panel: what the agent did or needs."""

from __future__ import annotations

from typing import Optional

from rich.text import Text
from textual.widgets import Static

from ...core.models import AIResponse


STYLES = {
    "success": "green",
    "clarification_needed": "yellow",
    "confirmation_required": "bold magenta",
    "error": "bold red",
}


def render_response(response: Optional[AIResponse]) -> Text:
    if response is None:
        return Text("type a command below, e.g. 'create a red circle'", style="dim")

    text = Text()
    text.append(response.message + "\n", style=STYLES.get(response.type, ""))
    if response.result:
        names = ", ".join(call.name for call in response.result)
        text.append(f"  {names}\n", style="dim")
    if response.requires_confirmation:
        text.append("  ctrl+y to confirm, ctrl+n to cancel\n", style="magenta")
    for suggestion in response.suggestions:
        text.append(f"  • {suggestion}\n", style="italic")
    return text


class ResponsePanel(Static):
    """last response from the agent."""

    DEFAULT_CSS = """
    ResponsePanel {
        height: auto;
        min-height: 3;
        padding: 0 1;
        border: solid $primary;
    }
    """

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.response: Optional[AIResponse] = None

    def render(self) -> Text:
        return render_response(self.response)

    def show(self, response: Optional[AIResponse]) -> None:
        self.response = response
        self.refresh()
