"""tests for the textual frontend: render helpers and the app loop."""

import pytest
from textual.widgets import Input

from whiteboard_agent.core.config import AgentSettings
from whiteboard_agent.core.models import AIResponse, Shape, ToolCall
from whiteboard_agent.core.router import build_router
from whiteboard_agent.tui.app import WhiteboardApp
from whiteboard_agent.tui.widgets.response import render_response
from whiteboard_agent.tui.widgets.shapes import format_shape, render_shapes
from whiteboard_agent.tui.widgets.spinner import format_elapsed


class TestRenderHelpers:
    """tests for the pure rendering helpers."""

    def test_empty_canvas(self, store):
        text = render_shapes(store)
        assert text.plain == "(empty canvas)"
        assert text.style == "dim"

    def test_format_shape(self):
        shape = Shape.create("circle", x=340.4, y=240, w=120, h=120, rotation=45, color="#ef4444", text="Hi")
        line = format_shape(shape)
        assert line.startswith("circle")
        assert "(340, 240)" in line
        assert "120x120" in line
        assert "45°" in line
        assert "#ef4444" in line
        assert '"Hi"' in line

    def test_long_text_truncated(self):
        shape = Shape.create("text", text="x" * 40)
        assert "x" * 23 + "…" in format_shape(shape)

    def test_selected_highlighted(self, store, add_shape):
        a = add_shape()
        b = add_shape()
        store.select([b.id])
        text = render_shapes(store, focus_id=a.id)
        lines = text.plain.splitlines()
        assert len(lines) == 2
        assert lines[0].startswith("▶ ")
        styles = {str(span.style) for span in text.spans}
        assert "bold cyan" in styles

    def test_render_no_response(self):
        assert "type a command" in render_response(None).plain

    def test_render_success(self):
        resp = AIResponse.success("Created a circle", [ToolCall("createShape", {})])
        plain = render_response(resp).plain
        assert "Created a circle" in plain
        assert "createShape" in plain

    def test_render_confirmation(self):
        resp = AIResponse(
            type="confirmation_required",
            message="Delete 3 shapes?",
            result=[],
            confirm_action=lambda: AIResponse.success("done", []),
        )
        assert "ctrl+y to confirm" in render_response(resp).plain

    def test_render_suggestions(self):
        resp = AIResponse.clarification("Which one?", ["select a shape", "rotate 45"])
        plain = render_response(resp).plain
        assert "• select a shape" in plain
        assert "• rotate 45" in plain

    @pytest.mark.parametrize("seconds,expected", [(0, "0s"), (5.9, "5s"), (61, "1m 1s")])
    def test_format_elapsed(self, seconds, expected):
        assert format_elapsed(seconds) == expected


@pytest.fixture
def tui(store):
    settings = AgentSettings(actor="tester", mock=True)
    router = build_router(store, settings=settings)
    return WhiteboardApp(settings=settings, router=router, store=store)


async def submit(app, pilot, text):
    app.query_one("#command-input", Input).value = text
    await pilot.press("enter")
    await pilot.pause()


class TestApp:
    """tests for the running app."""

    @pytest.mark.asyncio
    async def test_command_creates_shape(self, tui, store):
        async with tui.run_test() as pilot:
            await submit(tui, pilot, "create a red circle")
            assert len(store) == 1
            assert tui.query_one("#response").response.type == "success"

    @pytest.mark.asyncio
    async def test_confirm_from_prompt(self, tui, store, add_shape):
        for _ in range(3):
            add_shape()
        async with tui.run_test() as pilot:
            await submit(tui, pilot, "delete all")
            assert tui.pending is not None
            assert len(store) == 3

            await submit(tui, pilot, "yes")
            assert tui.pending is None
            assert store.is_empty

    @pytest.mark.asyncio
    async def test_cancel_from_prompt(self, tui, store, add_shape):
        add_shape()
        async with tui.run_test() as pilot:
            await submit(tui, pilot, "delete everything")
            await submit(tui, pilot, "no")
            assert tui.pending is None
            assert len(store) == 1

    @pytest.mark.asyncio
    async def test_undo_action(self, tui, store):
        async with tui.run_test() as pilot:
            await submit(tui, pilot, "create a circle")
            tui.action_undo()
            assert store.is_empty
            tui.action_redo()
            assert len(store) == 1

    @pytest.mark.asyncio
    async def test_center_hook_marks_shape(self, tui, store):
        async with tui.run_test() as pilot:
            await submit(tui, pilot, "create a star")
            assert tui.query_one("#shapes").focus_id == store.all()[0].id
