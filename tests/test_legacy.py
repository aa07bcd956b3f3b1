"""tests for the legacy substring parser."""

from whiteboard_agent.core.legacy import LegacyParser
from whiteboard_agent.core.models import Miss, Success


class TestLegacyCreate:
    """tests for the creation phrasings older clients sent."""

    def test_circle_at_position(self, store):
        result = LegacyParser(store).interpret("create a circle at position 100, 200")
        [call] = result.tool_calls
        assert call.args == {"type": "circle", "x": 100, "y": 200, "w": 120, "h": 120, "color": "#3b82f6"}

    def test_colored_circle(self, store):
        [call] = LegacyParser(store).interpret("create a red circle").tool_calls
        assert call.args["color"] == "#ef4444"
        assert (call.args["x"], call.args["y"]) == (200, 200)

    def test_rectangle_size(self, store):
        [call] = LegacyParser(store).interpret("make a rectangle 300x200").tool_calls
        assert (call.args["w"], call.args["h"]) == (300, 200)

    def test_text(self, store):
        [call] = LegacyParser(store).interpret("create a text layer that says 'Hi team'").tool_calls
        assert call.name == "createText"
        assert call.args["text"] == "Hi team"

    def test_text_default(self, store):
        [call] = LegacyParser(store).interpret("add a text layer").tool_calls
        assert call.args["text"] == "Hello World"

    def test_grid(self, store):
        [call] = LegacyParser(store).interpret("create a 3x3 grid").tool_calls
        assert call.args == {"gx": 3, "gy": 3, "kind": "shape", "type": "rect", "color": "#ddd"}

    def test_login_form(self, store):
        result = LegacyParser(store).interpret("build a login form")
        assert len(result.tool_calls) == 6
        assert (result.tool_calls[0].args["x"], result.tool_calls[0].args["y"]) == (400, 200)
        assert result.tool_calls[2].args["y"] == 320

    def test_nav_bar(self, store):
        result = LegacyParser(store).interpret("navigation bar please")
        assert [c.args.get("text") for c in result.tool_calls[1:]] == ["Home", "About", "Services", "Contact"]


class TestLegacyManipulation:
    """tests for move/resize/rotate over the store."""

    def test_move_by_color(self, store, add_shape):
        add_shape("circle", color="#10b981")
        blue = add_shape("rect", color="#3b82f6")
        [call] = LegacyParser(store).interpret("move the blue rect to 100, 200").tool_calls
        assert call.args == {"id": blue.id, "x": 100, "y": 200}

    def test_move_to_center(self, store, add_shape):
        circle = add_shape("circle")
        [call] = LegacyParser(store).interpret("move the circle to the center").tool_calls
        assert call.args == {"id": circle.id, "x": 400, "y": 300}

    def test_resize_twice(self, store, add_shape):
        circle = add_shape("circle", w=120, h=120)
        [call] = LegacyParser(store).interpret("make the circle twice as big").tool_calls
        assert call.args == {"id": circle.id, "w": 240, "h": 240}

    def test_rotate(self, store, add_shape):
        text = add_shape("text", text="hi")
        [call] = LegacyParser(store).interpret("rotate the text 45 degrees").tool_calls
        assert call.args == {"id": text.id, "degrees": 45}

    def test_arrange_row(self, store, add_shape):
        a = add_shape(x=300)
        b = add_shape(x=10)
        result = LegacyParser(store).interpret("arrange these in a horizontal row")
        assert [c.args["id"] for c in result.tool_calls] == [b.id, a.id]


class TestLegacyMiss:
    """tests for phrasings the legacy parser does not know."""

    def test_unknown(self, store):
        assert isinstance(LegacyParser(store).interpret("do a barrel roll"), Miss)

    def test_move_without_shape(self, store):
        assert isinstance(LegacyParser(store).interpret("move the circle to 10, 10"), Miss)

    def test_never_fails(self, store):
        """results are Success or Miss, never Failure."""
        for text in ["rotate", "resize", "move to", "create", ""]:
            assert isinstance(LegacyParser(store).interpret(text), (Success, Miss))
