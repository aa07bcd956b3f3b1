"""tests for target resolution priority."""

from whiteboard_agent.core.models import Hint, ShapeType
from whiteboard_agent.core.resolver import TargetResolver


class TestResolveTarget:
    """selection, then type, then color, then most recent."""

    def test_empty_canvas(self, store):
        assert TargetResolver(store).resolve_target(Hint(type=ShapeType.CIRCLE)) is None

    def test_selection_wins(self, store, add_shape):
        rect = add_shape("rect")
        add_shape("circle")
        store.select([rect.id])
        target = TargetResolver(store).resolve_target(Hint(type=ShapeType.CIRCLE))
        assert target.id == rect.id

    def test_selection_beats_color(self, store, add_shape):
        """a selected blue shape wins over a red one named by color."""
        add_shape("rect", color="#ef4444")
        blue = add_shape("rect", color="#3b82f6")
        store.select([blue.id])
        target = TargetResolver(store).resolve_target(Hint(color="red"))
        assert target.id == blue.id

    def test_first_selected(self, store, add_shape):
        a = add_shape()
        b = add_shape()
        store.select([b.id, a.id])
        assert TargetResolver(store).resolve_target().id == b.id

    def test_type_match_in_store_order(self, store, add_shape):
        add_shape("rect")
        first = add_shape("circle")
        add_shape("circle")
        target = TargetResolver(store).resolve_target(Hint(type=ShapeType.CIRCLE))
        assert target.id == first.id

    def test_type_before_color(self, store, add_shape):
        add_shape("rect", color="#ef4444")
        circle = add_shape("circle", color="#3b82f6")
        target = TargetResolver(store).resolve_target(Hint(type=ShapeType.CIRCLE, color="red"))
        assert target.id == circle.id

    def test_color_when_type_absent(self, store, add_shape):
        add_shape("rect", color="#3b82f6")
        red = add_shape("rect", color="#ef4444")
        target = TargetResolver(store).resolve_target(Hint(type=ShapeType.STAR, color="red"))
        assert target.id == red.id

    def test_most_recent_fallback(self, store, add_shape):
        add_shape(updated_at=5)
        latest = add_shape(updated_at=50)
        add_shape(updated_at=10)
        assert TargetResolver(store).resolve_target().id == latest.id

    def test_no_hint_match_still_resolves(self, store, add_shape):
        """unmatched hints fall back to the most recent shape."""
        only = add_shape("rect", color="#3b82f6")
        target = TargetResolver(store).resolve_target(Hint(type=ShapeType.STAR, color="red"))
        assert target.id == only.id


class TestResolveMany:
    """tests for resolve_many."""

    def test_multi_selection(self, store, add_shape):
        a = add_shape()
        b = add_shape()
        store.select([a.id, b.id])
        assert [t.id for t in TargetResolver(store).resolve_many()] == [a.id, b.id]

    def test_single(self, store, add_shape):
        a = add_shape()
        assert [t.id for t in TargetResolver(store).resolve_many()] == [a.id]

    def test_empty(self, store):
        assert TargetResolver(store).resolve_many() == []
