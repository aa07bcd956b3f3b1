"""tests for ShapeStore: selection, undo history, peer edits."""

from whiteboard_agent.core.models import Shape, ShapeType
from whiteboard_agent.core.store import MAX_UNDO_HISTORY, ShapeStore


class TestBasics:
    """tests for reads and writes."""

    def test_empty(self, store):
        assert store.is_empty
        assert len(store) == 0
        assert store.all() == []

    def test_upsert_and_get(self, store):
        shape = Shape.create("circle", x=10, y=20)
        store.upsert(shape)
        assert shape.id in store
        assert store.get(shape.id) is shape
        assert len(store) == 1

    def test_insertion_order(self, store, add_shape):
        a = add_shape("rect")
        b = add_shape("circle")
        c = add_shape("star")
        assert [s.id for s in store.all()] == [a.id, b.id, c.id]

    def test_remove_deselects(self, store, add_shape):
        a = add_shape()
        b = add_shape()
        store.select([a.id, b.id])
        removed = store.remove(a.id)
        assert removed is a
        assert store.selected_ids == [b.id]

    def test_init_with_shapes(self):
        shape = Shape.create("rect", updated_at=10**15)
        store = ShapeStore(shapes=[shape])
        assert shape.id in store
        assert store.next_timestamp() > 10**15


class TestSelection:
    """tests for select."""

    def test_select_ignores_unknown(self, store, add_shape):
        a = add_shape()
        store.select([a.id, "nope"])
        assert store.selected_ids == [a.id]

    def test_select_dedupes(self, store, add_shape):
        a = add_shape()
        store.select([a.id, a.id])
        assert store.selected_ids == [a.id]

    def test_selection_order(self, store, add_shape):
        a = add_shape()
        b = add_shape()
        store.select([b.id, a.id])
        assert [s.id for s in store.selection()] == [b.id, a.id]

    def test_clear_selection(self, store, add_shape):
        store.select([add_shape().id])
        store.clear_selection()
        assert store.selected_ids == []


class TestTimestamps:
    """tests for next_timestamp."""

    def test_strictly_increasing(self, store):
        stamps = [store.next_timestamp() for _ in range(100)]
        assert all(b > a for a, b in zip(stamps, stamps[1:]))

    def test_beats_incoming(self, store):
        """a peer's future timestamp pushes ours forward."""
        store.upsert(Shape.create("rect", updated_at=10**15))
        assert store.next_timestamp() > 10**15


class TestHistory:
    """tests for undo/redo."""

    def test_undo_restores_snapshot(self, store, add_shape):
        a = add_shape()
        store.push_history()
        store.remove(a.id)
        assert store.undo()
        assert a.id in store

    def test_redo(self, store, add_shape):
        a = add_shape()
        store.push_history()
        store.remove(a.id)
        store.undo()
        assert store.redo()
        assert a.id not in store

    def test_undo_empty(self, store):
        assert not store.undo()
        assert not store.redo()

    def test_snapshot_is_deep(self, store, add_shape):
        """mutating a live shape does not touch the snapshot."""
        a = add_shape(x=0)
        store.push_history()
        store.get(a.id).x = 999
        store.undo()
        assert store.get(a.id).x == 0

    def test_history_capped(self, store, add_shape):
        add_shape()
        for _ in range(MAX_UNDO_HISTORY + 10):
            store.push_history()
        assert store.history_size == MAX_UNDO_HISTORY

    def test_push_clears_redo(self, store, add_shape):
        add_shape()
        store.push_history()
        store.undo()
        store.push_history()
        assert not store.redo()

    def test_undo_clears_selection(self, store, add_shape):
        a = add_shape()
        store.push_history()
        store.select([a.id])
        store.undo()
        assert store.selected_ids == []


class TestPeerEdits:
    """tests for receive_upsert / receive_remove (last write wins)."""

    def test_accepts_new_shape(self, store):
        incoming = Shape.create("circle", updated_at=5)
        assert store.receive_upsert(incoming.to_dict()) == 1
        assert store.get(incoming.id).type == ShapeType.CIRCLE

    def test_newer_wins(self, store):
        shape = Shape.create("rect", x=0, updated_at=5)
        store.upsert(shape)
        newer = shape.to_dict() | {"x": 50, "updated_at": 6}
        assert store.receive_upsert(newer) == 1
        assert store.get(shape.id).x == 50

    def test_stale_ignored(self, store):
        shape = Shape.create("rect", x=0, updated_at=10)
        store.upsert(shape)
        stale = shape.to_dict() | {"x": 50, "updated_at": 9}
        assert store.receive_upsert(stale) == 0
        assert store.get(shape.id).x == 0

    def test_equal_timestamp_ignored(self, store):
        """own echo carries the same updated_at and changes nothing."""
        shape = Shape.create("rect", x=0, updated_at=10)
        store.upsert(shape)
        assert store.receive_upsert(shape.to_dict() | {"x": 1}) == 0

    def test_batch_payload(self, store):
        rows = [Shape.create("rect", updated_at=1).to_dict() for _ in range(3)]
        assert store.receive_upsert(rows) == 3
        assert len(store) == 3

    def test_receive_remove(self, store, add_shape):
        a = add_shape()
        b = add_shape()
        store.select([a.id, b.id])
        store.receive_remove({"id": a.id})
        assert a.id not in store
        assert store.selected_ids == [b.id]

    def test_receive_remove_many(self, store, add_shape):
        a = add_shape()
        b = add_shape()
        store.receive_remove([a.id, b.id])
        assert store.is_empty


class TestListeners:
    """tests for change notification."""

    def test_listener_called(self, store):
        calls = []
        store.subscribe(lambda: calls.append(1))
        store.upsert(Shape.create("rect"))
        store.select([])
        assert len(calls) == 2
