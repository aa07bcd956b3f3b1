"""tests for broadcast channel, persistence backends and settings."""

import json

from whiteboard_agent.core.config import AgentSettings
from whiteboard_agent.core.models import Shape, ToolCall
from whiteboard_agent.core.store import ShapeStore
from whiteboard_agent.core.sync import (
    REMOVE_EVENT,
    UPSERT_EVENT,
    InMemoryChannel,
    JsonFileBackend,
    MemoryBackend,
    fire_and_forget,
    restore_shapes,
    store_subscriber,
)
from whiteboard_agent.core.tools import EffectExecutor


class TestChannel:
    """tests for InMemoryChannel and peer stores."""

    def test_records_and_fans_out(self):
        channel = InMemoryChannel()
        heard = []
        channel.subscribe(lambda event, payload: heard.append(event))
        channel.send(UPSERT_EVENT, {"id": "a"})
        assert channel.sent == [(UPSERT_EVENT, {"id": "a"})]
        assert heard == [UPSERT_EVENT]

    def test_peer_converges(self):
        """edits made through one executor show up in a peer's store."""
        channel = InMemoryChannel(topic="room:shared")
        mine = ShapeStore(actor="me")
        peer = ShapeStore(actor="peer")
        channel.subscribe(store_subscriber(mine))
        channel.subscribe(store_subscriber(peer))
        executor = EffectExecutor(mine, channel=channel)

        [call] = executor.apply([ToolCall("createShape", {"type": "rect", "x": 1, "y": 2, "w": 3, "h": 4})])
        shape_id = call.args["id"]
        assert peer.get(shape_id).to_dict() == mine.get(shape_id).to_dict()

        executor.apply([ToolCall("moveShape", {"id": shape_id, "x": 50, "y": 60})])
        assert peer.get(shape_id).x == 50

        executor.apply([ToolCall("deleteShape", {"id": shape_id})])
        assert shape_id not in peer

    def test_subscriber_ignores_other_events(self, store):
        store_subscriber(store)("cursor:move", {"x": 1})
        assert store.is_empty

    def test_remove_event(self, store, add_shape):
        shape = add_shape()
        store_subscriber(store)(REMOVE_EVENT, {"id": shape.id})
        assert shape.id not in store


class TestBackends:
    """tests for memory and json-file persistence."""

    def test_memory_upsert_on_conflict(self):
        backend = MemoryBackend()
        backend.upsert([{"id": "a", "x": 1}])
        backend.upsert([{"id": "a", "x": 2}])
        assert backend.load() == [{"id": "a", "x": 2}]
        backend.delete("a")
        backend.delete("missing")
        assert backend.load() == []

    def test_json_roundtrip(self, temp_dir):
        path = temp_dir / "rooms" / "r1.json"
        backend = JsonFileBackend(path)
        shape = Shape.create("circle", x=5)
        backend.upsert([shape.to_dict()])

        data = json.loads(path.read_text())
        assert data["shapes"][0]["id"] == shape.id

        reloaded = JsonFileBackend(path)
        assert reloaded.load() == [shape.to_dict()]

    def test_json_corrupt_file(self, temp_dir):
        path = temp_dir / "bad.json"
        path.write_text("{not json")
        assert JsonFileBackend(path).load() == []

    def test_restore_shapes_skips_bad_rows(self, store):
        backend = MemoryBackend()
        good = Shape.create("rect")
        backend.upsert([good.to_dict(), {"id": "bad", "type": "blob"}])
        assert restore_shapes(store, backend) == 1
        assert good.id in store


class TestFireAndForget:
    """tests for fire_and_forget."""

    def test_swallows_and_logs(self, caplog):
        def boom():
            raise RuntimeError("offline")

        fire_and_forget("broadcast", boom)
        assert "broadcast failed: offline" in caplog.text

    def test_runs_action(self):
        ran = []
        fire_and_forget("persist", lambda: ran.append(1))
        assert ran == [1]


class TestSettings:
    """tests for AgentSettings.from_env."""

    def test_defaults(self, monkeypatch):
        for name in ["WHITEBOARD_ROOM", "WHITEBOARD_ACTOR", "WHITEBOARD_DATA_DIR", "OPENAI_API_KEY",
                     "WHITEBOARD_DISABLE_CLAUDE", "WHITEBOARD_LOCALE"]:
            monkeypatch.delenv(name, raising=False)
        settings = AgentSettings.from_env()
        assert settings.room == "room-1"
        assert settings.locale == "en"
        assert settings.claude_enabled
        assert settings.openai_api_key is None
        assert settings.actor

    def test_from_env(self, monkeypatch, temp_dir):
        monkeypatch.setenv("WHITEBOARD_ROOM", "design")
        monkeypatch.setenv("WHITEBOARD_ACTOR", "alice")
        monkeypatch.setenv("WHITEBOARD_DATA_DIR", str(temp_dir))
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        monkeypatch.setenv("WHITEBOARD_DISABLE_CLAUDE", "yes")
        settings = AgentSettings.from_env()
        assert settings.actor == "alice"
        assert settings.openai_api_key == "sk-test"
        assert not settings.claude_enabled
        assert settings.channel_topic == "room:design"
        assert settings.persistence_path == temp_dir / "design.json"
