"""pytest fixtures for whiteboard agent tests."""

import pytest
import tempfile
from pathlib import Path

from whiteboard_agent.core.models import Shape
from whiteboard_agent.core.parser import CommandParser
from whiteboard_agent.core.store import ShapeStore
from whiteboard_agent.core.sync import InMemoryChannel, MemoryBackend
from whiteboard_agent.core.tools import EffectExecutor


@pytest.fixture
def temp_dir():
    """temporary directory that cleans up after test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def store():
    """empty store owned by a test actor."""
    return ShapeStore(actor="tester")


@pytest.fixture
def channel():
    return InMemoryChannel(topic="room:test")


@pytest.fixture
def backend():
    return MemoryBackend()


@pytest.fixture
def executor(store, channel, backend):
    """executor wired to in-memory broadcast and persistence."""
    return EffectExecutor(store, channel=channel, persistence=backend)


@pytest.fixture
def parser(store):
    return CommandParser(store)


@pytest.fixture
def add_shape(store):
    """factory that puts a shape straight into the store (no history)."""

    def _add(type="rect", **attrs):
        attrs.setdefault("updated_at", store.next_timestamp())
        shape = Shape.create(type, **attrs)
        store.upsert(shape)
        return shape

    return _add
