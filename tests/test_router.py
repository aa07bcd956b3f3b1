"""tests for the tier router: ordering, fallback, confirmation."""

import json

import pytest
from unittest.mock import AsyncMock, MagicMock

from whiteboard_agent.core.client import MockClient
from whiteboard_agent.core.config import AgentSettings
from whiteboard_agent.core.errors import ProviderError
from whiteboard_agent.core.models import Failure, Miss, Success, ToolCall
from whiteboard_agent.core.router import GenerativeTier, ParserTier, TierRouter, build_router


def star_reply(message="Added a star"):
    return json.dumps({
        "intent": "create",
        "message": message,
        "actions": [{"name": "createShape", "args": {"type": "star", "x": 0, "y": 0, "w": 80, "h": 80}}],
    })


def stub_tier(name, result=None, error=None):
    tier = MagicMock()
    tier.name = name
    tier.resolve = AsyncMock(return_value=result, side_effect=error)
    return tier


@pytest.fixture
def router(store, channel, backend):
    """router with two mock generative backends that always fall through."""
    return build_router(
        store,
        settings=AgentSettings(actor="tester"),
        channel=channel,
        persistence=backend,
        clients=[MockClient(name="primary"), MockClient(name="secondary")],
    )


class TestOrdering:
    """tests for tier order and short-circuiting."""

    def test_tier_names(self, router):
        assert router.tier_names == ["parser", "primary", "secondary", "legacy"]

    @pytest.mark.asyncio
    async def test_parser_short_circuits(self, store, channel, backend):
        """a parser hit never reaches the generative tiers."""
        primary = MockClient(name="primary", responses={"": star_reply()})
        router = build_router(store, channel=channel, persistence=backend, clients=[primary])
        response = await router.interpret_with_fallback("create a red circle")
        assert response.type == "success"
        assert primary.calls == []
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_failure_owns_intent(self, executor):
        """a Failure stops the chain with a clarification."""
        later = stub_tier("later", Success([]))
        router = TierRouter(
            [stub_tier("first", Failure("Select something.", intent="rotate")), later], executor
        )
        response = await router.interpret_with_fallback("rotate 45")
        assert response.type == "clarification_needed"
        assert response.message == "Select something."
        assert response.suggestions  # filled from the rotate intent
        later.resolve.assert_not_called()

    @pytest.mark.asyncio
    async def test_miss_and_provider_error_fall_through(self, executor, store):
        last = stub_tier("last", Success([ToolCall("createShape", {"type": "rect", "x": 0, "y": 0, "w": 1, "h": 1})]))
        router = TierRouter(
            [stub_tier("a", Miss()), stub_tier("b", error=ProviderError("rate limited")), last],
            executor,
        )
        response = await router.interpret_with_fallback("something")
        assert response.type == "success"
        last.resolve.assert_awaited_once_with("something", "en")
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_locale_forwarded(self, executor):
        tier = stub_tier("only", Miss())
        await TierRouter([tier], executor).interpret_with_fallback("hola", "es")
        tier.resolve.assert_awaited_once_with("hola", "es")


class TestFallback:
    """tests for the full chain over mock backends."""

    @pytest.mark.asyncio
    async def test_first_backend(self, store, channel, backend):
        primary = MockClient(name="primary", responses={"": star_reply("primary did it")})
        secondary = MockClient(name="secondary", responses={"": star_reply("secondary did it")})
        router = build_router(store, channel=channel, persistence=backend, clients=[primary, secondary])
        response = await router.interpret_with_fallback("sketch a constellation")
        assert response.message == "primary did it"
        assert secondary.calls == []

    @pytest.mark.asyncio
    async def test_second_backend_after_outage(self, store, channel, backend):
        primary = MockClient(name="primary", error=RuntimeError("503 service unavailable"))
        secondary = MockClient(name="secondary", responses={"": star_reply("secondary did it")})
        router = build_router(store, channel=channel, persistence=backend, clients=[primary, secondary])
        response = await router.interpret_with_fallback("sketch a constellation")
        assert response.type == "success"
        assert response.message == "secondary did it"
        assert response.result[0].args["id"] in store

    @pytest.mark.asyncio
    async def test_malformed_reply_falls_through(self, store, channel, backend):
        primary = MockClient(name="primary", responses={"": "not json at all"})
        secondary = MockClient(name="secondary", responses={"": star_reply()})
        router = build_router(store, channel=channel, persistence=backend, clients=[primary, secondary])
        response = await router.interpret_with_fallback("sketch a constellation")
        assert response.type == "success"
        assert len(secondary.calls) == 1

    @pytest.mark.parametrize("args", [
        {"type": "star", "x": 0, "y": 0, "w": 80, "h": 80, "color": {"hex": "#fff"}},
        {"type": "star", "x": "left", "y": 0, "w": 80, "h": 80},
    ])
    @pytest.mark.asyncio
    async def test_badly_typed_reply_falls_through(self, store, channel, backend, args):
        raw = json.dumps({"intent": "create", "message": "Added", "actions": [{"name": "createShape", "args": args}]})
        primary = MockClient(name="primary", responses={"": raw})
        secondary = MockClient(name="secondary", responses={"": star_reply("secondary did it")})
        router = build_router(store, channel=channel, persistence=backend, clients=[primary, secondary])
        response = await router.interpret_with_fallback("sketch a constellation")
        assert response.type == "success"
        assert response.message == "secondary did it"
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_backend_clarification(self, store, channel, backend):
        raw = json.dumps({"intent": "clarify", "message": "Which one?", "actions": []})
        primary = MockClient(name="primary", responses={"": raw})
        secondary = MockClient(name="secondary", responses={"": star_reply()})
        router = build_router(store, channel=channel, persistence=backend, clients=[primary, secondary])
        response = await router.interpret_with_fallback("fix it")
        assert response.type == "clarification_needed"
        assert response.message == "Which one?"
        assert secondary.calls == []

    @pytest.mark.asyncio
    async def test_legacy_tier(self, router, store):
        """phrasings only the legacy parser knows still work."""
        response = await router.interpret_with_fallback("build a login form")
        assert response.type == "success"
        assert len(store) == 6


class TestExhausted:
    """tests for the clarification when every tier misses."""

    @pytest.mark.asyncio
    async def test_empty_text(self, router):
        response = await router.interpret_with_fallback("   ")
        assert response.type == "clarification_needed"

    @pytest.mark.asyncio
    async def test_create_hint(self, router):
        response = await router.interpret_with_fallback("create a flowchart for onboarding")
        assert response.type == "clarification_needed"
        assert "create" in response.message
        assert "create a red circle" in response.suggestions

    @pytest.mark.asyncio
    async def test_generic(self, router):
        response = await router.interpret_with_fallback("what is the meaning of life")
        assert response.type == "clarification_needed"
        assert response.message == "I didn't understand that command."


class TestConfirmation:
    """tests for destructive work held behind confirmation."""

    @pytest.mark.asyncio
    async def test_delete_all(self, router, store, add_shape):
        for _ in range(3):
            add_shape()
        response = await router.interpret_with_fallback("delete all")
        assert response.type == "confirmation_required"
        assert response.requires_confirmation
        assert len(store) == 3  # nothing deleted yet

        confirmed = response.confirm_action()
        assert confirmed.type == "success"
        assert store.is_empty

    @pytest.mark.asyncio
    async def test_delete_all_single_shape(self, router, store, add_shape):
        """the bulk phrase still asks even when one shape matches."""
        add_shape()
        response = await router.interpret_with_fallback("delete everything")
        assert response.type == "confirmation_required"
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_multi_delete_from_backend(self, executor, store, add_shape):
        a = add_shape()
        b = add_shape()
        tier = stub_tier("gen", Success([
            ToolCall("deleteShape", {"id": a.id}),
            ToolCall("deleteShape", {"id": b.id}),
        ]))
        response = await TierRouter([tier], executor).interpret_with_fallback("clean up")
        assert response.type == "confirmation_required"
        assert len(store) == 2

    @pytest.mark.asyncio
    async def test_single_delete_runs(self, router, store, add_shape):
        add_shape("circle")
        response = await router.interpret_with_fallback("delete the circle")
        assert response.type == "success"
        assert store.is_empty


class TestExecution:
    """tests for partial failure reporting."""

    @pytest.mark.asyncio
    async def test_partial_failure(self, executor, store):
        tier = stub_tier("gen", Success([
            ToolCall("createShape", {"type": "rect", "x": 0, "y": 0, "w": 10, "h": 10}),
            ToolCall("moveShape", {"id": "ghost", "x": 0, "y": 0}),
        ], "Built it"))
        response = await TierRouter([tier], executor).interpret_with_fallback("build")
        assert response.type == "success"
        assert "applied 1 of 2" in response.message
        assert len(response.result) == 1
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_total_failure(self, executor, store):
        tier = stub_tier("gen", Success([ToolCall("moveShape", {"id": "ghost", "x": 0, "y": 0})]))
        response = await TierRouter([tier], executor).interpret_with_fallback("move ghost")
        assert response.type == "error"
        assert store.is_empty


class TestTiers:
    """tests for the tier wrappers and wiring."""

    @pytest.mark.asyncio
    async def test_parser_tier(self, parser):
        result = await ParserTier("parser", parser).resolve("create a circle", "en")
        assert isinstance(result, Success)

    @pytest.mark.asyncio
    async def test_generative_tier_clarify(self, store):
        from whiteboard_agent.core.backends import GenerativeBackend

        raw = json.dumps({"intent": "clarify", "message": "Which?", "actions": [], "suggestions": ["x"]})
        tier = GenerativeTier(GenerativeBackend(MockClient(responses={"": raw}), store))
        result = await tier.resolve("do it", "en")
        assert isinstance(result, Failure)
        assert result.intent == "clarify"
        assert result.suggestions == ["x"]

    def test_build_router_mock_mode(self, store):
        router = build_router(store, settings=AgentSettings(mock=True))
        assert router.tier_names == ["parser", "mock", "legacy"]

    def test_build_router_real_clients(self, store):
        router = build_router(store, settings=AgentSettings(openai_api_key="sk-test"))
        assert router.tier_names == ["parser", "claude", "openai", "legacy"]

    def test_build_router_without_claude(self, store):
        router = build_router(store, settings=AgentSettings(claude_enabled=False))
        assert router.tier_names == ["parser", "openai", "legacy"]


class TestContainment:
    """tests that nothing raised while applying escapes the router."""

    @pytest.mark.asyncio
    async def test_unexpected_executor_error(self):
        executor = MagicMock()
        executor.apply.side_effect = TypeError("unhashable type: 'dict'")
        tier = stub_tier("gen", Success([ToolCall("deleteShape", {"id": "a"})]))
        response = await TierRouter([tier], executor).interpret_with_fallback("remove a")
        assert response.type == "error"
        assert "unhashable" in response.message
