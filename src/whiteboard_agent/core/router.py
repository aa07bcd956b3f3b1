"""tier router: deterministic parser, then generative backends, then legacy.

tiers are tried strictly in order. a tier that recognizes an intent owns
it (success or clarification); only a miss or a provider failure moves on
to the next tier.
"""

from __future__ import annotations

import logging
import re
from typing import Optional, Protocol

from .backends import ClarifyMessage, GenerativeBackend
from .client import ChatClient, ClaudeClient, MockClient, OpenAIClient
from .config import AgentSettings
from .errors import ProviderError, ToolError
from .extractors import normalize
from .legacy import LegacyParser
from .models import AIResponse, Failure, InterpretResult, Miss, Success, ToolCall
from .parser import SUGGESTIONS, CommandParser
from .store import ShapeStore
from .sync import BroadcastChannel, PersistenceBackend
from .tools import EffectExecutor


logger = logging.getLogger(__name__)

GENERIC_SUGGESTIONS = ["create a blue rectangle", "rotate 45", "create a 3x3 grid of circles", "create a login form"]
BULK_DELETE_THRESHOLD = 2


# --- tiers ---


class Tier(Protocol):
    """one interpretation strategy in the fallback chain."""

    name: str

    async def resolve(self, text: str, locale: str) -> InterpretResult:
        ...


class ParserTier:
    """wraps a synchronous parser (deterministic or legacy)."""

    def __init__(self, name: str, parser: CommandParser | LegacyParser):
        self.name = name
        self.parser = parser

    async def resolve(self, text: str, locale: str) -> InterpretResult:
        return self.parser.interpret(text)


class GenerativeTier:
    """wraps a generative backend; clarifications become Failure."""

    def __init__(self, backend: GenerativeBackend):
        self.backend = backend
        self.name = backend.name

    async def resolve(self, text: str, locale: str) -> InterpretResult:
        result = await self.backend.generate(text, locale)
        if isinstance(result, ClarifyMessage):
            return Failure(reason=result.message, intent="clarify", suggestions=result.suggestions)
        return Success(result.tool_calls, result.message)


# --- router ---


class TierRouter:
    """runs tiers in order and turns the outcome into an AIResponse."""

    def __init__(self, tiers: list[Tier], executor: EffectExecutor):
        self.tiers = tiers
        self.executor = executor

    @property
    def tier_names(self) -> list[str]:
        return [tier.name for tier in self.tiers]

    async def interpret_with_fallback(self, text: str, locale: str = "en") -> AIResponse:
        if not text or not text.strip():
            return AIResponse.clarification("Type a command to edit the canvas.", GENERIC_SUGGESTIONS)

        for tier in self.tiers:
            logger.debug(f"trying tier {tier.name}")
            try:
                result = await tier.resolve(text, locale)
            except ProviderError as e:
                logger.warning(f"tier {tier.name} failed ({e.reason}), falling back")
                logger.debug(f"tier {tier.name} detail: {e.detail}")
                continue

            if isinstance(result, Miss):
                continue
            if isinstance(result, Failure):
                suggestions = result.suggestions or SUGGESTIONS.get(result.intent or "", [])
                return AIResponse.clarification(result.reason, suggestions)
            logger.info(f"tier {tier.name} handled {text!r} with {len(result.tool_calls)} call(s)")
            return self._respond(result)

        return self._exhausted(text)

    def _respond(self, success: Success) -> AIResponse:
        calls = success.tool_calls
        deletes = sum(1 for c in calls if c.name == "deleteShape")
        if success.confirm or deletes >= BULK_DELETE_THRESHOLD:
            noun = "shape" if deletes == 1 else "shapes"
            message = success.message or f"Delete {deletes} {noun}?"
            return AIResponse(
                type="confirmation_required",
                message=message,
                result=list(calls),
                confirm_action=lambda: self.execute(calls, f"Deleted {deletes} {noun}"),
            )
        return self.execute(calls, success.message or "Done")

    def execute(self, calls: list[ToolCall], message: str) -> AIResponse:
        """apply tool calls; partial progress is kept and reported."""
        try:
            applied = self.executor.apply(calls)
        except ToolError as e:
            logger.warning(f"tool call failed after {len(e.applied)} of {len(calls)}: {e}")
            if e.applied:
                return AIResponse.success(
                    f"{message} (applied {len(e.applied)} of {len(calls)} steps: {e})", e.applied
                )
            return AIResponse.error(f"Could not apply that: {e}")
        except Exception as e:
            logger.exception(f"tool execution crashed on {[c.name for c in calls]}")
            return AIResponse.error(f"Could not apply that: {e}")
        return AIResponse.success(message, applied)

    def _exhausted(self, text: str) -> AIResponse:
        """every tier missed or failed: tailor the clarification to the verb."""
        t = normalize(text)
        if re.search(r"\b(?:create|add|draw|make|insert|new)\b", t):
            return AIResponse.clarification(
                "I'm not sure what to create. Try naming a shape, a grid or a template.",
                SUGGESTIONS["create"] + SUGGESTIONS["template"][:1],
            )
        if re.search(r"\b(?:move|resize|rotate|scale|spin|turn)\b", t):
            return AIResponse.clarification(
                "Please select a shape or name it (e.g. 'the blue rectangle'), then try again.",
                SUGGESTIONS["move"][:1] + SUGGESTIONS["resize"][:1] + SUGGESTIONS["rotate"][1:],
            )
        if re.search(r"\b(?:delete|remove|erase)\b", t):
            return AIResponse.clarification(
                "Which shape should be deleted? Select it or name it.",
                SUGGESTIONS["delete"],
            )
        return AIResponse.clarification("I didn't understand that command.", GENERIC_SUGGESTIONS)


# --- wiring ---


def build_router(
    store: ShapeStore,
    settings: Optional[AgentSettings] = None,
    channel: Optional[BroadcastChannel] = None,
    persistence: Optional[PersistenceBackend] = None,
    clients: Optional[list[ChatClient]] = None,
) -> TierRouter:
    """wire parser, backends and legacy parser over one store.

    clients overrides the generative backends (in tier order).
    """
    settings = settings or AgentSettings()
    executor = EffectExecutor(store, channel=channel, persistence=persistence, actor=settings.actor)

    if clients is None:
        if settings.mock:
            clients = [MockClient(name="mock")]
        else:
            clients = []
            if settings.claude_enabled:
                clients.append(ClaudeClient(model=settings.claude_model))
            clients.append(OpenAIClient(settings.openai_api_key, model=settings.openai_model))

    tiers: list[Tier] = [ParserTier("parser", CommandParser(store))]
    tiers += [GenerativeTier(GenerativeBackend(client, store)) for client in clients]
    tiers.append(ParserTier("legacy", LegacyParser(store)))
    return TierRouter(tiers, executor)
