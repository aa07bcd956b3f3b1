"""generative backend adapter.

sends the tool manifest and a canvas summary to a chat client and turns
the reply into tool calls. anything that goes wrong (transport, bad json,
missing fields, unknown tools) surfaces as ProviderError so the router can
fall through to the next tier.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from pydantic import BaseModel, ValidationError, field_validator, model_validator

from .client import ChatClient
from .errors import ProviderError, ReplyValidationError, ToolError, classify_provider_error
from .models import ToolCall
from .store import ShapeStore
from .tools import TOOL_MANIFEST, validate_tool_call


logger = logging.getLogger(__name__)

# --- prompt ---

PREAMBLES: dict[str, str] = {
    "en": "You are the assistant of a collaborative whiteboard. Users type natural-language "
          "commands to create and edit shapes on a shared canvas.",
    "zh": "你是一个协作白板的助手。用户用自然语言命令在共享画布上创建和编辑图形。",
    "es": "Eres el asistente de una pizarra colaborativa. Los usuarios escriben órdenes en "
          "lenguaje natural para crear y editar formas en un lienzo compartido.",
    "fr": "Vous êtes l'assistant d'un tableau blanc collaboratif. Les utilisateurs tapent des "
          "commandes en langage naturel pour créer et modifier des formes sur un canevas partagé.",
    "de": "Du bist der Assistent eines kollaborativen Whiteboards. Nutzer geben Befehle in "
          "natürlicher Sprache ein, um Formen auf einer gemeinsamen Leinwand zu erstellen und zu bearbeiten.",
    "ja": "あなたは共同ホワイトボードのアシスタントです。ユーザーは自然言語のコマンドで共有キャンバス上の図形を作成・編集します。",
    "ar": "أنت مساعد لسبورة تعاونية. يكتب المستخدمون أوامر بلغة طبيعية لإنشاء الأشكال وتعديلها على لوحة مشتركة.",
}

RESPONSE_FORMAT = """Reply with a single JSON object and nothing else:
{"intent": "create|move|resize|rotate|color|delete|arrange|clarify|error",
 "message": "short note for the user, in their language",
 "actions": [{"name": "<tool>", "args": {...}}],
 "suggestions": ["..."]}
Use intent "clarify" with empty actions when the request is ambiguous.
Use "$LAST_CREATED" as an id to refer to the shape created by the previous action.
Canvas is 800x600; (400, 300) is the center. Colors are hex strings."""

MAX_SUMMARY_SHAPES = 40


@dataclass
class ClarifyMessage:
    """backend understood the request but needs more from the user."""

    message: str
    suggestions: list[str] = field(default_factory=list)


@dataclass
class Generated:
    """tool calls proposed by a backend, with its note for the user."""

    tool_calls: list[ToolCall]
    message: str = ""


GenerateResult = Union[Generated, ClarifyMessage]


# --- reply schema ---


class ProviderAction(BaseModel):
    """one action; accepts {name, args} or {tool, params}."""

    name: str
    args: dict[str, Any] = {}

    @model_validator(mode="before")
    @classmethod
    def _accept_aliases(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            if "name" not in data and "tool" in data:
                data["name"] = data.pop("tool")
            if "args" not in data and "params" in data:
                data["args"] = data.pop("params")
            if data.get("args") is None:
                data["args"] = {}
        return data

    @field_validator("name")
    @classmethod
    def _known_tool(cls, value: str) -> str:
        if value not in TOOL_MANIFEST:
            raise ValueError(f"unknown tool {value!r}")
        return value


class ProviderReply(BaseModel):
    """envelope every provider reply must match."""

    intent: str
    message: str
    actions: list[ProviderAction]
    suggestions: list[str] = []
    confidence: Optional[float] = None

    @field_validator("intent", "message")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value


_FENCE_RE = re.compile(r"^\s*```(?:json)?\s*|\s*```\s*$", re.IGNORECASE)


def parse_reply(raw: str) -> ProviderReply:
    """strip code fences, parse json and validate the envelope."""
    text = _FENCE_RE.sub("", raw.strip())
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        # tolerate prose around a single json object
        start, end = text.find("{"), text.rfind("}")
        if start == -1 or end <= start:
            raise ReplyValidationError("reply is not json")
        try:
            data = json.loads(text[start:end + 1])
        except json.JSONDecodeError as e:
            raise ReplyValidationError(f"reply is not json: {e}") from e
    try:
        return ProviderReply.model_validate(data)
    except ValidationError as e:
        raise ReplyValidationError(str(e)) from e


# --- adapter ---


def render_manifest() -> str:
    lines = ["Available tools:"]
    for spec in TOOL_MANIFEST.values():
        lines.append(f"- {spec.signature()}: {spec.description}")
    return "\n".join(lines)


def summarize_canvas(store: ShapeStore) -> str:
    """terse description of the canvas and selection for the prompt."""
    shapes = store.all()
    if not shapes:
        summary = "empty canvas"
    else:
        parts = [
            f"{s.type.value} {s.id} at ({round(s.x)},{round(s.y)}) size {round(s.w)}x{round(s.h)}"
            + (f" color {s.color}" if s.color else "")
            + (f" text {s.text!r}" if s.text else "")
            for s in shapes[:MAX_SUMMARY_SHAPES]
        ]
        if len(shapes) > MAX_SUMMARY_SHAPES:
            parts.append(f"... and {len(shapes) - MAX_SUMMARY_SHAPES} more")
        summary = f"{len(shapes)} shapes: " + "; ".join(parts)
    selected = store.selected_ids
    if selected:
        summary += f"\nSelected: {', '.join(selected)}"
    else:
        summary += "\nSelected: nothing"
    return summary


class GenerativeBackend:
    """provider-agnostic adapter; only the chat client differs between backends."""

    def __init__(self, client: ChatClient, store: ShapeStore, name: Optional[str] = None):
        self.client = client
        self.store = store
        self.name = name or client.name

    def build_system_prompt(self, locale: str = "en") -> str:
        preamble = PREAMBLES.get((locale or "en").split("-")[0].lower(), PREAMBLES["en"])
        return "\n\n".join([
            preamble,
            render_manifest(),
            "Current canvas: " + summarize_canvas(self.store),
            RESPONSE_FORMAT,
        ])

    async def generate(self, text: str, locale: str = "en") -> GenerateResult:
        """tool calls for the request, or a clarification.

        raises ProviderError on any transport, parse or validation failure.
        """
        system_prompt = self.build_system_prompt(locale)
        try:
            raw = await self.client.chat(system_prompt, text)
        except ProviderError:
            raise
        except Exception as e:
            raise ProviderError(classify_provider_error(e), str(e)) from e
        logger.debug(f"{self.name} raw reply: {raw[:500]}")

        reply = parse_reply(raw)
        if reply.intent == "error":
            raise ProviderError("unavailable", reply.message)
        if reply.intent == "clarify" or not reply.actions:
            return ClarifyMessage(reply.message, list(reply.suggestions))

        calls = [ToolCall(a.name, dict(a.args)) for a in reply.actions]
        for call in calls:
            try:
                validate_tool_call(call)
            except ToolError as e:
                raise ReplyValidationError(str(e)) from e
        return Generated(calls, reply.message)
