"""core primitives shared between frontends."""

from .models import (
    AIResponse,
    Failure,
    Hint,
    Miss,
    Shape,
    ShapeType,
    Success,
    Target,
    ToolCall,
)
from .store import ShapeStore, MAX_UNDO_HISTORY
from .sync import InMemoryChannel, JsonFileBackend, MemoryBackend
from .tools import TOOL_MANIFEST, EffectExecutor
from .resolver import TargetResolver
from .parser import CommandParser, Rule
from .legacy import LegacyParser
from .backends import ClarifyMessage, GenerativeBackend, ProviderReply
from .client import ClaudeClient, MockClient, OpenAIClient, ChatClient
from .router import TierRouter, build_router
from .config import AgentSettings
from .errors import ProviderError, ReplyValidationError, ToolError

__all__ = [
    # models
    "AIResponse",
    "Failure",
    "Hint",
    "Miss",
    "Shape",
    "ShapeType",
    "Success",
    "Target",
    "ToolCall",
    # state
    "ShapeStore",
    "MAX_UNDO_HISTORY",
    "InMemoryChannel",
    "JsonFileBackend",
    "MemoryBackend",
    # execution
    "TOOL_MANIFEST",
    "EffectExecutor",
    # interpretation
    "TargetResolver",
    "CommandParser",
    "Rule",
    "LegacyParser",
    "ClarifyMessage",
    "GenerativeBackend",
    "ProviderReply",
    "TierRouter",
    "build_router",
    # client
    "ClaudeClient",
    "MockClient",
    "OpenAIClient",
    "ChatClient",
    # config / errors
    "AgentSettings",
    "ProviderError",
    "ReplyValidationError",
    "ToolError",
]
