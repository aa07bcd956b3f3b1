"""chat clients for the generative backends.

claude via claude-agent-sdk, openai via the openai sdk, and a mock for
tests and offline use. every client returns the raw reply text; parsing
and validation live in backends.py.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Protocol, runtime_checkable

from claude_agent_sdk import (
    ClaudeAgentOptions,
    ClaudeSDKClient,
)
from openai import AsyncOpenAI

from .errors import ProviderError, classify_provider_error


logger = logging.getLogger(__name__)


@runtime_checkable
class ChatClient(Protocol):
    """protocol for provider clients (real or mock)."""

    name: str

    async def chat(self, system_prompt: str, user_text: str) -> str:
        """send one system+user exchange and return the reply text."""
        ...


class MockClient:
    """mock client for testing without api calls."""

    def __init__(
        self,
        responses: Optional[dict[str, str]] = None,
        delay: float = 0.0,
        name: str = "mock",
        error: Optional[Exception] = None,
    ):
        """init with optional response mapping.

        responses: dict mapping user-text substrings to raw replies.
        if the text contains key (case-insensitive), return value.
        error: raised from every call, to simulate an outage.
        """
        self.name = name
        self.responses = responses or {}
        self.calls: list[tuple[str, str]] = []  # (system_prompt, user_text)
        self.delay = delay
        self.error = error
        self.default_response = (
            '{"intent": "error", "message": "mock mode: no generative backend is configured.", '
            '"actions": [], "suggestions": ["create a red circle", "rotate 45"]}'
        )

    async def chat(self, system_prompt: str, user_text: str) -> str:
        """return mock reply based on the user text."""
        self.calls.append((system_prompt, user_text))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error

        text_lower = user_text.lower()
        for key, response in self.responses.items():
            if key.lower() in text_lower:
                return response
        return self.default_response


class ClaudeClient:
    """async client for claude using claude-agent-sdk.

    creates a fresh connection per query to avoid state conflicts.
    """

    name = "claude"

    def __init__(self, model: str = "sonnet"):
        self.model = model

    async def chat(self, system_prompt: str, user_text: str) -> str:
        options = ClaudeAgentOptions(
            model=self.model,
            system_prompt=system_prompt,
            tools=[],
            allowed_tools=[],
            max_turns=1,
        )
        client: Optional[ClaudeSDKClient] = None

        try:
            client = ClaudeSDKClient(options)
            await client.connect()
            await client.query(user_text)

            text_parts: list[str] = []
            async for event in client.receive_response():
                logger.debug(f"event type: {type(event).__name__}")
                # text content in assistant messages
                if hasattr(event, "message") and hasattr(event.message, "content"):
                    for block in event.message.content:
                        if hasattr(block, "text"):
                            text_parts.append(block.text)
                elif hasattr(event, "content") and isinstance(event.content, list):
                    for block in event.content:
                        if hasattr(block, "text"):
                            text_parts.append(block.text)
                        elif isinstance(block, dict) and "text" in block:
                            text_parts.append(block["text"])

            if not text_parts:
                raise ProviderError("malformed reply", "empty response")
            return "\n".join(text_parts)

        except ProviderError:
            raise
        except Exception as e:
            raise ProviderError(classify_provider_error(e), str(e)) from e

        finally:
            if client:
                try:
                    await client.disconnect()
                except Exception:
                    pass  # ignore cleanup errors


class OpenAIClient:
    """async client for the openai chat completions api, json mode."""

    name = "openai"

    def __init__(self, api_key: Optional[str], model: str = "gpt-4o-mini", temperature: float = 0.3):
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self._client: Optional[AsyncOpenAI] = None

    def _get_client(self) -> AsyncOpenAI:
        if not self.api_key:
            raise ProviderError("not configured", "OPENAI_API_KEY is not set")
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.api_key)
        return self._client

    async def chat(self, system_prompt: str, user_text: str) -> str:
        client = self._get_client()
        try:
            resp = await client.chat.completions.create(
                model=self.model,
                temperature=self.temperature,
                response_format={"type": "json_object"},
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_text},
                ],
            )
        except Exception as e:
            raise ProviderError(classify_provider_error(e), str(e)) from e

        content = resp.choices[0].message.content if resp.choices else None
        if not content:
            raise ProviderError("malformed reply", "empty response")
        return content
