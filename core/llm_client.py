from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol

from dotenv import load_dotenv

from config import LLM_BASE_URL, LLM_MAX_TOKENS, LLM_MODEL_ID

logger = logging.getLogger(__name__)

SegmentKind = Literal["text", "tool_call"]


class LLMCallError(RuntimeError):
    """The model endpoint could not produce a response."""


@dataclass(slots=True)
class ResponseSegment:
    kind: SegmentKind
    text: str = ""
    tool_name: str = ""
    arguments: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def text_segment(cls, text: str) -> "ResponseSegment":
        return cls(kind="text", text=text)

    @classmethod
    def tool_call(cls, tool_name: str, arguments: dict[str, Any] | None = None) -> "ResponseSegment":
        return cls(kind="tool_call", tool_name=tool_name, arguments=dict(arguments or {}))


@dataclass(slots=True)
class LLMResponse:
    segments: list[ResponseSegment] = field(default_factory=list)

    @property
    def tool_calls(self) -> list[ResponseSegment]:
        return [s for s in self.segments if s.kind == "tool_call"]


class AssistantLLMClient(Protocol):
    async def complete(
        self,
        *,
        system: str,
        messages: list[dict[str, str]],
        tools: list[dict[str, Any]],
    ) -> LLMResponse: ...


class MockLLMClient:
    """Offline stand-in that answers every turn with a fixed text."""

    def __init__(self, reply: str = "I'm running in offline mode, so I can't take actions right now.") -> None:
        self.reply = reply

    async def complete(
        self,
        *,
        system: str,
        messages: list[dict[str, str]],
        tools: list[dict[str, Any]],
    ) -> LLMResponse:
        return LLMResponse([ResponseSegment.text_segment(self.reply)])


def _decode_arguments(raw: str | None) -> dict[str, Any]:
    if not raw:
        return {}
    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Tool call arguments are not valid JSON, using empty arguments")
        return {}
    return decoded if isinstance(decoded, dict) else {}


class OpenRouterClient:
    """Chat completions with function tools over an OpenAI-compatible endpoint."""

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model_id: str | None = None,
        base_url: str | None = None,
        max_tokens: int = LLM_MAX_TOKENS,
        client: Any | None = None,
    ) -> None:
        load_dotenv()
        self.api_key = api_key or os.getenv("OPENROUTER_API_KEY", "")
        self.model_id = model_id or LLM_MODEL_ID
        self.base_url = base_url or LLM_BASE_URL
        self.max_tokens = max_tokens
        self._client = client

    async def complete(
        self,
        *,
        system: str,
        messages: list[dict[str, str]],
        tools: list[dict[str, Any]],
    ) -> LLMResponse:
        client = self._get_client()
        request: dict[str, Any] = {
            "model": self.model_id,
            "max_tokens": self.max_tokens,
            "messages": [{"role": "system", "content": system}, *messages],
        }
        if tools:
            request["tools"] = tools
            request["tool_choice"] = "auto"

        try:
            completion = await client.chat.completions.create(**request)
        except Exception as exc:
            logger.error("LLM request failed: %s", exc)
            raise LLMCallError(str(exc)) from exc

        usage = getattr(completion, "usage", None)
        if usage:
            logger.info(
                "LLM tokens: prompt=%s completion=%s total=%s",
                getattr(usage, "prompt_tokens", "?"),
                getattr(usage, "completion_tokens", "?"),
                getattr(usage, "total_tokens", "?"),
            )

        if not completion.choices:
            raise LLMCallError("LLM returned no choices")

        message = completion.choices[0].message
        segments: list[ResponseSegment] = []
        content = (message.content or "").strip()
        if content:
            segments.append(ResponseSegment.text_segment(content))
        for call in getattr(message, "tool_calls", None) or []:
            segments.append(
                ResponseSegment.tool_call(call.function.name, _decode_arguments(call.function.arguments))
            )
        return LLMResponse(segments)

    def _get_client(self):
        if self._client is not None:
            return self._client

        if not self.api_key:
            logger.warning("OpenRouterClient: no API key configured")
            raise LLMCallError("LLM API key is not set")

        from openai import AsyncOpenAI

        self._client = AsyncOpenAI(api_key=self.api_key, base_url=self.base_url)
        return self._client
