from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from config import HISTORY_LIMIT, MAX_TEXT_LENGTH
from core.llm.prompts import FALLBACK_MESSAGE, NOT_CONFIGURED_MESSAGE, build_system_prompt
from core.llm_client import AssistantLLMClient, LLMCallError, OpenRouterClient
from core.pipeline.formatter import ResultFormatter
from core.store.model import Message
from core.tools.base import RequestContext, ToolCallResult, ToolRegistry

if TYPE_CHECKING:
    from core.chat.channels import ChannelStore

logger = logging.getLogger(__name__)

# Control characters to strip during sanitization (keep tab, newline, carriage return)
_CONTROL_CHAR_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")

SEGMENT_SEPARATOR = "\n\n"

LLMFactory = Callable[[str], AssistantLLMClient]


def _sanitize_text(text: str) -> str:
    """Strip excess whitespace and control characters from *text*."""
    text = _CONTROL_CHAR_RE.sub("", text)
    return text.strip()


def clean_message(text: str) -> str:
    """Sanitized chat input; empty or over-long text is rejected."""
    text = _sanitize_text(text)
    if not text:
        raise ValueError("Message is empty")
    if len(text) > MAX_TEXT_LENGTH:
        raise ValueError(f"Message too long: {len(text)} chars (max {MAX_TEXT_LENGTH})")
    return text


def _default_llm_factory(api_key: str) -> AssistantLLMClient:
    return OpenRouterClient(api_key=api_key)


@dataclass(slots=True)
class ProcessResult:
    reply_text: str
    tool_results: list[ToolCallResult] = field(default_factory=list)
    channels_changed: bool = False
    channel_id: str | None = None


def _to_transcript(history: Sequence[Message], limit: int) -> list[dict[str, str]]:
    recent = list(history)[-limit:] if limit > 0 else []
    return [
        {"role": "assistant" if m.sender_type == "ai" else "user", "content": m.content}
        for m in recent
        if m.content
    ]


class AssistantProcessor:
    """One assistant turn: prompt the model, run its tool calls, compose the reply."""

    def __init__(
        self,
        registry: ToolRegistry,
        channels: "ChannelStore",
        *,
        llm_factory: LLMFactory | None = None,
        formatter: ResultFormatter | None = None,
        history_limit: int = HISTORY_LIMIT,
    ) -> None:
        self.registry = registry
        self.channels = channels
        self.formatter = formatter or ResultFormatter()
        self.history_limit = history_limit
        self._llm_factory = llm_factory or _default_llm_factory
        self._llm_clients: dict[str, AssistantLLMClient] = {}

    def _llm_for(self, api_key: str) -> AssistantLLMClient:
        client = self._llm_clients.get(api_key)
        if client is None:
            client = self._llm_factory(api_key)
            self._llm_clients[api_key] = client
        return client

    async def process_message(
        self,
        text: str,
        history: Sequence[Message],
        context: RequestContext,
    ) -> ProcessResult:
        if not context.llm_api_key:
            logger.warning("No LLM key configured, actor=%s", context.actor.id)
            return ProcessResult(reply_text=NOT_CONFIGURED_MESSAGE)

        try:
            return await self._run_turn(text, history, context)
        except LLMCallError:
            logger.error("LLM call failed for actor=%s", context.actor.id)
        except Exception:
            logger.exception("Assistant turn failed for actor=%s", context.actor.id)
        return ProcessResult(reply_text=FALLBACK_MESSAGE)

    async def _run_turn(
        self,
        text: str,
        history: Sequence[Message],
        context: RequestContext,
    ) -> ProcessResult:
        messages = _to_transcript(history, self.history_limit)
        messages.append({"role": "user", "content": text})

        response = await self._llm_for(context.llm_api_key).complete(
            system=build_system_prompt(context.actor, context.tenant_name, self.registry),
            messages=messages,
            tools=self.registry.schemas(),
        )

        parts: list[str] = []
        results: list[ToolCallResult] = []
        channels_changed = False
        # tool calls run one at a time in the order the model emitted them
        for segment in response.segments:
            if segment.kind == "text":
                if segment.text.strip():
                    parts.append(segment.text.strip())
                continue
            result = await self.registry.dispatch(segment.tool_name, segment.arguments, context)
            results.append(result)
            parts.append(self.formatter.render(result, context.actor))
            if result.success and isinstance(result.data, dict) and result.data.get("channel_created"):
                channels_changed = True

        return ProcessResult(
            reply_text=SEGMENT_SEPARATOR.join(parts),
            tool_results=results,
            channels_changed=channels_changed,
        )

    async def handle_chat_message(
        self,
        text: str,
        context: RequestContext,
        channel_id: str | None = None,
    ) -> ProcessResult:
        """Process *text* inside a persisted channel, the caller's assistant channel by default."""
        text = clean_message(text)
        actor = context.actor
        if channel_id is None:
            ref = await self.channels.find_or_create_ai_channel(actor.id, actor.tenant_id)
            channel_id = ref.id

        history = await self.channels.recent_history(channel_id, limit=self.history_limit)
        await self.channels.append_message(channel_id, actor.id, "user", text)

        result = await self.process_message(text, history, context)
        await self.channels.append_message(channel_id, None, "ai", result.reply_text)
        result.channel_id = channel_id
        return result
