"""HTTP surface for the assistant: chat turns, text-to-speech and a health probe."""

from __future__ import annotations

import logging
import os
from typing import Any, Literal

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from config import LOG_LEVEL
from core.directory.resolver import EntityResolver
from core.pipeline.processor import AssistantProcessor, clean_message
from core.speech.tts_proxy import (
    DEFAULT_LANGUAGE,
    TextToSpeechProxy,
    TTSNotConfiguredError,
    TTSUpstreamError,
)
from core.store.model import Message
from core.tools.base import RequestContext

logger = logging.getLogger(__name__)


class HistoryItem(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    user_id: str = Field(alias="userId")
    conversation_history: list[HistoryItem] = Field(default_factory=list, alias="conversationHistory")
    client_name: str | None = Field(default=None, alias="clientName")
    channel_id: str | None = Field(default=None, alias="channelId")


class ChatResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    response: str
    tool_results: list[dict[str, Any]] = Field(default_factory=list, alias="toolResults")
    channels_changed: bool = Field(default=False, alias="channelsChanged")


class AudioRequest(BaseModel):
    text: str = ""
    language: str = DEFAULT_LANGUAGE


class AudioResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    audio: str
    content_type: str = Field(alias="contentType")


def _history_messages(items: list[HistoryItem]) -> list[Message]:
    return [
        Message(
            id="",
            channel_id="",
            sender_id=None,
            sender_type="ai" if item.role == "assistant" else "user",
            content=item.content,
            created_at="",
        )
        for item in items
    ]


def create_app(
    processor: AssistantProcessor | None = None,
    tts: TextToSpeechProxy | None = None,
    *,
    llm_api_key: str | None = None,
) -> FastAPI:
    load_dotenv()
    if processor is None:
        from interfaces.processor_factory import build_processor

        processor = build_processor()
    tts = tts or TextToSpeechProxy()
    api_key = os.getenv("OPENROUTER_API_KEY", "") if llm_api_key is None else llm_api_key
    resolver = EntityResolver(processor.channels.store)

    app = FastAPI(title="Training Assistant")

    @app.get("/health")
    async def health() -> dict[str, Any]:
        return {"status": "ok", "tools": processor.registry.names}

    @app.post("/ai-agent", response_model=ChatResponse, response_model_by_alias=True)
    async def ai_agent(req: ChatRequest) -> ChatResponse:
        try:
            text = clean_message(req.message)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        actor = await resolver.load_actor(req.user_id)
        if actor is None:
            raise HTTPException(status_code=404, detail="User profile not found")

        tenant_name = req.client_name or await resolver.tenant_name(actor.tenant_id)
        context = RequestContext(actor=actor, tenant_name=tenant_name, llm_api_key=api_key or None)

        if req.channel_id and await processor.channels.is_participant(req.channel_id, actor.id):
            result = await processor.handle_chat_message(text, context, req.channel_id)
        else:
            if req.channel_id:
                logger.warning("Turn not stored: actor=%s is not in channel=%s", actor.id, req.channel_id)
            result = await processor.process_message(text, _history_messages(req.conversation_history), context)

        return ChatResponse(
            response=result.reply_text,
            tool_results=[r.to_dict() for r in result.tool_results],
            channels_changed=result.channels_changed,
        )

    @app.post("/generate-audio", response_model=AudioResponse, response_model_by_alias=True)
    async def generate_audio(req: AudioRequest) -> AudioResponse:
        try:
            speech = await tts.synthesize(req.text, req.language)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except TTSNotConfiguredError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        except TTSUpstreamError as exc:
            raise HTTPException(
                status_code=exc.status_code,
                detail={"error": "ElevenLabs API error", "details": exc.details},
            ) from exc
        return AudioResponse(audio=speech.audio, content_type=speech.content_type)

    return app


def main() -> None:
    import uvicorn

    logging.basicConfig(level=getattr(logging, LOG_LEVEL, logging.INFO))
    uvicorn.run(create_app(), host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", "8000")))


if __name__ == "__main__":
    main()
