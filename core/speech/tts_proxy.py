"""Text-to-speech proxy for assistant replies.

Forwards text to ElevenLabs and hands the audio back base64-encoded, so
the browser never sees the upstream credential.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from config import ELEVENLABS_API_KEY, ELEVENLABS_BASE_URL

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "en"
TTS_MODEL_ID = "eleven_multilingual_v2"
AUDIO_CONTENT_TYPE = "audio/mpeg"

VOICE_IDS: dict[str, str] = {
    "en": "EXAVITQu4vr4xnSDxMaL",  # Sarah
    "fr": "pFZP5JQG7iQjIQuC4Bku",  # Lily
    "es": "Xb7hH8MSUJpSbSDYk0k2",  # Alice
}
# Estonian has no dedicated voice yet
VOICE_IDS["et"] = VOICE_IDS["en"]

VOICE_SETTINGS: dict[str, Any] = {
    "stability": 0.5,
    "similarity_boost": 0.75,
    "style": 0.0,
    "use_speaker_boost": True,
}


class TTSNotConfiguredError(RuntimeError):
    pass


class TTSUpstreamError(RuntimeError):
    def __init__(self, status_code: int, details: str) -> None:
        super().__init__(f"TTS upstream returned {status_code}")
        self.status_code = status_code
        self.details = details


@dataclass(slots=True)
class SpeechResult:
    audio: str
    content_type: str = AUDIO_CONTENT_TYPE

    def to_dict(self) -> dict[str, str]:
        return {"audio": self.audio, "contentType": self.content_type}


def voice_for(language: str | None) -> str:
    return VOICE_IDS.get((language or DEFAULT_LANGUAGE).lower(), VOICE_IDS[DEFAULT_LANGUAGE])


class TextToSpeechProxy:
    def __init__(
        self,
        api_key: str | None = None,
        *,
        base_url: str = ELEVENLABS_BASE_URL,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_key = ELEVENLABS_API_KEY if api_key is None else api_key
        self.base_url = base_url.rstrip("/")
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def synthesize(self, text: str, language: str = DEFAULT_LANGUAGE) -> SpeechResult:
        if not text or not text.strip():
            raise ValueError("Text is required")
        if not self.api_key:
            raise TTSNotConfiguredError("ElevenLabs API key is not configured")

        voice_id = voice_for(language)
        url = f"{self.base_url}/text-to-speech/{voice_id}"
        payload = {
            "text": text,
            "model_id": TTS_MODEL_ID,
            "voice_settings": VOICE_SETTINGS,
        }
        headers = {
            "xi-api-key": self.api_key,
            "Content-Type": "application/json",
            "Accept": AUDIO_CONTENT_TYPE,
        }

        logger.info("TTS request: language=%s voice=%s chars=%s", language, voice_id, len(text))
        try:
            if self._client is not None:
                response = await self._client.post(url, json=payload, headers=headers)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.post(url, json=payload, headers=headers)
        except httpx.TransportError as exc:
            logger.error("TTS upstream unreachable: %s", exc)
            raise TTSUpstreamError(502, str(exc)) from exc

        if response.status_code >= 400:
            logger.error("TTS upstream error: status=%s", response.status_code)
            raise TTSUpstreamError(response.status_code, response.text)

        return SpeechResult(audio=base64.b64encode(response.content).decode("ascii"))
