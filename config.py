from __future__ import annotations

import os


DB_PATH = os.getenv("DB_PATH", "data/assistant.db")
LLM_BASE_URL = os.getenv("LLM_BASE_URL", "https://openrouter.ai/api/v1")
LLM_MODEL_ID = os.getenv(
	"LLM_MODEL_ID",
	os.getenv("OPENROUTER_MODEL_ID", "anthropic/claude-sonnet-4"),
)
LLM_MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", "1024"))
HISTORY_LIMIT = int(os.getenv("HISTORY_LIMIT", "10"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
MAX_TEXT_LENGTH = int(os.getenv("MAX_TEXT_LENGTH", "10000"))
DEFAULT_DUE_DAYS = int(os.getenv("DEFAULT_DUE_DAYS", "14"))

# ── Text-to-speech proxy ─────────────────────────────────────────
ELEVENLABS_API_KEY = os.getenv("ELEVENLABS_API_KEY", "")
ELEVENLABS_BASE_URL = os.getenv("ELEVENLABS_BASE_URL", "https://api.elevenlabs.io/v1")
