from __future__ import annotations

import logging

from config import DB_PATH as _DEFAULT_DB_PATH
from config import HISTORY_LIMIT
from core.chat.channels import ChannelStore
from core.directory.resolver import EntityResolver
from core.llm_client import AssistantLLMClient, MockLLMClient, OpenRouterClient
from core.pipeline.processor import AssistantProcessor
from core.store.storage import SQLiteStore
from core.tools.catalog import build_registry

logger = logging.getLogger(__name__)


def build_processor(
    db_path: str | None = None,
    *,
    store: SQLiteStore | None = None,
    offline: bool = False,
) -> AssistantProcessor:
    resolved = db_path or _DEFAULT_DB_PATH
    store = store or SQLiteStore(db_path=resolved)
    resolver = EntityResolver(store)
    channels = ChannelStore(store)
    registry = build_registry(store, resolver, channels)

    def llm_factory(api_key: str) -> AssistantLLMClient:
        if offline:
            return MockLLMClient()
        return OpenRouterClient(api_key=api_key)

    logger.info("Assistant ready: db=%s tools=%s", resolved, len(registry.names))
    return AssistantProcessor(
        registry=registry,
        channels=channels,
        llm_factory=llm_factory,
        history_limit=HISTORY_LIMIT,
    )
