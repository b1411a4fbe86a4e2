from __future__ import annotations

import argparse
import asyncio
import logging
import os

from dotenv import load_dotenv

from config import DB_PATH, LOG_LEVEL
from core.directory.resolver import EntityResolver
from core.tools.base import RequestContext
from interfaces.processor_factory import build_processor


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Chat with the training assistant")
    parser.add_argument("--user-id", required=True, help="profile id of the caller")
    parser.add_argument("--db", default=DB_PATH, help="SQLite database path")
    parser.add_argument("--offline", action="store_true", help="use the canned offline model")
    return parser.parse_args(argv)


async def run_cli(user_id: str, db_path: str, *, offline: bool = False) -> None:
    processor = build_processor(db_path, offline=offline)
    resolver = EntityResolver(processor.channels.store)

    actor = await resolver.load_actor(user_id)
    if actor is None:
        print(f"No active profile with id {user_id}.")
        return

    api_key = os.getenv("OPENROUTER_API_KEY", "") or ("offline" if offline else "")
    context = RequestContext(
        actor=actor,
        tenant_name=await resolver.tenant_name(actor.tenant_id),
        llm_api_key=api_key or None,
    )
    print(f"Training Assistant ({actor.full_name}). Type 'exit' to quit.")

    try:
        while True:
            text = input("> ").strip()
            if text.lower() in {"exit", "quit", "q"}:
                print("Bye.")
                break
            if not text:
                continue
            try:
                result = await processor.handle_chat_message(text, context)
            except ValueError as exc:
                print(f"[{exc}]")
                continue
            for r in result.tool_results:
                print(f"[tool={r.tool_name} success={r.success}]")
            print(result.reply_text)
    finally:
        await processor.channels.store.close()


def main(argv: list[str] | None = None) -> None:
    load_dotenv()
    logging.basicConfig(level=getattr(logging, LOG_LEVEL, logging.INFO))
    args = _parse_args(argv)
    asyncio.run(run_cli(args.user_id, args.db, offline=args.offline))


if __name__ == "__main__":
    main()
