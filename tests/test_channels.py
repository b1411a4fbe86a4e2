import asyncio

import pytest

from core.chat.channels import ChannelStore, direct_channel_key
from core.llm.prompts import WELCOME_MESSAGE
from core.store.storage import SQLiteStore


def test_direct_channel_key_is_order_independent():
    assert direct_channel_key("t1", "a", "b") == direct_channel_key("t1", "b", "a")
    assert direct_channel_key(None, "a", "b") == "direct:-:a:b"


def test_direct_channel_is_idempotent(seeded_db):
    async def scenario() -> None:
        store = SQLiteStore(seeded_db)
        try:
            channels = ChannelStore(store)
            first = await channels.find_or_create_direct_channel("u-dave", "u-erin", "client-1")
            second = await channels.find_or_create_direct_channel("u-dave", "u-erin", "client-1")
            reverse = await channels.find_or_create_direct_channel("u-erin", "u-dave", "client-1")

            assert first.created is True
            assert second.created is False
            assert first.id == second.id == reverse.id
            assert await store.count("chat_channels", {"type": "direct"}) == 1
            assert sorted(await channels.participants(first.id)) == ["u-dave", "u-erin"]
        finally:
            await store.close()

    asyncio.run(scenario())


def test_direct_channel_requires_two_people(seeded_db):
    async def scenario() -> None:
        store = SQLiteStore(seeded_db)
        try:
            with pytest.raises(ValueError):
                await ChannelStore(store).find_or_create_direct_channel("u-dave", "u-dave", "client-1")
        finally:
            await store.close()

    asyncio.run(scenario())


def test_concurrent_direct_channel_creation_yields_one_channel(seeded_db):
    async def scenario() -> None:
        store = SQLiteStore(seeded_db)
        try:
            channels = ChannelStore(store)
            refs = await asyncio.gather(*[
                channels.find_or_create_direct_channel("u-dave", "u-erin", "client-1")
                for _ in range(5)
            ])
            assert len({r.id for r in refs}) == 1
            assert await store.count("chat_channels", {"type": "direct"}) == 1
        finally:
            await store.close()

    asyncio.run(scenario())


def test_ai_channel_is_unique_with_single_participant(seeded_db):
    async def scenario() -> None:
        store = SQLiteStore(seeded_db)
        try:
            channels = ChannelStore(store)
            first = await channels.find_or_create_ai_channel("u-alice", "client-1")
            second = await channels.find_or_create_ai_channel("u-alice", "client-1")

            assert first.id == second.id
            assert await store.count("chat_channels", {"type": "ai_private", "created_by": "u-alice"}) == 1
            assert await channels.participants(first.id) == ["u-alice"]

            history = await channels.recent_history(first.id)
            assert [m.content for m in history] == [WELCOME_MESSAGE]
            assert history[0].sender_type == "ai"
            assert history[0].sender_id is None
        finally:
            await store.close()

    asyncio.run(scenario())


def test_team_channel_has_owner_and_reports(seeded_db):
    async def scenario() -> None:
        store = SQLiteStore(seeded_db)
        try:
            channels = ChannelStore(store)
            ref = await channels.find_or_create_team_channel("u-bob", "client-1", name="Bob Stone's Team")
            again = await channels.find_or_create_team_channel("u-bob", "client-1")

            assert ref.created and not again.created
            assert again.id == ref.id
            assert sorted(await channels.participants(ref.id)) == ["u-alice", "u-bob", "u-erin"]
            channel = await channels.get_channel(ref.id)
            assert channel.type == "group"
            assert channel.name == "Bob Stone's Team"
        finally:
            await store.close()

    asyncio.run(scenario())


def test_recent_history_returns_newest_oldest_first(seeded_db):
    async def scenario() -> None:
        store = SQLiteStore(seeded_db)
        try:
            channels = ChannelStore(store)
            ref = await channels.find_or_create_ai_channel("u-dave", "client-1", welcome="")
            for i in range(15):
                await channels.append_message(ref.id, "u-dave", "user", f"msg {i}")

            history = await channels.recent_history(ref.id, limit=10)
            assert [m.content for m in history] == [f"msg {i}" for i in range(5, 15)]
            assert await channels.recent_history(ref.id, limit=0) == []
        finally:
            await store.close()

    asyncio.run(scenario())


def test_list_channels_and_membership(seeded_db):
    async def scenario() -> None:
        store = SQLiteStore(seeded_db)
        try:
            channels = ChannelStore(store)
            direct = await channels.find_or_create_direct_channel("u-dave", "u-erin", "client-1")
            ai = await channels.find_or_create_ai_channel("u-dave", "client-1")

            listed = {c.id for c in await channels.list_channels("u-dave")}
            assert listed == {direct.id, ai.id}
            assert await channels.is_participant(direct.id, "u-erin")
            assert not await channels.is_participant(ai.id, "u-erin")
        finally:
            await store.close()

    asyncio.run(scenario())
