"""Conversation channels and the messages inside them.

Three channel kinds exist:

- ``direct``    : exactly two participants, unique per unordered pair in a tenant;
- ``group``     : a manager's team channel (owner + direct reports);
- ``ai_private``: the caller's private assistant transcript, one participant.

Find-or-create is check-then-insert.  Every channel carries a deterministic
``channel_key`` under a UNIQUE index, so when two requests race the loser's
insert fails and it re-reads the winner's channel instead of creating a
duplicate.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from core.llm.prompts import WELCOME_MESSAGE
from core.store.filters import In
from core.store.model import Channel, ChannelKind, Message, SenderKind, utc_now_iso
from core.store.storage import SQLiteStore, UniqueViolation

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 10


@dataclass(frozen=True, slots=True)
class ChannelRef:
    """Channel id returned by the find-or-create calls."""

    id: str
    created: bool = False


def direct_channel_key(tenant_id: str | None, user_a: str, user_b: str) -> str:
    low, high = sorted((user_a, user_b))
    return f"direct:{tenant_id or '-'}:{low}:{high}"


def team_channel_key(actor_id: str) -> str:
    return f"group:{actor_id}"


def ai_channel_key(actor_id: str) -> str:
    return f"ai:{actor_id}"


class ChannelStore:
    def __init__(self, store: SQLiteStore) -> None:
        self.store = store

    # ── Find-or-create ─────────────────────────────────────────────

    async def find_or_create_direct_channel(
        self,
        actor_id: str,
        target_id: str,
        tenant_id: str | None,
    ) -> ChannelRef:
        if actor_id == target_id:
            raise ValueError("a direct channel needs two distinct participants")

        existing = await self._find_shared_direct_channel(actor_id, target_id)
        if existing is not None:
            return ChannelRef(existing)

        return await self._create_channel(
            kind="direct",
            key=direct_channel_key(tenant_id, actor_id, target_id),
            actor_id=actor_id,
            tenant_id=tenant_id,
            name=None,
            participants=[(actor_id, "member"), (target_id, "member")],
        )

    async def find_or_create_team_channel(
        self,
        actor_id: str,
        tenant_id: str | None,
        *,
        name: str | None = None,
        member_ids: list[str] | None = None,
    ) -> ChannelRef:
        existing = await self.store.find_one(
            "chat_channels",
            {"type": "group", "created_by": actor_id},
        )
        if existing is not None:
            return ChannelRef(existing["id"])

        if member_ids is None:
            reports = await self.store.find("profiles", {"reports_to": actor_id, "is_active": True})
            member_ids = [row["id"] for row in reports]

        participants = [(actor_id, "owner")]
        participants.extend((member_id, "member") for member_id in member_ids if member_id != actor_id)
        return await self._create_channel(
            kind="group",
            key=team_channel_key(actor_id),
            actor_id=actor_id,
            tenant_id=tenant_id,
            name=name or "Team",
            participants=participants,
        )

    async def find_or_create_ai_channel(
        self,
        actor_id: str,
        tenant_id: str | None,
        *,
        welcome: str = WELCOME_MESSAGE,
    ) -> ChannelRef:
        existing = await self.store.find_one(
            "chat_channels",
            {"type": "ai_private", "created_by": actor_id},
        )
        if existing is not None:
            return ChannelRef(existing["id"])

        ref = await self._create_channel(
            kind="ai_private",
            key=ai_channel_key(actor_id),
            actor_id=actor_id,
            tenant_id=tenant_id,
            name="AI Assistant",
            participants=[(actor_id, "owner")],
        )
        if ref.created and welcome:
            await self.append_message(ref.id, None, "ai", welcome)
        return ref

    # ── Messages ───────────────────────────────────────────────────

    async def append_message(
        self,
        channel_id: str,
        sender_id: str | None,
        sender_kind: SenderKind,
        body: str,
    ) -> Message:
        rows = await self.store.insert(
            "chat_messages",
            {
                "channel_id": channel_id,
                "sender_id": sender_id,
                "sender_type": sender_kind,
                "content": body,
                "content_type": "text",
            },
        )
        await self.store.update("chat_channels", {"id": channel_id}, {"updated_at": rows[0]["created_at"]})
        return Message.from_row(rows[0])

    async def recent_history(self, channel_id: str, limit: int = DEFAULT_HISTORY_LIMIT) -> list[Message]:
        """The newest *limit* messages of a channel, oldest first."""
        if limit <= 0:
            return []
        rows = await self.store.find(
            "chat_messages",
            {"channel_id": channel_id},
            order_by=("-created_at", "-rowid"),
            limit=limit,
        )
        return [Message.from_row(row) for row in reversed(rows)]

    # ── Lookups ────────────────────────────────────────────────────

    async def get_channel(self, channel_id: str) -> Channel | None:
        row = await self.store.find_one("chat_channels", {"id": channel_id})
        return Channel.from_row(row) if row else None

    async def list_channels(self, user_id: str) -> list[Channel]:
        memberships = await self.store.find("chat_participants", {"user_id": user_id})
        if not memberships:
            return []
        rows = await self.store.find(
            "chat_channels",
            {"id": In(m["channel_id"] for m in memberships)},
            order_by=("-updated_at",),
        )
        return [Channel.from_row(row) for row in rows]

    async def participants(self, channel_id: str) -> list[str]:
        rows = await self.store.find("chat_participants", {"channel_id": channel_id})
        return [row["user_id"] for row in rows]

    async def is_participant(self, channel_id: str, user_id: str) -> bool:
        return await self.store.count(
            "chat_participants",
            {"channel_id": channel_id, "user_id": user_id},
        ) > 0

    # ------------------------------------------------------------------

    async def _find_shared_direct_channel(self, actor_id: str, target_id: str) -> str | None:
        mine = await self.store.find("chat_participants", {"user_id": actor_id})
        if not mine:
            return None
        shared = await self.store.find(
            "chat_participants",
            {"user_id": target_id, "channel_id": In(m["channel_id"] for m in mine)},
        )
        if not shared:
            return None
        direct = await self.store.find(
            "chat_channels",
            {"id": In(s["channel_id"] for s in shared), "type": "direct"},
            limit=1,
        )
        return direct[0]["id"] if direct else None

    async def _create_channel(
        self,
        *,
        kind: ChannelKind,
        key: str,
        actor_id: str,
        tenant_id: str | None,
        name: str | None,
        participants: list[tuple[str, str]],
    ) -> ChannelRef:
        now = utc_now_iso()
        try:
            rows = await self.store.insert(
                "chat_channels",
                {
                    "type": kind,
                    "name": name,
                    "created_by": actor_id,
                    "client_id": tenant_id,
                    "channel_key": key,
                    "created_at": now,
                    "updated_at": now,
                },
            )
        except UniqueViolation:
            winner = await self.store.find_one("chat_channels", {"channel_key": key})
            if winner is None:
                raise
            logger.info("Channel %s created concurrently, reusing id=%s", key, winner["id"])
            return ChannelRef(winner["id"])

        channel_id = rows[0]["id"]
        member_rows: list[dict[str, Any]] = [
            {"channel_id": channel_id, "user_id": user_id, "role": role}
            for user_id, role in participants
        ]
        await self.store.insert("chat_participants", member_rows)
        logger.info("Created %s channel id=%s participants=%d", kind, channel_id, len(member_rows))
        return ChannelRef(channel_id, created=True)
