"""Messaging tools: direct messages and team broadcasts."""

from __future__ import annotations

import logging
from typing import Any, TYPE_CHECKING

from core.tools.base import RequestContext, Tool, ToolCallResult, ToolParameter
from core.tools.permissions import MANAGER_ROLES

if TYPE_CHECKING:
    from core.chat.channels import ChannelStore
    from core.directory.resolver import EntityResolver

logger = logging.getLogger(__name__)


# ─── SendMessageTool ──────────────────────────────────────────────

class SendMessageTool(Tool):
    """Send a direct message, creating the direct channel on first contact."""

    name = "send_message"
    description = "Send a direct message to another user"
    parameters = [
        ToolParameter(name="recipient_name", type="string", description="Name of the person to message"),
        ToolParameter(name="message", type="string", description="The message content"),
    ]
    failure_message = "Could not send the message"

    def __init__(self, resolver: "EntityResolver", channels: "ChannelStore") -> None:
        self._resolver = resolver
        self._channels = channels

    async def execute(self, context: RequestContext, **kwargs: Any) -> ToolCallResult:
        recipient_name = kwargs["recipient_name"]
        message = kwargs["message"]
        actor = context.actor

        recipient = await self._resolver.resolve_person(recipient_name, actor)
        if recipient is None:
            return self.fail(f'User "{recipient_name}" not found')
        if recipient.id == actor.id:
            return self.fail("You cannot send a direct message to yourself")

        channel = await self._channels.find_or_create_direct_channel(
            actor.id, recipient.id, recipient.tenant_id or actor.tenant_id,
        )
        await self._channels.append_message(channel.id, actor.id, "user", message)

        return self.ok({
            "recipient": recipient.full_name,
            "message": message,
            "channel_id": channel.id,
            "channel_created": channel.created,
        })


# ─── SendTeamMessageTool ──────────────────────────────────────────

class SendTeamMessageTool(Tool):
    """Broadcast to the caller's active direct reports via their team channel."""

    name = "send_team_message"
    description = "Send a message to all team members (managers only)"
    parameters = [
        ToolParameter(name="message", type="string", description="The message to send to the team"),
    ]
    required_roles = MANAGER_ROLES
    permission_error = "only managers can send team messages"
    failure_message = "Could not send the team message"

    def __init__(self, resolver: "EntityResolver", channels: "ChannelStore") -> None:
        self._resolver = resolver
        self._channels = channels

    async def execute(self, context: RequestContext, **kwargs: Any) -> ToolCallResult:
        message = kwargs["message"]
        actor = context.actor

        team = await self._resolver.direct_reports(actor.id)
        if not team:
            return self.fail("No team members found")

        channel = await self._channels.find_or_create_team_channel(
            actor.id,
            actor.tenant_id,
            name=f"{actor.full_name}'s Team",
            member_ids=[p.id for p in team],
        )
        await self._channels.append_message(channel.id, actor.id, "user", message)

        return self.ok({
            "team_size": len(team),
            "message": message,
            "channel_id": channel.id,
            "channel_created": channel.created,
        })
