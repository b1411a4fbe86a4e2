"""The fixed tool catalog offered to the assistant model."""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.tools.base import Tool, ToolRegistry
from core.tools.messaging_tools import SendMessageTool, SendTeamMessageTool
from core.tools.query_tools import (
    FindExpertsTool,
    GetMyCoachingTool,
    GetMyCompetenciesTool,
    GetMyTrainingsTool,
    GetTeamStatusTool,
    GetUserUpdateTool,
    SearchUserTool,
)
from core.tools.training_tools import (
    AssignTrainingTool,
    CreateCoachingSessionTool,
    CreateTrainingModuleTool,
)
from core.tools.user_tools import AddUserTool

if TYPE_CHECKING:
    from core.chat.channels import ChannelStore
    from core.directory.resolver import EntityResolver
    from core.store.storage import SQLiteStore


def build_default_tools(
    store: "SQLiteStore",
    resolver: "EntityResolver",
    channels: "ChannelStore",
) -> list[Tool]:
    """Create the default tool set over shared collaborators."""
    return [
        SendMessageTool(resolver=resolver, channels=channels),
        SendTeamMessageTool(resolver=resolver, channels=channels),
        CreateCoachingSessionTool(store=store, resolver=resolver),
        AssignTrainingTool(store=store, resolver=resolver),
        AddUserTool(store=store, resolver=resolver),
        CreateTrainingModuleTool(store=store),
        GetMyTrainingsTool(store=store, resolver=resolver),
        GetMyCompetenciesTool(store=store, resolver=resolver),
        GetMyCoachingTool(store=store, resolver=resolver),
        GetTeamStatusTool(store=store, resolver=resolver),
        FindExpertsTool(store=store, resolver=resolver),
        SearchUserTool(store=store, resolver=resolver),
        GetUserUpdateTool(store=store, resolver=resolver),
    ]


def build_registry(
    store: "SQLiteStore",
    resolver: "EntityResolver",
    channels: "ChannelStore",
) -> ToolRegistry:
    registry = ToolRegistry()
    for tool in build_default_tools(store, resolver, channels):
        registry.register(tool)
    return registry
