"""Tool framework for the training assistant.

The language model can request tool calls that act on the platform
(messaging, coaching, training assignment, user administration) or read
from it (pending trainings, team status, experts).

Architecture:
    1. ``Tool``: base class with ``name``, ``description``, ``parameters``,
       the roles allowed to call it and an ``async execute()`` method.
    2. ``ToolRegistry``: holds the catalog, serialises it for the LLM and
       dispatches calls: lookup → authorize → validate → execute.
    3. ``ToolCallResult``: the outcome of every call, success or failure.
    4. ``RequestContext``: the caller and per-request settings, passed
       explicitly into every call.

Expected failures (permission, unknown names, business rules) come back as
``ToolCallResult(success=False)``.  Nothing raised by a handler escapes
``dispatch``; store errors are logged and replaced with the tool's stable
``failure_message``.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from core.store.model import Actor, utc_now
from core.tools.permissions import is_allowed

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ToolParameter:
    """Describes a single parameter of a tool."""

    name: str
    type: str  # "string" | "number" | "boolean" | "array"
    description: str
    required: bool = True
    enum: tuple[str, ...] | None = None


@dataclass(slots=True)
class ToolCallResult:
    """Result of a tool execution."""

    tool_name: str
    success: bool
    data: Any = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"tool": self.tool_name, "success": self.success}
        if self.success:
            payload["data"] = self.data
        else:
            payload["error"] = self.error
        return payload


@dataclass(slots=True)
class RequestContext:
    """Everything a single chat turn knows about its caller."""

    actor: Actor
    tenant_name: str | None = None
    llm_api_key: str | None = None
    now: Callable[[], datetime] = field(default=utc_now)


class Tool(ABC):
    """Base class for chat-accessible tools."""

    name: str = ""
    description: str = ""
    parameters: list[ToolParameter] = []
    required_roles: frozenset[str] | None = None
    permission_error: str = "you are not allowed to use this action"
    failure_message: str = "Something went wrong, the action was not completed"

    @abstractmethod
    async def execute(self, context: RequestContext, **kwargs: Any) -> ToolCallResult:
        ...

    def ok(self, data: Any) -> ToolCallResult:
        return ToolCallResult(tool_name=self.name, success=True, data=data)

    def fail(self, error: str) -> ToolCallResult:
        return ToolCallResult(tool_name=self.name, success=False, error=error)

    def schema(self) -> dict[str, Any]:
        """OpenAI-style function schema for the LLM request."""
        properties: dict[str, Any] = {}
        for p in self.parameters:
            prop: dict[str, Any] = {"type": p.type, "description": p.description}
            if p.enum:
                prop["enum"] = list(p.enum)
            if p.type == "array":
                prop["items"] = {"type": "string"}
            properties[p.name] = prop
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": {
                    "type": "object",
                    "properties": properties,
                    "required": [p.name for p in self.parameters if p.required],
                },
            },
        }


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class ToolRegistry:
    """Registry of available tools + dispatch."""

    def __init__(self) -> None:
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        if tool.name in self._tools:
            raise ValueError(f"Tool already registered: {tool.name}")
        self._tools[tool.name] = tool

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    @property
    def tools(self) -> list[Tool]:
        return list(self._tools.values())

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def schemas(self) -> list[dict[str, Any]]:
        """All tool schemas for the LLM request."""
        return [t.schema() for t in self._tools.values()]

    def schemas_compact(self) -> str:
        """Compact text representation for prompt injection."""
        lines: list[str] = []
        for tool in self._tools.values():
            params = ", ".join(
                f"{p.name}{'' if p.required else '?'}: {p.type}" for p in tool.parameters
            )
            lines.append(f"- {tool.name}({params}): {tool.description}")
        return "\n".join(lines)

    async def dispatch(
        self,
        tool_name: str,
        arguments: dict[str, Any] | None,
        context: RequestContext,
    ) -> ToolCallResult:
        """Execute a tool by name with given arguments on behalf of ``context.actor``."""
        tool = self._tools.get(tool_name)
        if tool is None:
            logger.warning("Model requested unknown tool %r", tool_name)
            return ToolCallResult(
                tool_name=tool_name,
                success=False,
                error=f"Unknown tool: {tool_name}",
            )

        actor = context.actor
        if not is_allowed(actor.role, tool.required_roles):
            logger.warning("Permission denied: tool=%s actor=%s role=%s", tool_name, actor.id, actor.role)
            return tool.fail(f"Permission denied: {tool.permission_error}")

        arguments = arguments or {}
        kwargs: dict[str, Any] = {}
        for param in tool.parameters:
            value = arguments.get(param.name)
            if _is_blank(value):
                if param.required:
                    return tool.fail(f"Missing required parameter: {param.name}")
                continue
            kwargs[param.name] = value.strip() if isinstance(value, str) else value

        try:
            result = await tool.execute(context, **kwargs)
        except Exception:
            logger.exception("Tool %s failed for actor=%s", tool_name, actor.id)
            return tool.fail(tool.failure_message)

        logger.info("Tool %s executed for actor=%s success=%s", tool_name, actor.id, result.success)
        return result
