"""User administration tools."""

from __future__ import annotations

import logging
from typing import Any, TYPE_CHECKING

from core.store.storage import UniqueViolation
from core.tools.base import RequestContext, Tool, ToolCallResult, ToolParameter
from core.tools.permissions import ADMIN_ROLES, ASSIGNABLE_ROLES

if TYPE_CHECKING:
    from core.directory.resolver import EntityResolver
    from core.store.storage import SQLiteStore

logger = logging.getLogger(__name__)

DUPLICATE_EMAIL_ERROR = "A user with this email already exists"


class AddUserTool(Tool):
    """Create an inactive profile; it is activated when the invitation is accepted."""

    name = "add_user"
    description = "Create a new user account (admins only)"
    parameters = [
        ToolParameter(name="full_name", type="string", description="Full name of the new user"),
        ToolParameter(name="email", type="string", description="Email address"),
        ToolParameter(name="role", type="string", description="User's role", enum=ASSIGNABLE_ROLES),
        ToolParameter(
            name="reports_to_name", type="string",
            description="Name of their manager (optional)",
            required=False,
        ),
    ]
    required_roles = ADMIN_ROLES
    permission_error = "only administrators can add users"
    failure_message = "Could not create user"

    def __init__(self, store: "SQLiteStore", resolver: "EntityResolver") -> None:
        self._store = store
        self._resolver = resolver

    async def execute(self, context: RequestContext, **kwargs: Any) -> ToolCallResult:
        full_name = kwargs["full_name"]
        email = kwargs["email"].lower()
        role = kwargs["role"]
        reports_to_name = kwargs.get("reports_to_name")
        actor = context.actor

        if role not in ASSIGNABLE_ROLES:
            return self.fail(f"Unknown role \"{role}\". Choose one of: {', '.join(ASSIGNABLE_ROLES)}")
        if "@" not in email:
            return self.fail(f'"{email}" is not a valid email address')

        if await self._store.count("profiles", {"email": email}):
            return self.fail(DUPLICATE_EMAIL_ERROR)

        reports_to = None
        if reports_to_name:
            manager = await self._resolver.resolve_person(reports_to_name, actor)
            if manager is None:
                logger.info("add_user: manager %r not resolved for tenant=%s", reports_to_name, actor.tenant_id)
                return self.fail(f'Manager "{reports_to_name}" not found')
            reports_to = manager.id

        try:
            await self._store.insert("profiles", {
                "full_name": full_name,
                "email": email,
                "role": role,
                "client_id": actor.tenant_id,
                "reports_to": reports_to,
                "is_active": False,
            })
        except UniqueViolation:
            return self.fail(DUPLICATE_EMAIL_ERROR)

        return self.ok({
            "name": full_name,
            "email": email,
            "role": role,
            "status": "Invitation pending",
        })
