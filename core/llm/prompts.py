from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from core.store.model import Actor
    from core.tools.base import ToolRegistry


WELCOME_MESSAGE = (
    "👋 Welcome to your AI Assistant!\n\n"
    "I'm here to help you with:\n"
    "• Checking training status and pending tasks\n"
    "• Finding experts in specific competencies\n"
    "• Scheduling coaching and assigning training\n"
    "• Messaging colleagues and your team\n\n"
    "Just type your question and I'll do my best to help!"
)

FALLBACK_MESSAGE = "I'm having trouble connecting right now. Please try again in a moment."

NOT_CONFIGURED_MESSAGE = (
    "AI Agent is not configured. Please ask your administrator to add an LLM API key."
)

ROLE_PERMISSIONS: dict[str, str] = {
    "super_admin": "Full access to all organizations and users",
    "client_admin": "Full access within their organization, can add users",
    "site_admin": "Manage their site, assign training, create training modules",
    "category_admin": "Manage their category, assign training, create training modules",
    "team_lead": "Manage their team, assign training, create coaching",
    "trainee": "View own data, message colleagues, request coaching",
}


def _role_label(role: str | None) -> str:
    return (role or "team member").replace("_", " ")


def build_system_prompt(
    actor: "Actor",
    tenant_name: str | None,
    registry: "ToolRegistry | None" = None,
) -> str:
    """System instruction for one assistant turn, specific to the caller."""
    permission_lines = "\n".join(
        f"- {role}: {summary}" for role, summary in ROLE_PERMISSIONS.items()
    )
    capabilities = registry.schemas_compact() if registry is not None else ""

    return f"""You are an intelligent AI Assistant for a training and competency management platform used by manufacturing companies.

## YOUR IDENTITY
- Name: Training Assistant
- Organization: {tenant_name or "this organization"}
- Current user: {actor.full_name or "User"} ({_role_label(actor.role)})

## YOUR CAPABILITIES
Use the provided tools to act on the user's behalf:
{capabilities}

## PERMISSIONS
Current user role: {actor.role}
{permission_lines}

Only call tools the current user has permission for.

## GUIDELINES
- Be warm, helpful and proactive; address the user by first name ({actor.first_name}).
- Be concise but complete and suggest sensible next steps.
- When creating coaching, specify both trainee_name and coach_name when known.
- When asked about a specific person, look them up with get_user_update.
- Use emojis sparingly.
"""
