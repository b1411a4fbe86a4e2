"""Training and coaching tools.

These are the write paths managers use most: assigning a training module,
scheduling a coaching session and drafting a new module.  Every name in
the arguments is resolved inside the caller's tenant before anything is
written.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Any, TYPE_CHECKING

from config import DEFAULT_DUE_DAYS
from core.store.storage import UniqueViolation
from core.tools.base import RequestContext, Tool, ToolCallResult, ToolParameter
from core.tools.permissions import MANAGER_ROLES, MODULE_AUTHOR_ROLES

if TYPE_CHECKING:
    from core.directory.resolver import EntityResolver
    from core.store.storage import SQLiteStore

logger = logging.getLogger(__name__)


def parse_date(raw: str) -> date | None:
    """Parse ``YYYY-MM-DD`` or an ISO datetime; ``None`` when unparseable."""
    text = raw.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


# ─── AssignTrainingTool ───────────────────────────────────────────

class AssignTrainingTool(Tool):
    name = "assign_training"
    description = "Assign a training module to a user (managers only)"
    parameters = [
        ToolParameter(name="trainee_name", type="string", description="Name of the person to assign training to"),
        ToolParameter(name="training_title", type="string", description="Name/title of the training module"),
        ToolParameter(
            name="due_date", type="string",
            description="When training should be completed, YYYY-MM-DD (optional, defaults to two weeks)",
            required=False,
        ),
    ]
    required_roles = MANAGER_ROLES
    permission_error = "only managers can assign training"
    failure_message = "Could not assign training"

    def __init__(
        self,
        store: "SQLiteStore",
        resolver: "EntityResolver",
        due_days: int = DEFAULT_DUE_DAYS,
    ) -> None:
        self._store = store
        self._resolver = resolver
        self._due_days = due_days

    async def execute(self, context: RequestContext, **kwargs: Any) -> ToolCallResult:
        trainee_name = kwargs["trainee_name"]
        training_title = kwargs["training_title"]
        raw_due = kwargs.get("due_date")
        actor = context.actor

        trainee = await self._resolver.resolve_person(trainee_name, actor)
        if trainee is None:
            return self.fail(f'User "{trainee_name}" not found')

        module = await self._resolver.resolve_training_module(training_title, actor)
        if module is None:
            available = await self._resolver.list_published_modules(actor)
            titles = ", ".join(m["title"] for m in available) or "none published"
            return self.fail(f'Training "{training_title}" not found. Available: {titles}')

        existing = await self._store.count(
            "user_training", {"user_id": trainee.id, "module_id": module["id"]},
        )
        if existing:
            return self._already_assigned(module["title"], trainee.full_name)

        if raw_due:
            due = parse_date(raw_due)
            if due is None:
                return self.fail(f'Could not understand due date "{raw_due}", please use YYYY-MM-DD')
        else:
            due = (context.now() + timedelta(days=self._due_days)).date()

        try:
            await self._store.insert("user_training", {
                "user_id": trainee.id,
                "module_id": module["id"],
                "status": "pending",
                "due_date": due.isoformat(),
                "assigned_by": actor.id,
            })
        except UniqueViolation:
            return self._already_assigned(module["title"], trainee.full_name)

        return self.ok({
            "trainee": trainee.full_name,
            "training": module["title"],
            "due": due.isoformat(),
        })

    def _already_assigned(self, title: str, trainee_name: str) -> ToolCallResult:
        return self.fail(f'"{title}" is already assigned to {trainee_name}')


# ─── CreateCoachingSessionTool ────────────────────────────────────

class CreateCoachingSessionTool(Tool):
    """Create a pending coaching activity between a trainee and a coach.

    The trainee defaults to the caller.  Without an explicit coach, a
    manager who names a trainee coaches the session themselves; any other
    combination has to name the coach.
    """

    name = "create_coaching_session"
    description = "Create a coaching/development session between a trainee and a coach"
    parameters = [
        ToolParameter(name="topic", type="string", description="What the coaching is about"),
        ToolParameter(
            name="trainee_name", type="string",
            description="Name of the person receiving coaching (optional, defaults to the requester)",
            required=False,
        ),
        ToolParameter(
            name="coach_name", type="string",
            description="Name of the coach (optional, defaults to the requester for managers)",
            required=False,
        ),
        ToolParameter(
            name="scheduled_date", type="string",
            description="When the session should happen (optional)",
            required=False,
        ),
    ]
    failure_message = "Could not create coaching session"

    def __init__(self, store: "SQLiteStore", resolver: "EntityResolver") -> None:
        self._store = store
        self._resolver = resolver

    async def execute(self, context: RequestContext, **kwargs: Any) -> ToolCallResult:
        topic = kwargs["topic"]
        trainee_name = kwargs.get("trainee_name")
        coach_name = kwargs.get("coach_name")
        scheduled = kwargs.get("scheduled_date")
        actor = context.actor

        trainee_id = actor.id
        trainee_full_name = actor.full_name
        trainee_tenant = actor.tenant_id
        if trainee_name:
            trainee = await self._resolver.resolve_person(trainee_name, actor)
            if trainee is None:
                return self.fail(f"Could not find trainee: {trainee_name}")
            trainee_id = trainee.id
            trainee_full_name = trainee.full_name
            trainee_tenant = trainee.tenant_id or actor.tenant_id

        coach_id: str | None = None
        coach_full_name = ""
        if coach_name:
            coach = await self._resolver.resolve_person(coach_name, actor, roles=MANAGER_ROLES)
            if coach is None:
                return self.fail(f"Could not find coach: {coach_name}. Available: {await self._coach_list(context)}")
            coach_id = coach.id
            coach_full_name = coach.full_name
        elif actor.role in MANAGER_ROLES and trainee_name:
            coach_id = actor.id
            coach_full_name = actor.full_name

        if coach_id is None:
            return self.fail(f"Please specify a coach. Available: {await self._coach_list(context)}")

        await self._store.insert("development_activities", {
            "type": "coaching",
            "title": f"Coaching: {topic}",
            "description": f"Scheduled: {scheduled}" if scheduled else "Requested via AI Assistant",
            "trainee_id": trainee_id,
            "coach_id": coach_id,
            "assigned_by": actor.id,
            "status": "pending",
            "client_id": trainee_tenant,
            "start_date": context.now().date().isoformat(),
        })

        return self.ok({
            "trainee": trainee_full_name,
            "coach": coach_full_name,
            "topic": topic,
            "scheduled": scheduled or "To be scheduled",
        })

    async def _coach_list(self, context: RequestContext) -> str:
        coaches = await self._resolver.list_people(context.actor, roles=MANAGER_ROLES)
        return ", ".join(c.full_name for c in coaches) or "none found"


# ─── CreateTrainingModuleTool ─────────────────────────────────────

class CreateTrainingModuleTool(Tool):
    name = "create_training_module"
    description = "Create a new draft training module (admins only)"
    parameters = [
        ToolParameter(name="title", type="string", description="Title of the training module"),
        ToolParameter(name="description", type="string", description="What the training covers"),
        ToolParameter(
            name="competencies", type="array",
            description="Related competencies (optional)",
            required=False,
        ),
    ]
    required_roles = MODULE_AUTHOR_ROLES
    permission_error = "only administrators can create training modules"
    failure_message = "Could not create training module"

    def __init__(self, store: "SQLiteStore") -> None:
        self._store = store

    async def execute(self, context: RequestContext, **kwargs: Any) -> ToolCallResult:
        title = kwargs["title"]
        description = kwargs["description"]
        competencies = kwargs.get("competencies") or []
        actor = context.actor

        await self._store.insert("training_modules", {
            "title": title,
            "description": description,
            "client_id": actor.tenant_id,
            "created_by": actor.id,
            "status": "draft",
        })

        return self.ok({
            "title": title,
            "description": description,
            "competencies": list(competencies),
            "status": "Draft - ready for content",
        })
