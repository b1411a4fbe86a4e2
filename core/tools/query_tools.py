"""Read-only query tools.

Each returns its rows under a single key of ``data`` so the formatter can
render a short summary.  Related names (module titles, coach names,
competency names) are joined in Python from a second lookup.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date
from typing import Any, TYPE_CHECKING

from core.store.filters import ILike, In
from core.tools.base import RequestContext, Tool, ToolCallResult, ToolParameter
from core.tools.permissions import MANAGER_ROLES

if TYPE_CHECKING:
    from core.directory.resolver import EntityResolver
    from core.store.storage import SQLiteStore

logger = logging.getLogger(__name__)

OPEN_STATUSES = ("pending", "in_progress")
TEAM_STATUS_LIMIT = 50


async def _names_by_id(
    store: "SQLiteStore",
    table: str,
    ids: Iterable[str | None],
    column: str,
) -> dict[str, str]:
    wanted = {i for i in ids if i}
    if not wanted:
        return {}
    rows = await store.find(table, {"id": In(sorted(wanted))})
    return {row["id"]: row[column] for row in rows}


def _is_overdue(due_date: str | None, status: str, today: date) -> bool:
    if not due_date or status not in OPEN_STATUSES:
        return False
    try:
        return date.fromisoformat(due_date[:10]) < today
    except ValueError:
        return False


class _StoreTool(Tool):
    def __init__(self, store: "SQLiteStore", resolver: "EntityResolver") -> None:
        self._store = store
        self._resolver = resolver


# ─── GetMyTrainingsTool ───────────────────────────────────────────

class GetMyTrainingsTool(_StoreTool):
    name = "get_my_trainings"
    description = "Get the current user's pending and in-progress trainings"
    failure_message = "Could not load your trainings"

    async def execute(self, context: RequestContext, **kwargs: Any) -> ToolCallResult:
        today = context.now().date()
        rows = await self._store.find(
            "user_training",
            {"user_id": context.actor.id, "status": In(OPEN_STATUSES)},
            order_by=("due_date",),
        )
        titles = await _names_by_id(self._store, "training_modules", (r["module_id"] for r in rows), "title")
        trainings = [
            {
                "title": titles.get(r["module_id"], "Unknown training"),
                "status": r["status"],
                "due_date": r["due_date"],
                "overdue": _is_overdue(r["due_date"], r["status"], today),
            }
            for r in rows
        ]
        return self.ok({"trainings": trainings})


# ─── GetMyCompetenciesTool ────────────────────────────────────────

class GetMyCompetenciesTool(_StoreTool):
    name = "get_my_competencies"
    description = "Get the current user's competency progress"
    failure_message = "Could not load your competencies"

    async def execute(self, context: RequestContext, **kwargs: Any) -> ToolCallResult:
        rows = await self._store.find("user_competencies", {"user_id": context.actor.id})
        names = await _names_by_id(self._store, "competencies", (r["competency_id"] for r in rows), "name")
        competencies = [
            {
                "name": names.get(r["competency_id"], "Unknown competency"),
                "current_level": r["current_level"],
                "target_level": r["target_level"],
                "status": r["status"],
            }
            for r in rows
        ]
        return self.ok({"competencies": competencies})


# ─── GetMyCoachingTool ────────────────────────────────────────────

class GetMyCoachingTool(_StoreTool):
    name = "get_my_coaching"
    description = "Get the current user's active coaching sessions"
    failure_message = "Could not load your coaching sessions"

    async def execute(self, context: RequestContext, **kwargs: Any) -> ToolCallResult:
        rows = await self._store.find(
            "development_activities",
            {"trainee_id": context.actor.id, "status": In(OPEN_STATUSES)},
        )
        coaches = await _names_by_id(self._store, "profiles", (r["coach_id"] for r in rows), "full_name")
        coaching = [
            {
                "title": r["title"],
                "status": r["status"],
                "coach": coaches.get(r["coach_id"] or "", "No coach"),
            }
            for r in rows
        ]
        return self.ok({"coaching": coaching})


# ─── GetTeamStatusTool ────────────────────────────────────────────

class GetTeamStatusTool(_StoreTool):
    name = "get_team_status"
    description = "Get an overview of the team: members, pending trainings, sessions awaiting validation (managers only)"
    required_roles = MANAGER_ROLES
    permission_error = "only managers can view team status"
    failure_message = "Could not load team status"

    async def execute(self, context: RequestContext, **kwargs: Any) -> ToolCallResult:
        actor = context.actor
        if actor.is_unscoped:
            team = await self._resolver.all_active_users(limit=TEAM_STATUS_LIMIT)
        else:
            team = await self._resolver.direct_reports(actor.id)

        team_ids = [p.id for p in team]
        pending = 0
        if team_ids:
            pending = await self._store.count(
                "user_training",
                {"user_id": In(team_ids), "status": In(OPEN_STATUSES)},
            )
        awaiting = await self._store.count(
            "development_activities",
            {"coach_id": actor.id, "status": "completed"},
        )
        return self.ok({
            "team_members": [{"id": p.id, "full_name": p.full_name} for p in team],
            "pending_trainings": pending,
            "awaiting_validation": awaiting,
        })


# ─── FindExpertsTool ──────────────────────────────────────────────

class FindExpertsTool(_StoreTool):
    name = "find_experts"
    description = "Find subject matter experts, optionally for a topic or competency"
    parameters = [
        ToolParameter(name="topic", type="string", description="Topic or competency (optional)", required=False),
    ]
    failure_message = "Could not search the expert network"

    async def execute(self, context: RequestContext, **kwargs: Any) -> ToolCallResult:
        topic = kwargs.get("topic")
        actor = context.actor

        where: dict[str, Any] = {"status": "active"}
        if not actor.is_unscoped:
            where["client_id"] = actor.tenant_id
        if topic:
            matching = await self._store.find("competencies", {"name": ILike(topic)})
            if not matching:
                return self.ok({"experts": [], "topic": topic})
            where["competency_id"] = In(c["id"] for c in matching)

        rows = await self._store.find(
            "expert_network", where, order_by=("-expertise_level",), limit=10,
        )
        users = await _names_by_id(self._store, "profiles", (r["user_id"] for r in rows), "full_name")
        competencies = await _names_by_id(self._store, "competencies", (r["competency_id"] for r in rows), "name")
        experts = [
            {
                "name": users.get(r["user_id"], "Unknown"),
                "competency": competencies.get(r["competency_id"], "Unknown"),
                "expertise_level": r["expertise_level"],
            }
            for r in rows
        ]
        return self.ok({"experts": experts, "topic": topic})


# ─── SearchUserTool ───────────────────────────────────────────────

class SearchUserTool(_StoreTool):
    name = "search_user"
    description = "Find active users in the organization by name"
    parameters = [
        ToolParameter(name="search_term", type="string", description="Name or part of a name (optional)", required=False),
    ]
    failure_message = "Could not search users"

    async def execute(self, context: RequestContext, **kwargs: Any) -> ToolCallResult:
        term = kwargs.get("search_term") or ""
        actor = context.actor

        where: dict[str, Any] = {"is_active": True}
        if not actor.is_unscoped:
            where["client_id"] = actor.tenant_id
        if term:
            where["full_name"] = ILike(term)

        rows = await self._store.find("profiles", where, limit=10)
        users = [
            {"id": r["id"], "full_name": r["full_name"], "email": r["email"], "role": r["role"]}
            for r in rows
        ]
        return self.ok({"users": users})


# ─── GetUserUpdateTool ────────────────────────────────────────────

class GetUserUpdateTool(_StoreTool):
    """Training, competency and development summary for one person."""

    name = "get_user_update"
    description = (
        "Get a detailed update on a user's training, competencies and coaching progress. "
        "Use when asked about a specific person (managers only)."
    )
    parameters = [
        ToolParameter(name="user_name", type="string", description="Full or partial name of the user to look up"),
    ]
    required_roles = MANAGER_ROLES
    permission_error = "only managers can view another user's progress"
    failure_message = "Could not load the user update"

    async def execute(self, context: RequestContext, **kwargs: Any) -> ToolCallResult:
        user_name = kwargs["user_name"]
        today = context.now().date()

        person = await self._resolver.resolve_person(user_name, context.actor)
        if person is None:
            return self.fail(f"Could not find user: {user_name}")

        trainings = await self._store.find("user_training", {"user_id": person.id}, order_by=("status",))
        titles = await _names_by_id(self._store, "training_modules", (t["module_id"] for t in trainings), "title")

        competencies = await self._store.find("user_competencies", {"user_id": person.id})
        comp_names = await _names_by_id(
            self._store, "competencies", (c["competency_id"] for c in competencies), "name",
        )

        activities = await self._store.find(
            "development_activities",
            {"trainee_id": person.id},
            order_by=("-created_at",),
            limit=10,
        )
        coaches = await _names_by_id(self._store, "profiles", (a["coach_id"] for a in activities), "full_name")

        return self.ok({
            "user_update": {
                "name": person.full_name,
                "role": person.role,
                "trainings": [
                    {
                        "title": titles.get(t["module_id"], "Unknown"),
                        "status": t["status"],
                        "score": t["score"],
                        "overdue": _is_overdue(t["due_date"], t["status"], today),
                    }
                    for t in trainings
                ],
                "competencies": [
                    {
                        "name": comp_names.get(c["competency_id"], "Unknown"),
                        "current_level": c["current_level"],
                        "target_level": c["target_level"],
                        "status": c["status"],
                    }
                    for c in competencies
                ],
                "activities": [
                    {
                        "title": a["title"],
                        "status": a["status"],
                        "coach": coaches.get(a["coach_id"] or "", "No coach"),
                    }
                    for a in activities
                ],
            },
        })
