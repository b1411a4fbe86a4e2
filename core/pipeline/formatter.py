"""Render tool outcomes as chat text.

One template per tool name.  Failures share a single template that shows
the reason verbatim; successes of a tool without a template fall back to a
generic confirmation.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from core.store.model import Actor
from core.tools.base import ToolCallResult

FAILURE_MARKER = "❌"
SUCCESS_MARKER = "✅"

Template = Callable[[dict[str, Any], Actor], str]


def _role_label(role: str | None) -> str:
    return (role or "").replace("_", " ")


def _message_sent(data: dict[str, Any], actor: Actor) -> str:
    return f'{SUCCESS_MARKER} Message sent to {data["recipient"]}!\n\n💬 "{data["message"]}"'


def _team_message_sent(data: dict[str, Any], actor: Actor) -> str:
    return f'{SUCCESS_MARKER} Message sent to {data["team_size"]} team members!\n\n💬 "{data["message"]}"'


def _coaching_created(data: dict[str, Any], actor: Actor) -> str:
    return (
        f"{SUCCESS_MARKER} Coaching session created!\n\n"
        f"👤 Trainee: {data['trainee']}\n"
        f"🧑‍🏫 Coach: {data['coach']}\n"
        f"📚 Topic: {data['topic']}\n"
        f"📅 {data['scheduled']}"
    )


def _training_assigned(data: dict[str, Any], actor: Actor) -> str:
    return (
        f"{SUCCESS_MARKER} Training assigned!\n\n"
        f"👤 {data['trainee']}\n"
        f"📚 {data['training']}\n"
        f"📅 Due: {data['due']}"
    )


def _user_created(data: dict[str, Any], actor: Actor) -> str:
    return (
        f"{SUCCESS_MARKER} User created!\n\n"
        f"👤 {data['name']}\n"
        f"📧 {data['email']}\n"
        f"🎭 {_role_label(data['role'])}\n"
        f"📋 {data['status']}"
    )


def _module_created(data: dict[str, Any], actor: Actor) -> str:
    return (
        f"{SUCCESS_MARKER} Training module created!\n\n"
        f"📚 {data['title']}\n"
        f"📋 {data['status']}"
    )


def _my_trainings(data: dict[str, Any], actor: Actor) -> str:
    trainings = data.get("trainings") or []
    if not trainings:
        return f"Great news, {actor.first_name}! You have no pending trainings. 🎉"
    lines = [f"📚 **Your Pending Trainings ({len(trainings)})**", ""]
    for i, t in enumerate(trainings, 1):
        lines.append(f"{i}. {t['title']}{' ⚠️ OVERDUE' if t.get('overdue') else ''}")
    return "\n".join(lines)


def _my_competencies(data: dict[str, Any], actor: Actor) -> str:
    competencies = data.get("competencies") or []
    if not competencies:
        return (
            f"No competencies assigned yet, {actor.first_name}. "
            "Talk to your team lead about your development plan."
        )
    achieved = sum(1 for c in competencies if c["status"] == "achieved")
    lines = [f"📊 **Your Competencies** ({achieved}/{len(competencies)} achieved)"]
    gaps = [c for c in competencies if c["current_level"] < c["target_level"]]
    if gaps:
        lines.extend(["", "**Skills to develop:**"])
        for g in gaps[:5]:
            lines.append(f"• {g['name']}: Level {g['current_level']} → {g['target_level']}")
    return "\n".join(lines)


def _my_coaching(data: dict[str, Any], actor: Actor) -> str:
    coaching = data.get("coaching") or []
    if not coaching:
        return f"No active coaching sessions, {actor.first_name}. Would you like to request one?"
    lines = ["🎯 **Your Coaching Sessions**", ""]
    for i, c in enumerate(coaching, 1):
        lines.append(f"{i}. {c['title']} (Coach: {c['coach']})")
    return "\n".join(lines)


def _team_status(data: dict[str, Any], actor: Actor) -> str:
    members = data.get("team_members") or []
    if not members:
        return "No direct reports found."
    lines = [
        f"👥 **Team Overview** ({len(members)} members)",
        "",
        f"📚 Pending Trainings: {data.get('pending_trainings', 0)}",
        f"✅ Awaiting Validation: {data.get('awaiting_validation', 0)}",
        "",
        "**Members:**",
    ]
    lines.extend(f"• {m['full_name']}" for m in members)
    return "\n".join(lines)


def _experts(data: dict[str, Any], actor: Actor) -> str:
    experts = data.get("experts") or []
    if not experts:
        if data.get("topic"):
            return f"No experts registered for \"{data['topic']}\" yet."
        return "No experts registered in the network yet."
    lines = ["👥 **Available Experts**", ""]
    for e in experts:
        lines.append(f"• **{e['name']}** - {e['competency']} (Level {e['expertise_level']})")
    return "\n".join(lines)


def _users(data: dict[str, Any], actor: Actor) -> str:
    users = data.get("users") or []
    if not users:
        return "No users found matching your search."
    lines = ["👥 **Users Found**", ""]
    lines.extend(f"• {u['full_name']} ({_role_label(u['role'])})" for u in users)
    return "\n".join(lines)


_TRAINING_ICONS = {"passed": "✅", "failed": "❌", "in_progress": "🔄"}
_ACTIVITY_ICONS = {"completed": "✅", "pending": "⏳"}


def _user_update(data: dict[str, Any], actor: Actor) -> str:
    update = data["user_update"]
    lines = [f"📋 Update for {update['name']} ({_role_label(update['role'])})", ""]

    trainings = update.get("trainings") or []
    if trainings:
        passed = sum(1 for t in trainings if t["status"] == "passed")
        pending = sum(1 for t in trainings if t["status"] in ("pending", "in_progress"))
        failed = sum(1 for t in trainings if t["status"] == "failed")
        overdue = sum(1 for t in trainings if t["overdue"])
        header = f"📚 Training: {passed}/{len(trainings)} passed"
        if pending:
            header += f", {pending} pending"
        if failed:
            header += f", {failed} failed"
        if overdue:
            header += f" ⚠️ {overdue} overdue"
        lines.append(header)
        for t in trainings:
            line = f"  {_TRAINING_ICONS.get(t['status'], '⏳')} {t['title']}"
            if t.get("score"):
                line += f" ({t['score']:g}%)"
            if t["overdue"]:
                line += " ⚠️ OVERDUE"
            lines.append(line)
    else:
        lines.append("📚 No training assigned")
    lines.append("")

    competencies = update.get("competencies") or []
    if competencies:
        achieved = sum(1 for c in competencies if c["status"] == "achieved")
        lines.append(f"🎯 Competencies: {achieved}/{len(competencies)} achieved")
        for c in competencies:
            icon = "✅" if c["current_level"] >= c["target_level"] else "⚠️"
            lines.append(f"  {icon} {c['name']}: L{c['current_level']}/L{c['target_level']}")
    else:
        lines.append("🎯 No competencies assigned")
    lines.append("")

    activities = update.get("activities") or []
    if activities:
        lines.append(f"🤝 Development Activities ({len(activities)}):")
        for a in activities:
            icon = _ACTIVITY_ICONS.get(a["status"], "🔄")
            lines.append(f"  {icon} {a['title']} - {a['coach']} ({a['status']})")
    else:
        lines.append("🤝 No development activities")
    return "\n".join(lines)


_TEMPLATES: dict[str, Template] = {
    "send_message": _message_sent,
    "send_team_message": _team_message_sent,
    "create_coaching_session": _coaching_created,
    "assign_training": _training_assigned,
    "add_user": _user_created,
    "create_training_module": _module_created,
    "get_my_trainings": _my_trainings,
    "get_my_competencies": _my_competencies,
    "get_my_coaching": _my_coaching,
    "get_team_status": _team_status,
    "find_experts": _experts,
    "search_user": _users,
    "get_user_update": _user_update,
}


class ResultFormatter:
    def __init__(self, templates: dict[str, Template] | None = None) -> None:
        self._templates = dict(_TEMPLATES if templates is None else templates)

    def register(self, tool_name: str, template: Template) -> None:
        self._templates[tool_name] = template

    def render(self, result: ToolCallResult, actor: Actor) -> str:
        if not result.success:
            return f"{FAILURE_MARKER} {result.error}"
        template = self._templates.get(result.tool_name)
        if template is None or not isinstance(result.data, dict):
            return f"{SUCCESS_MARKER} Action completed successfully!"
        return template(result.data, actor)
