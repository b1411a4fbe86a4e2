from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Literal


Role = Literal[
    "super_admin",
    "client_admin",
    "site_admin",
    "category_admin",
    "team_lead",
    "trainee",
]

ROLES: tuple[str, ...] = (
    "super_admin",
    "client_admin",
    "site_admin",
    "category_admin",
    "team_lead",
    "trainee",
)

ChannelKind = Literal["direct", "group", "ai_private"]

SenderKind = Literal["user", "ai"]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    return utc_now().isoformat()


@dataclass(slots=True)
class Actor:
    """The authenticated caller of a chat turn."""

    id: str
    full_name: str
    role: Role
    tenant_id: str | None
    email: str | None = None

    @property
    def first_name(self) -> str:
        parts = (self.full_name or "").split()
        return parts[0] if parts else "there"

    @property
    def is_unscoped(self) -> bool:
        # super_admin resolves across every tenant
        return self.role == "super_admin"

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Actor":
        return cls(
            id=row["id"],
            full_name=row.get("full_name") or "",
            role=row["role"],
            tenant_id=row.get("client_id"),
            email=row.get("email"),
        )


@dataclass(slots=True)
class Person:
    id: str
    full_name: str
    email: str | None
    role: Role
    tenant_id: str | None
    is_active: bool = True
    reports_to: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Person":
        return cls(
            id=row["id"],
            full_name=row.get("full_name") or "",
            email=row.get("email"),
            role=row["role"],
            tenant_id=row.get("client_id"),
            is_active=bool(row.get("is_active", 1)),
            reports_to=row.get("reports_to"),
        )


@dataclass(slots=True)
class Channel:
    id: str
    type: ChannelKind
    name: str | None
    created_by: str | None
    tenant_id: str | None
    created_at: str
    updated_at: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Channel":
        return cls(
            id=row["id"],
            type=row["type"],
            name=row.get("name"),
            created_by=row.get("created_by"),
            tenant_id=row.get("client_id"),
            created_at=row["created_at"],
            updated_at=row.get("updated_at"),
        )


@dataclass(slots=True)
class Message:
    id: str
    channel_id: str
    sender_id: str | None
    sender_type: SenderKind
    content: str
    created_at: str

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Message":
        return cls(
            id=row["id"],
            channel_id=row["channel_id"],
            sender_id=row.get("sender_id"),
            sender_type=row["sender_type"],
            content=row.get("content") or "",
            created_at=row["created_at"],
        )
