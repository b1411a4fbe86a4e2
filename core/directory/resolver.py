"""Fuzzy name → directory entry resolution.

Names coming out of the language model ("Alice", "jan", "safety 101") are
matched as case-insensitive substrings against the directory.  Lookups are
always confined to the caller's tenant, except for ``super_admin`` callers
who see every tenant.  Only active people are candidates.

When several entries match, the first one in the store's default order
wins.  There is no disambiguation step: ambiguity is logged and accepted.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from core.store.filters import ILike, In, Not
from core.store.model import Actor, Person
from core.store.storage import SQLiteStore

logger = logging.getLogger(__name__)


class EntityResolver:
    def __init__(self, store: SQLiteStore) -> None:
        self.store = store

    def _scope(self, actor: Actor) -> dict[str, Any]:
        if actor.is_unscoped:
            return {}
        return {"client_id": actor.tenant_id}

    async def resolve_person(
        self,
        name_fragment: str | None,
        actor: Actor,
        roles: Iterable[str] | None = None,
    ) -> Person | None:
        """Return the first active person whose name contains *name_fragment*."""
        fragment = (name_fragment or "").strip()
        if not fragment:
            return None

        where: dict[str, Any] = {
            **self._scope(actor),
            "full_name": ILike(fragment),
            "is_active": True,
        }
        if roles is not None:
            where["role"] = In(roles)

        rows = await self.store.find("profiles", where, limit=2)
        if not rows:
            logger.debug("resolve_person: no match for fragment in tenant=%s", actor.tenant_id)
            return None
        if len(rows) > 1:
            logger.debug("resolve_person: ambiguous fragment, taking first match id=%s", rows[0]["id"])
        return Person.from_row(rows[0])

    async def list_people(
        self,
        actor: Actor,
        roles: Iterable[str] | None = None,
        limit: int | None = None,
    ) -> list[Person]:
        where: dict[str, Any] = {**self._scope(actor), "is_active": True}
        if roles is not None:
            where["role"] = In(roles)
        rows = await self.store.find("profiles", where, limit=limit)
        return [Person.from_row(row) for row in rows]

    async def direct_reports(self, actor_id: str) -> list[Person]:
        rows = await self.store.find("profiles", {"reports_to": actor_id, "is_active": True})
        return [Person.from_row(row) for row in rows]

    async def all_active_users(self, limit: int = 50) -> list[Person]:
        """Every active non-super_admin user, across tenants."""
        rows = await self.store.find(
            "profiles",
            {"is_active": True, "role": Not("super_admin")},
            limit=limit,
        )
        return [Person.from_row(row) for row in rows]

    async def get_person(self, person_id: str) -> Person | None:
        row = await self.store.find_one("profiles", {"id": person_id})
        return Person.from_row(row) if row else None

    # ── Training modules ───────────────────────────────────────────

    async def resolve_training_module(
        self,
        title_fragment: str | None,
        actor: Actor,
    ) -> dict[str, Any] | None:
        fragment = (title_fragment or "").strip()
        if not fragment:
            return None
        return await self.store.find_one(
            "training_modules",
            {**self._scope(actor), "title": ILike(fragment)},
        )

    async def list_published_modules(self, actor: Actor, limit: int = 10) -> list[dict[str, Any]]:
        return await self.store.find(
            "training_modules",
            {**self._scope(actor), "status": "published"},
            limit=limit,
        )

    # ── Callers ────────────────────────────────────────────────────

    async def load_actor(self, user_id: str) -> Actor | None:
        """The caller behind *user_id*; inactive profiles cannot act."""
        row = await self.store.find_one("profiles", {"id": user_id, "is_active": True})
        return Actor.from_row(row) if row else None

    async def tenant_name(self, tenant_id: str | None) -> str | None:
        if not tenant_id:
            return None
        row = await self.store.find_one("clients", {"id": tenant_id})
        return row["name"] if row else None
