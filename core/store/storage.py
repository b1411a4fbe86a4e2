from __future__ import annotations

import asyncio
import logging
import sqlite3
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any
from uuid import uuid4

import aiosqlite

from core.store.filters import build_order, build_where, check_identifier
from core.store.model import utc_now_iso

logger = logging.getLogger(__name__)


class StoreError(RuntimeError):
    """Any failure raised by the data store."""


class UniqueViolation(StoreError):
    """An insert or update collided with a UNIQUE constraint."""


_SCHEMA = """
CREATE TABLE IF NOT EXISTS clients (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS profiles (
    id TEXT PRIMARY KEY,
    full_name TEXT NOT NULL,
    email TEXT NOT NULL,
    role TEXT NOT NULL,
    client_id TEXT,
    is_active INTEGER NOT NULL DEFAULT 1,
    reports_to TEXT,
    created_at TEXT NOT NULL
);

CREATE UNIQUE INDEX IF NOT EXISTS idx_profiles_email
    ON profiles(lower(email));

CREATE INDEX IF NOT EXISTS idx_profiles_client
    ON profiles(client_id, is_active);

CREATE INDEX IF NOT EXISTS idx_profiles_reports_to
    ON profiles(reports_to);

CREATE TABLE IF NOT EXISTS chat_channels (
    id TEXT PRIMARY KEY,
    type TEXT NOT NULL,
    name TEXT,
    created_by TEXT,
    client_id TEXT,
    channel_key TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT
);

CREATE UNIQUE INDEX IF NOT EXISTS idx_chat_channels_key
    ON chat_channels(channel_key)
    WHERE channel_key IS NOT NULL;

CREATE TABLE IF NOT EXISTS chat_participants (
    channel_id TEXT NOT NULL,
    user_id TEXT NOT NULL,
    role TEXT NOT NULL DEFAULT 'member',
    last_read_at TEXT,
    created_at TEXT NOT NULL,
    PRIMARY KEY (channel_id, user_id)
);

CREATE INDEX IF NOT EXISTS idx_chat_participants_user
    ON chat_participants(user_id);

CREATE TABLE IF NOT EXISTS chat_messages (
    id TEXT PRIMARY KEY,
    channel_id TEXT NOT NULL,
    sender_id TEXT,
    sender_type TEXT NOT NULL,
    content TEXT NOT NULL,
    content_type TEXT NOT NULL DEFAULT 'text',
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_chat_messages_channel_created
    ON chat_messages(channel_id, created_at DESC);

CREATE TABLE IF NOT EXISTS training_modules (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    description TEXT,
    client_id TEXT,
    created_by TEXT,
    status TEXT NOT NULL DEFAULT 'draft',
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS user_training (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    module_id TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'pending',
    due_date TEXT,
    assigned_by TEXT,
    score REAL,
    created_at TEXT NOT NULL
);

CREATE UNIQUE INDEX IF NOT EXISTS idx_user_training_unique
    ON user_training(user_id, module_id);

CREATE TABLE IF NOT EXISTS development_activities (
    id TEXT PRIMARY KEY,
    type TEXT NOT NULL,
    title TEXT NOT NULL,
    description TEXT,
    trainee_id TEXT,
    coach_id TEXT,
    assigned_by TEXT,
    status TEXT NOT NULL DEFAULT 'pending',
    client_id TEXT,
    start_date TEXT,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_development_activities_trainee
    ON development_activities(trainee_id, status);

CREATE TABLE IF NOT EXISTS competencies (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    client_id TEXT,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS user_competencies (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    competency_id TEXT NOT NULL,
    current_level INTEGER NOT NULL DEFAULT 0,
    target_level INTEGER NOT NULL DEFAULT 1,
    status TEXT NOT NULL DEFAULT 'in_progress',
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS expert_network (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    competency_id TEXT NOT NULL,
    client_id TEXT,
    expertise_level INTEGER NOT NULL DEFAULT 1,
    status TEXT NOT NULL DEFAULT 'active',
    created_at TEXT NOT NULL
);
"""


class SQLiteStore:
    """Generic filtered find/insert/update/delete over named relations.

    The assistant core talks to the relational store only through this
    interface.  Rows travel as plain ``dict`` objects; filters are the
    mappings described in :mod:`core.store.filters`.  Every database error
    is re-raised as :class:`StoreError` (or :class:`UniqueViolation`).
    """

    def __init__(self, db_path: str | Path = "data/assistant.db") -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialized = False
        self._init_lock = asyncio.Lock()
        self._conn: aiosqlite.Connection | None = None
        self._conn_lock = asyncio.Lock()
        self._write_lock = asyncio.Lock()
        self._columns: dict[str, set[str]] = {}

    async def _get_conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            async with self._conn_lock:
                if self._conn is None:
                    self._conn = await aiosqlite.connect(str(self.db_path))
                    self._conn.row_factory = aiosqlite.Row
        return self._conn

    async def close(self) -> None:
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
            self._initialized = False

    async def _ensure_initialized(self) -> None:
        if self._initialized:
            return

        async with self._init_lock:
            if self._initialized:
                return

            conn = await self._get_conn()
            try:
                await conn.executescript(_SCHEMA)
                await conn.commit()
                cursor = await conn.execute(
                    "SELECT name FROM sqlite_master WHERE type = 'table' AND name NOT LIKE 'sqlite_%'"
                )
                tables = [row["name"] for row in await cursor.fetchall()]
                for table in tables:
                    cursor = await conn.execute(f"PRAGMA table_info({table})")
                    self._columns[table] = {row["name"] for row in await cursor.fetchall()}
            except sqlite3.Error as exc:
                raise StoreError(f"schema initialisation failed: {exc}") from exc
            self._initialized = True

    def _check_table(self, table: str) -> str:
        check_identifier(table)
        if table not in self._columns:
            raise StoreError(f"Unknown table: {table}")
        return table

    def _check_columns(self, table: str, columns: Iterable[str]) -> None:
        unknown = [c for c in columns if c not in self._columns[table]]
        if unknown:
            raise StoreError(f"Unknown column(s) for {table}: {', '.join(unknown)}")

    # ── Reads ──────────────────────────────────────────────────────

    async def find(
        self,
        table: str,
        where: Mapping[str, Any] | None = None,
        *,
        order_by: Iterable[str] = (),
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        await self._ensure_initialized()
        self._check_table(table)
        if where:
            self._check_columns(table, where.keys())

        clause, params = build_where(where)
        sql = f"SELECT * FROM {table}{clause}{build_order(order_by)}"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(int(limit))

        conn = await self._get_conn()
        try:
            cursor = await conn.execute(sql, params)
            rows = await cursor.fetchall()
        except sqlite3.Error as exc:
            raise StoreError(f"find on {table} failed: {exc}") from exc
        return [dict(row) for row in rows]

    async def find_one(
        self,
        table: str,
        where: Mapping[str, Any] | None = None,
        *,
        order_by: Iterable[str] = (),
    ) -> dict[str, Any] | None:
        rows = await self.find(table, where, order_by=order_by, limit=1)
        return rows[0] if rows else None

    async def count(self, table: str, where: Mapping[str, Any] | None = None) -> int:
        await self._ensure_initialized()
        self._check_table(table)
        if where:
            self._check_columns(table, where.keys())

        clause, params = build_where(where)
        conn = await self._get_conn()
        try:
            cursor = await conn.execute(f"SELECT COUNT(*) AS n FROM {table}{clause}", params)
            row = await cursor.fetchone()
        except sqlite3.Error as exc:
            raise StoreError(f"count on {table} failed: {exc}") from exc
        return int(row["n"]) if row else 0

    # ── Writes ─────────────────────────────────────────────────────

    async def insert(
        self,
        table: str,
        rows: Mapping[str, Any] | list[Mapping[str, Any]],
    ) -> list[dict[str, Any]]:
        """Insert one row or a batch atomically; returns the stored rows."""
        await self._ensure_initialized()
        self._check_table(table)
        batch = [rows] if isinstance(rows, Mapping) else list(rows)
        if not batch:
            return []

        columns = self._columns[table]
        prepared: list[dict[str, Any]] = []
        for row in batch:
            values = dict(row)
            if "id" in columns and not values.get("id"):
                values["id"] = str(uuid4())
            if "created_at" in columns and not values.get("created_at"):
                values["created_at"] = utc_now_iso()
            self._check_columns(table, values.keys())
            prepared.append(values)

        conn = await self._get_conn()
        stored: list[dict[str, Any]] = []
        async with self._write_lock:
            try:
                rowids: list[int] = []
                for values in prepared:
                    names = ", ".join(values)
                    marks = ", ".join("?" for _ in values)
                    cursor = await conn.execute(
                        f"INSERT INTO {table} ({names}) VALUES ({marks})",
                        list(values.values()),
                    )
                    rowids.append(int(cursor.lastrowid))
                await conn.commit()
                for rowid in rowids:
                    cursor = await conn.execute(f"SELECT * FROM {table} WHERE rowid = ?", (rowid,))
                    row = await cursor.fetchone()
                    if row is not None:
                        stored.append(dict(row))
            except sqlite3.IntegrityError as exc:
                await conn.rollback()
                if "UNIQUE" in str(exc).upper():
                    raise UniqueViolation(f"insert into {table} violates a unique constraint") from exc
                raise StoreError(f"insert into {table} failed: {exc}") from exc
            except sqlite3.Error as exc:
                await conn.rollback()
                raise StoreError(f"insert into {table} failed: {exc}") from exc
        return stored

    async def update(
        self,
        table: str,
        where: Mapping[str, Any],
        patch: Mapping[str, Any],
    ) -> int:
        await self._ensure_initialized()
        self._check_table(table)
        if not patch:
            return 0
        self._check_columns(table, [*where.keys(), *patch.keys()])

        assignments = ", ".join(f"{check_identifier(col)} = ?" for col in patch)
        clause, params = build_where(where)
        conn = await self._get_conn()
        async with self._write_lock:
            try:
                cursor = await conn.execute(
                    f"UPDATE {table} SET {assignments}{clause}",
                    [*patch.values(), *params],
                )
                await conn.commit()
            except sqlite3.IntegrityError as exc:
                await conn.rollback()
                if "UNIQUE" in str(exc).upper():
                    raise UniqueViolation(f"update of {table} violates a unique constraint") from exc
                raise StoreError(f"update of {table} failed: {exc}") from exc
            except sqlite3.Error as exc:
                await conn.rollback()
                raise StoreError(f"update of {table} failed: {exc}") from exc
        return cursor.rowcount

    async def delete(self, table: str, where: Mapping[str, Any]) -> int:
        await self._ensure_initialized()
        self._check_table(table)
        self._check_columns(table, where.keys())

        clause, params = build_where(where)
        conn = await self._get_conn()
        async with self._write_lock:
            try:
                cursor = await conn.execute(f"DELETE FROM {table}{clause}", params)
                await conn.commit()
            except sqlite3.Error as exc:
                await conn.rollback()
                raise StoreError(f"delete from {table} failed: {exc}") from exc
        return cursor.rowcount
