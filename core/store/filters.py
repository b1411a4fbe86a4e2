"""Filter operators for :class:`core.store.storage.SQLiteStore` queries.

A ``where`` mapping pairs column names with values.  A plain value is an
equality test, ``None`` is ``IS NULL``, and the operators below cover the
remaining cases the assistant needs::

    await store.find("profiles", {
        "client_id": "c1",
        "full_name": ILike("jan"),
        "role": In(["team_lead", "client_admin"]),
    })
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

_IDENT_RE = re.compile(r"^[a-z_][a-z0-9_]*$")


@dataclass(frozen=True, slots=True)
class In:
    values: Iterable[Any]

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", tuple(self.values))


@dataclass(frozen=True, slots=True)
class ILike:
    """Case-insensitive substring match; ``%`` and ``_`` in *fragment* are literal."""

    fragment: str


@dataclass(frozen=True, slots=True)
class Not:
    value: Any


def check_identifier(name: str) -> str:
    if not _IDENT_RE.match(name):
        raise ValueError(f"Invalid identifier: {name!r}")
    return name


def _escape_like(fragment: str) -> str:
    return fragment.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def build_where(where: Mapping[str, Any] | None) -> tuple[str, list[Any]]:
    """Translate a where-mapping into an SQL clause and its parameters."""
    if not where:
        return "", []

    clauses: list[str] = []
    params: list[Any] = []
    for column, value in where.items():
        col = check_identifier(column)
        if value is None:
            clauses.append(f"{col} IS NULL")
        elif isinstance(value, In):
            if not value.values:
                # empty IN-list matches nothing
                clauses.append("0")
                continue
            marks = ", ".join("?" for _ in value.values)
            clauses.append(f"{col} IN ({marks})")
            params.extend(value.values)
        elif isinstance(value, ILike):
            clauses.append(f"lower({col}) LIKE lower(?) ESCAPE '\\'")
            params.append(f"%{_escape_like(value.fragment)}%")
        elif isinstance(value, Not):
            if value.value is None:
                clauses.append(f"{col} IS NOT NULL")
            else:
                clauses.append(f"{col} != ?")
                params.append(value.value)
        else:
            clauses.append(f"{col} = ?")
            params.append(value)
    return " WHERE " + " AND ".join(clauses), params


def build_order(order_by: Iterable[str]) -> str:
    parts: list[str] = []
    for item in order_by:
        descending = item.startswith("-")
        col = check_identifier(item.lstrip("-"))
        parts.append(f"{col} DESC" if descending else f"{col} ASC")
    if not parts:
        return " ORDER BY rowid ASC"
    return " ORDER BY " + ", ".join(parts)
