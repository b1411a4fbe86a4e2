import asyncio

import pytest

from core.store.filters import ILike, In, Not, build_order, build_where
from core.store.storage import SQLiteStore, StoreError, UniqueViolation


def test_build_where_operators():
    clause, params = build_where({
        "client_id": "c1",
        "reports_to": None,
        "role": In(["trainee", "team_lead"]),
        "full_name": ILike("50%_off"),
        "status": Not("archived"),
    })
    assert clause.startswith(" WHERE ")
    assert "reports_to IS NULL" in clause
    assert "role IN (?, ?)" in clause
    assert "lower(full_name) LIKE lower(?)" in clause
    assert "status != ?" in clause
    assert params == ["c1", "trainee", "team_lead", "%50\\%\\_off%", "archived"]


def test_build_where_empty_in_matches_nothing():
    clause, params = build_where({"id": In([])})
    assert clause == " WHERE 0"
    assert params == []


def test_build_where_rejects_bad_identifier():
    with pytest.raises(ValueError):
        build_where({"id; DROP TABLE profiles": 1})


def test_build_order_defaults_to_insertion_order():
    assert build_order(()) == " ORDER BY rowid ASC"
    assert build_order(("-created_at", "title")) == " ORDER BY created_at DESC, title ASC"


def test_insert_fills_id_and_created_at(tmp_path):
    async def scenario() -> None:
        store = SQLiteStore(tmp_path / "store.db")
        try:
            rows = await store.insert("clients", {"name": "Acme Foods"})
            assert len(rows) == 1
            assert rows[0]["id"]
            assert rows[0]["created_at"]
            assert await store.count("clients") == 1
        finally:
            await store.close()

    asyncio.run(scenario())


def test_find_filters_and_ilike_is_case_insensitive(seeded_db):
    async def scenario() -> None:
        store = SQLiteStore(seeded_db)
        try:
            rows = await store.find("profiles", {"client_id": "client-1", "full_name": ILike("JAN")})
            assert [r["full_name"] for r in rows] == ["Janet Reed"]

            limited = await store.find("profiles", {"client_id": "client-1"}, limit=2)
            assert len(limited) == 2

            inactive = await store.find_one("profiles", {"is_active": False})
            assert inactive["id"] == "u-gone"
        finally:
            await store.close()

    asyncio.run(scenario())


def test_unique_email_maps_to_unique_violation(seeded_db):
    async def scenario() -> None:
        store = SQLiteStore(seeded_db)
        try:
            with pytest.raises(UniqueViolation):
                await store.insert("profiles", {
                    "full_name": "Carol Again",
                    "email": "CAROL@x.com",
                    "role": "trainee",
                    "client_id": "client-1",
                })
            assert await store.count("profiles", {"full_name": "Carol Again"}) == 0
        finally:
            await store.close()

    asyncio.run(scenario())


def test_unknown_table_and_column_raise_store_error(tmp_path):
    async def scenario() -> None:
        store = SQLiteStore(tmp_path / "store.db")
        try:
            with pytest.raises(StoreError):
                await store.find("nope")
            with pytest.raises(StoreError):
                await store.find("profiles", {"shoe_size": 42})
        finally:
            await store.close()

    asyncio.run(scenario())


def test_update_and_delete_return_rowcount(seeded_db):
    async def scenario() -> None:
        store = SQLiteStore(seeded_db)
        try:
            changed = await store.update("training_modules", {"client_id": "client-1"}, {"status": "archived"})
            assert changed == 2
            assert await store.count("training_modules", {"status": "archived"}) == 2

            removed = await store.delete("training_modules", {"id": "m-hazmat"})
            assert removed == 1
            assert await store.find_one("training_modules", {"id": "m-hazmat"}) is None
        finally:
            await store.close()

    asyncio.run(scenario())
