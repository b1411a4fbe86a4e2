import asyncio

from core.directory.resolver import EntityResolver
from core.store.storage import SQLiteStore
from core.tools.permissions import MANAGER_ROLES


def test_resolve_person_is_confined_to_tenant(seeded_db, actors):
    async def scenario() -> None:
        store = SQLiteStore(seeded_db)
        try:
            resolver = EntityResolver(store)

            # "Jan" matches Janet Reed in client-1 and Jan Peters in client-2
            found = await resolver.resolve_person("jan", actors["bob"])
            assert found is not None
            assert found.full_name == "Janet Reed"
            assert found.tenant_id == "client-1"

            other_side = await resolver.resolve_person("Jan", actors["jan"])
            assert other_side.full_name == "Jan Peters"
        finally:
            await store.close()

    asyncio.run(scenario())


def test_resolve_person_for_super_admin_spans_tenants(seeded_db, actors):
    async def scenario() -> None:
        store = SQLiteStore(seeded_db)
        try:
            resolver = EntityResolver(store)
            found = await resolver.resolve_person("Peters", actors["sam"])
            assert found is not None
            assert found.tenant_id == "client-2"
        finally:
            await store.close()

    asyncio.run(scenario())


def test_resolve_person_skips_inactive_and_blank(seeded_db, actors):
    async def scenario() -> None:
        store = SQLiteStore(seeded_db)
        try:
            resolver = EntityResolver(store)
            assert await resolver.resolve_person("Gordon", actors["bob"]) is None
            assert await resolver.resolve_person("   ", actors["bob"]) is None
            assert await resolver.resolve_person(None, actors["bob"]) is None
        finally:
            await store.close()

    asyncio.run(scenario())


def test_resolve_person_role_filter(seeded_db, actors):
    async def scenario() -> None:
        store = SQLiteStore(seeded_db)
        try:
            resolver = EntityResolver(store)
            assert await resolver.resolve_person("Alice", actors["bob"], roles=MANAGER_ROLES) is None
            coach = await resolver.resolve_person("bob", actors["alice"], roles=MANAGER_ROLES)
            assert coach.id == "u-bob"
        finally:
            await store.close()

    asyncio.run(scenario())


def test_direct_reports_and_all_active_users(seeded_db):
    async def scenario() -> None:
        store = SQLiteStore(seeded_db)
        try:
            resolver = EntityResolver(store)
            reports = await resolver.direct_reports("u-bob")
            assert {p.id for p in reports} == {"u-alice", "u-erin"}

            everyone = await resolver.all_active_users()
            ids = {p.id for p in everyone}
            assert "u-root" not in ids
            assert "u-gone" not in ids
            assert "u-jan" in ids
        finally:
            await store.close()

    asyncio.run(scenario())


def test_training_module_resolution_is_tenant_scoped(seeded_db, actors):
    async def scenario() -> None:
        store = SQLiteStore(seeded_db)
        try:
            resolver = EntityResolver(store)
            module = await resolver.resolve_training_module("safety", actors["bob"])
            assert module["id"] == "m-safety"
            assert await resolver.resolve_training_module("Hazmat", actors["bob"]) is None

            published = await resolver.list_published_modules(actors["bob"])
            assert [m["title"] for m in published] == ["Safety 101", "Forklift Basics"]
        finally:
            await store.close()

    asyncio.run(scenario())


def test_load_actor_and_tenant_name(seeded_db):
    async def scenario() -> None:
        store = SQLiteStore(seeded_db)
        try:
            resolver = EntityResolver(store)
            actor = await resolver.load_actor("u-alice")
            assert actor.role == "trainee"
            assert actor.tenant_id == "client-1"
            assert await resolver.load_actor("u-gone") is None
            assert await resolver.load_actor("missing") is None

            assert await resolver.tenant_name("client-1") == "Acme Foods"
            assert await resolver.tenant_name(None) is None
        finally:
            await store.close()

    asyncio.run(scenario())
