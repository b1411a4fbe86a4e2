from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from core.store.model import Actor, utc_now
from core.store.storage import SQLiteStore

T1 = "client-1"
T2 = "client-2"

PROFILES = [
    {"id": "u-bob", "full_name": "Bob Stone", "email": "bob@acme.test", "role": "team_lead", "client_id": T1},
    {"id": "u-alice", "full_name": "Alice Martin", "email": "alice@acme.test", "role": "trainee",
     "client_id": T1, "reports_to": "u-bob"},
    {"id": "u-erin", "full_name": "Erin Walsh", "email": "erin@acme.test", "role": "trainee",
     "client_id": T1, "reports_to": "u-bob"},
    {"id": "u-cara", "full_name": "Cara Diaz", "email": "cara@acme.test", "role": "client_admin", "client_id": T1},
    {"id": "u-dave", "full_name": "Dave Kim", "email": "dave@acme.test", "role": "trainee", "client_id": T1},
    {"id": "u-janet", "full_name": "Janet Reed", "email": "janet@acme.test", "role": "trainee", "client_id": T1},
    {"id": "u-carol", "full_name": "Carol Evans", "email": "carol@x.com", "role": "trainee", "client_id": T1},
    {"id": "u-gone", "full_name": "Gordon Left", "email": "gordon@acme.test", "role": "trainee",
     "client_id": T1, "reports_to": "u-bob", "is_active": False},
    {"id": "u-jan", "full_name": "Jan Peters", "email": "jan@beta.test", "role": "team_lead", "client_id": T2},
    {"id": "u-root", "full_name": "Sam Root", "email": "root@platform.test", "role": "super_admin", "client_id": None},
]


async def _seed(db_path) -> None:
    store = SQLiteStore(db_path)
    try:
        now = utc_now()
        await store.insert("clients", [
            {"id": T1, "name": "Acme Foods"},
            {"id": T2, "name": "Beta Logistics"},
        ])
        await store.insert("profiles", [{"is_active": True, **p} for p in PROFILES])
        await store.insert("training_modules", [
            {"id": "m-safety", "title": "Safety 101", "client_id": T1, "status": "published"},
            {"id": "m-forklift", "title": "Forklift Basics", "client_id": T1, "status": "published"},
            {"id": "m-hazmat", "title": "Hazmat Handling", "client_id": T2, "status": "published"},
        ])
        await store.insert("user_training", [
            {"user_id": "u-alice", "module_id": "m-forklift", "status": "pending",
             "due_date": (now - timedelta(days=3)).date().isoformat(), "assigned_by": "u-bob"},
        ])
        await store.insert("competencies", [
            {"id": "k-forklift", "name": "Forklift Operation", "client_id": T1},
            {"id": "k-haccp", "name": "Food Safety HACCP", "client_id": T1},
            {"id": "k-routing", "name": "Route Planning", "client_id": T2},
        ])
        await store.insert("user_competencies", [
            {"user_id": "u-alice", "competency_id": "k-forklift", "current_level": 1, "target_level": 3,
             "status": "in_progress"},
            {"user_id": "u-alice", "competency_id": "k-haccp", "current_level": 2, "target_level": 2,
             "status": "achieved"},
        ])
        await store.insert("expert_network", [
            {"user_id": "u-bob", "competency_id": "k-forklift", "client_id": T1, "expertise_level": 4},
            {"user_id": "u-cara", "competency_id": "k-haccp", "client_id": T1, "expertise_level": 3},
            {"user_id": "u-jan", "competency_id": "k-routing", "client_id": T2, "expertise_level": 5},
        ])
        await store.insert("development_activities", [
            {"type": "coaching", "title": "Coaching: reversing safely", "trainee_id": "u-alice",
             "coach_id": "u-bob", "status": "in_progress", "client_id": T1},
            {"type": "coaching", "title": "Coaching: pallet stacking", "trainee_id": "u-erin",
             "coach_id": "u-bob", "status": "completed", "client_id": T1},
        ])
    finally:
        await store.close()


@pytest.fixture
def seeded_db(tmp_path):
    db_path = tmp_path / "assistant.db"
    asyncio.run(_seed(db_path))
    return db_path


@pytest.fixture
def actors() -> dict[str, Actor]:
    by_first = {}
    for row in PROFILES:
        actor = Actor.from_row(row)
        by_first[actor.first_name.lower()] = actor
    return by_first
