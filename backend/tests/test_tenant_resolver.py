# backend/tests/test_tenant_resolver.py
from __future__ import annotations

from sqlalchemy import func, select

from gestimmo.auth import Principal
from gestimmo.db import SessionLocal
from gestimmo.domain.statuses import Role
from gestimmo.models import Tenant
from gestimmo.services import tenant_resolver
from gestimmo.services.tenant_resolver import resolve_or_create_tenant, resolve_tenant

from factories import make_profile, make_tenant


def _principal(profile) -> Principal:
    return Principal(user_id=profile.id, email=profile.email, role=Role.TENANT, full_name=profile.full_name)


def test_resolves_by_user_id_then_email():
    linked = make_profile("linked@test.local")
    legacy = make_profile("legacy@test.local")
    t1 = make_tenant("linked@test.local", user_id=linked.id)
    t2 = make_tenant("legacy@test.local")

    db = SessionLocal()
    try:
        assert resolve_tenant(db, _principal(linked)).id == t1.id

        # Email lookup is case-insensitive on the principal side.
        shouting = Principal(user_id=legacy.id, email="  LEGACY@Test.Local ", role=Role.TENANT)
        assert resolve_tenant(db, shouting).id == t2.id

        assert resolve_tenant(db, None) is None
    finally:
        db.close()


def test_resolve_or_create_links_legacy_row():
    profile = make_profile("legacy@test.local")
    legacy = make_tenant("legacy@test.local")

    db = SessionLocal()
    try:
        row = resolve_or_create_tenant(db, _principal(profile))
        db.commit()
        assert row.id == legacy.id
        assert row.user_id == profile.id
    finally:
        db.close()


def test_resolve_or_create_creates_once():
    profile = make_profile("new@test.local", full_name="Nina Petit")

    db = SessionLocal()
    try:
        first = resolve_or_create_tenant(db, _principal(profile))
        db.commit()
        second = resolve_or_create_tenant(db, _principal(profile))
        db.commit()

        assert first.id == second.id
        assert first.full_name == "Nina Petit"
        assert first.email == "new@test.local"
        assert db.scalar(select(func.count()).select_from(Tenant)) == 1
    finally:
        db.close()


def test_insert_race_returns_winner_row(monkeypatch):
    profile = make_profile("race@test.local")
    winner = make_tenant("race@test.local")

    real_resolve = tenant_resolver.resolve_tenant
    calls = {"n": 0}

    def _miss_first(db, principal):
        # First lookup happens "before" the concurrent insert lands.
        calls["n"] += 1
        if calls["n"] == 1:
            return None
        return real_resolve(db, principal)

    monkeypatch.setattr(tenant_resolver, "resolve_tenant", _miss_first)

    db = SessionLocal()
    try:
        row = resolve_or_create_tenant(db, _principal(profile))
        db.commit()
        assert row is not None
        assert row.id == winner.id
        assert db.scalar(select(func.count()).select_from(Tenant)) == 1
    finally:
        db.close()
