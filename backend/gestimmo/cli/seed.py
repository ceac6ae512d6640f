# backend/gestimmo/cli/seed.py
from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import select

from gestimmo.auth import hash_password
from gestimmo.db import Base, SessionLocal, engine
from gestimmo.domain.statuses import Role
from gestimmo.models import Profile
from gestimmo.services.tenant_resolver import normalize_email


@dataclass(frozen=True)
class SeedResult:
    user_id: int
    email: str
    created: bool


def seed_user(*, email: str, password: str, full_name: str, role: str = "admin") -> SeedResult:
    """Creates the profile, or resets its password and role when it already exists."""
    Base.metadata.create_all(bind=engine)
    email = normalize_email(email)

    db = SessionLocal()
    try:
        row = db.scalar(select(Profile).where(Profile.email == email))
        created = row is None
        if row is None:
            row = Profile(email=email, full_name=full_name)
        row.password_hash = hash_password(password)
        row.role = Role.parse(role)
        db.add(row)
        db.commit()
        db.refresh(row)
        return SeedResult(user_id=int(row.id), email=row.email, created=created)
    finally:
        db.close()
