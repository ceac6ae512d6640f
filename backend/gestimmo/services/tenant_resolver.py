# backend/gestimmo/services/tenant_resolver.py
from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth import Principal
from ..models import Profile, Tenant

log = logging.getLogger("gestimmo.tenants")


def normalize_email(value: object) -> str:
    return str(value or "").strip().lower()


def resolve_tenant(db: Session, principal: Principal | None) -> Tenant | None:
    """Tenant row for a principal: by user_id first, then by normalized email."""
    if principal is None or not principal.user_id:
        return None

    row = db.scalar(select(Tenant).where(Tenant.user_id == int(principal.user_id)))
    if row is not None:
        return row

    email = normalize_email(principal.email)
    if email:
        return db.scalar(select(Tenant).where(Tenant.email == email))
    return None


def resolve_or_create_tenant(db: Session, principal: Principal | None) -> Tenant | None:
    """
    Like resolve_tenant, but links legacy rows found by email to the user and
    creates the row on first use. Flushes, the caller commits.
    """
    existing = resolve_tenant(db, principal)
    if existing is not None:
        if existing.user_id is None and principal.user_id:
            existing.user_id = int(principal.user_id)
            db.add(existing)
            db.flush()
            log.info("linked tenant to user", extra={"tenant_id": existing.id, "user_id": principal.user_id})
        return existing

    if principal is None or not principal.user_id or not principal.email:
        return None

    profile = db.get(Profile, int(principal.user_id))
    full_name = str((profile.full_name if profile else None) or "Tenant").strip() or "Tenant"

    row = Tenant(
        user_id=int(principal.user_id),
        email=normalize_email(principal.email),
        full_name=full_name,
        phone=profile.phone if profile else None,
    )

    # A concurrent request may insert the same email first; the unique
    # constraint rejects ours and the winner's row is returned instead.
    try:
        with db.begin_nested():
            db.add(row)
            db.flush()
    except IntegrityError:
        log.info("tenant insert raced, re-resolving", extra={"user_id": principal.user_id})
        return resolve_tenant(db, principal)

    log.info("created tenant", extra={"tenant_id": row.id, "user_id": principal.user_id})
    return row
