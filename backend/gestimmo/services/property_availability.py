# backend/gestimmo/services/property_availability.py
"""
Read-time occupancy projection for properties.

The stored `properties.status` column is not trusted on reads: a property is
reported as rented whenever an open contract exists for it, and a property
stored as `rented` without any open contract is reported as available. This
is a view over the data, nothing is written back.

Tenants and guests only see their own contracts through the main session,
which could hide another tenant's lease and show an occupied unit as vacant,
so their occupancy is computed through the elevated session. If that path
fails, the viewer-scoped answer is used instead.
"""
from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..auth import Principal
from ..db import AdminSessionLocal
from ..domain.statuses import OPEN_CONTRACT_STATUSES, STAFF_ROLES, PropertyStatus, Role
from ..models import Contract, Property
from ..schemas import PropertyOut
from .tenant_resolver import resolve_tenant

log = logging.getLogger("gestimmo.properties")


def _open_ids_stmt(property_ids: list[int]):
    return (
        select(Contract.property_id)
        .where(Contract.property_id.in_(property_ids))
        .where(Contract.status.in_(list(OPEN_CONTRACT_STATUSES)))
        .distinct()
    )


def open_contract_property_ids(db: Session, property_ids: Iterable[int]) -> set[int]:
    ids = [int(x) for x in property_ids]
    if not ids:
        return set()
    return {int(x) for x in db.scalars(_open_ids_stmt(ids)).all()}


def _elevated_open_ids(property_ids: list[int]) -> set[int]:
    admin = AdminSessionLocal()
    try:
        return open_contract_property_ids(admin, property_ids)
    finally:
        admin.close()


def _viewer_scoped_open_ids(db: Session, viewer: Principal, property_ids: list[int]) -> set[int]:
    # Same visibility the viewer would get from row-level policies.
    if viewer.role != Role.TENANT:
        return set()
    tenant = resolve_tenant(db, viewer)
    if tenant is None or not property_ids:
        return set()
    stmt = _open_ids_stmt(property_ids).where(Contract.tenant_id == int(tenant.id))
    return {int(x) for x in db.scalars(stmt).all()}


def occupied_property_ids(db: Session, viewer: Principal, property_ids: Iterable[int]) -> set[int]:
    ids = [int(x) for x in property_ids]
    if not ids:
        return set()

    if viewer.role in STAFF_ROLES:
        return open_contract_property_ids(db, ids)

    try:
        return _elevated_open_ids(ids)
    except SQLAlchemyError:
        log.warning("elevated occupancy lookup failed, using viewer scope", exc_info=True)
        return _viewer_scoped_open_ids(db, viewer, ids)


def project_property(row: Property, occupied: bool) -> dict:
    out = PropertyOut.model_validate(row).model_dump()
    stored = row.status

    if occupied:
        status = PropertyStatus.RENTED
    elif stored == PropertyStatus.RENTED:
        status = PropertyStatus.AVAILABLE
    else:
        status = stored

    out["status"] = status
    out["has_active_contract"] = occupied
    out["is_contractable"] = (not occupied) and status == PropertyStatus.AVAILABLE
    return out


def project_properties(db: Session, viewer: Principal, rows: list[Property]) -> list[dict]:
    occupied = occupied_property_ids(db, viewer, (r.id for r in rows))
    return [project_property(r, r.id in occupied) for r in rows]


def effective_status(db: Session, viewer: Principal, row: Property) -> PropertyStatus:
    return project_properties(db, viewer, [row])[0]["status"]
