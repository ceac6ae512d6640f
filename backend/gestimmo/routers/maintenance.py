# backend/gestimmo/routers/maintenance.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth import Principal, require_staff, require_tenant
from ..db import get_db
from ..domain.statuses import MaintenanceStatus
from ..models import MaintenanceRequest
from ..schemas import MaintenanceCreate, MaintenanceOut, MaintenanceUpdate
from ..services.list_query import build_list_response, enum_filter, int_filter, paginate, parse_pagination, parse_sort
from ..services.notifications import notify
from ..services.ownership import must_get_maintenance, must_get_property
from ..services.tenant_resolver import resolve_tenant

log = logging.getLogger("gestimmo.maintenance")

MAINTENANCE_SORT_COLUMNS = ("created_at", "updated_at", "urgency", "status")

router = APIRouter(prefix="/maintenance", tags=["maintenance"])
mobile_router = APIRouter(prefix="/maintenance", tags=["mobile"])


def _tenant_or_404(db: Session, p: Principal):
    tenant = resolve_tenant(db, p)
    if tenant is None:
        raise HTTPException(status_code=404, detail="Tenant not found")
    return tenant


# ---- Web (staff) ----

@router.get("")
def list_requests(request: Request, db: Session = Depends(get_db), p: Principal = Depends(require_staff)):
    query = request.query_params
    pagination = parse_pagination(query)
    sort = parse_sort(query, MAINTENANCE_SORT_COLUMNS)

    stmt = select(MaintenanceRequest)
    property_id = int_filter(query, "property_id")
    if property_id is not None:
        stmt = stmt.where(MaintenanceRequest.property_id == property_id)
    status = enum_filter(query, "status", MaintenanceStatus)
    if status is not None:
        stmt = stmt.where(MaintenanceRequest.status == status)

    rows, total = paginate(db, stmt, MaintenanceRequest, pagination, sort)
    items = [MaintenanceOut.model_validate(r).model_dump() for r in rows]
    return build_list_response(items, pagination, total)


@router.post("", response_model=MaintenanceOut, status_code=201)
def create_request(payload: MaintenanceCreate, db: Session = Depends(get_db), p: Principal = Depends(require_staff)):
    must_get_property(db, property_id=payload.property_id)
    row = MaintenanceRequest(**payload.model_dump(), reported_by=p.user_id, status=MaintenanceStatus.REPORTED)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@router.put("/{request_id}", response_model=MaintenanceOut)
def update_request(
    request_id: int,
    payload: MaintenanceUpdate,
    db: Session = Depends(get_db),
    p: Principal = Depends(require_staff),
):
    row = must_get_maintenance(db, request_id=request_id)
    for k, v in payload.model_dump(exclude_unset=True).items():
        setattr(row, k, v)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


# ---- Mobile (tenant) ----

@mobile_router.get("", response_model=list[MaintenanceOut])
def mobile_list_requests(db: Session = Depends(get_db), p: Principal = Depends(require_tenant)):
    tenant = _tenant_or_404(db, p)
    return db.scalars(
        select(MaintenanceRequest)
        .where(MaintenanceRequest.tenant_id == tenant.id)
        .order_by(MaintenanceRequest.created_at.desc(), MaintenanceRequest.id.desc())
    ).all()


@mobile_router.post("", response_model=MaintenanceOut, status_code=201)
def mobile_create_request(payload: MaintenanceCreate, db: Session = Depends(get_db), p: Principal = Depends(require_tenant)):
    tenant = _tenant_or_404(db, p)
    must_get_property(db, property_id=payload.property_id)

    data = payload.model_dump()
    data["tenant_id"] = tenant.id  # never trust the body
    row = MaintenanceRequest(**data, reported_by=p.user_id, status=MaintenanceStatus.REPORTED)
    db.add(row)
    db.flush()

    notify(
        db,
        user_id=p.user_id,
        title="Demande maintenance envoyée",
        message="Votre demande de maintenance a été envoyée.",
        type="info",
        related_entity_type="maintenance",
        related_entity_id=row.id,
    )
    db.commit()
    db.refresh(row)

    log.info("maintenance reported", extra={"tenant_id": tenant.id, "property_id": row.property_id})
    return row


@mobile_router.post("/{request_id}/cancel", response_model=MaintenanceOut)
def mobile_cancel_request(request_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_tenant)):
    tenant = _tenant_or_404(db, p)
    row = must_get_maintenance(db, request_id=request_id)
    if row.tenant_id != tenant.id:
        raise HTTPException(status_code=403, detail="Tenants can only cancel their own requests")

    row.status = MaintenanceStatus.CANCELLED
    db.add(row)
    db.commit()
    db.refresh(row)
    return row
