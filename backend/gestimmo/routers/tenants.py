# backend/gestimmo/routers/tenants.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth import Principal, require_staff, require_tenant
from ..db import get_db
from ..models import Tenant
from ..schemas import TenantCreate, TenantOut, TenantUpdate
from ..services.list_query import build_list_response, paginate, parse_pagination, parse_sort
from ..services.ownership import must_get_tenant
from ..services.tenant_resolver import normalize_email, resolve_or_create_tenant

TENANT_SORT_COLUMNS = ("created_at", "updated_at", "full_name", "email")

router = APIRouter(prefix="/tenants", tags=["tenants"])
mobile_router = APIRouter(tags=["mobile"])


@router.post("", response_model=TenantOut, status_code=201)
def create_tenant(payload: TenantCreate, db: Session = Depends(get_db), p: Principal = Depends(require_staff)):
    data = payload.model_dump()
    data["email"] = normalize_email(data["email"])
    row = Tenant(**data)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@router.get("")
def list_tenants(request: Request, db: Session = Depends(get_db), p: Principal = Depends(require_staff)):
    query = request.query_params
    pagination = parse_pagination(query)
    sort = parse_sort(query, TENANT_SORT_COLUMNS)

    stmt = select(Tenant)
    if query.get("email"):
        stmt = stmt.where(Tenant.email == normalize_email(query["email"]))

    rows, total = paginate(db, stmt, Tenant, pagination, sort)
    items = [TenantOut.model_validate(r).model_dump() for r in rows]
    return build_list_response(items, pagination, total)


@router.get("/{tenant_id}", response_model=TenantOut)
def get_tenant(tenant_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_staff)):
    return must_get_tenant(db, tenant_id=tenant_id)


@router.put("/{tenant_id}", response_model=TenantOut)
def update_tenant(
    tenant_id: int,
    payload: TenantUpdate,
    db: Session = Depends(get_db),
    p: Principal = Depends(require_staff),
):
    row = must_get_tenant(db, tenant_id=tenant_id)
    changes = payload.model_dump(exclude_unset=True)
    if "email" in changes:
        changes["email"] = normalize_email(changes["email"])
    for k, v in changes.items():
        setattr(row, k, v)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@router.delete("/{tenant_id}", status_code=204)
def delete_tenant(tenant_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_staff)):
    row = must_get_tenant(db, tenant_id=tenant_id)
    db.delete(row)
    db.commit()


@mobile_router.get("/me", response_model=TenantOut)
def current_tenant(db: Session = Depends(get_db), p: Principal = Depends(require_tenant)):
    row = resolve_or_create_tenant(db, p)
    if row is None:
        raise HTTPException(status_code=404, detail="Tenant profile not found")
    db.commit()
    db.refresh(row)
    return row
