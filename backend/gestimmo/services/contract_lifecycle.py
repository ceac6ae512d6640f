# backend/gestimmo/services/contract_lifecycle.py
"""
Lease contract workflow.

    staff create ------------------------------> active
    tenant request -> draft --tenant accept----> active -> terminated | expired
                        \--tenant reject--> (row deleted)

Every function stages its writes on the caller's session and commits once,
so a failure part-way leaves nothing behind (get_db rolls back).
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Mapping

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth import Principal
from ..config import settings
from ..domain.billing_calendar import month_label, next_month_start
from ..domain.statuses import (
    STAFF_ROLES,
    ContractStatus,
    PaymentStatus,
    PropertyStatus,
    ValidationStatus,
)
from ..models import Contract, Payment, Property
from ..schemas import ContractCreate, ContractOut, ContractRequest, ContractUpdate
from .list_query import build_list_response, enum_filter, int_filter, paginate, parse_pagination, parse_sort
from .notifications import notify
from .ownership import must_get_contract, must_get_property, must_get_tenant
from .property_availability import effective_status
from .tenant_resolver import resolve_or_create_tenant, resolve_tenant

log = logging.getLogger("gestimmo.contracts")

CONTRACT_SORT_COLUMNS = ("created_at", "updated_at", "start_date", "end_date", "status", "monthly_rent")


def _today(today: date | None) -> date:
    return today or date.today()


def tenant_scope(db: Session, principal: Principal) -> int | None:
    """
    Tenant id every read/write must be constrained to, or None for staff.
    Tenants without a tenant row get a 404.
    """
    if principal.role in STAFF_ROLES:
        return None
    tenant = resolve_tenant(db, principal)
    if tenant is None:
        raise HTTPException(status_code=404, detail="Tenant profile not found")
    return int(tenant.id)


def _require_available(db: Session, principal: Principal, prop: Property, detail: str) -> None:
    status = effective_status(db, principal, prop)
    if status != PropertyStatus.AVAILABLE:
        raise HTTPException(status_code=409, detail=detail.format(status=status.value))


# ---- Reads ----

def list_contracts(db: Session, principal: Principal, query: Mapping[str, Any]):
    pagination = parse_pagination(query)
    sort = parse_sort(query, CONTRACT_SORT_COLUMNS)

    stmt = select(Contract)
    if principal.role not in STAFF_ROLES:
        tenant = resolve_tenant(db, principal)
        if tenant is None:
            return build_list_response([], pagination, 0)
        stmt = stmt.where(Contract.tenant_id == int(tenant.id))

    for key in ("property_id", "tenant_id"):
        value = int_filter(query, key)
        if value is not None:
            stmt = stmt.where(getattr(Contract, key) == value)
    status = enum_filter(query, "status", ContractStatus)
    if status is not None:
        stmt = stmt.where(Contract.status == status)

    rows, total = paginate(db, stmt, Contract, pagination, sort)
    items = [ContractOut.model_validate(r).model_dump() for r in rows]
    return build_list_response(items, pagination, total)


def get_contract(db: Session, principal: Principal, contract_id: int) -> Contract:
    return must_get_contract(db, contract_id=contract_id, tenant_id=tenant_scope(db, principal))


# ---- Staff ----

def create_contract(db: Session, principal: Principal, payload: ContractCreate, *, today: date | None = None) -> Contract:
    prop = must_get_property(db, property_id=payload.property_id)
    must_get_tenant(db, tenant_id=payload.tenant_id)
    _require_available(db, principal, prop, "This property is not available for rent (Status: {status})")

    data = payload.model_dump()
    row = Contract(
        **{k: v for k, v in data.items() if k not in ("monthly_rent", "charges")},
        monthly_rent=data["monthly_rent"] if data["monthly_rent"] is not None else float(prop.price or 0),
        charges=data["charges"] if data["charges"] is not None else float(prop.charges or 0),
        landlord_id=prop.owner_id or principal.user_id,
        status=ContractStatus.ACTIVE,
    )
    if row.start_date is None:
        row.start_date = _today(today)

    prop.status = PropertyStatus.RENTED
    db.add_all([row, prop])
    db.commit()
    db.refresh(row)

    log.info("contract created", extra={"contract_id": row.id, "property_id": prop.id, "user_id": principal.user_id})
    return row


def update_contract(db: Session, principal: Principal, contract_id: int, payload: ContractUpdate) -> Contract:
    row = must_get_contract(db, contract_id=contract_id)
    for k, v in payload.model_dump(exclude_unset=True).items():
        setattr(row, k, v)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def delete_contract(db: Session, principal: Principal, contract_id: int) -> None:
    """Deletes in any state and unconditionally puts the property back on the market."""
    row = db.get(Contract, int(contract_id))
    if row is None:
        return

    prop = db.get(Property, row.property_id)
    db.delete(row)
    if prop is not None:
        prop.status = PropertyStatus.AVAILABLE
        db.add(prop)
    db.commit()
    log.info("contract deleted", extra={"contract_id": contract_id, "user_id": principal.user_id})


def terminate_contract(db: Session, principal: Principal, contract_id: int, *, today: date | None = None) -> Contract:
    row = must_get_contract(db, contract_id=contract_id)
    if row.status != ContractStatus.ACTIVE:
        raise HTTPException(status_code=400, detail="Only active contracts can be terminated")

    row.status = ContractStatus.TERMINATED
    row.end_date = _today(today)
    prop = db.get(Property, row.property_id)
    if prop is not None:
        prop.status = PropertyStatus.AVAILABLE
        db.add(prop)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


# ---- Tenant ----

def request_contract(db: Session, principal: Principal, payload: ContractRequest) -> Contract:
    tenant = resolve_or_create_tenant(db, principal)
    if tenant is None:
        raise HTTPException(status_code=404, detail="Tenant profile not found")

    prop = must_get_property(db, property_id=payload.property_id)
    _require_available(db, principal, prop, "Property is not available")

    row = Contract(
        property_id=prop.id,
        tenant_id=tenant.id,
        landlord_id=prop.owner_id,
        start_date=payload.start_date,
        end_date=payload.end_date,
        monthly_rent=float(prop.price or 0),
        charges=float(prop.charges or 0),
        status=ContractStatus.DRAFT,
        signed_by_tenant=False,
        signed_by_landlord=False,
    )
    db.add(row)
    db.commit()
    db.refresh(row)

    log.info("contract requested", extra={"contract_id": row.id, "tenant_id": tenant.id})
    return row


def _draft_for_tenant(db: Session, principal: Principal, contract_id: int) -> Contract:
    row = must_get_contract(db, contract_id=contract_id, tenant_id=tenant_scope(db, principal))
    if row.status != ContractStatus.DRAFT:
        raise HTTPException(status_code=400, detail="Contract is not in draft state")
    return row


def accept_contract(db: Session, principal: Principal, contract_id: int, *, today: date | None = None) -> dict:
    """
    draft -> active, counter-signed on both sides. The property is marked
    rented and the first rent payment is created for the following month.
    """
    row = _draft_for_tenant(db, principal, contract_id)
    today = _today(today)

    row.status = ContractStatus.ACTIVE
    row.signed_by_tenant = True
    row.signed_by_landlord = True
    row.start_date = today
    row.payment_day = int(settings.default_payment_day)
    row.grace_period_days = int(settings.grace_period_days)

    prop = db.get(Property, row.property_id)
    if prop is not None:
        prop.status = PropertyStatus.RENTED
        db.add(prop)

    first_due = next_month_start(today)
    payment = Payment(
        contract_id=row.id,
        month=month_label(first_due, settings.month_label_locale),
        amount=float(row.monthly_rent or 0) + float(row.charges or 0),
        due_date=first_due,
        status=PaymentStatus.PENDING,
        validation_status=ValidationStatus.NOT_SUBMITTED,
        late_fee=0.0,
        proof_urls=[],
    )
    db.add_all([row, payment])

    notify(
        db,
        user_id=row.tenant.user_id if row.tenant else None,
        title="Contrat activé",
        message=f"Votre contrat est actif. Premier loyer dû le {first_due.isoformat()}.",
        type="success",
        related_entity_type="contract",
        related_entity_id=row.id,
    )

    db.commit()
    db.refresh(row)
    db.refresh(payment)

    log.info("contract accepted", extra={"contract_id": row.id, "payment_id": payment.id})
    return {"contract": row, "payment": payment}


def reject_contract(db: Session, principal: Principal, contract_id: int) -> None:
    # Drafts never flipped the property, so it is left alone.
    row = _draft_for_tenant(db, principal, contract_id)
    db.delete(row)
    db.commit()
    log.info("contract rejected", extra={"contract_id": contract_id})


def contract_template_for(db: Session, property_id: int) -> dict:
    prop = must_get_property(db, property_id=property_id)
    if not prop.contract_template_url:
        raise HTTPException(status_code=404, detail="Contract template is missing for this property")
    return {"property_id": prop.id, "contract_template_url": prop.contract_template_url}
