# backend/gestimmo/services/ownership.py
from __future__ import annotations

from fastapi import HTTPException
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from ..models import Contract, MaintenanceRequest, Payment, Property, Tenant


def must_get_property(db: Session, *, property_id: int) -> Property:
    row = db.get(Property, int(property_id))
    if not row:
        raise HTTPException(status_code=404, detail="Property not found")
    return row


def must_get_tenant(db: Session, *, tenant_id: int) -> Tenant:
    row = db.get(Tenant, int(tenant_id))
    if not row:
        raise HTTPException(status_code=404, detail="Tenant not found")
    return row


def must_get_contract(db: Session, *, contract_id: int, tenant_id: int | None = None) -> Contract:
    """tenant_id, when given, scopes the lookup: other tenants' contracts are 404."""
    stmt = select(Contract).where(Contract.id == int(contract_id))
    if tenant_id is not None:
        stmt = stmt.where(Contract.tenant_id == int(tenant_id))
    row = db.scalar(stmt)
    if not row:
        raise HTTPException(status_code=404, detail="Contract not found")
    return row


def must_get_payment(db: Session, *, payment_id: int, tenant_id: int | None = None) -> Payment:
    stmt = select(Payment).where(Payment.id == int(payment_id))
    if tenant_id is not None:
        stmt = stmt.join(Contract, Contract.id == Payment.contract_id).where(Contract.tenant_id == int(tenant_id))
    row = db.scalar(stmt)
    if not row:
        raise HTTPException(status_code=404, detail="Payment not found")
    return row


def must_get_maintenance(db: Session, *, request_id: int) -> MaintenanceRequest:
    row = db.get(MaintenanceRequest, int(request_id))
    if not row:
        raise HTTPException(status_code=404, detail="Maintenance request not found")
    return row


def manager_owns_contract(db: Session, *, manager_id: int, contract: Contract) -> bool:
    """A manager may act on contracts they are landlord of, or whose property they own."""
    if contract.landlord_id is not None and int(contract.landlord_id) == int(manager_id):
        return True
    owner_id = db.scalar(select(Property.owner_id).where(Property.id == contract.property_id))
    return owner_id is not None and int(owner_id) == int(manager_id)


def manager_contract_ids_clause(manager_id: int):
    """WHERE clause on Contract matching contracts visible to a manager."""
    owned = select(Property.id).where(Property.owner_id == int(manager_id))
    return or_(Contract.landlord_id == int(manager_id), Contract.property_id.in_(owned))
