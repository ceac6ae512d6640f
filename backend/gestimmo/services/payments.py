# backend/gestimmo/services/payments.py
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Mapping

from fastapi import HTTPException, UploadFile
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth import Principal
from ..config import settings
from ..domain.billing_calendar import is_after_month, iso_month, month_end, month_label, next_month_start
from ..domain.statuses import (
    ContractStatus,
    PaymentMethod,
    PaymentStatus,
    Role,
    ValidationStatus,
)
from ..models import Contract, Payment
from ..schemas import ManualPaymentCreate, PaymentCreate, PaymentOut, PaymentReview, PaymentUpdate, TenantPaymentUpdate
from .list_query import build_list_response, enum_filter, int_filter, paginate, parse_pagination, parse_sort
from .notifications import notify
from .ownership import manager_contract_ids_clause, manager_owns_contract, must_get_payment
from .storage import PAYMENT_PROOFS_BUCKET, LocalObjectStorage, extension_for, timestamp_ms
from .tenant_resolver import resolve_tenant

log = logging.getLogger("gestimmo.payments")

PAYMENT_SORT_COLUMNS = ("created_at", "updated_at", "due_date", "status", "amount")

# Methods the mobile app offers that the store does not know.
PAYMENT_METHOD_ALIASES = {"mobile_money": PaymentMethod.BANK_TRANSFER}


def _utcnow() -> datetime:
    return datetime.utcnow()


def _tenant_id_or_404(db: Session, principal: Principal) -> int:
    tenant = resolve_tenant(db, principal)
    if tenant is None:
        raise HTTPException(status_code=404, detail="Tenant profile not found")
    return int(tenant.id)


def _is_settled(row: Payment) -> bool:
    return row.status == PaymentStatus.PAID or row.validation_status == ValidationStatus.VALIDATED


def resolve_payment_method(raw: object) -> tuple[str, PaymentMethod]:
    """(what the payer picked, what is stored). Unknown values default to bank transfer."""
    value = str(raw or "").strip().lower()
    if value in PAYMENT_METHOD_ALIASES:
        return value, PAYMENT_METHOD_ALIASES[value]
    try:
        method = PaymentMethod.parse(value)
    except ValueError:
        return PaymentMethod.BANK_TRANSFER.value, PaymentMethod.BANK_TRANSFER
    return method.value, method


def scoped_payment(db: Session, principal: Principal, payment_id: int) -> Payment:
    """
    Payment visible to the caller: tenants see their own contracts' payments,
    managers those of contracts they manage. Anything else is a 404.
    """
    if principal.role == Role.TENANT:
        return must_get_payment(db, payment_id=payment_id, tenant_id=_tenant_id_or_404(db, principal))

    row = must_get_payment(db, payment_id=payment_id)
    if principal.role == Role.MANAGER and not manager_owns_contract(db, manager_id=principal.user_id, contract=row.contract):
        raise HTTPException(status_code=404, detail="Payment not found")
    return row


def _require_active_contract(row: Payment) -> None:
    if row.contract is None or row.contract.status != ContractStatus.ACTIVE:
        raise HTTPException(status_code=400, detail="Payment is allowed only for properties with a validated contract")


# ---- Reads ----

def list_payments(db: Session, principal: Principal, query: Mapping[str, Any]):
    pagination = parse_pagination(query)
    sort = parse_sort(query, PAYMENT_SORT_COLUMNS, fallback="due_date")

    stmt = select(Payment).join(Contract, Contract.id == Payment.contract_id)
    if principal.role == Role.TENANT:
        stmt = stmt.where(Contract.tenant_id == _tenant_id_or_404(db, principal))
    elif principal.role == Role.MANAGER:
        stmt = stmt.where(manager_contract_ids_clause(principal.user_id))

    contract_id = int_filter(query, "contract_id")
    if contract_id is not None:
        stmt = stmt.where(Payment.contract_id == contract_id)
    status = enum_filter(query, "status", PaymentStatus)
    if status is not None:
        stmt = stmt.where(Payment.status == status)

    rows, total = paginate(db, stmt, Payment, pagination, sort)
    items = [PaymentOut.model_validate(r).model_dump() for r in rows]
    return build_list_response(items, pagination, total)


def payments_overview(db: Session, principal: Principal, *, today: date | None = None) -> dict:
    """Settled payments plus the first unsettled one due next month."""
    today = today or date.today()
    nm_start = next_month_start(today)
    nm_end = month_end(nm_start)
    tenant_id = _tenant_id_or_404(db, principal)

    rows = db.scalars(
        select(Payment)
        .join(Contract, Contract.id == Payment.contract_id)
        .where(Contract.tenant_id == tenant_id)
        .order_by(Payment.due_date.desc(), Payment.id.desc())
    ).all()

    paid: list[dict] = []
    upcoming = None
    for row in rows:
        if _is_settled(row):
            paid.append(PaymentOut.model_validate(row).model_dump())
            continue
        if upcoming is None and nm_start <= row.due_date <= nm_end:
            upcoming = PaymentOut.model_validate(row).model_dump()

    return {"paid": paid, "upcoming_next_month": upcoming, "meta": {"next_month": iso_month(nm_start)}}


# ---- Writes ----

def _ensure_month_free(db: Session, contract_id: int, label: str) -> None:
    exists = db.scalar(select(Payment.id).where(Payment.contract_id == int(contract_id), Payment.month == label))
    if exists is not None:
        raise HTTPException(status_code=409, detail="A payment already exists for this contract and month")


def _insert(db: Session, row: Payment) -> Payment:
    # The unique (contract_id, month) key is the backstop for concurrent inserts.
    try:
        db.add(row)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="A payment already exists for this contract and month")
    db.refresh(row)
    return row


def create_payment(db: Session, principal: Principal, payload: PaymentCreate) -> Payment:
    contract = db.get(Contract, int(payload.contract_id))
    if contract is None:
        raise HTTPException(status_code=404, detail="Contract not found")
    if principal.role == Role.MANAGER and not manager_owns_contract(db, manager_id=principal.user_id, contract=contract):
        raise HTTPException(status_code=403, detail="Forbidden")

    label = payload.month or month_label(payload.due_date, settings.month_label_locale)
    _ensure_month_free(db, contract.id, label)

    row = Payment(
        contract_id=contract.id,
        month=label,
        amount=float(payload.amount),
        due_date=payload.due_date,
        status=payload.status,
        payment_method=payload.payment_method,
        validation_status=ValidationStatus.NOT_SUBMITTED,
        late_fee=0.0,
        proof_urls=[],
    )
    return _insert(db, row)


def _parse_due_date(raw: object) -> date:
    text = str(raw or "").strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        raise HTTPException(status_code=400, detail="due_date is required and must be a valid date")


def create_manual_payment(
    db: Session, principal: Principal, payload: ManualPaymentCreate, *, today: date | None = None
) -> Payment:
    """
    Tenant self-service payment for an upcoming month. Back-dated and
    current-month payments are refused, as is a second payment for the
    same contract and month.
    """
    today = today or date.today()
    tenant_id = _tenant_id_or_404(db, principal)

    if not payload.contract_id:
        raise HTTPException(status_code=400, detail="contract_id is required")

    contract = db.scalar(
        select(Contract).where(
            Contract.id == int(payload.contract_id),
            Contract.tenant_id == tenant_id,
            Contract.status == ContractStatus.ACTIVE,
        )
    )
    if contract is None:
        raise HTTPException(status_code=400, detail="No active contract found for this tenant and property")

    due = _parse_due_date(payload.due_date)
    if not is_after_month(due, today):
        raise HTTPException(status_code=400, detail="Manual payment can only be created for the next month")

    if payload.amount is None:
        amount = float(contract.monthly_rent or 0) + float(contract.charges or 0)
    else:
        amount = float(payload.amount)
    if not amount > 0:
        raise HTTPException(status_code=400, detail="Invalid payment amount")

    label = month_label(due, settings.month_label_locale)
    _ensure_month_free(db, contract.id, label)

    selected, stored = resolve_payment_method(payload.payment_method)
    row = Payment(
        contract_id=contract.id,
        month=label,
        amount=amount,
        due_date=due,
        payment_method=stored,
        status=PaymentStatus.PENDING,
        validation_status=ValidationStatus.NOT_SUBMITTED,
        validation_notes=None if selected == stored.value else f"Moyen saisi: {selected} (stocké: {stored.value})",
        late_fee=0.0,
        proof_urls=[],
    )
    row = _insert(db, row)
    log.info("manual payment created", extra={"payment_id": row.id, "contract_id": contract.id, "tenant_id": tenant_id})
    return row


def update_payment(db: Session, principal: Principal, payment_id: int, payload: PaymentUpdate) -> Payment:
    row = scoped_payment(db, principal, payment_id)
    for k, v in payload.model_dump(exclude_unset=True).items():
        setattr(row, k, v)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def update_payment_as_tenant(db: Session, principal: Principal, payment_id: int, payload: TenantPaymentUpdate) -> Payment:
    row = scoped_payment(db, principal, payment_id)
    _require_active_contract(row)

    changes = payload.model_dump(exclude_unset=True)
    if "payment_method" in changes:
        selected, stored = resolve_payment_method(changes["payment_method"])
        changes["payment_method"] = stored
        if selected != stored.value:
            changes["validation_notes"] = f"Moyen saisi: {selected} (stocké: {stored.value})"

    for k, v in changes.items():
        setattr(row, k, v)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def upload_proof(
    db: Session, principal: Principal, payment_id: int, file: UploadFile, storage: LocalObjectStorage
) -> Payment:
    """Appends the uploaded proof and puts the payment back in the review queue."""
    row = scoped_payment(db, principal, payment_id)
    if principal.role == Role.TENANT:
        _require_active_contract(row)

    ext = extension_for(file.content_type, default="png")
    key = f"payments/{row.id}/proof_{timestamp_ms()}.{ext}"
    stored = storage.upload(PAYMENT_PROOFS_BUCKET, key, file)

    # Reassign so the JSON column is flagged dirty.
    row.proof_urls = [*(row.proof_urls or []), stored.url]
    row.validation_status = ValidationStatus.PENDING
    db.add(row)
    db.commit()
    db.refresh(row)

    log.info("payment proof uploaded", extra={"payment_id": row.id, "user_id": principal.user_id})
    return row


def _tenant_user_id(row: Payment) -> int | None:
    contract = row.contract
    if contract is None or contract.tenant is None:
        return None
    return contract.tenant.user_id


def validate_payment(db: Session, principal: Principal, payment_id: int, payload: PaymentReview | None = None) -> Payment:
    row = scoped_payment(db, principal, payment_id)
    now = _utcnow()

    row.validation_status = ValidationStatus.VALIDATED
    row.status = PaymentStatus.PAID
    row.payment_date = now.date()
    row.validated_by = principal.user_id
    row.validated_at = now
    row.validation_notes = payload.notes if payload else None
    row.rejection_reason = None
    db.add(row)

    notify(
        db,
        user_id=_tenant_user_id(row),
        title="Paiement validé",
        message=f"Votre paiement de {row.month} a été validé.",
        type="success",
        related_entity_type="payment",
        related_entity_id=row.id,
    )
    db.commit()
    db.refresh(row)
    return row


def reject_payment(db: Session, principal: Principal, payment_id: int, payload: PaymentReview | None = None) -> Payment:
    row = scoped_payment(db, principal, payment_id)
    reason = (payload.reason if payload else None) or "Payment proof rejected"

    row.validation_status = ValidationStatus.REJECTED
    row.status = PaymentStatus.PENDING
    row.rejection_reason = reason
    row.validation_notes = payload.notes if payload else None
    row.validated_by = principal.user_id
    row.validated_at = _utcnow()
    db.add(row)

    notify(
        db,
        user_id=_tenant_user_id(row),
        title="Paiement rejeté",
        message=f"Votre justificatif pour {row.month} a été rejeté : {reason}",
        type="warning",
        related_entity_type="payment",
        related_entity_id=row.id,
    )
    db.commit()
    db.refresh(row)
    return row


def delete_payment(db: Session, principal: Principal, payment_id: int) -> None:
    row = scoped_payment(db, principal, payment_id)
    if principal.role != Role.ADMIN and _is_settled(row):
        raise HTTPException(status_code=400, detail="Validated payments cannot be deleted")
    db.delete(row)
    db.commit()
