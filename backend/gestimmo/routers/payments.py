# backend/gestimmo/routers/payments.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends, File, Request, UploadFile
from sqlalchemy.orm import Session

from ..auth import Principal, require_backoffice, require_staff, require_tenant
from ..db import get_db
from ..schemas import (
    ManualPaymentCreate,
    PaymentCreate,
    PaymentOut,
    PaymentReview,
    PaymentUpdate,
    TenantPaymentUpdate,
)
from ..services import payments as svc
from ..services.storage import LocalObjectStorage, get_storage, require_image

router = APIRouter(prefix="/payments", tags=["payments"])
mobile_router = APIRouter(prefix="/payments", tags=["mobile"])


# ---- Web (staff) ----

@router.get("")
def list_payments(request: Request, db: Session = Depends(get_db), p: Principal = Depends(require_staff)):
    return svc.list_payments(db, p, request.query_params)


@router.get("/{payment_id}", response_model=PaymentOut)
def get_payment(payment_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_staff)):
    return svc.scoped_payment(db, p, payment_id)


@router.post("", response_model=PaymentOut, status_code=201)
def create_payment(payload: PaymentCreate, db: Session = Depends(get_db), p: Principal = Depends(require_staff)):
    return svc.create_payment(db, p, payload)


@router.put("/{payment_id}", response_model=PaymentOut)
def update_payment(
    payment_id: int,
    payload: PaymentUpdate,
    db: Session = Depends(get_db),
    p: Principal = Depends(require_staff),
):
    return svc.update_payment(db, p, payment_id, payload)


@router.post("/{payment_id}/proof", response_model=PaymentOut)
def upload_payment_proof(
    payment_id: int,
    file: UploadFile | None = File(default=None),
    db: Session = Depends(get_db),
    p: Principal = Depends(require_staff),
    storage: LocalObjectStorage = Depends(get_storage),
):
    return svc.upload_proof(db, p, payment_id, require_image(file), storage)


@router.post("/{payment_id}/validate", response_model=PaymentOut)
def validate_payment(
    payment_id: int,
    payload: Optional[PaymentReview] = Body(default=None),
    db: Session = Depends(get_db),
    p: Principal = Depends(require_backoffice),
):
    return svc.validate_payment(db, p, payment_id, payload)


@router.post("/{payment_id}/reject", response_model=PaymentOut)
def reject_payment(
    payment_id: int,
    payload: Optional[PaymentReview] = Body(default=None),
    db: Session = Depends(get_db),
    p: Principal = Depends(require_backoffice),
):
    return svc.reject_payment(db, p, payment_id, payload)


@router.delete("/{payment_id}", status_code=204)
def delete_payment(payment_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_staff)):
    svc.delete_payment(db, p, payment_id)


# ---- Mobile (tenant) ----

@mobile_router.get("")
def mobile_list_payments(request: Request, db: Session = Depends(get_db), p: Principal = Depends(require_tenant)):
    return svc.list_payments(db, p, request.query_params)


@mobile_router.get("/overview")
def mobile_payments_overview(db: Session = Depends(get_db), p: Principal = Depends(require_tenant)):
    return svc.payments_overview(db, p)


@mobile_router.post("/manual", response_model=PaymentOut, status_code=201)
def create_manual_payment(
    payload: ManualPaymentCreate, db: Session = Depends(get_db), p: Principal = Depends(require_tenant)
):
    return svc.create_manual_payment(db, p, payload)


@mobile_router.get("/{payment_id}", response_model=PaymentOut)
def mobile_get_payment(payment_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_tenant)):
    return svc.scoped_payment(db, p, payment_id)


@mobile_router.put("/{payment_id}", response_model=PaymentOut)
def mobile_update_payment(
    payment_id: int,
    payload: TenantPaymentUpdate,
    db: Session = Depends(get_db),
    p: Principal = Depends(require_tenant),
):
    return svc.update_payment_as_tenant(db, p, payment_id, payload)


@mobile_router.post("/{payment_id}/proof", response_model=PaymentOut)
def mobile_upload_payment_proof(
    payment_id: int,
    file: UploadFile | None = File(default=None),
    db: Session = Depends(get_db),
    p: Principal = Depends(require_tenant),
    storage: LocalObjectStorage = Depends(get_storage),
):
    return svc.upload_proof(db, p, payment_id, require_image(file), storage)


@mobile_router.delete("/{payment_id}", status_code=204)
def mobile_delete_payment(payment_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_tenant)):
    svc.delete_payment(db, p, payment_id)
