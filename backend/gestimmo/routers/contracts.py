# backend/gestimmo/routers/contracts.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..auth import Principal, require_staff, require_tenant
from ..db import get_db
from ..schemas import ContractCreate, ContractOut, ContractRequest, ContractUpdate, PaymentOut
from ..services import contract_lifecycle as lifecycle

router = APIRouter(prefix="/contracts", tags=["contracts"])
mobile_router = APIRouter(prefix="/contracts", tags=["mobile"])


# ---- Web (staff) ----

@router.get("")
def list_contracts(request: Request, db: Session = Depends(get_db), p: Principal = Depends(require_staff)):
    return lifecycle.list_contracts(db, p, request.query_params)


@router.get("/{contract_id}", response_model=ContractOut)
def get_contract(contract_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_staff)):
    return lifecycle.get_contract(db, p, contract_id)


@router.post("", response_model=ContractOut, status_code=201)
def create_contract(payload: ContractCreate, db: Session = Depends(get_db), p: Principal = Depends(require_staff)):
    return lifecycle.create_contract(db, p, payload)


@router.put("/{contract_id}", response_model=ContractOut)
def update_contract(
    contract_id: int,
    payload: ContractUpdate,
    db: Session = Depends(get_db),
    p: Principal = Depends(require_staff),
):
    return lifecycle.update_contract(db, p, contract_id, payload)


@router.delete("/{contract_id}", status_code=204)
def delete_contract(contract_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_staff)):
    lifecycle.delete_contract(db, p, contract_id)


@router.post("/{contract_id}/terminate", response_model=ContractOut)
def terminate_contract(contract_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_staff)):
    return lifecycle.terminate_contract(db, p, contract_id)


# ---- Mobile (tenant) ----

@mobile_router.get("")
def mobile_list_contracts(request: Request, db: Session = Depends(get_db), p: Principal = Depends(require_tenant)):
    return lifecycle.list_contracts(db, p, request.query_params)


@mobile_router.get("/{contract_id}", response_model=ContractOut)
def mobile_get_contract(contract_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_tenant)):
    return lifecycle.get_contract(db, p, contract_id)


@mobile_router.post("", response_model=ContractOut, status_code=201)
def request_contract(payload: ContractRequest, db: Session = Depends(get_db), p: Principal = Depends(require_tenant)):
    return lifecycle.request_contract(db, p, payload)


@mobile_router.post("/{contract_id}/accept")
def accept_contract(contract_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_tenant)):
    out = lifecycle.accept_contract(db, p, contract_id)
    return {
        "contract": ContractOut.model_validate(out["contract"]).model_dump(),
        "payment": PaymentOut.model_validate(out["payment"]).model_dump(),
    }


@mobile_router.post("/{contract_id}/reject")
def reject_contract(contract_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_tenant)):
    lifecycle.reject_contract(db, p, contract_id)
    return {"message": "Contract rejected"}
