# backend/gestimmo/routers/auth.py
from __future__ import annotations

import logging
import re
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth import (
    Principal,
    decode_token,
    get_principal,
    hash_password,
    issue_session,
    verify_password,
)
from ..config import settings
from ..db import get_db
from ..domain.statuses import PUBLIC_REGISTRATION_ROLES, Role
from ..models import Profile
from ..schemas import ProfileOut, ProfileUpdate
from ..services.tenant_resolver import normalize_email

log = logging.getLogger("gestimmo.auth")

router = APIRouter(prefix="/auth", tags=["auth"])

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _profile_out(row: Profile) -> dict:
    return ProfileOut.model_validate(row).model_dump()


@router.post("/register", status_code=201)
def register(payload: dict[str, Any], db: Session = Depends(get_db)):
    """
    payload: { email, password, full_name, role?, phone? }
    role defaults to tenant; only tenant|manager|admin may self-register.
    """
    email = normalize_email(payload.get("email"))
    password = str(payload.get("password") or "")
    full_name = str(payload.get("full_name") or "").strip()
    raw_role = payload.get("role") or Role.TENANT.value

    if not email or not _EMAIL_RE.match(email):
        raise HTTPException(status_code=400, detail="Invalid email address")
    if not password:
        raise HTTPException(status_code=400, detail="Password is required")
    if len(password) < int(settings.password_min_length):
        raise HTTPException(
            status_code=400, detail=f"Password must be at least {settings.password_min_length} characters"
        )
    if not full_name:
        raise HTTPException(status_code=400, detail="Full name is required")

    try:
        role = Role.parse(raw_role)
    except ValueError:
        role = None
    if role not in PUBLIC_REGISTRATION_ROLES:
        raise HTTPException(status_code=400, detail="Invalid role for public registration")

    if db.scalar(select(Profile.id).where(Profile.email == email)) is not None:
        raise HTTPException(status_code=409, detail="User already registered")

    row = Profile(
        email=email,
        password_hash=hash_password(password),
        full_name=full_name,
        phone=(str(payload.get("phone")).strip() or None) if payload.get("phone") else None,
        role=role,
    )
    db.add(row)
    db.commit()
    db.refresh(row)

    log.info("user registered", extra={"user_id": row.id, "role": role.value})
    return {"message": "User registered successfully", "user": _profile_out(row), "session": issue_session(row)}


@router.post("/login")
def login(payload: dict[str, Any], db: Session = Depends(get_db)):
    email = normalize_email(payload.get("email"))
    password = str(payload.get("password") or "")

    row = db.scalar(select(Profile).where(Profile.email == email)) if email else None
    if row is None or not verify_password(password, row.password_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    return {"user": _profile_out(row), "session": issue_session(row)}


@router.post("/logout")
def logout(p: Principal = Depends(get_principal)):
    # Tokens are stateless; the client drops them.
    return {"message": "Logged out successfully"}


@router.post("/refresh")
def refresh(payload: dict[str, Any], db: Session = Depends(get_db)):
    token = str(payload.get("refresh_token") or "").strip()
    if not token:
        raise HTTPException(status_code=400, detail="Refresh token is required")

    claims = decode_token(token, expected_typ="refresh")
    row = db.get(Profile, int(claims.get("sub") or 0))
    if row is None:
        raise HTTPException(status_code=401, detail="Unauthorized: Invalid token")
    return {"user": _profile_out(row), "session": issue_session(row)}


@router.get("/profile", response_model=ProfileOut)
def get_profile(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = db.get(Profile, p.user_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    return row


@router.put("/profile", response_model=ProfileOut)
def update_profile(payload: ProfileUpdate, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = db.get(Profile, p.user_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Profile not found")

    for k, v in payload.model_dump(exclude_unset=True).items():
        setattr(row, k, v)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row
