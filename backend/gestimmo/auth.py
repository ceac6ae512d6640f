# backend/gestimmo/auth.py
from __future__ import annotations

import base64
import hashlib
import hmac
import os
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional

import jwt
from fastapi import Depends, Header, HTTPException, Query, Request
from sqlalchemy.orm import Session

from .config import settings
from .db import get_admin_db, get_db
from .domain.statuses import Role
from .models import Profile


@dataclass(frozen=True)
class Principal:
    user_id: int
    email: str
    role: Role
    full_name: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id > 0


GUEST = Principal(user_id=0, email="", role=Role.GUEST)


def _now() -> datetime:
    return datetime.utcnow()


# -------------------------
# Password hashing
# -------------------------
def hash_password(password: str) -> str:
    salt = secrets.token_bytes(16)
    iters = int(os.getenv("AUTH_PBKDF2_ITERS", "210000"))
    dk = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iters)
    return f"pbkdf2_sha256${iters}${base64.b64encode(salt).decode()}${base64.b64encode(dk).decode()}"


def verify_password(password: str, stored: str | None) -> bool:
    if not stored:
        return False
    try:
        algo, iters_s, salt_b64, dk_b64 = stored.split("$", 3)
    except ValueError:
        return False
    if algo != "pbkdf2_sha256":
        return False
    salt = base64.b64decode(salt_b64.encode())
    dk = base64.b64decode(dk_b64.encode())
    test = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, int(iters_s))
    return hmac.compare_digest(test, dk)


# -------------------------
# JWT helpers
# -------------------------
def _encode(profile: Profile, typ: str, minutes: int) -> str:
    now = _now()
    payload: dict[str, Any] = {
        "sub": str(profile.id),
        "email": str(profile.email),
        "typ": typ,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=int(minutes))).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm="HS256")


def create_access_token(profile: Profile) -> str:
    return _encode(profile, "access", settings.jwt_exp_minutes)


def create_refresh_token(profile: Profile) -> str:
    return _encode(profile, "refresh", settings.jwt_refresh_exp_minutes)


def issue_session(profile: Profile) -> dict[str, Any]:
    return {
        "access_token": create_access_token(profile),
        "refresh_token": create_refresh_token(profile),
        "token_type": "bearer",
        "expires_in": int(settings.jwt_exp_minutes) * 60,
    }


def decode_token(token: str, *, expected_typ: str = "access") -> dict[str, Any]:
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=["HS256"])
    except jwt.PyJWTError:
        raise HTTPException(status_code=401, detail="Unauthorized: Invalid token")
    if claims.get("typ") != expected_typ:
        raise HTTPException(status_code=401, detail="Unauthorized: Invalid token")
    return claims


def _bearer(authorization: str | None) -> str | None:
    if authorization and str(authorization).lower().startswith("bearer "):
        return str(authorization).split(" ", 1)[1].strip() or None
    return None


def _profile_for(db: Session, token: str) -> Profile:
    claims = decode_token(token)
    try:
        user_id = int(claims.get("sub") or 0)
    except (TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Unauthorized: Invalid token")

    profile = db.get(Profile, user_id)
    if profile is None:
        raise HTTPException(status_code=401, detail="Unauthorized: Invalid token")
    return profile


def _principal(profile: Profile, default_role: Role) -> Principal:
    role = profile.role if isinstance(profile.role, Role) else default_role
    return Principal(
        user_id=int(profile.id),
        email=str(profile.email),
        role=role,
        full_name=profile.full_name,
    )


# -------------------------
# Dependencies
# -------------------------
def get_principal(
    request: Request,
    db: Session = Depends(get_db),
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> Principal:
    """Bearer token required. Profiles without a usable role act as staff."""
    token = _bearer(authorization)
    if not token:
        raise HTTPException(status_code=401, detail="Unauthorized: No token provided")

    p = _principal(_profile_for(db, token), Role.STAFF)
    request.state.principal = p
    return p


def get_optional_principal(
    request: Request,
    db: Session = Depends(get_db),
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> Principal:
    """Missing or invalid tokens fall back to a guest principal."""
    token = _bearer(authorization)
    p = GUEST
    if token:
        try:
            p = _principal(_profile_for(db, token), Role.TENANT)
        except HTTPException:
            p = GUEST
    request.state.principal = p
    return p


def get_stream_principal(
    request: Request,
    db: Session = Depends(get_admin_db),
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
    token: Optional[str] = Query(default=None),
) -> Principal:
    """
    EventSource cannot set headers, so the stream also accepts ?token=.
    The profile is read through the admin session.
    """
    raw = _bearer(authorization) or (str(token or "").strip() or None)
    if not raw:
        raise HTTPException(status_code=401, detail="Unauthorized: No token provided")

    p = _principal(_profile_for(db, raw), Role.TENANT)
    request.state.principal = p
    return p


def require_roles(*roles: Role):
    allowed = tuple(Role.parse(r) for r in roles)

    def _dep(p: Principal = Depends(get_principal)) -> Principal:
        if p is None:
            raise HTTPException(status_code=401, detail="Unauthorized: No user found")
        if p.role not in allowed:
            names = ", ".join(r.value for r in allowed)
            raise HTTPException(
                status_code=403,
                detail=f"Forbidden: This action requires one of the following roles: {names}",
            )
        return p

    return _dep


require_backoffice = require_roles(Role.ADMIN, Role.MANAGER)
require_staff = require_roles(Role.ADMIN, Role.MANAGER, Role.STAFF)
require_admin = require_roles(Role.ADMIN)
require_tenant = require_roles(Role.TENANT)
