# backend/gestimmo/routers/users.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth import Principal, require_admin
from ..db import get_db
from ..models import Profile
from ..schemas import ProfileOut

log = logging.getLogger("gestimmo.users")

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=list[ProfileOut])
def list_users(db: Session = Depends(get_db), p: Principal = Depends(require_admin)):
    return db.scalars(select(Profile).order_by(Profile.created_at.desc(), Profile.id.desc())).all()


@router.delete("/{user_id}", status_code=204)
def delete_user(user_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_admin)):
    row = db.get(Profile, user_id)
    if row is None:
        return
    db.delete(row)
    db.commit()
    log.info("profile deleted", extra={"user_id": p.user_id})
