# backend/gestimmo/routers/notifications.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..models import Notification
from ..schemas import NotificationOut

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationOut])
def list_notifications(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return db.scalars(
        select(Notification)
        .where(Notification.user_id == p.user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
    ).all()


@router.api_route("/{notification_id}/read", methods=["PUT", "PATCH"], response_model=NotificationOut)
def mark_read(notification_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = db.scalar(
        select(Notification).where(Notification.id == notification_id, Notification.user_id == p.user_id)
    )
    if row is None:
        raise HTTPException(status_code=404, detail="Notification not found")

    row.is_read = True
    db.add(row)
    db.commit()
    db.refresh(row)
    return row
