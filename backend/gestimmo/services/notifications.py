# backend/gestimmo/services/notifications.py
from __future__ import annotations

from sqlalchemy.orm import Session

from ..models import Notification


def notify(
    db: Session,
    *,
    user_id: int | None,
    title: str,
    message: str,
    type: str = "info",
    related_entity_type: str | None = None,
    related_entity_id: int | None = None,
) -> Notification | None:
    """Queues a notification in the caller's transaction. No-op without a user."""
    if not user_id:
        return None
    row = Notification(
        user_id=int(user_id),
        title=title,
        message=message,
        type=type,
        related_entity_type=related_entity_type,
        related_entity_id=related_entity_id,
        is_read=False,
    )
    db.add(row)
    return row
