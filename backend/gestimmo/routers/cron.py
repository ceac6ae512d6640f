# backend/gestimmo/routers/cron.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import settings
from ..db import get_admin_db
from ..services.billing import run_daily_tasks

log = logging.getLogger("gestimmo.cron")

router = APIRouter(prefix="/cron", tags=["cron"])


def check_cron_secret(x_cron_secret: Optional[str] = Header(default=None, alias="x-cron-secret")) -> None:
    secret = settings.cron_secret
    if secret and x_cron_secret != secret:
        raise HTTPException(status_code=403, detail="Forbidden")


@router.post("/daily", dependencies=[Depends(check_cron_secret)])
def daily(db: Session = Depends(get_admin_db)):
    """Monthly payment generation plus late-fee accrual. Safe to call more than once a day."""
    try:
        result = run_daily_tasks(db)
    except SQLAlchemyError as e:
        db.rollback()
        log.exception("daily tasks failed", extra={"task": "billing"})
        return JSONResponse(status_code=500, content={"success": False, "error": str(e)})
    return {"success": True, "results": result.as_response()}
