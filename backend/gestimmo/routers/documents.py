# backend/gestimmo/routers/documents.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..models import Document
from ..schemas import DocumentOut
from ..services.storage import (
    DOCUMENTS_BUCKET,
    LocalObjectStorage,
    extension_for,
    get_storage,
    require_upload,
    timestamp_ms,
)

router = APIRouter(prefix="/documents", tags=["documents"])


@router.get("", response_model=list[DocumentOut])
def list_documents(
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    if not entity_type or entity_id is None:
        raise HTTPException(status_code=400, detail="Missing entity_type or entity_id")
    return db.scalars(
        select(Document)
        .where(Document.entity_type == entity_type, Document.entity_id == int(entity_id))
        .order_by(Document.created_at.desc(), Document.id.desc())
    ).all()


@router.post("", response_model=DocumentOut, status_code=201)
def upload_document(
    file: UploadFile | None = File(default=None),
    entity_type: Optional[str] = Form(default=None),
    entity_id: Optional[int] = Form(default=None),
    document_type: Optional[str] = Form(default=None),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
    storage: LocalObjectStorage = Depends(get_storage),
):
    file = require_upload(file)
    if not entity_type or entity_id is None or not document_type:
        raise HTTPException(status_code=400, detail="Missing document metadata")

    key = f"documents/{entity_type}/{entity_id}/{timestamp_ms()}.{extension_for(file.content_type)}"
    stored = storage.upload(DOCUMENTS_BUCKET, key, file)

    row = Document(
        entity_type=entity_type,
        entity_id=int(entity_id),
        document_type=document_type,
        file_name=file.filename,
        file_url=stored.url,
        mime_type=stored.mime_type,
        file_size=stored.size,
        uploaded_by=p.user_id,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row
