# backend/gestimmo/services/storage.py
from __future__ import annotations

import os
import time
from dataclasses import dataclass
from pathlib import Path

from fastapi import HTTPException, UploadFile

from ..config import settings

IMAGE_MIME_TYPES = frozenset({"image/png", "image/jpeg", "image/jpg", "image/webp"})
PDF_MIME_TYPES = frozenset({"application/pdf"})

# Buckets are top-level folders under storage_dir.
PROPERTY_PHOTOS_BUCKET = "property-photos"
CONTRACT_TEMPLATES_BUCKET = "contract-templates"
PAYMENT_PROOFS_BUCKET = "payment-proofs"
DOCUMENTS_BUCKET = "documents"


@dataclass(frozen=True)
class StoredObject:
    bucket: str
    key: str
    url: str
    size: int
    mime_type: str | None


def timestamp_ms() -> int:
    return int(time.time() * 1000)


def extension_for(mime_type: str | None, default: str = "bin") -> str:
    if not mime_type or "/" not in mime_type:
        return default
    return mime_type.split("/", 1)[1].split(";", 1)[0].strip() or default


def require_upload(file: UploadFile | None) -> UploadFile:
    if file is None or not getattr(file, "filename", None):
        raise HTTPException(status_code=400, detail="Missing file upload")
    return file


def require_image(file: UploadFile | None) -> UploadFile:
    file = require_upload(file)
    if (file.content_type or "").lower() not in IMAGE_MIME_TYPES:
        raise HTTPException(status_code=400, detail="Unsupported mimeType")
    return file


def require_pdf(file: UploadFile | None) -> UploadFile:
    file = require_upload(file)
    if (file.content_type or "").lower() not in PDF_MIME_TYPES:
        raise HTTPException(status_code=400, detail="Only PDF files are allowed")
    return file


class LocalObjectStorage:
    """
    Bucket/key object store on the local filesystem, served as static files
    under `public_base_url`. Keys are deterministic per entity, e.g.
    payments/{id}/proof_{ts}.png
    """

    def __init__(self, root: str | os.PathLike, public_base_url: str):
        self.root = Path(root)
        self.public_base_url = public_base_url.rstrip("/")

    def _path(self, bucket: str, key: str) -> Path:
        target = (self.root / bucket / key).resolve()
        if self.root.resolve() not in target.parents:
            raise HTTPException(status_code=400, detail="Invalid storage key")
        return target

    def public_url(self, bucket: str, key: str) -> str:
        return f"{self.public_base_url}/{bucket}/{key}"

    def put(self, bucket: str, key: str, content: bytes, mime_type: str | None = None) -> StoredObject:
        path = self._path(bucket, key)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as fh:
            fh.write(content)
        return StoredObject(bucket=bucket, key=key, url=self.public_url(bucket, key), size=len(content), mime_type=mime_type)

    def upload(self, bucket: str, key: str, file: UploadFile) -> StoredObject:
        # Handlers calling this run in the threadpool, so the spooled file is read directly.
        content = file.file.read()
        return self.put(bucket, key, content, file.content_type)


def get_storage() -> LocalObjectStorage:
    return LocalObjectStorage(settings.storage_dir, settings.storage_public_base_url)
