# backend/gestimmo/routers/properties.py
from __future__ import annotations

from fastapi import APIRouter, Depends, File, Request, UploadFile
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth import Principal, get_optional_principal, require_staff
from ..db import get_db
from ..domain.statuses import PropertyStatus
from ..models import Property
from ..schemas import PropertyCreate, PropertyUpdate
from ..services.contract_lifecycle import contract_template_for
from ..services.list_query import build_list_response, int_filter, paginate, parse_pagination, parse_sort
from ..services.ownership import must_get_property
from ..services.property_availability import project_properties
from ..services.storage import (
    CONTRACT_TEMPLATES_BUCKET,
    PROPERTY_PHOTOS_BUCKET,
    LocalObjectStorage,
    extension_for,
    get_storage,
    require_image,
    require_pdf,
    timestamp_ms,
)

PROPERTY_SORT_COLUMNS = ("created_at", "updated_at", "title", "price", "city", "status")

router = APIRouter(prefix="/properties", tags=["properties"])
mobile_router = APIRouter(prefix="/properties", tags=["mobile"])
public_router = APIRouter(prefix="/properties", tags=["public"])


def _filtered(request: Request):
    stmt = select(Property)
    q = request.query_params
    if q.get("city"):
        stmt = stmt.where(Property.city == q["city"])
    if q.get("property_type"):
        stmt = stmt.where(Property.property_type == q["property_type"])
    owner_id = int_filter(q, "owner_id")
    if owner_id is not None:
        stmt = stmt.where(Property.owner_id == owner_id)
    return stmt


def list_projected(request: Request, db: Session, p: Principal):
    query = request.query_params
    pagination = parse_pagination(query)
    sort = parse_sort(query, PROPERTY_SORT_COLUMNS)

    rows, total = paginate(db, _filtered(request), Property, pagination, sort)
    return build_list_response(project_properties(db, p, rows), pagination, total)


# ---- Web (staff) ----

@router.get("")
def list_properties(request: Request, db: Session = Depends(get_db), p: Principal = Depends(require_staff)):
    return list_projected(request, db, p)


@router.get("/{property_id}")
def get_property(property_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_staff)):
    row = must_get_property(db, property_id=property_id)
    return project_properties(db, p, [row])[0]


@router.post("", status_code=201)
def create_property(payload: PropertyCreate, db: Session = Depends(get_db), p: Principal = Depends(require_staff)):
    data = payload.model_dump()
    data["owner_id"] = data.get("owner_id") or p.user_id
    row = Property(**data, photo_urls=[])
    db.add(row)
    db.commit()
    db.refresh(row)
    return project_properties(db, p, [row])[0]


@router.put("/{property_id}")
def update_property(
    property_id: int,
    payload: PropertyUpdate,
    db: Session = Depends(get_db),
    p: Principal = Depends(require_staff),
):
    row = must_get_property(db, property_id=property_id)
    for k, v in payload.model_dump(exclude_unset=True).items():
        setattr(row, k, v)
    db.add(row)
    db.commit()
    db.refresh(row)
    return project_properties(db, p, [row])[0]


@router.delete("/{property_id}", status_code=204)
def delete_property(property_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_staff)):
    row = must_get_property(db, property_id=property_id)
    db.delete(row)
    db.commit()


@router.post("/{property_id}/photos")
def upload_property_photo(
    property_id: int,
    file: UploadFile | None = File(default=None),
    db: Session = Depends(get_db),
    p: Principal = Depends(require_staff),
    storage: LocalObjectStorage = Depends(get_storage),
):
    file = require_image(file)
    row = must_get_property(db, property_id=property_id)

    key = f"properties/{row.id}/{timestamp_ms()}.{extension_for(file.content_type, 'png')}"
    stored = storage.upload(PROPERTY_PHOTOS_BUCKET, key, file)

    row.photo_urls = [*(row.photo_urls or []), stored.url]
    db.add(row)
    db.commit()
    db.refresh(row)
    return project_properties(db, p, [row])[0]


@router.post("/{property_id}/contract-template")
def upload_contract_template(
    property_id: int,
    file: UploadFile | None = File(default=None),
    db: Session = Depends(get_db),
    p: Principal = Depends(require_staff),
    storage: LocalObjectStorage = Depends(get_storage),
):
    file = require_pdf(file)
    row = must_get_property(db, property_id=property_id)

    key = f"properties/{row.id}/contract_template_{timestamp_ms()}.pdf"
    stored = storage.upload(CONTRACT_TEMPLATES_BUCKET, key, file)

    row.contract_template_url = stored.url
    db.add(row)
    db.commit()
    db.refresh(row)
    return project_properties(db, p, [row])[0]


# ---- Mobile (optional auth) ----

@mobile_router.get("")
def mobile_list_properties(request: Request, db: Session = Depends(get_db), p: Principal = Depends(get_optional_principal)):
    return list_projected(request, db, p)


@mobile_router.get("/{property_id}")
def mobile_get_property(property_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_optional_principal)):
    row = must_get_property(db, property_id=property_id)
    return project_properties(db, p, [row])[0]


@mobile_router.get("/{property_id}/contract-template")
def mobile_contract_template(
    property_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_optional_principal)
):
    return contract_template_for(db, property_id)


# ---- Public ----

@public_router.get("")
def public_available_properties(request: Request, db: Session = Depends(get_db), p: Principal = Depends(get_optional_principal)):
    """Only properties the occupancy projection reports as available."""
    rows = db.scalars(_filtered(request).order_by(Property.created_at.desc(), Property.id.desc())).all()
    return [row for row in project_properties(db, p, list(rows)) if row["status"] == PropertyStatus.AVAILABLE]
