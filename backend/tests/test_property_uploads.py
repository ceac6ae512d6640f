# backend/tests/test_property_uploads.py
from __future__ import annotations

import inspect
from pathlib import Path

from gestimmo.config import settings
from gestimmo.domain.statuses import Role
from gestimmo.routers import documents, payments, properties

from factories import auth_headers, make_profile, make_property

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
PDF = b"%PDF-1.4\n%%EOF\n"


def _stored_path(url: str) -> Path:
    prefix = settings.storage_public_base_url.rstrip("/") + "/"
    assert url.startswith(prefix)
    return Path(settings.storage_dir) / url[len(prefix):]


def test_upload_handlers_run_in_the_threadpool():
    # They hold a blocking SQLAlchemy session, so none may run on the event loop.
    handlers = (
        properties.upload_property_photo,
        properties.upload_contract_template,
        payments.upload_payment_proof,
        payments.mobile_upload_payment_proof,
        documents.upload_document,
    )
    for handler in handlers:
        assert not inspect.iscoroutinefunction(handler), handler.__name__


def test_photo_upload_appends_url_and_writes_file(client):
    manager = make_profile("manager@test.local", role=Role.MANAGER)
    prop = make_property(owner_id=manager.id)
    headers = auth_headers(manager)

    first = client.post(
        f"/api/web/properties/{prop.id}/photos",
        files={"file": ("front.png", PNG, "image/png")},
        headers=headers,
    )
    assert first.status_code == 200
    urls = first.json()["photo_urls"]
    assert len(urls) == 1
    assert f"/property-photos/properties/{prop.id}/" in urls[0]
    assert urls[0].endswith(".png")
    assert _stored_path(urls[0]).read_bytes() == PNG

    second = client.post(
        f"/api/web/properties/{prop.id}/photos",
        files={"file": ("back.png", PNG, "image/png")},
        headers=headers,
    )
    assert len(second.json()["photo_urls"]) == 2

    not_image = client.post(
        f"/api/web/properties/{prop.id}/photos",
        files={"file": ("lease.pdf", PDF, "application/pdf")},
        headers=headers,
    )
    assert not_image.status_code == 400


def test_contract_template_upload_is_pdf_only(client):
    manager = make_profile("manager@test.local", role=Role.MANAGER)
    prop = make_property(owner_id=manager.id)
    headers = auth_headers(manager)

    png = client.post(
        f"/api/web/properties/{prop.id}/contract-template",
        files={"file": ("lease.png", PNG, "image/png")},
        headers=headers,
    )
    assert png.status_code == 400

    res = client.post(
        f"/api/web/properties/{prop.id}/contract-template",
        files={"file": ("lease.pdf", PDF, "application/pdf")},
        headers=headers,
    )
    assert res.status_code == 200
    url = res.json()["contract_template_url"]
    assert f"/contract-templates/properties/{prop.id}/contract_template_" in url
    assert _stored_path(url).read_bytes() == PDF

    lookup = client.get(f"/api/mobile/properties/{prop.id}/contract-template")
    assert lookup.status_code == 200
    assert lookup.json()["contract_template_url"] == url
