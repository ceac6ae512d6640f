# backend/tests/test_contract_flow.py
from __future__ import annotations

from datetime import date

from sqlalchemy import func, select

from gestimmo.db import SessionLocal
from gestimmo.domain.billing_calendar import month_label, next_month_start
from gestimmo.domain.statuses import ContractStatus, PropertyStatus, Role
from gestimmo.models import Contract, Notification, Payment, Property

from factories import auth_headers, make_contract, make_profile, make_property, make_tenant


def _register_tenant(client, email: str) -> dict:
    res = client.post(
        "/api/auth/register",
        json={"email": email, "password": "secret123", "full_name": "Léa Roux", "role": "tenant"},
    )
    assert res.status_code == 201
    return {"Authorization": f"Bearer {res.json()['session']['access_token']}"}


def _property_status(property_id: int) -> PropertyStatus:
    db = SessionLocal()
    try:
        return db.get(Property, property_id).status
    finally:
        db.close()


def test_request_then_accept_activates_and_bills_next_month(client):
    owner = make_profile("owner@test.local", role=Role.MANAGER)
    prop = make_property(owner_id=owner.id, price=700.0, charges=80.0)
    headers = _register_tenant(client, "lea@test.local")

    req = client.post("/api/mobile/contracts", json={"property_id": prop.id}, headers=headers)
    assert req.status_code == 201
    draft = req.json()
    assert draft["status"] == "draft"
    assert draft["monthly_rent"] == 700.0
    assert draft["signed_by_tenant"] is False

    # The open draft already blocks the property for everyone else.
    rival = _register_tenant(client, "rival@test.local")
    blocked = client.post("/api/mobile/contracts", json={"property_id": prop.id}, headers=rival)
    assert blocked.status_code == 409

    acc = client.post(f"/api/mobile/contracts/{draft['id']}/accept", headers=headers)
    assert acc.status_code == 200
    body = acc.json()

    today = date.today()
    first_due = next_month_start(today)
    assert body["contract"]["status"] == "active"
    assert body["contract"]["signed_by_tenant"] is True
    assert body["contract"]["signed_by_landlord"] is True
    assert body["contract"]["start_date"] == today.isoformat()
    assert body["payment"]["due_date"] == first_due.isoformat()
    assert body["payment"]["month"] == month_label(first_due)
    assert body["payment"]["amount"] == 780.0
    assert body["payment"]["status"] == "pending"

    assert _property_status(prop.id) == PropertyStatus.RENTED

    db = SessionLocal()
    try:
        titles = db.scalars(select(Notification.title)).all()
        assert "Contrat activé" in titles
    finally:
        db.close()


def test_accepting_a_non_draft_changes_nothing(client):
    owner = make_profile("owner@test.local", role=Role.MANAGER)
    prop = make_property(owner_id=owner.id)
    headers = _register_tenant(client, "lea@test.local")

    draft = client.post("/api/mobile/contracts", json={"property_id": prop.id}, headers=headers).json()
    assert client.post(f"/api/mobile/contracts/{draft['id']}/accept", headers=headers).status_code == 200

    again = client.post(f"/api/mobile/contracts/{draft['id']}/accept", headers=headers)
    assert again.status_code == 400
    assert again.json()["error"]["message"] == "Ce contrat ne peut plus être signé car il n'est plus à l'état brouillon."

    db = SessionLocal()
    try:
        assert db.scalar(select(func.count()).select_from(Payment)) == 1
        assert db.get(Contract, draft["id"]).status == ContractStatus.ACTIVE
    finally:
        db.close()


def test_reject_deletes_the_draft(client):
    prop = make_property()
    headers = _register_tenant(client, "lea@test.local")
    draft = client.post("/api/mobile/contracts", json={"property_id": prop.id}, headers=headers).json()

    res = client.post(f"/api/mobile/contracts/{draft['id']}/reject", headers=headers)
    assert res.status_code == 200

    db = SessionLocal()
    try:
        assert db.get(Contract, draft["id"]) is None
    finally:
        db.close()
    assert _property_status(prop.id) == PropertyStatus.AVAILABLE


def test_tenant_cannot_touch_someone_elses_contract(client):
    prop = make_property()
    stranger = make_tenant("stranger@test.local")
    contract = make_contract(prop.id, stranger.id, status=ContractStatus.DRAFT)

    headers = _register_tenant(client, "lea@test.local")
    # Creates the caller's tenant row.
    assert client.get("/api/mobile/me", headers=headers).status_code == 200

    res = client.post(f"/api/mobile/contracts/{contract.id}/accept", headers=headers)
    assert res.status_code == 404


def test_staff_create_marks_rented_and_delete_releases(client):
    manager = make_profile("manager@test.local", role=Role.MANAGER)
    prop = make_property(owner_id=manager.id, price=900.0, charges=0.0)
    tenant = make_tenant("t@test.local")

    created = client.post(
        "/api/web/contracts",
        json={"property_id": prop.id, "tenant_id": tenant.id},
        headers=auth_headers(manager),
    )
    assert created.status_code == 201
    assert created.json()["status"] == "active"
    assert created.json()["monthly_rent"] == 900.0
    assert _property_status(prop.id) == PropertyStatus.RENTED

    dup = client.post(
        "/api/web/contracts",
        json={"property_id": prop.id, "tenant_id": tenant.id},
        headers=auth_headers(manager),
    )
    assert dup.status_code == 409

    deleted = client.delete(f"/api/web/contracts/{created.json()['id']}", headers=auth_headers(manager))
    assert deleted.status_code == 204
    assert _property_status(prop.id) == PropertyStatus.AVAILABLE


def test_delete_releases_property_whatever_the_contract_status(client):
    manager = make_profile("manager@test.local", role=Role.MANAGER)
    headers = auth_headers(manager)

    for i, status in enumerate((ContractStatus.DRAFT, ContractStatus.TERMINATED, ContractStatus.PENDING)):
        prop = make_property(owner_id=manager.id, status=PropertyStatus.RENTED)
        contract = make_contract(prop.id, make_tenant(f"t{i}@test.local").id, status=status)

        res = client.delete(f"/api/web/contracts/{contract.id}", headers=headers)
        assert res.status_code == 204
        assert _property_status(prop.id) == PropertyStatus.AVAILABLE


def test_terminate_only_active(client):
    manager = make_profile("manager@test.local", role=Role.MANAGER)
    prop = make_property(owner_id=manager.id, status=PropertyStatus.RENTED)
    tenant = make_tenant("t@test.local")
    active = make_contract(prop.id, tenant.id)

    res = client.post(f"/api/web/contracts/{active.id}/terminate", headers=auth_headers(manager))
    assert res.status_code == 200
    assert res.json()["status"] == "terminated"
    assert res.json()["end_date"] == date.today().isoformat()
    assert _property_status(prop.id) == PropertyStatus.AVAILABLE

    again = client.post(f"/api/web/contracts/{active.id}/terminate", headers=auth_headers(manager))
    assert again.status_code == 400
    assert again.json()["error"]["message"] == "Seuls les contrats actifs peuvent être résiliés."
