# backend/tests/test_list_query.py
from __future__ import annotations

import pytest
from fastapi import HTTPException

from gestimmo.domain.statuses import ContractStatus, Role
from gestimmo.services.list_query import (
    Pagination,
    build_list_response,
    enum_filter,
    int_filter,
    parse_pagination,
    parse_sort,
)

from factories import auth_headers, make_profile, make_tenant


def test_pagination_is_opt_in():
    p = parse_pagination({})
    assert p.enabled is False
    assert p.page == 1
    assert p.limit == 25


def test_pagination_clamps_and_defaults():
    assert parse_pagination({"limit": "5000"}).limit == 200
    assert parse_pagination({"limit": "abc"}).limit == 25
    assert parse_pagination({"page": "-3"}).page == 1

    p = parse_pagination({"page": "3", "limit": "10"})
    assert p.enabled is True
    assert p.offset == 20


def test_sort_falls_back_silently():
    s = parse_sort({"sort_by": "password_hash", "sort_order": "sideways"}, ("created_at", "title"))
    assert s.sort_by == "created_at"
    assert s.sort_order == "desc"

    s = parse_sort({"sort_by": "title", "sort_order": "ASC"}, ("created_at", "title"))
    assert s.sort_by == "title"
    assert s.sort_order == "asc"


def test_list_response_shapes():
    items = [{"id": 1}, {"id": 2}]
    assert build_list_response(items, Pagination(False, 1, 25), None) == items

    out = build_list_response(items, Pagination(True, 1, 2), 5)
    assert out["data"] == items
    assert out["meta"] == {"page": 1, "limit": 2, "total_items": 5, "total_pages": 3}


def test_tenant_list_over_http(client):
    staff = make_profile("staff@test.local", role=Role.STAFF)
    for i in range(5):
        make_tenant(f"t{i}@test.local", full_name=f"Tenant {i}")

    bare = client.get("/api/web/tenants", headers=auth_headers(staff))
    assert bare.status_code == 200
    assert isinstance(bare.json(), list)
    assert len(bare.json()) == 5

    paged = client.get(
        "/api/web/tenants?page=2&limit=2&sort_by=full_name&sort_order=asc",
        headers=auth_headers(staff),
    )
    assert paged.status_code == 200
    body = paged.json()
    assert [t["full_name"] for t in body["data"]] == ["Tenant 2", "Tenant 3"]
    assert body["meta"]["total_items"] == 5
    assert body["meta"]["total_pages"] == 3


def test_filter_helpers_reject_malformed_values():
    assert int_filter({}, "property_id") is None
    assert int_filter({"property_id": " 12 "}, "property_id") == 12
    assert enum_filter({"status": "ACTIVE"}, "status", ContractStatus) == ContractStatus.ACTIVE

    with pytest.raises(HTTPException) as bad_int:
        int_filter({"property_id": "douze"}, "property_id")
    assert bad_int.value.status_code == 400

    with pytest.raises(HTTPException) as bad_enum:
        enum_filter({"status": "bogus"}, "status", ContractStatus)
    assert bad_enum.value.status_code == 400
    assert "draft" in bad_enum.value.detail


def test_bad_list_filters_are_400_not_500(client):
    manager = make_profile("manager@test.local", role=Role.MANAGER)
    headers = auth_headers(manager)

    for url in (
        "/api/web/contracts?status=bogus",
        "/api/web/contracts?property_id=abc",
        "/api/web/payments?status=bogus",
        "/api/web/payments?contract_id=1.5",
        "/api/web/maintenance?status=bogus",
        "/api/web/maintenance?property_id=abc",
        "/api/web/properties?owner_id=abc",
    ):
        res = client.get(url, headers=headers)
        assert res.status_code == 400, url
        assert res.json()["error"]["status"] == 400

    ok = client.get("/api/web/contracts?status=active", headers=headers)
    assert ok.status_code == 200
