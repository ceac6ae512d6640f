# backend/tests/test_auth.py
from __future__ import annotations

from gestimmo.domain.statuses import Role

from factories import auth_headers, load_profile, make_profile


def _register(client, **overrides):
    payload = {"email": "nina@test.local", "password": "secret123", "full_name": "Nina Roux"}
    payload.update(overrides)
    return client.post("/api/auth/register", json=payload)


def test_register_defaults_to_tenant_and_returns_session(client):
    res = _register(client, email="  Nina@Test.local ")
    assert res.status_code == 201
    body = res.json()
    assert body["user"]["email"] == "nina@test.local"
    assert body["user"]["role"] == "tenant"
    assert body["session"]["access_token"]
    assert body["session"]["refresh_token"]


def test_register_validations(client):
    short = _register(client, password="abc")
    assert short.status_code == 400
    assert short.json()["error"]["message"] == "Mot de passe trop court. Utilisez au moins 6 caractères."

    bad_email = _register(client, email="pas-un-email")
    assert bad_email.status_code == 400

    staff = _register(client, role="staff")
    assert staff.status_code == 400
    assert staff.json()["error"]["message"].startswith("Rôle invalide pour l'inscription publique")

    assert _register(client).status_code == 201
    dup = _register(client)
    assert dup.status_code == 409
    assert dup.json()["error"]["message"].startswith("Ce compte existe déjà")


def test_login_and_refresh(client):
    _register(client, role="manager")

    bad = client.post("/api/auth/login", json={"email": "nina@test.local", "password": "wrong-password"})
    assert bad.status_code == 401
    assert bad.json()["error"]["message"].startswith("Identifiants invalides")

    ok = client.post("/api/auth/login", json={"email": "NINA@test.local", "password": "secret123"})
    assert ok.status_code == 200
    session = ok.json()["session"]
    assert ok.json()["user"]["role"] == "manager"

    # An access token cannot be used as a refresh token.
    wrong_kind = client.post("/api/auth/refresh", json={"refresh_token": session["access_token"]})
    assert wrong_kind.status_code == 401

    refreshed = client.post("/api/auth/refresh", json={"refresh_token": session["refresh_token"]})
    assert refreshed.status_code == 200
    assert refreshed.json()["session"]["access_token"]

    assert client.post("/api/auth/refresh", json={}).status_code == 400


def test_profile_requires_token(client):
    res = client.get("/api/auth/profile")
    assert res.status_code == 401

    garbage = client.get("/api/auth/profile", headers={"Authorization": "Bearer not-a-jwt"})
    assert garbage.status_code == 401
    assert garbage.json()["error"]["message"].startswith("Votre session a expiré")

    profile = make_profile("me@test.local", full_name="Moi")
    mine = client.get("/api/auth/profile", headers=auth_headers(profile))
    assert mine.status_code == 200
    assert mine.json()["full_name"] == "Moi"

    updated = client.put("/api/auth/profile", json={"phone": "0600000000"}, headers=auth_headers(profile))
    assert updated.status_code == 200
    assert updated.json()["phone"] == "0600000000"


def test_tenant_is_kept_out_of_web_routes(client):
    tenant = make_profile("t@test.local", role=Role.TENANT)
    res = client.get("/api/web/tenants", headers=auth_headers(tenant))
    assert res.status_code == 403
    assert res.json()["error"]["message"].startswith("Vous n'avez pas les permissions nécessaires")


def test_profile_without_role_acts_as_staff(client):
    legacy = make_profile("legacy@test.local", role=None)
    assert load_profile(legacy.id).role is None

    res = client.get("/api/web/tenants", headers=auth_headers(legacy))
    assert res.status_code == 200

    admin_only = client.get("/api/web/users", headers=auth_headers(legacy))
    assert admin_only.status_code == 403


def test_mobile_catalogue_tolerates_bad_tokens(client):
    res = client.get("/api/mobile/properties", headers={"Authorization": "Bearer expired-or-forged"})
    assert res.status_code == 200
