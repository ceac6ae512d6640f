# backend/tests/test_errors.py
from __future__ import annotations

from fastapi.testclient import TestClient
from sqlalchemy.exc import IntegrityError, OperationalError

from gestimmo.domain.statuses import Role
from gestimmo.errors import sqlstate_of, status_for_db_error
from gestimmo.main import create_app
from gestimmo.services.error_messages import fallback_by_status, translate_error_message

from factories import auth_headers, make_profile


class _PgError(Exception):
    def __init__(self, msg: str, pgcode: str):
        super().__init__(msg)
        self.pgcode = pgcode


def test_known_messages_are_translated():
    assert translate_error_message("Unauthorized: No token provided", 401) == (
        "Votre session n'a pas été détectée. Connectez-vous puis réessayez."
    )
    assert translate_error_message("Forbidden", 403) == "Action refusée : vous n'avez pas les droits nécessaires."
    # Longer phrase wins over the shorter one it contains.
    assert translate_error_message("This property is not available for rent (Status: rented)", 409) == (
        "Ce bien n'est plus disponible à la location. Choisissez un autre bien."
    )
    assert translate_error_message("Tenant profile not found", 404).startswith("Profil locataire introuvable")


def test_fallbacks_and_passthrough():
    assert translate_error_message("", 404) == fallback_by_status(404)
    assert translate_error_message(None, 500) == fallback_by_status(500)
    assert translate_error_message("Request failed with status code 502", 409) == fallback_by_status(409)
    assert translate_error_message("Loyer déjà encaissé", 400) == "Loyer déjà encaissé"
    assert fallback_by_status(418) == "Une erreur est survenue. Veuillez réessayer."


def test_sqlstate_mapping():
    unique_pg = IntegrityError("INSERT", {}, _PgError("duplicate key", "23505"))
    assert sqlstate_of(unique_pg) == "23505"
    assert status_for_db_error(unique_pg) == 409

    unique_sqlite = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: tenants.email"))
    assert status_for_db_error(unique_sqlite) == 409

    denied = OperationalError("SELECT", {}, _PgError("permission denied for table payments", "42501"))
    assert status_for_db_error(denied) == 403

    raised = OperationalError("SELECT", {}, _PgError("custom guard", "P0001"))
    assert status_for_db_error(raised) == 400

    fk = IntegrityError("INSERT", {}, Exception("FOREIGN KEY constraint failed"))
    assert status_for_db_error(fk) == 400

    down = OperationalError("SELECT", {}, Exception("connection refused"))
    assert status_for_db_error(down) == 500


def test_error_envelope_carries_request_id(client):
    res = client.get("/api/web/properties", headers={"X-Request-ID": "req-123"})
    assert res.status_code == 401
    assert res.headers["X-Request-ID"] == "req-123"
    assert res.json() == {
        "error": {
            "message": "Votre session n'a pas été détectée. Connectez-vous puis réessayez.",
            "status": 401,
            "request_id": "req-123",
        }
    }


def test_unique_violation_becomes_409(client):
    staff = make_profile("staff@test.local", role=Role.STAFF)
    payload = {"full_name": "Jules", "email": "jules@test.local"}

    assert client.post("/api/web/tenants", json=payload, headers=auth_headers(staff)).status_code == 201
    dup = client.post("/api/web/tenants", json={**payload, "email": "JULES@test.local"}, headers=auth_headers(staff))
    assert dup.status_code == 409
    assert dup.json()["error"]["message"] == "Cet élément existe déjà."


def test_validation_errors_are_422(client):
    staff = make_profile("staff@test.local", role=Role.STAFF)
    res = client.post("/api/web/tenants", json={"full_name": "Sans email"}, headers=auth_headers(staff))
    assert res.status_code == 422
    assert res.json()["error"]["status"] == 422
    assert "email" in res.json()["error"]["message"]


def test_unhandled_errors_use_the_500_fallback():
    app = create_app()

    @app.get("/boom")
    def _boom():
        raise RuntimeError("secret internals")

    res = TestClient(app, raise_server_exceptions=False).get("/boom")
    assert res.status_code == 500
    assert res.json()["error"]["message"] == fallback_by_status(500)
    assert "secret" not in res.text
