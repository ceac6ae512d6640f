# backend/tests/test_billing.py
from __future__ import annotations

from datetime import date

from sqlalchemy import event, select
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from gestimmo.db import SessionLocal
from gestimmo.domain.billing_calendar import late_fee_cutoff, late_fee_for, month_label
from gestimmo.domain.statuses import ContractStatus, PaymentStatus, ValidationStatus
from gestimmo.models import Payment
from gestimmo.services.billing import run_daily_tasks

from factories import make_contract, make_payment, make_property, make_tenant


def test_month_label_is_french_and_capitalised():
    assert month_label(date(2026, 10, 19)) == "Octobre 2026"
    assert month_label(date(2027, 2, 1)) == "Février 2027"


def test_late_fee_helpers():
    assert late_fee_cutoff(date(2026, 10, 6), 5) == date(2026, 10, 1)
    assert late_fee_for(1234.0, 0.05) == 61.7


def test_monthly_generation_is_idempotent():
    prop = make_property()
    tenant = make_tenant("t@test.local")
    contract = make_contract(prop.id, tenant.id, monthly_rent=600.0, charges=40.0)
    # Drafts are not billed.
    make_contract(make_property().id, make_tenant("d@test.local").id, status=ContractStatus.DRAFT)

    db = SessionLocal()
    try:
        first = run_daily_tasks(db, today=date(2026, 10, 3))
        assert first.payments_created == 1
        assert first.errors == []

        second = run_daily_tasks(db, today=date(2026, 10, 3))
        assert second.payments_created == 0

        rows = db.scalars(select(Payment).where(Payment.contract_id == contract.id)).all()
        assert len(rows) == 1
        assert rows[0].month == "Octobre 2026"
        assert rows[0].due_date == date(2026, 10, 1)
        assert rows[0].amount == 640.0
        assert rows[0].status == PaymentStatus.PENDING
    finally:
        db.close()


def test_late_fee_is_applied_once():
    prop = make_property()
    tenant = make_tenant("t@test.local")
    contract = make_contract(prop.id, tenant.id)
    late = make_payment(contract.id, "Octobre 2026", date(2026, 10, 1), amount=550.0)

    db = SessionLocal()
    try:
        # Still inside the grace period.
        early = run_daily_tasks(db, today=date(2026, 10, 5))
        assert early.late_fees_applied == 0

        first = run_daily_tasks(db, today=date(2026, 10, 6))
        assert first.late_fees_applied == 1

        second = run_daily_tasks(db, today=date(2026, 10, 20))
        assert second.late_fees_applied == 0

        row = db.get(Payment, late.id)
        db.refresh(row)
        assert row.late_fee == 27.5
        assert row.status == PaymentStatus.OVERDUE
    finally:
        db.close()


def test_settled_payments_never_get_a_fee():
    prop = make_property()
    tenant = make_tenant("t@test.local")
    contract = make_contract(prop.id, tenant.id, status=ContractStatus.TERMINATED)
    paid = make_payment(contract.id, "Août 2026", date(2026, 8, 1), status=PaymentStatus.PAID)
    validated = make_payment(
        contract.id, "Septembre 2026", date(2026, 9, 1), validation_status=ValidationStatus.VALIDATED
    )

    db = SessionLocal()
    try:
        result = run_daily_tasks(db, today=date(2026, 10, 20))
        assert result.late_fees_applied == 0
        assert result.payments_created == 0
        assert db.get(Payment, paid.id).late_fee == 0
        assert db.get(Payment, validated.id).late_fee == 0
    finally:
        db.close()


def test_cron_endpoint_requires_secret(client):
    denied = client.post("/api/cron/daily")
    assert denied.status_code == 403

    wrong = client.post("/api/cron/daily", headers={"x-cron-secret": "nope"})
    assert wrong.status_code == 403

    ok = client.post("/api/cron/daily", headers={"x-cron-secret": "test-cron-secret"})
    assert ok.status_code == 200
    body = ok.json()
    assert body["success"] is True
    assert set(body["results"]) == {"paymentsCreated", "lateFeesApplied", "errors"}


def test_late_fee_is_stored_in_cents():
    prop = make_property()
    contract = make_contract(prop.id, make_tenant("t@test.local").id)
    late = make_payment(contract.id, "Octobre 2026", date(2026, 10, 1), amount=333.37)

    db = SessionLocal()
    try:
        run_daily_tasks(db, today=date(2026, 10, 6))
        # 333.37 * 0.05 = 16.6685
        assert db.get(Payment, late.id).late_fee == 16.67
    finally:
        db.close()


def test_failing_contract_is_reported_and_batch_continues():
    broken = make_contract(make_property().id, make_tenant("a@test.local").id)
    healthy = make_contract(make_property().id, make_tenant("b@test.local").id)

    def reject_broken_insert(session, flush_context, instances):
        for obj in session.new:
            if isinstance(obj, Payment) and obj.contract_id == broken.id:
                raise SQLAlchemyError("insert rejected")

    db = SessionLocal()
    event.listen(db, "before_flush", reject_broken_insert)
    try:
        result = run_daily_tasks(db, today=date(2026, 10, 3))
        assert result.payments_created == 1
        assert len(result.errors) == 1
        assert f"contract {broken.id}" in result.errors[0]
        assert "insert rejected" in result.errors[0]

        rows = db.scalars(select(Payment)).all()
        assert [r.contract_id for r in rows] == [healthy.id]
    finally:
        event.remove(db, "before_flush", reject_broken_insert)
        db.close()


def test_cron_endpoint_reports_failed_run(client, monkeypatch):
    def unreachable_db(db, today=None):
        raise OperationalError("SELECT contracts", {}, Exception("connection refused"))

    monkeypatch.setattr("gestimmo.routers.cron.run_daily_tasks", unreachable_db)

    res = client.post("/api/cron/daily", headers={"x-cron-secret": "test-cron-secret"})
    assert res.status_code == 500
    body = res.json()
    assert body["success"] is False
    assert "connection refused" in body["error"]
