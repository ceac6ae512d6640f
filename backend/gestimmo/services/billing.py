# backend/gestimmo/services/billing.py
"""
Daily billing run.

Two passes, both safe to repeat:
  1) monthly generation: one rent payment per active contract for the current
     month, due on the 1st (existence check + unique (contract, month) key);
  2) late fees: payments still unpaid `grace_period_days` after their due date
     get a flat penalty once and are flagged overdue (guarded by late_fee == 0).

A failing row is rolled back to its savepoint and reported in `errors`; the
rest of the batch carries on. Failing to load the batch itself raises.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import settings
from ..domain.billing_calendar import late_fee_cutoff, late_fee_for, month_label, month_start
from ..domain.statuses import ContractStatus, PaymentStatus, ValidationStatus
from ..models import Contract, Payment

log = logging.getLogger("gestimmo.billing")


@dataclass
class BillingRunResult:
    payments_created: int = 0
    late_fees_applied: int = 0
    errors: list[str] = field(default_factory=list)

    def as_response(self) -> dict:
        return {
            "paymentsCreated": self.payments_created,
            "lateFeesApplied": self.late_fees_applied,
            "errors": list(self.errors),
        }


def generate_monthly_payments(db: Session, today: date, result: BillingRunResult) -> None:
    label = month_label(today, settings.month_label_locale)
    due = month_start(today)

    contracts = db.scalars(
        select(Contract).where(Contract.status == ContractStatus.ACTIVE).order_by(Contract.id)
    ).all()

    for contract in contracts:
        try:
            with db.begin_nested():
                exists = db.scalar(
                    select(Payment.id).where(Payment.contract_id == contract.id, Payment.month == label)
                )
                if exists is not None:
                    continue

                db.add(
                    Payment(
                        contract_id=contract.id,
                        month=label,
                        amount=float(contract.monthly_rent or 0) + float(contract.charges or 0),
                        due_date=due,
                        status=PaymentStatus.PENDING,
                        validation_status=ValidationStatus.NOT_SUBMITTED,
                        late_fee=0.0,
                        proof_urls=[],
                    )
                )
                db.flush()
            result.payments_created += 1
        except SQLAlchemyError as e:
            msg = f"Failed to create payment for contract {contract.id}: {e}"
            result.errors.append(msg)
            log.warning(msg, extra={"contract_id": contract.id, "task": "billing"})


def apply_late_fees(db: Session, today: date, result: BillingRunResult) -> None:
    cutoff = late_fee_cutoff(today, settings.grace_period_days)

    payments = db.scalars(
        select(Payment)
        .where(Payment.status != PaymentStatus.PAID)
        .where(Payment.validation_status != ValidationStatus.VALIDATED)
        .where(Payment.due_date <= cutoff)
        .where(Payment.late_fee == 0)
        .order_by(Payment.id)
    ).all()

    for payment in payments:
        try:
            with db.begin_nested():
                payment.late_fee = late_fee_for(payment.amount, settings.late_fee_rate)
                payment.status = PaymentStatus.OVERDUE
                db.add(payment)
                db.flush()
            result.late_fees_applied += 1
        except SQLAlchemyError as e:
            msg = f"Failed to apply late fee for payment {payment.id}: {e}"
            result.errors.append(msg)
            log.warning(msg, extra={"payment_id": payment.id, "task": "billing"})


def run_daily_tasks(db: Session, today: date | None = None) -> BillingRunResult:
    today = today or date.today()
    result = BillingRunResult()

    generate_monthly_payments(db, today, result)
    apply_late_fees(db, today, result)
    db.commit()

    log.info(
        "daily billing done",
        extra={
            "task": "billing",
            "run_date": today.isoformat(),
            "payments_created": result.payments_created,
            "late_fees_applied": result.late_fees_applied,
            "error_count": len(result.errors),
        },
    )
    return result
