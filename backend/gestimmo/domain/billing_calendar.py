# backend/gestimmo/domain/billing_calendar.py
from __future__ import annotations

import calendar
from datetime import date, timedelta

from babel.dates import format_date


def month_start(d: date) -> date:
    return date(d.year, d.month, 1)


def next_month_start(d: date) -> date:
    if d.month == 12:
        return date(d.year + 1, 1, 1)
    return date(d.year, d.month + 1, 1)


def month_end(d: date) -> date:
    last_day = calendar.monthrange(d.year, d.month)[1]
    return date(d.year, d.month, last_day)


def month_label(d: date, locale: str = "fr_FR") -> str:
    """
    Human label of the calendar month containing d, e.g. "Octobre 2026".

    This label is half of the (contract, month) uniqueness key on payments,
    so it must stay stable for a given locale.
    """
    raw = format_date(d, "LLLL y", locale=locale)
    return raw[:1].upper() + raw[1:]


def iso_month(d: date) -> str:
    return f"{d.year:04d}-{d.month:02d}"


def is_after_month(target: date, reference: date) -> bool:
    """True when target falls in a calendar month strictly after reference's."""
    return (target.year, target.month) > (reference.year, reference.month)


def late_fee_cutoff(today: date, grace_period_days: int) -> date:
    return today - timedelta(days=int(grace_period_days))


def late_fee_for(amount: float, rate: float) -> float:
    return round(float(amount) * float(rate), 2)
