# Overview: Pure due-date arithmetic for installment schedules; no database access.

"""
Installment Scheduler

INITIAL RULE (sale creation / backup import):
    anchor day = day of the sale date; installment i is due in
    sale month + i, day clamped to the last day of the target month.

RESCHEDULE RULE (after a payment event or manual edit):
    the pending installments, taken in installment_number order, fall on
    consecutive months starting the month after the most recent payment,
    on the day-of-month of the first pending installment's current due date.
    A due date clamped onto a month's last day keeps the larger day of its
    original_due_date, so a 31st billing day survives short months.

All arithmetic is done on (year, month, day) integers, never by adding
timedeltas, so a day-31 anchor lands on Apr 30 / Feb 28 instead of rolling
into the next month.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable

from credit_ledger.time_utils import parse_iso_date, parse_iso_datetime


@dataclass(frozen=True)
class ScheduleUpdate:
    installment_id: int
    new_due_date: date

    def to_dict(self) -> dict:
        return {
            "installment_id": self.installment_id,
            "new_due_date": self.new_due_date.isoformat(),
        }


def add_months_clamped(year: int, month: int, day: int, offset: int) -> date:
    """Move (year, month) forward by offset months, clamping day to the month's length."""
    index = (month - 1) + offset
    target_year = year + index // 12
    target_month = index % 12 + 1
    last_day = calendar.monthrange(target_year, target_month)[1]
    return date(target_year, target_month, min(day, last_day))


def initial_schedule(sale_date: date | datetime, count: int) -> list[date]:
    """Due dates for installments 1..count of a sale made on sale_date."""
    if isinstance(sale_date, datetime):
        sale_date = sale_date.date()
    return [
        add_months_clamped(sale_date.year, sale_date.month, sale_date.day, i)
        for i in range(1, count + 1)
    ]


def _as_datetime(value) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    return parse_iso_datetime(str(value))


def _anchor_day(installment) -> int:
    due = parse_iso_date(installment.due_date)
    if due is None:
        return 15
    original = parse_iso_date(getattr(installment, "original_due_date", None))
    last_day = calendar.monthrange(due.year, due.month)[1]
    if original and due.day == last_day and original.day > due.day:
        return original.day
    return due.day


def schedule_all_pending_monthly(installments: Iterable) -> list[ScheduleUpdate]:
    """
    Compute due-date changes for every pending installment of one sale.

    installments: all rows of the sale (objects exposing id,
    installment_number, status, paid_date and due_date; original_due_date
    is read when present).

    Returns only the rows whose due date must change, in installment_number
    order; an empty list when nothing was paid yet or nothing moves.
    Running it again on its own output yields no further updates.
    """
    ordered = sorted(installments, key=lambda i: i.installment_number or 0)

    paid_dates = [
        _as_datetime(i.paid_date)
        for i in ordered
        if i.status == "paid" and i.paid_date
    ]
    if not paid_dates:
        return []

    anchor = max(paid_dates)

    pending = [i for i in ordered if i.status != "paid"]
    if not pending:
        return []

    anchor_day = _anchor_day(pending[0])

    updates: list[ScheduleUpdate] = []
    for offset, installment in enumerate(pending, start=1):
        if not installment.id:
            continue
        new_due = add_months_clamped(anchor.year, anchor.month, anchor_day, offset)
        if parse_iso_date(installment.due_date) != new_due:
            updates.append(ScheduleUpdate(installment.id, new_due))

    return updates
