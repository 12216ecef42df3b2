# -*- coding: utf-8 -*-
"""
Отчёты по зарплатному журналу: история с остатками, дашборды, выгрузки.

Здесь только сборка: сами расчёты живут в ledger, загрузка в loader.
"""
from __future__ import annotations

import csv
import io
import logging
import math
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Hashable, Iterable, Mapping, Sequence

from openpyxl import Workbook
from openpyxl.styles import Font

from .formatting import fmt_date, fmt_money, money, month_label
from .ledger import (
    ZERO,
    AnnotatedTransaction,
    D,
    DateRange,
    LedgerAggregate,
    SalarySetting,
    Transaction,
    annotate,
    compute_aggregate,
    month_start,
    running_balances,
)
from .loader import (
    DataUnavailable,
    StaffLedger,
    list_all_transactions,
    list_transactions_for_staff,
    load_staff_ledger,
)

logger = logging.getLogger(__name__)

VIEW_MODES = ("Daily", "Weekly", "Monthly")
EXPORT_HEADER = ["Date", "Staff", "Amount", "Type", "Notes", "Running_Balance"]


# ------------ view modes ------------------------------------------------------
def week_start(value: date | datetime) -> date:
    """Неделя начинается с воскресенья."""
    d = date(value.year, value.month, value.day)
    return d - timedelta(days=(d.weekday() + 1) % 7)


def _with_period(row: AnnotatedTransaction, view: str) -> AnnotatedTransaction:
    moment = row.transaction.date
    if view == "Weekly":
        ws = week_start(moment)
        label = f"Week of {fmt_date(ws)} - {fmt_date(ws + timedelta(days=6))}"
        return replace(row, period_start=ws, period_label=label)
    if view == "Monthly":
        ms = month_start(moment)
        return replace(row, period_start=ms, period_label=month_label(ms))
    return row


def group_rows(rows: Iterable[AnnotatedTransaction], view: str = "Daily") -> list[AnnotatedTransaction]:
    """Строки по убыванию даты; для Weekly/Monthly сначала по периоду, потом по дате."""
    if view not in VIEW_MODES:
        view = "Daily"
    out = [_with_period(r, view) for r in rows]
    out.sort(key=lambda r: r.transaction.date, reverse=True)
    if view != "Daily":
        out.sort(key=lambda r: r.period_start, reverse=True)
    return out


# ------------ history ---------------------------------------------------------
def ledger_balances(ledger: StaffLedger) -> dict[Hashable, Decimal]:
    """Остаток по каждой операции сотрудника: перенос + оклад - взятое до неё включительно."""
    terms = {ledger.staff_id: (ledger.monthly_salary, ledger.carryover.carryover)}
    return running_balances(ledger.transactions, terms)


@dataclass(frozen=True)
class History:
    rows: list[AnnotatedTransaction]
    aggregate: LedgerAggregate
    date_range: DateRange
    view: str = "Daily"
    unavailable: tuple = ()


def build_history(
    window: Sequence[Transaction],
    ledgers: Mapping[Hashable, StaffLedger],
    date_range: DateRange,
    view: str = "Daily",
    unavailable: Iterable = (),
) -> History:
    """
    Остатки считаются по полному журналу каждого сотрудника, в окно попадают
    только строки window. Сотрудники без ledgers в выдачу не попадают.
    """
    balances: dict[Hashable, Decimal] = {}
    for lg in ledgers.values():
        balances.update(ledger_balances(lg))

    rows = annotate([t for t in window if t.staff_id in ledgers], balances)
    return History(
        rows=group_rows(rows, view),
        aggregate=compute_aggregate(rows),
        date_range=date_range,
        view=view if view in VIEW_MODES else "Daily",
        unavailable=tuple(unavailable),
    )


def load_history(
    date_range: DateRange,
    staff_id: Any = None,
    view: str = "Daily",
    now: datetime | None = None,
) -> History:
    """staff_id=None: все сотрудники. Сбой окна целиком -> DataUnavailable."""
    if staff_id is None:
        window = list_all_transactions(date_range)
    else:
        window = list_transactions_for_staff(staff_id, date_range)

    ledgers: dict[Hashable, StaffLedger] = {}
    unavailable = []
    for sid in sorted({t.staff_id for t in window}, key=str):
        try:
            ledgers[sid] = load_staff_ledger(sid, now)
        except DataUnavailable:
            logger.warning("salary history: сотрудник %s пропущен, журнал недоступен", sid)
            unavailable.append(sid)
    return build_history(window, ledgers, date_range, view, unavailable)


# ------------ dashboards ------------------------------------------------------
@dataclass(frozen=True)
class StaffSummary:
    staff_id: Any
    monthly_salary: Decimal
    carryover: Decimal
    extra_payments: Decimal
    total_earned: Decimal
    total_paid: Decimal
    current_balance: Decimal
    recent: tuple[AnnotatedTransaction, ...] = ()


def staff_summary(ledger: StaffLedger, recent_limit: int = 5) -> StaffSummary:
    """Текущий остаток = перенос + оклад - взятое в текущем месяце."""
    amounts = [D(t.amount) for t in ledger.transactions]
    carry = ledger.carryover
    current = month_start(ledger.as_of or datetime.now())
    taken_now = sum((D(t.amount) for t in ledger.transactions if month_start(t.date) == current), ZERO)
    balances = ledger_balances(ledger)
    recent = sorted(annotate(ledger.transactions, balances), key=lambda r: r.transaction.date, reverse=True)
    return StaffSummary(
        staff_id=ledger.staff_id,
        monthly_salary=D(ledger.monthly_salary),
        carryover=carry.carryover,
        extra_payments=carry.extra_payments,
        total_earned=sum((a for a in amounts if a > 0), ZERO),
        total_paid=sum((-a for a in amounts if a < 0), ZERO),
        current_balance=carry.carryover + D(ledger.monthly_salary) - taken_now,
        recent=tuple(recent[: max(recent_limit, 0)]),
    )


@dataclass(frozen=True)
class AdminSummary:
    total_staff: int
    total_monthly_salary: Decimal
    current_week: int
    pending_payments: int


def current_week(now: datetime) -> int:
    start = datetime(now.year, 1, 1, tzinfo=now.tzinfo)
    return math.ceil((now - start).total_seconds() / (7 * 24 * 60 * 60))


def pending_payments(recent: Iterable[Transaction]) -> int:
    """Сотрудники с отрицательной суммой по последним операциям."""
    sums: dict[Hashable, Decimal] = {}
    for t in recent:
        sums[t.staff_id] = sums.get(t.staff_id, ZERO) + D(t.amount)
    return sum(1 for v in sums.values() if v < 0)


def admin_summary(
    staff_ids: Iterable[Hashable],
    settings: Mapping[Hashable, SalarySetting],
    recent: Iterable[Transaction],
    now: datetime | None = None,
) -> AdminSummary:
    staff_ids = list(staff_ids)
    now = now or datetime.now()
    return AdminSummary(
        total_staff=len(staff_ids),
        total_monthly_salary=sum((D(settings[s].monthly_salary) for s in staff_ids if s in settings), ZERO),
        current_week=current_week(now),
        pending_payments=pending_payments(recent),
    )


# ------------ export ----------------------------------------------------------
def export_rows(rows: Iterable[AnnotatedTransaction]) -> list[list[str]]:
    out = []
    for r in rows:
        t = r.transaction
        out.append([
            fmt_date(t.date),
            t.staff_name or "N/A",
            fmt_money(t.amount),
            t.type or "",
            t.notes or "",
            fmt_money(r.running_balance),
        ])
    return out


def summary_row(agg: LedgerAggregate) -> list[str]:
    return [
        "TOTAL",
        f"{agg.staff_count} staff",
        fmt_money(agg.total_amount),
        ", ".join(agg.types_used),
        f"{agg.transaction_count} transactions",
        fmt_money(agg.total_final_balance),
    ]


def export_csv(history: History) -> str:
    buf = io.StringIO()
    w = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    w.writerow(EXPORT_HEADER)
    w.writerows(export_rows(history.rows))
    w.writerow(summary_row(history.aggregate))
    return buf.getvalue()


def export_xlsx(history: History) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "Salary transactions"
    ws.append(EXPORT_HEADER)
    for cell in ws[1]:
        cell.font = Font(bold=True)
    for r in history.rows:
        t = r.transaction
        ws.append([fmt_date(t.date), t.staff_name or "N/A", money(t.amount), t.type or "", t.notes or "", money(r.running_balance)])
    agg = history.aggregate
    ws.append([
        "TOTAL",
        f"{agg.staff_count} staff",
        money(agg.total_amount),
        ", ".join(agg.types_used),
        f"{agg.transaction_count} transactions",
        money(agg.total_final_balance),
    ])
    for cell in ws[ws.max_row]:
        cell.font = Font(bold=True)
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def export_filename(date_range: DateRange, ext: str) -> str:
    start = date_range.start.isoformat() if date_range.start else "all"
    end = date_range.end.isoformat() if date_range.end else "all"
    return f"salary_transactions_{start}_{end}.{ext}"
