# -*- coding: utf-8 -*-
"""
Сверка зарплатного журнала сотрудника.

Чистые функции без состояния: на вход снимок операций, настройки оклада и
«сейчас», на выходе перенос (carryover), переплаты и текущий остаток по
каждой операции. Ничего не кэшируется между вызовами: любое изменение
журнала требует полного пересчёта.

  * compute_month_carryover: проход по закрытым месяцам
  * compute_running_balance: остаток на момент конкретной операции
  * running_balances: то же для всех операций сразу (префиксные суммы)
  * compute_aggregate: сводка по окну (выгрузки, итоговая строка)
"""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Hashable, Iterable, Mapping, Sequence


ZERO = Decimal("0")


def D(v: Any) -> Decimal:
    """Любое значение суммы -> Decimal; мусор, NaN и бесконечность -> 0."""
    if v is None or isinstance(v, bool):
        return ZERO
    if isinstance(v, Decimal):
        d = v
    else:
        try:
            d = Decimal(str(v).strip())
        except (InvalidOperation, ValueError):
            return ZERO
    return d if d.is_finite() else ZERO


def to_datetime(value: Any) -> datetime | None:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    s = str(value).strip()
    try:
        return datetime.fromisoformat(s)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(s[:10])
    except ValueError:
        return None


def month_start(value: date | datetime) -> date:
    return date(value.year, value.month, 1)


def next_month(d: date) -> date:
    return date(d.year + (1 if d.month == 12 else 0), 1 if d.month == 12 else d.month + 1, 1)


# ------------ records ---------------------------------------------------------
@dataclass(frozen=True)
class Transaction:
    id: Hashable
    staff_id: Hashable
    amount: Decimal
    type: str
    date: datetime
    notes: str = ""
    staff_name: str = ""


@dataclass(frozen=True)
class SalarySetting:
    staff_id: Hashable
    monthly_salary: Decimal
    effective_date: datetime | None = None
    notes: str = ""


@dataclass(frozen=True)
class DateRange:
    """Окно отчёта: обе границы включительно, end покрывает весь день."""

    start: date | None = None
    end: date | None = None

    @property
    def start_dt(self) -> datetime | None:
        return to_datetime(self.start)

    @property
    def end_dt(self) -> datetime | None:
        # граница «до», не включительно: начало следующего дня
        end = to_datetime(self.end)
        if end is None:
            return None
        return datetime(end.year, end.month, end.day) + timedelta(days=1)

    def contains(self, value: date | datetime) -> bool:
        moment = to_datetime(value)
        if moment is None:
            return False
        lo, hi = self.start_dt, self.end_dt
        if lo is not None and moment < lo:
            return False
        if hi is not None and moment >= hi:
            return False
        return True


@dataclass(frozen=True)
class MonthBalance:
    month: date
    taken: Decimal
    carryover: Decimal
    extra_payment: Decimal


@dataclass(frozen=True)
class CarryoverResult:
    carryover: Decimal = ZERO
    extra_payments: Decimal = ZERO
    months: tuple[MonthBalance, ...] = ()


@dataclass(frozen=True)
class AnnotatedTransaction:
    transaction: Transaction
    running_balance: Decimal
    period_start: date | None = None
    period_label: str = ""


@dataclass(frozen=True)
class LedgerAggregate:
    total_amount: Decimal = ZERO
    staff_count: int = 0
    total_final_balance: Decimal = ZERO
    transaction_count: int = 0
    types_used: tuple[str, ...] = field(default_factory=tuple)


def _by_date(t: Transaction):
    return t.date


# ------------ month walker ----------------------------------------------------
def month_totals(transactions: Iterable[Transaction]) -> dict[date, Decimal]:
    """Сумма взятого по календарным месяцам: {первое число месяца: сумма}."""
    totals: dict[date, Decimal] = defaultdict(lambda: ZERO)
    for t in transactions:
        if t.date is None:
            continue
        totals[month_start(t.date)] += D(t.amount)
    return dict(totals)


def compute_month_carryover(
    transactions: Iterable[Transaction],
    monthly_salary: Any,
    effective_date: Any,
    now: Any = None,
) -> CarryoverResult:
    """
    Перенос и переплаты по закрытым месяцам: от месяца effective_date
    до текущего месяца (не включая его).

    Недостача месяца (оклад - взято) уходит в carryover, излишек в
    extra_payments; ровно оклад не даёт ничего. Некорректная дата начала
    заменяется на now, т.е. ни одного закрытого месяца.
    """
    now_dt = to_datetime(now) or datetime.now()
    salary = D(monthly_salary)
    start = to_datetime(effective_date) or now_dt

    cursor = month_start(start)
    current = month_start(now_dt)
    totals = month_totals(transactions)

    carryover = ZERO
    extra = ZERO
    months: list[MonthBalance] = []
    while cursor < current:
        taken = totals.get(cursor, ZERO)
        short = over = ZERO
        if taken < salary:
            short = salary - taken
        elif taken > salary:
            over = taken - salary
        carryover += short
        extra += over
        months.append(MonthBalance(month=cursor, taken=taken, carryover=short, extra_payment=over))
        cursor = next_month(cursor)

    return CarryoverResult(carryover=carryover, extra_payments=extra, months=tuple(months))


# ------------ running balance -------------------------------------------------
def compute_running_balance(
    transaction_id: Hashable,
    transactions: Sequence[Transaction],
    monthly_salary: Any,
    carryover: Any,
) -> Decimal:
    """carryover + оклад - всё взятое сотрудником до операции включительно.

    Неизвестный transaction_id -> 0 (без исключения).
    """
    target = next((t for t in transactions if t.id == transaction_id), None)
    if target is None:
        return ZERO

    own = sorted((t for t in transactions if t.staff_id == target.staff_id), key=_by_date)
    taken = ZERO
    for t in own:
        taken += D(t.amount)
        if t.id == target.id:
            break
    return D(carryover) + D(monthly_salary) - taken


def running_balances(
    transactions: Iterable[Transaction],
    terms: Mapping[Hashable, tuple[Any, Any]],
) -> dict[Hashable, Decimal]:
    """
    Остатки для всех операций за один проход на сотрудника.

    terms: staff_id -> (monthly_salary, carryover); сотрудник без записи
    считается с нулевым окладом и переносом.
    """
    by_staff: dict[Hashable, list[Transaction]] = defaultdict(list)
    for t in transactions:
        by_staff[t.staff_id].append(t)

    out: dict[Hashable, Decimal] = {}
    for staff_id, rows in by_staff.items():
        monthly, carry = terms.get(staff_id, (ZERO, ZERO))
        base = D(carry) + D(monthly)
        taken = ZERO
        for t in sorted(rows, key=_by_date):
            taken += D(t.amount)
            out.setdefault(t.id, base - taken)
    return out


def annotate(
    transactions: Iterable[Transaction], balances: Mapping[Hashable, Decimal]
) -> list[AnnotatedTransaction]:
    return [AnnotatedTransaction(transaction=t, running_balance=balances.get(t.id, ZERO)) for t in transactions]


# ------------ aggregate -------------------------------------------------------
def final_balances(rows: Iterable[AnnotatedTransaction]) -> dict[Hashable, AnnotatedTransaction]:
    """Самая поздняя (по дате) строка каждого сотрудника внутри окна."""
    latest: dict[Hashable, AnnotatedTransaction] = {}
    for row in sorted(rows, key=lambda r: r.transaction.date):
        latest[row.transaction.staff_id] = row
    return latest


def compute_aggregate(rows: Iterable[AnnotatedTransaction]) -> LedgerAggregate:
    rows = list(rows)
    latest = final_balances(rows)
    return LedgerAggregate(
        total_amount=sum((D(r.transaction.amount) for r in rows), ZERO),
        staff_count=len(latest),
        total_final_balance=sum((D(r.running_balance) for r in latest.values()), ZERO),
        transaction_count=len(rows),
        types_used=tuple(sorted({r.transaction.type for r in rows if r.transaction.type})),
    )
