# -*- coding: utf-8 -*-
"""Граница загрузки данных: строки БД -> записи журнала (ledger.Transaction/SalarySetting)."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from .extensions import db
from .ledger import (
    ZERO,
    CarryoverResult,
    D,
    DateRange,
    SalarySetting,
    Transaction,
    compute_month_carryover,
    to_datetime,
)
from .models.salary import SalarySetting as SalarySettingRow
from .models.salary import SalaryTransaction

logger = logging.getLogger(__name__)


class DataUnavailable(Exception):
    """Хранилище не ответило: считать нечего, частичных данных не отдаём."""

    def __init__(self, message: str = "data unavailable", staff_id: Any = None):
        super().__init__(message)
        self.staff_id = staff_id


@dataclass(frozen=True)
class StaffLedger:
    staff_id: Any
    transactions: tuple[Transaction, ...]
    setting: SalarySetting | None
    carryover: CarryoverResult
    as_of: datetime | None = None

    @property
    def monthly_salary(self):
        return self.setting.monthly_salary if self.setting else ZERO


# ------------ coercion --------------------------------------------------------
def to_transaction(row: SalaryTransaction) -> Transaction | None:
    moment = to_datetime(row.date)
    if moment is None:
        logger.warning("salary_transaction id=%s: нет даты, строка пропущена", row.id)
        return None
    amount = D(row.amount)
    if amount == ZERO and row.amount not in (None, 0):
        logger.warning("salary_transaction id=%s: сумма %r приведена к 0", row.id, row.amount)
    return Transaction(
        id=row.id,
        staff_id=row.staff_id,
        amount=amount,
        type=row.type or "Regular",
        date=moment,
        notes=row.notes or "",
        staff_name=row.staff_name or "",
    )


def to_setting(row: SalarySettingRow) -> SalarySetting:
    return SalarySetting(
        staff_id=row.staff_id,
        monthly_salary=D(row.monthly_salary),
        effective_date=to_datetime(row.effective_date),
        notes=row.notes or "",
    )


def _records(rows) -> list[Transaction]:
    out = []
    for r in rows:
        t = to_transaction(r)
        if t is not None:
            out.append(t)
    return out


def _windowed(q, date_range: DateRange | None):
    if date_range is None:
        return q
    if date_range.start_dt is not None:
        q = q.filter(SalaryTransaction.date >= date_range.start_dt)
    if date_range.end_dt is not None:
        q = q.filter(SalaryTransaction.date < date_range.end_dt)
    return q


# ------------ queries ---------------------------------------------------------
def list_transactions_for_staff(staff_id, date_range: DateRange | None = None) -> list[Transaction]:
    try:
        q = _windowed(SalaryTransaction.query.filter(SalaryTransaction.staff_id == staff_id), date_range)
        rows = q.order_by(SalaryTransaction.date.asc(), SalaryTransaction.id.asc()).all()
    except SQLAlchemyError as exc:
        logger.exception("salary ledger: не удалось загрузить операции сотрудника %s", staff_id)
        raise DataUnavailable(str(exc), staff_id=staff_id) from exc
    return _records(rows)


def list_all_transactions(date_range: DateRange | None = None) -> list[Transaction]:
    try:
        q = _windowed(SalaryTransaction.query, date_range)
        rows = q.order_by(SalaryTransaction.date.asc(), SalaryTransaction.id.asc()).all()
    except SQLAlchemyError as exc:
        logger.exception("salary ledger: не удалось загрузить журнал операций")
        raise DataUnavailable(str(exc)) from exc
    return _records(rows)


def list_recent_transactions(limit: int) -> list[Transaction]:
    try:
        rows = (
            SalaryTransaction.query.order_by(SalaryTransaction.date.desc(), SalaryTransaction.id.desc())
            .limit(limit)
            .all()
        )
    except SQLAlchemyError as exc:
        logger.exception("salary ledger: не удалось загрузить последние операции")
        raise DataUnavailable(str(exc)) from exc
    return _records(rows)


def get_salary_setting(staff_id) -> SalarySetting | None:
    try:
        row = SalarySettingRow.query.filter_by(staff_id=staff_id).first()
    except SQLAlchemyError as exc:
        logger.exception("salary ledger: не удалось загрузить оклад сотрудника %s", staff_id)
        raise DataUnavailable(str(exc), staff_id=staff_id) from exc
    return to_setting(row) if row else None


def list_salary_settings() -> dict[Any, SalarySetting]:
    try:
        rows = SalarySettingRow.query.all()
    except SQLAlchemyError as exc:
        logger.exception("salary ledger: не удалось загрузить оклады")
        raise DataUnavailable(str(exc)) from exc
    return {r.staff_id: to_setting(r) for r in rows}


def load_staff_ledger(staff_id, now: datetime | None = None) -> StaffLedger:
    """Полный журнал + оклад + перенос одного сотрудника; либо всё, либо DataUnavailable."""
    now = now or datetime.now()
    transactions = list_transactions_for_staff(staff_id)
    setting = get_salary_setting(staff_id)
    if setting is None:
        carry = CarryoverResult()
    else:
        carry = compute_month_carryover(transactions, setting.monthly_salary, setting.effective_date, now)
    return StaffLedger(
        staff_id=staff_id,
        transactions=tuple(transactions),
        setting=setting,
        carryover=carry,
        as_of=now,
    )


def session_rollback() -> None:
    try:
        db.session.rollback()
    except SQLAlchemyError:
        logger.exception("salary ledger: rollback не удался")
