# -*- coding: utf-8 -*-
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP

from .ledger import D

CENT = Decimal("0.01")

MONTHS_EN = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]


def money(v) -> Decimal:
    """Округление до копеек, только для вывода."""
    return D(v).quantize(CENT, rounding=ROUND_HALF_UP)


def fmt_money(v) -> str:
    return f"{money(v):.2f}"


def fmt_date(value, fmt="%d/%m/%Y"):
    if value in (None, ""):
        return ""
    try:
        if isinstance(value, (datetime, date)):
            return value.strftime(fmt)
        s = str(value)
        try:
            return datetime.fromisoformat(s).strftime(fmt)
        except ValueError:
            return date.fromisoformat(s[:10]).strftime(fmt)
    except ValueError:
        return str(value)


def month_label(d: date) -> str:
    return f"{MONTHS_EN[d.month - 1]} {d.year}"
