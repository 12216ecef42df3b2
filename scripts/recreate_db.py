# -*- coding: utf-8 -*-
"""
Полный ресет SQLite-БД и демо-наполнение зарплатного журнала.

Запуск из корня проекта:
  python scripts/recreate_db.py
"""

from __future__ import annotations
import sys, traceback
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Optional
from sqlalchemy import text

# --- путь к проекту ---
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

print(f"[recreate] ROOT={ROOT}")
if not (ROOT / "staffledger" / "__init__.py").exists():
    raise SystemExit("[recreate] ошибка: staffledger/__init__.py не найден рядом со scripts/")

print("[recreate] импорт приложения…")
from staffledger import create_app  # type: ignore
from staffledger.extensions import db  # type: ignore
from staffledger.ledger import month_start, next_month  # type: ignore
from staffledger.models.user import User  # type: ignore
from staffledger.models.salary import SalarySetting, SalaryTransaction  # type: ignore


def _db_path_from_uri(uri: str) -> Optional[Path]:
    if uri.startswith("sqlite:///"):
        return Path(uri.replace("sqlite:///", "")).resolve()
    return None


def _cnt(table: str) -> int:
    return int(db.session.execute(text(f'SELECT COUNT(*) FROM "{table}"')).scalar() or 0)


def _months_back(n: int) -> date:
    # первое число месяца n месяцев назад
    y, m = date.today().year, date.today().month - n
    while m <= 0:
        y, m = y - 1, m + 12
    return date(y, m, 1)


def main() -> int:
    print("[recreate] create_app()…")
    app = create_app()
    with app.app_context():
        uri = app.config.get("SQLALCHEMY_DATABASE_URI", "")
        print(f"[recreate] SQLALCHEMY_DATABASE_URI = {uri}")

        db_path = _db_path_from_uri(uri)
        if db_path:
            db_path.parent.mkdir(parents=True, exist_ok=True)
            if db_path.exists():
                print(f"[recreate] удаляю файл БД: {db_path}")
                db.engine.dispose()
                db_path.unlink()
            else:
                print(f"[recreate] файл БД ещё не существует: {db_path}")
        else:
            print("[recreate] БД не sqlite, пропускаю удаление файла")

        print("[recreate] создаю таблицы по моделям…")
        db.create_all()

        # --- пользователи ---
        print("[recreate] создаю пользователей…")
        people = [
            ("root", "root", "Owner", "super_user"),
            ("manager", "manager", "Shop Manager", "manager"),
            ("sales1", "sales1", "Sales One", "sales_man"),
            ("stock1", "stock1", "Stock One", "stock_boy"),
        ]
        users = {}
        for username, password, name, role in people:
            u = User(username=username, name=name, role=role)
            u.set_password(password)
            db.session.add(u)
            users[username] = u
        db.session.commit()
        print(f"[recreate] user rows={_cnt('user')}")

        # --- оклады: с начала месяца три месяца назад ---
        print("[recreate] назначаю оклады…")
        effective = _months_back(3)
        for key, salary in (("sales1", "3000"), ("stock1", "2200")):
            u = users[key]
            db.session.add(SalarySetting(
                staff_id=u.id, staff_name=u.name, staff_role=u.role,
                monthly_salary=Decimal(salary),
                effective_date=datetime(effective.year, effective.month, effective.day),
            ))
        db.session.commit()
        print(f"[recreate] salary_setting rows={_cnt('salary_setting')}")

        # --- операции: по одной выдаче в каждом месяце ---
        print("[recreate] добавляю операции…")
        cursor = effective
        current = month_start(date.today())
        while cursor <= current:
            for key, amount in (("sales1", "1000"), ("stock1", "2500")):
                u = users[key]
                db.session.add(SalaryTransaction(
                    staff_id=u.id, staff_name=u.name, staff_role=u.role,
                    amount=Decimal(amount), type="Regular",
                    date=datetime(cursor.year, cursor.month, 10),
                    processed_by=users["root"].id, processed_by_name=users["root"].name,
                ))
            cursor = next_month(cursor)
        db.session.commit()
        print(f"[recreate] salary_transaction rows={_cnt('salary_transaction')}")

        print("\n[recreate] Готово.")
        print("Логины:")
        for username, password, _, role in people:
            print(f"  {username:<8} / {password:<8} ({role})")
        if db_path:
            print(f"\nФайл БД: {db_path}")
        return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except Exception:
        print("\n[recreate] ОШИБКА:")
        traceback.print_exc()
        sys.exit(1)
