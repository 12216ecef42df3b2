# -*- coding: utf-8 -*-
from __future__ import annotations

import io
import logging
from datetime import date, datetime, timedelta

from flask import Blueprint, Response, abort, current_app, jsonify, request, send_file
from flask_login import current_user, login_required

from ...acl import LEDGER_ROLES, STAFF_ROLES, can_view_all_transactions, can_view_staff_ledger
from ...extensions import db
from ...formatting import fmt_date, money
from ...ledger import ZERO, AnnotatedTransaction, D, DateRange, to_datetime
from ...loader import (
    DataUnavailable,
    get_salary_setting,
    list_recent_transactions,
    list_salary_settings,
    load_staff_ledger,
    session_rollback,
)
from ...models.salary import SalarySetting, SalaryTransaction
from ...models.user import User
from ...reporting import (
    VIEW_MODES,
    admin_summary,
    export_csv,
    export_filename,
    export_xlsx,
    load_history,
    staff_summary,
)
from ...security import roles_required

logger = logging.getLogger(__name__)

bp = Blueprint("salary", __name__, url_prefix="/salary")


# ------------ helpers ---------------------------------------------------------
def _payload() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else request.form.to_dict()


def _m(v) -> float:
    return float(money(v))


def _parse_date(s: str | None) -> date | None:
    if not s:
        return None
    try:
        return date.fromisoformat(str(s)[:10])
    except ValueError:
        return None


def _row_json(r: AnnotatedTransaction) -> dict:
    t = r.transaction
    out = {
        "id": t.id,
        "staff_id": t.staff_id,
        "staff_name": t.staff_name or "Unknown",
        "amount": _m(t.amount),
        "type": t.type,
        "notes": t.notes,
        "date": t.date.isoformat(),
        "date_label": fmt_date(t.date),
        "running_balance": _m(r.running_balance),
    }
    if r.period_start is not None:
        out["period_start"] = r.period_start.isoformat()
        out["period_label"] = r.period_label
    return out


def _setting_json(s: SalarySetting) -> dict:
    return {
        "staff_id": s.staff_id,
        "staff_name": s.staff_name,
        "monthly_salary": _m(s.monthly_salary),
        "effective_date": s.effective_date.date().isoformat() if s.effective_date else None,
        "notes": s.notes or "",
    }


def _staff_members() -> list[User]:
    rows = User.query.filter(User.role.in_(STAFF_ROLES)).all()
    return sorted(rows, key=lambda u: (u.name or "").lower())


def _staff_or_404(staff_id: int) -> User:
    u = db.session.get(User, staff_id)
    if not u:
        abort(404)
    return u


def _history_args():
    today = date.today()
    days = current_app.config.get("SALARY_HISTORY_DAYS", 30)
    start = _parse_date(request.args.get("start")) or (today - timedelta(days=days))
    end = _parse_date(request.args.get("end")) or today
    view = request.args.get("view") or "Daily"
    if view not in VIEW_MODES:
        view = "Daily"

    staff_raw = (request.args.get("staff") or "all").strip()
    if not can_view_all_transactions(current_user):
        # обычный сотрудник видит только свои операции
        staff_id = current_user.id
    elif staff_raw == "all":
        staff_id = None
    else:
        try:
            staff_id = int(staff_raw)
        except ValueError:
            abort(400)
    return DateRange(start, end), staff_id, view


@bp.errorhandler(DataUnavailable)
def _data_unavailable(exc: DataUnavailable):
    session_rollback()
    return jsonify({"ok": False, "error": "data_unavailable", "staff_id": exc.staff_id}), 503


# ------------ dashboards ------------------------------------------------------
@bp.get("/me")
@login_required
def me():
    ledger = load_staff_ledger(current_user.id, datetime.now())
    s = staff_summary(ledger, current_app.config.get("SALARY_RECENT_LIMIT", 5))
    return jsonify({
        "ok": True,
        "monthly_salary": _m(s.monthly_salary),
        "carryover": _m(s.carryover),
        "extra_payments": _m(s.extra_payments),
        "total_earned": _m(s.total_earned),
        "total_paid": _m(s.total_paid),
        "current_balance": _m(s.current_balance),
        "recent_transactions": [_row_json(r) for r in s.recent],
    })


@bp.get("/summary")
@login_required
@roles_required(*LEDGER_ROLES)
def summary():
    staff = _staff_members()
    settings = list_salary_settings()
    recent = list_recent_transactions(current_app.config.get("SALARY_PENDING_SCAN", 50))
    s = admin_summary([u.id for u in staff], settings, recent, datetime.now())
    return jsonify({
        "ok": True,
        "total_staff": s.total_staff,
        "total_monthly_salary": _m(s.total_monthly_salary),
        "current_week": s.current_week,
        "pending_payments": s.pending_payments,
    })


@bp.get("/staff")
@login_required
@roles_required(*LEDGER_ROLES)
def staff_list():
    now = datetime.now()
    items, unavailable = [], []
    for u in _staff_members():
        try:
            ledger = load_staff_ledger(u.id, now)
        except DataUnavailable:
            unavailable.append(u.id)
            continue
        s = staff_summary(ledger, 0)
        items.append({
            "id": u.id,
            "name": u.display_name,
            "role": u.role,
            "monthly_salary": _m(s.monthly_salary),
            "carryover": _m(s.carryover),
            "extra_payments": _m(s.extra_payments),
            "current_balance": _m(s.current_balance),
        })
    return jsonify({"ok": True, "items": items, "unavailable": unavailable})


# ------------ settings --------------------------------------------------------
@bp.get("/settings/<int:staff_id>")
@login_required
def get_settings(staff_id: int):
    if not can_view_staff_ledger(current_user, staff_id):
        abort(403)
    _staff_or_404(staff_id)
    s = SalarySetting.query.filter_by(staff_id=staff_id).first()
    return jsonify({"ok": True, "setting": _setting_json(s) if s else None})


@bp.route("/settings/<int:staff_id>", methods=["PUT", "POST"])
@login_required
@roles_required(*LEDGER_ROLES)
def save_settings(staff_id: int):
    staff = _staff_or_404(staff_id)
    f = _payload()
    salary = D(f.get("monthly_salary"))
    if salary <= 0:
        return jsonify({"ok": False, "error": "bad_monthly_salary"}), 400
    effective = to_datetime(_parse_date(f.get("effective_date")) or date.today())

    s = SalarySetting.query.filter_by(staff_id=staff_id).first()
    created = s is None
    if created:
        s = SalarySetting(staff_id=staff_id)
        db.session.add(s)
    s.staff_name = staff.display_name
    s.staff_role = staff.role
    s.monthly_salary = salary
    s.effective_date = effective
    s.notes = (f.get("notes") or "").strip()
    s.updated_at = datetime.utcnow()
    db.session.commit()
    logger.info("salary: оклад %s для сотрудника %s с %s", salary, staff_id, effective.date())
    return jsonify({"ok": True, "created": created, "setting": _setting_json(s)}), (201 if created else 200)


# ------------ payments --------------------------------------------------------
@bp.post("/payments")
@login_required
@roles_required(*LEDGER_ROLES)
def record_payment():
    f = _payload()
    try:
        staff_id = int(f.get("staff_id") or 0)
    except (TypeError, ValueError):
        staff_id = 0
    staff = db.session.get(User, staff_id) if staff_id else None
    if not staff or staff.role not in STAFF_ROLES:
        return jsonify({"ok": False, "error": "bad_staff"}), 400
    amount = D(f.get("amount"))
    if amount <= 0:
        return jsonify({"ok": False, "error": "bad_amount"}), 400
    when = _parse_date(f.get("date")) or date.today()
    # оклад читаем до записи выплаты
    setting = get_salary_setting(staff.id)

    rec = SalaryTransaction(
        staff_id=staff.id,
        staff_name=staff.display_name,
        staff_role=staff.role,
        amount=amount,
        type=(f.get("type") or "Regular").strip() or "Regular",
        notes=(f.get("notes") or "").strip(),
        date=to_datetime(when),
        processed_by=current_user.id,
        processed_by_name=current_user.display_name,
    )
    db.session.add(rec)
    db.session.commit()
    logger.info("salary: выплата %s сотруднику %s (%s)", amount, staff.id, rec.type)
    return jsonify({
        "ok": True,
        "id": rec.id,
        "monthly_salary": _m(setting.monthly_salary if setting else ZERO),
    }), 201


# ------------ history ---------------------------------------------------------
@bp.get("/transactions")
@login_required
def transactions():
    date_range, staff_id, view = _history_args()
    h = load_history(date_range, staff_id, view, datetime.now())
    agg = h.aggregate
    return jsonify({
        "ok": True,
        "view": h.view,
        "start": date_range.start.isoformat(),
        "end": date_range.end.isoformat(),
        "items": [_row_json(r) for r in h.rows],
        "summary": {
            "total_amount": _m(agg.total_amount),
            "staff_count": agg.staff_count,
            "total_final_balance": _m(agg.total_final_balance),
            "transaction_count": agg.transaction_count,
            "types_used": list(agg.types_used),
        },
        "unavailable": list(h.unavailable),
    })


@bp.get("/transactions/export.csv")
@login_required
def export_transactions_csv():
    date_range, staff_id, view = _history_args()
    h = load_history(date_range, staff_id, view, datetime.now())
    return Response(
        export_csv(h),
        mimetype="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{export_filename(date_range, "csv")}"'},
    )


@bp.get("/transactions/export.xlsx")
@login_required
def export_transactions_xlsx():
    date_range, staff_id, view = _history_args()
    h = load_history(date_range, staff_id, view, datetime.now())
    return send_file(
        io.BytesIO(export_xlsx(h)),
        mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        as_attachment=True,
        download_name=export_filename(date_range, "xlsx"),
    )
