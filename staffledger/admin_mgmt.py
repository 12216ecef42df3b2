# -*- coding: utf-8 -*-
from __future__ import annotations

import logging

from flask import Blueprint, request, jsonify, abort
from flask_login import login_required, current_user

from .extensions import db
from .models.user import User
from .acl import (
    ACTIONS,
    LEDGER_ROLES,
    PAGES,
    ROLE_LABELS,
    assignable_roles,
    page_permissions,
)
from .security import roles_required

logger = logging.getLogger(__name__)

bp = Blueprint("admin_mgmt", __name__, url_prefix="/admin")

# ---------- guard ----------
def _su_only():
    if getattr(current_user, "role", "") != "super_user":
        abort(403)

# ---------- helpers ----------
def _payload() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}

def _clean_permissions(raw) -> dict:
    """Оставляем только известные страницы/действия и булевы значения."""
    out: dict[str, dict[str, bool]] = {}
    if not isinstance(raw, dict):
        return out
    for page, actions in raw.items():
        if page not in PAGES or not isinstance(actions, dict):
            continue
        out[page] = {a: bool(actions.get(a)) for a in ACTIONS if a in actions}
    return out

def _user_row(u: User) -> dict:
    return {
        "id": u.id,
        "username": u.username,
        "name": u.display_name,
        "role": u.role,
        "role_label": ROLE_LABELS.get(u.role, u.role),
        "is_active": bool(u.is_active),
        "assignable_roles": assignable_roles(current_user, u),
        "permissions": u.permissions,
    }

# ---------- users ----------
@bp.get("/users")
@login_required
@roles_required(*LEDGER_ROLES)
def users():
    rows = User.query.order_by(User.name, User.username).all()
    return jsonify({"ok": True, "items": [_user_row(u) for u in rows]})


@bp.post("/users/<int:user_id>/role")
@login_required
def set_role(user_id: int):
    u = db.session.get(User, user_id)
    if not u:
        abort(404)
    role = (_payload().get("role") or "").strip()
    if role not in assignable_roles(current_user, u):
        return jsonify({"ok": False, "error": "role_not_assignable"}), 403
    u.role = role
    db.session.commit()
    logger.info("admin: %s -> role=%s (by %s)", u.username, role, current_user.username)
    return jsonify({"ok": True, "user": _user_row(u)})


@bp.post("/users/<int:user_id>/permissions")
@login_required
def set_permissions(user_id: int):
    _su_only()
    u = db.session.get(User, user_id)
    if not u:
        abort(404)
    u.permissions = _clean_permissions(_payload().get("permissions"))
    db.session.commit()
    return jsonify({"ok": True, "user": _user_row(u)})


@bp.get("/me/permissions")
@login_required
def my_permissions():
    return jsonify({"ok": True, "role": current_user.role, "pages": {p: page_permissions(current_user, p) for p in PAGES}})
