# -*- coding: utf-8 -*-
import logging

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_user, logout_user, login_required
from ..extensions import db
from ..models.user import User

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__)


def _payload() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else request.form.to_dict()


def _user_json(u: User) -> dict:
    return {"id": u.id, "username": u.username, "name": u.display_name, "role": u.role}


def _has_super_user() -> bool:
    # проверяем по БД на каждой регистрации, без флагов в памяти процесса
    return db.session.query(User.id).filter(User.role == "super_user").first() is not None


@auth_bp.route("/register", methods=["POST"])
def register():
    f = _payload()
    username = (f.get("username") or "").strip()
    password = (f.get("password") or "").strip()
    if not username or not password:
        return jsonify({"ok": False, "error": "username_and_password_required"}), 400
    if User.query.filter_by(username=username).first():
        return jsonify({"ok": False, "error": "username_taken"}), 400

    role = "user" if _has_super_user() else "super_user"
    u = User(username=username, name=(f.get("name") or "").strip(), role=role)
    u.set_password(password)
    db.session.add(u)
    db.session.commit()
    logger.info("auth: зарегистрирован %s (role=%s)", username, role)
    return jsonify({"ok": True, "user": _user_json(u)}), 201


@auth_bp.route("/login", methods=["GET", "POST"])
def login():
    if request.method == "GET":
        if current_user.is_authenticated:
            return jsonify({"ok": True, "user": _user_json(current_user)})
        return jsonify({"ok": False, "error": "unauthorized"}), 401
    f = _payload()
    username = (f.get("username") or "").strip()
    password = (f.get("password") or "").strip()
    u = User.query.filter_by(username=username).first()
    if not u or not u.check_password(password) or not u.is_active:
        return jsonify({"ok": False, "error": "bad_credentials"}), 401
    login_user(u, remember=True)
    return jsonify({"ok": True, "user": _user_json(u)})


@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    logout_user()
    return jsonify({"ok": True})
