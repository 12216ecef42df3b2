# -*- coding: utf-8 -*-
from functools import wraps
from flask import jsonify
from flask_login import current_user


def _deny(code: str, status: int):
    return jsonify({"ok": False, "error": code}), status


def roles_required(*roles):
    """
    Не залогинен -> 401 unauthorized.
    Роли нет в списке -> 403 forbidden.
    """
    def decorator(f):
        @wraps(f)
        def wrapper(*args, **kwargs):
            if not current_user.is_authenticated:
                return _deny("unauthorized", 401)
            if current_user.role not in roles:
                return _deny("forbidden", 403)
            return f(*args, **kwargs)
        return wrapper
    return decorator
