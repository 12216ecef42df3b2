import json
from datetime import datetime
from flask import jsonify
from flask_login import UserMixin
from werkzeug.security import check_password_hash, generate_password_hash
from ..extensions import db, login_manager

class User(db.Model, UserMixin):
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    name = db.Column(db.String(128), default="")
    role = db.Column(db.String(32), default="user")  # super_user|admin|manager|sales_man|stock_boy|t_staff|user
    permissions_json = db.Column(db.Text)  # {"ProductList": {"create": true, ...}}
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    @property
    def display_name(self) -> str:
        return self.name or self.username or f"#{self.id}"

    @property
    def permissions(self) -> dict:
        if not self.permissions_json:
            return {}
        try:
            v = json.loads(self.permissions_json)
        except ValueError:
            return {}
        return v if isinstance(v, dict) else {}

    @permissions.setter
    def permissions(self, value: dict | None) -> None:
        self.permissions_json = json.dumps(value or {})

@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, int(user_id))

@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"ok": False, "error": "unauthorized"}), 401
