# -*- coding: utf-8 -*-
import logging

from flask import Flask, jsonify
from flask_login import login_required
from werkzeug.exceptions import HTTPException

from .config import Config, ensure_instance
from .extensions import db, migrate, login_manager

# блюпринты
from .auth import auth_bp
from .modules.salary import bp as salary_bp
from .admin_mgmt import bp as admin_mgmt_bp


def _configure_logging(app) -> None:
    level = str(app.config.get("LOG_LEVEL") or "INFO").upper()
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
    root.setLevel(level)


def create_app(config_object=None):
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_object or Config)
    ensure_instance(app)
    _configure_logging(app)

    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)

    # модели должны быть зарегистрированы до create_all / flask db
    from . import models  # noqa: F401

    # --- ошибки HTTP в JSON ---
    @app.errorhandler(HTTPException)
    def http_error(exc: HTTPException):
        return jsonify({"ok": False, "error": (exc.name or "error").lower().replace(" ", "_")}), exc.code

    # --- блюпринты ---
    app.register_blueprint(auth_bp)
    app.register_blueprint(salary_bp)
    app.register_blueprint(admin_mgmt_bp)

    # --- главная ---
    @app.route("/")
    @login_required
    def home():
        return jsonify({"ok": True, "app": "staffledger"})

    return app
