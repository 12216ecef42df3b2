"""
Фикстуры pytest: приложение на in-memory SQLite, тестовый клиент,
фабрика пользователей и логин.
"""
from datetime import date, datetime

import pytest

from staffledger import create_app
from staffledger.extensions import db as _db
from staffledger.models.user import User


class TestConfig:
    TESTING = True
    SECRET_KEY = "test-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = "WARNING"
    SALARY_HISTORY_DAYS = 30
    SALARY_RECENT_LIMIT = 5
    SALARY_PENDING_SCAN = 50


def months_ago(n: int, day: int = 1) -> date:
    """Число day месяца, который был n месяцев назад."""
    today = date.today()
    y, m = today.year, today.month - n
    while m <= 0:
        y, m = y - 1, m + 12
    return date(y, m, day)


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def db(app):
    return _db


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(db):
    def _make(username, role="sales_man", password="pw", name=None):
        u = User(username=username, name=name or username.title(), role=role)
        u.set_password(password)
        db.session.add(u)
        db.session.commit()
        return u
    return _make


@pytest.fixture
def login(client):
    def _login(username, password="pw"):
        resp = client.post("/login", json={"username": username, "password": password})
        assert resp.status_code == 200, resp.get_json()
        return resp
    return _login


@pytest.fixture
def add_transaction(db):
    from staffledger.models.salary import SalaryTransaction

    def _add(staff, amount, when, type="Regular", notes=""):
        if isinstance(when, date) and not isinstance(when, datetime):
            when = datetime(when.year, when.month, when.day)
        rec = SalaryTransaction(
            staff_id=staff.id,
            staff_name=staff.name,
            staff_role=staff.role,
            amount=amount,
            type=type,
            notes=notes,
            date=when,
        )
        db.session.add(rec)
        db.session.commit()
        return rec
    return _add


@pytest.fixture
def set_salary(db):
    from staffledger.models.salary import SalarySetting

    def _set(staff, monthly_salary, effective):
        s = SalarySetting(
            staff_id=staff.id,
            staff_name=staff.name,
            staff_role=staff.role,
            monthly_salary=monthly_salary,
            effective_date=datetime(effective.year, effective.month, effective.day),
        )
        db.session.add(s)
        db.session.commit()
        return s
    return _set
