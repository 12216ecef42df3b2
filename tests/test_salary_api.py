import io
from datetime import date

import pytest
from openpyxl import load_workbook
from sqlalchemy import text

from tests.conftest import months_ago


@pytest.fixture
def manager(make_user, login):
    u = make_user("boss", role="manager")
    login("boss")
    return u


def test_first_registered_user_is_super_user(client):
    r = client.post("/register", json={"username": "root", "password": "secret"})
    assert r.status_code == 201
    assert r.get_json()["user"]["role"] == "super_user"

    r = client.post("/register", json={"username": "joe", "password": "secret"})
    assert r.get_json()["user"]["role"] == "user"

    r = client.post("/register", json={"username": "joe", "password": "other"})
    assert r.status_code == 400
    assert r.get_json()["error"] == "username_taken"

    r = client.post("/register", json={"username": "", "password": "x"})
    assert r.get_json()["error"] == "username_and_password_required"


def test_login_logout(client, make_user):
    make_user("alice", password="pw")
    assert client.get("/login").status_code == 401
    assert client.post("/login", json={"username": "alice", "password": "nope"}).status_code == 401
    r = client.post("/login", json={"username": "alice", "password": "pw"})
    assert r.get_json()["user"]["username"] == "alice"
    assert client.get("/login").status_code == 200
    assert client.post("/logout").status_code == 200
    assert client.get("/").status_code == 401


def test_ledger_endpoints_require_login(client):
    assert client.get("/salary/me").status_code == 401
    assert client.get("/salary/transactions").status_code == 401


def test_payment_validation(client, db, manager, make_user):
    alice = make_user("alice")
    plain = make_user("guest", role="user")

    r = client.post("/salary/payments", json={"staff_id": plain.id, "amount": 100})
    assert r.status_code == 400 and r.get_json()["error"] == "bad_staff"
    r = client.post("/salary/payments", json={"staff_id": "x", "amount": 100})
    assert r.get_json()["error"] == "bad_staff"
    r = client.post("/salary/payments", json={"staff_id": alice.id, "amount": "-5"})
    assert r.status_code == 400 and r.get_json()["error"] == "bad_amount"
    r = client.post("/salary/payments", json={"staff_id": alice.id, "amount": "abc"})
    assert r.get_json()["error"] == "bad_amount"

    r = client.post("/salary/payments", json={"staff_id": alice.id, "amount": "250.50", "notes": " advance "})
    assert r.status_code == 201
    body = r.get_json()
    assert body["monthly_salary"] == 0.0

    from staffledger.models.salary import SalaryTransaction

    rec = db.session.get(SalaryTransaction, body["id"])
    assert rec.type == "Regular"
    assert rec.notes == "advance"
    assert rec.processed_by == manager.id
    assert rec.date.date() == date.today()


def test_staff_cannot_record_payments(client, make_user, login):
    make_user("alice")
    login("alice")
    r = client.post("/salary/payments", json={"staff_id": 1, "amount": 10})
    assert r.status_code == 403
    assert client.get("/salary/summary").status_code == 403
    assert client.get("/salary/staff").status_code == 403


def test_settings_upsert(client, manager, make_user):
    alice = make_user("alice")
    r = client.put(f"/salary/settings/{alice.id}", json={"monthly_salary": 0})
    assert r.status_code == 400 and r.get_json()["error"] == "bad_monthly_salary"

    r = client.put(f"/salary/settings/{alice.id}", json={"monthly_salary": "3000", "effective_date": "2024-03-01"})
    assert r.status_code == 201
    assert r.get_json()["setting"]["effective_date"] == "2024-03-01"

    r = client.put(f"/salary/settings/{alice.id}", json={"monthly_salary": "3200", "effective_date": "2024-03-01"})
    assert r.status_code == 200
    assert r.get_json()["created"] is False

    r = client.get(f"/salary/settings/{alice.id}")
    assert r.get_json()["setting"]["monthly_salary"] == 3200.0
    assert client.get("/salary/settings/999").status_code == 404


def test_staff_sees_only_own_setting(client, make_user, login, set_salary):
    alice = make_user("alice")
    bob = make_user("bob")
    set_salary(bob, 1000, months_ago(1))
    login("alice")
    assert client.get(f"/salary/settings/{bob.id}").status_code == 403
    r = client.get(f"/salary/settings/{alice.id}")
    assert r.status_code == 200 and r.get_json()["setting"] is None


def test_me_dashboard(client, make_user, login, set_salary, add_transaction):
    alice = make_user("alice")
    set_salary(alice, 3000, months_ago(3))
    for n in (3, 2, 1):
        add_transaction(alice, 1000, months_ago(n, 10))
    add_transaction(alice, 500, months_ago(0, 1))

    login("alice")
    body = client.get("/salary/me").get_json()
    assert body["monthly_salary"] == 3000.0
    assert body["carryover"] == 6000.0
    assert body["extra_payments"] == 0.0
    assert body["current_balance"] == 8500.0
    assert body["total_earned"] == 3500.0
    assert len(body["recent_transactions"]) == 4
    assert body["recent_transactions"][0]["running_balance"] == 5500.0


def test_staff_list_and_summary(client, manager, make_user, set_salary, add_transaction):
    alice = make_user("alice")
    bob = make_user("bob", role="stock_boy")
    set_salary(alice, 3000, months_ago(1))
    set_salary(bob, 1500, months_ago(0))
    add_transaction(alice, 1000, months_ago(1, 5))

    body = client.get("/salary/staff").get_json()
    by_name = {i["name"]: i for i in body["items"]}
    # manager тоже сотрудник
    assert set(by_name) == {"Alice", "Bob", "Boss"}
    assert by_name["Alice"]["carryover"] == 2000.0
    assert by_name["Alice"]["current_balance"] == 5000.0
    assert by_name["Bob"]["current_balance"] == 1500.0
    assert body["unavailable"] == []

    s = client.get("/salary/summary").get_json()
    assert s["total_staff"] == 3
    assert s["total_monthly_salary"] == 4500.0
    assert s["pending_payments"] == 0


def test_transactions_visibility(client, make_user, login, set_salary, add_transaction):
    alice = make_user("alice")
    bob = make_user("bob")
    set_salary(alice, 1000, months_ago(0))
    add_transaction(alice, 100, date.today())
    add_transaction(bob, 200, date.today())

    login("alice")
    body = client.get("/salary/transactions?staff=all").get_json()
    assert [i["staff_id"] for i in body["items"]] == [alice.id]
    assert body["items"][0]["running_balance"] == 900.0
    assert body["summary"]["staff_count"] == 1


def test_transactions_for_manager(client, manager, make_user, set_salary, add_transaction):
    alice = make_user("alice")
    bob = make_user("bob")
    set_salary(alice, 1000, months_ago(0))
    add_transaction(alice, 100, date.today(), notes="lunch")
    add_transaction(bob, 200, date.today(), type="Bonus")

    body = client.get("/salary/transactions").get_json()
    assert body["view"] == "Daily"
    assert body["summary"]["transaction_count"] == 2
    assert body["summary"]["types_used"] == ["Bonus", "Regular"]
    assert body["summary"]["total_final_balance"] == 900.0 - 200.0

    only_bob = client.get(f"/salary/transactions?staff={bob.id}&view=Monthly").get_json()
    assert [i["staff_id"] for i in only_bob["items"]] == [bob.id]
    assert "period_label" in only_bob["items"][0]

    assert client.get("/salary/transactions?staff=abc").status_code == 400


def test_exports(client, manager, make_user, set_salary, add_transaction):
    alice = make_user("alice")
    set_salary(alice, 1000, months_ago(0))
    add_transaction(alice, 100, date.today())
    today = date.today().isoformat()

    r = client.get(f"/salary/transactions/export.csv?start={today}&end={today}")
    assert r.status_code == 200
    assert f"salary_transactions_{today}_{today}.csv" in r.headers["Content-Disposition"]
    lines = r.get_data(as_text=True).splitlines()
    assert lines[0].startswith('"Date","Staff"')
    assert lines[-1].startswith('"TOTAL","1 staff"')

    r = client.get(f"/salary/transactions/export.xlsx?start={today}&end={today}")
    assert r.status_code == 200
    ws = load_workbook(io.BytesIO(r.data)).active
    assert ws.cell(row=1, column=6).value == "Running_Balance"
    assert ws.cell(row=2, column=2).value == "Alice"


def test_storage_failure_returns_503(client, manager, db):
    db.session.execute(text("DROP TABLE salary_transaction"))
    db.session.commit()
    r = client.get("/salary/transactions")
    assert r.status_code == 503
    assert r.get_json()["error"] == "data_unavailable"


def test_admin_role_management(client, make_user, login):
    make_user("root", role="super_user")
    joe = make_user("joe", role="user")
    boss = make_user("boss2", role="manager")
    login("root")

    items = client.get("/admin/users").get_json()["items"]
    row = next(i for i in items if i["username"] == "joe")
    assert "sales_man" in row["assignable_roles"]

    r = client.post(f"/admin/users/{joe.id}/role", json={"role": "sales_man"})
    assert r.status_code == 200 and r.get_json()["user"]["role"] == "sales_man"

    r = client.post(f"/admin/users/{joe.id}/role", json={"role": "super_user"})
    assert r.status_code == 403

    r = client.post(f"/admin/users/{boss.id}/permissions",
                    json={"permissions": {"ProductList": {"delete": True}, "Bogus": {"edit": True}}})
    assert r.get_json()["user"]["permissions"] == {"ProductList": {"delete": True}}


def test_manager_cannot_set_permissions(client, make_user, login):
    joe = make_user("joe", role="user")
    make_user("boss2", role="manager")
    login("boss2")
    assert client.post(f"/admin/users/{joe.id}/permissions", json={"permissions": {}}).status_code == 403
    assert client.post(f"/admin/users/{joe.id}/role", json={"role": "admin"}).status_code == 403
    pages = client.get("/admin/me/permissions").get_json()["pages"]
    assert pages["ExpenseList"] == {"create": True, "edit": True, "delete": True}


def test_plain_staff_cannot_promote(client, make_user, login):
    joe = make_user("joe", role="user")
    t = make_user("temp", role="t_staff")
    make_user("sam", role="sales_man")
    login("sam")
    assert client.post(f"/admin/users/{joe.id}/role", json={"role": "stock_boy"}).status_code == 403
    assert client.post(f"/admin/users/{t.id}/role", json={"role": "stock_boy"}).status_code == 403
    r = client.post(f"/admin/users/{t.id}/role", json={"role": "user"})
    assert r.status_code == 200 and r.get_json()["user"]["role"] == "user"


def test_payment_not_saved_when_setting_read_fails(client, db, manager, make_user, monkeypatch):
    import staffledger.modules.salary as salary_module
    from staffledger.loader import DataUnavailable
    from staffledger.models.salary import SalaryTransaction

    alice = make_user("alice")

    def broken(staff_id):
        raise DataUnavailable("boom", staff_id=staff_id)

    monkeypatch.setattr(salary_module, "get_salary_setting", broken)
    r = client.post("/salary/payments", json={"staff_id": alice.id, "amount": 100})
    assert r.status_code == 503
    assert db.session.query(SalaryTransaction).count() == 0


def test_app_has_no_template_filters(app, client):
    assert "fmt_money" not in app.jinja_env.filters
    assert "fmt_date" not in app.jinja_env.filters
    r = client.get("/nowhere")
    assert r.status_code == 404 and r.get_json() == {"ok": False, "error": "not_found"}
