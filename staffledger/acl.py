# -*- coding: utf-8 -*-
from __future__ import annotations
from typing import List

# роли от старшей к младшей
ROLE_HIERARCHY: List[str] = [
    "super_user",
    "admin",
    "manager",
    "sales_man",
    "stock_boy",
    "t_staff",
    "user",
]

ROLE_LABELS = {
    "super_user": "Super User",
    "admin": "Admin",
    "manager": "Manager",
    "sales_man": "Sales Man",
    "stock_boy": "Stock Boy",
    "t_staff": "T Staff",
    "user": "User",
}

# все, кроме 'user', получают зарплату
STAFF_ROLES = tuple(r for r in ROLE_HIERARCHY if r != "user")
LEDGER_ROLES = ("super_user", "admin", "manager")

# страницы и действия
PRODUCT_LIST = "ProductList"
CUSTOMER_LIST = "CustomerList"
SUPPLIER_LIST = "SupplierList"
EXPENSE_LIST = "ExpenseList"
PAGES = (PRODUCT_LIST, CUSTOMER_LIST, SUPPLIER_LIST, EXPENSE_LIST)
ACTIONS = ("create", "edit", "delete")

_CREATE_EDIT = frozenset({"create", "edit"})

# роль -> {страница: разрешённые действия}; admin/manager: всё
_ROLE_TABLE = {
    "sales_man": {
        PRODUCT_LIST: _CREATE_EDIT,
        CUSTOMER_LIST: _CREATE_EDIT,
        SUPPLIER_LIST: _CREATE_EDIT,
    },
    "stock_boy": {
        PRODUCT_LIST: frozenset({"edit"}),
    },
    "t_staff": {
        PRODUCT_LIST: _CREATE_EDIT,
        CUSTOMER_LIST: _CREATE_EDIT,
    },
}


def _rank(role: str) -> int:
    try:
        return ROLE_HIERARCHY.index(role)
    except ValueError:
        return len(ROLE_HIERARCHY)


def role_permission(role: str, page: str, action: str) -> bool:
    if role not in ROLE_HIERARCHY or role == "user":
        return False
    if role in ("super_user", "admin", "manager"):
        return True
    return action in _ROLE_TABLE.get(role, {}).get(page, frozenset())


def has_permission(user, page: str, action: str) -> bool:
    """Явная настройка пользователя по странице важнее таблицы ролей."""
    role = getattr(user, "role", "") or ""
    if role == "super_user":
        return True
    if not role:
        return False
    overrides = getattr(user, "permissions", None) or {}
    if page in overrides and isinstance(overrides[page], dict):
        return overrides[page].get(action) is True
    return role_permission(role, page, action)


def page_permissions(user, page: str) -> dict[str, bool]:
    return {a: has_permission(user, page, a) for a in ACTIONS}


def can_view_all_transactions(user) -> bool:
    return getattr(user, "role", "") in LEDGER_ROLES


def can_view_staff_ledger(user, staff_id) -> bool:
    return can_view_all_transactions(user) or getattr(user, "id", None) == staff_id


def assignable_roles(actor, target) -> List[str]:
    """
    Пусто, если цель не младше actor по иерархии.
    Обычный сотрудник может только понизить: роли ниже текущей роли цели.
    super_user/admin/manager могут и повысить: любая роль ниже своей.
    """
    role = getattr(actor, "role", "") or ""
    mine = _rank(role)
    theirs = _rank(getattr(target, "role", "") or "")
    if mine >= theirs:
        return []
    if role not in LEDGER_ROLES:
        return [r for r in ROLE_HIERARCHY if _rank(r) > theirs]
    current = getattr(target, "role", "")
    return [r for r in ROLE_HIERARCHY[mine + 1:] if r != current]
