# Overview: Staff accounts and departments (permission groups).

"""
User rules

- name and login phone are required; login phone is unique across users.
- Passwords are stored only as bcrypt hashes.
- Deleting a department strips it from every user.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

import bcrypt

from ..domain.entities import USER_ACTIVE, USER_INACTIVE, User
from ..domain.permissions import Department, PermissionFormatError, parse_permissions, user_can
from ..domain.state import AppState, CommandResult
from ..time_utils import today_iso
from .ledger_service import IdFactory, default_id_factory


logger = logging.getLogger(__name__)

USER_FIELDS = {"name", "login_phone", "email", "status", "department_ids", "address"}


class UserError(Exception):
    """Raised when a user or department change is refused."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class UserNotFoundError(UserError):
    pass


class UserConflictError(UserError):
    pass


def hash_password(password: str, rounds: int = 12) -> str:
    if not password:
        raise UserError("password is required")
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def _find_user(state: AppState, user_id: str) -> User:
    user = state.find_user(user_id)
    if user is None:
        raise UserNotFoundError("User not found", details={"user_id": user_id})
    return user


def _validate(state: AppState, fields: dict, own_id: Optional[str] = None) -> dict:
    if "name" in fields and not (fields["name"] or "").strip():
        raise UserError("name is required")
    if "login_phone" in fields:
        login = (fields["login_phone"] or "").strip()
        if not login:
            raise UserError("login_phone is required")
        if any(u.login_phone == login and u.id != own_id for u in state.users):
            raise UserConflictError("Login phone already in use", details={"login_phone": login})
        fields["login_phone"] = login
    if "status" in fields and fields["status"] not in (USER_ACTIVE, USER_INACTIVE):
        raise UserError(f"Unknown status: {fields['status']}")
    if "department_ids" in fields:
        known = {d.id for d in state.departments}
        unknown = [d for d in fields["department_ids"] if d not in known]
        if unknown:
            raise UserError("Unknown departments", details={"department_ids": unknown})
        fields["department_ids"] = tuple(fields["department_ids"])
    return fields


def create_user(
    state: AppState,
    data: dict,
    password: str,
    *,
    bcrypt_rounds: int = 12,
    id_factory: IdFactory = default_id_factory,
) -> CommandResult:
    fields = {k: v for k, v in data.items() if k in USER_FIELDS}
    fields.setdefault("name", "")
    fields.setdefault("login_phone", "")
    fields = _validate(state, fields)
    user = User(
        id=id_factory("U"),
        password_hash=hash_password(password, bcrypt_rounds),
        creation_date=today_iso(),
        **fields,
    )
    logger.info("Created user %s", user.id)
    return CommandResult(replace(state, users=state.users + (user,)), user)


def update_user(
    state: AppState,
    user_id: str,
    patch: dict,
    password: Optional[str] = None,
    *,
    bcrypt_rounds: int = 12,
) -> CommandResult:
    user = _find_user(state, user_id)
    fields = _validate(state, {k: v for k, v in patch.items() if k in USER_FIELDS}, own_id=user_id)
    updated = replace(user, **fields)
    if password:
        updated = replace(updated, password_hash=hash_password(password, bcrypt_rounds))
    users = tuple(updated if u.id == user_id else u for u in state.users)
    return CommandResult(replace(state, users=users), updated)


def delete_user(state: AppState, user_id: str) -> CommandResult:
    _find_user(state, user_id)
    return CommandResult(replace(state, users=tuple(u for u in state.users if u.id != user_id)), user_id)


def search_users(state: AppState, query: str = "") -> list[User]:
    needle = (query or "").strip().lower()
    if not needle:
        return list(state.users)
    return [
        u for u in state.users
        if needle in u.name.lower() or needle in u.login_phone.lower() or needle in (u.email or "").lower()
    ]


# ---------------------------------------------------------------------------
# Departments
# ---------------------------------------------------------------------------

def _find_department(state: AppState, department_id: str) -> Department:
    for dept in state.departments:
        if dept.id == department_id:
            return dept
    raise UserNotFoundError("Department not found", details={"department_id": department_id})


def _parse_perms(raw) -> dict:
    try:
        return parse_permissions(raw)
    except PermissionFormatError as e:
        raise UserError(str(e))


def save_department(
    state: AppState,
    data: dict,
    department_id: Optional[str] = None,
    *,
    id_factory: IdFactory = default_id_factory,
) -> CommandResult:
    """Create (no department_id) or replace a department."""
    name = (data.get("name") or "").strip()
    if not name:
        raise UserError("name is required")
    dept = Department(
        id=department_id or id_factory("dept"),
        name=name,
        description=data.get("description") or "",
        permissions=_parse_perms(data.get("permissions")),
    )
    if department_id is None:
        return CommandResult(replace(state, departments=state.departments + (dept,)), dept)
    _find_department(state, department_id)
    departments = tuple(dept if d.id == department_id else d for d in state.departments)
    return CommandResult(replace(state, departments=departments), dept)


def delete_department(state: AppState, department_id: str) -> CommandResult:
    _find_department(state, department_id)
    departments = tuple(d for d in state.departments if d.id != department_id)
    users = tuple(
        replace(u, department_ids=tuple(d for d in u.department_ids if d != department_id))
        if department_id in u.department_ids else u
        for u in state.users
    )
    return CommandResult(replace(state, departments=departments, users=users), department_id)


def user_departments(state: AppState, user: User) -> list[Department]:
    return [d for d in state.departments if d.id in user.department_ids]


def has_permission(state: AppState, user: User, module: str, action: Optional[str] = None) -> bool:
    return user_can(user_departments(state, user), module, action)
