# Overview: Store settings, branch list and the selected branch.

from __future__ import annotations

from dataclasses import replace
from typing import Optional

from ..domain.entities import Branch
from ..domain.state import AppState, CommandResult


SETTINGS_FIELDS = {
    "name", "address", "phone", "bank_name", "bank_account_number", "bank_account_holder",
}


class SettingsError(Exception):
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def _parse_branches(raw) -> tuple[Branch, ...]:
    if not isinstance(raw, list) or not raw:
        raise SettingsError("At least one branch is required")
    branches = []
    seen = set()
    for item in raw:
        if not isinstance(item, dict):
            raise SettingsError("Each branch must be an object with id and name")
        branch_id = str(item.get("id") or "").strip()
        name = str(item.get("name") or "").strip()
        if not branch_id or not name:
            raise SettingsError("Branch id and name are required")
        if branch_id in seen:
            raise SettingsError("Duplicate branch id", details={"branch_id": branch_id})
        seen.add(branch_id)
        branches.append(Branch(id=branch_id, name=name))
    return tuple(branches)


def update_settings(state: AppState, patch: dict) -> CommandResult:
    """
    Update shop details and/or the branch list. Removing the selected
    branch moves the selection to the first remaining branch.
    """
    changes = {k: v for k, v in patch.items() if k in SETTINGS_FIELDS}
    if "branches" in patch:
        changes["branches"] = _parse_branches(patch["branches"])
    settings = replace(state.store_settings, **changes)

    current = state.current_branch_id
    if current not in settings.branch_ids():
        current = settings.branch_ids()[0]
    return CommandResult(replace(state, store_settings=settings, current_branch_id=current), settings)


def select_branch(state: AppState, branch_id: str) -> CommandResult:
    if branch_id not in state.store_settings.branch_ids():
        raise SettingsError(f"Unknown branch: {branch_id}", details={"branch_id": branch_id})
    return CommandResult(replace(state, current_branch_id=branch_id), branch_id)


def resolve_branch(state: AppState, requested: Optional[str]) -> str:
    """Branch a request should act on: the requested one, else the selected one."""
    if requested:
        if requested not in state.store_settings.branch_ids():
            raise SettingsError(f"Unknown branch: {requested}", details={"branch_id": requested})
        return requested
    return state.current_branch_id
