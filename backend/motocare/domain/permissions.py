# Overview: Department permission model as a tagged union of toggles and leveled grants.

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union


LEVEL_ALL = "all"
LEVEL_RESTRICTED = "restricted"
LEVEL_NONE = "none"
LEVELS = (LEVEL_ALL, LEVEL_RESTRICTED, LEVEL_NONE)

# Module keys used by the shop screens
MODULE_SERVICE = "service"
MODULE_INVENTORY = "inventory"
MODULE_SALES = "sales"
MODULE_USER_MANAGER = "userManager"


class PermissionFormatError(ValueError):
    """Raised when a stored permission entry is neither a toggle nor a leveled grant."""


@dataclass(frozen=True)
class Toggle:
    enabled: bool

    def allows(self, action: str | None = None) -> bool:
        return self.enabled

    def to_json(self):
        return self.enabled


@dataclass(frozen=True)
class Leveled:
    level: str
    details: dict[str, bool] = field(default_factory=dict)

    def __post_init__(self):
        if self.level not in LEVELS:
            raise PermissionFormatError(f"Unknown permission level: {self.level}")

    def allows(self, action: str | None = None) -> bool:
        """
        all -> everything; none -> nothing; restricted -> only actions flagged
        true in details (no action means "can open the module at all").
        """
        if self.level == LEVEL_ALL:
            return True
        if self.level == LEVEL_NONE:
            return False
        if action is None:
            return any(self.details.values())
        return bool(self.details.get(action, False))

    def to_json(self):
        return {"level": self.level, "details": dict(self.details)}


Permission = Union[Toggle, Leveled]


def parse_permission(raw) -> Permission:
    if isinstance(raw, bool):
        return Toggle(raw)
    if isinstance(raw, dict) and "level" in raw:
        details = raw.get("details") or {}
        if not isinstance(details, dict):
            raise PermissionFormatError("Permission details must be an object")
        return Leveled(level=raw["level"], details={str(k): bool(v) for k, v in details.items()})
    raise PermissionFormatError(f"Unsupported permission value: {raw!r}")


def parse_permissions(raw: dict | None) -> dict[str, Permission]:
    return {key: parse_permission(value) for key, value in (raw or {}).items()}


def permissions_to_json(perms: dict[str, Permission]) -> dict:
    return {key: p.to_json() for key, p in perms.items()}


@dataclass(frozen=True)
class Department:
    id: str
    name: str
    description: str = ""
    permissions: dict[str, Permission] = field(default_factory=dict)

    def allows(self, module: str, action: str | None = None) -> bool:
        perm = self.permissions.get(module)
        return perm.allows(action) if perm is not None else False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "permissions": permissions_to_json(self.permissions),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Department":
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            description=data.get("description", ""),
            permissions=parse_permissions(data.get("permissions")),
        )


def user_can(departments: list[Department], module: str, action: str | None = None) -> bool:
    """A user holds a permission when any of their departments grants it."""
    return any(d.allows(module, action) for d in departments)
