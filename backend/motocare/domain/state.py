# Overview: Immutable application snapshot and its mapping onto stored collections.

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable, Optional

from .entities import (
    CashTransaction,
    Customer,
    InventoryTransaction,
    Part,
    PaymentSource,
    StoreSettings,
    Supplier,
    User,
    WorkOrder,
)
from .permissions import Department


@dataclass(frozen=True)
class AppState:
    """
    Whole-shop snapshot. Commands never mutate it; they build a replacement
    with dataclasses.replace so unchanged collections are shared.

    transactions is newest-first, matching how the ledger prepends rows.
    """
    work_orders: tuple[WorkOrder, ...] = ()
    parts: tuple[Part, ...] = ()
    customers: tuple[Customer, ...] = ()
    transactions: tuple[InventoryTransaction, ...] = ()
    users: tuple[User, ...] = ()
    departments: tuple[Department, ...] = ()
    store_settings: StoreSettings = StoreSettings(name="")
    suppliers: tuple[Supplier, ...] = ()
    payment_sources: tuple[PaymentSource, ...] = ()
    cash_transactions: tuple[CashTransaction, ...] = ()
    current_branch_id: str = "main"

    def find_part(self, part_id: str) -> Optional[Part]:
        for part in self.parts:
            if part.id == part_id:
                return part
        return None

    def part_map(self) -> dict[str, Part]:
        return {p.id: p for p in self.parts}

    def find_user(self, user_id: str) -> Optional[User]:
        for user in self.users:
            if user.id == user_id:
                return user
        return None

    def find_customer(self, customer_id: str) -> Optional[Customer]:
        for customer in self.customers:
            if customer.id == customer_id:
                return customer
        return None

    def sale_rows(self, sale_id: str) -> list[InventoryTransaction]:
        return [t for t in self.transactions if t.sale_id == sale_id]

    def with_parts_replaced(self, updated: dict[str, Part]) -> "AppState":
        """Swap in updated parts by id; ids not present yet are appended."""
        existing = {p.id for p in self.parts}
        parts = [updated.get(p.id, p) for p in self.parts]
        parts.extend(p for pid, p in updated.items() if pid not in existing)
        return replace(self, parts=tuple(parts))


@dataclass(frozen=True)
class Collection:
    """How one AppState attribute is stored under a key."""
    attr: str
    key: str
    dump: Callable
    load: Callable


def _dump_list(items) -> list:
    return [item.to_dict() for item in items]


def _loader(entity_cls) -> Callable:
    return lambda raw: tuple(entity_cls.from_dict(item) for item in raw or ())


COLLECTIONS: tuple[Collection, ...] = (
    Collection("work_orders", "workOrders", _dump_list, _loader(WorkOrder)),
    Collection("parts", "parts", _dump_list, _loader(Part)),
    Collection("customers", "customers", _dump_list, _loader(Customer)),
    Collection("transactions", "transactions", _dump_list, _loader(InventoryTransaction)),
    Collection(
        "users",
        "users",
        lambda users: [u.to_dict(include_secret=True) for u in users],
        _loader(User),
    ),
    Collection("departments", "departments", _dump_list, _loader(Department)),
    Collection(
        "store_settings",
        "storeSettings",
        lambda settings: settings.to_dict(),
        lambda raw: StoreSettings.from_dict(raw or {}),
    ),
    Collection("suppliers", "suppliers", _dump_list, _loader(Supplier)),
    Collection("payment_sources", "paymentSources", _dump_list, _loader(PaymentSource)),
    Collection("cash_transactions", "cashTransactions", _dump_list, _loader(CashTransaction)),
    Collection("current_branch_id", "currentBranchId", lambda value: value, lambda raw: str(raw or "main")),
)

def changed_collections(before: AppState, after: AppState) -> list[Collection]:
    return [c for c in COLLECTIONS if getattr(before, c.attr) != getattr(after, c.attr)]


@dataclass(frozen=True)
class CommandResult:
    """A new snapshot plus whatever the command created or changed."""
    state: AppState
    value: object = None
