# Overview: Parts, categories, customers and suppliers; pure commands over AppState.

from __future__ import annotations

import logging
import random
import re
import unicodedata
from dataclasses import replace
from typing import Optional

from ..domain.entities import STOCK_IN, Customer, Part, Supplier
from ..domain.state import AppState, CommandResult
from .ledger_service import IdFactory, default_id_factory, record_manual_adjustment


logger = logging.getLogger(__name__)

PART_FIELDS = {
    "name", "sku", "price", "selling_price", "category",
    "description", "warranty_period", "expiry_date",
}
CUSTOMER_FIELDS = {"name", "phone", "vehicle", "license_plate", "loyalty_points"}
SUPPLIER_FIELDS = {"name", "phone", "address", "email"}

OPENING_STOCK_NOTE = "Tồn kho ban đầu"


class CatalogError(Exception):
    """Raised when a catalog operation is refused."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class CatalogNotFoundError(CatalogError):
    pass


class CatalogConflictError(CatalogError):
    pass


def generate_sku(name: str, rng: Optional[random.Random] = None) -> str:
    """Initials of the first three words (accents stripped) plus four random digits."""
    if not name or not name.strip():
        return ""
    text = name.replace("đ", "d").replace("Đ", "D")
    text = unicodedata.normalize("NFD", text)
    text = "".join(ch for ch in text if unicodedata.category(ch) != "Mn")
    text = re.sub(r"[^a-zA-Z0-9\s]", "", text).strip().upper()
    words = text.split()
    if not words:
        return ""
    initials = "".join(word[0] for word in words[:3])
    return f"{initials}-{(rng or random).randint(1000, 9999)}"


# ---------------------------------------------------------------------------
# Parts
# ---------------------------------------------------------------------------

def _get_part(state: AppState, part_id: str) -> Part:
    part = state.find_part(part_id)
    if part is None:
        raise CatalogNotFoundError("Part not found", details={"part_id": part_id})
    return part


def _check_sku_free(state: AppState, sku: str, own_id: Optional[str] = None) -> None:
    for part in state.parts:
        if part.id != own_id and part.sku.lower() == sku.lower():
            raise CatalogConflictError("SKU already in use", details={"sku": sku, "part_id": part.id})


def create_part(
    state: AppState,
    data: dict,
    *,
    branch_id: Optional[str] = None,
    opening_stock: int = 0,
    id_factory: IdFactory = default_id_factory,
) -> CommandResult:
    """
    Add a part with empty stock. Opening stock, when given, goes through the
    ledger as a stock-in so the cached count and the rows agree.
    """
    name = (data.get("name") or "").strip()
    if not name:
        raise CatalogError("name is required")
    sku = (data.get("sku") or "").strip() or generate_sku(name)
    _check_sku_free(state, sku)

    fields = {k: v for k, v in data.items() if k in PART_FIELDS}
    fields.update(name=name, sku=sku)
    part = Part(id=id_factory("P"), stock={}, **fields)
    next_state = state.with_parts_replaced({part.id: part})

    if opening_stock:
        if not branch_id:
            raise CatalogError("branch_id is required with opening stock")
        result = record_manual_adjustment(
            next_state, part.id, branch_id, STOCK_IN, opening_stock,
            notes=OPENING_STOCK_NOTE, id_factory=id_factory,
        )
        next_state = result.state
        part = next_state.find_part(part.id)

    logger.info("Created part %s (%s)", part.id, part.sku)
    return CommandResult(next_state, part)


def update_part(state: AppState, part_id: str, patch: dict) -> CommandResult:
    """Edit descriptive fields and prices; stock only moves through the ledger."""
    part = _get_part(state, part_id)
    changes = {k: v for k, v in patch.items() if k in PART_FIELDS}
    if "name" in changes and not (changes["name"] or "").strip():
        raise CatalogError("name cannot be blank")
    if changes.get("sku"):
        _check_sku_free(state, changes["sku"], own_id=part_id)
    updated = replace(part, **changes)
    return CommandResult(state.with_parts_replaced({part_id: updated}), updated)


def delete_part(state: AppState, part_id: str) -> CommandResult:
    """Remove the part; its ledger rows stay behind as history."""
    part = _get_part(state, part_id)
    return CommandResult(replace(state, parts=tuple(p for p in state.parts if p.id != part_id)), part)


def list_categories(state: AppState) -> list[str]:
    return sorted({p.category for p in state.parts if p.category})


def rename_category(state: AppState, old_name: str, new_name: str) -> CommandResult:
    new_name = (new_name or "").strip()
    if not new_name or new_name == old_name:
        return CommandResult(state, old_name)
    for existing in list_categories(state):
        if existing.lower() == new_name.lower() and existing.lower() != old_name.lower():
            raise CatalogConflictError(f'Category "{new_name}" already exists', details={"category": new_name})
    parts = tuple(
        replace(p, category=new_name) if p.category == old_name else p
        for p in state.parts
    )
    return CommandResult(replace(state, parts=parts), new_name)


def delete_category(state: AppState, name: str) -> CommandResult:
    """Parts of the category become uncategorised."""
    parts = tuple(replace(p, category=None) if p.category == name else p for p in state.parts)
    return CommandResult(replace(state, parts=parts), name)


# ---------------------------------------------------------------------------
# Customers / suppliers
# ---------------------------------------------------------------------------

def search_contacts(items, query: str) -> list:
    """Case-insensitive name match or phone substring."""
    needle = (query or "").strip().lower()
    if not needle:
        return list(items)
    return [c for c in items if needle in c.name.lower() or (c.phone and needle in c.phone)]


def _require_name_phone(data: dict) -> None:
    if not (data.get("name") or "").strip():
        raise CatalogError("name is required")
    if not (data.get("phone") or "").strip():
        raise CatalogError("phone is required")


def create_customer(state: AppState, data: dict, *, id_factory: IdFactory = default_id_factory) -> CommandResult:
    _require_name_phone(data)
    fields = {k: v for k, v in data.items() if k in CUSTOMER_FIELDS}
    customer = Customer(id=id_factory("C"), **fields)
    return CommandResult(replace(state, customers=(customer,) + state.customers), customer)


def update_customer(state: AppState, customer_id: str, patch: dict) -> CommandResult:
    customer = state.find_customer(customer_id)
    if customer is None:
        raise CatalogNotFoundError("Customer not found", details={"customer_id": customer_id})
    updated = replace(customer, **{k: v for k, v in patch.items() if k in CUSTOMER_FIELDS})
    customers = tuple(updated if c.id == customer_id else c for c in state.customers)
    return CommandResult(replace(state, customers=customers), updated)


def delete_customer(state: AppState, customer_id: str) -> CommandResult:
    if state.find_customer(customer_id) is None:
        raise CatalogNotFoundError("Customer not found", details={"customer_id": customer_id})
    customers = tuple(c for c in state.customers if c.id != customer_id)
    return CommandResult(replace(state, customers=customers), customer_id)


def _find_supplier(state: AppState, supplier_id: str) -> Supplier:
    for supplier in state.suppliers:
        if supplier.id == supplier_id:
            return supplier
    raise CatalogNotFoundError("Supplier not found", details={"supplier_id": supplier_id})


def create_supplier(state: AppState, data: dict, *, id_factory: IdFactory = default_id_factory) -> CommandResult:
    _require_name_phone(data)
    fields = {k: v for k, v in data.items() if k in SUPPLIER_FIELDS}
    supplier = Supplier(id=id_factory("SUP"), **fields)
    return CommandResult(replace(state, suppliers=state.suppliers + (supplier,)), supplier)


def update_supplier(state: AppState, supplier_id: str, patch: dict) -> CommandResult:
    supplier = _find_supplier(state, supplier_id)
    updated = replace(supplier, **{k: v for k, v in patch.items() if k in SUPPLIER_FIELDS})
    suppliers = tuple(updated if s.id == supplier_id else s for s in state.suppliers)
    return CommandResult(replace(state, suppliers=suppliers), updated)


def delete_supplier(state: AppState, supplier_id: str) -> CommandResult:
    _find_supplier(state, supplier_id)
    suppliers = tuple(s for s in state.suppliers if s.id != supplier_id)
    return CommandResult(replace(state, suppliers=suppliers), supplier_id)
