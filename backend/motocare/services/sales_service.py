# Overview: Rebuilds logical retail sales from the flat ledger for history, edit and delete.

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from ..domain.entities import WALK_IN_CUSTOMER, CartItem, InventoryTransaction
from ..domain.state import AppState
from .ledger_service import SaleNotFoundError


@dataclass(frozen=True)
class SaleLine:
    part_name: str
    quantity: int
    total_price: int

    def to_dict(self) -> dict:
        return {"partName": self.part_name, "quantity": self.quantity, "totalPrice": self.total_price}


@dataclass(frozen=True)
class Sale:
    id: str
    date: str
    total: int
    total_discount: int
    customer_name: str
    user_name: Optional[str]
    notes: str
    items: tuple[SaleLine, ...]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": self.date,
            "total": self.total,
            "totalDiscount": self.total_discount,
            "customerName": self.customer_name,
            "userName": self.user_name,
            "notes": self.notes,
            "items": [line.to_dict() for line in self.items],
        }


@dataclass(frozen=True)
class EditableSale:
    sale_id: str
    cart: tuple[CartItem, ...]
    order_discount: int
    customer_id: Optional[str]
    customer_name: str
    notes: str
    date: str

    def to_dict(self) -> dict:
        return {
            "saleId": self.sale_id,
            "cart": [item.to_dict() for item in self.cart],
            "orderDiscount": self.order_discount,
            "customerId": self.customer_id,
            "customerName": self.customer_name,
            "notes": self.notes,
            "date": self.date,
        }


def sales_history(transactions: Iterable[InventoryTransaction], branch_id: str) -> list[Sale]:
    """
    Group the branch's sale rows by sale_id, newest first.

    Header fields come from the first row seen for each sale. Equal dates
    fall back to sale_id descending by plain string comparison, so
    "SALE-9" sorts above "SALE-10".
    """
    groups: dict[str, list[InventoryTransaction]] = {}
    for tx in transactions:
        if tx.sale_id and tx.branch_id == branch_id:
            groups.setdefault(tx.sale_id, []).append(tx)

    sales = []
    for sale_id, rows in groups.items():
        first = rows[0]
        sales.append(Sale(
            id=sale_id,
            date=first.date,
            total=sum(r.total_price or 0 for r in rows),
            total_discount=sum(r.discount or 0 for r in rows),
            customer_name=first.customer_name or WALK_IN_CUSTOMER,
            user_name=first.user_name,
            notes=first.notes,
            items=tuple(SaleLine(r.part_name, r.quantity, r.total_price or 0) for r in rows),
        ))

    # Two stable passes: secondary key first, then the primary
    sales.sort(key=lambda s: s.id, reverse=True)
    sales.sort(key=lambda s: s.date, reverse=True)
    return sales


def cart_for_edit(state: AppState, sale_id: str, branch_id: str) -> EditableSale:
    """
    Rebuild the cart of a recorded sale.

    Each line shows the stock it could use (on-hand plus what the sale
    already took). Line discounts already carry their prorated share of
    the order discount, so the reconstructed order_discount is usually 0;
    re-submitting the cart unchanged reproduces the same totals.
    """
    rows = state.sale_rows(sale_id)
    if not rows:
        raise SaleNotFoundError(f"Sale not found: {sale_id}", details={"sale_id": sale_id})

    parts = state.part_map()
    cart = []
    for row in rows:
        part = parts.get(row.part_id)
        on_hand = part.stock_in(branch_id) if part else 0
        cart.append(CartItem(
            part_id=row.part_id,
            part_name=row.part_name,
            sku=part.sku if part else "",
            quantity=row.quantity,
            selling_price=row.unit_price or 0,
            stock=on_hand + row.quantity,
            discount=row.discount or 0,
            warranty_period=part.warranty_period if part else None,
        ))

    subtotal = sum((r.unit_price or 0) * r.quantity for r in rows)
    total = sum(r.total_price or 0 for r in rows)
    line_discounts = sum(r.discount or 0 for r in rows)
    first = rows[0]
    return EditableSale(
        sale_id=sale_id,
        cart=tuple(cart),
        order_discount=max(0, subtotal - total - line_discounts),
        customer_id=first.customer_id,
        customer_name=first.customer_name or WALK_IN_CUSTOMER,
        notes=first.notes or "",
        date=first.date,
    )
