# Overview: Inventory ledger commands; each turns a business event into stock deltas plus ledger rows.

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Callable, Iterable, Optional, Sequence

from ..domain.entities import (
    STOCK_IN,
    STOCK_OUT,
    WALK_IN_CUSTOMER,
    CartItem,
    Customer,
    InventoryTransaction,
    Part,
    ReceiptItem,
    User,
)
from ..domain.state import AppState
from ..time_utils import to_ledger_date

"""
Ledger invariants (authoritative)

- Commands are pure: (state, command) -> LedgerResult. The input state is never mutated.
- New rows are prepended to state.transactions (newest first).
- The stock delta and its rows land in the same returned snapshot, or the command raises.
- Stock never goes below zero; a stock-out beyond on-hand raises InsufficientStockError.
- For every (part, branch), Part.stock equals the fold of signed row quantities
  when the shop started from empty stock (see stock_drift).
"""


logger = logging.getLogger(__name__)

LARGE_RECEIPT_QUANTITY = 500
PURCHASE_PRICE_JUMP_PERCENT = 10

DEFAULT_SALE_NOTE = "Bán lẻ tại quầy"
DEFAULT_EDITED_SALE_NOTE = "Bán lẻ tại quầy (đã chỉnh sửa)"


class LedgerError(Exception):
    """Raised when a ledger command is refused."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class PartNotFoundError(LedgerError):
    pass


class UnknownBranchError(LedgerError):
    pass


class InvalidQuantityError(LedgerError):
    pass


class InsufficientStockError(LedgerError):
    """details["items"] lists {part_id, branch_id, requested, on_hand} per short line."""


class InvalidTransferError(LedgerError):
    pass


class SaleNotFoundError(LedgerError):
    pass


@dataclass(frozen=True)
class ReceiptWarning:
    part_id: str
    code: str
    message: str

    def to_dict(self) -> dict:
        return {"part_id": self.part_id, "code": self.code, "message": self.message}


@dataclass(frozen=True)
class LedgerResult:
    state: AppState
    transactions: tuple[InventoryTransaction, ...] = ()
    warnings: tuple[ReceiptWarning, ...] = ()

    def to_dict(self) -> dict:
        return {
            "transactions": [t.to_dict() for t in self.transactions],
            "warnings": [w.to_dict() for w in self.warnings],
        }


IdFactory = Callable[[str], str]


def default_id_factory(prefix: str) -> str:
    return f"{prefix}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}"


def new_sale_id() -> str:
    return f"SALE-{int(time.time() * 1000)}"


def _format_vnd(amount: int) -> str:
    return f"{amount:,}".replace(",", ".") + " ₫"


# ---------------------------------------------------------------------------
# Guards
# ---------------------------------------------------------------------------

def _require_branch(state: AppState, branch_id: str) -> None:
    if branch_id not in state.store_settings.branch_ids():
        raise UnknownBranchError(f"Unknown branch: {branch_id}", details={"branch_id": branch_id})


def _require_part(parts: dict[str, Part], part_id: str) -> Part:
    part = parts.get(part_id)
    if part is None:
        raise PartNotFoundError(f"Part not found: {part_id}", details={"part_id": part_id})
    return part


def _require_positive(quantity, part_id: str | None = None) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidQuantityError(
            "Quantity must be a positive integer",
            details={"part_id": part_id, "quantity": quantity},
        )
    return quantity


def _require_amount(value, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidQuantityError(f"{name} must be a non-negative integer", details={name: value})
    return value


def _check_on_hand(parts: dict[str, Part], needed: dict[tuple[str, str], int]) -> None:
    """needed maps (part_id, branch_id) -> units that will leave the branch."""
    short = []
    for (part_id, branch_id), requested in needed.items():
        on_hand = parts[part_id].stock_in(branch_id)
        if requested > on_hand:
            short.append({
                "part_id": part_id,
                "branch_id": branch_id,
                "requested": requested,
                "on_hand": on_hand,
            })
    if short:
        raise InsufficientStockError("Insufficient stock", details={"items": short})


def _apply_deltas(parts: dict[str, Part], deltas: dict[tuple[str, str], int]) -> dict[str, Part]:
    updated: dict[str, Part] = {}
    for (part_id, branch_id), delta in deltas.items():
        current = updated.get(part_id, parts[part_id])
        updated[part_id] = current.with_stock_delta(branch_id, delta)
    return updated


def _commit(state: AppState, updated_parts: dict[str, Part],
            new_rows: Sequence[InventoryTransaction],
            drop: Callable[[InventoryTransaction], bool] | None = None) -> AppState:
    kept = state.transactions if drop is None else tuple(t for t in state.transactions if not drop(t))
    next_state = state.with_parts_replaced(updated_parts)
    return replace(next_state, transactions=tuple(new_rows) + kept)


# ---------------------------------------------------------------------------
# Discount proration
# ---------------------------------------------------------------------------

def prorate_discount(subtotals: Sequence[int], order_discount: int) -> list[int]:
    """
    Split order_discount across lines in proportion to their subtotals.

    Integer shares by largest remainder: floor shares first, then one unit
    each to the lines with the biggest fractional remainder (earlier line
    wins a tie). Shares always sum to order_discount; a zero cart subtotal
    gives every line a zero share.
    """
    total = sum(subtotals)
    if total <= 0 or order_discount <= 0:
        return [0] * len(subtotals)

    shares = [order_discount * s // total for s in subtotals]
    remainders = [order_discount * s % total for s in subtotals]
    leftover = order_discount - sum(shares)
    order = sorted(range(len(subtotals)), key=lambda i: (-remainders[i], i))
    for i in order[:leftover]:
        shares[i] += 1
    return shares


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def record_goods_receipt(
    state: AppState,
    branch_id: str,
    items: Iterable[ReceiptItem],
    *,
    new_parts: Iterable[Part] = (),
    supplier_id: Optional[str] = None,
    receipt_id: Optional[str] = None,
    today: date | datetime | str | None = None,
    id_factory: IdFactory = default_id_factory,
) -> LedgerResult:
    """
    Stock-in from a supplier. One "Nhập kho" row per line; the part's
    purchase price (and selling price when given) follow the receipt.

    Warnings are advisory and never block the receipt.
    """
    _require_branch(state, branch_id)
    items = list(items)
    if not items:
        raise InvalidQuantityError("Receipt has no lines")

    parts = state.part_map()
    for part in new_parts:
        if part.id not in parts:
            parts[part.id] = replace(part, stock={})
    original = state.part_map()

    receipt_id = receipt_id or f"PN{int(time.time() * 1000)}"
    row_date = to_ledger_date(today)
    warnings: list[ReceiptWarning] = []
    rows: list[InventoryTransaction] = []
    updated: dict[str, Part] = {pid: p for pid, p in parts.items() if pid not in original}

    for item in items:
        part = _require_part(parts, item.part_id)
        quantity = _require_positive(item.quantity, item.part_id)
        purchase_price = _require_amount(item.purchase_price, "purchase_price")
        if item.selling_price is not None:
            _require_amount(item.selling_price, "selling_price")

        warnings.extend(_receipt_warnings(original.get(item.part_id), item))

        current = updated.get(part.id, part).with_stock_delta(branch_id, quantity)
        current = replace(current, price=purchase_price)
        if item.selling_price is not None:
            current = replace(current, selling_price=item.selling_price)
        updated[part.id] = current

        rows.append(InventoryTransaction(
            id=id_factory(f"TXN-{receipt_id}"),
            type=STOCK_IN,
            part_id=part.id,
            part_name=part.name,
            quantity=quantity,
            date=row_date,
            notes=f"Phiếu nhập {receipt_id}",
            unit_price=purchase_price,
            total_price=purchase_price * quantity,
            branch_id=branch_id,
            unit_cost=purchase_price,
        ))

    logger.info(
        "Goods receipt %s at %s: %d lines (supplier=%s)",
        receipt_id, branch_id, len(rows), supplier_id,
    )
    return LedgerResult(_commit(state, updated, rows), tuple(rows), tuple(warnings))


def _receipt_warnings(part: Optional[Part], item: ReceiptItem) -> list[ReceiptWarning]:
    warnings = []
    if item.quantity > LARGE_RECEIPT_QUANTITY:
        warnings.append(ReceiptWarning(
            item.part_id, "large-quantity", f"Số lượng nhập ({item.quantity}) rất lớn.",
        ))
    if part is None:
        return warnings

    if part.price > 0:
        # Percent comparison without floats: new > old * 1.10
        if item.purchase_price * 100 > part.price * (100 + PURCHASE_PRICE_JUMP_PERCENT):
            percent = round((item.purchase_price - part.price) * 100 / part.price)
            warnings.append(ReceiptWarning(
                item.part_id, "purchase-price-up",
                f"Giá nhập mới cao hơn {percent}% so với giá cũ.",
            ))
        elif item.purchase_price < part.price:
            warnings.append(ReceiptWarning(
                item.part_id, "purchase-price-down",
                f"Giá nhập mới thấp hơn giá cũ ({_format_vnd(part.price)}).",
            ))

    if part.selling_price > 0 and item.selling_price is not None and item.selling_price < part.selling_price:
        warnings.append(ReceiptWarning(
            item.part_id, "selling-price-down",
            f"Giá bán mới thấp hơn giá cũ ({_format_vnd(part.selling_price)}).",
        ))
    return warnings


def _sale_rows(
    parts: dict[str, Part],
    branch_id: str,
    sale_id: str,
    cart_items: Sequence[CartItem],
    order_discount: int,
    customer: Optional[Customer],
    customer_name: Optional[str],
    user: Optional[User],
    row_date: str,
    notes: str,
    id_factory: IdFactory,
) -> list[InventoryTransaction]:
    subtotals = [item.subtotal for item in cart_items]
    shares = prorate_discount(subtotals, order_discount)
    name = (customer.name if customer else None) or customer_name or WALK_IN_CUSTOMER

    rows = []
    for item, subtotal, share in zip(cart_items, subtotals, shares):
        part = parts[item.part_id]
        discount = item.discount + share
        rows.append(InventoryTransaction(
            id=id_factory(f"T-{item.part_id}"),
            type=STOCK_OUT,
            part_id=item.part_id,
            part_name=item.part_name or part.name,
            quantity=item.quantity,
            date=row_date,
            notes=notes,
            unit_price=item.selling_price,
            total_price=subtotal - discount,
            branch_id=branch_id,
            sale_id=sale_id,
            discount=discount,
            customer_id=customer.id if customer else None,
            customer_name=name,
            user_id=user.id if user else None,
            user_name=user.name if user else None,
            unit_cost=part.price,
        ))
    return rows


def _validate_cart(parts: dict[str, Part], cart_items: Sequence[CartItem], order_discount: int) -> None:
    if not cart_items:
        raise InvalidQuantityError("Cart is empty")
    _require_amount(order_discount, "order_discount")
    for item in cart_items:
        _require_part(parts, item.part_id)
        _require_positive(item.quantity, item.part_id)
        _require_amount(item.selling_price, "selling_price")
        _require_amount(item.discount, "discount")


def record_retail_sale(
    state: AppState,
    branch_id: str,
    sale_id: str,
    cart_items: Sequence[CartItem],
    order_discount: int = 0,
    customer: Optional[Customer] = None,
    user: Optional[User] = None,
    timestamp: date | datetime | str | None = None,
    notes: Optional[str] = None,
    *,
    customer_name: Optional[str] = None,
    id_factory: IdFactory = default_id_factory,
) -> LedgerResult:
    """Checkout: one "Xuất kho" row per cart line, all tagged with sale_id."""
    _require_branch(state, branch_id)
    parts = state.part_map()
    cart_items = list(cart_items)
    _validate_cart(parts, cart_items, order_discount)
    if any(t.sale_id == sale_id for t in state.transactions):
        raise LedgerError(f"Sale already recorded: {sale_id}", details={"sale_id": sale_id})

    needed: dict[tuple[str, str], int] = {}
    for item in cart_items:
        key = (item.part_id, branch_id)
        needed[key] = needed.get(key, 0) + item.quantity
    _check_on_hand(parts, needed)

    rows = _sale_rows(
        parts, branch_id, sale_id, cart_items, order_discount, customer, customer_name,
        user, to_ledger_date(timestamp), notes or DEFAULT_SALE_NOTE, id_factory,
    )
    updated = _apply_deltas(parts, {k: -v for k, v in needed.items()})

    logger.info("Retail sale %s at %s: %d lines", sale_id, branch_id, len(rows))
    return LedgerResult(_commit(state, updated, rows), tuple(rows))


def edit_retail_sale(
    state: AppState,
    sale_id: str,
    cart_items: Sequence[CartItem],
    order_discount: int = 0,
    customer: Optional[Customer] = None,
    user: Optional[User] = None,
    timestamp: date | datetime | str | None = None,
    notes: Optional[str] = None,
    *,
    customer_name: Optional[str] = None,
    id_factory: IdFactory = default_id_factory,
) -> LedgerResult:
    """
    Replace every row of sale_id with a fresh set built from cart_items.

    Stock moves by one net delta per part (reverted minus re-sold) at the
    sale's own branch, so an unchanged cart leaves stock untouched. Without
    a timestamp the sale keeps its original date.
    """
    old_rows = state.sale_rows(sale_id)
    if not old_rows:
        raise SaleNotFoundError(f"Sale not found: {sale_id}", details={"sale_id": sale_id})

    branch_id = old_rows[0].branch_id
    parts = state.part_map()
    cart_items = list(cart_items)
    _validate_cart(parts, cart_items, order_discount)

    deltas: dict[tuple[str, str], int] = {}
    for row in old_rows:
        if row.part_id in parts:
            key = (row.part_id, row.branch_id)
            deltas[key] = deltas.get(key, 0) + row.quantity
    for item in cart_items:
        key = (item.part_id, branch_id)
        deltas[key] = deltas.get(key, 0) - item.quantity

    _check_on_hand(parts, {k: -v for k, v in deltas.items() if v < 0})

    row_date = to_ledger_date(timestamp) if timestamp is not None else old_rows[0].date
    rows = _sale_rows(
        parts, branch_id, sale_id, cart_items, order_discount, customer, customer_name,
        user, row_date, notes or DEFAULT_EDITED_SALE_NOTE, id_factory,
    )
    updated = _apply_deltas(parts, {k: v for k, v in deltas.items() if v != 0})

    logger.info("Edited sale %s at %s: %d -> %d lines", sale_id, branch_id, len(old_rows), len(rows))
    next_state = _commit(state, updated, rows, drop=lambda t: t.sale_id == sale_id)
    return LedgerResult(next_state, tuple(rows))


def delete_retail_sale(state: AppState, sale_id: str) -> LedgerResult:
    """
    Return every row's quantity to the row's own branch and drop the rows.

    Unknown or already deleted sale ids leave the state as it was.
    """
    old_rows = state.sale_rows(sale_id)
    if not old_rows:
        return LedgerResult(state)

    parts = state.part_map()
    deltas: dict[tuple[str, str], int] = {}
    for row in old_rows:
        # Rows of a deleted part have no stock to give back
        if row.part_id in parts:
            key = (row.part_id, row.branch_id)
            deltas[key] = deltas.get(key, 0) + row.quantity

    updated = _apply_deltas(parts, deltas)
    logger.info("Deleted sale %s (%d lines)", sale_id, len(old_rows))
    return LedgerResult(_commit(state, updated, (), drop=lambda t: t.sale_id == sale_id))


def record_branch_transfer(
    state: AppState,
    part_id: str,
    from_branch_id: str,
    to_branch_id: str,
    quantity: int,
    notes: str = "",
    *,
    today: date | datetime | str | None = None,
    id_factory: IdFactory = default_id_factory,
) -> LedgerResult:
    """Move stock between branches as a linked "Xuất kho"/"Nhập kho" pair."""
    _require_branch(state, from_branch_id)
    _require_branch(state, to_branch_id)
    if from_branch_id == to_branch_id:
        raise InvalidTransferError(
            "Cannot transfer to the same branch",
            details={"from_branch_id": from_branch_id, "to_branch_id": to_branch_id},
        )
    parts = state.part_map()
    part = _require_part(parts, part_id)
    _require_positive(quantity, part_id)
    _check_on_hand(parts, {(part_id, from_branch_id): quantity})

    settings = state.store_settings
    from_name = settings.branch_name(from_branch_id) or from_branch_id
    to_name = settings.branch_name(to_branch_id) or to_branch_id
    transfer_id = id_factory("TR")
    row_date = to_ledger_date(today)
    common = dict(
        part_id=part_id,
        part_name=part.name,
        quantity=quantity,
        date=row_date,
        unit_price=part.price,
        total_price=part.price * quantity,
        transfer_id=transfer_id,
        unit_cost=part.price,
    )
    out_row = InventoryTransaction(
        id=id_factory("T-EX"), type=STOCK_OUT, branch_id=from_branch_id,
        notes=f"Chuyển đến {to_name}. {notes}".strip(), **common,
    )
    in_row = InventoryTransaction(
        id=id_factory("T-IM"), type=STOCK_IN, branch_id=to_branch_id,
        notes=f"Nhận từ {from_name}. {notes}".strip(), **common,
    )

    moved = part.with_stock_delta(from_branch_id, -quantity).with_stock_delta(to_branch_id, quantity)
    rows = (out_row, in_row)
    logger.info("Transfer %s: %s x%d %s -> %s", transfer_id, part_id, quantity, from_branch_id, to_branch_id)
    return LedgerResult(_commit(state, {part_id: moved}, rows), rows)


def record_manual_adjustment(
    state: AppState,
    part_id: str,
    branch_id: str,
    type: str,
    quantity: int,
    unit_price: Optional[int] = None,
    notes: str = "",
    *,
    today: date | datetime | str | None = None,
    id_factory: IdFactory = default_id_factory,
    work_order_id: Optional[str] = None,
) -> LedgerResult:
    """
    Direct stock-in or stock-out outside sales and receipts.

    Stock-in is valued at unit_price (or the part's purchase price);
    stock-out always at the part's selling price.
    """
    if type not in (STOCK_IN, STOCK_OUT):
        raise LedgerError(f"Unknown transaction type: {type}", details={"type": type})
    _require_branch(state, branch_id)
    parts = state.part_map()
    part = _require_part(parts, part_id)
    _require_positive(quantity, part_id)

    if type == STOCK_IN:
        price = part.price if unit_price is None else _require_amount(unit_price, "unit_price")
        delta = quantity
    else:
        _check_on_hand(parts, {(part_id, branch_id): quantity})
        price = part.selling_price
        delta = -quantity

    row = InventoryTransaction(
        id=id_factory("T"),
        type=type,
        part_id=part_id,
        part_name=part.name,
        quantity=quantity,
        date=to_ledger_date(today),
        notes=notes,
        unit_price=price,
        total_price=price * quantity,
        branch_id=branch_id,
        unit_cost=price if type == STOCK_IN else part.price,
        work_order_id=work_order_id,
    )
    logger.info("Manual %s %s x%d at %s", type, part_id, quantity, branch_id)
    return LedgerResult(_commit(state, {part_id: part.with_stock_delta(branch_id, delta)}, (row,)), (row,))


def consume_work_order_parts(
    state: AppState,
    work_order_id: str,
    branch_id: str,
    lines: Sequence[tuple[str, int]],
    *,
    today: date | datetime | str | None = None,
    id_factory: IdFactory = default_id_factory,
) -> LedgerResult:
    """
    Stock-out for parts fitted on a returned work order, all-or-nothing.

    lines holds (part_id, quantity) pairs; rows are tagged with work_order_id.
    """
    _require_branch(state, branch_id)
    parts = state.part_map()
    needed: dict[tuple[str, str], int] = {}
    for part_id, quantity in lines:
        _require_part(parts, part_id)
        _require_positive(quantity, part_id)
        needed[(part_id, branch_id)] = needed.get((part_id, branch_id), 0) + quantity
    _check_on_hand(parts, needed)

    rows = []
    current = state
    for part_id, quantity in lines:
        result = record_manual_adjustment(
            current, part_id, branch_id, STOCK_OUT, quantity,
            notes=f"Sử dụng cho phiếu sửa chữa {work_order_id}",
            today=today, id_factory=id_factory, work_order_id=work_order_id,
        )
        current = result.state
        rows.extend(result.transactions)
    return LedgerResult(current, tuple(rows))


# ---------------------------------------------------------------------------
# Projection
# ---------------------------------------------------------------------------

def project_stock(transactions: Iterable[InventoryTransaction], part_id: str, branch_id: str) -> int:
    """Stock implied by the ledger alone: Σ in - Σ out for (part, branch)."""
    return sum(
        t.signed_quantity for t in transactions
        if t.part_id == part_id and t.branch_id == branch_id
    )


def stock_drift(state: AppState) -> list[tuple[str, str, int, int]]:
    """(part_id, branch_id, cached, projected) wherever Part.stock disagrees with the ledger."""
    projected: dict[tuple[str, str], int] = {}
    for t in state.transactions:
        key = (t.part_id, t.branch_id)
        projected[key] = projected.get(key, 0) + t.signed_quantity

    drift = []
    known = set()
    for part in state.parts:
        for branch_id, cached in part.stock.items():
            known.add((part.id, branch_id))
            expected = projected.get((part.id, branch_id), 0)
            if cached != expected:
                drift.append((part.id, branch_id, cached, expected))
    for (part_id, branch_id), expected in projected.items():
        if (part_id, branch_id) not in known and expected != 0 and state.find_part(part_id) is not None:
            drift.append((part_id, branch_id, 0, expected))
    return sorted(drift)
