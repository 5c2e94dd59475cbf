# Overview: Repair work orders; totals, status changes and optional parts consumption.

"""
Work order rules

- total = labor_cost + Σ(price * quantity) - discount, never below zero.
- Part lines snapshot name, SKU and price when they are written.
- Stock is untouched unless consume_stock is set; then the first move into
  "Trả máy" posts one stock-out per line through the ledger, all or nothing.
  Returning a reopened order again does not consume a second time.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from ..domain.entities import (
    WORK_ORDER_RECEIVED,
    WORK_ORDER_RETURNED,
    WORK_ORDER_STATUSES,
    WorkOrder,
    WorkOrderPart,
)
from ..domain.state import AppState, CommandResult
from ..time_utils import to_ledger_date
from ..validation import ValidationError, coerce_amount
from .ledger_service import IdFactory, consume_work_order_parts, default_id_factory


logger = logging.getLogger(__name__)

TEXT_FIELDS = {
    "customer_name", "customer_phone", "vehicle_model", "license_plate",
    "issue_description", "technician_name", "notes", "processing_type",
}
AMOUNT_FIELDS = {"labor_cost", "customer_quote", "discount"}


class WorkOrderError(Exception):
    """Raised when a work order change is refused."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class WorkOrderNotFoundError(WorkOrderError):
    pass


def _find(state: AppState, work_order_id: str) -> WorkOrder:
    for wo in state.work_orders:
        if wo.id == work_order_id:
            return wo
    raise WorkOrderNotFoundError("Work order not found", details={"work_order_id": work_order_id})


def _build_parts(state: AppState, lines: list[dict]) -> tuple[WorkOrderPart, ...]:
    parts = state.part_map()
    result = []
    for line in lines:
        part_id = str(line.get("part_id") or "")
        part = parts.get(part_id)
        if part is None:
            raise WorkOrderError("Part not found", details={"part_id": part_id})
        quantity = line.get("quantity")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise WorkOrderError("Quantity must be a positive integer", details={"part_id": part_id})
        price = line.get("price")
        if price is not None:
            try:
                price = coerce_amount("price", price)
            except ValidationError as e:
                raise WorkOrderError(str(e), details={"part_id": part_id, "price": price})
        result.append(WorkOrderPart(
            part_id=part.id,
            part_name=part.name,
            sku=part.sku,
            quantity=quantity,
            price=part.selling_price if price is None else price,
        ))
    return tuple(result)


def compute_total(labor_cost: int, parts_used, discount: Optional[int]) -> int:
    gross = labor_cost + sum(p.price * p.quantity for p in parts_used)
    total = gross - (discount or 0)
    if total < 0:
        raise WorkOrderError("Discount exceeds work order value", details={"gross": gross, "discount": discount})
    return total


def _validate_status(status: str) -> str:
    if status not in WORK_ORDER_STATUSES:
        raise WorkOrderError(f"Unknown status: {status}", details={"allowed": list(WORK_ORDER_STATUSES)})
    return status


def _already_consumed(state: AppState, work_order_id: str) -> bool:
    return any(t.work_order_id == work_order_id for t in state.transactions)


def _consume(state: AppState, wo: WorkOrder, id_factory: IdFactory) -> AppState:
    if not wo.parts_used:
        return state
    if _already_consumed(state, wo.id):
        # Reopened and returned again
        return state
    result = consume_work_order_parts(
        state, wo.id, wo.branch_id,
        [(p.part_id, p.quantity) for p in wo.parts_used],
        id_factory=id_factory,
    )
    logger.info("Work order %s consumed %d part lines", wo.id, len(result.transactions))
    return result.state


def create_work_order(
    state: AppState,
    data: dict,
    *,
    consume_stock: bool = False,
    id_factory: IdFactory = default_id_factory,
) -> CommandResult:
    branch_id = data.get("branch_id") or state.current_branch_id
    if branch_id not in state.store_settings.branch_ids():
        raise WorkOrderError(f"Unknown branch: {branch_id}", details={"branch_id": branch_id})
    if not (data.get("customer_name") or "").strip():
        raise WorkOrderError("customer_name is required")

    parts_used = _build_parts(state, data.get("parts_used") or [])
    labor_cost = data.get("labor_cost") or 0
    discount = data.get("discount")
    wo = WorkOrder(
        id=id_factory("WO"),
        creation_date=to_ledger_date(data.get("creation_date")),
        customer_name=data["customer_name"].strip(),
        customer_phone=data.get("customer_phone") or "",
        vehicle_model=data.get("vehicle_model") or "",
        license_plate=data.get("license_plate") or "",
        issue_description=data.get("issue_description") or "",
        technician_name=data.get("technician_name") or "",
        status=_validate_status(data.get("status") or WORK_ORDER_RECEIVED),
        total=compute_total(labor_cost, parts_used, discount),
        branch_id=branch_id,
        labor_cost=labor_cost,
        parts_used=parts_used,
        notes=data.get("notes"),
        processing_type=data.get("processing_type"),
        customer_quote=data.get("customer_quote"),
        discount=discount,
    )
    next_state = replace(state, work_orders=(wo,) + state.work_orders)
    if consume_stock and wo.status == WORK_ORDER_RETURNED:
        next_state = _consume(next_state, wo, id_factory)
    return CommandResult(next_state, wo)


def update_work_order(
    state: AppState,
    work_order_id: str,
    patch: dict,
    *,
    consume_stock: bool = False,
    id_factory: IdFactory = default_id_factory,
) -> CommandResult:
    current = _find(state, work_order_id)
    changes = {k: v for k, v in patch.items() if k in TEXT_FIELDS or k in AMOUNT_FIELDS}
    if "status" in patch:
        changes["status"] = _validate_status(patch["status"])
    if "creation_date" in patch:
        changes["creation_date"] = to_ledger_date(patch["creation_date"])
    if "parts_used" in patch:
        if consume_stock and _already_consumed(state, work_order_id):
            raise WorkOrderError("Parts of a returned work order can no longer change")
        changes["parts_used"] = _build_parts(state, patch["parts_used"] or [])

    updated = replace(current, **changes)
    updated = replace(updated, total=compute_total(updated.labor_cost, updated.parts_used, updated.discount))
    next_state = replace(
        state,
        work_orders=tuple(updated if wo.id == work_order_id else wo for wo in state.work_orders),
    )
    if consume_stock and current.status != WORK_ORDER_RETURNED and updated.status == WORK_ORDER_RETURNED:
        next_state = _consume(next_state, updated, id_factory)
    return CommandResult(next_state, updated)


def delete_work_order(state: AppState, work_order_id: str) -> CommandResult:
    _find(state, work_order_id)
    remaining = tuple(wo for wo in state.work_orders if wo.id != work_order_id)
    return CommandResult(replace(state, work_orders=remaining), work_order_id)


def list_work_orders(state: AppState, branch_id: str, status: Optional[str] = None, search: str = "") -> list[WorkOrder]:
    needle = (search or "").strip().lower()
    result = []
    for wo in state.work_orders:
        if wo.branch_id != branch_id:
            continue
        if status and wo.status != status:
            continue
        if needle and not any(
            needle in (value or "").lower()
            for value in (wo.id, wo.customer_name, wo.customer_phone, wo.license_plate, wo.vehicle_model)
        ):
            continue
        result.append(wo)
    return sorted(result, key=lambda wo: wo.creation_date, reverse=True)
