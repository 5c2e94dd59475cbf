# Overview: Read-only, branch-scoped stock classifications and revenue rollups.

"""
Reporting rules

- Nothing here mutates state; every function takes plain collections or an AppState.
- LOW_STOCK_THRESHOLD is exclusive: 4 is low, 5 is not, 0 is out-of-stock.
- The inventory screen and the inventory report keep separate slow-moving
  windows (60 and 90 days). Do not merge them.
- Revenue cost defaults to the part's current purchase price. cost_basis="snapshot"
  uses the unit cost recorded on the row when there is one.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Optional, Sequence

from ..domain.entities import (
    STOCK_OUT,
    UNCATEGORIZED,
    WORK_ORDER_RETURNED,
    InventoryTransaction,
    Part,
)
from ..domain.state import AppState
from ..time_utils import parse_iso_date


LOW_STOCK_THRESHOLD = 5
EXPIRY_WINDOW_DAYS = 30
INVENTORY_SCREEN_SLOW_MOVING_DAYS = 60
INVENTORY_REPORT_SLOW_MOVING_DAYS = 90

STATUS_IN_STOCK = "in-stock"
STATUS_LOW_STOCK = "low-stock"
STATUS_OUT_OF_STOCK = "out-of-stock"
STATUS_SLOW_MOVING = "slow-moving"
PART_FILTERS = ("all", STATUS_IN_STOCK, STATUS_OUT_OF_STOCK, STATUS_LOW_STOCK, STATUS_SLOW_MOVING)

PERIODS = ("day", "week", "month")
COST_BASES = ("current", "snapshot")

LABOR_PART_ID = "LABOR"
LABOR_NAME = "Tiền công sửa chữa"
LABOR_SKU = "DV-SC"
LABOR_CATEGORY = "Dịch vụ"


class ReportError(ValueError):
    """Raised for report parameters that cannot be evaluated."""


def stock_status(quantity: int) -> str:
    if quantity <= 0:
        return STATUS_OUT_OF_STOCK
    if quantity < LOW_STOCK_THRESHOLD:
        return STATUS_LOW_STOCK
    return STATUS_IN_STOCK


def is_low_stock(quantity: int) -> bool:
    return 0 < quantity < LOW_STOCK_THRESHOLD


def _last_dates(transactions: Iterable[InventoryTransaction], branch_id: str,
                outgoing_only: bool) -> dict[str, date]:
    latest: dict[str, date] = {}
    for tx in transactions:
        if tx.branch_id != branch_id:
            continue
        if outgoing_only and tx.type != STOCK_OUT:
            continue
        tx_date = parse_iso_date(tx.date)
        if tx_date is None:
            continue
        if tx.part_id not in latest or tx_date > latest[tx.part_id]:
            latest[tx.part_id] = tx_date
    return latest


def _is_slow_moving(part: Part, branch_id: str, last: Optional[date], today: date, days: int) -> bool:
    if part.stock_in(branch_id) <= 0:
        return False
    # Never moved counts as slow-moving
    return last is None or (today - last).days > days


def filter_parts(
    parts: Sequence[Part],
    transactions: Iterable[InventoryTransaction],
    branch_id: str,
    status: str = "all",
    search: str = "",
    category: str = "all",
    today: Optional[date] = None,
) -> list[Part]:
    """Inventory screen filter; slow-moving looks at any movement in the last 60 days."""
    if status not in PART_FILTERS:
        raise ReportError(f"Unknown stock filter: {status}")
    today = today or date.today()
    needle = (search or "").strip().lower()
    last_moved = _last_dates(transactions, branch_id, outgoing_only=False) if status == STATUS_SLOW_MOVING else {}

    result = []
    for part in parts:
        if needle and needle not in part.name.lower() and needle not in part.sku.lower():
            continue
        if category not in (None, "", "all") and part.category != category:
            continue
        qty = part.stock_in(branch_id)
        if status == STATUS_IN_STOCK and qty <= 0:
            continue
        if status == STATUS_OUT_OF_STOCK and qty != 0:
            continue
        if status == STATUS_LOW_STOCK and not is_low_stock(qty):
            continue
        if status == STATUS_SLOW_MOVING and not _is_slow_moving(
            part, branch_id, last_moved.get(part.id), today, INVENTORY_SCREEN_SLOW_MOVING_DAYS
        ):
            continue
        result.append(part)
    return result


def inventory_summary(parts: Iterable[Part], branch_id: str) -> dict:
    """Units on hand in the branch and their value at purchase price."""
    quantity = 0
    value = 0
    for part in parts:
        qty = part.stock_in(branch_id)
        quantity += qty
        value += qty * part.price
    return {"total_quantity": quantity, "total_value": value}


def expiring_soon(parts: Iterable[Part], today: Optional[date] = None) -> list[Part]:
    today = today or date.today()
    horizon = today + timedelta(days=EXPIRY_WINDOW_DAYS)
    result = []
    for part in parts:
        expiry = parse_iso_date(part.expiry_date) if part.expiry_date else None
        if expiry is None:
            continue
        if today <= expiry <= horizon and any(q > 0 for q in part.stock.values()):
            result.append(part)
    return result


@dataclass(frozen=True)
class SlowMovingPart:
    part: Part
    last_sold_date: Optional[str]
    days_since_last_sale: Optional[int]

    def to_dict(self) -> dict:
        data = self.part.to_dict()
        data["lastSoldDate"] = self.last_sold_date
        data["daysSinceLastSale"] = self.days_since_last_sale
        return data


@dataclass(frozen=True)
class InventoryReport:
    low_stock: tuple[Part, ...]
    expiring_soon: tuple[Part, ...]
    slow_moving: tuple[SlowMovingPart, ...]

    def to_dict(self) -> dict:
        return {
            "lowStock": [p.to_dict() for p in self.low_stock],
            "expiringSoon": [p.to_dict() for p in self.expiring_soon],
            "slowMoving": [s.to_dict() for s in self.slow_moving],
            "counts": {
                "lowStock": len(self.low_stock),
                "expiringSoon": len(self.expiring_soon),
                "slowMoving": len(self.slow_moving),
            },
        }


def inventory_report(
    parts: Sequence[Part],
    transactions: Iterable[InventoryTransaction],
    branch_id: str,
    branch_ids: Sequence[str],
    today: Optional[date] = None,
) -> InventoryReport:
    """
    low_stock: low in any configured branch.
    slow_moving: in stock here with no outgoing row here for over 90 days.
    """
    today = today or date.today()
    low = tuple(p for p in parts if any(is_low_stock(p.stock_in(b)) for b in branch_ids))
    last_sold = _last_dates(transactions, branch_id, outgoing_only=True)

    slow = []
    for part in parts:
        last = last_sold.get(part.id)
        if _is_slow_moving(part, branch_id, last, today, INVENTORY_REPORT_SLOW_MOVING_DAYS):
            slow.append(SlowMovingPart(
                part=part,
                last_sold_date=last.isoformat() if last else None,
                days_since_last_sale=(today - last).days if last else None,
            ))
    return InventoryReport(low, tuple(expiring_soon(parts, today)), tuple(slow))


# ---------------------------------------------------------------------------
# Revenue
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RevenueLine:
    date: str
    revenue: int
    cost: int
    part_id: str
    part_name: str
    sku: str
    category: str
    quantity: int


def revenue_lines(state: AppState, branch_id: str, cost_basis: str = "current") -> list[RevenueLine]:
    """
    Revenue sources for a branch, oldest first: parts on returned work orders,
    labor on returned work orders (zero cost), and retail sale rows.
    """
    if cost_basis not in COST_BASES:
        raise ReportError(f"Unknown cost basis: {cost_basis}")
    parts = state.part_map()
    lines: list[RevenueLine] = []

    returned = [
        wo for wo in state.work_orders
        if wo.status == WORK_ORDER_RETURNED and wo.branch_id == branch_id
    ]
    for wo in returned:
        for used in wo.parts_used:
            part = parts.get(used.part_id)
            lines.append(RevenueLine(
                date=wo.creation_date,
                revenue=used.price * used.quantity,
                cost=(part.price if part else 0) * used.quantity,
                part_id=used.part_id,
                part_name=used.part_name,
                sku=used.sku,
                category=(part.category if part else None) or UNCATEGORIZED,
                quantity=used.quantity,
            ))
    for wo in returned:
        if wo.labor_cost > 0:
            lines.append(RevenueLine(
                date=wo.creation_date,
                revenue=wo.labor_cost,
                cost=0,
                part_id=LABOR_PART_ID,
                part_name=LABOR_NAME,
                sku=LABOR_SKU,
                category=LABOR_CATEGORY,
                quantity=1,
            ))

    for tx in state.transactions:
        if tx.type != STOCK_OUT or tx.branch_id != branch_id or not tx.sale_id:
            continue
        part = parts.get(tx.part_id)
        if cost_basis == "snapshot" and tx.unit_cost is not None:
            unit_cost = tx.unit_cost
        else:
            unit_cost = part.price if part else 0
        lines.append(RevenueLine(
            date=tx.date,
            revenue=tx.total_price or 0,
            cost=unit_cost * tx.quantity,
            part_id=tx.part_id,
            part_name=tx.part_name,
            sku=part.sku if part else "N/A",
            category=(part.category if part else None) or UNCATEGORIZED,
            quantity=tx.quantity,
        ))

    lines.sort(key=lambda line: line.date)
    return lines


def period_key(day: date, period: str) -> str:
    if period == "day":
        return day.isoformat()
    if period == "week":
        iso_year, iso_week, _ = day.isocalendar()
        return f"{iso_year}-W{iso_week:02d}"
    if period == "month":
        return f"{day.year}-{day.month:02d}"
    raise ReportError(f"Unknown period: {period}")


def revenue_report(lines: Iterable[RevenueLine], start: date, end: date, period: str = "day") -> dict:
    """
    Bucketed revenue/cost/profit plus product and category breakdowns for
    lines dated within [start, end].
    """
    if period not in PERIODS:
        raise ReportError(f"Unknown period: {period}")
    if start > end:
        raise ReportError("start must not be after end")

    selected = []
    for line in lines:
        line_date = parse_iso_date(line.date)
        if line_date is not None and start <= line_date <= end:
            selected.append((line_date, line))

    buckets: dict[str, dict] = {}
    products: dict[str, dict] = {}
    categories: dict[str, int] = {}
    for line_date, line in selected:
        bucket = buckets.setdefault(period_key(line_date, period), {"revenue": 0, "cost": 0})
        bucket["revenue"] += line.revenue
        bucket["cost"] += line.cost

        if line.part_id != LABOR_PART_ID:
            product = products.setdefault(line.part_id, {
                "part_name": line.part_name, "sku": line.sku, "quantity": 0, "revenue": 0,
            })
            product["quantity"] += line.quantity
            product["revenue"] += line.revenue

        categories[line.category] = categories.get(line.category, 0) + line.revenue

    series = [
        {"label": key, "revenue": b["revenue"], "cost": b["cost"], "profit": b["revenue"] - b["cost"]}
        for key, b in sorted(buckets.items())
    ]
    category_total = sum(categories.values())
    category_rows = []
    if category_total > 0:
        category_rows = sorted(
            (
                {"category": name, "revenue": revenue, "percentage": revenue * 100 / category_total}
                for name, revenue in categories.items()
            ),
            key=lambda row: row["revenue"],
            reverse=True,
        )

    total_revenue = sum(row["revenue"] for row in series)
    total_cost = sum(row["cost"] for row in series)
    return {
        "period": period,
        "start": start.isoformat(),
        "end": end.isoformat(),
        "series": series,
        "products": sorted(products.values(), key=lambda p: p["quantity"], reverse=True),
        "categories": category_rows,
        "totals": {"revenue": total_revenue, "cost": total_cost, "profit": total_revenue - total_cost},
    }


def dashboard_summary(state: AppState, branch_id: str) -> dict:
    """Headline numbers; transfer and adjustment rows are not revenue."""
    work_order_revenue = sum(
        wo.total for wo in state.work_orders
        if wo.status == WORK_ORDER_RETURNED and wo.branch_id == branch_id
    )
    retail_revenue = sum(
        tx.total_price or 0 for tx in state.transactions
        if tx.type == STOCK_OUT and tx.branch_id == branch_id and tx.sale_id
    )
    open_orders = sum(
        1 for wo in state.work_orders
        if wo.branch_id == branch_id and wo.status != WORK_ORDER_RETURNED
    )
    return {
        "branch_id": branch_id,
        "total_revenue": work_order_revenue + retail_revenue,
        "work_order_revenue": work_order_revenue,
        "retail_revenue": retail_revenue,
        "low_stock_count": sum(1 for p in state.parts if is_low_stock(p.stock_in(branch_id))),
        "open_work_orders": open_orders,
    }
