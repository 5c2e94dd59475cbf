from datetime import date

import pytest

from motocare.domain.entities import (
    STOCK_IN,
    STOCK_OUT,
    InventoryTransaction,
    WorkOrder,
    WorkOrderPart,
)
from motocare.services import reporting_service
from motocare.services.reporting_service import ReportError

from conftest import make_part, make_state


TODAY = date(2025, 6, 30)


def row(row_id, type, part_id, date, quantity=1, branch_id="main", total=0, **kwargs):
    return InventoryTransaction(
        id=row_id, type=type, part_id=part_id, part_name=f"Part {part_id}", quantity=quantity,
        date=date, notes="", total_price=total, branch_id=branch_id, **kwargs,
    )


def work_order(wo_id, status, labor=0, parts_used=(), branch_id="main", creation_date="2025-06-10"):
    total = labor + sum(p.price * p.quantity for p in parts_used)
    return WorkOrder(
        id=wo_id, creation_date=creation_date, customer_name="Khách", customer_phone="",
        vehicle_model="", license_plate="", issue_description="", technician_name="",
        status=status, total=total, branch_id=branch_id, labor_cost=labor, parts_used=tuple(parts_used),
    )


@pytest.mark.parametrize("quantity,expected", [
    (0, "out-of-stock"),
    (4, "low-stock"),
    (5, "in-stock"),
    (-1, "out-of-stock"),
])
def test_stock_status_thresholds(quantity, expected):
    assert reporting_service.stock_status(quantity) == expected


def test_low_stock_boundaries():
    assert reporting_service.is_low_stock(4)
    assert not reporting_service.is_low_stock(5)
    assert not reporting_service.is_low_stock(0)


def test_filter_parts_by_status_search_and_category():
    parts = [
        make_part("P1", "Lốp trước", "LT-1", stock={"main": 10}, category="Lốp"),
        make_part("P2", "Lốp sau", "LS-1", stock={"main": 3}, category="Lốp"),
        make_part("P3", "Bugi", "BG-1", stock={"q2": 7}, category="Điện"),
    ]
    ids = lambda result: [p.id for p in result]
    filt = reporting_service.filter_parts

    assert ids(filt(parts, [], "main", status="in-stock")) == ["P1", "P2"]
    assert ids(filt(parts, [], "main", status="low-stock")) == ["P2"]
    assert ids(filt(parts, [], "main", status="out-of-stock")) == ["P3"]
    assert ids(filt(parts, [], "main", search="lốp")) == ["P1", "P2"]
    assert ids(filt(parts, [], "main", search="bg-")) == ["P3"]
    assert ids(filt(parts, [], "q2", category="Điện", status="in-stock")) == ["P3"]
    with pytest.raises(ReportError):
        filt(parts, [], "main", status="sold-out")


def test_slow_moving_windows_differ_between_screen_and_report():
    parts = [
        make_part("P1", stock={"main": 2}),
        make_part("P2", "Nhớt", "NM-1", stock={"main": 2}),
        make_part("P3", "Bugi", "BG-1", stock={"main": 2}),
    ]
    transactions = [
        # 75 days ago: slow on the screen (60), not in the report (90)
        row("T1", STOCK_OUT, "P1", "2025-04-16", sale_id="SALE-1"),
        # Recently received but never sold
        row("T2", STOCK_IN, "P2", "2025-06-20"),
        # Sold 100 days ago
        row("T3", STOCK_OUT, "P3", "2025-03-22", sale_id="SALE-2"),
    ]
    screen = reporting_service.filter_parts(parts, transactions, "main", status="slow-moving", today=TODAY)
    assert [p.id for p in screen] == ["P1", "P3"]

    report = reporting_service.inventory_report(parts, transactions, "main", ["main", "q2"], today=TODAY)
    slow = {s.part.id: s for s in report.slow_moving}
    assert set(slow) == {"P2", "P3"}
    assert slow["P3"].days_since_last_sale == 100
    assert slow["P2"].last_sold_date is None


def test_slow_moving_boundary_is_strict():
    parts = [make_part("P1", stock={"main": 1})]
    exactly_60 = [row("T1", STOCK_OUT, "P1", "2025-05-01")]
    assert reporting_service.filter_parts(parts, exactly_60, "main", status="slow-moving", today=TODAY) == []


def test_inventory_report_low_stock_and_expiry():
    parts = [
        make_part("P1", stock={"main": 10, "q2": 2}),
        make_part("P2", "Nhớt", "NM-1", stock={"main": 8}, expiry_date="2025-07-15"),
        make_part("P3", "Ắc quy", "AQ-1", stock={"main": 0}, expiry_date="2025-07-01"),
        make_part("P4", "Dầu phanh", "DP-1", stock={"main": 9}, expiry_date="2025-09-01"),
    ]
    report = reporting_service.inventory_report(parts, [], "main", ["main", "q2"], today=TODAY)
    # Low in any branch counts
    assert [p.id for p in report.low_stock] == ["P1"]
    # Out-of-stock and far-off expiries are left out
    assert [p.id for p in report.expiring_soon] == ["P2"]
    body = report.to_dict()
    assert body["counts"]["expiringSoon"] == 1


def test_inventory_summary_values_stock_at_purchase_price():
    parts = [make_part("P1", stock={"main": 3}, price=10_000), make_part("P2", stock={"main": 2}, price=5_000)]
    assert reporting_service.inventory_summary(parts, "main") == {"total_quantity": 5, "total_value": 40_000}


@pytest.mark.parametrize("day,period,expected", [
    (date(2025, 1, 1), "day", "2025-01-01"),
    (date(2024, 12, 30), "week", "2025-W01"),
    (date(2025, 3, 15), "month", "2025-03"),
])
def test_period_keys(day, period, expected):
    assert reporting_service.period_key(day, period) == expected


def test_revenue_from_sales_and_returned_work_orders():
    state = make_state(
        make_part("P1", price=60_000, category="Lốp"),
        make_part("P2", "Nhớt", "NM-1", price=100_000, category=None),
        work_orders=(
            work_order("WO-1", "Trả máy", labor=150_000,
                       parts_used=[WorkOrderPart("P2", "Nhớt", "NM-1", 1, 120_000)]),
            work_order("WO-2", "Đang sửa", labor=999_000),
        ),
        transactions=(
            row("T2", STOCK_OUT, "P1", "2025-06-11", quantity=2, total=180_000,
                sale_id="SALE-1", unit_cost=50_000),
            # Transfers and manual stock-outs are not revenue
            row("T3", STOCK_OUT, "P1", "2025-06-11", quantity=1, total=70_000, transfer_id="TR-1"),
            row("T4", STOCK_OUT, "P1", "2025-06-12", quantity=1, total=90_000),
        ),
    )
    lines = reporting_service.revenue_lines(state, "main")
    report = reporting_service.revenue_report(lines, date(2025, 6, 1), date(2025, 6, 30), period="day")

    assert report["totals"]["revenue"] == 120_000 + 150_000 + 180_000
    assert report["totals"]["cost"] == 100_000 + 0 + 120_000
    assert [s["label"] for s in report["series"]] == ["2025-06-10", "2025-06-11"]
    assert report["products"][0]["part_name"] == "Part P1"
    assert report["products"][0]["quantity"] == 2
    assert "LABOR" not in [p["sku"] for p in report["products"]]
    categories = {c["category"]: c for c in report["categories"]}
    assert categories["Dịch vụ"]["revenue"] == 150_000
    assert categories["Chưa phân loại"]["revenue"] == 120_000
    assert round(sum(c["percentage"] for c in report["categories"])) == 100

    snapshot = reporting_service.revenue_lines(state, "main", cost_basis="snapshot")
    sale_line = [line for line in snapshot if line.part_id == "P1"][0]
    assert sale_line.cost == 100_000


def test_revenue_report_weekly_buckets_and_range():
    state = make_state(
        make_part("P1", price=1_000),
        transactions=(
            row("T1", STOCK_OUT, "P1", "2024-12-30", total=5_000, sale_id="S1"),
            row("T2", STOCK_OUT, "P1", "2025-01-05", total=7_000, sale_id="S2"),
            row("T3", STOCK_OUT, "P1", "2025-01-06", total=11_000, sale_id="S3"),
            row("T4", STOCK_OUT, "P1", "2025-02-01", total=99_000, sale_id="S4"),
        ),
    )
    lines = reporting_service.revenue_lines(state, "main")
    report = reporting_service.revenue_report(lines, date(2024, 12, 29), date(2025, 1, 31), period="week")
    assert [(s["label"], s["revenue"]) for s in report["series"]] == [("2025-W01", 12_000), ("2025-W02", 11_000)]


def test_revenue_report_rejects_bad_arguments():
    with pytest.raises(ReportError):
        reporting_service.revenue_report([], date(2025, 1, 1), date(2025, 1, 31), period="year")
    with pytest.raises(ReportError):
        reporting_service.revenue_report([], date(2025, 2, 1), date(2025, 1, 1))
    with pytest.raises(ReportError):
        reporting_service.revenue_lines(make_state(), "main", cost_basis="average")


def test_dashboard_counts_only_sales_and_returned_orders():
    state = make_state(
        make_part("P1", stock={"main": 3}),
        make_part("P2", stock={"main": 30}),
        work_orders=(
            work_order("WO-1", "Trả máy", labor=200_000),
            work_order("WO-2", "Tiếp nhận", labor=50_000),
            work_order("WO-3", "Trả máy", labor=70_000, branch_id="q2"),
        ),
        transactions=(
            row("T1", STOCK_OUT, "P1", "2025-06-11", total=100_000, sale_id="SALE-1"),
            row("T2", STOCK_OUT, "P1", "2025-06-11", total=500_000, transfer_id="TR-1"),
            row("T3", STOCK_IN, "P1", "2025-06-11", total=800_000),
        ),
    )
    summary = reporting_service.dashboard_summary(state, "main")
    assert summary["retail_revenue"] == 100_000
    assert summary["work_order_revenue"] == 200_000
    assert summary["total_revenue"] == 300_000
    assert summary["low_stock_count"] == 1
    assert summary["open_work_orders"] == 1
