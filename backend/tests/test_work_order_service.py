import pytest

from motocare.services import work_order_service
from motocare.services.ledger_service import InsufficientStockError
from motocare.services.work_order_service import WorkOrderError, WorkOrderNotFoundError

from conftest import make_part, make_state


@pytest.fixture
def shop():
    return make_state(
        make_part("P1", "Bugi", "BG-1", stock={"main": 3}, selling_price=80_000),
        make_part("P2", "Nhớt", "NM-1", stock={"main": 1}, selling_price=150_000),
    )


def new_order(shop, ids, consume_stock=False, **overrides):
    data = {
        "customer_name": "Anh Tư",
        "customer_phone": "0909",
        "vehicle_model": "Honda Vision",
        "license_plate": "59X1-12345",
        "issue_description": "Thay nhớt, bugi",
        "labor_cost": 100_000,
        "parts_used": [{"part_id": "P1", "quantity": 1}, {"part_id": "P2", "quantity": 1, "price": 140_000}],
        "creation_date": "2025-06-01",
    }
    data.update(overrides)
    return work_order_service.create_work_order(shop, data, consume_stock=consume_stock, id_factory=ids)


def test_create_computes_total_from_labor_parts_and_discount(shop, ids):
    result = new_order(shop, ids, discount=20_000)
    wo = result.value
    assert wo.id == "WO-1"
    assert wo.status == "Tiếp nhận"
    assert wo.branch_id == "main"
    assert [p.price for p in wo.parts_used] == [80_000, 140_000]
    assert wo.total == 100_000 + 80_000 + 140_000 - 20_000
    # Stock is untouched while the order is open
    assert result.state.parts == shop.parts


def test_create_rejections(shop, ids):
    with pytest.raises(WorkOrderError):
        new_order(shop, ids, customer_name="")
    with pytest.raises(WorkOrderError):
        new_order(shop, ids, status="Đã hủy")
    with pytest.raises(WorkOrderError):
        new_order(shop, ids, discount=10_000_000)
    with pytest.raises(WorkOrderError):
        new_order(shop, ids, parts_used=[{"part_id": "P9", "quantity": 1}])
    with pytest.raises(WorkOrderError):
        new_order(shop, ids, branch_id="q9")


def test_returning_order_consumes_stock_when_enabled(shop, ids):
    state = new_order(shop, ids, consume_stock=True).state
    result = work_order_service.update_work_order(
        state, "WO-1", {"status": "Trả máy"}, consume_stock=True, id_factory=ids,
    )
    assert result.state.find_part("P1").stock_in("main") == 2
    assert result.state.find_part("P2").stock_in("main") == 0
    assert {t.work_order_id for t in result.state.transactions} == {"WO-1"}

    # Returned orders do not consume twice
    again = work_order_service.update_work_order(
        result.state, "WO-1", {"notes": "Khách hẹn quay lại"}, consume_stock=True, id_factory=ids,
    )
    assert again.state.parts == result.state.parts
    with pytest.raises(WorkOrderError):
        work_order_service.update_work_order(
            result.state, "WO-1", {"parts_used": []}, consume_stock=True, id_factory=ids,
        )


def test_returning_order_without_stock_is_refused(shop, ids):
    state = new_order(shop, ids, parts_used=[{"part_id": "P2", "quantity": 2}]).state
    with pytest.raises(InsufficientStockError):
        work_order_service.update_work_order(state, "WO-1", {"status": "Trả máy"}, consume_stock=True, id_factory=ids)


def test_consumption_off_by_default(shop, ids):
    state = new_order(shop, ids).state
    result = work_order_service.update_work_order(state, "WO-1", {"status": "Trả máy"}, id_factory=ids)
    assert result.state.parts == shop.parts
    assert result.state.transactions == ()


def test_update_recomputes_total_and_delete(shop, ids):
    state = new_order(shop, ids).state
    updated = work_order_service.update_work_order(state, "WO-1", {"labor_cost": 0, "parts_used": []})
    assert updated.value.total == 0
    remaining = work_order_service.delete_work_order(updated.state, "WO-1").state
    assert remaining.work_orders == ()
    with pytest.raises(WorkOrderNotFoundError):
        work_order_service.delete_work_order(remaining, "WO-1")


def test_list_filters_by_branch_status_and_search(shop, ids):
    state = new_order(shop, ids).state
    state = new_order(state, ids, customer_name="Chị Năm", license_plate="51F-99999",
                      creation_date="2025-06-05").state
    state = new_order(state, ids, customer_name="Chú Sáu", branch_id="q2").state

    listed = work_order_service.list_work_orders(state, "main")
    assert [wo.customer_name for wo in listed] == ["Chị Năm", "Anh Tư"]
    assert [wo.id for wo in work_order_service.list_work_orders(state, "main", search="51f")] == ["WO-2"]
    assert work_order_service.list_work_orders(state, "main", status="Trả máy") == []


def test_reopened_order_is_not_consumed_twice(shop, ids):
    state = new_order(shop, ids, parts_used=[{"part_id": "P1", "quantity": 2}]).state
    for status in ("Trả máy", "Đang sửa", "Trả máy"):
        state = work_order_service.update_work_order(
            state, "WO-1", {"status": status}, consume_stock=True, id_factory=ids,
        ).state
    assert state.find_part("P1").stock_in("main") == 1
    assert len([t for t in state.transactions if t.work_order_id == "WO-1"]) == 1

    # Reopening does not unlock the consumed parts
    with pytest.raises(WorkOrderError):
        work_order_service.update_work_order(
            state, "WO-1", {"status": "Đang sửa", "parts_used": []}, consume_stock=True, id_factory=ids,
        )


@pytest.mark.parametrize("price", ["abc", -5, 12.5, True])
def test_line_price_must_be_whole_non_negative_amount(shop, ids, price):
    with pytest.raises(WorkOrderError):
        new_order(shop, ids, parts_used=[{"part_id": "P1", "quantity": 1, "price": price}])


def test_line_price_accepts_digit_string(shop, ids):
    wo = new_order(shop, ids, labor_cost=0, parts_used=[{"part_id": "P1", "quantity": 2, "price": "75000"}]).value
    assert wo.parts_used[0].price == 75_000
    assert wo.total == 150_000
