import random

import pytest

from motocare.domain.entities import Customer, Supplier
from motocare.services import catalog_service, ledger_service
from motocare.services.catalog_service import CatalogConflictError, CatalogError, CatalogNotFoundError

from conftest import make_part, make_state


def test_generate_sku_strips_accents():
    sku = catalog_service.generate_sku("Đèn pha xe Wave", random.Random(7))
    prefix, digits = sku.split("-")
    assert prefix == "DPX"
    assert len(digits) == 4 and digits.isdigit()
    assert catalog_service.generate_sku("   ") == ""


def test_create_part_with_opening_stock_goes_through_ledger(empty_shop, ids):
    result = catalog_service.create_part(
        empty_shop, {"name": "Xích DID", "sku": "DID-428", "price": 180_000, "selling_price": 250_000},
        branch_id="q2", opening_stock=6, id_factory=ids,
    )
    part = result.value
    assert part.stock == {"q2": 6}
    row = result.state.transactions[0]
    assert row.part_id == part.id
    assert row.notes == "Tồn kho ban đầu"
    assert ledger_service.stock_drift(result.state) == []


def test_create_part_generates_sku_and_rejects_duplicates(empty_shop, ids):
    created = catalog_service.create_part(empty_shop, {"name": "Gương chiếu hậu"}, id_factory=ids)
    assert created.value.sku.startswith("GCH-")
    assert created.value.stock == {}
    with pytest.raises(CatalogConflictError):
        catalog_service.create_part(empty_shop, {"name": "Khác", "sku": "lx-0001"}, id_factory=ids)
    with pytest.raises(CatalogError):
        catalog_service.create_part(empty_shop, {"name": "  "}, id_factory=ids)
    with pytest.raises(CatalogError):
        catalog_service.create_part(empty_shop, {"name": "Ốc"}, opening_stock=3, id_factory=ids)


def test_update_part_cannot_touch_stock():
    state = make_state(make_part("P1", stock={"main": 4}), make_part("P2", sku="OTHER"))
    result = catalog_service.update_part(state, "P1", {"selling_price": 175_000, "stock": {"main": 99}})
    assert result.value.selling_price == 175_000
    assert result.value.stock == {"main": 4}
    with pytest.raises(CatalogConflictError):
        catalog_service.update_part(state, "P1", {"sku": "other"})
    with pytest.raises(CatalogNotFoundError):
        catalog_service.update_part(state, "P9", {"name": "x"})


def test_delete_part_keeps_history(empty_shop, ids):
    from motocare.domain.entities import ReceiptItem

    state = ledger_service.record_goods_receipt(empty_shop, "main", [ReceiptItem("P1", 1, 1)], id_factory=ids).state
    result = catalog_service.delete_part(state, "P1")
    assert result.state.find_part("P1") is None
    assert len(result.state.transactions) == 1


def test_category_rename_and_delete():
    state = make_state(
        make_part("P1", category="Lốp"),
        make_part("P2", sku="S2", category="Lốp"),
        make_part("P3", sku="S3", category="Dầu nhớt"),
    )
    assert catalog_service.list_categories(state) == ["Dầu nhớt", "Lốp"]

    renamed = catalog_service.rename_category(state, "Lốp", "Vỏ xe").state
    assert [p.category for p in renamed.parts] == ["Vỏ xe", "Vỏ xe", "Dầu nhớt"]
    with pytest.raises(CatalogConflictError):
        catalog_service.rename_category(state, "Lốp", "dầu NHỚT")
    # Blank or identical names are a no-op
    assert catalog_service.rename_category(state, "Lốp", " ").state is state
    # Changing only the case is allowed
    assert catalog_service.rename_category(state, "Lốp", "LỐP").value == "LỐP"

    cleared = catalog_service.delete_category(state, "Lốp").state
    assert [p.category for p in cleared.parts] == [None, None, "Dầu nhớt"]


def test_contacts_search_and_crud(ids):
    state = make_state(customers=(
        Customer("C1", "Nguyễn Văn An", "0901234567"),
        Customer("C2", "Trần Bình", "0987654321"),
    ))
    assert [c.id for c in catalog_service.search_contacts(state.customers, "an")] == ["C1"]
    assert [c.id for c in catalog_service.search_contacts(state.customers, "0987")] == ["C2"]
    assert len(catalog_service.search_contacts(state.customers, "")) == 2

    created = catalog_service.create_customer(state, {"name": "Lê Chi", "phone": "0911"}, id_factory=ids)
    assert created.state.customers[0].id == "C-1"
    with pytest.raises(CatalogError):
        catalog_service.create_customer(state, {"name": "Không số"}, id_factory=ids)

    updated = catalog_service.update_customer(created.state, "C2", {"loyalty_points": 120})
    assert updated.value.loyalty_points == 120
    removed = catalog_service.delete_customer(updated.state, "C2").state
    assert [c.id for c in removed.customers] == ["C-1", "C1"]
    with pytest.raises(CatalogNotFoundError):
        catalog_service.delete_customer(removed, "C2")


def test_suppliers_are_appended(ids):
    state = make_state(suppliers=(Supplier("SUP1", "Phụ tùng Honda", "028"),))
    state = catalog_service.create_supplier(state, {"name": "Nhớt Motul", "phone": "029"}, id_factory=ids).state
    assert [s.id for s in state.suppliers] == ["SUP1", "SUP-1"]
    state = catalog_service.update_supplier(state, "SUP-1", {"email": "motul@example.com"}).state
    assert state.suppliers[1].email == "motul@example.com"
    with pytest.raises(CatalogNotFoundError):
        catalog_service.update_supplier(state, "SUP9", {})
