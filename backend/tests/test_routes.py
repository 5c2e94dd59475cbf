"""
HTTP tests against the demo workshop data.

Every test starts from an empty store, so the demo collections are served
as defaults until a command writes them.
"""

HEADER = "STT,Danh mục sản phẩm,Đơn giá nhập,Giá bán,Đơn vị,Tồn kho\n"


def part_stock(client, part_id, branch_id):
    response = client.get(f"/api/parts/{part_id}")
    assert response.status_code == 200
    return response.json["part"]["stock"].get(branch_id, 0)


def test_health(client, db_session):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json["status"] == "healthy"
    assert response.json["checks"]["database"]["status"] == "healthy"


def test_list_parts_for_branch(client, db_session):
    response = client.get("/api/parts?branch_id=q2&status=out-of-stock")
    assert response.status_code == 200
    assert [p["id"] for p in response.json["items"]] == ["P003"]
    assert response.json["items"][0]["stockStatus"] == "out-of-stock"

    response = client.get("/api/parts?branch_id=nowhere")
    assert response.status_code == 400


def test_unknown_part_is_404(client, db_session):
    assert client.get("/api/parts/P999").status_code == 404
    response = client.patch("/api/parts/P999", json={"name": "x"})
    assert response.status_code == 404


def test_create_part_validation(client, db_session):
    response = client.post("/api/parts", json={"name": "Xích", "stock": 5})
    assert response.status_code == 400
    assert "stock" in response.json["error"]

    response = client.post("/api/parts", json={"name": "Xích", "price": 12.5})
    assert response.status_code == 400

    response = client.post("/api/parts", json={"name": "Xích", "sku": "ngk-cpr8eaix-9"})
    assert response.status_code == 409

    response = client.post(
        "/api/parts", json={"name": "Xích DID", "opening_stock": 3, "branch_id": "q2", "price": 150000},
    )
    assert response.status_code == 201
    assert response.json["part"]["stock"] == {"q2": 3}


def test_sale_lifecycle(client, db_session):
    response = client.post("/api/sales", json={
        "branch_id": "main",
        "sale_id": "SALE-T1",
        "items": [{"part_id": "P001", "quantity": 2}, {"part_id": "P004", "quantity": 1}],
        "order_discount": 10000,
        "customer_id": "C001",
        "timestamp": "2025-06-01T09:30:00Z",
    })
    assert response.status_code == 201, response.json
    assert response.json["sale_id"] == "SALE-T1"
    assert part_stock(client, "P001", "main") == 8

    history = client.get("/api/sales?branch_id=main").json["items"]
    sale = next(s for s in history if s["id"] == "SALE-T1")
    assert sale["totalDiscount"] == 10000
    assert sale["date"] == "2025-06-01"

    editable = client.get("/api/sales/SALE-T1/edit")
    assert editable.status_code == 200
    assert {line["partId"] for line in editable.json["cart"]} == {"P001", "P004"}

    response = client.put("/api/sales/SALE-T1", json={"items": [{"part_id": "P001", "quantity": 1}]})
    assert response.status_code == 200
    assert part_stock(client, "P001", "main") == 9
    assert part_stock(client, "P004", "main") == 15

    assert client.delete("/api/sales/SALE-T1").status_code == 200
    assert part_stock(client, "P001", "main") == 10
    # Deleting again is a no-op
    assert client.delete("/api/sales/SALE-T1").status_code == 200
    assert client.get("/api/sales/SALE-T1/edit").status_code == 404


def test_sale_beyond_stock_is_409(client, db_session):
    response = client.post("/api/sales", json={
        "branch_id": "main",
        "items": [{"part_id": "P003", "quantity": 5}],
    })
    assert response.status_code == 409
    assert response.json["details"]["items"] == [
        {"part_id": "P003", "branch_id": "main", "requested": 5, "on_hand": 4},
    ]
    assert part_stock(client, "P003", "main") == 4


def test_transfer_and_adjustment(client, db_session):
    response = client.post("/api/inventory/transfers", json={
        "part_id": "P006", "from_branch_id": "main", "to_branch_id": "q2", "quantity": 3,
    })
    assert response.status_code == 201
    assert len(response.json["transactions"]) == 2
    assert part_stock(client, "P006", "q2") == 7

    response = client.post("/api/inventory/transfers", json={
        "part_id": "P006", "from_branch_id": "main", "to_branch_id": "main", "quantity": 1,
    })
    assert response.status_code == 400

    response = client.post("/api/inventory/adjustments", json={
        "part_id": "P006", "branch_id": "q2", "type": "Xuất kho", "quantity": 8,
    })
    assert response.status_code == 409

    response = client.post("/api/inventory/adjustments", json={
        "part_id": "P006", "branch_id": "q2", "type": "Nhập kho", "quantity": 1, "notes": "Kiểm kê",
    })
    assert response.status_code == 201
    rows = client.get("/api/inventory/transactions?branch_id=q2&part_id=P006").json["items"]
    assert rows[0]["notes"] == "Kiểm kê"


def test_goods_receipt_returns_warnings(client, db_session):
    response = client.post("/api/inventory/receipts", json={
        "branch_id": "main",
        "supplier_id": "SUP001",
        "items": [{"part_id": "P001", "quantity": 5, "purchase_price": 120000}],
    })
    assert response.status_code == 201
    assert [w["code"] for w in response.json["warnings"]] == ["purchase-price-up"]
    assert part_stock(client, "P001", "main") == 15


def test_csv_import(client, db_session):
    response = client.post("/api/inventory/import", json={
        "branch_id": "q2",
        "csv": HEADER + "1,Nhớt Motul 300V,460000,560000,chai,2\n2,Phuộc YSS,1500000,1900000,cây,1\n",
    })
    assert response.status_code == 201
    assert response.json["summary"] == {"added": 1, "updated": 1, "skipped": 0}
    assert part_stock(client, "P002", "q2") == 5

    response = client.post("/api/inventory/import", json={"csv": "a,b\n1,2\n"})
    assert response.status_code == 400


def test_work_order_crud(client, db_session):
    response = client.post("/api/work-orders", json={
        "customer_name": "Anh Bảy",
        "vehicle_model": "Yamaha Exciter",
        "labor_cost": 50000,
        "parts_used": [{"part_id": "P005", "quantity": 1}],
    })
    assert response.status_code == 201
    wo = response.json["work_order"]
    assert wo["total"] == 50000 + 180000

    response = client.patch(f"/api/work-orders/{wo['id']}", json={"status": "Trả máy"})
    assert response.status_code == 200
    # Consumption is off unless configured
    assert part_stock(client, "P005", "main") == 20

    assert client.patch(f"/api/work-orders/{wo['id']}", json={"status": "Bỏ"}).status_code == 400
    assert client.delete(f"/api/work-orders/{wo['id']}").status_code == 200
    assert client.get(f"/api/work-orders/{wo['id']}").status_code == 404


def test_users_and_departments(client, db_session):
    response = client.post("/api/users", json={
        "name": "Phạm Thu Ngân", "login_phone": "thungan01", "password": "pw-123456",
        "department_ids": ["dept_tech"],
    })
    assert response.status_code == 201
    user = response.json["user"]
    assert "passwordHash" not in user

    duplicate = client.post("/api/users", json={"name": "Khác", "login_phone": "thungan01", "password": "x"})
    assert duplicate.status_code == 409

    allowed = client.get(f"/api/users/{user['id']}/permissions?module=inventory&action=view").json
    assert allowed["allowed"] is True
    denied = client.get(f"/api/users/{user['id']}/permissions?module=sales").json
    assert denied["allowed"] is False

    assert client.delete("/api/departments/dept_tech").status_code == 200
    users = client.get("/api/users").json["items"]
    assert next(u for u in users if u["id"] == user["id"])["departmentIds"] == []


def test_settings_and_branch_selection(client, db_session):
    body = client.get("/api/settings").json
    assert body["current_branch_id"] == "main"
    response = client.post("/api/settings/branch", json={"branch_id": "q2"})
    assert response.status_code == 200
    assert client.get("/api/settings").json["current_branch_id"] == "q2"
    # Requests without branch_id follow the selected branch
    assert client.get("/api/parts").json["branch_id"] == "q2"
    assert client.post("/api/settings/branch", json={"branch_id": "q9"}).status_code == 400


def test_reports(client, db_session):
    dashboard = client.get("/api/reports/dashboard?branch_id=main")
    assert dashboard.status_code == 200
    assert dashboard.json["retail_revenue"] == 150000

    inventory = client.get("/api/reports/inventory?branch_id=main&today=2025-01-01")
    assert inventory.status_code == 200
    assert inventory.json["counts"]["lowStock"] >= 1

    revenue = client.get("/api/reports/revenue?branch_id=main&start=2024-07-01&end=2024-07-31&period=month")
    assert revenue.status_code == 200
    assert revenue.json["series"][0]["label"] == "2024-07"

    assert client.get("/api/reports/revenue?period=year").status_code == 400
    assert client.get("/api/reports/revenue?cost_basis=fifo").status_code == 400


def test_demo_stock_shows_drift(client, db_session):
    response = client.get("/api/inventory/drift")
    assert response.status_code == 200
    assert response.json["count"] > 0


def test_cashflow(client, db_session):
    response = client.post("/api/cashflow/transactions", json={
        "type": "expense", "amount": 500000, "payment_source_id": "cash", "contact_name": "Điện lực",
    })
    assert response.status_code == 201
    sources = {s["id"]: s["balance"] for s in client.get("/api/cashflow/payment-sources").json["items"]}
    assert sources["cash"] == 14373238 - 500000
    listed = client.get("/api/cashflow/transactions").json
    assert listed["summary"]["total_expense"] == 500000

    assert client.delete("/api/cashflow/payment-sources/cash").status_code == 400
    assert client.delete("/api/cashflow/payment-sources/nope").status_code == 404


def test_customers_and_suppliers(client, db_session):
    found = client.get("/api/customers?search=0912").json["items"]
    assert [c["id"] for c in found] == ["C003"]

    response = client.post("/api/customers", json={"name": "Võ Thị Hoa", "phone": "0933111222"})
    assert response.status_code == 201
    customer_id = response.json["customer"]["id"]
    assert client.get("/api/customers").json["items"][0]["id"] == customer_id

    response = client.patch(f"/api/customers/{customer_id}", json={"loyalty_points": "1.5"})
    assert response.status_code == 400
    assert client.delete("/api/customers/C999").status_code == 404

    assert client.post("/api/suppliers", json={"name": "Không số"}).status_code == 400
    response = client.post("/api/suppliers", json={"name": "Phụ tùng Yamaha", "phone": "0281234567"})
    assert response.status_code == 201
    assert client.get("/api/suppliers").json["items"][-1]["name"] == "Phụ tùng Yamaha"


def test_work_order_line_price_is_validated(client, db_session):
    response = client.post("/api/work-orders", json={
        "customer_name": "Anh Bảy",
        "parts_used": [{"part_id": "P001", "quantity": 1, "price": "abc"}],
    })
    assert response.status_code == 400
    assert response.json["details"]["part_id"] == "P001"
