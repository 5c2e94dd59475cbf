from motocare.services import state_service


def test_system_init_is_idempotent(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["system", "init"])
    assert result.exit_code == 0
    assert result.output.startswith("PASS Stored defaults for:")

    again = runner.invoke(args=["system", "init"])
    assert "nothing to do" in again.output


def test_check_drift_fails_on_demo_stock(app, db_session):
    result = app.test_cli_runner().invoke(args=["inventory", "check-drift"])
    assert result.exit_code == 1
    assert "FAIL" in result.output


def test_stock_lists_branch_quantities(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["inventory", "stock", "--branch", "q2"])
    assert result.exit_code == 0
    assert "Chi nhánh Quận 2" in result.output
    assert "out-of-stock" in result.output

    result = runner.invoke(args=["inventory", "stock", "--branch", "q9"])
    assert result.exit_code != 0
    assert "Unknown branch" in result.output


def test_import_csv_file(app, db_session, tmp_path):
    csv_path = tmp_path / "bang_gia.csv"
    csv_path.write_text(
        "STT,Danh mục sản phẩm,Đơn giá nhập,Giá bán,Đơn vị,Tồn kho\n"
        "1,Ắc quy GS 12V,350.000,420.000,cái,4\n",
        encoding="utf-8-sig",
    )
    result = app.test_cli_runner().invoke(args=["inventory", "import-csv", str(csv_path), "--branch", "main"])
    assert result.exit_code == 0, result.output
    assert "Added 1, updated 0, skipped 0" in result.output

    part = next(p for p in state_service.load_state().parts if p.name == "Ắc quy GS 12V")
    assert part.price == 350_000
    assert part.stock == {"main": 4}


def test_import_csv_rejects_wrong_header(app, db_session, tmp_path):
    csv_path = tmp_path / "sai.csv"
    csv_path.write_text("a,b,c\n", encoding="utf-8")
    result = app.test_cli_runner().invoke(args=["inventory", "import-csv", str(csv_path)])
    assert result.exit_code != 0
    assert "Header" in result.output


def test_revenue_report(app, db_session):
    result = app.test_cli_runner().invoke(args=[
        "reports", "revenue", "--branch", "main", "--start", "2024-07-01", "--end", "2024-07-31", "--period", "month",
    ])
    assert result.exit_code == 0, result.output
    assert "2024-07" in result.output

    result = app.test_cli_runner().invoke(args=["reports", "revenue", "--period", "year"])
    assert result.exit_code != 0
