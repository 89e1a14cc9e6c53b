from garment_ledger.extensions import db
from garment_ledger.models import Size, StoreSettings, Product


def test_system_init_is_idempotent(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["system", "init"])
    assert result.exit_code == 0, result.output
    assert db.session.query(Size).count() == 7
    assert db.session.query(StoreSettings).one().tax_rate_bps == 1800

    result = runner.invoke(args=["system", "init"])
    assert result.exit_code == 0, result.output
    assert db.session.query(Size).count() == 7
    assert db.session.query(StoreSettings).count() == 1


def test_seed_sizes_reports_nothing_to_do(app, db_session):
    runner = app.test_cli_runner()
    runner.invoke(args=["catalog", "seed-sizes"])

    result = runner.invoke(args=["catalog", "seed-sizes"])
    assert "already exist" in result.output


def test_refresh_totals(app, db_session, scarf, stock):
    stock(scarf, quantity=4)

    result = app.test_cli_runner().invoke(args=["inventory", "refresh-totals", "--product-id", str(scarf.id)])

    assert result.exit_code == 0, result.output
    assert db.session.get(Product, scarf.id).quantity_in_stock == 4


def test_next_number_does_not_reserve(app, db_session):
    runner = app.test_cli_runner()
    assert runner.invoke(args=["invoices", "next-number"]).output.strip() == "INV-000001"
    assert runner.invoke(args=["invoices", "next-number"]).output.strip() == "INV-000001"
