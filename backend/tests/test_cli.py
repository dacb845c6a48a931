# Overview: Pytest coverage for the Flask CLI command groups.

from stockbook.models import StockItem
from stockbook.services import sales_service
from conftest import cart


class TestStockCommands:

    def test_add_and_list(self, app, db_session):
        runner = app.test_cli_runner()

        result = runner.invoke(args=["stock", "add", "--code", "P100", "--name", "Spark plug", "--quantity", "3"])
        assert result.exit_code == 0
        assert "PASS Created stock item P100" in result.output

        listing = runner.invoke(args=["stock", "list"])
        assert "Spark plug" in listing.output

    def test_add_duplicate_fails(self, app, db_session, item_a):
        result = app.test_cli_runner().invoke(args=["stock", "add", "--code", "BP-01", "--name", "Again"])

        assert result.exit_code == 1
        assert "FAIL" in result.output

    def test_seed_from_file(self, app, db_session, tmp_path):
        names = tmp_path / "names.txt"
        names.write_text("Brake pad\nOil filter\n\nBrake pad\n")

        result = app.test_cli_runner().invoke(args=["stock", "seed", str(names)])

        assert result.exit_code == 0
        assert "Seeded 2 stock items (P001..P002)" in result.output
        assert db_session.query(StockItem).count() == 2


class TestReportCommands:

    def test_profit_and_finance(self, app, db_session, item_a):
        sales_service.record_sale(cart((item_a.id, 3), sale_date="2024-05-01"))
        runner = app.test_cli_runner()

        profit = runner.invoke(args=["reports", "profit", "--year", "2024"])
        assert profit.exit_code == 0
        assert "2024-05-01" in profit.output
        assert "1500" in profit.output

        finance = runner.invoke(args=["reports", "finance", "--month", "5"])
        assert finance.exit_code == 0
        assert "4500" in finance.output
