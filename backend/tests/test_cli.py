"""
CLI command tests, run through Flask's CLI runner against the test database.
"""

from cofitearia.extensions import db
from cofitearia.models import InventoryItem, Product, SystemSetting, User


class TestSystemInit:

    def test_init_bootstraps_shop(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["system", "init"])

        assert result.exit_code == 0, result.output
        assert "DONE Cofitearia initialized" in result.output

        admin = db.session.query(User).filter_by(username="admin").one()
        assert admin.role == "OWNER"
        assert db.session.query(Product).count() == 5
        assert db.session.query(InventoryItem).count() == 5
        assert db.session.query(SystemSetting).count() == 3

    def test_init_is_idempotent(self, app, db_session):
        runner = app.test_cli_runner()
        runner.invoke(args=["system", "init"])
        result = runner.invoke(args=["system", "init"])

        assert result.exit_code == 0, result.output
        assert "Using existing owner account: admin" in result.output
        assert "sample menu skipped" in result.output
        assert db.session.query(Product).count() == 5


class TestUsersCommands:

    def test_list_users(self, app, staff, manager):
        result = app.test_cli_runner().invoke(args=["users", "list"])
        assert result.exit_code == 0
        assert "staffuser" in result.output
        assert "manager" in result.output

    def test_create_user(self, app, db_session):
        result = app.test_cli_runner().invoke(args=[
            "users", "create",
            "--username", "maria", "--first-name", "Maria", "--last-name", "Cruz",
            "--password", "secret123", "--role", "PWD_STAFF",
        ])
        assert result.exit_code == 0, result.output
        assert "with role 'PWD Staff'" in result.output

    def test_create_user_short_password_fails(self, app, db_session):
        result = app.test_cli_runner().invoke(args=[
            "users", "create",
            "--username", "maria", "--first-name", "Maria", "--last-name", "Cruz",
            "--password", "abc",
        ])
        assert result.exit_code == 1
        assert db.session.query(User).filter_by(username="maria").first() is None


class TestPermsCommands:

    def test_check_granted(self, app, manager):
        result = app.test_cli_runner().invoke(args=["perms", "check", "manager", "VOID_SALE"])
        assert result.exit_code == 0
        assert "HAS permission 'VOID_SALE'" in result.output

    def test_check_denied(self, app, staff):
        result = app.test_cli_runner().invoke(args=["perms", "check", "staffuser", "DELETE_USER"])
        assert "DOES NOT HAVE permission 'DELETE_USER'" in result.output

    def test_check_unknown_user(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["perms", "check", "ghost", "VOID_SALE"])
        assert result.exit_code == 1

    def test_list_for_staff_role(self, app):
        result = app.test_cli_runner().invoke(args=["perms", "list", "--role", "STAFF"])
        assert result.exit_code == 0
        assert "Total: 4 permissions" in result.output
        assert "VOID_SALE" not in result.output


class TestInspect:

    def test_tables(self, app, owner, milk_tea_stock):
        result = app.test_cli_runner().invoke(args=["inspect", "tables"])
        assert result.exit_code == 0
        assert "=== INVENTORY ITEMS ===" in result.output
        assert "Classic Milk Tea" in result.output

    def test_low_stock_all_adequate(self, app, milk_tea_stock):
        result = app.test_cli_runner().invoke(args=["inspect", "low-stock"])
        assert "PASS All stock levels adequate" in result.output

    def test_low_stock_reports_critical(self, app, milk_tea_stock, matcha_stock):
        result = app.test_cli_runner().invoke(args=["inspect", "low-stock"])
        assert "CRITICAL (1)" in result.output
        assert "Matcha Latte" in result.output
        assert "Classic Milk Tea" not in result.output
