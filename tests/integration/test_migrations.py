"""Integration test: the Alembic history builds the same guards as the ORM models."""

from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from src.config.settings import reset_settings

PROJECT_ROOT = Path(__file__).parent.parent.parent


class TestInitialMigration:
    """Test upgrade to head on an empty database."""

    def test_upgrade_creates_tables_and_unique_guards(self, tmp_path, monkeypatch):
        url = f"sqlite:///{tmp_path / 'migrated.db'}"
        monkeypatch.setenv("DATABASE_URL", url)
        reset_settings()
        try:
            # No ini file: keeps alembic from reconfiguring the test run's loggers
            config = Config()
            config.set_main_option("script_location", str(PROJECT_ROOT / "src" / "migrations"))
            command.upgrade(config, "head")
        finally:
            monkeypatch.undo()
            reset_settings()

        inspector = inspect(create_engine(url))
        assert {
            "users",
            "house_types",
            "houses",
            "payments",
            "payment_months",
            "incomes",
            "system_configs",
        } <= set(inspector.get_table_names())

        month_indexes = {ix["name"]: ix for ix in inspector.get_indexes("payment_months")}
        assert month_indexes["uq_payment_months_house_period_active"]["unique"]
        assert month_indexes["uq_payment_months_house_period_active"]["column_names"] == [
            "house_id",
            "year",
            "month",
        ]

        income_uniques = inspector.get_unique_constraints("incomes")
        assert any(u["column_names"] == ["payment_id"] for u in income_uniques)
