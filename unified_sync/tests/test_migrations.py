"""Alembic migration tests"""

from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from unified_sync.core.config import settings

PROJECT_ROOT = Path(__file__).resolve().parents[2]


def alembic_config():
    config = Config(str(PROJECT_ROOT / "alembic.ini"))
    config.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    return config


class TestMigrations:
    def test_ini_does_not_pin_a_database(self):
        """Migrations must not silently target a local file"""
        assert alembic_config().get_main_option("sqlalchemy.url") is None

    def test_upgrade_targets_configured_database(self, tmp_path, monkeypatch):
        """Upgrade without an explicit URL uses DATABASE_URL"""
        target = tmp_path / "target.db"
        monkeypatch.setattr(settings, "DATABASE_URL", f"sqlite:///{target}")

        command.upgrade(alembic_config(), "head")

        engine = create_engine(f"sqlite:///{target}")
        try:
            tables = set(inspect(engine).get_table_names())
        finally:
            engine.dispose()
        assert {"unified_objects", "connection_sync_configs", "user_connections", "sync_runs"} <= tables
