from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

ROOT = Path(__file__).resolve().parents[1]


def test_upgrade_and_downgrade(tmp_path, monkeypatch):
    url = f"sqlite:///{tmp_path / 'migrate.db'}"
    monkeypatch.setenv("DATABASE_URL", url)
    config = Config()
    config.set_main_option("script_location", str(ROOT / "alembic"))

    command.upgrade(config, "head")
    engine = create_engine(url)
    inspector = inspect(engine)
    assert {"users", "tasks"} <= set(inspector.get_table_names())
    unique = {ix["name"] for ix in inspector.get_indexes("users") if ix["unique"]}
    assert {"ix_users_username", "ix_users_email"} <= unique

    command.downgrade(config, "base")
    assert "tasks" not in inspect(engine).get_table_names()
    engine.dispose()
