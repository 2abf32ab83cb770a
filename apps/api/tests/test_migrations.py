"""
Migration graph integrity and model/migration agreement.

New migrations must chain off the current head rather than introduce a
new root. The bootstrap only ever applies migrations.
"""
from pathlib import Path

import pytest
from alembic.config import Config
from alembic.script import ScriptDirectory

import core.database
import run_migrations
from core.database import Base

EXPECTED_HEADS = {"001"}
API_ROOT = Path(__file__).resolve().parents[1]


def _script():
    cfg = Config(str(API_ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(API_ROOT / "alembic"))
    return ScriptDirectory.from_config(cfg)


def test_single_expected_head():
    assert set(_script().get_heads()) == EXPECTED_HEADS


def test_single_root():
    roots = [r.revision for r in _script().walk_revisions() if r.down_revision is None]
    assert roots == ["001"]


def test_models_cover_migrated_tables():
    assert {
        "recovery_enrollment",
        "recovery_task_instance",
        "recovery_task_completion",
        "symptom_report",
    } <= set(Base.metadata.tables)


class TestBootstrap:
    @pytest.fixture(autouse=True)
    def no_schema_shortcuts(self, monkeypatch):
        def create_all(*args, **kwargs):
            raise AssertionError("schema must come from migrations")

        monkeypatch.setattr(Base.metadata, "create_all", create_all)
        monkeypatch.setattr(run_migrations.time, "sleep", lambda seconds: None)

    def test_upgrades_to_head(self, monkeypatch):
        calls = []
        monkeypatch.setattr(core.database, "check_db_connection", lambda: True)
        monkeypatch.setattr(run_migrations, "alembic_upgrade_head", lambda: calls.append("head"))

        run_migrations.main()

        assert calls == ["head"]

    def test_failed_upgrade_exits_without_fallback(self, monkeypatch):
        def broken():
            raise RuntimeError("relation already exists")

        monkeypatch.setattr(core.database, "check_db_connection", lambda: True)
        monkeypatch.setattr(run_migrations, "alembic_upgrade_head", broken)

        with pytest.raises(SystemExit) as exc:
            run_migrations.main()
        assert exc.value.code == 1

    def test_unreachable_database_exits(self, monkeypatch):
        calls = []
        monkeypatch.setattr(core.database, "check_db_connection", lambda: False)
        monkeypatch.setattr(run_migrations, "alembic_upgrade_head", lambda: calls.append("head"))

        with pytest.raises(SystemExit) as exc:
            run_migrations.main()
        assert exc.value.code == 1
        assert calls == []
