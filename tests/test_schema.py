"""
Tests for SchemaStore: location, migrations, baselining, legacy moves,
tuning and integrity checks.
"""

import pytest
from sqlalchemy import inspect

from timetrack.infra.config import Settings
from timetrack.infra.errors import StoreError
from timetrack.infra.migrations import BASELINE_REVISION, revision_chain
from timetrack.infra.schema import SchemaStore, StoreState
from timetrack.services.backup_service import BackupService

from conftest import create_untracked_database

ALL_MIGRATIONS = revision_chain()


def index_names(store):
    with store.db.engine.connect() as conn:
        return {ix["name"] for ix in inspect(conn).get_indexes("time_entries")}


def stamped_revision(store):
    with store.db.engine.connect() as conn:
        return conn.exec_driver_sql("SELECT version_num FROM alembic_version").scalar()


def test_revisions_keep_their_historic_ids():
    assert ALL_MIGRATIONS == ["20251018000000_initial_create", "20251019010727_add_indexes"]
    assert BASELINE_REVISION == ALL_MIGRATIONS[0]


def test_resolve_location_has_no_side_effects(settings):
    store = SchemaStore(settings)

    first = store.resolve_location()
    second = store.resolve_location()

    assert first == second == settings.data_dir / "timetrack_v2.db"
    assert not settings.data_dir.exists()
    assert store.state == StoreState.LOCATION_RESOLVED


def test_explicit_database_path_wins(tmp_path):
    target = tmp_path / "elsewhere" / "my.db"
    settings = Settings(appdata=tmp_path / "appdata", database_path=target)

    assert SchemaStore(settings).resolve_location() == target


def test_appdata_environment_override(tmp_path, monkeypatch):
    monkeypatch.setenv("TIMETRACK_APPDATA", str(tmp_path / "portable"))

    settings = Settings()

    assert SchemaStore(settings).db_path.parent.parent == tmp_path / "portable"


def test_ensure_schema_creates_everything(settings):
    store = SchemaStore(settings)

    applied = store.ensure_schema()

    assert applied == ALL_MIGRATIONS
    assert store.applied_migrations() == ALL_MIGRATIONS
    assert index_names(store) == {"ix_time_entries_date", "ix_time_entries_date_start_end"}
    assert stamped_revision(store) == "20251019010727_add_indexes"
    assert store.state == StoreState.SCHEMA_ENSURED
    store.dispose()


def test_ensure_schema_twice_is_harmless(settings):
    store = SchemaStore(settings)

    store.ensure_schema()
    second = store.ensure_schema()

    assert second == []
    assert store.applied_migrations() == ALL_MIGRATIONS
    assert len(index_names(store)) == 2
    store.dispose()


def test_untracked_database_is_baselined(settings):
    store = SchemaStore(settings)
    create_untracked_database(store.db_path)
    backups = BackupService(store.db_path, store.backup_dir)
    store.backups = backups

    applied = store.ensure_schema()

    assert store.baselined
    assert applied == ["20251019010727_add_indexes"]
    assert store.applied_migrations() == ALL_MIGRATIONS
    assert stamped_revision(store) == ALL_MIGRATIONS[-1]
    assert backups.backup_path_for("pre-baseline").exists()
    with store.db.engine.connect() as conn:
        assert conn.exec_driver_sql("SELECT notes FROM time_entries").scalar() == "kept"
    store.dispose()


def test_legacy_database_is_moved(settings):
    legacy = settings.legacy_database_path
    create_untracked_database(legacy)
    store = SchemaStore(settings)
    backups = BackupService(store.db_path, store.backup_dir)
    store.backups = backups

    moved = store.migrate_legacy_if_present()

    assert moved
    assert store.state == StoreState.LEGACY_MIGRATED
    assert store.db_path.exists()
    assert not legacy.exists()
    assert backups.backup_path_for("pre-legacy-migration").exists()


def test_legacy_is_ignored_when_database_exists(store):
    legacy = store.settings.legacy_database_path
    create_untracked_database(legacy)

    assert store.migrate_legacy_if_present() is False
    assert legacy.exists()
    assert store.state == StoreState.NO_LEGACY


def test_legacy_move_falls_back_to_copy(settings, monkeypatch):
    legacy = settings.legacy_database_path
    create_untracked_database(legacy)

    def cross_device(src, dst):
        raise OSError(18, "Invalid cross-device link")

    monkeypatch.setattr("timetrack.infra.schema.os.replace", cross_device)
    store = SchemaStore(settings)

    assert store.migrate_legacy_if_present()
    assert store.db_path.exists()
    assert not legacy.exists()


def test_failed_legacy_move_continues_fresh(settings, monkeypatch):
    create_untracked_database(settings.legacy_database_path)

    def broken(*args, **kwargs):
        raise OSError("device not ready")

    monkeypatch.setattr("timetrack.infra.schema.os.replace", broken)
    monkeypatch.setattr("timetrack.infra.schema.shutil.copy2", broken)
    store = SchemaStore(settings)

    assert store.migrate_legacy_if_present() is False
    assert store.ensure_schema() == ALL_MIGRATIONS
    store.dispose()


def test_tuning_enables_wal(store):
    assert store.apply_tuning()
    with store.db.engine.connect() as conn:
        assert conn.exec_driver_sql("PRAGMA journal_mode").scalar().lower() == "wal"
        assert conn.exec_driver_sql("PRAGMA busy_timeout").scalar() == 5000
        assert conn.exec_driver_sql("PRAGMA foreign_keys").scalar() == 1
    assert store.state == StoreState.TUNING_APPLIED


def test_integrity_check_passes_on_healthy_database(store):
    assert store.check_integrity()
    assert store.state == StoreState.INTEGRITY_CHECKED


def test_integrity_check_reports_corrupt_file(settings):
    store = SchemaStore(settings)
    store.db_path.parent.mkdir(parents=True)
    store.db_path.write_bytes(b"NOT A SQLITE DB" * 20)

    assert store.check_integrity() is False
    assert store.integrity_ok is False
    store.dispose()


def test_partially_migrated_database_is_upgraded(settings):
    store = SchemaStore(settings)
    create_untracked_database(store.db_path)
    with store.db.engine.begin() as conn:
        conn.exec_driver_sql("CREATE TABLE alembic_version (version_num VARCHAR(32) NOT NULL PRIMARY KEY)")
        conn.exec_driver_sql(f"INSERT INTO alembic_version VALUES ('{BASELINE_REVISION}')")
    backups = BackupService(store.db_path, store.backup_dir)
    store.backups = backups

    applied = store.ensure_schema()

    assert applied == ["20251019010727_add_indexes"]
    assert not store.baselined
    assert len(index_names(store)) == 2
    assert backups.backup_path_for("pre-migration").exists()
    store.dispose()


def test_unknown_revision_is_refused(settings):
    store = SchemaStore(settings)
    store.ensure_schema()
    with store.db.engine.begin() as conn:
        conn.exec_driver_sql("UPDATE alembic_version SET version_num = '29990101000000_future'")

    with pytest.raises(StoreError):
        store.ensure_schema()
    store.dispose()


def test_tuning_failure_is_not_fatal(settings):
    store = SchemaStore(settings)
    store.db_path.parent.mkdir(parents=True)
    store.db_path.write_bytes(b"NOT A SQLITE DB" * 20)

    assert store.apply_tuning() is False
    store.dispose()
