"""
Tests for the startup sequence as a whole.
"""

from datetime import date

from timetrack.infra.migrations import revision_chain
from timetrack.infra.repository import TimeRecordRepository
from timetrack.services.startup_service import StartupService

from conftest import create_untracked_database


def test_fresh_install(settings):
    startup = StartupService(settings)

    report = startup.run()

    assert report.database_path.exists()
    assert report.applied_migrations == revision_chain()
    assert report.schema_ready
    assert report.tuning_applied
    assert report.integrity_ok is True
    assert not report.legacy_migrated
    assert [p.name for p in report.backups] == [f"timetrack_backup_{date.today().isoformat()}_daily.db"]
    startup.store.dispose()


def test_second_startup_changes_nothing(settings):
    StartupService(settings).run()

    report = StartupService(settings).run()

    assert report.applied_migrations == []
    assert report.backups == []
    assert report.integrity_ok is True


def test_legacy_install_is_moved_and_baselined(settings):
    create_untracked_database(settings.legacy_database_path)
    startup = StartupService(settings)

    report = startup.run()

    assert report.legacy_migrated
    assert report.baselined
    reasons = {p.stem.rsplit("_", 1)[-1] for p in report.backups}
    assert reasons == {"pre-legacy-migration", "pre-baseline", "daily"}

    records = TimeRecordRepository(startup.store).retrieve(date(2025, 10, 1))
    assert [(r.id, r.ticket_number, r.notes) for r in records] == [(1, "OLD-1", "kept")]


def test_corrupt_database_does_not_stop_startup(settings):
    path = settings.data_dir / settings.database_filename
    path.parent.mkdir(parents=True)
    path.write_bytes(b"NOT A SQLITE DB" * 20)

    report = StartupService(settings).run()

    assert report.schema_ready is False
    assert report.integrity_ok is False
    assert report.backups == []


def test_backups_can_be_disabled(settings):
    settings.preferences.backup_enabled = False

    report = StartupService(settings).run()

    assert report.backups == []
