"""
Pytest configuration and fixtures.
"""

import sqlite3
import sys
from contextlib import closing
from pathlib import Path

import pytest

# Add project root
sys.path.insert(0, str(Path(__file__).parent.parent))

from timetrack.domain.models import UserPreferences
from timetrack.infra.config import Settings
from timetrack.infra.repository import TimeRecordRepository
from timetrack.infra.schema import SchemaStore
from timetrack.services.backup_service import BackupService


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep user environment and working directory out of Settings"""
    for name in ("TIMETRACK_APPDATA", "TIMETRACK_DATABASE_PATH", "TIMETRACK_DATA_DIR", "TIMETRACK_CONFIG_DIR"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def settings(tmp_path):
    """Settings rooted in a temporary app data folder, no legacy file"""
    return Settings(
        appdata=tmp_path / "appdata",
        legacy_database_path=tmp_path / "legacy" / "timetrack.db",
        preferences=UserPreferences(),
    )


@pytest.fixture
def store(settings):
    """An initialized database"""
    store = SchemaStore(settings)
    store.initialize()
    yield store
    store.dispose()


@pytest.fixture
def backups(store):
    return BackupService(store.db_path, store.backup_dir, retention_count=3)


@pytest.fixture
def repo(store):
    """Repository without retry delays"""
    return TimeRecordRepository(store, retry_delay=0)


UNTRACKED_SCHEMA = """
CREATE TABLE time_entries (
    date TEXT NOT NULL,
    id INTEGER NOT NULL,
    start_time TEXT,
    end_time TEXT,
    ticket_number TEXT,
    notes TEXT,
    recorded INTEGER NOT NULL,
    PRIMARY KEY (date, id)
)
"""


def create_untracked_database(path: Path):
    """A database made by the old create-if-missing bootstrap, no migration history"""
    path.parent.mkdir(parents=True, exist_ok=True)
    with closing(sqlite3.connect(path)) as conn:
        conn.execute(UNTRACKED_SCHEMA)
        conn.execute(
            "INSERT INTO time_entries VALUES ('2025-10-01', 1, '09:00:00', '10:00:00', 'OLD-1', 'kept', 0)"
        )
        conn.commit()
