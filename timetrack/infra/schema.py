"""
SchemaStore - owns the database file's location, shape and health.

Startup runs the steps in order:

    resolve location -> migrate legacy file -> ensure schema
        -> apply tuning -> (check integrity)

Every step is idempotent and cheap when nothing has changed, so the whole
sequence runs on every launch.
"""

import logging
import os
import shutil
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, Tuple

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from timetrack.infra.config import Settings
from timetrack.infra.db import DatabaseEngine, TimeRecordModel
from timetrack.infra.errors import StoreError
from timetrack.infra.migrations import BASELINE_REVISION, alembic_config, revision_chain

if TYPE_CHECKING:
    from timetrack.services.backup_service import BackupService

logger = logging.getLogger(__name__)

SIDECAR_SUFFIXES = ("-wal", "-shm")


class StoreState(str, Enum):
    UNRESOLVED = "unresolved"
    LOCATION_RESOLVED = "location_resolved"
    LEGACY_MIGRATED = "legacy_migrated"
    NO_LEGACY = "no_legacy"
    SCHEMA_ENSURED = "schema_ensured"
    TUNING_APPLIED = "tuning_applied"
    INTEGRITY_CHECKED = "integrity_checked"


def _with_suffix(path: Path, suffix: str) -> Path:
    return path.with_name(path.name + suffix)


def _move_file(source: Path, destination: Path):
    """Rename, or copy + delete when source and destination are on different volumes"""
    try:
        os.replace(source, destination)
        return
    except OSError as e:
        logger.info(f"Rename of {source} failed ({e}), falling back to copy + delete")

    try:
        shutil.copy2(source, destination)
    except OSError:
        if destination.exists():
            destination.unlink()
        raise

    try:
        source.unlink()
    except OSError as e:
        logger.warning(f"Copied {source} but could not remove it: {e}")


class SchemaStore:
    """
    Handles creation, migration and tuning of the SQLite database file.

    A BackupService may be attached; it is asked for a snapshot before
    anything rewrites an existing file.
    """

    def __init__(self, settings: Settings, backups: Optional["BackupService"] = None):
        self.settings = settings
        self.backups = backups
        self.state = StoreState.UNRESOLVED
        self.db_path = self.resolve_location()
        self.state = StoreState.LOCATION_RESOLVED
        self.baselined = False
        self.integrity_ok: Optional[bool] = None
        self._db: Optional[DatabaseEngine] = None

    def resolve_location(self) -> Path:
        """Database file path: explicit override first, else the app data directory"""
        return Path(self.settings.resolved_database_path).expanduser()

    @property
    def backup_dir(self) -> Path:
        return self.db_path.parent / "Backups"

    @property
    def db(self) -> DatabaseEngine:
        if self._db is None:
            self._db = DatabaseEngine(self.db_path)
        return self._db

    def session(self) -> Session:
        """New session; callers use it as a context manager and never keep it"""
        return self.db.get_session()

    def dispose(self):
        if self._db is not None:
            self._db.dispose()

    def initialize(self) -> List[str]:
        """Run migration, schema and tuning steps. Returns migrations applied."""
        self.migrate_legacy_if_present()
        applied = self.ensure_schema()
        self.apply_tuning()
        return applied

    def migrate_legacy_if_present(self) -> bool:
        """
        Move a database from the legacy location to the resolved one.

        Only happens when nothing exists at the resolved location yet. Any
        failure is logged and startup continues with a fresh database.

        Returns:
            True if a legacy database was moved
        """
        legacy = self.settings.legacy_database_path
        if self.db_path.exists() or legacy is None:
            self.state = StoreState.NO_LEGACY
            return False

        legacy = Path(legacy).expanduser()
        if not legacy.is_file() or legacy.resolve() == self.db_path.resolve():
            self.state = StoreState.NO_LEGACY
            return False

        logger.info(f"Found legacy database at {legacy}, moving it to {self.db_path}")
        if self.backups is not None:
            self.backups.backup_if_due("pre-legacy-migration", source=legacy)

        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            _move_file(legacy, self.db_path)
        except OSError as e:
            logger.error(f"Legacy database migration failed, continuing with a fresh database: {e}")
            self.state = StoreState.NO_LEGACY
            return False

        for suffix in SIDECAR_SUFFIXES:
            sidecar = _with_suffix(legacy, suffix)
            if not sidecar.exists():
                continue
            try:
                _move_file(sidecar, _with_suffix(self.db_path, suffix))
            except OSError as e:
                logger.warning(f"Could not move {sidecar}: {e}")

        self.state = StoreState.LEGACY_MIGRATED
        return True

    def _alembic_config(self, connection=None) -> Config:
        return alembic_config(f"sqlite:///{self.db_path}", connection)

    def _inspect(self) -> Tuple[bool, Optional[str]]:
        """Whether the data table exists, and the revision stamped in alembic_version"""
        with self.db.engine.connect() as conn:
            has_data = inspect(conn).has_table(TimeRecordModel.__tablename__)
            current = MigrationContext.configure(conn).get_current_revision()
        return has_data, current

    def ensure_schema(self) -> List[str]:
        """
        Create or upgrade the schema with Alembic.

        A file that has the data table but no alembic_version row was created
        before migrations were tracked; it is stamped at the baseline
        revision instead of being re-created.

        Returns:
            Ids of the revisions applied by this call

        Raises:
            StoreError: the file is stamped with a revision this release does not know
        """
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        has_data, current = self._inspect()
        chain = revision_chain()

        needs_baseline = has_data and current is None
        if needs_baseline:
            current = BASELINE_REVISION
        if current is not None and current not in chain:
            raise StoreError(f"{self.db_path} is at unknown revision {current}, probably written by a newer release")
        pending = chain[chain.index(current) + 1:] if current is not None else chain

        if not pending and not needs_baseline:
            self.state = StoreState.SCHEMA_ENSURED
            return []

        if has_data and self.backups is not None:
            self.backups.backup_if_due("pre-baseline" if needs_baseline else "pre-migration")

        # Stamp and upgrade share one transaction; a failure rolls back both
        with self.db.engine.begin() as conn:
            config = self._alembic_config(conn)
            if needs_baseline:
                logger.warning(f"Baselining untracked database {self.db_path} at {BASELINE_REVISION}")
                command.stamp(config, BASELINE_REVISION)
            if pending:
                logger.info(f"Applying migrations: {', '.join(pending)}")
                command.upgrade(config, "head")

        self.baselined = self.baselined or needs_baseline
        self.state = StoreState.SCHEMA_ENSURED
        return pending

    def applied_migrations(self) -> List[str]:
        """Revisions up to and including the one stamped in the file, oldest first"""
        with self.db.engine.connect() as conn:
            current = MigrationContext.configure(conn).get_current_revision()
        chain = revision_chain()
        if current not in chain:
            return []
        return chain[:chain.index(current) + 1]

    def apply_tuning(self) -> bool:
        """
        Turn on WAL, busy timeout, foreign keys and NORMAL sync for all connections.

        Returns:
            True if the database reports WAL journaling afterwards
        """
        self.db.enable_tuning()
        try:
            with self.db.engine.connect() as conn:
                journal_mode = conn.exec_driver_sql("PRAGMA journal_mode").scalar()
                conn.exec_driver_sql("PRAGMA optimize")
        except SQLAlchemyError as e:
            logger.warning(f"Could not apply database tuning: {e}")
            return False

        self.state = StoreState.TUNING_APPLIED
        if str(journal_mode).lower() != "wal":
            logger.warning(f"Database is using journal_mode={journal_mode}, expected WAL")
            return False
        return True

    def check_integrity(self) -> bool:
        """
        Run a full consistency check.

        A failure never blocks startup; it is logged so the user can
        restore a backup.
        """
        try:
            with self.db.engine.connect() as conn:
                rows = list(conn.exec_driver_sql("PRAGMA integrity_check").scalars())
        except SQLAlchemyError as e:
            rows = [str(e)]

        self.integrity_ok = rows == ["ok"]
        self.state = StoreState.INTEGRITY_CHECKED
        if not self.integrity_ok:
            logger.error(
                f"Integrity check failed for {self.db_path}: {'; '.join(rows[:10])}. "
                f"Restore a backup from {self.backup_dir}"
            )
        return self.integrity_ok
