"""
Startup Service - brings the database into a usable state on launch.

Order matters: snapshots are taken before anything rewrites the file
(legacy move, baselining, migrations) and the routine daily backup comes
last, once the schema is current.
"""

import logging
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError

from timetrack.infra.config import Settings
from timetrack.infra.errors import StoreError
from timetrack.infra.schema import SchemaStore
from timetrack.services.backup_service import BackupService

logger = logging.getLogger(__name__)


class StartupReport(BaseModel):
    database_path: Path
    legacy_migrated: bool = False
    applied_migrations: List[str] = Field(default_factory=list)
    baselined: bool = False
    schema_ready: bool = False
    tuning_applied: bool = False
    integrity_ok: Optional[bool] = None
    backups: List[Path] = Field(default_factory=list)


class StartupService:
    """
    Wires SchemaStore and BackupService together and runs the startup steps.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.store = SchemaStore(settings)
        self.backups = BackupService(
            self.store.resolve_location(),
            self.store.backup_dir,
            settings.preferences.backup_retention_count,
        )
        self.store.backups = self.backups

    def run(self) -> StartupReport:
        prefs = self.settings.preferences
        report = StartupReport(database_path=self.store.db_path)
        before = {b["path"] for b in self.backups.list_backups()}

        report.legacy_migrated = self.store.migrate_legacy_if_present()

        try:
            report.applied_migrations = self.store.ensure_schema()
            report.schema_ready = True
        except (SQLAlchemyError, StoreError) as e:
            # Usually a corrupt file; the integrity check below reports it
            logger.error(f"Could not prepare database schema at {self.store.db_path}: {e}")
        report.baselined = self.store.baselined

        report.tuning_applied = self.store.apply_tuning()

        if prefs.check_integrity_on_startup or not report.schema_ready:
            report.integrity_ok = self.store.check_integrity()

        # A damaged file must not push good backups out of retention
        if prefs.backup_enabled and report.schema_ready and report.integrity_ok is not False:
            self.backups.backup_if_due("daily")

        report.backups = [Path(b["path"]) for b in self.backups.list_backups() if b["path"] not in before]
        logger.info(
            f"Database ready at {report.database_path} "
            f"(migrations applied: {len(report.applied_migrations)}, integrity ok: {report.integrity_ok})"
        )
        return report
