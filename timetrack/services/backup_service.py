"""
Backup Service - Snapshots of the live database file.

Architecture Decision: Why raw file copies?
- The database is a single SQLite file; a copy is a complete, restorable backup
- No engine involvement, so a backup never competes with a write for locks
- Callers take backups *before* migrations, never while one is running

Backup naming convention: timetrack_backup_YYYY-MM-DD_<reason>.db
One file per (day, reason) pair, so "is it due?" is a filename lookup.
"""

import logging
import re
import shutil
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class BackupService:
    """
    Handles database backup, retention pruning and restore.
    """

    BACKUP_PREFIX = "timetrack_backup_"
    BACKUP_EXTENSION = ".db"

    def __init__(self, db_path: Path, backup_dir: Path, retention_count: int = 10):
        self.db_path = Path(db_path)
        self.backup_dir = Path(backup_dir)
        self.retention_count = retention_count

    @staticmethod
    def _slug(reason: str) -> str:
        slug = re.sub(r"[^a-z0-9]+", "-", reason.strip().lower()).strip("-")
        return slug or "manual"

    def backup_path_for(self, reason: str, day: Optional[date] = None) -> Path:
        """Deterministic backup file path for a reason on a given day"""
        day = day or date.today()
        filename = f"{self.BACKUP_PREFIX}{day.isoformat()}_{self._slug(reason)}{self.BACKUP_EXTENSION}"
        return self.backup_dir / filename

    def backup_if_due(self, reason: str = "daily", source: Optional[Path] = None) -> Optional[Path]:
        """
        Copy the database unless today's backup for this reason already exists.

        Args:
            reason: Why the backup is taken (daily, pre-migration, ...)
            source: File to copy, defaults to the live database

        Returns:
            Path to the new backup, or None if nothing was written
        """
        source = Path(source) if source is not None else self.db_path
        if not source.exists():
            logger.debug(f"No database at {source}, nothing to back up")
            return None

        backup_file = self.backup_path_for(reason)
        if backup_file.exists():
            return None

        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
            # copyfile, not copy2: the backup's mtime must be the time it was taken
            shutil.copyfile(source, backup_file)
        except OSError as e:
            logger.error(f"Backup '{reason}' of {source} failed: {e}")
            if backup_file.exists():
                try:
                    backup_file.unlink()
                except OSError:
                    logger.warning(f"Could not remove partial backup {backup_file}")
            return None

        logger.info(f"Backup created: {backup_file}")
        self.prune(self.retention_count)
        return backup_file

    def _backup_files(self) -> List[Path]:
        if not self.backup_dir.is_dir():
            return []
        files = [
            f for f in self.backup_dir.glob(f"{self.BACKUP_PREFIX}*{self.BACKUP_EXTENSION}")
            if f.is_file()
        ]
        # Newest first; name breaks ties between copies made within the same mtime tick
        files.sort(key=lambda f: (f.stat().st_mtime, f.name), reverse=True)
        return files

    def prune(self, retention_count: Optional[int] = None) -> List[Path]:
        """
        Remove old backups, keeping only the most recent ones.

        Args:
            retention_count: Number of backups to keep

        Returns:
            Files that were deleted
        """
        keep = self.retention_count if retention_count is None else retention_count
        removed = []
        for backup in self._backup_files()[max(keep, 0):]:
            try:
                backup.unlink()
                removed.append(backup)
                logger.info(f"Removed old backup: {backup.name}")
            except OSError as e:
                logger.warning(f"Failed to remove backup {backup.name}: {e}")
        return removed

    def list_backups(self) -> List[Dict[str, Any]]:
        """
        List all available backups in the backup directory.

        Returns:
            List of backup info dictionaries, newest first
        """
        backups = []
        for file in self._backup_files():
            stat = file.stat()
            backups.append({
                "filename": file.name,
                "path": str(file),
                "created": datetime.fromtimestamp(stat.st_mtime),
                "size_bytes": stat.st_size,
                "size_human": self._format_size(stat.st_size)
            })
        return backups

    def _format_size(self, size_bytes: float) -> str:
        """Format file size in human-readable format"""
        for unit in ['B', 'KB', 'MB', 'GB']:
            if size_bytes < 1024:
                return f"{size_bytes:.1f} {unit}"
            size_bytes /= 1024
        return f"{size_bytes:.1f} TB"

    def restore_backup(self, backup_file: Path) -> Path:
        """
        Replace the live database with a backup copy.

        The current file is saved as a 'pre-restore' backup first. Stale
        WAL sidecars are removed so SQLite does not replay them onto the
        restored file. Only call this while no connection is open.

        Args:
            backup_file: Path to the backup file

        Returns:
            Path of the live database
        """
        backup_file = Path(backup_file)
        if not backup_file.is_file():
            raise FileNotFoundError(f"Backup file not found: {backup_file}")

        self.backup_if_due("pre-restore")

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        for suffix in ("-wal", "-shm"):
            sidecar = self.db_path.with_name(self.db_path.name + suffix)
            if sidecar.exists():
                sidecar.unlink()

        shutil.copyfile(backup_file, self.db_path)
        logger.info(f"Database restored from: {backup_file}")
        return self.db_path
