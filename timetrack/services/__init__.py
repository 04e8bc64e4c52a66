"""Services layer - Business logic"""

from .backup_service import BackupService
from .startup_service import StartupReport, StartupService
from .time_string_service import format_time, normalize_time
from .timesheet_service import TimesheetService

__all__ = [
    "BackupService",
    "StartupReport",
    "StartupService",
    "TimesheetService",
    "format_time",
    "normalize_time",
]
