#!/usr/bin/env python

"""
TimeTrack - Main Entry Point

Prepares the local database (legacy move, migrations, integrity check,
daily backup) and then runs one command against it.

Usage:
    python main.py show [--date YYYY-MM-DD]
    python main.py normalize 900 5:30pm 1730
    python main.py backup
    python main.py backups
    python main.py restore <backup-file>

Set TIMETRACK_APPDATA to keep the data somewhere other than the user profile.
"""

import argparse
import sys
from datetime import date
from pathlib import Path

# Add app directory to path
sys.path.insert(0, str(Path(__file__).parent))

from timetrack.infra.config import Settings
from timetrack.infra.logging_config import configure_logging
from timetrack.infra.repository import TimeRecordRepository
from timetrack.services import StartupService, TimesheetService, format_time, normalize_time


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="timetrack", description="Local time logging")
    commands = parser.add_subparsers(dest="command")

    show = commands.add_parser("show", help="List the records of a day")
    show.add_argument("--date", type=date.fromisoformat, default=None, help="Day to show (default: today)")

    normalize = commands.add_parser("normalize", help="Show how time input would be read")
    normalize.add_argument("values", nargs="+")

    commands.add_parser("backup", help="Take a manual backup now")
    commands.add_parser("backups", help="List backup files")

    restore = commands.add_parser("restore", help="Replace the database with a backup")
    restore.add_argument("file", type=Path)
    return parser


def show_day(settings: Settings, startup: StartupService, day: date) -> int:
    timesheet = TimesheetService(TimeRecordRepository(startup.store), settings.preferences)
    records = timesheet.load(day)
    print(f"{day.isoformat()} - {len(records)} record(s)")
    for record in records:
        flag = "x" if record.recorded else " "
        print(
            f"[{flag}] #{record.id:<3} {format_time(record.start_time):>8} - {format_time(record.end_time):>8}  "
            f"{record.ticket_number:<15} {record.notes}"
        )
    totals = timesheet.totals()
    print(f"Hours: {totals.hours_total:.2f}   Gaps: {totals.gap_minutes:.0f} min")
    return 0


def main(argv=None) -> int:
    """Main entry point"""
    args = build_parser().parse_args(argv)
    settings = Settings()
    configure_logging(settings.log_dir, settings.log_level)

    if args.command == "normalize":
        prefs = settings.preferences
        for value in args.values:
            parsed = normalize_time(value, prefs.work_hours_start, prefs.work_hours_end)
            print(f"{value!r:>12} -> {parsed.strftime('%H:%M') if parsed else 'invalid'}")
        return 0

    startup = StartupService(settings)
    report = startup.run()
    if report.integrity_ok is False:
        print(f"WARNING: database integrity check failed, backups are in {startup.store.backup_dir}")

    if args.command == "backup":
        created = startup.backups.backup_if_due("manual")
        print(f"Backup created: {created}" if created else "A manual backup was already taken today")
        return 0

    if args.command == "backups":
        for backup in startup.backups.list_backups():
            print(f"{backup['created']:%Y-%m-%d %H:%M}  {backup['size_human']:>9}  {backup['filename']}")
        return 0

    if args.command == "restore":
        startup.store.dispose()
        startup.backups.restore_backup(args.file)
        print(f"Restored {args.file} to {startup.store.db_path}")
        return 0

    return show_day(settings, startup, args.date or date.today())


if __name__ == "__main__":
    sys.exit(main())
