"""
Data Seeder for TimeTrack.
Populates the database with a realistic work week for testing and demo purposes.

Usage:
    python scripts/seed_data.py [--start YYYY-MM-DD] [--days N] [--reset]
"""

import argparse
import random
import sys
from datetime import date, time, timedelta
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from timetrack.domain.models import TimeRecord
from timetrack.infra.config import Settings
from timetrack.infra.logging_config import configure_logging
from timetrack.infra.repository import TimeRecordRepository
from timetrack.services.startup_service import StartupService

TICKETS = ["SUP-1042", "SUP-1057", "DEV-311", "DEV-318", "OPS-77"]

# Pattern: Mon-Fri
# - 8:30 - 12:00: ticket work
# - 12:00 - 12:45: lunch
# - 12:45 - 13:00: untracked gap
# - 13:00 - 17:15: ticket work, split in two
DAY_PLAN = [
    (time(8, 30), time(12, 0), True, "Morning queue"),
    (time(12, 0), time(12, 45), False, "Lunch"),
    (time(13, 0), time(15, 0), True, "Follow-ups"),
    (time(15, 0), time(17, 15), True, "Feature work"),
]


def reset_database(settings: Settings):
    """Delete the existing database file to ensure a fresh seed"""
    db_path = settings.resolved_database_path
    if not db_path.exists():
        print(f"No existing database found at: {db_path}")
        return
    print(f"Removing existing database at: {db_path}")
    try:
        for suffix in ("", "-wal", "-shm"):
            Path(f"{db_path}{suffix}").unlink(missing_ok=True)
        print("Database removed.")
    except PermissionError:
        print("ERROR: Could not remove database. It might be in use.")
        sys.exit(1)


def records_for(day: date, repo: TimeRecordRepository):
    next_id = repo.current_max_id(day) + 1
    records = []
    for offset, (start, end, ticketed, notes) in enumerate(DAY_PLAN):
        records.append(TimeRecord(
            date=day,
            id=next_id + offset,
            start_time=start,
            end_time=end,
            ticket_number=random.choice(TICKETS) if ticketed else "",
            notes=notes,
            recorded=day < date.today() and random.random() > 0.3,
        ))
    return records


def seed(start: date, days: int, reset: bool) -> int:
    settings = Settings()
    configure_logging(settings.log_dir, settings.log_level)
    if reset:
        reset_database(settings)

    print("Starting data seeding...")
    startup = StartupService(settings)
    report = startup.run()
    if not report.schema_ready:
        print("ERROR: Database is not usable, nothing was seeded.")
        return 1

    repo = TimeRecordRepository(startup.store)
    current = start
    for _ in range(days):
        # Skip weekends
        if current.weekday() < 5:
            result = repo.update(records_for(current, repo))
            if not result.ok:
                print(f"ERROR: Could not write {current}: {result.error}")
                return 1
            print(f"Generated {len(result.written)} records for {current}")
        current += timedelta(days=1)

    startup.store.dispose()
    print("Seeding complete.")
    return 0


def main(argv=None) -> int:
    monday = date.today() - timedelta(days=date.today().weekday())
    parser = argparse.ArgumentParser(description="Seed TimeTrack with sample records")
    parser.add_argument("--start", type=date.fromisoformat, default=monday, help="First day (default: this Monday)")
    parser.add_argument("--days", type=int, default=7, help="Number of days to fill")
    parser.add_argument("--reset", action="store_true", help="Delete the database first")
    args = parser.parse_args(argv)
    return seed(args.start, args.days, args.reset)


if __name__ == "__main__":
    sys.exit(main())
