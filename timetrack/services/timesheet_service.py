"""
Timesheet Service - the day view's state and its persistence calls.

Architecture Decision: explicit saves instead of change events
Every accepted edit calls `repository.update` with the whole day right
away. There are no property-changed hooks, so nothing writes behind the
caller's back and re-entrant saves cannot happen. The service does not
touch any UI toolkit; callers schedule their own redraws.
"""

import logging
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional

from timetrack.domain.models import DayTotals, RecordKey, TimeRecord, UserPreferences, WriteResult
from timetrack.infra.repository import TimeRecordRepository
from timetrack.services.time_string_service import normalize_time

logger = logging.getLogger(__name__)

TIME_FIELDS = ("start_time", "end_time")


class TimesheetService:
    """
    Holds the records of the active date and keeps storage in step with them.

    When a write is not committed the records are re-read from storage,
    so `records` always reflects what is actually saved.
    """

    def __init__(self, repository: TimeRecordRepository, preferences: Optional[UserPreferences] = None):
        self.repository = repository
        self.preferences = preferences or UserPreferences()
        self.date: date = date.today()
        self.records: List[TimeRecord] = []
        self._current_id = 0
        self.last_result: Optional[WriteResult] = None

    def parse_time(self, text: Optional[str]):
        return normalize_time(
            text,
            work_start=self.preferences.work_hours_start,
            work_end=self.preferences.work_hours_end,
        )

    def load(self, day: Optional[date] = None) -> List[TimeRecord]:
        """Make `day` the active date and read its records"""
        self.date = day or date.today()
        self.records = self.repository.retrieve(self.date)
        self._current_id = max(
            self.repository.current_max_id(self.date),
            max((r.id for r in self.records), default=0),
        )
        return self.records

    def _next_id(self) -> int:
        self._current_id += 1
        return self._current_id

    def _find(self, record_id: int) -> TimeRecord:
        key: RecordKey = (self.date, record_id)
        for record in self.records:
            if record.key == key:
                return record
        raise KeyError(f"No record {record_id} on {self.date.isoformat()}")

    def save(self) -> WriteResult:
        """Upsert every record of the active date; re-read if that failed"""
        result = self.repository.update(self.records)
        self.last_result = result
        if not result.ok:
            logger.warning(f"Save of {self.date.isoformat()} did not commit ({result.status.value}), reloading")
            self.load(self.date)
        return result

    def submit_entry(self, start_text: str, end_text: str, ticket_number: str = "", notes: str = "") -> Optional[TimeRecord]:
        """
        Add a record from raw field text.

        Returns:
            The new record, or None if either time is not valid
        """
        start = self.parse_time(start_text)
        end = self.parse_time(end_text)
        if start is None or end is None:
            return None

        record = TimeRecord(
            date=self.date,
            id=self._next_id(),
            start_time=start,
            end_time=end,
            ticket_number=ticket_number,
            notes=notes,
        )
        self.records.append(record)
        self.save()
        return record

    def insert_blank(self, index: Optional[int] = None) -> TimeRecord:
        """Insert an empty record; it is stored once both times are filled in"""
        if index is None or index < 0 or index > len(self.records):
            index = len(self.records)
        record = TimeRecord(date=self.date, id=self._next_id())
        self.records.insert(index, record)
        return record

    def edit(self, record_id: int, **changes) -> WriteResult:
        """
        Change fields of one record and save the day.

        Time fields accept raw text; text that does not parse leaves the
        field unchanged.
        """
        record = self._find(record_id)
        for field, value in changes.items():
            if field in TIME_FIELDS and isinstance(value, str):
                parsed = self.parse_time(value) if value.strip() else None
                if value.strip() and parsed is None:
                    logger.info(f"Ignoring invalid {field} '{value}' for {record.key_text}")
                    continue
                value = parsed
            setattr(record, field, value)
        return self.save()

    def mark_recorded(self, record_id: int, recorded: bool = True) -> WriteResult:
        return self.edit(record_id, recorded=recorded)

    def remove(self, record_id: int) -> WriteResult:
        """Delete from storage first; memory follows only if that committed"""
        record = self._find(record_id)
        result = self.repository.delete(*record.key)
        self.last_result = result
        if not result.ok:
            self.load(self.date)
            return result

        self.records.remove(record)
        return self.save()

    def totals(self) -> DayTotals:
        """
        Hours on ticketed records and gap minutes on the rest.

        Lunch (no ticket, notes "lunch") counts as neither.
        """
        worked = timedelta()
        gaps = timedelta()
        for record in self.records:
            duration = record.duration
            if duration is None:
                continue
            if not record.ticket_is_empty:
                worked += duration
            elif not record.is_lunch:
                gaps += duration

        hours = Decimal(worked.total_seconds()) / Decimal(3600)
        return DayTotals(
            hours_total=float(hours.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)),
            gap_minutes=gaps.total_seconds() / 60,
        )
