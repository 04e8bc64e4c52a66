"""
Domain Models using Pydantic for validation.

Architecture Decision: Why Pydantic?
Pydantic provides runtime data validation, ensuring data integrity when loading
rows from the database or preferences from YAML. It also gives us frozen
identity fields and easy serialization.
"""

import datetime as dt
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


RecordKey = Tuple[dt.date, int]


def format_key(day: dt.date, record_id: int) -> str:
    """Human-readable composite key, e.g. 2025-10-18#3"""
    return f"{day.isoformat()}#{record_id}"


class TimeRecord(BaseModel):
    """
    One row of logged time.

    `date` and `id` form the identity and cannot change after creation.
    Either time may be unset while the user is still filling the entry in.
    """
    model_config = ConfigDict(from_attributes=True, validate_assignment=True)

    date: dt.date = Field(..., frozen=True)
    id: int = Field(..., ge=1, frozen=True)
    start_time: Optional[dt.time] = None
    end_time: Optional[dt.time] = None
    ticket_number: str = Field(default="", max_length=255)
    notes: str = ""
    recorded: bool = False

    @field_validator("ticket_number", "notes", mode="before")
    @classmethod
    def _none_as_empty(cls, value):
        return "" if value is None else value

    @property
    def key(self) -> RecordKey:
        return (self.date, self.id)

    @property
    def key_text(self) -> str:
        return format_key(self.date, self.id)

    @property
    def is_complete(self) -> bool:
        return self.start_time is not None and self.end_time is not None

    @property
    def duration(self) -> Optional[dt.timedelta]:
        """
        Elapsed time between start and end.

        Equal times give zero; an end before the start spans midnight.
        """
        if not self.is_complete:
            return None
        start = dt.datetime.combine(self.date, self.start_time)
        end = dt.datetime.combine(self.date, self.end_time)
        if end < start:
            end += dt.timedelta(days=1)
        return end - start

    @property
    def ticket_is_empty(self) -> bool:
        return not self.ticket_number.strip()

    @property
    def is_lunch(self) -> bool:
        return self.ticket_is_empty and self.notes.strip().lower() == "lunch"


class WriteStatus(str, Enum):
    COMMITTED = "committed"
    BUSY = "busy"
    FAILED = "failed"


class WriteResult(BaseModel):
    """Outcome of a repository write. Writes never raise to the caller."""

    status: WriteStatus
    attempts: int = 0
    written: List[str] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)
    deleted: int = 0
    failed_key: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == WriteStatus.COMMITTED


class DayTotals(BaseModel):
    """Aggregates shown under the day's record list"""

    hours_total: float = 0.0
    gap_minutes: float = 0.0


class UserPreferences(BaseModel):
    """
    User configuration and preferences.

    This allows users to customize behavior without touching code.
    """
    model_config = ConfigDict(from_attributes=True)

    # Time input
    work_hours_start: dt.time = Field(
        default=dt.time(7, 0),
        description="Start of the typical work window used to place 12-hour times without AM/PM"
    )
    work_hours_end: dt.time = Field(default=dt.time(19, 0), description="End of the typical work window")

    # Backup settings
    backup_enabled: bool = Field(default=True, description="Take a daily backup on startup")
    backup_retention_count: int = Field(default=10, ge=1, description="Number of backup files to keep")

    # Maintenance
    check_integrity_on_startup: bool = Field(default=True, description="Run PRAGMA integrity_check on startup")

    @model_validator(mode="after")
    def _check_work_window(self) -> "UserPreferences":
        if self.work_hours_end <= self.work_hours_start:
            raise ValueError("work_hours_end must be later than work_hours_start")
        return self
