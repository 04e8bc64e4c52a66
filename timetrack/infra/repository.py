"""
Repository Pattern Implementation.

Architecture Decision: Why Repository Pattern?
Separates data access logic from business logic. Makes it easy to:
- Keep every SQL statement for time records in one place
- Mock data for testing
- Convert between domain models (Pydantic) and ORM rows (SQLAlchemy)

Writes never raise to the caller. They return a WriteResult; when the
result is not ok the caller re-reads the day to get back in sync.
"""

import logging
import time
from datetime import date, time as time_of_day
from typing import Callable, Iterable, List, Optional, Tuple, TypeVar

from sqlalchemy import delete, func, select
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from timetrack.domain.models import TimeRecord, WriteResult, WriteStatus, format_key
from timetrack.infra.db import TimeRecordModel, is_busy_error
from timetrack.infra.errors import RecordWriteError, StoreBusyError
from timetrack.infra.schema import SchemaStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

DATE_FORMAT = "%Y-%m-%d"


def date_to_text(day: date) -> str:
    return day.strftime(DATE_FORMAT)


def time_to_text(value: Optional[time_of_day]) -> Optional[str]:
    """Canonical HH:MM:SS storage form, or None"""
    if value is None:
        return None
    return value.replace(microsecond=0).isoformat(timespec="seconds")


class TimeRecordRepository:
    """
    Handles all TimeRecord-related database operations.

    Each method opens and closes its own session. Writes retry on a
    locked/busy database with linear backoff (retry_delay * attempt).
    """

    def __init__(
        self,
        store: SchemaStore,
        max_attempts: int = 3,
        retry_delay: float = 0.2,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.store = store
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self._sleep = sleep

    def _get_session(self) -> Session:
        return self.store.session()

    # Reads

    def current_max_id(self, day: date) -> int:
        """Highest committed id for a date, 0 if the date has no records"""
        try:
            with self._get_session() as session:
                result = session.execute(
                    select(func.max(TimeRecordModel.id)).where(TimeRecordModel.date == date_to_text(day))
                )
                return result.scalar() or 0
        except SQLAlchemyError as e:
            logger.error(f"Could not get current record id for {day}: {e}")
            raise

    def retrieve(self, day: date) -> List[TimeRecord]:
        """
        All records for a date, ordered by start time (unset last), end time, id.

        Plain rows over a connection: nothing is loaded into a Session, so a
        read never tracks or flushes anything.
        """
        table = TimeRecordModel.__table__
        stmt = (
            select(table)
            .where(table.c.date == date_to_text(day))
            .order_by(
                table.c.start_time.asc().nulls_last(),
                table.c.end_time.asc().nulls_last(),
                table.c.id.asc(),
            )
        )
        try:
            with self.store.db.engine.connect() as conn:
                rows = conn.execute(stmt).mappings().all()
            return [TimeRecord.model_validate(dict(row)) for row in rows]
        except SQLAlchemyError as e:
            logger.error(f"Something went wrong while retrieving records for {day}: {e}")
            raise

    # Writes

    def _with_retry(self, operation: str, action: Callable[[], T]) -> Tuple[T, int]:
        attempt = 0
        while True:
            attempt += 1
            try:
                return action(), attempt
            except OperationalError as e:
                if not is_busy_error(e):
                    raise
                if attempt >= self.max_attempts:
                    raise StoreBusyError(operation, attempt) from e
                delay = self.retry_delay * attempt
                logger.warning(
                    f"{operation}: database busy (attempt {attempt}/{self.max_attempts}), retrying in {delay:.2f}s"
                )
                self._sleep(delay)

    def _upsert_once(self, records: List[TimeRecord]) -> Tuple[List[str], List[str]]:
        written, skipped = [], []
        with self._get_session() as session:
            with session.begin():
                for record in records:
                    if not record.is_complete:
                        logger.info(f"Skipping incomplete record {record.key_text}: start and end time are required")
                        skipped.append(record.key_text)
                        continue

                    values = {
                        "date": date_to_text(record.date),
                        "id": record.id,
                        "start_time": time_to_text(record.start_time),
                        "end_time": time_to_text(record.end_time),
                        "ticket_number": record.ticket_number or None,
                        "notes": record.notes or None,
                        "recorded": 1 if record.recorded else 0,
                    }
                    stmt = insert(TimeRecordModel).values(**values)
                    stmt = stmt.on_conflict_do_update(
                        index_elements=["date", "id"],
                        set_={k: stmt.excluded[k] for k in values if k not in ("date", "id")},
                    )
                    try:
                        session.execute(stmt)
                    except OperationalError as e:
                        if is_busy_error(e):
                            raise
                        raise RecordWriteError(str(e), key=record.key_text) from e
                    except SQLAlchemyError as e:
                        raise RecordWriteError(str(e), key=record.key_text) from e
                    written.append(record.key_text)
        return written, skipped

    def update(self, records: Iterable[TimeRecord]) -> WriteResult:
        """
        Upsert a batch of records in one transaction.

        Records missing either time are skipped. Any other failure rolls
        back the whole batch.
        """
        records = list(records)
        if not records:
            return WriteResult(status=WriteStatus.COMMITTED)

        try:
            (written, skipped), attempts = self._with_retry(
                "update", lambda: self._upsert_once(records)
            )
        except StoreBusyError as e:
            logger.error(f"Database was busy/locked after multiple attempts during update: {e}")
            return WriteResult(status=WriteStatus.BUSY, attempts=e.attempts, error=str(e))
        except RecordWriteError as e:
            logger.error(f"Database update failed for {e.key}, batch rolled back: {e}")
            return WriteResult(status=WriteStatus.FAILED, failed_key=e.key, error=str(e))
        except SQLAlchemyError as e:
            logger.error(f"Something went wrong while updating the records: {e}")
            return WriteResult(status=WriteStatus.FAILED, error=str(e))

        return WriteResult(
            status=WriteStatus.COMMITTED, attempts=attempts, written=written, skipped=skipped
        )

    def _delete_once(self, day: date, record_id: int) -> int:
        with self._get_session() as session:
            with session.begin():
                result = session.execute(
                    delete(TimeRecordModel).where(
                        TimeRecordModel.date == date_to_text(day),
                        TimeRecordModel.id == record_id,
                    )
                )
                return result.rowcount

    def delete(self, day: date, record_id: int) -> WriteResult:
        """Delete one record by key. A missing row is not an error."""
        key = format_key(day, record_id)
        try:
            deleted, attempts = self._with_retry("delete", lambda: self._delete_once(day, record_id))
        except StoreBusyError as e:
            logger.error(f"Database was busy/locked after multiple attempts during delete of {key}: {e}")
            return WriteResult(status=WriteStatus.BUSY, attempts=e.attempts, failed_key=key, error=str(e))
        except SQLAlchemyError as e:
            logger.error(f"Could not delete record {key}: {e}")
            return WriteResult(status=WriteStatus.FAILED, failed_key=key, error=str(e))

        return WriteResult(status=WriteStatus.COMMITTED, attempts=attempts, deleted=deleted)
