"""
SQLAlchemy database models and configuration.

Architecture Decision: Why SQLAlchemy?
- Provides ORM for cleaner code and prevents SQL injection
- Dialect-level upserts (INSERT ... ON CONFLICT) without hand-written SQL
- Engine events give one place to tune every SQLite connection

Access is synchronous: every call opens its own connection (NullPool) and
closes it before returning, so no handle is held between operations and a
plain file copy of the database is always safe between calls.
"""

import logging
import sqlite3
from pathlib import Path
from typing import Dict, Optional

from sqlalchemy import Index, Integer, String, Text, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import NullPool

logger = logging.getLogger(__name__)

# SQLITE_BUSY / SQLITE_LOCKED
BUSY_ERROR_CODES = (5, 6)

TUNING_PRAGMAS: Dict[str, str] = {
    "foreign_keys": "ON",
    "journal_mode": "WAL",
    "busy_timeout": "5000",
    "synchronous": "NORMAL",
}


# Base class for all models
class Base(DeclarativeBase):
    pass


class TimeRecordModel(Base):
    """SQLAlchemy model for the TimeRecord entity"""
    __tablename__ = "time_entries"

    date: Mapped[str] = mapped_column(String, primary_key=True)
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    start_time: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    end_time: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    ticket_number: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    recorded: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


# Created by the add_indexes revision, not together with the table
Index("ix_time_entries_date", TimeRecordModel.date)
Index(
    "ix_time_entries_date_start_end",
    TimeRecordModel.date,
    TimeRecordModel.start_time,
    TimeRecordModel.end_time,
)


def is_busy_error(error: BaseException) -> bool:
    """True when a (wrapped) sqlite3 error means the file is locked or busy"""
    orig = error.orig if isinstance(error, DBAPIError) else error
    if not isinstance(orig, sqlite3.OperationalError):
        return False
    code = getattr(orig, "sqlite_errorcode", None)
    if code is not None:
        # Extended codes keep the primary code in the low byte
        return (code & 0xFF) in BUSY_ERROR_CODES
    message = str(orig).lower()
    return "locked" in message or "busy" in message


class DatabaseEngine:
    """
    Owns the SQLAlchemy engine and session factory for one database file.

    Tuning pragmas are applied on every new DBAPI connection once
    `enable_tuning()` has been called.
    """

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self.pragmas: Dict[str, str] = {}
        self.engine: Engine = create_engine(
            f"sqlite:///{db_path}",
            echo=False,
            poolclass=NullPool,
        )
        self.session_factory = sessionmaker(self.engine, class_=Session, expire_on_commit=False)

        event.listen(self.engine, "connect", self._on_connect)
        event.listen(self.engine, "begin", self._on_begin)

    def _on_connect(self, dbapi_connection, connection_record):
        # Let SQLAlchemy, not pysqlite, decide where transactions start
        dbapi_connection.isolation_level = None

        cursor = dbapi_connection.cursor()
        try:
            for name, value in self.pragmas.items():
                try:
                    cursor.execute(f"PRAGMA {name}={value}")
                except sqlite3.Error as e:
                    logger.warning(f"Could not apply PRAGMA {name}={value}: {e}")
        finally:
            cursor.close()

    @staticmethod
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    def enable_tuning(self, pragmas: Optional[Dict[str, str]] = None):
        self.pragmas = dict(TUNING_PRAGMAS if pragmas is None else pragmas)

    def get_session(self) -> Session:
        """Get a new database session"""
        return self.session_factory()

    def dispose(self):
        self.engine.dispose()
