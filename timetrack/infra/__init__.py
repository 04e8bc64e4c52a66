"""Infrastructure layer - Database and persistence"""

from .config import Settings
from .db import DatabaseEngine, TimeRecordModel
from .repository import TimeRecordRepository
from .schema import SchemaStore, StoreState

__all__ = [
    "Settings",
    "DatabaseEngine",
    "TimeRecordModel",
    "TimeRecordRepository",
    "SchemaStore",
    "StoreState",
]
