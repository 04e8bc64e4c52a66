"""Storage-layer exceptions. The repository converts them to WriteResult values."""

from typing import Optional


class StoreError(Exception):
    """Base class for storage failures"""


class StoreBusyError(StoreError):
    """The database stayed locked/busy for every retry attempt"""

    def __init__(self, operation: str, attempts: int):
        super().__init__(f"{operation}: database still busy after {attempts} attempts")
        self.operation = operation
        self.attempts = attempts


class RecordWriteError(StoreError):
    """A row-level write failed; `key` names the record when it is known"""

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.key = key
