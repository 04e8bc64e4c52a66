"""Domain layer - Pure business entities and logic"""

from .models import DayTotals, TimeRecord, UserPreferences, WriteResult, WriteStatus

__all__ = ["DayTotals", "TimeRecord", "UserPreferences", "WriteResult", "WriteStatus"]
