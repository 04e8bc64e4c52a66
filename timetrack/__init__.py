"""TimeTrack - local time logging with a crash-safe SQLite store"""

__version__ = "2.0.0"
