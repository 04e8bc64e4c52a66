import sys
from pathlib import Path


def get_app_base_dir() -> Path:
    """
    Get the directory the application runs from, works for dev and for PyInstaller.

    Returns:
        Directory of the frozen executable, or the project root when run from source
    """
    if getattr(sys, 'frozen', False):
        # PyInstaller one-file/one-dir builds: the .exe lives here
        return Path(sys.executable).parent.absolute()

    # Standard python execution
    # This file is in timetrack/utils.py, so project root is up two levels
    return Path(__file__).parent.parent.absolute()
