"""
Configuration management using Pydantic Settings.

Architecture Decision: Why pydantic-settings?
- Type-safe configuration with validation
- Supports multiple sources (YAML, env vars, defaults)
- Easy to test with different configurations

Settings are built once at startup and handed to whoever needs them.
"""

import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict

from timetrack.domain.models import UserPreferences
from timetrack.utils import get_app_base_dir

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings with multiple sources:
    1. Default values (hardcoded)
    2. YAML config file (user preferences)
    3. Environment variables (highest priority)

    TIMETRACK_APPDATA redirects the whole data directory, which is how
    tests and portable installs keep the database out of the user profile.
    """
    model_config = SettingsConfigDict(
        env_prefix='TIMETRACK_',
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore'
    )

    # Application paths
    app_name: str = "TimeTrack"
    appdata: Optional[Path] = None
    config_dir: Optional[Path] = None
    data_dir: Optional[Path] = None

    # Database
    database_filename: str = "timetrack_v2.db"
    database_path: Optional[Path] = None
    legacy_database_path: Optional[Path] = None

    # Logging
    log_level: str = "INFO"

    # User preferences
    preferences: UserPreferences = UserPreferences()

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._init_paths()
        if "preferences" not in kwargs:
            self._load_yaml_config()

    @property
    def folder_name(self) -> str:
        if os.name == 'nt':
            return self.app_name
        return self.app_name.lower().replace(" ", "-")

    def _init_paths(self):
        """Compute default paths based on OS. Nothing is created here."""
        if self.data_dir is None:
            if self.appdata is not None:
                base = self.appdata
            elif os.name == 'nt':  # Windows
                base = Path(os.getenv('LOCALAPPDATA') or os.getenv('APPDATA') or Path.home())
            else:  # Linux/Mac
                base = Path.home() / '.local' / 'share'
            self.data_dir = base / self.folder_name

        if self.config_dir is None:
            if self.appdata is not None:
                self.config_dir = self.data_dir
            elif os.name == 'nt':
                self.config_dir = self.data_dir
            else:
                self.config_dir = Path.home() / '.config' / self.folder_name

        if self.legacy_database_path is None:
            # Older releases kept the database beside the executable
            self.legacy_database_path = get_app_base_dir() / "timetrack.db"

    def _config_file(self) -> Path:
        # First check in workspace config folder, then the user's config directory
        config_file = Path("config/settings.yaml")
        if not config_file.exists():
            config_file = self.config_dir / "settings.yaml"
        return config_file

    def _load_yaml_config(self):
        """Load user preferences from YAML file"""
        config_file = self._config_file()
        if not config_file.exists():
            return

        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                config_data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Could not read {config_file}, using default preferences: {e}")
            return

        if not config_data:
            return
        try:
            self.preferences = UserPreferences(**config_data)
        except ValueError as e:
            logger.warning(f"Invalid preferences in {config_file}, using defaults: {e}")

    def save_preferences(self) -> Path:
        """Save current preferences to YAML file"""
        self.config_dir.mkdir(parents=True, exist_ok=True)
        config_file = self.config_dir / "settings.yaml"
        with open(config_file, 'w', encoding='utf-8') as f:
            yaml.safe_dump(self.preferences.model_dump(mode="json"), f, default_flow_style=False)
        return config_file

    @property
    def resolved_database_path(self) -> Path:
        """Explicit database path if configured, otherwise <data_dir>/<database_filename>"""
        if self.database_path is not None:
            return self.database_path
        return self.data_dir / self.database_filename

    @property
    def log_dir(self) -> Path:
        return self.resolved_database_path.parent / "Logs"
