"""Configuration Model for Schedule Buddy application.

This module contains the ConfigurationModel class that handles
reminder timing, sound and storage settings.
"""

import json
import logging
import sys
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Optional

APP_DIR_NAME = "schedule_buddy"
SCHEDULES_FILE_NAME = "schedules.json"
CONFIG_FILE_NAME = "config.json"


def get_config_dir() -> Path:
    """Determine the OS-specific directory for application data."""
    if sys.platform == "win32":
        config_dir = Path.home() / "AppData" / "Roaming"
    elif sys.platform == "darwin":
        config_dir = Path.home() / "Library" / "Application Support"
    else:  # Linux and other Unix-like
        config_dir = Path.home() / ".config"
    return config_dir / APP_DIR_NAME


class ConfigurationData:
    """Data class representing configuration settings."""

    def __init__(
        self,
        data_file: Optional[str] = None,
        pre_event_minutes: int = 15,
        repeat_interval_minutes: int = 5,
        reconcile_interval_minutes: int = 1,
        sound_enabled: bool = True,
        catch_up_on_startup: bool = True,
        minimize_to_tray: bool = True,
    ):
        """Initialize configuration data.

        Args:
            data_file: Path of the schedules JSON file (None for the default location)
            pre_event_minutes: Minutes before a schedule starts that the first reminder fires
            repeat_interval_minutes: Minutes between repeat reminders
            reconcile_interval_minutes: Minutes between re-checks of all reminder timers
            sound_enabled: Whether reminders play an alert sound
            catch_up_on_startup: Whether missed first reminders resume repeating at startup
            minimize_to_tray: Whether closing the window keeps the app running in the tray
        """
        self.data_file = data_file
        self.pre_event_minutes = pre_event_minutes
        self.repeat_interval_minutes = repeat_interval_minutes
        self.reconcile_interval_minutes = reconcile_interval_minutes
        self.sound_enabled = sound_enabled
        self.catch_up_on_startup = catch_up_on_startup
        self.minimize_to_tray = minimize_to_tray
        self.last_modified = datetime.now()

    @property
    def pre_event_lead(self) -> timedelta:
        return timedelta(minutes=self.pre_event_minutes)

    @property
    def repeat_interval(self) -> timedelta:
        return timedelta(minutes=self.repeat_interval_minutes)

    @property
    def reconcile_interval(self) -> timedelta:
        return timedelta(minutes=self.reconcile_interval_minutes)

    def validate(self) -> list[str]:
        """Return a list of problems with the current values."""
        problems = []
        if not isinstance(self.pre_event_minutes, int) or self.pre_event_minutes < 0:
            problems.append("pre_event_minutes must be a non-negative integer")
        if not isinstance(self.repeat_interval_minutes, int) or self.repeat_interval_minutes <= 0:
            problems.append("repeat_interval_minutes must be a positive integer")
        if not isinstance(self.reconcile_interval_minutes, int) or self.reconcile_interval_minutes <= 0:
            problems.append("reconcile_interval_minutes must be a positive integer")
        return problems

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "data_file": self.data_file,
            "pre_event_minutes": self.pre_event_minutes,
            "repeat_interval_minutes": self.repeat_interval_minutes,
            "reconcile_interval_minutes": self.reconcile_interval_minutes,
            "sound_enabled": self.sound_enabled,
            "catch_up_on_startup": self.catch_up_on_startup,
            "minimize_to_tray": self.minimize_to_tray,
            "last_modified": self.last_modified.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ConfigurationData":
        """Create configuration from dictionary."""
        config = cls(
            data_file=data.get("data_file"),
            pre_event_minutes=data.get("pre_event_minutes", 15),
            repeat_interval_minutes=data.get("repeat_interval_minutes", 5),
            reconcile_interval_minutes=data.get("reconcile_interval_minutes", 1),
            sound_enabled=data.get("sound_enabled", True),
            catch_up_on_startup=data.get("catch_up_on_startup", True),
            minimize_to_tray=data.get("minimize_to_tray", True),
        )

        if "last_modified" in data:
            try:
                config.last_modified = datetime.fromisoformat(data["last_modified"])
            except (ValueError, TypeError):
                config.last_modified = datetime.now()

        return config

    def __repr__(self) -> str:
        return (
            f"ConfigurationData(pre_event_minutes={self.pre_event_minutes}, "
            f"repeat_interval_minutes={self.repeat_interval_minutes}, sound_enabled={self.sound_enabled})"
        )


class ConfigurationModel:
    """Model class for managing application configuration.

    Settings are stored as JSON next to the schedules file. A missing or
    unreadable file leaves the defaults in place.
    """

    def __init__(self, config_file_path: Optional[str] = None):
        """Initialize the ConfigurationModel.

        Args:
            config_file_path: Path to configuration file (defaults to the OS config directory)
        """
        self.logger = logging.getLogger(__name__)

        if config_file_path:
            self.config_file_path = Path(config_file_path)
        else:
            self.config_file_path = get_config_dir() / CONFIG_FILE_NAME

        self._config_data = ConfigurationData()
        self._config_changed_callbacks: list[Callable[[ConfigurationData], None]] = []

        self.load_configuration()

    @property
    def config_data(self) -> ConfigurationData:
        return self._config_data

    @property
    def data_file(self) -> Path:
        """Path of the schedules file, falling back to the default location."""
        if self._config_data.data_file:
            return Path(self._config_data.data_file).expanduser()
        return self.config_file_path.parent / SCHEDULES_FILE_NAME

    def load_configuration(self) -> bool:
        """Load configuration from file.

        Returns:
            True if configuration was loaded (or no file exists), False otherwise
        """
        if not self.config_file_path.exists():
            self.logger.info(f"Configuration file not found, using defaults: {self.config_file_path}")
            return True

        try:
            with open(self.config_file_path, encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("configuration must be a JSON object")
            config = ConfigurationData.from_dict(data)
            problems = config.validate()
            if problems:
                raise ValueError("; ".join(problems))
        except (OSError, ValueError):
            self.logger.exception(f"Error loading configuration from {self.config_file_path}")
            self._config_data = ConfigurationData()
            return False

        self._config_data = config
        self.logger.info(f"Configuration loaded from {self.config_file_path}: {config!r}")
        return True

    def save_configuration(self) -> bool:
        """Save configuration to file.

        Returns:
            True if configuration was saved successfully, False otherwise
        """
        try:
            self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file_path, "w", encoding="utf-8") as f:
                json.dump(self._config_data.to_dict(), f, indent=2, ensure_ascii=False)
        except OSError:
            self.logger.exception(f"Error saving configuration to {self.config_file_path}")
            return False

        self.logger.info(f"Configuration saved to {self.config_file_path}")
        return True

    def update_configuration(self, save: bool = True, **kwargs) -> bool:
        """Update multiple configuration settings.

        Args:
            save: Whether to write the configuration file afterwards
            **kwargs: Configuration settings to update

        Returns:
            True if configuration was updated successfully, False otherwise
        """
        candidate = ConfigurationData.from_dict({**self._config_data.to_dict(), **kwargs})
        unknown = [key for key in kwargs if not hasattr(self._config_data, key)]
        if unknown:
            self.logger.warning(f"Unknown configuration keys ignored: {unknown}")
        problems = candidate.validate()
        if problems:
            self.logger.error(f"Rejected configuration update: {'; '.join(problems)}")
            return False

        candidate.last_modified = datetime.now()
        self._config_data = candidate
        self.logger.info(f"Configuration updated: {sorted(kwargs)}")

        if save:
            self.save_configuration()
        self._notify_config_changed()
        return True

    def add_config_changed_callback(self, callback: Callable[[ConfigurationData], None]) -> None:
        self._config_changed_callbacks.append(callback)

    def _notify_config_changed(self) -> None:
        for callback in self._config_changed_callbacks:
            try:
                callback(self._config_data)
            except Exception:
                self.logger.exception(f"Error in configuration change callback {callback!r}")
