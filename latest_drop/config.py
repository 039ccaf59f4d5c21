"""Configuration management for Latest Drop.

Reads the run settings from a JSON config file, by default in the
platform-appropriate application data directory, and validates them
before any file is touched.
"""

import json
import logging
import os
import re
import sys
from pathlib import Path
from typing import Any

from latest_drop.errors import ConfigurationInvalid
from latest_drop.outcome import Action, Priority, RunSettings
from latest_drop.selector import SelectionCriteria

logger = logging.getLogger(__name__)

REQUIRED_KEYS = ("action", "source_folder", "destination_folder", "mail_to")

DEFAULT_CONFIG: dict[str, Any] = {
    "action": "",  # Copy | Move
    "source_folder": "",
    "destination_folder": "",
    "destination_file_name": "",  # blank = keep the source name
    "file_extension": "",  # blank = any extension
    "file_name_starts_with": "",  # blank = any name
    "overwrite": False,
    # ---- mail ----
    "mail_to": [],
    "mail_from": "latest-drop@localhost",
    "smtp_host": "",  # blank = log the report instead of mailing it
    "smtp_port": 25,
    "smtp_use_tls": False,
    "smtp_username": "",
    "smtp_password": "",
    "no_match_priority": Priority.NORMAL.value,  # Normal | High
    # ---- logging ----
    "log_level": "INFO",
    "log_file": "",  # blank = platform default
    "max_log_size_mb": 10,
    "log_backup_count": 3,
    # ---- watch trigger ----
    "watch_stable_seconds": 10,
}

_TRUE_WORDS = ("true", "yes", "1", "$true")
_FALSE_WORDS = ("false", "no", "0", "$false", "")


def parse_bool(value: Any) -> bool:
    """Parse a JSON bool or a yes/no style string. Raises ValueError."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    raise ValueError(f"cannot interpret {value!r} as true/false")


def parse_recipients(value: Any) -> list[str]:
    """Accept a list of addresses or a comma/semicolon separated string."""
    if isinstance(value, str):
        items = re.split(r"[;,]", value)
    elif isinstance(value, (list, tuple)):
        items = [str(v) for v in value]
    else:
        return []
    return [item.strip() for item in items if item.strip()]


def get_config_dir() -> Path:
    """
    Return the application config directory, created if needed.

    - Windows : ``%APPDATA%\\LatestDrop``
    - macOS   : ``~/Library/Application Support/LatestDrop``
    - other   : ``$XDG_CONFIG_HOME/LatestDrop`` (default ``~/.config``)
    """
    if sys.platform == "win32":
        base = os.environ.get("APPDATA", str(Path.home()))
    elif sys.platform == "darwin":
        base = str(Path.home() / "Library" / "Application Support")
    else:
        base = os.environ.get("XDG_CONFIG_HOME", str(Path.home() / ".config"))
    config_dir = Path(base) / "LatestDrop"
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_config_path() -> Path:
    """Return the path to the configuration file."""
    return get_config_dir() / "config.json"


def get_log_path() -> Path:
    """Return the path to the default log file."""
    return get_config_dir() / "latest_drop.log"


class Config:
    """Configuration manager backed by a JSON file."""

    def __init__(self, path: Path | None = None, data: dict[str, Any] | None = None):
        """Load config from *path* (platform default if None), or use *data* as is."""
        self._path = Path(path) if path else None
        self._data: dict[str, Any] = dict(DEFAULT_CONFIG)
        if data is not None:
            self._data.update(data)
        else:
            self._path = self._path or get_config_path()
            self.load()

    @property
    def path(self) -> Path | None:
        return self._path

    # ---- persistence ----

    def load(self) -> None:
        """Load configuration from disk, applying defaults for missing keys.

        A missing file is replaced by a template so the operator has
        something to fill in; validation then reports the blanks.
        """
        if not self._path.exists():
            self._data = dict(DEFAULT_CONFIG)
            self.save()
            logger.info("Created template configuration at %s", self._path)
            return
        try:
            with open(self._path, encoding="utf-8") as fh:
                stored = json.load(fh)
        except (json.JSONDecodeError, OSError) as exc:
            raise ConfigurationInvalid(f"Could not read config {self._path}: {exc}") from exc
        if not isinstance(stored, dict):
            raise ConfigurationInvalid(f"Config {self._path} must contain a JSON object")
        # Merge stored values over defaults so new keys get defaults
        self._data = {**DEFAULT_CONFIG, **stored}
        logger.info("Configuration loaded from %s", self._path)

    def save(self) -> None:
        """Persist the current configuration to disk."""
        if self._path is None:
            return
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._path, "w", encoding="utf-8") as fh:
                json.dump(self._data, fh, indent=2)
        except OSError as exc:
            logger.error("Failed to save configuration: %s", exc)

    # ---- validation ----

    def validate(self) -> None:
        """Raise ConfigurationInvalid listing every problem found."""
        problems = []
        for key in REQUIRED_KEYS:
            value = self._data.get(key)
            if key == "mail_to":
                if not parse_recipients(value):
                    problems.append("'mail_to' must name at least one recipient")
            elif not str(value or "").strip():
                problems.append(f"'{key}' is required")

        if str(self._data.get("action") or "").strip():
            try:
                Action.parse(self._data["action"])
            except ValueError as exc:
                problems.append(str(exc))
        try:
            parse_bool(self._data.get("overwrite", False))
        except ValueError as exc:
            problems.append(f"'overwrite': {exc}")
        try:
            Priority.parse(self._data.get("no_match_priority") or Priority.NORMAL.value)
        except ValueError as exc:
            problems.append(f"'no_match_priority': {exc}")
        try:
            int(self._data.get("smtp_port", 25))
        except (TypeError, ValueError):
            problems.append("'smtp_port' must be a number")
        try:
            parse_bool(self._data.get("smtp_use_tls", False))
        except ValueError as exc:
            problems.append(f"'smtp_use_tls': {exc}")
        try:
            int(self._data.get("watch_stable_seconds", 10))
        except (TypeError, ValueError):
            problems.append("'watch_stable_seconds' must be a number")
        problems += self._logging_problems()

        if problems:
            for problem in problems:
                logger.error("Invalid configuration: %s", problem)
            raise ConfigurationInvalid(problems)

    def _logging_problems(self) -> list[str]:
        problems = []
        if not isinstance(self._data.get("log_level", "INFO"), str):
            problems.append("'log_level' must be a level name such as 'INFO'")
        for key in ("max_log_size_mb", "log_backup_count"):
            try:
                int(self._data.get(key, 0))
            except (TypeError, ValueError):
                problems.append(f"'{key}' must be a number")
        return problems

    def validate_logging(self) -> None:
        """Raise ConfigurationInvalid if the logging settings are unusable."""
        problems = self._logging_problems()
        if problems:
            raise ConfigurationInvalid(problems)

    # ---- accessors ----

    @property
    def action(self) -> Action:
        return Action.parse(self._data["action"])

    @property
    def source_folder(self) -> str:
        """Return the folder scanned for the latest file."""
        return str(self._data["source_folder"]).strip()

    @property
    def destination_folder(self) -> str:
        """Return the folder the file is delivered to."""
        return str(self._data["destination_folder"]).strip()

    @property
    def destination_file_name(self) -> str | None:
        """Return the delivered base name, or None to keep the source name."""
        return str(self._data.get("destination_file_name") or "").strip() or None

    @property
    def file_extension(self) -> str | None:
        return str(self._data.get("file_extension") or "").strip() or None

    @property
    def file_name_starts_with(self) -> str | None:
        # Not stripped: a prefix may legitimately start with a space
        return self._data.get("file_name_starts_with") or None

    @property
    def overwrite(self) -> bool:
        return parse_bool(self._data.get("overwrite", False))

    # ---- mail ----

    @property
    def mail_to(self) -> list[str]:
        return parse_recipients(self._data.get("mail_to"))

    @property
    def mail_from(self) -> str:
        return self._data.get("mail_from") or DEFAULT_CONFIG["mail_from"]

    @property
    def smtp_host(self) -> str:
        return str(self._data.get("smtp_host") or "").strip()

    @property
    def smtp_port(self) -> int:
        return int(self._data.get("smtp_port", 25))

    @property
    def smtp_use_tls(self) -> bool:
        return parse_bool(self._data.get("smtp_use_tls", False))

    @property
    def smtp_username(self) -> str:
        return self._data.get("smtp_username") or ""

    @property
    def smtp_password(self) -> str:
        return self._data.get("smtp_password") or ""

    @property
    def no_match_priority(self) -> Priority:
        return Priority.parse(self._data.get("no_match_priority") or Priority.NORMAL.value)

    # ---- logging ----

    @property
    def log_level(self) -> str:
        """Return the current logging level name."""
        return self._data.get("log_level", "INFO")

    @property
    def log_file(self) -> Path:
        """Return the log file path, falling back to the platform default."""
        configured = str(self._data.get("log_file") or "").strip()
        return Path(configured) if configured else get_log_path()

    @property
    def max_log_size_mb(self) -> int:
        """Return the maximum log file size in MB before rotation."""
        return max(1, int(self._data.get("max_log_size_mb", 10)))

    @property
    def log_backup_count(self) -> int:
        """Return the number of rotated log backups to keep."""
        return max(0, int(self._data.get("log_backup_count", 3)))

    # ---- watch trigger ----

    @property
    def watch_stable_seconds(self) -> int:
        """Return how long a file must be unchanged before a watch run fires."""
        return max(0, int(self._data.get("watch_stable_seconds", 10)))

    # ---- convenience ----

    def criteria(self) -> SelectionCriteria:
        return SelectionCriteria(
            source_directory=Path(self.source_folder),
            file_extension=self.file_extension,
            file_name_starts_with=self.file_name_starts_with,
        )

    def run_settings(self) -> RunSettings:
        """Bundle the validated settings the runner and report need."""
        return RunSettings(
            action=self.action,
            criteria=self.criteria(),
            destination_directory=Path(self.destination_folder),
            destination_base_name=self.destination_file_name,
            overwrite=self.overwrite,
            no_match_priority=self.no_match_priority,
        )
