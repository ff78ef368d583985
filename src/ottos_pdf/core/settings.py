"""Settings management for Otto's Print to PDF."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from platformdirs import user_config_dir, user_documents_dir

logger = logging.getLogger(__name__)


@dataclass
class Settings:
    """Application settings."""

    # Saving behaviour
    auto_save: bool = False
    default_output_dir: str = ""
    remember_last_dir: bool = True
    last_used_dir: str = ""

    # Recent directories
    recent_directories: list[str] = field(default_factory=list)
    max_recent_dirs: int = 10

    # Printer settings
    printer_name: str = "OttosPDF"
    printer_description: str = "Otto's Print to PDF"
    printer_location: str = "Local PDF Printer"
    set_as_default: bool = True

    # Where the CUPS backend drops hand-off files
    handoff_dir: str = "/tmp"

    _config_path: Path = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        """Initialize config path and default output directory."""
        if self._config_path is None:
            config_dir = Path(user_config_dir("ottos-print-to-pdf", "Otto"))
            config_dir.mkdir(parents=True, exist_ok=True)
            self._config_path = config_dir / "settings.json"

        if not self.default_output_dir:
            self.default_output_dir = str(Path(user_documents_dir()) / "PDFs")

    @classmethod
    def load(cls, config_path: Path | None = None) -> Settings:
        """Load settings from JSON file."""
        settings = cls(_config_path=config_path)

        if settings._config_path.exists():
            try:
                with open(settings._config_path, encoding="utf-8") as f:
                    data = json.load(f)

                if not isinstance(data, dict):
                    raise ValueError("settings file does not hold an object")

                for key, value in data.items():
                    if hasattr(settings, key) and not key.startswith("_"):
                        setattr(settings, key, value)
            except (json.JSONDecodeError, ValueError, OSError) as e:
                logger.warning("Could not load settings from %s: %s", settings._config_path, e)

        return settings

    def save(self) -> None:
        """Save settings to JSON file."""
        self._config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._config_path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)

    def add_recent_directory(self, directory: str) -> None:
        """Add a directory to recent directories list."""
        dir_path = str(Path(directory).resolve())

        if dir_path in self.recent_directories:
            self.recent_directories.remove(dir_path)

        self.recent_directories.insert(0, dir_path)
        self.recent_directories = self.recent_directories[:self.max_recent_dirs]

        if self.remember_last_dir:
            self.last_used_dir = dir_path

    def get_output_directory(self) -> Path:
        """Get the output directory to use."""
        if self.remember_last_dir and self.last_used_dir:
            path = Path(self.last_used_dir)
            if path.exists():
                return path
        return Path(self.default_output_dir)

    def to_dict(self) -> dict[str, Any]:
        """Convert settings to dictionary."""
        return {
            key: value
            for key, value in asdict(self).items()
            if not key.startswith("_")
        }
