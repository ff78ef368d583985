"""Tests for settings module."""

import json
import tempfile
from pathlib import Path

from ottos_pdf.core.settings import Settings


class TestSettings:
    """Tests for Settings class."""

    def test_default_settings(self):
        """Test default settings values."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "settings.json"
            settings = Settings(_config_path=config_path, default_output_dir=tmpdir)

            assert settings.auto_save is False
            assert settings.printer_name == "OttosPDF"
            assert settings.printer_description == "Otto's Print to PDF"
            assert settings.printer_location == "Local PDF Printer"
            assert settings.handoff_dir == "/tmp"

    def test_save_and_load(self):
        """Test saving and loading settings."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "settings.json"

            settings = Settings(_config_path=config_path, default_output_dir=tmpdir)
            settings.auto_save = True
            settings.printer_name = "Test Printer"
            settings.save()

            loaded = Settings.load(config_path)

            assert loaded.auto_save is True
            assert loaded.printer_name == "Test Printer"
            assert loaded.default_output_dir == tmpdir

    def test_saved_file_has_no_private_fields(self):
        """Test that the config path is not written to the file."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "settings.json"
            Settings(_config_path=config_path, default_output_dir=tmpdir).save()

            data = json.loads(config_path.read_text(encoding="utf-8"))
            assert "_config_path" not in data
            assert data["auto_save"] is False

    def test_load_corrupt_file_falls_back_to_defaults(self):
        """Test that a broken settings file does not prevent startup."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "settings.json"
            config_path.write_text("{not json", encoding="utf-8")

            loaded = Settings.load(config_path)

            assert loaded.auto_save is False
            assert loaded.printer_name == "OttosPDF"

    def test_load_ignores_unknown_and_private_keys(self):
        """Test that unknown keys are skipped."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "settings.json"
            config_path.write_text(
                json.dumps({"bogus": 1, "_config_path": "/etc", "auto_save": True}),
                encoding="utf-8",
            )

            loaded = Settings.load(config_path)

            assert loaded.auto_save is True
            assert not hasattr(loaded, "bogus")
            assert loaded._config_path == config_path

    def test_recent_directories(self):
        """Test recent directories management."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "settings.json"
            settings = Settings(_config_path=config_path, default_output_dir=tmpdir)

            settings.add_recent_directory("/path/one")
            settings.add_recent_directory("/path/two")
            settings.add_recent_directory("/path/three")

            assert len(settings.recent_directories) == 3
            assert settings.recent_directories[0].endswith("three")
            assert settings.recent_directories[1].endswith("two")
            assert settings.recent_directories[2].endswith("one")

    def test_recent_directories_no_duplicates(self):
        """Test that duplicate directories are moved to front."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "settings.json"
            settings = Settings(_config_path=config_path, default_output_dir=tmpdir)

            settings.add_recent_directory("/path/one")
            settings.add_recent_directory("/path/two")
            settings.add_recent_directory("/path/one")  # Duplicate

            assert len(settings.recent_directories) == 2
            assert settings.recent_directories[0].endswith("one")

    def test_output_directory_prefers_last_used(self, tmp_path):
        """Test that the last used directory wins while it exists."""
        default_dir = tmp_path / "default"
        last_dir = tmp_path / "last"
        last_dir.mkdir()
        settings = Settings(
            _config_path=tmp_path / "settings.json",
            default_output_dir=str(default_dir),
        )

        assert settings.get_output_directory() == default_dir

        settings.add_recent_directory(str(last_dir))
        assert settings.get_output_directory() == last_dir.resolve()

        last_dir.rmdir()
        assert settings.get_output_directory() == default_dir
