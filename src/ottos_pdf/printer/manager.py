"""Printer lifecycle: install, uninstall and detect the virtual printer."""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
import sys
import threading
from pathlib import Path

from PySide6.QtCore import QObject, Signal

from ottos_pdf.core.settings import Settings
from ottos_pdf.printer import installer
from ottos_pdf.printer.errors import (
    ADD_FAILED,
    CUPS_NOT_AVAILABLE,
    DELETE_FAILED,
    ELEVATION_CANCELLED,
    FILE_SETUP_FAILED,
    OPTIONS_FAILED,
    PrinterError,
)

logger = logging.getLogger(__name__)

# osascript reports a cancelled password prompt as error -128
USER_CANCELED = "-128"


def applescript_string(text: str) -> str:
    """Quote ``text`` as an AppleScript string literal."""
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'


class PrinterManager(QObject):
    """Owns the virtual printer and the user's saving preference.

    Emits ``installed_changed`` whenever the detected installation state
    changes, including from the background status check.
    """

    installed_changed = Signal(bool)

    def __init__(
        self,
        settings: Settings,
        resources: Path | None = None,
        parent=None,
    ) -> None:
        super().__init__(parent)
        self.settings = settings
        self.resources = resources or installer.default_resources_dir()
        self._installed = False
        self._check_thread: threading.Thread | None = None

    @property
    def printer_name(self) -> str:
        return self.settings.printer_name

    @property
    def is_installed(self) -> bool:
        return self._installed

    def _set_installed(self, installed: bool) -> None:
        if installed != self._installed:
            self._installed = installed
            self.installed_changed.emit(installed)

    @property
    def auto_save(self) -> bool:
        return self.settings.auto_save

    @auto_save.setter
    def auto_save(self, enabled: bool) -> None:
        self.settings.auto_save = enabled
        self.settings.save()

    # Detection

    def is_printer_installed(self) -> bool:
        """Ask CUPS whether the printer queue exists."""
        try:
            result = subprocess.run(
                ["lpstat", "-p", self.printer_name],
                capture_output=True,
                text=True,
            )
        except OSError as e:
            logger.warning("lpstat failed: %s", e)
            return False
        return result.returncode == 0

    def check_installation(self) -> threading.Thread:
        """Refresh ``is_installed`` without blocking the caller."""
        if self._check_thread and self._check_thread.is_alive():
            return self._check_thread

        def worker() -> None:
            found = self.is_printer_installed()
            logger.debug("Printer %s installed: %s", self.printer_name, found)
            self._set_installed(found)

        self._check_thread = threading.Thread(target=worker, daemon=True)
        self._check_thread.start()
        return self._check_thread

    # Install / uninstall

    def install_printer(self) -> None:
        """Install backend files and register the printer queue.

        Raises:
            PrinterError: if any step fails
        """
        self._require_cups()

        result = self._run_privileged(self._helper_command("install-files"))
        if result.returncode != 0:
            self._raise_helper_error(result, "Failed to set up printer files")

        self._run_checked(
            [
                "lpadmin",
                "-p", self.printer_name,
                "-E",  # Enable printer
                "-v", installer.DEVICE_URI,
                "-P", str(installer.PPD_PATH),
                "-D", self.settings.printer_description,
                "-L", self.settings.printer_location,
                "-o", "printer-is-shared=false",
            ],
            "Failed to add printer",
            ADD_FAILED,
        )
        self._run_checked(
            ["cupsaccept", self.printer_name],
            "Failed to set printer options",
            OPTIONS_FAILED,
        )
        self._run_checked(
            ["cupsenable", self.printer_name],
            "Failed to set printer options",
            OPTIONS_FAILED,
        )

        if self.settings.set_as_default:
            result = self._run(["lpoptions", "-d", self.printer_name])
            if result.returncode != 0:
                logger.warning("Could not make %s the default printer: %s",
                               self.printer_name, result.stderr.strip())

        logger.info("Installed printer: %s", self.printer_name)
        self._set_installed(True)

    def uninstall_printer(self) -> None:
        """Remove the printer queue and the installed backend files.

        Raises:
            PrinterError: if CUPS refuses to delete the queue
        """
        self._require_cups()

        result = self._run(["lpadmin", "-x", self.printer_name])
        if result.returncode != 0 and "does not exist" not in result.stderr:
            raise PrinterError(
                f"Failed to delete printer: {result.stderr.strip()}", DELETE_FAILED
            )
        logger.info("Removed printer: %s", self.printer_name)

        result = self._run_privileged(self._helper_command("remove-files"))
        if result.returncode != 0:
            logger.warning("Printer files were not fully removed: %s",
                           result.stderr.strip())

        self._set_installed(False)

    # Helpers

    def _require_cups(self) -> None:
        if shutil.which("lpadmin") is None:
            raise PrinterError("CUPS is not available: 'lpadmin' not found in PATH",
                               CUPS_NOT_AVAILABLE)

    def _helper_command(self, action: str) -> list[str]:
        """Command line running the privileged installer helper."""
        if getattr(sys, "frozen", False):
            cmd = [sys.executable, "--installer", action]
        else:
            cmd = [sys.executable, "-m", "ottos_pdf.printer.installer", action]
        if action == "install-files":
            cmd += ["--resources", str(self.resources)]
        return cmd

    def _run(self, cmd: list[str]) -> subprocess.CompletedProcess:
        try:
            return subprocess.run(cmd, capture_output=True, text=True)
        except OSError as e:
            raise PrinterError(f"Could not run {cmd[0]}: {e}", CUPS_NOT_AVAILABLE) from e

    def _run_checked(self, cmd: list[str], message: str, code: int) -> None:
        result = self._run(cmd)
        if result.returncode != 0:
            out = (result.stdout or "") + (result.stderr or "")
            raise PrinterError(f"{message}: {out.strip()}", code)

    def _run_privileged(self, cmd: list[str]) -> subprocess.CompletedProcess:
        """Run ``cmd`` as root, asking the user for credentials if needed."""
        if os.geteuid() == 0:
            return self._run(cmd)

        if sys.platform == "darwin":
            shell_command = " ".join(shlex.quote(arg) for arg in cmd)
            script = (
                f"do shell script {applescript_string(shell_command)} "
                "with administrator privileges"
            )
            return self._run(["osascript", "-e", script])

        return self._run(["sudo", *cmd])

    def _raise_helper_error(self, result: subprocess.CompletedProcess, message: str) -> None:
        stderr = (result.stderr or "").strip()
        if USER_CANCELED in stderr:
            raise PrinterError("Administrator authorization was cancelled", ELEVATION_CANCELLED)
        raise PrinterError(f"{message}: {stderr or f'exit status {result.returncode}'}",
                           FILE_SETUP_FAILED)
