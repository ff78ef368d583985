"""Print job handler service for Otto's Print to PDF.

This module provides the service that:
1. Turns ``ottospdf://handle-pdf?job=<id>`` URLs into print jobs
2. Picks up hand-off files that arrived while nobody was listening
3. Saves each job, automatically or through a save dialog
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable
from pathlib import Path

from PySide6.QtCore import QFileSystemWatcher, QObject, QTimer, Signal

from ottos_pdf.core.handoff import (
    HandoffError,
    PrintJob,
    parse_handoff_url,
    pending_job_ids,
    read_handoff,
)
from ottos_pdf.core.pdf_processor import PDFError, PDFProcessor
from ottos_pdf.core.settings import Settings

logger = logging.getLogger(__name__)

# Receives the suggested target path, returns the chosen one or None on cancel
DestinationChooser = Callable[[Path], "Path | None"]


def unique_destination(directory: Path, filename: str) -> Path:
    """Return ``directory/filename``, or ``name_1.pdf``, ``name_2.pdf``... if taken."""
    target = directory / filename
    stem, suffix = target.stem, target.suffix or ".pdf"
    counter = 1
    while target.exists():
        target = directory / f"{stem}_{counter}{suffix}"
        counter += 1
    return target


class PrintJobHandler(QObject):
    """Handler for incoming print jobs.

    Emits ``job_saved(job, path)`` once a job's PDF has been moved to its
    destination and ``job_failed(job, message)`` when that is not possible.
    A cancelled save dialog emits neither and leaves the spool file alone.
    """

    job_received = Signal(object)  # Emits PrintJob
    job_saved = Signal(object, object)  # PrintJob, Path
    job_failed = Signal(object, str)  # PrintJob, message

    def __init__(
        self,
        settings: Settings,
        choose_destination: DestinationChooser | None = None,
        parent=None,
    ) -> None:
        super().__init__(parent)
        self.settings = settings
        self.choose_destination = choose_destination
        self._watcher: QFileSystemWatcher | None = None
        self._busy = False
        self._rescan = False

    @property
    def handoff_dir(self) -> Path:
        return Path(self.settings.handoff_dir)

    def start(self) -> None:
        """Process waiting hand-offs and watch for new ones."""
        if self._watcher is not None:
            return

        self._watcher = QFileSystemWatcher([str(self.handoff_dir)], self)
        self._watcher.directoryChanged.connect(self._on_directory_changed)
        self.process_pending()

    def stop(self) -> None:
        """Stop watching the hand-off directory."""
        if self._watcher is not None:
            self._watcher.removePaths(self._watcher.directories())
            self._watcher.deleteLater()
            self._watcher = None

    def handle_url(self, url: str) -> bool:
        """Handle an ``ottospdf://`` URL.

        Returns:
            True if the URL named a job that could be read
        """
        job_id = parse_handoff_url(url)
        if job_id is None:
            logger.debug("Ignoring URL %s", url)
            return False
        return self._claim(job_id)

    def process_pending(self) -> int:
        """Handle every hand-off file currently waiting. Returns the count."""
        handled = 0
        for job_id in pending_job_ids(self.handoff_dir):
            if self._claim(job_id):
                handled += 1
        return handled

    def _on_directory_changed(self, _path: str) -> None:
        # The URL and the watcher race for the same file; whoever reads it first wins.
        if self._busy:
            self._rescan = True
        else:
            self.process_pending()

    def _claim(self, job_id: str) -> bool:
        try:
            job = read_handoff(job_id, self.handoff_dir)
        except HandoffError as e:
            logger.debug("Hand-off for job %s not usable: %s", job_id, e)
            return False

        logger.info("Received job %s: %s", job.job_id, job.file_path)
        self.job_received.emit(job)
        self.handle_new_pdf(job)
        return True

    def handle_new_pdf(self, job: PrintJob) -> Path | None:
        """Save the job's PDF according to the auto-save preference.

        Returns:
            The saved file path, or None if cancelled or failed
        """
        if not job.file_path.is_file():
            self._fail(job, f"Spooled PDF not found: {job.file_path}")
            return None

        if not PDFProcessor.is_pdf(job.file_path):
            logger.warning("Job %s does not look like a PDF: %s", job.job_id, job.file_path)
        elif not job.title:
            try:
                job.title = PDFProcessor.get_info(job.file_path).title or ""
            except PDFError as e:
                logger.warning("Job %s: %s", job.job_id, e)

        self._busy = True
        try:
            if self.settings.auto_save:
                target = unique_destination(self._auto_save_directory(job), job.suggested_filename)
            else:
                target = self._ask_destination(job)
                if target is None:
                    logger.info("Save of job %s cancelled; left at %s", job.job_id, job.file_path)
                    return None
            return self._move(job, target)
        finally:
            self._busy = False
            if self._rescan:
                # Changes seen while the dialog was open
                self._rescan = False
                QTimer.singleShot(0, self.process_pending)

    def _auto_save_directory(self, job: PrintJob) -> Path:
        """Next to the source document when known, else the output directory."""
        if job.source and Path(job.source).is_dir():
            return Path(job.source)
        return self.settings.get_output_directory()

    def _ask_destination(self, job: PrintJob) -> Path | None:
        if self.choose_destination is None:
            raise RuntimeError("No save dialog available and auto-save is off")
        suggested = self.settings.get_output_directory() / job.suggested_filename
        chosen = self.choose_destination(suggested)
        if not chosen:
            return None
        chosen = Path(chosen)
        if chosen.suffix.lower() != ".pdf":
            chosen = chosen.with_name(chosen.name + ".pdf")
        return chosen

    def _move(self, job: PrintJob, target: Path) -> Path | None:
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(job.file_path), str(target))
        except OSError as e:
            self._fail(job, f"Error saving PDF: {e}")
            return None

        self.settings.add_recent_directory(str(target.parent))
        try:
            self.settings.save()
        except OSError as e:
            logger.warning("Could not save settings: %s", e)

        logger.info("Saved job %s to %s", job.job_id, target)
        self.job_saved.emit(job, target)
        return target

    def _fail(self, job: PrintJob, message: str) -> None:
        logger.error("Job %s: %s", job.job_id, message)
        self.job_failed.emit(job, message)
