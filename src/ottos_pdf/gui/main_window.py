"""Main application window."""

from __future__ import annotations

from PySide6.QtCore import Qt
from PySide6.QtGui import QCloseEvent
from PySide6.QtWidgets import (
    QApplication,
    QCheckBox,
    QGroupBox,
    QLabel,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QStatusBar,
    QVBoxLayout,
    QWidget,
)

from ottos_pdf.printer.errors import PrinterError
from ottos_pdf.printer.manager import PrinterManager
from ottos_pdf.service.job_handler import PrintJobHandler


class MainWindow(QMainWindow):
    """Printer status, auto-save preference and install/uninstall actions."""

    def __init__(self, manager: PrinterManager, handler: PrintJobHandler) -> None:
        super().__init__()
        self.manager = manager
        self.handler = handler
        self._setup_ui()

        self.manager.installed_changed.connect(self._update_state)
        self.handler.job_saved.connect(self._on_job_saved)
        self.handler.job_failed.connect(self._on_job_failed)
        self._update_state(self.manager.is_installed)

    def _setup_ui(self) -> None:
        """Set up the user interface."""
        self.setWindowTitle("Otto's Print to PDF")
        self.setFixedSize(400, 500)

        central = QWidget()
        self.setCentralWidget(central)
        layout = QVBoxLayout(central)
        layout.setSpacing(20)
        layout.setContentsMargins(20, 20, 20, 20)

        title = QLabel("Otto's Print to PDF")
        title.setAlignment(Qt.AlignCenter)
        title.setStyleSheet("font-size: 22px; font-weight: bold;")
        layout.addWidget(title)

        status_group = QGroupBox()
        status_layout = QVBoxLayout(status_group)

        self.status_label = QLabel()
        status_layout.addWidget(self.status_label)

        self.auto_save_check = QCheckBox("Auto-save PDFs to original document location")
        self.auto_save_check.setChecked(self.manager.auto_save)
        self.auto_save_check.toggled.connect(self._on_auto_save_toggled)
        status_layout.addWidget(self.auto_save_check)

        caption = QLabel(
            "When enabled, PDFs will be saved automatically to the same "
            "folder as the original document."
        )
        caption.setWordWrap(True)
        caption.setStyleSheet("color: #666; font-size: 11px;")
        status_layout.addWidget(caption)

        layout.addWidget(status_group)

        self.install_button = QPushButton("Install Virtual Printer")
        self.install_button.clicked.connect(self._on_install)
        layout.addWidget(self.install_button)

        self.uninstall_button = QPushButton("Uninstall Printer")
        self.uninstall_button.setStyleSheet("color: #c00;")
        self.uninstall_button.clicked.connect(self._on_uninstall)
        layout.addWidget(self.uninstall_button)

        layout.addStretch()

        self.status_bar = QStatusBar()
        self.setStatusBar(self.status_bar)

    def _update_state(self, installed: bool) -> None:
        """Reflect the printer installation state."""
        if installed:
            self.status_label.setText("Status: Installed")
            self.status_label.setStyleSheet("color: green;")
        else:
            self.status_label.setText("Status: Not Installed")
            self.status_label.setStyleSheet("color: red;")

        self.auto_save_check.setEnabled(installed)
        self.install_button.setVisible(not installed)
        self.uninstall_button.setVisible(installed)

    # Event handlers

    def _on_auto_save_toggled(self, checked: bool) -> None:
        self.manager.auto_save = checked

    def _on_install(self) -> None:
        """Handle install action."""
        QApplication.setOverrideCursor(Qt.WaitCursor)
        try:
            self.manager.install_printer()
        except PrinterError as e:
            QApplication.restoreOverrideCursor()
            self._show_error(f"Failed to install printer: {e}")
            return
        QApplication.restoreOverrideCursor()
        self.status_bar.showMessage("Printer installed", 5000)

    def _on_uninstall(self) -> None:
        """Handle uninstall action."""
        reply = QMessageBox.question(
            self,
            "Uninstall Printer",
            "This will remove the virtual printer and clean up all associated "
            "files. Are you sure?",
            QMessageBox.Yes | QMessageBox.Cancel,
            QMessageBox.Cancel,
        )
        if reply != QMessageBox.Yes:
            return

        try:
            self.manager.uninstall_printer()
        except PrinterError as e:
            self._show_error(f"Failed to uninstall printer: {e}")
            return
        self.status_bar.showMessage("Printer removed", 5000)

    def _on_job_saved(self, job, path) -> None:
        self.status_bar.showMessage(f"Saved: {path.name}", 5000)

    def _on_job_failed(self, job, message: str) -> None:
        self._show_error(message)

    def _show_error(self, message: str) -> None:
        QMessageBox.critical(self, "Error", message)

    # Window events

    def closeEvent(self, event: QCloseEvent) -> None:
        """Handle window close event."""
        self.handler.stop()
        event.accept()
