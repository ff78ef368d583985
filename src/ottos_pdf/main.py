"""Main entry point for Otto's Print to PDF."""

from __future__ import annotations

import logging
import sys

from PySide6.QtCore import QEvent, QTimer, Signal
from PySide6.QtWidgets import QApplication

from ottos_pdf.core.handoff import URL_SCHEME
from ottos_pdf.core.settings import Settings
from ottos_pdf.gui.main_window import MainWindow
from ottos_pdf.gui.save_dialog import ask_save_path
from ottos_pdf.printer import installer
from ottos_pdf.printer.manager import PrinterManager
from ottos_pdf.service.job_handler import PrintJobHandler


class OttosApplication(QApplication):
    """QApplication that forwards ``ottospdf://`` URLs opened by macOS."""

    url_opened = Signal(str)

    def event(self, event: QEvent) -> bool:
        if event.type() == QEvent.Type.FileOpen:
            url = event.url()
            if url.scheme() == URL_SCHEME:
                self.url_opened.emit(url.toString())
                return True
        return super().event(event)


def main(argv: list[str] | None = None) -> int:
    """Main application entry point."""
    if argv is None:
        argv = sys.argv

    # A frozen app bundle has no ``python -m``; the privileged helper runs through here.
    if len(argv) > 1 and argv[1] == "--installer":
        return installer.main(argv[2:])

    logging.basicConfig(
        level=logging.DEBUG if "--verbose" in argv else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = OttosApplication(argv)
    app.setApplicationName("Otto's Print to PDF")
    app.setOrganizationName("Otto")
    app.setStyle("Fusion")

    settings = Settings.load()
    manager = PrinterManager(settings)
    handler = PrintJobHandler(settings, choose_destination=ask_save_path)

    window = MainWindow(manager, handler)
    app.url_opened.connect(handler.handle_url)

    manager.check_installation()
    handler.start()

    # URLs passed on the command line (e.g. by the backend on Linux)
    for arg in argv[1:]:
        if arg.startswith(f"{URL_SCHEME}:"):
            QTimer.singleShot(0, lambda url=arg: handler.handle_url(url))

    window.show()
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
