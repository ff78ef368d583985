"""Save dialog for printed PDFs."""

from __future__ import annotations

from pathlib import Path

from PySide6.QtWidgets import QFileDialog, QWidget


def ask_save_path(suggested: Path, parent: QWidget | None = None) -> Path | None:
    """Ask where to save a printed PDF.

    Returns:
        The chosen path, or None if the user cancelled
    """
    save_path, _ = QFileDialog.getSaveFileName(
        parent,
        "Save PDF As - Otto's Print to PDF",
        str(suggested),
        "PDF Files (*.pdf)",
    )
    if not save_path:
        return None
    return Path(save_path)
