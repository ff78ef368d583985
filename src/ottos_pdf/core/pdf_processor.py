"""Inspection of spooled PDFs using pikepdf."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import pikepdf

PDF_MAGIC = b"%PDF-"


class PDFError(ValueError):
    """Raised when a spooled file is not a readable PDF."""


@dataclass
class PDFInfo:
    """Information about a PDF file."""
    path: Path
    num_pages: int
    title: str | None
    author: str | None
    creator: str | None
    page_sizes: list[tuple[float, float]]  # (width, height) in points

    @property
    def filename(self) -> str:
        """Get filename without extension."""
        return self.path.stem


class PDFProcessor:
    """PDF inspection operations."""

    @staticmethod
    def is_pdf(pdf_path: Path) -> bool:
        """Cheap check on the file header; does not parse the document."""
        try:
            with open(pdf_path, "rb") as f:
                # Some producers put junk before the header; PDF readers accept 1 KiB of it.
                return PDF_MAGIC in f.read(1024)
        except OSError:
            return False

    @staticmethod
    def get_info(pdf_path: Path) -> PDFInfo:
        """Get information about a PDF file.

        Raises:
            PDFError: if the file cannot be opened as a PDF
        """
        try:
            pdf = pikepdf.open(pdf_path)
        except (pikepdf.PdfError, OSError) as e:
            raise PDFError(f"{pdf_path} is not a readable PDF: {e}") from e

        with pdf:
            metadata = pdf.docinfo or {}

            page_sizes = []
            for page in pdf.pages:
                box = page.mediabox
                width = float(box[2] - box[0])
                height = float(box[3] - box[1])
                page_sizes.append((width, height))

            return PDFInfo(
                path=pdf_path,
                num_pages=len(pdf.pages),
                title=str(metadata.get("/Title", "")) or None,
                author=str(metadata.get("/Author", "")) or None,
                creator=str(metadata.get("/Creator", "")) or None,
                page_sizes=page_sizes,
            )

    @staticmethod
    def get_page_count(pdf_path: Path) -> int:
        """Get number of pages in a PDF."""
        return PDFProcessor.get_info(pdf_path).num_pages
