"""Core functionality: settings, job hand-off and PDF inspection."""

from ottos_pdf.core.handoff import HandoffError, PrintJob
from ottos_pdf.core.pdf_processor import PDFError, PDFProcessor
from ottos_pdf.core.settings import Settings

__all__ = ["Settings", "PrintJob", "HandoffError", "PDFProcessor", "PDFError"]
