"""Otto's Print to PDF: a virtual CUPS printer that saves jobs as PDF files."""

__version__ = "1.0.0"
