"""Errors raised while managing the virtual printer."""

from __future__ import annotations

# Error codes shown alongside the message
CUPS_NOT_AVAILABLE = 1
ADD_FAILED = 2
DELETE_FAILED = 3
OPTIONS_FAILED = 4
BACKEND_FAILED = 5
PPD_FAILED = 6
FILE_SETUP_FAILED = 8
ELEVATION_CANCELLED = 9


class PrinterError(RuntimeError):
    """Raised when the printer cannot be installed, removed or queried."""

    def __init__(self, message: str, code: int = 0) -> None:
        super().__init__(message)
        self.code = code
