"""Shared fixtures."""

import pytest
from PySide6.QtCore import QCoreApplication


@pytest.fixture(scope="session")
def qapp():
    """Application instance so queued signals and timers get delivered."""
    return QCoreApplication.instance() or QCoreApplication([])
