"""Hand-off between the CUPS backend and the running application.

The backend spools the PDF, writes ``<handoff_dir>/ottos-pdf-<job>.json``
and then opens ``ottospdf://handle-pdf?job=<job>``. The application
reacts to the URL by reading (and deleting) the hand-off file.

The hand-off file is a JSON object whose values are all strings. Only
``path`` is required; ``title``, ``user``, ``source`` and ``timestamp``
are filled in by the backend when known.
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from urllib.parse import parse_qsl, urlencode, urlsplit

URL_SCHEME = "ottospdf"
URL_HOST = "handle-pdf"
HANDOFF_PREFIX = "ottos-pdf-"
HANDOFF_SUFFIX = ".json"

logger = logging.getLogger(__name__)


class HandoffError(ValueError):
    """Raised when a hand-off file is missing or malformed."""


@dataclass
class PrintJob:
    """A spooled print job handed over by the CUPS backend."""
    job_id: str
    file_path: Path
    title: str = ""
    user: str = ""
    source: str = ""
    timestamp: str = ""

    @classmethod
    def from_dict(cls, job_id: str, data: dict[str, str]) -> PrintJob:
        """Create PrintJob from a hand-off dictionary."""
        return cls(
            job_id=job_id,
            file_path=Path(data["path"]),
            title=data.get("title", ""),
            user=data.get("user", ""),
            source=data.get("source", ""),
            timestamp=data.get("timestamp", datetime.now().strftime("%Y%m%d_%H%M%S")),
        )

    @property
    def suggested_filename(self) -> str:
        """File name to offer when saving, derived from the job title."""
        safe_title = "".join(
            c if c.isalnum() or c in " ._-" else "_" for c in self.title
        ).strip(" .")
        if not safe_title:
            return self.file_path.name
        if not safe_title.lower().endswith(".pdf"):
            safe_title += ".pdf"
        return safe_title


def build_handoff_url(job_id: str) -> str:
    """Return the URL that asks the application to claim ``job_id``."""
    return f"{URL_SCHEME}://{URL_HOST}?{urlencode({'job': job_id})}"


def parse_handoff_url(url: str) -> str | None:
    """Extract the job id from a hand-off URL.

    Returns None for anything that is not an ``ottospdf://handle-pdf`` URL
    carrying a non-empty ``job`` query item.
    """
    try:
        parts = urlsplit(url)
    except ValueError:
        return None

    if parts.scheme != URL_SCHEME or parts.netloc != URL_HOST:
        return None

    for name, value in parse_qsl(parts.query, keep_blank_values=True):
        if name == "job":
            return value or None
    return None


def handoff_path(job_id: str, directory: Path | str = "/tmp") -> Path:
    """Path of the hand-off file for ``job_id``."""
    # Job ids come from a URL; keep them from escaping the directory.
    if not job_id or "/" in job_id or job_id in (".", ".."):
        raise HandoffError(f"Invalid job id: {job_id!r}")
    return Path(directory) / f"{HANDOFF_PREFIX}{job_id}{HANDOFF_SUFFIX}"


def write_handoff(
    job_id: str,
    pdf_path: Path | str,
    directory: Path | str = "/tmp",
    **extra: str,
) -> Path:
    """Write a hand-off file and return its path."""
    data = {"path": str(pdf_path)}
    data.update({key: str(value) for key, value in extra.items()})

    path = handoff_path(job_id, directory)

    # Written under a hidden name and renamed, so readers never see a partial file.
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{HANDOFF_PREFIX}", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return path


def read_handoff(job_id: str, directory: Path | str = "/tmp") -> PrintJob:
    """Read the hand-off file for ``job_id`` and remove it.

    Removing the file is what claims the job. A file that cannot be read
    or removed is left for its owner, and one that is not valid JSON is
    left in place for a later attempt.

    Raises:
        HandoffError: if the file is missing, unusable or cannot be claimed
    """
    path = handoff_path(job_id, directory)

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise HandoffError(f"No hand-off file for job {job_id}") from None
    except (OSError, json.JSONDecodeError) as e:
        raise HandoffError(f"Unreadable hand-off file {path}: {e}") from e

    try:
        path.unlink()
    except FileNotFoundError:
        raise HandoffError(f"Job {job_id} was already claimed") from None
    except OSError as e:
        logger.warning("Could not remove hand-off file %s: %s", path, e)
        raise HandoffError(f"Cannot claim hand-off file {path}: {e}") from e

    if not isinstance(data, dict) or not all(
        isinstance(value, str) for value in data.values()
    ):
        raise HandoffError(f"Hand-off file {path} is not a string map")
    if not data.get("path"):
        raise HandoffError(f"Hand-off file {path} has no PDF path")

    return PrintJob.from_dict(job_id, data)


_HANDOFF_RE = re.compile(
    rf"^{re.escape(HANDOFF_PREFIX)}(?P<job>[^/]+){re.escape(HANDOFF_SUFFIX)}$"
)


def pending_job_ids(directory: Path | str = "/tmp") -> list[str]:
    """Job ids of hand-off files currently waiting in ``directory``."""
    directory = Path(directory)
    if not directory.is_dir():
        return []

    found = []
    for entry in directory.iterdir():
        match = _HANDOFF_RE.match(entry.name)
        if match and entry.is_file():
            found.append((entry.stat().st_mtime, match.group("job")))

    return [job_id for _, job_id in sorted(found)]
