#!/usr/bin/python3
"""CUPS backend for the Otto's Print to PDF virtual printer.

Installed as ``cups-pdf`` in the CUPS backend directory and run by CUPS
with the system Python, so this module only uses the standard library.

CUPS Backend Protocol:
- When called with no arguments: output device URI and description
- When called with job arguments: process the print job

Arguments from CUPS:
    argv[1] = job ID
    argv[2] = user name
    argv[3] = job title
    argv[4] = number of copies
    argv[5] = print options
    argv[6] = file to print (optional, if not stdin)

A processed job ends up as a PDF in the user's spool directory, plus a
hand-off file ``/tmp/ottos-pdf-<job>.json`` pointing at it. The backend
then opens ``ottospdf://handle-pdf?job=<job>`` in the user's session so
the application can claim the file.
"""
from __future__ import annotations

import json
import os
import pwd
import shlex
import shutil
import subprocess
import sys
import tempfile
from datetime import datetime
from pathlib import Path
from urllib.parse import urlencode

# Configuration
CONFIG_FILE = "/private/etc/cups/cups-pdf.conf"
DEFAULT_OUT = "/private/var/spool/cups-pdf/${USER}"
HANDOFF_DIR = "/tmp"
HANDOFF_PREFIX = "ottos-pdf-"
URL_SCHEME = "ottospdf"
URL_HOST = "handle-pdf"

DEVICE_LINE = (
    'file cups-pdf:/ "Otto\'s Print to PDF" "Otto\'s Print to PDF" '
    '"MFG:Otto;CMD:PDF;"'
)

# Exit codes from <cups/backend.h>
CUPS_BACKEND_OK = 0
CUPS_BACKEND_FAILED = 1

MAX_TITLE_LENGTH = 100


def log_info(message: str) -> None:
    """Log info message to CUPS."""
    print(f"INFO: {message}", file=sys.stderr)


def log_error(message: str) -> None:
    """Log error message to CUPS."""
    print(f"ERROR: {message}", file=sys.stderr)


def log_debug(message: str) -> None:
    """Log debug message to CUPS (visible with LogLevel debug)."""
    print(f"DEBUG: {message}", file=sys.stderr)


def discovery_mode() -> None:
    """Output device URI and description for CUPS discovery."""
    print(DEVICE_LINE)


def read_config(config_file: str | Path) -> dict[str, str]:
    """Read ``Key value`` lines from the backend configuration file."""
    config: dict[str, str] = {}
    try:
        with open(config_file, encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith("#"):
                    continue
                key, _, value = line.partition(" ")
                config[key] = value.strip()
    except OSError as e:
        log_debug(f"Using defaults, cannot read {config_file}: {e}")
    return config


def expand_path(value: str, pw: pwd.struct_passwd) -> Path:
    """Expand ``${USER}`` and ``${HOME}`` for the job's owner."""
    value = value.replace("${USER}", pw.pw_name).replace("${HOME}", pw.pw_dir)
    return Path(value)


def sanitize_title(title: str) -> str:
    """Turn a job title into something usable as a file name."""
    # Titles of printed files often carry the full path or extension.
    name = title.strip().rsplit("/", 1)[-1]
    if name.lower().endswith(".pdf"):
        name = name[:-4]
    safe = "".join(c if c.isalnum() or c in " ._-" else "_" for c in name)
    safe = safe.strip(" .")[:MAX_TITLE_LENGTH]
    return safe or "untitled"


def unique_path(directory: Path, stem: str, suffix: str = ".pdf") -> Path:
    """First non-existing ``stem[_n]suffix`` in ``directory``."""
    candidate = directory / f"{stem}{suffix}"
    counter = 1
    while candidate.exists():
        candidate = directory / f"{stem}_{counter}{suffix}"
        counter += 1
    return candidate


def parse_source(options: str) -> str:
    """Find the originating document's directory in the job options.

    Applications (or ``lp -o document-path=...``) may pass either
    ``document-path`` or ``source-dir``. Returns an empty string when
    neither is present.
    """
    try:
        items = shlex.split(options)
    except ValueError:
        return ""

    for item in items:
        key, sep, value = item.partition("=")
        if not sep or not value:
            continue
        if key == "source-dir":
            return value
        if key == "document-path":
            return str(Path(value).parent)
    return ""


def prepare_spool_dir(spool_dir: Path, pw: pwd.struct_passwd) -> None:
    """Create the per-user spool directory owned by the user."""
    spool_dir.mkdir(parents=True, exist_ok=True)
    try:
        os.chown(spool_dir, pw.pw_uid, pw.pw_gid)
        os.chmod(spool_dir, 0o700)
    except OSError as e:
        log_debug(f"Could not set spool dir ownership: {e}")


def spool_job(input_file: str | None, job_path: Path) -> None:
    """Copy the job data (from ``input_file`` or stdin) to ``job_path``."""
    if input_file:
        shutil.copyfile(input_file, job_path)
        return

    with open(job_path, "wb") as f:
        # Read in chunks to handle large files
        while True:
            chunk = sys.stdin.buffer.read(65536)
            if not chunk:
                break
            f.write(chunk)


def write_handoff(job_id: str, job_info: dict[str, str], pw: pwd.struct_passwd) -> Path:
    """Write the hand-off file the application reads when the URL opens."""
    handoff_file = Path(HANDOFF_DIR) / f"{HANDOFF_PREFIX}{job_id}.json"

    # The application watches HANDOFF_DIR; it must only ever see the finished file.
    fd, tmp_name = tempfile.mkstemp(dir=HANDOFF_DIR, prefix=f".{HANDOFF_PREFIX}", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(job_info, f)

        # /tmp is sticky: the user can only remove the file if they own it.
        try:
            os.chown(tmp_name, pw.pw_uid, pw.pw_gid)
        except OSError as e:
            log_debug(f"Could not chown hand-off file: {e}")
        os.chmod(tmp_name, 0o600)
        # Replaces a stale file from an earlier CUPS job id cycle as well.
        os.replace(tmp_name, handoff_file)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return handoff_file


def handoff_url(job_id: str) -> str:
    """URL asking the application to claim ``job_id``."""
    return f"{URL_SCHEME}://{URL_HOST}?{urlencode({'job': job_id})}"


def notify_app(url: str, pw: pwd.struct_passwd) -> bool:
    """Open the hand-off URL in the user's GUI session.

    Returns:
        True if one of the launch commands succeeded
    """
    commands = []
    if os.geteuid() == 0:
        commands.append(
            ["launchctl", "asuser", str(pw.pw_uid), "sudo", "-u", pw.pw_name, "open", url]
        )
        commands.append(["sudo", "-u", pw.pw_name, "open", url])
    commands.append(["open", url])

    for cmd in commands:
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=30)
        except (OSError, subprocess.TimeoutExpired) as e:
            log_debug(f"{cmd[0]} failed: {e}")
            continue
        if result.returncode == 0:
            log_debug(f"Opened {url} with: {' '.join(cmd)}")
            return True
        log_debug(f"{' '.join(cmd)} exited {result.returncode}: {result.stderr.strip()}")

    return False


def process_job(
    job_id: str,
    user: str,
    title: str,
    copies: int,
    options: str,
    input_file: str | None = None,
) -> int:
    """Process a print job from CUPS.

    Args:
        job_id: CUPS job ID
        user: Username who submitted the job
        title: Document title
        copies: Number of copies (a PDF is written once regardless)
        options: Print options string
        input_file: Path to input file (None = read from stdin)

    Returns:
        CUPS backend exit code
    """
    try:
        pw = pwd.getpwnam(user)
    except KeyError:
        log_error("Unable to get user info")
        return CUPS_BACKEND_FAILED

    config = read_config(CONFIG_FILE)
    spool_dir = expand_path(config.get("Out", DEFAULT_OUT), pw)

    stem = sanitize_title(title)
    if config.get("Label", "0") not in ("", "0"):
        stem = f"job_{job_id}-{stem}"

    try:
        prepare_spool_dir(spool_dir, pw)
        job_path = unique_path(spool_dir, stem)
        spool_job(input_file, job_path)
    except OSError as e:
        log_error(f"Failed to save print job: {e}")
        return CUPS_BACKEND_FAILED

    try:
        os.chown(job_path, pw.pw_uid, pw.pw_gid)
    except OSError as e:
        log_debug(f"Could not chown job file: {e}")
    os.chmod(job_path, 0o644)

    job_info = {
        "path": str(job_path),
        "title": title,
        "user": user,
        "copies": str(copies),
        "source": parse_source(options),
        "timestamp": datetime.now().strftime("%Y%m%d_%H%M%S"),
    }

    try:
        write_handoff(job_id, job_info, pw)
    except OSError as e:
        # The PDF is spooled; the user can still pick it up by hand.
        log_error(f"Failed to write hand-off file: {e}")
        return CUPS_BACKEND_OK

    if not notify_app(handoff_url(job_id), pw):
        log_error("Could not notify Otto's Print to PDF")

    log_info(f"Job {job_id} spooled: {job_path}")
    return CUPS_BACKEND_OK


def main(argv: list[str] | None = None) -> int:
    """Main entry point for CUPS backend."""
    if argv is None:
        argv = sys.argv
    argc = len(argv)

    # Discovery mode - no arguments
    if argc == 1:
        discovery_mode()
        return CUPS_BACKEND_OK

    if argc < 6 or argc > 7:
        log_error("Wrong number of arguments")
        return CUPS_BACKEND_FAILED

    job_id = argv[1]
    user = argv[2]
    title = argv[3]

    try:
        copies = int(argv[4])
    except ValueError:
        copies = 1

    options = argv[5]
    input_file = argv[6] if argc > 6 else None

    return process_job(job_id, user, title, copies, options, input_file)


if __name__ == "__main__":
    sys.exit(main())
