#!/usr/bin/env python3
"""Printer installer for Otto's Print to PDF.

Two roles:

- the privileged helper (``install-files`` / ``remove-files``), run as
  root, which puts the CUPS backend, PPD and configuration in place or
  removes them. Given a resource directory it exits 0 on success and 1
  on failure;
- a command line front end (``install`` / ``uninstall`` / ``status``)
  around :class:`~ottos_pdf.printer.manager.PrinterManager`.
"""

from __future__ import annotations

import argparse
import logging
import os
import shutil
import sys
from pathlib import Path

from ottos_pdf.printer.errors import (
    BACKEND_FAILED,
    FILE_SETUP_FAILED,
    PPD_FAILED,
    PrinterError,
)

logger = logging.getLogger(__name__)

# Configuration
PRINTER_DESCRIPTION = "Otto's Print to PDF"
BACKEND_NAME = "cups-pdf"
DEVICE_URI = f"{BACKEND_NAME}:/"

# Paths
SPOOL_DIR = Path("/private/var/spool/cups-pdf")
CONFIG_FILE = Path("/private/etc/cups/cups-pdf.conf")
BACKEND_PATH = Path("/usr/local/lib/cups/backend") / BACKEND_NAME
PPD_PATH = Path("/usr/local/share/cups/model/CUPS-PDF_opt.ppd")

BACKEND_RESOURCE = "cups_backend.py"
PPD_RESOURCE = "CUPS-PDF_opt.ppd"


def check_root() -> bool:
    """Check if running as root."""
    return os.geteuid() == 0


def default_resources_dir() -> Path:
    """Directory holding the backend script shipped with the package."""
    return Path(__file__).resolve().parent


def create_config(spool_dir: Path = SPOOL_DIR, label: bool = True) -> str:
    """Create the backend configuration file content."""
    return (
        f"Out {spool_dir}/${{USER}}\n"
        f"Label {1 if label else 0}\n"
    )


def create_ppd(
    model_name: str = PRINTER_DESCRIPTION,
    manufacturer: str = "Otto",
) -> str:
    """Create a minimal PPD file for the printer.

    Returns:
        PPD file content as string
    """
    return f"""*PPD-Adobe: "4.3"
*FormatVersion: "4.3"
*FileVersion: "1.0"
*LanguageVersion: English
*LanguageEncoding: ISOLatin1
*PCFileName: "OTTOSPDF.PPD"
*Manufacturer: "{manufacturer}"
*Product: "({model_name})"
*ModelName: "{model_name}"
*ShortNickName: "{model_name}"
*NickName: "{model_name} Virtual Printer"
*PSVersion: "(3010) 0"
*LanguageLevel: "3"
*ColorDevice: True
*DefaultColorSpace: RGB
*FileSystem: False
*Throughput: "1"
*TTRasterizer: Type42
*cupsFilter: "application/vnd.cups-pdf 0 -"

*OpenUI *PageSize/Media Size: PickOne
*OrderDependency: 10 AnySetup *PageSize
*DefaultPageSize: Letter
*PageSize A4/A4: "<</PageSize[595 842]/ImagingBBox null>>setpagedevice"
*PageSize Letter/Letter: "<</PageSize[612 792]/ImagingBBox null>>setpagedevice"
*PageSize Legal/Legal: "<</PageSize[612 1008]/ImagingBBox null>>setpagedevice"
*PageSize A3/A3: "<</PageSize[842 1191]/ImagingBBox null>>setpagedevice"
*PageSize A5/A5: "<</PageSize[420 595]/ImagingBBox null>>setpagedevice"
*PageSize Tabloid/Tabloid: "<</PageSize[792 1224]/ImagingBBox null>>setpagedevice"
*CloseUI: *PageSize

*OpenUI *PageRegion: PickOne
*OrderDependency: 10 AnySetup *PageRegion
*DefaultPageRegion: Letter
*PageRegion A4/A4: "<</PageSize[595 842]/ImagingBBox null>>setpagedevice"
*PageRegion Letter/Letter: "<</PageSize[612 792]/ImagingBBox null>>setpagedevice"
*PageRegion Legal/Legal: "<</PageSize[612 1008]/ImagingBBox null>>setpagedevice"
*PageRegion A3/A3: "<</PageSize[842 1191]/ImagingBBox null>>setpagedevice"
*PageRegion A5/A5: "<</PageSize[420 595]/ImagingBBox null>>setpagedevice"
*PageRegion Tabloid/Tabloid: "<</PageSize[792 1224]/ImagingBBox null>>setpagedevice"
*CloseUI: *PageRegion

*DefaultImageableArea: Letter
*ImageableArea A4/A4: "0 0 595 842"
*ImageableArea Letter/Letter: "0 0 612 792"
*ImageableArea Legal/Legal: "0 0 612 1008"
*ImageableArea A3/A3: "0 0 842 1191"
*ImageableArea A5/A5: "0 0 420 595"
*ImageableArea Tabloid/Tabloid: "0 0 792 1224"

*DefaultPaperDimension: Letter
*PaperDimension A4/A4: "595 842"
*PaperDimension Letter/Letter: "612 792"
*PaperDimension Legal/Legal: "612 1008"
*PaperDimension A3/A3: "842 1191"
*PaperDimension A5/A5: "420 595"
*PaperDimension Tabloid/Tabloid: "792 1224"

*DefaultFont: Courier
*Font Courier: Standard "(001.000)" Standard ROM
*Font Helvetica: Standard "(001.000)" Standard ROM
*Font Times-Roman: Standard "(001.000)" Standard ROM
"""


def install_files(resources: Path) -> None:
    """Install backend, PPD and configuration into the CUPS directories.

    Must run as root. Raises PrinterError on failure.
    """
    backend_source = resources / BACKEND_RESOURCE
    if not backend_source.is_file():
        raise PrinterError(f"Failed to install backend: {backend_source} not found", BACKEND_FAILED)

    try:
        SPOOL_DIR.mkdir(parents=True, exist_ok=True)
        os.chmod(SPOOL_DIR, 0o777)
        PPD_PATH.parent.mkdir(parents=True, exist_ok=True)
        BACKEND_PATH.parent.mkdir(parents=True, exist_ok=True)

        CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
        CONFIG_FILE.write_text(create_config(SPOOL_DIR), encoding="utf-8")
        os.chmod(CONFIG_FILE, 0o644)
    except OSError as e:
        raise PrinterError(f"Failed to set up printer files: {e}", FILE_SETUP_FAILED) from e

    try:
        shutil.copyfile(backend_source, BACKEND_PATH)
        # Owned by root with no group/other access: CUPS then runs it as root.
        os.chown(BACKEND_PATH, 0, 0)
        os.chmod(BACKEND_PATH, 0o700)
    except OSError as e:
        raise PrinterError(f"Failed to install backend: {e}", BACKEND_FAILED) from e
    logger.info("Installed backend: %s", BACKEND_PATH)

    ppd_source = resources / PPD_RESOURCE
    try:
        if ppd_source.is_file():
            shutil.copyfile(ppd_source, PPD_PATH)
        else:
            PPD_PATH.write_text(create_ppd(), encoding="latin-1")
        os.chmod(PPD_PATH, 0o644)
    except OSError as e:
        raise PrinterError(f"Failed to install PPD file: {e}", PPD_FAILED) from e
    logger.info("Installed PPD: %s", PPD_PATH)


def remove_files() -> list[Path]:
    """Remove everything install_files put in place.

    Missing files are ignored. Returns the paths that could not be removed.
    """
    leftovers = []
    for path in (CONFIG_FILE, BACKEND_PATH, PPD_PATH):
        try:
            path.unlink(missing_ok=True)
            logger.info("Removed %s", path)
        except OSError as e:
            logger.warning("Could not remove %s: %s", path, e)
            leftovers.append(path)
    return leftovers


def main(argv: list[str] | None = None) -> int:
    """Main entry point for installer."""
    parser = argparse.ArgumentParser(
        description="Otto's Print to PDF printer installer"
    )
    parser.add_argument(
        "action",
        choices=["install", "uninstall", "status", "install-files", "remove-files"],
        help="Action to perform",
    )
    parser.add_argument(
        "--resources",
        type=Path,
        default=None,
        help="Directory holding the backend script (install-files)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )

    if args.action == "install-files":
        if not check_root():
            logger.error("Root privileges required to install printer files")
            return 1
        try:
            install_files(args.resources or default_resources_dir())
        except PrinterError as e:
            logger.error("%s", e)
            return 1
        return 0

    if args.action == "remove-files":
        if not check_root():
            logger.error("Root privileges required to remove printer files")
            return 1
        return 1 if remove_files() else 0

    from ottos_pdf.core.settings import Settings
    from ottos_pdf.printer.manager import PrinterManager

    manager = PrinterManager(Settings.load(), resources=args.resources)

    if args.action == "status":
        if manager.is_printer_installed():
            print(f"Printer '{manager.printer_name}' is installed")
            return 0
        print(f"Printer '{manager.printer_name}' is not installed")
        return 1

    try:
        if args.action == "install":
            manager.install_printer()
        else:
            manager.uninstall_printer()
    except PrinterError as e:
        logger.error("%s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
