#!/usr/bin/env python3
"""Build script for the macOS application bundle.

This script:
1. Creates an .app bundle using PyInstaller
2. Ships the CUPS backend script inside the bundle as a resource
3. Registers the ottospdf:// URL scheme in the bundle's Info.plist

Requirements:
- PyInstaller: pip install pyinstaller

Usage:
    python installer/macos/build.py
"""

import plistlib
import shutil
import subprocess
import sys
from pathlib import Path

# Paths
SCRIPT_DIR = Path(__file__).parent
PROJECT_DIR = SCRIPT_DIR.parent.parent
SRC_DIR = PROJECT_DIR / "src"
DIST_DIR = PROJECT_DIR / "dist"
BUILD_DIR = PROJECT_DIR / "build"

APP_NAME = "OttosPrintToPDF"
APP_DISPLAY_NAME = "Otto's Print to PDF"
APP_VERSION = "1.0.0"
BUNDLE_ID = "com.otto.printopdf"
URL_SCHEME = "ottospdf"


def clean():
    """Clean build directories."""
    print("Cleaning build directories...")
    shutil.rmtree(DIST_DIR, ignore_errors=True)
    shutil.rmtree(BUILD_DIR, ignore_errors=True)


def build_app():
    """Build the .app bundle with PyInstaller."""
    print("Building app bundle with PyInstaller...")

    backend = SRC_DIR / "ottos_pdf" / "printer" / "cups_backend.py"

    cmd = [
        sys.executable, "-m", "PyInstaller",
        "--name", APP_NAME,
        "--windowed",  # Produces the .app bundle
        "--onedir",
        "--osx-bundle-identifier", BUNDLE_ID,
        "--add-data", f"{backend}:ottos_pdf/printer",
        "--collect-all", "pikepdf",
        "--paths", str(SRC_DIR),
        str(SRC_DIR / "ottos_pdf" / "main.py"),
    ]

    subprocess.run(cmd, check=True, cwd=PROJECT_DIR)


def register_url_scheme():
    """Add the URL type and display name to Info.plist."""
    plist_path = DIST_DIR / f"{APP_NAME}.app" / "Contents" / "Info.plist"
    print(f"Registering {URL_SCHEME}:// in {plist_path}...")

    with open(plist_path, "rb") as f:
        info = plistlib.load(f)

    info["CFBundleDisplayName"] = APP_DISPLAY_NAME
    info["CFBundleShortVersionString"] = APP_VERSION
    info["CFBundleVersion"] = APP_VERSION
    info["CFBundleURLTypes"] = [
        {
            "CFBundleURLName": BUNDLE_ID,
            "CFBundleURLSchemes": [URL_SCHEME],
        }
    ]

    with open(plist_path, "wb") as f:
        plistlib.dump(info, f)


def main():
    """Main build process."""
    print(f"Building {APP_DISPLAY_NAME} v{APP_VERSION}")
    print("=" * 50)

    if sys.platform != "darwin":
        print("This script is intended for macOS.")
        return 1

    clean()
    build_app()
    register_url_scheme()

    print()
    print("=" * 50)
    print("Build complete!")
    print(f"App: {DIST_DIR / (APP_NAME + '.app')}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
