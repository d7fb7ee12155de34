#!/usr/bin/env python3
"""
BirdWatch Translation Compiler
==============================

Compiles Qt translation sources (.ts) into binary catalogs (.qm).
QTranslator can only load .qm files, so this has to run before the
translations show up in the application.

Directory layout
----------------

birdwatch/translations/
├── __init__.py          # package init, TRANSLATIONS_PATH
├── birdwatch_fr.ts      # French source
└── birdwatch_fr.qm      # French catalog (generated)

Usage
-----

    python scripts/compile_translations.py

Dependencies
------------

Needs the lrelease tool, from either:

    pip install pyside6-essentials
    sudo apt install qt6-tools-dev-tools

Contexts
--------

MorkParser    : errors when reading an index file
UnreadMonitor : warnings about watched index files

Strings inside QObject subclasses use self.tr('English text'); outside
of them use QCoreApplication.translate('Context', 'English text'). New
strings have to be added to every .ts file by hand.

Testing
-------

    LANG=fr_FR.UTF-8 python -m birdwatch --loglevel DEBUG

The log shows "Loaded translation for locale: fr_FR" when the catalog
was found.
"""

import subprocess
import sys
from pathlib import Path


def find_lrelease():
    """Find lrelease executable."""
    candidates = [
        'pyside6-lrelease',  # pip install pyside6-essentials
        'lrelease',
        'lrelease6',
        '/usr/lib/qt6/bin/lrelease',
    ]

    for cmd in candidates:
        try:
            # pyside6-lrelease doesn't support --version
            result = subprocess.run(
                [cmd, '-help'],
                capture_output=True,
                text=True
            )
            if ('lrelease' in result.stdout.lower()
                    or 'lrelease' in result.stderr.lower()):
                return cmd
        except FileNotFoundError:
            continue

    return None


def compile_translations():
    """Compile all .ts files to .qm."""
    translations_dir = (
        Path(__file__).parent.parent / 'birdwatch' / 'translations')
    ts_files = sorted(translations_dir.glob('*.ts'))

    if not ts_files:
        print("No .ts files found in:", translations_dir)
        return 1

    lrelease = find_lrelease()
    if not lrelease:
        print("ERROR: lrelease not found.")
        print()
        print("Install one of:")
        print("  pip install pyside6-essentials")
        print("  apt install qt6-tools-dev-tools")
        return 1

    print(f"Using: {lrelease}")
    print(f"Directory: {translations_dir}")
    print()

    for ts_file in ts_files:
        qm_file = ts_file.with_suffix('.qm')
        print(f"Compiling: {ts_file.name}")

        result = subprocess.run(
            [lrelease, str(ts_file), '-qm', str(qm_file)],
            capture_output=True,
            text=True
        )

        if result.returncode != 0:
            print(f"  ERROR: {result.stderr}")
            return 1

        if result.stdout:
            print(f"  {result.stdout.strip()}")
        print(f"  Output: {qm_file.name}")

    print()
    print(f"Done! Compiled {len(ts_files)} file(s).")
    return 0


if __name__ == '__main__':
    sys.exit(compile_translations())
