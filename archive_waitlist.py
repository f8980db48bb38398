#!/usr/bin/env python3
"""
Rotate the CSV waitlist ledger into the archive directory.

Run this when the ledger approaches LEDGER_MAX_BYTES; signups are refused
once the limit is reached and resume as soon as the file has been archived.
"""
import argparse
import sys
import os

# Add the project root to Python path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from kenz_waitlist.core.config import settings
from kenz_waitlist.services.ledger import CsvLedger


def archive(ledger_path: str, archive_dir: str) -> int:
    ledger = CsvLedger(ledger_path)
    size = ledger.size_bytes()
    target = ledger.rotate(archive_dir)
    if target is None:
        print(f"Nothing to archive: {ledger_path} has no signups")
        return 0
    print(f"Archived {size} bytes from {ledger_path} to {target}")
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--ledger", default=settings.LEDGER_PATH, help="CSV ledger to rotate")
    parser.add_argument("--archive-dir", default=settings.LEDGER_ARCHIVE_DIR, help="where archived ledgers go")
    args = parser.parse_args(argv)
    return archive(args.ledger, args.archive_dir)


if __name__ == "__main__":
    sys.exit(main())
