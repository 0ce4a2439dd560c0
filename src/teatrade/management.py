"""Command line helpers for administrative tasks."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

from .config import get_settings
from .csv_validation import CSV_SPECS, validate_csv
from .logging_config import setup_logging

logger = logging.getLogger(__name__)


def validate_csv_file(entity: str, path: Path, max_bytes: int | None = None) -> list[str]:
    """Run the upload pre-checks for ``entity`` against the file at ``path``."""

    spec = CSV_SPECS[entity]
    return validate_csv(path.read_bytes(), spec, max_bytes=max_bytes)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="teatrade-validate-csv",
        description="Check a CSV sheet the way the upload screen does before sending it.",
    )
    parser.add_argument("entity", choices=sorted(CSV_SPECS), help="Record type the sheet holds.")
    parser.add_argument("file", type=Path, help="Path to the CSV file.")
    return parser


def cli_validate_csv(argv: Sequence[str] | None = None) -> int:
    """CLI wrapper executed from the ``teatrade-validate-csv`` script."""

    settings = get_settings()
    setup_logging(settings.log_level)
    args = build_parser().parse_args(argv)

    if not args.file.is_file():
        print(f"File not found: {args.file}", file=sys.stderr)
        return 2

    errors = validate_csv_file(args.entity, args.file, settings.max_upload_bytes)
    if errors:
        for error in errors:
            print(error, file=sys.stderr)
        return 1
    print(f"{args.file.name}: OK")
    return 0


if __name__ == "__main__":
    sys.exit(cli_validate_csv())
