from __future__ import annotations
import argparse
import logging
import sys
from typing import List, Optional

from csv_replace.changelog import write_report
from csv_replace.config import CONFIG_ENV_VAR, load_settings
from csv_replace.errors import CsvReplaceError, SubstitutionError, UsageError
from csv_replace.pipeline import run_pipeline

DESCRIPTION = """\
Apply CSV-driven replacements to TARGET_FILE, with a backup created.
RULES_FILE holds rows of "old,new" pairs (no headers).
  - Empty 'new' means deletion (replace with empty string).
  - Lines that are fully blank are skipped.
  - Lines with an empty 'old' (after trimming) are skipped."""

EPILOG = """\
Examples:
  csv-replace tmp newprod
  csv-replace replacements.csv app.conf

Notes:
  A backup is created first: TARGET_FILE.bak.YYYYMMDDHHMMSS
  Replacements are literal, with separate escaping for the pattern and
  the replacement. Rules run in file order, each on the previous output."""


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message: str):
        raise UsageError(message)


def build_parser() -> argparse.ArgumentParser:
    ap = _ArgumentParser(
        prog="csv-replace",
        description=DESCRIPTION,
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    ap.add_argument("rules_file", metavar="RULES_FILE", help="CSV file of old,new pairs")
    ap.add_argument("target_file", metavar="TARGET_FILE", help="File to rewrite in place")
    ap.add_argument("-v", "--verbose", action="store_true", help="Log each step to stderr")
    ap.add_argument("--config", help=f"YAML settings file (or set {CONFIG_ENV_VAR})")
    ap.add_argument("--encoding", help="Text encoding of both files (default: utf-8)")
    ap.add_argument("--dry-run", action="store_true",
                    help="Print the compiled script and match counts; change nothing")
    ap.add_argument("--report", help="Write a run summary (JSON, or text if the path ends in .txt)")
    return ap


def _fail(message: str) -> int:
    print(f"Error: {message}", file=sys.stderr)
    return 1


def main(argv: Optional[List[str]] = None) -> int:
    ap = build_parser()
    try:
        args = ap.parse_args(argv)
    except UsageError as e:
        print(f"Error: {e}", file=sys.stderr)
        print("Run with -h or --help for usage.", file=sys.stderr)
        return 1

    if args.verbose:
        logging.basicConfig(level=logging.INFO, format="%(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    try:
        settings = load_settings(args.config).with_overrides(encoding=args.encoding)
        result = run_pipeline(
            rules_file=args.rules_file,
            target_file=args.target_file,
            settings=settings,
            dry_run=args.dry_run,
        )
    except SubstitutionError as e:
        if e.backup_path:
            return _fail(f"substitution failed ({e}). Original file preserved at '{e.backup_path}'.")
        return _fail(f"substitution failed ({e}).")
    except CsvReplaceError as e:
        return _fail(str(e))

    if args.report:
        try:
            write_report(args.report, result.to_dict())
        except OSError as e:
            return _fail(f"cannot write report '{args.report}': {e.strerror or e}")
        print(f"Report saved: {args.report}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
