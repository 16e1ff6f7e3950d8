"""
Command line entry point: `regadmin <command> [options]`.

Every command opens one database session, runs a single batch job and
prints a human-readable summary. Configuration problems (missing file,
sheet, column or option) print a single error and exit with status 1.
"""
import argparse
import logging
import sys

from dotenv import load_dotenv

from regadmin.cli import imports, maintenance, reports
from regadmin.core.config import settings
from regadmin.core.errors import ConfigurationError, SheetNotFoundError
from regadmin.core.logging import setup_logging
from regadmin.db.session import SessionLocal

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="regadmin", description="Registration admin batch tools")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging and tracebacks")
    subparsers = parser.add_subparsers(dest="command", metavar="command")
    subparsers.required = True

    imports.register(subparsers)
    reports.register(subparsers)
    maintenance.register(subparsers)
    return parser


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging("DEBUG" if args.verbose else settings.LOG_LEVEL)

    db = SessionLocal()
    try:
        return args.handler(args, db) or 0
    except ConfigurationError as e:
        db.rollback()
        print(f"\n❌ {e}")
        if isinstance(e, SheetNotFoundError):
            print("Available sheets:")
        for line in e.hint:
            print(f"   - {line}")
        return 1
    except Exception as e:
        db.rollback()
        print(f"\n❌ Error: {e}")
        if args.verbose:
            import traceback

            traceback.print_exc()
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
