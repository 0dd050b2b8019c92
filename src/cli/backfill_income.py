"""CLI entry point for backfilling income of approved payments.

Usage:
    python -m src.cli.backfill_income            # write missing income rows
    python -m src.cli.backfill_income --dry-run  # scan, validate and preview only

Exit Codes:
    0 - Success (or nothing to do)
    1 - Failure: validation abort, timeout or unexpected error; nothing committed

Logging:
    INFO level logs to both stdout and logs/backfill.log
"""

import argparse
import sys

from dotenv import load_dotenv

from src.services.errors import BackfillTimeoutError, BackfillValidationError
from src.services.logging import setup_script_logging


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for the income backfill CLI.

    Returns:
        Exit code: 0 for success, 1 for failure
    """
    parser = argparse.ArgumentParser(description="Backfill income for approved payments")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Scan and validate, print intended writes, change nothing",
    )
    args = parser.parse_args(argv)

    load_dotenv()
    logger = setup_script_logging()

    try:
        from src.config.settings import get_settings
        from src.services import SessionLocal
        from src.services.backfill_service import IncomeBackfillService

        db = SessionLocal()
        try:
            service = IncomeBackfillService(
                db, logger, timeout_seconds=get_settings().backfill_timeout_seconds
            )
            service.run(dry_run=args.dry_run)
            if args.dry_run:
                logger.info("To execute: python -m src.cli.backfill_income")
            return 0
        finally:
            db.close()

    except BackfillValidationError as e:
        logger.error(f"Migration aborted. Fix these issues and re-run. {e.message}")
        return 1
    except BackfillTimeoutError as e:
        logger.error(e.message)
        return 1
    except KeyboardInterrupt:
        logger.warning("Backfill interrupted by user")
        return 1
    except Exception as e:
        logger.error(f"Backfill failed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
