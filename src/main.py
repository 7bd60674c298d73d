import argparse
import io
import logging
import os
import sys
from typing import List, Optional

from csv_io import MalformedInputError, write_accounts
from models import BalanceOverflowError
from payments_engine import PaymentsEngine

logger = logging.getLogger(__name__)

LOG_LEVEL_ENV = "PAYMENTS_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "WARNING"


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="payments-ledger",
        description="Reduce a CSV of transactions into final client balances, written to stdout.",
    )
    parser.add_argument("input", help="Path to the transactions CSV.")
    parser.add_argument(
        "--log-level",
        default=os.environ.get(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL),
        help=f"DEBUG, INFO, WARNING, ERROR (default: ${LOG_LEVEL_ENV} or {DEFAULT_LOG_LEVEL})",
    )
    return parser.parse_args(argv)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)

    if not os.path.isfile(args.input):
        logger.error(f"Input file does not exist: {args.input}")
        return 1

    engine = PaymentsEngine()
    output = io.StringIO()
    try:
        accounts = engine.process_file(args.input)
        write_accounts(accounts, output)
    except (OSError, MalformedInputError, BalanceOverflowError) as e:
        logger.error(f"Could not process {args.input}: {e}")
        return 1

    sys.stdout.write(output.getvalue())
    return 0


if __name__ == "__main__":
    sys.exit(main())
