import argparse
import csv
import logging
import sys
from typing import List, Optional

from csv_handler import ParseError, read_transactions, write_accounts
from ledger_engine import LedgerEngine

__version__ = "0.1.0"

APP_NAME = "Payments Engine"

EXIT_OK = 0
EXIT_OPEN_FAILED = 2
EXIT_PARSE_FAILED = 3
EXIT_WRITE_FAILED = 4

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="payments-engine", description="Compute client balances from a CSV transaction log.")
    parser.add_argument("input", help="CSV file to use")
    parser.add_argument("-v", "--verbose", action="store_true", help="Print progress data")
    parser.add_argument("-w", "--workers", type=int, default=4, help="Number of worker threads (default: 4)")
    parser.add_argument("--version", action="version", version=f"{APP_NAME} {__version__}")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        input_file = open(args.input, "r", newline="")
    except OSError as e:
        print(f"Opening of file failed! Error: {e}", file=sys.stderr)
        return EXIT_OPEN_FAILED

    with input_file:
        try:
            transactions = read_transactions(input_file)
        except (ParseError, csv.Error, UnicodeDecodeError) as e:
            print(f"Error while loading transactions: {e}", file=sys.stderr)
            return EXIT_PARSE_FAILED

    logger.info(f"Transactions loaded: {len(transactions)}")

    engine = LedgerEngine(num_workers=args.workers)
    accounts = engine.process(transactions)
    logger.info(f"Client accounts processed: {len(accounts)}")

    try:
        write_accounts(accounts, sys.stdout)
        sys.stdout.flush()
    except OSError as e:
        print(f"Error while writing output: {e}", file=sys.stderr)
        return EXIT_WRITE_FAILED

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
