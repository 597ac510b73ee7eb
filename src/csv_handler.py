import csv
import logging
import re
from decimal import Decimal
from typing import Dict, List, Optional, TextIO

from account import Account, AccountOutput
from models import Transaction, TransactionType, MAX_CLIENT_ID, MAX_TRANSACTION_ID

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("type", "client", "tx")
OUTPUT_HEADER = ("client", "available", "held", "total", "locked")

ID_PATTERN = re.compile(r"[0-9]+")
AMOUNT_PATTERN = re.compile(r"-?[0-9]+(\.[0-9]+)?")


class ParseError(ValueError):
    """Input could not be read as a list of transactions."""


def read_transactions(stream: TextIO) -> List[Transaction]:
    """
    Read every transaction from a CSV stream with a `type, client, tx, amount` header.
    Whitespace around fields is ignored. Any malformed row aborts the whole read.
    """
    reader = csv.DictReader(stream, restval="")
    if reader.fieldnames is None:
        return []

    reader.fieldnames = [name.strip().lower() for name in reader.fieldnames]
    missing = [column for column in REQUIRED_COLUMNS if column not in reader.fieldnames]
    if missing:
        raise ParseError(f"Missing columns in header: {', '.join(missing)}")

    transactions = []
    for row in reader:
        if None in row:
            raise ParseError(f"Line {reader.line_num}: too many fields")
        normalized = {k: v.strip() for k, v in row.items()}
        if not any(normalized.values()):
            continue

        try:
            transaction = _parse_row(normalized)
        except ValueError as e:
            raise ParseError(f"Line {reader.line_num}: {e}") from e

        logger.info(f"Loaded {transaction}")
        transactions.append(transaction)
    return transactions


def _parse_row(row: Dict[str, str]) -> Transaction:
    """Parse a whitespace-trimmed CSV row into a Transaction."""
    transaction_type = TransactionType(row["type"].lower())
    client_id = _parse_id(row["client"], "client", MAX_CLIENT_ID)
    transaction_id = _parse_id(row["tx"], "tx", MAX_TRANSACTION_ID)

    return Transaction(
        transaction_type=transaction_type,
        client_id=client_id,
        transaction_id=transaction_id,
        amount=_parse_amount(row.get("amount", "")),
    )


def _parse_id(value: str, column: str, maximum: int) -> int:
    if not ID_PATTERN.fullmatch(value):
        raise ValueError(f"invalid {column} {value!r}")
    parsed = int(value)
    if not 0 <= parsed <= maximum:
        raise ValueError(f"{column} {parsed} out of range 0..{maximum}")
    return parsed


def _parse_amount(value: str) -> Optional[Decimal]:
    if not value:
        return None
    if not AMOUNT_PATTERN.fullmatch(value):
        raise ValueError(f"invalid amount {value!r}")
    return Decimal(value)


def format_decimal(value: Decimal) -> str:
    """Format decimal with up to 4 decimal places, removing trailing zeros."""
    if value.is_zero():
        return "0"
    formatted = f"{value:f}"
    if "." in formatted:
        formatted = formatted.rstrip("0").rstrip(".")
    return formatted


def write_accounts(accounts: Dict[int, Account], stream: TextIO) -> None:
    """Write one CSV row per account, ordered by client id."""
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(OUTPUT_HEADER)
    for client_id in sorted(accounts.keys()):
        output = AccountOutput.from_account(accounts[client_id])
        writer.writerow([
            output.client,
            format_decimal(output.available),
            format_decimal(output.held),
            format_decimal(output.total),
            str(output.locked).lower(),
        ])
