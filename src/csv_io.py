import csv
import logging
from decimal import Context, Decimal, InvalidOperation, ROUND_HALF_EVEN
from typing import Dict, Iterator, Mapping, Optional, TextIO

from models import AMOUNT_PRECISION, ClientAccount, Transaction, TransactionType

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("type", "client", "tx")
OUTPUT_COLUMNS = ["client", "available", "held", "total", "locked"]

MAX_CLIENT_ID = 2**16 - 1
MAX_TRANSACTION_ID = 2**32 - 1

OUTPUT_PLACES = Decimal("0.0001")
OUTPUT_CONTEXT = Context(prec=AMOUNT_PRECISION + 4, rounding=ROUND_HALF_EVEN)


class MalformedInputError(ValueError):
    """The input file cannot be read as a transaction CSV at all."""


class MalformedRowError(ValueError):
    """A single row cannot be turned into a Transaction."""


def read_transactions(filepath: str) -> Iterator[Transaction]:
    """
    Lazily read transactions from a CSV file with a `type, client, tx, amount` header.
    Malformed rows are logged and skipped.
    """
    # Undecodable bytes become U+FFFD so the damaged row fails parsing and is skipped.
    with open(filepath, "r", encoding="utf-8-sig", errors="replace", newline="") as f:
        reader = csv.DictReader(f)
        if reader.fieldnames is None:
            raise MalformedInputError(f"{filepath}: empty input, expected a header row")

        reader.fieldnames = [name.strip().lower() for name in reader.fieldnames]
        missing = [column for column in REQUIRED_COLUMNS if column not in reader.fieldnames]
        if missing:
            raise MalformedInputError(f"{filepath}: header is missing column(s) {', '.join(missing)}")

        for row in reader:
            try:
                yield parse_row(row)
            except MalformedRowError as e:
                logger.warning(f"Skipping row {reader.line_num}: {e}")


def parse_row(row: Dict[Optional[str], Optional[str]]) -> Transaction:
    """Parse a CSV row into a Transaction, raising MalformedRowError if it is not one."""
    normalized = {
        k.strip(): v.strip()
        for k, v in row.items()
        if isinstance(k, str) and isinstance(v, str)
    }

    try:
        transaction_type = TransactionType(normalized.get("type", "").lower())
    except ValueError:
        raise MalformedRowError(f"unknown transaction type {normalized.get('type')!r}") from None

    client_id = _parse_id(normalized.get("client", ""), "client", MAX_CLIENT_ID)
    transaction_id = _parse_id(normalized.get("tx", ""), "tx", MAX_TRANSACTION_ID)

    amount = None
    if transaction_type in (TransactionType.DEPOSIT, TransactionType.WITHDRAWAL):
        amount = _parse_amount(normalized.get("amount", ""))

    return Transaction(
        transaction_type=transaction_type,
        client_id=client_id,
        transaction_id=transaction_id,
        amount=amount,
    )


def _parse_id(value: str, column: str, maximum: int) -> int:
    try:
        parsed = int(value)
    except ValueError:
        raise MalformedRowError(f"{column} {value!r} is not an integer") from None
    if not 0 <= parsed <= maximum:
        raise MalformedRowError(f"{column} {parsed} out of range 0..{maximum}")
    return parsed


def _parse_amount(value: str) -> Decimal:
    if not value:
        raise MalformedRowError("amount is required")
    try:
        amount = Decimal(value)
    except InvalidOperation:
        raise MalformedRowError(f"amount {value!r} is not a decimal") from None

    if not amount.is_finite():
        raise MalformedRowError(f"amount {value!r} is not finite")
    _, digits, exponent = amount.as_tuple()
    if len(digits) > AMOUNT_PRECISION or exponent < -AMOUNT_PRECISION or amount.adjusted() >= AMOUNT_PRECISION:
        raise MalformedRowError(f"amount {value!r} exceeds {AMOUNT_PRECISION} digits of precision")
    return amount


def format_decimal(value: Decimal) -> str:
    """Format decimal with exactly 4 decimal places, rounding half to even."""
    quantized = OUTPUT_CONTEXT.quantize(value, OUTPUT_PLACES)
    if quantized.is_zero():
        quantized = quantized.copy_abs()
    return f"{quantized:f}"


def write_accounts(accounts: Mapping[int, ClientAccount], stream: TextIO) -> None:
    """Write the client table to stream, one row per client ordered by client id."""
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(OUTPUT_COLUMNS)
    for client_id in sorted(accounts.keys()):
        account = accounts[client_id]
        writer.writerow([
            client_id,
            format_decimal(account.available),
            format_decimal(account.held),
            format_decimal(account.total),
            str(account.locked).lower(),
        ])
