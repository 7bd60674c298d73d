from dataclasses import dataclass
from decimal import Context, Decimal, Inexact, InvalidOperation, Overflow, Rounded
from enum import Enum
from typing import Optional

# Same precision as a 96-bit decimal mantissa. Any result that would need
# more digits traps instead of rounding.
AMOUNT_PRECISION = 28
AMOUNT_CONTEXT = Context(prec=AMOUNT_PRECISION, traps=[Rounded, Inexact, Overflow, InvalidOperation])


class BalanceOverflowError(ArithmeticError):
    """Raised when a balance update cannot be represented exactly."""


class TransactionType(Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    DISPUTE = "dispute"
    RESOLVE = "resolve"
    CHARGEBACK = "chargeback"


class ProcessingResult(Enum):
    SUCCESS = "success"
    IGNORED = "ignored"


@dataclass(frozen=True)
class Transaction:
    transaction_type: TransactionType
    client_id: int
    transaction_id: int
    amount: Optional[Decimal] = None

    def __repr__(self) -> str:
        return f"Transaction({self.transaction_type.value}, client={self.client_id}, tx={self.transaction_id}, amount={self.amount})"


def _checked(result: Decimal, message: str) -> Decimal:
    # Magnitudes stay below 10**28 so every balance renders with 4 places.
    if result.adjusted() >= AMOUNT_PRECISION:
        raise BalanceOverflowError(message)
    return result


def _add(left: Decimal, right: Decimal) -> Decimal:
    message = f"cannot add {right} to {left} exactly"
    try:
        return _checked(AMOUNT_CONTEXT.add(left, right), message)
    except (Rounded, Inexact, Overflow, InvalidOperation) as e:
        raise BalanceOverflowError(message) from e


def _subtract(left: Decimal, right: Decimal) -> Decimal:
    message = f"cannot subtract {right} from {left} exactly"
    try:
        return _checked(AMOUNT_CONTEXT.subtract(left, right), message)
    except (Rounded, Inexact, Overflow, InvalidOperation) as e:
        raise BalanceOverflowError(message) from e


@dataclass
class ClientAccount:
    client_id: int
    available: Decimal = Decimal("0")
    held: Decimal = Decimal("0")
    locked: bool = False

    @property
    def total(self) -> Decimal:
        return _add(self.available, self.held)

    def credit(self, amount: Decimal) -> None:
        self.available = _add(self.available, amount)

    def debit(self, amount: Decimal) -> None:
        self.available = _subtract(self.available, amount)

    def hold(self, amount: Decimal) -> None:
        available = _subtract(self.available, amount)
        self.held = _add(self.held, amount)
        self.available = available

    def release_hold(self, amount: Decimal) -> None:
        available = _add(self.available, amount)
        self.held = _subtract(self.held, amount)
        self.available = available

    def charge_back(self, amount: Decimal) -> None:
        self.held = _subtract(self.held, amount)
        self.locked = True


class ProcessingStats:
    """Counters for records applied and records ignored during a run."""

    def __init__(self):
        self.processed = 0
        self.ignored = 0

    def record_success(self):
        self.processed += 1

    def record_ignored(self):
        self.ignored += 1
