import logging
from typing import Iterable, Mapping

from csv_io import read_transactions
from models import Transaction, ClientAccount, ProcessingResult, ProcessingStats
from state_manager import StateManager
from transaction_processor import TransactionProcessor

logger = logging.getLogger(__name__)


class PaymentsEngine:
    """
    Reduces an ordered stream of transactions into final client balances.
    Transactions are applied strictly in arrival order, one at a time.
    """

    def __init__(self):
        self._state = StateManager()
        self._processor = TransactionProcessor(self._state)
        self._stats = ProcessingStats()

    @property
    def accounts(self) -> Mapping[int, ClientAccount]:
        """Read-only mapping of client id to account."""
        return self._state.get_all_accounts()

    @property
    def stats(self) -> ProcessingStats:
        return self._stats

    def apply(self, transaction: Transaction) -> None:
        result = self._processor.process_transaction(transaction)

        if result == ProcessingResult.SUCCESS:
            self._stats.record_success()
        elif result == ProcessingResult.IGNORED:
            self._stats.record_ignored()

    def consume(self, transactions: Iterable[Transaction]) -> None:
        for transaction in transactions:
            self.apply(transaction)

    def process_file(self, filepath: str) -> Mapping[int, ClientAccount]:
        """Process CSV file and return final account states."""
        logger.info(f"Processing transactions from {filepath}")

        self.consume(read_transactions(filepath))

        logger.info(
            f"Processed: {self._stats.processed}, "
            f"Ignored: {self._stats.ignored}, "
            f"Clients: {len(self.accounts)}"
        )
        return self.accounts
