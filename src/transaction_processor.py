import logging
from decimal import Decimal
from typing import Optional

from models import Transaction, TransactionType, ClientAccount, ProcessingResult
from state_manager import StateManager

logger = logging.getLogger(__name__)


class TransactionProcessor:
    """
    Applies transactions against state, one at a time, in arrival order.

    Every transaction first resolves the amount it operates on. Deposits and
    withdrawals carry their own amount; disputes, resolves and chargebacks
    look up the amount of the deposit/withdrawal they reference. A transaction
    whose amount cannot be resolved is ignored.
    """

    def __init__(self, state: StateManager):
        self._state = state

    def process_transaction(self, transaction: Transaction) -> ProcessingResult:
        """
        Process a single transaction.

        Returns:
            SUCCESS: the balance effect was applied
            IGNORED: the referenced transaction is unknown or not disputed
        """
        account = self._state.get_or_create_account(transaction.client_id)

        amount = self._resolve_amount(transaction)
        if amount is None:
            logger.warning(
                f"{transaction.transaction_type.value.capitalize()} tx {transaction.transaction_id} "
                f"for client {transaction.client_id}: no amount to apply, ignoring"
            )
            return ProcessingResult.IGNORED

        self._apply_effect(account, transaction.transaction_type, amount)
        return ProcessingResult.SUCCESS

    def _resolve_amount(self, transaction: Transaction) -> Optional[Decimal]:
        transaction_id = transaction.transaction_id

        match transaction.transaction_type:
            case TransactionType.DEPOSIT | TransactionType.WITHDRAWAL:
                self._state.record_amount(transaction_id, transaction.amount)
                return transaction.amount
            case TransactionType.DISPUTE:
                # Marked even when the referenced transaction is unknown.
                self._state.mark_transaction_disputed(transaction_id)
                return self._state.get_amount(transaction_id)
            case TransactionType.RESOLVE | TransactionType.CHARGEBACK:
                if not self._state.is_transaction_disputed(transaction_id):
                    logger.debug(f"Tx {transaction_id} is not disputed")
                    return None
                return self._state.get_amount(transaction_id)

    @staticmethod
    def _apply_effect(account: ClientAccount, transaction_type: TransactionType, amount: Decimal) -> None:
        match transaction_type:
            case TransactionType.DEPOSIT:
                account.credit(amount)
            case TransactionType.WITHDRAWAL:
                account.debit(amount)
            case TransactionType.DISPUTE:
                account.hold(amount)
            case TransactionType.RESOLVE:
                account.release_hold(amount)
            case TransactionType.CHARGEBACK:
                account.charge_back(amount)
