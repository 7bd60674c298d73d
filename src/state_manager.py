from decimal import Decimal
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Set

from models import ClientAccount


class StateManager:
    """
    State for a single ingestion run.
    Stores client accounts, the amount recorded for each deposit/withdrawal,
    and the ids of transactions that have been disputed.
    """

    def __init__(self):
        self._accounts: Dict[int, ClientAccount] = {}
        self._amounts_by_transaction_id: Dict[int, Optional[Decimal]] = {}
        # Ids are never removed, so a resolve or chargeback can be repeated
        # against the same disputed transaction.
        self._disputed_transaction_ids: Set[int] = set()

    def get_or_create_account(self, client_id: int) -> ClientAccount:
        """Get existing account or create new one."""
        if client_id not in self._accounts:
            self._accounts[client_id] = ClientAccount(client_id=client_id)
        return self._accounts[client_id]

    def record_amount(self, transaction_id: int, amount: Optional[Decimal]) -> None:
        """Remember the amount of a deposit/withdrawal. The first record for an id wins."""
        self._amounts_by_transaction_id.setdefault(transaction_id, amount)

    def get_amount(self, transaction_id: int) -> Optional[Decimal]:
        return self._amounts_by_transaction_id.get(transaction_id)

    def mark_transaction_disputed(self, transaction_id: int) -> None:
        self._disputed_transaction_ids.add(transaction_id)

    def is_transaction_disputed(self, transaction_id: int) -> bool:
        return transaction_id in self._disputed_transaction_ids

    def get_all_accounts(self) -> Mapping[int, ClientAccount]:
        """Return a read-only view of all accounts (for final output)."""
        return MappingProxyType(self._accounts)
