"""
Property-based tests for the payments engine.

Conservation: disputes and resolves only move funds between available and
held, so a client's total always equals the signed sum of its deposits and
withdrawals minus whatever was charged back.
"""

import sys
import os
import io
from decimal import Decimal
from typing import List

from hypothesis import given, settings
from hypothesis import strategies as st

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from csv_io import write_accounts
from models import Transaction, TransactionType
from payments_engine import PaymentsEngine


amounts = st.decimals(
    min_value=Decimal("-10000"),
    max_value=Decimal("10000"),
    places=4,
    allow_nan=False,
    allow_infinity=False,
)


@st.composite
def funding_stream(draw) -> List[Transaction]:
    """Deposits and withdrawals for a few clients, each with a unique tx id."""
    count = draw(st.integers(min_value=0, max_value=40))
    transactions = []
    for transaction_id in range(1, count + 1):
        transactions.append(Transaction(
            transaction_type=draw(st.sampled_from([TransactionType.DEPOSIT, TransactionType.WITHDRAWAL])),
            client_id=draw(st.integers(min_value=1, max_value=3)),
            transaction_id=transaction_id,
            amount=draw(amounts),
        ))
    return transactions


@st.composite
def mixed_stream(draw) -> List[Transaction]:
    """A funding stream interleaved with disputes, resolves and chargebacks on arbitrary ids."""
    transactions = draw(funding_stream())
    referencing_types = st.sampled_from([TransactionType.DISPUTE, TransactionType.RESOLVE, TransactionType.CHARGEBACK])
    for _ in range(draw(st.integers(min_value=0, max_value=30))):
        position = draw(st.integers(min_value=0, max_value=len(transactions)))
        transactions.insert(position, Transaction(
            transaction_type=draw(referencing_types),
            client_id=draw(st.integers(min_value=1, max_value=3)),
            transaction_id=draw(st.integers(min_value=1, max_value=45)),
        ))
    return transactions


def signed_sum(transactions: List[Transaction], client_id: int) -> Decimal:
    total = Decimal("0")
    for transaction in transactions:
        if transaction.client_id != client_id:
            continue
        if transaction.transaction_type == TransactionType.DEPOSIT:
            total += transaction.amount
        elif transaction.transaction_type == TransactionType.WITHDRAWAL:
            total -= transaction.amount
    return total


def render(transactions: List[Transaction]) -> str:
    engine = PaymentsEngine()
    engine.consume(transactions)
    buffer = io.StringIO()
    write_accounts(engine.accounts, buffer)
    return buffer.getvalue()


class TestConservation:
    @given(funding_stream())
    @settings(max_examples=200)
    def test_total_is_signed_sum(self, transactions):
        engine = PaymentsEngine()
        engine.consume(transactions)

        for client_id, account in engine.accounts.items():
            assert account.total == signed_sum(transactions, client_id)
            assert account.held == Decimal("0")

    @given(funding_stream(), st.data())
    @settings(max_examples=200)
    def test_dispute_and_resolve_keep_total(self, transactions, data):
        engine = PaymentsEngine()
        engine.consume(transactions)
        before = {client_id: account.total for client_id, account in engine.accounts.items()}

        if transactions:
            target = data.draw(st.sampled_from(transactions))
            engine.apply(Transaction(TransactionType.DISPUTE, target.client_id, target.transaction_id))
            assert engine.accounts[target.client_id].total == before[target.client_id]
            engine.apply(Transaction(TransactionType.RESOLVE, target.client_id, target.transaction_id))

        for client_id, account in engine.accounts.items():
            assert account.total == before[client_id]
            assert account.held == Decimal("0")

    @given(mixed_stream())
    @settings(max_examples=200)
    def test_total_is_sum_minus_chargebacks(self, transactions):
        engine = PaymentsEngine()
        engine.consume(transactions)

        for client_id, account in engine.accounts.items():
            charged_back = signed_sum(transactions, client_id) - account.total
            if not account.locked:
                assert charged_back == Decimal("0")


class TestDisputeReversibility:
    @given(amounts)
    def test_dispute_then_resolve_restores_deposit(self, amount):
        engine = PaymentsEngine()
        engine.consume([
            Transaction(TransactionType.DEPOSIT, client_id=1, transaction_id=1, amount=amount),
            Transaction(TransactionType.DISPUTE, client_id=1, transaction_id=1),
            Transaction(TransactionType.RESOLVE, client_id=1, transaction_id=1),
        ])

        account = engine.accounts[1]
        assert account.available == amount
        assert account.held == Decimal("0")
        assert account.locked is False

    @given(amounts, amounts)
    def test_chargeback_leaves_other_deposit(self, first, second):
        engine = PaymentsEngine()
        engine.consume([
            Transaction(TransactionType.DEPOSIT, client_id=1, transaction_id=1, amount=first),
            Transaction(TransactionType.DEPOSIT, client_id=1, transaction_id=2, amount=second),
            Transaction(TransactionType.DISPUTE, client_id=1, transaction_id=1),
            Transaction(TransactionType.CHARGEBACK, client_id=1, transaction_id=1),
        ])

        account = engine.accounts[1]
        assert account.available == second
        assert account.held == Decimal("0")
        assert account.total == second
        assert account.locked is True


class TestUnknownReferences:
    @given(st.sampled_from([TransactionType.DISPUTE, TransactionType.RESOLVE, TransactionType.CHARGEBACK]),
           st.integers(min_value=0, max_value=2**32 - 1))
    def test_unknown_reference_changes_nothing(self, transaction_type, transaction_id):
        engine = PaymentsEngine()
        engine.apply(Transaction(transaction_type, client_id=1, transaction_id=transaction_id))

        account = engine.accounts[1]
        assert account.available == Decimal("0")
        assert account.held == Decimal("0")
        assert account.locked is False
        assert engine.stats.ignored == 1


class TestDeterminism:
    @given(mixed_stream())
    @settings(max_examples=100)
    def test_same_input_same_output(self, transactions):
        assert render(transactions) == render(transactions)
