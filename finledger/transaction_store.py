from __future__ import annotations

from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

import structlog

from finledger.ledger_engine import ImpactResult, UnresolvedReference, apply_impact
from finledger.models import Budget, Envelope, Transaction, TransactionType, Wallet

logger = structlog.get_logger(__name__)

RECENT_TRANSACTIONS_LIMIT = 10


@dataclass(frozen=True)
class LedgerState:
    """Snapshot of the entities the ledger mutates.

    Transactions are kept most-recent-first by insertion order.
    """

    wallets: Tuple[Wallet, ...] = ()
    budgets: Tuple[Budget, ...] = ()
    envelopes: Tuple[Envelope, ...] = ()
    transactions: Tuple[Transaction, ...] = ()


@dataclass(frozen=True)
class LedgerUpdate:
    state: LedgerState
    unresolved: Tuple[UnresolvedReference, ...] = ()


def create_transaction(state: LedgerState, transaction: Transaction) -> LedgerUpdate:
    impact = _apply(state, transaction, 1)
    new_state = _with_impact(state, impact, (transaction,) + state.transactions)
    logger.info("transaction_created", transaction_id=transaction.id, type=transaction.type)
    return LedgerUpdate(state=new_state, unresolved=impact.unresolved)


def update_transaction(
    state: LedgerState, old_transaction: Transaction, new_transaction: Transaction
) -> LedgerUpdate:
    position = _index_of(state.transactions, old_transaction.id)
    if position is None:
        logger.warning("transaction_update_missing", transaction_id=old_transaction.id)
        return LedgerUpdate(
            state=state,
            unresolved=(UnresolvedReference(old_transaction.id, "id", old_transaction.id),),
        )

    reversal = _apply(state, old_transaction, -1)
    reversed_state = _with_impact(state, reversal, state.transactions)
    impact = _apply(reversed_state, new_transaction, 1)

    transactions = list(state.transactions)
    transactions[position] = new_transaction
    new_state = _with_impact(reversed_state, impact, tuple(transactions))
    logger.info(
        "transaction_updated",
        transaction_id=old_transaction.id,
        new_transaction_id=new_transaction.id,
    )
    return LedgerUpdate(state=new_state, unresolved=reversal.unresolved + impact.unresolved)


def delete_transaction(state: LedgerState, transaction_id: str) -> LedgerUpdate:
    existing = find_transaction(state, transaction_id)
    if existing is None:
        return LedgerUpdate(state=state)

    impact = _apply(state, existing, -1)
    remaining = tuple(txn for txn in state.transactions if txn.id != transaction_id)
    logger.info("transaction_deleted", transaction_id=transaction_id)
    return LedgerUpdate(state=_with_impact(state, impact, remaining), unresolved=impact.unresolved)


def find_transaction(state: LedgerState, transaction_id: str) -> Optional[Transaction]:
    for txn in state.transactions:
        if txn.id == transaction_id:
            return txn
    return None


def transactions_for_wallet(state: LedgerState, wallet_id: str) -> List[Transaction]:
    return [
        txn
        for txn in state.transactions
        if txn.wallet_id == wallet_id or txn.to_wallet_id == wallet_id
    ]


def transactions_for_envelope(state: LedgerState, envelope_id: str) -> List[Transaction]:
    return [
        txn
        for txn in state.transactions
        if txn.to_wallet_id == envelope_id or txn.envelope_id == envelope_id
    ]


def filter_by_type(state: LedgerState, transaction_type: Optional[str] = None) -> List[Transaction]:
    if transaction_type is None:
        return list(state.transactions)
    normalized = TransactionType.validate(transaction_type)
    return [txn for txn in state.transactions if txn.type == normalized]


def recent_transactions(state: LedgerState, limit: int = RECENT_TRANSACTIONS_LIMIT) -> List[Transaction]:
    return list(state.transactions[:limit])


def _apply(state: LedgerState, transaction: Transaction, multiplier: int) -> ImpactResult:
    return apply_impact(
        transaction,
        multiplier,
        state.wallets,
        state.budgets,
        state.envelopes,
    )


def _with_impact(
    state: LedgerState, impact: ImpactResult, transactions: Tuple[Transaction, ...]
) -> LedgerState:
    return replace(
        state,
        wallets=impact.wallets,
        budgets=impact.budgets,
        envelopes=impact.envelopes,
        transactions=transactions,
    )


def _index_of(transactions: Tuple[Transaction, ...], transaction_id: str) -> Optional[int]:
    for index, txn in enumerate(transactions):
        if txn.id == transaction_id:
            return index
    return None
