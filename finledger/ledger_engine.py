from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

import structlog

from finledger.models import (
    Budget,
    Envelope,
    Transaction,
    TransactionType,
    Wallet,
    coerce_amount,
)

logger = structlog.get_logger(__name__)

SUPPORTED_MULTIPLIERS = {1, -1}


@dataclass(frozen=True)
class UnresolvedReference:
    transaction_id: str
    field: str
    reference_id: Optional[str]


@dataclass(frozen=True)
class ImpactResult:
    wallets: Tuple[Wallet, ...]
    budgets: Tuple[Budget, ...]
    envelopes: Tuple[Envelope, ...] = ()
    unresolved: Tuple[UnresolvedReference, ...] = ()


def apply_impact(
    transaction: Transaction,
    multiplier: int,
    wallets: Iterable[Wallet],
    budgets: Iterable[Budget],
    envelopes: Iterable[Envelope] = (),
) -> ImpactResult:
    """Return copies of the collections with the transaction's effect applied.

    A multiplier of 1 applies the transaction, -1 reverses it. References that
    match no entity leave the collections untouched and are reported in
    ``unresolved``.
    """
    if multiplier not in SUPPORTED_MULTIPLIERS:
        raise ValueError("multiplier must be 1 or -1.")

    wallet_list = list(wallets)
    budget_list = list(budgets)
    envelope_list = list(envelopes)
    unresolved: List[UnresolvedReference] = []
    delta = coerce_amount(transaction.amount) * multiplier
    txn_type = transaction.type.strip().upper()

    if txn_type == TransactionType.EXPENSE:
        _adjust_wallet(wallet_list, transaction, "wallet_id", -delta, unresolved)
        if transaction.budget_id:
            if not _adjust_budget(budget_list, transaction.budget_id, delta):
                unresolved.append(
                    UnresolvedReference(transaction.id, "budget_id", transaction.budget_id)
                )
    elif txn_type == TransactionType.INCOME:
        _adjust_wallet(wallet_list, transaction, "wallet_id", delta, unresolved)
    elif txn_type == TransactionType.TRANSFER:
        if transaction.to_wallet_id:
            _adjust_wallet(wallet_list, transaction, "wallet_id", -delta, unresolved)
            _credit_destination(wallet_list, envelope_list, transaction, delta, unresolved)
        else:
            # Without a destination the transfer moves nothing.
            unresolved.append(UnresolvedReference(transaction.id, "to_wallet_id", None))

    for reference in unresolved:
        logger.warning(
            "unresolved_reference",
            transaction_id=reference.transaction_id,
            field=reference.field,
            reference_id=reference.reference_id,
            multiplier=multiplier,
        )

    return ImpactResult(
        wallets=tuple(wallet_list),
        budgets=tuple(budget_list),
        envelopes=tuple(envelope_list),
        unresolved=tuple(unresolved),
    )


def _adjust_wallet(
    wallets: List[Wallet],
    transaction: Transaction,
    field: str,
    delta: Decimal,
    unresolved: List[UnresolvedReference],
) -> None:
    wallet_id = getattr(transaction, field)
    if wallet_id:
        for index, wallet in enumerate(wallets):
            if wallet.id == wallet_id:
                wallets[index] = replace(wallet, balance=coerce_amount(wallet.balance) + delta)
                return
    unresolved.append(UnresolvedReference(transaction.id, field, wallet_id or None))


def _adjust_budget(budgets: List[Budget], budget_id: str, delta: Decimal) -> bool:
    for index, budget in enumerate(budgets):
        if budget.id == budget_id:
            budgets[index] = replace(budget, spent=coerce_amount(budget.spent) + delta)
            return True
    return False


def _credit_destination(
    wallets: List[Wallet],
    envelopes: List[Envelope],
    transaction: Transaction,
    delta: Decimal,
    unresolved: List[UnresolvedReference],
) -> None:
    destination_id = transaction.to_wallet_id
    for index, wallet in enumerate(wallets):
        if wallet.id == destination_id:
            wallets[index] = replace(wallet, balance=coerce_amount(wallet.balance) + delta)
            return
    # Envelopes share the destination id space with wallets.
    for index, envelope in enumerate(envelopes):
        if envelope.id == destination_id:
            envelopes[index] = replace(envelope, balance=coerce_amount(envelope.balance) + delta)
            return
    unresolved.append(UnresolvedReference(transaction.id, "to_wallet_id", destination_id))
