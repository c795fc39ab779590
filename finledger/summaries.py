from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from finledger.currency_conversion import (
    LOCAL_CURRENCY,
    StaticRateProvider,
    convert_amount,
    normalize_currency,
)
from finledger.models import ZERO, Budget, Envelope, Wallet, coerce_amount

HUNDRED = Decimal("100")


def total_balance(
    wallets: Iterable[Wallet],
    basis: str = LOCAL_CURRENCY,
    rate_provider: StaticRateProvider | None = None,
) -> Decimal:
    total = ZERO
    for wallet in wallets:
        total += convert_amount(wallet.balance, wallet.currency, basis, rate_provider)
    return total


def total_in_currency(wallets: Iterable[Wallet], currency: str) -> Decimal:
    """Sum balances of wallets held in ``currency`` without converting others."""
    normalized = normalize_currency(currency)
    total = ZERO
    for wallet in wallets:
        if normalize_currency(wallet.currency) != normalized:
            continue
        total += coerce_amount(wallet.balance)
    return total


def budget_remaining(budget: Budget) -> Decimal:
    return coerce_amount(budget.limit) - coerce_amount(budget.spent)


def budget_progress(budget: Budget) -> Decimal:
    return _capped_percent(budget.spent, budget.limit)


def envelope_progress(envelope: Envelope) -> Decimal:
    return _capped_percent(envelope.balance, envelope.goal)


def _capped_percent(value: Decimal, target: Decimal) -> Decimal:
    target = coerce_amount(target)
    if target <= ZERO:
        return ZERO
    return min(HUNDRED, coerce_amount(value) / target * HUNDRED)
