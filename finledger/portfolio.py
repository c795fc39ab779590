from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List

from finledger.currency_conversion import USD, StaticRateProvider, convert_amount
from finledger.models import ZERO, Investment, coerce_amount


@dataclass(frozen=True)
class PortfolioGroup:
    type: str
    usd_value: Decimal
    original_sum: Decimal
    display_currency: str


@dataclass(frozen=True)
class PortfolioShare:
    type: str
    usd_value: Decimal
    share: Decimal


def aggregate_by_type(
    investments: Iterable[Investment],
    rate_provider: StaticRateProvider | None = None,
) -> List[PortfolioGroup]:
    """Group investments by type with a USD-comparable value per group.

    Groups keep first-seen order. The display currency is the currency of the
    last investment seen for the type.
    """
    usd_values: Dict[str, Decimal] = {}
    original_sums: Dict[str, Decimal] = {}
    display_currencies: Dict[str, str] = {}
    for investment in investments:
        amount = coerce_amount(investment.amount)
        usd_value = convert_amount(amount, investment.currency, USD, rate_provider)
        usd_values[investment.type] = usd_values.get(investment.type, ZERO) + usd_value
        original_sums[investment.type] = original_sums.get(investment.type, ZERO) + amount
        display_currencies[investment.type] = investment.currency

    return [
        PortfolioGroup(
            type=type_name,
            usd_value=usd_values[type_name],
            original_sum=original_sums[type_name],
            display_currency=display_currencies[type_name],
        )
        for type_name in usd_values
    ]


def portfolio_shares(groups: Iterable[PortfolioGroup]) -> List[PortfolioShare]:
    group_list = list(groups)
    total = sum((group.usd_value for group in group_list), ZERO)
    return [
        PortfolioShare(
            type=group.type,
            usd_value=group.usd_value,
            share=group.usd_value / total if total else ZERO,
        )
        for group in group_list
    ]


def investments_of_type(investments: Iterable[Investment], type_name: str) -> List[Investment]:
    return [investment for investment in investments if investment.type == type_name]
