from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Mapping

from finledger.models import coerce_amount

LOCAL_CURRENCY = "UAH"
USD = "USD"

CURRENCY_ALIASES: dict[str, str] = {
    "₴": "UAH",
    "$": "USD",
    "€": "EUR",
}

# Multipliers into the basis currency, keyed by basis.
DEFAULT_RATES: dict[str, dict[str, Decimal]] = {
    LOCAL_CURRENCY: {
        "UAH": Decimal("1"),
        "USD": Decimal("41"),
        "EUR": Decimal("44"),
    },
    USD: {
        "USD": Decimal("1"),
        "EUR": Decimal("1.08"),
    },
}

# Divisors into the basis currency, for rates with no exact decimal multiplier.
DEFAULT_DIVISORS: dict[str, dict[str, Decimal]] = {
    USD: {
        "UAH": Decimal("41"),
    },
}


@dataclass(frozen=True)
class StaticRateProvider:
    """Fixed, in-memory conversion tables.

    Each basis maps a source currency either to the multiplier that turns one
    unit of it into the basis currency, or to the divisor that does. Sources
    missing from both tables pass through 1:1. Injecting ``rates`` without
    ``divisors`` drops the default divisors.
    """

    rates: Mapping[str, Mapping[str, Decimal]] = None
    divisors: Mapping[str, Mapping[str, Decimal]] = None

    def __post_init__(self) -> None:
        if self.divisors is None:
            default_divisors = DEFAULT_DIVISORS if self.rates is None else {}
            object.__setattr__(self, "divisors", dict(default_divisors))
        else:
            object.__setattr__(self, "divisors", dict(self.divisors))
        object.__setattr__(self, "rates", dict(self.rates or DEFAULT_RATES))

    def get_rate(self, currency: str, basis: str) -> Decimal:
        table = self.rates.get(normalize_currency(basis), {})
        return table.get(normalize_currency(currency), Decimal("1"))

    def get_divisor(self, currency: str, basis: str) -> Decimal:
        table = self.divisors.get(normalize_currency(basis), {})
        return table.get(normalize_currency(currency), Decimal("1"))

    def knows(self, currency: str) -> bool:
        normalized = normalize_currency(currency)
        tables = list(self.rates.values()) + list(self.divisors.values())
        return any(normalized in table for table in tables)


def convert_amount(
    amount: Decimal | int | float | str,
    source_currency: str,
    basis: str = LOCAL_CURRENCY,
    rate_provider: StaticRateProvider | None = None,
) -> Decimal:
    """Convert an amount into the basis currency using the fixed tables.

    Unknown source currencies are returned unconverted.
    """
    provider = rate_provider or StaticRateProvider()
    coerced_amount = coerce_amount(amount)
    if normalize_currency(source_currency) == normalize_currency(basis):
        return coerced_amount
    converted = coerced_amount * provider.get_rate(source_currency, basis)
    return converted / provider.get_divisor(source_currency, basis)


def is_known_currency(currency: str, rate_provider: StaticRateProvider | None = None) -> bool:
    provider = rate_provider or StaticRateProvider()
    return provider.knows(currency)


def normalize_currency(value: str) -> str:
    stripped = value.strip()
    return CURRENCY_ALIASES.get(stripped, stripped.upper())
