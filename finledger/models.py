from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional, Union

ZERO = Decimal("0")
PERPETUAL = "perpetual"


class TransactionType:
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"
    TRANSFER = "TRANSFER"
    INVESTMENT = "INVESTMENT"
    values = {INCOME, EXPENSE, TRANSFER, INVESTMENT}

    @classmethod
    def validate(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in cls.values:
            raise ValueError("Invalid transaction type.")
        return normalized


class Frequency:
    NONE = "NONE"
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    CUSTOM_DATE = "CUSTOM_DATE"
    values = {NONE, DAILY, WEEKLY, MONTHLY, CUSTOM_DATE}

    @classmethod
    def validate(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in cls.values:
            raise ValueError("Invalid transaction frequency.")
        return normalized


class PayoutFrequency:
    SEMI_ANNUAL = "semi-annual"
    ANNUAL = "annual"
    END_OF_TERM = "end-of-term"
    values = {SEMI_ANNUAL, ANNUAL, END_OF_TERM}

    @classmethod
    def validate(cls, value: str) -> str:
        normalized = value.strip().lower().replace("_", "-")
        if normalized not in cls.values:
            raise ValueError("Invalid payout frequency.")
        return normalized


class InterestType:
    SIMPLE = "simple"
    COMPOUND = "compound"
    values = {SIMPLE, COMPOUND}

    @classmethod
    def validate(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in cls.values:
            raise ValueError("Invalid interest type.")
        return normalized


@dataclass(frozen=True)
class Wallet:
    id: str
    name: str
    balance: Decimal
    currency: str
    color: str = ""


@dataclass(frozen=True)
class Budget:
    id: str
    name: str
    limit: Decimal
    spent: Decimal = ZERO
    currency: str = "UAH"
    color: str = ""


@dataclass(frozen=True)
class Envelope:
    id: str
    name: str
    balance: Decimal
    goal: Decimal
    currency: str = "UAH"
    color: str = ""


@dataclass(frozen=True)
class Investment:
    id: str
    type: str
    name: str
    amount: Decimal
    currency: str
    purchase_date: date
    term_date: Union[date, str] = PERPETUAL
    interest_rate: Decimal = ZERO
    payout_frequency: str = PayoutFrequency.END_OF_TERM
    interest_type: str = InterestType.SIMPLE
    comment: Optional[str] = None

    @property
    def is_perpetual(self) -> bool:
        return self.term_date == PERPETUAL


@dataclass(frozen=True)
class Transaction:
    id: str
    type: str
    amount: Decimal
    currency: str
    date: date
    wallet_id: Optional[str] = None
    to_wallet_id: Optional[str] = None
    envelope_id: Optional[str] = None
    budget_id: Optional[str] = None
    category: str = ""
    is_auto: bool = False
    frequency: str = Frequency.NONE
    comment: Optional[str] = None


def coerce_amount(amount: Decimal | int | float | str) -> Decimal:
    if isinstance(amount, Decimal):
        return amount
    return Decimal(str(amount))
