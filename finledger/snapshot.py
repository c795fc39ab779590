"""Serialize the whole ledger to a single JSON blob and back."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Literal, Tuple, Union

from pydantic import BaseModel

from finledger.models import (
    PERPETUAL,
    Budget,
    Envelope,
    Frequency,
    InterestType,
    Investment,
    PayoutFrequency,
    Transaction,
    Wallet,
)
from finledger.settings import DEFAULT_CATEGORIES, DEFAULT_CURRENCIES, AppSettings
from finledger.transaction_store import LedgerState

SNAPSHOT_VERSION = 1


class WalletRecord(BaseModel):
    id: str
    name: str
    balance: Decimal
    currency: str
    color: str = ""


class BudgetRecord(BaseModel):
    id: str
    name: str
    limit: Decimal
    spent: Decimal = Decimal("0")
    currency: str
    color: str = ""


class EnvelopeRecord(BaseModel):
    id: str
    name: str
    balance: Decimal
    goal: Decimal
    currency: str
    color: str = ""


class InvestmentRecord(BaseModel):
    id: str
    type: str
    name: str
    amount: Decimal
    currency: str
    purchase_date: date
    term_date: Union[date, Literal["perpetual"]] = PERPETUAL
    interest_rate: Decimal = Decimal("0")
    payout_frequency: str = PayoutFrequency.END_OF_TERM
    interest_type: str = InterestType.SIMPLE
    comment: str | None = None


class TransactionRecord(BaseModel):
    id: str
    type: str
    amount: Decimal
    currency: str
    date: date
    wallet_id: str | None = None
    to_wallet_id: str | None = None
    envelope_id: str | None = None
    budget_id: str | None = None
    category: str = ""
    is_auto: bool = False
    frequency: str = Frequency.NONE
    comment: str | None = None


class SettingsRecord(BaseModel):
    theme: str = "light"
    accent_color: str
    language: str = "en"
    currencies: list[str] = list(DEFAULT_CURRENCIES)
    categories: dict[str, list[str]] = {
        kind: list(values) for kind, values in DEFAULT_CATEGORIES.items()
    }


class LedgerSnapshot(BaseModel):
    version: int = SNAPSHOT_VERSION
    settings: SettingsRecord
    wallets: list[WalletRecord] = []
    budgets: list[BudgetRecord] = []
    envelopes: list[EnvelopeRecord] = []
    investments: list[InvestmentRecord] = []
    transactions: list[TransactionRecord] = []


def dump_snapshot(
    state: LedgerState,
    settings: AppSettings,
    investments: Tuple[Investment, ...] = (),
) -> str:
    snapshot = LedgerSnapshot(
        settings=SettingsRecord(
            theme=settings.theme,
            accent_color=settings.accent_color,
            language=settings.language,
            currencies=list(settings.currencies),
            categories={kind: list(values) for kind, values in settings.categories.items()},
        ),
        wallets=[WalletRecord(**vars(wallet)) for wallet in state.wallets],
        budgets=[BudgetRecord(**vars(budget)) for budget in state.budgets],
        envelopes=[EnvelopeRecord(**vars(envelope)) for envelope in state.envelopes],
        investments=[InvestmentRecord(**vars(investment)) for investment in investments],
        transactions=[TransactionRecord(**vars(txn)) for txn in state.transactions],
    )
    return snapshot.model_dump_json()


def load_snapshot(blob: str) -> tuple[LedgerState, AppSettings, Tuple[Investment, ...]]:
    snapshot = LedgerSnapshot.model_validate_json(blob)
    if snapshot.version != SNAPSHOT_VERSION:
        raise ValueError(f"Unsupported snapshot version: {snapshot.version}")

    state = LedgerState(
        wallets=tuple(Wallet(**record.model_dump()) for record in snapshot.wallets),
        budgets=tuple(Budget(**record.model_dump()) for record in snapshot.budgets),
        envelopes=tuple(Envelope(**record.model_dump()) for record in snapshot.envelopes),
        transactions=tuple(
            Transaction(**record.model_dump()) for record in snapshot.transactions
        ),
    )
    settings = AppSettings(
        theme=snapshot.settings.theme,
        accent_color=snapshot.settings.accent_color,
        language=snapshot.settings.language,
        currencies=tuple(snapshot.settings.currencies),
        categories={
            kind: tuple(values) for kind, values in snapshot.settings.categories.items()
        },
    )
    investments = tuple(
        Investment(**record.model_dump()) for record in snapshot.investments
    )
    return state, settings, investments
