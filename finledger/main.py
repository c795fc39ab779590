import os
import threading
from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Literal, Union
from uuid import uuid4

import structlog
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from finledger.currency_conversion import LOCAL_CURRENCY, USD, normalize_currency
from finledger.ledger_engine import UnresolvedReference
from finledger.logging_config import configure_logging
from finledger.models import (
    PERPETUAL,
    Budget,
    Envelope,
    Frequency,
    InterestType,
    Investment,
    PayoutFrequency,
    Transaction,
    TransactionType,
    Wallet,
)
from finledger.payout_projection import DEFAULT_PAYOUT_LIMIT, project_payouts
from finledger.portfolio import aggregate_by_type, investments_of_type, portfolio_shares
from finledger.settings import AppSettings, Language, Theme
from finledger.snapshot import dump_snapshot, load_snapshot
from finledger.storage import init_storage, load_blob, save_blob
from finledger.summaries import (
    budget_progress,
    budget_remaining,
    envelope_progress,
    total_balance,
    total_in_currency,
)
from finledger.transaction_store import (
    LedgerState,
    LedgerUpdate,
    create_transaction as store_create_transaction,
    delete_transaction as store_delete_transaction,
    filter_by_type,
    find_transaction,
    transactions_for_envelope,
    transactions_for_wallet,
    update_transaction as store_update_transaction,
)

configure_logging(os.getenv("LOG_LEVEL", "INFO"))
logger = structlog.get_logger(__name__)

app = FastAPI()

frontend_origin = os.getenv("FRONTEND_ORIGIN", "http://localhost:3000")
app.add_middleware(
    CORSMiddleware,
    allow_origins=[frontend_origin],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

database_url = os.getenv("DATABASE_URL", "sqlite:///./finledger.db")
connect_args = {}
if database_url.startswith("sqlite"):
    connect_args = {"check_same_thread": False}

engine = create_engine(database_url, connect_args=connect_args)


class LedgerStore:
    """Owns the current ledger snapshot and persists it after every change.

    Mutating routes hold ``lock`` from reading the state until the commit.
    """

    def __init__(self, engine: Engine | None = None) -> None:
        self.engine = engine
        self.state = LedgerState()
        self.settings = AppSettings()
        self.investments: tuple[Investment, ...] = ()
        self.lock = threading.Lock()

    def load(self) -> None:
        if self.engine is None:
            return
        init_storage(self.engine)
        blob = load_blob(self.engine)
        if blob is None:
            return
        self.state, self.settings, self.investments = load_snapshot(blob)
        logger.info(
            "snapshot_loaded",
            wallets=len(self.state.wallets),
            transactions=len(self.state.transactions),
        )

    def commit(
        self,
        state: LedgerState | None = None,
        settings: AppSettings | None = None,
        investments: tuple[Investment, ...] | None = None,
    ) -> None:
        if state is not None:
            self.state = state
        if settings is not None:
            self.settings = settings
        if investments is not None:
            self.investments = investments
        if self.engine is not None:
            save_blob(self.engine, dump_snapshot(self.state, self.settings, self.investments))


store = LedgerStore(engine)


@app.on_event("startup")
def load_state() -> None:
    store.load()


class WalletPayload(BaseModel):
    name: str
    balance: Decimal = Decimal("0")
    currency: str = LOCAL_CURRENCY
    color: str = ""

    @classmethod
    def validate_payload(cls, payload: "WalletPayload") -> "WalletPayload":
        payload.name = payload.name.strip()
        if not payload.name:
            raise ValueError("Wallet name required.")
        payload.currency = normalize_currency(payload.currency)
        return payload


class WalletResponse(WalletPayload):
    id: str


class BudgetPayload(BaseModel):
    name: str
    limit: Decimal
    currency: str = LOCAL_CURRENCY
    color: str = ""

    @classmethod
    def validate_payload(cls, payload: "BudgetPayload") -> "BudgetPayload":
        payload.name = payload.name.strip()
        if not payload.name:
            raise ValueError("Budget name required.")
        if payload.limit <= 0:
            raise ValueError("Budget limit must be greater than zero.")
        payload.currency = normalize_currency(payload.currency)
        return payload


class BudgetResponse(BudgetPayload):
    id: str
    spent: Decimal
    remaining: Decimal
    progress: Decimal


class EnvelopePayload(BaseModel):
    name: str
    balance: Decimal = Decimal("0")
    goal: Decimal
    currency: str = LOCAL_CURRENCY
    color: str = ""

    @classmethod
    def validate_payload(cls, payload: "EnvelopePayload") -> "EnvelopePayload":
        payload.name = payload.name.strip()
        if not payload.name:
            raise ValueError("Envelope name required.")
        if payload.goal <= 0:
            raise ValueError("Envelope goal must be greater than zero.")
        payload.currency = normalize_currency(payload.currency)
        return payload


class EnvelopeResponse(EnvelopePayload):
    id: str
    progress: Decimal


class InvestmentPayload(BaseModel):
    type: str
    name: str
    amount: Decimal
    currency: str = LOCAL_CURRENCY
    purchase_date: date
    term_date: Union[date, Literal["perpetual"], None] = None
    interest_rate: Decimal = Decimal("0")
    payout_frequency: str = PayoutFrequency.END_OF_TERM
    interest_type: str = InterestType.SIMPLE
    comment: str | None = None

    @classmethod
    def validate_payload(cls, payload: "InvestmentPayload") -> "InvestmentPayload":
        payload.name = payload.name.strip()
        payload.type = payload.type.strip()
        if not payload.name:
            raise ValueError("Investment name required.")
        if not payload.type:
            raise ValueError("Investment type required.")
        if payload.amount <= 0:
            raise ValueError("Amount must be greater than zero.")
        if payload.interest_rate < 0:
            raise ValueError("Interest rate cannot be negative.")
        payload.currency = normalize_currency(payload.currency)
        payload.term_date = payload.term_date or PERPETUAL
        payload.payout_frequency = PayoutFrequency.validate(payload.payout_frequency)
        payload.interest_type = InterestType.validate(payload.interest_type)
        payload.comment = payload.comment.strip() if payload.comment else None
        return payload


class InvestmentResponse(InvestmentPayload):
    id: str


class PayoutEventResponse(BaseModel):
    date: date
    amount: Decimal
    name: str
    currency: str
    investment_id: str | None = None


class PortfolioGroupResponse(BaseModel):
    type: str
    usd_value: Decimal
    original_sum: Decimal
    display_currency: str
    share: Decimal


class TransactionPayload(BaseModel):
    type: str
    amount: Decimal
    currency: str = LOCAL_CURRENCY
    date: date
    wallet_id: str | None = None
    to_wallet_id: str | None = None
    envelope_id: str | None = None
    budget_id: str | None = None
    category: str = ""
    is_auto: bool = False
    frequency: str = Frequency.NONE
    comment: str | None = None

    @classmethod
    def validate_payload(cls, payload: "TransactionPayload") -> "TransactionPayload":
        payload.type = TransactionType.validate(payload.type)
        payload.frequency = Frequency.validate(payload.frequency)
        payload.currency = normalize_currency(payload.currency)
        payload.category = payload.category.strip()
        payload.comment = payload.comment.strip() if payload.comment else None
        payload.wallet_id = payload.wallet_id or None
        payload.to_wallet_id = payload.to_wallet_id or None
        payload.envelope_id = payload.envelope_id or None
        payload.budget_id = payload.budget_id or None
        if payload.amount <= 0:
            raise ValueError("Amount must be greater than zero.")
        if payload.type in {TransactionType.INCOME, TransactionType.EXPENSE, TransactionType.TRANSFER}:
            if payload.wallet_id is None:
                raise ValueError("Wallet required.")
        if payload.type == TransactionType.TRANSFER and payload.to_wallet_id is None:
            raise ValueError("Transfer destination required.")
        if payload.type != TransactionType.EXPENSE:
            payload.budget_id = None
        return payload


class TransactionResponse(TransactionPayload):
    id: str


class ReferenceWarning(BaseModel):
    transaction_id: str
    field: str
    reference_id: str | None = None


class TransactionMutationResponse(BaseModel):
    transaction: TransactionResponse | None = None
    warnings: list[ReferenceWarning] = []


class SummaryResponse(BaseModel):
    total_balance: Decimal
    total_balance_currency: str
    usd_wallets_total: Decimal
    budgets: list[BudgetResponse]
    envelopes: list[EnvelopeResponse]


class SettingsPayload(BaseModel):
    theme: str | None = None
    accent_color: str | None = None
    language: str | None = None


class SettingsResponse(BaseModel):
    theme: str
    accent_color: str
    language: str
    currencies: list[str]
    categories: dict[str, list[str]]


class NamePayload(BaseModel):
    name: str


def new_id() -> str:
    return uuid4().hex


def validated(payload_cls, payload):
    try:
        return payload_cls.validate_payload(payload)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def wallet_response(wallet: Wallet) -> WalletResponse:
    return WalletResponse(
        id=wallet.id,
        name=wallet.name,
        balance=wallet.balance,
        currency=wallet.currency,
        color=wallet.color,
    )


def budget_response(budget: Budget) -> BudgetResponse:
    return BudgetResponse(
        id=budget.id,
        name=budget.name,
        limit=budget.limit,
        spent=budget.spent,
        currency=budget.currency,
        color=budget.color,
        remaining=budget_remaining(budget),
        progress=budget_progress(budget),
    )


def envelope_response(envelope: Envelope) -> EnvelopeResponse:
    return EnvelopeResponse(
        id=envelope.id,
        name=envelope.name,
        balance=envelope.balance,
        goal=envelope.goal,
        currency=envelope.currency,
        color=envelope.color,
        progress=envelope_progress(envelope),
    )


def investment_response(investment: Investment) -> InvestmentResponse:
    return InvestmentResponse(id=investment.id, **_investment_fields(investment))


def transaction_response(txn: Transaction) -> TransactionResponse:
    return TransactionResponse(
        id=txn.id,
        type=txn.type,
        amount=txn.amount,
        currency=txn.currency,
        date=txn.date,
        wallet_id=txn.wallet_id,
        to_wallet_id=txn.to_wallet_id,
        envelope_id=txn.envelope_id,
        budget_id=txn.budget_id,
        category=txn.category,
        is_auto=txn.is_auto,
        frequency=txn.frequency,
        comment=txn.comment,
    )


def settings_response(settings: AppSettings) -> SettingsResponse:
    return SettingsResponse(
        theme=settings.theme,
        accent_color=settings.accent_color,
        language=settings.language,
        currencies=list(settings.currencies),
        categories={kind: list(values) for kind, values in settings.categories.items()},
    )


def mutation_response(
    update: LedgerUpdate, transaction: Transaction | None
) -> TransactionMutationResponse:
    return TransactionMutationResponse(
        transaction=transaction_response(transaction) if transaction else None,
        warnings=[_reference_warning(reference) for reference in update.unresolved],
    )


def _reference_warning(reference: UnresolvedReference) -> ReferenceWarning:
    return ReferenceWarning(
        transaction_id=reference.transaction_id,
        field=reference.field,
        reference_id=reference.reference_id,
    )


def _investment_fields(investment: Investment) -> dict:
    return {
        "type": investment.type,
        "name": investment.name,
        "amount": investment.amount,
        "currency": investment.currency,
        "purchase_date": investment.purchase_date,
        "term_date": investment.term_date,
        "interest_rate": investment.interest_rate,
        "payout_frequency": investment.payout_frequency,
        "interest_type": investment.interest_type,
        "comment": investment.comment,
    }


def _index_by_id(items, item_id: str, label: str) -> int:
    for index, item in enumerate(items):
        if item.id == item_id:
            return index
    raise HTTPException(status_code=404, detail=f"{label} not found.")


def _replaced(items: tuple, index: int, item) -> tuple:
    updated = list(items)
    updated[index] = item
    return tuple(updated)


def _without(items: tuple, index: int) -> tuple:
    return items[:index] + items[index + 1:]


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.get("/wallets", response_model=list[WalletResponse])
def list_wallets() -> list[WalletResponse]:
    return [wallet_response(wallet) for wallet in store.state.wallets]


@app.post("/wallets", response_model=WalletResponse)
def create_wallet(payload: WalletPayload) -> WalletResponse:
    payload = validated(WalletPayload, payload)
    wallet = Wallet(id=new_id(), **payload.model_dump())
    with store.lock:
        store.commit(state=replace(store.state, wallets=store.state.wallets + (wallet,)))
    return wallet_response(wallet)


@app.put("/wallets/{wallet_id}", response_model=WalletResponse)
def update_wallet(wallet_id: str, payload: WalletPayload) -> WalletResponse:
    payload = validated(WalletPayload, payload)
    wallet = Wallet(id=wallet_id, **payload.model_dump())
    with store.lock:
        index = _index_by_id(store.state.wallets, wallet_id, "Wallet")
        store.commit(
            state=replace(store.state, wallets=_replaced(store.state.wallets, index, wallet))
        )
    return wallet_response(wallet)


@app.delete("/wallets/{wallet_id}")
def delete_wallet(wallet_id: str) -> dict:
    with store.lock:
        index = _index_by_id(store.state.wallets, wallet_id, "Wallet")
        store.commit(state=replace(store.state, wallets=_without(store.state.wallets, index)))
    return {"status": "deleted"}


@app.get("/wallets/{wallet_id}/transactions", response_model=list[TransactionResponse])
def list_wallet_transactions(wallet_id: str) -> list[TransactionResponse]:
    _index_by_id(store.state.wallets, wallet_id, "Wallet")
    return [transaction_response(txn) for txn in transactions_for_wallet(store.state, wallet_id)]


@app.get("/budgets", response_model=list[BudgetResponse])
def list_budgets() -> list[BudgetResponse]:
    return [budget_response(budget) for budget in store.state.budgets]


@app.post("/budgets", response_model=BudgetResponse)
def create_budget(payload: BudgetPayload) -> BudgetResponse:
    payload = validated(BudgetPayload, payload)
    budget = Budget(id=new_id(), spent=Decimal("0"), **payload.model_dump())
    with store.lock:
        store.commit(state=replace(store.state, budgets=store.state.budgets + (budget,)))
    return budget_response(budget)


@app.put("/budgets/{budget_id}", response_model=BudgetResponse)
def update_budget(budget_id: str, payload: BudgetPayload) -> BudgetResponse:
    payload = validated(BudgetPayload, payload)
    with store.lock:
        index = _index_by_id(store.state.budgets, budget_id, "Budget")
        existing = store.state.budgets[index]
        budget = Budget(id=budget_id, spent=existing.spent, **payload.model_dump())
        store.commit(
            state=replace(store.state, budgets=_replaced(store.state.budgets, index, budget))
        )
    return budget_response(budget)


@app.delete("/budgets/{budget_id}")
def delete_budget(budget_id: str) -> dict:
    with store.lock:
        index = _index_by_id(store.state.budgets, budget_id, "Budget")
        store.commit(state=replace(store.state, budgets=_without(store.state.budgets, index)))
    return {"status": "deleted"}


@app.get("/envelopes", response_model=list[EnvelopeResponse])
def list_envelopes() -> list[EnvelopeResponse]:
    return [envelope_response(envelope) for envelope in store.state.envelopes]


@app.post("/envelopes", response_model=EnvelopeResponse)
def create_envelope(payload: EnvelopePayload) -> EnvelopeResponse:
    payload = validated(EnvelopePayload, payload)
    envelope = Envelope(id=new_id(), **payload.model_dump())
    with store.lock:
        store.commit(state=replace(store.state, envelopes=store.state.envelopes + (envelope,)))
    return envelope_response(envelope)


@app.put("/envelopes/{envelope_id}", response_model=EnvelopeResponse)
def update_envelope(envelope_id: str, payload: EnvelopePayload) -> EnvelopeResponse:
    payload = validated(EnvelopePayload, payload)
    envelope = Envelope(id=envelope_id, **payload.model_dump())
    with store.lock:
        index = _index_by_id(store.state.envelopes, envelope_id, "Envelope")
        store.commit(
            state=replace(store.state, envelopes=_replaced(store.state.envelopes, index, envelope))
        )
    return envelope_response(envelope)


@app.delete("/envelopes/{envelope_id}")
def delete_envelope(envelope_id: str) -> dict:
    with store.lock:
        index = _index_by_id(store.state.envelopes, envelope_id, "Envelope")
        store.commit(
            state=replace(store.state, envelopes=_without(store.state.envelopes, index))
        )
    return {"status": "deleted"}


@app.get("/envelopes/{envelope_id}/transactions", response_model=list[TransactionResponse])
def list_envelope_transactions(envelope_id: str) -> list[TransactionResponse]:
    _index_by_id(store.state.envelopes, envelope_id, "Envelope")
    return [
        transaction_response(txn) for txn in transactions_for_envelope(store.state, envelope_id)
    ]


@app.get("/investments", response_model=list[InvestmentResponse])
def list_investments(
    investment_type: str | None = Query(None, alias="type"),
) -> list[InvestmentResponse]:
    investments = store.investments
    if investment_type is not None:
        investments = investments_of_type(investments, investment_type)
    return [investment_response(investment) for investment in investments]


@app.get("/investments/payouts", response_model=list[PayoutEventResponse])
def list_investment_payouts(
    limit: int = Query(DEFAULT_PAYOUT_LIMIT, ge=1),
) -> list[PayoutEventResponse]:
    return [
        PayoutEventResponse(
            date=event.date,
            amount=event.amount,
            name=event.name,
            currency=event.currency,
            investment_id=event.investment_id,
        )
        for event in project_payouts(store.investments, limit=limit)
    ]


@app.get("/investments/portfolio", response_model=list[PortfolioGroupResponse])
def investment_portfolio() -> list[PortfolioGroupResponse]:
    groups = aggregate_by_type(store.investments)
    shares = {share.type: share.share for share in portfolio_shares(groups)}
    return [
        PortfolioGroupResponse(
            type=group.type,
            usd_value=group.usd_value,
            original_sum=group.original_sum,
            display_currency=group.display_currency,
            share=shares[group.type],
        )
        for group in groups
    ]


@app.post("/investments", response_model=InvestmentResponse)
def create_investment(payload: InvestmentPayload) -> InvestmentResponse:
    payload = validated(InvestmentPayload, payload)
    investment = Investment(id=new_id(), **payload.model_dump())
    with store.lock:
        store.commit(investments=store.investments + (investment,))
    return investment_response(investment)


@app.put("/investments/{investment_id}", response_model=InvestmentResponse)
def update_investment(investment_id: str, payload: InvestmentPayload) -> InvestmentResponse:
    payload = validated(InvestmentPayload, payload)
    investment = Investment(id=investment_id, **payload.model_dump())
    with store.lock:
        index = _index_by_id(store.investments, investment_id, "Investment")
        store.commit(investments=_replaced(store.investments, index, investment))
    return investment_response(investment)


@app.delete("/investments/{investment_id}")
def delete_investment(investment_id: str) -> dict:
    with store.lock:
        index = _index_by_id(store.investments, investment_id, "Investment")
        store.commit(investments=_without(store.investments, index))
    return {"status": "deleted"}


@app.get("/transactions", response_model=list[TransactionResponse])
def list_transactions(
    transaction_type: str | None = Query(None, alias="type"),
    limit: int | None = Query(None, ge=1),
) -> list[TransactionResponse]:
    try:
        transactions = filter_by_type(store.state, transaction_type)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if limit is not None:
        transactions = transactions[:limit]
    return [transaction_response(txn) for txn in transactions]


@app.post("/transactions", response_model=TransactionMutationResponse)
def create_transaction(payload: TransactionPayload) -> TransactionMutationResponse:
    payload = validated(TransactionPayload, payload)
    transaction = Transaction(id=new_id(), **payload.model_dump())
    with store.lock:
        update = store_create_transaction(store.state, transaction)
        store.commit(state=update.state)
    return mutation_response(update, transaction)


@app.put("/transactions/{transaction_id}", response_model=TransactionMutationResponse)
def update_transaction(
    transaction_id: str, payload: TransactionPayload
) -> TransactionMutationResponse:
    payload = validated(TransactionPayload, payload)
    transaction = Transaction(id=transaction_id, **payload.model_dump())
    with store.lock:
        existing = find_transaction(store.state, transaction_id)
        if existing is None:
            raise HTTPException(status_code=404, detail="Transaction not found.")
        update = store_update_transaction(store.state, existing, transaction)
        store.commit(state=update.state)
    return mutation_response(update, transaction)


@app.delete("/transactions/{transaction_id}", response_model=TransactionMutationResponse)
def delete_transaction(transaction_id: str) -> TransactionMutationResponse:
    with store.lock:
        update = store_delete_transaction(store.state, transaction_id)
        if update.state is not store.state:
            store.commit(state=update.state)
    return mutation_response(update, None)


@app.get("/summary", response_model=SummaryResponse)
def summary() -> SummaryResponse:
    wallets = store.state.wallets
    return SummaryResponse(
        total_balance=total_balance(wallets, LOCAL_CURRENCY),
        total_balance_currency=LOCAL_CURRENCY,
        usd_wallets_total=total_in_currency(wallets, USD),
        budgets=[budget_response(budget) for budget in store.state.budgets],
        envelopes=[envelope_response(envelope) for envelope in store.state.envelopes],
    )


@app.get("/settings", response_model=SettingsResponse)
def get_settings() -> SettingsResponse:
    return settings_response(store.settings)


@app.put("/settings", response_model=SettingsResponse)
def update_settings(payload: SettingsPayload) -> SettingsResponse:
    with store.lock:
        settings = store.settings
        try:
            if payload.theme is not None:
                settings = replace(settings, theme=Theme.validate(payload.theme))
            if payload.language is not None:
                settings = replace(settings, language=Language.validate(payload.language))
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        if payload.accent_color:
            settings = replace(settings, accent_color=payload.accent_color.strip())
        store.commit(settings=settings)
    return settings_response(settings)


@app.post("/settings/categories/{kind}", response_model=SettingsResponse)
def add_category(kind: str, payload: NamePayload) -> SettingsResponse:
    with store.lock:
        try:
            settings = store.settings.add_category(kind, payload.name)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        store.commit(settings=settings)
    return settings_response(settings)


@app.delete("/settings/categories/{kind}/{name}", response_model=SettingsResponse)
def remove_category(kind: str, name: str) -> SettingsResponse:
    with store.lock:
        try:
            settings = store.settings.remove_category(kind, name)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        store.commit(settings=settings)
    return settings_response(settings)


@app.post("/settings/currencies", response_model=SettingsResponse)
def add_currency(payload: NamePayload) -> SettingsResponse:
    with store.lock:
        settings = store.settings.add_currency(payload.name)
        store.commit(settings=settings)
    return settings_response(settings)


@app.delete("/settings/currencies/{code}", response_model=SettingsResponse)
def remove_currency(code: str) -> SettingsResponse:
    with store.lock:
        settings = store.settings.remove_currency(code)
        store.commit(settings=settings)
    return settings_response(settings)
