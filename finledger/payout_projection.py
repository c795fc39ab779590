from __future__ import annotations

from calendar import monthrange
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Optional

import structlog

from finledger.models import Investment, PayoutFrequency, coerce_amount

logger = structlog.get_logger(__name__)

PERPETUAL_WINDOW_DAYS = 365
DEFAULT_PAYOUT_LIMIT = 5
CENT = Decimal("0.01")
PERCENT = Decimal("100")
MONTHS_PER_YEAR = Decimal("12")

FREQUENCY_TO_INTERVAL_MONTHS = {
    PayoutFrequency.SEMI_ANNUAL: 6,
    PayoutFrequency.ANNUAL: 12,
}


@dataclass(frozen=True)
class PayoutEvent:
    date: date
    amount: Decimal
    name: str
    currency: str
    investment_id: Optional[str] = None


def project_payouts(
    investments: Iterable[Investment], limit: int = DEFAULT_PAYOUT_LIMIT
) -> List[PayoutEvent]:
    """Return the earliest ``limit`` payout events across all investments."""
    return project_payout_series(investments)[:limit]


def project_payout_series(investments: Iterable[Investment]) -> List[PayoutEvent]:
    events: List[PayoutEvent] = []
    for investment in investments:
        events.extend(_project_investment(investment))
    events.sort(key=lambda event: event.date)
    return events


def projection_window_end(investment: Investment) -> date:
    if investment.is_perpetual:
        return investment.purchase_date + timedelta(days=PERPETUAL_WINDOW_DAYS)
    return investment.term_date


def _project_investment(investment: Investment) -> List[PayoutEvent]:
    rate = coerce_amount(investment.interest_rate)
    if rate <= 0:
        return []

    principal = coerce_amount(investment.amount)
    start = investment.purchase_date
    end = projection_window_end(investment)
    frequency = investment.payout_frequency.strip().lower()

    # Compound investments use the simple coupon formula as well.
    if frequency == PayoutFrequency.END_OF_TERM:
        return [_event(investment, end, principal * rate / PERCENT)]

    interval = FREQUENCY_TO_INTERVAL_MONTHS.get(frequency)
    if interval is None:
        logger.warning(
            "unknown_payout_frequency",
            investment_id=investment.id,
            payout_frequency=investment.payout_frequency,
        )
        return []
    coupon = principal * rate / PERCENT * interval / MONTHS_PER_YEAR
    projections: List[PayoutEvent] = []
    month_offset = interval
    current_date = _add_months(start, month_offset, start.day)
    while current_date <= end:
        projections.append(_event(investment, current_date, coupon))
        month_offset += interval
        current_date = _add_months(start, month_offset, start.day)
    return projections


def _event(investment: Investment, when: date, amount: Decimal) -> PayoutEvent:
    return PayoutEvent(
        date=when,
        amount=amount.quantize(CENT, rounding=ROUND_HALF_UP),
        name=investment.name,
        currency=investment.currency,
        investment_id=investment.id,
    )


def _add_months(start_date: date, months: int, anchor_day: int) -> date:
    total_month = start_date.month - 1 + months
    year = start_date.year + total_month // 12
    month = total_month % 12 + 1
    last_day = monthrange(year, month)[1]
    day = min(anchor_day, last_day)
    return date(year, month, day)
