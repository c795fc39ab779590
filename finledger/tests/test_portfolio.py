import unittest
from datetime import date
from decimal import Decimal

from finledger.models import Investment
from finledger.portfolio import (
    PortfolioGroup,
    aggregate_by_type,
    investments_of_type,
    portfolio_shares,
)


def investment(inv_id: str, type_name: str, amount: str, currency: str) -> Investment:
    return Investment(
        id=inv_id,
        type=type_name,
        name=f"Position {inv_id}",
        amount=Decimal(amount),
        currency=currency,
        purchase_date=date(2024, 1, 1),
    )


class PortfolioTests(unittest.TestCase):
    def test_groups_follow_first_seen_order_with_usd_values(self) -> None:
        investments = [
            investment("1", "Bonds", "41000", "UAH"),
            investment("2", "Gold", "2450", "USD"),
            investment("3", "Bonds", "100", "EUR"),
        ]

        groups = aggregate_by_type(investments)

        self.assertEqual([group.type for group in groups], ["Bonds", "Gold"])
        self.assertEqual(groups[0].usd_value, Decimal("1108"))
        self.assertEqual(groups[0].original_sum, Decimal("41100"))
        self.assertEqual(groups[0].display_currency, "EUR")
        self.assertEqual(
            groups[1],
            PortfolioGroup(
                type="Gold",
                usd_value=Decimal("2450"),
                original_sum=Decimal("2450"),
                display_currency="USD",
            ),
        )

    def test_original_sum_is_conserved_for_single_currency(self) -> None:
        investments = [
            investment("1", "A", "10.5", "USD"),
            investment("2", "B", "20", "USD"),
            investment("3", "A", "30.25", "USD"),
        ]

        groups = aggregate_by_type(investments)

        self.assertEqual(
            sum(group.original_sum for group in groups),
            sum(item.amount for item in investments),
        )

    def test_unknown_currency_counts_one_to_one(self) -> None:
        groups = aggregate_by_type([investment("1", "Misc", "50", "GBP")])

        self.assertEqual(groups[0].usd_value, Decimal("50"))

    def test_shares_split_total_usd_value(self) -> None:
        groups = aggregate_by_type(
            [investment("1", "A", "300", "USD"), investment("2", "B", "100", "USD")]
        )

        shares = portfolio_shares(groups)

        self.assertEqual([share.share for share in shares], [Decimal("0.75"), Decimal("0.25")])
        self.assertEqual(portfolio_shares([]), [])

    def test_investments_of_type_filters(self) -> None:
        investments = [investment("1", "A", "1", "USD"), investment("2", "B", "1", "USD")]

        self.assertEqual([item.id for item in investments_of_type(investments, "B")], ["2"])


if __name__ == "__main__":
    unittest.main()
