import unittest
from decimal import Decimal

from finledger.models import Budget, Envelope, Wallet
from finledger.summaries import (
    budget_progress,
    budget_remaining,
    envelope_progress,
    total_balance,
    total_in_currency,
)


class SummaryTests(unittest.TestCase):
    def setUp(self) -> None:
        self.wallets = [
            Wallet(id="1", name="Card 1", balance=Decimal("50000"), currency="UAH"),
            Wallet(id="2", name="Card 2", balance=Decimal("1200"), currency="USD"),
            Wallet(id="3", name="Euro", balance=Decimal("10"), currency="€"),
        ]

    def test_total_balance_in_local_basis(self) -> None:
        self.assertEqual(total_balance(self.wallets), Decimal("99640"))

    def test_total_in_currency_skips_other_currencies(self) -> None:
        self.assertEqual(total_in_currency(self.wallets, "$"), Decimal("1200"))

    def test_budget_progress_and_remaining(self) -> None:
        budget = Budget(id="b1", name="Food", limit=Decimal("8000"), spent=Decimal("4500"))
        over = Budget(id="b2", name="Fun", limit=Decimal("100"), spent=Decimal("250"))

        self.assertEqual(budget_remaining(budget), Decimal("3500"))
        self.assertEqual(budget_progress(budget), Decimal("56.25"))
        self.assertEqual(budget_progress(over), Decimal("100"))

    def test_envelope_progress_guards_zero_goal(self) -> None:
        envelope = Envelope(id="e1", name="Car", balance=Decimal("15000"), goal=Decimal("30000"))
        no_goal = Envelope(id="e2", name="Misc", balance=Decimal("5"), goal=Decimal("0"))

        self.assertEqual(envelope_progress(envelope), Decimal("50"))
        self.assertEqual(envelope_progress(no_goal), Decimal("0"))


if __name__ == "__main__":
    unittest.main()
