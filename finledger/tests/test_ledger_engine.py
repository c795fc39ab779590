import unittest
from datetime import date
from decimal import Decimal

from finledger.ledger_engine import UnresolvedReference, apply_impact
from finledger.models import Budget, Envelope, Transaction, TransactionType, Wallet


def make_wallets():
    return (
        Wallet(id="1", name="Card 1", balance=Decimal("50000"), currency="UAH"),
        Wallet(id="2", name="Card 2", balance=Decimal("1200"), currency="USD"),
    )


def make_budgets():
    return (
        Budget(id="b1", name="Food", limit=Decimal("8000"), spent=Decimal("4500")),
        Budget(id="b2", name="Fun", limit=Decimal("3000"), spent=Decimal("1200")),
    )


def make_envelopes():
    return (
        Envelope(id="e1", name="New Car", balance=Decimal("15000"), goal=Decimal("35000")),
    )


class LedgerEngineTests(unittest.TestCase):
    def test_expense_debits_wallet_and_charges_budget(self) -> None:
        txn = Transaction(
            id="t1",
            type=TransactionType.EXPENSE,
            amount=Decimal("1200"),
            currency="UAH",
            date=date(2024, 3, 23),
            wallet_id="1",
            budget_id="b1",
        )

        result = apply_impact(txn, 1, make_wallets(), make_budgets())

        self.assertEqual(result.wallets[0].balance, Decimal("48800"))
        self.assertEqual(result.budgets[0].spent, Decimal("5700"))
        self.assertEqual(result.budgets[1].spent, Decimal("1200"))
        self.assertEqual(result.unresolved, ())

    def test_income_credits_wallet_and_leaves_budgets(self) -> None:
        txn = Transaction(
            id="t2",
            type=TransactionType.INCOME,
            amount=Decimal("400"),
            currency="USD",
            date=date(2024, 3, 24),
            wallet_id="2",
            budget_id="b1",
        )

        result = apply_impact(txn, 1, make_wallets(), make_budgets())

        self.assertEqual(result.wallets[1].balance, Decimal("1600"))
        self.assertEqual(result.budgets, make_budgets())

    def test_transfer_moves_amount_between_wallets(self) -> None:
        txn = Transaction(
            id="t5",
            type=TransactionType.TRANSFER,
            amount=Decimal("100"),
            currency="USD",
            date=date(2024, 3, 21),
            wallet_id="2",
            to_wallet_id="1",
        )
        before = make_wallets()

        result = apply_impact(txn, 1, before, make_budgets())

        self.assertEqual(result.wallets[1].balance, Decimal("1100"))
        self.assertEqual(result.wallets[0].balance, Decimal("50100"))
        self.assertEqual(
            sum(wallet.balance for wallet in result.wallets),
            sum(wallet.balance for wallet in before),
        )

    def test_transfer_to_envelope_credits_envelope(self) -> None:
        txn = Transaction(
            id="t7",
            type=TransactionType.TRANSFER,
            amount=Decimal("500"),
            currency="USD",
            date=date(2024, 3, 26),
            wallet_id="2",
            to_wallet_id="e1",
        )

        result = apply_impact(txn, 1, make_wallets(), make_budgets(), make_envelopes())

        self.assertEqual(result.wallets[1].balance, Decimal("700"))
        self.assertEqual(result.envelopes[0].balance, Decimal("15500"))
        self.assertEqual(result.unresolved, ())

    def test_investment_type_is_a_no_op(self) -> None:
        txn = Transaction(
            id="t8",
            type=TransactionType.INVESTMENT,
            amount=Decimal("1000"),
            currency="UAH",
            date=date(2024, 3, 27),
            wallet_id="1",
        )

        result = apply_impact(txn, 1, make_wallets(), make_budgets(), make_envelopes())

        self.assertEqual(result.wallets, make_wallets())
        self.assertEqual(result.budgets, make_budgets())
        self.assertEqual(result.envelopes, make_envelopes())

    def test_apply_then_reverse_restores_every_entity(self) -> None:
        transactions = [
            Transaction(
                id="a",
                type=TransactionType.EXPENSE,
                amount=Decimal("0.1"),
                currency="UAH",
                date=date(2024, 1, 1),
                wallet_id="1",
                budget_id="b2",
            ),
            Transaction(
                id="b",
                type=TransactionType.TRANSFER,
                amount=Decimal("33.33"),
                currency="UAH",
                date=date(2024, 1, 2),
                wallet_id="1",
                to_wallet_id="e1",
            ),
            Transaction(
                id="c",
                type=TransactionType.INCOME,
                amount=Decimal("0.7"),
                currency="USD",
                date=date(2024, 1, 3),
                wallet_id="2",
            ),
        ]
        for txn in transactions:
            applied = apply_impact(txn, 1, make_wallets(), make_budgets(), make_envelopes())
            reversed_result = apply_impact(
                txn, -1, applied.wallets, applied.budgets, applied.envelopes
            )

            self.assertEqual(reversed_result.wallets, make_wallets())
            self.assertEqual(reversed_result.budgets, make_budgets())
            self.assertEqual(reversed_result.envelopes, make_envelopes())

    def test_missing_references_are_reported_not_raised(self) -> None:
        txn = Transaction(
            id="t9",
            type=TransactionType.EXPENSE,
            amount=Decimal("10"),
            currency="UAH",
            date=date(2024, 3, 28),
            wallet_id="missing",
            budget_id="nope",
        )

        result = apply_impact(txn, 1, make_wallets(), make_budgets())

        self.assertEqual(result.wallets, make_wallets())
        self.assertEqual(result.budgets, make_budgets())
        self.assertEqual(
            result.unresolved,
            (
                UnresolvedReference("t9", "wallet_id", "missing"),
                UnresolvedReference("t9", "budget_id", "nope"),
            ),
        )

    def test_transfer_without_destination_leaves_source_untouched(self) -> None:
        for destination in ("", None):
            txn = Transaction(
                id="t10",
                type=TransactionType.TRANSFER,
                amount=Decimal("10"),
                currency="UAH",
                date=date(2024, 3, 28),
                wallet_id="1",
                to_wallet_id=destination,
            )

            result = apply_impact(txn, 1, make_wallets(), make_budgets())

            self.assertEqual(result.wallets, make_wallets())
            self.assertEqual(
                result.unresolved, (UnresolvedReference("t10", "to_wallet_id", None),)
            )

    def test_transfer_to_unknown_destination_still_debits_source(self) -> None:
        txn = Transaction(
            id="t13",
            type=TransactionType.TRANSFER,
            amount=Decimal("10"),
            currency="UAH",
            date=date(2024, 3, 28),
            wallet_id="1",
            to_wallet_id="nowhere",
        )

        result = apply_impact(txn, 1, make_wallets(), make_budgets())

        self.assertEqual(result.wallets[0].balance, Decimal("49990"))
        self.assertEqual(
            result.unresolved, (UnresolvedReference("t13", "to_wallet_id", "nowhere"),)
        )

    def test_inputs_are_not_mutated(self) -> None:
        wallets = make_wallets()
        txn = Transaction(
            id="t11",
            type=TransactionType.INCOME,
            amount=Decimal("5"),
            currency="UAH",
            date=date(2024, 3, 28),
            wallet_id="1",
        )

        apply_impact(txn, 1, wallets, make_budgets())

        self.assertEqual(wallets[0].balance, Decimal("50000"))

    def test_rejects_unsupported_multiplier(self) -> None:
        txn = Transaction(
            id="t12",
            type=TransactionType.INCOME,
            amount=Decimal("5"),
            currency="UAH",
            date=date(2024, 3, 28),
            wallet_id="1",
        )

        with self.assertRaises(ValueError):
            apply_impact(txn, 2, make_wallets(), make_budgets())


if __name__ == "__main__":
    unittest.main()
