import unittest

from finledger.settings import AppSettings


class AppSettingsTests(unittest.TestCase):
    def test_add_category_returns_new_record(self) -> None:
        settings = AppSettings()

        updated = settings.add_category("expense", "  Pets ")

        self.assertIn("Pets", updated.categories["expense"])
        self.assertNotIn("Pets", settings.categories["expense"])

    def test_blank_and_duplicate_entries_are_ignored(self) -> None:
        settings = AppSettings()

        self.assertIs(settings.add_category("income", "   "), settings)
        self.assertIs(settings.add_category("income", "Salary"), settings)
        self.assertIs(settings.add_currency("USD"), settings)

    def test_remove_category(self) -> None:
        updated = AppSettings().remove_category("investment", "Crypto")

        self.assertNotIn("Crypto", updated.categories["investment"])
        self.assertIs(updated.remove_category("investment", "Crypto"), updated)

    def test_currency_add_and_remove(self) -> None:
        settings = AppSettings().add_currency("GBP")

        self.assertEqual(settings.currencies[-1], "GBP")
        self.assertNotIn("GBP", settings.remove_currency("GBP").currencies)

    def test_unknown_kind_raises(self) -> None:
        with self.assertRaises(ValueError):
            AppSettings().add_category("savings", "Rainy day")


if __name__ == "__main__":
    unittest.main()
