from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Mapping, Tuple

ACCENT_COLORS = ("#9bd7fe", "#feb0ec", "#ffeba4", "#dae5a5", "#a3ebbe")
CATEGORY_KINDS = ("income", "expense", "investment")

DEFAULT_CATEGORIES: dict[str, Tuple[str, ...]] = {
    "income": ("Salary", "Freelance", "Gift", "Dividend", "Other"),
    "expense": ("Food", "Rent", "Transport", "Entertainment", "Health", "Shopping", "Gifts"),
    "investment": ("Stock", "Crypto", "Real Estate", "Bond"),
}
DEFAULT_CURRENCIES = ("UAH", "USD", "EUR")
DEFAULT_INVESTMENT_TYPES = (
    "USD ($)",
    "EUR (€)",
    "ОВДП України",
    "Physical Gold",
    "Deposits",
)


class Theme:
    values = {"light", "dark"}

    @classmethod
    def validate(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in cls.values:
            raise ValueError("Invalid theme.")
        return normalized


class Language:
    values = {"en", "ua"}

    @classmethod
    def validate(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in cls.values:
            raise ValueError("Invalid language.")
        return normalized


@dataclass(frozen=True)
class AppSettings:
    """User preferences. Every change returns a new record."""

    theme: str = "light"
    accent_color: str = ACCENT_COLORS[0]
    language: str = "en"
    currencies: Tuple[str, ...] = DEFAULT_CURRENCIES
    categories: Mapping[str, Tuple[str, ...]] = field(
        default_factory=lambda: dict(DEFAULT_CATEGORIES)
    )

    def add_category(self, kind: str, name: str) -> "AppSettings":
        kind = _validate_kind(kind)
        name = name.strip()
        existing = self.categories.get(kind, ())
        if not name or name in existing:
            return self
        return self._with_categories(kind, existing + (name,))

    def remove_category(self, kind: str, name: str) -> "AppSettings":
        kind = _validate_kind(kind)
        existing = self.categories.get(kind, ())
        if name not in existing:
            return self
        return self._with_categories(kind, tuple(item for item in existing if item != name))

    def add_currency(self, code: str) -> "AppSettings":
        code = code.strip()
        if not code or code in self.currencies:
            return self
        return replace(self, currencies=self.currencies + (code,))

    def remove_currency(self, code: str) -> "AppSettings":
        if code not in self.currencies:
            return self
        return replace(self, currencies=tuple(item for item in self.currencies if item != code))

    def _with_categories(self, kind: str, values: Tuple[str, ...]) -> "AppSettings":
        categories = dict(self.categories)
        categories[kind] = values
        return replace(self, categories=categories)


def _validate_kind(kind: str) -> str:
    normalized = kind.strip().lower()
    if normalized not in CATEGORY_KINDS:
        raise ValueError("Category kind must be income, expense, or investment.")
    return normalized
