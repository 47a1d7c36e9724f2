"""
models/settings.py
------------------
Per-user settings singleton.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from models.cashflow import DEFAULT_CATEGORIES, INCOME


@dataclass
class Settings:
    """
    User preferences stored as a single document.

    Attributes:
        custom_income: Extra income categories on top of the defaults.
        custom_expense: Extra expense categories on top of the defaults.
        manual_rate: Manual USD->TWD override; None means use the market rate.
        last_recurring_check: When recurring templates were last materialised.
    """
    custom_income: list[str] = field(default_factory=list)
    custom_expense: list[str] = field(default_factory=list)
    manual_rate: Optional[float] = None
    last_recurring_check: Optional[datetime] = None

    def categories(self, direction: str) -> list[str]:
        """Allowed categories for 'income' or 'expense', defaults first."""
        custom = self.custom_income if direction == INCOME else self.custom_expense
        return DEFAULT_CATEGORIES[direction] + [c for c in custom if c not in DEFAULT_CATEGORIES[direction]]

    @classmethod
    def from_document(cls, doc: Optional[dict]) -> "Settings":
        if not doc:
            return cls()
        raw_rate = doc.get("manualRate")
        try:
            manual_rate = float(raw_rate) if raw_rate not in (None, "") else None
        except (TypeError, ValueError):
            manual_rate = None
        last_check = doc.get("lastRecurringCheck")
        return cls(
            custom_income=list(doc.get("customIncome") or []),
            custom_expense=list(doc.get("customExpense") or []),
            manual_rate=manual_rate,
            last_recurring_check=_parse_timestamp(last_check),
        )

    def to_document(self) -> dict:
        return {
            "customIncome": self.custom_income,
            "customExpense": self.custom_expense,
            "manualRate": self.manual_rate,
            "lastRecurringCheck": (
                self.last_recurring_check.isoformat() if self.last_recurring_check else None
            ),
        }


def _parse_timestamp(value) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None

