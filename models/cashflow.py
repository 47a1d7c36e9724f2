"""
models/cashflow.py
------------------
Domain model for cashflow records (income and expenses), including
the recurring templates they are generated from.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from models.asset import as_number

INCOME = "income"
EXPENSE = "expense"

DEFAULT_CATEGORIES: dict[str, list[str]] = {
    INCOME: ["薪水", "獎金", "投資收益", "副業收入", "其他收入"],
    EXPENSE: ["餐飲", "交通", "居住", "娛樂", "教育", "醫療", "購物", "通訊", "保險", "其他支出"],
}


@dataclass
class CashflowRecord:
    """
    Represents a single income or expense entry.

    Attributes:
        type: Either 'income' or 'expense'.
        category: Category name, checked against the allow-list on write.
        amount: Positive amount in ``currency``.
        date: ISO calendar day (YYYY-MM-DD).
        currency: 'TWD' or 'USD'.
        description: Optional free-text note.
        account_id: ID of the linked asset account.
        account_name: Display name of the linked account at write time.
        is_recurring: True when this record is a monthly template.
        recurrence_day: Day of month (1-31) a template fires on.
        id: Document ID (None for records not yet stored).
    """
    type: str  # 'income' | 'expense'
    category: str
    amount: float
    date: str = field(default_factory=lambda: date.today().isoformat())
    currency: str = "TWD"
    description: str = ""
    account_id: str = ""
    account_name: str = ""
    is_recurring: bool = False
    recurrence_day: Optional[int] = None
    id: Optional[str] = None

    @property
    def month(self) -> str:
        """The YYYY-MM key of the record's date."""
        return self.date[:7]

    def is_expense(self) -> bool:
        return self.type == EXPENSE

    def is_income(self) -> bool:
        return self.type == INCOME

    @classmethod
    def from_document(cls, doc: dict) -> "CashflowRecord":
        day = doc.get("recurrenceDay")
        try:
            recurrence_day = int(day) if day not in (None, "") else None
        except (TypeError, ValueError):
            recurrence_day = None
        return cls(
            id=doc.get("id"),
            type=doc.get("type", EXPENSE),
            category=doc.get("category", ""),
            amount=as_number(doc.get("amount")),
            date=str(doc.get("date", "")),
            currency=doc.get("currency", "TWD"),
            description=doc.get("description") or "",
            account_id=doc.get("accountId", ""),
            account_name=doc.get("accountName", ""),
            is_recurring=bool(doc.get("isRecurring", False)),
            recurrence_day=recurrence_day,
        )

    def to_document(self) -> dict:
        doc = {
            "date": self.date,
            "type": self.type,
            "category": self.category,
            "amount": self.amount,
            "currency": self.currency,
            "description": self.description,
            "accountId": self.account_id,
            "accountName": self.account_name,
            "isRecurring": self.is_recurring,
        }
        if self.is_recurring and self.recurrence_day is not None:
            doc["recurrenceDay"] = self.recurrence_day
        return doc

    def __str__(self) -> str:
        sign = "-" if self.is_expense() else "+"
        return f"{sign}{self.amount:,.0f} {self.currency} | {self.category} | {self.date}"
