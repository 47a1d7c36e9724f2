"""
models/planning.py
------------------
Domain models for monthly budgets and savings goals.
"""

from dataclasses import dataclass
from typing import Optional

from models.asset import as_number


@dataclass
class Budget:
    """
    Allocated spending for one expense category in one month.
    At most one budget exists per (month, category).

    Attributes:
        month: Year-month key, YYYY-MM.
        category: Expense category.
        amount: Allocated amount in home currency.
        id: Document ID (None for budgets not yet stored).
    """
    month: str
    category: str
    amount: float
    id: Optional[str] = None

    @classmethod
    def from_document(cls, doc: dict) -> "Budget":
        return cls(
            id=doc.get("id"),
            month=doc.get("month", ""),
            category=doc.get("category", ""),
            amount=as_number(doc.get("amount")),
        )

    def to_document(self) -> dict:
        return {"month": self.month, "category": self.category, "amount": self.amount}


@dataclass
class Goal:
    """
    A savings goal, optionally tracked against an asset account.

    Attributes:
        name: Goal name.
        target_amount: Amount to reach, home currency.
        current_amount: Amount saved so far, home currency.
        target_date: ISO date the goal should be reached by.
        account_id: Linked asset account, empty when not linked.
        id: Document ID (None for goals not yet stored).
    """
    name: str
    target_amount: float
    current_amount: float = 0.0
    target_date: str = ""
    account_id: str = ""
    id: Optional[str] = None

    @property
    def progress(self) -> float:
        """Fraction of the target reached; 0 for a non-positive target."""
        if self.target_amount <= 0:
            return 0.0
        return self.current_amount / self.target_amount

    @classmethod
    def from_document(cls, doc: dict) -> "Goal":
        return cls(
            id=doc.get("id"),
            name=doc.get("name", ""),
            target_amount=as_number(doc.get("targetAmount")),
            current_amount=as_number(doc.get("currentAmount")),
            target_date=doc.get("targetDate", ""),
            account_id=doc.get("accountId", ""),
        )

    def to_document(self) -> dict:
        return {
            "name": self.name,
            "targetAmount": self.target_amount,
            "currentAmount": self.current_amount,
            "targetDate": self.target_date,
            "accountId": self.account_id,
        }
