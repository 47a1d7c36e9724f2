"""
repositories/budget_repo.py
-----------------------------
Data access layer for monthly budgets (the `budgets` collection).
The store does not enforce (month, category) uniqueness; BudgetService does.
"""

from typing import Optional

from models.planning import Budget
from repositories.document_repo import DocumentRepository, user_namespace

COLLECTION = "budgets"


class BudgetRepository:
    """Repository for budget documents, scoped by user."""

    collection = COLLECTION

    def __init__(self, documents: Optional[DocumentRepository] = None):
        self.documents = documents or DocumentRepository()

    def add(self, user_id: int, budget: Budget) -> Budget:
        budget.id = self.documents.add(user_namespace(user_id), COLLECTION, budget.to_document())
        return budget

    def update_amount(self, user_id: int, budget_id: str, amount: float) -> bool:
        return self.documents.update(user_namespace(user_id), COLLECTION, budget_id, {"amount": amount})

    def get_all(self, user_id: int) -> list[Budget]:
        docs = self.documents.list(user_namespace(user_id), COLLECTION)
        return [Budget.from_document(d) for d in docs]

    def get_for_month(self, user_id: int, month: str) -> list[Budget]:
        return [b for b in self.get_all(user_id) if b.month == month]

    def find(self, user_id: int, month: str, category: str) -> Optional[Budget]:
        """The budget for a (month, category) pair, if one exists."""
        return next(
            (b for b in self.get_for_month(user_id, month) if b.category == category),
            None,
        )

    def delete(self, user_id: int, budget_id: str) -> bool:
        return self.documents.delete(user_namespace(user_id), COLLECTION, budget_id)
