"""
repositories/goal_repo.py
--------------------------
Data access layer for savings goals (the `goals` collection).
"""

from typing import Optional

from models.planning import Goal
from repositories.document_repo import DocumentRepository, user_namespace

COLLECTION = "goals"


class GoalRepository:
    """Repository for goal documents, scoped by user."""

    collection = COLLECTION

    def __init__(self, documents: Optional[DocumentRepository] = None):
        self.documents = documents or DocumentRepository()

    def add(self, user_id: int, goal: Goal) -> Goal:
        goal.id = self.documents.add(user_namespace(user_id), COLLECTION, goal.to_document())
        return goal

    def save(self, user_id: int, goal: Goal) -> Goal:
        self.documents.set(user_namespace(user_id), COLLECTION, goal.id, goal.to_document())
        return goal

    def get(self, user_id: int, goal_id: str) -> Optional[Goal]:
        doc = self.documents.get(user_namespace(user_id), COLLECTION, goal_id)
        return Goal.from_document(doc) if doc else None

    def get_all(self, user_id: int) -> list[Goal]:
        """All goals, nearest target date first."""
        docs = self.documents.list(user_namespace(user_id), COLLECTION, order_by="targetDate")
        return [Goal.from_document(d) for d in docs]

    def delete(self, user_id: int, goal_id: str) -> bool:
        return self.documents.delete(user_namespace(user_id), COLLECTION, goal_id)
