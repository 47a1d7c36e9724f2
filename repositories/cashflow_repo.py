"""
repositories/cashflow_repo.py
------------------------------
Data access layer for cashflow records (the `cashflowRecords` collection).
"""

from typing import Optional

from models.cashflow import CashflowRecord
from repositories.document_repo import DocumentRepository, user_namespace

COLLECTION = "cashflowRecords"


class CashflowRepository:
    """Repository for cashflow records, scoped by user."""

    collection = COLLECTION

    def __init__(self, documents: Optional[DocumentRepository] = None):
        self.documents = documents or DocumentRepository()

    def add(self, user_id: int, record: CashflowRecord) -> CashflowRecord:
        """Persist a new record and return it with its `id` populated."""
        record.id = self.documents.add(user_namespace(user_id), COLLECTION, record.to_document())
        return record

    def save(self, user_id: int, record: CashflowRecord) -> CashflowRecord:
        """Overwrite an existing record in full."""
        self.documents.set(user_namespace(user_id), COLLECTION, record.id, record.to_document())
        return record

    def get(self, user_id: int, record_id: str) -> Optional[CashflowRecord]:
        doc = self.documents.get(user_namespace(user_id), COLLECTION, record_id)
        return CashflowRecord.from_document(doc) if doc else None

    def get_all(self, user_id: int) -> list[CashflowRecord]:
        """All records, newest first."""
        docs = self.documents.list(user_namespace(user_id), COLLECTION, order_by="date", descending=True)
        return [CashflowRecord.from_document(d) for d in docs]

    def get_templates(self, user_id: int) -> list[CashflowRecord]:
        """Records flagged as monthly recurring templates."""
        return [r for r in self.get_all(user_id) if r.is_recurring and r.recurrence_day]

    def delete(self, user_id: int, record_id: str) -> bool:
        return self.documents.delete(user_namespace(user_id), COLLECTION, record_id)
