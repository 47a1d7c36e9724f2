"""
repositories/settings_repo.py
------------------------------
Data access layer for the per-user settings singleton
(document `userSettings` in the `settings` collection).
"""

from datetime import datetime
from typing import Optional

from models.settings import Settings
from repositories.document_repo import DocumentRepository, user_namespace

COLLECTION = "settings"
DOCUMENT_ID = "userSettings"


class SettingsRepository:
    """Repository for user settings. A missing document reads as defaults."""

    collection = COLLECTION

    def __init__(self, documents: Optional[DocumentRepository] = None):
        self.documents = documents or DocumentRepository()

    def get(self, user_id: int) -> Settings:
        return Settings.from_document(self.documents.get(user_namespace(user_id), COLLECTION, DOCUMENT_ID))

    def merge(self, user_id: int, fields: dict) -> None:
        """Merge top-level fields into the settings document, creating it if needed."""
        self.documents.set(user_namespace(user_id), COLLECTION, DOCUMENT_ID, fields, merge=True)

    def ensure(self, user_id: int) -> Settings:
        """Create the settings document with defaults on first use."""
        namespace = user_namespace(user_id)
        doc = self.documents.get(namespace, COLLECTION, DOCUMENT_ID)
        if doc is None:
            settings = Settings()
            self.documents.set(namespace, COLLECTION, DOCUMENT_ID, settings.to_document())
            return settings
        return Settings.from_document(doc)

    def mark_recurring_checked(self, user_id: int, when: datetime) -> None:
        self.merge(user_id, {"lastRecurringCheck": when.isoformat()})
