"""
repositories/asset_repo.py
---------------------------
Data access layer for asset accounts (the `assetAccounts` collection).
Assets are embedded in their account document and rewritten as a whole list.
"""

from typing import Optional

from models.asset import Asset, AssetAccount
from repositories.document_repo import DocumentRepository, user_namespace

COLLECTION = "assetAccounts"


class AssetAccountRepository:
    """Repository for asset accounts, scoped by user."""

    collection = COLLECTION

    def __init__(self, documents: Optional[DocumentRepository] = None):
        self.documents = documents or DocumentRepository()

    def add(self, user_id: int, account: AssetAccount) -> AssetAccount:
        account.id = self.documents.add(user_namespace(user_id), COLLECTION, account.to_document())
        return account

    def get(self, user_id: int, account_id: str) -> Optional[AssetAccount]:
        doc = self.documents.get(user_namespace(user_id), COLLECTION, account_id)
        return AssetAccount.from_document(doc) if doc else None

    def get_all(self, user_id: int) -> list[AssetAccount]:
        docs = self.documents.list(user_namespace(user_id), COLLECTION)
        return [AssetAccount.from_document(d) for d in docs]

    def replace_assets(self, user_id: int, account_id: str, assets: list[Asset]) -> bool:
        """Replace the embedded asset list of an account."""
        return self.documents.update(
            user_namespace(user_id), COLLECTION, account_id,
            {"assets": [a.to_document() for a in assets]},
        )

    def delete(self, user_id: int, account_id: str) -> bool:
        """Delete an account together with every asset it holds."""
        return self.documents.delete(user_namespace(user_id), COLLECTION, account_id)
