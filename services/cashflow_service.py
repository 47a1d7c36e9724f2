"""
services/cashflow_service.py
-----------------------------
Business logic for recording income and expenses.
Validates input, resolves the linked account and persists via the repositories.
"""

from dataclasses import replace
from typing import Optional

import psycopg2

from models.cashflow import CashflowRecord
from repositories.asset_repo import AssetAccountRepository
from repositories.cashflow_repo import CashflowRepository
from repositories.settings_repo import SettingsRepository
from services.mirror_service import GitHubMirror
from services.validation import STORE_FAILURE_MESSAGE, ValidationError, validate_cashflow
from utils.logger import get_logger

logger = get_logger(__name__)


class CashflowService:
    """
    Handles all business logic related to cashflow records.

    Workflow:
        1. Receive a parsed record from the handler.
        2. Resolve the account (by ID or name).
        3. Validate against the user's category allow-list.
        4. Persist via the repository and mirror it when configured.
        5. Return a user-friendly response.
    """

    def __init__(self, repo: Optional[CashflowRepository] = None,
                 account_repo: Optional[AssetAccountRepository] = None,
                 settings_repo: Optional[SettingsRepository] = None,
                 mirror: Optional[GitHubMirror] = None):
        self.repo = repo or CashflowRepository()
        self.account_repo = account_repo or AssetAccountRepository()
        self.settings_repo = settings_repo or SettingsRepository()
        self.mirror = mirror or GitHubMirror()

    def _resolve_account(self, user_id: int, record: CashflowRecord) -> None:
        """Fill in account_id/account_name from an ID or a (case-insensitive) name."""
        if not record.account_id:
            return
        key = record.account_id.strip().lower()
        for account in self.account_repo.get_all(user_id):
            if account.id == record.account_id or account.name.strip().lower() == key:
                record.account_id = account.id
                record.account_name = account.name
                return
        raise ValidationError(f"找不到帳戶：{record.account_id}")

    def add_record(self, user_id: int, record: CashflowRecord) -> dict:
        """
        Validate and save a new record.

        Returns:
            Dict with 'success' and 'message' keys.
        """
        try:
            self._resolve_account(user_id, record)
            validate_cashflow(record, self.settings_repo.get(user_id))
            saved = self.repo.add(user_id, record)
        except ValidationError as e:
            return {"success": False, "message": f"⚠️ {e}"}
        except psycopg2.Error as e:
            logger.error(f"Failed to save cashflow record for user {user_id}: {e}")
            return {"success": False, "message": STORE_FAILURE_MESSAGE}

        self.mirror.try_append({**saved.to_document(), "id": saved.id})

        emoji = "💰" if saved.is_income() else "💸"
        label = "收入" if saved.is_income() else "支出"
        msg = (
            f"{emoji} 已新增{label}紀錄：\n"
            f"  📅 日期：{saved.date}\n"
            f"  🏷️ 類別：{saved.category}\n"
            f"  💵 金額：{saved.amount:,.0f} {saved.currency}\n"
            f"  🏦 帳戶：{saved.account_name}"
        )
        if saved.description:
            msg += f"\n  📝 說明：{saved.description}"
        if saved.is_recurring:
            msg += f"\n  🔁 每月 {saved.recurrence_day} 日自動建立"
        msg += f"\n  🔖 編號：#{saved.id}"
        return {"success": True, "message": msg, "category": saved.category}

    def update_record(self, user_id: int, record_id: str, **changes) -> dict:
        """
        Edit fields of an existing record and save it in full.

        Args:
            changes: CashflowRecord attribute names and their new values.
        """
        try:
            existing = self.repo.get(user_id, record_id)
            if existing is None:
                return {"success": False, "message": f"⚠️ 紀錄 #{record_id} 不存在。"}
            updated = replace(existing, **changes)
            if "account_id" in changes:
                self._resolve_account(user_id, updated)
            validate_cashflow(updated, self.settings_repo.get(user_id))
            self.repo.save(user_id, updated)
        except ValidationError as e:
            return {"success": False, "message": f"⚠️ {e}"}
        except TypeError as e:
            logger.warning(f"Rejected update of record {record_id}: {e}")
            return {"success": False, "message": "⚠️ 無法辨識要修改的欄位。"}
        except psycopg2.Error as e:
            logger.error(f"Failed to update record {record_id}: {e}")
            return {"success": False, "message": STORE_FAILURE_MESSAGE}
        return {"success": True, "message": f"✏️ 收支紀錄 #{record_id} 更新成功！\n{updated}"}

    def delete_record(self, user_id: int, record_id: str) -> str:
        """Delete a record by ID."""
        try:
            deleted = self.repo.delete(user_id, record_id)
        except psycopg2.Error as e:
            logger.error(f"Failed to delete record {record_id}: {e}")
            return STORE_FAILURE_MESSAGE
        if deleted:
            return f"🗑️ 紀錄 #{record_id} 已刪除。"
        return f"⚠️ 紀錄 #{record_id} 不存在。"

    def list_recent(self, user_id: int, limit: int = 15, month: Optional[str] = None) -> str:
        """
        Most recent records, optionally restricted to one month.

        Returns:
            Formatted string or "no records" message.
        """
        records = self.repo.get_all(user_id)
        if month:
            records = [r for r in records if r.month == month]
        if not records:
            return "📭 目前沒有收支紀錄。"

        lines = [f"📒 最近 {min(limit, len(records))} 筆收支紀錄：\n"]
        for r in records[:limit]:
            emoji = "🔁" if r.is_recurring else ("💰" if r.is_income() else "💸")
            desc = f" | {r.description}" if r.description else ""
            lines.append(f"  {emoji} #{r.id} {r}{desc}")
        return "\n".join(lines)
