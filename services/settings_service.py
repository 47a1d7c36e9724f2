"""
services/settings_service.py
-----------------------------
Business logic for user settings: custom categories and the manual
exchange-rate override.
"""

from typing import Optional

import psycopg2
from telegram.helpers import escape_markdown

from models.cashflow import DEFAULT_CATEGORIES, EXPENSE, INCOME
from repositories.settings_repo import SettingsRepository
from services.rate_service import ExchangeRateService, exchange_rates
from services.validation import STORE_FAILURE_MESSAGE
from utils.logger import get_logger

logger = get_logger(__name__)

_FIELD_BY_DIRECTION = {INCOME: "customIncome", EXPENSE: "customExpense"}


class SettingsService:
    """Manages per-user categories and the exchange rate override."""

    def __init__(self, repo: Optional[SettingsRepository] = None,
                 rates: Optional[ExchangeRateService] = None):
        self.repo = repo or SettingsRepository()
        self.rates = rates or exchange_rates

    def add_category(self, user_id: int, direction: str, category: str) -> str:
        """Add a custom income/expense category. Duplicates are rejected."""
        category = category.strip()
        if direction not in _FIELD_BY_DIRECTION or not category:
            return "⚠️ 請指定類型（income/expense）與類別名稱。"

        settings = self.repo.get(user_id)
        if category in settings.categories(direction):
            return "⚠️ 類別已存在。"

        current = settings.custom_income if direction == INCOME else settings.custom_expense
        try:
            self.repo.merge(user_id, {_FIELD_BY_DIRECTION[direction]: current + [category]})
        except psycopg2.Error as e:
            logger.error(f"Failed to add category for user {user_id}: {e}")
            return STORE_FAILURE_MESSAGE
        logger.info(f"User {user_id} added {direction} category '{category}'")
        return f"✅ 類別「{category}」新增成功！"

    def remove_category(self, user_id: int, direction: str, category: str) -> str:
        """Remove a custom category. Default categories cannot be removed."""
        if direction not in _FIELD_BY_DIRECTION:
            return "⚠️ 請指定類型（income/expense）。"
        if category in DEFAULT_CATEGORIES[direction]:
            return f"⚠️ 「{category}」是預設類別，無法移除。"

        settings = self.repo.get(user_id)
        current = settings.custom_income if direction == INCOME else settings.custom_expense
        if category not in current:
            return f"⚠️ 找不到類別「{category}」。"
        try:
            self.repo.merge(user_id, {_FIELD_BY_DIRECTION[direction]: [c for c in current if c != category]})
        except psycopg2.Error as e:
            logger.error(f"Failed to remove category for user {user_id}: {e}")
            return STORE_FAILURE_MESSAGE
        return f"🗑️ 類別「{category}」已移除。"

    def list_categories(self, user_id: int) -> str:
        settings = self.repo.get(user_id)
        return (
            "🏷️ *收入類別：*\n" + "、".join(map(escape_markdown, settings.categories(INCOME))) +
            "\n\n🏷️ *支出類別：*\n" + "、".join(map(escape_markdown, settings.categories(EXPENSE)))
        )

    def set_manual_rate(self, user_id: int, rate: Optional[float]) -> str:
        """
        Set the USD->TWD override, or clear it with None.

        Returns:
            User-facing confirmation or error message.
        """
        if rate is not None and not rate > 0:
            return "⚠️ 匯率必須大於 0。"
        try:
            self.repo.merge(user_id, {"manualRate": rate})
        except psycopg2.Error as e:
            logger.error(f"Failed to set manual rate for user {user_id}: {e}")
            return STORE_FAILURE_MESSAGE
        if rate is None:
            return f"💱 手動匯率已清除，將使用系統匯率（目前 {self.rates.market_rate():.2f}）。"
        return f"💱 匯率已更新為 {rate:.2f}"

    def rate_status(self, user_id: int) -> str:
        settings = self.repo.get(user_id)
        rate = self.rates.effective_rate(settings)
        source = "手動設定" if settings.manual_rate else "系統匯率"
        return f"💱 目前 USD/TWD 匯率：{rate:.2f}（{source}）"
