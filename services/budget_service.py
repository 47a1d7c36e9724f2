"""
services/budget_service.py
---------------------------
Business logic for monthly budgets and tracking.
Enforces one budget per (month, category): setting an existing pair
updates it instead of adding a second document.
"""

import math
from datetime import date
from typing import Optional

import psycopg2
from telegram.helpers import escape_markdown

from models.cashflow import EXPENSE
from models.planning import Budget
from repositories.budget_repo import BudgetRepository
from repositories.cashflow_repo import CashflowRepository
from repositories.settings_repo import SettingsRepository
from services import metrics
from services.validation import STORE_FAILURE_MESSAGE, ValidationError, validate_amount, validate_month
from utils.logger import get_logger

logger = get_logger(__name__)


class BudgetService:
    """Manages monthly budgets and alerts."""

    def __init__(self, budget_repo: Optional[BudgetRepository] = None,
                 cashflow_repo: Optional[CashflowRepository] = None,
                 settings_repo: Optional[SettingsRepository] = None):
        self.budget_repo = budget_repo or BudgetRepository()
        self.cashflow_repo = cashflow_repo or CashflowRepository()
        self.settings_repo = settings_repo or SettingsRepository()

    def set_budget(self, user_id: int, category: str, amount: float,
                   month: Optional[str] = None) -> str:
        """Create or update the budget of a category for a month (default: this month)."""
        try:
            month = validate_month(month) if month else date.today().strftime("%Y-%m")
            validate_amount(amount, "預算金額")
            if category not in self.settings_repo.get(user_id).categories(EXPENSE):
                raise ValidationError(f"未知的支出類別：{category}")

            existing = self.budget_repo.find(user_id, month, category)
            if existing:
                self.budget_repo.update_amount(user_id, existing.id, amount)
                verb = "更新"
            else:
                self.budget_repo.add(user_id, Budget(month=month, category=category, amount=amount))
                verb = "新增"
        except ValidationError as e:
            return f"⚠️ {e}"
        except psycopg2.Error as e:
            logger.error(f"Failed to set budget for user {user_id}: {e}")
            return STORE_FAILURE_MESSAGE

        logger.info(f"User {user_id} budget {month}/{category} = {amount}")
        return f"✅ 預算{verb}成功！\n  📅 {month} | 🏷️ {category} | 💰 {amount:,.0f} TWD"

    def save_month(self, user_id: int, month: str, amounts: dict[str, float]) -> str:
        """
        Save a whole month at once: positive amounts are set, zero or
        negative amounts remove the category's budget.
        Every entry is checked before the first write; one bad entry
        rejects the whole save.
        """
        try:
            month = validate_month(month)
            allowed = self.settings_repo.get(user_id).categories(EXPENSE)
            for category, amount in amounts.items():
                if category not in allowed:
                    raise ValidationError(f"未知的支出類別：{category}")
                if amount is None or not math.isfinite(amount):
                    raise ValidationError(f"「{category}」預算金額必須是數字。")

            existing = {b.category: b for b in self.budget_repo.get_for_month(user_id, month)}
            for category, amount in amounts.items():
                current = existing.get(category)
                if current and amount > 0:
                    self.budget_repo.update_amount(user_id, current.id, amount)
                elif current:
                    self.budget_repo.delete(user_id, current.id)
                elif amount > 0:
                    self.budget_repo.add(user_id, Budget(month=month, category=category, amount=amount))
        except ValidationError as e:
            return f"⚠️ {e}"
        except psycopg2.Error as e:
            logger.error(f"Failed to save budgets for user {user_id}: {e}")
            return STORE_FAILURE_MESSAGE
        return f"✅ {month} 預算儲存成功！"

    def delete_budget(self, user_id: int, category: str, month: Optional[str] = None) -> str:
        """Delete the budget of a category for a month (default: this month)."""
        try:
            month = validate_month(month) if month else date.today().strftime("%Y-%m")
            budget = self.budget_repo.find(user_id, month, category)
            if budget is None:
                return f"⚠️ {month} 沒有「{category}」的預算。"
            self.budget_repo.delete(user_id, budget.id)
        except ValidationError as e:
            return f"⚠️ {e}"
        except psycopg2.Error as e:
            logger.error(f"Failed to delete budget for user {user_id}: {e}")
            return STORE_FAILURE_MESSAGE
        return f"🗑️ 已刪除 {month}「{category}」的預算。"

    def get_progress(self, user_id: int, month: Optional[str] = None) -> metrics.BudgetProgress:
        month = month or date.today().strftime("%Y-%m")
        return metrics.budget_progress(
            self.cashflow_repo.get_all(user_id),
            self.budget_repo.get_for_month(user_id, month),
            month,
        )

    def get_budget_status(self, user_id: int, month: Optional[str] = None) -> str:
        """Current spending vs budget for every budgeted or spent category."""
        try:
            month = validate_month(month) if month else None
        except ValidationError as e:
            return f"⚠️ {e}"
        progress = self.get_progress(user_id, month)
        if not progress.lines:
            return (
                "📭 這個月沒有預算或支出紀錄。\n\n"
                "💡 使用 `/budget set <類別> <金額>` 設定預算。\n"
                "例如：`/budget set 餐飲 8000`"
            )

        lines = [f"💰 *預算狀態 - {progress.month}*\n"]
        for line in progress.lines:
            pct = line.usage * 100
            if line.budget <= 0:
                icon, status = "⚪", "未設定預算"
            elif pct >= 100:
                icon, status = "🔴", "已超支！"
            elif pct >= 80:
                icon, status = "🟡", "警告"
            else:
                icon, status = "🟢", "安全"

            lines.append(
                f"{icon} *{escape_markdown(line.category)}*：{line.spent:,.0f} / {line.budget:,.0f}（{pct:.0f}%）\n"
                f"  {self._progress_bar(pct)}\n"
                f"  剩餘：{line.remaining:,.0f} | {status}"
            )

        lines.append(f"📊 總預算 {progress.total_budget:,.0f} | 總支出 {progress.total_spent:,.0f}")
        return "\n\n".join(lines)

    def check_budget_alert(self, user_id: int, category: str,
                           month: Optional[str] = None) -> str | None:
        """
        Check whether the category's spending in a month (default: this month)
        crossed 80% or 100% of its budget. Called after each expense is added,
        with the month the expense is dated in.

        Returns:
            Alert message string or None if no alert needed.
        """
        progress = self.get_progress(user_id, month)
        line = next((l for l in progress.lines if l.category == category), None)
        if line is None or line.budget <= 0:
            return None
        pct = line.usage * 100
        if pct >= 100:
            return f"🔴 「{category}」已超出預算！（{pct:.0f}%）"
        if pct >= 80:
            return f"🟡 「{category}」已使用 {pct:.0f}% 預算！"
        return None

    @staticmethod
    def _progress_bar(pct: float, length: int = 15) -> str:
        """Generate a text progress bar."""
        filled = int(min(pct, 100) / 100 * length)
        empty = length - filled
        if pct >= 100:
            return "█" * length + " ⚠️"
        elif pct >= 80:
            return "█" * filled + "░" * empty + " ⚡"
        else:
            return "█" * filled + "░" * empty
