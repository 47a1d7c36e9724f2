"""
services/goal_service.py
-------------------------
Business logic for savings goals.
"""

from dataclasses import replace
from datetime import date
from typing import Optional

import psycopg2
from telegram.helpers import escape_markdown

from models.planning import Goal
from repositories.asset_repo import AssetAccountRepository
from repositories.goal_repo import GoalRepository
from repositories.settings_repo import SettingsRepository
from services import metrics
from services.rate_service import ExchangeRateService, exchange_rates
from services.validation import STORE_FAILURE_MESSAGE, ValidationError, validate_amount
from utils.logger import get_logger

logger = get_logger(__name__)


class GoalService:
    """Manages savings goals, optionally tracked against an asset account."""

    def __init__(self, repo: Optional[GoalRepository] = None,
                 account_repo: Optional[AssetAccountRepository] = None,
                 settings_repo: Optional[SettingsRepository] = None,
                 rates: Optional[ExchangeRateService] = None):
        self.repo = repo or GoalRepository()
        self.account_repo = account_repo or AssetAccountRepository()
        self.settings_repo = settings_repo or SettingsRepository()
        self.rates = rates or exchange_rates

    def _link_account(self, user_id: int, goal: Goal) -> Goal:
        """Resolve the linked account and seed current_amount with its value."""
        if not goal.account_id:
            return goal
        key = goal.account_id.strip().lower()
        for account in self.account_repo.get_all(user_id):
            if account.id == goal.account_id or account.name.strip().lower() == key:
                rate = self.rates.effective_rate(self.settings_repo.get(user_id))
                return replace(goal, account_id=account.id,
                               current_amount=round(metrics.account_value(account, rate)))
        raise ValidationError(f"找不到帳戶：{goal.account_id}")

    def _validate(self, goal: Goal) -> None:
        if not goal.name.strip():
            raise ValidationError("目標名稱為必填項。")
        validate_amount(goal.target_amount, "目標金額")
        if goal.current_amount < 0:
            raise ValidationError("目前金額不可為負數。")
        if goal.target_date:
            try:
                date.fromisoformat(goal.target_date)
            except ValueError:
                raise ValidationError(f"日期格式錯誤：{goal.target_date}（應為 YYYY-MM-DD）")

    def add_goal(self, user_id: int, goal: Goal) -> str:
        try:
            goal = self._link_account(user_id, goal)
            self._validate(goal)
            saved = self.repo.add(user_id, goal)
        except ValidationError as e:
            return f"⚠️ {e}"
        except psycopg2.Error as e:
            logger.error(f"Failed to add goal for user {user_id}: {e}")
            return STORE_FAILURE_MESSAGE
        return f"🎯 目標「{saved.name}」新增成功！（#{saved.id}）"

    def update_goal(self, user_id: int, goal_id: str, **changes) -> str:
        try:
            existing = self.repo.get(user_id, goal_id)
            if existing is None:
                return f"⚠️ 目標 #{goal_id} 不存在。"
            goal = replace(existing, **changes)
            if "account_id" in changes:
                goal = self._link_account(user_id, goal)
            self._validate(goal)
            self.repo.save(user_id, goal)
        except ValidationError as e:
            return f"⚠️ {e}"
        except psycopg2.Error as e:
            logger.error(f"Failed to update goal {goal_id}: {e}")
            return STORE_FAILURE_MESSAGE
        return f"✏️ 目標「{goal.name}」更新成功！"

    def delete_goal(self, user_id: int, goal_id: str) -> str:
        try:
            deleted = self.repo.delete(user_id, goal_id)
        except psycopg2.Error as e:
            logger.error(f"Failed to delete goal {goal_id}: {e}")
            return STORE_FAILURE_MESSAGE
        return f"🗑️ 目標 #{goal_id} 已刪除。" if deleted else f"⚠️ 目標 #{goal_id} 不存在。"

    def list_goals(self, user_id: int) -> str:
        goals = self.repo.get_all(user_id)
        if not goals:
            return "📭 目前沒有財務目標。使用 /add\\_goal 新增。"

        lines = ["🎯 *財務目標*\n"]
        for g in goals:
            pct = g.progress * 100
            filled = int(min(pct, 100) / 10)
            bar = "█" * filled + "░" * (10 - filled)
            due = f" | 目標日 {g.target_date}" if g.target_date else ""
            lines.append(
                f"*{escape_markdown(g.name)}*（#{g.id}）\n"
                f"  {bar} {pct:.1f}%\n"
                f"  {g.current_amount:,.0f} / {g.target_amount:,.0f} TWD{due}"
            )
        return "\n\n".join(lines)
