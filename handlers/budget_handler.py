"""
handlers/budget_handler.py
---------------------------
Handles budget management commands.
"""

import re

from telegram import Update
from telegram.ext import ContextTypes

from services.budget_service import BudgetService
from security.auth import authorized_only
from security.rate_limiter import rate_limited
from utils.logger import get_logger

logger = get_logger(__name__)
budget_service = BudgetService()

_MONTH_RE = re.compile(r"^\d{4}-\d{2}$")

BUDGET_USAGE = (
    "💰 *預算管理*\n\n"
    "• `/budget` → 本月預算狀態\n"
    "• `/budget 2026-09` → 指定月份狀態\n"
    "• `/budget set <類別> <金額> [YYYY-MM]`\n"
    "• `/budget delete <類別> [YYYY-MM]`\n"
    "• `/budget save <YYYY-MM> 餐飲=8000 交通=3000 娛樂=0` ← 0 代表刪除"
)


def parse_bulk_amounts(args: list[str]) -> dict[str, float]:
    """['餐飲=8000', '交通=3,000'] -> {'餐飲': 8000.0, '交通': 3000.0}. Raises ValueError."""
    amounts = {}
    for arg in args:
        category, sep, value = arg.partition("=")
        if not sep or not category:
            raise ValueError(arg)
        amounts[category] = float(value.replace(",", ""))
    return amounts


@authorized_only
@rate_limited
async def budget_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle /budget command - manage monthly budgets.

    Usage:
        /budget                      → show budget status
        /budget set 餐飲 8000         → set budget for category
        /budget delete 餐飲           → remove budget
        /budget save 2026-11 餐飲=8000 → save several categories at once
    """
    user = update.effective_user
    args = context.args or []

    if not args or _MONTH_RE.match(args[0]):
        month = args[0] if args else None
        msg = budget_service.get_budget_status(user.id, month)
        await update.message.reply_text(msg, parse_mode="Markdown")
        return

    action = args[0].lower()

    if action == "set":
        if len(args) < 3:
            await update.message.reply_text(BUDGET_USAGE, parse_mode="Markdown")
            return
        try:
            amount = float(args[2].replace(",", ""))
        except ValueError:
            await update.message.reply_text("⚠️ 金額必須是數字。")
            return
        month = args[3] if len(args) > 3 else None
        await update.message.reply_text(budget_service.set_budget(user.id, args[1], amount, month))

    elif action == "delete":
        if len(args) < 2:
            await update.message.reply_text("⚠️ 用法：`/budget delete <類別> [YYYY-MM]`", parse_mode="Markdown")
            return
        month = args[2] if len(args) > 2 else None
        await update.message.reply_text(budget_service.delete_budget(user.id, args[1], month))

    elif action == "save":
        if len(args) < 3:
            await update.message.reply_text(BUDGET_USAGE, parse_mode="Markdown")
            return
        try:
            amounts = parse_bulk_amounts(args[2:])
        except ValueError as e:
            await update.message.reply_text(f"⚠️ 無法解析：{e}（格式為 類別=金額）")
            return
        await update.message.reply_text(budget_service.save_month(user.id, args[1], amounts))

    else:
        await update.message.reply_text(BUDGET_USAGE, parse_mode="Markdown")
