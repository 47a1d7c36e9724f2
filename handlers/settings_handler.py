"""
handlers/settings_handler.py
-----------------------------
Handles /category and /rate.
Delegates to SettingsService.
"""

from telegram import Update
from telegram.ext import ContextTypes

from models.cashflow import EXPENSE, INCOME
from services.settings_service import SettingsService
from security.auth import authorized_only
from security.rate_limiter import rate_limited
from utils.logger import get_logger

logger = get_logger(__name__)
settings_service = SettingsService()

_DIRECTIONS = {"income": INCOME, "收入": INCOME, "expense": EXPENSE, "支出": EXPENSE}

CATEGORY_USAGE = (
    "🏷️ *收支類別*\n\n"
    "• `/category` → 列出類別\n"
    "• `/category add 支出 寵物`\n"
    "• `/category remove 支出 寵物`\n\n"
    "預設類別無法移除。"
)


@authorized_only
@rate_limited
async def category_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle /category command - list, add or remove custom categories.

    Usage:
        /category
        /category add expense 寵物
        /category remove 支出 寵物
    """
    user = update.effective_user
    args = context.args or []

    if not args:
        await update.message.reply_text(settings_service.list_categories(user.id), parse_mode="Markdown")
        return

    action = args[0].lower()
    if action not in ("add", "remove") or len(args) < 3:
        await update.message.reply_text(CATEGORY_USAGE, parse_mode="Markdown")
        return

    direction = _DIRECTIONS.get(args[1].lower(), args[1])
    name = " ".join(args[2:])
    if action == "add":
        msg = settings_service.add_category(user.id, direction, name)
    else:
        msg = settings_service.remove_category(user.id, direction, name)
    await update.message.reply_text(msg)


@authorized_only
@rate_limited
async def rate_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle /rate command - show or override the USD/TWD rate.

    Usage:
        /rate         → current effective rate
        /rate 31.5    → manual override
        /rate clear   → back to the market rate
    """
    user = update.effective_user
    if not context.args:
        await update.message.reply_text(settings_service.rate_status(user.id))
        return

    arg = context.args[0].lower()
    if arg in ("clear", "auto", "清除"):
        await update.message.reply_text(settings_service.set_manual_rate(user.id, None))
        return
    try:
        rate = float(arg)
    except ValueError:
        await update.message.reply_text("⚠️ 用法：/rate [匯率|clear]\n例如：/rate 31.5")
        return
    await update.message.reply_text(settings_service.set_manual_rate(user.id, rate))
