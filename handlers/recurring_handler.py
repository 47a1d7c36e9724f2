"""
handlers/recurring_handler.py
------------------------------
Handles recurring cashflow templates: listing them and running this
month's check on demand. Templates are created with /add (last field).
"""

from telegram import Update
from telegram.ext import ContextTypes

from services.recurring_service import CREATED_MESSAGE, FAILED_MESSAGE, RecurringService
from security.auth import authorized_only
from security.rate_limiter import rate_limited
from utils.logger import get_logger

logger = get_logger(__name__)
recurring_service = RecurringService()


@authorized_only
@rate_limited
async def recurring_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /recurring - list all recurring templates."""
    user = update.effective_user
    await update.message.reply_text(recurring_service.list_templates(user.id))


@authorized_only
@rate_limited
async def check_recurring_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /check_recurring - create this month's recurring records now."""
    user = update.effective_user
    try:
        created = recurring_service.check_and_create(user.id)
    except Exception as e:
        logger.error(f"Manual recurring check failed for user {user.id}: {e}")
        await update.message.reply_text(f"❌ {FAILED_MESSAGE}")
        return

    if created:
        await update.message.reply_text(f"🔁 {CREATED_MESSAGE}")
    else:
        await update.message.reply_text("✅ 本月定額項目已是最新狀態。")
