"""
handlers/chart_handler.py
--------------------------
Handles chart generation commands.
Delegates to ChartService and sends images to the user.
"""

from telegram import Update
from telegram.ext import ContextTypes

from services.chart_service import ChartService
from services.validation import ValidationError
from security.auth import authorized_only
from security.rate_limiter import rate_limited
from utils.logger import get_logger

logger = get_logger(__name__)
chart_service = ChartService()


@authorized_only
@rate_limited
async def chart_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /chart - send the asset allocation donut."""
    user = update.effective_user
    await update.message.reply_text("📊 正在產生圖表...")

    buf = chart_service.allocation_donut(user.id)
    if buf:
        await update.message.reply_photo(photo=buf, caption="🥧 資產配置")
    else:
        await update.message.reply_text("📭 目前沒有資產資料。使用 /add_asset 新增。")


@authorized_only
@rate_limited
async def chart_trend_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /chart_trend - income vs expense for the last 12 months."""
    user = update.effective_user
    await update.message.reply_text("📈 正在產生圖表...")

    buf = chart_service.cashflow_trend_bars(user.id)
    if buf:
        await update.message.reply_photo(photo=buf, caption="📈 近 12 個月收支趨勢")
    else:
        await update.message.reply_text("📭 近 12 個月沒有收支紀錄。")


@authorized_only
@rate_limited
async def chart_budget_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle /chart_budget [YYYY-MM] - budget vs spending per category.

    Usage:
        /chart_budget          → current month
        /chart_budget 2026-09  → September 2026
    """
    user = update.effective_user
    month = context.args[0] if context.args else None

    try:
        buf = chart_service.budget_bars(user.id, month)
    except ValidationError as e:
        await update.message.reply_text(f"⚠️ {e}")
        return

    if buf:
        await update.message.reply_photo(photo=buf, caption="💰 預算 vs 實際支出")
    else:
        await update.message.reply_text("📭 這個月沒有預算或支出紀錄。")
