"""
handlers/export_handler.py
---------------------------
Handles data export commands (CSV, Excel).
Delegates to ExportService.
"""

from datetime import date

from telegram import Update
from telegram.ext import ContextTypes

from services.export_service import ExportService
from services.validation import ValidationError, validate_month
from security.auth import authorized_only
from security.rate_limiter import rate_limited
from utils.logger import get_logger

logger = get_logger(__name__)
export_service = ExportService()


def _month_arg(args: list[str]) -> str:
    """Month from `[YYYY-MM]`, defaulting to the current one. Raises ValidationError."""
    return validate_month(args[0]) if args else date.today().strftime("%Y-%m")


@authorized_only
@rate_limited
async def export_csv_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle /export_csv command - send a month's records as CSV.
    Optional: /export_csv 2026-09.
    """
    user = update.effective_user
    try:
        month = _month_arg(context.args or [])
    except ValidationError as e:
        await update.message.reply_text(f"⚠️ {e}\n用法：/export_csv [YYYY-MM]")
        return

    await update.message.reply_text("📄 正在準備 CSV 檔案...")

    try:
        buffer = export_service.export_month_csv(user.id, month)
        await update.message.reply_document(
            document=buffer,
            filename=f"cashflow_{month}.csv",
            caption=f"📊 {month} 收支紀錄 - CSV",
        )
    except Exception as e:
        logger.error(f"CSV export failed: {e}")
        await update.message.reply_text("❌ 匯出失敗，請稍後再試。")


@authorized_only
@rate_limited
async def export_excel_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle /export_excel command - send a month's records, category totals
    and the P/L statement as Excel. Optional: /export_excel 2026-09.
    """
    user = update.effective_user
    try:
        month = _month_arg(context.args or [])
    except ValidationError as e:
        await update.message.reply_text(f"⚠️ {e}\n用法：/export_excel [YYYY-MM]")
        return

    await update.message.reply_text("📊 正在準備 Excel 檔案...")

    try:
        buffer = export_service.export_month_excel(user.id, month)
        await update.message.reply_document(
            document=buffer,
            filename=f"finance_{month}.xlsx",
            caption=f"📊 {month} 收支紀錄與投資損益 - Excel",
        )
    except Exception as e:
        logger.error(f"Excel export failed: {e}")
        await update.message.reply_text("❌ 匯出失敗，請稍後再試。")
