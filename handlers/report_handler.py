"""
handlers/report_handler.py
---------------------------
Handles the read-only views: /dashboard, /report, /pnl.
Delegates to ReportService.
"""

from telegram import Update
from telegram.ext import ContextTypes

from services.report_service import ReportService
from security.auth import authorized_only
from security.rate_limiter import rate_limited
from utils.logger import get_logger

logger = get_logger(__name__)
report_service = ReportService()


def parse_pnl_args(args: list[str]) -> tuple[str, bool]:
    """`/pnl [key] [asc|desc]` -> (sort key, descending). Defaults to P/L descending."""
    sort_key = args[0].lower() if args else "pnl"
    descending = not (len(args) > 1 and args[1].lower() == "asc")
    return sort_key, descending


@authorized_only
@rate_limited
async def dashboard_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /dashboard - totals, allocation, last month and asset health."""
    user = update.effective_user
    await update.message.reply_text(report_service.dashboard(user.id), parse_mode="Markdown")


@authorized_only
@rate_limited
async def report_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle /report [YYYY-MM] - monthly report.

    Usage:
        /report          → current month
        /report 2026-09  → September 2026
    """
    user = update.effective_user
    month = context.args[0] if context.args else None
    await update.message.reply_text(report_service.monthly_report(user.id, month), parse_mode="Markdown")


@authorized_only
@rate_limited
async def pnl_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle /pnl [key] [asc|desc] - investment profit & loss statement.

    Usage:
        /pnl                → sorted by P/L, largest first
        /pnl pnl_pct asc    → sorted by return, smallest first
        /pnl code asc       → by ticker
    """
    user = update.effective_user
    sort_key, descending = parse_pnl_args(context.args or [])
    await update.message.reply_text(
        report_service.pnl_report(user.id, sort_key, descending), parse_mode="Markdown"
    )
