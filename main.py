"""
main.py
-------
Entry point for the Finance Navigator Telegram bot.

Responsibilities:
    - Initialize the database connection pool and schema.
    - Configure and start the Telegram bot with all handlers.
    - Schedule the recurring-transaction check: daily, and whenever a
      user's cashflow records or settings change.
"""

from datetime import time as dt_time

import psycopg2
from telegram import BotCommand
from telegram.ext import (
    Application,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from config import ALLOWED_USER_IDS, REALTIME_POLL_SECONDS, TELEGRAM_BOT_TOKEN
from db.connection import close_pool, init_pool
from db.init_db import create_tables
from db.listener import ChangeListener
from handlers.asset_handler import (
    accounts_command,
    add_account_command,
    add_asset_command,
    delete_account_command,
    delete_asset_command,
)
from handlers.assistant_handler import ask_command, handle_text_message, reset_chat_command
from handlers.budget_handler import budget_command
from handlers.cashflow_handler import add_command, delete_command, edit_command, records_command
from handlers.chart_handler import chart_budget_command, chart_command, chart_trend_command
from handlers.export_handler import export_csv_command, export_excel_command
from handlers.goal_handler import add_goal_command, delete_goal_command, edit_goal_command, goals_command
from handlers.recurring_handler import check_recurring_command, recurring_command
from handlers.report_handler import dashboard_command, pnl_command, report_command
from handlers.settings_handler import category_command, rate_command
from handlers.start_handler import help_command, myid_command, start_command
from repositories.cashflow_repo import CashflowRepository
from repositories.document_repo import DocumentRepository, user_id_from_namespace, user_namespace
from repositories.settings_repo import SettingsRepository
from security.auth import is_allowed
from services.recurring_service import CREATED_MESSAGE, FAILED_MESSAGE, RecurringService
from utils.logger import get_logger

logger = get_logger(__name__)

# Collections whose changes can produce new recurring records
WATCHED_COLLECTIONS = {CashflowRepository.collection, SettingsRepository.collection}
LISTENER_KEY = "change_listener"


async def run_recurring_check(context: ContextTypes.DEFAULT_TYPE, user_id: int) -> None:
    """Run the monthly recurring check for one user and tell them the outcome."""
    recurring_service = RecurringService()
    try:
        created = recurring_service.check_and_create(user_id)
    except Exception as e:
        logger.error(f"Recurring check failed for user {user_id}: {e}")
        await context.bot.send_message(chat_id=user_id, text=f"❌ {FAILED_MESSAGE}")
        return

    if created:
        await context.bot.send_message(chat_id=user_id, text=f"🔁 {CREATED_MESSAGE}")
        logger.info(f"Recurring records created for user {user_id}")


def recurring_user_ids(documents: DocumentRepository | None = None) -> list[int]:
    """
    Users the daily recurring check runs for: every user with stored
    documents plus the whitelist, keeping only those allowed to use the bot.
    An empty whitelist allows everyone, so then every stored user is checked.
    """
    documents = documents or DocumentRepository()
    users = set(ALLOWED_USER_IDS)
    try:
        namespaces = documents.list_namespaces(user_namespace(""))
    except psycopg2.Error as e:
        logger.warning(f"Could not list stored users, checking the whitelist only: {e}")
        namespaces = []
    for namespace in namespaces:
        user_id = user_id_from_namespace(namespace)
        if user_id is not None:
            users.add(user_id)
    return sorted(user_id for user_id in users if is_allowed(user_id))


async def daily_recurring_job(context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Scheduled job: run the recurring check for every allowed user.
    Runs daily at 00:05; the check itself is a no-op after the first run of a month.
    """
    for user_id in recurring_user_ids():
        await run_recurring_check(context, user_id)


async def realtime_changes_job(context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Repeating job: drain document change notifications and re-run the
    recurring check for users whose cashflow records or settings changed.
    """
    listener: ChangeListener | None = context.application.bot_data.get(LISTENER_KEY)
    if listener is None:
        return

    try:
        listener.start()
        changes = listener.poll_changes(timeout=0.0)
    except (psycopg2.Error, OSError) as e:
        logger.warning(f"Change listener failed, reconnecting on next run: {e}")
        try:
            listener.close()
        except (psycopg2.Error, OSError) as close_error:
            logger.debug(f"Ignoring error while closing broken listener: {close_error}")
        return

    users = set()
    for namespace, collection in changes:
        user_id = user_id_from_namespace(namespace)
        if user_id is not None and collection in WATCHED_COLLECTIONS and is_allowed(user_id):
            users.add(user_id)

    for user_id in sorted(users):
        await run_recurring_check(context, user_id)


async def post_init(application: Application) -> None:
    """Register the bot command menu and open the change listener."""
    commands = [
        BotCommand("start", "🚀 開始使用"),
        BotCommand("help", "📖 指令說明"),
        BotCommand("dashboard", "📊 財務總覽"),
        BotCommand("report", "📈 月報表"),
        BotCommand("pnl", "💹 投資損益表"),
        BotCommand("chart", "🥧 資產配置圖"),
        BotCommand("chart_trend", "📈 收支趨勢圖"),
        BotCommand("chart_budget", "💰 預算圖"),
        BotCommand("add", "📝 新增收支"),
        BotCommand("edit", "✏️ 修改收支"),
        BotCommand("records", "📒 最近紀錄"),
        BotCommand("delete", "🗑️ 刪除紀錄"),
        BotCommand("recurring", "🔁 定額項目"),
        BotCommand("check_recurring", "🔄 建立本月定額項目"),
        BotCommand("budget", "💰 預算"),
        BotCommand("goals", "🎯 財務目標"),
        BotCommand("add_goal", "➕ 新增目標"),
        BotCommand("edit_goal", "✏️ 修改目標"),
        BotCommand("delete_goal", "❌ 刪除目標"),
        BotCommand("accounts", "🏦 資產帳戶"),
        BotCommand("add_account", "➕ 新增帳戶"),
        BotCommand("delete_account", "❌ 刪除帳戶"),
        BotCommand("add_asset", "📈 新增資產"),
        BotCommand("delete_asset", "❌ 刪除資產"),
        BotCommand("category", "🏷️ 收支類別"),
        BotCommand("rate", "💱 匯率"),
        BotCommand("ask", "🤖 詢問 Navi"),
        BotCommand("reset_chat", "🧹 清除對話"),
        BotCommand("export_csv", "📄 匯出 CSV"),
        BotCommand("export_excel", "📊 匯出 Excel"),
        BotCommand("myid", "🆔 我的 ID"),
    ]
    await application.bot.set_my_commands(commands)
    logger.info("Bot commands menu registered successfully.")

    listener = ChangeListener()
    try:
        listener.start()
    except psycopg2.Error as e:
        logger.warning(f"Realtime change listener unavailable, will retry: {e}")
    application.bot_data[LISTENER_KEY] = listener


async def post_shutdown(application: Application) -> None:
    """Close the change listener."""
    listener: ChangeListener | None = application.bot_data.pop(LISTENER_KEY, None)
    if listener is not None:
        listener.close()


def main() -> None:
    """Initialize and run the bot."""

    # ── 1. Database setup ─────────────────────────────────
    logger.info("Initializing database...")
    init_pool()
    create_tables()

    # ── 2. Build the Telegram application ─────────────────
    logger.info("Starting Telegram bot...")
    app = (
        Application.builder()
        .token(TELEGRAM_BOT_TOKEN)
        .post_init(post_init)
        .post_shutdown(post_shutdown)
        .build()
    )

    # ── 3. Register command handlers ──────────────────────
    commands = {
        "start": start_command,
        "help": help_command,
        "myid": myid_command,
        "dashboard": dashboard_command,
        "report": report_command,
        "pnl": pnl_command,
        "chart": chart_command,
        "chart_trend": chart_trend_command,
        "chart_budget": chart_budget_command,
        "add": add_command,
        "edit": edit_command,
        "records": records_command,
        "delete": delete_command,
        "recurring": recurring_command,
        "check_recurring": check_recurring_command,
        "budget": budget_command,
        "goals": goals_command,
        "add_goal": add_goal_command,
        "edit_goal": edit_goal_command,
        "delete_goal": delete_goal_command,
        "accounts": accounts_command,
        "add_account": add_account_command,
        "delete_account": delete_account_command,
        "add_asset": add_asset_command,
        "delete_asset": delete_asset_command,
        "category": category_command,
        "rate": rate_command,
        "ask": ask_command,
        "reset_chat": reset_chat_command,
        "export_csv": export_csv_command,
        "export_excel": export_excel_command,
    }
    for name, callback in commands.items():
        app.add_handler(CommandHandler(name, callback))

    # ── 4. Register text message handler (catch-all) ──────
    app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, handle_text_message))

    # ── 5. Schedule jobs ──────────────────────────────────
    job_queue = app.job_queue
    if job_queue:
        job_queue.run_daily(
            daily_recurring_job,
            time=dt_time(hour=0, minute=5),
            name="daily_recurring_check",
        )
        job_queue.run_repeating(
            realtime_changes_job,
            interval=REALTIME_POLL_SECONDS,
            first=REALTIME_POLL_SECONDS,
            name="realtime_changes",
        )
        logger.info(f"Scheduled daily recurring check (00:05) + change polling every {REALTIME_POLL_SECONDS}s")

    # ── 6. Start polling ──────────────────────────────────
    logger.info("🚀 Finance Navigator is running! Press Ctrl+C to stop.")
    app.run_polling(drop_pending_updates=True, allowed_updates=["message"])

    # ── 7. Cleanup on shutdown ────────────────────────────
    close_pool()
    logger.info("Finance Navigator stopped.")


if __name__ == "__main__":
    main()
