"""
handlers/start_handler.py
--------------------------
Handles /start, /help and /myid.
Creates the user's settings document and shows available commands.
"""

import psycopg2
from telegram import Update
from telegram.ext import ContextTypes

from repositories.settings_repo import SettingsRepository
from security.auth import authorized_only
from security.rate_limiter import rate_limited
from utils.logger import get_logger

logger = get_logger(__name__)
settings_repo = SettingsRepository()

HELP_TEXT = """
🧭 *Personal Finance Navigator*
您的個人財務導航助理 💰

*📊 總覽與報表：*
/dashboard - 財務總覽與資產健康度
/report [YYYY-MM] - 月報表
/pnl [欄位] [asc|desc] - 投資損益表
/chart - 資產配置圖
/chart\\_trend - 近 12 個月收支圖
/chart\\_budget [YYYY-MM] - 預算 vs 支出圖

*📝 收支紀錄：*
/add 類型 | 類別 | 金額 | 帳戶 | 說明 | 日期 | 每月幾號
/edit <編號> 欄位=值 ...
/records [YYYY-MM] - 最近紀錄
/delete <編號> - 刪除紀錄
/recurring - 定額收支項目
/check\\_recurring - 立即建立本月定額項目

*🏦 資產：*
/accounts - 帳戶與資產
/add\\_account <名稱>
/delete\\_account <名稱>
/add\\_asset 帳戶 | 代號 | 類別 | 單位數 | 成本 | 現值 | 幣別
/delete\\_asset 帳戶 | 代號

*🎯 預算與目標：*
/budget - 本月預算狀態
/goals - 財務目標
/add\\_goal 名稱 | 目標金額 | 目前金額 | 目標日 | 帳戶
/edit\\_goal <編號> 欄位=值 ...
/delete\\_goal <編號>

*⚙️ 設定：*
/category - 收支類別
/rate [匯率|clear] - USD/TWD 匯率

*🤖 AI 助理 Navi：*
/ask <問題> 或直接輸入文字
/reset\\_chat - 清除對話紀錄

*📤 匯出：*
/export\\_csv [YYYY-MM]
/export\\_excel [YYYY-MM]
/myid - 顯示您的 Telegram ID
"""


@authorized_only
@rate_limited
async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start command - create default settings and show welcome message."""
    user = update.effective_user
    try:
        settings_repo.ensure(user.id)
    except psycopg2.Error as e:
        logger.error(f"Failed to create settings for user {user.id}: {e}")
    logger.info(f"User {user.id} ({user.first_name}) started the bot.")

    await update.message.reply_text(
        f"你好 {user.first_name}！👋\n"
        f"我會幫您追蹤資產、收支、預算與財務目標。\n\n"
        f"輸入 /help 查看所有指令。",
        parse_mode="Markdown",
    )


@authorized_only
@rate_limited
async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help command - show all available commands."""
    await update.message.reply_text(HELP_TEXT, parse_mode="Markdown")


@authorized_only
async def myid_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /myid command - show user's Telegram ID for whitelisting."""
    user = update.effective_user
    await update.message.reply_text(
        f"🆔 您的 Telegram ID：`{user.id}`\n"
        f"將此 ID 加入 `.env` 的 `ALLOWED_USER_IDS` 以限制使用者。",
        parse_mode="Markdown",
    )
