"""
handlers/asset_handler.py
--------------------------
Handles asset account commands.
Delegates all logic to AssetService.
"""

from telegram import Update
from telegram.ext import ContextTypes

from models.asset import ASSET_CATEGORIES, Asset
from services.asset_service import AssetService
from services.validation import ValidationError
from security.auth import authorized_only
from security.rate_limiter import rate_limited
from utils.logger import get_logger

logger = get_logger(__name__)
asset_service = AssetService()

ADD_ASSET_USAGE = (
    "📈 *新增或更新資產*\n\n"
    "*格式：*\n"
    "`/add_asset 帳戶 | 代號 | 類別 | 單位數 | 每單位成本 | 每單位現值 | 幣別`\n\n"
    "*範例：*\n"
    "• `/add_asset 證券戶 | 0050 | ETF | 1000 | 120 | 150`\n"
    "• `/add_asset 複委託 | VOO | 美元資產 | 10 | 400 | 480 | USD`\n"
    "• `/add_asset 銀行 | 活存 | 現金 | 1 | 200000 | 200000`\n\n"
    f"*類別：* {'、'.join(ASSET_CATEGORIES)}\n"
    "相同代號會覆蓋原有資產。"
)


def parse_asset_args(text: str) -> tuple[str, Asset]:
    """
    Parse /add_asset into (account key, asset).

    Raises:
        ValidationError: When a field cannot be read.
    """
    parts = [p.strip() for p in text.split("|")]
    if len(parts) < 6:
        raise ValidationError("格式錯誤，需要：帳戶 | 代號 | 類別 | 單位數 | 成本 | 現值")
    try:
        units, cost, value = (float(p.replace(",", "")) for p in parts[3:6])
    except ValueError:
        raise ValidationError("單位數、成本與現值必須是數字。")
    currency = parts[6].upper() if len(parts) > 6 and parts[6] else "TWD"
    return parts[0], Asset(id="", code=parts[1], category=parts[2], units=units,
                           cost=cost, current_value=value, currency=currency)


@authorized_only
@rate_limited
async def accounts_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /accounts - list accounts and their assets."""
    user = update.effective_user
    await update.message.reply_text(asset_service.list_accounts(user.id), parse_mode="Markdown")


@authorized_only
@rate_limited
async def add_account_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /add_account <name>."""
    user = update.effective_user
    if not context.args:
        await update.message.reply_text("⚠️ 用法：/add_account <帳戶名稱>\n例如：/add_account 證券戶")
        return
    await update.message.reply_text(asset_service.add_account(user.id, " ".join(context.args)))


@authorized_only
@rate_limited
async def delete_account_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /delete_account <name|id> - removes the account and all its assets."""
    user = update.effective_user
    if not context.args:
        await update.message.reply_text("⚠️ 用法：/delete_account <帳戶名稱或編號>")
        return
    await update.message.reply_text(asset_service.delete_account(user.id, " ".join(context.args)))


@authorized_only
@rate_limited
async def add_asset_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /add_asset - add an asset or replace the one with the same code."""
    user = update.effective_user
    if not context.args:
        await update.message.reply_text(ADD_ASSET_USAGE, parse_mode="Markdown")
        return
    try:
        account_key, asset = parse_asset_args(" ".join(context.args))
    except ValidationError as e:
        await update.message.reply_text(f"⚠️ {e}")
        return
    await update.message.reply_text(asset_service.save_asset(user.id, account_key, asset))


@authorized_only
@rate_limited
async def delete_asset_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /delete_asset 帳戶 | 代號."""
    user = update.effective_user
    parts = [p.strip() for p in " ".join(context.args or []).split("|")]
    if len(parts) < 2 or not parts[0] or not parts[1]:
        await update.message.reply_text("⚠️ 用法：/delete_asset 帳戶 | 代號")
        return
    await update.message.reply_text(asset_service.delete_asset(user.id, parts[0], parts[1]))
