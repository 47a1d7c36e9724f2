"""
handlers/cashflow_handler.py
-----------------------------
Handles income/expense commands: /add, /edit, /records, /delete.
Delegates all logic to CashflowService.
"""

import re
from datetime import date

from telegram import Update
from telegram.ext import ContextTypes

from models.cashflow import EXPENSE, INCOME, CashflowRecord
from services.budget_service import BudgetService
from services.cashflow_service import CashflowService
from services.validation import ValidationError, validate_month
from security.auth import authorized_only
from security.rate_limiter import rate_limited
from utils.logger import get_logger

logger = get_logger(__name__)
cashflow_service = CashflowService()
budget_service = BudgetService()

_TYPE_ALIASES = {
    "income": INCOME, "收入": INCOME, "+": INCOME,
    "expense": EXPENSE, "支出": EXPENSE, "-": EXPENSE,
}

# /edit keys -> CashflowRecord attributes
_EDIT_FIELDS = {
    "type": "type", "類型": "type",
    "category": "category", "類別": "category",
    "amount": "amount", "金額": "amount",
    "account": "account_id", "帳戶": "account_id",
    "description": "description", "說明": "description",
    "date": "date", "日期": "date",
    "currency": "currency", "幣別": "currency",
    "day": "recurrence_day", "每月": "recurrence_day",
}

ADD_USAGE = (
    "📝 *新增收支紀錄*\n\n"
    "*格式：*\n"
    "`/add 類型 | 類別 | 金額 | 帳戶 | 說明 | 日期 | 每月幾號`\n\n"
    "*範例：*\n"
    "• `/add 支出 | 餐飲 | 250 | 錢包 | 午餐`\n"
    "• `/add 收入 | 薪水 | 52000 | 薪轉戶 | 十月薪水 | 2026-10-05`\n"
    "• `/add 支出 | 居住 | 18000 | 薪轉戶 | 房租 | | 5` ← 每月 5 號定額\n\n"
    "類型：收入/支出，日期預設今天，最後一欄填入日期即設為定額。"
)


def parse_amount(text: str) -> float:
    """'52,000' / 'NT$ 250' -> float. Raises ValueError when no number is present."""
    cleaned = re.sub(r"[^\d.\-]", "", text)
    if not cleaned:
        raise ValueError(f"not a number: {text!r}")
    return float(cleaned)


def parse_cashflow_args(text: str) -> CashflowRecord:
    """
    Parse the pipe-separated /add format into a record.

    Raises:
        ValidationError: When a field cannot be read.
    """
    parts = [p.strip() for p in text.split("|")]
    if len(parts) < 4:
        raise ValidationError("格式錯誤，至少需要：類型 | 類別 | 金額 | 帳戶")
    parts += [""] * (7 - len(parts))

    record_type = _TYPE_ALIASES.get(parts[0].lower())
    if record_type is None:
        raise ValidationError(f"未知的類型：{parts[0]}（收入/支出）")
    try:
        amount = parse_amount(parts[2])
    except ValueError:
        raise ValidationError(f"金額必須是數字：{parts[2]}")

    recurrence_day = None
    if parts[6]:
        try:
            recurrence_day = int(parts[6])
        except ValueError:
            raise ValidationError(f"每月執行日必須是 1 到 31 的整數：{parts[6]}")

    return CashflowRecord(
        type=record_type,
        category=parts[1],
        amount=amount,
        account_id=parts[3],
        description=parts[4],
        date=parts[5] or date.today().isoformat(),
        is_recurring=recurrence_day is not None,
        recurrence_day=recurrence_day,
    )


def parse_edit_args(args: list[str]) -> dict:
    """
    Parse `key=value` pairs of /edit into CashflowRecord changes.
    Values may contain spaces until the next `key=`.

    Raises:
        ValidationError: For unknown keys or unreadable values.
    """
    text = " ".join(args)
    pairs = re.findall(r"(\S+?)=(.*?)(?=\s+\S+?=|$)", text)
    if not pairs:
        raise ValidationError("請以 欄位=值 的格式指定要修改的內容。")

    changes = {}
    for key, value in pairs:
        field = _EDIT_FIELDS.get(key.lower())
        if field is None:
            raise ValidationError(f"未知的欄位：{key}")
        value = value.strip()
        if field == "type":
            if value.lower() not in _TYPE_ALIASES:
                raise ValidationError(f"未知的類型：{value}（收入/支出）")
            changes[field] = _TYPE_ALIASES[value.lower()]
        elif field == "amount":
            try:
                changes[field] = parse_amount(value)
            except ValueError:
                raise ValidationError(f"金額必須是數字：{value}")
        elif field == "recurrence_day":
            if value in ("", "0", "none", "無"):
                changes["is_recurring"] = False
                changes[field] = None
            else:
                try:
                    changes[field] = int(value)
                except ValueError:
                    raise ValidationError(f"每月執行日必須是 1 到 31 的整數：{value}")
                changes["is_recurring"] = True
        else:
            changes[field] = value
    return changes


@authorized_only
@rate_limited
async def add_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle /add - record an income or expense.

    Usage:
        /add 支出 | 餐飲 | 250 | 錢包 | 午餐
    """
    user = update.effective_user
    if not context.args:
        await update.message.reply_text(ADD_USAGE, parse_mode="Markdown")
        return

    try:
        record = parse_cashflow_args(" ".join(context.args))
    except ValidationError as e:
        await update.message.reply_text(f"⚠️ {e}")
        return

    result = cashflow_service.add_record(user.id, record)
    reply = result["message"]
    if result.get("success") and record.is_expense():
        alert = budget_service.check_budget_alert(user.id, result.get("category", ""), month=record.date[:7])
        if alert:
            reply += f"\n\n{alert}"
    await update.message.reply_text(reply)


@authorized_only
@rate_limited
async def edit_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle /edit - edit fields of an existing record.

    Examples:
        /edit a1b2c3 amount=300
        /edit a1b2c3 類別=交通 說明=計程車
        /edit a1b2c3 day=none   ← cancel the monthly recurrence
    """
    user = update.effective_user
    if not context.args or len(context.args) < 2:
        await update.message.reply_text(
            "✏️ *修改收支紀錄*\n\n"
            "*格式：* `/edit <編號> 欄位=值 ...`\n\n"
            "*欄位：* 類型、類別、金額、帳戶、說明、日期、幣別、每月\n"
            "*範例：* `/edit a1b2c3 金額=300 說明=晚餐`",
            parse_mode="Markdown",
        )
        return

    record_id = context.args[0].lstrip("#")
    try:
        changes = parse_edit_args(context.args[1:])
    except ValidationError as e:
        await update.message.reply_text(f"⚠️ {e}")
        return

    result = cashflow_service.update_record(user.id, record_id, **changes)
    await update.message.reply_text(result["message"])


@authorized_only
@rate_limited
async def records_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /records [YYYY-MM] - list the most recent records."""
    user = update.effective_user
    month = None
    if context.args:
        try:
            month = validate_month(context.args[0])
        except ValidationError as e:
            await update.message.reply_text(f"⚠️ {e}")
            return
    await update.message.reply_text(cashflow_service.list_recent(user.id, month=month))


@authorized_only
@rate_limited
async def delete_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle /delete <id> - delete a record.
    Usage: /delete a1b2c3
    """
    user = update.effective_user
    if not context.args:
        await update.message.reply_text("⚠️ 用法：/delete <編號>\n編號可在 /records 中查看。")
        return

    msg = cashflow_service.delete_record(user.id, context.args[0].lstrip("#"))
    await update.message.reply_text(msg)
