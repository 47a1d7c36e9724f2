"""
handlers/goal_handler.py
-------------------------
Handles savings goal commands: /goals, /add_goal, /edit_goal, /delete_goal.
"""

import re

from telegram import Update
from telegram.ext import ContextTypes

from models.planning import Goal
from services.goal_service import GoalService
from services.validation import ValidationError
from security.auth import authorized_only
from security.rate_limiter import rate_limited
from utils.logger import get_logger

logger = get_logger(__name__)
goal_service = GoalService()

# /edit_goal keys, English and Chinese, mapped to Goal fields
_GOAL_EDIT_FIELDS = {
    "name": "name", "名稱": "name",
    "target": "target_amount", "目標金額": "target_amount",
    "current": "current_amount", "目前金額": "current_amount",
    "date": "target_date", "目標日": "target_date",
    "account": "account_id", "帳戶": "account_id",
}


def parse_goal_args(text: str) -> Goal:
    """
    名稱 | 目標金額 | 目前金額 | 目標日 | 帳戶 -> Goal.
    Only the first two fields are required.

    Raises:
        ValidationError: When an amount cannot be read.
    """
    parts = [p.strip() for p in text.split("|")]
    if len(parts) < 2:
        raise ValidationError("格式錯誤，至少需要：名稱 | 目標金額")
    parts += [""] * (5 - len(parts))
    try:
        target = float(parts[1].replace(",", ""))
        current = float(parts[2].replace(",", "")) if parts[2] else 0.0
    except ValueError:
        raise ValidationError("金額必須是數字。")
    return Goal(name=parts[0], target_amount=target, current_amount=current,
                target_date=parts[3], account_id=parts[4])


def parse_goal_edit_args(args: list[str]) -> dict:
    """
    Parse `key=value` pairs of /edit_goal into Goal changes.
    `account=none` unlinks the account; `date=none` clears the target date.

    Raises:
        ValidationError: For unknown keys or unreadable amounts.
    """
    text = " ".join(args)
    pairs = re.findall(r"(\S+?)=(.*?)(?=\s+\S+?=|$)", text)
    if not pairs:
        raise ValidationError("請以 欄位=值 的格式指定要修改的內容。")

    changes = {}
    for key, value in pairs:
        field = _GOAL_EDIT_FIELDS.get(key.lower())
        if field is None:
            raise ValidationError(f"未知的欄位：{key}")
        value = value.strip()
        if field in ("target_amount", "current_amount"):
            try:
                changes[field] = float(value.replace(",", ""))
            except ValueError:
                raise ValidationError(f"金額必須是數字：{value}")
        elif field in ("account_id", "target_date") and value.lower() in ("none", "無"):
            changes[field] = ""
        else:
            changes[field] = value
    return changes


@authorized_only
@rate_limited
async def goals_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /goals - list goals with their progress."""
    user = update.effective_user
    await update.message.reply_text(goal_service.list_goals(user.id), parse_mode="Markdown")


@authorized_only
@rate_limited
async def add_goal_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle /add_goal - add a savings goal.

    Examples:
        /add_goal 緊急預備金 | 300000
        /add_goal 買房頭期款 | 2000000 | 0 | 2030-12-31 | 證券戶
    """
    user = update.effective_user
    if not context.args:
        await update.message.reply_text(
            "🎯 *新增財務目標*\n\n"
            "*格式：*\n"
            "`/add_goal 名稱 | 目標金額 | 目前金額 | 目標日 | 帳戶`\n\n"
            "*範例：*\n"
            "• `/add_goal 緊急預備金 | 300000`\n"
            "• `/add_goal 頭期款 | 2000000 | | 2030-12-31 | 證券戶`\n\n"
            "指定帳戶時，目前金額會以帳戶現值帶入。",
            parse_mode="Markdown",
        )
        return

    try:
        goal = parse_goal_args(" ".join(context.args))
    except ValidationError as e:
        await update.message.reply_text(f"⚠️ {e}")
        return
    await update.message.reply_text(goal_service.add_goal(user.id, goal))


@authorized_only
@rate_limited
async def delete_goal_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /delete_goal <id>."""
    user = update.effective_user
    if not context.args:
        await update.message.reply_text("⚠️ 用法：/delete_goal <編號>")
        return
    await update.message.reply_text(goal_service.delete_goal(user.id, context.args[0].lstrip("#")))


@authorized_only
@rate_limited
async def edit_goal_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle /edit_goal - edit fields of an existing goal.

    Examples:
        /edit_goal a1b2c3 目前金額=120000
        /edit_goal a1b2c3 target=500000 date=2028-06-30
        /edit_goal a1b2c3 account=證券戶   ← re-seed from the account value
    """
    user = update.effective_user
    if not context.args or len(context.args) < 2:
        await update.message.reply_text(
            "✏️ *修改財務目標*\n\n"
            "*格式：* `/edit_goal <編號> 欄位=值 ...`\n\n"
            "*欄位：* 名稱、目標金額、目前金額、目標日、帳戶\n"
            "*範例：* `/edit_goal a1b2c3 目前金額=120000`",
            parse_mode="Markdown",
        )
        return

    goal_id = context.args[0].lstrip("#")
    try:
        changes = parse_goal_edit_args(context.args[1:])
    except ValidationError as e:
        await update.message.reply_text(f"⚠️ {e}")
        return
    await update.message.reply_text(goal_service.update_goal(user.id, goal_id, **changes))
