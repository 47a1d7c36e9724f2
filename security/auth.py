"""
security/auth.py
-----------------
Whitelist of Telegram users allowed to reach their finance data.

`is_allowed` is shared by the command decorator and by the background jobs,
so a user removed from ALLOWED_USER_IDS stops receiving scheduled messages too.
"""

from functools import wraps
from typing import Callable, Iterable

from telegram import Update
from telegram.ext import ContextTypes

from config import ALLOWED_USER_IDS
from utils.logger import get_logger

logger = get_logger(__name__)

DENIED_MESSAGE = "⛔ 抱歉，這是私人財務助理，未開放公開使用。"


def is_allowed(user_id: int, allowed: Iterable[int] = ALLOWED_USER_IDS) -> bool:
    """An empty whitelist allows everyone (dev mode)."""
    allowed = set(allowed)
    return not allowed or user_id in allowed


def authorized_only(func: Callable):
    """
    Decorator that runs a handler only for whitelisted users.

    Updates without a user (channel posts, service messages) are dropped
    silently; other users get DENIED_MESSAGE and the attempt is logged.
    """
    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE, *args, **kwargs):
        user = update.effective_user
        if not user:
            return

        if not is_allowed(user.id):
            logger.warning(f"🚫 Denied user_id={user.id} (@{user.username}) on {func.__name__}")
            await update.effective_message.reply_text(DENIED_MESSAGE)
            return

        return await func(update, context, *args, **kwargs)

    return wrapper
