"""
security/rate_limiter.py
-------------------------
Rate limiting middleware. Assistant questions cost an API call each, so
every user gets a bounded number of messages per time window.
"""

import time
from collections import defaultdict
from functools import wraps
from typing import Callable, Optional

from telegram import Update
from telegram.ext import ContextTypes

from config import RATE_LIMIT_MESSAGES, RATE_LIMIT_WINDOW_SECONDS
from utils.logger import get_logger

logger = get_logger(__name__)


class SlidingWindowLimiter:
    """Tracks message timestamps per user: {user_id: [t1, t2, ...]}."""

    def __init__(self, limit: int = RATE_LIMIT_MESSAGES, window: float = RATE_LIMIT_WINDOW_SECONDS):
        self.limit = limit
        self.window = window
        self._timestamps: dict[int, list[float]] = defaultdict(list)

    def allow(self, user_id: int, now: Optional[float] = None) -> bool:
        """Record a message and report whether it is within the limit."""
        now = time.time() if now is None else now
        cutoff = now - self.window
        recent = [t for t in self._timestamps[user_id] if t > cutoff]
        if len(recent) >= self.limit:
            self._timestamps[user_id] = recent
            return False
        recent.append(now)
        self._timestamps[user_id] = recent
        return True


THROTTLED_MESSAGE = "⚠️ 訊息太頻繁了，請稍候再試。"

_limiter = SlidingWindowLimiter()


def rate_limited(func: Callable):
    """
    Decorator that enforces rate limiting per user.

    Configuration (via .env):
        RATE_LIMIT_MESSAGES: Max messages per window (default: 30).
        RATE_LIMIT_WINDOW_SECONDS: Window duration in seconds (default: 60).
    """
    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE, *args, **kwargs):
        user = update.effective_user
        if not user:
            return

        if not _limiter.allow(user.id):
            logger.warning(f"⚠️ Rate limit hit for user {user.id}")
            await update.effective_message.reply_text(THROTTLED_MESSAGE)
            return

        return await func(update, context, *args, **kwargs)

    return wrapper
