"""
handlers/assistant_handler.py
------------------------------
Handles conversations with the AI assistant.
/ask and any plain text message go to Navi; /reset_chat clears the history.
The history lives in the chat's user_data and never reaches the database.
"""

from telegram import Update
from telegram.constants import ChatAction
from telegram.ext import ContextTypes

from services.assistant_service import AssistantService
from security.auth import authorized_only
from security.rate_limiter import rate_limited
from utils.logger import get_logger

logger = get_logger(__name__)
assistant_service = AssistantService()

HISTORY_KEY = "assistant_history"


async def _answer(update: Update, context: ContextTypes.DEFAULT_TYPE, question: str) -> None:
    user = update.effective_user
    if HISTORY_KEY not in context.user_data:
        context.user_data[HISTORY_KEY] = []
        await update.message.reply_text(assistant_service.greeting())

    await update.message.chat.send_action(ChatAction.TYPING)
    answer = assistant_service.ask(user.id, question, context.user_data[HISTORY_KEY])
    await update.message.reply_text(answer)


@authorized_only
@rate_limited
async def ask_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /ask <question>."""
    if not context.args:
        if HISTORY_KEY not in context.user_data:
            context.user_data[HISTORY_KEY] = []
        await update.message.reply_text(assistant_service.greeting())
        return
    await _answer(update, context, " ".join(context.args))


@authorized_only
@rate_limited
async def handle_text_message(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle any plain text message (not a command) as a question for Navi."""
    text = (update.message.text or "").strip()
    if not text:
        return
    await _answer(update, context, text)


@authorized_only
async def reset_chat_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /reset_chat - forget the conversation."""
    context.user_data.pop(HISTORY_KEY, None)
    logger.info(f"User {update.effective_user.id} reset the assistant chat")
    await update.message.reply_text("🧹 對話紀錄已清除。")
