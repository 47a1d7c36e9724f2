"""
ai/gemini_assistant.py
----------------------
Talks to Google Gemini on behalf of the "Navi" finance assistant.

Responsibilities:
    - Build the system instruction around the user's financial summary.
    - Replay the chat history kept by the caller and send the new question.
    - Degrade to fixed messages when the key is missing or the API fails.
"""

import google.generativeai as genai

from config import GEMINI_API_KEY, GEMINI_MODEL
from utils.logger import get_logger

logger = get_logger(__name__)

GREETING = (
    "你好！我是您的個人財務助理 Navi。請問有什麼可以為您服務的嗎？"
    "例如，您可以問我「我上個月的花費狀況如何？」或「我該如何更快達成我的儲蓄目標？」"
)
NOT_CONFIGURED_MESSAGE = "AI 助理未設定 API 金鑰，目前無法使用。"
APOLOGY_MESSAGE = "抱歉，我現在無法回答。請稍後再試。"

_SYSTEM_INSTRUCTION = (
    "You are a helpful and insightful personal finance assistant for the "
    "'Personal Finance Navigator' app. Your name is 'Navi'. You must respond in "
    "Traditional Chinese (繁體中文). Analyze the user's financial data to provide "
    "personalized advice, answer questions, and help with goals. Be encouraging, "
    "clear, and format your responses with markdown for better readability. "
    "Here is the user's data summary: \n{summary}"
)

if GEMINI_API_KEY:
    genai.configure(api_key=GEMINI_API_KEY)


def build_system_instruction(summary_json: str) -> str:
    return _SYSTEM_INSTRUCTION.format(summary=summary_json)


def ask(question: str, summary_json: str, history: list[dict] | None = None,
        api_key: str | None = None) -> str:
    """
    Send a question to Gemini with the financial summary as system instruction.

    Args:
        question:     The user's message.
        summary_json: JSON string produced by the assistant service.
        history:      Previous turns as {"role": "user"|"model", "parts": [text]}.
        api_key:      Overrides the configured key (tests, multi-key setups).

    Returns:
        The model's answer, or one of the fixed fallback messages.
    """
    key = GEMINI_API_KEY if api_key is None else api_key
    if not key:
        return NOT_CONFIGURED_MESSAGE

    try:
        model = genai.GenerativeModel(
            GEMINI_MODEL,
            system_instruction=build_system_instruction(summary_json),
        )
        chat = model.start_chat(history=list(history or []))
        response = chat.send_message(
            question,
            generation_config=genai.GenerationConfig(temperature=0.7),
        )
        answer = response.text.strip()
        logger.info(f"Gemini answered {len(answer)} chars")
        return answer or APOLOGY_MESSAGE
    except Exception as e:
        logger.error(f"Gemini API error: {e}")
        return APOLOGY_MESSAGE
