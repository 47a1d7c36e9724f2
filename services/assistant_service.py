"""
services/assistant_service.py
------------------------------
Builds the financial summary handed to the AI assistant and keeps the
per-chat conversation history.
"""

import json
from datetime import date
from typing import Optional

from ai import gemini_assistant
from services import metrics
from services.report_service import ReportService, Snapshot
from utils.logger import get_logger

logger = get_logger(__name__)

# Turns kept in the chat history (one turn = one user or model message)
MAX_HISTORY_TURNS = 20


def summarize(snapshot: Snapshot) -> dict:
    """
    The summary the assistant sees: total assets, last month's income and
    expense (whole units, as strings) and goal progress as percentages.
    """
    total = metrics.summarize_portfolio(snapshot.valuations).total
    last_month = metrics.previous_month_summary(snapshot.records, snapshot.today)
    return {
        "totalAssets": f"{total:.0f}",
        "lastMonthIncome": f"{last_month.income:.0f}",
        "lastMonthExpense": f"{last_month.expense:.0f}",
        "goals": [
            {"name": g["name"], "progress": f"{g['progress'] * 100:.1f}%"}
            for g in metrics.goal_progress(snapshot.goals)
        ],
    }


class AssistantService:
    """Answers free-form questions about the user's finances."""

    def __init__(self, reports: Optional[ReportService] = None):
        self.reports = reports or ReportService()

    def summary_json(self, user_id: int, today: Optional[date] = None) -> str:
        return json.dumps(summarize(self.reports.snapshot(user_id, today)), ensure_ascii=False)

    def ask(self, user_id: int, question: str, history: list[dict]) -> str:
        """
        Answer `question`, extending `history` in place on success.

        Failed answers are not recorded so the next question starts from the
        last good exchange.
        """
        try:
            summary = self.summary_json(user_id)
        except Exception as e:
            logger.error(f"Failed to build assistant summary for user {user_id}: {e}")
            return gemini_assistant.APOLOGY_MESSAGE

        answer = gemini_assistant.ask(question, summary, history)
        if answer in (gemini_assistant.APOLOGY_MESSAGE, gemini_assistant.NOT_CONFIGURED_MESSAGE):
            return answer

        history.append({"role": "user", "parts": [question]})
        history.append({"role": "model", "parts": [answer]})
        del history[:-MAX_HISTORY_TURNS]
        return answer

    @staticmethod
    def greeting() -> str:
        return gemini_assistant.GREETING
