import json
from datetime import date

import pytest

from ai import gemini_assistant
from models.asset import CASH, Asset, AssetAccount
from models.cashflow import EXPENSE, INCOME, CashflowRecord
from models.planning import Goal
from services.assistant_service import MAX_HISTORY_TURNS, AssistantService, summarize


class FakeChat:
    def __init__(self, model, history):
        self.model = model
        self.history = history

    def send_message(self, question, generation_config=None):
        self.model.sent.append(question)
        if self.model.error:
            raise self.model.error
        return type("Response", (), {"text": f"  answer to {question}  "})()


class FakeModel:
    instances = []

    def __init__(self, model_name, system_instruction=None):
        self.model_name = model_name
        self.system_instruction = system_instruction
        self.sent = []
        self.error = None
        self.chats = []
        FakeModel.instances.append(self)

    def start_chat(self, history=None):
        chat = FakeChat(self, history)
        self.chats.append(chat)
        return chat


@pytest.fixture
def fake_gemini(monkeypatch):
    FakeModel.instances = []
    monkeypatch.setattr(gemini_assistant.genai, "GenerativeModel", FakeModel)
    monkeypatch.setattr(gemini_assistant, "GEMINI_API_KEY", "test-key")
    return FakeModel


@pytest.fixture
def populated(cashflow_repo, account_repo, goal_repo, user_id):
    account_repo.add(user_id, AssetAccount(name="Bank", assets=[
        Asset(id="1", code="cash", category=CASH, units=1, cost=120000.4, current_value=120000.4),
    ]))
    cashflow_repo.add(user_id, CashflowRecord(type=INCOME, category="薪水", amount=50000,
                                              date="2026-02-05", account_id="x"))
    cashflow_repo.add(user_id, CashflowRecord(type=EXPENSE, category="餐飲", amount=8123.6,
                                              date="2026-02-15", account_id="x"))
    goal_repo.add(user_id, Goal(name="旅行", target_amount=30000, current_amount=10000))


def test_summary_format(reports, populated, user_id):
    summary = summarize(reports.snapshot(user_id, today=date(2026, 3, 10)))

    assert summary == {
        "totalAssets": "120000",
        "lastMonthIncome": "50000",
        "lastMonthExpense": "8124",
        "goals": [{"name": "旅行", "progress": "33.3%"}],
    }


def test_summary_json_keeps_chinese_readable(reports, populated, user_id):
    text = AssistantService(reports).summary_json(user_id, today=date(2026, 3, 10))

    assert "旅行" in text
    assert json.loads(text)["totalAssets"] == "120000"


def test_ask_records_history_on_success(fake_gemini, reports, user_id):
    history = []
    service = AssistantService(reports)

    answer = service.ask(user_id, "我上個月花多少？", history)

    assert answer == "answer to 我上個月花多少？"
    assert history == [
        {"role": "user", "parts": ["我上個月花多少？"]},
        {"role": "model", "parts": ["answer to 我上個月花多少？"]},
    ]
    [model] = fake_gemini.instances
    assert "Navi" in model.system_instruction
    assert '"totalAssets": "0"' in model.system_instruction


def test_history_is_replayed_and_trimmed(fake_gemini, reports, user_id):
    history = []
    service = AssistantService(reports)

    for i in range(MAX_HISTORY_TURNS):
        service.ask(user_id, f"q{i}", history)

    assert len(history) == MAX_HISTORY_TURNS
    assert history[0] == {"role": "user", "parts": [f"q{MAX_HISTORY_TURNS // 2}"]}
    last_chat = fake_gemini.instances[-1].chats[0]
    assert len(last_chat.history) == MAX_HISTORY_TURNS


def test_api_failure_returns_apology_and_keeps_history(monkeypatch, fake_gemini, reports, user_id):
    history = [{"role": "user", "parts": ["hi"]}, {"role": "model", "parts": ["hello"]}]

    def broken(*args, **kwargs):
        model = FakeModel(*args, **kwargs)
        model.error = RuntimeError("quota exceeded")
        return model

    monkeypatch.setattr(gemini_assistant.genai, "GenerativeModel", broken)

    assert AssistantService(reports).ask(user_id, "still there?", history) == gemini_assistant.APOLOGY_MESSAGE
    assert len(history) == 2


def test_missing_key_is_reported():
    assert gemini_assistant.ask("hi", "{}", api_key="") == gemini_assistant.NOT_CONFIGURED_MESSAGE


def test_summary_failure_returns_apology(user_id):
    class BrokenReports:
        def snapshot(self, user_id, today=None):
            raise RuntimeError("db down")

    assert AssistantService(BrokenReports()).ask(user_id, "q", []) == gemini_assistant.APOLOGY_MESSAGE
