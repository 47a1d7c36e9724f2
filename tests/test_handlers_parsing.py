from datetime import date

import pytest

from handlers.asset_handler import parse_asset_args
from handlers.budget_handler import parse_bulk_amounts
from handlers.cashflow_handler import parse_amount, parse_cashflow_args, parse_edit_args
from handlers.goal_handler import parse_goal_args, parse_goal_edit_args
from handlers.report_handler import parse_pnl_args
from models.cashflow import EXPENSE, INCOME
from services.validation import ValidationError


# ── /add ──────────────────────────────────────────────────

def test_parse_minimal_expense_defaults_to_today():
    record = parse_cashflow_args("支出 | 餐飲 | 250 | 錢包")

    assert (record.type, record.category, record.amount, record.account_id) == (EXPENSE, "餐飲", 250, "錢包")
    assert record.date == date.today().isoformat()
    assert record.is_recurring is False and record.recurrence_day is None


def test_parse_full_income_with_recurrence_day():
    record = parse_cashflow_args("income | 薪水 | 52,000 | 薪轉戶 | 十月薪水 | 2026-10-05 | 5")

    assert record.type == INCOME
    assert record.amount == 52000
    assert record.description == "十月薪水"
    assert record.date == "2026-10-05"
    assert record.is_recurring is True and record.recurrence_day == 5


def test_parse_recurring_with_blank_date():
    record = parse_cashflow_args("- | 居住 | 18000 | 薪轉戶 | 房租 | | 5")

    assert record.type == EXPENSE
    assert record.date == date.today().isoformat()
    assert record.recurrence_day == 5


@pytest.mark.parametrize("text", [
    "支出 | 餐飲 | 250",
    "transfer | 餐飲 | 250 | 錢包",
    "支出 | 餐飲 | lots | 錢包",
    "支出 | 居住 | 100 | 錢包 | | | fifth",
])
def test_parse_cashflow_rejects_bad_input(text):
    with pytest.raises(ValidationError):
        parse_cashflow_args(text)


def test_parse_amount_strips_currency_marks():
    assert parse_amount("NT$ 1,250.5") == 1250.5
    with pytest.raises(ValueError):
        parse_amount("free")


# ── /edit ─────────────────────────────────────────────────

def test_parse_edit_values_may_contain_spaces():
    changes = parse_edit_args(["amount=300", "description=late", "lunch", "with", "team", "類別=娛樂"])

    assert changes == {"amount": 300.0, "description": "late lunch with team", "category": "娛樂"}


def test_parse_edit_recurrence_day():
    assert parse_edit_args(["day=12"]) == {"recurrence_day": 12, "is_recurring": True}
    assert parse_edit_args(["每月=無"]) == {"recurrence_day": None, "is_recurring": False}
    assert parse_edit_args(["type=收入"]) == {"type": INCOME}


@pytest.mark.parametrize("args", [[], ["just", "words"], ["colour=red"], ["amount=abc"], ["day=soon"]])
def test_parse_edit_rejects_bad_input(args):
    with pytest.raises(ValidationError):
        parse_edit_args(args)


# ── Other commands ────────────────────────────────────────

def test_parse_pnl_args():
    assert parse_pnl_args([]) == ("pnl", True)
    assert parse_pnl_args(["CODE", "asc"]) == ("code", False)
    assert parse_pnl_args(["value", "desc"]) == ("value", True)


def test_parse_bulk_amounts():
    assert parse_bulk_amounts(["餐飲=8000", "交通=3,000", "娛樂=0"]) == {"餐飲": 8000, "交通": 3000, "娛樂": 0}
    with pytest.raises(ValueError):
        parse_bulk_amounts(["餐飲8000"])
    with pytest.raises(ValueError):
        parse_bulk_amounts(["餐飲=lots"])


def test_parse_goal_args():
    goal = parse_goal_args("日本旅行 | 80,000 | 12000 | 2027-04-01 | 數位帳戶")

    assert (goal.name, goal.target_amount, goal.current_amount) == ("日本旅行", 80000, 12000)
    assert (goal.target_date, goal.account_id) == ("2027-04-01", "數位帳戶")
    assert parse_goal_args("緊急預備金 | 300000").current_amount == 0
    with pytest.raises(ValidationError):
        parse_goal_args("只有名稱")
    with pytest.raises(ValidationError):
        parse_goal_args("車 | a lot")


def test_parse_goal_edit_args():
    changes = parse_goal_edit_args(["目前金額=120,000", "name=Japan", "trip", "date=none"])

    assert changes == {"current_amount": 120000, "name": "Japan trip", "target_date": ""}
    assert parse_goal_edit_args(["account=證券戶", "target=5e5"]) == {"account_id": "證券戶", "target_amount": 500000}
    assert parse_goal_edit_args(["帳戶=無"]) == {"account_id": ""}


@pytest.mark.parametrize("args", [[], ["target"], ["colour=red"], ["target=lots"]])
def test_parse_goal_edit_rejects_bad_input(args):
    with pytest.raises(ValidationError):
        parse_goal_edit_args(args)


def test_parse_asset_args():
    account, asset = parse_asset_args("複委託 | VOO | 美元資產 | 10 | 400 | 480 | usd")

    assert account == "複委託"
    assert (asset.code, asset.category, asset.units, asset.cost, asset.current_value, asset.currency) == \
        ("VOO", "美元資產", 10, 400, 480, "USD")
    assert parse_asset_args("銀行 | 活存 | 現金 | 1 | 200,000 | 200,000")[1].currency == "TWD"
    with pytest.raises(ValidationError):
        parse_asset_args("銀行 | 活存 | 現金 | 1")
    with pytest.raises(ValidationError):
        parse_asset_args("銀行 | 活存 | 現金 | one | 2 | 3")
