from datetime import date

import pytest

from models.asset import CASH, ETF, Asset, AssetAccount
from models.cashflow import EXPENSE, CashflowRecord
from models.planning import Budget
from services.budget_service import BudgetService
from services.chart_service import ChartService
from services.validation import ValidationError

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


@pytest.fixture
def charts(reports, budget_repo, cashflow_repo, settings_repo):
    return ChartService(reports, BudgetService(budget_repo, cashflow_repo, settings_repo))


def test_charts_are_skipped_without_data(charts, user_id):
    assert charts.allocation_donut(user_id) is None
    assert charts.cashflow_trend_bars(user_id) is None
    assert charts.budget_bars(user_id, "2026-03") is None


def test_allocation_donut_renders_png(charts, account_repo, user_id):
    account_repo.add(user_id, AssetAccount(name="Bank", assets=[
        Asset(id="1", code="活存", category=CASH, units=1, cost=1000, current_value=1000),
        Asset(id="2", code="0050", category=ETF, units=10, cost=100, current_value=150),
    ]))

    assert charts.allocation_donut(user_id).getvalue().startswith(PNG_SIGNATURE)


def test_trend_and_budget_bars_render_png(charts, cashflow_repo, budget_repo, user_id):
    month = date.today().strftime("%Y-%m")
    cashflow_repo.add(user_id, CashflowRecord(type=EXPENSE, category="餐飲", amount=900,
                                              date=date.today().isoformat(), account_id="a"))
    budget_repo.add(user_id, Budget(month=month, category="餐飲", amount=800))

    assert charts.cashflow_trend_bars(user_id).getvalue().startswith(PNG_SIGNATURE)
    assert charts.budget_bars(user_id).getvalue().startswith(PNG_SIGNATURE)


def test_budget_bars_reject_malformed_month(charts, user_id):
    with pytest.raises(ValidationError):
        charts.budget_bars(user_id, "2026/03")
