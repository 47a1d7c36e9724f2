from datetime import date

import pytest

from models.cashflow import EXPENSE, CashflowRecord
from services.budget_service import BudgetService
from services.validation import STORE_FAILURE_MESSAGE


@pytest.fixture
def service(budget_repo, cashflow_repo, settings_repo):
    return BudgetService(budget_repo, cashflow_repo, settings_repo)


def _spend(cashflow_repo, user_id, category, amount, on=None):
    cashflow_repo.add(user_id, CashflowRecord(type=EXPENSE, category=category, amount=amount,
                                              date=on or date.today().isoformat(), account_id="a1"))


def test_setting_same_month_and_category_updates_in_place(service, budget_repo, user_id):
    first = service.set_budget(user_id, "餐飲", 8000, "2026-03")
    second = service.set_budget(user_id, "餐飲", 9500, "2026-03")

    assert "新增" in first and "更新" in second
    budgets = budget_repo.get_for_month(user_id, "2026-03")
    assert [(b.category, b.amount) for b in budgets] == [("餐飲", 9500)]


def test_set_budget_rejects_bad_input(service, budget_repo, user_id):
    assert service.set_budget(user_id, "薪水", 100, "2026-03") == "⚠️ 未知的支出類別：薪水"
    assert service.set_budget(user_id, "餐飲", 0, "2026-03") == "⚠️ 預算金額必須大於 0。"
    assert service.set_budget(user_id, "餐飲", float("inf"), "2026-03") == "⚠️ 預算金額必須大於 0。"
    assert service.set_budget(user_id, "餐飲", 10, "2026-13").startswith("⚠️ 月份格式錯誤")
    assert budget_repo.get_all(user_id) == []


def test_store_failure_is_reported(service, documents, user_id):
    documents.fail_on_add_number = 1

    assert service.set_budget(user_id, "餐飲", 100, "2026-03") == STORE_FAILURE_MESSAGE


def test_save_month_sets_updates_and_deletes(service, budget_repo, user_id):
    service.set_budget(user_id, "餐飲", 8000, "2026-04")
    service.set_budget(user_id, "交通", 2000, "2026-04")

    message = service.save_month(user_id, "2026-04", {"餐飲": 7000, "交通": 0, "娛樂": 1500, "教育": -5})

    assert message == "✅ 2026-04 預算儲存成功！"
    amounts = {b.category: b.amount for b in budget_repo.get_for_month(user_id, "2026-04")}
    assert amounts == {"餐飲": 7000, "娛樂": 1500}


@pytest.mark.parametrize("amounts, message", [
    ({"餐飲": 7000, "薪水": 100}, "⚠️ 未知的支出類別：薪水"),
    ({"餐飲": 7000, "交通": float("nan")}, "⚠️ 「交通」預算金額必須是數字。"),
    ({"交通": float("inf")}, "⚠️ 「交通」預算金額必須是數字。"),
])
def test_save_month_rejects_whole_batch_on_bad_entry(service, budget_repo, user_id, amounts, message):
    service.set_budget(user_id, "交通", 2000, "2026-04")

    assert service.save_month(user_id, "2026-04", amounts) == message
    amounts_saved = {b.category: b.amount for b in budget_repo.get_for_month(user_id, "2026-04")}
    assert amounts_saved == {"交通": 2000}


def test_delete_budget(service, budget_repo, user_id):
    service.set_budget(user_id, "居住", 15000, "2026-05")

    assert service.delete_budget(user_id, "居住", "2026-05") == "🗑️ 已刪除 2026-05「居住」的預算。"
    assert service.delete_budget(user_id, "居住", "2026-05") == "⚠️ 2026-05 沒有「居住」的預算。"
    assert budget_repo.get_all(user_id) == []


def test_budget_status_lists_over_budget_and_unbudgeted(service, cashflow_repo, user_id):
    service.set_budget(user_id, "餐飲", 1000, "2026-03")
    _spend(cashflow_repo, user_id, "餐飲", 1200, "2026-03-05")
    _spend(cashflow_repo, user_id, "購物", 300, "2026-03-06")

    text = service.get_budget_status(user_id, "2026-03")

    assert "🔴 *餐飲*：1,200 / 1,000（120%）" in text
    assert "⚪ *購物*" in text
    assert "總預算 1,000 | 總支出 1,500" in text


def test_budget_status_empty_month(service, user_id):
    assert service.get_budget_status(user_id, "2020-01").startswith("📭")


def test_alert_thresholds(service, cashflow_repo, user_id):
    service.set_budget(user_id, "餐飲", 1000)

    _spend(cashflow_repo, user_id, "餐飲", 500)
    assert service.check_budget_alert(user_id, "餐飲") is None

    _spend(cashflow_repo, user_id, "餐飲", 350)
    assert service.check_budget_alert(user_id, "餐飲") == "🟡 「餐飲」已使用 85% 預算！"

    _spend(cashflow_repo, user_id, "餐飲", 150)
    assert service.check_budget_alert(user_id, "餐飲") == "🔴 「餐飲」已超出預算！（100%）"

    assert service.check_budget_alert(user_id, "交通") is None


def test_alert_checks_the_month_of_the_expense(service, cashflow_repo, user_id):
    service.set_budget(user_id, "餐飲", 1000, "2026-01")
    _spend(cashflow_repo, user_id, "餐飲", 900, "2026-01-20")

    assert service.check_budget_alert(user_id, "餐飲", month="2026-01") == "🟡 「餐飲」已使用 90% 預算！"
    assert service.check_budget_alert(user_id, "餐飲") is None


def test_progress_bar():
    assert BudgetService._progress_bar(0) == "░" * 15
    assert BudgetService._progress_bar(120) == "█" * 15 + " ⚠️"
    assert BudgetService._progress_bar(80).endswith(" ⚡")
