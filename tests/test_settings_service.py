import pytest

from models.cashflow import EXPENSE, INCOME
from services.settings_service import SettingsService


@pytest.fixture
def service(settings_repo, rates):
    return SettingsService(settings_repo, rates)


def test_add_and_remove_custom_category(service, settings_repo, user_id):
    assert service.add_category(user_id, EXPENSE, " 寵物 ") == "✅ 類別「寵物」新增成功！"
    assert "寵物" in settings_repo.get(user_id).categories(EXPENSE)

    assert service.remove_category(user_id, EXPENSE, "寵物") == "🗑️ 類別「寵物」已移除。"
    assert "寵物" not in settings_repo.get(user_id).categories(EXPENSE)
    assert service.remove_category(user_id, EXPENSE, "寵物") == "⚠️ 找不到類別「寵物」。"


def test_duplicate_categories_are_rejected(service, user_id):
    service.add_category(user_id, INCOME, "股利")

    assert service.add_category(user_id, INCOME, "股利") == "⚠️ 類別已存在。"
    assert service.add_category(user_id, INCOME, "薪水") == "⚠️ 類別已存在。"
    assert service.add_category(user_id, "transfer", "x") == "⚠️ 請指定類型（income/expense）與類別名稱。"


def test_default_categories_cannot_be_removed(service, user_id):
    assert service.remove_category(user_id, EXPENSE, "餐飲") == "⚠️ 「餐飲」是預設類別，無法移除。"


def test_manual_rate_override(service, settings_repo, user_id):
    assert service.rate_status(user_id) == "💱 目前 USD/TWD 匯率：30.00（系統匯率）"

    assert service.set_manual_rate(user_id, 31.25) == "💱 匯率已更新為 31.25"
    assert service.rate_status(user_id) == "💱 目前 USD/TWD 匯率：31.25（手動設定）"

    assert service.set_manual_rate(user_id, 0) == "⚠️ 匯率必須大於 0。"
    assert service.set_manual_rate(user_id, -3) == "⚠️ 匯率必須大於 0。"
    assert settings_repo.get(user_id).manual_rate == 31.25

    assert "已清除" in service.set_manual_rate(user_id, None)
    assert settings_repo.get(user_id).manual_rate is None


def test_list_categories_shows_defaults_then_custom(service, user_id):
    service.add_category(user_id, EXPENSE, "寵物")
    text = service.list_categories(user_id)

    assert text.index("其他支出") < text.index("寵物")
    assert "薪水" in text
