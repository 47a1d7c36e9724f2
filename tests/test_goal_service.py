import pytest

from models.asset import CASH, FOREIGN_ASSET, Asset, AssetAccount
from models.planning import Goal
from services.goal_service import GoalService


@pytest.fixture
def service(goal_repo, account_repo, settings_repo, rates):
    return GoalService(goal_repo, account_repo, settings_repo, rates)


@pytest.fixture
def savings(account_repo, user_id):
    return account_repo.add(user_id, AssetAccount(name="Savings", assets=[
        Asset(id="1", code="活存", category=CASH, units=1, cost=40000, current_value=40000),
        Asset(id="2", code="USD", category=FOREIGN_ASSET, units=100, cost=1, current_value=1, currency="USD"),
    ]))


def test_linked_account_seeds_current_amount(service, goal_repo, savings, user_id):
    message = service.add_goal(user_id, Goal(name="緊急預備金", target_amount=100000, account_id="savings"))

    [goal] = goal_repo.get_all(user_id)
    assert message == f"🎯 目標「緊急預備金」新增成功！（#{goal.id}）"
    assert goal.account_id == savings.id
    assert goal.current_amount == 43000


def test_unknown_account_is_rejected(service, goal_repo, user_id):
    assert service.add_goal(user_id, Goal(name="x", target_amount=1, account_id="nope")) == "⚠️ 找不到帳戶：nope"
    assert goal_repo.get_all(user_id) == []


@pytest.mark.parametrize("goal, message", [
    (Goal(name=" ", target_amount=10), "⚠️ 目標名稱為必填項。"),
    (Goal(name="車", target_amount=0), "⚠️ 目標金額必須大於 0。"),
    (Goal(name="車", target_amount=10, current_amount=-1), "⚠️ 目前金額不可為負數。"),
    (Goal(name="車", target_amount=10, target_date="someday"), "⚠️ 日期格式錯誤：someday（應為 YYYY-MM-DD）"),
])
def test_invalid_goals(service, user_id, goal, message):
    assert service.add_goal(user_id, goal) == message


def test_update_delete_and_list(service, goal_repo, user_id):
    service.add_goal(user_id, Goal(name="旅行", target_amount=60000, current_amount=15000, target_date="2027-01-01"))
    [goal] = goal_repo.get_all(user_id)

    assert service.update_goal(user_id, goal.id, current_amount=30000) == "✏️ 目標「旅行」更新成功！"
    text = service.list_goals(user_id)
    assert "█████░░░░░ 50.0%" in text
    assert "目標日 2027-01-01" in text

    assert service.delete_goal(user_id, goal.id) == f"🗑️ 目標 #{goal.id} 已刪除。"
    assert service.delete_goal(user_id, goal.id) == f"⚠️ 目標 #{goal.id} 不存在。"
    assert service.list_goals(user_id).startswith("📭")


def test_edit_relinks_and_unlinks_account(service, goal_repo, savings, user_id):
    service.add_goal(user_id, Goal(name="頭期款", target_amount=500000, current_amount=1000))
    [goal] = goal_repo.get_all(user_id)

    assert service.update_goal(user_id, goal.id, account_id="Savings") == "✏️ 目標「頭期款」更新成功！"
    [goal] = goal_repo.get_all(user_id)
    assert (goal.account_id, goal.current_amount) == (savings.id, 43000)

    service.update_goal(user_id, goal.id, account_id="")
    [goal] = goal_repo.get_all(user_id)
    assert (goal.account_id, goal.current_amount) == ("", 43000)
    assert service.update_goal(user_id, "missing", name="x") == "⚠️ 目標 #missing 不存在。"


def test_list_goals_escapes_markdown_in_names(service, user_id):
    service.add_goal(user_id, Goal(name="new_car", target_amount=1000))

    assert "*new\\_car*（#" in service.list_goals(user_id)
