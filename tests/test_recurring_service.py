from datetime import date, datetime

import psycopg2
import pytest

from models.cashflow import EXPENSE, INCOME, CashflowRecord
from services.recurring_service import (
    RecurringService,
    already_checked,
    execution_date,
    plan_recurring_records,
)


def _template(description="Rent", amount=1000, category="房租", day=31, type_=EXPENSE, on="2026-01-31"):
    return CashflowRecord(type=type_, category=category, amount=amount, date=on,
                          description=description, account_id="acc1", account_name="銀行",
                          is_recurring=True, recurrence_day=day)


@pytest.fixture
def service(cashflow_repo, settings_repo):
    return RecurringService(cashflow_repo, settings_repo)


def _records(cashflow_repo, user_id):
    return [r for r in cashflow_repo.get_all(user_id) if not r.is_recurring]


def test_day_31_in_february_lands_on_the_28th(service, cashflow_repo, settings_repo, user_id):
    cashflow_repo.add(user_id, _template())
    settings_repo.mark_recurring_checked(user_id, datetime(2026, 1, 31, 9, 0))

    created = service.check_and_create(user_id, now=datetime(2026, 2, 10, 8, 0))

    assert created is True
    [record] = _records(cashflow_repo, user_id)
    assert record.date == "2026-02-28"
    assert record.description == "Rent (定額)"
    assert record.amount == 1000 and record.category == "房租"
    assert record.is_recurring is False and record.recurrence_day is None
    assert record.account_id == "acc1"


def test_day_31_in_a_30_day_month():
    assert execution_date(31, date(2026, 4, 3)) == date(2026, 4, 30)
    assert execution_date(15, date(2026, 4, 3)) == date(2026, 4, 15)
    assert execution_date(29, date(2028, 2, 1)) == date(2028, 2, 29)


def test_second_run_in_same_month_creates_nothing(service, cashflow_repo, settings_repo, user_id):
    cashflow_repo.add(user_id, _template(day=5, on="2025-12-05"))

    assert service.check_and_create(user_id, now=datetime(2026, 3, 1, 0, 5)) is True
    assert service.check_and_create(user_id, now=datetime(2026, 3, 20, 0, 5)) is False
    assert len(_records(cashflow_repo, user_id)) == 1
    assert settings_repo.get(user_id).last_recurring_check == datetime(2026, 3, 1, 0, 5)


def test_missing_marker_means_the_check_runs(service, cashflow_repo, settings_repo, user_id):
    cashflow_repo.add(user_id, _template(day=1, on="2025-11-01"))

    assert settings_repo.get(user_id).last_recurring_check is None
    assert service.check_and_create(user_id, now=datetime(2026, 3, 5)) is True


def test_marker_is_advanced_even_without_templates(service, settings_repo, user_id):
    now = datetime(2026, 5, 2, 12, 0)

    assert service.check_and_create(user_id, now=now) is False
    assert settings_repo.get(user_id).last_recurring_check == now


def test_existing_matching_record_is_not_duplicated(service, cashflow_repo, user_id):
    cashflow_repo.add(user_id, _template(description="Netflix", amount=390, category="娛樂", day=10,
                                         on="2025-10-10"))
    cashflow_repo.add(user_id, CashflowRecord(type=EXPENSE, category="娛樂", amount=390,
                                              date="2026-03-10", description="Netflix (定額)",
                                              account_id="acc1"))

    assert service.check_and_create(user_id, now=datetime(2026, 3, 12)) is False
    assert len(_records(cashflow_repo, user_id)) == 1


def test_write_failure_leaves_marker_untouched(service, cashflow_repo, settings_repo, documents, user_id):
    cashflow_repo.add(user_id, _template(description="Rent", day=1, on="2025-10-01"))
    cashflow_repo.add(user_id, _template(description="Salary", type_=INCOME, category="薪水",
                                         amount=50000, day=5, on="2025-10-05"))
    previous = datetime(2026, 2, 1)
    settings_repo.mark_recurring_checked(user_id, previous)
    documents.fail_on_add_number = documents.add_calls + 2

    with pytest.raises(psycopg2.Error):
        service.check_and_create(user_id, now=datetime(2026, 3, 1))

    assert len(_records(cashflow_repo, user_id)) == 1
    assert settings_repo.get(user_id).last_recurring_check == previous

    documents.fail_on_add_number = None
    assert service.check_and_create(user_id, now=datetime(2026, 3, 2)) is True
    descriptions = sorted(r.description for r in _records(cashflow_repo, user_id))
    assert descriptions == ["Rent (定額)", "Salary (定額)"]


def test_plan_skips_invalid_days_and_handles_blank_description():
    templates = [
        _template(description="", day=3, on="2025-01-03"),
        _template(description="Broken", day=0, on="2025-01-03"),
        _template(description="Broken too", day=32, on="2025-01-03"),
    ]
    planned = plan_recurring_records(templates, date(2026, 6, 9))

    assert [(p.date, p.description) for p in planned] == [("2026-06-03", "(定額)")]
    assert templates[0].is_recurring is True


def test_already_checked_compares_calendar_month():
    assert already_checked(datetime(2026, 3, 1), date(2026, 3, 31))
    assert not already_checked(datetime(2026, 2, 28), date(2026, 3, 1))
    assert not already_checked(datetime(2025, 3, 10), date(2026, 3, 10))
    assert not already_checked(None, date(2026, 3, 10))


def test_list_templates(service, cashflow_repo, user_id):
    assert service.list_templates(user_id) == "📭 目前沒有定額收支項目。"

    cashflow_repo.add(user_id, _template(description="Salary", type_=INCOME, category="薪水",
                                         amount=50000, day=5))
    cashflow_repo.add(user_id, _template(description="Rent", amount=18000, day=1))
    text = service.list_templates(user_id)

    assert text.index("每月 1 日") < text.index("每月 5 日")
    assert "+32,000" in text
