"""
services/recurring_service.py
------------------------------
Monthly materialisation of recurring cashflow templates.

Once per calendar month every template (a record with `isRecurring` and a
`recurrenceDay`) produces one concrete record dated on that day of the
current month, unless a matching record already exists this month.
"""

import calendar
from dataclasses import replace
from datetime import date, datetime
from typing import Iterable, Optional

from config import RECURRING_MARKER
from models.cashflow import CashflowRecord
from repositories.cashflow_repo import CashflowRepository
from repositories.settings_repo import SettingsRepository
from utils.logger import get_logger

logger = get_logger(__name__)

CREATED_MESSAGE = "定額收支項目已自動建立。"
FAILED_MESSAGE = "檢查定額項目時發生錯誤。"


def already_checked(last_check: Optional[datetime], today: date) -> bool:
    """True when the last check happened in today's calendar month."""
    return (
        last_check is not None
        and last_check.year == today.year
        and last_check.month == today.month
    )


def execution_date(recurrence_day: int, today: date) -> date:
    """The template's day in today's month, clamped to the month's last day."""
    days_in_month = calendar.monthrange(today.year, today.month)[1]
    return today.replace(day=min(recurrence_day, days_in_month))


def matches_template(record: CashflowRecord, template: CashflowRecord, month: str) -> bool:
    """
    Heuristic duplicate check: same month, description containing the
    template's description, same amount and same category.
    """
    return (
        record.date.startswith(month)
        and template.description in (record.description or "")
        and record.amount == template.amount
        and record.category == template.category
    )


def instantiate(template: CashflowRecord, on: date, marker: str = RECURRING_MARKER) -> CashflowRecord:
    """A concrete, non-recurring copy of a template dated `on`."""
    description = f"{template.description} {marker}" if template.description else marker
    return replace(
        template,
        id=None,
        date=on.isoformat(),
        description=description,
        is_recurring=False,
        recurrence_day=None,
    )


def plan_recurring_records(records: Iterable[CashflowRecord], today: date) -> list[CashflowRecord]:
    """
    Records to create for today's month.

    Templates with a day outside 1-31 are skipped, as are templates that
    already have a matching record this month.
    """
    records = list(records)
    month = today.strftime("%Y-%m")
    planned = []
    for template in records:
        if not template.is_recurring or not template.recurrence_day:
            continue
        if not 1 <= template.recurrence_day <= 31:
            logger.warning(f"Skipping template {template.id}: invalid day {template.recurrence_day}")
            continue
        if any(matches_template(r, template, month) for r in records):
            continue
        planned.append(instantiate(template, execution_date(template.recurrence_day, today)))
    return planned


class RecurringService:
    """
    Handles recurring cashflow templates.

    Responsibilities:
        - Create this month's instances of every template, once per month.
        - Advance the user's "last checked" marker after a complete run.
        - List templates for display.
    """

    def __init__(self, cashflow_repo: Optional[CashflowRepository] = None,
                 settings_repo: Optional[SettingsRepository] = None):
        self.cashflow_repo = cashflow_repo or CashflowRepository()
        self.settings_repo = settings_repo or SettingsRepository()

    def check_and_create(self, user_id: int, now: Optional[datetime] = None) -> bool:
        """
        Materialise this month's recurring records for a user.

        Args:
            user_id: Owner of the records.
            now: Current time (defaults to datetime.now()).

        Returns:
            True if at least one record was created.

        Raises:
            Any store error. Writes stop at the first failure and the
            "last checked" marker is left untouched, so the next call retries
            the whole month.
        """
        now = now or datetime.now()
        today = now.date()
        settings = self.settings_repo.get(user_id)

        if already_checked(settings.last_recurring_check, today):
            return False

        records = self.cashflow_repo.get_all(user_id)
        planned = plan_recurring_records(records, today)

        for record in planned:
            try:
                self.cashflow_repo.add(user_id, record)
            except Exception as e:
                logger.error(f"Recurring run for user {user_id} aborted: {e}")
                raise
            logger.info(f"Created recurring record '{record.description}' on {record.date} for user {user_id}")

        self.settings_repo.mark_recurring_checked(user_id, now)
        return bool(planned)

    def list_templates(self, user_id: int) -> str:
        """
        Get a formatted list of all recurring templates.

        Returns:
            Formatted string or "no templates" message.
        """
        templates = sorted(
            self.cashflow_repo.get_templates(user_id),
            key=lambda t: (t.recurrence_day or 0, t.description),
        )
        if not templates:
            return "📭 目前沒有定額收支項目。"

        lines = ["🔁 定額收支項目：\n"]
        monthly_net = 0.0
        for t in templates:
            sign = "+" if t.is_income() else "-"
            lines.append(
                f"  每月 {t.recurrence_day} 日 | {t.category} | {sign}{t.amount:,.0f} {t.currency}"
                f"{' | ' + t.description if t.description else ''}  (#{t.id})"
            )
            monthly_net += t.amount if t.is_income() else -t.amount

        lines.append(f"\n💰 每月定額淨額：{monthly_net:+,.0f}")
        return "\n".join(lines)
