"""
services/validation.py
-----------------------
Input checks run by the writer services before anything is persisted,
and the user-facing messages for failed writes.
A failed check raises ValidationError carrying a user-facing message.
"""

import math
from datetime import date

from models.cashflow import CashflowRecord, EXPENSE, INCOME
from models.settings import Settings
from models.asset import ASSET_CATEGORIES, Asset
from config import FOREIGN_CURRENCY, HOME_CURRENCY

STORE_FAILURE_MESSAGE = "⚠️ 儲存資料時發生錯誤，請稍後再試。"


class ValidationError(ValueError):
    """Raised when user input is rejected. str(error) is shown to the user."""


def validate_month(month: str) -> str:
    """Check a YYYY-MM key and return it normalised."""
    try:
        year, mon = month.strip().split("-")
        return date(int(year), int(mon), 1).strftime("%Y-%m")
    except (ValueError, AttributeError):
        raise ValidationError(f"月份格式錯誤：{month}（應為 YYYY-MM）")


def validate_amount(amount: float, label: str = "金額") -> float:
    if amount is None or not math.isfinite(amount) or amount <= 0:
        raise ValidationError(f"{label}必須大於 0。")
    return float(amount)


def validate_recurrence_day(day) -> int:
    try:
        value = int(day)
    except (TypeError, ValueError):
        value = 0
    if value < 1 or value > 31:
        raise ValidationError("請為定額項目設定有效的每月執行日期 (1-31)。")
    return value


def validate_cashflow(record: CashflowRecord, settings: Settings) -> None:
    """
    Validate a cashflow record before it is written.

    Raises:
        ValidationError: On a missing category/account, a non-positive amount,
            an unknown category, a malformed date or an invalid recurrence day.
    """
    if record.type not in (INCOME, EXPENSE):
        raise ValidationError("類型必須是收入或支出。")
    if not record.category or not record.account_id:
        raise ValidationError("類別、金額和帳戶為必填項。")
    validate_amount(record.amount)
    if record.category not in settings.categories(record.type):
        raise ValidationError(f"未知的類別：{record.category}")
    if record.currency not in (HOME_CURRENCY, FOREIGN_CURRENCY):
        raise ValidationError(f"不支援的幣別：{record.currency}")
    try:
        date.fromisoformat(record.date)
    except ValueError:
        raise ValidationError(f"日期格式錯誤：{record.date}（應為 YYYY-MM-DD）")
    if record.is_recurring:
        record.recurrence_day = validate_recurrence_day(record.recurrence_day)
    else:
        record.recurrence_day = None


def validate_asset(asset: Asset) -> None:
    if not asset.code.strip():
        raise ValidationError("資產代號為必填項。")
    if asset.category not in ASSET_CATEGORIES:
        raise ValidationError(f"未知的資產類型：{asset.category}")
    if asset.currency not in (HOME_CURRENCY, FOREIGN_CURRENCY):
        raise ValidationError(f"不支援的幣別：{asset.currency}")
    if asset.units < 0 or asset.cost < 0 or asset.current_value < 0:
        raise ValidationError("單位數、成本與現值不可為負數。")
