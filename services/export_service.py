"""
services/export_service.py
---------------------------
Generates CSV and Excel exports of a month's cashflow and the investment
profit & loss statement.
"""

import io
from typing import Optional

import pandas as pd

from services import metrics
from services.report_service import ReportService
from services.validation import validate_month
from utils.logger import get_logger

logger = get_logger(__name__)

RECORD_COLUMNS = ["日期", "類型", "類別", "金額", "幣別", "帳戶", "說明"]
PNL_COLUMNS = ["代號", "帳戶", "類別", "單位數", "成本 (TWD)", "市值 (TWD)", "損益 (TWD)", "報酬率 (%)"]


class ExportService:
    """Generates downloadable financial reports in CSV and Excel formats."""

    def __init__(self, reports: Optional[ReportService] = None):
        self.reports = reports or ReportService()

    def records_frame(self, user_id: int, month: str) -> pd.DataFrame:
        """A month's cashflow records, oldest first."""
        month = validate_month(month)
        records = sorted(
            (r for r in self.reports.cashflow_repo.get_all(user_id) if r.month == month),
            key=lambda r: (r.date, r.id or ""),
        )
        data = [
            {
                "日期": r.date,
                "類型": "收入" if r.is_income() else "支出",
                "類別": r.category,
                "金額": r.amount,
                "幣別": r.currency,
                "帳戶": r.account_name,
                "說明": r.description,
            }
            for r in records
        ]
        return pd.DataFrame(data, columns=RECORD_COLUMNS)

    def pnl_frame(self, user_id: int) -> pd.DataFrame:
        snap = self.reports.snapshot(user_id)
        statement = metrics.pnl_statement(snap.valuations)
        data = [
            {
                "代號": v.asset.code,
                "帳戶": v.account_name,
                "類別": v.asset.category,
                "單位數": v.asset.units,
                "成本 (TWD)": round(v.cost_in_home, 2),
                "市值 (TWD)": round(v.value_in_home, 2),
                "損益 (TWD)": round(v.profit_loss, 2),
                "報酬率 (%)": round(v.pnl_pct * 100, 2),
            }
            for v in statement.rows
        ]
        return pd.DataFrame(data, columns=PNL_COLUMNS)

    def export_month_csv(self, user_id: int, month: str) -> io.BytesIO:
        """
        Export a month's cashflow records as a CSV file.

        Args:
            user_id: Telegram user ID.
            month: YYYY-MM.

        Returns:
            A BytesIO buffer containing the CSV data.
        """
        df = self.records_frame(user_id, month)
        buffer = io.BytesIO()
        df.to_csv(buffer, index=False, encoding="utf-8-sig")
        buffer.seek(0)
        logger.info(f"Exported {len(df)} records as CSV for user {user_id}")
        return buffer

    def export_month_excel(self, user_id: int, month: str) -> io.BytesIO:
        """
        Export a month's records, a per-category summary and the P/L
        statement as an Excel (.xlsx) workbook.
        """
        df = self.records_frame(user_id, month)
        pnl = self.pnl_frame(user_id)

        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            df.to_excel(writer, sheet_name="收支紀錄", index=False)

            if not df.empty:
                summary = df.groupby(["類型", "類別"])["金額"].sum().reset_index()
                summary.columns = ["類型", "類別", "合計"]
                summary.to_excel(writer, sheet_name="分類統計", index=False)

            pnl.to_excel(writer, sheet_name="投資損益", index=False)

        buffer.seek(0)
        logger.info(f"Exported {len(df)} records and {len(pnl)} holdings as Excel for user {user_id}")
        return buffer
