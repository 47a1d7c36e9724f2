"""
services/chart_service.py
--------------------------
Generates chart images for the dashboard and reports.
Uses matplotlib to draw the allocation donut, the cashflow trend and the
budget comparison, and returns them as BytesIO buffers.
"""

import io
from datetime import date
from typing import Optional

import matplotlib
matplotlib.use("Agg")  # Non-interactive backend for server use
import matplotlib.pyplot as plt
import matplotlib.font_manager as fm

from services import metrics
from services.budget_service import BudgetService
from services.report_service import ReportService
from services.validation import validate_month
from utils.logger import get_logger

logger = get_logger(__name__)

# Try to use a font that supports Traditional Chinese
_CJK_FONTS = ["Noto Sans CJK TC", "Noto Sans TC", "Microsoft JhengHei", "PingFang TC", "Heiti TC"]
_font_found = False
for _f in _CJK_FONTS:
    if any(_f.lower() in f.name.lower() for f in fm.fontManager.ttflist):
        plt.rcParams["font.family"] = _f
        _font_found = True
        break

if not _font_found:
    plt.rcParams["font.family"] = "DejaVu Sans"

plt.rcParams["figure.facecolor"] = "#1a1a2e"
plt.rcParams["text.color"] = "#e0e0e0"
plt.rcParams["axes.facecolor"] = "#1a1a2e"

_INCOME_COLOR = "#4ECDC4"
_EXPENSE_COLOR = "#FF6B6B"
_BUDGET_COLOR = "#45B7D1"


def _style_axes(ax) -> None:
    ax.spines["top"].set_visible(False)
    ax.spines["right"].set_visible(False)
    ax.spines["left"].set_color("#444")
    ax.spines["bottom"].set_color("#444")
    ax.tick_params(colors="#e0e0e0")
    ax.grid(axis="y", alpha=0.2, color="#888")
    ax.set_axisbelow(True)


def _to_png(fig) -> io.BytesIO:
    plt.tight_layout()
    buf = io.BytesIO()
    fig.savefig(buf, format="png", dpi=150, bbox_inches="tight",
                facecolor=fig.get_facecolor())
    buf.seek(0)
    plt.close(fig)
    return buf


class ChartService:
    """Generates visual charts for portfolio, cashflow and budget data."""

    def __init__(self, reports: Optional[ReportService] = None,
                 budgets: Optional[BudgetService] = None):
        self.reports = reports or ReportService()
        self.budgets = budgets or BudgetService()

    def allocation_donut(self, user_id: int) -> io.BytesIO | None:
        """
        Donut chart of the asset allocation by category.

        Returns:
            BytesIO buffer with PNG image, or None if no assets.
        """
        snap = self.reports.snapshot(user_id)
        summary = metrics.summarize_portfolio(snap.valuations)
        if not summary.breakdown:
            return None

        labels = [b.type for b in summary.breakdown]
        values = [b.value for b in summary.breakdown]

        fig, ax = plt.subplots(figsize=(8, 6))
        wedges, _, autotexts = ax.pie(
            values,
            labels=None,
            autopct=lambda pct: f"{pct:.1f}%",
            colors=[b.color for b in summary.breakdown],
            startangle=90,
            pctdistance=0.8,
            wedgeprops=dict(width=0.4, edgecolor="#1a1a2e", linewidth=2),
        )
        for autotext in autotexts:
            autotext.set_color("white")
            autotext.set_fontsize(10)
            autotext.set_fontweight("bold")

        ax.legend(
            wedges, [f"{l}: {v:,.0f}" for l, v in zip(labels, values)],
            loc="center left",
            bbox_to_anchor=(1, 0, 0.5, 1),
            fontsize=10,
            frameon=False,
        )
        ax.set_title(f"資產配置\n總資產：{summary.total:,.0f} TWD",
                     fontsize=14, fontweight="bold", pad=20)

        logger.info(f"Generated allocation chart for user {user_id}")
        return _to_png(fig)

    def cashflow_trend_bars(self, user_id: int, months: int = 12) -> io.BytesIO | None:
        """
        Grouped income/expense bars for the last `months` months.

        Returns:
            BytesIO buffer with PNG image, or None if there are no records.
        """
        snap = self.reports.snapshot(user_id)
        trend = metrics.cashflow_trend(snap.records, snap.today, months)
        if not any(m.income or m.expense for m in trend):
            return None

        x = range(len(trend))
        width = 0.4
        fig, ax = plt.subplots(figsize=(11, 5))
        ax.bar([i - width / 2 for i in x], [m.income for m in trend], width,
               label="收入", color=_INCOME_COLOR, zorder=3)
        ax.bar([i + width / 2 for i in x], [m.expense for m in trend], width,
               label="支出", color=_EXPENSE_COLOR, zorder=3)

        ax.set_xticks(list(x))
        ax.set_xticklabels([m.month[2:] for m in trend], fontsize=9, color="#e0e0e0")
        ax.set_ylabel("金額 (TWD)", fontsize=11, color="#e0e0e0")
        ax.set_title(f"近 {months} 個月收支趨勢", fontsize=13, fontweight="bold", pad=15)
        ax.legend(frameon=False, labelcolor="#e0e0e0")
        _style_axes(ax)

        logger.info(f"Generated cashflow trend chart for user {user_id}")
        return _to_png(fig)

    def budget_bars(self, user_id: int, month: Optional[str] = None) -> io.BytesIO | None:
        """
        Budget vs spent per category for a month.

        Returns:
            BytesIO buffer with PNG image, or None if nothing to compare.

        Raises:
            ValidationError: For a malformed month.
        """
        month = validate_month(month) if month else date.today().strftime("%Y-%m")
        progress = self.budgets.get_progress(user_id, month)
        if not progress.lines:
            return None

        x = range(len(progress.lines))
        width = 0.4
        fig, ax = plt.subplots(figsize=(10, 5))
        ax.bar([i - width / 2 for i in x], [l.budget for l in progress.lines], width,
               label="預算", color=_BUDGET_COLOR, zorder=3)
        bars = ax.bar([i + width / 2 for i in x], [l.spent for l in progress.lines], width,
                      label="實際支出", zorder=3,
                      color=[_EXPENSE_COLOR if l.over_budget else _INCOME_COLOR for l in progress.lines])

        for bar, line in zip(bars, progress.lines):
            if line.over_budget:
                ax.text(bar.get_x() + bar.get_width() / 2, bar.get_height(), "⚠",
                        ha="center", va="bottom", color=_EXPENSE_COLOR, fontsize=11)

        ax.set_xticks(list(x))
        ax.set_xticklabels([l.category for l in progress.lines], fontsize=10, color="#e0e0e0")
        ax.set_title(f"預算 vs 實際支出 - {month}", fontsize=13, fontweight="bold", pad=15)
        ax.legend(frameon=False, labelcolor="#e0e0e0")
        _style_axes(ax)

        logger.info(f"Generated budget chart for user {user_id}, {month}")
        return _to_png(fig)

