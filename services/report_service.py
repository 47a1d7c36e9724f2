"""
services/report_service.py
---------------------------
Loads a user's data and renders the dashboard, monthly report and
profit & loss statement as chat text.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from telegram.helpers import escape_markdown

from models.asset import AssetAccount
from models.cashflow import CashflowRecord
from models.planning import Budget, Goal
from models.settings import Settings
from repositories.asset_repo import AssetAccountRepository
from repositories.budget_repo import BudgetRepository
from repositories.cashflow_repo import CashflowRepository
from repositories.goal_repo import GoalRepository
from repositories.settings_repo import SettingsRepository
from services import metrics
from services.rate_service import ExchangeRateService, exchange_rates
from services.validation import ValidationError, validate_month
from utils.logger import get_logger

logger = get_logger(__name__)

_HEALTH_ICONS = {"red": "🔴", "yellow": "🟡", "green": "🟢", "none": "⚪"}


@dataclass
class Snapshot:
    """Everything the derived views need, read once per request."""
    today: date
    rate: float
    settings: Settings
    accounts: list[AssetAccount] = field(default_factory=list)
    records: list[CashflowRecord] = field(default_factory=list)
    budgets: list[Budget] = field(default_factory=list)
    goals: list[Goal] = field(default_factory=list)

    @property
    def valuations(self) -> list[metrics.AssetValuation]:
        return metrics.value_assets(self.accounts, self.rate)


class ReportService:
    """Builds the read-only views over a user's data."""

    def __init__(self, cashflow_repo: Optional[CashflowRepository] = None,
                 account_repo: Optional[AssetAccountRepository] = None,
                 budget_repo: Optional[BudgetRepository] = None,
                 goal_repo: Optional[GoalRepository] = None,
                 settings_repo: Optional[SettingsRepository] = None,
                 rates: Optional[ExchangeRateService] = None):
        self.cashflow_repo = cashflow_repo or CashflowRepository()
        self.account_repo = account_repo or AssetAccountRepository()
        self.budget_repo = budget_repo or BudgetRepository()
        self.goal_repo = goal_repo or GoalRepository()
        self.settings_repo = settings_repo or SettingsRepository()
        self.rates = rates or exchange_rates

    def snapshot(self, user_id: int, today: Optional[date] = None) -> Snapshot:
        settings = self.settings_repo.get(user_id)
        return Snapshot(
            today=today or date.today(),
            rate=self.rates.effective_rate(settings),
            settings=settings,
            accounts=self.account_repo.get_all(user_id),
            records=self.cashflow_repo.get_all(user_id),
            budgets=self.budget_repo.get_all(user_id),
            goals=self.goal_repo.get_all(user_id),
        )

    # ── Dashboard ──────────────────────────────────────────

    def dashboard(self, user_id: int, today: Optional[date] = None) -> str:
        snap = self.snapshot(user_id, today)
        valuations = snap.valuations
        summary = metrics.summarize_portfolio(valuations)
        invest = metrics.investment_metrics(valuations)
        last_month = metrics.previous_month_summary(snap.records, snap.today)
        health = metrics.asset_health(summary, invest, metrics.average_monthly_expense(snap.records))

        lines = [
            "📊 *財務總覽*\n",
            f"💎 總資產：*{summary.total:,.0f}* TWD",
            f"💵 美元資產：{summary.foreign_assets_total:,.0f} TWD（USD/TWD {snap.rate:.2f}）",
        ]
        if summary.breakdown:
            lines.append("\n🥧 *資產配置：*")
            for item in summary.breakdown:
                lines.append(f"  • {item.type}：{item.value:,.0f}（{summary.share(item.type) * 100:.1f}%）")

        lines += [
            f"\n📅 *上月收支（{last_month.month}）：*",
            f"  💰 收入：{last_month.income:,.0f}",
            f"  💸 支出：{last_month.expense:,.0f}",
            f"  📈 淨額：{last_month.net:+,.0f} | 儲蓄率 {last_month.savings_rate * 100:.1f}%",
            f"\n{_HEALTH_ICONS[health.level]} *資產健康度：{health.label}*（{health.subtitle}）",
        ]
        if invest.top_asset is not None:
            lines.append(
                f"🎯 最大持倉：{escape_markdown(invest.top_asset.asset.code)}，集中度 {invest.concentration * 100:.1f}%"
                f"（{invest.number_of_assets} 檔投資）"
            )
        lines.append(f"🧭 {metrics.allocation_advice(summary)}")
        return "\n".join(lines)

    # ── Monthly report ─────────────────────────────────────

    def monthly_report(self, user_id: int, month: Optional[str] = None,
                       today: Optional[date] = None) -> str:
        try:
            month = validate_month(month) if month else None
        except ValidationError as e:
            return f"⚠️ {e}"

        snap = self.snapshot(user_id, today)
        month = month or metrics.month_key(snap.today)
        flows = metrics.monthly_cashflow(snap.records)
        current = flows.get(month, metrics.MonthlyCashflow(month))

        lines = [
            f"📈 *月報表 - {month}*\n",
            f"💰 收入：{current.income:,.0f}",
            f"💸 支出：{current.expense:,.0f}",
            f"📊 淨額：{current.net:+,.0f}",
            f"🏦 儲蓄率：{current.savings_rate * 100:.1f}%",
        ]

        breakdown = metrics.expense_breakdown(snap.records, month)
        if breakdown:
            lines.append("\n🏷️ *支出分類：*")
            for category, amount in breakdown:
                share = amount / current.expense * 100 if current.expense else 0.0
                lines.append(f"  • {escape_markdown(category)}：{amount:,.0f}（{share:.0f}%）")

        trend = metrics.cashflow_trend(snap.records, snap.today, months=6)
        lines.append("\n📅 *近 6 個月趨勢：*")
        for m in trend:
            lines.append(f"  {m.month}  +{m.income:,.0f} / -{m.expense:,.0f} = {m.net:+,.0f}")

        pnl = metrics.pnl_statement(snap.valuations)
        total = metrics.summarize_portfolio(snap.valuations).total
        worth = metrics.net_worth_trend(total, trend, pnl.total_pnl)
        if worth and total:
            first, last = worth[0], worth[-1]
            lines.append(f"\n💎 淨值估算：{first[0]} {first[1]:,.0f} → {last[0]} {last[1]:,.0f}")
        return "\n".join(lines)

    # ── Profit & loss ──────────────────────────────────────

    def pnl_report(self, user_id: int, sort_key: str = "pnl", descending: bool = True) -> str:
        if sort_key not in metrics.PNL_SORT_KEYS:
            keys = ", ".join(metrics.PNL_SORT_KEYS)
            return f"⚠️ 無效的排序欄位：{sort_key}（可用：{keys}）"

        snap = self.snapshot(user_id)
        statement = metrics.pnl_statement(snap.valuations, sort_key, descending)
        if not statement.rows:
            return "📭 目前沒有股票或 ETF 投資。"

        lines = ["💹 *投資損益表*\n"]
        for v in statement.rows:
            icon = "🟢" if v.profit_loss >= 0 else "🔴"
            lines.append(
                f"{icon} *{escape_markdown(v.asset.code)}*（{escape_markdown(v.account_name)}）\n"
                f"  成本 {v.cost_in_home:,.0f} → 市值 {v.value_in_home:,.0f} | "
                f"{v.profit_loss:+,.0f}（{v.pnl_pct * 100:+.2f}%）"
            )
        lines.append(
            f"\n📊 總市值 {statement.total_value:,.0f} | 總成本 {statement.total_cost:,.0f}\n"
            f"💰 總損益 {statement.total_pnl:+,.0f} | 報酬率 {statement.roi * 100:+.2f}%"
        )
        return "\n".join(lines)
