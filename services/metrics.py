"""
services/metrics.py
-------------------
Derived metrics: pure functions that turn raw accounts, cashflow records,
budgets and goals into display-ready aggregates.

No I/O and no mutation of inputs. Sums go through math.fsum and every sort
has a full tie-breaker, so results do not depend on input order.
"""

import math
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from dateutil.relativedelta import relativedelta

from config import HOME_CURRENCY
from models.asset import (
    ASSET_CATEGORIES,
    CASH,
    CATEGORY_COLORS,
    EQUITY,
    ETF,
    FOREIGN_ASSET,
    INVESTABLE_CATEGORIES,
    Asset,
    AssetAccount,
)
from models.cashflow import CashflowRecord
from models.planning import Budget, Goal
from models.settings import Settings

# Target allocation used by allocation_advice()
TARGET_ALLOCATION = {ETF: 0.9, CASH: 0.1}


# ── Currency normalisation ────────────────────────────────

def effective_rate(settings: Optional[Settings], market_rate: float) -> float:
    """The manual override when set and positive, otherwise the market rate."""
    if settings is not None and settings.manual_rate is not None and settings.manual_rate > 0:
        return settings.manual_rate
    return market_rate


@dataclass(frozen=True)
class AssetValuation:
    """An asset together with its home-currency figures at one exchange rate."""
    asset: Asset
    account_id: str
    account_name: str
    value_in_home: float
    cost_in_home: float

    @property
    def profit_loss(self) -> float:
        return self.value_in_home - self.cost_in_home

    @property
    def pnl_pct(self) -> float:
        """Profit/loss as a fraction of cost; 0 when there is no cost."""
        return self.profit_loss / self.cost_in_home if self.cost_in_home > 0 else 0.0


def value_asset(asset: Asset, rate: float, account: Optional[AssetAccount] = None) -> AssetValuation:
    fx = 1.0 if asset.currency == HOME_CURRENCY else rate
    return AssetValuation(
        asset=asset,
        account_id=(account.id or "") if account else "",
        account_name=account.name if account else "",
        value_in_home=asset.units * asset.current_value * fx,
        cost_in_home=asset.units * asset.cost * fx,
    )


def value_assets(accounts: Iterable[AssetAccount], rate: float) -> list[AssetValuation]:
    """Value every asset of every account at `rate` (USD -> home)."""
    return [value_asset(asset, rate, account) for account in accounts for asset in account.assets]


def account_value(account: AssetAccount, rate: float) -> float:
    return math.fsum(value_asset(a, rate).value_in_home for a in account.assets)


# ── Portfolio ─────────────────────────────────────────────

@dataclass(frozen=True)
class CategoryValue:
    type: str
    value: float
    color: str


@dataclass(frozen=True)
class PortfolioSummary:
    total: float
    breakdown: tuple[CategoryValue, ...]
    foreign_assets_total: float

    def value_of(self, category: str) -> float:
        return next((b.value for b in self.breakdown if b.type == category), 0.0)

    def share(self, category: str) -> float:
        """Fraction of the total held in `category`; 0 for an empty portfolio."""
        return self.value_of(category) / self.total if self.total > 0 else 0.0


def summarize_portfolio(valuations: Iterable[AssetValuation]) -> PortfolioSummary:
    """
    Total value plus a per-category breakdown in fixed category order.
    Categories worth nothing are left out of the breakdown.
    """
    all_values: list[float] = []
    by_category: dict[str, list[float]] = defaultdict(list)
    for v in valuations:
        all_values.append(v.value_in_home)
        by_category[v.asset.category].append(v.value_in_home)

    breakdown = []
    for category in ASSET_CATEGORIES:
        value = math.fsum(by_category.get(category, []))
        if value > 0:
            breakdown.append(CategoryValue(category, value, CATEGORY_COLORS[category]))

    return PortfolioSummary(
        total=math.fsum(all_values),
        breakdown=tuple(breakdown),
        foreign_assets_total=math.fsum(by_category.get(FOREIGN_ASSET, [])),
    )


@dataclass(frozen=True)
class InvestmentMetrics:
    number_of_assets: int
    total_value: float
    top_asset: Optional[AssetValuation]
    concentration: float  # top asset / total investable value


def _valuation_order(v: AssetValuation) -> tuple:
    return (-v.value_in_home, v.asset.code, v.account_id, v.asset.id)


def investment_metrics(valuations: Iterable[AssetValuation]) -> InvestmentMetrics:
    """Concentration of the investable (equity and ETF) holdings."""
    investable = sorted(
        (v for v in valuations if v.asset.category in INVESTABLE_CATEGORIES),
        key=_valuation_order,
    )
    total = math.fsum(v.value_in_home for v in investable)
    top = investable[0] if investable else None
    concentration = top.value_in_home / total if top is not None and total > 0 else 0.0
    return InvestmentMetrics(len(investable), total, top, concentration)


# ── Cashflow ──────────────────────────────────────────────

def month_key(day: date) -> str:
    return day.strftime("%Y-%m")


def shift_month(day: date, months: int) -> date:
    """First day of the month `months` away from `day`'s month."""
    return day.replace(day=1) + relativedelta(months=months)


@dataclass(frozen=True)
class MonthlyCashflow:
    month: str
    income: float = 0.0
    expense: float = 0.0

    @property
    def net(self) -> float:
        return self.income - self.expense

    @property
    def savings_rate(self) -> float:
        """Net over income; 0 when there is no income."""
        return self.net / self.income if self.income > 0 else 0.0


def monthly_cashflow(records: Iterable[CashflowRecord]) -> dict[str, MonthlyCashflow]:
    """Income and expense totals per YYYY-MM, keys in ascending order."""
    income: dict[str, list[float]] = defaultdict(list)
    expense: dict[str, list[float]] = defaultdict(list)
    for r in records:
        if r.is_income():
            income[r.month].append(r.amount)
        elif r.is_expense():
            expense[r.month].append(r.amount)
    months = sorted(set(income) | set(expense))
    return {
        m: MonthlyCashflow(m, math.fsum(income.get(m, [])), math.fsum(expense.get(m, [])))
        for m in months
    }


def cashflow_trend(records: Iterable[CashflowRecord], today: date,
                   months: int = 12) -> list[MonthlyCashflow]:
    """The last `months` months up to and including today's, oldest first."""
    by_month = monthly_cashflow(records)
    keys = [month_key(shift_month(today, -i)) for i in range(months - 1, -1, -1)]
    return [by_month.get(k, MonthlyCashflow(k)) for k in keys]


def previous_month_summary(records: Iterable[CashflowRecord], today: date) -> MonthlyCashflow:
    key = month_key(shift_month(today, -1))
    return monthly_cashflow(records).get(key, MonthlyCashflow(key))


def average_monthly_expense(records: Iterable[CashflowRecord]) -> float:
    """Mean expense over the months that have any expense."""
    totals = [m.expense for m in monthly_cashflow(records).values() if m.expense > 0]
    return math.fsum(totals) / len(totals) if totals else 0.0


def expense_breakdown(records: Iterable[CashflowRecord], month: str) -> list[tuple[str, float]]:
    """Expense per category for one month, largest first."""
    spent: dict[str, list[float]] = defaultdict(list)
    for r in records:
        if r.is_expense() and r.month == month:
            spent[r.category].append(r.amount)
    totals = [(category, math.fsum(amounts)) for category, amounts in spent.items()]
    return sorted(totals, key=lambda item: (-item[1], item[0]))


# ── Budgets and goals ─────────────────────────────────────

@dataclass(frozen=True)
class BudgetLine:
    category: str
    budget: float
    spent: float

    @property
    def over_budget(self) -> bool:
        return self.spent > self.budget

    @property
    def usage(self) -> float:
        """Spent over budget; 0 for an unbudgeted category."""
        return self.spent / self.budget if self.budget > 0 else 0.0

    @property
    def remaining(self) -> float:
        return max(0.0, self.budget - self.spent)


@dataclass(frozen=True)
class BudgetProgress:
    month: str
    lines: tuple[BudgetLine, ...]
    total_budget: float
    total_spent: float


def budget_progress(records: Iterable[CashflowRecord], budgets: Iterable[Budget],
                    month: str) -> BudgetProgress:
    """Budget vs spending for every category budgeted or spent in `month`."""
    month_budgets = {b.category: b.amount for b in budgets if b.month == month}
    spent = dict(expense_breakdown(records, month))
    lines = tuple(
        BudgetLine(category, month_budgets.get(category, 0.0), spent.get(category, 0.0))
        for category in sorted(set(month_budgets) | set(spent))
    )
    return BudgetProgress(
        month=month,
        lines=lines,
        total_budget=math.fsum(month_budgets.values()),
        total_spent=math.fsum(spent.values()),
    )


def goal_progress(goals: Iterable[Goal]) -> list[dict]:
    """Name and progress (fraction of target) of each goal, ordered by name."""
    return [
        {"name": g.name, "progress": g.progress}
        for g in sorted(goals, key=lambda g: (g.name, g.id or ""))
    ]


# ── Reports ───────────────────────────────────────────────

PNL_SORT_KEYS = {
    "code": lambda v: v.asset.code,
    "cost": lambda v: v.cost_in_home,
    "value": lambda v: v.value_in_home,
    "pnl": lambda v: v.profit_loss,
    "pnl_pct": lambda v: v.pnl_pct,
}


@dataclass(frozen=True)
class PnlStatement:
    rows: tuple[AssetValuation, ...]
    total_value: float
    total_cost: float

    @property
    def total_pnl(self) -> float:
        return self.total_value - self.total_cost

    @property
    def roi(self) -> float:
        return self.total_pnl / self.total_cost if self.total_cost > 0 else 0.0


def pnl_statement(valuations: Iterable[AssetValuation], sort_key: str = "pnl",
                  descending: bool = True) -> PnlStatement:
    """
    Profit and loss of the investable assets.

    Args:
        sort_key: One of PNL_SORT_KEYS.
        descending: Sort direction of the rows.

    Raises:
        KeyError: For an unknown sort key.
    """
    key = PNL_SORT_KEYS[sort_key]
    investable = sorted(
        (v for v in valuations if v.asset.category in INVESTABLE_CATEGORIES),
        key=lambda v: (v.asset.code, v.account_id, v.asset.id),
    )
    rows = tuple(sorted(investable, key=key, reverse=descending))
    return PnlStatement(
        rows=rows,
        total_value=math.fsum(v.value_in_home for v in rows),
        total_cost=math.fsum(v.cost_in_home for v in rows),
    )


def net_worth_trend(total_assets: float, trend: list[MonthlyCashflow],
                    total_pnl: float) -> list[tuple[str, float]]:
    """
    Approximate net worth per trend month, walking back from today's total by
    each month's net cashflow plus an even share of the total investment P/L.
    """
    if not trend:
        return []
    monthly_pnl = total_pnl / len(trend)
    points = []
    value = total_assets
    for month in reversed(trend):
        points.append((month.month, value))
        value -= month.net + monthly_pnl
    points.reverse()
    return points


@dataclass(frozen=True)
class HealthStatus:
    level: str  # 'red' | 'yellow' | 'green' | 'none'
    label: str
    subtitle: str


def asset_health(summary: PortfolioSummary, metrics: InvestmentMetrics,
                 avg_monthly_expense: float) -> HealthStatus:
    """Traffic-light rating of the allocation; the first matching rule wins."""
    if summary.total == 0:
        return HealthStatus("none", "無數據", "請先新增資產")

    stock_share = summary.share(EQUITY)
    cash_months = summary.value_of(CASH) / avg_monthly_expense if avg_monthly_expense > 0 else 0.0

    if metrics.concentration > 0.5:
        return HealthStatus("red", "紅燈", "風險過度集中")
    if stock_share > 0.6:
        return HealthStatus("red", "紅燈", "個股佔比極高")
    if avg_monthly_expense > 0 and cash_months < 1:
        return HealthStatus("red", "紅燈", "緊急備用金嚴重不足")

    if metrics.concentration > 0.3:
        return HealthStatus("yellow", "黃燈", "單一資產佔比較高")
    if stock_share > 0.35:
        return HealthStatus("yellow", "黃燈", "個股佔比偏高")
    if 0 < metrics.number_of_assets < 4:
        return HealthStatus("yellow", "黃燈", "投資標的較少")
    if avg_monthly_expense > 0 and cash_months < 3:
        return HealthStatus("yellow", "黃燈", "緊急備用金可能不足")
    if cash_months > 12:
        return HealthStatus("yellow", "黃燈", "現金持有過多，可考慮投資")
    if summary.total < 500000:
        return HealthStatus("yellow", "黃燈", "總資產規模較小")

    return HealthStatus("green", "綠燈", "資產配置穩健")


def allocation_advice(summary: PortfolioSummary) -> str:
    """Compare the allocation with the 90% ETF / 10% cash target."""
    if summary.total == 0:
        return "無數據可進行比對。"
    etf_diff = summary.share(ETF) - TARGET_ALLOCATION[ETF]
    cash_diff = summary.share(CASH) - TARGET_ALLOCATION[CASH]

    if abs(etf_diff) < 0.1 and abs(cash_diff) < 0.05:
        return "您的資產配置與「90% ETF + 10% 現金」模型非常接近，表現出色！"
    advice = "您的資產配置與「90% ETF + 10% 現金」模型存在偏差。"
    if etf_diff < 0:
        advice += f" 建議增加 ETF 約 {-etf_diff * 100:.1f}%。"
    if cash_diff > 0.1:
        advice += " 您的現金比重過高，可考慮投入投資。"
    return advice
