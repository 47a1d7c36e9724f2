"""
models/asset.py
---------------
Domain models for asset accounts and the assets held inside them.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

# Asset categories, in the order they appear in breakdowns and charts
CASH = "現金"
ETF = "ETF"
EQUITY = "股票"
REAL_ESTATE = "不動產"
FOREIGN_ASSET = "美元資產"

ASSET_CATEGORIES: tuple[str, ...] = (CASH, ETF, EQUITY, REAL_ESTATE, FOREIGN_ASSET)
INVESTABLE_CATEGORIES: frozenset[str] = frozenset({EQUITY, ETF})

CATEGORY_COLORS: dict[str, str] = {
    CASH: "#4CAF50",
    ETF: "#2196F3",
    EQUITY: "#FFC107",
    REAL_ESTATE: "#9C27B0",
    FOREIGN_ASSET: "#FF5722",
}


def as_number(value: Any) -> float:
    """Coerce a stored numeric field to float; anything unparsable counts as 0."""
    if isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if number == number else 0.0  # NaN


@dataclass
class Asset:
    """
    A single holding inside an asset account.

    Attributes:
        id: Identifier, unique within the owning account.
        code: Ticker or short code (e.g. '0050', 'AAPL', 'Savings').
        category: One of ASSET_CATEGORIES (stored as ``accountType``).
        units: Number of units held.
        cost: Cost per unit, in ``currency``.
        current_value: Current value per unit, in ``currency``.
        currency: 'TWD' (home) or 'USD'.
    """
    id: str
    code: str
    category: str
    units: float = 0.0
    cost: float = 0.0
    current_value: float = 0.0
    currency: str = "TWD"

    @classmethod
    def from_document(cls, doc: dict) -> "Asset":
        return cls(
            id=str(doc.get("id", "")),
            code=doc.get("code", ""),
            category=doc.get("accountType", CASH),
            units=as_number(doc.get("units")),
            cost=as_number(doc.get("cost")),
            current_value=as_number(doc.get("currentValue")),
            currency=doc.get("currency", "TWD"),
        )

    def to_document(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "accountType": self.category,
            "units": self.units,
            "cost": self.cost,
            "currentValue": self.current_value,
            "currency": self.currency,
        }


@dataclass
class AssetAccount:
    """
    A named container of assets (a brokerage, a bank, a property...).

    Attributes:
        name: Display name.
        assets: Holdings, in insertion order.
        id: Document ID (None for accounts not yet stored).
    """
    name: str
    assets: list[Asset] = field(default_factory=list)
    id: Optional[str] = None

    @classmethod
    def from_document(cls, doc: dict) -> "AssetAccount":
        return cls(
            id=doc.get("id"),
            name=doc.get("name", ""),
            assets=[Asset.from_document(a) for a in doc.get("assets") or []],
        )

    def to_document(self) -> dict:
        return {
            "name": self.name,
            "assets": [a.to_document() for a in self.assets],
        }

    def find_asset(self, asset_id: str) -> Optional[Asset]:
        return next((a for a in self.assets if a.id == asset_id), None)
