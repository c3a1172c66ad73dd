"""Aggregation of reconciled sales.

Every granularity (global, per branch, per date range) is computed the same
way: filter the reconciled records, then ``summarize`` them. The pandas
marts (``by_product``, ``by_day``) build on ``sales_to_frame``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

import numpy as np
import pandas as pd

from pos_profit.branches import NAMED_CATEGORIES, BranchCategory, BranchClassifier, classify
from pos_profit.dates import in_range
from pos_profit.sales.transform import ReconciledSale, format_percent, sales_to_frame

logger = logging.getLogger(__name__)

SalePredicate = Callable[[ReconciledSale], bool]

PRODUCT_COLUMNS = [
    "product",
    "count",
    "net_revenue",
    "total_cost",
    "net_profit",
    "profit_margin_percent",
    "average_unit_price",
]

DAY_COLUMNS = [
    "date_key",
    "count",
    "net_revenue",
    "gross_revenue",
    "total_cost",
    "net_profit",
    "gross_profit",
]


@dataclass(frozen=True)
class SalesStats:
    """Summary statistics of a set of reconciled sales.

    Attributes:
        gross_revenue: Sum of tax-inclusive amounts.
        net_revenue: Sum of tax-exclusive amounts.
        total_cost: Sum of line costs.
        net_profit: Sum of audited profit (net - cost).
        gross_profit: Sum of cash profit (gross - cost).
        item_count: Number of sale lines.
        profit_rate_percent: net_profit / net_revenue * 100, one decimal.
        missing_cost_count: Lines whose cost resolved to zero.
    """

    gross_revenue: float = 0.0
    net_revenue: float = 0.0
    total_cost: float = 0.0
    net_profit: float = 0.0
    gross_profit: float = 0.0
    item_count: int = 0
    profit_rate_percent: str = "0.0"
    missing_cost_count: int = 0

    @property
    def average_ticket(self) -> float:
        return self.gross_revenue / max(self.item_count, 1)

    @property
    def cost_ratio_percent(self) -> str:
        """Share of net revenue consumed by cost."""
        return format_percent(self.total_cost, self.net_revenue)


def summarize(sales: Iterable[ReconciledSale]) -> SalesStats:
    """Reduce reconciled sales to summary statistics.

    Pure; an empty input yields all-zero stats with ``profit_rate_percent``
    of ``"0.0"``.
    """
    gross = net = cost = net_profit = gross_profit = 0.0
    count = missing = 0
    for sale in sales:
        gross += sale.gross_amount
        net += sale.net_amount
        cost += sale.total_cost
        net_profit += sale.net_profit
        gross_profit += sale.gross_profit
        count += 1
        if sale.total_cost <= 0:
            missing += 1

    return SalesStats(
        gross_revenue=gross,
        net_revenue=net,
        total_cost=cost,
        net_profit=net_profit,
        gross_profit=gross_profit,
        item_count=count,
        profit_rate_percent=format_percent(net_profit, net),
        missing_cost_count=missing,
    )


def filter_by_branch(
    sales: Iterable[ReconciledSale],
    category: BranchCategory,
    classifier: Optional[BranchClassifier] = None,
) -> list[ReconciledSale]:
    """Sales whose branch label classifies into ``category``."""
    classify_fn = classifier.classify if classifier is not None else classify
    return [s for s in sales if classify_fn(s.branch) is category]


def filter_by_date_range(sales: Iterable[ReconciledSale], start: str, end: str) -> list[ReconciledSale]:
    """Sales whose business day lies in ``[start, end]`` (empty if start > end)."""
    return [s for s in sales if in_range(s.date_key, start, end)]


def summarize_by_branch(
    sales: Iterable[ReconciledSale],
    classifier: Optional[BranchClassifier] = None,
) -> dict[Optional[BranchCategory], SalesStats]:
    """Global stats (key ``None``) plus stats per named branch category."""
    sales = list(sales)
    result: dict[Optional[BranchCategory], SalesStats] = {None: summarize(sales)}
    for category in NAMED_CATEGORIES:
        result[category] = summarize(filter_by_branch(sales, category, classifier))
    return result


def by_product(sales: Iterable[ReconciledSale]) -> pd.DataFrame:
    """One row per product name, sorted by net profit descending.

    Columns: product, count (units sold, the sum of line quantities),
    net_revenue, total_cost, net_profit, profit_margin_percent (string),
    average_unit_price (net revenue / units sold, 0.0 when no units).
    """
    df = sales_to_frame(sales)
    if df.empty:
        return pd.DataFrame(columns=PRODUCT_COLUMNS)

    grouped = (
        df.groupby("product", sort=False)
        .agg(
            count=("quantity", "sum"),
            net_revenue=("net_amount", "sum"),
            total_cost=("total_cost", "sum"),
            net_profit=("net_profit", "sum"),
        )
        .reset_index()
    )
    grouped["profit_margin_percent"] = [
        format_percent(p, r) for p, r in zip(grouped["net_profit"], grouped["net_revenue"])
    ]
    grouped["average_unit_price"] = np.where(
        grouped["count"] > 0, grouped["net_revenue"] / grouped["count"].where(grouped["count"] > 0, 1), 0.0
    )
    grouped = grouped.sort_values(["net_profit", "product"], ascending=[False, True], kind="stable")
    logger.debug("Aggregated %d line(s) into %d product(s)", len(df), len(grouped))
    return grouped[PRODUCT_COLUMNS].reset_index(drop=True)


def by_day(sales: Iterable[ReconciledSale]) -> pd.DataFrame:
    """One row per business day with revenue, cost and profit sums."""
    df = sales_to_frame(sales)
    if df.empty:
        return pd.DataFrame(columns=DAY_COLUMNS)

    daily = (
        df.groupby("date_key")
        .agg(
            count=("date_key", "size"),
            net_revenue=("net_amount", "sum"),
            gross_revenue=("gross_amount", "sum"),
            total_cost=("total_cost", "sum"),
            net_profit=("net_profit", "sum"),
            gross_profit=("gross_profit", "sum"),
        )
        .reset_index()
        .sort_values("date_key")
    )
    return daily[DAY_COLUMNS].reset_index(drop=True)
