"""Line reconciliation: join orders, lines and resolved costs.

The output is the core fact of this package: one ``ReconciledSale`` per sold
line, carrying both the tax-exclusive (net) and tax-inclusive (gross)
amounts and the two profit variants derived from them:

- ``net_profit``   = net_amount - total_cost   (audited, excludes tax)
- ``gross_profit`` = gross_amount - total_cost (cash register, includes tax)
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Iterable, Mapping

import pandas as pd

from pos_profit.dates import date_key, to_business_time
from pos_profit.erp.records import RawLine, RawOrder
from pos_profit.exceptions import DataQualityError
from pos_profit.sales.costs import MISSING_COST, CostInfo

logger = logging.getLogger(__name__)

DEFAULT_BRANCH = "Caja Central"
DEFAULT_SALESPERSON = "Usuario"
DEFAULT_PAYMENT_METHOD = "-"

SALE_COLUMNS = [
    "timestamp",
    "date_key",
    "branch",
    "company",
    "salesperson",
    "product",
    "category",
    "quantity",
    "net_amount",
    "gross_amount",
    "total_cost",
    "net_profit",
    "gross_profit",
    "profit_margin_percent",
    "payment_method",
    "order_id",
    "product_id",
]


def format_percent(numerator: float, denominator: float) -> str:
    """Ratio as a percentage string with one decimal; ``"0.0"`` if denominator <= 0."""
    if denominator <= 0:
        return "0.0"
    return f"{numerator / denominator * 100:.1f}"


@dataclass(frozen=True)
class ReconciledSale:
    """One sold line with its cost and profitability."""

    timestamp: datetime
    branch: str
    company: str
    salesperson: str
    product: str
    category: str
    gross_amount: float
    net_amount: float
    total_cost: float
    net_profit: float
    gross_profit: float
    quantity: float
    profit_margin_percent: str
    payment_method: str = DEFAULT_PAYMENT_METHOD
    order_id: int = 0
    product_id: int = 0
    line_id: int = field(default=0, compare=False)

    @property
    def date_key(self) -> str:
        """Business day of the sale as ``YYYY-MM-DD``."""
        return date_key(self.timestamp)

    @property
    def missing_cost(self) -> bool:
        return self.total_cost <= 0


def reconcile_line(order: RawOrder, line: RawLine, cost: CostInfo, company: str = "") -> ReconciledSale:
    """Build the reconciled record of one line of ``order``."""
    try:
        timestamp = to_business_time(order.date_order)
    except ValueError as e:
        raise DataQualityError(f"pos.order {order.id}: {e}") from e

    net_amount = line.price_subtotal
    gross_amount = line.price_subtotal_incl
    total_cost = max(cost.unit_cost * line.qty, 0.0)
    net_profit = net_amount - total_cost

    return ReconciledSale(
        timestamp=timestamp,
        branch=order.config.label_or(DEFAULT_BRANCH) if order.config else DEFAULT_BRANCH,
        company=company,
        salesperson=order.user.label_or(DEFAULT_SALESPERSON) if order.user else DEFAULT_SALESPERSON,
        product=line.product.label_or(f"Product #{line.product.id}"),
        category=cost.category,
        gross_amount=gross_amount,
        net_amount=net_amount,
        total_cost=total_cost,
        net_profit=net_profit,
        gross_profit=gross_amount - total_cost,
        quantity=line.qty,
        profit_margin_percent=format_percent(net_profit, net_amount),
        order_id=order.id,
        product_id=line.product.id,
        line_id=line.id,
    )


def reconcile(
    orders: Iterable[RawOrder],
    lines: Iterable[RawLine],
    costs: Mapping[int, CostInfo],
    company: str = "",
) -> list[ReconciledSale]:
    """Join orders, lines and costs into reconciled sale records.

    Args:
        orders: Orders of the fetch window.
        lines: Lines of those orders.
        costs: Resolved costs by product id. Products absent from the map
            are reconciled at zero cost instead of failing.
        company: Company display name copied onto every record.

    Returns:
        One ReconciledSale per line whose parent order is in ``orders``,
        grouped by order in input order.

    """
    lines_by_order: dict[int, list[RawLine]] = defaultdict(list)
    for line in lines:
        lines_by_order[line.order_id].append(line)

    sales: list[ReconciledSale] = []
    for order in orders:
        for line in lines_by_order.pop(order.id, []):
            cost = costs.get(line.product.id, MISSING_COST)
            sales.append(reconcile_line(order, line, cost, company))

    orphans = sum(len(v) for v in lines_by_order.values())
    if orphans:
        logger.warning("Skipped %d line(s) whose order is not in the fetch window", orphans)

    logger.debug("Reconciled %d sale line(s)", len(sales))
    return sales


def sales_to_frame(sales: Iterable[ReconciledSale]) -> pd.DataFrame:
    """Flatten reconciled sales into a DataFrame, one row per line."""
    rows = []
    for sale in sales:
        row = asdict(sale)
        row.pop("line_id")
        row["date_key"] = sale.date_key
        rows.append(row)
    return pd.DataFrame(rows, columns=SALE_COLUMNS)
