"""Profitability report workbook.

``build_workbook`` is a pure transform from reconciled sales to an ordered
mapping of sheet name -> rows (a 2-D grid of text/number cells).
``write_workbook`` is the only function here that touches the filesystem.

Sheets:
    Summary      Title, period, then global and per-branch totals
    <branch>     One per named branch: totals row, then one row per sale
    By Product   One row per product name

Examples:
    >>> wb = build_workbook(sales, "2024-03-01 to 2024-03-31")
    >>> list(wb)
    ['Summary', 'FeetCare', 'Surco', 'By Product']
    >>> write_workbook(wb, default_filename("2024-03-01"))
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable, Optional, Union

import pandas as pd

from pos_profit.branches import NAMED_CATEGORIES, BranchClassifier
from pos_profit.sales.aggregate import SalesStats, by_product, filter_by_branch, summarize
from pos_profit.sales.transform import ReconciledSale

logger = logging.getLogger(__name__)

Cell = Union[str, float, int]
Sheet = list[list[Cell]]
Workbook = dict[str, Sheet]

REPORT_TITLE = "POS PROFITABILITY AUDIT (NET VS GROSS)"
SUMMARY_SHEET = "Summary"
PRODUCT_SHEET = "By Product"
GLOBAL_LABEL = "TOTAL GLOBAL"
DISPLAY_DATE_FMT = "%d/%m/%Y"

SUMMARY_HEADER = [
    "Branch",
    "Net Sales (excl. tax)",
    "Gross Sales (incl. tax)",
    "Cost",
    "Net Profit",
    "Gross Profit",
    "Margin %",
    "Lines",
    "Missing Cost",
    "Average Ticket",
]

DETAIL_HEADER = [
    "Product",
    "Date",
    "Payment Method",
    "Net Sales",
    "Cost",
    "Net Profit",
    "Margin %",
    "Gross Sales",
]

PRODUCT_HEADER = [
    "Product",
    "Count",
    "Net Sales",
    "Cost",
    "Net Profit",
    "Margin %",
    "Average Unit Price",
]


def _pct(value: str) -> str:
    return f"{value}%"


def _summary_row(label: str, stats: SalesStats) -> list[Cell]:
    return [
        label,
        stats.net_revenue,
        stats.gross_revenue,
        stats.total_cost,
        stats.net_profit,
        stats.gross_profit,
        _pct(stats.profit_rate_percent),
        stats.item_count,
        stats.missing_cost_count,
        stats.average_ticket,
    ]


def _detail_sheet(sales: list[ReconciledSale]) -> Sheet:
    stats = summarize(sales)
    rows: Sheet = [
        DETAIL_HEADER,
        [
            "TOTAL",
            "",
            "",
            stats.net_revenue,
            stats.total_cost,
            stats.net_profit,
            _pct(stats.profit_rate_percent),
            stats.gross_revenue,
        ],
    ]
    for sale in sales:
        rows.append(
            [
                sale.product,
                sale.timestamp.strftime(DISPLAY_DATE_FMT),
                sale.payment_method,
                sale.net_amount,
                sale.total_cost,
                sale.net_profit,
                _pct(sale.profit_margin_percent),
                sale.gross_amount,
            ]
        )
    return rows


def _product_sheet(sales: list[ReconciledSale]) -> Sheet:
    rows: Sheet = [PRODUCT_HEADER]
    for rec in by_product(sales).itertuples(index=False):
        rows.append(
            [
                rec.product,
                float(rec.count),
                float(rec.net_revenue),
                float(rec.total_cost),
                float(rec.net_profit),
                _pct(rec.profit_margin_percent),
                float(rec.average_unit_price),
            ]
        )
    return rows


def build_workbook(
    sales: Iterable[ReconciledSale],
    range_label: str,
    classifier: Optional[BranchClassifier] = None,
) -> Workbook:
    """Build the profitability workbook for already-filtered sales.

    Args:
        sales: Reconciled sales of the export range. The caller filters by
            date beforehand.
        range_label: Human-readable period shown in the Summary header.
        classifier: Branch classifier; defaults to the standard rules.

    Returns:
        Ordered mapping of sheet name to rows.

    """
    sales = list(sales)
    by_branch = {cat: filter_by_branch(sales, cat, classifier) for cat in NAMED_CATEGORIES}

    summary: Sheet = [
        [REPORT_TITLE],
        ["Period:", range_label],
        [],
        SUMMARY_HEADER,
        _summary_row(GLOBAL_LABEL, summarize(sales)),
    ]
    for category in NAMED_CATEGORIES:
        summary.append(_summary_row(category.value, summarize(by_branch[category])))

    workbook: Workbook = {SUMMARY_SHEET: summary}
    for category in NAMED_CATEGORIES:
        workbook[category.value] = _detail_sheet(by_branch[category])
    workbook[PRODUCT_SHEET] = _product_sheet(sales)

    logger.info("Built workbook for %s: %d sale line(s), %d sheet(s)", range_label, len(sales), len(workbook))
    return workbook


def default_filename(start: str) -> str:
    return f"Reporte_Rentabilidad_{start}.xlsx"


def write_workbook(workbook: Workbook, output_path: Union[str, Path]) -> Path:
    """Write a workbook to an .xlsx file, one worksheet per sheet.

    Returns:
        Path of the written file.

    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with pd.ExcelWriter(output_path, engine="xlsxwriter") as xw:
        for name, rows in workbook.items():
            width = max((len(r) for r in rows), default=0)
            padded: list[list[Any]] = [list(r) + [None] * (width - len(r)) for r in rows]
            pd.DataFrame(padded).to_excel(xw, sheet_name=name[:31], index=False, header=False)

    logger.info("Wrote %s", output_path)
    return output_path
