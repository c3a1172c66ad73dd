"""Sales domain module.

This module turns ERP point-of-sale data into profitability reports:

- **extract**: the ordered ERP calls for one fetch cycle
- **costs**: unit cost resolution with template fallback
- **transform**: one ``ReconciledSale`` per sold line (the core fact)
- **aggregate**: ``summarize`` plus product and daily marts
- **export**: multi-sheet workbook built from reconciled sales
- **api**: ``ProfitReport``, the state container used by presentation

Example:
    >>> from pos_profit import ErpSession
    >>> from pos_profit.sales import ProfitReport
    >>>
    >>> report = ProfitReport()
    >>> report.fetch_period(ErpSession.from_env(), "month_to_date")
    >>> report.save_export("2024-03-01", "2024-03-15")
"""

from pos_profit.sales.aggregate import SalesStats, summarize
from pos_profit.sales.api import FetchResult, FetchStatus, ProfitReport
from pos_profit.sales.export import build_workbook, write_workbook
from pos_profit.sales.transform import ReconciledSale, reconcile

__all__ = [
    "FetchResult",
    "FetchStatus",
    "ProfitReport",
    "ReconciledSale",
    "SalesStats",
    "build_workbook",
    "reconcile",
    "summarize",
    "write_workbook",
]
