"""POS Profit - point-of-sale profitability reconciliation.

This package reconciles ERP point-of-sale transactions against product cost
master data and reports profitability per branch and period:

- **Raw**: orders, lines, products and templates read from the ERP
- **Core fact**: ``ReconciledSale``, one row per sold line with net/gross
  revenue, cost and both profit variants
- **Summaries**: global, per-branch and date-range stats, product marts,
  and the exported workbook

Module Structure:
    pos_profit.sales: extraction, cost resolution, reconciliation, aggregation, export
    pos_profit.erp: ERP client and raw record types
    pos_profit.branches: branch classification of POS labels
    pos_profit.dates: business-timezone helpers and report periods
    pos_profit.config: ErpSession configuration

Quick Start:
    >>> from pos_profit import ErpSession, ProfitReport
    >>>
    >>> session = ErpSession.from_env()
    >>> report = ProfitReport()
    >>> report.fetch(session, "2024-03-01", "2024-03-31")
    >>>
    >>> report.stats_for().net_profit
    >>> report.branch_stats()
    >>> report.save_export("2024-03-01", "2024-03-31")
"""

__version__ = "0.1.0"

from pos_profit.branches import BranchCategory, BranchClassifier, classify
from pos_profit.config import ErpSession
from pos_profit.exceptions import (
    ConfigError,
    DataQualityError,
    ExtractionError,
    ProfitAPIError,
    SessionError,
)
from pos_profit.sales.api import FetchResult, FetchStatus, ProfitReport

__all__ = [
    "BranchCategory",
    "BranchClassifier",
    "ConfigError",
    "DataQualityError",
    "ErpSession",
    "ExtractionError",
    "FetchResult",
    "FetchStatus",
    "ProfitAPIError",
    "ProfitReport",
    "SessionError",
    "__version__",
    "classify",
]
