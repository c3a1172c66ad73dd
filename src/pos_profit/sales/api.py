"""Public API: the profitability report state container.

``ProfitReport`` owns the current set of reconciled sales. A fetch replaces
that set atomically; a failed fetch leaves it untouched and only updates the
status message. Query and export functions read an immutable snapshot.

Overlapping fetches are ordered by generation: every call to ``fetch``
takes a new generation number and only the latest generation may commit,
so a slow earlier request can never overwrite a newer result.

Example:
    >>> from pos_profit import ErpSession, ProfitReport
    >>> report = ProfitReport()
    >>> result = report.fetch(ErpSession.from_env(), "2024-03-01", "2024-03-31")
    >>> result.status
    <FetchStatus.OK: 'ok'>
    >>> report.stats_for().profit_rate_percent
    '41.7'
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Union

import requests

from pos_profit.branches import BranchCategory, BranchClassifier
from pos_profit.config import ErpSession
from pos_profit.dates import PeriodBounds, business_now, period_bounds
from pos_profit.erp.client import OdooClient, SearchRead
from pos_profit.exceptions import ConfigError, ProfitAPIError, SessionError
from pos_profit.sales.aggregate import SalePredicate, SalesStats, filter_by_date_range, summarize, summarize_by_branch
from pos_profit.sales.export import Workbook, build_workbook, default_filename, write_workbook
from pos_profit.sales.extract import fetch_sales
from pos_profit.sales.transform import ReconciledSale

logger = logging.getLogger(__name__)

ClientFactory = Callable[[ErpSession], SearchRead]


class FetchStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    OK = "ok"
    NO_DATA = "no_data"
    ERROR = "error"


@dataclass(frozen=True)
class FetchResult:
    """Outcome of one ``fetch`` call.

    Attributes:
        status: Final status of this fetch.
        message: Human-readable status or error message.
        generation: Generation number assigned to this fetch.
        sale_count: Number of reconciled lines produced (0 on error).
        committed: False when a newer fetch superseded this one, or when the
            session was invalid; the current set is then unchanged.
    """

    status: FetchStatus
    message: str
    generation: int
    sale_count: int = 0
    committed: bool = True


class ProfitReport:
    """Holds the current reconciled sales and serves queries over them."""

    def __init__(
        self,
        client_factory: Optional[ClientFactory] = None,
        classifier: Optional[BranchClassifier] = None,
    ) -> None:
        self.client_factory: ClientFactory = client_factory or OdooClient
        self.classifier = classifier or BranchClassifier()
        self._lock = threading.Lock()
        self._sales: tuple[ReconciledSale, ...] = ()
        self._status = FetchStatus.IDLE
        self._message = ""
        self._generation = 0
        self._period: Optional[PeriodBounds] = None
        self._last_synced: Optional[datetime] = None

    # --- read-only state -------------------------------------------------

    @property
    def sales(self) -> tuple[ReconciledSale, ...]:
        return self._sales

    @property
    def status(self) -> FetchStatus:
        return self._status

    @property
    def message(self) -> str:
        return self._message

    @property
    def period(self) -> Optional[PeriodBounds]:
        """Period of the currently held sales."""
        return self._period

    @property
    def last_synced(self) -> Optional[datetime]:
        """Business-clock time of the last committed fetch."""
        return self._last_synced

    # --- fetch -----------------------------------------------------------

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _record_error(self, generation: int, message: str) -> bool:
        """Set ERROR status if ``generation`` is still the latest fetch."""
        with self._lock:
            current = self._is_current(generation)
            if current:
                self._status = FetchStatus.ERROR
                self._message = message
        return current

    def fetch(
        self,
        session: Optional[ErpSession],
        start: str,
        end: str,
        *,
        raise_errors: bool = False,
    ) -> FetchResult:
        """Fetch and reconcile sales for ``[start, end]``, replacing the current set.

        Args:
            session: ERP session. Without a valid one nothing is called and
                no state changes.
            start: First business day (YYYY-MM-DD).
            end: Last business day (YYYY-MM-DD).
            raise_errors: Re-raise pipeline errors after recording them.

        Returns:
            FetchResult describing the outcome.

        """
        if session is None or not session.is_valid:
            msg = "No valid ERP session"
            logger.warning("%s; fetch skipped", msg)
            if raise_errors:
                raise SessionError(msg)
            return FetchResult(FetchStatus.ERROR, msg, self._generation, committed=False)

        with self._lock:
            self._generation += 1
            generation = self._generation
            self._status = FetchStatus.LOADING
            self._message = "Connecting..."

        def progress(message: str) -> None:
            with self._lock:
                if self._is_current(generation):
                    self._message = message

        try:
            client = self.client_factory(session)
            sales = fetch_sales(client, session, start, end, progress=progress)
        except (ProfitAPIError, requests.RequestException) as e:
            current = self._record_error(generation, f"Error: {e}")
            logger.error("Fetch %d for %s to %s failed: %s", generation, start, end, e)
            if raise_errors:
                raise
            return FetchResult(FetchStatus.ERROR, f"Error: {e}", generation, committed=current)
        except Exception as e:
            self._record_error(generation, f"Unexpected error: {e}")
            logger.exception("Fetch %d for %s to %s crashed", generation, start, end)
            raise

        status = FetchStatus.OK if sales else FetchStatus.NO_DATA
        msg = f"Reconciled {len(sales)} sale line(s)" if sales else "No sales"

        with self._lock:
            if not self._is_current(generation):
                logger.info("Discarding stale fetch %d (latest is %d)", generation, self._generation)
                return FetchResult(status, msg, generation, len(sales), committed=False)
            self._sales = tuple(sales)
            self._period = PeriodBounds(start, end)
            self._status = status
            self._message = msg
            self._last_synced = business_now()

        logger.info("Fetch %d for %s to %s: %s", generation, start, end, msg)
        return FetchResult(status, msg, generation, len(sales))

    def fetch_period(
        self,
        session: Optional[ErpSession],
        mode: str,
        *,
        raise_errors: bool = False,
        **params: object,
    ) -> FetchResult:
        """Fetch a named period (``today``, ``month``, ``year``, ``custom``...).

        An unknown mode or invalid period parameters are reported like any
        other failed fetch: ERROR status, current sales untouched, and the
        ``ConfigError`` re-raised only with ``raise_errors``.
        """
        try:
            bounds = period_bounds(mode, **params)  # type: ignore[arg-type]
        except (ConfigError, TypeError) as e:
            msg = f"Error: {e}"
            with self._lock:
                self._generation += 1
                generation = self._generation
                self._status = FetchStatus.ERROR
                self._message = msg
            logger.error("Invalid period %r %s: %s", mode, params, e)
            if raise_errors:
                raise
            return FetchResult(FetchStatus.ERROR, msg, generation)
        return self.fetch(session, bounds.start, bounds.end, raise_errors=raise_errors)

    # --- queries ---------------------------------------------------------

    def lines_for(self, predicate: Optional[SalePredicate] = None) -> list[ReconciledSale]:
        sales = self._sales
        if predicate is None:
            return list(sales)
        return [s for s in sales if predicate(s)]

    def stats_for(self, predicate: Optional[SalePredicate] = None) -> SalesStats:
        return summarize(self.lines_for(predicate))

    def branch_predicate(self, category: BranchCategory) -> SalePredicate:
        return lambda sale: self.classifier.classify(sale.branch) is category

    def branch_stats(self) -> dict[Optional[BranchCategory], SalesStats]:
        """Global (key ``None``) and per-branch stats of the current set."""
        return summarize_by_branch(self._sales, self.classifier)

    # --- export ----------------------------------------------------------

    def export_range(self, start: str, end: str, label: Optional[str] = None) -> Workbook:
        """Build the workbook for the current sales within ``[start, end]``."""
        selected = filter_by_date_range(self._sales, start, end)
        return build_workbook(selected, label or f"{start} to {end}", self.classifier)

    def save_export(
        self,
        start: str,
        end: str,
        path: Optional[Union[str, Path]] = None,
        label: Optional[str] = None,
    ) -> Path:
        """Export ``[start, end]`` and write it to ``path`` (default filename if None)."""
        workbook = self.export_range(start, end, label)
        return write_workbook(workbook, path or default_filename(start))
