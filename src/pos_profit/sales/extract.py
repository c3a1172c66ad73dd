"""Extraction sequence: ERP orders, lines and product costs for a period.

One fetch cycle issues up to four ``search_read`` calls, strictly in order,
each depending on the previous result:

1. ``pos.order``         paid/done/invoiced orders in the period window
2. ``pos.order.line``    lines of those orders
3. ``product.product``   cost and category of the sold products
4. ``product.template``  only for variants without a cost of their own

An empty order result short-circuits the remaining calls.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Sequence

from pos_profit.config import ErpSession
from pos_profit.dates import query_window
from pos_profit.erp.client import SearchRead
from pos_profit.erp.records import RawLine, RawOrder, RawProduct, RawTemplate
from pos_profit.exceptions import ConfigError, SessionError
from pos_profit.sales.costs import resolve
from pos_profit.sales.transform import ReconciledSale, reconcile

logger = logging.getLogger(__name__)

ORDER_STATES = ["paid", "done", "invoiced"]
ORDER_LIMIT = 3000

ORDER_FIELDS = ["date_order", "config_id", "lines", "amount_total", "user_id"]
LINE_FIELDS = ["product_id", "qty", "price_subtotal", "price_subtotal_incl", "order_id"]
PRODUCT_FIELDS = ["standard_price", "categ_id", "product_tmpl_id"]
TEMPLATE_FIELDS = ["standard_price"]

ProgressCallback = Callable[[str], None]


def _noop(message: str) -> None:
    pass


def order_domain(session: ErpSession, start: str, end: str) -> list[list[Any]]:
    """Domain selecting completed orders of the business-day range.

    Raises:
        ConfigError: If ``start`` or ``end`` is not a YYYY-MM-DD date.

    """
    try:
        start_utc, end_utc = query_window(start, end)
    except ValueError as e:
        raise ConfigError(f"Invalid fetch range {start!r} to {end!r}: {e}") from e
    domain: list[list[Any]] = [
        ["state", "in", ORDER_STATES],
        ["date_order", ">=", start_utc],
        ["date_order", "<=", end_utc],
    ]
    if session.company_id:
        domain.append(["company_id", "=", session.company_id])
    return domain


def _company_context(session: ErpSession) -> Optional[dict[str, Any]]:
    return {"company_id": session.company_id} if session.company_id else None


def fetch_orders(client: SearchRead, session: ErpSession, start: str, end: str) -> list[RawOrder]:
    records = client.search_read(
        "pos.order",
        order_domain(session, start, end),
        ORDER_FIELDS,
        order="date_order desc",
        limit=ORDER_LIMIT,
    )
    if len(records) >= ORDER_LIMIT:
        logger.warning(
            "Order query hit the %d row limit for %s to %s; older orders are missing",
            ORDER_LIMIT,
            start,
            end,
        )
    return [RawOrder.from_record(r) for r in records]


def fetch_lines(client: SearchRead, line_ids: Sequence[int]) -> list[RawLine]:
    records = client.search_read("pos.order.line", [["id", "in", list(line_ids)]], LINE_FIELDS)
    return [RawLine.from_record(r) for r in records]


def fetch_sales(
    client: SearchRead,
    session: ErpSession,
    start: str,
    end: str,
    progress: Optional[ProgressCallback] = None,
) -> list[ReconciledSale]:
    """Run the full extraction and reconciliation for ``[start, end]``.

    Args:
        client: ERP ``search_read`` capability.
        session: Session carrying company scoping.
        start: First business day (YYYY-MM-DD).
        end: Last business day (YYYY-MM-DD).
        progress: Optional callback receiving human-readable stage messages.

    Returns:
        Reconciled sales of the period (empty when there are no orders).

    Raises:
        SessionError: If the session is not valid; no call is issued.
        ConfigError: If ``start`` or ``end`` is not a YYYY-MM-DD date.
        ExtractionError: If any ERP call fails.

    """
    if session is None or not session.is_valid:
        raise SessionError("No valid ERP session; log in before fetching sales")

    report = progress or _noop
    context = _company_context(session)

    report("Fetching orders...")
    logger.info("Fetching orders for %s to %s", start, end)
    orders = fetch_orders(client, session, start, end)
    if not orders:
        logger.info("No orders for %s to %s", start, end)
        return []

    report("Loading order lines...")
    line_ids = [lid for order in orders for lid in order.line_ids]
    lines = fetch_lines(client, line_ids) if line_ids else []
    logger.info("Fetched %d order(s) with %d line(s)", len(orders), len(lines))

    report("Resolving product costs...")

    def fetch_products(ids: Sequence[int]) -> list[RawProduct]:
        records = client.search_read(
            "product.product", [["id", "in", list(ids)]], PRODUCT_FIELDS, context=context
        )
        return [RawProduct.from_record(r) for r in records]

    def fetch_templates(ids: Sequence[int]) -> list[RawTemplate]:
        records = client.search_read(
            "product.template", [["id", "in", list(ids)]], TEMPLATE_FIELDS, context=context
        )
        return [RawTemplate.from_record(r) for r in records]

    costs = resolve(lines, fetch_products, fetch_templates)

    report("Computing profitability...")
    return reconcile(orders, lines, costs, company=session.company_name)
